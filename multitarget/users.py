"""Sample user service built on the generic MongoDB repository."""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import List, Optional, Union

from bson import ObjectId
from bson.errors import InvalidId

from .config import ConfigurationHelper
from .database import ClientFactory, DatabaseContext
from .errors import InitializationError, InvalidArgument
from .models import User
from .repository import DocumentCodec, MongoRepository

USERS_COLLECTION = "users"

UserId = Union[ObjectId, str]

USER_CODEC: DocumentCodec[User] = DocumentCodec(
    to_document=User.to_document,
    from_document=User.from_document,
)


def _current_timestamp() -> datetime:
    # BSON dates keep millisecond precision.
    now = datetime.now(timezone.utc)
    return now.replace(microsecond=now.microsecond // 1000 * 1000)


def _require_text(value: Optional[str], argument: str, label: str) -> None:
    if value is None or not value.strip():
        raise InvalidArgument(argument, f"{label} cannot be null or empty")


def _coerce_user_id(user_id: UserId) -> ObjectId:
    if isinstance(user_id, ObjectId):
        return user_id
    if not isinstance(user_id, str):
        raise InvalidArgument("user_id", f"Invalid user identifier: {user_id!r}")
    try:
        return ObjectId(user_id)
    except (InvalidId, TypeError) as exc:
        raise InvalidArgument("user_id", f"Invalid user identifier: {user_id!r}") from exc


class UserService:
    """Create, look up, update and delete users stored in MongoDB."""

    def __init__(
        self,
        config_helper: ConfigurationHelper,
        logger: Optional[logging.Logger] = None,
        *,
        client_factory: Optional[ClientFactory] = None,
    ) -> None:
        self._logger = logger or logging.getLogger("multitarget.users")
        self._closed = False

        try:
            endpoint = config_helper.get_connection_endpoint()
            database_name = config_helper.get_database_name()
            self._context = DatabaseContext(
                endpoint,
                database_name,
                logger,
                client_factory=client_factory,
            )
        except Exception as exc:
            self._logger.exception("Failed to initialize UserService")
            raise InitializationError("Failed to initialize UserService") from exc

        try:
            self._repository: MongoRepository[User] = MongoRepository(
                self._context, USERS_COLLECTION, USER_CODEC, logger
            )
        except Exception as exc:
            self._logger.exception("Failed to initialize UserService")
            self._context.close()
            raise InitializationError("Failed to initialize UserService") from exc

        self._logger.info("UserService initialized successfully")

    @property
    def repository(self) -> MongoRepository[User]:
        return self._repository

    def create_user(self, name: str, email: str) -> User:
        """Persist a new active user and return it with its generated identifier."""
        _require_text(name, "name", "Name")
        _require_text(email, "email", "Email")

        user = User(
            id=ObjectId(),
            name=name,
            email=email,
            created_at=_current_timestamp(),
            is_active=True,
        )
        self._repository.insert_one(user)
        self._logger.info("Created user with ID: %s", user.id)
        return user

    def get_user_by_email(self, email: str) -> Optional[User]:
        _require_text(email, "email", "Email")

        user = self._repository.get_by_filter({"email": email})
        self._logger.info("Retrieved user by email: %s, found: %s", email, user is not None)
        return user

    def update_user_status(self, user_id: UserId, is_active: bool) -> bool:
        object_id = _coerce_user_id(user_id)
        updated = self._repository.update_one(
            {"_id": object_id},
            {"$set": {"is_active": bool(is_active), "updated_at": _current_timestamp()}},
        )
        self._logger.info("Updated user status for ID: %s, success: %s", object_id, updated)
        return updated

    def delete_user(self, user_id: UserId) -> bool:
        object_id = _coerce_user_id(user_id)
        deleted = self._repository.delete_one({"_id": object_id})
        self._logger.info("Deleted user with ID: %s, success: %s", object_id, deleted)
        return deleted

    def get_user_count(self) -> int:
        count = self._repository.count({})
        self._logger.info("Total user count: %s", count)
        return count

    def list_users(self) -> List[User]:
        return self._repository.get_all()

    def test_database_connection(self) -> bool:
        return self._context.test_connection()

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._repository.close()
        self._context.close()
        self._logger.info("UserService disposed")

    def __enter__(self) -> "UserService":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


__all__ = ["USERS_COLLECTION", "USER_CODEC", "UserService"]
