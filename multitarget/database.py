"""MongoDB connection handling shared by the repositories."""
from __future__ import annotations

import logging
from typing import Any, Callable, List, Optional

from pymongo import MongoClient
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.server_api import ServerApi

from .errors import DatabaseConnectionError, DatabaseError, InvalidArgument

ClientFactory = Callable[[str], Any]


def _default_client_factory(endpoint: str) -> MongoClient:
    return MongoClient(endpoint, server_api=ServerApi("1"), tz_aware=True)


class DatabaseContext:
    """Own a MongoDB client bound to one named database.

    The client is created on construction and released by :meth:`close`. A context can
    be shared by several repositories; whoever created it is responsible for closing it.
    """

    def __init__(
        self,
        endpoint: str,
        database_name: str,
        logger: Optional[logging.Logger] = None,
        *,
        client_factory: Optional[ClientFactory] = None,
    ) -> None:
        if not endpoint or not endpoint.strip():
            raise DatabaseConnectionError("Connection string cannot be null or empty")
        if not database_name or not database_name.strip():
            raise DatabaseConnectionError("Database name cannot be null or empty")

        self._logger = logger or logging.getLogger("multitarget.database")
        self._database_name = database_name
        self._closed = False

        factory = client_factory or _default_client_factory
        try:
            self._client = factory(endpoint)
            self._database: Database = self._client[database_name]
        except Exception as exc:
            self._logger.exception("Failed to establish MongoDB connection")
            raise DatabaseConnectionError(
                f"Failed to establish MongoDB connection for database {database_name}"
            ) from exc

        self._logger.info("MongoDB connection established for database: %s", database_name)

    @property
    def database_name(self) -> str:
        return self._database_name

    @property
    def database(self) -> Database:
        self._ensure_open()
        return self._database

    @property
    def closed(self) -> bool:
        return self._closed

    def get_collection(self, name: str) -> Collection:
        """Return a handle to ``name``; MongoDB creates collections lazily."""
        if not name:
            raise InvalidArgument("collection_name", "Collection name cannot be null or empty")
        self._ensure_open()
        return self._database[name]

    def test_connection(self) -> bool:
        """Issue a ``ping`` round-trip and report whether the server answered."""
        try:
            self._ensure_open()
            self._database.command("ping")
        except Exception:
            self._logger.exception("MongoDB connection test failed")
            return False

        self._logger.info("MongoDB connection test successful")
        return True

    def list_collection_names(self) -> List[str]:
        try:
            self._ensure_open()
            return list(self._database.list_collection_names())
        except Exception as exc:
            self._logger.exception("Failed to retrieve collection names")
            if isinstance(exc, DatabaseError):
                raise
            raise DatabaseError("Failed to retrieve collection names") from exc

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            self._client.close()
        except Exception:  # pragma: no cover - driver cleanup is best effort
            self._logger.warning("MongoDB client did not close cleanly", exc_info=True)
        self._logger.info("MongoDB context disposed")

    def _ensure_open(self) -> None:
        if self._closed:
            raise DatabaseError(f"MongoDB context for {self._database_name} has been closed")

    def __enter__(self) -> "DatabaseContext":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


__all__ = ["ClientFactory", "DatabaseContext"]
