"""Domain models persisted by the sample services."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Mapping, Optional

from bson import ObjectId


@dataclass(frozen=True)
class User:
    """Represents a user document stored in the ``users`` collection."""

    id: ObjectId
    name: str
    email: str
    created_at: datetime
    updated_at: Optional[datetime] = None
    is_active: bool = True

    def to_document(self) -> Dict[str, Any]:
        return {
            "_id": self.id,
            "name": self.name,
            "email": self.email,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
            "is_active": self.is_active,
        }

    @staticmethod
    def from_document(document: Mapping[str, Any]) -> "User":
        """Create a :class:`User` from a raw MongoDB document."""
        return User(
            id=document["_id"],
            name=str(document.get("name", "")),
            email=str(document.get("email", "")),
            created_at=document["created_at"],
            updated_at=document.get("updated_at"),
            is_active=bool(document.get("is_active", False)),
        )


__all__ = ["User"]
