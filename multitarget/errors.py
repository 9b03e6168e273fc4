"""Exception hierarchy shared by the data-access and web helpers."""
from __future__ import annotations

from typing import Optional


class LibraryError(Exception):
    """Base class for every error raised by the library."""


class ConfigurationMissing(LibraryError, LookupError):
    """Raised when a required configuration key is absent or empty."""

    def __init__(self, key: str, message: Optional[str] = None) -> None:
        self.key = key
        super().__init__(message or f"Configuration value not found for key: {key}")


class InvalidArgument(LibraryError, ValueError):
    """Raised when a required string parameter is missing or blank."""

    def __init__(self, argument: str, message: Optional[str] = None) -> None:
        self.argument = argument
        super().__init__(message or f"{argument} cannot be null or empty")


class DatabaseConnectionError(LibraryError, ConnectionError):
    """Raised when a database client cannot be constructed."""


class InitializationError(LibraryError, RuntimeError):
    """Raised when a service fails to build its dependencies."""


class DatabaseError(LibraryError):
    """Raised when a database operation fails inside the client."""


__all__ = [
    "LibraryError",
    "ConfigurationMissing",
    "InvalidArgument",
    "DatabaseConnectionError",
    "InitializationError",
    "DatabaseError",
]
