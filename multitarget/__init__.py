"""Document-database repositories and request helpers for ASGI or WSGI hosts."""

from __future__ import annotations

import logging
from typing import Any

__version__ = "1.0.0"

# Silent unless the host application configures logging.
logging.getLogger("multitarget").addHandler(logging.NullHandler())

from .config import Configuration, ConfigurationHelper, load_configuration
from .database import DatabaseContext
from .errors import (
    ConfigurationMissing,
    DatabaseConnectionError,
    DatabaseError,
    InitializationError,
    InvalidArgument,
    LibraryError,
)
from .manager import LibraryManager
from .models import User
from .repository import DocumentCodec, MongoRepository
from .users import UserService


def create_app(*args: Any, **kwargs: Any):
    """Factory function that returns the FastAPI application."""

    from .service import create_app as _create_app

    return _create_app(*args, **kwargs)


__all__ = [
    "Configuration",
    "ConfigurationHelper",
    "ConfigurationMissing",
    "DatabaseConnectionError",
    "DatabaseContext",
    "DatabaseError",
    "DocumentCodec",
    "InitializationError",
    "InvalidArgument",
    "LibraryError",
    "LibraryManager",
    "MongoRepository",
    "User",
    "UserService",
    "create_app",
    "load_configuration",
    "__version__",
]
