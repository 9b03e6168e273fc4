"""Facade giving a single entry point to the library's services."""
from __future__ import annotations

import logging
import platform
from importlib import metadata
from typing import Any, Mapping, Optional

from . import web
from .config import ConfigurationHelper
from .database import ClientFactory
from .errors import InvalidArgument
from .users import UserService

DISTRIBUTION_NAME = "multitarget"


def _library_version() -> str:
    try:
        return metadata.version(DISTRIBUTION_NAME)
    except metadata.PackageNotFoundError:
        from . import __version__

        return __version__


class LibraryManager:
    """Compose configuration, the user service and the HTTP helpers.

    The user service is built on first access so a manager can be created without a
    reachable database; :meth:`test_all_services` reports reachability as a boolean.
    """

    get_current_url = staticmethod(web.get_current_url)
    get_user_agent = staticmethod(web.get_user_agent)
    get_client_ip = staticmethod(web.get_client_ip)
    is_secure = staticmethod(web.is_secure)
    get_http_method = staticmethod(web.get_http_method)
    get_session_value = staticmethod(web.get_session_value)
    set_session_value = staticmethod(web.set_session_value)

    def __init__(
        self,
        configuration: Mapping[str, Any],
        logger: Optional[logging.Logger] = None,
        *,
        client_factory: Optional[ClientFactory] = None,
    ) -> None:
        if configuration is None:
            raise InvalidArgument("configuration", "configuration must be provided")

        self._configuration = configuration
        self._injected_logger = logger
        self._logger = logger or logging.getLogger("multitarget.manager")
        self._config_helper = ConfigurationHelper(configuration, logger)
        self._client_factory = client_factory
        self._user_service: Optional[UserService] = None
        self._closed = False

        self._logger.info("LibraryManager initialized for platform: %s", self.current_platform())

    @property
    def configuration(self) -> Mapping[str, Any]:
        return self._configuration

    @property
    def user_service(self) -> UserService:
        if self._user_service is None:
            self._user_service = UserService(
                self._config_helper,
                self._injected_logger,
                client_factory=self._client_factory,
            )
        return self._user_service

    def test_all_services(self) -> bool:
        """Probe every dependency; failures are logged and reported as ``False``."""
        try:
            self._logger.info("Testing all services...")
            if not self.user_service.test_database_connection():
                self._logger.error("Database connection test failed")
                return False
        except Exception:
            self._logger.exception("Service tests failed")
            return False

        self._logger.info("All service tests passed")
        return True

    @staticmethod
    def current_platform() -> str:
        return f"Python {platform.python_version()} ({web.get_adapter().platform})"

    @staticmethod
    def library_info() -> str:
        return f"multitarget v{_library_version()} running on {LibraryManager.current_platform()}"

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._user_service is not None:
            self._user_service.close()
        self._logger.info("LibraryManager disposed")

    def __enter__(self) -> "LibraryManager":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


__all__ = ["LibraryManager"]
