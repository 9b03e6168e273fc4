"""Request-context helpers that work against either an ASGI or a WSGI web stack.

Exactly one platform is active per process. It is chosen from the
``MULTITARGET_HTTP_PLATFORM`` environment variable when this module is imported
(``asgi`` by default) and can be replaced at runtime with :func:`set_adapter`.

Every accessor tolerates a missing context: when no context is supplied, when the
object does not belong to the active platform, or when the requested field is
absent, the accessor returns ``None`` (``False`` for :func:`is_secure`).
"""
from __future__ import annotations

import os
from abc import ABC, abstractmethod
from collections.abc import Mapping, MutableMapping
from typing import Any, Optional
from wsgiref.util import request_uri

from starlette.requests import HTTPConnection

from .errors import InvalidArgument

ASGI = "asgi"
WSGI = "wsgi"
PLATFORMS = (ASGI, WSGI)

FORWARDED_FOR_HEADER = "x-forwarded-for"


def _first_forwarded_address(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    first = value.split(",")[0].strip()
    return first or None


class HttpContextAdapter(ABC):
    """Read request details from one platform's context object."""

    platform: str = ""

    @abstractmethod
    def accepts(self, context: Any) -> bool:
        """Return ``True`` when ``context`` is a request object of this platform."""

    @abstractmethod
    def current_url(self, context: Any) -> Optional[str]: ...

    @abstractmethod
    def user_agent(self, context: Any) -> Optional[str]: ...

    @abstractmethod
    def client_ip(self, context: Any) -> Optional[str]: ...

    @abstractmethod
    def is_secure(self, context: Any) -> bool: ...

    @abstractmethod
    def http_method(self, context: Any) -> Optional[str]: ...

    @abstractmethod
    def session(self, context: Any) -> Optional[MutableMapping[str, Any]]: ...


class StarletteContextAdapter(HttpContextAdapter):
    """Adapter for Starlette/FastAPI ``Request`` and ``WebSocket`` connections."""

    platform = ASGI

    def accepts(self, context: Any) -> bool:
        return isinstance(context, HTTPConnection)

    def current_url(self, context: HTTPConnection) -> Optional[str]:
        # ``HTTPConnection.url`` indexes the scope directly.
        if "path" not in context.scope or "headers" not in context.scope:
            return None
        return str(context.url)

    def user_agent(self, context: HTTPConnection) -> Optional[str]:
        if "headers" not in context.scope:
            return None
        return context.headers.get("user-agent")

    def client_ip(self, context: HTTPConnection) -> Optional[str]:
        if "headers" in context.scope:
            forwarded = _first_forwarded_address(context.headers.get(FORWARDED_FOR_HEADER))
            if forwarded:
                return forwarded
        if context.client is None:
            return None
        return context.client.host

    def is_secure(self, context: HTTPConnection) -> bool:
        return context.scope.get("scheme") in {"https", "wss"}

    def http_method(self, context: HTTPConnection) -> Optional[str]:
        return context.scope.get("method")

    def session(self, context: HTTPConnection) -> Optional[MutableMapping[str, Any]]:
        # ``HTTPConnection.session`` asserts unless SessionMiddleware populated the scope.
        if "session" not in context.scope:
            return None
        return context.session


class WsgiContextAdapter(HttpContextAdapter):
    """Adapter for PEP 3333 ``environ`` dictionaries."""

    platform = WSGI

    def __init__(self, *, session_key: str = "beaker.session") -> None:
        self._session_key = session_key

    @property
    def session_key(self) -> str:
        return self._session_key

    def accepts(self, context: Any) -> bool:
        # Starlette connections are Mappings over their ASGI scope.
        return isinstance(context, Mapping) and not isinstance(context, HTTPConnection)

    def current_url(self, context: Mapping[str, Any]) -> Optional[str]:
        if "wsgi.url_scheme" not in context:
            return None
        if not context.get("HTTP_HOST") and not ("SERVER_NAME" in context and "SERVER_PORT" in context):
            return None
        return request_uri(dict(context), include_query=True)

    def user_agent(self, context: Mapping[str, Any]) -> Optional[str]:
        return context.get("HTTP_USER_AGENT")

    def client_ip(self, context: Mapping[str, Any]) -> Optional[str]:
        forwarded = _first_forwarded_address(context.get("HTTP_X_FORWARDED_FOR"))
        if forwarded:
            return forwarded
        return context.get("REMOTE_ADDR") or None

    def is_secure(self, context: Mapping[str, Any]) -> bool:
        if context.get("wsgi.url_scheme") == "https":
            return True
        return str(context.get("HTTPS", "")).lower() in {"on", "1"}

    def http_method(self, context: Mapping[str, Any]) -> Optional[str]:
        return context.get("REQUEST_METHOD")

    def session(self, context: Mapping[str, Any]) -> Optional[MutableMapping[str, Any]]:
        session = context.get(self._session_key)
        if session is None or not hasattr(session, "get") or not hasattr(session, "__setitem__"):
            return None
        return session


def adapter_for(platform: str) -> HttpContextAdapter:
    """Return a fresh adapter for ``platform`` (``asgi`` or ``wsgi``)."""
    normalized = (platform or "").strip().lower()
    if normalized == ASGI:
        return StarletteContextAdapter()
    if normalized == WSGI:
        return WsgiContextAdapter()
    raise InvalidArgument("platform", f"Unknown HTTP platform {platform!r}; expected one of {PLATFORMS}")


HTTP_PLATFORM = (os.getenv("MULTITARGET_HTTP_PLATFORM") or ASGI).strip().lower()

_adapter: HttpContextAdapter = adapter_for(HTTP_PLATFORM)


def get_adapter() -> HttpContextAdapter:
    return _adapter


def set_adapter(adapter: HttpContextAdapter) -> HttpContextAdapter:
    """Install ``adapter`` as the active one and return the previous adapter."""
    global _adapter

    if not isinstance(adapter, HttpContextAdapter):
        raise InvalidArgument("adapter", "adapter must be an HttpContextAdapter")
    previous = _adapter
    _adapter = adapter
    return previous


def get_current_context() -> None:
    """Ambient request lookup; contexts are always passed explicitly, so this yields nothing."""
    return None


def _resolve(context: Any) -> Optional[Any]:
    if context is None or not _adapter.accepts(context):
        return None
    return context


def get_current_url(context: Any = None) -> Optional[str]:
    resolved = _resolve(context)
    return None if resolved is None else _adapter.current_url(resolved)


def get_user_agent(context: Any = None) -> Optional[str]:
    resolved = _resolve(context)
    return None if resolved is None else _adapter.user_agent(resolved)


def get_client_ip(context: Any = None) -> Optional[str]:
    """Return the forwarded client address if present, else the peer address."""
    resolved = _resolve(context)
    return None if resolved is None else _adapter.client_ip(resolved)


def is_secure(context: Any = None) -> bool:
    resolved = _resolve(context)
    return False if resolved is None else _adapter.is_secure(resolved)


def get_http_method(context: Any = None) -> Optional[str]:
    resolved = _resolve(context)
    return None if resolved is None else _adapter.http_method(resolved)


def get_session_value(key: str, context: Any = None, default: Any = None) -> Any:
    resolved = _resolve(context)
    if resolved is None:
        return default
    session = _adapter.session(resolved)
    if session is None:
        return default
    return session.get(key, default)


def set_session_value(key: str, value: Any, context: Any = None) -> None:
    resolved = _resolve(context)
    if resolved is None:
        return
    session = _adapter.session(resolved)
    if session is not None:
        session[key] = value


__all__ = [
    "ASGI",
    "HTTP_PLATFORM",
    "HttpContextAdapter",
    "PLATFORMS",
    "StarletteContextAdapter",
    "WSGI",
    "WsgiContextAdapter",
    "adapter_for",
    "get_adapter",
    "get_client_ip",
    "get_current_context",
    "get_current_url",
    "get_http_method",
    "get_session_value",
    "get_user_agent",
    "is_secure",
    "set_adapter",
    "set_session_value",
]
