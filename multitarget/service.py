"""FastAPI integration exposing the library through health and info endpoints."""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Mapping, Optional

from fastapi import Depends, FastAPI, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from starlette.middleware.sessions import SessionMiddleware

from . import web
from .config import load_configuration
from .manager import LibraryManager

logger = logging.getLogger("multitarget.service")


class HealthResponse(BaseModel):
    status: str = Field(..., description="'ok' when every dependency answered")


class InfoResponse(BaseModel):
    library: str
    platform: str
    url: Optional[str] = None
    method: Optional[str] = None
    user_agent: Optional[str] = None
    client_ip: Optional[str] = None
    secure: bool = False


def register_library(app: FastAPI, manager: LibraryManager) -> LibraryManager:
    """Attach ``manager`` to ``app`` and close it when the application shuts down."""

    app.state.library = manager
    inner = app.router.lifespan_context

    @asynccontextmanager
    async def lifespan(owner: Any) -> AsyncIterator[Any]:
        try:
            async with inner(owner) as state:
                yield state
        finally:
            manager.close()

    app.router.lifespan_context = lifespan
    return manager


def get_library(request: Request) -> LibraryManager:
    manager = getattr(request.app.state, "library", None)
    if manager is None:
        raise RuntimeError("No LibraryManager registered on this application")
    return manager


def create_app(
    configuration: Optional[Mapping[str, Any]] = None,
    *,
    manager: Optional[LibraryManager] = None,
    session_secret: Optional[str] = None,
) -> FastAPI:
    """Create the ASGI application; the manager is closed when the app shuts down."""

    if manager is None:
        manager = LibraryManager(configuration if configuration is not None else load_configuration())

    app = FastAPI(
        title="MultiTarget Library",
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    register_library(app, manager)

    if session_secret is None:
        session_secret = os.getenv("MULTITARGET_SESSION_SECRET")
    if session_secret:
        app.add_middleware(
            SessionMiddleware,
            secret_key=session_secret,
            session_cookie="multitarget_session",
            same_site="lax",
        )

    @app.get("/health", response_model=HealthResponse)
    def healthcheck(library: LibraryManager = Depends(get_library)) -> JSONResponse:
        if library.test_all_services():
            return JSONResponse({"status": "ok"})
        logger.warning("Health check reported unavailable dependencies")
        return JSONResponse(
            {"status": "unavailable"},
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        )

    @app.get("/info", response_model=InfoResponse)
    async def info(request: Request) -> InfoResponse:
        return InfoResponse(
            library=LibraryManager.library_info(),
            platform=LibraryManager.current_platform(),
            url=web.get_current_url(request),
            method=web.get_http_method(request),
            user_agent=web.get_user_agent(request),
            client_ip=web.get_client_ip(request),
            secure=web.is_secure(request),
        )

    @app.get("/session/{key}")
    async def read_session_value(key: str, request: Request) -> Dict[str, Any]:
        return {"key": key, "value": web.get_session_value(key, request)}

    @app.put("/session/{key}")
    async def write_session_value(key: str, value: str, request: Request) -> Dict[str, Any]:
        web.set_session_value(key, value, request)
        return {"key": key, "value": web.get_session_value(key, request)}

    return app


__all__ = ["HealthResponse", "InfoResponse", "create_app", "get_library", "register_library"]
