"""
FastAPI application factory.

``create_app()`` wires middleware, routers, error handlers, and
lifespan events into a single ``FastAPI`` instance.

Manifesto:
    The app factory is the single composition root - all middleware,
    routers, and lifecycle hooks are wired here so the rest of the
    codebase never touches ``FastAPI`` directly.

Tags:
    tally, api, app-factory, composition-root, FastAPI

Doc-Types:
    api-reference
"""

from __future__ import annotations

from collections.abc import AsyncGenerator, Awaitable, Callable
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.concurrency import run_in_threadpool
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from tally.api.deps import get_settings
from tally.api.middleware.errors import (
    http_exception_handler,
    request_validation_handler,
    unhandled_exception_handler,
)
from tally.api.middleware.request_id import RequestIDMiddleware
from tally.api.middleware.security_headers import SecurityHeadersMiddleware
from tally.api.middleware.timing import TimingMiddleware
from tally.api.settings import TallyAPISettings
from tally.core.connection import create_connection
from tally.core.health import create_health_router
from tally.core.logging import configure_logging, get_logger
from tally.core.repositories import InMemoryCounterRepository, SqlCounterRepository


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan - startup / shutdown hooks."""
    settings: TallyAPISettings = app.state.settings
    log = get_logger("tally.api")
    log.info("tally_api_starting", version=app.version, backend=settings.storage_backend)

    if settings.storage_backend == "sqlite":
        conn, info = create_connection(
            settings.database_url,
            init_schema=True,
            data_dir=settings.data_dir,
            timeout=settings.sqlite_timeout_s,
        )
        conn.close()
        log.info("database_initialized", backend=info.backend, path=info.resolved_path)

    yield
    log.info("tally_api_shutting_down")


def _storage_check(app: FastAPI) -> Callable[[], Awaitable[None]]:
    """Async ping of the configured counter store."""

    def _ping() -> None:
        settings: TallyAPISettings = app.state.settings
        if settings.storage_backend == "memory":
            app.state.memory_repository.ping()
            return
        conn, _info = create_connection(
            settings.database_url,
            data_dir=settings.data_dir,
            timeout=settings.sqlite_timeout_s,
        )
        try:
            SqlCounterRepository(conn).ping()
        finally:
            conn.close()

    async def check() -> None:
        await run_in_threadpool(_ping)

    return check


def create_app(
    *,
    settings: TallyAPISettings | None = None,
) -> FastAPI:
    """Build and return a fully-configured FastAPI application.

    Parameters
    ----------
    settings : TallyAPISettings | None
        Override settings (useful for testing).  When ``None`` the cached
        singleton from :func:`get_settings` is used.
    """

    settings = settings or get_settings()
    configure_logging(level=settings.log_level, json_format=settings.log_json)

    app = FastAPI(
        title=settings.api_title,
        version=settings.api_version,
        lifespan=lifespan,
        docs_url=f"{settings.api_prefix}/docs",
        redoc_url=f"{settings.api_prefix}/redoc",
        openapi_url=f"{settings.api_prefix}/openapi.json",
    )

    # Stash settings on app state for middleware access
    app.state.settings = settings
    app.state.memory_repository = InMemoryCounterRepository()

    # Override DI so endpoints use the provided settings
    app.dependency_overrides[get_settings] = lambda: settings

    # ── Middleware (outermost → innermost) ────────────────────────────
    app.add_middleware(TimingMiddleware)
    if settings.security_headers:
        app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(GZipMiddleware, minimum_size=settings.gzip_minimum_size)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "X-Process-Time-Ms"],
    )

    # ── Exception handlers ───────────────────────────────────────────
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    # ── Routers ──────────────────────────────────────────────────────
    from tally.api.routers import items, sites

    prefix = settings.api_prefix

    app.include_router(
        create_health_router("tally", settings.api_version, _storage_check(app)),
        prefix=prefix,
        tags=["health"],
    )
    app.include_router(items.router, prefix=prefix, tags=["items"])
    app.include_router(sites.router, prefix=prefix, tags=["sites"])

    return app
