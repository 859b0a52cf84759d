"""FastAPI application entry point."""

from __future__ import annotations

import logging
import sys
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import OperationalError

from gitblog import __version__
from gitblog.api.health import router as health_router
from gitblog.api.posts import router as posts_router
from gitblog.api.publish import router as publish_router
from gitblog.api.repository import router as repository_router
from gitblog.api.site import router as site_router
from gitblog.config import Settings
from gitblog.database import create_engine
from gitblog.exceptions import (
    AlreadyExistsError,
    ConflictError,
    InternalServerError,
    InvalidLocationError,
    NotConfiguredError,
    NotFoundError,
    RepositoryError,
)
from gitblog.github.client import GitHubContentClient
from gitblog.models.base import Base
from gitblog.services.publish_gate import PublishGate
from gitblog.services.storage_service import LocalStore
from gitblog.services.sync_service import ContentSynchronizer, PacingPolicy

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    import httpx
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

logger = logging.getLogger(__name__)

_REPOSITORY_ERROR_STATUS: tuple[tuple[type[RepositoryError], int], ...] = (
    (NotConfiguredError, 422),
    (InvalidLocationError, 422),
    (NotFoundError, 404),
    (ConflictError, 409),
    (AlreadyExistsError, 409),
)


def _configure_logging(debug: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
        stream=sys.stdout,
        force=True,
    )
    library_level = logging.INFO if debug else logging.WARNING
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    for name in ("sqlalchemy.engine", "httpx"):
        logging.getLogger(name).setLevel(library_level)


def _repository_error_status(exc: RepositoryError) -> int:
    for error_type, status_code in _REPOSITORY_ERROR_STATUS:
        if isinstance(exc, error_type):
            return status_code
    return 502


def _log_failure(request: Request, exc: Exception, *, level: int = logging.ERROR) -> None:
    logger.log(
        level,
        "%s in %s %s: %s",
        type(exc).__name__,
        request.method,
        request.url.path,
        exc,
        exc_info=exc if level >= logging.ERROR else None,
    )


def _wire_services(
    app: FastAPI, settings: Settings, session_factory: async_sessionmaker[AsyncSession]
) -> GitHubContentClient:
    """Build the store, gate, client and synchronizer and hang them on app state."""
    store = LocalStore(session_factory, settings.secret_key)
    gate = PublishGate(
        cooldown_seconds=settings.publish_cooldown_seconds,
        stale_after_seconds=settings.publish_stale_lock_seconds,
    )
    client = GitHubContentClient.from_settings(settings, transport=app.state.github_transport)
    app.state.store = store
    app.state.publish_gate = gate
    app.state.github_client = client
    app.state.synchronizer = ContentSynchronizer(
        store,
        client,
        gate,
        pacing=PacingPolicy(settings.post_write_delay_seconds),
        build_recency_seconds=settings.build_recency_seconds,
    )
    return client


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        errors = [
            {
                "field": str(err["loc"][-1]) if err.get("loc") else "unknown",
                "message": err.get("msg", "Invalid value"),
            }
            for err in exc.errors()
        ]
        logger.warning("Rejected %s %s: %s", request.method, request.url.path, errors)
        return JSONResponse(status_code=422, content={"detail": errors})

    @app.exception_handler(RepositoryError)
    async def repository_error_handler(request: Request, exc: RepositoryError) -> JSONResponse:
        _log_failure(request, exc, level=logging.WARNING)
        return JSONResponse(
            status_code=_repository_error_status(exc),
            content={"detail": str(exc) or "Repository error", "kind": exc.kind},
        )

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
        _log_failure(request, exc)
        return JSONResponse(status_code=422, content={"detail": str(exc) or "Invalid value"})

    @app.exception_handler(InternalServerError)
    async def internal_server_error_handler(
        request: Request, exc: InternalServerError
    ) -> JSONResponse:
        _log_failure(request, exc)
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})

    @app.exception_handler(OperationalError)
    async def operational_error_handler(request: Request, exc: OperationalError) -> JSONResponse:
        _log_failure(request, exc)
        return JSONResponse(
            status_code=503, content={"detail": "Database temporarily unavailable"}
        )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Open the database and GitHub client for the lifetime of the app."""
    settings: Settings = app.state.settings
    settings.validate_runtime_security()
    _configure_logging(settings.debug)
    logger.info("Starting GitBlog (debug=%s)", settings.debug)

    try:
        engine, session_factory = create_engine(settings)
        app.state.engine = engine
        app.state.session_factory = session_factory
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
    except Exception as exc:
        logger.critical("Database startup failed: %s. Check database_url and permissions.", exc)
        raise

    client = _wire_services(app, settings, session_factory)

    yield

    for name, close in (("GitHub client", client.aclose), ("database engine", engine.dispose)):
        try:
            await close()
        except Exception as exc:
            logger.error("Error closing %s: %s", name, exc, exc_info=True)

    logger.info("GitBlog stopped")


def create_app(
    settings: Settings | None = None,
    github_transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    ``github_transport`` replaces the network transport of the GitHub client.
    """
    if settings is None:
        settings = Settings()

    docs_enabled = settings.debug or settings.expose_docs

    app = FastAPI(
        title="GitBlog",
        description="Local-first blog editor that publishes to GitHub Pages",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs" if docs_enabled else None,
        redoc_url="/redoc" if docs_enabled else None,
        openapi_url="/openapi.json" if docs_enabled else None,
    )
    app.state.settings = settings
    app.state.github_transport = github_transport

    app.add_middleware(GZipMiddleware, minimum_size=500)

    cors_origins = (
        settings.cors_origins
        if settings.cors_origins
        else (["http://localhost:8081", "http://localhost:19006"] if settings.debug else [])
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["Retry-After"],
    )

    app.include_router(health_router)
    app.include_router(posts_router)
    app.include_router(site_router)
    app.include_router(repository_router)
    app.include_router(publish_router)

    _register_exception_handlers(app)
    return app


app = create_app()


def cli_entry() -> None:
    """CLI entry point for running the server."""
    import uvicorn

    settings: Settings = app.state.settings
    uvicorn.run(
        "gitblog.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
