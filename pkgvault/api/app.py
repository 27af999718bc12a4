"""
pkgvault API — FastAPI application factory.

create_app() wires one Database, ArtifactStore, ArchiveBuilder and the
record services onto app.state, registers the routers and maps the error
hierarchy onto HTTP responses:

    NotFoundError        → 404
    InvalidInputError    → 422
    StorageFailureError  → 500 (generic body, details only in the logs)

Run:
    pkgvault serve
or:
    uvicorn --factory pkgvault.api.app:build_app_from_config --port 8000
"""

from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from pkgvault import __version__
from pkgvault.api import packages, posts, roles, users
from pkgvault.artifacts.archive import ArchiveBuilder
from pkgvault.artifacts.store import ArtifactStore
from pkgvault.db.session import Database
from pkgvault.engine.config import PlatformConfig, load_config
from pkgvault.engine.errors import InvalidInputError, NotFoundError, StorageFailureError
from pkgvault.engine.logging import (
    init_logging,
    log,
    log_system_event,
    log_web_api_request,
    shutdown_logging,
)
from pkgvault.records.service import PostService, ProfileService, RoleService, UserService

logger = logging.getLogger("pkgvault.api.app")


def create_app(
    config: Optional[PlatformConfig] = None,
    database: Optional[Database] = None,
    create_tables: bool = True,
    password_rounds: int = 12,
) -> FastAPI:
    """
    Build the API.

    Args:
        config: Loaded configuration. Defaults to PlatformConfig().
        database: Existing Database to use instead of one built from config.
            The caller keeps ownership; shutdown only disposes a Database
            built here.
        create_tables: Run create_all() on the database before serving.
        password_rounds: bcrypt cost for new password hashes.
    """
    config = config or PlatformConfig()
    owns_database = database is None
    if owns_database:
        database = Database(config.database)
    if create_tables:
        database.create_all()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        init_logging(
            log_dir=config.logging.directory,
            flush_interval_ms=config.logging.async_queue.flush_interval_ms,
            flush_batch_size=config.logging.async_queue.flush_batch_size,
            max_queue_size=config.logging.async_queue.max_queue_size,
            level=config.logging.level,
        )
        log(log_system_event("startup", details={"name": config.name, "environment": config.environment}))
        try:
            yield
        finally:
            log(log_system_event("shutdown"))
            shutdown_logging()
            if owns_database:
                database.dispose()

    app = FastAPI(
        title=config.name,
        description="Packages, artifacts and the users who own them",
        version=__version__,
        lifespan=lifespan,
    )

    app.state.config = config
    app.state.database = database
    app.state.store = ArtifactStore(database)
    app.state.archive_builder = ArchiveBuilder(config.archive)
    app.state.users = UserService(database, password_rounds=password_rounds)
    app.state.roles = RoleService(database)
    app.state.posts = PostService(database)
    app.state.profiles = ProfileService(database)

    _register_error_handlers(app)
    _register_request_logging(app)

    app.include_router(packages.router)
    app.include_router(users.router)
    app.include_router(roles.router)
    app.include_router(posts.router)

    @app.get("/health")
    def health_check():
        """Public health check."""
        return {
            "status": "healthy",
            "version": __version__,
            "database": database.health_check(),
        }

    return app


def _register_error_handlers(app: FastAPI) -> None:

    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError):
        return JSONResponse(
            status_code=404,
            content={"error": "not_found", "message": exc.message},
        )

    @app.exception_handler(InvalidInputError)
    async def invalid_input_handler(request: Request, exc: InvalidInputError):
        return JSONResponse(
            status_code=422,
            content={
                "error": "invalid_input",
                "message": exc.message,
                "details": exc.validation_errors or [],
            },
        )

    @app.exception_handler(StorageFailureError)
    async def storage_failure_handler(request: Request, exc: StorageFailureError):
        logger.error(f"{request.method} {request.url.path} failed: {exc.to_json()}", exc_info=exc)
        log(log_system_event("storage_failure", level="ERROR", details=exc.to_dict()))
        return JSONResponse(
            status_code=500,
            content={"error": "storage_failure", "message": "Internal storage error"},
        )


def _register_request_logging(app: FastAPI) -> None:

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start = time.monotonic()
        response = await call_next(request)
        duration_ms = round((time.monotonic() - start) * 1000, 2)
        content_length = response.headers.get("content-length")
        log(log_web_api_request(
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            duration_ms=duration_ms,
            client_ip=request.client.host if request.client else None,
            response_size_bytes=int(content_length) if content_length else None,
        ))
        return response


def build_app_from_config() -> FastAPI:
    """Factory for `uvicorn --factory pkgvault.api.app:build_app_from_config`."""
    return create_app(load_config())
