"""
FastAPI Application Entry Point.

    uvicorn notevault.backend.main:app

The app object is built lazily on first attribute access so importing this
module never reads configuration.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from notevault.backend.api import health
from notevault.backend.api.v1 import router as api_v1_router
from notevault.backend.core.concurrency import shutdown_pools
from notevault.backend.core.config import AppConfig, get_app_config
from notevault.backend.core.database import dispose_engine
from notevault.backend.core.exception_handlers import register_exception_handlers
from notevault.backend.core.logging import get_logger, setup_logging
from notevault.backend.core.middleware import RequestContextMiddleware
from notevault.backend.tasks.sweeper import ExpirySweeper

logger = get_logger(__name__)

_app: FastAPI | None = None


def _start_sweeper(config: AppConfig) -> ExpirySweeper | None:
    if not config.features.expiry_sweeper_enabled:
        return None
    sweeper = ExpirySweeper(config.notes.sweeper.interval_seconds)
    sweeper.start()
    return sweeper


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Startup: logging, security checks, in-process expiry sweeper.
    Shutdown in reverse: sweeper, thread pool, database pool.
    """
    config = get_app_config()
    setup_logging(level=config.logging.level)

    if config.features.security_startup_checks_enabled:
        from notevault.backend.core.startup_checks import run_startup_checks

        run_startup_checks()

    sweeper = _start_sweeper(config)
    app.state.sweeper = sweeper
    logger.info(
        "Application starting",
        extra={
            "app_name": config.application.name,
            "env": config.application.environment,
            "sweeper": sweeper is not None,
        },
    )

    yield

    logger.info("Application shutting down")
    if sweeper is not None:
        await sweeper.stop()
    await shutdown_pools()
    await dispose_engine()


def _add_cors(app: FastAPI, config: AppConfig) -> None:
    origins = config.application.cors.origins
    if not origins:
        return
    policy = config.security.cors
    # Tokens travel in bodies and query strings, never cookies.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=False,
        allow_methods=policy.allow_methods,
        allow_headers=policy.allow_headers,
    )


def create_app() -> FastAPI:
    """Build the application: middleware, error envelope, health and v1 routes."""
    config = get_app_config()
    application = config.application

    app = FastAPI(
        title=application.name,
        description=application.description,
        version=application.version,
        docs_url="/docs" if application.docs_enabled else None,
        redoc_url="/redoc" if application.docs_enabled else None,
        lifespan=lifespan,
    )

    app.add_middleware(RequestContextMiddleware)
    _add_cors(app, config)
    register_exception_handlers(app)

    app.include_router(health.router, tags=["health"])
    app.include_router(api_v1_router, prefix=application.api_prefix)
    return app


def get_app() -> FastAPI:
    global _app
    if _app is None:
        _app = create_app()
    return _app


def __getattr__(name: str) -> FastAPI:
    if name == "app":
        return get_app()
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
