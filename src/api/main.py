"""
FastAPI application factory and configuration.

This module creates the FastAPI application instance,
configures middleware, exception handlers, and lifespan events.
"""

import asyncio
import contextlib
import logging
from collections.abc import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from psycopg_pool import ConnectionPool
from starlette.concurrency import run_in_threadpool
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.adapters.repository.postgres import run_migrations
from src.api.dependencies import build_notifier, build_registry, build_store
from src.api.models import HealthResponse
from src.api.routes import INTERNAL_ERROR, error_response, health_payload, router
from src.config.settings import get_settings
from src.domain.verification import VerificationCodeRegistry

logger = logging.getLogger(__name__)

# OpenAPI tags for documentation grouping
tags_metadata = [
    {
        "name": "verification",
        "description": "Email verification codes - Issue and check one-time codes",
    },
]


async def sweep_periodically(registry: VerificationCodeRegistry, interval_seconds: float) -> None:
    """Remove expired codes every interval_seconds until cancelled."""
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            await run_in_threadpool(registry.sweep)
        except Exception:
            # Next tick retries; validate() checks expiry on its own
            logger.exception("Background sweep of verification codes failed")


@contextlib.asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    FastAPI lifespan context manager.

    Manages application startup and shutdown:
    - Creates database connection pool and runs migrations (postgres backend)
    - Builds the shared verification registry
    - Starts the background sweeper
    - Stops the sweeper and closes the pool on shutdown
    """
    settings = get_settings()
    logging.getLogger("src").setLevel(settings.log_level.upper())

    logger.info("Starting application...")

    pool = None
    if settings.store_backend == "postgres":
        logger.info("Connecting to database...")
        pool = ConnectionPool(
            conninfo=settings.database_url,
            min_size=settings.pool_min_size,
            max_size=settings.pool_max_size,
        )
        logger.info("Running database migrations...")
        run_migrations(pool)

    if settings.notifier == "smtp" and not settings.smtp_credentials_configured:
        logger.warning(
            "SMTP notifier selected but credentials for smtp_auth=%s are not set, "
            "email delivery will fail",
            settings.smtp_auth,
        )

    registry = build_registry(settings, build_store(settings, pool), build_notifier(settings))
    app.state.registry = registry

    sweeper = None
    if settings.sweep_interval_seconds > 0:
        sweeper = asyncio.create_task(sweep_periodically(registry, settings.sweep_interval_seconds))

    logger.info(
        "Application startup complete (store=%s, notifier=%s, environment=%s)",
        settings.store_backend,
        settings.notifier,
        settings.environment,
    )

    yield

    # Shutdown
    logger.info("Shutting down application...")
    if sweeper is not None:
        sweeper.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await sweeper
    if pool is not None:
        pool.close()
        logger.info("Database connection pool closed")


app = FastAPI(
    title="codegate",
    description="Email verification code service - One-time codes gating account registration",
    version="0.1.0",
    openapi_tags=tags_metadata,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_allow_origins,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type"],
)

app.include_router(router)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    response = await call_next(request)
    logger.info("%s %s -> %s", request.method, request.url.path, response.status_code)
    return response


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report malformed bodies as 400 in the common error shape."""
    problems = []
    for error in exc.errors():
        field = ".".join(str(part) for part in error["loc"] if part != "body")
        problems.append(f"{field}: {error['msg']}" if field else error["msg"])
    return error_response(status.HTTP_400_BAD_REQUEST, "; ".join(problems) or "Invalid request")


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return error_response(exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None))


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Keep the error shape for failures no route handler maps."""
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, INTERNAL_ERROR)


@app.get("/health", response_model=HealthResponse, include_in_schema=False)
async def root_health_check() -> HealthResponse:
    """Alias of /api/health for probes that expect a root path."""
    return health_payload()
