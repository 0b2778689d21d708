"""
Hello Service - FastAPI application.
Minimal backend template: hello endpoint, health probes, bearer-token guard,
rate limiting, Prometheus metrics and OpenTelemetry tracing.
"""
import asyncio
import sys
import time
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Awaitable, Callable, Optional
from uuid import uuid4

from fastapi import Depends, FastAPI, Request, Response
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException
from uvicorn.middleware.proxy_headers import ProxyHeadersMiddleware

from app.auth.dependencies import authorize_request
from app.core.config import Settings, get_settings
from app.core.database import DatabaseService
from app.core.exceptions import AuthorizationError, ConfigurationError
from app.core.logger import configure_logging, get_logger_with_correlation, logger
from app.core.rate_limit import build_limiter, rate_limit_exceeded_handler
from app.core.telemetry import configure_tracing
from app.db.migrate import MIGRATIONS_DIR, run_migrations
from app.health import router as health
from app.hello import router as hello
from app.metrics.middleware import record_request_metrics
from app.metrics.registry import RequestMetrics


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifecycle management (startup/shutdown hooks)."""
    settings: Settings = app.state.settings
    database: DatabaseService = app.state.database

    # Startup
    configure_logging(settings.LOG_LEVEL, settings.LOG_JSON)
    logger.info(f"Initializing {settings.APP_NAME} v{settings.APP_VERSION} ({settings.NODE_ENV})")
    configure_tracing(settings)

    # Migrations must finish before traffic is accepted; a failure aborts startup
    if database.engine is not None:
        await asyncio.to_thread(run_migrations, database.engine, app.state.migrations_dir)
    else:
        logger.info("DATABASE_URL not set, skipping migrations")

    yield

    # Shutdown
    logger.info("Shutting down application")
    await database.close()


async def add_correlation_id(request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
    """
    Middleware for distributed tracing.
    Injects a unique Correlation ID into the request context and propagates it to the response headers.
    """
    correlation_id = request.headers.get("X-Correlation-ID", str(uuid4()))
    request.state.correlation_id = correlation_id

    start_time = time.perf_counter()

    request_logger = get_logger_with_correlation(correlation_id)
    request_logger.info(f"Request: {request.method} {request.url.path}")

    response = await call_next(request)

    process_time = time.perf_counter() - start_time
    response.headers["X-Correlation-ID"] = correlation_id

    if response.status_code >= 500:
        log = request_logger.error
    elif response.status_code >= 400:
        log = request_logger.warning
    else:
        log = request_logger.info
    log(f"Response: {response.status_code} | {process_time:.3f}s")

    return response


async def add_security_headers(request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
    """Baseline hardening headers on every response."""
    response = await call_next(request)
    response.headers.setdefault("X-Content-Type-Options", "nosniff")
    response.headers.setdefault("X-Frame-Options", "SAMEORIGIN")
    response.headers.setdefault("Referrer-Policy", "no-referrer")
    if request.headers.get("x-forwarded-proto", "").lower() == "https":
        response.headers.setdefault("Strict-Transport-Security", "max-age=31536000; includeSubDomains")
    return response


async def authorization_exception_handler(request: Request, exc: AuthorizationError) -> JSONResponse:
    """Authorization denials: 401 with exactly "Unauthorized" or "Invalid token"."""
    correlation_id = getattr(request.state, "correlation_id", "N/A")
    get_logger_with_correlation(correlation_id).info(
        f"Authorization denied: {exc.reason} | {request.method} {request.url.path}"
    )
    return JSONResponse(
        status_code=401,
        content={"error": exc.reason},
        headers={"WWW-Authenticate": "Bearer"},
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Global exception barrier.
    Captures unhandled exceptions, logs stack traces with Correlation IDs,
    and returns a sanitized 500 Internal Server Error response.
    """
    correlation_id = getattr(request.state, "correlation_id", "N/A")

    get_logger_with_correlation(correlation_id).error(f"Unhandled exception: {str(exc)}", exc_info=exc)

    return JSONResponse(status_code=500, content={"error": "Internal Server Error"})


def create_app(
    settings: Optional[Settings] = None,
    database: Optional[DatabaseService] = None,
    migrations_dir: Path = MIGRATIONS_DIR,
) -> FastAPI:
    """
    Application factory.
    Settings are validated before anything else is built; invalid configuration raises ConfigurationError.
    """
    settings = settings or get_settings()

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="Hello World service with health probes, bearer authentication, rate limiting and metrics.",
        docs_url="/docs",
        openapi_url="/openapi.json",
        dependencies=[Depends(authorize_request)],
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.database = database or DatabaseService(settings.DATABASE_URL)
    app.state.migrations_dir = migrations_dir

    metrics = RequestMetrics()
    metrics.describe_service(settings.APP_NAME, settings.APP_VERSION, settings.NODE_ENV, settings.SERVICE_NAMESPACE)
    app.state.metrics = metrics

    limiter = build_limiter(settings)
    for endpoint in (health.health_check, health.readiness_check, health.metrics_endpoint):
        limiter.exempt(endpoint)
    app.state.limiter = limiter

    # Middleware: the last registered runs first
    app.add_middleware(SlowAPIMiddleware)
    app.middleware("http")(record_request_metrics)
    app.middleware("http")(add_security_headers)
    app.middleware("http")(add_correlation_id)
    # Trust X-Forwarded-For from the load balancer so rate limits key on the real client
    app.add_middleware(ProxyHeadersMiddleware, trusted_hosts="*")

    app.add_exception_handler(AuthorizationError, authorization_exception_handler)
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, global_exception_handler)

    # Route Registration: full paths on the app itself, so every entry in app.routes is a matchable APIRoute
    health.register_routes(app)
    hello.register_routes(app)

    return app


def main() -> None:
    """Process entry point: validate configuration, then serve."""
    import uvicorn

    try:
        settings = get_settings()
    except ConfigurationError as exc:
        configure_logging()
        logger.error(str(exc))
        sys.exit(1)

    configure_logging(settings.LOG_LEVEL, settings.LOG_JSON)
    uvicorn.run(
        create_app(settings),
        host="0.0.0.0",  # nosec
        port=settings.PORT,
        log_config=None,
    )


if __name__ == "__main__":
    main()
