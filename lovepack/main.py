import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from lovepack.api.routes.compile import router as compile_router
from lovepack.api.routes.health import router as health_router
from lovepack.api.routes.publish import router as publish_router
from lovepack.api.routes.runtime import router as runtime_router
from lovepack.core.config import Settings, get_settings
from lovepack.core.limiter import limiter
from lovepack.core.middleware import RequestIdMiddleware, SecurityHeadersMiddleware
from lovepack.packaging.errors import InvalidInput, PackagingError
from lovepack.publishing.registry import InMemoryNameRegistry
from lovepack.publishing.store import (
    DeliveryStore,
    EphemeralObjectStore,
    HttpDeliveryStore,
    LocalDeliveryStore,
)

logger = logging.getLogger(__name__)


def _delivery_store(settings: Settings) -> DeliveryStore:
    if settings.delivery_upload_url:
        return HttpDeliveryStore(settings.delivery_upload_url, settings.delivery_api_key)
    return LocalDeliveryStore()


async def _packaging_error_handler(request: Request, exc: PackagingError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("Request %s %s failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def _validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    first = exc.errors()[0] if exc.errors() else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "Invalid request")
    error = InvalidInput(f"{location}: {message}" if location else message)
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


def create_app() -> FastAPI:
    settings = get_settings()

    _app = FastAPI(
        title="lovepack",
        description="Packages LÖVE games for the web with love.js",
        version="0.1.0",
    )

    # ---------------------------------------------------------------------------
    # Shared stores - one registry and object store per process
    # ---------------------------------------------------------------------------
    _app.state.registry = InMemoryNameRegistry()
    _app.state.shared_objects = EphemeralObjectStore()
    _app.state.delivery = _delivery_store(settings)

    # ---------------------------------------------------------------------------
    # Rate limiter state - SlowAPI reads limiter from app.state
    # ---------------------------------------------------------------------------
    _app.state.limiter = limiter
    _app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    # ---------------------------------------------------------------------------
    # Error mapping
    # ---------------------------------------------------------------------------
    _app.add_exception_handler(PackagingError, _packaging_error_handler)
    _app.add_exception_handler(RequestValidationError, _validation_error_handler)

    # ---------------------------------------------------------------------------
    # Middleware (registered outermost → innermost; executed innermost → outermost)
    # ---------------------------------------------------------------------------

    # CORS must run before other custom middleware so preflight OPTIONS
    # requests are answered before they reach downstream middleware.
    _app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["Content-Disposition", "X-Request-ID"],
    )

    # SlowAPI before security headers so 429s also get security headers
    _app.add_middleware(SlowAPIMiddleware)

    _app.add_middleware(SecurityHeadersMiddleware)

    # Request ID - inject / forward X-Request-ID and bind to ContextVar
    _app.add_middleware(RequestIdMiddleware)

    # ---------------------------------------------------------------------------
    # Sentry - initialised here so it captures startup errors too
    # ---------------------------------------------------------------------------
    from lovepack.core.sentry import init_sentry

    init_sentry(
        dsn=settings.sentry_dsn,
        environment="development" if settings.debug else "production",
    )

    # ---------------------------------------------------------------------------
    # Logging - configure structlog before any routers log anything
    # ---------------------------------------------------------------------------
    from lovepack.core.logging import configure_structlog

    configure_structlog(debug=settings.debug)

    # ---------------------------------------------------------------------------
    # Routes
    # ---------------------------------------------------------------------------
    _app.include_router(health_router)
    _app.include_router(compile_router)
    _app.include_router(publish_router)
    _app.include_router(runtime_router)

    return _app


app = create_app()
