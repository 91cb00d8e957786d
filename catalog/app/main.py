from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine

from catalog.app.api import products_router, resources_router, user_products_router
from catalog.app.core.cache import CacheBackend, build_cache
from catalog.app.core.clock import Clock, SystemClock
from catalog.app.core.config import Settings, settings as default_settings
from catalog.app.core.logging import get_logger, setup_logging
from catalog.app.db.async_session import close_engine, create_engine_for, create_session_maker
from catalog.app.db.init_db import init_database, verify_connection
from catalog.app.exceptions import (
    AuthorizationError,
    RateLimited,
    ResourceNotFound,
    Unauthenticated,
    ValidationError,
)
from catalog.app.middleware.rate_limit import RateLimiter, build_rate_limiter
from catalog.app.middleware.request_id import RequestIdMiddleware, get_request_id
from catalog.app.services.authorization import resource_gate


def _validation_errors(exc: RequestValidationError) -> dict[str, list[str]]:
    """Group FastAPI validation errors by field name."""
    errors: dict[str, list[str]] = {}
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ()) if part not in ("query", "path", "body")]
        field = ".".join(loc) or "request"
        errors.setdefault(field, []).append(error.get("msg", "Invalid value"))
    return errors


def _rate_limit_headers(request: Request) -> dict[str, str]:
    """Headers of the throttle that already counted this request, if any."""
    result = getattr(request.state, "rate_limit", None)
    return result.headers() if result is not None else {}


async def _check_database(engine: AsyncEngine) -> dict[str, Any]:
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        # Truncated: driver errors can echo the DSN
        return {"status": "error", "error": str(e)[:100]}
    return {"status": "ok"}


async def _check_cache(cache: CacheBackend) -> dict[str, Any]:
    key = "_health_check_test"
    try:
        await cache.set(key, b"ping", ttl=5)
        value = await cache.get(key)
        await cache.delete(key)
    except Exception as e:
        return {"status": "error", "error": str(e)[:100]}
    if value != b"ping":
        return {"status": "error", "error": "Unexpected value"}
    return {"status": "ok", "type": type(cache).__name__}


def create_app(
    config: Optional[Settings] = None,
    *,
    cache: Optional[CacheBackend] = None,
    rate_limiter: Optional[RateLimiter] = None,
    clock: Optional[Clock] = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Shared services are built here from ``config`` unless passed in, and
    stored on ``app.state`` for the request dependencies.

    Returns:
        Configured FastAPI application instance
    """
    config = config or default_settings

    setup_logging(config)
    logger = get_logger(__name__)

    engine = create_engine_for(config)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Create tables on startup; release connections on shutdown."""
        if not await verify_connection(engine):
            logger.error("Database connection failed!")
            raise RuntimeError("Cannot connect to database")

        await init_database(engine)
        logger.info(
            "Application startup complete",
            extra={
                "cache": type(app.state.cache).__name__,
                "rate_limiter": type(app.state.rate_limiter.backend).__name__,
                "debug_mode": config.debug,
            },
        )

        yield

        await app.state.cache.close()
        await app.state.rate_limiter.close()
        await close_engine(engine)
        logger.info("Application shutdown complete")

    app = FastAPI(
        title="Catalog API",
        description="Product catalog with cached listings, rate limiting and gated resources",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.state.settings = config
    app.state.engine = engine
    app.state.session_maker = create_session_maker(engine)
    app.state.cache = cache or build_cache(config)
    app.state.rate_limiter = rate_limiter or build_rate_limiter(config)
    app.state.clock = clock or SystemClock(config.business_timezone)
    app.state.resource_gate = resource_gate(config)

    # Add middleware (order matters: last added = first executed)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=[
            "X-Request-ID",
            "X-RateLimit-Limit",
            "X-RateLimit-Remaining",
            "X-RateLimit-Reset",
            "Retry-After",
        ],
        max_age=600,
    )
    app.add_middleware(RequestIdMiddleware)

    app.include_router(products_router)
    app.include_router(user_products_router)
    app.include_router(resources_router)

    @app.get("/health")
    async def health() -> dict[str, Any]:
        """Report database and cache reachability."""
        components = {
            "database": await _check_database(app.state.engine),
            "cache": await _check_cache(app.state.cache),
        }
        healthy = all(c["status"] == "ok" for c in components.values())
        return {"status": "ok" if healthy else "degraded", "components": components}

    @app.exception_handler(ValidationError)
    async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
        """Handle ValidationError and return HTTP 400 response."""
        return JSONResponse(
            status_code=400,
            content={"success": False, "message": exc.message, "errors": exc.errors},
            headers=_rate_limit_headers(request),
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        """Map FastAPI's own validation failures to the same 400 body."""
        return JSONResponse(
            status_code=400,
            content={
                "success": False,
                "message": "Invalid request parameters",
                "errors": _validation_errors(exc),
            },
            headers=_rate_limit_headers(request),
        )

    @app.exception_handler(Unauthenticated)
    @app.exception_handler(AuthorizationError)
    @app.exception_handler(ResourceNotFound)
    async def access_denied_handler(request: Request, exc: Unauthenticated | AuthorizationError | ResourceNotFound) -> JSONResponse:
        """Handle gate denials: 401, 403 or 404 with ``{"error": message}``."""
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.message},
            headers=_rate_limit_headers(request),
        )

    @app.exception_handler(RateLimited)
    async def rate_limited_handler(request: Request, exc: RateLimited) -> JSONResponse:
        """Handle RateLimited and return HTTP 429 response."""
        return JSONResponse(
            status_code=429,
            content={"success": False, "message": exc.message},
            headers=exc.headers(),
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Global exception handler for unhandled exceptions.

        Never returns a traceback to the client. Full details are logged
        server-side; debug mode adds the exception message and type.
        """
        request_id = get_request_id(request)

        logger.exception(
            f"Unhandled exception [request_id={request_id}]",
            extra={
                "request_id": request_id,
                "exception_type": type(exc).__name__,
            },
        )

        content: dict[str, Any] = {
            "error": "internal_error",
            "message": "Internal server error",
            "request_id": request_id,
        }
        if config.debug:
            content["message"] = str(exc)
            content["exception_type"] = type(exc).__name__
        return JSONResponse(status_code=500, content=content)

    return app


# Create the application instance
app = create_app()
