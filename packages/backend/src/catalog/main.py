"""FastAPI application factory.

Learn: App factory pattern — create_app() returns a configured FastAPI
instance. Lifespan manages startup/shutdown: the rate-limit sweep task,
the rate-limit store connection, and the database engine.

The rate-limit store is chosen here and injected into app.state, so
tests can hand in their own store (with a fake clock) via
create_app(rate_limit_store=...).
"""

import asyncio
from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from catalog import __version__
from catalog.api import api_router
from catalog.config import settings
from catalog.errors import register_exception_handlers
from catalog.logging import configure_logging
from catalog.ratelimit import InMemoryRateLimitStore, RateLimitStore, RedisRateLimitStore

logger = structlog.get_logger()


def build_rate_limit_store() -> RateLimitStore:
    if settings.rate_limit_backend == "redis":
        return RedisRateLimitStore.from_url(settings.redis_url)
    return InMemoryRateLimitStore()


async def sweep_loop(store: RateLimitStore, interval: float) -> None:
    """Drop expired rate-limit records until cancelled."""
    while True:
        await asyncio.sleep(interval)
        try:
            removed = await store.sweep()
        except Exception as e:
            logger.warning("ratelimit.sweep_failed", error=str(e))
            continue
        if removed:
            logger.debug("ratelimit.swept", removed=removed)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle.

    Learn: Anything before `yield` runs at startup, after `yield` runs
    at shutdown.
    """
    logger.info(
        "catalog.starting",
        version=__version__,
        environment=settings.environment,
        port=settings.port,
        rate_limit_backend=settings.rate_limit_backend,
    )

    store: RateLimitStore = app.state.rate_limit_store
    sweep_task = asyncio.create_task(
        sweep_loop(store, settings.rate_limit_sweep_seconds)
    )

    yield

    logger.info("catalog.shutdown")

    sweep_task.cancel()
    try:
        await sweep_task
    except asyncio.CancelledError:
        pass

    await store.close()

    from catalog.db.engine import engine
    await engine.dispose()


def create_app(rate_limit_store: Optional[RateLimitStore] = None) -> FastAPI:
    """Build and return the FastAPI application."""
    configure_logging(
        level=settings.log_level,
        json_output=settings.log_json,
        log_dir=settings.log_dir,
    )

    app = FastAPI(
        title="Product Catalog API",
        description="Product catalogue with WhatsApp inquiries and JWT auth",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.rate_limit_store = rate_limit_store or build_rate_limit_store()

    register_exception_handlers(app)

    # ── Middleware stack ──────────────────────────────────────
    # Starlette runs middleware in reverse order of registration.

    from catalog.middleware.rate_limit import RateLimitMiddleware
    from catalog.middleware.request_id import RequestIdMiddleware
    from catalog.middleware.security import SecurityHeadersMiddleware

    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        RateLimitMiddleware,
        default_max=settings.rate_limit_max,
        auth_max=settings.rate_limit_auth_max,
        window_seconds=settings.rate_limit_window_seconds,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(api_router)

    @app.get("/", include_in_schema=False)
    async def index():
        return {
            "success": True,
            "message": "Product Catalog API",
            "version": __version__,
            "endpoints": {
                "health": "/api/health",
                "auth": "/api/auth",
                "categories": "/api/categories",
                "products": "/api/products",
                "whatsapp": "/api/whatsapp",
            },
        }

    return app


# Default app instance (used by uvicorn: catalog.main:app)
app = create_app()
