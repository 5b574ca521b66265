"""Health check endpoint.

Learn: Simple GET endpoint that verifies the server is running and the
database answers. Redis is only checked when it backs the rate limiter.
"""

from fastapi import APIRouter, Request
from sqlalchemy import text

from catalog import __version__
from catalog.db.engine import engine
from catalog.ratelimit.store import RedisRateLimitStore

router = APIRouter()


@router.get("/health")
async def health_check(request: Request):
    """Check server health and dependency connectivity."""
    checks = {"server": "ok", "version": __version__}

    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        checks["database"] = "ok"
    except Exception as e:
        checks["database"] = f"error: {e}"

    store = request.app.state.rate_limit_store
    if isinstance(store, RedisRateLimitStore):
        try:
            await store.redis.ping()
            checks["redis"] = "ok"
        except Exception as e:
            checks["redis"] = f"error: {e}"

    status = "healthy" if all(
        v == "ok" for k, v in checks.items() if k != "version"
    ) else "degraded"

    return {"success": True, "status": status, **checks}
