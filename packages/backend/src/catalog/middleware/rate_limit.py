"""Rate limiting middleware — per IP, fixed window.

Learn: Every /api/* request is counted against the client IP in the
app's RateLimitStore (app.state.rate_limit_store). Login and register
endpoints get a separate, stricter bucket to slow down brute-force.

Limits and window are constructor arguments; the store is looked up
per request so tests can swap it out. If the store cannot be reached the
request goes through unlimited.
"""

import structlog
from redis.exceptions import RedisError
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from catalog.errors import error_response

logger = structlog.get_logger()

_AUTH_PATHS = ("/api/auth/login", "/api/auth/register")


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Store-backed rate limiting per IP."""

    def __init__(
        self,
        app,
        default_max: int = 100,
        auth_max: int = 10,
        window_seconds: int = 15 * 60,
    ):
        super().__init__(app)
        self.default_max = default_max
        self.auth_max = auth_max
        self.window_seconds = window_seconds

    async def dispatch(self, request: Request, call_next) -> Response:
        path = request.url.path
        if not path.startswith("/api/"):
            return await call_next(request)

        store = request.app.state.rate_limit_store
        client_ip = request.client.host if request.client else "unknown"

        is_auth = path.startswith(_AUTH_PATHS)
        limit = self.auth_max if is_auth else self.default_max
        bucket = "auth" if is_auth else "api"

        try:
            result = await store.check(f"{bucket}:{client_ip}", limit, self.window_seconds)
        except RedisError as exc:
            # Store down: serve the request unlimited
            logger.error("rate_limit.store_unavailable", bucket=bucket, error=str(exc))
            return await call_next(request)

        if not result.allowed:
            logger.warning("rate_limit.exceeded", bucket=bucket, client_ip=client_ip)
            message = (
                "Too many authentication attempts, please try again later."
                if is_auth
                else "Too many requests from this IP, please try again later."
            )
            return error_response(
                429,
                message,
                headers={"Retry-After": str(result.retry_after(store.now()))},
            )

        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(limit)
        response.headers["X-RateLimit-Remaining"] = str(result.remaining)
        return response
