"""Request ID + access log middleware.

Learn: Each request is tagged with an id, taken from an incoming
X-Request-ID header when it looks sane or generated otherwise. The id,
method and path are bound to structlog's contextvars so every log
line emitted while handling the request carries them, and one
"request.completed" line is written per request to the access logger
(logs/access.log).
"""

import re
import time
import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from catalog.logging import ACCESS_LOGGER

logger = structlog.get_logger(ACCESS_LOGGER)

_VALID_REQUEST_ID = re.compile(r"^[A-Za-z0-9._-]{1,128}$")


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Tag, time and log every request."""

    async def dispatch(self, request: Request, call_next) -> Response:
        incoming = request.headers.get("X-Request-ID", "")
        request_id = incoming if _VALID_REQUEST_ID.match(incoming) else str(uuid.uuid4())

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )

        started = time.perf_counter()
        response: Response = await call_next(request)
        logger.info(
            "request.completed",
            status_code=response.status_code,
            duration_ms=round((time.perf_counter() - started) * 1000, 1),
            client_ip=request.client.host if request.client else None,
        )
        response.headers["X-Request-ID"] = request_id
        return response
