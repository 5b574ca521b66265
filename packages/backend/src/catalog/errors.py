"""Error taxonomy and the uniform error envelope.

Learn: Services raise ServiceError subclasses; they never build HTTP
responses themselves. register_exception_handlers() turns every failure
into the same JSON shape:

    {"success": false, "message": "...", "code": "..."}  # code optional

Unexpected exceptions become a 500 and are logged (method, path,
timestamp, traceback) to the durable error log before responding.
"""

from typing import Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from catalog.config import settings

logger = structlog.get_logger()


class ServiceError(Exception):
    """Base class for errors that map to an HTTP status."""

    status_code: int = 400
    default_message: str = "Bad request"

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        code: Optional[str] = None,
        headers: Optional[dict[str, str]] = None,
    ) -> None:
        self.message = message or self.default_message
        self.code = code
        self.headers = headers
        super().__init__(self.message)


class ValidationError(ServiceError):
    status_code = 400
    default_message = "Invalid request"


class DuplicateIdentity(ValidationError):
    default_message = "Username or email already in use"


class AuthenticationError(ServiceError):
    status_code = 401
    default_message = "Not authorized"


class InvalidCredentials(AuthenticationError):
    """Same message whether the email or the password was wrong."""

    default_message = "Invalid credentials"


class InvalidToken(AuthenticationError):
    default_message = "Not authorized, invalid token"


class ExpiredToken(AuthenticationError):
    default_message = "Token expired"

    def __init__(self, message: Optional[str] = None) -> None:
        super().__init__(message, code="TOKEN_EXPIRED")


class Forbidden(ServiceError):
    status_code = 403
    default_message = "Access denied: admin privileges required"


class AdminTokenRequired(Forbidden):
    default_message = "Admin token required for admin login"


class InvalidAdminToken(Forbidden):
    default_message = "Invalid admin token. Admin registration denied."


class NotFound(ServiceError):
    status_code = 404
    default_message = "Not found"


class Gone(ServiceError):
    status_code = 410
    default_message = "Resource expired"


class AccountLocked(ServiceError):
    status_code = 423
    default_message = (
        "Account locked due to too many failed login attempts. Try again later."
    )


class RateLimited(ServiceError):
    status_code = 429
    default_message = "Too many requests, please try again later"


class InternalError(ServiceError):
    status_code = 500
    default_message = "Something went wrong!"


def error_response(
    status_code: int,
    message: str,
    code: Optional[str] = None,
    headers: Optional[dict[str, str]] = None,
    **extra,
) -> JSONResponse:
    content = {"success": False, "message": message}
    if code:
        content["code"] = code
    content.update({k: v for k, v in extra.items() if v is not None})
    return JSONResponse(status_code=status_code, content=content, headers=headers)


def register_exception_handlers(app: FastAPI) -> None:
    """Install the envelope handlers on the app."""

    @app.exception_handler(ServiceError)
    async def handle_service_error(request: Request, exc: ServiceError):
        log = logger.error if exc.status_code >= 500 else logger.info
        log(
            "request.service_error",
            method=request.method,
            path=request.url.path,
            status_code=exc.status_code,
            error=exc.message,
        )
        return error_response(exc.status_code, exc.message, exc.code, exc.headers)

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        if errors:
            first = errors[0]
            field = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
            message = f"{field}: {first.get('msg')}" if field else first.get("msg")
        else:
            message = "Invalid request"
        return error_response(400, message)

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404:
            logger.warning(
                "request.route_not_found", method=request.method, path=request.url.path
            )
            message = "Route not found" if exc.detail == "Not Found" else exc.detail
        else:
            message = str(exc.detail)
        return error_response(exc.status_code, message, headers=exc.headers)

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception):
        logger.exception(
            "request.unhandled_error",
            method=request.method,
            path=request.url.path,
            error=str(exc),
        )
        return error_response(
            500,
            InternalError.default_message,
            error=str(exc) if settings.is_development else None,
        )
