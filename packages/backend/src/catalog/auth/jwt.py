"""JWT token creation and verification.

Learn: JWT (JSON Web Token) provides stateless authentication.
- Access token: short-lived (1 day), carries {id, role}, used for API calls
- Refresh token: long-lived (7 days), carries {id}, used to get new access tokens

Each kind has its own signing secret, so one can never be verified as
the other. Verification tells expiry apart from every other failure so
the API can answer "expired, refresh me" instead of "log in again".
"""

import enum
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from catalog.config import settings


class TokenKind(str, enum.Enum):
    ACCESS = "access"
    REFRESH = "refresh"


class TokenError(Exception):
    """Raised when token verification fails."""


class TokenExpiredError(TokenError):
    """Signature was valid but the token is past its expiry."""


class InvalidTokenError(TokenError):
    """Malformed, tampered with, or signed with the wrong secret."""


def _secret(kind: TokenKind) -> str:
    if kind is TokenKind.ACCESS:
        return settings.jwt_secret
    return settings.jwt_refresh_secret


def create_access_token(
    user_id: str,
    role: str,
    expires_minutes: Optional[int] = None,
) -> str:
    """Create a JWT access token."""
    now = datetime.now(timezone.utc)
    payload = {
        "id": str(user_id),
        "role": str(role),
        "iat": now,
        "exp": now
        + timedelta(minutes=expires_minutes or settings.access_token_expire_minutes),
    }
    return jwt.encode(
        payload, _secret(TokenKind.ACCESS), algorithm=settings.jwt_algorithm
    )


def create_refresh_token(
    user_id: str,
    expires_days: Optional[int] = None,
) -> str:
    """Create a JWT refresh token."""
    now = datetime.now(timezone.utc)
    payload = {
        "id": str(user_id),
        "iat": now,
        "exp": now + timedelta(days=expires_days or settings.refresh_token_expire_days),
    }
    return jwt.encode(
        payload, _secret(TokenKind.REFRESH), algorithm=settings.jwt_algorithm
    )


def verify_token(token: str, kind: TokenKind = TokenKind.ACCESS) -> dict:
    """Verify and decode a JWT token.

    Returns the payload dict on success.
    Raises TokenExpiredError or InvalidTokenError on failure.
    """
    try:
        payload = jwt.decode(
            token,
            _secret(kind),
            algorithms=[settings.jwt_algorithm],
            options={"require": ["exp", "id"]},
        )
    except jwt.ExpiredSignatureError:
        raise TokenExpiredError("Token has expired")
    except jwt.InvalidTokenError as e:
        raise InvalidTokenError(f"Invalid token: {e}")
    if kind is TokenKind.ACCESS and "role" not in payload:
        raise InvalidTokenError("Invalid token: missing role claim")
    return payload


# ─── WhatsApp inquiry links ─────────────────────────────


def create_inquiry_token(
    product_id: str,
    user_id: Optional[str] = None,
    expires_seconds: Optional[int] = None,
) -> str:
    """Short-lived token embedded in a WhatsApp redirect URL."""
    now = datetime.now(timezone.utc)
    payload = {
        "typ": "inquiry",
        "productId": str(product_id),
        "iat": now,
        "exp": now + timedelta(seconds=expires_seconds or settings.whatsapp_link_ttl_seconds),
    }
    if user_id:
        payload["userId"] = str(user_id)
    return jwt.encode(
        payload, _secret(TokenKind.ACCESS), algorithm=settings.jwt_algorithm
    )


def verify_inquiry_token(token: str) -> dict:
    try:
        payload = jwt.decode(
            token,
            _secret(TokenKind.ACCESS),
            algorithms=[settings.jwt_algorithm],
            options={"require": ["exp", "productId"]},
        )
    except jwt.ExpiredSignatureError:
        raise TokenExpiredError("Inquiry link expired")
    except jwt.InvalidTokenError as e:
        raise InvalidTokenError(f"Invalid inquiry token: {e}")
    if payload.get("typ") != "inquiry":
        raise InvalidTokenError("Not an inquiry token")
    return payload
