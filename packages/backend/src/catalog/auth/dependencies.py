"""FastAPI auth dependencies (the access guard).

Learn: These are used as Depends() in route handlers to extract
and validate the current identity from the request.

    get_current_user  → 401 unless a valid, unexpired access token for an
                        existing, active user is presented
    require_admin     → additionally 403 unless the token's role is admin

The identity (id + role) comes strictly from the token claims. The
database is only consulted to confirm the account still exists and is
active.
"""

import uuid
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from catalog.auth.jwt import TokenExpiredError, TokenError, TokenKind, verify_token
from catalog.db.engine import get_db
from catalog.db.models import Role
from catalog.errors import AuthenticationError, ExpiredToken, Forbidden, InvalidToken
from catalog.services.user_store import UserStore

_WWW_AUTHENTICATE = {"WWW-Authenticate": "Bearer"}


@dataclass(frozen=True)
class CurrentIdentity:
    """The authenticated caller, as asserted by a verified access token."""

    user_id: uuid.UUID
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


def _bearer_token(authorization: Optional[str]) -> Optional[str]:
    if authorization and authorization.startswith("Bearer "):
        return authorization[7:].strip() or None
    return None


def _identity_from_token(token: str) -> CurrentIdentity:
    try:
        payload = verify_token(token, TokenKind.ACCESS)
        return CurrentIdentity(user_id=uuid.UUID(payload["id"]), role=Role(payload["role"]))
    except TokenExpiredError:
        raise ExpiredToken()
    except (TokenError, ValueError):
        raise InvalidToken(headers=_WWW_AUTHENTICATE)


async def get_current_user(
    authorization: Optional[str] = Header(None),
    db: AsyncSession = Depends(get_db),
) -> CurrentIdentity:
    """Extract current identity (required — 401 if no valid token)."""
    token = _bearer_token(authorization)
    if not token:
        raise AuthenticationError(
            "Not authorized, no token provided", headers=_WWW_AUTHENTICATE
        )

    identity = _identity_from_token(token)

    user = await UserStore(db).get_by_id(identity.user_id)
    if user is None or not user.is_active:
        raise AuthenticationError("User not found or inactive")

    return identity


async def require_admin(
    identity: CurrentIdentity = Depends(get_current_user),
) -> CurrentIdentity:
    """Only admins pass."""
    if not identity.is_admin:
        raise Forbidden()
    return identity


def get_optional_identity(
    authorization: Optional[str] = Header(None),
) -> Optional[CurrentIdentity]:
    """Identity from a valid bearer token, or None. Never raises."""
    token = _bearer_token(authorization)
    if not token:
        return None
    try:
        return _identity_from_token(token)
    except (ExpiredToken, InvalidToken):
        return None
