"""Auth service — registration, login, refresh, logout.

Learn: Two registration paths that never merge:
- register_user: anyone; role is always "user"; password ≥ 8 chars
- register_admin: needs the shared admin secret; password ≥ 12 chars
  with lower, upper, digit and one of @$!%*?&

Login delegates every decision to the LoginGuardian and then issues
tokens. Refresh does not go through the guardian: it only checks the
refresh token's signature and that it is still on the user's list.
Refresh tokens are not rotated.
"""

import hmac
import uuid
from dataclasses import dataclass
from typing import Optional

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from catalog.auth.guardian import LoginAttempt, LoginGuardian
from catalog.auth.jwt import (
    TokenError,
    TokenKind,
    create_access_token,
    create_refresh_token,
    verify_token,
)
from catalog.auth.password import (
    MIN_ADMIN_PASSWORD_LENGTH,
    MIN_USER_PASSWORD_LENGTH,
    hash_password,
    is_strong_admin_password,
)
from catalog.config import settings
from catalog.db.models import Role, User
from catalog.errors import (
    AuthenticationError,
    DuplicateIdentity,
    InvalidAdminToken,
    NotFound,
    ServiceError,
    ValidationError,
)
from catalog.services.user_store import UserStore

logger = structlog.get_logger()


@dataclass
class LoginResult:
    user: User
    access_token: str
    refresh_token: str


class AuthService:
    """Business logic for accounts and sessions."""

    def __init__(self, db: AsyncSession, admin_secret: Optional[str] = None):
        self.db = db
        self.admin_secret = admin_secret or settings.admin_secret_token
        self.users = UserStore(
            db,
            max_login_attempts=settings.max_login_attempts,
            lock_minutes=settings.lock_minutes,
        )

    # ─── Registration ───────────────────────────────────

    async def register_user(
        self,
        username: Optional[str],
        email: Optional[str],
        password: Optional[str],
        role: Optional[str] = None,
    ) -> User:
        if role == Role.ADMIN.value:
            raise ValidationError("Admin registration not allowed through this endpoint")
        if not username or not email or not password:
            raise ValidationError("Please provide username, email, and password")
        if len(password) < MIN_USER_PASSWORD_LENGTH:
            raise ValidationError(
                f"Password must be at least {MIN_USER_PASSWORD_LENGTH} characters long"
            )

        user = await self._create(username, email, password, Role.USER)
        logger.info("auth.user_registered", user_id=str(user.id))
        return user

    async def register_admin(
        self,
        username: Optional[str],
        email: Optional[str],
        password: Optional[str],
        admin_token: Optional[str],
    ) -> User:
        if not self._admin_secret_matches(admin_token):
            logger.warning("auth.admin_registration_denied")
            raise InvalidAdminToken()
        if not username or not email or not password:
            raise ValidationError("Please provide username, email, and password")
        if len(password) < MIN_ADMIN_PASSWORD_LENGTH:
            raise ValidationError(
                f"Admin password must be at least {MIN_ADMIN_PASSWORD_LENGTH} "
                "characters long"
            )
        if not is_strong_admin_password(password):
            raise ValidationError(
                "Admin password must contain uppercase, lowercase, number, "
                "and special character"
            )

        admin = await self._create(username, email, password, Role.ADMIN)
        logger.info("auth.admin_registered", user_id=str(admin.id))
        return admin

    async def _create(self, username: str, email: str, password: str, role: Role) -> User:
        if await self.users.identity_taken(username, email):
            raise DuplicateIdentity()
        try:
            user = await self.users.create(username, email, hash_password(password), role)
            await self.db.commit()
        except IntegrityError:
            # Lost a race with a concurrent registration
            await self.db.rollback()
            raise DuplicateIdentity()
        return user

    def _admin_secret_matches(self, supplied: Optional[str]) -> bool:
        if not supplied:
            return False
        return hmac.compare_digest(supplied.encode(), self.admin_secret.encode())

    # ─── Login ──────────────────────────────────────────

    async def login(
        self,
        email: Optional[str],
        password: Optional[str],
        admin_token: Optional[str] = None,
    ) -> LoginResult:
        attempt = LoginAttempt(email=email, password=password, admin_token=admin_token)
        guardian = LoginGuardian(self.users, self.admin_secret)
        try:
            user = await guardian.authenticate(attempt)
        except ServiceError:
            # Persist the counter change that came with the failure
            if attempt.counter_changed:
                await self.db.commit()
            else:
                await self.db.rollback()
            raise

        access_token = create_access_token(str(user.id), user.role.value)
        refresh_token = create_refresh_token(str(user.id))
        await self.users.add_refresh_token(user, refresh_token)
        await self.db.commit()

        logger.info("auth.login_succeeded", user_id=str(user.id), role=user.role.value)
        return LoginResult(user=user, access_token=access_token, refresh_token=refresh_token)

    # ─── Refresh / logout ───────────────────────────────

    async def refresh(self, refresh_token: Optional[str]) -> str:
        """Exchange a listed refresh token for a new access token."""
        if not refresh_token:
            raise ValidationError("Refresh token required")

        try:
            payload = verify_token(refresh_token, TokenKind.REFRESH)
        except TokenError:
            # Expiry is not reported separately here
            raise AuthenticationError("Invalid or expired refresh token")

        user = await self.users.get_by_id(payload["id"])
        if user is None or not user.is_active:
            raise AuthenticationError("Invalid refresh token")

        if not await self.users.has_refresh_token(user, refresh_token):
            raise AuthenticationError("Invalid refresh token")

        return create_access_token(str(user.id), user.role.value)

    async def logout(self, user_id: uuid.UUID, refresh_token: Optional[str]) -> None:
        """Forget the given refresh token. Unknown tokens are not an error."""
        if refresh_token:
            removed = await self.users.remove_refresh_token(user_id, refresh_token)
            await self.db.commit()
            logger.info("auth.logout", user_id=str(user_id), revoked=removed)

    async def get_profile(self, user_id: uuid.UUID) -> User:
        user = await self.users.get_by_id(user_id)
        if user is None:
            raise NotFound("User not found")
        return user
