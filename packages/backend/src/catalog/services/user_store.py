"""User store — durable user records, lockout counters, refresh tokens.

Learn: This is the only code that reads or writes the users and
refresh_tokens tables. The login flow loads the user row FOR UPDATE
(Postgres; SQLite serialises writers anyway) so that the counter
increment and the decision that caused it land in one commit.

Methods flush but do not commit: the caller owns the transaction.
"""

import uuid
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import delete, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from catalog.db.models import RefreshToken, Role, User, as_utc, utcnow


class UserStore:
    """Credential persistence for a single request's session."""

    def __init__(
        self,
        db: AsyncSession,
        max_login_attempts: int = 5,
        lock_minutes: int = 15,
    ):
        self.db = db
        self.max_login_attempts = max_login_attempts
        self.lock_minutes = lock_minutes

    # ─── Lookup ─────────────────────────────────────────

    async def get_by_id(self, user_id: uuid.UUID | str) -> Optional[User]:
        try:
            key = user_id if isinstance(user_id, uuid.UUID) else uuid.UUID(str(user_id))
        except ValueError:
            return None
        return await self.db.get(User, key)

    async def get_by_email(self, email: str, for_update: bool = False) -> Optional[User]:
        q = select(User).where(User.email == email)
        if for_update:
            q = q.with_for_update()
        result = await self.db.execute(q)
        return result.scalars().first()

    async def identity_taken(self, username: str, email: str) -> bool:
        """Single existence check over both unique fields (exact match)."""
        q = select(User.id).where(or_(User.email == email, User.username == username))
        result = await self.db.execute(q.limit(1))
        return result.first() is not None

    # ─── Creation ───────────────────────────────────────

    async def create(
        self, username: str, email: str, password_hash: str, role: Role
    ) -> User:
        user = User(
            username=username,
            email=email,
            password_hash=password_hash,
            role=role,
        )
        self.db.add(user)
        await self.db.flush()
        return user

    # ─── Lockout counters ───────────────────────────────

    async def record_failed_login(
        self, user: User, now: Optional[datetime] = None
    ) -> User:
        """Count a failed attempt; lock the account once the threshold is hit.

        An already-expired lock restarts the count at 1.
        """
        now = now or utcnow()
        lock_until = as_utc(user.lock_until)
        if lock_until is not None and lock_until <= now:
            user.login_attempts = 1
            user.lock_until = None
        else:
            user.login_attempts = (user.login_attempts or 0) + 1
            if user.login_attempts >= self.max_login_attempts and not user.is_locked(now):
                user.lock_until = now + timedelta(minutes=self.lock_minutes)
        await self.db.flush()
        return user

    async def reset_login_attempts(self, user: User) -> User:
        user.login_attempts = 0
        user.lock_until = None
        await self.db.flush()
        return user

    # ─── Refresh tokens ─────────────────────────────────

    async def add_refresh_token(self, user: User, token: str) -> None:
        self.db.add(RefreshToken(user_id=user.id, token=token))
        await self.db.flush()

    async def has_refresh_token(self, user: User, token: str) -> bool:
        q = select(RefreshToken.id).where(
            RefreshToken.user_id == user.id, RefreshToken.token == token
        )
        result = await self.db.execute(q.limit(1))
        return result.first() is not None

    async def remove_refresh_token(self, user_id: uuid.UUID, token: str) -> int:
        """Delete matching entries. Returns how many were removed (0 is fine)."""
        result = await self.db.execute(
            delete(RefreshToken).where(
                RefreshToken.user_id == user_id, RefreshToken.token == token
            )
        )
        return result.rowcount or 0
