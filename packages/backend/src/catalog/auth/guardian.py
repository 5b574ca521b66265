"""Login guardian — the login flow as an explicit state machine.

Learn: A login attempt walks through fixed states:

    START → CREDENTIAL_LOOKUP → ADMIN_STEP_UP (admins only)
          → LOCK_CHECK → PASSWORD_CHECK → SUCCESS | FAIL

Each state is one method. Side effects are visible transitions:
a failed admin step-up and a wrong password both bump the account's
failed-attempt counter before failing; a correct password resets it.
Lockout is per account, so attempts from many IPs still add up.

The guardian never commits. On FAIL it flushes the counter change and
the caller commits before turning the error into a response.
"""

import enum
import hmac
from dataclasses import dataclass, field
from typing import Optional

import structlog

from catalog.auth.password import verify_password
from catalog.db.models import Role, User
from catalog.errors import (
    AccountLocked,
    AdminTokenRequired,
    InvalidCredentials,
    ServiceError,
    ValidationError,
)
from catalog.services.user_store import UserStore

logger = structlog.get_logger()


class LoginState(str, enum.Enum):
    START = "start"
    CREDENTIAL_LOOKUP = "credential_lookup"
    ADMIN_STEP_UP = "admin_step_up"
    LOCK_CHECK = "lock_check"
    PASSWORD_CHECK = "password_check"
    SUCCESS = "success"
    FAIL = "fail"


@dataclass
class LoginAttempt:
    email: Optional[str]
    password: Optional[str]
    admin_token: Optional[str] = None
    state: LoginState = LoginState.START
    trace: list[LoginState] = field(default_factory=list)
    user: Optional[User] = None
    error: Optional[ServiceError] = None
    counter_changed: bool = False

    def enter(self, state: LoginState) -> None:
        self.state = state
        self.trace.append(state)


class LoginGuardian:
    """Runs one login attempt to SUCCESS (returns the user) or FAIL (raises)."""

    def __init__(self, store: UserStore, admin_secret: str):
        self.store = store
        self.admin_secret = admin_secret

    async def authenticate(self, attempt: LoginAttempt) -> User:
        try:
            attempt.enter(LoginState.START)
            self._start(attempt)

            attempt.enter(LoginState.CREDENTIAL_LOOKUP)
            await self._lookup(attempt)

            if attempt.user.role == Role.ADMIN:
                attempt.enter(LoginState.ADMIN_STEP_UP)
                await self._admin_step_up(attempt)

            attempt.enter(LoginState.LOCK_CHECK)
            self._lock_check(attempt)

            attempt.enter(LoginState.PASSWORD_CHECK)
            await self._password_check(attempt)
        except ServiceError as e:
            attempt.error = e
            attempt.enter(LoginState.FAIL)
            logger.info(
                "auth.login_failed",
                failed_at=attempt.trace[-2].value,
                reason=type(e).__name__,
                user_id=str(attempt.user.id) if attempt.user else None,
            )
            raise

        attempt.enter(LoginState.SUCCESS)
        return attempt.user

    # ─── States ─────────────────────────────────────────

    def _start(self, attempt: LoginAttempt) -> None:
        if not attempt.email or not attempt.password:
            raise ValidationError("Please provide email and password")

    async def _lookup(self, attempt: LoginAttempt) -> None:
        attempt.user = await self.store.get_by_email(attempt.email, for_update=True)
        if attempt.user is None:
            raise InvalidCredentials()

    async def _admin_step_up(self, attempt: LoginAttempt) -> None:
        supplied = attempt.admin_token or ""
        if not supplied or not hmac.compare_digest(
            supplied.encode(), self.admin_secret.encode()
        ):
            # Throttles guessing of the admin secret
            await self.store.record_failed_login(attempt.user)
            attempt.counter_changed = True
            raise AdminTokenRequired()

    def _lock_check(self, attempt: LoginAttempt) -> None:
        if attempt.user.is_locked():
            raise AccountLocked()

    async def _password_check(self, attempt: LoginAttempt) -> None:
        if not verify_password(attempt.password, attempt.user.password_hash):
            await self.store.record_failed_login(attempt.user)
            attempt.counter_changed = True
            raise InvalidCredentials()
        await self.store.reset_login_attempts(attempt.user)
