"""Login guardian + user store tests (no HTTP).

Learn: The guardian is driven directly with a UserStore on the test
session, so each state transition and each counter change can be
asserted on the LoginAttempt trace and the user row.
"""

from datetime import timedelta

import pytest

from catalog.auth.guardian import LoginAttempt, LoginGuardian, LoginState
from catalog.auth.password import hash_password
from catalog.db.models import Role, utcnow
from catalog.errors import (
    AccountLocked,
    AdminTokenRequired,
    InvalidCredentials,
    ValidationError,
)
from catalog.services.user_store import UserStore

ADMIN_SECRET = "test-admin-secret"
PASSWORD = "correct-horse-battery"


async def _make_user(store, role=Role.USER, email="shopper@example.com"):
    user = await store.create(email.split("@")[0], email, hash_password(PASSWORD), role)
    await store.db.commit()
    return user


# ═══════════════════════════════════════════════════════════
# State machine
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_user_success_trace(db_session):
    store = UserStore(db_session)
    user = await _make_user(store)
    guardian = LoginGuardian(store, ADMIN_SECRET)

    attempt = LoginAttempt(email=user.email, password=PASSWORD)
    result = await guardian.authenticate(attempt)

    assert result.id == user.id
    assert attempt.trace == [
        LoginState.START,
        LoginState.CREDENTIAL_LOOKUP,
        LoginState.LOCK_CHECK,
        LoginState.PASSWORD_CHECK,
        LoginState.SUCCESS,
    ]


@pytest.mark.asyncio
async def test_admin_success_passes_step_up(db_session):
    store = UserStore(db_session)
    admin = await _make_user(store, Role.ADMIN, "boss@example.com")
    guardian = LoginGuardian(store, ADMIN_SECRET)

    attempt = LoginAttempt(email=admin.email, password=PASSWORD, admin_token=ADMIN_SECRET)
    await guardian.authenticate(attempt)

    assert LoginState.ADMIN_STEP_UP in attempt.trace
    assert attempt.state == LoginState.SUCCESS


@pytest.mark.asyncio
async def test_missing_credentials_fail_at_start(db_session):
    guardian = LoginGuardian(UserStore(db_session), ADMIN_SECRET)
    attempt = LoginAttempt(email="", password=PASSWORD)

    with pytest.raises(ValidationError):
        await guardian.authenticate(attempt)
    assert attempt.trace == [LoginState.START, LoginState.FAIL]


@pytest.mark.asyncio
async def test_unknown_email_fails_at_lookup(db_session):
    guardian = LoginGuardian(UserStore(db_session), ADMIN_SECRET)
    attempt = LoginAttempt(email="nobody@example.com", password=PASSWORD)

    with pytest.raises(InvalidCredentials):
        await guardian.authenticate(attempt)
    assert attempt.trace[-2] == LoginState.CREDENTIAL_LOOKUP
    assert attempt.counter_changed is False


@pytest.mark.asyncio
async def test_admin_without_token_bumps_counter(db_session):
    """A failed step-up is a visible counter increment, before the password is checked."""
    store = UserStore(db_session)
    admin = await _make_user(store, Role.ADMIN, "boss@example.com")
    guardian = LoginGuardian(store, ADMIN_SECRET)

    attempt = LoginAttempt(email=admin.email, password=PASSWORD)
    with pytest.raises(AdminTokenRequired):
        await guardian.authenticate(attempt)

    assert attempt.trace[-2] == LoginState.ADMIN_STEP_UP
    assert attempt.counter_changed is True
    assert admin.login_attempts == 1


@pytest.mark.asyncio
async def test_wrong_password_bumps_counter(db_session):
    store = UserStore(db_session)
    user = await _make_user(store)
    guardian = LoginGuardian(store, ADMIN_SECRET)

    attempt = LoginAttempt(email=user.email, password="nope-nope-nope")
    with pytest.raises(InvalidCredentials):
        await guardian.authenticate(attempt)

    assert attempt.trace[-2] == LoginState.PASSWORD_CHECK
    assert user.login_attempts == 1


@pytest.mark.asyncio
async def test_locked_account_rejects_correct_password(db_session):
    store = UserStore(db_session)
    user = await _make_user(store)
    user.lock_until = utcnow() + timedelta(minutes=10)
    user.login_attempts = 5
    await db_session.commit()
    guardian = LoginGuardian(store, ADMIN_SECRET)

    attempt = LoginAttempt(email=user.email, password=PASSWORD)
    with pytest.raises(AccountLocked):
        await guardian.authenticate(attempt)
    assert attempt.trace[-2] == LoginState.LOCK_CHECK
    # Lock check itself never touches the counter
    assert user.login_attempts == 5


@pytest.mark.asyncio
async def test_success_resets_counter(db_session):
    store = UserStore(db_session)
    user = await _make_user(store)
    user.login_attempts = 3
    await db_session.commit()

    await LoginGuardian(store, ADMIN_SECRET).authenticate(
        LoginAttempt(email=user.email, password=PASSWORD)
    )
    assert user.login_attempts == 0
    assert user.lock_until is None


# ═══════════════════════════════════════════════════════════
# Lockout counter rules
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_lock_set_at_threshold(db_session):
    store = UserStore(db_session, max_login_attempts=3, lock_minutes=15)
    user = await _make_user(store)
    now = utcnow()

    await store.record_failed_login(user, now)
    await store.record_failed_login(user, now)
    assert user.lock_until is None

    await store.record_failed_login(user, now)
    assert user.login_attempts == 3
    assert user.lock_until == now + timedelta(minutes=15)
    assert user.is_locked(now + timedelta(minutes=14))
    assert not user.is_locked(now + timedelta(minutes=16))


@pytest.mark.asyncio
async def test_expired_lock_restarts_count(db_session):
    """After the lock elapses the next failure counts as the first one."""
    store = UserStore(db_session, max_login_attempts=3, lock_minutes=15)
    user = await _make_user(store)
    now = utcnow()
    for _ in range(3):
        await store.record_failed_login(user, now)

    later = now + timedelta(minutes=20)
    await store.record_failed_login(user, later)

    assert user.login_attempts == 1
    assert user.lock_until is None


@pytest.mark.asyncio
async def test_refresh_token_list(db_session):
    store = UserStore(db_session)
    user = await _make_user(store)

    await store.add_refresh_token(user, "token-a")
    await store.add_refresh_token(user, "token-b")
    await db_session.commit()

    assert await store.has_refresh_token(user, "token-a")
    assert await store.remove_refresh_token(user.id, "token-a") == 1
    assert await store.remove_refresh_token(user.id, "token-a") == 0
    assert not await store.has_refresh_token(user, "token-a")
    assert await store.has_refresh_token(user, "token-b")
