"""Auth API — registration, login, token refresh, logout, current user.

Learn: Routes for user authentication:
- POST /auth/register → create a shopper account (role is always "user")
- POST /auth/register-admin → create an admin (needs the admin secret)
- POST /auth/login → email/password (+ adminToken for admins) → JWT tokens
- POST /auth/refresh → refresh token → new access token
- POST /auth/logout → forget a refresh token (requires access token)
- GET /auth/me → current user info

Failures are raised as ServiceError and rendered as
{"success": false, "message": ...} by the app's exception handlers.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from catalog.auth.dependencies import CurrentIdentity, get_current_user
from catalog.db.engine import get_db
from catalog.schemas.auth import (
    AdminRegisterRequest,
    AdminRegisterResponse,
    AdminSummary,
    LoginRequest,
    LoginResponse,
    LogoutRequest,
    MeResponse,
    PublicUser,
    RefreshRequest,
    RefreshResponse,
    RegisterRequest,
    UserRead,
)
from catalog.schemas.common import SuccessResponse
from catalog.services.auth_service import AuthService

router = APIRouter(prefix="/auth")


def _svc(db: AsyncSession = Depends(get_db)) -> AuthService:
    return AuthService(db)


# ─── Register ────────────────────────────────────────────


@router.post("/register", response_model=SuccessResponse, status_code=201)
async def register(body: RegisterRequest, svc: AuthService = Depends(_svc)):
    """Create a regular user account."""
    await svc.register_user(
        username=body.username,
        email=body.email,
        password=body.password,
        role=body.role,
    )
    return SuccessResponse(message="User registered successfully")


@router.post("/register-admin", response_model=AdminRegisterResponse, status_code=201)
async def register_admin(body: AdminRegisterRequest, svc: AuthService = Depends(_svc)):
    """Create an admin account. Requires the shared admin secret."""
    admin = await svc.register_admin(
        username=body.username,
        email=body.email,
        password=body.password,
        admin_token=body.admin_token,
    )
    return AdminRegisterResponse(admin=AdminSummary.model_validate(admin))


# ─── Login ───────────────────────────────────────────────


@router.post("/login", response_model=LoginResponse)
async def login(body: LoginRequest, svc: AuthService = Depends(_svc)):
    """Login with email and password → JWT tokens."""
    result = await svc.login(
        email=body.email,
        password=body.password,
        admin_token=body.admin_token,
    )
    return LoginResponse(
        access_token=result.access_token,
        refresh_token=result.refresh_token,
        user=PublicUser.model_validate(result.user),
    )


# ─── Refresh / logout ───────────────────────────────────


@router.post("/refresh", response_model=RefreshResponse)
async def refresh(body: RefreshRequest, svc: AuthService = Depends(_svc)):
    """Exchange a refresh token for a new access token."""
    access_token = await svc.refresh(body.refresh_token)
    return RefreshResponse(access_token=access_token)


@router.post("/logout", response_model=SuccessResponse)
async def logout(
    body: LogoutRequest | None = None,
    identity: CurrentIdentity = Depends(get_current_user),
    svc: AuthService = Depends(_svc),
):
    await svc.logout(identity.user_id, body.refresh_token if body else None)
    return SuccessResponse(message="Logged out successfully")


# ─── Current user ───────────────────────────────────────


@router.get("/me", response_model=MeResponse)
async def get_me(
    identity: CurrentIdentity = Depends(get_current_user),
    svc: AuthService = Depends(_svc),
):
    """Get the current authenticated user's info."""
    user = await svc.get_profile(identity.user_id)
    return MeResponse(data=UserRead.model_validate(user))
