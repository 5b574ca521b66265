"""Pydantic schemas for registration, login, refresh, and the current user.

Learn: Credential fields are Optional on purpose. "Missing email" is a
step of the login state machine (START), answered with the API's own
400 envelope rather than a framework validation error.
"""

import uuid
from datetime import datetime
from typing import Optional

from catalog.db.models import Role
from catalog.schemas.common import CamelModel


# ─── Requests ───────────────────────────────────────────

class RegisterRequest(CamelModel):
    username: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None
    role: Optional[str] = None  # only ever rejected


class AdminRegisterRequest(CamelModel):
    username: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None
    admin_token: Optional[str] = None


class LoginRequest(CamelModel):
    email: Optional[str] = None
    password: Optional[str] = None
    admin_token: Optional[str] = None


class RefreshRequest(CamelModel):
    refresh_token: Optional[str] = None


class LogoutRequest(CamelModel):
    refresh_token: Optional[str] = None


# ─── Responses ──────────────────────────────────────────

class PublicUser(CamelModel):
    id: uuid.UUID
    username: str
    email: str
    role: Role


class AdminSummary(CamelModel):
    id: uuid.UUID
    username: str
    email: str


class AdminRegisterResponse(CamelModel):
    success: bool = True
    message: str = "Admin registered successfully"
    admin: AdminSummary


class LoginResponse(CamelModel):
    success: bool = True
    access_token: str
    refresh_token: str
    user: PublicUser


class RefreshResponse(CamelModel):
    success: bool = True
    access_token: str


class UserRead(CamelModel):
    """Profile without password hash or refresh tokens."""
    id: uuid.UUID
    username: str
    email: str
    role: Role
    is_active: bool
    created_at: datetime
    updated_at: datetime


class MeResponse(CamelModel):
    success: bool = True
    data: UserRead
