"""Test fixtures — a throwaway SQLite database per test.

Learn: Testing pattern for async SQLAlchemy + FastAPI without a server:

1. Environment is pointed at SQLite and a temp log dir BEFORE catalog
   is imported, because settings and the engine are built at import.
2. Each test gets a fresh in-memory database (aiosqlite + StaticPool,
   so every connection sees the same memory) with the schema created
   from the models.
3. get_db is overridden to hand out that one session, and the app gets
   a fresh in-memory rate-limit store, so no state leaks between tests.
"""

import os
import tempfile
import uuid

os.environ.setdefault("CATALOG_DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("CATALOG_LOG_DIR", tempfile.mkdtemp(prefix="catalog-logs-"))

import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from catalog.auth.password import set_rounds  # noqa: E402
from catalog.config import settings  # noqa: E402
from catalog.db.engine import get_db, json_dumps  # noqa: E402
from catalog.db.models import Base  # noqa: E402
from catalog.main import app  # noqa: E402
from catalog.ratelimit import InMemoryRateLimitStore  # noqa: E402

# bcrypt at full cost makes every register/login ~100ms
set_rounds(4)

ADMIN_PASSWORD = "Adm1n!SecurePass"
USER_PASSWORD = "shopper-pass-123"


@pytest_asyncio.fixture()
async def db_session():
    """Per-test session on a brand-new in-memory database."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        json_serializer=json_dumps,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session = AsyncSession(bind=engine, expire_on_commit=False)
    try:
        yield session
    finally:
        await session.close()
        await engine.dispose()


@pytest_asyncio.fixture()
async def rate_limit_store():
    return InMemoryRateLimitStore()


@pytest_asyncio.fixture()
async def client(db_session, rate_limit_store):
    """HTTP client talking to the real app, real auth, test database."""

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.state.rate_limit_store = rate_limit_store

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# ─── Account helpers ────────────────────────────────────


def unique_email(prefix: str = "user") -> str:
    return f"{prefix}-{uuid.uuid4().hex[:8]}@example.com"


def unique_username(prefix: str = "user") -> str:
    return f"{prefix}_{uuid.uuid4().hex[:8]}"


async def register_user(client, email=None, password=USER_PASSWORD) -> dict:
    body = {
        "username": unique_username(),
        "email": email or unique_email(),
        "password": password,
    }
    r = await client.post("/api/auth/register", json=body)
    assert r.status_code == 201, r.text
    return body


async def register_admin(client, password=ADMIN_PASSWORD) -> dict:
    body = {
        "username": unique_username("admin"),
        "email": unique_email("admin"),
        "password": password,
        "adminToken": settings.admin_secret_token,
    }
    r = await client.post("/api/auth/register-admin", json=body)
    assert r.status_code == 201, r.text
    return body


async def login(client, email, password, admin_token=None):
    body = {"email": email, "password": password}
    if admin_token is not None:
        body["adminToken"] = admin_token
    return await client.post("/api/auth/login", json=body)


@pytest_asyncio.fixture()
async def user_tokens(client):
    """A registered shopper, logged in. Uses 2 auth-bucket requests."""
    creds = await register_user(client)
    r = await login(client, creds["email"], creds["password"])
    assert r.status_code == 200, r.text
    return {**creds, **r.json()}


@pytest_asyncio.fixture()
async def admin_headers(client):
    """Authorization header for a freshly registered admin."""
    creds = await register_admin(client)
    r = await login(client, creds["email"], creds["password"], settings.admin_secret_token)
    assert r.status_code == 200, r.text
    return {"Authorization": f"Bearer {r.json()['accessToken']}"}


# ─── Catalogue helpers ──────────────────────────────────

IMAGE = {"url": "https://res.cloudinary.com/demo/bag.jpg", "publicId": "catalog/bag"}


async def create_category(client, headers, name="Hand Bags", **extra) -> dict:
    body = {
        "name": name,
        "description": "Leather and canvas",
        "imageUrl": "https://res.cloudinary.com/demo/cat.jpg",
        "publicId": f"catalog/{name.lower().replace(' ', '-')}",
        **extra,
    }
    r = await client.post("/api/category", json=body, headers=headers)
    assert r.status_code == 201, r.text
    return r.json()["data"]


async def create_product(client, headers, category_id, name="Tote Bag", **extra) -> dict:
    body = {
        "name": name,
        "description": f"A very nice {name.lower()}",
        "category": category_id,
        "price": {"original": 1000},
        "images": [IMAGE],
        "whatsappNumber": "+919876543210",
        **extra,
    }
    r = await client.post("/api/product", json=body, headers=headers)
    assert r.status_code == 201, r.text
    return r.json()["data"]
