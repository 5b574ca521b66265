"""SQLAlchemy ORM models — single source of truth for the database schema.

Learn: Declarative ORM mapping with SQLAlchemy 2.0 style (Mapped[] + mapped_column).
Each class = one table. Column types are the portable ones (Uuid, JSON,
Enum) so the same models run on PostgreSQL and on SQLite in tests.

Key concepts:
- A user's refresh-token list is the refresh_tokens table: a token is
  valid only while its row exists, whatever its embedded expiry says.
- Lockout state (login_attempts, lock_until) lives on the user row and is
  only mutated inside the transaction that decided on it.
"""

import enum
import re
import uuid
from datetime import datetime, timezone
from typing import Optional
from urllib.parse import quote

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    Uuid,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_uuid() -> uuid.UUID:
    return uuid.uuid4()


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Timestamps read back from SQLite are naive; treat them as UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class Role(str, enum.Enum):
    """Closed set of roles. Admin is only granted by admin registration."""

    USER = "user"
    ADMIN = "admin"


# ══════════════════════════════════════════════════════════════
# Users and refresh tokens
# ══════════════════════════════════════════════════════════════


class User(Base):
    """A registered account, either a shopper or a shop administrator."""

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=new_uuid)
    username: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[Role] = mapped_column(
        Enum(Role, name="user_role", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=Role.USER,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    login_attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    lock_until: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        onupdate=utcnow,
    )

    refresh_tokens: Mapped[list["RefreshToken"]] = relationship(
        back_populates="user", cascade="all, delete-orphan"
    )

    def is_locked(self, now: Optional[datetime] = None) -> bool:
        lock_until = as_utc(self.lock_until)
        return lock_until is not None and lock_until > (now or utcnow())


class RefreshToken(Base):
    """One entry of a user's active refresh-token list."""

    __tablename__ = "refresh_tokens"
    __table_args__ = (Index("ix_refresh_tokens_user_token", "user_id", "token"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=new_uuid)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    token: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )

    user: Mapped["User"] = relationship(back_populates="refresh_tokens")


# ══════════════════════════════════════════════════════════════
# Catalogue
# ══════════════════════════════════════════════════════════════


def slugify(name: str) -> str:
    """"Hand Made Bags!" → "hand-made-bags"."""
    slug = re.sub(r"[^a-z0-9]", "-", name.lower())
    slug = re.sub(r"-+", "-", slug)
    return slug.strip("-")


class Category(Base):
    __tablename__ = "categories"
    __table_args__ = (Index("ix_categories_active_sort", "is_active", "sort_order"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=new_uuid)
    name: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    image_url: Mapped[str] = mapped_column(Text, nullable=False)
    image_public_id: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(60), unique=True, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        onupdate=utcnow,
    )

    products: Mapped[list["Product"]] = relationship(back_populates="category")


DEFAULT_WHATSAPP_MESSAGE = (
    "Hi! I am interested in this product: {productName}. "
    "Please provide more details about pricing, availability, and delivery."
)


class Product(Base):
    """A catalogue item. Orders happen over WhatsApp, not through the API."""

    __tablename__ = "products"
    __table_args__ = (
        Index("ix_products_category_active", "category_id", "is_active"),
        Index("ix_products_featured_active", "is_featured", "is_active"),
        Index("ix_products_price_original", "price_original"),
        Index("ix_products_created_at", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=new_uuid)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str] = mapped_column(String(1000), nullable=False)
    category_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("categories.id"), nullable=False
    )
    # [{"url": ..., "public_id": ..., "alt": ...}]
    images: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    price_original: Mapped[float] = mapped_column(
        Numeric(12, 2, asdecimal=False), nullable=False
    )
    price_discounted: Mapped[Optional[float]] = mapped_column(
        Numeric(12, 2, asdecimal=False), nullable=True
    )
    variants: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    specifications: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    tags: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    sku: Mapped[Optional[str]] = mapped_column(String(50), unique=True, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    is_featured: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    whatsapp_number: Mapped[str] = mapped_column(String(20), nullable=False)
    whatsapp_message: Mapped[str] = mapped_column(
        String(500), nullable=False, default=DEFAULT_WHATSAPP_MESSAGE
    )
    views: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    rating_average: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    rating_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        onupdate=utcnow,
    )

    category: Mapped["Category"] = relationship(
        back_populates="products", lazy="joined"
    )

    @property
    def effective_price(self) -> float:
        if self.price_discounted:
            return float(self.price_discounted)
        return float(self.price_original)

    @property
    def discount_percentage(self) -> int:
        original = float(self.price_original or 0)
        if self.price_discounted and original > 0:
            return round((original - float(self.price_discounted)) / original * 100)
        return 0

    @property
    def whatsapp_link(self) -> Optional[str]:
        if not self.whatsapp_number:
            return None
        return build_whatsapp_link(self)


def _format_price(value: float) -> str:
    return f"{value:g}" if value == int(value) else f"{value:.2f}"


def render_whatsapp_message(product: Product) -> str:
    category_name = product.category.name if product.category else ""
    return (
        product.whatsapp_message.replace("{productName}", product.name)
        .replace("{productPrice}", f"₹{_format_price(product.effective_price)}")
        .replace("{productSKU}", product.sku or "")
        .replace("{productCategory}", category_name)
    )


def build_whatsapp_link(product: Product) -> str:
    number = re.sub(r"[\s+]", "", product.whatsapp_number)
    text = quote(render_whatsapp_message(product), safe="")
    return f"https://wa.me/{number}?text={text}"


# ══════════════════════════════════════════════════════════════
# WhatsApp inquiries
# ══════════════════════════════════════════════════════════════


class Inquiry(Base):
    """One request for a WhatsApp link, used for abuse limits and analytics."""

    __tablename__ = "inquiries"
    __table_args__ = (
        Index("ix_inquiries_product_ip_created", "product_id", "ip_address", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=new_uuid)
    product_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("products.id", ondelete="CASCADE"), nullable=False
    )
    ip_address: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    user_agent: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    user_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )

    product: Mapped["Product"] = relationship(lazy="joined")
