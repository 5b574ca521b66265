"""Initial catalog schema

Users with lockout counters, their refresh-token list, categories,
products, and WhatsApp inquiries.

Revision ID: 3f1c2a9d7b10
Revises:
Create Date: 2026-10-19 09:12:04.118532
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f1c2a9d7b10'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    ]


def upgrade() -> None:
    # ─── Auth ────────────────────────────────────────────
    op.create_table(
        'users',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('username', sa.String(50), nullable=False, unique=True),
        sa.Column('email', sa.String(255), nullable=False, unique=True),
        sa.Column('password_hash', sa.String(255), nullable=False),
        sa.Column('role', sa.Enum('user', 'admin', name='user_role'), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('login_attempts', sa.Integer(), nullable=False),
        sa.Column('lock_until', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_table(
        'refresh_tokens',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('user_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('token', sa.Text(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index('ix_refresh_tokens_user_token', 'refresh_tokens', ['user_id', 'token'])

    # ─── Catalogue ───────────────────────────────────────
    op.create_table(
        'categories',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('name', sa.String(50), nullable=False, unique=True),
        sa.Column('description', sa.String(200), nullable=True),
        sa.Column('image_url', sa.Text(), nullable=False),
        sa.Column('image_public_id', sa.String(255), nullable=False),
        sa.Column('slug', sa.String(60), nullable=False, unique=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('sort_order', sa.Integer(), nullable=False),
        *_timestamps(),
    )
    op.create_index('ix_categories_active_sort', 'categories', ['is_active', 'sort_order'])

    op.create_table(
        'products',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('description', sa.String(1000), nullable=False),
        sa.Column('category_id', sa.Uuid(), sa.ForeignKey('categories.id'), nullable=False),
        sa.Column('images', sa.JSON(), nullable=False),
        sa.Column('price_original', sa.Numeric(12, 2), nullable=False),
        sa.Column('price_discounted', sa.Numeric(12, 2), nullable=True),
        sa.Column('variants', sa.JSON(), nullable=False),
        sa.Column('specifications', sa.JSON(), nullable=False),
        sa.Column('tags', sa.JSON(), nullable=False),
        sa.Column('sku', sa.String(50), nullable=True, unique=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('is_featured', sa.Boolean(), nullable=False),
        sa.Column('sort_order', sa.Integer(), nullable=False),
        sa.Column('whatsapp_number', sa.String(20), nullable=False),
        sa.Column('whatsapp_message', sa.String(500), nullable=False),
        sa.Column('views', sa.Integer(), nullable=False),
        sa.Column('rating_average', sa.Float(), nullable=False),
        sa.Column('rating_count', sa.Integer(), nullable=False),
        *_timestamps(),
    )
    op.create_index('ix_products_category_active', 'products', ['category_id', 'is_active'])
    op.create_index('ix_products_featured_active', 'products', ['is_featured', 'is_active'])
    op.create_index('ix_products_price_original', 'products', ['price_original'])
    op.create_index('ix_products_created_at', 'products', ['created_at'])

    # ─── WhatsApp inquiries ──────────────────────────────
    op.create_table(
        'inquiries',
        sa.Column('id', sa.Uuid(), primary_key=True),
        sa.Column('product_id', sa.Uuid(), sa.ForeignKey('products.id', ondelete='CASCADE'), nullable=False),
        sa.Column('ip_address', sa.String(64), nullable=True),
        sa.Column('user_agent', sa.Text(), nullable=True),
        sa.Column('user_id', sa.Uuid(), sa.ForeignKey('users.id', ondelete='SET NULL'), nullable=True),
        sa.Column('verified', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index(
        'ix_inquiries_product_ip_created', 'inquiries', ['product_id', 'ip_address', 'created_at']
    )


def downgrade() -> None:
    op.drop_table('inquiries')
    op.drop_table('products')
    op.drop_table('categories')
    op.drop_table('refresh_tokens')
    op.drop_table('users')
    sa.Enum(name='user_role').drop(op.get_bind(), checkfirst=True)
