"""Category service — business logic for catalogue categories.

Learn: Public reads only ever see active categories. A category can be
addressed by id or by slug; the slug is derived from the name on every
rename. A category that still has products cannot be deleted.
"""

import uuid
from typing import Optional

import structlog
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from catalog.db.models import Category, Product, slugify
from catalog.errors import NotFound, ValidationError

logger = structlog.get_logger()


def parse_uuid(value: str) -> Optional[uuid.UUID]:
    try:
        return uuid.UUID(value)
    except (TypeError, ValueError):
        return None


class CategoryService:
    """Business logic for categories."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ─── Reads ──────────────────────────────────────────

    async def list_active(self) -> list[Category]:
        result = await self.db.execute(
            select(Category)
            .where(Category.is_active.is_(True))
            .order_by(Category.sort_order.asc(), Category.created_at.desc())
        )
        return list(result.scalars().all())

    async def get_active(self, identifier: str) -> Category:
        """Look up an active category by id or slug."""
        category_id = parse_uuid(identifier)
        q = select(Category).where(Category.is_active.is_(True))
        if category_id is not None:
            q = q.where(Category.id == category_id)
        else:
            q = q.where(Category.slug == identifier)
        result = await self.db.execute(q)
        category = result.scalars().first()
        if category is None:
            raise NotFound("Category not found")
        return category

    async def get(self, category_id: uuid.UUID) -> Category:
        category = await self.db.get(Category, category_id)
        if category is None:
            raise NotFound("Category not found")
        return category

    # ─── Writes ─────────────────────────────────────────

    async def create(
        self,
        name: str,
        image_url: Optional[str],
        public_id: Optional[str],
        description: Optional[str] = None,
        sort_order: int = 0,
    ) -> Category:
        if not image_url or not public_id:
            raise ValidationError("imageUrl and public_id are required")

        category = Category(
            name=name,
            slug=slugify(name),
            description=description,
            image_url=image_url,
            image_public_id=public_id,
            sort_order=sort_order or 0,
        )
        self.db.add(category)
        await self._commit_unique()
        logger.info("catalog.category_created", category_id=str(category.id))
        return category

    async def update(
        self,
        category_id: uuid.UUID,
        name: Optional[str] = None,
        description: Optional[str] = None,
        sort_order: Optional[int] = None,
        is_active: Optional[bool] = None,
        image_url: Optional[str] = None,
        public_id: Optional[str] = None,
        fields_set: frozenset[str] = frozenset(),
    ) -> Category:
        category = await self.get(category_id)

        if name:
            category.name = name
            category.slug = slugify(name)
        if "description" in fields_set:
            category.description = description
        if sort_order is not None:
            category.sort_order = sort_order
        if is_active is not None:
            category.is_active = is_active
        # Image is only replaced when both halves are supplied
        if image_url and public_id:
            category.image_url = image_url
            category.image_public_id = public_id

        await self._commit_unique()
        return category

    async def delete(self, category_id: uuid.UUID) -> None:
        category = await self.get(category_id)

        result = await self.db.execute(
            select(func.count()).select_from(Product).where(Product.category_id == category.id)
        )
        product_count = result.scalar_one()
        if product_count > 0:
            raise ValidationError(
                f"Cannot delete category. {product_count} products belong to this category."
            )

        await self.db.delete(category)
        await self.db.commit()
        logger.info("catalog.category_deleted", category_id=str(category_id))

    async def _commit_unique(self) -> None:
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise ValidationError("Category name already exists")
