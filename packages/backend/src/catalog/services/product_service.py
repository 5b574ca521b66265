"""Product service — listing, search, and admin maintenance of products.

Learn: All public queries share one filter builder (active only, plus
optional category / featured / tag / price range) and one pagination
rule (page ≥ 1, 1 ≤ limit ≤ 50). Sorting is chosen from a fixed menu;
anything else falls back to newest first.

Writes re-load the product with its category after commit, because the
response embeds {id, name, slug} of the category.
"""

import math
import uuid
from dataclasses import dataclass
from typing import Any, Optional

import structlog
from sqlalchemy import String, cast, func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from catalog.db.models import DEFAULT_WHATSAPP_MESSAGE, Category, Product
from catalog.errors import NotFound, ValidationError
from catalog.services.category_service import parse_uuid

logger = structlog.get_logger()

MAX_PAGE_SIZE = 50

_SORTS = {
    "-createdAt": (Product.created_at.desc(),),
    "createdAt": (Product.created_at.asc(),),
    "price": (Product.price_original.asc(),),
    "-price": (Product.price_original.desc(),),
    "name": (Product.name.asc(),),
    "-name": (Product.name.desc(),),
    "featured": (Product.is_featured.desc(), Product.created_at.desc()),
}


@dataclass
class ProductFilters:
    category_id: Optional[uuid.UUID] = None
    featured: bool = False
    tag: Optional[str] = None
    min_price: Optional[float] = None
    max_price: Optional[float] = None
    search: Optional[str] = None

    def clauses(self) -> list:
        clauses = [Product.is_active.is_(True)]
        if self.category_id is not None:
            clauses.append(Product.category_id == self.category_id)
        if self.featured:
            clauses.append(Product.is_featured.is_(True))
        if self.tag:
            # tags is a JSON array; match the quoted element
            clauses.append(
                cast(Product.tags, String).contains(
                    f'"{self.tag.strip().lower()}"', autoescape=True
                )
            )
        if self.min_price is not None:
            clauses.append(Product.price_original >= self.min_price)
        if self.max_price is not None:
            clauses.append(Product.price_original <= self.max_price)
        if self.search:
            clauses.append(
                or_(
                    Product.name.icontains(self.search, autoescape=True),
                    Product.description.icontains(self.search, autoescape=True),
                    cast(Product.tags, String).icontains(self.search, autoescape=True),
                )
            )
        return clauses


@dataclass
class Page:
    items: list[Product]
    total: int
    page: int
    limit: int

    @property
    def pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.total else 0


def clamp_paging(page: Optional[int], limit: Optional[int]) -> tuple[int, int]:
    page = max(1, page or 1)
    limit = max(1, min(MAX_PAGE_SIZE, limit or 12))
    return page, limit


def normalize_tags(tags: list[str]) -> list[str]:
    return [t.strip().lower() for t in tags if t and t.strip()]


class ProductService:
    """Business logic for products."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ─── Reads ──────────────────────────────────────────

    async def list_products(
        self,
        filters: ProductFilters,
        sort: str = "-createdAt",
        page: Optional[int] = 1,
        limit: Optional[int] = 12,
    ) -> Page:
        page, limit = clamp_paging(page, limit)
        clauses = filters.clauses()

        result = await self.db.execute(
            select(Product)
            .where(*clauses)
            .order_by(*_SORTS.get(sort, _SORTS["-createdAt"]))
            .limit(limit)
            .offset((page - 1) * limit)
        )
        items = list(result.scalars().all())

        total = (
            await self.db.execute(
                select(func.count()).select_from(Product).where(*clauses)
            )
        ).scalar_one()

        return Page(items=items, total=total, page=page, limit=limit)

    async def featured(self, limit: int = 8) -> list[Product]:
        result = await self.db.execute(
            select(Product)
            .where(Product.is_active.is_(True), Product.is_featured.is_(True))
            .order_by(Product.sort_order.asc(), Product.created_at.desc())
            .limit(max(1, limit))
        )
        return list(result.scalars().all())

    async def get_active(self, product_id: str) -> Product:
        pid = parse_uuid(product_id)
        if pid is None:
            raise NotFound("Product not found")
        result = await self.db.execute(
            select(Product).where(Product.id == pid, Product.is_active.is_(True))
        )
        product = result.scalars().first()
        if product is None:
            raise NotFound("Product not found")
        return product

    async def view(self, product_id: str) -> Product:
        """Fetch an active product and count the view."""
        product = await self.get_active(product_id)
        await self.db.execute(
            update(Product)
            .where(Product.id == product.id)
            .values(views=Product.views + 1)
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()
        return product

    async def get(self, product_id: uuid.UUID) -> Product:
        result = await self.db.execute(
            select(Product)
            .where(Product.id == product_id)
            .execution_options(populate_existing=True)
        )
        product = result.scalars().first()
        if product is None:
            raise NotFound("Product not found")
        return product

    # ─── Writes ─────────────────────────────────────────

    async def create(
        self,
        name: str,
        description: str,
        category_id: uuid.UUID,
        price_original: float,
        images: Optional[list[dict[str, Any]]],
        whatsapp_number: str,
        price_discounted: Optional[float] = None,
        variants: Optional[list[dict[str, Any]]] = None,
        specifications: Optional[dict[str, str]] = None,
        tags: Optional[list[str]] = None,
        sku: Optional[str] = None,
        whatsapp_message: Optional[str] = None,
        is_featured: bool = False,
        sort_order: int = 0,
    ) -> Product:
        if not images:
            raise ValidationError("At least one product image is required")
        if await self.db.get(Category, category_id) is None:
            raise ValidationError("Category does not exist")

        product = Product(
            name=name,
            description=description,
            category_id=category_id,
            price_original=price_original,
            price_discounted=price_discounted,
            images=images,
            variants=variants or [],
            specifications=specifications or {},
            tags=normalize_tags(tags or []),
            sku=sku or await self._next_sku(),
            whatsapp_number=whatsapp_number,
            whatsapp_message=whatsapp_message or DEFAULT_WHATSAPP_MESSAGE,
            is_featured=is_featured,
            sort_order=sort_order or 0,
        )
        self.db.add(product)
        await self._commit_unique()
        logger.info("catalog.product_created", product_id=str(product.id), sku=product.sku)
        return await self.get(product.id)

    async def update(self, product_id: uuid.UUID, changes: dict[str, Any]) -> Product:
        """Apply a partial update. `changes` holds only the fields the client sent."""
        product = await self.get(product_id)

        if changes.get("name"):
            product.name = changes["name"]
        if "description" in changes and changes["description"] is not None:
            product.description = changes["description"]
        if changes.get("category"):
            if await self.db.get(Category, changes["category"]) is None:
                raise ValidationError("Category does not exist")
            product.category_id = changes["category"]
        if changes.get("price"):
            product.price_original = changes["price"]["original"]
            product.price_discounted = changes["price"].get("discounted")
        if changes.get("variants") is not None:
            product.variants = changes["variants"]
        if changes.get("specifications") is not None:
            product.specifications = changes["specifications"]
        if changes.get("tags") is not None:
            product.tags = normalize_tags(changes["tags"])
        if changes.get("whatsapp_number"):
            product.whatsapp_number = changes["whatsapp_number"]
        if changes.get("whatsapp_message"):
            product.whatsapp_message = changes["whatsapp_message"]
        for flag in ("is_featured", "is_active", "sort_order"):
            if changes.get(flag) is not None:
                setattr(product, flag, changes[flag])

        images = list(product.images or [])
        if changes.get("remove_images"):
            removed = set(changes["remove_images"])
            images = [img for img in images if img.get("public_id") not in removed]
        if changes.get("new_images"):
            images.extend(changes["new_images"])
        if not images:
            await self.db.rollback()
            raise ValidationError("Product must have at least one image")
        product.images = images

        await self._commit_unique()
        return await self.get(product.id)

    async def delete(self, product_id: uuid.UUID) -> None:
        product = await self.get(product_id)
        await self.db.delete(product)
        await self.db.commit()
        logger.info("catalog.product_deleted", product_id=str(product_id))

    # ─── Helpers ────────────────────────────────────────

    async def _next_sku(self) -> str:
        count = (await self.db.execute(select(func.count()).select_from(Product))).scalar_one()
        while True:
            count += 1
            sku = f"PROD{count:04d}"
            taken = await self.db.execute(select(Product.id).where(Product.sku == sku))
            if taken.first() is None:
                return sku

    async def _commit_unique(self) -> None:
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise ValidationError("A product with this SKU already exists")
