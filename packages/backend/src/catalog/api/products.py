"""Product API routes.

Learn: Static paths (/products/featured, /products/search,
/products/category/...) are declared before anything that could
swallow them. Viewing a single product is rate limited per caller
(50 per minute) and bumps its view counter.
"""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from catalog.auth.dependencies import require_admin
from catalog.db.engine import get_db
from catalog.errors import ValidationError
from catalog.ratelimit.dependencies import RateLimit
from catalog.schemas.category import CategorySummary
from catalog.schemas.common import SuccessResponse
from catalog.schemas.product import (
    ProductCreate,
    ProductList,
    ProductPage,
    ProductRead,
    ProductResponse,
    ProductUpdate,
)
from catalog.services.category_service import CategoryService
from catalog.services.product_service import Page, ProductFilters, ProductService

router = APIRouter()

_admin = [Depends(require_admin)]
_view_limit = RateLimit("product-view", 50, 60)


def _svc(db: AsyncSession = Depends(get_db)) -> ProductService:
    return ProductService(db)


def _page(page: Page, **extra) -> ProductPage:
    return ProductPage(
        count=len(page.items),
        total=page.total,
        page=page.page,
        pages=page.pages,
        data=[ProductRead.from_model(p) for p in page.items],
        **extra,
    )


# ─── Public reads ───────────────────────────────────────

@router.get("/products", response_model=ProductPage, response_model_exclude_none=True)
async def list_products(
    category: Optional[uuid.UUID] = None,
    featured: Optional[str] = None,
    min_price: Optional[float] = Query(None, alias="minPrice"),
    max_price: Optional[float] = Query(None, alias="maxPrice"),
    tag: Optional[str] = None,
    sort: str = "-createdAt",
    page: int = 1,
    limit: int = 12,
    svc: ProductService = Depends(_svc),
):
    filters = ProductFilters(
        category_id=category,
        featured=featured == "true",
        tag=tag,
        min_price=min_price,
        max_price=max_price,
    )
    return _page(await svc.list_products(filters, sort=sort, page=page, limit=limit))


@router.get("/products/featured", response_model=ProductList)
async def featured_products(limit: int = 8, svc: ProductService = Depends(_svc)):
    products = await svc.featured(limit)
    return ProductList(
        count=len(products),
        data=[ProductRead.from_model(p) for p in products],
    )


@router.get("/products/search", response_model=ProductPage, response_model_exclude_none=True)
async def search_products(
    q: Optional[str] = None,
    category: Optional[uuid.UUID] = None,
    min_price: Optional[float] = Query(None, alias="minPrice"),
    max_price: Optional[float] = Query(None, alias="maxPrice"),
    sort: str = "-createdAt",
    page: int = 1,
    limit: int = 12,
    svc: ProductService = Depends(_svc),
):
    if not q:
        raise ValidationError("Search query (q) is required")
    filters = ProductFilters(
        category_id=category,
        min_price=min_price,
        max_price=max_price,
        search=q,
    )
    result = await svc.list_products(filters, sort=sort, page=page, limit=limit)
    return _page(result, query=q)


@router.get(
    "/products/category/{identifier}",
    response_model=ProductPage,
    response_model_exclude_none=True,
)
async def products_by_category(
    identifier: str,
    sort: str = "-createdAt",
    page: int = 1,
    limit: int = 12,
    svc: ProductService = Depends(_svc),
):
    """Products of an active category, addressed by id or slug."""
    category = await CategoryService(svc.db).get_active(identifier)
    filters = ProductFilters(category_id=category.id)
    result = await svc.list_products(filters, sort=sort, page=page, limit=limit)
    return _page(result, category=CategorySummary.model_validate(category))


@router.get(
    "/product/{product_id}",
    response_model=ProductResponse,
    dependencies=[Depends(_view_limit)],
)
async def get_product(product_id: str, svc: ProductService = Depends(_svc)):
    product = await svc.view(product_id)
    return ProductResponse(data=ProductRead.from_model(product))


# ─── Admin writes ───────────────────────────────────────

@router.post("/product", response_model=ProductResponse, status_code=201, dependencies=_admin)
async def create_product(body: ProductCreate, svc: ProductService = Depends(_svc)):
    product = await svc.create(
        name=body.name,
        description=body.description,
        category_id=body.category,
        price_original=body.price.original,
        price_discounted=body.price.discounted,
        images=[img.model_dump() for img in body.images] if body.images else None,
        variants=[v.model_dump() for v in body.variants],
        specifications=body.specifications,
        tags=body.tags,
        sku=body.sku,
        whatsapp_number=body.whatsapp_number,
        whatsapp_message=body.whatsapp_message,
        is_featured=body.is_featured,
        sort_order=body.sort_order,
    )
    return ProductResponse(
        message="Product created successfully",
        data=ProductRead.from_model(product),
    )


@router.put("/product/{product_id}", response_model=ProductResponse, dependencies=_admin)
async def update_product(
    product_id: uuid.UUID,
    body: ProductUpdate,
    svc: ProductService = Depends(_svc),
):
    # Field names, not aliases; only what the client actually sent
    changes = body.model_dump(exclude_unset=True)
    product = await svc.update(product_id, changes)
    return ProductResponse(
        message="Product updated successfully",
        data=ProductRead.from_model(product),
    )


@router.delete("/product/{product_id}", response_model=SuccessResponse, dependencies=_admin)
async def delete_product(product_id: uuid.UUID, svc: ProductService = Depends(_svc)):
    await svc.delete(product_id)
    return SuccessResponse(message="Product deleted successfully")
