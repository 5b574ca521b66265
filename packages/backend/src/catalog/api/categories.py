"""Category API routes.

Learn: Reads are public; writes go through require_admin. Routes only
translate between HTTP and CategoryService, the service raises the
errors.
"""

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from catalog.auth.dependencies import require_admin
from catalog.db.engine import get_db
from catalog.schemas.category import (
    CategoryCreate,
    CategoryList,
    CategoryRead,
    CategoryResponse,
    CategoryUpdate,
)
from catalog.schemas.common import SuccessResponse
from catalog.services.category_service import CategoryService

router = APIRouter()

_admin = [Depends(require_admin)]


def _svc(db: AsyncSession = Depends(get_db)) -> CategoryService:
    return CategoryService(db)


@router.get("/categories", response_model=CategoryList)
async def list_categories(svc: CategoryService = Depends(_svc)):
    categories = await svc.list_active()
    return CategoryList(
        count=len(categories),
        data=[CategoryRead.from_model(c) for c in categories],
    )


@router.get("/category/{identifier}", response_model=CategoryResponse)
async def get_category(identifier: str, svc: CategoryService = Depends(_svc)):
    """Get an active category by id or slug."""
    category = await svc.get_active(identifier)
    return CategoryResponse(data=CategoryRead.from_model(category))


@router.post(
    "/category", response_model=CategoryResponse, status_code=201, dependencies=_admin
)
async def create_category(body: CategoryCreate, svc: CategoryService = Depends(_svc)):
    category = await svc.create(
        name=body.name,
        description=body.description,
        sort_order=body.sort_order,
        image_url=body.image_url,
        public_id=body.public_id,
    )
    return CategoryResponse(
        message="Category created successfully",
        data=CategoryRead.from_model(category),
    )


@router.put("/category/{category_id}", response_model=CategoryResponse, dependencies=_admin)
async def update_category(
    category_id: uuid.UUID,
    body: CategoryUpdate,
    svc: CategoryService = Depends(_svc),
):
    category = await svc.update(
        category_id,
        name=body.name,
        description=body.description,
        sort_order=body.sort_order,
        is_active=body.is_active,
        image_url=body.image_url,
        public_id=body.public_id,
        fields_set=frozenset(body.model_fields_set),
    )
    return CategoryResponse(
        message="Category updated successfully",
        data=CategoryRead.from_model(category),
    )


@router.delete("/category/{category_id}", response_model=SuccessResponse, dependencies=_admin)
async def delete_category(category_id: uuid.UUID, svc: CategoryService = Depends(_svc)):
    await svc.delete(category_id)
    return SuccessResponse(message="Category deleted successfully")
