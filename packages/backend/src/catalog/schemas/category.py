"""Pydantic schemas for categories.

Learn: Images are hosted elsewhere; the API only stores the image URL
and the host's public_id. Clients may send either publicId or the
host's own spelling, public_id.
"""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import AliasChoices, Field

from catalog.db.models import Category
from catalog.schemas.common import CamelModel


class CategoryCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=50)
    description: Optional[str] = Field(None, max_length=200)
    sort_order: int = 0
    image_url: Optional[str] = None
    public_id: Optional[str] = Field(
        None, validation_alias=AliasChoices("publicId", "public_id")
    )


class CategoryUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1, max_length=50)
    description: Optional[str] = Field(None, max_length=200)
    sort_order: Optional[int] = None
    is_active: Optional[bool] = None
    image_url: Optional[str] = None
    public_id: Optional[str] = Field(
        None, validation_alias=AliasChoices("publicId", "public_id")
    )


class ImageRef(CamelModel):
    url: str
    public_id: str


class CategoryRead(CamelModel):
    id: uuid.UUID
    name: str
    description: Optional[str] = None
    image: ImageRef
    slug: str
    is_active: bool
    sort_order: int
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_model(cls, category: Category) -> "CategoryRead":
        return cls(
            id=category.id,
            name=category.name,
            description=category.description,
            image=ImageRef(url=category.image_url, public_id=category.image_public_id),
            slug=category.slug,
            is_active=category.is_active,
            sort_order=category.sort_order,
            created_at=category.created_at,
            updated_at=category.updated_at,
        )


class CategorySummary(CamelModel):
    id: uuid.UUID
    name: str
    slug: str


class CategoryResponse(CamelModel):
    success: bool = True
    message: Optional[str] = None
    data: CategoryRead


class CategoryList(CamelModel):
    success: bool = True
    count: int
    data: list[CategoryRead]
