"""Pydantic schemas for products."""

import uuid
from datetime import datetime
from typing import Literal, Optional

from pydantic import AliasChoices, Field, model_validator

from catalog.db.models import Product
from catalog.schemas.category import CategorySummary
from catalog.schemas.common import CamelModel

WHATSAPP_NUMBER_PATTERN = r"^\+?[1-9]\d{1,14}$"

SORT_OPTIONS = ("-createdAt", "createdAt", "price", "-price", "name", "-name", "featured")


class ProductImage(CamelModel):
    url: str
    public_id: str = Field(..., validation_alias=AliasChoices("publicId", "public_id"))
    alt: str = ""


class Price(CamelModel):
    original: float = Field(..., ge=0)
    discounted: Optional[float] = Field(None, ge=0)

    @model_validator(mode="after")
    def discount_not_above_original(self):
        if self.discounted and self.discounted > self.original:
            raise ValueError("Discounted price cannot exceed original price")
        return self


class Variant(CamelModel):
    type: Literal["size", "color", "material", "style", "custom"]
    name: str = Field(..., min_length=1)
    value: str = Field(..., min_length=1)
    available: bool = True
    stock: int = Field(0, ge=0)


class ProductCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: str = Field(..., min_length=1, max_length=1000)
    category: uuid.UUID
    price: Price
    images: Optional[list[ProductImage]] = None
    variants: list[Variant] = Field(default_factory=list)
    specifications: dict[str, str] = Field(default_factory=dict)
    tags: list[str] = Field(default_factory=list)
    sku: Optional[str] = Field(None, max_length=50)
    whatsapp_number: str = Field(..., pattern=WHATSAPP_NUMBER_PATTERN)
    whatsapp_message: Optional[str] = Field(None, max_length=500)
    is_featured: bool = False
    sort_order: int = 0


class ProductUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=1000)
    category: Optional[uuid.UUID] = None
    price: Optional[Price] = None
    variants: Optional[list[Variant]] = None
    specifications: Optional[dict[str, str]] = None
    tags: Optional[list[str]] = None
    whatsapp_number: Optional[str] = Field(None, pattern=WHATSAPP_NUMBER_PATTERN)
    whatsapp_message: Optional[str] = Field(None, max_length=500)
    is_featured: Optional[bool] = None
    is_active: Optional[bool] = None
    sort_order: Optional[int] = None
    remove_images: Optional[list[str]] = None  # public ids
    new_images: Optional[list[ProductImage]] = None


class Rating(CamelModel):
    average: float
    count: int


class ProductRead(CamelModel):
    id: uuid.UUID
    name: str
    description: str
    category: Optional[CategorySummary] = None
    images: list[ProductImage]
    price: Price
    variants: list[Variant]
    specifications: dict[str, str]
    tags: list[str]
    sku: Optional[str] = None
    is_active: bool
    is_featured: bool
    sort_order: int
    whatsapp_number: str
    whatsapp_message: str
    views: int
    rating: Rating
    discount_percentage: int
    effective_price: float
    whatsapp_link: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_model(cls, product: Product) -> "ProductRead":
        category = product.category
        return cls(
            id=product.id,
            name=product.name,
            description=product.description,
            category=CategorySummary.model_validate(category) if category else None,
            images=[ProductImage.model_validate(i) for i in product.images or []],
            price=Price(
                original=product.price_original, discounted=product.price_discounted
            ),
            variants=[Variant.model_validate(v) for v in product.variants or []],
            specifications=product.specifications or {},
            tags=product.tags or [],
            sku=product.sku,
            is_active=product.is_active,
            is_featured=product.is_featured,
            sort_order=product.sort_order,
            whatsapp_number=product.whatsapp_number,
            whatsapp_message=product.whatsapp_message,
            views=product.views,
            rating=Rating(average=product.rating_average, count=product.rating_count),
            discount_percentage=product.discount_percentage,
            effective_price=product.effective_price,
            whatsapp_link=product.whatsapp_link,
            created_at=product.created_at,
            updated_at=product.updated_at,
        )


class ProductResponse(CamelModel):
    success: bool = True
    message: Optional[str] = None
    data: ProductRead


class ProductList(CamelModel):
    success: bool = True
    count: int
    data: list[ProductRead]


class ProductPage(CamelModel):
    success: bool = True
    query: Optional[str] = None
    category: Optional[CategorySummary] = None
    count: int
    total: int
    page: int
    pages: int
    data: list[ProductRead]
