"""Pydantic schemas for WhatsApp inquiries."""

import uuid
from datetime import datetime
from typing import Optional

from catalog.schemas.common import CamelModel


class InquiryRequest(CamelModel):
    captcha_token: Optional[str] = None
    honeypot: Optional[str] = None


class InquiryLinkResponse(CamelModel):
    success: bool = True
    redirect_url: str
    expires_in: int


class InquiryProduct(CamelModel):
    id: uuid.UUID
    name: str
    sku: Optional[str] = None


class InquiryRead(CamelModel):
    id: uuid.UUID
    product: Optional[InquiryProduct] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    user_id: Optional[uuid.UUID] = None
    verified: bool
    created_at: datetime


class InquiryStatRead(CamelModel):
    product_id: uuid.UUID
    product_name: str
    inquiry_count: int
    unique_users: int


class InquiryAnalytics(CamelModel):
    success: bool = True
    data: list[InquiryRead]
    stats: list[InquiryStatRead]
