"""WhatsApp inquiry service — signed redirect links and inquiry analytics.

Learn: The storefront never shows a product's WhatsApp number directly.
Instead a shopper asks for an inquiry link:

1. POST /whatsapp/product/{id} logs an Inquiry row and returns a
   redirect URL embedding a 5-minute signed token
2. GET /whatsapp/redirect/{token} checks the token and 307-redirects
   to https://wa.me/<number>?text=<prefilled message>

Per product and IP, at most N inquiries per hour are accepted; on top
of that the route itself is rate limited per caller.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

import structlog
from sqlalchemy import distinct, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from catalog.auth.jwt import (
    TokenExpiredError,
    TokenError,
    create_inquiry_token,
    verify_inquiry_token,
)
from catalog.config import settings
from catalog.db.models import Inquiry, Product, build_whatsapp_link, utcnow
from catalog.errors import Gone, NotFound, RateLimited, ValidationError
from catalog.services.category_service import parse_uuid
from catalog.services.product_service import ProductService

logger = structlog.get_logger()

ANALYTICS_LIMIT = 100


@dataclass
class InquiryLink:
    token: str
    expires_in: int


@dataclass
class InquiryStat:
    product_id: uuid.UUID
    product_name: str
    inquiry_count: int
    unique_users: int


class InquiryService:
    """Business logic for WhatsApp inquiries."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.products = ProductService(db)

    async def request_link(
        self,
        product_id: str,
        ip_address: Optional[str],
        user_agent: Optional[str],
        user_id: Optional[uuid.UUID] = None,
        captcha_token: Optional[str] = None,
        honeypot: Optional[str] = None,
    ) -> InquiryLink:
        # Bots fill in the hidden field
        if honeypot:
            raise ValidationError("Invalid request")

        product = await self.products.get_active(product_id)

        since = utcnow() - timedelta(hours=1)
        recent = (
            await self.db.execute(
                select(func.count())
                .select_from(Inquiry)
                .where(
                    Inquiry.product_id == product.id,
                    Inquiry.ip_address == ip_address,
                    Inquiry.created_at >= since,
                )
            )
        ).scalar_one()
        if recent >= settings.whatsapp_inquiries_per_hour:
            raise RateLimited(
                "Too many inquiries for this product. Please try again later."
            )

        self.db.add(
            Inquiry(
                product_id=product.id,
                ip_address=ip_address,
                user_agent=user_agent,
                user_id=user_id,
                verified=bool(captcha_token),
            )
        )
        await self.db.commit()

        ttl = settings.whatsapp_link_ttl_seconds
        token = create_inquiry_token(
            str(product.id), str(user_id) if user_id else None, expires_seconds=ttl
        )
        logger.info("whatsapp.inquiry_logged", product_id=str(product.id))
        return InquiryLink(token=token, expires_in=ttl)

    async def resolve_link(self, token: str) -> str:
        """Turn an inquiry token into the wa.me URL."""
        try:
            payload = verify_inquiry_token(token)
        except TokenExpiredError:
            raise Gone("Inquiry link expired. Please request a new one.")
        except TokenError:
            raise ValidationError("Invalid inquiry link")

        product_id = parse_uuid(payload["productId"])
        product = await self.db.get(Product, product_id) if product_id else None
        if product is None:
            raise NotFound("Product not found")
        return build_whatsapp_link(product)

    async def analytics(
        self,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        product_id: Optional[uuid.UUID] = None,
    ) -> tuple[list[Inquiry], list[InquiryStat]]:
        clauses = []
        if start_date:
            clauses.append(Inquiry.created_at >= start_date)
        if end_date:
            clauses.append(Inquiry.created_at <= end_date)
        if product_id:
            clauses.append(Inquiry.product_id == product_id)

        result = await self.db.execute(
            select(Inquiry)
            .where(*clauses)
            .order_by(Inquiry.created_at.desc())
            .limit(ANALYTICS_LIMIT)
        )
        inquiries = list(result.scalars().all())

        inquiry_count = func.count(Inquiry.id).label("inquiry_count")
        stats_q = (
            select(
                Inquiry.product_id,
                Product.name,
                inquiry_count,
                func.count(distinct(Inquiry.ip_address)).label("unique_users"),
            )
            .join(Product, Product.id == Inquiry.product_id)
            .where(*clauses)
            .group_by(Inquiry.product_id, Product.name)
            .order_by(inquiry_count.desc())
        )
        stats = [
            InquiryStat(
                product_id=row[0],
                product_name=row[1],
                inquiry_count=row[2],
                unique_users=row[3],
            )
            for row in (await self.db.execute(stats_q)).all()
        ]
        return inquiries, stats
