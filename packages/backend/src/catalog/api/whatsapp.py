"""WhatsApp inquiry API routes.

Learn: The link request is doubly limited: the route dependency allows
5 requests per hour per caller, and the service allows a few inquiries
per product per IP per hour. The redirect endpoint answers with a
plain 307 so browsers land straight in WhatsApp.
"""

import uuid
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession

from catalog.auth.dependencies import (
    CurrentIdentity,
    get_optional_identity,
    require_admin,
)
from catalog.db.engine import get_db
from catalog.ratelimit.dependencies import RateLimit, client_ip
from catalog.schemas.inquiry import (
    InquiryAnalytics,
    InquiryLinkResponse,
    InquiryRead,
    InquiryRequest,
    InquiryStatRead,
)
from catalog.services.inquiry_service import InquiryService

router = APIRouter(prefix="/whatsapp")

_inquiry_limit = RateLimit("whatsapp-inquiry", 5, 60 * 60)


def _svc(db: AsyncSession = Depends(get_db)) -> InquiryService:
    return InquiryService(db)


@router.post(
    "/product/{product_id}",
    response_model=InquiryLinkResponse,
    dependencies=[Depends(_inquiry_limit)],
)
async def request_inquiry_link(
    product_id: str,
    request: Request,
    body: InquiryRequest | None = None,
    identity: Optional[CurrentIdentity] = Depends(get_optional_identity),
    svc: InquiryService = Depends(_svc),
):
    """Log an inquiry and hand out a short-lived redirect URL."""
    body = body or InquiryRequest()
    link = await svc.request_link(
        product_id,
        ip_address=client_ip(request),
        user_agent=request.headers.get("user-agent"),
        user_id=identity.user_id if identity else None,
        captcha_token=body.captcha_token,
        honeypot=body.honeypot,
    )
    redirect_url = str(
        request.url_for("redirect_to_whatsapp", token=link.token)
    )
    return InquiryLinkResponse(redirect_url=redirect_url, expires_in=link.expires_in)


@router.get("/redirect/{token}", name="redirect_to_whatsapp")
async def redirect_to_whatsapp(token: str, svc: InquiryService = Depends(_svc)):
    url = await svc.resolve_link(token)
    return RedirectResponse(url, status_code=307)


@router.get("/admin/inquiries", response_model=InquiryAnalytics)
async def inquiry_analytics(
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    product_id: Optional[uuid.UUID] = Query(None, alias="productId"),
    _admin: CurrentIdentity = Depends(require_admin),
    svc: InquiryService = Depends(_svc),
):
    """Latest inquiries plus per-product counts (admin only)."""
    inquiries, stats = await svc.analytics(start_date, end_date, product_id)
    return InquiryAnalytics(
        data=[InquiryRead.model_validate(i) for i in inquiries],
        stats=[
            InquiryStatRead(
                product_id=s.product_id,
                product_name=s.product_name,
                inquiry_count=s.inquiry_count,
                unique_users=s.unique_users,
            )
            for s in stats
        ],
    )
