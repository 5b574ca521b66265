"""API route aggregation.

All routers registered here get mounted in main.py under /api.

Learn: Unlike a blanket include_router(dependencies=...) guard, the
catalogue mixes public reads and admin writes inside the same router,
so the admin check sits on the individual write routes.
"""

from fastapi import APIRouter

from catalog.api.auth import router as auth_router
from catalog.api.categories import router as categories_router
from catalog.api.health import router as health_router
from catalog.api.products import router as products_router
from catalog.api.whatsapp import router as whatsapp_router

api_router = APIRouter(prefix="/api")

api_router.include_router(health_router, tags=["health"])
api_router.include_router(auth_router, tags=["auth"])
api_router.include_router(categories_router, tags=["categories"])
api_router.include_router(products_router, tags=["products"])
api_router.include_router(whatsapp_router, tags=["whatsapp"])
