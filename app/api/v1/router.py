"""Main v1 API router that aggregates all sub-routers."""

from fastapi import APIRouter

from .auth import router as auth_router
from .subscriptions import router as subscriptions_router
from .payments import router as payments_router
from .generation import router as generation_router
from .stories import router as stories_router
from .reading import router as reading_router

# Main v1 router
router = APIRouter(prefix="/api/v1")

# Include all sub-routers with appropriate prefixes
router.include_router(auth_router, prefix="/auth", tags=["Auth"])
router.include_router(subscriptions_router, prefix="/subscriptions", tags=["Subscriptions"])
router.include_router(payments_router, prefix="/payments", tags=["Payments"])
router.include_router(generation_router, prefix="/generation", tags=["Generation"])
router.include_router(stories_router, prefix="/stories", tags=["Stories"])
router.include_router(reading_router, prefix="/reading", tags=["Reading"])

__all__ = ["router"]
