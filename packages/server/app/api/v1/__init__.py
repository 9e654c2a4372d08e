"""
API v1 Router

All endpoints act on the authenticated user's own subscription and orders.
"""

from fastapi import APIRouter
from . import books, orders, subscription

router = APIRouter()

router.include_router(subscription.router, prefix="/subscription", tags=["Subscription"])
router.include_router(orders.router, prefix="/orders", tags=["Orders"])
router.include_router(books.router, prefix="/books", tags=["Books"])


@router.get("/", tags=["API"])
async def api_root():
    """API root: version and available endpoints."""
    return {
        "api": "v1",
        "version": "0.1.0",
        "endpoints": [
            "/subscription",
            "/subscription/eligibility",
            "/subscription/transition",
            "/orders",
            "/orders/current-cycle",
            "/books",
            "/books/curated",
            "/books/genres",
        ],
    }
