"""Cart analytics routes"""

from fastapi import APIRouter, Depends

from cart_engagement.schemas.analytics import CartAnalytics
from cart_engagement.services.cart_lifecycle import CartLifecycleService
from cart_engagement.utils.dependencies import get_cart_service

router = APIRouter()

@router.get("/carts", response_model=CartAnalytics)
async def get_cart_analytics(
    service: CartLifecycleService = Depends(get_cart_service)
):
    """Saved cart, sharing, abandonment and alert figures"""
    return await service.analytics.summary()
