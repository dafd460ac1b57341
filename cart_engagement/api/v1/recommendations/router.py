"""Cart recommendation routes"""

from fastapi import APIRouter, Depends
from typing import List

from cart_engagement.schemas.recommendation import Recommendation, RecommendationRequest
from cart_engagement.services.cart_lifecycle import CartLifecycleService
from cart_engagement.utils.dependencies import get_cart_service

router = APIRouter()

@router.post("", response_model=List[Recommendation])
async def get_cart_recommendations(
    request: RecommendationRequest,
    service: CartLifecycleService = Depends(get_cart_service)
):
    """Suggestions for the current cart contents"""
    return service.recommend(request.lines)
