"""
Cart recommendation schemas
"""

from enum import Enum
from pydantic import BaseModel, Field
from typing import Optional, List

from .cart import CartLine


class RecommendationKind(str, Enum):
    FREQUENTLY_BOUGHT_TOGETHER = "frequently_bought_together"
    SIMILAR_PRODUCTS = "similar_products"
    PRICE_DROP = "price_drop"
    BACK_IN_STOCK = "back_in_stock"
    CROSS_SELL = "cross_sell"
    UPSELL = "upsell"


class Recommendation(BaseModel):
    """Ranked suggestion, produced fresh per call"""
    kind: RecommendationKind
    product_id: str
    confidence: float = Field(..., ge=0, le=1)
    reason: str
    discount: Optional[int] = None
    priority: int


class RecommendationRequest(BaseModel):
    lines: List[CartLine] = Field(default_factory=list)
