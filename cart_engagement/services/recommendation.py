"""Rule-based cart recommendations"""

from statistics import mean
from typing import List, Optional

from cart_engagement.core.config import settings
from cart_engagement.schemas.cart import CartLine
from cart_engagement.schemas.recommendation import Recommendation, RecommendationKind

# Category names that qualify a cart for accessory cross-sells
ELECTRONICS_KEYWORDS = ("electronic", "audio", "computer", "phone", "camera", "gaming")

UPSELL_DISCOUNT_PERCENT = 10

def is_electronics(line: CartLine) -> bool:
    if line.category is None:
        return False
    category = line.category.name.lower()
    return any(keyword in category for keyword in ELECTRONICS_KEYWORDS)

def recommend(
    lines: List[CartLine],
    upsell_threshold: Optional[float] = None
) -> List[Recommendation]:
    """
    Ranked suggestions for the current cart contents
    
    Args:
        lines: Cart lines; not modified
        upsell_threshold: Mean unit price above which an upsell is offered
        
    Returns:
        Recommendations ordered by priority, ties in insertion order
    """
    if not lines:
        return []
        
    threshold = settings.UPSELL_PRICE_THRESHOLD if upsell_threshold is None else upsell_threshold
    anchor = max(lines, key=lambda line: line.line_total)
    
    recommendations = [
        Recommendation(
            kind=RecommendationKind.FREQUENTLY_BOUGHT_TOGETHER,
            product_id=f"bundle:{anchor.product_id}",
            confidence=0.85,
            reason="Customers who bought these items also purchased this",
            priority=1
        )
    ]
    
    electronics = next((line for line in lines if is_electronics(line)), None)
    if electronics is not None:
        recommendations.append(
            Recommendation(
                kind=RecommendationKind.CROSS_SELL,
                product_id=f"accessory:{electronics.product_id}",
                confidence=0.72,
                reason="Perfect accessory for your electronics",
                priority=2
            )
        )
        
    if float(mean(line.unit_price for line in lines)) > threshold:
        premium = max(lines, key=lambda line: line.unit_price)
        recommendations.append(
            Recommendation(
                kind=RecommendationKind.UPSELL,
                product_id=f"premium:{premium.product_id}",
                confidence=0.68,
                reason="Upgrade to premium version",
                discount=UPSELL_DISCOUNT_PERCENT,
                priority=3
            )
        )
        
    return sorted(recommendations, key=lambda rec: rec.priority)
