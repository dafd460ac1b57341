"""API v1 routes aggregation"""

from fastapi import APIRouter

from .saved_carts.router import router as saved_carts_router
from .shares.router import router as shares_router
from .bulk.router import router as bulk_router
from .price_alerts.router import router as price_alerts_router
from .recovery.router import router as recovery_router
from .recommendations.router import router as recommendations_router
from .analytics.router import router as analytics_router

# Create v1 router
api_router = APIRouter()

# Include all routers
api_router.include_router(saved_carts_router, prefix="/saved-carts", tags=["Saved Carts"])
api_router.include_router(shares_router, prefix="/shares", tags=["Sharing"])
api_router.include_router(bulk_router, prefix="/bulk-operations", tags=["Bulk Operations"])
api_router.include_router(price_alerts_router, prefix="/price-alerts", tags=["Price Alerts"])
api_router.include_router(recovery_router, prefix="/recovery", tags=["Recovery"])
api_router.include_router(recommendations_router, prefix="/recommendations", tags=["Recommendations"])
api_router.include_router(analytics_router, prefix="/analytics", tags=["Analytics"])

# Export router
router = api_router
