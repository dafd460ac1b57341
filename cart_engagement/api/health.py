"""Health check and monitoring endpoints"""

from fastapi import APIRouter, Request
from typing import Dict, Any

from cart_engagement.core.config import settings
from cart_engagement.utils.helpers import utcnow

router = APIRouter()

@router.get("/health")
async def health_check():
    """Basic health check"""
    return {
        "status": "healthy",
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "timestamp": utcnow().isoformat()
    }

@router.get("/health/detailed")
async def detailed_health_check(request: Request) -> Dict[str, Any]:
    """Detailed health check with component status"""
    health_status = {
        "status": "healthy",
        "timestamp": utcnow().isoformat(),
        "components": {}
    }
    
    service = getattr(request.app.state, "cart_service", None)
    if service is None:
        health_status["status"] = "unhealthy"
        health_status["components"]["cart_service"] = {
            "status": "unhealthy",
            "error": "service not initialised"
        }
        return health_status
        
    sweep_running = service.price_alerts.running
    health_status["components"]["price_sweep"] = {
        "status": "healthy" if sweep_running else "stopped",
        "interval_seconds": settings.PRICE_SWEEP_INTERVAL_SECONDS
    }
    if not sweep_running:
        health_status["status"] = "degraded"
        
    health_status["components"]["recovery"] = {
        "status": "healthy",
        "pending_jobs": service.recovery.pending_count()
    }
    
    health_status["metrics"] = {
        "saved_carts": len(service.snapshots),
        "active_shares": service.shares.active_count()
    }
    
    return health_status
