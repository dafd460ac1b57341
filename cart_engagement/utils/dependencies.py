"""
Common dependencies for FastAPI
"""

from typing import Optional
from fastapi import Header, Request

from cart_engagement.services.cart_lifecycle import CartLifecycleService

def get_cart_service(request: Request) -> CartLifecycleService:
    """Service instance built by the application lifespan"""
    return request.app.state.cart_service

def get_caller_id(
    x_customer_id: Optional[str] = Header(None, alias="X-Customer-ID")
) -> Optional[str]:
    """Caller identity forwarded by the storefront"""
    return x_customer_id or None
