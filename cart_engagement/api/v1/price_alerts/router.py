"""Price alert routes"""

from fastapi import APIRouter, Depends, Query, status
from typing import List

from cart_engagement.schemas.price_alert import (
    PriceObservation,
    PriceWatch,
    PriceWatchCreate,
    PriceWatchUpdate,
    SweepStats,
)
from cart_engagement.services.cart_lifecycle import CartLifecycleService
from cart_engagement.utils.dependencies import get_cart_service

router = APIRouter()

@router.post("", response_model=PriceWatch, status_code=status.HTTP_201_CREATED)
async def create_price_alert(
    alert: PriceWatchCreate,
    service: CartLifecycleService = Depends(get_cart_service)
):
    """Watch a product for a price drop"""
    return await service.price_alerts.create(
        alert.customer_id,
        alert.product_id,
        alert.target_price,
        alert.current_price,
        email_enabled=alert.email_enabled,
        push_enabled=alert.push_enabled,
        notification_cap=alert.notification_cap
    )

@router.get("", response_model=List[PriceWatch])
async def list_price_alerts(
    customer_id: str = Query(...),
    active_only: bool = Query(False),
    service: CartLifecycleService = Depends(get_cart_service)
):
    """Customer's price alerts, newest first"""
    return await service.price_alerts.list(customer_id, active_only=active_only)

@router.post("/sweep", response_model=SweepStats)
async def run_price_sweep(
    service: CartLifecycleService = Depends(get_cart_service)
):
    """Run a price sweep now instead of waiting for the next tick"""
    return await service.price_alerts.sweep()

@router.put("/prices/{product_id}")
async def observe_price(
    product_id: str,
    observation: PriceObservation,
    service: CartLifecycleService = Depends(get_cart_service)
):
    """Report a product's current price for the next sweep"""
    price = service.observe_price(product_id, observation.price)
    return {"product_id": product_id, "price": str(price)}

@router.get("/{alert_id}", response_model=PriceWatch)
async def get_price_alert(
    alert_id: str,
    service: CartLifecycleService = Depends(get_cart_service)
):
    return await service.price_alerts.get(alert_id)

@router.patch("/{alert_id}", response_model=PriceWatch)
async def update_price_alert(
    alert_id: str,
    updates: PriceWatchUpdate,
    service: CartLifecycleService = Depends(get_cart_service)
):
    """Change target price, channels or limit"""
    return await service.price_alerts.update(alert_id, updates)

@router.delete("/{alert_id}")
async def delete_price_alert(
    alert_id: str,
    service: CartLifecycleService = Depends(get_cart_service)
):
    deleted = await service.price_alerts.delete(alert_id)
    return {"deleted": deleted}
