"""Abandoned cart recovery routes"""

from fastapi import APIRouter, Depends, Query, status
from datetime import datetime
from typing import Optional

from cart_engagement.core.exceptions import NotFoundError
from cart_engagement.schemas.abandonment import (
    AbandonmentRecord,
    CaptureAbandonmentRequest,
    EngagementRequest,
    RecoveryAnalytics,
)
from cart_engagement.services.cart_lifecycle import CartLifecycleService
from cart_engagement.utils.dependencies import get_cart_service

router = APIRouter()

@router.post(
    "/abandonments",
    response_model=AbandonmentRecord,
    status_code=status.HTTP_201_CREATED
)
async def capture_abandonment(
    capture: CaptureAbandonmentRequest,
    service: CartLifecycleService = Depends(get_cart_service)
):
    """Record an abandoned cart and start its recovery sequence"""
    return await service.recovery.capture(
        capture.session_id,
        capture.lines,
        customer_id=capture.customer_id,
        contact_handle=capture.contact_handle
    )

@router.get("/abandonments/{session_id}", response_model=AbandonmentRecord)
async def get_abandonment(
    session_id: str,
    service: CartLifecycleService = Depends(get_cart_service)
):
    return await service.recovery.get(session_id)

@router.post("/abandonments/{session_id}/recovered")
async def mark_recovered(
    session_id: str,
    service: CartLifecycleService = Depends(get_cart_service)
):
    """Stop the recovery sequence for a cart that was checked out"""
    if not await service.recovery.mark_recovered(session_id):
        raise NotFoundError(
            f"Abandoned cart not found: {session_id}",
            error_code="ABANDONED_CART_NOT_FOUND"
        )
    return {"recovered": True}

@router.post("/abandonments/{session_id}/engagement", response_model=AbandonmentRecord)
async def track_engagement(
    session_id: str,
    engagement: EngagementRequest,
    service: CartLifecycleService = Depends(get_cart_service)
):
    """Record that a recovery message was opened or clicked"""
    return await service.recovery.record_engagement(
        session_id, engagement.stage, engagement.event
    )

@router.get("/analytics", response_model=RecoveryAnalytics)
async def get_recovery_analytics(
    date_from: Optional[datetime] = Query(None),
    date_to: Optional[datetime] = Query(None),
    service: CartLifecycleService = Depends(get_cart_service)
):
    """Abandonment and recovery figures"""
    return await service.recovery.analytics(date_from, date_to)
