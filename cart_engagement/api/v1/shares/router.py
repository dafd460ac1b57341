"""Cart sharing routes"""

from fastapi import APIRouter, Depends, Request, status
from typing import Optional

from cart_engagement.middleware.rate_limit import share_resolve_limiter
from cart_engagement.schemas.share import (
    ResolveShareRequest,
    ShareCartRequest,
    SharedCartView,
    ShareEditRequest,
    ShareGrant,
)
from cart_engagement.services.cart_lifecycle import CartLifecycleService
from cart_engagement.utils.dependencies import get_caller_id, get_cart_service

router = APIRouter()

@router.post("", response_model=ShareGrant, status_code=status.HTTP_201_CREATED)
async def share_cart(
    share_request: ShareCartRequest,
    service: CartLifecycleService = Depends(get_cart_service)
):
    """Issue a share link for a saved cart"""
    return await service.shares.issue(
        share_request.snapshot_id,
        share_request.issuer_id,
        access_level=share_request.access_level,
        expires_in_hours=share_request.expires_in_hours,
        password=share_request.password,
        allow_anonymous=share_request.allow_anonymous,
        custom_message=share_request.custom_message,
        recipients=share_request.recipients
    )

@router.post("/{token}/resolve", response_model=SharedCartView)
@share_resolve_limiter
async def resolve_share(
    request: Request,
    token: str,
    credentials: ResolveShareRequest,
    caller_id: Optional[str] = Depends(get_caller_id),
    service: CartLifecycleService = Depends(get_cart_service)
):
    """Open a shared cart"""
    return await service.shares.resolve(
        token,
        password=credentials.password,
        caller_id=caller_id
    )

@router.patch("/{token}/cart", response_model=SharedCartView)
@share_resolve_limiter
async def edit_shared_cart(
    request: Request,
    token: str,
    edit: ShareEditRequest,
    caller_id: Optional[str] = Depends(get_caller_id),
    service: CartLifecycleService = Depends(get_cart_service)
):
    """Edit a cart through an edit or admin share link"""
    return await service.shares.update_shared(
        token,
        edit.updates,
        password=edit.password,
        caller_id=caller_id
    )

@router.delete("/{grant_id}")
async def revoke_share(
    grant_id: str,
    service: CartLifecycleService = Depends(get_cart_service)
):
    """Revoke a share link"""
    revoked = await service.shares.revoke(grant_id)
    return {"revoked": revoked}
