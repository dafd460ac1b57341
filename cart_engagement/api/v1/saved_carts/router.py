"""Saved cart routes"""

from fastapi import APIRouter, Depends, Query, status
from typing import List, Literal, Optional

from cart_engagement.schemas.cart import CartSnapshot, SaveCartRequest, SnapshotUpdate
from cart_engagement.schemas.share import ShareGrant
from cart_engagement.services.cart_lifecycle import CartLifecycleService
from cart_engagement.utils.dependencies import get_cart_service

router = APIRouter()

@router.post("", response_model=CartSnapshot, status_code=status.HTTP_201_CREATED)
async def save_cart(
    request: SaveCartRequest,
    service: CartLifecycleService = Depends(get_cart_service)
):
    """Save a named copy of a cart"""
    return await service.snapshots.save(
        customer_id=request.customer_id,
        lines=request.lines,
        name=request.name,
        description=request.description,
        tags=request.tags,
        occasion=request.occasion,
        is_public=request.is_public
    )

@router.get("", response_model=List[CartSnapshot])
async def list_saved_carts(
    customer_id: str = Query(...),
    tags: Optional[List[str]] = Query(None),
    occasion: Optional[str] = Query(None),
    is_public: Optional[bool] = Query(None),
    sort_by: Literal["name", "created", "updated", "value"] = Query("updated"),
    sort_order: Literal["asc", "desc"] = Query("desc"),
    limit: Optional[int] = Query(None, ge=1, le=100),
    service: CartLifecycleService = Depends(get_cart_service)
):
    """List a customer's saved carts"""
    return await service.snapshots.list(
        customer_id,
        tags=tags,
        occasion=occasion,
        is_public=is_public,
        sort_by=sort_by,
        sort_order=sort_order,
        limit=limit
    )

@router.get("/{snapshot_id}", response_model=CartSnapshot)
async def get_saved_cart(
    snapshot_id: str,
    service: CartLifecycleService = Depends(get_cart_service)
):
    """Open a saved cart"""
    return await service.snapshots.get(snapshot_id, touch=True)

@router.patch("/{snapshot_id}", response_model=CartSnapshot)
async def update_saved_cart(
    snapshot_id: str,
    updates: SnapshotUpdate,
    service: CartLifecycleService = Depends(get_cart_service)
):
    """Rename, retag or replace the items of a saved cart"""
    return await service.snapshots.update(snapshot_id, updates)

@router.delete("/{snapshot_id}")
async def delete_saved_cart(
    snapshot_id: str,
    service: CartLifecycleService = Depends(get_cart_service)
):
    """Delete a saved cart"""
    deleted = await service.snapshots.delete(snapshot_id)
    return {"deleted": deleted}

@router.get("/{snapshot_id}/shares", response_model=List[ShareGrant])
async def list_cart_shares(
    snapshot_id: str,
    service: CartLifecycleService = Depends(get_cart_service)
):
    """Active share links for a saved cart"""
    return await service.shares.list_grants(snapshot_id)
