"""Bulk cart operation routes"""

from fastapi import APIRouter, Depends, Query
from typing import List, Optional

from cart_engagement.schemas.bulk import (
    BulkMutationRecord,
    BulkOperationRequest,
    BulkOperationResponse,
)
from cart_engagement.services.cart_lifecycle import CartLifecycleService
from cart_engagement.utils.dependencies import get_cart_service

router = APIRouter()

@router.post("", response_model=BulkOperationResponse)
async def perform_bulk_operation(
    request: BulkOperationRequest,
    service: CartLifecycleService = Depends(get_cart_service)
):
    """Apply one operation to many lines of the caller's cart"""
    lines = list(request.lines)
    record = await service.bulk.execute(
        request.kind,
        request.target_ids,
        request.payload,
        request.executor_id,
        lines
    )
    return BulkOperationResponse(operation=record, lines=lines)

@router.get("/history", response_model=List[BulkMutationRecord])
async def get_bulk_history(
    executor_id: Optional[str] = Query(None),
    service: CartLifecycleService = Depends(get_cart_service)
):
    """Executed bulk operations, oldest first"""
    return service.bulk.history(executor_id)
