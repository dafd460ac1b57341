"""
Bulk cart operation schemas
"""

from enum import Enum
from pydantic import BaseModel, Field
from typing import Any, Dict, List, Tuple
from datetime import datetime

from .base import BaseSchema
from .cart import CartLine


class BulkOperationKind(str, Enum):
    UPDATE_QUANTITY = "update_quantity"
    REMOVE_ITEMS = "remove_items"
    MOVE_TO_SAVED = "move_to_saved"
    APPLY_DISCOUNT = "apply_discount"
    CHANGE_VARIANT = "change_variant"


class BulkOutcome(BaseModel):
    """What a single handler reports back"""
    affected_count: int = 0
    errors: List[str] = Field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.errors


class BulkMutationRecord(BaseModel):
    """Immutable history entry for an executed bulk operation"""
    kind: BulkOperationKind
    target_ids: Tuple[str, ...]
    payload: Dict[str, Any] = Field(default_factory=dict)
    executed_by: str
    executed_at: datetime
    success: bool
    affected_count: int
    errors: Tuple[str, ...] = ()

    class Config:
        frozen = True


class BulkOperationRequest(BaseSchema):
    """Schema for a bulk operation over the caller's cart"""
    kind: BulkOperationKind
    target_ids: List[str]
    payload: Dict[str, Any] = Field(default_factory=dict)
    executor_id: str
    lines: List[CartLine] = Field(default_factory=list, description="Caller's live cart")


class BulkOperationResponse(BaseSchema):
    """Record plus the caller's cart after the operation"""
    operation: BulkMutationRecord
    lines: List[CartLine]
