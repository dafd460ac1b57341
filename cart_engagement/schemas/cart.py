"""
Cart line and saved cart schemas
"""

from pydantic import Field, computed_field
from typing import Optional, List
from datetime import datetime
from decimal import Decimal

from .base import BaseSchema
from cart_engagement.utils.helpers import utcnow


class VariantSelection(BaseSchema):
    """Variant selectors for a cart line"""
    size: Optional[str] = None
    color: Optional[str] = None
    style: Optional[str] = None


class CatalogRef(BaseSchema):
    """Reference to a category or brand"""
    id: str
    name: str


class CartLine(BaseSchema):
    """One product line in a cart"""
    id: str = Field(..., description="Line identifier")
    product_id: str = Field(..., description="Product ID")
    name: str = Field("", description="Display name")
    unit_price: Decimal = Field(..., ge=0, description="Current unit price")
    original_price: Optional[Decimal] = Field(None, ge=0, description="Pre-discount price")
    quantity: int = Field(..., ge=1, description="Quantity")
    max_quantity: Optional[int] = Field(None, ge=1, description="Purchase limit")
    variant: Optional[VariantSelection] = None
    category: Optional[CatalogRef] = None
    brand: Optional[CatalogRef] = None
    is_available: bool = True
    added_at: datetime = Field(default_factory=utcnow)

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity


def sum_line_values(lines: List[CartLine]) -> Decimal:
    """Sum of unit price times quantity"""
    return sum((line.line_total for line in lines), Decimal("0"))


def sum_line_quantities(lines: List[CartLine]) -> int:
    """Sum of quantities"""
    return sum(line.quantity for line in lines)


class CartSnapshot(BaseSchema):
    """Named, persisted copy of a cart"""
    id: str
    name: str
    description: Optional[str] = None
    customer_id: str
    lines: List[CartLine] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime
    last_accessed_at: datetime
    is_public: bool = False
    tags: List[str] = Field(default_factory=list)
    occasion: Optional[str] = None

    # Totals are derived from the current lines on every read
    @computed_field
    @property
    def total_value(self) -> Decimal:
        return sum_line_values(self.lines)

    @computed_field
    @property
    def total_quantity(self) -> int:
        return sum_line_quantities(self.lines)

    @computed_field
    @property
    def line_count(self) -> int:
        return len(self.lines)


class SaveCartRequest(BaseSchema):
    """Schema for saving a cart snapshot"""
    customer_id: str
    name: str = ""
    lines: List[CartLine] = Field(default_factory=list)
    description: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    occasion: Optional[str] = None
    is_public: bool = False


class SnapshotUpdate(BaseSchema):
    """Partial update for a saved cart; unset fields are left alone"""
    name: Optional[str] = None
    description: Optional[str] = None
    lines: Optional[List[CartLine]] = None
    tags: Optional[List[str]] = None
    occasion: Optional[str] = None
    is_public: Optional[bool] = None
