"""
Price watch schemas
"""

from pydantic import Field
from typing import Optional
from datetime import datetime
from decimal import Decimal

from .base import BaseSchema


class PriceWatch(BaseSchema):
    """Customer-set price threshold for a product"""
    id: str
    customer_id: str
    product_id: str
    target_price: Decimal
    last_observed_price: Decimal
    active: bool = True
    created_at: datetime
    fired_at: Optional[datetime] = None
    notifications_sent: int = 0
    notification_cap: int = 3
    email_enabled: bool = True
    push_enabled: bool = False

    @property
    def channels(self) -> list:
        enabled = []
        if self.email_enabled:
            enabled.append("email")
        if self.push_enabled:
            enabled.append("push")
        return enabled


class PriceWatchCreate(BaseSchema):
    """Schema for creating a price watch"""
    customer_id: str
    product_id: str
    target_price: Decimal = Field(..., ge=0)
    current_price: Decimal = Field(..., ge=0)
    email_enabled: bool = True
    push_enabled: bool = False
    notification_cap: Optional[int] = Field(None, ge=1)


class PriceWatchUpdate(BaseSchema):
    """Customer edits to a price watch"""
    target_price: Optional[Decimal] = Field(None, ge=0)
    notification_cap: Optional[int] = Field(None, ge=1)
    email_enabled: Optional[bool] = None
    push_enabled: Optional[bool] = None
    active: Optional[bool] = None


class SweepStats(BaseSchema):
    """Summary of one sweep"""
    checked: int = 0
    triggered: int = 0
    deactivated: int = 0  # also counted in triggered
    skipped: int = 0
    failed: int = 0


class PriceObservation(BaseSchema):
    """Current price reported for a product"""
    price: Decimal = Field(..., ge=0)
