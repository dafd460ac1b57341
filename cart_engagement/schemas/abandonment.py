"""
Abandoned cart recovery schemas
"""

from enum import Enum
from pydantic import Field
from typing import Optional, List, Dict
from datetime import datetime
from decimal import Decimal

from .base import BaseSchema
from .cart import CartLine


class RecoveryStage(str, Enum):
    INITIAL = "initial"
    REMINDER = "reminder"
    FINAL = "final"


class EngagementEvent(str, Enum):
    OPENED = "opened"
    CLICKED = "clicked"


class RecoveryNotification(BaseSchema):
    """Log entry for a sent recovery message"""
    stage: RecoveryStage
    sent_at: datetime
    opened_at: Optional[datetime] = None
    clicked_at: Optional[datetime] = None


class AbandonmentRecord(BaseSchema):
    """Cart contents captured at the moment of abandonment"""
    session_id: str
    customer_id: Optional[str] = None
    contact_handle: Optional[str] = None
    lines: List[CartLine] = Field(default_factory=list)
    captured_total: Decimal = Decimal("0")
    abandoned_at: datetime
    recovery_attempts: int = 0
    last_attempt_at: Optional[datetime] = None
    recovered: bool = False
    recovered_at: Optional[datetime] = None
    notifications: List[RecoveryNotification] = Field(default_factory=list)


class CaptureAbandonmentRequest(BaseSchema):
    """Schema for reporting an abandoned cart"""
    session_id: str
    lines: List[CartLine] = Field(default_factory=list)
    customer_id: Optional[str] = None
    contact_handle: Optional[str] = None


class EngagementRequest(BaseSchema):
    """Open/click tracking for a recovery message"""
    stage: RecoveryStage
    event: EngagementEvent


class RecoveryAnalytics(BaseSchema):
    """Abandonment and recovery figures over a date range"""
    total_abandoned: int
    total_recovered: int
    recovery_rate: float
    average_cart_value: float
    notifications_by_stage: Dict[str, int]
    opened_by_stage: Dict[str, int]
    clicked_by_stage: Dict[str, int]
