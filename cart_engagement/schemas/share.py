"""
Share grant schemas
"""

from enum import Enum
from pydantic import Field
from typing import Optional, List
from datetime import datetime

from .base import BaseSchema
from .cart import CartSnapshot, SnapshotUpdate


class AccessLevel(str, Enum):
    VIEW = "view"
    EDIT = "edit"
    ADMIN = "admin"


class ShareGrant(BaseSchema):
    """Time-boxed capability token exposing a saved cart"""
    id: str
    share_token: str
    snapshot_id: str
    issued_by: str
    recipients: Optional[List[str]] = None
    access_level: AccessLevel = AccessLevel.VIEW
    expires_at: Optional[datetime] = None
    password_hash: Optional[str] = Field(None, exclude=True, repr=False)
    is_password_protected: bool = False
    allow_anonymous: bool = True
    access_count: int = 0
    last_accessed_at: Optional[datetime] = None
    custom_message: Optional[str] = None
    created_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at is not None and self.expires_at <= now


class SharedCartView(BaseSchema):
    """Result of resolving a share token"""
    grant: ShareGrant
    snapshot: CartSnapshot


class ShareCartRequest(BaseSchema):
    """Schema for issuing a share link"""
    snapshot_id: str
    issuer_id: str
    access_level: AccessLevel = AccessLevel.VIEW
    expires_in_hours: Optional[float] = Field(None, gt=0)
    password: Optional[str] = Field(None, min_length=1)
    allow_anonymous: bool = True
    custom_message: Optional[str] = Field(None, max_length=500)
    recipients: Optional[List[str]] = None


class ResolveShareRequest(BaseSchema):
    """Credentials presented when opening a share link"""
    password: Optional[str] = None


class ShareEditRequest(BaseSchema):
    """Edit a shared cart through an edit/admin link"""
    password: Optional[str] = None
    updates: SnapshotUpdate
