"""Saved cart (snapshot) store"""

import asyncio
import logging
from datetime import datetime
from typing import Callable, Dict, List, Optional

from cart_engagement.core.config import Settings, settings as default_settings
from cart_engagement.core.exceptions import SavedCartNotFoundError, ValidationError
from cart_engagement.schemas.cart import CartLine, CartSnapshot, SnapshotUpdate
from cart_engagement.utils.helpers import generate_id, utcnow

logger = logging.getLogger(__name__)

SORT_KEYS: Dict[str, Callable[[CartSnapshot], object]] = {
    "name": lambda cart: cart.name.casefold(),
    "created": lambda cart: cart.created_at,
    "updated": lambda cart: cart.updated_at,
    "value": lambda cart: cart.total_value,
}

# Fields an update may not null out
REQUIRED_FIELDS = {"name", "lines", "tags", "is_public"}

def copy_lines(lines: List[CartLine]) -> List[CartLine]:
    """Deep-copy lines so no container shares a line instance"""
    return [line.model_copy(deep=True) for line in lines]

class CartSnapshotStore:
    """Owns named, tagged snapshots of cart contents"""
    
    def __init__(
        self,
        settings: Settings = default_settings,
        clock: Callable[[], datetime] = utcnow
    ):
        self.settings = settings
        self.clock = clock
        self._snapshots: Dict[str, CartSnapshot] = {}
        self._lock = asyncio.Lock()
        
    def __len__(self) -> int:
        return len(self._snapshots)
        
    def all(self) -> List[CartSnapshot]:
        """Copies of every snapshot, for read-only aggregation"""
        return [cart.model_copy(deep=True) for cart in self._snapshots.values()]
        
    async def save(
        self,
        customer_id: str,
        lines: List[CartLine],
        name: str,
        description: Optional[str] = None,
        tags: Optional[List[str]] = None,
        occasion: Optional[str] = None,
        is_public: bool = False
    ) -> CartSnapshot:
        """Persist a named copy of the given cart lines"""
        self._validate(name, lines)
        now = self.clock()
        snapshot = CartSnapshot(
            id=generate_id("saved_cart"),
            name=name,
            description=description,
            customer_id=customer_id,
            lines=copy_lines(lines),
            created_at=now,
            updated_at=now,
            last_accessed_at=now,
            is_public=is_public,
            tags=list(tags or []),
            occasion=occasion
        )
        
        async with self._lock:
            self._snapshots[snapshot.id] = snapshot
            
        logger.info(
            f"Saved cart {snapshot.id} for customer {customer_id} "
            f"({snapshot.line_count} lines, value {snapshot.total_value})"
        )
        return snapshot.model_copy(deep=True)
        
    async def list(
        self,
        customer_id: str,
        tags: Optional[List[str]] = None,
        occasion: Optional[str] = None,
        is_public: Optional[bool] = None,
        sort_by: str = "updated",
        sort_order: str = "desc",
        limit: Optional[int] = None
    ) -> List[CartSnapshot]:
        """Customer's saved carts, filtered and sorted (newest update first by default)"""
        if sort_by not in SORT_KEYS:
            raise ValidationError(f"Unsupported sort key: {sort_by}")
        if sort_order not in ("asc", "desc"):
            raise ValidationError(f"Unsupported sort order: {sort_order}")
        if limit is not None and limit < 0:
            raise ValidationError("limit must not be negative")
            
        async with self._lock:
            carts = [
                cart for cart in self._snapshots.values()
                if cart.customer_id == customer_id
            ]
            
            if tags:
                wanted = set(tags)
                carts = [cart for cart in carts if wanted.intersection(cart.tags)]
            if occasion:
                carts = [cart for cart in carts if cart.occasion == occasion]
            if is_public is not None:
                carts = [cart for cart in carts if cart.is_public == is_public]
                
            # sorted() is stable in both directions
            carts = sorted(carts, key=SORT_KEYS[sort_by], reverse=sort_order == "desc")
            
            if limit is not None:
                carts = carts[:limit]
                
            return [cart.model_copy(deep=True) for cart in carts]
            
    async def get(self, snapshot_id: str, touch: bool = False) -> CartSnapshot:
        """Fetch one snapshot; touch stamps last_accessed_at"""
        async with self._lock:
            snapshot = self._require(snapshot_id)
            if touch:
                snapshot.last_accessed_at = self.clock()
            return snapshot.model_copy(deep=True)
            
    async def update(self, snapshot_id: str, updates: SnapshotUpdate) -> CartSnapshot:
        """Merge the set fields of updates into the snapshot"""
        changes = updates.model_dump(exclude_unset=True)
        
        async with self._lock:
            snapshot = self._require(snapshot_id)
            if "name" in changes or "lines" in changes:
                self._validate(
                    updates.name if updates.name is not None else snapshot.name,
                    updates.lines if updates.lines is not None else snapshot.lines
                )
                
            for field, value in changes.items():
                if value is None and field in REQUIRED_FIELDS:
                    continue
                if field == "lines":
                    value = copy_lines(updates.lines or [])
                elif field == "tags":
                    value = list(value or [])
                setattr(snapshot, field, value)
                
            now = self.clock()
            snapshot.updated_at = now
            snapshot.last_accessed_at = now
            return snapshot.model_copy(deep=True)
            
    async def append_lines(self, snapshot_id: str, lines: List[CartLine]) -> CartSnapshot:
        """Add copies of lines to an existing snapshot"""
        async with self._lock:
            snapshot = self._require(snapshot_id)
            snapshot.lines = snapshot.lines + copy_lines(lines)
            now = self.clock()
            snapshot.updated_at = now
            snapshot.last_accessed_at = now
            return snapshot.model_copy(deep=True)
            
    async def delete(self, snapshot_id: str) -> bool:
        """Remove a snapshot; True only if one existed"""
        async with self._lock:
            removed = self._snapshots.pop(snapshot_id, None) is not None
        if removed:
            logger.info(f"Deleted saved cart {snapshot_id}")
        return removed
        
    def _require(self, snapshot_id: str) -> CartSnapshot:
        snapshot = self._snapshots.get(snapshot_id)
        if snapshot is None:
            raise SavedCartNotFoundError(snapshot_id)
        return snapshot
        
    def _validate(self, name: str, lines: List[CartLine]) -> None:
        if self.settings.SNAPSHOT_REQUIRE_NAME and not name.strip():
            raise ValidationError("Saved cart name is required")
        if self.settings.SNAPSHOT_REQUIRE_LINES and not lines:
            raise ValidationError("Saved cart must contain at least one item")
