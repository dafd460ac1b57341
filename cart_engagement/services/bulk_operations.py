"""Bulk operations across the lines of a caller's cart"""

import asyncio
import copy
import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Tuple

from pydantic import ValidationError as PydanticValidationError

from cart_engagement.core.config import Settings, settings as default_settings
from cart_engagement.core.exceptions import NotFoundError, ValidationError
from cart_engagement.schemas.bulk import BulkMutationRecord, BulkOperationKind, BulkOutcome
from cart_engagement.schemas.cart import CartLine, VariantSelection
from cart_engagement.services.snapshot_store import CartSnapshotStore
from cart_engagement.utils.helpers import apply_percentage_discount, utcnow

logger = logging.getLogger(__name__)

VARIANT_KEYS = set(VariantSelection.model_fields)

class BulkMutationExecutor:
    """
    Applies one operation to many cart lines as a single logical unit.
    
    Operations are best-effort: ids missing from the cart are reported in
    the outcome's error list while the remaining lines are still changed.
    Every executed operation is appended to an append-only history.
    """
    
    def __init__(
        self,
        store: CartSnapshotStore,
        settings: Settings = default_settings,
        clock: Callable[[], datetime] = utcnow
    ):
        self.store = store
        self.settings = settings
        self.clock = clock
        self._history: List[BulkMutationRecord] = []
        self._lock = asyncio.Lock()
        
    async def execute(
        self,
        kind: BulkOperationKind,
        target_ids: List[str],
        payload: Dict[str, Any],
        executor_id: str,
        lines: List[CartLine]
    ) -> BulkMutationRecord:
        """
        Run a bulk operation against the caller's live cart
        
        Args:
            kind: Operation kind
            target_ids: Line ids to operate on
            payload: Kind-specific arguments
            executor_id: Who ran the operation
            lines: Caller-owned cart lines, changed in place
            
        Returns:
            The history record for this execution
            
        Raises:
            ValidationError: Unknown kind or malformed payload
        """
        try:
            kind = BulkOperationKind(kind)
        except ValueError:
            raise ValidationError(f"Unsupported bulk operation: {kind}")
        if not target_ids:
            raise ValidationError("No items selected")
        payload = dict(payload or {})
        
        async with self._lock:
            if kind == BulkOperationKind.UPDATE_QUANTITY:
                outcome = self._update_quantity(lines, target_ids, payload)
            elif kind == BulkOperationKind.REMOVE_ITEMS:
                outcome = self._remove_items(lines, target_ids)
            elif kind == BulkOperationKind.MOVE_TO_SAVED:
                outcome = await self._move_to_saved(lines, target_ids, payload)
            elif kind == BulkOperationKind.APPLY_DISCOUNT:
                outcome = self._apply_discount(lines, target_ids, payload)
            elif kind == BulkOperationKind.CHANGE_VARIANT:
                outcome = self._change_variant(lines, target_ids, payload)
            else:
                raise ValidationError(f"Unsupported bulk operation: {kind.value}")
                
            record = BulkMutationRecord(
                kind=kind,
                target_ids=tuple(target_ids),
                payload=copy.deepcopy(payload),
                executed_by=executor_id,
                executed_at=self.clock(),
                success=outcome.success,
                affected_count=outcome.affected_count,
                errors=tuple(outcome.errors)
            )
            self._history.append(record)
            
        if outcome.errors:
            logger.warning(
                f"Bulk {kind.value} by {executor_id}: {outcome.affected_count} affected, "
                f"{len(outcome.errors)} error(s)"
            )
        else:
            logger.info(f"Bulk {kind.value} by {executor_id}: {outcome.affected_count} affected")
        return record.model_copy(deep=True)
        
    def history(self, executor_id: Optional[str] = None) -> List[BulkMutationRecord]:
        """Executed operations in execution order"""
        if executor_id is None:
            records = self._history
        else:
            records = [record for record in self._history if record.executed_by == executor_id]
        return [record.model_copy(deep=True) for record in records]
        
    def _update_quantity(
        self,
        lines: List[CartLine],
        target_ids: List[str],
        payload: Dict[str, Any]
    ) -> BulkOutcome:
        quantity = payload.get("quantity")
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
            raise ValidationError("quantity must be a positive integer")
            
        found, outcome = self._select(lines, target_ids)
        for line in found:
            if line.max_quantity is not None and quantity > line.max_quantity:
                outcome.errors.append(
                    f"Item {line.id}: quantity {quantity} exceeds limit of {line.max_quantity}"
                )
                continue
            line.quantity = quantity
            outcome.affected_count += 1
        return outcome
        
    def _remove_items(self, lines: List[CartLine], target_ids: List[str]) -> BulkOutcome:
        found, outcome = self._select(lines, target_ids)
        removed = {id(line) for line in found}
        lines[:] = [line for line in lines if id(line) not in removed]
        outcome.affected_count = len(found)
        return outcome
        
    async def _move_to_saved(
        self,
        lines: List[CartLine],
        target_ids: List[str],
        payload: Dict[str, Any]
    ) -> BulkOutcome:
        snapshot_id = payload.get("snapshot_id")
        if not isinstance(snapshot_id, str) or not snapshot_id:
            raise ValidationError("snapshot_id is required")
            
        found, outcome = self._select(lines, target_ids)
        if not found:
            return outcome
        try:
            await self.store.append_lines(snapshot_id, found)
        except NotFoundError:
            return BulkOutcome(errors=[f"Saved cart not found: {snapshot_id}"])
            
        moved = {id(line) for line in found}
        lines[:] = [line for line in lines if id(line) not in moved]
        outcome.affected_count = len(found)
        return outcome
        
    def _apply_discount(
        self,
        lines: List[CartLine],
        target_ids: List[str],
        payload: Dict[str, Any]
    ) -> BulkOutcome:
        code = payload.get("discount_code")
        if not isinstance(code, str) or not code:
            raise ValidationError("discount_code is required")
            
        percent = self.settings.DISCOUNT_CODES.get(code.upper())
        if percent is None:
            return BulkOutcome(errors=[f"Invalid discount code: {code}"])
            
        found, outcome = self._select(lines, target_ids)
        for line in found:
            # Always discount from the list price so codes never compound
            base_price = line.original_price if line.original_price is not None else line.unit_price
            line.original_price = base_price
            line.unit_price = apply_percentage_discount(base_price, percent)
            outcome.affected_count += 1
        return outcome
        
    def _change_variant(
        self,
        lines: List[CartLine],
        target_ids: List[str],
        payload: Dict[str, Any]
    ) -> BulkOutcome:
        variant = payload.get("variant")
        if not isinstance(variant, dict) or not variant:
            raise ValidationError("variant must be a non-empty mapping")
        unknown = set(variant) - VARIANT_KEYS
        if unknown:
            raise ValidationError(f"Unknown variant selector(s): {', '.join(sorted(unknown))}")
        try:
            VariantSelection(**variant)
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid variant: {e.errors()[0]['msg']}")
            
        found, outcome = self._select(lines, target_ids)
        for line in found:
            current = line.variant.model_dump() if line.variant else {}
            current.update(variant)
            line.variant = VariantSelection(**current)
            outcome.affected_count += 1
        return outcome
        
    @staticmethod
    def _select(
        lines: List[CartLine],
        target_ids: List[str]
    ) -> Tuple[List[CartLine], BulkOutcome]:
        """Lines matching target ids plus an error per missing id"""
        by_id = {line.id: line for line in lines}
        outcome = BulkOutcome()
        found = []
        seen = set()
        for line_id in target_ids:
            if line_id in seen:
                continue
            seen.add(line_id)
            line = by_id.get(line_id)
            if line is None:
                outcome.errors.append(f"Item {line_id} not found in cart")
            else:
                found.append(line)
        return found, outcome
