"""Abandoned cart recovery service"""

import logging
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional, Tuple

from cart_engagement.core.config import Settings, settings as default_settings
from cart_engagement.core.exceptions import NotFoundError
from cart_engagement.core.locks import KeyedLock
from cart_engagement.core.scheduler import ScheduledHandle, Scheduler
from cart_engagement.schemas.abandonment import (
    AbandonmentRecord,
    EngagementEvent,
    RecoveryAnalytics,
    RecoveryNotification,
    RecoveryStage,
)
from cart_engagement.schemas.cart import CartLine, sum_line_values
from cart_engagement.services.notification import (
    NotificationChannel,
    NotificationSink,
    NotificationTemplate,
)
from cart_engagement.services.snapshot_store import copy_lines
from cart_engagement.utils.helpers import safe_mean, safe_rate, utcnow, within_range

logger = logging.getLogger(__name__)

STAGE_TEMPLATES = {
    RecoveryStage.INITIAL: NotificationTemplate.CART_RECOVERY_INITIAL,
    RecoveryStage.REMINDER: NotificationTemplate.CART_RECOVERY_REMINDER,
    RecoveryStage.FINAL: NotificationTemplate.CART_RECOVERY_FINAL,
}

class AbandonmentRecoveryScheduler:
    """Service for recovering abandoned carts"""
    
    def __init__(
        self,
        sink: NotificationSink,
        scheduler: Scheduler,
        settings: Settings = default_settings,
        clock: Callable[[], datetime] = utcnow
    ):
        self.sink = sink
        self.scheduler = scheduler
        self.settings = settings
        self.clock = clock
        self._records: Dict[str, AbandonmentRecord] = {}
        self._pending: Dict[str, List[ScheduledHandle]] = {}
        self._locks = KeyedLock()
        
    @property
    def schedule(self) -> List[Tuple[RecoveryStage, timedelta]]:
        """Recovery stages and their offsets from abandonment"""
        return [
            (RecoveryStage.INITIAL, timedelta(hours=self.settings.RECOVERY_INITIAL_DELAY_HOURS)),
            (RecoveryStage.REMINDER, timedelta(hours=self.settings.RECOVERY_REMINDER_DELAY_HOURS)),
            (RecoveryStage.FINAL, timedelta(hours=self.settings.RECOVERY_FINAL_DELAY_HOURS)),
        ]
        
    def pending_count(self, session_id: Optional[str] = None) -> int:
        """Scheduled stages not yet fired or cancelled"""
        if session_id is not None:
            handles = self._pending.get(session_id, [])
        else:
            handles = [handle for group in self._pending.values() for handle in group]
        return sum(1 for handle in handles if not handle.done)
        
    async def capture(
        self,
        session_id: str,
        lines: List[CartLine],
        customer_id: Optional[str] = None,
        contact_handle: Optional[str] = None
    ) -> AbandonmentRecord:
        """Record an abandoned cart and schedule its recovery sequence"""
        async with self._locks(session_id):
            self._cancel_pending(session_id)
            
            captured = copy_lines(lines)
            record = AbandonmentRecord(
                session_id=session_id,
                customer_id=customer_id,
                contact_handle=contact_handle or None,
                lines=captured,
                captured_total=sum_line_values(captured),
                abandoned_at=self.clock()
            )
            self._records[session_id] = record
            
            handles = []
            last_stage = max(self.schedule, key=lambda item: item[1])[0]
            for stage, offset in self.schedule:
                fire_at = record.abandoned_at + offset
                delay = (fire_at - self.clock()).total_seconds()
                handles.append(
                    self.scheduler.call_later(
                        delay,
                        self._stage_job(session_id, stage, record if stage == last_stage else None),
                        name=f"cart-recovery:{session_id}:{stage.value}"
                    )
                )
            self._pending[session_id] = handles
            
        logger.info(
            f"Captured abandoned cart {session_id} "
            f"({len(captured)} lines, value {record.captured_total})"
        )
        return record.model_copy(deep=True)
        
    async def get(self, session_id: str) -> AbandonmentRecord:
        return self._require(session_id).model_copy(deep=True)
        
    def all(self) -> List[AbandonmentRecord]:
        return [record.model_copy(deep=True) for record in self._records.values()]
        
    async def mark_recovered(self, session_id: str) -> bool:
        """
        Mark a cart as recovered.
        
        Pending stages are cancelled as a group; stages already sent stay
        in the log. Returns False for an unknown session.
        """
        async with self._locks(session_id):
            record = self._records.get(session_id)
            if record is None:
                return False
            if not record.recovered:
                record.recovered = True
                record.recovered_at = self.clock()
            cancelled = self._cancel_pending(session_id)
            
        logger.info(f"Cart {session_id} recovered, {cancelled} pending stage(s) cancelled")
        return True
        
    async def record_engagement(
        self,
        session_id: str,
        stage: RecoveryStage,
        event: EngagementEvent
    ) -> AbandonmentRecord:
        """Stamp open/click time on a sent recovery message"""
        async with self._locks(session_id):
            record = self._require(session_id)
            entry = next(
                (item for item in record.notifications if item.stage == stage),
                None
            )
            if entry is None:
                raise NotFoundError(
                    f"No {stage.value} recovery message sent for {session_id}",
                    error_code="RECOVERY_MESSAGE_NOT_FOUND"
                )
                
            now = self.clock()
            if event == EngagementEvent.OPENED and entry.opened_at is None:
                entry.opened_at = now
            elif event == EngagementEvent.CLICKED and entry.clicked_at is None:
                entry.clicked_at = now
                # A click implies the message was opened
                if entry.opened_at is None:
                    entry.opened_at = now
            return record.model_copy(deep=True)
            
    async def analytics(
        self,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None
    ) -> RecoveryAnalytics:
        """Abandonment and recovery figures, scanned from current records"""
        records = [
            record for record in self._records.values()
            if within_range(record.abandoned_at, date_from, date_to)
        ]
        
        total = len(records)
        recovered = sum(1 for record in records if record.recovered)
        
        def count_stage(stage: RecoveryStage, predicate=lambda entry: True) -> int:
            return sum(
                1 for record in records
                if any(entry.stage == stage and predicate(entry) for entry in record.notifications)
            )
            
        return RecoveryAnalytics(
            total_abandoned=total,
            total_recovered=recovered,
            recovery_rate=safe_rate(recovered, total),
            average_cart_value=safe_mean(record.captured_total for record in records),
            notifications_by_stage={
                stage.value: count_stage(stage) for stage in RecoveryStage
            },
            opened_by_stage={
                stage.value: count_stage(stage, lambda entry: entry.opened_at is not None)
                for stage in RecoveryStage
            },
            clicked_by_stage={
                stage.value: count_stage(stage, lambda entry: entry.clicked_at is not None)
                for stage in RecoveryStage
            }
        )
        
    def _stage_job(
        self,
        session_id: str,
        stage: RecoveryStage,
        last_for: Optional[AbandonmentRecord] = None
    ):
        async def run() -> None:
            await self._fire_stage(session_id, stage)
            if last_for is not None:
                await self._release_pending(session_id, last_for)
        return run
        
    async def _release_pending(self, session_id: str, record: AbandonmentRecord) -> None:
        """Drop the session's handles once its last stage has run"""
        async with self._locks(session_id):
            # A re-capture owns a newer set of handles
            if self._records.get(session_id) is record:
                self._pending.pop(session_id, None)
        
    async def _fire_stage(self, session_id: str, stage: RecoveryStage) -> None:
        try:
            async with self._locks(session_id):
                record = self._records.get(session_id)
                # Re-checked at fire time in case cancellation lost a race
                if record is None or record.recovered:
                    return
                if not record.contact_handle:
                    logger.debug(f"No contact for {session_id}; skipping {stage.value}")
                    return
                    
                if not await self._send_recovery(record, stage):
                    logger.warning(f"Recovery {stage.value} for {session_id} not delivered")
                    return
                    
                now = self.clock()
                record.notifications.append(RecoveryNotification(stage=stage, sent_at=now))
                record.recovery_attempts += 1
                record.last_attempt_at = now
                logger.info(f"Recovery {stage.value} sent for {session_id}")
        except Exception:
            logger.exception(f"Recovery {stage.value} for {session_id} failed")
            
    async def _send_recovery(self, record: AbandonmentRecord, stage: RecoveryStage) -> bool:
        channel = (
            NotificationChannel.EMAIL if "@" in record.contact_handle
            else NotificationChannel.PUSH
        )
        payload = {
            "session_id": record.session_id,
            "customer_id": record.customer_id,
            "item_count": sum(line.quantity for line in record.lines),
            "cart_value": str(record.captured_total),
            "items": [
                {
                    "name": line.name,
                    "price": str(line.unit_price),
                    "quantity": line.quantity,
                }
                for line in record.lines
            ],
        }
        try:
            return await self.sink.send(
                channel, record.contact_handle, STAGE_TEMPLATES[stage], payload
            )
        except Exception as e:
            logger.error(f"Recovery {stage.value} send to {record.contact_handle} failed: {e}")
            return False
            
    def _cancel_pending(self, session_id: str) -> int:
        cancelled = 0
        for handle in self._pending.pop(session_id, []):
            if not handle.done and handle.cancel():
                cancelled += 1
        return cancelled
        
    def _require(self, session_id: str) -> AbandonmentRecord:
        record = self._records.get(session_id)
        if record is None:
            raise NotFoundError(
                f"Abandoned cart not found: {session_id}",
                error_code="ABANDONED_CART_NOT_FOUND"
            )
        return record
