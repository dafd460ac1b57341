"""Price alert monitoring with a recurring background sweep"""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Callable, Dict, List, Optional

from cart_engagement.core.config import Settings, settings as default_settings
from cart_engagement.core.exceptions import NotFoundError, ValidationError
from cart_engagement.core.locks import KeyedLock
from cart_engagement.core.scheduler import ScheduledHandle, Scheduler
from cart_engagement.schemas.price_alert import PriceWatch, PriceWatchUpdate, SweepStats
from cart_engagement.services.notification import (
    NotificationChannel,
    NotificationSink,
    NotificationTemplate,
)
from cart_engagement.services.pricing import PriceOracle
from cart_engagement.utils.helpers import generate_id, utcnow

logger = logging.getLogger(__name__)

class PriceAlertMonitor:
    """
    Owns price watches and sweeps them against a price oracle.
    
    A watch stays active until notifications_sent reaches its cap; at that
    point it is retired and sweeps no longer touch it.
    """
    
    def __init__(
        self,
        oracle: PriceOracle,
        sink: NotificationSink,
        scheduler: Scheduler,
        settings: Settings = default_settings,
        clock: Callable[[], datetime] = utcnow
    ):
        self.oracle = oracle
        self.sink = sink
        self.scheduler = scheduler
        self.settings = settings
        self.clock = clock
        self._watches: Dict[str, PriceWatch] = {}
        self._locks = KeyedLock()
        self._sweep_handle: Optional[ScheduledHandle] = None
        
    @property
    def running(self) -> bool:
        return self._sweep_handle is not None and not self._sweep_handle.done
        
    def start(self) -> None:
        """Register the recurring sweep"""
        if self.running:
            return
        interval = self.settings.PRICE_SWEEP_INTERVAL_SECONDS
        self._sweep_handle = self.scheduler.call_every(
            interval, self._scheduled_sweep, name="price-alert-sweep"
        )
        logger.info(f"Price alert sweep started (every {interval}s)")
        
    def stop(self) -> None:
        if self._sweep_handle is not None:
            self._sweep_handle.cancel()
            self._sweep_handle = None
            logger.info("Price alert sweep stopped")
            
    async def create(
        self,
        customer_id: str,
        product_id: str,
        target_price: Decimal,
        current_price: Decimal,
        email_enabled: bool = True,
        push_enabled: bool = False,
        notification_cap: Optional[int] = None
    ) -> PriceWatch:
        """Start watching a product for a customer"""
        cap = notification_cap if notification_cap is not None else self.settings.DEFAULT_NOTIFICATION_CAP
        if cap < 1:
            raise ValidationError("notification_cap must be at least 1")
        if not (email_enabled or push_enabled):
            raise ValidationError("At least one notification channel must be enabled")
        if Decimal(target_price) < 0:
            raise ValidationError("target_price must not be negative")
            
        watch = PriceWatch(
            id=generate_id("alert"),
            customer_id=customer_id,
            product_id=product_id,
            target_price=Decimal(target_price),
            last_observed_price=Decimal(current_price),
            active=True,
            created_at=self.clock(),
            notification_cap=cap,
            email_enabled=email_enabled,
            push_enabled=push_enabled
        )
        self._watches[watch.id] = watch
        logger.info(
            f"Price watch {watch.id}: {customer_id} on {product_id} at {watch.target_price}"
        )
        return watch.model_copy()
        
    async def list(self, customer_id: str, active_only: bool = False) -> List[PriceWatch]:
        """Customer's watches, newest first"""
        watches = [
            watch for watch in self._watches.values()
            if watch.customer_id == customer_id and (watch.active or not active_only)
        ]
        watches.sort(key=lambda watch: watch.created_at, reverse=True)
        return [watch.model_copy() for watch in watches]
        
    async def get(self, watch_id: str) -> PriceWatch:
        return self._require(watch_id).model_copy()
        
    def all(self) -> List[PriceWatch]:
        return [watch.model_copy() for watch in self._watches.values()]
        
    async def update(self, watch_id: str, updates: PriceWatchUpdate) -> PriceWatch:
        """Apply customer edits"""
        changes = {
            field: value
            for field, value in updates.model_dump(exclude_unset=True).items()
            if value is not None
        }
        
        async with self._locks(watch_id):
            watch = self._require(watch_id)
            email_enabled = changes.get("email_enabled", watch.email_enabled)
            push_enabled = changes.get("push_enabled", watch.push_enabled)
            if not (email_enabled or push_enabled):
                raise ValidationError("At least one notification channel must be enabled")
                
            cap = changes.get("notification_cap", watch.notification_cap)
            exhausted = watch.notifications_sent >= cap
            if changes.get("active") and exhausted:
                raise ValidationError(
                    "Notification limit reached; create a new price alert to keep watching"
                )
                
            for field, value in changes.items():
                setattr(watch, field, value)
            if exhausted:
                watch.active = False
            return watch.model_copy()
            
    async def delete(self, watch_id: str) -> bool:
        async with self._locks(watch_id):
            removed = self._watches.pop(watch_id, None) is not None
        self._locks.discard(watch_id)
        return removed
        
    async def sweep(self) -> SweepStats:
        """
        Evaluate every active watch once.
        
        Each watch is handled independently; an error on one is logged and
        the sweep moves on to the next.
        """
        stats = SweepStats()
        watch_ids = [watch.id for watch in self._watches.values() if watch.active]
        
        for watch_id in watch_ids:
            try:
                result = await self._evaluate(watch_id)
            except Exception:
                logger.exception(f"Error evaluating price watch {watch_id}")
                stats.failed += 1
                continue
            setattr(stats, result, getattr(stats, result) + 1)
            if result == "deactivated":
                stats.triggered += 1
            
        logger.info(
            f"Price sweep: {stats.checked} checked, {stats.triggered} triggered, "
            f"{stats.deactivated} retired, {stats.failed} failed"
        )
        return stats
        
    async def _scheduled_sweep(self) -> None:
        await self.sweep()
        
    async def _evaluate(self, watch_id: str) -> str:
        async with self._locks(watch_id):
            watch = self._watches.get(watch_id)
            if watch is None or not watch.active:
                return "skipped"
                
            try:
                price = Decimal(await self.oracle.get_current_price(watch.product_id))
            except Exception as e:
                logger.warning(f"No price observation for {watch.product_id}: {e}")
                return "failed"
                
            if price > watch.target_price:
                return "checked"
                
            if not await self._notify(watch, price):
                logger.warning(f"Price alert {watch.id} not delivered; retrying next sweep")
                return "failed"
                
            # All state changes land together after the awaits above
            now = self.clock()
            watch.last_observed_price = price
            if watch.fired_at is None:
                watch.fired_at = now
            watch.notifications_sent += 1
            if watch.notifications_sent >= watch.notification_cap:
                watch.active = False
                logger.info(f"Price watch {watch.id} retired after {watch.notifications_sent} alerts")
                return "deactivated"
            return "triggered"
            
    async def _notify(self, watch: PriceWatch, price: Decimal) -> bool:
        """Send on every enabled channel; True if any delivery succeeded"""
        payload = {
            "alert_id": watch.id,
            "product_id": watch.product_id,
            "current_price": str(price),
            "target_price": str(watch.target_price),
        }
        delivered = False
        for channel in watch.channels:
            try:
                sent = await self.sink.send(
                    NotificationChannel(channel),
                    watch.customer_id,
                    NotificationTemplate.PRICE_ALERT,
                    payload
                )
            except Exception as e:
                logger.error(f"{channel} price alert for {watch.id} failed: {e}")
                continue
            delivered = delivered or sent
        return delivered
        
    def _require(self, watch_id: str) -> PriceWatch:
        watch = self._watches.get(watch_id)
        if watch is None:
            raise NotFoundError(f"Price alert not found: {watch_id}", error_code="PRICE_ALERT_NOT_FOUND")
        return watch
