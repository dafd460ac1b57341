"""Cart lifecycle service: wires the components and owns their lifecycle"""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Callable, List, Optional

from cart_engagement.core.config import Settings, settings as default_settings
from cart_engagement.core.exceptions import ValidationError
from cart_engagement.core.scheduler import AsyncioScheduler, Scheduler
from cart_engagement.schemas.cart import CartLine
from cart_engagement.schemas.recommendation import Recommendation
from cart_engagement.services.abandoned_cart import AbandonmentRecoveryScheduler
from cart_engagement.services.analytics import CartAnalyticsService
from cart_engagement.services.bulk_operations import BulkMutationExecutor
from cart_engagement.services.notification import LoggingNotificationSink, NotificationSink
from cart_engagement.services.price_alerts import PriceAlertMonitor
from cart_engagement.services.pricing import CatalogPriceOracle, PriceOracle
from cart_engagement.services.recommendation import recommend
from cart_engagement.services.share_tokens import ShareTokenIssuer
from cart_engagement.services.snapshot_store import CartSnapshotStore
from cart_engagement.utils.helpers import utcnow

logger = logging.getLogger(__name__)

class CartLifecycleService:
    """
    Explicitly constructed service instance.
    
    Callers build one, call start() to run the price sweep, and stop() on
    teardown to cancel the sweep and every pending recovery stage.
    """
    
    def __init__(
        self,
        settings: Settings = default_settings,
        oracle: Optional[PriceOracle] = None,
        sink: Optional[NotificationSink] = None,
        scheduler: Optional[Scheduler] = None,
        clock: Callable[[], datetime] = utcnow
    ):
        self.settings = settings
        self.clock = clock
        self.oracle = oracle or CatalogPriceOracle(settings.CATALOG_PRICES)
        self.sink = sink or LoggingNotificationSink()
        self.scheduler = scheduler or AsyncioScheduler()
        
        self.snapshots = CartSnapshotStore(settings, clock)
        self.shares = ShareTokenIssuer(self.snapshots, settings, clock)
        self.bulk = BulkMutationExecutor(self.snapshots, settings, clock)
        self.price_alerts = PriceAlertMonitor(
            self.oracle, self.sink, self.scheduler, settings, clock
        )
        self.recovery = AbandonmentRecoveryScheduler(
            self.sink, self.scheduler, settings, clock
        )
        self.analytics = CartAnalyticsService(
            self.snapshots, self.shares, self.recovery, self.price_alerts, settings, clock
        )
        self._started = False
        self._stopped = False
        
    @property
    def started(self) -> bool:
        return self._started
        
    async def start(self) -> None:
        if self._started:
            return
        self.price_alerts.start()
        self._started = True
        logger.info("Cart lifecycle service started")
        
    async def stop(self) -> None:
        if self._stopped:
            return
        self.price_alerts.stop()
        await self.scheduler.shutdown()
        self._started = False
        self._stopped = True
        logger.info("Cart lifecycle service stopped")
        
    def recommend(self, lines: List[CartLine]) -> List[Recommendation]:
        return recommend(lines, self.settings.UPSELL_PRICE_THRESHOLD)
        
    def observe_price(self, product_id: str, price: Decimal) -> Decimal:
        """Record a product's current price with the built-in catalog oracle"""
        if not isinstance(self.oracle, CatalogPriceOracle):
            raise ValidationError("Prices come from an external source and cannot be set here")
        price = Decimal(str(price))
        if price < 0:
            raise ValidationError("price must not be negative")
        self.oracle.set_price(product_id, price)
        logger.info(f"Observed price {price} for product {product_id}")
        return price
