"""Cart analytics derived from live service state"""

import logging
from collections import Counter
from datetime import datetime, timedelta
from typing import Callable, Dict

from cart_engagement.core.config import Settings, settings as default_settings
from cart_engagement.schemas.analytics import CartAnalytics, ProductPopularity
from cart_engagement.services.abandoned_cart import AbandonmentRecoveryScheduler
from cart_engagement.services.price_alerts import PriceAlertMonitor
from cart_engagement.services.share_tokens import ShareTokenIssuer
from cart_engagement.services.snapshot_store import CartSnapshotStore
from cart_engagement.utils.helpers import safe_mean, safe_rate, utcnow

logger = logging.getLogger(__name__)

TOP_PRODUCTS_LIMIT = 5

class CartAnalyticsService:
    """Summary statistics computed on every call, never cached"""
    
    def __init__(
        self,
        store: CartSnapshotStore,
        shares: ShareTokenIssuer,
        recovery: AbandonmentRecoveryScheduler,
        price_alerts: PriceAlertMonitor,
        settings: Settings = default_settings,
        clock: Callable[[], datetime] = utcnow
    ):
        self.store = store
        self.shares = shares
        self.recovery = recovery
        self.price_alerts = price_alerts
        self.settings = settings
        self.clock = clock
        
    async def summary(self) -> CartAnalytics:
        """Snapshot, sharing, abandonment and alert figures"""
        snapshots = self.store.all()
        abandonments = self.recovery.all()
        
        cutoff = self.clock() - timedelta(days=self.settings.ACTIVE_SNAPSHOT_WINDOW_DAYS)
        active = sum(1 for cart in snapshots if cart.last_accessed_at > cutoff)
        recovered = sum(1 for record in abandonments if record.recovered)
        logger.debug(f"Computing cart analytics over {len(snapshots)} saved carts")
        
        # Count each product once per saved cart
        popularity = Counter()
        names: Dict[str, str] = {}
        for cart in snapshots:
            for line in cart.lines:
                names.setdefault(line.product_id, line.name)
            popularity.update({line.product_id for line in cart.lines})
            
        return CartAnalytics(
            total_snapshots=len(snapshots),
            active_snapshots=active,
            average_snapshot_value=safe_mean(cart.total_value for cart in snapshots),
            average_line_count=safe_mean(cart.line_count for cart in snapshots),
            average_item_quantity=safe_mean(cart.total_quantity for cart in snapshots),
            active_share_grants=self.shares.active_count(),
            abandoned_carts=len(abandonments),
            recovered_carts=recovered,
            recovery_rate=safe_rate(recovered, len(abandonments)),
            active_price_watches=sum(1 for watch in self.price_alerts.all() if watch.active),
            top_products=[
                ProductPopularity(product_id=product_id, name=names[product_id], saved_count=count)
                for product_id, count in popularity.most_common(TOP_PRODUCTS_LIMIT)
            ]
        )
