"""Services package"""

from .cart_lifecycle import CartLifecycleService
from .notification import LoggingNotificationSink, NotificationSink
from .pricing import CatalogPriceOracle, PriceOracle

__all__ = [
    "CartLifecycleService",
    "LoggingNotificationSink",
    "NotificationSink",
    "CatalogPriceOracle",
    "PriceOracle"
]
