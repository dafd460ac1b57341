"""Notification sink used by price alerts and cart recovery"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Dict, List, NamedTuple
import logging

logger = logging.getLogger(__name__)

class NotificationChannel(str, Enum):
    EMAIL = "email"
    PUSH = "push"

class NotificationTemplate(str, Enum):
    PRICE_ALERT = "price_alert"
    CART_RECOVERY_INITIAL = "cart_recovery_initial"
    CART_RECOVERY_REMINDER = "cart_recovery_reminder"
    CART_RECOVERY_FINAL = "cart_recovery_final"

class NotificationSink(ABC):
    """Delivers a templated message to one recipient over one channel"""
    
    @abstractmethod
    async def send(
        self,
        channel: NotificationChannel,
        recipient: str,
        template_kind: NotificationTemplate,
        payload: Dict[str, Any]
    ) -> bool:
        """Return True if the message was accepted for delivery"""

class SentNotification(NamedTuple):
    channel: NotificationChannel
    recipient: str
    template_kind: NotificationTemplate
    payload: Dict[str, Any]

class LoggingNotificationSink(NotificationSink):
    """Sink that records and logs messages instead of delivering them"""
    
    def __init__(self):
        self.sent: List[SentNotification] = []
        
    async def send(
        self,
        channel: NotificationChannel,
        recipient: str,
        template_kind: NotificationTemplate,
        payload: Dict[str, Any]
    ) -> bool:
        self.sent.append(SentNotification(channel, recipient, template_kind, payload))
        logger.info(
            f"{channel.value} notification '{template_kind.value}' sent to {recipient}"
        )
        return True
