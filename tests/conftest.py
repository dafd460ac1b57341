"""Shared fixtures: a controllable clock, a manual scheduler and test doubles"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional

import pytest

from cart_engagement.core.config import Settings
from cart_engagement.core.scheduler import ScheduledHandle, Scheduler
from cart_engagement.schemas.cart import CartLine
from cart_engagement.services.cart_lifecycle import CartLifecycleService
from cart_engagement.services.notification import (
    LoggingNotificationSink,
    NotificationChannel,
    NotificationSink,
    NotificationTemplate,
)
from cart_engagement.services.pricing import CatalogPriceOracle


START = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


class FakeClock:
    """Clock whose time only moves when told to."""

    def __init__(self, now: datetime = START):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now += delta


class ManualHandle(ScheduledHandle):
    def __init__(self, name, due, callback, interval=None):
        super().__init__(name)
        self.due = due
        self.callback = callback
        self.interval = interval
        self._cancelled = False
        self._finished = False

    def cancel(self) -> bool:
        if self.done:
            return False
        self._cancelled = True
        return True

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def done(self) -> bool:
        return self._cancelled or self._finished

    async def run(self) -> None:
        if self.interval is None:
            self._finished = True
        else:
            self.due += timedelta(seconds=self.interval)
        await self.callback()


class ManualScheduler(Scheduler):
    """Scheduler driven by FakeClock; jobs run only inside advance()."""

    def __init__(self, clock: FakeClock):
        self.clock = clock
        self.jobs: List[ManualHandle] = []
        self.shut_down = False

    def call_later(self, delay, callback, name=None) -> ScheduledHandle:
        handle = ManualHandle(
            name or "job", self.clock() + timedelta(seconds=max(delay, 0)), callback
        )
        self.jobs.append(handle)
        return handle

    def call_every(self, interval, callback, name=None) -> ScheduledHandle:
        handle = ManualHandle(
            name or "job", self.clock() + timedelta(seconds=interval), callback, interval
        )
        self.jobs.append(handle)
        return handle

    async def shutdown(self) -> None:
        for handle in self.jobs:
            handle.cancel()
        self.shut_down = True

    @property
    def pending(self) -> List[ManualHandle]:
        return [handle for handle in self.jobs if not handle.done]

    async def advance(self, delta: timedelta) -> None:
        """Move the clock forward, running due jobs in due order."""
        target = self.clock() + delta
        while True:
            due = [handle for handle in self.pending if handle.due <= target]
            if not due:
                break
            handle = min(due, key=lambda item: item.due)
            self.clock.now = max(self.clock.now, handle.due)
            await handle.run()
        self.clock.now = target


class FailingSink(NotificationSink):
    """Sink that refuses (or blows up on) every message."""

    def __init__(self, raise_error: bool = False):
        self.raise_error = raise_error
        self.attempts = 0

    async def send(
        self,
        channel: NotificationChannel,
        recipient: str,
        template_kind: NotificationTemplate,
        payload: Dict[str, Any],
    ) -> bool:
        self.attempts += 1
        if self.raise_error:
            raise ConnectionError("mail relay unreachable")
        return False


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def scheduler(clock):
    return ManualScheduler(clock)


@pytest.fixture
def sink():
    return LoggingNotificationSink()


@pytest.fixture
def oracle():
    return CatalogPriceOracle()


@pytest.fixture
def settings():
    return Settings(_env_file=None)


@pytest.fixture
def service(settings, oracle, sink, scheduler, clock):
    return CartLifecycleService(
        settings, oracle=oracle, sink=sink, scheduler=scheduler, clock=clock
    )


@pytest.fixture
def make_line():
    """Factory for cart lines with sensible defaults."""

    def _make(
        line_id: str,
        price: str = "10.00",
        quantity: int = 1,
        product_id: Optional[str] = None,
        **fields,
    ) -> CartLine:
        return CartLine(
            id=line_id,
            product_id=product_id or f"prod-{line_id}",
            name=fields.pop("name", f"Product {line_id}"),
            unit_price=Decimal(price),
            quantity=quantity,
            added_at=START,
            **fields,
        )

    return _make
