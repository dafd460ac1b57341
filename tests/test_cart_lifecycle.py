"""Service lifecycle tests"""

from datetime import timedelta
from decimal import Decimal

import pytest

from cart_engagement.core.config import Settings
from cart_engagement.core.exceptions import ValidationError
from cart_engagement.services.cart_lifecycle import CartLifecycleService
from cart_engagement.services.pricing import PriceOracle


class FixedPriceOracle(PriceOracle):
    async def get_current_price(self, product_id):
        return Decimal("1.00")


async def test_start_registers_sweep_and_stop_cancels_everything(service, scheduler, make_line):
    await service.start()
    await service.recovery.capture("sess-1", [make_line("a")], contact_handle="a@example.com")

    assert service.started
    assert service.price_alerts.running
    assert len(scheduler.pending) == 4

    await service.stop()
    await service.stop()

    assert not service.started
    assert not service.price_alerts.running
    assert scheduler.pending == []
    assert scheduler.shut_down


async def test_background_jobs_share_service_state(service, oracle, sink, scheduler, make_line):
    await service.start()
    oracle.set_price("lamp", "20.00")
    await service.price_alerts.create("cust-1", "lamp", Decimal("25.00"), Decimal("30.00"))
    await service.recovery.capture("sess-1", [make_line("a")], contact_handle="a@example.com")

    await scheduler.advance(timedelta(hours=1))

    templates = [sent.template_kind.value for sent in sink.sent]
    assert templates.count("price_alert") == 3
    assert templates.count("cart_recovery_initial") == 1
    await service.stop()


def test_default_collaborators():
    service = CartLifecycleService()

    assert service.oracle is not None
    assert service.sink is not None
    assert service.scheduler is not None
    assert service.recommend([]) == []


async def test_default_oracle_is_seeded_from_catalog_prices():
    service = CartLifecycleService(Settings(_env_file=None, CATALOG_PRICES={"tv": "40.00"}))

    assert await service.oracle.get_current_price("tv") == Decimal("40.00")


async def test_observed_price_drives_the_sweep(service, sink):
    await service.price_alerts.create("cust-1", "lamp", Decimal("25.00"), Decimal("30.00"))

    assert service.observe_price("lamp", "19.99") == Decimal("19.99")
    stats = await service.price_alerts.sweep()

    assert stats.triggered == 1
    assert sink.sent[0].template_kind.value == "price_alert"


def test_observe_price_requires_catalog_oracle(settings):
    service = CartLifecycleService(settings, oracle=FixedPriceOracle())

    with pytest.raises(ValidationError):
        service.observe_price("lamp", "10.00")
    with pytest.raises(ValidationError):
        CartLifecycleService(settings).observe_price("lamp", "-1")
