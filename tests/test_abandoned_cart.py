"""Abandoned cart recovery tests"""

from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from cart_engagement.core.exceptions import NotFoundError
from cart_engagement.schemas.abandonment import EngagementEvent, RecoveryStage
from cart_engagement.services.abandoned_cart import AbandonmentRecoveryScheduler
from cart_engagement.services.notification import NotificationChannel, NotificationTemplate

from conftest import FailingSink


@pytest.fixture
def recovery(sink, scheduler, settings, clock):
    return AbandonmentRecoveryScheduler(sink, scheduler, settings, clock)


async def test_capture_schedules_three_stages(recovery, make_line):
    record = await recovery.capture(
        "sess-1", [make_line("a", "25.00", 2)], customer_id="cust-1", contact_handle="a@example.com"
    )

    assert record.captured_total == Decimal("50.00")
    assert record.recovery_attempts == 0
    assert recovery.pending_count("sess-1") == 3


async def test_full_sequence_sends_each_stage_once(recovery, scheduler, sink, make_line):
    await recovery.capture("sess-1", [make_line("a")], contact_handle="a@example.com")

    await scheduler.advance(timedelta(hours=1))
    assert [sent.template_kind for sent in sink.sent] == [NotificationTemplate.CART_RECOVERY_INITIAL]

    await scheduler.advance(timedelta(hours=72))
    assert [sent.template_kind for sent in sink.sent] == [
        NotificationTemplate.CART_RECOVERY_INITIAL,
        NotificationTemplate.CART_RECOVERY_REMINDER,
        NotificationTemplate.CART_RECOVERY_FINAL,
    ]
    assert all(sent.channel == NotificationChannel.EMAIL for sent in sink.sent)

    record = await recovery.get("sess-1")
    assert record.recovery_attempts == 3
    assert [entry.stage for entry in record.notifications] == list(RecoveryStage)
    assert recovery.pending_count() == 0


async def test_recovered_before_first_stage_sends_nothing(recovery, scheduler, sink, make_line):
    await recovery.capture("sess-1", [make_line("a")], contact_handle="a@example.com")

    await scheduler.advance(timedelta(minutes=30))
    assert await recovery.mark_recovered("sess-1") is True
    await scheduler.advance(timedelta(days=5))

    record = await recovery.get("sess-1")
    assert sink.sent == []
    assert record.notifications == []
    assert record.recovered is True
    assert recovery.pending_count("sess-1") == 0


async def test_recovered_mid_sequence_keeps_sent_stages(recovery, scheduler, sink, make_line):
    await recovery.capture("sess-1", [make_line("a")], contact_handle="device-token-1")

    await scheduler.advance(timedelta(hours=2))
    await recovery.mark_recovered("sess-1")
    await scheduler.advance(timedelta(days=5))

    record = await recovery.get("sess-1")
    assert [entry.stage for entry in record.notifications] == [RecoveryStage.INITIAL]
    assert sink.sent[0].channel == NotificationChannel.PUSH


async def test_no_contact_handle_skips_sends(recovery, scheduler, sink, make_line):
    await recovery.capture("sess-1", [make_line("a")], customer_id="cust-1")

    await scheduler.advance(timedelta(days=4))

    record = await recovery.get("sess-1")
    assert sink.sent == []
    assert record.recovery_attempts == 0


async def test_failed_send_is_not_an_attempt(scheduler, settings, clock, make_line):
    recovery = AbandonmentRecoveryScheduler(FailingSink(), scheduler, settings, clock)
    await recovery.capture("sess-1", [make_line("a")], contact_handle="a@example.com")

    await scheduler.advance(timedelta(days=4))

    record = await recovery.get("sess-1")
    assert record.recovery_attempts == 0
    assert record.notifications == []


async def test_recapture_replaces_pending_stages(recovery, scheduler, sink, make_line):
    await recovery.capture("sess-1", [make_line("a")], contact_handle="a@example.com")
    await scheduler.advance(timedelta(minutes=50))
    await recovery.capture("sess-1", [make_line("b")], contact_handle="a@example.com")

    await scheduler.advance(timedelta(minutes=30))
    assert sink.sent == []
    assert recovery.pending_count("sess-1") == 3


async def test_mark_recovered_unknown_session(recovery):
    assert await recovery.mark_recovered("nope") is False


async def test_engagement_tracking(recovery, scheduler, make_line):
    await recovery.capture("sess-1", [make_line("a")], contact_handle="a@example.com")
    await scheduler.advance(timedelta(hours=1))

    with pytest.raises(NotFoundError):
        await recovery.record_engagement("sess-1", RecoveryStage.REMINDER, EngagementEvent.OPENED)

    record = await recovery.record_engagement(
        "sess-1", RecoveryStage.INITIAL, EngagementEvent.CLICKED
    )
    entry = record.notifications[0]
    assert entry.clicked_at is not None
    assert entry.opened_at == entry.clicked_at


async def test_analytics(recovery, scheduler, clock, make_line):
    await recovery.capture("sess-1", [make_line("a", "30.00")], contact_handle="a@example.com")
    await recovery.capture("sess-2", [make_line("b", "10.00")], contact_handle="b@example.com")
    await scheduler.advance(timedelta(hours=1))
    await recovery.record_engagement("sess-1", RecoveryStage.INITIAL, EngagementEvent.OPENED)
    await recovery.mark_recovered("sess-1")

    stats = await recovery.analytics()

    assert stats.total_abandoned == 2
    assert stats.total_recovered == 1
    assert stats.recovery_rate == 0.5
    assert stats.average_cart_value == 20.0
    assert stats.notifications_by_stage == {"initial": 2, "reminder": 0, "final": 0}
    assert stats.opened_by_stage["initial"] == 1
    assert stats.clicked_by_stage["initial"] == 0

    later = await recovery.analytics(date_from=clock())
    assert later.total_abandoned == 0
    assert later.recovery_rate == 0.0


async def test_analytics_accepts_naive_bounds(recovery, make_line):
    await recovery.capture("sess-1", [make_line("a")])

    assert (await recovery.analytics(date_from=datetime(2026, 1, 1))).total_abandoned == 1
    assert (await recovery.analytics(date_to=datetime(2026, 3, 1))).total_abandoned == 0


async def test_pending_handles_released_after_last_stage(recovery, scheduler, make_line):
    await recovery.capture("sess-1", [make_line("a")], contact_handle="a@example.com")

    await scheduler.advance(timedelta(hours=24))
    assert "sess-1" in recovery._pending

    await scheduler.advance(timedelta(days=3))
    assert "sess-1" not in recovery._pending
    assert (await recovery.get("sess-1")).recovery_attempts == 3


async def test_stale_last_stage_keeps_recaptured_handles(recovery, make_line):
    await recovery.capture("sess-1", [make_line("a")], contact_handle="a@example.com")
    first = recovery._records["sess-1"]
    await recovery.capture("sess-1", [make_line("b")], contact_handle="a@example.com")

    await recovery._release_pending("sess-1", first)

    assert recovery.pending_count("sess-1") == 3
