from __future__ import annotations

from typing import Any

import pytest

from common.eventbus.core import Event, Topic
from common.eventbus.helpers import event_to_dict, wrap_domain_event
from common.eventbus.topics import TOPIC_NOTIFICATION
from common.events.reward import (
    CampaignCoinsDistributedEvent,
    RedemptionCodeIssuedEvent,
    RewardEventType,
    VoucherPurchasedEvent,
)

from reward_service.app.models.ledger import PaymentBreakdown, PaymentMethod
from reward_service.app.models.restriction import RestrictionType, SpendingRestriction
from reward_service.app.services.notifier import (
    KafkaNotifier,
    build_code_issued_event,
    build_coins_distributed_event,
    build_voucher_purchased_event,
)
from reward_service.tests.fakes import make_account, make_campaign, make_code


class FakeEventBus:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.published: list[tuple[str, Event]] = []

    def publish(self, topic: str, event: Event) -> None:
        if self.fail:
            raise RuntimeError("broker unavailable")
        self.published.append((topic, event))


def _purchase_event() -> VoucherPurchasedEvent:
    breakdown = PaymentBreakdown(
        total_cost=300,
        campaign_coins_used=100,
        regular_coins_used=200,
        can_afford=True,
        payment_method=PaymentMethod.AUTO,
    )
    return build_voucher_purchased_event(
        make_account(account_id="emp-1"), "Coffee", 3, breakdown, 50
    )


def test_notify_publishes_event_payload_to_notification_topic() -> None:
    bus = FakeEventBus()
    notifier = KafkaNotifier(bus_factory=lambda: bus)
    event = _purchase_event()

    assert notifier.notify(event) is True

    [(topic, published)] = bus.published
    assert topic == TOPIC_NOTIFICATION.base
    assert published.id == event.id

    message = event_to_dict(published)
    assert message["retry"] == 0
    assert VoucherPurchasedEvent.from_dict(message["payload"]) == event


def test_notify_returns_false_when_publish_fails() -> None:
    notifier = KafkaNotifier(bus_factory=lambda: FakeEventBus(fail=True))

    assert notifier.notify(_purchase_event()) is False


def test_notify_returns_false_when_bus_cannot_be_created() -> None:
    def _factory() -> Any:
        raise RuntimeError("KAFKA_BOOTSTRAP_SERVERS is not set")

    assert KafkaNotifier(bus_factory=_factory).notify(_purchase_event()) is False


def test_disabled_notifier_does_not_touch_bus() -> None:
    bus = FakeEventBus()
    notifier = KafkaNotifier(bus_factory=lambda: bus, enabled=False)

    assert notifier.notify(_purchase_event()) is False
    assert bus.published == []


def test_notify_uses_configured_topic() -> None:
    bus = FakeEventBus()
    KafkaNotifier(bus_factory=lambda: bus, topic=Topic("reward.test")).notify(_purchase_event())

    assert bus.published[0][0] == "reward.test"


def test_distribution_event_carries_campaign_restriction() -> None:
    campaign = make_campaign(
        restriction=SpendingRestriction(
            restriction_type=RestrictionType.BRAND, allowed_brands=["Starbucks"]
        )
    )

    event = build_coins_distributed_event(
        make_account(account_id="emp-1"), campaign, 100, redemption_code="ABC"
    )

    assert event.type == RewardEventType.CAMPAIGN_COINS_DISTRIBUTED
    assert event.restriction_type == "brand"
    assert event.allowed_brands == ["Starbucks"]
    assert event.redemption_code == "ABC"
    restored = CampaignCoinsDistributedEvent.from_dict(
        {field: getattr(event, field) for field in event.__slots__}
    )
    assert restored == event


def test_code_issued_event_serializes_expiry_as_utc_string() -> None:
    code = make_code("PLAIN1", employee_email="emp-1@acme.test")

    event = build_code_issued_event(code, "Acme")

    assert event.type == RewardEventType.REDEMPTION_CODE_ISSUED
    assert event.company_name == "Acme"
    assert event.expires_at.endswith("+00:00")
    assert RedemptionCodeIssuedEvent.from_dict(
        {field: getattr(event, field) for field in event.__slots__}
    ) == event


def test_wrap_domain_event_rejects_plain_dicts() -> None:
    with pytest.raises(TypeError):
        wrap_domain_event({"id": "x"})
