"""알림 발행기.

원장 이동이 커밋된 다음에 호출된다. 발행 실패는 로그만 남기고 False 를 반환하며,
이미 커밋된 코인 이동을 되돌리지 않는다.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import Any, Callable, Protocol

from common.eventbus.core import Topic
from common.eventbus.helpers import wrap_domain_event
from common.eventbus.kafka import KafkaEventBus, get_kafka_event_bus
from common.eventbus.topics import TOPIC_NOTIFICATION
from common.events.reward import (
    CampaignCoinsDistributedEvent,
    RedemptionCodeIssuedEvent,
    RewardEventType,
    VoucherPurchasedEvent,
)
from common.types.datetime import serialize_datetime_to_utc_iso8601, utc_now

from ..config import get_app_config
from ..models.account import Account
from ..models.campaign import Campaign
from ..models.ledger import PaymentBreakdown
from ..models.redemption_code import RedemptionCode


logger = logging.getLogger(__name__)

EVENT_SOURCE = "reward-service"
EVENT_VERSION = "1.0"


class NotifierInterface(Protocol):
    def notify(self, event: Any) -> bool:  # pragma: no cover - Protocol
        """이벤트를 발행하고 성공 여부를 반환한다. 예외를 던지지 않는다."""
        ...


class KafkaNotifier(NotifierInterface):
    """reward.notification 토픽으로 알림 이벤트를 발행한다."""

    def __init__(
        self,
        bus_factory: Callable[[], KafkaEventBus] = get_kafka_event_bus,
        topic: Topic = TOPIC_NOTIFICATION,
        enabled: bool = True,
    ) -> None:
        self._bus_factory = bus_factory
        self._topic = topic
        self._enabled = enabled

    def notify(self, event: Any) -> bool:
        if not self._enabled:
            return False
        try:
            bus = self._bus_factory()
            bus.publish(self._topic.base, wrap_domain_event(event))
        except Exception:  # noqa: BLE001
            logger.exception(
                "failed to publish notification %s",
                getattr(event, "type", type(event).__name__),
                extra={"user_id": getattr(event, "user_id", None)},
            )
            return False
        return True


def get_notifier() -> NotifierInterface:
    """FastAPI DI용 Notifier 팩토리."""
    config = get_app_config()
    return KafkaNotifier(enabled=config.notifications.enabled)


# -------- Event Builders --------


def _event_meta(event_type: str) -> dict[str, str]:
    return {
        "id": str(uuid.uuid4()),
        "type": event_type,
        "timestamp": utc_now().isoformat(),
        "source": EVENT_SOURCE,
        "version": EVENT_VERSION,
    }


def build_coins_distributed_event(
    account: Account,
    campaign: Campaign,
    coins: int,
    redemption_code: str | None = None,
    custom_message: str | None = None,
) -> CampaignCoinsDistributedEvent:
    restriction = campaign.restriction
    return CampaignCoinsDistributedEvent(
        **_event_meta(RewardEventType.CAMPAIGN_COINS_DISTRIBUTED),
        user_id=account.id or "",
        email=account.email,
        name=account.name,
        campaign_id=campaign.id or "",
        campaign_name=campaign.name,
        campaign_description=campaign.description,
        coins=coins,
        restriction_type=restriction.restriction_type.value,
        allowed_categories=list(restriction.allowed_categories),
        allowed_brands=list(restriction.allowed_brands),
        redemption_code=redemption_code,
        custom_message=custom_message,
    )


def build_code_issued_event(
    code: RedemptionCode, company_name: str
) -> RedemptionCodeIssuedEvent:
    expires_at: datetime = code.expires_at
    return RedemptionCodeIssuedEvent(
        **_event_meta(RewardEventType.REDEMPTION_CODE_ISSUED),
        email=code.employee_email or "",
        name=code.employee_name or "",
        code=code.code,
        coin_amount=code.coin_amount,
        company_name=company_name,
        expires_at=serialize_datetime_to_utc_iso8601(expires_at),
    )


def build_voucher_purchased_event(
    account: Account,
    voucher_title: str,
    quantity: int,
    breakdown: PaymentBreakdown,
    remaining_balance: int,
) -> VoucherPurchasedEvent:
    return VoucherPurchasedEvent(
        **_event_meta(RewardEventType.VOUCHER_PURCHASED),
        user_id=account.id or "",
        email=account.email,
        name=account.name,
        voucher_title=voucher_title,
        quantity=quantity,
        total_cost=breakdown.total_cost,
        campaign_coins_used=breakdown.campaign_coins_used,
        regular_coins_used=breakdown.regular_coins_used,
        remaining_balance=remaining_balance,
    )
