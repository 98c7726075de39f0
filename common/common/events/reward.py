"""리워드 알림 이벤트 정의.

원장 이동이 커밋된 뒤 발행되며, 메일 워커가 소비해 이메일로 전달한다.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Self


class RewardEventType:
    """리워드 알림 이벤트 타입 상수."""

    CAMPAIGN_COINS_DISTRIBUTED = "reward.campaign_coins_distributed"
    REDEMPTION_CODE_ISSUED = "reward.redemption_code_issued"
    VOUCHER_PURCHASED = "reward.voucher_purchased"


@dataclass(slots=True)
class CampaignCoinsDistributedEvent:
    """캠페인 코인 지급 알림.

    코드 방식 캠페인이면 redemption_code 가 채워진다.
    """

    id: str
    type: str
    timestamp: str
    source: str
    version: str
    user_id: str
    email: str
    name: str
    campaign_id: str
    campaign_name: str
    campaign_description: str
    coins: int
    restriction_type: str
    allowed_categories: list[str] = field(default_factory=list)
    allowed_brands: list[str] = field(default_factory=list)
    redemption_code: str | None = None
    custom_message: str | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Self:
        return cls(
            id=str(data["id"]),
            type=str(data["type"]),
            timestamp=str(data["timestamp"]),
            source=str(data["source"]),
            version=str(data.get("version", "1.0")),
            user_id=str(data["user_id"]),
            email=str(data["email"]),
            name=str(data["name"]),
            campaign_id=str(data["campaign_id"]),
            campaign_name=str(data["campaign_name"]),
            campaign_description=str(data.get("campaign_description", "")),
            coins=int(data["coins"]),
            restriction_type=str(data["restriction_type"]),
            allowed_categories=list(data.get("allowed_categories") or []),
            allowed_brands=list(data.get("allowed_brands") or []),
            redemption_code=data.get("redemption_code"),
            custom_message=data.get("custom_message"),
        )


@dataclass(slots=True)
class RedemptionCodeIssuedEvent:
    """회사 관리자가 발급한 일반 리딤 코드 알림."""

    id: str
    type: str
    timestamp: str
    source: str
    version: str
    email: str
    name: str
    code: str
    coin_amount: int
    company_name: str
    expires_at: str

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Self:
        return cls(
            id=str(data["id"]),
            type=str(data["type"]),
            timestamp=str(data["timestamp"]),
            source=str(data["source"]),
            version=str(data.get("version", "1.0")),
            email=str(data["email"]),
            name=str(data["name"]),
            code=str(data["code"]),
            coin_amount=int(data["coin_amount"]),
            company_name=str(data["company_name"]),
            expires_at=str(data["expires_at"]),
        )


@dataclass(slots=True)
class VoucherPurchasedEvent:
    """바우처 구매 확인 알림."""

    id: str
    type: str
    timestamp: str
    source: str
    version: str
    user_id: str
    email: str
    name: str
    voucher_title: str
    quantity: int
    total_cost: int
    campaign_coins_used: int
    regular_coins_used: int
    remaining_balance: int

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Self:
        return cls(
            id=str(data["id"]),
            type=str(data["type"]),
            timestamp=str(data["timestamp"]),
            source=str(data["source"]),
            version=str(data.get("version", "1.0")),
            user_id=str(data["user_id"]),
            email=str(data["email"]),
            name=str(data["name"]),
            voucher_title=str(data["voucher_title"]),
            quantity=int(data["quantity"]),
            total_cost=int(data["total_cost"]),
            campaign_coins_used=int(data["campaign_coins_used"]),
            regular_coins_used=int(data["regular_coins_used"]),
            remaining_balance=int(data["remaining_balance"]),
        )
