"""정산(settlement) 계산 결과 모델.

미리보기와 실제 구매가 같은 계산 결과를 공유한다.
"""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, Field

from .account import CampaignCoinGrant, GrantDebit
from .campaign import Campaign
from .redemption_code import CodeKind, RedemptionCode
from .restriction import SpendingRestriction
from .voucher import Voucher, VoucherPurchase


class PaymentMethod(StrEnum):
    CAMPAIGN_ONLY = "campaign-only"
    REGULAR_ONLY = "regular-only"
    MIXED = "mixed"
    AUTO = "auto"


class PaymentBreakdown(BaseModel):
    total_cost: int
    campaign_coins_used: int
    regular_coins_used: int
    can_afford: bool
    payment_method: PaymentMethod


class EligibilityResult(BaseModel):
    """바우처 하나에 대해 사용 가능한 캠페인 지급분 (정렬 순서 = 차감 순서)."""

    is_eligible: bool
    eligible_grants: list[CampaignCoinGrant]
    total_campaign_coins: int


class EligibilityView(BaseModel):
    is_eligible: bool
    available_campaign_coins: list[CampaignCoinGrant]
    total_campaign_coins: int
    regular_coins: int
    total_available_coins: int


class PurchaseRequest(BaseModel):
    """구매 요청.

    campaign_coins_to_use / regular_coins_to_use 는 클라이언트가 미리보기로 받은 분할이다.
    서버 계산과 다르면 거부한다.
    """

    voucher_id: str
    quantity: int = 1
    payment_method: PaymentMethod = PaymentMethod.AUTO
    campaign_coins_to_use: int | None = None
    regular_coins_to_use: int | None = None


class PurchaseResult(BaseModel):
    success: bool
    new_balance: int
    quantity_purchased: int
    breakdown: PaymentBreakdown
    grant_debits: list[GrantDebit]
    purchases: list[VoucherPurchase]


class CampaignVoucherView(BaseModel):
    voucher: Voucher
    eligible_campaign_ids: list[str]


class DistributionResult(BaseModel):
    campaign: Campaign
    target_users: int
    coins_per_user: int
    total_distributed: int
    codes_issued: int
    notifications_sent: int
    notifications_failed: int
    failed_user_ids: list[str] = Field(default_factory=list)


class RedemptionResult(BaseModel):
    kind: CodeKind
    coins_added: int
    new_balance: int
    campaign_id: str | None = None
    campaign_name: str | None = None
    restrictions: SpendingRestriction | None = None


class CodeIssueResult(BaseModel):
    issued: int
    skipped: int
    total_cost: int
    new_balance: int
    notifications_sent: int
    notifications_failed: int
    codes: list[RedemptionCode]
