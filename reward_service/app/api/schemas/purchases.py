from __future__ import annotations

from common.types.datetime import UtcDateTime

from .common import CamelModel
from ...models.ledger import PaymentBreakdown, PaymentMethod, PurchaseRequest, PurchaseResult
from ...models.voucher import VoucherPurchase


class PurchasePreviewRequest(CamelModel):
    voucher_id: str
    quantity: int = 1
    payment_method: PaymentMethod = PaymentMethod.AUTO


class PurchaseRequestBody(CamelModel):
    """구매 요청. 분할 값은 미리보기 결과를 그대로 돌려보내면 된다 (생략 가능)."""

    voucher_id: str
    quantity: int = 1
    payment_method: PaymentMethod = PaymentMethod.AUTO
    campaign_coins_to_use: int | None = None
    regular_coins_to_use: int | None = None

    def to_domain(self) -> PurchaseRequest:
        return PurchaseRequest(**self.model_dump())


class PaymentBreakdownResponse(CamelModel):
    total_cost: int
    campaign_coins_used: int
    regular_coins_used: int
    can_afford: bool
    payment_method: PaymentMethod

    @classmethod
    def from_domain(cls, breakdown: PaymentBreakdown) -> "PaymentBreakdownResponse":
        return cls(**breakdown.model_dump())


class PurchaseResponse(CamelModel):
    success: bool
    new_balance: int
    quantity_purchased: int
    campaign_coins_used: int
    regular_coins_used: int
    payment_breakdown: PaymentBreakdownResponse
    purchase_ids: list[str]

    @classmethod
    def from_domain(cls, result: PurchaseResult) -> "PurchaseResponse":
        return cls(
            success=result.success,
            new_balance=result.new_balance,
            quantity_purchased=result.quantity_purchased,
            campaign_coins_used=result.breakdown.campaign_coins_used,
            regular_coins_used=result.breakdown.regular_coins_used,
            payment_breakdown=PaymentBreakdownResponse.from_domain(result.breakdown),
            purchase_ids=[p.id for p in result.purchases if p.id],
        )


class VoucherPurchaseResponse(CamelModel):
    id: str | None
    voucher_id: str
    voucher_title: str
    coin_value: int
    is_redeemed: bool
    redeemed_at: UtcDateTime | None
    purchased_at: UtcDateTime

    @classmethod
    def from_domain(cls, purchase: VoucherPurchase) -> "VoucherPurchaseResponse":
        return cls(
            id=purchase.id,
            voucher_id=purchase.voucher_id,
            voucher_title=purchase.voucher_title,
            coin_value=purchase.coin_value,
            is_redeemed=purchase.is_redeemed,
            redeemed_at=purchase.redeemed_at,
            purchased_at=purchase.purchased_at,
        )
