from __future__ import annotations

from datetime import datetime

from common.types.datetime import UtcDateTime

from .common import CamelModel, CampaignCoinGrantResponse
from ...models.ledger import CampaignVoucherView, EligibilityView
from ...models.voucher import Voucher, VoucherDraft


class VoucherCreateRequest(CamelModel):
    title: str
    description: str = ""
    category: str
    brand: str | None = None
    coin_value: int
    quantity: int
    original_price: int | None = None
    image_url: str | None = None
    expiry_date: datetime | None = None

    def to_domain(self) -> VoucherDraft:
        return VoucherDraft(**self.model_dump())


class VoucherUpdateRequest(CamelModel):
    """보낸 필드만 수정한다."""

    title: str | None = None
    description: str | None = None
    category: str | None = None
    brand: str | None = None
    coin_value: int | None = None
    quantity: int | None = None
    original_price: int | None = None
    image_url: str | None = None
    expiry_date: datetime | None = None
    is_active: bool | None = None


class VoucherResponse(CamelModel):
    id: str | None
    title: str
    description: str
    category: str
    brand: str | None
    coin_value: int
    quantity: int
    original_price: int | None
    image_url: str | None
    expiry_date: UtcDateTime | None
    is_active: bool
    created_at: UtcDateTime

    @classmethod
    def from_domain(cls, voucher: Voucher) -> "VoucherResponse":
        return cls(
            id=voucher.id,
            title=voucher.title,
            description=voucher.description,
            category=voucher.category,
            brand=voucher.brand,
            coin_value=voucher.coin_value,
            quantity=voucher.quantity,
            original_price=voucher.original_price,
            image_url=voucher.image_url,
            expiry_date=voucher.expiry_date,
            is_active=voucher.is_active,
            created_at=voucher.created_at,
        )


class CampaignVoucherResponse(VoucherResponse):
    eligible_campaign_ids: list[str]

    @classmethod
    def from_view(cls, view: CampaignVoucherView) -> "CampaignVoucherResponse":
        base = VoucherResponse.from_domain(view.voucher)
        return cls(
            **base.model_dump(),
            eligible_campaign_ids=view.eligible_campaign_ids,
        )


class EligibilityResponse(CamelModel):
    is_eligible: bool
    available_campaign_coins: list[CampaignCoinGrantResponse]
    total_campaign_coins: int
    regular_coins: int
    total_available_coins: int

    @classmethod
    def from_view(cls, view: EligibilityView) -> "EligibilityResponse":
        return cls(
            is_eligible=view.is_eligible,
            available_campaign_coins=[
                CampaignCoinGrantResponse.from_domain(g)
                for g in view.available_campaign_coins
            ],
            total_campaign_coins=view.total_campaign_coins,
            regular_coins=view.regular_coins,
            total_available_coins=view.total_available_coins,
        )
