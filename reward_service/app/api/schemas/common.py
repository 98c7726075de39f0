"""공통 스키마 정의."""

from __future__ import annotations

from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from common.types.datetime import UtcDateTime

from ...models.account import CampaignCoinGrant
from ...models.restriction import RestrictionType, SpendingRestriction


T = TypeVar("T")


class CamelModel(BaseModel):
    """camelCase 필드명으로 주고받는 API 스키마 베이스.

    snake_case 이름으로도 채울 수 있다.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PaginatedResponse(CamelModel, Generic[T]):
    """페이지네이션 응답 공통 스키마."""

    items: list[T]
    total: int
    page: int
    page_size: int


class RestrictionSchema(CamelModel):
    restriction_type: RestrictionType = RestrictionType.NONE
    allowed_categories: list[str] = Field(default_factory=list)
    allowed_brands: list[str] = Field(default_factory=list)
    allowed_voucher_ids: list[str] = Field(default_factory=list)

    @classmethod
    def from_domain(cls, restriction: SpendingRestriction) -> "RestrictionSchema":
        return cls(**restriction.model_dump())

    def to_domain(self) -> SpendingRestriction:
        return SpendingRestriction(**self.model_dump())


class CampaignCoinGrantResponse(CamelModel):
    campaign_id: str
    campaign_name: str
    balance: int
    restriction_type: RestrictionType
    allowed_categories: list[str]
    allowed_brands: list[str]
    allowed_voucher_ids: list[str]
    expiry_date: UtcDateTime
    granted_at: UtcDateTime
    is_expired: bool

    @classmethod
    def from_domain(
        cls, grant: CampaignCoinGrant, is_expired: bool = False
    ) -> "CampaignCoinGrantResponse":
        return cls(
            campaign_id=grant.campaign_id,
            campaign_name=grant.campaign_name,
            balance=grant.balance,
            restriction_type=grant.restriction.restriction_type,
            allowed_categories=grant.restriction.allowed_categories,
            allowed_brands=grant.restriction.allowed_brands,
            allowed_voucher_ids=grant.restriction.allowed_voucher_ids,
            expiry_date=grant.expiry_date,
            granted_at=grant.granted_at,
            is_expired=is_expired,
        )


class MessageResponse(CamelModel):
    message: str
