from __future__ import annotations

from pydantic import BaseModel, Field

from ...models.restriction import RestrictionType, SpendingRestriction


class RestrictionDocument(BaseModel):
    """캠페인/지급분/코드에 내장되는 제한 조건 서브도큐먼트."""

    restriction_type: str = RestrictionType.NONE.value
    allowed_categories: list[str] = Field(default_factory=list)
    allowed_brands: list[str] = Field(default_factory=list)
    allowed_voucher_ids: list[str] = Field(default_factory=list)

    @classmethod
    def from_domain(cls, restriction: SpendingRestriction) -> "RestrictionDocument":
        normalized = restriction.normalized()
        return cls(
            restriction_type=normalized.restriction_type.value,
            allowed_categories=normalized.allowed_categories,
            allowed_brands=normalized.allowed_brands,
            allowed_voucher_ids=normalized.allowed_voucher_ids,
        )

    def to_domain(self) -> SpendingRestriction:
        return SpendingRestriction(
            restriction_type=RestrictionType(self.restriction_type),
            allowed_categories=list(self.allowed_categories or []),
            allowed_brands=list(self.allowed_brands or []),
            allowed_voucher_ids=list(self.allowed_voucher_ids or []),
        )
