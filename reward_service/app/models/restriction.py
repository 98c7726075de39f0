"""캠페인 코인 사용 제한 모델.

캠페인에서 지급된 코인은 캠페인의 제한 조건을 그대로 복사해 들고 다닌다.
제한 타입에 맞는 상세 목록 하나만 의미가 있다.
"""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, Field


class RestrictionType(StrEnum):
    NONE = "none"
    CATEGORY = "category"
    BRAND = "brand"
    SPECIFIC = "specific"


class SpendingRestriction(BaseModel):
    """캠페인 코인이 어떤 바우처에 쓰일 수 있는지 나타낸다."""

    restriction_type: RestrictionType = RestrictionType.NONE
    allowed_categories: list[str] = Field(default_factory=list)
    allowed_brands: list[str] = Field(default_factory=list)
    allowed_voucher_ids: list[str] = Field(default_factory=list)

    def detail(self) -> list[str]:
        """제한 타입에 대응하는 상세 목록 (NONE 이면 빈 목록)."""
        if self.restriction_type == RestrictionType.CATEGORY:
            return self.allowed_categories
        if self.restriction_type == RestrictionType.BRAND:
            return self.allowed_brands
        if self.restriction_type == RestrictionType.SPECIFIC:
            return self.allowed_voucher_ids
        return []

    def normalized(self) -> "SpendingRestriction":
        """타입과 무관한 상세 목록을 비운 사본을 반환한다."""
        return SpendingRestriction(
            restriction_type=self.restriction_type,
            allowed_categories=(
                list(self.allowed_categories)
                if self.restriction_type == RestrictionType.CATEGORY
                else []
            ),
            allowed_brands=(
                list(self.allowed_brands)
                if self.restriction_type == RestrictionType.BRAND
                else []
            ),
            allowed_voucher_ids=(
                list(self.allowed_voucher_ids)
                if self.restriction_type == RestrictionType.SPECIFIC
                else []
            ),
        )
