"""캠페인 도메인 모델."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field

from .restriction import SpendingRestriction


class TargetType(StrEnum):
    ALL = "all"
    INDIVIDUAL = "individual"
    DEPARTMENT = "department"


class Campaign(BaseModel):
    """회사 관리자가 만든 코인 배포 캠페인.

    - remaining_budget 은 배포로만 줄어든다.
    - participant_count, total_distributed 는 줄어들지 않는다.
    - company_id 는 캠페인을 만든 회사 관리자의 계정 ID 다.
    """

    id: str | None = None
    name: str
    description: str
    company_id: str
    company_name: str | None = None
    target_type: TargetType
    target_users: list[str] = Field(default_factory=list)
    target_department: str | None = None
    total_budget: int
    remaining_budget: int
    coins_per_employee: int | None = None
    max_coins_per_employee: int | None = None
    restriction: SpendingRestriction = Field(default_factory=SpendingRestriction)
    start_date: datetime
    end_date: datetime
    is_active: bool = True
    allow_individual_codes: bool = False
    email_notifications: bool = True
    participant_count: int = 0
    total_distributed: int = 0
    redemption_count: int = 0
    tags: list[str] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime

    def is_open(self, now: datetime) -> bool:
        return self.is_active and self.start_date <= now <= self.end_date


class CampaignDraft(BaseModel):
    """캠페인 생성 입력."""

    name: str
    description: str
    target_type: TargetType
    target_users: list[str] = Field(default_factory=list)
    target_department: str | None = None
    individual_emails: list[str] = Field(default_factory=list)
    total_budget: int
    coins_per_employee: int | None = None
    max_coins_per_employee: int | None = None
    restriction: SpendingRestriction = Field(default_factory=SpendingRestriction)
    start_date: datetime
    end_date: datetime
    allow_individual_codes: bool = False
    email_notifications: bool = True
    tags: list[str] = Field(default_factory=list)


class CampaignPatch(BaseModel):
    """캠페인 수정 입력. None 인 필드는 변경하지 않는다.

    예산 관련 카운터(total/remaining budget, participant_count 등)는 수정 대상이 아니다.
    """

    name: str | None = None
    description: str | None = None
    target_type: TargetType | None = None
    target_users: list[str] | None = None
    target_department: str | None = None
    coins_per_employee: int | None = None
    max_coins_per_employee: int | None = None
    restriction: SpendingRestriction | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    is_active: bool | None = None
    allow_individual_codes: bool | None = None
    email_notifications: bool | None = None
    tags: list[str] | None = None


class CampaignParticipant(BaseModel):
    """캠페인과 유저 사이의 배포 기록 (campaign_id, user_id 유일)."""

    id: str | None = None
    campaign_id: str
    user_id: str
    coins_received: int
    distribution_count: int = 1
    created_at: datetime
    updated_at: datetime
