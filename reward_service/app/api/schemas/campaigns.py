from __future__ import annotations

from datetime import datetime

from pydantic import Field

from common.types.datetime import UtcDateTime

from .common import CamelModel, RestrictionSchema
from ...models.campaign import (
    Campaign,
    CampaignDraft,
    CampaignParticipant,
    CampaignPatch,
    TargetType,
)
from ...models.ledger import DistributionResult
from ...models.restriction import RestrictionType, SpendingRestriction


class CampaignCreateRequest(CamelModel):
    name: str
    description: str
    target_type: TargetType = TargetType.ALL
    target_users: list[str] = Field(default_factory=list)
    target_department: str | None = None
    individual_emails: list[str] = Field(default_factory=list)
    total_budget: int
    coins_per_employee: int | None = None
    max_coins_per_employee: int | None = None
    restriction_type: RestrictionType = RestrictionType.NONE
    allowed_categories: list[str] = Field(default_factory=list)
    allowed_brands: list[str] = Field(default_factory=list)
    allowed_voucher_ids: list[str] = Field(default_factory=list)
    start_date: datetime
    end_date: datetime
    allow_individual_codes: bool = False
    email_notifications: bool = True
    tags: list[str] = Field(default_factory=list)

    def to_domain(self) -> CampaignDraft:
        return CampaignDraft(
            name=self.name,
            description=self.description,
            target_type=self.target_type,
            target_users=self.target_users,
            target_department=self.target_department,
            individual_emails=self.individual_emails,
            total_budget=self.total_budget,
            coins_per_employee=self.coins_per_employee,
            max_coins_per_employee=self.max_coins_per_employee,
            restriction=SpendingRestriction(
                restriction_type=self.restriction_type,
                allowed_categories=self.allowed_categories,
                allowed_brands=self.allowed_brands,
                allowed_voucher_ids=self.allowed_voucher_ids,
            ),
            start_date=self.start_date,
            end_date=self.end_date,
            allow_individual_codes=self.allow_individual_codes,
            email_notifications=self.email_notifications,
            tags=self.tags,
        )


class CampaignUpdateRequest(CamelModel):
    """보낸 필드만 수정한다. 제한 조건은 restriction 객체 전체로 교체한다."""

    name: str | None = None
    description: str | None = None
    target_type: TargetType | None = None
    target_users: list[str] | None = None
    target_department: str | None = None
    coins_per_employee: int | None = None
    max_coins_per_employee: int | None = None
    restriction: RestrictionSchema | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    is_active: bool | None = None
    allow_individual_codes: bool | None = None
    email_notifications: bool | None = None
    tags: list[str] | None = None

    def to_domain(self) -> CampaignPatch:
        data = self.model_dump(exclude={"restriction"})
        return CampaignPatch(
            **data,
            restriction=self.restriction.to_domain() if self.restriction else None,
        )


class CampaignResponse(CamelModel):
    id: str | None
    name: str
    description: str
    company_id: str
    target_type: TargetType
    target_users: list[str]
    target_department: str | None
    total_budget: int
    remaining_budget: int
    coins_per_employee: int | None
    max_coins_per_employee: int | None
    restriction_type: RestrictionType
    allowed_categories: list[str]
    allowed_brands: list[str]
    allowed_voucher_ids: list[str]
    start_date: UtcDateTime
    end_date: UtcDateTime
    is_active: bool
    allow_individual_codes: bool
    email_notifications: bool
    participant_count: int
    total_distributed: int
    redemption_count: int
    tags: list[str]
    created_at: UtcDateTime

    @classmethod
    def from_domain(cls, campaign: Campaign) -> "CampaignResponse":
        restriction = campaign.restriction
        return cls(
            id=campaign.id,
            name=campaign.name,
            description=campaign.description,
            company_id=campaign.company_id,
            target_type=campaign.target_type,
            target_users=campaign.target_users,
            target_department=campaign.target_department,
            total_budget=campaign.total_budget,
            remaining_budget=campaign.remaining_budget,
            coins_per_employee=campaign.coins_per_employee,
            max_coins_per_employee=campaign.max_coins_per_employee,
            restriction_type=restriction.restriction_type,
            allowed_categories=restriction.allowed_categories,
            allowed_brands=restriction.allowed_brands,
            allowed_voucher_ids=restriction.allowed_voucher_ids,
            start_date=campaign.start_date,
            end_date=campaign.end_date,
            is_active=campaign.is_active,
            allow_individual_codes=campaign.allow_individual_codes,
            email_notifications=campaign.email_notifications,
            participant_count=campaign.participant_count,
            total_distributed=campaign.total_distributed,
            redemption_count=campaign.redemption_count,
            tags=campaign.tags,
            created_at=campaign.created_at,
        )


class DistributeRequest(CamelModel):
    """대상 유저를 생략하면 캠페인 대상 설정으로 결정한다."""

    target_user_ids: list[str] | None = None
    coins_per_user: int | None = None
    custom_message: str | None = None


class DistributeResponse(CamelModel):
    success: bool
    target_users: int
    coins_per_user: int
    total_distributed: int
    remaining_budget: int
    codes_issued: int
    notifications_sent: int
    notifications_failed: int
    failed_user_ids: list[str]

    @classmethod
    def from_domain(cls, result: DistributionResult) -> "DistributeResponse":
        return cls(
            success=True,
            target_users=result.target_users,
            coins_per_user=result.coins_per_user,
            total_distributed=result.total_distributed,
            remaining_budget=result.campaign.remaining_budget,
            codes_issued=result.codes_issued,
            notifications_sent=result.notifications_sent,
            notifications_failed=result.notifications_failed,
            failed_user_ids=result.failed_user_ids,
        )


class ParticipantResponse(CamelModel):
    user_id: str
    coins_received: int
    distribution_count: int
    created_at: UtcDateTime

    @classmethod
    def from_domain(cls, participant: CampaignParticipant) -> "ParticipantResponse":
        return cls(
            user_id=participant.user_id,
            coins_received=participant.coins_received,
            distribution_count=participant.distribution_count,
            created_at=participant.created_at,
        )
