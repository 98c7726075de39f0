from __future__ import annotations

from pydantic import Field

from common.mongo.types import BaseDocument, MongoDateTime, from_object_id, to_object_id

from ...models.campaign import Campaign, CampaignParticipant, TargetType
from .restriction_document import RestrictionDocument


class CampaignDocument(BaseDocument):
    """MongoDB campaigns 컬렉션 도큐먼트 모델."""

    name: str
    description: str
    company_id: str
    company_name: str | None = None
    target_type: str
    target_users: list[str] = Field(default_factory=list)
    target_department: str | None = None
    total_budget: int
    remaining_budget: int
    coins_per_employee: int | None = None
    max_coins_per_employee: int | None = None
    restriction: RestrictionDocument = Field(default_factory=RestrictionDocument)
    start_date: MongoDateTime
    end_date: MongoDateTime
    is_active: bool = True
    allow_individual_codes: bool = False
    email_notifications: bool = True
    participant_count: int = 0
    total_distributed: int = 0
    redemption_count: int = 0
    tags: list[str] = Field(default_factory=list)

    @classmethod
    def from_domain(cls, campaign: Campaign) -> "CampaignDocument":
        data = campaign.model_dump(exclude={"id", "restriction", "target_type"})
        return cls(
            _id=to_object_id(campaign.id) if campaign.id else None,
            target_type=campaign.target_type.value,
            restriction=RestrictionDocument.from_domain(campaign.restriction),
            **data,
        )

    def to_domain(self) -> Campaign:
        data = self.model_dump(exclude={"id", "restriction", "target_type"})
        return Campaign(
            id=from_object_id(self.id),
            target_type=TargetType(self.target_type),
            restriction=self.restriction.to_domain(),
            **data,
        )


class CampaignParticipantDocument(BaseDocument):
    """MongoDB campaign_participants 컬렉션 도큐먼트 모델."""

    campaign_id: str
    user_id: str
    coins_received: int
    distribution_count: int = 1

    def to_domain(self) -> CampaignParticipant:
        return CampaignParticipant(
            id=from_object_id(self.id),
            campaign_id=self.campaign_id,
            user_id=self.user_id,
            coins_received=self.coins_received,
            distribution_count=self.distribution_count,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )
