"""계정 MongoDB 도큐먼트.

캠페인 지급분은 accounts 도큐먼트 안의 campaign_balances 배열로 저장한다.
한 도큐먼트에 잔액이 모두 있어야 구매 차감을 조건부 업데이트 한 번으로 끝낼 수 있다.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from common.mongo.types import BaseDocument, MongoDateTime, from_object_id, to_object_id

from ...models.account import Account, CampaignCoinGrant, Role
from .restriction_document import RestrictionDocument


class CampaignCoinGrantDocument(BaseModel):
    campaign_id: str
    campaign_name: str
    balance: int
    restriction: RestrictionDocument = Field(default_factory=RestrictionDocument)
    expiry_date: MongoDateTime
    granted_at: MongoDateTime

    @classmethod
    def from_domain(cls, grant: CampaignCoinGrant) -> "CampaignCoinGrantDocument":
        return cls(
            campaign_id=grant.campaign_id,
            campaign_name=grant.campaign_name,
            balance=grant.balance,
            restriction=RestrictionDocument.from_domain(grant.restriction),
            expiry_date=grant.expiry_date,
            granted_at=grant.granted_at,
        )

    def to_record(self) -> dict[str, Any]:
        return self.model_dump()

    def to_domain(self) -> CampaignCoinGrant:
        return CampaignCoinGrant(
            campaign_id=self.campaign_id,
            campaign_name=self.campaign_name,
            balance=self.balance,
            restriction=self.restriction.to_domain(),
            expiry_date=self.expiry_date,
            granted_at=self.granted_at,
        )


class AccountDocument(BaseDocument):
    """MongoDB accounts 컬렉션 도큐먼트 모델."""

    name: str
    email: str
    role: str
    company_name: str | None = None
    department: str | None = None
    regular_balance: int = 0
    campaign_balances: list[CampaignCoinGrantDocument] = Field(default_factory=list)

    @classmethod
    def from_domain(cls, account: Account) -> "AccountDocument":
        return cls(
            _id=to_object_id(account.id) if account.id else None,
            name=account.name,
            email=account.email.lower(),
            role=account.role.value,
            company_name=account.company_name,
            department=account.department,
            regular_balance=account.regular_balance,
            campaign_balances=[
                CampaignCoinGrantDocument.from_domain(grant)
                for grant in account.campaign_balances
            ],
            created_at=account.created_at,
            updated_at=account.updated_at,
        )

    def to_domain(self) -> Account:
        return Account(
            id=from_object_id(self.id),
            name=self.name,
            email=self.email,
            role=Role(self.role),
            company_name=self.company_name,
            department=self.department,
            regular_balance=self.regular_balance,
            campaign_balances=[grant.to_domain() for grant in self.campaign_balances],
            created_at=self.created_at,
            updated_at=self.updated_at,
        )
