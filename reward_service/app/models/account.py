"""계정(지갑) 도메인 모델.

유저당 일반 코인 잔액 하나와, 캠페인별로 병합되는 캠페인 코인 지급분 목록을 가진다.
"""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field

from .restriction import SpendingRestriction


class Role(StrEnum):
    SUPERADMIN = "superadmin"
    COMPANY_ADMIN = "company_admin"
    EMPLOYEE = "employee"


class CampaignCoinGrant(BaseModel):
    """캠페인 하나에서 받은 코인 묶음.

    계정 안에서 campaign_id 로 유일하며, 같은 캠페인에서 다시 받으면 balance 만 늘어난다.
    """

    campaign_id: str
    campaign_name: str
    balance: int
    restriction: SpendingRestriction = Field(default_factory=SpendingRestriction)
    expiry_date: datetime
    granted_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return now > self.expiry_date


class GrantDebit(BaseModel):
    """구매 시 특정 캠페인 지급분에서 빼갈 수량."""

    campaign_id: str
    amount: int


class Account(BaseModel):
    id: str | None = None
    name: str
    email: str
    role: Role
    company_name: str | None = None
    department: str | None = None
    regular_balance: int = 0
    campaign_balances: list[CampaignCoinGrant] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime

    def find_grant(self, campaign_id: str) -> CampaignCoinGrant | None:
        for grant in self.campaign_balances:
            if grant.campaign_id == campaign_id:
                return grant
        return None

    @property
    def total_campaign_coins(self) -> int:
        return sum(grant.balance for grant in self.campaign_balances)
