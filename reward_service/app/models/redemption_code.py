from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel

from .restriction import SpendingRestriction


class CodeKind(StrEnum):
    # plain: 이메일에 묶이고 일반 잔액으로 적립
    # campaign: 유저 ID 에 묶이고 캠페인 지급분으로 적립
    PLAIN = "plain"
    CAMPAIGN = "campaign"


class RedemptionCode(BaseModel):
    """일회용 리딤 코드. is_redeemed 는 한 번만 false -> true 로 바뀐다."""

    id: str | None = None
    code: str
    kind: CodeKind
    coin_amount: int
    employee_email: str | None = None
    employee_name: str | None = None
    user_id: str | None = None
    campaign_id: str | None = None
    campaign_name: str | None = None
    restriction: SpendingRestriction | None = None
    issued_by: str
    is_redeemed: bool = False
    redeemed_at: datetime | None = None
    redeemed_by: str | None = None
    expires_at: datetime
    email_sent: bool = False
    created_at: datetime
    updated_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return now > self.expires_at
