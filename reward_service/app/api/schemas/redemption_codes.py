from __future__ import annotations

from datetime import datetime

from common.types.datetime import UtcDateTime

from .common import CamelModel, RestrictionSchema
from ...models.ledger import CodeIssueResult, RedemptionResult
from ...models.redemption_code import CodeKind, RedemptionCode
from ...services.redemption_service import EmployeeContact, days_until


class EmployeeContactSchema(CamelModel):
    name: str = ""
    email: str = ""

    def to_domain(self) -> EmployeeContact:
        return EmployeeContact(name=self.name, email=self.email)


class IssueCodesRequest(CamelModel):
    employees: list[EmployeeContactSchema]
    coin_amount: int


class IssueCodesResponse(CamelModel):
    success: bool
    issued: int
    skipped: int
    total_cost: int
    new_balance: int
    notifications_sent: int
    notifications_failed: int

    @classmethod
    def from_domain(cls, result: CodeIssueResult) -> "IssueCodesResponse":
        return cls(
            success=True,
            issued=result.issued,
            skipped=result.skipped,
            total_cost=result.total_cost,
            new_balance=result.new_balance,
            notifications_sent=result.notifications_sent,
            notifications_failed=result.notifications_failed,
        )


class RedeemRequest(CamelModel):
    code: str


class RedeemResponse(CamelModel):
    success: bool
    kind: CodeKind
    coins_added: int
    new_balance: int
    campaign_id: str | None
    campaign_name: str | None
    restrictions: RestrictionSchema | None

    @classmethod
    def from_domain(cls, result: RedemptionResult) -> "RedeemResponse":
        return cls(
            success=True,
            kind=result.kind,
            coins_added=result.coins_added,
            new_balance=result.new_balance,
            campaign_id=result.campaign_id,
            campaign_name=result.campaign_name,
            restrictions=(
                RestrictionSchema.from_domain(result.restrictions)
                if result.restrictions is not None
                else None
            ),
        )


class RedemptionCodeResponse(CamelModel):
    """슈퍼어드민 조회용 코드 정보."""

    id: str | None
    code: str
    kind: CodeKind
    coin_amount: int
    employee_email: str | None
    employee_name: str | None
    user_id: str | None
    campaign_id: str | None
    issued_by: str
    is_redeemed: bool
    redeemed_at: UtcDateTime | None
    redeemed_by: str | None
    email_sent: bool
    expires_at: UtcDateTime
    created_at: UtcDateTime
    is_expired: bool
    days_until_expiry: int

    @classmethod
    def from_domain(cls, code: RedemptionCode, now: datetime) -> "RedemptionCodeResponse":
        return cls(
            id=code.id,
            code=code.code,
            kind=code.kind,
            coin_amount=code.coin_amount,
            employee_email=code.employee_email,
            employee_name=code.employee_name,
            user_id=code.user_id,
            campaign_id=code.campaign_id,
            issued_by=code.issued_by,
            is_redeemed=code.is_redeemed,
            redeemed_at=code.redeemed_at,
            redeemed_by=code.redeemed_by,
            email_sent=code.email_sent,
            expires_at=code.expires_at,
            created_at=code.created_at,
            is_expired=code.is_expired(now),
            days_until_expiry=days_until(code.expires_at, now),
        )
