from __future__ import annotations

from pydantic import Field

from common.types.datetime import UtcDateTime

from .common import CamelModel, CampaignCoinGrantResponse
from ...models.account import Role
from ...models.activity_log import ActivityLog
from ...models.transaction import CoinTransaction, TransactionStatus, TransactionType
from ...services.wallet_service import WalletView


class WalletResponse(CamelModel):
    user_id: str
    name: str
    email: str
    role: Role
    company_name: str | None
    regular_balance: int
    campaign_balances: list[CampaignCoinGrantResponse]
    total_campaign_coins: int

    @classmethod
    def from_view(cls, view: WalletView) -> "WalletResponse":
        account = view.account
        expired = set(view.expired_campaign_ids)
        return cls(
            user_id=account.id or "",
            name=account.name,
            email=account.email,
            role=account.role,
            company_name=account.company_name,
            regular_balance=account.regular_balance,
            campaign_balances=[
                CampaignCoinGrantResponse.from_domain(g, g.campaign_id in expired)
                for g in account.campaign_balances
            ],
            total_campaign_coins=view.total_campaign_coins,
        )


class AmountRequest(CamelModel):
    """슈퍼어드민 발행/소각 요청."""

    amount: int = Field(gt=0)


class BalanceResponse(CamelModel):
    new_balance: int


class TransactionResponse(CamelModel):
    id: str | None
    type: TransactionType
    amount: int
    from_user_id: str | None
    to_user_id: str | None
    status: TransactionStatus
    description: str
    metadata: dict | None
    created_at: UtcDateTime

    @classmethod
    def from_domain(cls, tx: CoinTransaction) -> "TransactionResponse":
        return cls(
            id=tx.id,
            type=tx.type,
            amount=tx.amount,
            from_user_id=tx.from_user_id,
            to_user_id=tx.to_user_id,
            status=tx.status,
            description=tx.description,
            metadata=tx.metadata,
            created_at=tx.created_at,
        )


class CoinRequestCreate(CamelModel):
    amount: int = Field(gt=0)
    reason: str


class CoinRequestReview(CamelModel):
    approve: bool


class ActivityLogResponse(CamelModel):
    id: str | None
    user_id: str
    action: str
    details: dict | None
    created_at: UtcDateTime

    @classmethod
    def from_domain(cls, log: ActivityLog) -> "ActivityLogResponse":
        return cls(
            id=log.id,
            user_id=log.user_id,
            action=log.action,
            details=log.details,
            created_at=log.created_at,
        )
