"""코인 트랜잭션 로그 도메인 모델 (append-only)."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel


class TransactionType(StrEnum):
    MINT = "mint"
    BURN = "burn"
    REQUEST = "request"
    TRANSFER = "transfer"
    PURCHASE = "purchase"
    CODE_ISSUE = "code_issue"
    REDEEM_CODE = "redeem_code"
    CAMPAIGN_DISTRIBUTION = "campaign_distribution"


class TransactionStatus(StrEnum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    COMPLETED = "completed"


class CoinTransaction(BaseModel):
    id: str | None = None
    type: TransactionType
    amount: int
    from_user_id: str | None = None
    to_user_id: str | None = None
    status: TransactionStatus = TransactionStatus.COMPLETED
    description: str = ""
    metadata: dict | None = None
    created_at: datetime
    updated_at: datetime
