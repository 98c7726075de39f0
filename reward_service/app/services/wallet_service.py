"""지갑 조회, 슈퍼어드민 발행/소각, 코인 요청 처리 서비스."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable

from fastapi import Depends
from pydantic import BaseModel
from pymongo.database import Database

from common.mongo.client import get_database
from common.types.datetime import utc_now

from ..access import Capability, require_capability
from ..exceptions import InsufficientFundsError, NotFoundError, ValidationError
from ..models.account import Account
from ..models.transaction import CoinTransaction, TransactionStatus, TransactionType
from ..repositories.account_repository import AccountRepository
from ..repositories.activity_log_repository import ActivityLogRepository
from ..repositories.interfaces import (
    AccountRepositoryInterface,
    TransactionRepositoryInterface,
)
from ..repositories.transaction_repository import TransactionRepository
from .activity_service import ActivityService


logger = logging.getLogger(__name__)


class WalletView(BaseModel):
    account: Account
    total_campaign_coins: int
    expired_campaign_ids: list[str]


class WalletService:
    def __init__(
        self,
        account_repo: AccountRepositoryInterface,
        transaction_repo: TransactionRepositoryInterface,
        activity: ActivityService,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._account_repo = account_repo
        self._transaction_repo = transaction_repo
        self._activity = activity
        self._clock = clock

    def get_wallet(self, actor: Account) -> WalletView:
        require_capability(actor, Capability.VIEW_WALLET)
        now = self._clock()
        return WalletView(
            account=actor,
            total_campaign_coins=actor.total_campaign_coins,
            expired_campaign_ids=[
                g.campaign_id for g in actor.campaign_balances if g.is_expired(now)
            ],
        )

    def get_history(
        self, actor: Account, page: int = 1, page_size: int = 20
    ) -> tuple[list[CoinTransaction], int]:
        """보내거나 받은 코인 트랜잭션 이력."""
        require_capability(actor, Capability.VIEW_WALLET)
        return self._transaction_repo.list_by_user(actor.id or "", page, page_size)

    # -------- Superadmin mint / burn --------

    def mint(self, actor: Account, amount: int) -> Account:
        require_capability(actor, Capability.MINT_COINS)
        _validate_amount(amount)
        updated = self._account_repo.credit_regular(actor.id or "", amount)
        if updated is None:
            raise NotFoundError("Account not found")
        self._log_completed(TransactionType.MINT, amount, to_user_id=actor.id)
        self._activity.record(actor.id or "", "mint_coins", {"amount": amount})
        return updated

    def burn(self, actor: Account, amount: int) -> Account:
        require_capability(actor, Capability.MINT_COINS)
        _validate_amount(amount)
        updated = self._account_repo.debit(actor.id or "", amount, [])
        if updated is None:
            raise InsufficientFundsError(
                f"Cannot burn {amount} coins; balance is {actor.regular_balance}"
            )
        self._log_completed(TransactionType.BURN, amount, from_user_id=actor.id)
        self._activity.record(actor.id or "", "burn_coins", {"amount": amount})
        return updated

    # -------- Coin requests --------

    def request_coins(self, actor: Account, amount: int, reason: str) -> CoinTransaction:
        require_capability(actor, Capability.REQUEST_COINS)
        _validate_amount(amount)
        if not reason.strip():
            raise ValidationError("Reason is required")
        now = self._clock()
        created = self._transaction_repo.create(
            CoinTransaction(
                type=TransactionType.REQUEST,
                amount=amount,
                to_user_id=actor.id,
                status=TransactionStatus.PENDING,
                description=reason.strip(),
                created_at=now,
                updated_at=now,
            )
        )
        self._activity.record(
            actor.id or "",
            "request_coins",
            {"request_id": created.id, "amount": amount},
        )
        return created

    def list_coin_requests(
        self, actor: Account, status: TransactionStatus | None = None
    ) -> list[CoinTransaction]:
        require_capability(actor, Capability.REVIEW_COIN_REQUESTS)
        return self._transaction_repo.list_by_type(TransactionType.REQUEST, status)

    def review_coin_request(
        self, actor: Account, request_id: str, approve: bool
    ) -> CoinTransaction:
        """요청을 승인/거절한다. pending 상태에서 한 번만 처리된다.

        승인 시 슈퍼어드민 잔액에서 요청자에게 코인을 옮긴다. 잔액이 부족하면
        요청을 pending 으로 되돌린다.
        """
        require_capability(actor, Capability.REVIEW_COIN_REQUESTS)
        target = (
            TransactionStatus.APPROVED if approve else TransactionStatus.REJECTED
        )
        claimed = self._transaction_repo.transition_status(
            request_id,
            TransactionType.REQUEST,
            TransactionStatus.PENDING,
            target,
        )
        if claimed is None:
            raise NotFoundError("Request not found or already processed")

        if approve:
            self._transfer_for_request(actor, claimed)

        self._activity.record(
            actor.id or "",
            "approve_coin_request" if approve else "reject_coin_request",
            {
                "request_id": request_id,
                "amount": claimed.amount,
                "requester_id": claimed.to_user_id,
            },
        )
        return claimed

    # -------- Internal helpers --------

    def _transfer_for_request(self, actor: Account, request: CoinTransaction) -> None:
        actor_id = actor.id or ""
        requester_id = request.to_user_id or ""

        debited = self._account_repo.debit(actor_id, request.amount, [])
        if debited is None:
            self._revert_to_pending(request)
            raise InsufficientFundsError(
                f"Insufficient coins to approve request. Need {request.amount}"
            )

        credited = self._account_repo.credit_regular(requester_id, request.amount)
        if credited is None:
            self._account_repo.credit_regular(actor_id, request.amount)
            self._revert_to_pending(request)
            raise NotFoundError("Requesting user not found")

        self._log_completed(
            TransactionType.TRANSFER,
            request.amount,
            from_user_id=actor_id,
            to_user_id=requester_id,
            description="Coin request approved",
            metadata={"request_id": request.id},
        )
        logger.info(
            "coin request approved",
            extra={"user_id": requester_id},
        )

    def _revert_to_pending(self, request: CoinTransaction) -> None:
        self._transaction_repo.transition_status(
            request.id or "",
            TransactionType.REQUEST,
            TransactionStatus.APPROVED,
            TransactionStatus.PENDING,
        )

    def _log_completed(
        self,
        tx_type: TransactionType,
        amount: int,
        *,
        from_user_id: str | None = None,
        to_user_id: str | None = None,
        description: str = "",
        metadata: dict | None = None,
    ) -> CoinTransaction:
        now = self._clock()
        return self._transaction_repo.create(
            CoinTransaction(
                type=tx_type,
                amount=amount,
                from_user_id=from_user_id,
                to_user_id=to_user_id,
                status=TransactionStatus.COMPLETED,
                description=description or tx_type.value,
                metadata=metadata,
                created_at=now,
                updated_at=now,
            )
        )


def _validate_amount(amount: int) -> None:
    if amount <= 0:
        raise ValidationError("Amount must be positive")


def get_wallet_service(db: Database = Depends(get_database)) -> WalletService:
    """FastAPI DI용 WalletService 팩토리."""
    return WalletService(
        account_repo=AccountRepository(db),
        transaction_repo=TransactionRepository(db),
        activity=ActivityService(ActivityLogRepository(db)),
    )
