"""바우처 구매 정산 서비스.

흐름: 검증 -> 서버측 분할 계산 -> 재고 예약 -> 잔액 조건부 차감 -> 기록 -> 알림.
검증 단계에서 실패하면 아무것도 바뀌지 않는다. 재고 예약 뒤 차감이 경쟁에서 지면
예약한 재고를 되돌린다.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable

from fastapi import Depends
from pymongo.database import Database

from common.mongo.client import get_database
from common.types.datetime import utc_now

from ..access import Capability, require_capability
from ..config import AppConfig, LedgerConfig, get_app_config
from ..exceptions import (
    InsufficientFundsError,
    InsufficientInventoryError,
    NotFoundError,
    ValidationError,
)
from ..models.account import Account
from ..models.ledger import (
    EligibilityResult,
    EligibilityView,
    PaymentBreakdown,
    PaymentMethod,
    PurchaseRequest,
    PurchaseResult,
)
from ..models.transaction import CoinTransaction, TransactionStatus, TransactionType
from ..models.voucher import Voucher, VoucherPurchase
from ..repositories.account_repository import AccountRepository
from ..repositories.activity_log_repository import ActivityLogRepository
from ..repositories.interfaces import (
    AccountRepositoryInterface,
    PurchaseRepositoryInterface,
    TransactionRepositoryInterface,
    VoucherRepositoryInterface,
)
from ..repositories.transaction_repository import TransactionRepository
from ..repositories.voucher_repository import PurchaseRepository, VoucherRepository
from .activity_service import ActivityService
from .eligibility import resolve_eligibility
from .notifier import NotifierInterface, build_voucher_purchased_event, get_notifier
from .payment import calculate_payment_breakdown, plan_grant_debits


logger = logging.getLogger(__name__)


class SettlementService:
    """바우처 구매와 결제 미리보기를 담당한다."""

    def __init__(
        self,
        account_repo: AccountRepositoryInterface,
        voucher_repo: VoucherRepositoryInterface,
        transaction_repo: TransactionRepositoryInterface,
        purchase_repo: PurchaseRepositoryInterface,
        activity: ActivityService,
        notifier: NotifierInterface,
        ledger_config: LedgerConfig,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._account_repo = account_repo
        self._voucher_repo = voucher_repo
        self._transaction_repo = transaction_repo
        self._purchase_repo = purchase_repo
        self._activity = activity
        self._notifier = notifier
        self._ledger_config = ledger_config
        self._clock = clock

    # -------- Queries --------

    def check_eligibility(self, user_id: str, voucher_id: str) -> EligibilityView:
        """유저가 바우처에 쓸 수 있는 캠페인 코인과 전체 가용 코인을 조회한다."""
        account = self._get_account(user_id)
        voucher = self._get_active_voucher(voucher_id)
        eligibility = self._resolve(account, voucher)
        return EligibilityView(
            is_eligible=eligibility.is_eligible,
            available_campaign_coins=eligibility.eligible_grants,
            total_campaign_coins=eligibility.total_campaign_coins,
            regular_coins=account.regular_balance,
            total_available_coins=(
                account.regular_balance + eligibility.total_campaign_coins
            ),
        )

    def preview(
        self,
        actor: Account,
        voucher_id: str,
        quantity: int = 1,
        payment_method: PaymentMethod = PaymentMethod.AUTO,
    ) -> PaymentBreakdown:
        """구매 커밋과 같은 계산으로 결제 분할을 미리 보여준다 (변경 없음)."""
        require_capability(actor, Capability.PURCHASE_VOUCHERS)
        _validate_quantity(quantity)
        voucher = self._get_active_voucher(voucher_id)
        eligibility = self._resolve(actor, voucher)
        return calculate_payment_breakdown(
            coin_value=voucher.coin_value,
            quantity=quantity,
            eligible_campaign_coins=eligibility.total_campaign_coins,
            regular_balance=actor.regular_balance,
            payment_method=payment_method,
        )

    # -------- Commands --------

    def purchase(self, actor: Account, request: PurchaseRequest) -> PurchaseResult:
        require_capability(actor, Capability.PURCHASE_VOUCHERS)
        if actor.id is None:
            raise NotFoundError("Account not found")
        _validate_quantity(request.quantity)

        voucher = self._get_active_voucher(request.voucher_id)
        if voucher.quantity < request.quantity:
            raise InsufficientInventoryError(
                f"Only {voucher.quantity} vouchers available"
            )

        # 최신 잔액 기준으로 다시 계산한다 (클라이언트 값은 검증용).
        account = self._get_account(actor.id)
        eligibility = self._resolve(account, voucher)
        breakdown = calculate_payment_breakdown(
            coin_value=voucher.coin_value,
            quantity=request.quantity,
            eligible_campaign_coins=eligibility.total_campaign_coins,
            regular_balance=account.regular_balance,
            payment_method=request.payment_method,
        )
        if not breakdown.can_afford:
            raise InsufficientFundsError(_shortage_message(breakdown, eligibility, account))

        _check_client_split(request, breakdown)

        grant_debits = plan_grant_debits(
            eligibility.eligible_grants, breakdown.campaign_coins_used
        )

        # 1) 재고 예약
        reserved = self._voucher_repo.reserve_stock(voucher.id or "", request.quantity)
        if reserved is None:
            current = self._voucher_repo.find_by_id(voucher.id or "")
            if current is None or not current.is_active:
                raise NotFoundError("Voucher not found or inactive")
            raise InsufficientInventoryError(
                f"Only {current.quantity} vouchers available"
            )

        # 2) 잔액 조건부 차감. 실패하면 예약 재고를 되돌린다.
        updated = self._account_repo.debit(
            actor.id, breakdown.regular_coins_used, grant_debits
        )
        if updated is None:
            self._voucher_repo.release_stock(voucher.id or "", request.quantity)
            logger.info(
                "purchase lost a balance race; stock released",
                extra={"user_id": actor.id, "voucher_id": voucher.id},
            )
            raise InsufficientFundsError(
                "Balance changed during purchase. Please review your coins and try again."
            )

        # 3) 기록
        now = self._clock()
        purchases = self._purchase_repo.create_many(
            [
                VoucherPurchase(
                    voucher_id=voucher.id or "",
                    voucher_title=voucher.title,
                    employee_id=actor.id,
                    coin_value=voucher.coin_value,
                    purchased_at=now,
                    created_at=now,
                    updated_at=now,
                )
                for _ in range(request.quantity)
            ]
        )
        self._transaction_repo.create(
            CoinTransaction(
                type=TransactionType.PURCHASE,
                amount=breakdown.total_cost,
                from_user_id=actor.id,
                status=TransactionStatus.COMPLETED,
                description=f"Purchased {request.quantity}x {voucher.title}",
                metadata={
                    "voucher_id": voucher.id,
                    "quantity": request.quantity,
                    "payment_method": breakdown.payment_method.value,
                    "campaign_coins_used": breakdown.campaign_coins_used,
                    "regular_coins_used": breakdown.regular_coins_used,
                    "grant_debits": [d.model_dump() for d in grant_debits],
                    "purchase_ids": [p.id for p in purchases],
                },
                created_at=now,
                updated_at=now,
            )
        )
        self._activity.record(
            actor.id,
            "purchase_voucher",
            {
                "voucher_id": voucher.id,
                "quantity": request.quantity,
                "total_cost": breakdown.total_cost,
                "campaign_coins_used": breakdown.campaign_coins_used,
                "regular_coins_used": breakdown.regular_coins_used,
            },
        )

        # 4) 알림 (실패해도 구매는 유지)
        self._notifier.notify(
            build_voucher_purchased_event(
                updated,
                voucher.title,
                request.quantity,
                breakdown,
                updated.regular_balance,
            )
        )

        logger.info(
            "voucher purchased",
            extra={"user_id": actor.id, "voucher_id": voucher.id},
        )
        return PurchaseResult(
            success=True,
            new_balance=updated.regular_balance,
            quantity_purchased=request.quantity,
            breakdown=breakdown,
            grant_debits=grant_debits,
            purchases=purchases,
        )

    # -------- Internal helpers --------

    def _get_account(self, user_id: str) -> Account:
        account = self._account_repo.find_by_id(user_id)
        if account is None:
            raise NotFoundError("Account not found")
        return account

    def _get_active_voucher(self, voucher_id: str) -> Voucher:
        voucher = self._voucher_repo.find_by_id(voucher_id)
        if voucher is None or not voucher.is_active:
            raise NotFoundError("Voucher not found or inactive")
        return voucher

    def _resolve(self, account: Account, voucher: Voucher) -> EligibilityResult:
        return resolve_eligibility(
            account,
            voucher,
            now=self._clock(),
            enforce_expiry=self._ledger_config.enforce_grant_expiry_on_eligibility,
            drain_order=self._ledger_config.grant_drain_order,
        )


def _validate_quantity(quantity: int) -> None:
    if quantity < 1:
        raise ValidationError("Quantity must be at least 1")


def _check_client_split(request: PurchaseRequest, breakdown: PaymentBreakdown) -> None:
    """클라이언트가 보낸 분할이 있으면 서버 계산과 같아야 한다."""

    campaign = request.campaign_coins_to_use or 0
    regular = request.regular_coins_to_use or 0
    if campaign == 0 and regular == 0:
        return
    if campaign + regular != breakdown.total_cost:
        raise ValidationError(
            f"Campaign coins ({campaign}) + regular coins ({regular}) "
            f"must equal total cost ({breakdown.total_cost})"
        )
    if (
        campaign != breakdown.campaign_coins_used
        or regular != breakdown.regular_coins_used
    ):
        raise ValidationError(
            "Payment split is out of date: expected "
            f"{breakdown.campaign_coins_used} campaign coins and "
            f"{breakdown.regular_coins_used} regular coins"
        )


def _shortage_message(
    breakdown: PaymentBreakdown, eligibility: EligibilityResult, account: Account
) -> str:
    if breakdown.payment_method == PaymentMethod.CAMPAIGN_ONLY:
        return (
            f"Insufficient campaign coins. Need {breakdown.total_cost}, "
            f"have {eligibility.total_campaign_coins} eligible"
        )
    if breakdown.payment_method == PaymentMethod.REGULAR_ONLY:
        return (
            f"Insufficient regular coins. Need {breakdown.total_cost}, "
            f"have {account.regular_balance}"
        )
    return (
        f"Insufficient coins. Need {breakdown.total_cost}, have "
        f"{eligibility.total_campaign_coins} eligible campaign coins and "
        f"{account.regular_balance} regular coins"
    )


def get_settlement_service(
    db: Database = Depends(get_database),
    notifier: NotifierInterface = Depends(get_notifier),
    config: AppConfig = Depends(get_app_config),
) -> SettlementService:
    """FastAPI DI용 SettlementService 팩토리."""
    return SettlementService(
        account_repo=AccountRepository(db),
        voucher_repo=VoucherRepository(db),
        transaction_repo=TransactionRepository(db),
        purchase_repo=PurchaseRepository(db),
        activity=ActivityService(ActivityLogRepository(db)),
        notifier=notifier,
        ledger_config=config.ledger,
    )
