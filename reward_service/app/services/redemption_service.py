"""리딤 코드 발급/사용 서비스.

- 일반 코드: 회사 관리자가 직원 이메일로 발급, 사용 시 일반 잔액으로 적립
- 캠페인 코드: 캠페인 배포 시 유저 ID 로 발급, 사용 시 캠페인 지급분으로 병합

코드 사용은 "미사용일 때만 사용 처리" 조건부 업데이트 한 번으로 확정된다.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Callable

from fastapi import Depends
from pydantic import BaseModel
from pymongo.database import Database

from common.mongo.client import get_database
from common.types.datetime import utc_now

from ..access import Capability, require_capability
from ..config import AppConfig, RedemptionConfig, get_app_config
from ..exceptions import (
    AlreadyRedeemedError,
    ExpiredError,
    InsufficientFundsError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from ..models.account import Account, CampaignCoinGrant
from ..models.ledger import CodeIssueResult, RedemptionResult
from ..models.redemption_code import CodeKind, RedemptionCode
from ..models.restriction import SpendingRestriction
from ..models.transaction import CoinTransaction, TransactionStatus, TransactionType
from ..repositories.account_repository import AccountRepository
from ..repositories.activity_log_repository import ActivityLogRepository
from ..repositories.campaign_repository import CampaignRepository
from ..repositories.interfaces import (
    AccountRepositoryInterface,
    CampaignRepositoryInterface,
    RedemptionCodeRepositoryInterface,
    TransactionRepositoryInterface,
)
from ..repositories.redemption_code_repository import RedemptionCodeRepository
from ..repositories.transaction_repository import TransactionRepository
from .activity_service import ActivityService
from .codes import generate_redemption_code, normalize_code
from .notifier import NotifierInterface, build_code_issued_event, get_notifier


logger = logging.getLogger(__name__)


class EmployeeContact(BaseModel):
    """코드를 받을 직원 (CSV 파싱은 호출 측에서 끝난 상태)."""

    name: str
    email: str


class RedemptionService:
    def __init__(
        self,
        code_repo: RedemptionCodeRepositoryInterface,
        account_repo: AccountRepositoryInterface,
        campaign_repo: CampaignRepositoryInterface,
        transaction_repo: TransactionRepositoryInterface,
        activity: ActivityService,
        notifier: NotifierInterface,
        redemption_config: RedemptionConfig,
        clock: Callable[[], datetime] = utc_now,
        code_generator: Callable[[int], str] = generate_redemption_code,
    ) -> None:
        self._code_repo = code_repo
        self._account_repo = account_repo
        self._campaign_repo = campaign_repo
        self._transaction_repo = transaction_repo
        self._activity = activity
        self._notifier = notifier
        self._config = redemption_config
        self._clock = clock
        self._code_generator = code_generator

    # -------- Issue (plain codes) --------

    def issue_codes(
        self, actor: Account, employees: list[EmployeeContact], coin_amount: int
    ) -> CodeIssueResult:
        """직원별 일반 코드를 발급하고 관리자 잔액에서 총액을 한 번에 차감한다."""
        require_capability(actor, Capability.ISSUE_REDEMPTION_CODES)
        if actor.id is None:
            raise NotFoundError("Account not found")
        if coin_amount <= 0:
            raise ValidationError("Coin amount must be positive")
        if not employees:
            raise ValidationError("No employees provided")

        valid = [e for e in employees if _is_valid_contact(e)]
        skipped = len(employees) - len(valid)
        if not valid:
            raise ValidationError("No valid employees (name and email required)")

        total_cost = coin_amount * len(valid)
        debited = self._account_repo.debit(actor.id, total_cost, [])
        if debited is None:
            current = self._account_repo.find_by_id(actor.id)
            balance = current.regular_balance if current else 0
            raise InsufficientFundsError(
                f"Insufficient coins. Need {total_cost} coins, but only have {balance}"
            )

        now = self._clock()
        expires_at = now + timedelta(days=self._config.code_ttl_days)
        drafts = [
            RedemptionCode(
                code=self._code_generator(self._config.code_length),
                kind=CodeKind.PLAIN,
                coin_amount=coin_amount,
                employee_email=contact.email.strip().lower(),
                employee_name=contact.name.strip(),
                issued_by=actor.id,
                expires_at=expires_at,
                created_at=now,
                updated_at=now,
            )
            for contact in valid
        ]
        try:
            codes = self._code_repo.insert_many(drafts)
        except Exception:
            # 코드가 저장되지 않았으면 차감한 코인을 돌려준다.
            self._account_repo.credit_regular(actor.id, total_cost)
            raise

        self._transaction_repo.create(
            CoinTransaction(
                type=TransactionType.CODE_ISSUE,
                amount=total_cost,
                from_user_id=actor.id,
                status=TransactionStatus.COMPLETED,
                description=f"Issued {len(codes)} redemption codes of {coin_amount} coins",
                metadata={
                    "code_ids": [c.id for c in codes],
                    "coin_amount": coin_amount,
                },
                created_at=now,
                updated_at=now,
            )
        )

        sent = 0
        failed = 0
        company_name = actor.company_name or actor.name
        for code in codes:
            ok = self._notifier.notify(build_code_issued_event(code, company_name))
            if code.id:
                self._code_repo.mark_email_sent(code.id, ok)
            code.email_sent = ok
            if ok:
                sent += 1
            else:
                failed += 1

        self._activity.record(
            actor.id,
            "issue_redemption_codes",
            {
                "issued": len(codes),
                "skipped": skipped,
                "coin_amount": coin_amount,
                "total_cost": total_cost,
                "notifications_failed": failed,
            },
        )
        logger.info(
            "issued %d redemption codes (%d skipped, %d notifications failed)",
            len(codes),
            skipped,
            failed,
            extra={"user_id": actor.id},
        )
        return CodeIssueResult(
            issued=len(codes),
            skipped=skipped,
            total_cost=total_cost,
            new_balance=debited.regular_balance,
            notifications_sent=sent,
            notifications_failed=failed,
            codes=codes,
        )

    # -------- Redeem --------

    def redeem(self, actor: Account, raw_code: str) -> RedemptionResult:
        """코드를 사용해 코인을 적립한다. 같은 코드는 두 번 적립되지 않는다."""
        require_capability(actor, Capability.REDEEM_CODES)
        if actor.id is None:
            raise NotFoundError("Account not found")

        code_value = normalize_code(raw_code)
        if not code_value:
            raise ValidationError("Redemption code is required")

        code = self._code_repo.find_by_code(code_value)
        if code is None:
            raise NotFoundError("Invalid redemption code")
        _check_identity(actor, code)
        if code.is_redeemed:
            raise AlreadyRedeemedError("This code has already been redeemed")

        now = self._clock()
        if code.is_expired(now):
            raise ExpiredError("This code has expired")

        claimed = self._code_repo.claim(code_value, actor.id, now)
        if claimed is None:
            # 조회와 사용 처리 사이에 다른 요청이 먼저 사용했거나 만료되었다.
            latest = self._code_repo.find_by_code(code_value)
            if latest is not None and not latest.is_redeemed:
                raise ExpiredError("This code has expired")
            raise AlreadyRedeemedError("This code has already been redeemed")

        if claimed.kind == CodeKind.CAMPAIGN:
            updated = self._credit_campaign(actor.id, claimed, now)
        else:
            updated = self._account_repo.credit_regular(actor.id, claimed.coin_amount)

        if updated is None:
            self._code_repo.unclaim(code_value)
            raise NotFoundError("Account not found")

        if claimed.kind == CodeKind.CAMPAIGN and claimed.campaign_id:
            self._campaign_repo.increment_redemption_count(claimed.campaign_id)

        self._transaction_repo.create(
            CoinTransaction(
                type=TransactionType.REDEEM_CODE,
                amount=claimed.coin_amount,
                from_user_id=claimed.issued_by,
                to_user_id=actor.id,
                status=TransactionStatus.COMPLETED,
                description=(
                    f"Redeemed campaign code for {claimed.campaign_name}"
                    if claimed.kind == CodeKind.CAMPAIGN
                    else "Redeemed code"
                ),
                metadata={
                    "code_id": claimed.id,
                    "kind": claimed.kind.value,
                    "campaign_id": claimed.campaign_id,
                },
                created_at=now,
                updated_at=now,
            )
        )
        self._activity.record(
            actor.id,
            "redeem_code",
            {
                "code_id": claimed.id,
                "kind": claimed.kind.value,
                "coin_amount": claimed.coin_amount,
                "campaign_id": claimed.campaign_id,
            },
        )

        return RedemptionResult(
            kind=claimed.kind,
            coins_added=claimed.coin_amount,
            new_balance=updated.regular_balance,
            campaign_id=claimed.campaign_id,
            campaign_name=claimed.campaign_name,
            restrictions=(
                claimed.restriction or SpendingRestriction()
                if claimed.kind == CodeKind.CAMPAIGN
                else None
            ),
        )

    # -------- Superadmin lookup --------

    def list_codes(
        self, actor: Account, page: int = 1, page_size: int = 20
    ) -> tuple[list[RedemptionCode], int]:
        require_capability(actor, Capability.VIEW_AUDIT)
        return self._code_repo.list(page, page_size)

    def lookup_code(self, actor: Account, raw_code: str) -> RedemptionCode:
        require_capability(actor, Capability.VIEW_AUDIT)
        code = self._code_repo.find_by_code(normalize_code(raw_code))
        if code is None:
            raise NotFoundError("Redemption code not found")
        return code

    # -------- Internal helpers --------

    def _credit_campaign(
        self, user_id: str, code: RedemptionCode, now: datetime
    ) -> Account | None:
        grant = CampaignCoinGrant(
            campaign_id=code.campaign_id or "",
            campaign_name=code.campaign_name or "",
            balance=code.coin_amount,
            restriction=code.restriction or SpendingRestriction(),
            expiry_date=code.expires_at,
            granted_at=now,
        )
        return self._account_repo.merge_campaign_grant(user_id, grant)


def _is_valid_contact(contact: EmployeeContact) -> bool:
    email = contact.email.strip()
    if not contact.name.strip() or not email:
        return False
    local, sep, domain = email.partition("@")
    return bool(local and sep and "." in domain and " " not in email)


def _check_identity(actor: Account, code: RedemptionCode) -> None:
    """코드가 발급된 대상 본인인지 확인한다."""
    if code.kind == CodeKind.CAMPAIGN:
        if code.user_id != actor.id:
            raise UnauthorizedError("This code was issued to another user")
        return
    if (code.employee_email or "").lower() != actor.email.strip().lower():
        raise UnauthorizedError("This code was not sent to your email address")


def days_until(expires_at: datetime, now: datetime) -> int:
    """만료까지 남은 일수 (올림, 지났으면 0)."""
    seconds = (expires_at - now).total_seconds()
    if seconds <= 0:
        return 0
    return int(-(-seconds // 86400))


def get_redemption_service(
    db: Database = Depends(get_database),
    notifier: NotifierInterface = Depends(get_notifier),
    config: AppConfig = Depends(get_app_config),
) -> RedemptionService:
    """FastAPI DI용 RedemptionService 팩토리."""
    return RedemptionService(
        code_repo=RedemptionCodeRepository(db),
        account_repo=AccountRepository(db),
        campaign_repo=CampaignRepository(db),
        transaction_repo=TransactionRepository(db),
        activity=ActivityService(ActivityLogRepository(db)),
        notifier=notifier,
        redemption_config=config.redemption,
    )
