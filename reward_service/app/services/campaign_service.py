"""캠페인 관리 및 코인 배포 서비스.

배포 흐름:
1. 캠페인 상태/기간 확인, 대상 유저 결정, 1인당 코인 결정
2. 예산 조건부 차감 (남은 예산 >= 총액일 때만)
3. 유저별 지급분 병합 (또는 캠페인 코드 저장) 후 참여 기록
   - 지급 단계에서 예외가 나면 지급하지 못한 몫의 예산을 돌려준다.
4. 알림 발행 (best-effort)
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable

from fastapi import Depends
from pymongo.database import Database

from common.mongo.client import get_database
from common.types.datetime import utc_now

from ..access import Capability, require_campaign_owner, require_capability
from ..config import AppConfig, RedemptionConfig, get_app_config
from ..exceptions import (
    InsufficientBudgetError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from ..models.account import Account, CampaignCoinGrant, Role
from ..models.campaign import (
    Campaign,
    CampaignDraft,
    CampaignParticipant,
    CampaignPatch,
    TargetType,
)
from ..models.ledger import DistributionResult
from ..models.redemption_code import CodeKind, RedemptionCode
from ..models.restriction import RestrictionType, SpendingRestriction
from ..models.transaction import CoinTransaction, TransactionStatus, TransactionType
from ..repositories.account_repository import AccountRepository
from ..repositories.activity_log_repository import ActivityLogRepository
from ..repositories.campaign_repository import (
    CampaignParticipantRepository,
    CampaignRepository,
)
from ..repositories.interfaces import (
    AccountRepositoryInterface,
    CampaignParticipantRepositoryInterface,
    CampaignRepositoryInterface,
    RedemptionCodeRepositoryInterface,
    TransactionRepositoryInterface,
)
from ..repositories.redemption_code_repository import RedemptionCodeRepository
from ..repositories.transaction_repository import TransactionRepository
from .activity_service import ActivityService
from .codes import generate_redemption_code
from .notifier import NotifierInterface, build_coins_distributed_event, get_notifier


logger = logging.getLogger(__name__)


class CampaignService:
    def __init__(
        self,
        campaign_repo: CampaignRepositoryInterface,
        participant_repo: CampaignParticipantRepositoryInterface,
        account_repo: AccountRepositoryInterface,
        code_repo: RedemptionCodeRepositoryInterface,
        transaction_repo: TransactionRepositoryInterface,
        activity: ActivityService,
        notifier: NotifierInterface,
        redemption_config: RedemptionConfig,
        clock: Callable[[], datetime] = utc_now,
        code_generator: Callable[[int], str] = generate_redemption_code,
    ) -> None:
        self._campaign_repo = campaign_repo
        self._participant_repo = participant_repo
        self._account_repo = account_repo
        self._code_repo = code_repo
        self._transaction_repo = transaction_repo
        self._activity = activity
        self._notifier = notifier
        self._redemption_config = redemption_config
        self._clock = clock
        self._code_generator = code_generator

    # -------- CRUD --------

    def create_campaign(self, actor: Account, draft: CampaignDraft) -> Campaign:
        require_capability(actor, Capability.MANAGE_CAMPAIGNS)
        if actor.id is None:
            raise NotFoundError("Account not found")

        now = self._clock()
        name = draft.name.strip()
        description = draft.description.strip()
        if not name or not description:
            raise ValidationError("Campaign name and description are required")
        if draft.total_budget <= 0:
            raise ValidationError("Total budget must be positive")
        _validate_per_employee(draft.coins_per_employee, draft.max_coins_per_employee)
        _validate_restriction(draft.restriction)
        _validate_window(draft.start_date, draft.end_date, now)

        target_users = self._resolve_individual_targets(
            actor, draft.target_users, draft.individual_emails
        )
        if draft.target_type == TargetType.INDIVIDUAL and not target_users:
            raise ValidationError("Individual campaigns need at least one target user")
        if draft.target_type == TargetType.DEPARTMENT and not (
            draft.target_department or ""
        ).strip():
            raise ValidationError("Department campaigns need a target department")

        campaign = Campaign(
            name=name,
            description=description,
            company_id=actor.id,
            company_name=actor.company_name,
            target_type=draft.target_type,
            target_users=target_users,
            target_department=(draft.target_department or "").strip() or None,
            total_budget=draft.total_budget,
            remaining_budget=draft.total_budget,
            coins_per_employee=draft.coins_per_employee,
            max_coins_per_employee=draft.max_coins_per_employee,
            restriction=draft.restriction.normalized(),
            start_date=draft.start_date,
            end_date=draft.end_date,
            is_active=True,
            allow_individual_codes=draft.allow_individual_codes,
            email_notifications=draft.email_notifications,
            tags=draft.tags,
            created_at=now,
            updated_at=now,
        )
        created = self._campaign_repo.insert(campaign)
        self._activity.record(
            actor.id,
            "create_campaign",
            {
                "campaign_id": created.id,
                "name": created.name,
                "total_budget": created.total_budget,
                "target_type": created.target_type.value,
            },
        )
        return created

    def list_campaigns(self, actor: Account) -> list[Campaign]:
        require_capability(actor, Capability.MANAGE_CAMPAIGNS)
        return self._campaign_repo.list_by_company(actor.id or "")

    def get_campaign(self, actor: Account, campaign_id: str) -> Campaign:
        campaign = self._campaign_repo.find_by_id(campaign_id)
        if campaign is None:
            raise NotFoundError("Campaign not found")
        require_campaign_owner(actor, campaign)
        return campaign

    def update_campaign(
        self, actor: Account, campaign_id: str, patch: CampaignPatch
    ) -> Campaign:
        campaign = self.get_campaign(actor, campaign_id)
        updates: dict[str, Any] = patch.model_dump(exclude_none=True)
        if not updates:
            return campaign

        if "name" in updates:
            updates["name"] = updates["name"].strip()
            if not updates["name"]:
                raise ValidationError("Campaign name is required")
        if "description" in updates:
            updates["description"] = updates["description"].strip()
            if not updates["description"]:
                raise ValidationError("Campaign description is required")

        _validate_per_employee(
            patch.coins_per_employee
            if patch.coins_per_employee is not None
            else campaign.coins_per_employee,
            patch.max_coins_per_employee
            if patch.max_coins_per_employee is not None
            else campaign.max_coins_per_employee,
        )
        if patch.restriction is not None:
            _validate_restriction(patch.restriction)
            updates["restriction"] = patch.restriction.normalized()
        if patch.target_type is not None:
            updates["target_type"] = patch.target_type
        if patch.target_users is not None:
            updates["target_users"] = self._resolve_individual_targets(
                actor, patch.target_users, []
            )

        if patch.start_date is not None or patch.end_date is not None:
            start = patch.start_date or campaign.start_date
            end = patch.end_date or campaign.end_date
            if start >= end:
                raise ValidationError("Start date must be before end date")
            if patch.end_date is not None and end <= self._clock():
                raise ValidationError("End date must be in the future")

        updated = self._campaign_repo.update_fields(campaign_id, updates)
        if updated is None:
            raise NotFoundError("Campaign not found")
        self._activity.record(
            actor.id or "",
            "update_campaign",
            {"campaign_id": campaign_id, "fields": sorted(updates.keys())},
        )
        return updated

    def delete_campaign(self, actor: Account, campaign_id: str) -> None:
        campaign = self.get_campaign(actor, campaign_id)
        if campaign.participant_count > 0:
            raise ValidationError(
                "Cannot delete campaign with participants. Deactivate it instead."
            )
        if not self._campaign_repo.delete_if_unused(campaign_id):
            raise ValidationError(
                "Cannot delete campaign with participants. Deactivate it instead."
            )
        self._activity.record(
            actor.id or "",
            "delete_campaign",
            {"campaign_id": campaign_id, "name": campaign.name},
        )

    def list_participants(
        self, actor: Account, campaign_id: str
    ) -> list[CampaignParticipant]:
        self.get_campaign(actor, campaign_id)
        return self._participant_repo.list_by_campaign(campaign_id)

    # -------- Distribution --------

    def resolve_targets(self, actor: Account, campaign: Campaign) -> list[str]:
        """명시 대상이 없을 때 캠페인 설정으로 대상 유저를 정한다."""

        if campaign.target_type == TargetType.INDIVIDUAL:
            return _dedupe(campaign.target_users)
        company_name = actor.company_name or campaign.company_name or ""
        if campaign.target_type == TargetType.DEPARTMENT:
            department = campaign.target_department or ""
            accounts = self._account_repo.list_by_department(department, Role.EMPLOYEE)
            # 부서 이름은 회사끼리 겹칠 수 있다.
            return _dedupe(
                [a.id for a in accounts if a.id and a.company_name == company_name]
            )
        accounts = self._account_repo.list_by_company(company_name, Role.EMPLOYEE)
        return _dedupe([a.id for a in accounts if a.id])

    def distribute(
        self,
        actor: Account,
        campaign_id: str,
        target_user_ids: list[str] | None = None,
        coins_per_user: int | None = None,
        custom_message: str | None = None,
    ) -> DistributionResult:
        campaign = self.get_campaign(actor, campaign_id)
        now = self._clock()
        _ensure_open(campaign, now)

        targets = (
            _dedupe(target_user_ids)
            if target_user_ids
            else self.resolve_targets(actor, campaign)
        )
        if not targets:
            raise ValidationError("No target users found for this campaign")

        accounts = self._account_repo.find_by_ids(targets)
        found_ids = {a.id for a in accounts}
        missing = [uid for uid in targets if uid not in found_ids]
        if missing:
            raise NotFoundError(f"Target users not found: {', '.join(missing)}")
        _require_company_employees(actor, accounts)
        by_id = {a.id: a for a in accounts}
        ordered_accounts = [by_id[uid] for uid in targets]

        per_user = self._resolve_coins_per_user(campaign, coins_per_user, len(targets))
        total = per_user * len(targets)
        if total > campaign.remaining_budget:
            raise InsufficientBudgetError(
                f"Insufficient campaign budget. Required: {total}, "
                f"Available: {campaign.remaining_budget}"
            )

        reserved = self._campaign_repo.reserve_budget(
            campaign_id, total, len(targets), now
        )
        if reserved is None:
            raise self._diagnose_reserve_failure(campaign_id, total, now)

        if campaign.allow_individual_codes:
            codes = self._issue_campaign_codes(
                actor, campaign, ordered_accounts, per_user, now
            )
            delivered, failed_ids = ordered_accounts, []
        else:
            codes = {}
            delivered, failed_ids = self._merge_grants(
                campaign, ordered_accounts, per_user, now
            )

        if failed_ids:
            released = self._campaign_repo.release_budget(
                campaign_id, per_user * len(failed_ids), len(failed_ids)
            )
            if released is not None:
                reserved = released

        distributed = per_user * len(delivered)
        self._transaction_repo.create(
            CoinTransaction(
                type=TransactionType.CAMPAIGN_DISTRIBUTION,
                amount=distributed,
                from_user_id=actor.id,
                status=TransactionStatus.COMPLETED,
                description=f"Campaign distribution: {campaign.name}",
                metadata={
                    "campaign_id": campaign_id,
                    "coins_per_user": per_user,
                    "user_ids": [a.id for a in delivered],
                    "delivery": "code" if campaign.allow_individual_codes else "grant",
                },
                created_at=now,
                updated_at=now,
            )
        )

        sent, notify_failed = self._notify_recipients(
            campaign, delivered, codes, per_user, custom_message
        )

        self._activity.record(
            actor.id or "",
            "distribute_campaign_coins",
            {
                "campaign_id": campaign_id,
                "target_users": len(delivered),
                "coins_per_user": per_user,
                "total_distributed": distributed,
                "codes_issued": len(codes),
                "notifications_failed": notify_failed,
            },
        )
        logger.info(
            "campaign coins distributed to %d users",
            len(delivered),
            extra={"user_id": actor.id, "campaign_id": campaign_id},
        )
        return DistributionResult(
            campaign=reserved,
            target_users=len(delivered),
            coins_per_user=per_user,
            total_distributed=distributed,
            codes_issued=len(codes),
            notifications_sent=sent,
            notifications_failed=notify_failed,
            failed_user_ids=failed_ids,
        )

    # -------- Internal helpers --------

    def _merge_grants(
        self,
        campaign: Campaign,
        accounts: list[Account],
        per_user: int,
        now: datetime,
    ) -> tuple[list[Account], list[str]]:
        """유저별 지급분을 병합한다. 사라진 계정은 실패로 모은다.

        병합 중 예외가 나면 아직 지급하지 못한 몫을 예산으로 돌려주고 다시 던진다.
        """

        delivered: list[Account] = []
        failed_ids: list[str] = []
        campaign_id = campaign.id or ""

        for account in accounts:
            user_id = account.id or ""
            try:
                merged = self._account_repo.merge_campaign_grant(
                    user_id,
                    CampaignCoinGrant(
                        campaign_id=campaign_id,
                        campaign_name=campaign.name,
                        balance=per_user,
                        restriction=campaign.restriction,
                        expiry_date=campaign.end_date,
                        granted_at=now,
                    ),
                )
            except Exception:
                undelivered = len(accounts) - len(delivered)
                self._campaign_repo.release_budget(
                    campaign_id, per_user * undelivered, undelivered
                )
                raise
            if merged is None:
                logger.warning(
                    "account disappeared during distribution",
                    extra={"user_id": user_id, "campaign_id": campaign_id},
                )
                failed_ids.append(user_id)
                continue
            self._participant_repo.record(campaign_id, user_id, per_user)
            delivered.append(account)

        return delivered, failed_ids

    def _issue_campaign_codes(
        self,
        actor: Account,
        campaign: Campaign,
        accounts: list[Account],
        per_user: int,
        now: datetime,
    ) -> dict[str, RedemptionCode]:
        """유저별 캠페인 코드를 저장한 뒤에 참여 기록을 남긴다."""

        campaign_id = campaign.id or ""
        drafts = [
            RedemptionCode(
                code=self._code_generator(self._redemption_config.code_length),
                kind=CodeKind.CAMPAIGN,
                coin_amount=per_user,
                user_id=account.id or "",
                employee_email=account.email,
                employee_name=account.name,
                campaign_id=campaign_id,
                campaign_name=campaign.name,
                restriction=campaign.restriction,
                issued_by=actor.id or "",
                expires_at=campaign.end_date,
                created_at=now,
                updated_at=now,
            )
            for account in accounts
        ]
        try:
            created = self._code_repo.insert_many(drafts)
        except Exception:
            # 코드가 저장되지 않았으면 예약한 예산을 전부 돌려준다.
            self._campaign_repo.release_budget(
                campaign_id, per_user * len(accounts), len(accounts)
            )
            raise

        codes: dict[str, RedemptionCode] = {}
        for code in created:
            user_id = code.user_id or ""
            self._participant_repo.record(campaign_id, user_id, per_user)
            codes[user_id] = code
        return codes

    def _notify_recipients(
        self,
        campaign: Campaign,
        recipients: list[Account],
        codes: dict[str, RedemptionCode],
        per_user: int,
        custom_message: str | None,
    ) -> tuple[int, int]:
        if not campaign.email_notifications:
            return 0, 0

        sent = 0
        failed = 0
        for account in recipients:
            code = codes.get(account.id or "")
            ok = self._notifier.notify(
                build_coins_distributed_event(
                    account,
                    campaign,
                    per_user,
                    redemption_code=code.code if code else None,
                    custom_message=custom_message,
                )
            )
            if code is not None and code.id:
                self._code_repo.mark_email_sent(code.id, ok)
            if ok:
                sent += 1
            else:
                failed += 1
        return sent, failed

    def _resolve_coins_per_user(
        self, campaign: Campaign, requested: int | None, target_count: int
    ) -> int:
        if requested is not None:
            per_user = requested
        elif campaign.coins_per_employee:
            per_user = campaign.coins_per_employee
        else:
            per_user = campaign.remaining_budget // target_count

        if per_user <= 0:
            raise InsufficientBudgetError(
                "Insufficient campaign budget to give each target user at least 1 coin"
            )
        if (
            campaign.max_coins_per_employee is not None
            and per_user > campaign.max_coins_per_employee
        ):
            raise ValidationError(
                f"Coins per user ({per_user}) exceeds the campaign maximum "
                f"({campaign.max_coins_per_employee})"
            )
        return per_user

    def _diagnose_reserve_failure(
        self, campaign_id: str, total: int, now: datetime
    ) -> Exception:
        latest = self._campaign_repo.find_by_id(campaign_id)
        if latest is None:
            return NotFoundError("Campaign not found")
        try:
            _ensure_open(latest, now)
        except ValidationError as exc:
            return exc
        return InsufficientBudgetError(
            f"Insufficient campaign budget. Required: {total}, "
            f"Available: {latest.remaining_budget}"
        )

    def _resolve_individual_targets(
        self, actor: Account, target_users: list[str], emails: list[str]
    ) -> list[str]:
        """개별 대상 id 와 이메일을 합쳐, 모두 같은 회사 직원인지 확인한다."""

        merged = list(target_users)
        unknown: list[str] = []
        for email in emails:
            email = email.strip()
            if not email:
                continue
            account = self._account_repo.find_by_email(email)
            if account is None or account.id is None:
                unknown.append(email)
                continue
            merged.append(account.id)
        if unknown:
            raise ValidationError(f"Unknown employee emails: {', '.join(unknown)}")

        merged = _dedupe(merged)
        accounts = self._account_repo.find_by_ids(merged)
        found_ids = {a.id for a in accounts}
        missing = [uid for uid in merged if uid not in found_ids]
        if missing:
            raise ValidationError(f"Unknown target users: {', '.join(missing)}")
        _require_company_employees(actor, accounts)
        return merged


def _require_company_employees(actor: Account, accounts: list[Account]) -> None:
    """캠페인 코인은 요청한 관리자와 같은 회사의 직원에게만 줄 수 있다."""
    outsiders = [
        account.id or account.email
        for account in accounts
        if account.role != Role.EMPLOYEE
        or not actor.company_name
        or account.company_name != actor.company_name
    ]
    if outsiders:
        raise UnauthorizedError(
            f"Targets must be employees of your company: {', '.join(outsiders)}"
        )


def _ensure_open(campaign: Campaign, now: datetime) -> None:
    if not campaign.is_active:
        raise ValidationError("Campaign is not active")
    if now < campaign.start_date:
        raise ValidationError("Campaign has not started yet")
    if now > campaign.end_date:
        raise ValidationError("Campaign has ended")


def _validate_window(start: datetime, end: datetime, now: datetime) -> None:
    if start >= end:
        raise ValidationError("Start date must be before end date")
    if end <= now:
        raise ValidationError("End date must be in the future")


def _validate_restriction(restriction: SpendingRestriction) -> None:
    if restriction.restriction_type != RestrictionType.NONE and not [
        item for item in restriction.detail() if item.strip()
    ]:
        raise ValidationError(
            f"Restriction type '{restriction.restriction_type}' needs at least one allowed value"
        )


def _validate_per_employee(coins: int | None, maximum: int | None) -> None:
    if coins is not None and coins <= 0:
        raise ValidationError("Coins per employee must be positive")
    if maximum is not None and maximum <= 0:
        raise ValidationError("Max coins per employee must be positive")
    if coins is not None and maximum is not None and coins > maximum:
        raise ValidationError("Coins per employee cannot exceed the maximum")


def _dedupe(values: list[str]) -> list[str]:
    seen: set[str] = set()
    result: list[str] = []
    for value in values:
        if value and value not in seen:
            seen.add(value)
            result.append(value)
    return result


def get_campaign_service(
    db: Database = Depends(get_database),
    notifier: NotifierInterface = Depends(get_notifier),
    config: AppConfig = Depends(get_app_config),
) -> CampaignService:
    """FastAPI DI용 CampaignService 팩토리."""
    return CampaignService(
        campaign_repo=CampaignRepository(db),
        participant_repo=CampaignParticipantRepository(db),
        account_repo=AccountRepository(db),
        code_repo=RedemptionCodeRepository(db),
        transaction_repo=TransactionRepository(db),
        activity=ActivityService(ActivityLogRepository(db)),
        notifier=notifier,
        redemption_config=config.redemption,
    )
