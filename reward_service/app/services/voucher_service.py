"""바우처 카탈로그 및 구매한 바우처 관리 서비스."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Callable

from fastapi import Depends
from pymongo.database import Database

from common.mongo.client import get_database
from common.types.datetime import utc_now

from ..access import Capability, require_capability
from ..config import AppConfig, LedgerConfig, get_app_config
from ..exceptions import AlreadyRedeemedError, NotFoundError, ValidationError
from ..models.account import Account
from ..models.ledger import CampaignVoucherView
from ..models.voucher import Voucher, VoucherDraft, VoucherPurchase
from ..repositories.activity_log_repository import ActivityLogRepository
from ..repositories.interfaces import (
    PurchaseRepositoryInterface,
    VoucherRepositoryInterface,
)
from ..repositories.voucher_repository import PurchaseRepository, VoucherRepository
from .activity_service import ActivityService
from .eligibility import resolve_eligibility


# 수정 가능한 바우처 필드
EDITABLE_VOUCHER_FIELDS = frozenset(
    {
        "title",
        "description",
        "category",
        "brand",
        "coin_value",
        "quantity",
        "original_price",
        "image_url",
        "expiry_date",
        "is_active",
    }
)


class VoucherService:
    def __init__(
        self,
        voucher_repo: VoucherRepositoryInterface,
        purchase_repo: PurchaseRepositoryInterface,
        activity: ActivityService,
        ledger_config: LedgerConfig,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._voucher_repo = voucher_repo
        self._purchase_repo = purchase_repo
        self._activity = activity
        self._ledger_config = ledger_config
        self._clock = clock

    # -------- Catalog --------

    def list_vouchers(
        self, category: str | None = None, brand: str | None = None
    ) -> list[Voucher]:
        return self._voucher_repo.list_active(category=category, brand=brand)

    def get_voucher(self, voucher_id: str) -> Voucher:
        voucher = self._voucher_repo.find_by_id(voucher_id)
        if voucher is None:
            raise NotFoundError("Voucher not found")
        return voucher

    def create_voucher(self, actor: Account, draft: VoucherDraft) -> Voucher:
        require_capability(actor, Capability.MANAGE_VOUCHERS)
        _validate_voucher_values(draft.model_dump())
        now = self._clock()
        voucher = Voucher(
            **draft.model_dump(),
            is_active=True,
            created_by=actor.id,
            created_at=now,
            updated_at=now,
        )
        created = self._voucher_repo.insert(voucher)
        self._activity.record(
            actor.id or "",
            "create_voucher",
            {"voucher_id": created.id, "title": created.title},
        )
        return created

    def update_voucher(
        self, actor: Account, voucher_id: str, updates: dict[str, Any]
    ) -> Voucher:
        require_capability(actor, Capability.MANAGE_VOUCHERS)
        unknown = set(updates) - EDITABLE_VOUCHER_FIELDS
        if unknown:
            raise ValidationError(f"Fields cannot be updated: {', '.join(sorted(unknown))}")
        _validate_voucher_values(updates)
        if not updates:
            return self.get_voucher(voucher_id)

        updated = self._voucher_repo.update_fields(voucher_id, updates)
        if updated is None:
            raise NotFoundError("Voucher not found")
        self._activity.record(
            actor.id or "",
            "update_voucher",
            {"voucher_id": voucher_id, "fields": sorted(updates.keys())},
        )
        return updated

    def deactivate_voucher(self, actor: Account, voucher_id: str) -> Voucher:
        return self.update_voucher(actor, voucher_id, {"is_active": False})

    def list_campaign_vouchers(self, actor: Account) -> list[CampaignVoucherView]:
        """직원의 캠페인 지급분으로 결제할 수 있는 활성 바우처 목록."""
        require_capability(actor, Capability.PURCHASE_VOUCHERS)
        now = self._clock()
        views: list[CampaignVoucherView] = []
        for voucher in self._voucher_repo.list_active():
            eligibility = resolve_eligibility(
                actor,
                voucher,
                now=now,
                enforce_expiry=self._ledger_config.enforce_grant_expiry_on_eligibility,
                drain_order=self._ledger_config.grant_drain_order,
            )
            if eligibility.is_eligible:
                views.append(
                    CampaignVoucherView(
                        voucher=voucher,
                        eligible_campaign_ids=[
                            g.campaign_id for g in eligibility.eligible_grants
                        ],
                    )
                )
        return views

    # -------- Purchased vouchers --------

    def list_purchases(self, actor: Account) -> list[VoucherPurchase]:
        require_capability(actor, Capability.PURCHASE_VOUCHERS)
        return self._purchase_repo.list_by_employee(actor.id or "")

    def redeem_purchase(self, actor: Account, purchase_id: str) -> VoucherPurchase:
        """구매한 바우처를 사용 처리한다 (한 번만)."""
        require_capability(actor, Capability.PURCHASE_VOUCHERS)
        now = self._clock()
        redeemed = self._purchase_repo.mark_redeemed(purchase_id, actor.id or "", now)
        if redeemed is None:
            owned = {p.id for p in self._purchase_repo.list_by_employee(actor.id or "")}
            if purchase_id in owned:
                raise AlreadyRedeemedError("Voucher has already been used")
            raise NotFoundError("Purchased voucher not found")
        self._activity.record(
            actor.id or "",
            "redeem_voucher",
            {"purchase_id": purchase_id, "voucher_id": redeemed.voucher_id},
        )
        return redeemed


def _validate_voucher_values(values: dict[str, Any]) -> None:
    if "title" in values and not str(values["title"] or "").strip():
        raise ValidationError("Voucher title is required")
    if "category" in values and not str(values["category"] or "").strip():
        raise ValidationError("Voucher category is required")
    if "coin_value" in values and (values["coin_value"] is None or values["coin_value"] <= 0):
        raise ValidationError("Coin value must be positive")
    if "quantity" in values and (values["quantity"] is None or values["quantity"] < 0):
        raise ValidationError("Quantity cannot be negative")


def get_voucher_service(
    db: Database = Depends(get_database),
    config: AppConfig = Depends(get_app_config),
) -> VoucherService:
    """FastAPI DI용 VoucherService 팩토리."""
    return VoucherService(
        voucher_repo=VoucherRepository(db),
        purchase_repo=PurchaseRepository(db),
        activity=ActivityService(ActivityLogRepository(db)),
        ledger_config=config.ledger,
    )
