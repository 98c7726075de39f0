from __future__ import annotations

from datetime import datetime
from typing import Any, Protocol

from ..models.account import Account, CampaignCoinGrant, GrantDebit, Role
from ..models.activity_log import ActivityLog
from ..models.campaign import Campaign, CampaignParticipant
from ..models.redemption_code import RedemptionCode
from ..models.transaction import CoinTransaction, TransactionStatus, TransactionType
from ..models.voucher import Voucher, VoucherPurchase


class AccountRepositoryInterface(Protocol):
    """AccountRepository가 따라야 할 최소한의 계약.

    잔액 변경은 모두 조건부 단일 업데이트다. 조건이 맞지 않으면 None 을 반환하고
    아무것도 바꾸지 않는다.
    """

    def find_by_id(self, user_id: str) -> Account | None:  # pragma: no cover - Protocol
        ...

    def find_by_email(self, email: str) -> Account | None:  # pragma: no cover - Protocol
        ...

    def find_by_ids(
        self, user_ids: list[str]
    ) -> list[Account]:  # pragma: no cover - Protocol
        ...

    def list_by_company(
        self, company_name: str, role: Role
    ) -> list[Account]:  # pragma: no cover - Protocol
        ...

    def list_by_department(
        self, department: str, role: Role
    ) -> list[Account]:  # pragma: no cover - Protocol
        """department 가 일치하거나, department 가 없고 company_name 이 일치하는 계정."""
        ...

    def insert(self, account: Account) -> Account:  # pragma: no cover - Protocol
        ...

    def debit(
        self, user_id: str, regular_amount: int, grant_debits: list[GrantDebit]
    ) -> Account | None:  # pragma: no cover - Protocol
        """일반 잔액과 캠페인 지급분들을 한 번에 차감한다.

        모든 잔액이 차감량 이상일 때만 적용된다.
        """
        ...

    def credit_regular(
        self, user_id: str, amount: int
    ) -> Account | None:  # pragma: no cover - Protocol
        ...

    def merge_campaign_grant(
        self, user_id: str, grant: CampaignCoinGrant
    ) -> Account | None:  # pragma: no cover - Protocol
        """같은 campaign_id 지급분이 있으면 balance 를 더하고, 없으면 새로 추가한다."""
        ...


class VoucherRepositoryInterface(Protocol):
    def find_by_id(self, voucher_id: str) -> Voucher | None:  # pragma: no cover - Protocol
        ...

    def list_active(
        self, category: str | None = None, brand: str | None = None
    ) -> list[Voucher]:  # pragma: no cover - Protocol
        ...

    def insert(self, voucher: Voucher) -> Voucher:  # pragma: no cover - Protocol
        ...

    def update_fields(
        self, voucher_id: str, updates: dict[str, Any]
    ) -> Voucher | None:  # pragma: no cover - Protocol
        ...

    def reserve_stock(
        self, voucher_id: str, quantity: int
    ) -> Voucher | None:  # pragma: no cover - Protocol
        """활성 바우처이고 재고가 quantity 이상일 때만 재고를 줄인다."""
        ...

    def release_stock(
        self, voucher_id: str, quantity: int
    ) -> None:  # pragma: no cover - Protocol
        ...


class CampaignRepositoryInterface(Protocol):
    def insert(self, campaign: Campaign) -> Campaign:  # pragma: no cover - Protocol
        ...

    def find_by_id(
        self, campaign_id: str
    ) -> Campaign | None:  # pragma: no cover - Protocol
        ...

    def list_by_company(
        self, company_id: str
    ) -> list[Campaign]:  # pragma: no cover - Protocol
        ...

    def update_fields(
        self, campaign_id: str, updates: dict[str, Any]
    ) -> Campaign | None:  # pragma: no cover - Protocol
        ...

    def delete_if_unused(self, campaign_id: str) -> bool:  # pragma: no cover - Protocol
        """participant_count 가 0 일 때만 삭제한다."""
        ...

    def reserve_budget(
        self, campaign_id: str, amount: int, participants: int, now: datetime
    ) -> Campaign | None:  # pragma: no cover - Protocol
        """활성/기간 내이고 남은 예산이 amount 이상일 때만 예산을 차감한다."""
        ...

    def release_budget(
        self, campaign_id: str, amount: int, participants: int
    ) -> Campaign | None:  # pragma: no cover - Protocol
        ...

    def increment_redemption_count(
        self, campaign_id: str
    ) -> None:  # pragma: no cover - Protocol
        ...


class CampaignParticipantRepositoryInterface(Protocol):
    def record(
        self, campaign_id: str, user_id: str, coins: int
    ) -> CampaignParticipant:  # pragma: no cover - Protocol
        """(campaign_id, user_id) 참여 레코드를 upsert 하고 coins_received 를 누적한다."""
        ...

    def list_by_campaign(
        self, campaign_id: str
    ) -> list[CampaignParticipant]:  # pragma: no cover - Protocol
        ...


class RedemptionCodeRepositoryInterface(Protocol):
    def insert_many(
        self, codes: list[RedemptionCode]
    ) -> list[RedemptionCode]:  # pragma: no cover - Protocol
        ...

    def find_by_code(self, code: str) -> RedemptionCode | None:  # pragma: no cover - Protocol
        ...

    def claim(
        self, code: str, redeemed_by: str, now: datetime
    ) -> RedemptionCode | None:  # pragma: no cover - Protocol
        """미사용이고 만료되지 않은 코드만 사용 처리한다."""
        ...

    def unclaim(self, code: str) -> None:  # pragma: no cover - Protocol
        ...

    def mark_email_sent(
        self, code_id: str, sent: bool
    ) -> None:  # pragma: no cover - Protocol
        ...

    def list(
        self, page: int, page_size: int
    ) -> tuple[list[RedemptionCode], int]:  # pragma: no cover - Protocol
        ...


class TransactionRepositoryInterface(Protocol):
    def create(self, tx: CoinTransaction) -> CoinTransaction:  # pragma: no cover - Protocol
        ...

    def find_by_id(self, tx_id: str) -> CoinTransaction | None:  # pragma: no cover - Protocol
        ...

    def transition_status(
        self,
        tx_id: str,
        tx_type: TransactionType,
        from_status: TransactionStatus,
        to_status: TransactionStatus,
    ) -> CoinTransaction | None:  # pragma: no cover - Protocol
        """상태가 from_status 일 때만 to_status 로 바꾼다."""
        ...

    def list_by_user(
        self, user_id: str, page: int, page_size: int
    ) -> tuple[list[CoinTransaction], int]:  # pragma: no cover - Protocol
        ...

    def list_by_type(
        self, tx_type: TransactionType, status: TransactionStatus | None = None
    ) -> list[CoinTransaction]:  # pragma: no cover - Protocol
        ...


class PurchaseRepositoryInterface(Protocol):
    def create_many(
        self, purchases: list[VoucherPurchase]
    ) -> list[VoucherPurchase]:  # pragma: no cover - Protocol
        ...

    def list_by_employee(
        self, employee_id: str
    ) -> list[VoucherPurchase]:  # pragma: no cover - Protocol
        ...

    def mark_redeemed(
        self, purchase_id: str, employee_id: str, now: datetime
    ) -> VoucherPurchase | None:  # pragma: no cover - Protocol
        ...


class ActivityLogRepositoryInterface(Protocol):
    def create(self, log: ActivityLog) -> ActivityLog:  # pragma: no cover - Protocol
        ...

    def list_recent(self, limit: int) -> list[ActivityLog]:  # pragma: no cover - Protocol
        ...
