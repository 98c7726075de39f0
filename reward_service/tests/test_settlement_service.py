from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass

import pytest

from common.events.reward import VoucherPurchasedEvent

from reward_service.app.config import LedgerConfig
from reward_service.app.exceptions import (
    InsufficientFundsError,
    InsufficientInventoryError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from reward_service.app.models.account import Account, Role
from reward_service.app.models.ledger import PaymentMethod, PurchaseRequest
from reward_service.app.models.restriction import RestrictionType
from reward_service.app.models.transaction import TransactionType
from reward_service.app.models.voucher import Voucher
from reward_service.app.services.activity_service import ActivityService
from reward_service.app.services.settlement_service import SettlementService
from reward_service.tests.fakes import (
    FakeAccountRepository,
    FakeActivityLogRepository,
    FakeNotifier,
    FakePurchaseRepository,
    FakeTransactionRepository,
    FakeVoucherRepository,
    fixed_clock,
    make_account,
    make_grant,
    make_voucher,
)


@dataclass
class SettlementFixture:
    service: SettlementService
    accounts: FakeAccountRepository
    vouchers: FakeVoucherRepository
    purchases: FakePurchaseRepository
    transactions: FakeTransactionRepository
    activity_logs: FakeActivityLogRepository
    notifier: FakeNotifier


def _build_fixture(
    accounts: list[Account],
    vouchers: list[Voucher],
    ledger_config: LedgerConfig | None = None,
) -> SettlementFixture:
    account_repo = FakeAccountRepository(accounts)
    voucher_repo = FakeVoucherRepository(vouchers)
    purchase_repo = FakePurchaseRepository()
    transaction_repo = FakeTransactionRepository()
    activity_repo = FakeActivityLogRepository()
    notifier = FakeNotifier()
    service = SettlementService(
        account_repo=account_repo,
        voucher_repo=voucher_repo,
        transaction_repo=transaction_repo,
        purchase_repo=purchase_repo,
        activity=ActivityService(activity_repo, clock=fixed_clock),
        notifier=notifier,
        ledger_config=ledger_config or LedgerConfig(),
        clock=fixed_clock,
    )
    return SettlementFixture(
        service=service,
        accounts=account_repo,
        vouchers=voucher_repo,
        purchases=purchase_repo,
        transactions=transaction_repo,
        activity_logs=activity_repo,
        notifier=notifier,
    )


def _employee_with_mixed_balance() -> Account:
    return make_account(
        account_id="emp-1",
        regular_balance=300,
        grants=[
            make_grant("food", 150, restriction_type=RestrictionType.CATEGORY, allowed=["food"]),
            make_grant("travel", 100, restriction_type=RestrictionType.CATEGORY, allowed=["travel"]),
        ],
    )


def test_purchase_spends_eligible_campaign_coins_then_regular() -> None:
    fixture = _build_fixture(
        [_employee_with_mixed_balance()],
        [make_voucher(voucher_id="v-1", coin_value=200, quantity=10, category="food")],
    )
    actor = fixture.accounts.get("emp-1")

    result = fixture.service.purchase(actor, PurchaseRequest(voucher_id="v-1", quantity=2))

    assert result.success is True
    assert result.breakdown.total_cost == 400
    assert result.breakdown.campaign_coins_used == 150
    assert result.breakdown.regular_coins_used == 250
    assert result.new_balance == 50
    assert [(d.campaign_id, d.amount) for d in result.grant_debits] == [("food", 150)]

    stored = fixture.accounts.get("emp-1")
    assert stored.regular_balance == 50
    assert stored.find_grant("food").balance == 0
    assert stored.find_grant("travel").balance == 100
    assert fixture.vouchers.find_by_id("v-1").quantity == 8

    assert len(result.purchases) == 2
    assert all(p.coin_value == 200 and not p.is_redeemed for p in result.purchases)

    [tx] = fixture.transactions.created
    assert tx.type == TransactionType.PURCHASE
    assert tx.amount == 400
    assert tx.metadata["campaign_coins_used"] == 150
    assert fixture.activity_logs.actions == ["purchase_voucher"]

    [event] = fixture.notifier.events
    assert isinstance(event, VoucherPurchasedEvent)
    assert event.remaining_balance == 50


def test_purchase_without_enough_coins_changes_nothing() -> None:
    fixture = _build_fixture(
        [make_account(account_id="emp-1", regular_balance=100)],
        [make_voucher(voucher_id="v-1", coin_value=200, quantity=3)],
    )
    actor = fixture.accounts.get("emp-1")

    with pytest.raises(InsufficientFundsError):
        fixture.service.purchase(actor, PurchaseRequest(voucher_id="v-1"))

    assert fixture.accounts.get("emp-1").regular_balance == 100
    assert fixture.vouchers.find_by_id("v-1").quantity == 3
    assert fixture.purchases.purchases == {}
    assert fixture.transactions.created == []
    assert fixture.notifier.events == []


def test_campaign_only_purchase_is_rejected_when_campaign_coins_are_short() -> None:
    fixture = _build_fixture(
        [make_account(account_id="emp-1", regular_balance=1000, grants=[make_grant("c-1", 100)])],
        [make_voucher(voucher_id="v-1", coin_value=500)],
    )
    actor = fixture.accounts.get("emp-1")

    with pytest.raises(InsufficientFundsError) as exc_info:
        fixture.service.purchase(
            actor,
            PurchaseRequest(voucher_id="v-1", payment_method=PaymentMethod.CAMPAIGN_ONLY),
        )

    assert "campaign coins" in exc_info.value.message
    assert fixture.accounts.get("emp-1").regular_balance == 1000


def test_purchase_rejects_quantity_beyond_stock() -> None:
    fixture = _build_fixture(
        [make_account(account_id="emp-1", regular_balance=1000)],
        [make_voucher(voucher_id="v-1", coin_value=100, quantity=1)],
    )

    with pytest.raises(InsufficientInventoryError):
        fixture.service.purchase(
            fixture.accounts.get("emp-1"), PurchaseRequest(voucher_id="v-1", quantity=2)
        )

    assert fixture.accounts.get("emp-1").regular_balance == 1000


def test_purchase_of_inactive_voucher_is_not_found() -> None:
    fixture = _build_fixture(
        [make_account(account_id="emp-1", regular_balance=1000)],
        [make_voucher(voucher_id="v-1", is_active=False)],
    )

    with pytest.raises(NotFoundError):
        fixture.service.purchase(fixture.accounts.get("emp-1"), PurchaseRequest(voucher_id="v-1"))


def test_purchase_requires_positive_quantity() -> None:
    fixture = _build_fixture(
        [make_account(account_id="emp-1", regular_balance=1000)],
        [make_voucher(voucher_id="v-1")],
    )

    with pytest.raises(ValidationError):
        fixture.service.purchase(
            fixture.accounts.get("emp-1"), PurchaseRequest(voucher_id="v-1", quantity=0)
        )


def test_purchase_rejects_stale_client_split() -> None:
    fixture = _build_fixture(
        [_employee_with_mixed_balance()],
        [make_voucher(voucher_id="v-1", coin_value=200, category="food")],
    )
    actor = fixture.accounts.get("emp-1")

    with pytest.raises(ValidationError) as exc_info:
        fixture.service.purchase(
            actor,
            PurchaseRequest(voucher_id="v-1", campaign_coins_to_use=0, regular_coins_to_use=200),
        )
    assert "out of date" in exc_info.value.message

    with pytest.raises(ValidationError):
        fixture.service.purchase(
            actor,
            PurchaseRequest(voucher_id="v-1", campaign_coins_to_use=150, regular_coins_to_use=10),
        )

    assert fixture.accounts.get("emp-1").regular_balance == 300


def test_purchase_accepts_split_that_matches_preview() -> None:
    fixture = _build_fixture(
        [_employee_with_mixed_balance()],
        [make_voucher(voucher_id="v-1", coin_value=200, category="food")],
    )
    actor = fixture.accounts.get("emp-1")

    preview = fixture.service.preview(actor, "v-1")
    result = fixture.service.purchase(
        actor,
        PurchaseRequest(
            voucher_id="v-1",
            campaign_coins_to_use=preview.campaign_coins_used,
            regular_coins_to_use=preview.regular_coins_used,
        ),
    )

    assert result.breakdown == preview
    assert fixture.accounts.get("emp-1").regular_balance == 250


def test_concurrent_purchases_never_overdraw_balance() -> None:
    fixture = _build_fixture(
        [make_account(account_id="emp-1", regular_balance=100)],
        [make_voucher(voucher_id="v-1", coin_value=60, quantity=5)],
    )
    actor = fixture.accounts.get("emp-1")
    barrier = threading.Barrier(2, timeout=5)
    fixture.accounts.before_debit = barrier.wait

    with ThreadPoolExecutor(max_workers=2) as pool:
        futures = [
            pool.submit(fixture.service.purchase, actor, PurchaseRequest(voucher_id="v-1"))
            for _ in range(2)
        ]
        errors = [f.exception() for f in futures]

    succeeded = [e for e in errors if e is None]
    failed = [e for e in errors if e is not None]
    assert len(succeeded) == 1
    assert len(failed) == 1
    assert isinstance(failed[0], InsufficientFundsError)

    assert fixture.accounts.get("emp-1").regular_balance == 40
    assert fixture.vouchers.find_by_id("v-1").quantity == 4
    assert fixture.vouchers.release_calls == [("v-1", 1)]
    assert len(fixture.purchases.purchases) == 1


def test_concurrent_purchases_never_oversell_last_voucher() -> None:
    fixture = _build_fixture(
        [
            make_account(account_id="emp-1", regular_balance=500),
            make_account(account_id="emp-2", regular_balance=500),
        ],
        [make_voucher(voucher_id="v-1", coin_value=100, quantity=1)],
    )
    barrier = threading.Barrier(2, timeout=5)
    fixture.vouchers.before_reserve = barrier.wait

    with ThreadPoolExecutor(max_workers=2) as pool:
        futures = [
            pool.submit(
                fixture.service.purchase,
                fixture.accounts.get(user_id),
                PurchaseRequest(voucher_id="v-1"),
            )
            for user_id in ("emp-1", "emp-2")
        ]
        errors = [f.exception() for f in futures]

    assert sum(1 for e in errors if e is None) == 1
    assert any(isinstance(e, InsufficientInventoryError) for e in errors)
    assert fixture.vouchers.find_by_id("v-1").quantity == 0
    balances = sorted(fixture.accounts.get(uid).regular_balance for uid in ("emp-1", "emp-2"))
    assert balances == [400, 500]


def test_notification_failure_does_not_undo_purchase() -> None:
    fixture = _build_fixture(
        [make_account(account_id="emp-1", regular_balance=100)],
        [make_voucher(voucher_id="v-1", coin_value=100)],
    )
    fixture.notifier.fail_all = True
    fixture.activity_logs.fail = True

    result = fixture.service.purchase(fixture.accounts.get("emp-1"), PurchaseRequest(voucher_id="v-1"))

    assert result.success is True
    assert fixture.accounts.get("emp-1").regular_balance == 0
    assert len(fixture.transactions.created) == 1


def test_superadmin_cannot_purchase_vouchers() -> None:
    fixture = _build_fixture(
        [make_account(account_id="root", role=Role.SUPERADMIN, regular_balance=1000)],
        [make_voucher(voucher_id="v-1")],
    )

    with pytest.raises(UnauthorizedError):
        fixture.service.purchase(fixture.accounts.get("root"), PurchaseRequest(voucher_id="v-1"))


def test_check_eligibility_reports_campaign_and_regular_totals() -> None:
    fixture = _build_fixture(
        [_employee_with_mixed_balance()],
        [make_voucher(voucher_id="v-1", category="travel")],
    )

    view = fixture.service.check_eligibility("emp-1", "v-1")

    assert view.is_eligible is True
    assert [g.campaign_id for g in view.available_campaign_coins] == ["travel"]
    assert view.total_campaign_coins == 100
    assert view.regular_coins == 300
    assert view.total_available_coins == 400
