from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta

import pytest

from reward_service.app.exceptions import (
    InsufficientFundsError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from reward_service.app.models.account import Role
from reward_service.app.models.transaction import TransactionStatus, TransactionType
from reward_service.app.services.activity_service import ActivityService
from reward_service.app.services.wallet_service import WalletService
from reward_service.tests.fakes import (
    NOW,
    FakeAccountRepository,
    FakeActivityLogRepository,
    FakeTransactionRepository,
    fixed_clock,
    make_account,
    make_grant,
)


@dataclass
class WalletFixture:
    service: WalletService
    accounts: FakeAccountRepository
    transactions: FakeTransactionRepository
    activity_logs: FakeActivityLogRepository


def _build_fixture(superadmin_balance: int = 1000) -> WalletFixture:
    account_repo = FakeAccountRepository(
        [
            make_account(account_id="root", role=Role.SUPERADMIN, regular_balance=superadmin_balance),
            make_account(account_id="admin-1", role=Role.COMPANY_ADMIN),
            make_account(
                account_id="emp-1",
                regular_balance=5,
                grants=[
                    make_grant("c-old", 20, expiry_date=NOW - timedelta(days=1)),
                    make_grant("c-new", 30),
                ],
            ),
        ]
    )
    transaction_repo = FakeTransactionRepository()
    activity_repo = FakeActivityLogRepository()
    service = WalletService(
        account_repo=account_repo,
        transaction_repo=transaction_repo,
        activity=ActivityService(activity_repo, clock=fixed_clock),
        clock=fixed_clock,
    )
    return WalletFixture(
        service=service,
        accounts=account_repo,
        transactions=transaction_repo,
        activity_logs=activity_repo,
    )


def test_wallet_reports_campaign_totals_and_expired_grants() -> None:
    fixture = _build_fixture()

    view = fixture.service.get_wallet(fixture.accounts.get("emp-1"))

    assert view.account.regular_balance == 5
    assert view.total_campaign_coins == 50
    assert view.expired_campaign_ids == ["c-old"]


def test_mint_and_burn_adjust_superadmin_balance() -> None:
    fixture = _build_fixture(superadmin_balance=100)
    root = fixture.accounts.get("root")

    assert fixture.service.mint(root, 400).regular_balance == 500
    assert fixture.service.burn(fixture.accounts.get("root"), 200).regular_balance == 300

    assert [tx.type for tx in fixture.transactions.created] == [
        TransactionType.MINT,
        TransactionType.BURN,
    ]
    assert fixture.activity_logs.actions == ["mint_coins", "burn_coins"]


def test_burn_more_than_balance_is_rejected() -> None:
    fixture = _build_fixture(superadmin_balance=100)

    with pytest.raises(InsufficientFundsError):
        fixture.service.burn(fixture.accounts.get("root"), 101)

    assert fixture.accounts.get("root").regular_balance == 100


def test_only_superadmin_can_mint() -> None:
    fixture = _build_fixture()

    with pytest.raises(UnauthorizedError):
        fixture.service.mint(fixture.accounts.get("admin-1"), 10)
    with pytest.raises(ValidationError):
        fixture.service.mint(fixture.accounts.get("root"), 0)


def test_approved_coin_request_moves_coins_from_superadmin() -> None:
    fixture = _build_fixture(superadmin_balance=1000)
    request = fixture.service.request_coins(fixture.accounts.get("admin-1"), 300, " Q2 rewards ")

    assert request.status == TransactionStatus.PENDING
    assert request.description == "Q2 rewards"

    reviewed = fixture.service.review_coin_request(fixture.accounts.get("root"), request.id, True)

    assert reviewed.status == TransactionStatus.APPROVED
    assert fixture.accounts.get("root").regular_balance == 700
    assert fixture.accounts.get("admin-1").regular_balance == 300
    transfer = fixture.transactions.list_by_type(TransactionType.TRANSFER)
    assert [(t.from_user_id, t.to_user_id, t.amount) for t in transfer] == [
        ("root", "admin-1", 300)
    ]


def test_coin_request_is_processed_only_once() -> None:
    fixture = _build_fixture()
    request = fixture.service.request_coins(fixture.accounts.get("admin-1"), 100, "bonus")
    root = fixture.accounts.get("root")

    fixture.service.review_coin_request(root, request.id, False)

    with pytest.raises(NotFoundError):
        fixture.service.review_coin_request(root, request.id, True)

    assert fixture.accounts.get("admin-1").regular_balance == 0
    assert fixture.transactions.find_by_id(request.id).status == TransactionStatus.REJECTED


def test_approval_without_superadmin_funds_keeps_request_pending() -> None:
    fixture = _build_fixture(superadmin_balance=50)
    request = fixture.service.request_coins(fixture.accounts.get("admin-1"), 100, "bonus")

    with pytest.raises(InsufficientFundsError):
        fixture.service.review_coin_request(fixture.accounts.get("root"), request.id, True)

    assert fixture.transactions.find_by_id(request.id).status == TransactionStatus.PENDING
    assert fixture.accounts.get("root").regular_balance == 50
    assert fixture.accounts.get("admin-1").regular_balance == 0


def test_request_coins_requires_reason() -> None:
    fixture = _build_fixture()

    with pytest.raises(ValidationError):
        fixture.service.request_coins(fixture.accounts.get("admin-1"), 100, "   ")


def test_pending_requests_are_listed_for_superadmin() -> None:
    fixture = _build_fixture()
    admin = fixture.accounts.get("admin-1")
    first = fixture.service.request_coins(admin, 10, "a")
    fixture.service.request_coins(admin, 20, "b")
    fixture.service.review_coin_request(fixture.accounts.get("root"), first.id, False)

    pending = fixture.service.list_coin_requests(
        fixture.accounts.get("root"), TransactionStatus.PENDING
    )

    assert [r.amount for r in pending] == [20]
