from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import timedelta

import pytest

from common.events.reward import CampaignCoinsDistributedEvent

from reward_service.app.config import RedemptionConfig
from reward_service.app.exceptions import (
    InsufficientBudgetError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from reward_service.app.models.account import Account, Role
from reward_service.app.models.campaign import (
    Campaign,
    CampaignDraft,
    CampaignPatch,
    TargetType,
)
from reward_service.app.models.redemption_code import CodeKind
from reward_service.app.models.restriction import RestrictionType, SpendingRestriction
from reward_service.app.models.transaction import TransactionType
from reward_service.app.services.activity_service import ActivityService
from reward_service.app.services.campaign_service import CampaignService
from reward_service.tests.fakes import (
    NOW,
    FakeAccountRepository,
    FakeActivityLogRepository,
    FakeCampaignParticipantRepository,
    FakeCampaignRepository,
    FakeNotifier,
    FakeRedemptionCodeRepository,
    FakeTransactionRepository,
    fixed_clock,
    make_account,
    make_campaign,
    sequential_codes,
)


@dataclass
class CampaignFixture:
    service: CampaignService
    accounts: FakeAccountRepository
    campaigns: FakeCampaignRepository
    participants: FakeCampaignParticipantRepository
    codes: FakeRedemptionCodeRepository
    transactions: FakeTransactionRepository
    activity_logs: FakeActivityLogRepository
    notifier: FakeNotifier


def _build_fixture(
    accounts: list[Account] | None = None,
    campaigns: list[Campaign] | None = None,
) -> CampaignFixture:
    account_repo = FakeAccountRepository(
        [
            make_account(account_id="admin-1", role=Role.COMPANY_ADMIN, regular_balance=0),
            make_account(account_id="admin-2", role=Role.COMPANY_ADMIN, company_name="Globex"),
            make_account(account_id="emp-1", department="Sales"),
            make_account(account_id="emp-2", department="Sales"),
            make_account(account_id="emp-3", department="Engineering"),
            make_account(account_id="emp-globex", company_name="Globex", department="Sales"),
            make_account(account_id="root", role=Role.SUPERADMIN),
            *(accounts or []),
        ]
    )
    campaign_repo = FakeCampaignRepository(campaigns)
    participant_repo = FakeCampaignParticipantRepository()
    code_repo = FakeRedemptionCodeRepository()
    transaction_repo = FakeTransactionRepository()
    activity_repo = FakeActivityLogRepository()
    notifier = FakeNotifier()
    service = CampaignService(
        campaign_repo=campaign_repo,
        participant_repo=participant_repo,
        account_repo=account_repo,
        code_repo=code_repo,
        transaction_repo=transaction_repo,
        activity=ActivityService(activity_repo, clock=fixed_clock),
        notifier=notifier,
        redemption_config=RedemptionConfig(),
        clock=fixed_clock,
        code_generator=sequential_codes("CAMP"),
    )
    return CampaignFixture(
        service=service,
        accounts=account_repo,
        campaigns=campaign_repo,
        participants=participant_repo,
        codes=code_repo,
        transactions=transaction_repo,
        activity_logs=activity_repo,
        notifier=notifier,
    )


def _draft(**overrides) -> CampaignDraft:
    values = {
        "name": "  Spring bonus ",
        "description": "Coffee on us",
        "target_type": TargetType.INDIVIDUAL,
        "target_users": ["emp-1"],
        "total_budget": 1000,
        "restriction": SpendingRestriction(
            restriction_type=RestrictionType.CATEGORY,
            allowed_categories=["food"],
            allowed_brands=["ignored"],
        ),
        "start_date": NOW,
        "end_date": NOW + timedelta(days=14),
    }
    values.update(overrides)
    return CampaignDraft(**values)


def test_create_campaign_starts_with_full_budget_owned_by_admin() -> None:
    fixture = _build_fixture()
    admin = fixture.accounts.get("admin-1")

    created = fixture.service.create_campaign(admin, _draft())

    assert created.name == "Spring bonus"
    assert created.company_id == "admin-1"
    assert created.remaining_budget == created.total_budget == 1000
    assert created.participant_count == 0
    assert created.restriction.allowed_categories == ["food"]
    assert created.restriction.allowed_brands == []
    assert fixture.activity_logs.actions == ["create_campaign"]


def test_create_campaign_rejects_invalid_window() -> None:
    fixture = _build_fixture()
    admin = fixture.accounts.get("admin-1")

    with pytest.raises(ValidationError):
        fixture.service.create_campaign(
            admin, _draft(start_date=NOW + timedelta(days=3), end_date=NOW + timedelta(days=1))
        )
    with pytest.raises(ValidationError):
        fixture.service.create_campaign(
            admin, _draft(start_date=NOW - timedelta(days=9), end_date=NOW - timedelta(days=1))
        )


def test_create_campaign_requires_restriction_values() -> None:
    fixture = _build_fixture()

    with pytest.raises(ValidationError):
        fixture.service.create_campaign(
            fixture.accounts.get("admin-1"),
            _draft(restriction=SpendingRestriction(restriction_type=RestrictionType.BRAND)),
        )


def test_create_campaign_resolves_individual_emails() -> None:
    fixture = _build_fixture()
    admin = fixture.accounts.get("admin-1")

    created = fixture.service.create_campaign(
        admin,
        _draft(target_users=["emp-1"], individual_emails=["EMP-2@acme.test", "emp-1@acme.test"]),
    )

    assert created.target_users == ["emp-1", "emp-2"]

    with pytest.raises(ValidationError):
        fixture.service.create_campaign(admin, _draft(individual_emails=["ghost@acme.test"]))


def test_employee_cannot_create_campaign() -> None:
    fixture = _build_fixture()

    with pytest.raises(UnauthorizedError):
        fixture.service.create_campaign(fixture.accounts.get("emp-1"), _draft())


def test_distribute_credits_each_target_and_debits_budget() -> None:
    campaign = make_campaign(
        restriction=SpendingRestriction(
            restriction_type=RestrictionType.CATEGORY, allowed_categories=["food"]
        )
    )
    fixture = _build_fixture(campaigns=[campaign])
    admin = fixture.accounts.get("admin-1")

    result = fixture.service.distribute(admin, "c-1", ["emp-1", "emp-2"], coins_per_user=100)

    assert result.target_users == 2
    assert result.total_distributed == 200
    assert result.campaign.remaining_budget == 800
    assert result.campaign.participant_count == 2
    assert result.notifications_sent == 2

    for user_id in ("emp-1", "emp-2"):
        grant = fixture.accounts.get(user_id).find_grant("c-1")
        assert grant.balance == 100
        assert grant.restriction.allowed_categories == ["food"]
        assert grant.expiry_date == campaign.end_date

    [tx] = fixture.transactions.created
    assert tx.type == TransactionType.CAMPAIGN_DISTRIBUTION
    assert tx.amount == 200
    assert all(isinstance(e, CampaignCoinsDistributedEvent) for e in fixture.notifier.events)
    assert fixture.activity_logs.actions == ["distribute_campaign_coins"]


def test_distribute_rejects_when_budget_is_short_without_side_effects() -> None:
    fixture = _build_fixture(campaigns=[make_campaign(total_budget=1000)])

    with pytest.raises(InsufficientBudgetError):
        fixture.service.distribute(
            fixture.accounts.get("admin-1"), "c-1", ["emp-1", "emp-2", "emp-3"], coins_per_user=400
        )

    stored = fixture.campaigns.find_by_id("c-1")
    assert stored.remaining_budget == 1000
    assert stored.participant_count == 0
    assert fixture.accounts.get("emp-1").campaign_balances == []
    assert fixture.transactions.created == []


def test_repeat_distribution_merges_into_single_grant() -> None:
    fixture = _build_fixture(campaigns=[make_campaign()])
    admin = fixture.accounts.get("admin-1")

    fixture.service.distribute(admin, "c-1", ["emp-1"], coins_per_user=100)
    fixture.service.distribute(admin, "c-1", ["emp-1"], coins_per_user=50)

    account = fixture.accounts.get("emp-1")
    assert len(account.campaign_balances) == 1
    assert account.find_grant("c-1").balance == 150

    [participant] = fixture.participants.list_by_campaign("c-1")
    assert participant.coins_received == 150
    assert participant.distribution_count == 2
    assert fixture.campaigns.find_by_id("c-1").participant_count == 2


def test_distribute_splits_remaining_budget_when_amount_is_not_given() -> None:
    fixture = _build_fixture(campaigns=[make_campaign(total_budget=1000)])

    result = fixture.service.distribute(
        fixture.accounts.get("admin-1"), "c-1", ["emp-1", "emp-2", "emp-3"]
    )

    assert result.coins_per_user == 333
    assert result.campaign.remaining_budget == 1


def test_distribute_rejects_amount_above_campaign_maximum() -> None:
    fixture = _build_fixture(campaigns=[make_campaign(max_coins_per_employee=50)])

    with pytest.raises(ValidationError):
        fixture.service.distribute(
            fixture.accounts.get("admin-1"), "c-1", ["emp-1"], coins_per_user=60
        )


def test_distribute_outside_campaign_window_is_rejected() -> None:
    fixture = _build_fixture(
        campaigns=[
            make_campaign(
                start_date=NOW - timedelta(days=10), end_date=NOW - timedelta(days=1)
            )
        ]
    )

    with pytest.raises(ValidationError):
        fixture.service.distribute(fixture.accounts.get("admin-1"), "c-1", ["emp-1"], 10)


def test_distribute_to_unknown_user_is_not_found() -> None:
    fixture = _build_fixture(campaigns=[make_campaign()])

    with pytest.raises(NotFoundError):
        fixture.service.distribute(fixture.accounts.get("admin-1"), "c-1", ["emp-1", "ghost"], 10)

    assert fixture.campaigns.find_by_id("c-1").remaining_budget == 1000


def test_other_company_admin_cannot_touch_campaign() -> None:
    fixture = _build_fixture(campaigns=[make_campaign(company_id="admin-1")])

    with pytest.raises(UnauthorizedError):
        fixture.service.distribute(fixture.accounts.get("admin-2"), "c-1", ["emp-1"], 10)
    with pytest.raises(UnauthorizedError):
        fixture.service.get_campaign(fixture.accounts.get("admin-2"), "c-1")


def test_department_targets_are_resolved_from_accounts() -> None:
    fixture = _build_fixture(
        campaigns=[make_campaign(target_type=TargetType.DEPARTMENT, target_department="Sales")]
    )

    result = fixture.service.distribute(fixture.accounts.get("admin-1"), "c-1", coins_per_user=10)

    assert result.target_users == 2
    assert fixture.accounts.get("emp-3").campaign_balances == []
    assert fixture.accounts.get("emp-globex").campaign_balances == []


def test_all_targets_cover_company_employees() -> None:
    fixture = _build_fixture(campaigns=[make_campaign(target_type=TargetType.ALL)])
    admin = fixture.accounts.get("admin-1")

    targets = fixture.service.resolve_targets(admin, fixture.campaigns.find_by_id("c-1"))

    assert sorted(targets) == ["emp-1", "emp-2", "emp-3"]


def test_individual_code_campaign_issues_bound_codes_instead_of_grants() -> None:
    fixture = _build_fixture(campaigns=[make_campaign(allow_individual_codes=True)])

    result = fixture.service.distribute(
        fixture.accounts.get("admin-1"), "c-1", ["emp-1", "emp-2"], coins_per_user=25
    )

    assert result.codes_issued == 2
    assert fixture.accounts.get("emp-1").campaign_balances == []
    codes = list(fixture.codes.codes.values())
    assert {c.user_id for c in codes} == {"emp-1", "emp-2"}
    assert all(c.kind == CodeKind.CAMPAIGN and c.coin_amount == 25 for c in codes)
    assert all(fixture.codes.email_sent[c.id] for c in codes)
    assert {e.redemption_code for e in fixture.notifier.events} == {c.code for c in codes}
    assert fixture.campaigns.find_by_id("c-1").remaining_budget == 950


def test_distribute_skips_notifications_when_disabled() -> None:
    fixture = _build_fixture(campaigns=[make_campaign(email_notifications=False)])

    result = fixture.service.distribute(fixture.accounts.get("admin-1"), "c-1", ["emp-1"], 10)

    assert result.notifications_sent == 0
    assert fixture.notifier.events == []


def test_failed_notifications_are_counted_but_coins_stay() -> None:
    fixture = _build_fixture(campaigns=[make_campaign()])
    fixture.notifier.fail_for_emails = {"emp-2@acme.test"}

    result = fixture.service.distribute(
        fixture.accounts.get("admin-1"), "c-1", ["emp-1", "emp-2"], 10
    )

    assert result.notifications_sent == 1
    assert result.notifications_failed == 1
    assert fixture.accounts.get("emp-2").find_grant("c-1").balance == 10


def test_delete_campaign_requires_no_participants() -> None:
    fixture = _build_fixture(
        campaigns=[
            make_campaign(campaign_id="c-1", participant_count=3),
            make_campaign(campaign_id="c-2"),
        ]
    )
    admin = fixture.accounts.get("admin-1")

    with pytest.raises(ValidationError):
        fixture.service.delete_campaign(admin, "c-1")
    fixture.service.delete_campaign(admin, "c-2")

    assert fixture.campaigns.find_by_id("c-1") is not None
    assert fixture.campaigns.find_by_id("c-2") is None


def test_update_campaign_applies_patch_and_validates_dates() -> None:
    fixture = _build_fixture(campaigns=[make_campaign()])
    admin = fixture.accounts.get("admin-1")

    updated = fixture.service.update_campaign(
        admin, "c-1", CampaignPatch(name=" Renamed ", is_active=False)
    )

    assert updated.name == "Renamed"
    assert updated.is_active is False
    assert updated.remaining_budget == 1000

    with pytest.raises(ValidationError):
        fixture.service.update_campaign(
            admin, "c-1", CampaignPatch(end_date=NOW - timedelta(days=5))
        )


@pytest.mark.parametrize("outsider", ["admin-1", "emp-globex", "root"])
def test_distribute_only_reaches_own_company_employees(outsider: str) -> None:
    fixture = _build_fixture(campaigns=[make_campaign()])

    with pytest.raises(UnauthorizedError):
        fixture.service.distribute(
            fixture.accounts.get("admin-1"), "c-1", ["emp-1", outsider], coins_per_user=100
        )

    stored = fixture.campaigns.find_by_id("c-1")
    assert stored.remaining_budget == 1000
    assert stored.participant_count == 0
    assert fixture.accounts.get(outsider).campaign_balances == []
    assert fixture.accounts.get("emp-1").campaign_balances == []


def test_create_campaign_rejects_targets_outside_company_employees() -> None:
    fixture = _build_fixture()
    admin = fixture.accounts.get("admin-1")

    with pytest.raises(UnauthorizedError):
        fixture.service.create_campaign(admin, _draft(target_users=["emp-globex"]))
    with pytest.raises(UnauthorizedError):
        fixture.service.create_campaign(
            admin, _draft(target_users=[], individual_emails=["root@acme.test"])
        )
    with pytest.raises(ValidationError):
        fixture.service.create_campaign(admin, _draft(target_users=["ghost"]))

    assert fixture.campaigns.campaigns == {}


def test_update_campaign_rejects_targets_outside_company_employees() -> None:
    fixture = _build_fixture(campaigns=[make_campaign(target_users=["emp-1"])])
    admin = fixture.accounts.get("admin-1")

    with pytest.raises(UnauthorizedError):
        fixture.service.update_campaign(
            admin, "c-1", CampaignPatch(target_users=["emp-1", "admin-1"])
        )
    assert fixture.campaigns.find_by_id("c-1").target_users == ["emp-1"]

    updated = fixture.service.update_campaign(
        admin, "c-1", CampaignPatch(target_users=["emp-2", "emp-2"])
    )
    assert updated.target_users == ["emp-2"]


def test_failed_code_storage_returns_reserved_budget() -> None:
    fixture = _build_fixture(campaigns=[make_campaign(allow_individual_codes=True)])
    fixture.codes.fail_insert = True

    with pytest.raises(RuntimeError):
        fixture.service.distribute(
            fixture.accounts.get("admin-1"), "c-1", ["emp-1", "emp-2"], coins_per_user=100
        )

    stored = fixture.campaigns.find_by_id("c-1")
    assert stored.remaining_budget == 1000
    assert stored.participant_count == 0
    assert stored.total_distributed == 0
    assert fixture.participants.list_by_campaign("c-1") == []
    assert fixture.codes.codes == {}
    assert fixture.notifier.events == []


def test_failed_grant_merge_returns_undelivered_share() -> None:
    fixture = _build_fixture(campaigns=[make_campaign()])
    fixture.accounts.fail_merge_for = {"emp-2"}

    with pytest.raises(RuntimeError):
        fixture.service.distribute(
            fixture.accounts.get("admin-1"),
            "c-1",
            ["emp-1", "emp-2", "emp-3"],
            coins_per_user=100,
        )

    stored = fixture.campaigns.find_by_id("c-1")
    assert stored.remaining_budget == 900
    assert stored.participant_count == 1
    assert stored.total_distributed == 100
    assert [p.user_id for p in fixture.participants.list_by_campaign("c-1")] == ["emp-1"]
    assert fixture.accounts.get("emp-1").find_grant("c-1").balance == 100
    assert fixture.accounts.get("emp-3").campaign_balances == []


def test_concurrent_distributions_never_overrun_budget() -> None:
    fixture = _build_fixture(campaigns=[make_campaign(total_budget=1000)])
    admin = fixture.accounts.get("admin-1")
    barrier = threading.Barrier(2, timeout=5)
    fixture.campaigns.before_reserve = barrier.wait

    with ThreadPoolExecutor(max_workers=2) as pool:
        futures = [
            pool.submit(fixture.service.distribute, admin, "c-1", [user_id], 600)
            for user_id in ("emp-1", "emp-2")
        ]
        errors = [f.exception() for f in futures]

    assert sum(1 for e in errors if e is None) == 1
    assert any(isinstance(e, InsufficientBudgetError) for e in errors)

    stored = fixture.campaigns.find_by_id("c-1")
    assert stored.remaining_budget == 400
    assert stored.total_distributed == 600
    granted = [
        uid for uid in ("emp-1", "emp-2") if fixture.accounts.get(uid).find_grant("c-1")
    ]
    assert len(granted) == 1
    assert len(fixture.transactions.created) == 1
