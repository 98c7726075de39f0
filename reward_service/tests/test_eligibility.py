from __future__ import annotations

from datetime import timedelta

from reward_service.app.config import GrantDrainOrder
from reward_service.app.models.restriction import RestrictionType
from reward_service.app.services.eligibility import (
    order_grants,
    resolve_eligibility,
    restriction_allows,
)
from reward_service.tests.fakes import NOW, make_account, make_grant, make_voucher


def test_restriction_allows_matches_each_restriction_type() -> None:
    voucher = make_voucher(voucher_id="v-9", category="food", brand="Starbucks")

    assert restriction_allows(make_grant("c", 1).restriction, voucher)
    assert restriction_allows(
        make_grant("c", 1, restriction_type=RestrictionType.CATEGORY, allowed=["food"]).restriction,
        voucher,
    )
    assert not restriction_allows(
        make_grant("c", 1, restriction_type=RestrictionType.CATEGORY, allowed=["travel"]).restriction,
        voucher,
    )
    assert restriction_allows(
        make_grant("c", 1, restriction_type=RestrictionType.BRAND, allowed=["Starbucks"]).restriction,
        voucher,
    )
    assert not restriction_allows(
        make_grant("c", 1, restriction_type=RestrictionType.SPECIFIC, allowed=["v-1"]).restriction,
        voucher,
    )
    assert restriction_allows(
        make_grant("c", 1, restriction_type=RestrictionType.SPECIFIC, allowed=["v-9"]).restriction,
        voucher,
    )


def test_brand_restriction_rejects_voucher_without_brand() -> None:
    voucher = make_voucher(brand=None)
    grant = make_grant("c", 10, restriction_type=RestrictionType.BRAND, allowed=["Starbucks"])

    assert not restriction_allows(grant.restriction, voucher)


def test_resolve_eligibility_excludes_zero_balance_and_mismatched_grants() -> None:
    account = make_account(
        account_id="u-1",
        grants=[
            make_grant("empty", 0),
            make_grant("travel", 50, restriction_type=RestrictionType.CATEGORY, allowed=["travel"]),
            make_grant("food", 30, restriction_type=RestrictionType.CATEGORY, allowed=["food"]),
            make_grant("open", 20),
        ],
    )

    result = resolve_eligibility(account, make_voucher(category="food"), now=NOW)

    assert result.is_eligible is True
    assert {g.campaign_id for g in result.eligible_grants} == {"food", "open"}
    assert result.total_campaign_coins == 50


def test_resolve_eligibility_is_not_eligible_without_grants() -> None:
    account = make_account(account_id="u-1", regular_balance=500)

    result = resolve_eligibility(account, make_voucher(), now=NOW)

    assert result.is_eligible is False
    assert result.eligible_grants == []
    assert result.total_campaign_coins == 0


def test_expired_grants_count_unless_expiry_is_enforced() -> None:
    account = make_account(
        account_id="u-1",
        grants=[make_grant("old", 40, expiry_date=NOW - timedelta(days=1))],
    )
    voucher = make_voucher()

    lenient = resolve_eligibility(account, voucher, now=NOW)
    strict = resolve_eligibility(account, voucher, now=NOW, enforce_expiry=True)

    assert lenient.total_campaign_coins == 40
    assert strict.is_eligible is False
    assert strict.total_campaign_coins == 0


def test_soonest_expiry_order_sorts_by_expiry_then_grant_time() -> None:
    late = make_grant("late", 10, expiry_date=NOW + timedelta(days=20), granted_at=NOW - timedelta(days=9))
    soon = make_grant("soon", 10, expiry_date=NOW + timedelta(days=5), granted_at=NOW - timedelta(days=1))
    tie_b = make_grant("b", 10, expiry_date=NOW + timedelta(days=10), granted_at=NOW - timedelta(days=2))
    tie_a = make_grant("a", 10, expiry_date=NOW + timedelta(days=10), granted_at=NOW - timedelta(days=2))

    ordered = order_grants([late, tie_b, soon, tie_a], GrantDrainOrder.SOONEST_EXPIRY)

    assert [g.campaign_id for g in ordered] == ["soon", "a", "b", "late"]


def test_insertion_order_sorts_by_grant_time() -> None:
    first = make_grant("first", 10, expiry_date=NOW + timedelta(days=30), granted_at=NOW - timedelta(days=5))
    second = make_grant("second", 10, expiry_date=NOW + timedelta(days=2), granted_at=NOW - timedelta(days=1))

    ordered = order_grants([second, first], GrantDrainOrder.INSERTION)

    assert [g.campaign_id for g in ordered] == ["first", "second"]


def test_adding_eligible_grant_never_lowers_available_coins() -> None:
    voucher = make_voucher(category="food")
    grants = [
        make_grant("food", 30, restriction_type=RestrictionType.CATEGORY, allowed=["food"]),
        make_grant("travel", 50, restriction_type=RestrictionType.CATEGORY, allowed=["travel"]),
    ]
    before = resolve_eligibility(make_account(account_id="u-1", grants=grants), voucher, now=NOW)

    after = resolve_eligibility(
        make_account(account_id="u-1", grants=[*grants, make_grant("open", 15)]),
        voucher,
        now=NOW,
    )

    assert after.total_campaign_coins >= before.total_campaign_coins
    assert after.total_campaign_coins == 45


def test_expiring_a_grant_never_raises_available_coins_when_enforced() -> None:
    voucher = make_voucher()
    fresh = [make_grant("a", 30), make_grant("b", 20)]
    aged = [make_grant("a", 30), make_grant("b", 20, expiry_date=NOW - timedelta(days=1))]

    before = resolve_eligibility(
        make_account(account_id="u-1", grants=fresh), voucher, now=NOW, enforce_expiry=True
    )
    after = resolve_eligibility(
        make_account(account_id="u-1", grants=aged), voucher, now=NOW, enforce_expiry=True
    )

    assert after.total_campaign_coins <= before.total_campaign_coins
    assert [g.campaign_id for g in after.eligible_grants] == ["a"]
