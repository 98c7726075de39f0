"""캠페인 코인 사용 가능 여부 판단 (순수 함수).

계정의 캠페인 지급분 중 특정 바우처 결제에 쓸 수 있는 것만 골라 차감 순서대로 정렬한다.
저장소를 건드리지 않으므로 미리보기와 실제 구매가 같은 결과를 얻는다.
"""

from __future__ import annotations

from datetime import datetime
from typing import Iterable

from common.types.datetime import utc_now

from ..config import GrantDrainOrder
from ..models.account import Account, CampaignCoinGrant
from ..models.ledger import EligibilityResult
from ..models.restriction import RestrictionType, SpendingRestriction
from ..models.voucher import Voucher


def restriction_allows(restriction: SpendingRestriction, voucher: Voucher) -> bool:
    """제한 조건이 해당 바우처 결제를 허용하는지 여부."""

    rtype = restriction.restriction_type
    if rtype == RestrictionType.NONE:
        return True
    if rtype == RestrictionType.CATEGORY:
        return voucher.category in restriction.allowed_categories
    if rtype == RestrictionType.BRAND:
        return voucher.brand is not None and voucher.brand in restriction.allowed_brands
    if rtype == RestrictionType.SPECIFIC:
        return voucher.id is not None and voucher.id in restriction.allowed_voucher_ids
    return False


def order_grants(
    grants: Iterable[CampaignCoinGrant], order: GrantDrainOrder
) -> list[CampaignCoinGrant]:
    """차감 순서로 정렬한다. 같은 키면 campaign_id 로 순서를 고정한다."""

    if order == GrantDrainOrder.INSERTION:
        return sorted(grants, key=lambda g: (g.granted_at, g.campaign_id))
    return sorted(grants, key=lambda g: (g.expiry_date, g.granted_at, g.campaign_id))


def resolve_eligibility(
    account: Account,
    voucher: Voucher,
    *,
    now: datetime | None = None,
    enforce_expiry: bool = False,
    drain_order: GrantDrainOrder = GrantDrainOrder.SOONEST_EXPIRY,
) -> EligibilityResult:
    """바우처에 사용할 수 있는 캠페인 지급분을 계산한다.

    - balance 가 0 인 지급분은 제외한다.
    - enforce_expiry 가 False 면 만료된 지급분도 사용 가능하다고 본다.
    """

    now = now or utc_now()
    eligible = [
        grant
        for grant in account.campaign_balances
        if grant.balance > 0
        and restriction_allows(grant.restriction, voucher)
        and not (enforce_expiry and grant.is_expired(now))
    ]
    ordered = order_grants(eligible, drain_order)
    return EligibilityResult(
        is_eligible=bool(ordered),
        eligible_grants=ordered,
        total_campaign_coins=sum(grant.balance for grant in ordered),
    )
