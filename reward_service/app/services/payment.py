"""결제 분할 계산 (순수 함수).

구매 미리보기 API 와 실제 구매 커밋이 모두 이 모듈만 사용한다.
"""

from __future__ import annotations

from ..models.account import CampaignCoinGrant, GrantDebit
from ..models.ledger import PaymentBreakdown, PaymentMethod


def calculate_payment_breakdown(
    *,
    coin_value: int,
    quantity: int,
    eligible_campaign_coins: int,
    regular_balance: int,
    payment_method: PaymentMethod = PaymentMethod.AUTO,
) -> PaymentBreakdown:
    """총 비용을 캠페인 코인과 일반 코인으로 나눈다.

    - campaign-only: 전액 캠페인 코인. 사용 가능한 캠페인 코인 이내일 때만 결제 가능
    - regular-only: 전액 일반 코인
    - mixed / auto: 캠페인 코인을 먼저 쓰고 나머지를 일반 코인으로 채운다
    """

    total_cost = coin_value * quantity

    if payment_method == PaymentMethod.CAMPAIGN_ONLY:
        campaign_used = total_cost
        regular_used = 0
        can_afford = total_cost <= eligible_campaign_coins
    elif payment_method == PaymentMethod.REGULAR_ONLY:
        campaign_used = 0
        regular_used = total_cost
        can_afford = total_cost <= regular_balance
    else:
        campaign_used = min(total_cost, eligible_campaign_coins)
        regular_used = total_cost - campaign_used
        can_afford = regular_used <= regular_balance

    return PaymentBreakdown(
        total_cost=total_cost,
        campaign_coins_used=campaign_used,
        regular_coins_used=regular_used,
        can_afford=can_afford,
        payment_method=payment_method,
    )


def plan_grant_debits(
    eligible_grants: list[CampaignCoinGrant], amount: int
) -> list[GrantDebit]:
    """정렬된 지급분에서 amount 만큼 앞에서부터 욕심껏 차감할 계획을 만든다.

    eligible_grants 합계가 amount 보다 작으면 ValueError.
    """

    if amount < 0:
        raise ValueError(f"amount must not be negative: {amount}")

    remaining = amount
    debits: list[GrantDebit] = []
    for grant in eligible_grants:
        if remaining <= 0:
            break
        take = min(grant.balance, remaining)
        if take <= 0:
            continue
        debits.append(GrantDebit(campaign_id=grant.campaign_id, amount=take))
        remaining -= take

    if remaining > 0:
        raise ValueError(
            f"eligible campaign coins are short by {remaining} for amount {amount}"
        )
    return debits
