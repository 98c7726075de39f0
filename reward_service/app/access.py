"""역할(Role) 기반 권한 검사.

라우터나 서비스 곳곳에서 역할 문자열을 비교하지 않고, Capability 하나로 묻는다.
"""

from __future__ import annotations

from enum import StrEnum

from .exceptions import UnauthorizedError
from .models.account import Account, Role
from .models.campaign import Campaign


class Capability(StrEnum):
    MINT_COINS = "mint_coins"
    MANAGE_VOUCHERS = "manage_vouchers"
    REVIEW_COIN_REQUESTS = "review_coin_requests"
    VIEW_AUDIT = "view_audit"
    MANAGE_CAMPAIGNS = "manage_campaigns"
    ISSUE_REDEMPTION_CODES = "issue_redemption_codes"
    REQUEST_COINS = "request_coins"
    REDEEM_CODES = "redeem_codes"
    PURCHASE_VOUCHERS = "purchase_vouchers"
    VIEW_WALLET = "view_wallet"


CAPABILITY_ROLES: dict[Capability, frozenset[Role]] = {
    Capability.MINT_COINS: frozenset({Role.SUPERADMIN}),
    Capability.MANAGE_VOUCHERS: frozenset({Role.SUPERADMIN}),
    Capability.REVIEW_COIN_REQUESTS: frozenset({Role.SUPERADMIN}),
    Capability.VIEW_AUDIT: frozenset({Role.SUPERADMIN}),
    Capability.MANAGE_CAMPAIGNS: frozenset({Role.COMPANY_ADMIN}),
    Capability.ISSUE_REDEMPTION_CODES: frozenset({Role.COMPANY_ADMIN}),
    Capability.REQUEST_COINS: frozenset({Role.COMPANY_ADMIN}),
    Capability.REDEEM_CODES: frozenset({Role.EMPLOYEE}),
    Capability.PURCHASE_VOUCHERS: frozenset({Role.EMPLOYEE, Role.COMPANY_ADMIN}),
    Capability.VIEW_WALLET: frozenset(Role),
}


def has_capability(role: Role, capability: Capability) -> bool:
    return role in CAPABILITY_ROLES[capability]


def require_capability(account: Account, capability: Capability) -> None:
    if not has_capability(account.role, capability):
        raise UnauthorizedError(
            f"Role '{account.role}' is not allowed to {capability.replace('_', ' ')}"
        )


def require_campaign_owner(account: Account, campaign: Campaign) -> None:
    """회사 관리자는 자신이 만든 캠페인만 다룰 수 있다."""
    require_capability(account, Capability.MANAGE_CAMPAIGNS)
    if campaign.company_id != account.id:
        raise UnauthorizedError("Campaign belongs to another company")
