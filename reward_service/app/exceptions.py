from __future__ import annotations

from enum import StrEnum


class ErrorKind(StrEnum):
    NOT_FOUND = "not_found"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    INSUFFICIENT_INVENTORY = "insufficient_inventory"
    INSUFFICIENT_BUDGET = "insufficient_budget"
    ALREADY_REDEEMED = "already_redeemed"
    EXPIRED = "expired"
    UNAUTHORIZED = "unauthorized"
    VALIDATION = "validation"


class RewardError(Exception):
    """Base exception for all reward-service domain errors.

    API 경계에서 kind 별 HTTP 상태 코드와 JSON 바디로 변환된다.
    """

    kind: ErrorKind

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(RewardError):
    """Account, voucher, campaign, code or request does not exist (or is inactive)."""

    kind = ErrorKind.NOT_FOUND


class InsufficientFundsError(RewardError):
    """Balance (regular or eligible campaign coins) does not cover the cost."""

    kind = ErrorKind.INSUFFICIENT_FUNDS


class InsufficientInventoryError(RewardError):
    """Voucher stock is lower than the requested quantity."""

    kind = ErrorKind.INSUFFICIENT_INVENTORY


class InsufficientBudgetError(RewardError):
    """Campaign remaining budget cannot cover the distribution."""

    kind = ErrorKind.INSUFFICIENT_BUDGET


class AlreadyRedeemedError(RewardError):
    kind = ErrorKind.ALREADY_REDEEMED


class ExpiredError(RewardError):
    kind = ErrorKind.EXPIRED


class UnauthorizedError(RewardError):
    """Caller role or identity does not allow the operation."""

    kind = ErrorKind.UNAUTHORIZED


class ValidationError(RewardError):
    """Malformed input, bad dates or a stale client-side payment split."""

    kind = ErrorKind.VALIDATION
