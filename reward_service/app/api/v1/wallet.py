"""지갑 조회 및 슈퍼어드민 발행/소각 라우터."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends

from ..deps import CurrentAccount
from ..schemas.common import PaginatedResponse
from ..schemas.wallet import (
    AmountRequest,
    BalanceResponse,
    TransactionResponse,
    WalletResponse,
)
from ...services.wallet_service import WalletService, get_wallet_service


router = APIRouter(prefix="/wallet", tags=["wallet"])


@router.get("", summary="내 지갑 조회")
def get_wallet(
    actor: CurrentAccount,
    service: Annotated[WalletService, Depends(get_wallet_service)],
) -> WalletResponse:
    return WalletResponse.from_view(service.get_wallet(actor))


@router.get("/history", summary="코인 트랜잭션 이력")
def get_history(
    actor: CurrentAccount,
    service: Annotated[WalletService, Depends(get_wallet_service)],
    page: int = 1,
    page_size: int = 20,
) -> PaginatedResponse[TransactionResponse]:
    items, total = service.get_history(actor, page, page_size)
    return PaginatedResponse(
        items=[TransactionResponse.from_domain(tx) for tx in items],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.post("/mint", summary="코인 발행 (슈퍼어드민)")
def mint_coins(
    body: AmountRequest,
    actor: CurrentAccount,
    service: Annotated[WalletService, Depends(get_wallet_service)],
) -> BalanceResponse:
    updated = service.mint(actor, body.amount)
    return BalanceResponse(new_balance=updated.regular_balance)


@router.post("/burn", summary="코인 소각 (슈퍼어드민)")
def burn_coins(
    body: AmountRequest,
    actor: CurrentAccount,
    service: Annotated[WalletService, Depends(get_wallet_service)],
) -> BalanceResponse:
    updated = service.burn(actor, body.amount)
    return BalanceResponse(new_balance=updated.regular_balance)
