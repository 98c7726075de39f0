from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends

from ..deps import CurrentAccount
from ..schemas.wallet import CoinRequestCreate, CoinRequestReview, TransactionResponse
from ...models.transaction import TransactionStatus
from ...services.wallet_service import WalletService, get_wallet_service


router = APIRouter(prefix="/coin-requests", tags=["coin_requests"])


@router.post("", summary="코인 요청 (회사 관리자)")
def create_coin_request(
    body: CoinRequestCreate,
    actor: CurrentAccount,
    service: Annotated[WalletService, Depends(get_wallet_service)],
) -> TransactionResponse:
    created = service.request_coins(actor, body.amount, body.reason)
    return TransactionResponse.from_domain(created)


@router.get("", summary="코인 요청 목록 (슈퍼어드민)")
def list_coin_requests(
    actor: CurrentAccount,
    service: Annotated[WalletService, Depends(get_wallet_service)],
    status: TransactionStatus | None = None,
) -> list[TransactionResponse]:
    return [
        TransactionResponse.from_domain(tx)
        for tx in service.list_coin_requests(actor, status)
    ]


@router.post("/{request_id}/review", summary="코인 요청 승인/거절 (슈퍼어드민)")
def review_coin_request(
    request_id: str,
    body: CoinRequestReview,
    actor: CurrentAccount,
    service: Annotated[WalletService, Depends(get_wallet_service)],
) -> TransactionResponse:
    reviewed = service.review_coin_request(actor, request_id, body.approve)
    return TransactionResponse.from_domain(reviewed)
