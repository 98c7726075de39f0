"""바우처 구매 라우터.

미리보기와 구매 모두 서버의 같은 분할 계산을 사용한다.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends

from ..deps import CurrentAccount
from ..schemas.purchases import (
    PaymentBreakdownResponse,
    PurchasePreviewRequest,
    PurchaseRequestBody,
    PurchaseResponse,
    VoucherPurchaseResponse,
)
from ...services.settlement_service import SettlementService, get_settlement_service
from ...services.voucher_service import VoucherService, get_voucher_service


router = APIRouter(prefix="/purchases", tags=["purchases"])


@router.post("/preview", summary="결제 분할 미리보기")
def preview_purchase(
    body: PurchasePreviewRequest,
    actor: CurrentAccount,
    service: Annotated[SettlementService, Depends(get_settlement_service)],
) -> PaymentBreakdownResponse:
    breakdown = service.preview(
        actor, body.voucher_id, body.quantity, body.payment_method
    )
    return PaymentBreakdownResponse.from_domain(breakdown)


@router.post("", summary="바우처 구매")
def purchase_voucher(
    body: PurchaseRequestBody,
    actor: CurrentAccount,
    service: Annotated[SettlementService, Depends(get_settlement_service)],
) -> PurchaseResponse:
    result = service.purchase(actor, body.to_domain())
    return PurchaseResponse.from_domain(result)


@router.get("", summary="내가 구매한 바우처 목록")
def list_purchases(
    actor: CurrentAccount,
    service: Annotated[VoucherService, Depends(get_voucher_service)],
) -> list[VoucherPurchaseResponse]:
    return [VoucherPurchaseResponse.from_domain(p) for p in service.list_purchases(actor)]


@router.post("/{purchase_id}/redeem", summary="구매한 바우처 사용")
def redeem_purchase(
    purchase_id: str,
    actor: CurrentAccount,
    service: Annotated[VoucherService, Depends(get_voucher_service)],
) -> VoucherPurchaseResponse:
    return VoucherPurchaseResponse.from_domain(
        service.redeem_purchase(actor, purchase_id)
    )
