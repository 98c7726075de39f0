"""바우처 카탈로그 라우터."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends

from ..deps import CurrentAccount
from ..schemas.vouchers import (
    CampaignVoucherResponse,
    EligibilityResponse,
    VoucherCreateRequest,
    VoucherResponse,
    VoucherUpdateRequest,
)
from ...services.settlement_service import SettlementService, get_settlement_service
from ...services.voucher_service import VoucherService, get_voucher_service


router = APIRouter(prefix="/vouchers", tags=["vouchers"])


@router.get("", summary="활성 바우처 목록")
def list_vouchers(
    actor: CurrentAccount,
    service: Annotated[VoucherService, Depends(get_voucher_service)],
    category: str | None = None,
    brand: str | None = None,
) -> list[VoucherResponse]:
    return [
        VoucherResponse.from_domain(v)
        for v in service.list_vouchers(category=category, brand=brand)
    ]


@router.get("/campaign-eligible", summary="내 캠페인 코인으로 살 수 있는 바우처")
def list_campaign_vouchers(
    actor: CurrentAccount,
    service: Annotated[VoucherService, Depends(get_voucher_service)],
) -> list[CampaignVoucherResponse]:
    return [
        CampaignVoucherResponse.from_view(view)
        for view in service.list_campaign_vouchers(actor)
    ]


@router.get("/{voucher_id}", summary="바우처 상세")
def get_voucher(
    voucher_id: str,
    actor: CurrentAccount,
    service: Annotated[VoucherService, Depends(get_voucher_service)],
) -> VoucherResponse:
    return VoucherResponse.from_domain(service.get_voucher(voucher_id))


@router.get("/{voucher_id}/eligibility", summary="바우처 결제 가능 코인 조회")
def check_eligibility(
    voucher_id: str,
    actor: CurrentAccount,
    service: Annotated[SettlementService, Depends(get_settlement_service)],
) -> EligibilityResponse:
    view = service.check_eligibility(actor.id or "", voucher_id)
    return EligibilityResponse.from_view(view)


@router.post("", summary="바우처 등록 (슈퍼어드민)", status_code=201)
def create_voucher(
    body: VoucherCreateRequest,
    actor: CurrentAccount,
    service: Annotated[VoucherService, Depends(get_voucher_service)],
) -> VoucherResponse:
    return VoucherResponse.from_domain(service.create_voucher(actor, body.to_domain()))


@router.patch("/{voucher_id}", summary="바우처 수정 (슈퍼어드민)")
def update_voucher(
    voucher_id: str,
    body: VoucherUpdateRequest,
    actor: CurrentAccount,
    service: Annotated[VoucherService, Depends(get_voucher_service)],
) -> VoucherResponse:
    updates = body.model_dump(exclude_unset=True)
    return VoucherResponse.from_domain(
        service.update_voucher(actor, voucher_id, updates)
    )


@router.delete("/{voucher_id}", summary="바우처 비활성화 (슈퍼어드민)")
def deactivate_voucher(
    voucher_id: str,
    actor: CurrentAccount,
    service: Annotated[VoucherService, Depends(get_voucher_service)],
) -> VoucherResponse:
    return VoucherResponse.from_domain(service.deactivate_voucher(actor, voucher_id))
