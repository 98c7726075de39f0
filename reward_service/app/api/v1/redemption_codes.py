"""리딤 코드 발급/사용/조회 라우터."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends

from common.types.datetime import utc_now

from ..deps import CurrentAccount
from ..schemas.common import PaginatedResponse
from ..schemas.redemption_codes import (
    IssueCodesRequest,
    IssueCodesResponse,
    RedeemRequest,
    RedeemResponse,
    RedemptionCodeResponse,
)
from ...services.redemption_service import RedemptionService, get_redemption_service


router = APIRouter(prefix="/redemption-codes", tags=["redemption_codes"])


@router.post("", summary="직원용 리딤 코드 일괄 발급 (회사 관리자)")
def issue_codes(
    body: IssueCodesRequest,
    actor: CurrentAccount,
    service: Annotated[RedemptionService, Depends(get_redemption_service)],
) -> IssueCodesResponse:
    result = service.issue_codes(
        actor,
        [e.to_domain() for e in body.employees],
        body.coin_amount,
    )
    return IssueCodesResponse.from_domain(result)


@router.post("/redeem", summary="리딤 코드 사용")
def redeem_code(
    body: RedeemRequest,
    actor: CurrentAccount,
    service: Annotated[RedemptionService, Depends(get_redemption_service)],
) -> RedeemResponse:
    return RedeemResponse.from_domain(service.redeem(actor, body.code))


@router.get("", summary="리딤 코드 목록 (슈퍼어드민)")
def list_codes(
    actor: CurrentAccount,
    service: Annotated[RedemptionService, Depends(get_redemption_service)],
    page: int = 1,
    page_size: int = 20,
) -> PaginatedResponse[RedemptionCodeResponse]:
    items, total = service.list_codes(actor, page, page_size)
    now = utc_now()
    return PaginatedResponse(
        items=[RedemptionCodeResponse.from_domain(c, now) for c in items],
        total=total,
        page=page,
        page_size=page_size,
    )


@router.get("/{code}", summary="리딤 코드 조회 (슈퍼어드민)")
def lookup_code(
    code: str,
    actor: CurrentAccount,
    service: Annotated[RedemptionService, Depends(get_redemption_service)],
) -> RedemptionCodeResponse:
    return RedemptionCodeResponse.from_domain(service.lookup_code(actor, code), utc_now())
