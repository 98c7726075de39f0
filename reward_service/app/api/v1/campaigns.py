"""캠페인 관리/배포 라우터 (회사 관리자)."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends

from ..deps import CurrentAccount
from ..schemas.campaigns import (
    CampaignCreateRequest,
    CampaignResponse,
    CampaignUpdateRequest,
    DistributeRequest,
    DistributeResponse,
    ParticipantResponse,
)
from ..schemas.common import MessageResponse
from ...services.campaign_service import CampaignService, get_campaign_service


router = APIRouter(prefix="/campaigns", tags=["campaigns"])


@router.post("", summary="캠페인 생성", status_code=201)
def create_campaign(
    body: CampaignCreateRequest,
    actor: CurrentAccount,
    service: Annotated[CampaignService, Depends(get_campaign_service)],
) -> CampaignResponse:
    return CampaignResponse.from_domain(service.create_campaign(actor, body.to_domain()))


@router.get("", summary="내 회사 캠페인 목록")
def list_campaigns(
    actor: CurrentAccount,
    service: Annotated[CampaignService, Depends(get_campaign_service)],
) -> list[CampaignResponse]:
    return [CampaignResponse.from_domain(c) for c in service.list_campaigns(actor)]


@router.get("/{campaign_id}", summary="캠페인 상세")
def get_campaign(
    campaign_id: str,
    actor: CurrentAccount,
    service: Annotated[CampaignService, Depends(get_campaign_service)],
) -> CampaignResponse:
    return CampaignResponse.from_domain(service.get_campaign(actor, campaign_id))


@router.patch("/{campaign_id}", summary="캠페인 수정")
def update_campaign(
    campaign_id: str,
    body: CampaignUpdateRequest,
    actor: CurrentAccount,
    service: Annotated[CampaignService, Depends(get_campaign_service)],
) -> CampaignResponse:
    updated = service.update_campaign(actor, campaign_id, body.to_domain())
    return CampaignResponse.from_domain(updated)


@router.delete("/{campaign_id}", summary="캠페인 삭제 (참여자가 없을 때만)")
def delete_campaign(
    campaign_id: str,
    actor: CurrentAccount,
    service: Annotated[CampaignService, Depends(get_campaign_service)],
) -> MessageResponse:
    service.delete_campaign(actor, campaign_id)
    return MessageResponse(message="campaign_deleted")


@router.post("/{campaign_id}/distribute", summary="캠페인 코인 배포")
def distribute_campaign_coins(
    campaign_id: str,
    body: DistributeRequest,
    actor: CurrentAccount,
    service: Annotated[CampaignService, Depends(get_campaign_service)],
) -> DistributeResponse:
    result = service.distribute(
        actor,
        campaign_id,
        target_user_ids=body.target_user_ids,
        coins_per_user=body.coins_per_user,
        custom_message=body.custom_message,
    )
    return DistributeResponse.from_domain(result)


@router.get("/{campaign_id}/participants", summary="캠페인 참여자 목록")
def list_participants(
    campaign_id: str,
    actor: CurrentAccount,
    service: Annotated[CampaignService, Depends(get_campaign_service)],
) -> list[ParticipantResponse]:
    return [
        ParticipantResponse.from_domain(p)
        for p in service.list_participants(actor, campaign_id)
    ]
