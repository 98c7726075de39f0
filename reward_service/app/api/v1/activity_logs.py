from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends

from ..deps import CurrentAccount
from ..schemas.wallet import ActivityLogResponse
from ...services.activity_service import ActivityService, get_activity_service


router = APIRouter(prefix="/activity-logs", tags=["activity_logs"])


@router.get("", summary="최근 활동 로그 (슈퍼어드민)")
def list_activity_logs(
    actor: CurrentAccount,
    service: Annotated[ActivityService, Depends(get_activity_service)],
    limit: int = 100,
) -> list[ActivityLogResponse]:
    return [ActivityLogResponse.from_domain(log) for log in service.list_recent(actor, limit)]
