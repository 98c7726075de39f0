"""활동(감사) 로그 서비스."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable

from fastapi import Depends
from pymongo.database import Database

from common.mongo.client import get_database
from common.types.datetime import utc_now

from ..access import Capability, require_capability
from ..models.account import Account
from ..models.activity_log import ActivityLog
from ..repositories.activity_log_repository import ActivityLogRepository
from ..repositories.interfaces import ActivityLogRepositoryInterface


logger = logging.getLogger(__name__)


class ActivityService:
    """모든 변경 작업이 남기는 활동 로그를 기록/조회한다.

    기록은 코인 이동이 커밋된 다음에 호출되므로, 기록 실패가 이동을 되돌리지 않게 로그만 남긴다.
    """

    def __init__(
        self,
        activity_repo: ActivityLogRepositoryInterface,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._activity_repo = activity_repo
        self._clock = clock

    def record(
        self, user_id: str, action: str, details: dict[str, Any] | None = None
    ) -> ActivityLog | None:
        now = self._clock()
        try:
            return self._activity_repo.create(
                ActivityLog(
                    user_id=user_id,
                    action=action,
                    details=details,
                    created_at=now,
                    updated_at=now,
                )
            )
        except Exception:  # noqa: BLE001
            logger.exception(
                "failed to write activity log %s", action, extra={"user_id": user_id}
            )
            return None

    def list_recent(self, actor: Account, limit: int = 100) -> list[ActivityLog]:
        require_capability(actor, Capability.VIEW_AUDIT)
        return self._activity_repo.list_recent(limit)


def get_activity_service(db: Database = Depends(get_database)) -> ActivityService:
    """FastAPI DI용 ActivityService 팩토리."""
    return ActivityService(ActivityLogRepository(db))
