from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class ActivityLog(BaseModel):
    """감사용 활동 로그 레코드."""

    id: str | None = None
    user_id: str
    action: str
    details: dict | None = None
    created_at: datetime
    updated_at: datetime
