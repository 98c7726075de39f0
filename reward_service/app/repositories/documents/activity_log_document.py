from __future__ import annotations

from common.mongo.types import (
    BaseDocument,
    build_document_data_from_domain,
    from_object_id,
)

from ...models.activity_log import ActivityLog


class ActivityLogDocument(BaseDocument):
    """MongoDB activity_logs 컬렉션 도큐먼트 모델."""

    user_id: str
    action: str
    details: dict | None = None

    @classmethod
    def from_domain(cls, log: ActivityLog) -> "ActivityLogDocument":
        data = build_document_data_from_domain(log)
        return cls.model_validate(data)

    def to_domain(self) -> ActivityLog:
        return ActivityLog(
            id=from_object_id(self.id),
            user_id=self.user_id,
            action=self.action,
            details=self.details,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )
