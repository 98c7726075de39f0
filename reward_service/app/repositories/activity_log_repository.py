from __future__ import annotations

from pymongo.database import Database

from .documents.activity_log_document import ActivityLogDocument
from .interfaces import ActivityLogRepositoryInterface
from ..models.activity_log import ActivityLog


class ActivityLogRepository(ActivityLogRepositoryInterface):
    """activity_logs 컬렉션에 대한 MongoDB 접근 레이어."""

    def __init__(self, database: Database) -> None:
        self._db = database
        self._col = database["activity_logs"]

    def create(self, log: ActivityLog) -> ActivityLog:
        doc = ActivityLogDocument.from_domain(log)
        result = self._col.insert_one(doc.to_mongo_record())
        return log.model_copy(update={"id": str(result.inserted_id)})

    def list_recent(self, limit: int) -> list[ActivityLog]:
        if limit <= 0 or limit > 500:
            limit = 100
        cursor = self._col.find({}, sort=[("created_at", -1), ("_id", -1)], limit=limit)
        return [ActivityLogDocument.model_validate(raw).to_domain() for raw in cursor]
