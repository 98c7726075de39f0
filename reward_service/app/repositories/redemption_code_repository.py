from __future__ import annotations

from datetime import datetime

from pymongo import ReturnDocument
from pymongo.database import Database

from common.mongo.types import parse_object_id

from .documents.redemption_code_document import RedemptionCodeDocument
from .interfaces import RedemptionCodeRepositoryInterface
from ..models.redemption_code import RedemptionCode


class RedemptionCodeRepository(RedemptionCodeRepositoryInterface):
    """redemption_codes 컬렉션에 대한 MongoDB 접근 레이어."""

    def __init__(self, database: Database) -> None:
        self._db = database
        self._col = database["redemption_codes"]

    def insert_many(self, codes: list[RedemptionCode]) -> list[RedemptionCode]:
        if not codes:
            return []
        payloads = [
            RedemptionCodeDocument.from_domain(code).to_mongo_record() for code in codes
        ]
        result = self._col.insert_many(payloads)
        return [
            code.model_copy(update={"id": str(inserted_id)})
            for code, inserted_id in zip(codes, result.inserted_ids)
        ]

    def find_by_code(self, code: str) -> RedemptionCode | None:
        doc = self._col.find_one({"code": code})
        if not doc:
            return None
        return RedemptionCodeDocument.model_validate(doc).to_domain()

    def claim(self, code: str, redeemed_by: str, now: datetime) -> RedemptionCode | None:
        """is_redeemed 를 false -> true 로 한 번만 바꾼다."""
        doc = self._col.find_one_and_update(
            {"code": code, "is_redeemed": False, "expires_at": {"$gte": now}},
            {
                "$set": {
                    "is_redeemed": True,
                    "redeemed_at": now,
                    "redeemed_by": redeemed_by,
                    "updated_at": now,
                }
            },
            return_document=ReturnDocument.AFTER,
        )
        if not doc:
            return None
        return RedemptionCodeDocument.model_validate(doc).to_domain()

    def unclaim(self, code: str) -> None:
        """적립 실패 시 사용 처리를 되돌린다."""
        self._col.update_one(
            {"code": code, "is_redeemed": True},
            {"$set": {"is_redeemed": False, "redeemed_at": None, "redeemed_by": None}},
        )

    def mark_email_sent(self, code_id: str, sent: bool) -> None:
        oid = parse_object_id(code_id)
        if oid is None:
            return
        self._col.update_one({"_id": oid}, {"$set": {"email_sent": sent}})

    def list(self, page: int, page_size: int) -> tuple[list[RedemptionCode], int]:
        """최신 발급 순 코드 목록."""
        if page <= 0:
            page = 1
        if page_size <= 0 or page_size > 100:
            page_size = 20

        skip = (page - 1) * page_size

        total = self._col.count_documents({})
        cursor = self._col.find(
            {},
            sort=[("created_at", -1), ("_id", -1)],
            skip=skip,
            limit=page_size,
        )
        items = [RedemptionCodeDocument.model_validate(raw).to_domain() for raw in cursor]
        return items, total
