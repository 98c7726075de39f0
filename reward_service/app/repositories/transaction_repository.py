"""코인 트랜잭션 로그 레포지토리 구현체.

기록은 추가만 한다. 예외는 코인 요청(request) 의 상태 전이 하나뿐이다.
"""

from __future__ import annotations

from typing import Any

from pymongo import ReturnDocument
from pymongo.database import Database

from common.mongo.types import parse_object_id
from common.types.datetime import utc_now

from .documents.transaction_document import CoinTransactionDocument
from .interfaces import TransactionRepositoryInterface
from ..models.transaction import CoinTransaction, TransactionStatus, TransactionType


class TransactionRepository(TransactionRepositoryInterface):
    """coin_transactions 컬렉션에 대한 MongoDB 접근 레이어."""

    def __init__(self, database: Database) -> None:
        self._db = database
        self._col = database["coin_transactions"]

    def create(self, tx: CoinTransaction) -> CoinTransaction:
        """트랜잭션 로그 생성."""
        doc = CoinTransactionDocument.from_domain(tx)
        result = self._col.insert_one(doc.to_mongo_record())
        return tx.model_copy(update={"id": str(result.inserted_id)})

    def find_by_id(self, tx_id: str) -> CoinTransaction | None:
        oid = parse_object_id(tx_id)
        if oid is None:
            return None
        doc = self._col.find_one({"_id": oid})
        if not doc:
            return None
        return CoinTransactionDocument.model_validate(doc).to_domain()

    def transition_status(
        self,
        tx_id: str,
        tx_type: TransactionType,
        from_status: TransactionStatus,
        to_status: TransactionStatus,
    ) -> CoinTransaction | None:
        oid = parse_object_id(tx_id)
        if oid is None:
            return None
        doc = self._col.find_one_and_update(
            {"_id": oid, "type": tx_type.value, "status": from_status.value},
            {"$set": {"status": to_status.value, "updated_at": utc_now()}},
            return_document=ReturnDocument.AFTER,
        )
        if not doc:
            return None
        return CoinTransactionDocument.model_validate(doc).to_domain()

    def list_by_user(
        self, user_id: str, page: int, page_size: int
    ) -> tuple[list[CoinTransaction], int]:
        """유저가 보내거나 받은 트랜잭션 이력 조회."""
        if page <= 0:
            page = 1
        if page_size <= 0 or page_size > 100:
            page_size = 20

        skip = (page - 1) * page_size
        query = {"$or": [{"from_user_id": user_id}, {"to_user_id": user_id}]}

        total = self._col.count_documents(query)
        cursor = self._col.find(
            query,
            sort=[("created_at", -1), ("_id", -1)],
            skip=skip,
            limit=page_size,
        )

        items: list[CoinTransaction] = []
        for raw in cursor:
            items.append(CoinTransactionDocument.model_validate(raw).to_domain())

        return items, total

    def list_by_type(
        self, tx_type: TransactionType, status: TransactionStatus | None = None
    ) -> list[CoinTransaction]:
        query: dict[str, Any] = {"type": tx_type.value}
        if status is not None:
            query["status"] = status.value
        cursor = self._col.find(query, sort=[("created_at", -1), ("_id", -1)])
        return [CoinTransactionDocument.model_validate(raw).to_domain() for raw in cursor]
