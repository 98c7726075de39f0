from __future__ import annotations

from common.mongo.types import BaseDocument, from_object_id, to_object_id

from ...models.transaction import CoinTransaction, TransactionStatus, TransactionType


class CoinTransactionDocument(BaseDocument):
    """MongoDB coin_transactions 컬렉션 도큐먼트 모델."""

    type: str
    amount: int
    from_user_id: str | None = None
    to_user_id: str | None = None
    status: str
    description: str = ""
    metadata: dict | None = None

    @classmethod
    def from_domain(cls, tx: CoinTransaction) -> "CoinTransactionDocument":
        return cls(
            _id=to_object_id(tx.id) if tx.id else None,
            type=tx.type.value,
            amount=tx.amount,
            from_user_id=tx.from_user_id,
            to_user_id=tx.to_user_id,
            status=tx.status.value,
            description=tx.description,
            metadata=tx.metadata,
            created_at=tx.created_at,
            updated_at=tx.updated_at,
        )

    def to_domain(self) -> CoinTransaction:
        return CoinTransaction(
            id=from_object_id(self.id),
            type=TransactionType(self.type),
            amount=self.amount,
            from_user_id=self.from_user_id,
            to_user_id=self.to_user_id,
            status=TransactionStatus(self.status),
            description=self.description,
            metadata=self.metadata,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )
