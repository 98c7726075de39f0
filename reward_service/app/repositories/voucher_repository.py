from __future__ import annotations

from datetime import datetime
from typing import Any

from pymongo import ReturnDocument
from pymongo.database import Database

from common.mongo.types import parse_object_id, to_object_id
from common.types.datetime import utc_now

from .documents.voucher_document import VoucherDocument, VoucherPurchaseDocument
from .interfaces import PurchaseRepositoryInterface, VoucherRepositoryInterface
from ..models.voucher import Voucher, VoucherPurchase


class VoucherRepository(VoucherRepositoryInterface):
    """vouchers 컬렉션에 대한 MongoDB 접근 레이어."""

    def __init__(self, database: Database) -> None:
        self._db = database
        self._col = database["vouchers"]

    def find_by_id(self, voucher_id: str) -> Voucher | None:
        oid = parse_object_id(voucher_id)
        if oid is None:
            return None
        doc = self._col.find_one({"_id": oid})
        if not doc:
            return None
        return VoucherDocument.model_validate(doc).to_domain()

    def list_active(
        self, category: str | None = None, brand: str | None = None
    ) -> list[Voucher]:
        query: dict[str, Any] = {"is_active": True}
        if category:
            query["category"] = category
        if brand:
            query["brand"] = brand
        cursor = self._col.find(query, sort=[("created_at", -1), ("_id", -1)])
        return [VoucherDocument.model_validate(doc).to_domain() for doc in cursor]

    def insert(self, voucher: Voucher) -> Voucher:
        doc = VoucherDocument.from_domain(voucher)
        result = self._col.insert_one(doc.to_mongo_record())
        return voucher.model_copy(update={"id": str(result.inserted_id)})

    def update_fields(self, voucher_id: str, updates: dict[str, Any]) -> Voucher | None:
        oid = parse_object_id(voucher_id)
        if oid is None:
            return None
        doc = self._col.find_one_and_update(
            {"_id": oid},
            {"$set": {**updates, "updated_at": utc_now()}},
            return_document=ReturnDocument.AFTER,
        )
        if not doc:
            return None
        return VoucherDocument.model_validate(doc).to_domain()

    def reserve_stock(self, voucher_id: str, quantity: int) -> Voucher | None:
        """재고 예약 (조건부 차감)."""
        oid = parse_object_id(voucher_id)
        if oid is None:
            return None
        doc = self._col.find_one_and_update(
            {"_id": oid, "is_active": True, "quantity": {"$gte": quantity}},
            {"$inc": {"quantity": -quantity}, "$set": {"updated_at": utc_now()}},
            return_document=ReturnDocument.AFTER,
        )
        if not doc:
            return None
        return VoucherDocument.model_validate(doc).to_domain()

    def release_stock(self, voucher_id: str, quantity: int) -> None:
        """예약한 재고를 되돌린다 (차감 실패 보상)."""
        self._col.update_one(
            {"_id": to_object_id(voucher_id)},
            {"$inc": {"quantity": quantity}, "$set": {"updated_at": utc_now()}},
        )


class PurchaseRepository(PurchaseRepositoryInterface):
    """voucher_purchases 컬렉션에 대한 MongoDB 접근 레이어."""

    def __init__(self, database: Database) -> None:
        self._db = database
        self._col = database["voucher_purchases"]

    def create_many(self, purchases: list[VoucherPurchase]) -> list[VoucherPurchase]:
        if not purchases:
            return []
        payloads = [
            VoucherPurchaseDocument.from_domain(p).to_mongo_record() for p in purchases
        ]
        result = self._col.insert_many(payloads)
        return [
            purchase.model_copy(update={"id": str(inserted_id)})
            for purchase, inserted_id in zip(purchases, result.inserted_ids)
        ]

    def list_by_employee(self, employee_id: str) -> list[VoucherPurchase]:
        cursor = self._col.find(
            {"employee_id": employee_id},
            sort=[("purchased_at", -1), ("_id", -1)],
        )
        return [VoucherPurchaseDocument.model_validate(doc).to_domain() for doc in cursor]

    def mark_redeemed(
        self, purchase_id: str, employee_id: str, now: datetime
    ) -> VoucherPurchase | None:
        oid = parse_object_id(purchase_id)
        if oid is None:
            return None
        doc = self._col.find_one_and_update(
            {"_id": oid, "employee_id": employee_id, "is_redeemed": False},
            {"$set": {"is_redeemed": True, "redeemed_at": now, "updated_at": now}},
            return_document=ReturnDocument.AFTER,
        )
        if not doc:
            return None
        return VoucherPurchaseDocument.model_validate(doc).to_domain()
