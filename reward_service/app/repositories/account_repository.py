"""계정 레포지토리 구현체.

잔액 변경은 find_one_and_update 한 번으로 조건 확인과 변경을 함께 수행한다.
읽고-계산하고-덮어쓰는 방식은 동시 구매에서 잔액을 음수로 만들 수 있으므로 쓰지 않는다.
"""

from __future__ import annotations

from typing import Any

from pymongo import ReturnDocument
from pymongo.database import Database

from common.mongo.types import parse_object_id
from common.types.datetime import utc_now

from .documents.account_document import AccountDocument, CampaignCoinGrantDocument
from .interfaces import AccountRepositoryInterface
from ..models.account import Account, CampaignCoinGrant, GrantDebit, Role


# 병합($inc)과 추가($push) 사이에 다른 요청이 끼어들면 다시 시도한다.
MAX_GRANT_MERGE_ATTEMPTS = 5


class AccountRepository(AccountRepositoryInterface):
    """accounts 컬렉션에 대한 MongoDB 접근 레이어."""

    def __init__(self, database: Database) -> None:
        self._db = database
        self._col = database["accounts"]

    def find_by_id(self, user_id: str) -> Account | None:
        oid = parse_object_id(user_id)
        if oid is None:
            return None
        doc = self._col.find_one({"_id": oid})
        if not doc:
            return None
        return AccountDocument.model_validate(doc).to_domain()

    def find_by_email(self, email: str) -> Account | None:
        doc = self._col.find_one({"email": email.strip().lower()})
        if not doc:
            return None
        return AccountDocument.model_validate(doc).to_domain()

    def find_by_ids(self, user_ids: list[str]) -> list[Account]:
        oids = [oid for oid in (parse_object_id(uid) for uid in user_ids) if oid]
        if not oids:
            return []
        cursor = self._col.find({"_id": {"$in": oids}})
        return [AccountDocument.model_validate(doc).to_domain() for doc in cursor]

    def list_by_company(self, company_name: str, role: Role) -> list[Account]:
        cursor = self._col.find(
            {"company_name": company_name, "role": role.value},
            sort=[("created_at", 1)],
        )
        return [AccountDocument.model_validate(doc).to_domain() for doc in cursor]

    def list_by_department(self, department: str, role: Role) -> list[Account]:
        cursor = self._col.find(
            {
                "role": role.value,
                "$or": [
                    {"department": department},
                    {"department": None, "company_name": department},
                ],
            },
            sort=[("created_at", 1)],
        )
        return [AccountDocument.model_validate(doc).to_domain() for doc in cursor]

    def insert(self, account: Account) -> Account:
        doc = AccountDocument.from_domain(account)
        payload = doc.to_mongo_record()
        result = self._col.insert_one(payload)
        return account.model_copy(update={"id": str(result.inserted_id)})

    def debit(
        self, user_id: str, regular_amount: int, grant_debits: list[GrantDebit]
    ) -> Account | None:
        oid = parse_object_id(user_id)
        if oid is None:
            return None

        query: dict[str, Any] = {"_id": oid}
        inc: dict[str, int] = {}
        array_filters: list[dict[str, Any]] = []

        if regular_amount > 0:
            query["regular_balance"] = {"$gte": regular_amount}
            inc["regular_balance"] = -regular_amount

        conditions: list[dict[str, Any]] = []
        for idx, item in enumerate(grant_debits):
            if item.amount <= 0:
                continue
            conditions.append(
                {
                    "$elemMatch": {
                        "campaign_id": item.campaign_id,
                        "balance": {"$gte": item.amount},
                    }
                }
            )
            ident = f"g{idx}"
            inc[f"campaign_balances.$[{ident}].balance"] = -item.amount
            array_filters.append({f"{ident}.campaign_id": item.campaign_id})

        if conditions:
            query["campaign_balances"] = {"$all": conditions}

        update: dict[str, Any] = {"$set": {"updated_at": utc_now()}}
        if inc:
            update["$inc"] = inc

        doc = self._col.find_one_and_update(
            query,
            update,
            array_filters=array_filters or None,
            return_document=ReturnDocument.AFTER,
        )
        if not doc:
            return None
        return AccountDocument.model_validate(doc).to_domain()

    def credit_regular(self, user_id: str, amount: int) -> Account | None:
        oid = parse_object_id(user_id)
        if oid is None:
            return None
        doc = self._col.find_one_and_update(
            {"_id": oid},
            {"$inc": {"regular_balance": amount}, "$set": {"updated_at": utc_now()}},
            return_document=ReturnDocument.AFTER,
        )
        if not doc:
            return None
        return AccountDocument.model_validate(doc).to_domain()

    def merge_campaign_grant(
        self, user_id: str, grant: CampaignCoinGrant
    ) -> Account | None:
        oid = parse_object_id(user_id)
        if oid is None:
            return None

        record = CampaignCoinGrantDocument.from_domain(grant).to_record()

        for _ in range(MAX_GRANT_MERGE_ATTEMPTS):
            now = utc_now()
            # 1) 같은 캠페인 지급분이 있으면 balance 만 증가
            doc = self._col.find_one_and_update(
                {"_id": oid, "campaign_balances.campaign_id": grant.campaign_id},
                {
                    "$inc": {"campaign_balances.$.balance": grant.balance},
                    "$set": {"updated_at": now},
                },
                return_document=ReturnDocument.AFTER,
            )
            if doc:
                return AccountDocument.model_validate(doc).to_domain()

            # 2) 없을 때만 새 지급분을 추가
            doc = self._col.find_one_and_update(
                {"_id": oid, "campaign_balances.campaign_id": {"$ne": grant.campaign_id}},
                {"$push": {"campaign_balances": record}, "$set": {"updated_at": now}},
                return_document=ReturnDocument.AFTER,
            )
            if doc:
                return AccountDocument.model_validate(doc).to_domain()

            if self._col.count_documents({"_id": oid}, limit=1) == 0:
                return None

        raise RuntimeError(
            f"failed to merge campaign grant {grant.campaign_id} into account {user_id}"
        )
