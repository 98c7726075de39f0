"""캠페인 / 캠페인 참여자 레포지토리 구현체."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pymongo import ReturnDocument
from pymongo.database import Database

from common.mongo.types import parse_object_id
from common.types.datetime import utc_now

from .documents.campaign_document import CampaignDocument, CampaignParticipantDocument
from .documents.restriction_document import RestrictionDocument
from .interfaces import (
    CampaignParticipantRepositoryInterface,
    CampaignRepositoryInterface,
)
from ..models.campaign import Campaign, CampaignParticipant
from ..models.restriction import SpendingRestriction


def _to_mongo_updates(updates: dict[str, Any]) -> dict[str, Any]:
    """도메인 값(Enum, 제한 조건 모델)을 Mongo 저장 형태로 바꾼다."""
    converted: dict[str, Any] = {}
    for key, value in updates.items():
        if isinstance(value, SpendingRestriction):
            value = RestrictionDocument.from_domain(value).model_dump()
        elif isinstance(value, Enum):
            value = value.value
        converted[key] = value
    return converted


class CampaignRepository(CampaignRepositoryInterface):
    """campaigns 컬렉션에 대한 MongoDB 접근 레이어."""

    def __init__(self, database: Database) -> None:
        self._db = database
        self._col = database["campaigns"]

    def insert(self, campaign: Campaign) -> Campaign:
        doc = CampaignDocument.from_domain(campaign)
        result = self._col.insert_one(doc.to_mongo_record())
        return campaign.model_copy(update={"id": str(result.inserted_id)})

    def find_by_id(self, campaign_id: str) -> Campaign | None:
        oid = parse_object_id(campaign_id)
        if oid is None:
            return None
        doc = self._col.find_one({"_id": oid})
        if not doc:
            return None
        return CampaignDocument.model_validate(doc).to_domain()

    def list_by_company(self, company_id: str) -> list[Campaign]:
        cursor = self._col.find(
            {"company_id": company_id},
            sort=[("created_at", -1), ("_id", -1)],
        )
        return [CampaignDocument.model_validate(doc).to_domain() for doc in cursor]

    def update_fields(
        self, campaign_id: str, updates: dict[str, Any]
    ) -> Campaign | None:
        oid = parse_object_id(campaign_id)
        if oid is None:
            return None
        doc = self._col.find_one_and_update(
            {"_id": oid},
            {"$set": {**_to_mongo_updates(updates), "updated_at": utc_now()}},
            return_document=ReturnDocument.AFTER,
        )
        if not doc:
            return None
        return CampaignDocument.model_validate(doc).to_domain()

    def delete_if_unused(self, campaign_id: str) -> bool:
        oid = parse_object_id(campaign_id)
        if oid is None:
            return False
        result = self._col.delete_one({"_id": oid, "participant_count": 0})
        return result.deleted_count == 1

    def reserve_budget(
        self, campaign_id: str, amount: int, participants: int, now: datetime
    ) -> Campaign | None:
        oid = parse_object_id(campaign_id)
        if oid is None:
            return None
        doc = self._col.find_one_and_update(
            {
                "_id": oid,
                "is_active": True,
                "start_date": {"$lte": now},
                "end_date": {"$gte": now},
                "remaining_budget": {"$gte": amount},
            },
            {
                "$inc": {
                    "remaining_budget": -amount,
                    "participant_count": participants,
                    "total_distributed": amount,
                },
                "$set": {"updated_at": now},
            },
            return_document=ReturnDocument.AFTER,
        )
        if not doc:
            return None
        return CampaignDocument.model_validate(doc).to_domain()

    def release_budget(
        self, campaign_id: str, amount: int, participants: int
    ) -> Campaign | None:
        oid = parse_object_id(campaign_id)
        if oid is None:
            return None
        doc = self._col.find_one_and_update(
            {"_id": oid},
            {
                "$inc": {
                    "remaining_budget": amount,
                    "participant_count": -participants,
                    "total_distributed": -amount,
                },
                "$set": {"updated_at": utc_now()},
            },
            return_document=ReturnDocument.AFTER,
        )
        if not doc:
            return None
        return CampaignDocument.model_validate(doc).to_domain()

    def increment_redemption_count(self, campaign_id: str) -> None:
        oid = parse_object_id(campaign_id)
        if oid is None:
            return
        self._col.update_one(
            {"_id": oid},
            {"$inc": {"redemption_count": 1}, "$set": {"updated_at": utc_now()}},
        )


class CampaignParticipantRepository(CampaignParticipantRepositoryInterface):
    """campaign_participants 컬렉션에 대한 MongoDB 접근 레이어."""

    def __init__(self, database: Database) -> None:
        self._db = database
        self._col = database["campaign_participants"]

    def record(self, campaign_id: str, user_id: str, coins: int) -> CampaignParticipant:
        now = utc_now()
        doc = self._col.find_one_and_update(
            {"campaign_id": campaign_id, "user_id": user_id},
            {
                "$inc": {"coins_received": coins, "distribution_count": 1},
                "$set": {"updated_at": now},
                "$setOnInsert": {"created_at": now},
            },
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )
        return CampaignParticipantDocument.model_validate(doc).to_domain()

    def list_by_campaign(self, campaign_id: str) -> list[CampaignParticipant]:
        cursor = self._col.find(
            {"campaign_id": campaign_id},
            sort=[("created_at", 1), ("_id", 1)],
        )
        return [
            CampaignParticipantDocument.model_validate(doc).to_domain()
            for doc in cursor
        ]
