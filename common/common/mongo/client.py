from __future__ import annotations

import logging
import threading
from typing import Optional, cast

from pymongo import ASCENDING, DESCENDING, MongoClient
from pymongo.database import Database

from .config import get_mongo_db_name, get_mongo_timeout_ms, get_mongo_uri


logger = logging.getLogger(__name__)


_client: Optional[MongoClient] = None
_db: Optional[Database] = None
_lock = threading.Lock()


def get_client() -> MongoClient:
    """전역 MongoClient 싱글톤을 반환한다.

    - MONGO_URI 에서 URI 를 읽어온다.
    - ping 으로 연결을 검증한다.
    - MONGO_DB_NAME 도, URI 의 기본 데이터베이스도 없으면 에러를 발생시킨다.
    - 리워드 컬렉션에 필요한 인덱스를 한 번만 생성한다.
    """

    global _client, _db

    if _client is not None:
        return _client

    with _lock:
        if _client is not None:
            return _client

        uri = get_mongo_uri()
        client = MongoClient(
            uri,
            tz_aware=True,
            serverSelectionTimeoutMS=get_mongo_timeout_ms(),
        )

        try:
            client.admin.command("ping")
        except Exception as exc:  # noqa: BLE001
            client.close()
            raise RuntimeError(f"failed to connect to MongoDB: {exc}") from exc

        # 사용할 DB 이름 결정: MONGO_DB_NAME 우선, 없으면 URI의 기본 DB 사용
        db_name = get_mongo_db_name()
        try:
            if db_name:
                db = client[db_name]
            else:
                db = client.get_default_database()
        except Exception as exc:  # noqa: BLE001
            client.close()
            raise RuntimeError(
                "MongoDB database name must be specified via MONGO_DB_NAME or in MONGO_URI (mongodb://.../db_name)",
            ) from exc

        _client = client
        _db = db

        try:
            _ensure_indexes(_db)
        except Exception as exc:  # noqa: BLE001
            # 인덱스 생성 실패는 치명적 오류로 간주한다.
            logger.error("failed to ensure MongoDB indexes: %s", exc)
            raise

        safe_db = cast(Database, _db)
        logger.info("MongoDB connected and indexes ensured (db=%s)", safe_db.name)
        return _client


def get_database() -> Database:
    """전역 기본 Database 객체를 반환한다."""

    global _db

    if _db is None:
        get_client()
    assert (
        _db is not None
    )  # get_client 에서 _db 를 초기화하지 못했다면 예외가 이미 발생했어야 한다.
    return _db


def _ensure_indexes(db: Database) -> None:
    """필수 인덱스를 생성한다.

    중복 생성해도 MongoDB 가 처리하므로 idempotent 하다.
    """

    accounts = db["accounts"]

    accounts.create_index(
        [("email", ASCENDING)],
        name="uniq_email",
        unique=True,
    )

    # 회사 단위 캠페인 대상 조회
    accounts.create_index(
        [("company_name", ASCENDING), ("role", ASCENDING)],
        name="idx_company_role",
    )

    vouchers = db["vouchers"]

    vouchers.create_index(
        [("is_active", ASCENDING), ("category", ASCENDING)],
        name="idx_active_category",
    )

    campaigns = db["campaigns"]

    campaigns.create_index(
        [("company_id", ASCENDING), ("created_at", DESCENDING)],
        name="idx_company_created_at",
    )

    participants = db["campaign_participants"]

    # (campaign, user) 당 하나의 참여 레코드만 존재한다.
    participants.create_index(
        [("campaign_id", ASCENDING), ("user_id", ASCENDING)],
        name="uniq_campaign_user",
        unique=True,
    )

    codes = db["redemption_codes"]

    codes.create_index(
        [("code", ASCENDING)],
        name="uniq_code",
        unique=True,
    )

    codes.create_index(
        [("created_at", DESCENDING)],
        name="idx_created_at_desc",
    )

    transactions = db["coin_transactions"]

    transactions.create_index(
        [("from_user_id", ASCENDING), ("created_at", DESCENDING)],
        name="idx_from_user_created_at",
    )

    transactions.create_index(
        [("to_user_id", ASCENDING), ("created_at", DESCENDING)],
        name="idx_to_user_created_at",
    )

    transactions.create_index(
        [("type", ASCENDING), ("status", ASCENDING)],
        name="idx_type_status",
    )

    purchases = db["voucher_purchases"]

    purchases.create_index(
        [("employee_id", ASCENDING), ("purchased_at", DESCENDING)],
        name="idx_employee_purchased_at",
    )

    activity_logs = db["activity_logs"]

    activity_logs.create_index(
        [("created_at", DESCENDING)],
        name="idx_created_at_desc",
    )
