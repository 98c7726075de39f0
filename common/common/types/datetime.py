from __future__ import annotations

from datetime import datetime, timezone
from typing import Annotated

from pydantic.functional_serializers import PlainSerializer


def utc_now() -> datetime:
    """현재 시각을 tz-aware UTC datetime 으로 반환한다."""
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """naive 값은 UTC 로 간주하고, aware 값은 UTC 로 변환한다.

    만료/기간 비교는 모두 이 함수를 거친 값끼리 한다.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def serialize_datetime_to_utc_iso8601(value: datetime) -> str:
    return as_utc(value).isoformat()


# API 응답과 알림 이벤트에서 쓰는 UTC ISO8601 직렬화 타입
UtcDateTime = Annotated[
    datetime,
    PlainSerializer(
        serialize_datetime_to_utc_iso8601,
        return_type=str,
        when_used="json",
    ),
]
