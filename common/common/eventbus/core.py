from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(slots=True)
class Event:
    """Kafka 메시지의 메타데이터와 페이로드를 표현하는 이벤트.

    payload는 직렬화 직전 형태(dict)를 저장하고, 실제 Kafka I/O 레이어에서
    JSON 인코딩을 담당한다. retry 필드는 소비 측(메일 워커)이 재시도 횟수를
    기록하는 데 사용한다.
    """

    id: str
    payload: Any
    retry: int = 0
    last_error: str | None = None


@dataclass(frozen=True, slots=True)
class Topic:
    base: str

    def dlq(self) -> str:
        return f"{self.base}.dlq"
