from __future__ import annotations

import time
from dataclasses import asdict, is_dataclass
from typing import Any, Mapping

from .core import Event


def new_json_event(
    payload: Mapping[str, Any],
    *,
    event_id: str | None = None,
) -> Event:
    """JSON 페이로드를 Event 로 감싼다.

    - event_id 가 없으면 payload 의 id 를 쓰고, 그것도 없으면 고해상도 타임스탬프를 쓴다.
    """
    if not event_id:
        event_id = str(payload.get("id") or "") or str(time.time_ns())

    return Event(id=event_id, payload=dict(payload), retry=0)


def wrap_domain_event(domain_event: Any) -> Event:
    """common.events 의 dataclass 이벤트를 발행용 Event 로 감싼다."""
    if not is_dataclass(domain_event) or isinstance(domain_event, type):
        raise TypeError(f"expected a dataclass event, got {type(domain_event).__name__}")
    return new_json_event(asdict(domain_event))


def event_to_dict(event: Event) -> dict[str, Any]:
    """Event를 JSON 직렬화 가능한 dict로 변환한다."""
    return asdict(event)
