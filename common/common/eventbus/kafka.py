from __future__ import annotations

import json
import logging
import threading

from confluent_kafka import Producer

from .config import build_producer_config
from .core import Event
from .helpers import event_to_dict

logger = logging.getLogger(__name__)


class KafkaEventBus:
    """Kafka 기반 EventBus 의 발행 측 구현.

    소비(메일 발송)는 별도 워커가 담당하므로 이 서비스는 발행만 한다.
    """

    def __init__(self, config: dict[str, object]) -> None:
        self._producer = Producer(config)

    def close(self) -> None:
        self._producer.flush()

    def publish(self, topic: str, event: Event) -> None:
        """이벤트를 비동기로 발행한다.

        로컬 큐가 가득 찬 경우 등 즉시 실패하는 상황에서는 confluent_kafka 예외가
        그대로 전파된다. 브로커 전달 실패는 delivery callback 에서 로그로만 남는다.
        """
        payload = json.dumps(event_to_dict(event), ensure_ascii=False, default=str).encode(
            "utf-8"
        )

        def _delivery_callback(err, msg) -> None:  # type: ignore[no-untyped-def]
            if err is not None:
                logger.error("failed to deliver message to %s: %s", msg.topic(), err)

        self._producer.produce(
            topic=topic,
            value=payload,
            key=event.id.encode("utf-8"),
            callback=_delivery_callback,
        )
        self._producer.poll(0)


_bus: KafkaEventBus | None = None
_lock = threading.Lock()


def get_kafka_event_bus() -> KafkaEventBus:
    """프로세스 전역 KafkaEventBus 싱글톤을 반환한다."""

    global _bus

    if _bus is not None:
        return _bus

    with _lock:
        if _bus is None:
            _bus = KafkaEventBus(build_producer_config())
            logger.info("Kafka producer initialized")
    return _bus


def close_kafka_event_bus() -> None:
    """앱 종료 시 남은 메시지를 flush 하고 싱글톤을 정리한다."""

    global _bus

    with _lock:
        if _bus is not None:
            _bus.close()
            _bus = None
