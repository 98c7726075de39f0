from __future__ import annotations

from .core import Topic


# 메일 워커가 구독하는 알림 토픽 (코인 지급, 코드 발급, 구매 확인)
TOPIC_NOTIFICATION = Topic("reward.notification")
