from __future__ import annotations

import os
from dataclasses import dataclass, field
from enum import StrEnum
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml


DEFAULT_CONFIG_FILE_NAME = "config.yaml"
CONFIG_PATH_ENV = "REWARD_CONFIG_PATH"


class GrantDrainOrder(StrEnum):
    # 만료 임박 순 (expiry_date, granted_at, campaign_id)
    SOONEST_EXPIRY = "soonest_expiry"
    # 지급 순 (granted_at, campaign_id)
    INSERTION = "insertion"


@dataclass(slots=True)
class LedgerConfig:
    enforce_grant_expiry_on_eligibility: bool = False
    grant_drain_order: GrantDrainOrder = GrantDrainOrder.SOONEST_EXPIRY


@dataclass(slots=True)
class RedemptionConfig:
    code_length: int = 16
    code_ttl_days: int = 30


@dataclass(slots=True)
class NotificationConfig:
    enabled: bool = True


@dataclass(slots=True)
class AppConfig:
    """reward-service 비즈니스 설정 루트.

    인프라 설정(Mongo, Kafka 등)은 환경변수로, 원장 정책은 config.yaml 로 관리한다.
    """

    ledger: LedgerConfig = field(default_factory=LedgerConfig)
    redemption: RedemptionConfig = field(default_factory=RedemptionConfig)
    notifications: NotificationConfig = field(default_factory=NotificationConfig)


def _find_config_path() -> Path | None:
    """REWARD_CONFIG_PATH 또는 작업 디렉토리부터 상위로 올라가며 config.yaml 을 찾는다."""

    explicit = os.getenv(CONFIG_PATH_ENV)
    if explicit:
        path = Path(explicit)
        if not path.is_file():
            raise RuntimeError(f"{CONFIG_PATH_ENV} points to a missing file: {path}")
        return path

    current = Path.cwd()
    for directory in (current, *current.parents):
        candidate = directory / DEFAULT_CONFIG_FILE_NAME
        if candidate.is_file():
            return candidate
    return None


def _as_bool(value: Any, key: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in {"true", "false"}:
        return value.strip().lower() == "true"
    raise RuntimeError(f"invalid {key}: {value!r} (expected true/false)")


def _as_positive_int(value: Any, key: str) -> int:
    try:
        parsed = int(value)
    except (TypeError, ValueError) as exc:  # noqa: TRY003
        raise RuntimeError(f"invalid {key}: {value!r}") from exc
    if parsed <= 0:
        raise RuntimeError(f"invalid {key}: {value!r} (must be positive)")
    return parsed


def parse_config(data: dict[str, Any]) -> AppConfig:
    """YAML 에서 읽은 dict 를 AppConfig 로 변환한다. 없는 키는 기본값을 쓴다."""

    ledger_raw = data.get("ledger") or {}
    redemption_raw = data.get("redemption") or {}
    notifications_raw = data.get("notifications") or {}

    raw_order = ledger_raw.get("grant_drain_order", GrantDrainOrder.SOONEST_EXPIRY)
    try:
        drain_order = GrantDrainOrder(str(raw_order))
    except ValueError as exc:
        raise RuntimeError(
            f"invalid ledger.grant_drain_order: {raw_order!r}",
        ) from exc

    ledger = LedgerConfig(
        enforce_grant_expiry_on_eligibility=_as_bool(
            ledger_raw.get("enforce_grant_expiry_on_eligibility", False),
            "ledger.enforce_grant_expiry_on_eligibility",
        ),
        grant_drain_order=drain_order,
    )
    redemption = RedemptionConfig(
        code_length=_as_positive_int(
            redemption_raw.get("code_length", 16), "redemption.code_length"
        ),
        code_ttl_days=_as_positive_int(
            redemption_raw.get("code_ttl_days", 30), "redemption.code_ttl_days"
        ),
    )
    notifications = NotificationConfig(
        enabled=_as_bool(
            notifications_raw.get("enabled", True), "notifications.enabled"
        ),
    )
    return AppConfig(ledger=ledger, redemption=redemption, notifications=notifications)


def load_config(path: Path | None = None) -> AppConfig:
    """config.yaml 을 로드한다. 파일이 없으면 기본 설정을 반환한다."""

    path = path or _find_config_path()
    if path is None:
        return AppConfig()

    with path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise RuntimeError(f"invalid config file {path}: top-level must be a mapping")
    return parse_config(data)


@lru_cache(maxsize=1)
def get_app_config() -> AppConfig:
    """FastAPI DI 용 설정 싱글톤."""
    return load_config()
