from __future__ import annotations

from pathlib import Path

import pytest

from reward_service.app.config import (
    AppConfig,
    GrantDrainOrder,
    load_config,
    parse_config,
)


def test_parse_config_uses_defaults_for_missing_sections() -> None:
    config = parse_config({})

    assert config == AppConfig()
    assert config.ledger.enforce_grant_expiry_on_eligibility is False
    assert config.ledger.grant_drain_order == GrantDrainOrder.SOONEST_EXPIRY
    assert config.redemption.code_length == 16
    assert config.notifications.enabled is True


def test_parse_config_reads_all_sections() -> None:
    config = parse_config(
        {
            "ledger": {
                "enforce_grant_expiry_on_eligibility": "true",
                "grant_drain_order": "insertion",
            },
            "redemption": {"code_length": 20, "code_ttl_days": "7"},
            "notifications": {"enabled": False},
        }
    )

    assert config.ledger.enforce_grant_expiry_on_eligibility is True
    assert config.ledger.grant_drain_order == GrantDrainOrder.INSERTION
    assert config.redemption.code_length == 20
    assert config.redemption.code_ttl_days == 7
    assert config.notifications.enabled is False


@pytest.mark.parametrize(
    "data",
    [
        {"ledger": {"grant_drain_order": "random"}},
        {"ledger": {"enforce_grant_expiry_on_eligibility": "maybe"}},
        {"redemption": {"code_length": 0}},
        {"redemption": {"code_ttl_days": "soon"}},
    ],
)
def test_parse_config_rejects_invalid_values(data: dict) -> None:
    with pytest.raises(RuntimeError):
        parse_config(data)


def test_load_config_reads_yaml_file(tmp_path: Path) -> None:
    path = tmp_path / "config.yaml"
    path.write_text(
        "ledger:\n  grant_drain_order: insertion\nredemption:\n  code_length: 12\n",
        encoding="utf-8",
    )

    config = load_config(path)

    assert config.ledger.grant_drain_order == GrantDrainOrder.INSERTION
    assert config.redemption.code_length == 12


def test_load_config_rejects_non_mapping_file(tmp_path: Path) -> None:
    path = tmp_path / "config.yaml"
    path.write_text("- just\n- a list\n", encoding="utf-8")

    with pytest.raises(RuntimeError):
        load_config(path)


def test_explicit_config_path_must_exist(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("REWARD_CONFIG_PATH", str(tmp_path / "missing.yaml"))

    with pytest.raises(RuntimeError):
        load_config()


def test_load_config_without_file_returns_defaults(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.delenv("REWARD_CONFIG_PATH", raising=False)
    monkeypatch.chdir(tmp_path)

    assert load_config() == AppConfig()
