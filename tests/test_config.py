from __future__ import annotations

import json
from pathlib import Path

import pytest

from timesheet.config import (
    CONFIG_ENV_OVERRIDES,
    DEFAULT_DESIGNERS,
    INT_CONFIG_KEYS,
    get_config_path,
    get_env_overrides,
    load_config,
    read_config_file,
    write_config_file,
)


def test_defaults_without_config_file(tmp_path: Path) -> None:
    cfg = load_config(tmp_path / "missing.json")

    assert cfg.store_base_url == "https://api.jsonbin.io/v3"
    assert cfg.retry_attempts == 2
    assert cfg.retry_delay_ms == 400
    assert cfg.debounce_ms == 400
    assert cfg.poll_interval_ms == 4000
    assert cfg.designers == DEFAULT_DESIGNERS
    assert cfg.passwords == {}
    assert cfg.remote_configured() is False


def test_config_file_then_env_overrides(tmp_path: Path, monkeypatch) -> None:
    config_path = tmp_path / "config.json"
    config_path.write_text(
        json.dumps(
            {
                "bin_id": "file-bin",
                "master_key": "file-key",
                "debounce_ms": "250",
                "designers": ["Rati", "Steven"],
                "passwords": {"Rati": "pw"},
                "unknown_key": 1,
            }
        )
    )
    monkeypatch.setenv("TIMESHEET_BIN_ID", "env-bin")
    monkeypatch.setenv("TIMESHEET_POLL_INTERVAL_MS", "1000")

    cfg = load_config(config_path)

    assert cfg.bin_id == "env-bin"
    assert cfg.master_key == "file-key"
    assert cfg.debounce_ms == 250
    assert cfg.poll_interval_ms == 1000
    assert cfg.designers == ["Rati", "Steven"]
    assert cfg.passwords == {"Rati": "pw"}
    assert cfg.remote_configured() is True


def test_invalid_int_warns_and_keeps_default(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setenv("TIMESHEET_RETRY_ATTEMPTS", "many")

    with pytest.warns(RuntimeWarning, match="retry_attempts"):
        cfg = load_config(tmp_path / "missing.json")

    assert cfg.retry_attempts == 2


def test_designers_from_env_list(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setenv("TIMESHEET_DESIGNERS", "Ana, Bo ,")

    cfg = load_config(tmp_path / "missing.json")

    assert cfg.designers == ["Ana", "Bo"]


def test_read_config_file_rejects_invalid_json(tmp_path: Path) -> None:
    config_path = tmp_path / "config.json"
    config_path.write_text("{not-json}")
    with pytest.raises(ValueError, match="invalid config json"):
        read_config_file(config_path)


def test_read_config_file_rejects_non_object(tmp_path: Path) -> None:
    config_path = tmp_path / "config.json"
    config_path.write_text("[1, 2]")
    with pytest.raises(ValueError, match="config must be an object"):
        read_config_file(config_path)


def test_write_config_file_round_trips(tmp_path: Path) -> None:
    path = write_config_file({"bin_id": "abc"}, tmp_path / "nested" / "config.json")

    assert read_config_file(path) == {"bin_id": "abc"}


def test_config_path_and_env_overrides(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setenv("TIMESHEET_CONFIG", str(tmp_path / "custom.json"))
    monkeypatch.setenv("TIMESHEET_MASTER_KEY", "k")

    assert get_config_path() == tmp_path / "custom.json"
    assert get_env_overrides()["master_key"] == "k"


def test_every_env_override_reaches_loaded_config(tmp_path: Path, monkeypatch) -> None:
    for key, env_var in CONFIG_ENV_OVERRIDES.items():
        monkeypatch.setenv(env_var, "7" if key in INT_CONFIG_KEYS else f"{key}-value")

    cfg = load_config(tmp_path / "missing.json")

    for key in CONFIG_ENV_OVERRIDES:
        if key in INT_CONFIG_KEYS:
            assert getattr(cfg, key) == 7
        elif key == "designers":
            assert cfg.designers == ["designers-value"]
        else:
            assert getattr(cfg, key) == f"{key}-value"


def test_non_string_values_in_config_file_are_coerced(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.delenv("TIMESHEET_FALLBACK_DIR")
    config_path = tmp_path / "config.json"
    config_path.write_text(json.dumps({"bin_id": 123, "master_key": None, "fallback_dir": ["x"]}))

    with pytest.warns(RuntimeWarning, match="fallback_dir"):
        cfg = load_config(config_path)

    assert cfg.bin_id == "123"
    assert cfg.master_key == ""
    assert cfg.fallback_dir == "~/.timesheet/local"
    assert cfg.remote_configured() is False
