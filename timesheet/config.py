from __future__ import annotations

import json
import os
import warnings
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

DEFAULT_CONFIG_PATH = Path("~/.config/timesheet/config.json").expanduser()

DEFAULT_DESIGNERS = [
    "Rati",
    "Steven",
    "Cristian",
    "Santiago",
    "Andrea",
    "Valentina",
    "Megui",
]

CONFIG_ENV_OVERRIDES = {
    "store_base_url": "TIMESHEET_STORE_BASE_URL",
    "bin_id": "TIMESHEET_BIN_ID",
    "master_key": "TIMESHEET_MASTER_KEY",
    "retry_attempts": "TIMESHEET_RETRY_ATTEMPTS",
    "retry_delay_ms": "TIMESHEET_RETRY_DELAY_MS",
    "request_timeout_s": "TIMESHEET_REQUEST_TIMEOUT_S",
    "debounce_ms": "TIMESHEET_DEBOUNCE_MS",
    "poll_interval_ms": "TIMESHEET_POLL_INTERVAL_MS",
    "fallback_dir": "TIMESHEET_FALLBACK_DIR",
    "log_path": "TIMESHEET_LOG",
    "designers": "TIMESHEET_DESIGNERS",
}

INT_CONFIG_KEYS = {
    "retry_attempts",
    "retry_delay_ms",
    "request_timeout_s",
    "debounce_ms",
    "poll_interval_ms",
}

_STR_KEYS = {"store_base_url", "bin_id", "master_key", "fallback_dir"}


def get_config_path(path: Path | None = None) -> Path:
    candidate = path or Path(os.getenv("TIMESHEET_CONFIG", DEFAULT_CONFIG_PATH))
    return candidate.expanduser()


def read_config_file(path: Path | None = None) -> dict[str, Any]:
    config_path = get_config_path(path)
    if not config_path.exists():
        return {}
    raw = config_path.read_text()
    if not raw.strip():
        return {}
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValueError("invalid config json") from exc
    if not isinstance(data, dict):
        raise ValueError("config must be an object")
    return data


def write_config_file(data: dict[str, Any], path: Path | None = None) -> Path:
    config_path = get_config_path(path)
    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.write_text(json.dumps(data, ensure_ascii=False, indent=2) + "\n")
    return config_path


def get_env_overrides() -> dict[str, str]:
    overrides: dict[str, str] = {}
    for key, env_var in CONFIG_ENV_OVERRIDES.items():
        value = os.getenv(env_var)
        if value is not None:
            overrides[key] = value
    return overrides


@dataclass
class TimesheetConfig:
    store_base_url: str = "https://api.jsonbin.io/v3"
    bin_id: str = ""
    master_key: str = ""
    retry_attempts: int = 2
    retry_delay_ms: int = 400
    request_timeout_s: int = 10
    debounce_ms: int = 400
    poll_interval_ms: int = 4000
    fallback_dir: str = "~/.timesheet/local"
    log_path: str | None = "~/.timesheet/timesheet.log"
    designers: list[str] = field(default_factory=lambda: list(DEFAULT_DESIGNERS))

    # Shared secrets per designer, compared verbatim at chat login.
    passwords: dict[str, str] = field(default_factory=dict)

    def remote_configured(self) -> bool:
        return bool(self.bin_id.strip() and self.master_key.strip())


def _parse_int(value: object, default: int, *, key: str) -> int:
    if value is None:
        return default
    try:
        return int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        warnings.warn(f"Invalid int for {key}: {value!r}", RuntimeWarning, stacklevel=2)
        return default


def _coerce_str_list(value: object, *, key: str) -> list[str] | None:
    if value is None:
        return None
    if isinstance(value, list):
        items: list[str] = []
        for item in value:
            if isinstance(item, str) and item.strip():
                items.append(item.strip())
        return items
    if isinstance(value, str):
        return [p.strip() for p in value.split(",") if p.strip()]
    warnings.warn(f"Invalid list for {key}: {value!r}", RuntimeWarning, stacklevel=2)
    return None


def _coerce_str_map(value: object, *, key: str) -> dict[str, str] | None:
    if not isinstance(value, dict):
        warnings.warn(f"Invalid mapping for {key}: {value!r}", RuntimeWarning, stacklevel=2)
        return None
    return {str(k): str(v) for k, v in value.items() if isinstance(v, (str, int))}


def _coerce_str(value: object, default: str, *, key: str) -> str:
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    if value is not None:
        warnings.warn(f"Invalid string for {key}: {value!r}", RuntimeWarning, stacklevel=2)
    return default


def load_config(path: Path | None = None) -> TimesheetConfig:
    cfg = TimesheetConfig()
    config_path = get_config_path(path)
    if config_path.exists():
        try:
            data = json.loads(config_path.read_text())
        except json.JSONDecodeError:
            data = {}
        if isinstance(data, dict):
            cfg = _apply_dict(cfg, data)
    cfg = _apply_env(cfg)
    return cfg


def _apply_dict(cfg: TimesheetConfig, data: dict[str, Any]) -> TimesheetConfig:
    for key, value in data.items():
        if not hasattr(cfg, key) or key.startswith("_"):
            continue
        if key in INT_CONFIG_KEYS:
            setattr(cfg, key, _parse_int(value, getattr(cfg, key), key=key))
            continue
        if key in _STR_KEYS:
            setattr(cfg, key, _coerce_str(value, getattr(cfg, key), key=key))
            continue
        if key == "log_path":
            cfg.log_path = _coerce_str(value, "", key=key) or None
            continue
        if key == "designers":
            parsed = _coerce_str_list(value, key=key)
            if parsed:
                cfg.designers = parsed
            continue
        if key == "passwords":
            mapping = _coerce_str_map(value, key=key)
            if mapping is not None:
                cfg.passwords = mapping
    return cfg


def _apply_env(cfg: TimesheetConfig) -> TimesheetConfig:
    for key, value in get_env_overrides().items():
        if key in INT_CONFIG_KEYS:
            setattr(cfg, key, _parse_int(value, getattr(cfg, key), key=key))
        elif key == "designers":
            designers = _coerce_str_list(value, key=key)
            if designers:
                cfg.designers = designers
        else:
            setattr(cfg, key, value)
    return cfg
