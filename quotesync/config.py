from __future__ import annotations

import json
import os
import warnings
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

DEFAULT_CONFIG_PATH = Path("~/.config/quotesync/config.json").expanduser()
DEFAULT_REMOTE_URL = "https://jsonplaceholder.typicode.com/posts"
BOOT_ID_PATH = Path("/proc/sys/kernel/random/boot_id")

CONFIG_ENV_OVERRIDES = {
    "db_path": "QUOTESYNC_DB",
    "session_id": "QUOTESYNC_SESSION",
    "remote_url": "QUOTESYNC_REMOTE_URL",
    "remote_page_size": "QUOTESYNC_REMOTE_PAGE_SIZE",
    "remote_timeout_s": "QUOTESYNC_REMOTE_TIMEOUT_S",
    "sync_enabled": "QUOTESYNC_SYNC_ENABLED",
    "sync_interval_s": "QUOTESYNC_SYNC_INTERVAL_S",
    "sync_debounce_s": "QUOTESYNC_SYNC_DEBOUNCE_S",
    "sync_push_enabled": "QUOTESYNC_SYNC_PUSH_ENABLED",
    "empty_filter_fallback": "QUOTESYNC_EMPTY_FILTER_FALLBACK",
}

_INT_KEYS = {"remote_page_size", "sync_interval_s"}
_FLOAT_KEYS = {"remote_timeout_s", "sync_debounce_s"}
_BOOL_KEYS = {"sync_enabled", "sync_push_enabled", "empty_filter_fallback"}


def get_config_path(path: Path | None = None) -> Path:
    candidate = path or Path(os.getenv("QUOTESYNC_CONFIG", DEFAULT_CONFIG_PATH))
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


def default_session_id() -> str:
    """Name the session of the shell that launched this process.

    Each CLI command is a child of the same shell, so the parent pid is shared
    for as long as that shell lives. The boot id keeps a pid reused after a
    reboot from picking up values left by an earlier session.
    """

    try:
        boot_id = BOOT_ID_PATH.read_text().strip()
    except OSError:
        boot_id = ""
    prefix = boot_id[:8] if boot_id else "ppid"
    return f"{prefix}-{os.getppid()}"


@dataclass
class QuoteSyncConfig:
    db_path: str = "~/.quotesync.sqlite"
    session_id: str = field(default_factory=default_session_id)
    remote_url: str = DEFAULT_REMOTE_URL
    remote_page_size: int = 10
    remote_timeout_s: float = 5.0
    sync_enabled: bool = True
    sync_interval_s: int = 30
    sync_debounce_s: float = 1.0
    sync_push_enabled: bool = True

    # When a category filter matches nothing, pick from the whole collection
    # and drop the filter instead of showing nothing.
    empty_filter_fallback: bool = True

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _parse_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    if value.lower() in {"1", "true", "yes", "on"}:
        return True
    if value.lower() in {"0", "false", "off", "no"}:
        return False
    return default


def _parse_int(value: object, default: int, *, key: str) -> int:
    if value is None:
        return default
    try:
        return int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        warnings.warn(f"Invalid int for {key}: {value!r}", RuntimeWarning, stacklevel=2)
        return default


def _parse_float(value: object, default: float, *, key: str) -> float:
    if value is None:
        return default
    try:
        return float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        warnings.warn(f"Invalid float for {key}: {value!r}", RuntimeWarning, stacklevel=2)
        return default


def _coerce_bool(value: object, default: bool, *, key: str) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value != 0
    if isinstance(value, str):
        return _parse_bool(value, default)
    warnings.warn(f"Invalid bool for {key}: {value!r}", RuntimeWarning, stacklevel=2)
    return default


def load_config(path: Path | None = None) -> QuoteSyncConfig:
    cfg = QuoteSyncConfig()
    config_path = get_config_path(path)
    if config_path.exists():
        try:
            data = json.loads(config_path.read_text())
        except json.JSONDecodeError:
            data = {}
        if isinstance(data, dict):
            cfg = _apply_dict(cfg, data)
    cfg = _apply_dict(cfg, get_env_overrides())
    return cfg


def _apply_dict(cfg: QuoteSyncConfig, data: dict[str, Any]) -> QuoteSyncConfig:
    for key, value in data.items():
        if not hasattr(cfg, key):
            continue
        if key in _INT_KEYS:
            setattr(cfg, key, _parse_int(value, getattr(cfg, key), key=key))
            continue
        if key in _FLOAT_KEYS:
            setattr(cfg, key, _parse_float(value, getattr(cfg, key), key=key))
            continue
        if key in _BOOL_KEYS:
            setattr(cfg, key, _coerce_bool(value, getattr(cfg, key), key=key))
            continue
        if value is None:
            continue
        setattr(cfg, key, str(value))
    return cfg
