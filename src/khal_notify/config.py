"""
khal-notify — Configuration

Defaults for every command-line option, so a cron job or a systemd timer can
run a bare ``khal-notify``.

Config sources (priority: CLI > ENV > .env > config.yaml > defaults):
1. Command-line flags (applied by __main__)
2. Environment variables
3. .env file in the working directory
4. $XDG_CONFIG_HOME/khal-notify/config.yaml
5. Hardcoded defaults
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from khal_notify.errors import ConfigurationError
from khal_notify.timetarget import parse_utc_offset

logger = logging.getLogger("khal_notify.config")

# ═══════════════════════════════════════════════════════════════════════════
# Paths
# ═══════════════════════════════════════════════════════════════════════════


def user_config_home() -> Path:
    raw = os.environ.get("XDG_CONFIG_HOME")
    return Path(raw).expanduser() if raw else Path.home() / ".config"


def default_khal_config() -> Path:
    return user_config_home() / "khal" / "config"


# ═══════════════════════════════════════════════════════════════════════════
# khal-notify Config
# ═══════════════════════════════════════════════════════════════════════════


class KhalNotifyConfig:
    """Layered settings for one run."""

    DEFAULTS: dict[str, Any] = {
        # khal query
        "KHAL_NOTIFY_KHAL_CONFIG": "",
        "KHAL_NOTIFY_KHAL_BIN": "khal",
        "KHAL_NOTIFY_DATE_FORMAT": "%Y-%m-%d",
        "KHAL_NOTIFY_TIME_FORMAT": "%H:%M",
        "KHAL_NOTIFY_UTC_OFFSET": "+9",
        "KHAL_NOTIFY_ALL_DAY": False,
        # Formatting
        "KHAL_NOTIFY_DESC_LENGTH": 200,
        "KHAL_NOTIFY_STRIP_REGEX": [],
        # Notifier
        "KHAL_NOTIFY_NOTIFIER_BIN": "notify-send",
        "KHAL_NOTIFY_LINK_ACTIONS": False,
        "KHAL_NOTIFY_DISMISSED_SENTINEL": "",
        "KHAL_NOTIFY_MAX_WORKERS": 0,
        "KHAL_NOTIFY_TIMEOUT": 0,
        # Logging
        "KHAL_NOTIFY_LOG_LEVEL": "WARNING",
    }

    def __init__(self, config_dir: Path | None = None, load_env: bool = True) -> None:
        self._config_dir = config_dir
        self._data: dict[str, Any] = dict(self.DEFAULTS)
        self._load(load_env)

    def _load(self, load_env: bool) -> None:
        """Load config from all sources."""
        # 1. Load .env file
        if load_env:
            load_dotenv()

        # 2. Load YAML config
        config_file = self.config_file
        if config_file.exists():
            try:
                with open(config_file) as f:
                    yaml_data = yaml.safe_load(f) or {}
            except (OSError, yaml.YAMLError) as e:
                raise ConfigurationError(f"Failed to load {config_file}: {e}") from e
            if not isinstance(yaml_data, dict):
                raise ConfigurationError(f"{config_file} must contain a mapping")
            unknown = set(yaml_data) - set(self.DEFAULTS)
            if unknown:
                logger.warning(f"Ignoring unknown keys in {config_file}: {', '.join(sorted(unknown))}")
            self._data.update({k: v for k, v in yaml_data.items() if k in self.DEFAULTS})

        # 3. Environment overrides (highest priority)
        for key in self.DEFAULTS:
            env_val = os.environ.get(key)
            if env_val is not None:
                self._data[key] = env_val

    # ── Properties ──

    @property
    def config_dir(self) -> Path:
        if self._config_dir is not None:
            return self._config_dir
        raw = os.environ.get("KHAL_NOTIFY_CONFIG_DIR")
        if raw:
            return Path(raw).expanduser()
        return user_config_home() / "khal-notify"

    @property
    def config_file(self) -> Path:
        return self.config_dir / "config.yaml"

    @property
    def khal_config(self) -> Path:
        raw = str(self._data["KHAL_NOTIFY_KHAL_CONFIG"] or "")
        return Path(raw).expanduser() if raw else default_khal_config()

    @property
    def khal_bin(self) -> str:
        return str(self._data["KHAL_NOTIFY_KHAL_BIN"])

    @property
    def date_format(self) -> str:
        return str(self._data["KHAL_NOTIFY_DATE_FORMAT"])

    @property
    def time_format(self) -> str:
        return str(self._data["KHAL_NOTIFY_TIME_FORMAT"])

    @property
    def utc_offset(self) -> int:
        return parse_utc_offset(self._data["KHAL_NOTIFY_UTC_OFFSET"])

    @property
    def include_all_day(self) -> bool:
        return self._bool("KHAL_NOTIFY_ALL_DAY")

    @property
    def desc_length(self) -> int:
        return self._int("KHAL_NOTIFY_DESC_LENGTH", minimum=0)

    @property
    def strip_regex(self) -> list[str]:
        """Patterns from YAML come as a list; from ENV, one per line."""
        raw = self._data["KHAL_NOTIFY_STRIP_REGEX"]
        if raw is None:
            return []
        if isinstance(raw, str):
            return [line for line in raw.splitlines() if line]
        if isinstance(raw, list):
            return [str(p) for p in raw]
        raise ConfigurationError(f"KHAL_NOTIFY_STRIP_REGEX must be a list, got {raw!r}")

    @property
    def notifier_bin(self) -> str:
        return str(self._data["KHAL_NOTIFY_NOTIFIER_BIN"])

    @property
    def link_actions(self) -> bool:
        return self._bool("KHAL_NOTIFY_LINK_ACTIONS")

    @property
    def dismissed_sentinel(self) -> str:
        return str(self._data["KHAL_NOTIFY_DISMISSED_SENTINEL"] or "")

    @property
    def max_workers(self) -> int:
        return self._int("KHAL_NOTIFY_MAX_WORKERS", minimum=0)

    @property
    def timeout(self) -> float:
        raw = self._data["KHAL_NOTIFY_TIMEOUT"]
        try:
            value = float(raw)
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"KHAL_NOTIFY_TIMEOUT is not a number: {raw!r}") from e
        if value < 0:
            raise ConfigurationError(f"KHAL_NOTIFY_TIMEOUT must not be negative: {raw!r}")
        return value

    @property
    def log_level(self) -> str:
        return str(self._data["KHAL_NOTIFY_LOG_LEVEL"]).upper()

    # ── Access ──

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value

    def _int(self, key: str, minimum: int | None = None) -> int:
        raw = self._data[key]
        if isinstance(raw, bool):
            raise ConfigurationError(f"{key} is not a number: {raw!r}")
        try:
            value = int(raw)
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"{key} is not a number: {raw!r}") from e
        if minimum is not None and value < minimum:
            raise ConfigurationError(f"{key} must be at least {minimum}, got {value}")
        return value

    def _bool(self, key: str) -> bool:
        raw = self._data[key]
        if isinstance(raw, bool):
            return raw
        return str(raw).strip().lower() in {"true", "1", "yes", "on"}

    def __repr__(self) -> str:
        return (
            f"KhalNotifyConfig(config_file={self.config_file}, "
            f"khal_config={self.khal_config}, "
            f"link_actions={'yes' if self.link_actions else 'no'})"
        )
