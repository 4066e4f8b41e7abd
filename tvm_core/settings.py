"""Layered settings for the plugin core.

Values resolve in order: explicit overrides, environment, the ``[settings]``
table of the user ``config.toml``, then defaults.
"""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Mapping

from .errors import ConfigError, ExperimentalFeatureRequired
from .paths import TvmDirs

_ENV_KEY_MAP: dict[str, str] = {
    "yes": "TVM_YES",
    "paranoid": "TVM_PARANOID",
    "experimental": "TVM_EXPERIMENTAL",
    "disable_tools": "TVM_DISABLE_TOOLS",
    "trusted_plugins": "TVM_TRUSTED_PLUGINS",
    "shorthands_file": "TVM_SHORTHANDS_FILE",
    "disable_default_shorthands": "TVM_DISABLE_DEFAULT_SHORTHANDS",
    "script_engine": "TVM_SCRIPT_ENGINE",
    "git_timeout": "TVM_GIT_TIMEOUT",
    "lock_timeout": "TVM_LOCK_TIMEOUT",
    "cache_fresh_seconds": "TVM_CACHE_FRESH_SECONDS",
}
_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off", ""}


@dataclass(frozen=True)
class Settings:
    yes: bool = False
    paranoid: bool = False
    experimental: bool = False
    disable_tools: frozenset[str] = field(default_factory=frozenset)
    trusted_plugins: frozenset[str] = field(default_factory=frozenset)
    shorthands_file: Path | None = None
    disable_default_shorthands: bool = False
    script_engine: str | None = None
    git_timeout: float = 120.0
    lock_timeout: float = 600.0
    cache_fresh_seconds: float | None = 86400.0

    def ensure_experimental(self, feature: str) -> None:
        if not self.experimental:
            raise ExperimentalFeatureRequired(feature)

    def with_overrides(self, **overrides: Any) -> "Settings":
        values = {key: value for key, value in overrides.items() if value is not None}
        return replace(self, **{key: _coerce(key, value) for key, value in values.items()})


def load_settings(
    *,
    dirs: TvmDirs | None = None,
    env: Mapping[str, str] | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> Settings:
    """Resolve settings from overrides, environment, config file and defaults."""

    dirs = dirs or TvmDirs()
    env = os.environ if env is None else env
    values: dict[str, Any] = {}
    values.update(_file_layer(dirs.config_file))
    for key, env_key in _ENV_KEY_MAP.items():
        raw = env.get(env_key)
        if raw is not None:
            values[key] = raw
    for key, value in (overrides or {}).items():
        if value is not None:
            values[key] = value

    known = {item.name for item in fields(Settings)}
    coerced = {key: _coerce(key, value) for key, value in values.items() if key in known}
    return Settings(**coerced)


def _file_layer(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    try:
        with path.open("rb") as handle:
            document = tomllib.load(handle)
    except (OSError, tomllib.TOMLDecodeError) as exc:
        raise ConfigError(f"unable to read settings at {path}: {exc}") from exc
    section = document.get("settings", {})
    if not isinstance(section, dict):
        raise ConfigError(f"[settings] in {path} must be a table")
    return dict(section)


def _coerce(key: str, value: Any) -> Any:
    if key in {"yes", "paranoid", "experimental", "disable_default_shorthands"}:
        return _as_bool(key, value)
    if key in {"disable_tools", "trusted_plugins"}:
        return _as_name_set(value)
    if key == "shorthands_file":
        return Path(str(value)).expanduser() if str(value).strip() else None
    if key == "script_engine":
        text = str(value).strip()
        return text or None
    if key in {"git_timeout", "lock_timeout"}:
        return _as_float(key, value)
    if key == "cache_fresh_seconds":
        if value is None or str(value).strip().lower() in {"", "none", "never"}:
            return None
        return _as_float(key, value)
    return value


def _as_bool(key: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise ConfigError(f"setting {key} expects a boolean, got {value!r}")


def _as_float(key: str, value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"setting {key} expects a number, got {value!r}") from exc


def _as_name_set(value: Any) -> frozenset[str]:
    if isinstance(value, str):
        items = value.replace(";", ",").split(",")
    else:
        items = [str(item) for item in value]
    return frozenset(item.strip() for item in items if item.strip())
