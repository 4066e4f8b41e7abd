"""Platform-independent helpers for tvm directories."""

from __future__ import annotations

import tempfile
from dataclasses import dataclass
from pathlib import Path

from platformdirs import user_cache_dir, user_config_dir, user_data_dir

_DEFAULT_APP_NAME = "tvm"
CONFIG_FILE_NAME = "config.toml"


@dataclass(frozen=True)
class TvmDirs:
    """Expose the platform-configured locations for plugins, installs and caches."""

    app_name: str = _DEFAULT_APP_NAME
    config_dir_override: Path | None = None
    cache_dir_override: Path | None = None
    data_dir_override: Path | None = None

    def config_dir(self) -> Path:
        return (
            self.config_dir_override
            if self.config_dir_override
            else Path(user_config_dir(self.app_name, appauthor=False))
        )

    def cache_dir(self) -> Path:
        return (
            self.cache_dir_override
            if self.cache_dir_override
            else Path(user_cache_dir(self.app_name, appauthor=False))
        )

    def data_dir(self) -> Path:
        return (
            self.data_dir_override
            if self.data_dir_override
            else Path(user_data_dir(self.app_name, appauthor=False))
        )

    @property
    def config_file(self) -> Path:
        return self.config_dir() / CONFIG_FILE_NAME

    @property
    def plugins(self) -> Path:
        return self.data_dir() / "plugins"

    @property
    def script_plugins(self) -> Path:
        return self.data_dir() / "script-plugins"

    @property
    def installs(self) -> Path:
        return self.data_dir() / "installs"

    @property
    def downloads(self) -> Path:
        return self.data_dir() / "downloads"

    @property
    def temp(self) -> Path:
        return Path(tempfile.gettempdir()) / f"{self.app_name}-vfox"

    def plugin_cache_dir(self, plugin_name: str) -> Path:
        return self.cache_dir() / plugin_name
