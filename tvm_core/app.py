"""Wire settings, registries and the lifecycle together for one run."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Mapping

from tvm_core.backends import (
    Backend,
    BackendType,
    GitBackend,
    list_installed_plugins,
    make_backend,
)
from tvm_core.engine import ScriptEngine
from tvm_core.lifecycle import PluginLifecycle
from tvm_core.paths import TvmDirs
from tvm_core.prompt import Prompter
from tvm_core.settings import Settings, load_settings
from tvm_core.shorthands import ShorthandRegistry, curated_shorthands, load_shorthands


class TvmApp:
    """Entry point that glues settings, shorthand registries and backends.

    One instance per invocation: the prompter's "confirm all" answer and the
    loaded registries live as long as the app does.
    """

    def __init__(
        self,
        *,
        dirs: TvmDirs | None = None,
        settings: Settings | None = None,
        env: Mapping[str, str] | None = None,
        overrides: Mapping[str, Any] | None = None,
        prompter: Prompter | None = None,
        engine: ScriptEngine | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.logger = logger or logging.getLogger("tvm_core.app")
        self.dirs = dirs or TvmDirs()
        self.settings = settings or load_settings(dirs=self.dirs, env=env, overrides=overrides)
        self.shorthands: ShorthandRegistry = load_shorthands(self.settings)
        self.trust_registry: ShorthandRegistry = curated_shorthands(self.settings)
        self.lifecycle = PluginLifecycle(self.settings, self.trust_registry, prompter=prompter)
        self.engine = engine

    def backend(
        self,
        name: str,
        *,
        remote: str | None = None,
        backend_type: BackendType = BackendType.GIT,
    ) -> Backend:
        return make_backend(
            backend_type,
            name,
            settings=self.settings,
            dirs=self.dirs,
            remote=remote,
            lifecycle=self.lifecycle,
            shorthands=self.shorthands,
            engine=self.engine,
        )

    def installed_plugins(self) -> list[GitBackend]:
        return list_installed_plugins(self.settings, self.dirs, lifecycle=self.lifecycle)

    def status(self) -> dict[str, str]:
        return {
            "plugins_dir": str(self.dirs.plugins),
            "installs_dir": str(self.dirs.installs),
            "cache_dir": str(self.dirs.cache_dir()),
            "config_file": str(self.dirs.config_file),
            "paranoid": str(self.settings.paranoid).lower(),
            "experimental": str(self.settings.experimental).lower(),
        }


def dirs_from_env(env: Mapping[str, str]) -> TvmDirs:
    """Honour ``TVM_DATA_DIR``/``TVM_CACHE_DIR``/``TVM_CONFIG_DIR`` overrides."""

    def _path(key: str) -> Path | None:
        value = env.get(key)
        return Path(value).expanduser() if value else None

    return TvmDirs(
        config_dir_override=_path("TVM_CONFIG_DIR"),
        cache_dir_override=_path("TVM_CACHE_DIR"),
        data_dir_override=_path("TVM_DATA_DIR"),
    )
