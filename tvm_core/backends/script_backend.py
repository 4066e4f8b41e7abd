"""Backend for script-defined plugins run by an embedded scripting engine."""

from __future__ import annotations

import logging
from functools import cached_property
from pathlib import Path
from typing import Callable, Mapping, TypeVar
from urllib.parse import urlsplit

from tvm_core.bridge import run_sync
from tvm_core.cache import CacheManager
from tvm_core.engine import EngineDirs, PluginHandle, ScriptEngine
from tvm_core.errors import ScriptEngineError, TvmError
from tvm_core.files import remove_tree
from tvm_core.git import Git
from tvm_core.identity import resolve_remote
from tvm_core.install_context import InstallContext
from tvm_core.lifecycle import PluginLifecycle
from tvm_core.lock import plugin_lock
from tvm_core.paths import TvmDirs
from tvm_core.progress import ProgressReport
from tvm_core.settings import Settings

from .base import Backend, BackendType, plugin_dir_name

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ScriptBackend(Backend):
    """Plugin whose behaviour is defined by scripts the engine executes.

    Engine calls are asynchronous; each one is driven to completion through
    :func:`tvm_core.bridge.run_sync`.
    """

    backend_type = BackendType.SCRIPT

    def __init__(
        self,
        name: str,
        *,
        engine: ScriptEngine,
        settings: Settings | None = None,
        dirs: TvmDirs | None = None,
        remote: str | None = None,
        lifecycle: PluginLifecycle | None = None,
    ) -> None:
        super().__init__(name, settings=settings, dirs=dirs, remote=remote, lifecycle=lifecycle)
        self.engine = engine
        self.engine_dirs = EngineDirs(
            plugin_dir=self.dirs.script_plugins,
            cache_dir=self.dirs.cache_dir(),
            download_dir=self.dirs.downloads,
            install_dir=self.dirs.installs,
            temp_dir=self.dirs.temp,
        )
        self.engine.configure(self.engine_dirs)
        self.cache_key = plugin_dir_name(name)
        self.remote_version_cache: CacheManager[list[str]] = CacheManager(
            self.dirs.plugin_cache_dir(self.cache_key) / "remote_versions-{KEY}.json.z",
            fresh_duration=self.settings.cache_fresh_seconds,
        )
        self._handle: PluginHandle | None = None

    @cached_property
    def url(self) -> str:
        return resolve_remote(self.remote_override or self.name)

    @cached_property
    def plugin_path(self) -> Path:
        # the engine stores a plugin under the last segment of its URL
        path = urlsplit(self.url).path.rstrip("/")
        basename = path.rsplit("/", 1)[-1].removesuffix(".git") or self.cache_key
        return self.engine_dirs.plugin_dir / basename

    def remote_url(self) -> str | None:
        return self.url

    def is_installed(self) -> bool:
        return self.plugin_path.is_dir()

    # -------------------- lifecycle steps --------------------

    def install_plugin(self, progress: ProgressReport, remote: str | None) -> None:
        url = remote or self.url
        progress.set_message(f"install plugin from {url}")
        self._handle = self._engine_call(
            f"install plugin from {url}",
            lambda: self.engine.install_plugin_from_url(url),
        )

    def remove_plugin(self, progress: ProgressReport) -> None:
        remove_tree(self.plugin_path, progress)
        self._handle = None

    def update_plugin(self, progress: ProgressReport, gitref: str | None) -> None:
        repo = Git(self.plugin_path, timeout=self.settings.git_timeout)
        if self.plugin_path.is_symlink() or not repo.is_repo():
            logger.info("plugin:%s is not a git checkout, not updating", self.name)
            return
        progress.set_message("updating git repo")
        repo.update(gitref)
        progress.finish_with_message(f"{self.url}#{repo.current_sha_short()}")

    # -------------------- versions --------------------

    def list_remote_versions(self) -> list[str]:
        return self.remote_version_cache.get_or_init(self.cache_key, self._fetch_remote_versions)

    def _fetch_remote_versions(self) -> list[str]:
        plugin = self._plugin()
        versions = self._engine_call(
            f"list versions of {plugin.name}",
            lambda: run_sync(lambda: self.engine.list_available_versions(plugin.name)),
        )
        return [item.version for item in reversed(list(versions))]

    def install_version(self, ctx: InstallContext) -> None:
        self.settings.ensure_experimental("vfox backend")
        tv = ctx.tool_version
        plugin = self._plugin()
        with plugin_lock(tv.install_path, timeout=self.settings.lock_timeout):
            if tv.install_path.exists():
                if not ctx.force:
                    ctx.progress.finish_with_message(f"{self.name}@{tv.version} already installed")
                    return
                remove_tree(tv.install_path, ctx.progress)
            ctx.progress.set_message("installing")
            try:
                self._engine_call(
                    f"install {plugin.name}@{tv.version}",
                    lambda: run_sync(
                        lambda: self.engine.install(plugin.name, tv.version, tv.install_path)
                    ),
                )
            except BaseException:
                remove_tree(tv.install_path)
                raise
        ctx.progress.finish_with_message(f"installed {self.name}@{tv.version}")

    def export_environment(self, version: str) -> Mapping[str, str]:
        plugin_name = self._handle.name if self._handle else self.plugin_path.name
        keys = self._engine_call(
            f"read environment of {plugin_name}@{version}",
            lambda: run_sync(lambda: self.engine.env_keys(plugin_name, version)),
        )
        return {item.key: item.value for item in keys}

    # -------------------- helpers --------------------

    def _plugin(self) -> PluginHandle:
        if self._handle is None:
            self._handle = self._engine_call(
                f"install plugin from {self.url}",
                lambda: self.engine.install_plugin_from_url(self.url),
            )
        return self._handle

    def _engine_call(self, action: str, call: Callable[[], T]) -> T:
        try:
            return call()
        except TvmError:
            raise
        except Exception as exc:
            raise ScriptEngineError(f"plugin:{self.name} failed to {action}: {exc}") from exc
