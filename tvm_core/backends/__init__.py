"""Tool backends: git-hosted plugins and script-engine plugins."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

from tvm_core.engine import ScriptEngine, load_engine
from tvm_core.errors import ScriptEngineError
from tvm_core.files import ls_dirs
from tvm_core.lifecycle import BackendState, PluginLifecycle
from tvm_core.paths import TvmDirs
from tvm_core.settings import Settings
from tvm_core.shorthands import ShorthandRegistry, curated_shorthands, load_shorthands

from .base import Backend, BackendType, plugin_dir_name
from .git_backend import GitBackend, split_url_and_ref
from .script_backend import ScriptBackend

__all__ = [
    "Backend",
    "BackendState",
    "BackendType",
    "GitBackend",
    "ScriptBackend",
    "list_installed_plugins",
    "make_backend",
    "plugin_dir_name",
    "split_url_and_ref",
]


def make_backend(
    backend_type: BackendType,
    name: str,
    *,
    settings: Settings,
    dirs: TvmDirs | None = None,
    remote: str | None = None,
    lifecycle: PluginLifecycle | None = None,
    shorthands: ShorthandRegistry | None = None,
    engine: ScriptEngine | None = None,
) -> Backend:
    """Build the backend variant for ``name``."""

    dirs = dirs or TvmDirs()
    lifecycle = lifecycle or PluginLifecycle(settings, curated_shorthands(settings))
    if backend_type is BackendType.GIT:
        return GitBackend(
            name,
            settings=settings,
            dirs=dirs,
            remote=remote,
            shorthands=shorthands,
            lifecycle=lifecycle,
        )
    if engine is None:
        if not settings.script_engine:
            raise ScriptEngineError(
                "no script engine configured, set TVM_SCRIPT_ENGINE or settings.script_engine to module:Class"
            )
        engine = load_engine(settings.script_engine)
    return ScriptBackend(
        name,
        engine=engine,
        settings=settings,
        dirs=dirs,
        remote=remote,
        lifecycle=lifecycle,
    )


def list_installed_plugins(
    settings: Settings,
    dirs: TvmDirs | None = None,
    *,
    lifecycle: PluginLifecycle | None = None,
) -> list[GitBackend]:
    """One backend per directory under the plugins root, minus disabled tools.

    Order follows the directory scan.
    """

    dirs = dirs or TvmDirs()
    shorthands = load_shorthands(settings)
    lifecycle = lifecycle or PluginLifecycle(settings, curated_shorthands(settings))
    entries = ls_dirs(dirs.plugins)

    def build(path: Path) -> GitBackend:
        return GitBackend(
            path.name,
            settings=settings,
            dirs=dirs,
            shorthands=shorthands,
            lifecycle=lifecycle,
        )

    with ThreadPoolExecutor() as pool:
        plugins = list(pool.map(build, entries))
    return [plugin for plugin in plugins if plugin.name not in settings.disable_tools]
