"""Scripting-engine collaborator interface and entrypoint loading."""

from __future__ import annotations

import importlib
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Awaitable, Protocol, Sequence, runtime_checkable

from .errors import ScriptEngineError


@dataclass(frozen=True)
class PluginHandle:
    name: str


@dataclass(frozen=True)
class AvailableVersion:
    version: str
    note: str | None = None


@dataclass(frozen=True)
class EnvKey:
    key: str
    value: str


@dataclass(frozen=True)
class EngineDirs:
    plugin_dir: Path
    cache_dir: Path
    download_dir: Path
    install_dir: Path
    temp_dir: Path


@runtime_checkable
class ScriptEngine(Protocol):
    """Operations the core needs from a script-defined plugin runtime."""

    def configure(self, dirs: EngineDirs) -> None:
        ...

    def install_plugin_from_url(self, url: str) -> PluginHandle:
        ...

    def list_available_versions(self, plugin_name: str) -> Awaitable[Sequence[AvailableVersion]]:
        ...

    def install(self, plugin_name: str, version: str, install_path: Path) -> Awaitable[None]:
        ...

    def env_keys(self, plugin_name: str, version: str) -> Awaitable[Sequence[EnvKey]]:
        ...


def load_engine(entrypoint: str) -> ScriptEngine:
    """Instantiate the engine class referenced by ``module:attribute``."""

    module_path, attribute = _split_entrypoint(entrypoint)
    try:
        module = importlib.import_module(module_path)
    except ImportError as exc:
        raise ScriptEngineError(f"unable to import script engine module {module_path}") from exc
    try:
        target: Any = getattr(module, attribute)
    except AttributeError as exc:
        raise ScriptEngineError(f"module {module_path} does not expose {attribute}") from exc
    engine = target() if isinstance(target, type) else target
    if not isinstance(engine, ScriptEngine):
        raise ScriptEngineError(f"{entrypoint} does not implement the script engine interface")
    return engine


def _split_entrypoint(entrypoint: str) -> tuple[str, str]:
    if ":" in entrypoint:
        module_path, attribute = entrypoint.split(":", 1)
    elif "." in entrypoint:
        module_path, attribute = entrypoint.rsplit(".", 1)
    else:
        raise ScriptEngineError(f"script engine entrypoint {entrypoint!r} is not a module path")
    if not module_path or not attribute:
        raise ScriptEngineError(f"script engine entrypoint {entrypoint!r} is incomplete")
    return module_path, attribute
