"""Shared interface for tool backends."""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum
from pathlib import Path
from typing import ClassVar, Mapping

from tvm_core.install_context import InstallContext
from tvm_core.lifecycle import BackendState, PluginLifecycle
from tvm_core.paths import TvmDirs
from tvm_core.progress import ProgressReport
from tvm_core.settings import Settings
from tvm_core.shorthands import curated_shorthands


class BackendType(Enum):
    """The closed set of backend variants."""

    GIT = "asdf"
    SCRIPT = "vfox"


def plugin_dir_name(name: str) -> str:
    return name.replace("/", "-")


class Backend(ABC):
    """Base interface every plugin backend implements.

    Mutating operations go through the lifecycle, which owns the trust gate
    and the plugin lock. Subclasses provide the ``install_plugin``,
    ``remove_plugin`` and ``update_plugin`` hooks; the lifecycle calls them
    while the lock is held and callers should not invoke them directly.
    """

    backend_type: ClassVar[BackendType]

    def __init__(
        self,
        name: str,
        *,
        settings: Settings | None = None,
        dirs: TvmDirs | None = None,
        remote: str | None = None,
        lifecycle: PluginLifecycle | None = None,
    ) -> None:
        self._name = name
        self.settings = settings or Settings()
        self.dirs = dirs or TvmDirs()
        self.remote_override = remote
        self.lifecycle = lifecycle or PluginLifecycle(
            self.settings, curated_shorthands(self.settings)
        )
        self._transient_state: BackendState | None = None

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self._name!r})"

    @property
    def name(self) -> str:
        return self._name

    @property
    def has_explicit_remote(self) -> bool:
        return bool(self.remote_override)

    @property
    def state(self) -> BackendState:
        if self._transient_state is not None:
            return self._transient_state
        return BackendState.INSTALLED if self.is_installed() else BackendState.UNINSTALLED

    @property
    @abstractmethod
    def plugin_path(self) -> Path:
        """Directory holding the plugin on disk."""

    @abstractmethod
    def remote_url(self) -> str | None:
        """Source URL of the plugin."""

    @abstractmethod
    def is_installed(self) -> bool:
        """Whether the plugin directory is present."""

    def current_abbrev_ref(self) -> str | None:
        return None

    def current_sha_short(self) -> str | None:
        return None

    def ensure_installed(self, force: bool = False) -> bool:
        """Install the plugin unless present; returns True when an install ran."""

        return self.lifecycle.ensure_installed(self, force=force)

    def uninstall(self) -> bool:
        return self.lifecycle.uninstall(self)

    def update(self, gitref: str | None = None) -> None:
        self.lifecycle.update(self, gitref)

    @abstractmethod
    def list_remote_versions(self) -> list[str]:
        """Versions the plugin can install."""

    @abstractmethod
    def install_version(self, ctx: InstallContext) -> None:
        """Materialize ``ctx.tool_version`` into its install path."""

    @abstractmethod
    def export_environment(self, version: str) -> Mapping[str, str]:
        """Environment variables the installed version exports."""

    @abstractmethod
    def install_plugin(self, progress: ProgressReport, remote: str | None) -> None:
        """Fetch the plugin from ``remote`` into ``plugin_path``.

        ``remote`` is resolved by the lifecycle before any forced removal, so a
        reinstall keeps the source the plugin was originally fetched from.
        """

    @abstractmethod
    def remove_plugin(self, progress: ProgressReport) -> None:
        """Delete ``plugin_path`` after running any removal hook."""

    @abstractmethod
    def update_plugin(self, progress: ProgressReport, gitref: str | None) -> None:
        """Move the plugin to ``gitref``, or to the remote head when ``None``."""
