"""Typed errors raised by the tvm plugin core."""

from __future__ import annotations

from pathlib import Path


class TvmError(RuntimeError):
    """Base tvm error."""


class ConfigError(TvmError):
    """Settings could not be loaded or are malformed."""


class InvalidIdentifier(TvmError):
    """A plugin identifier is neither ``owner/repo`` nor a URL."""

    def __init__(self, identifier: str, reason: str) -> None:
        super().__init__(f"invalid plugin identifier {identifier!r}: {reason}")
        self.identifier = identifier
        self.reason = reason


class RefusedUntrustedPlugin(TvmError):
    """Paranoid mode refused a community-developed plugin."""

    def __init__(self, name: str, remote: str) -> None:
        super().__init__(
            f"paranoid mode is enabled, refusing to install community-developed plugin {name} ({remote})"
        )
        self.name = name
        self.remote = remote


class PluginNotInstalled(TvmError):
    """The user declined to install a plugin."""

    def __init__(self, name: str) -> None:
        super().__init__(f"plugin {name} is not installed")
        self.name = name


class CacheError(TvmError):
    """Base version-cache error."""


class CacheComputeError(CacheError):
    """The value producer of a cache entry failed."""

    def __init__(self, key: str, cause: BaseException) -> None:
        super().__init__(f"failed to compute cache entry {key!r}: {cause}")
        self.key = key
        self.cause = cause


class CacheIOError(CacheError):
    """A persisted cache entry could not be read or written."""

    def __init__(self, path: Path, detail: str) -> None:
        super().__init__(f"cache file {path}: {detail}")
        self.path = path


class GitOperationError(TvmError):
    """A git command failed."""


class RemovalError(TvmError):
    """A plugin directory could not be removed."""

    def __init__(self, path: Path, cause: BaseException) -> None:
        super().__init__(f"failed to remove directory {path}: {cause}")
        self.path = path


class HookError(TvmError):
    """A plugin lifecycle hook exited with an error."""

    def __init__(self, plugin: str, hook: str, detail: str) -> None:
        super().__init__(f"plugin:{plugin} hook {hook} failed: {detail}")
        self.plugin = plugin
        self.hook = hook


class LockTimeoutError(TvmError):
    """A plugin lock could not be acquired in time."""


class ExperimentalFeatureRequired(TvmError):
    """An experimental backend was used without enabling experimental mode."""

    def __init__(self, feature: str) -> None:
        super().__init__(
            f"{feature} is experimental, enable it with TVM_EXPERIMENTAL=1 or settings.experimental"
        )
        self.feature = feature


class ScriptEngineError(TvmError):
    """The scripting engine is unavailable or failed."""
