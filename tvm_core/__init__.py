"""Plugin provisioning core for the tvm tool version manager."""

from .app import TvmApp
from .backends import Backend, BackendState, BackendType, GitBackend, ScriptBackend
from .cache import CacheManager
from .identity import PluginIdentity, resolve_remote
from .paths import TvmDirs
from .settings import Settings, load_settings
from .shorthands import ShorthandRegistry
from .trust import TrustDecision, evaluate_trust, is_trusted_plugin, normalize_remote

__all__ = [
    "TvmApp",
    "Backend",
    "BackendState",
    "BackendType",
    "GitBackend",
    "ScriptBackend",
    "CacheManager",
    "PluginIdentity",
    "resolve_remote",
    "TvmDirs",
    "Settings",
    "load_settings",
    "ShorthandRegistry",
    "TrustDecision",
    "evaluate_trust",
    "is_trusted_plugin",
    "normalize_remote",
]
