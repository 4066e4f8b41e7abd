"""Decide whether a plugin may be installed without explicit confirmation.

A name that is not a curated shorthand is "bring your own source" and trusted
by construction. A name that *is* a curated shorthand is trusted only when its
remote lives in the first-party namespace or the name is explicitly
whitelisted. A curated community remote still warns, and a foreign remote
squatting on a well-known short name never passes.
"""

from __future__ import annotations

from dataclasses import dataclass
from urllib.parse import urlsplit

from .shorthands import ShorthandRegistry

INVALID_REMOTE = "INVALID_URL"


@dataclass(frozen=True)
class TrustDecision:
    is_trusted: bool
    normalized_remote: str


def normalize_remote(remote: str) -> str | None:
    """Return ``host + path`` without trailing slashes or ``.git``; ``None`` if unparseable."""

    try:
        parsed = urlsplit(remote.strip())
        host = (parsed.hostname or "").lower()
    except ValueError:
        return None
    if not parsed.scheme or not host:
        return None
    path = parsed.path.rstrip("/")
    if path.endswith(".git"):
        path = path[: -len(".git")]
    return f"{host}{path.rstrip('/')}"


def evaluate_trust(name: str, remote: str, registry: ShorthandRegistry) -> TrustDecision:
    normalized = normalize_remote(remote) or INVALID_REMOTE
    is_org_owned = normalized.startswith(f"github.com/{registry.trusted_org}/")
    trusted = name not in registry or is_org_owned or registry.is_whitelisted(name)
    return TrustDecision(is_trusted=trusted, normalized_remote=normalized)


def is_trusted_plugin(name: str, remote: str, registry: ShorthandRegistry) -> bool:
    return evaluate_trust(name, remote, registry).is_trusted
