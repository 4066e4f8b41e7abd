"""Turn user-supplied plugin identifiers into canonical source URLs."""

from __future__ import annotations

import re
from dataclasses import dataclass
from urllib.parse import urlsplit

from .errors import InvalidIdentifier
from .shorthands import ShorthandRegistry

_OWNER_REPO_RE = re.compile(r"^([^/]+)/([^/]+)$")


def resolve_remote(identifier: str) -> str:
    """Expand ``owner/repo`` to a GitHub URL, otherwise validate ``identifier`` as a URL."""

    match = _OWNER_REPO_RE.match(identifier)
    if match:
        owner, repo = match.groups()
        return f"https://github.com/{owner}/{repo}"
    try:
        parsed = urlsplit(identifier)
        # accessing the port validates it
        parsed.port
    except ValueError as exc:
        raise InvalidIdentifier(identifier, str(exc)) from exc
    if not parsed.scheme:
        raise InvalidIdentifier(identifier, "relative URL without a base")
    if not parsed.netloc and not (parsed.scheme == "file" and parsed.path):
        raise InvalidIdentifier(identifier, "empty host")
    return identifier


@dataclass(frozen=True)
class PluginIdentity:
    name: str
    resolved_remote: str
    explicit: bool = False

    @classmethod
    def resolve(
        cls,
        name: str,
        remote_override: str | None = None,
        shorthands: ShorthandRegistry | None = None,
    ) -> "PluginIdentity":
        if remote_override:
            return cls(name=name, resolved_remote=resolve_remote(remote_override), explicit=True)
        registry = shorthands or ShorthandRegistry()
        canonical = registry.get(name)
        if canonical is not None:
            return cls(name=name, resolved_remote=canonical)
        return cls(name=name, resolved_remote=resolve_remote(name))
