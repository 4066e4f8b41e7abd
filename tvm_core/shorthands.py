"""Curated shorthand registry mapping tool names to reviewed plugin remotes."""

from __future__ import annotations

import logging
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Mapping

from .errors import ConfigError
from .settings import Settings

logger = logging.getLogger(__name__)

TRUSTED_ORG = "mise-plugins"

DEFAULT_SHORTHANDS: Mapping[str, str] = MappingProxyType(
    {
        "bun": "https://github.com/cometkim/asdf-bun.git",
        "deno": "https://github.com/asdf-community/asdf-deno.git",
        "golang": "https://github.com/asdf-community/asdf-golang.git",
        "java": "https://github.com/halcyon/asdf-java.git",
        "kubectl": "https://github.com/asdf-community/asdf-kubectl.git",
        "nodejs": "https://github.com/asdf-vm/asdf-nodejs.git",
        "poetry": "https://github.com/mise-plugins/mise-poetry.git",
        "python": "https://github.com/mise-plugins/rtx-python",
        "ruby": "https://github.com/asdf-vm/asdf-ruby.git",
        "shellcheck": "https://github.com/luizm/asdf-shellcheck.git",
        "terraform": "https://github.com/asdf-community/asdf-hashicorp.git",
        "zig": "https://github.com/asdf-community/asdf-zig.git",
    }
)

TRUSTED_SHORTHANDS: frozenset[str] = frozenset({"java", "nodejs", "ruby"})


@dataclass(frozen=True)
class ShorthandRegistry:
    """Immutable snapshot of the shorthand and trusted-plugin tables."""

    entries: Mapping[str, str] = field(default_factory=lambda: DEFAULT_SHORTHANDS)
    trusted: frozenset[str] = TRUSTED_SHORTHANDS
    trusted_org: str = TRUSTED_ORG

    def get(self, name: str) -> str | None:
        return self.entries.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self.entries

    def is_whitelisted(self, name: str) -> bool:
        return name in self.trusted


def load_shorthands(settings: Settings) -> ShorthandRegistry:
    """Build the resolution registry for one run: defaults plus the user shorthands file."""

    entries: dict[str, str] = {}
    if not settings.disable_default_shorthands:
        entries.update(DEFAULT_SHORTHANDS)
    if settings.shorthands_file is not None:
        entries.update(_read_shorthands_file(settings.shorthands_file))
    return ShorthandRegistry(
        entries=MappingProxyType(entries),
        trusted=TRUSTED_SHORTHANDS | settings.trusted_plugins,
    )


def curated_shorthands(settings: Settings) -> ShorthandRegistry:
    """Registry of reviewed remotes used by the trust gate.

    User shorthand files never enter this table.
    """

    return ShorthandRegistry(
        entries=DEFAULT_SHORTHANDS,
        trusted=TRUSTED_SHORTHANDS | settings.trusted_plugins,
    )


def _read_shorthands_file(path: Path) -> dict[str, str]:
    if not path.exists():
        logger.debug("shorthands file %s does not exist, skipping", path)
        return {}
    try:
        with path.open("rb") as handle:
            document = tomllib.load(handle)
    except (OSError, tomllib.TOMLDecodeError) as exc:
        raise ConfigError(f"unable to read shorthands file {path}: {exc}") from exc
    result: dict[str, str] = {}
    for name, url in document.items():
        if not isinstance(url, str):
            logger.warning("shorthand %s in %s is not a string, skipping", name, path)
            continue
        result[name] = url
    return result
