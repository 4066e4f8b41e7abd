"""Per-version install request passed to backends."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from .paths import TvmDirs
from .progress import LoggingProgressReport, ProgressReport


@dataclass(frozen=True)
class ToolVersion:
    plugin_name: str
    version: str
    install_path: Path
    download_path: Path

    @classmethod
    def for_dirs(cls, plugin_name: str, version: str, dirs: TvmDirs) -> "ToolVersion":
        dir_name = plugin_name.replace("/", "-")
        return cls(
            plugin_name=plugin_name,
            version=version,
            install_path=dirs.installs / dir_name / version,
            download_path=dirs.downloads / dir_name / version,
        )


@dataclass(frozen=True)
class InstallContext:
    tool_version: ToolVersion
    force: bool = False
    progress: ProgressReport = field(default_factory=lambda: LoggingProgressReport("install"))


def parse_tool_spec(spec: str) -> tuple[str, str]:
    """Split ``name@version``; the version is required."""

    if "@" not in spec:
        raise ValueError(f"expected name@version, got {spec!r}")
    name, version = spec.split("@", 1)
    name, version = name.strip(), version.strip()
    if not name or not version:
        raise ValueError(f"expected name@version, got {spec!r}")
    return name, version
