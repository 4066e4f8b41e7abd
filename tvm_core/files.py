"""Filesystem helpers shared by backends."""

from __future__ import annotations

import shutil
from pathlib import Path

from .errors import RemovalError
from .progress import ProgressReport


def remove_tree(path: Path, progress: ProgressReport | None = None) -> bool:
    """Recursively remove ``path``; returns False when it did not exist."""

    if not path.exists() and not path.is_symlink():
        return False
    if progress is not None:
        progress.set_message(f"removing {path}")
    try:
        if path.is_symlink() or path.is_file():
            path.unlink()
        else:
            shutil.rmtree(path)
    except OSError as exc:
        raise RemovalError(path, exc) from exc
    return True


def ls_dirs(path: Path) -> list[Path]:
    """Child directories of ``path`` (hidden entries skipped), sorted by name."""

    if not path.is_dir():
        return []
    return sorted(
        (child for child in path.iterdir() if child.is_dir() and not child.name.startswith(".")),
        key=lambda child: child.name,
    )
