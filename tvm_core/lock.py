"""Advisory cross-process lock guarding a plugin directory."""

from __future__ import annotations

import logging
import os
import time
from contextlib import contextmanager
from pathlib import Path
from typing import IO, Iterator

from .errors import LockTimeoutError

logger = logging.getLogger(__name__)

_POLL_SECONDS = 0.1


def lock_path_for(plugin_path: Path) -> Path:
    """The lock file sits beside the plugin directory, which clone and removal replace."""

    return plugin_path.with_name(f".{plugin_path.name}.lock")


def _try_lock(handle: IO[str]) -> bool:
    if os.name == "nt":
        import msvcrt

        try:
            msvcrt.locking(handle.fileno(), msvcrt.LK_NBLCK, 1)  # type: ignore[attr-defined]
        except OSError:
            return False
        return True
    import fcntl

    try:
        fcntl.flock(handle.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
    except OSError:
        return False
    return True


def _unlock(handle: IO[str]) -> None:
    if os.name == "nt":
        import msvcrt

        try:
            handle.seek(0)
            msvcrt.locking(handle.fileno(), msvcrt.LK_UNLCK, 1)  # type: ignore[attr-defined]
        except OSError:
            return
        return
    import fcntl

    try:
        fcntl.flock(handle.fileno(), fcntl.LOCK_UN)
    except OSError:
        return


@contextmanager
def plugin_lock(plugin_path: Path, *, timeout: float | None = None) -> Iterator[Path]:
    """Hold an exclusive lock for ``plugin_path`` until the block exits."""

    path = lock_path_for(plugin_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    handle = path.open("a+", encoding="utf-8")
    try:
        deadline = None if timeout is None else time.monotonic() + timeout
        waiting = False
        while not _try_lock(handle):
            if not waiting:
                logger.info("waiting for lock on %s", plugin_path)
                waiting = True
            if deadline is not None and time.monotonic() >= deadline:
                raise LockTimeoutError(f"timed out after {timeout:.1f}s waiting for lock {path}")
            time.sleep(_POLL_SECONDS)
        logger.debug("acquired lock %s", path)
        try:
            yield path
        finally:
            _unlock(handle)
            logger.debug("released lock %s", path)
    finally:
        handle.close()
