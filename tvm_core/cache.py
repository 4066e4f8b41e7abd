"""Key-addressed on-disk cache for remote version lists.

Concurrent ``get_or_init`` calls for the same key coalesce into a single
computation; calls on different keys run independently.
"""

from __future__ import annotations

import json
import logging
import os
import threading
import time
import zlib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Generic, Sequence, TypeVar

from .errors import CacheComputeError, CacheIOError

logger = logging.getLogger(__name__)

T = TypeVar("T")

KEY_PLACEHOLDER = "{KEY}"
DEFAULT_KEY = "default"


@dataclass
class _Pending:
    done: threading.Event = field(default_factory=threading.Event)
    value: Any = None
    error: BaseException | None = None


class CacheManager(Generic[T]):
    """Persist computed values as zlib-compressed JSON at ``path_template``.

    ``path_template`` must contain ``{KEY}``. Entries older than
    ``fresh_duration`` seconds, or older than any of ``fresh_files``, are
    recomputed.
    """

    def __init__(
        self,
        path_template: Path | str,
        *,
        fresh_duration: float | None = None,
        fresh_files: Sequence[Path] = (),
    ) -> None:
        template = str(path_template)
        if KEY_PLACEHOLDER not in template:
            raise ValueError(f"cache path template must contain {KEY_PLACEHOLDER}: {template}")
        self.path_template = template
        self.fresh_duration = fresh_duration
        self.fresh_files = tuple(fresh_files)
        self._guard = threading.Lock()
        self._memo: dict[str, T] = {}
        self._inflight: dict[str, _Pending] = {}

    def path_for(self, key: str) -> Path:
        return Path(self.path_template.replace(KEY_PLACEHOLDER, key))

    def get_or_init(self, key: str, compute: Callable[[], T]) -> T:
        """Return the cached value for ``key``, computing it at most once concurrently.

        Callers must not mutate the returned value.
        """

        with self._guard:
            if key in self._memo:
                return self._memo[key]
            pending = self._inflight.get(key)
            owner = pending is None
            if pending is None:
                pending = _Pending()
                self._inflight[key] = pending

        if not owner:
            pending.done.wait()
            if pending.error is not None:
                raise pending.error
            return pending.value

        try:
            value = self._load_or_compute(key, compute)
        except BaseException as exc:
            pending.error = exc
            raise
        else:
            pending.value = value
            with self._guard:
                self._memo[key] = value
            return value
        finally:
            with self._guard:
                self._inflight.pop(key, None)
            pending.done.set()

    def read(self, key: str) -> T | None:
        """Return the persisted value for ``key`` if fresh, ``None`` when missing or stale."""

        path = self.path_for(key)
        if not self._is_fresh(path):
            return None
        try:
            payload = json.loads(zlib.decompress(path.read_bytes()).decode("utf-8"))
        except (OSError, zlib.error, UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise CacheIOError(path, f"unreadable entry: {exc}") from exc
        if not isinstance(payload, dict) or "value" not in payload:
            raise CacheIOError(path, "malformed entry")
        return payload["value"]

    def write(self, key: str, value: T) -> Path:
        path = self.path_for(key)
        payload = {"key": key, "written_at": time.time(), "value": value}
        try:
            blob = zlib.compress(json.dumps(payload, ensure_ascii=False).encode("utf-8"))
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp = path.with_name(f"{path.name}.{os.getpid()}.{threading.get_ident()}.tmp")
            tmp.write_bytes(blob)
            os.replace(tmp, path)
        except (OSError, TypeError, ValueError) as exc:
            raise CacheIOError(path, f"unable to write entry: {exc}") from exc
        return path

    def clear(self, key: str | None = None) -> None:
        with self._guard:
            if key is None:
                self._memo.clear()
            else:
                self._memo.pop(key, None)
        if key is not None:
            self.path_for(key).unlink(missing_ok=True)
            return
        pattern = Path(self.path_template)
        parent = pattern.parent
        if not parent.is_dir():
            return
        for candidate in parent.glob(pattern.name.replace(KEY_PLACEHOLDER, "*")):
            candidate.unlink(missing_ok=True)

    def _load_or_compute(self, key: str, compute: Callable[[], T]) -> T:
        try:
            cached = self.read(key)
        except CacheIOError as exc:
            logger.warning("ignoring cache entry: %s", exc)
            cached = None
        if cached is not None:
            logger.debug("cache hit %s", self.path_for(key))
            return cached

        logger.debug("cache miss %s", self.path_for(key))
        try:
            value = compute()
        except Exception as exc:
            raise CacheComputeError(key, exc) from exc
        try:
            self.write(key, value)
        except CacheIOError as exc:
            logger.warning("failed to persist cache entry: %s", exc)
        return value

    def _is_fresh(self, path: Path) -> bool:
        try:
            modified = path.stat().st_mtime
        except OSError:
            return False
        if self.fresh_duration is not None and time.time() - modified > self.fresh_duration:
            return False
        for dependency in self.fresh_files:
            try:
                if dependency.stat().st_mtime > modified:
                    return False
            except OSError:
                continue
        return True
