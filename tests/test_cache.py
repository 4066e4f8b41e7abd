from __future__ import annotations

import os
import threading
import time
import zlib
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import pytest

from tvm_core.cache import CacheManager
from tvm_core.errors import CacheComputeError, CacheIOError

CALLERS = 12


def _manager(tmp_path: Path, **kwargs) -> CacheManager[list[str]]:
    return CacheManager(tmp_path / "cache" / "nodejs" / "remote_versions-{KEY}.json.z", **kwargs)


def test_template_requires_key_placeholder(tmp_path: Path) -> None:
    with pytest.raises(ValueError):
        CacheManager(tmp_path / "remote_versions.json.z")


def test_concurrent_callers_share_one_compute(tmp_path: Path) -> None:
    manager = _manager(tmp_path)
    calls = 0
    calls_lock = threading.Lock()
    barrier = threading.Barrier(CALLERS)

    def compute() -> list[str]:
        nonlocal calls
        with calls_lock:
            calls += 1
        time.sleep(0.2)
        return ["20.1.0", "20.2.0"]

    def call(_: int) -> list[str]:
        barrier.wait()
        return manager.get_or_init("nodejs", compute)

    with ThreadPoolExecutor(max_workers=CALLERS) as pool:
        results = list(pool.map(call, range(CALLERS)))

    assert calls == 1
    assert results == [["20.1.0", "20.2.0"]] * CALLERS


def test_failed_compute_is_not_persisted_and_retried(tmp_path: Path) -> None:
    manager = _manager(tmp_path)
    attempts: list[int] = []

    def flaky() -> list[str]:
        attempts.append(1)
        if len(attempts) == 1:
            raise RuntimeError("network down")
        return ["1.0.0"]

    with pytest.raises(CacheComputeError) as excinfo:
        manager.get_or_init("nodejs", flaky)
    assert isinstance(excinfo.value.cause, RuntimeError)
    assert not manager.path_for("nodejs").exists()

    assert manager.get_or_init("nodejs", flaky) == ["1.0.0"]
    assert len(attempts) == 2


def test_waiters_observe_the_same_failure(tmp_path: Path) -> None:
    manager = _manager(tmp_path)
    started = threading.Event()
    release = threading.Event()

    def failing() -> list[str]:
        started.set()
        release.wait(5)
        raise RuntimeError("boom")

    errors: list[BaseException] = []

    def call() -> None:
        try:
            manager.get_or_init("nodejs", failing)
        except CacheComputeError as exc:
            errors.append(exc)

    owner = threading.Thread(target=call)
    owner.start()
    assert started.wait(5)
    waiter = threading.Thread(target=call)
    waiter.start()
    time.sleep(0.1)
    release.set()
    owner.join(5)
    waiter.join(5)

    assert len(errors) == 2
    assert errors[0] is errors[1]


def test_persisted_entry_is_reused_by_new_manager(tmp_path: Path) -> None:
    _manager(tmp_path).get_or_init("nodejs", lambda: ["18.0.0", "20.0.0"])

    def unexpected() -> list[str]:
        raise AssertionError("should have been served from disk")

    assert _manager(tmp_path).get_or_init("nodejs", unexpected) == ["18.0.0", "20.0.0"]


def test_stale_entry_is_recomputed(tmp_path: Path) -> None:
    manager = _manager(tmp_path, fresh_duration=60)
    path = manager.write("nodejs", ["old"])
    past = time.time() - 3600
    os.utime(path, (past, past))

    assert manager.read("nodejs") is None
    assert _manager(tmp_path, fresh_duration=60).get_or_init("nodejs", lambda: ["new"]) == ["new"]


def test_entry_older_than_fresh_file_is_recomputed(tmp_path: Path) -> None:
    script = tmp_path / "list-all"
    script.write_text("#!/bin/sh\n", encoding="utf-8")
    manager = _manager(tmp_path, fresh_files=(script,))
    path = manager.write("nodejs", ["old"])
    past = time.time() - 3600
    os.utime(path, (past, past))

    assert manager.read("nodejs") is None


def test_corrupt_entry_is_recomputed(tmp_path: Path) -> None:
    manager = _manager(tmp_path)
    path = manager.path_for("nodejs")
    path.parent.mkdir(parents=True)
    path.write_bytes(b"not zlib at all")

    with pytest.raises(CacheIOError):
        manager.read("nodejs")
    assert manager.get_or_init("nodejs", lambda: ["fresh"]) == ["fresh"]
    assert manager.read("nodejs") == ["fresh"]


def test_malformed_payload_is_an_io_error(tmp_path: Path) -> None:
    manager = _manager(tmp_path)
    path = manager.path_for("nodejs")
    path.parent.mkdir(parents=True)
    path.write_bytes(zlib.compress(b'["no", "envelope"]'))
    with pytest.raises(CacheIOError):
        manager.read("nodejs")


def test_write_failure_still_returns_value(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    blocker = tmp_path / "cache"
    blocker.write_text("a file where the cache dir should be", encoding="utf-8")
    manager = _manager(tmp_path)

    with caplog.at_level("WARNING", logger="tvm_core.cache"):
        assert manager.get_or_init("nodejs", lambda: ["1.2.3"]) == ["1.2.3"]
    assert "failed to persist cache entry" in caplog.text


def test_clear_removes_entries(tmp_path: Path) -> None:
    manager = _manager(tmp_path)
    manager.get_or_init("a", lambda: ["1"])
    manager.get_or_init("b", lambda: ["2"])

    manager.clear("a")
    assert not manager.path_for("a").exists()
    assert manager.path_for("b").exists()

    manager.clear()
    assert not manager.path_for("b").exists()
    assert manager.get_or_init("b", lambda: ["3"]) == ["3"]
