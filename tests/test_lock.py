from __future__ import annotations

import threading
import time
from pathlib import Path

import pytest

from tvm_core.errors import LockTimeoutError
from tvm_core.lock import lock_path_for, plugin_lock


def test_lock_file_sits_beside_plugin_dir(tmp_path: Path) -> None:
    plugin = tmp_path / "plugins" / "nodejs"
    assert lock_path_for(plugin) == tmp_path / "plugins" / ".nodejs.lock"

    with plugin_lock(plugin) as path:
        assert path.exists()
    assert not plugin.exists()


def test_lock_is_mutually_exclusive(tmp_path: Path) -> None:
    plugin = tmp_path / "plugins" / "nodejs"
    inside = 0
    max_inside = 0
    counter = threading.Lock()

    def worker() -> None:
        nonlocal inside, max_inside
        with plugin_lock(plugin, timeout=10):
            with counter:
                inside += 1
                max_inside = max(max_inside, inside)
            time.sleep(0.05)
            with counter:
                inside -= 1

    threads = [threading.Thread(target=worker) for _ in range(5)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(20)

    assert max_inside == 1


def test_lock_times_out(tmp_path: Path) -> None:
    plugin = tmp_path / "plugins" / "nodejs"
    with plugin_lock(plugin):
        errors: list[BaseException] = []

        def contender() -> None:
            try:
                with plugin_lock(plugin, timeout=0.3):
                    pass
            except LockTimeoutError as exc:
                errors.append(exc)

        thread = threading.Thread(target=contender)
        thread.start()
        thread.join(5)

    assert len(errors) == 1


def test_lock_released_when_block_raises(tmp_path: Path) -> None:
    plugin = tmp_path / "plugins" / "nodejs"
    with pytest.raises(RuntimeError):
        with plugin_lock(plugin):
            raise RuntimeError("install failed")

    with plugin_lock(plugin, timeout=1):
        pass
