from __future__ import annotations

import shutil
import subprocess
from pathlib import Path

import pytest

from tvm_core.errors import GitOperationError
from tvm_core.git import Git

pytestmark = pytest.mark.skipif(shutil.which("git") is None, reason="git is not installed")


def _git(cwd: Path, *args: str) -> str:
    result = subprocess.run(
        ["git", "-c", "commit.gpgsign=false", *args],
        cwd=cwd,
        check=True,
        capture_output=True,
        text=True,
    )
    return result.stdout.strip()


def _commit(repo: Path, name: str, content: str) -> str:
    (repo / name).write_text(content, encoding="utf-8")
    _git(repo, "add", name)
    _git(repo, "commit", "-q", "-m", f"update {name}")
    return _git(repo, "rev-parse", "HEAD")


@pytest.fixture
def origin(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    for key, value in {
        "GIT_AUTHOR_NAME": "tvm",
        "GIT_AUTHOR_EMAIL": "tvm@example.com",
        "GIT_COMMITTER_NAME": "tvm",
        "GIT_COMMITTER_EMAIL": "tvm@example.com",
    }.items():
        monkeypatch.setenv(key, value)
    repo = tmp_path / "origin"
    repo.mkdir()
    _git(repo, "init", "-q")
    _git(repo, "symbolic-ref", "HEAD", "refs/heads/main")
    _commit(repo, "bin-list-all", "1.0.0\n")
    return repo


def test_clone_and_inspect(origin: Path, tmp_path: Path) -> None:
    repo = Git(tmp_path / "plugins" / "demo")
    assert not repo.exists()
    assert repo.get_remote_url() is None

    repo.clone(str(origin))

    assert repo.is_repo()
    assert repo.current_abbrev_ref() == "main"
    assert repo.current_sha() == _git(origin, "rev-parse", "HEAD")
    assert repo.current_sha().startswith(repo.current_sha_short())
    assert repo.get_remote_url() == str(origin)


def test_update_returns_previous_and_new_sha(origin: Path, tmp_path: Path) -> None:
    repo = Git(tmp_path / "plugins" / "demo")
    repo.clone(str(origin))
    before = repo.current_sha()
    after = _commit(origin, "bin-list-all", "1.0.0\n2.0.0\n")

    pre, post = repo.update()

    assert (pre, post) == (before, after)
    assert (repo.dir / "bin-list-all").read_text(encoding="utf-8") == "1.0.0\n2.0.0\n"


def test_nested_directory_is_not_a_repo(origin: Path) -> None:
    nested = origin / "nested"
    nested.mkdir()
    assert Git(origin).is_repo()
    assert not Git(nested).is_repo()


def test_failed_clone_raises_with_context(tmp_path: Path) -> None:
    repo = Git(tmp_path / "plugins" / "demo")
    with pytest.raises(GitOperationError, match="clone"):
        repo.clone(str(tmp_path / "missing-origin"))
