"""Thin git CLI wrapper for plugin repositories."""

from __future__ import annotations

import logging
import os
import subprocess
from pathlib import Path

from .errors import GitOperationError

logger = logging.getLogger(__name__)


class Git:
    """Run git commands against a single working tree."""

    def __init__(self, directory: Path, *, timeout: float = 120.0) -> None:
        self.dir = Path(directory)
        self.timeout = timeout

    def exists(self) -> bool:
        return self.dir.is_dir()

    def is_repo(self) -> bool:
        if not self.exists():
            return False
        try:
            result = self._run(["rev-parse", "--show-toplevel"], check=False)
        except GitOperationError:
            return False
        if result.returncode != 0:
            return False
        # rev-parse also succeeds inside an enclosing checkout
        toplevel = Path((result.stdout or "").strip())
        return toplevel.resolve() == self.dir.resolve()

    def clone(self, url: str) -> None:
        logger.debug("cloning %s into %s", url, self.dir)
        self.dir.parent.mkdir(parents=True, exist_ok=True)
        self._run(["clone", "-q", url, str(self.dir)], cwd=self.dir.parent)

    def update(self, gitref: str | None = None) -> tuple[str, str]:
        """Fetch and check out ``gitref`` (default: current branch), returning the pre/post SHAs."""

        ref = gitref or self.current_abbrev_ref()
        logger.debug("updating %s to %s", self.dir, ref)
        pre = self.current_sha()
        self._run(["fetch", "--prune", "--update-head-ok", "origin", f"{ref}:{ref}"])
        self._run(["-c", "advice.detachedHead=false", "checkout", "--force", ref])
        post = self.current_sha()
        return pre, post

    def current_abbrev_ref(self) -> str:
        return self._output(["rev-parse", "--abbrev-ref", "HEAD"])

    def current_sha(self) -> str:
        return self._output(["rev-parse", "HEAD"])

    def current_sha_short(self) -> str:
        return self._output(["rev-parse", "--short", "HEAD"])

    def get_remote_url(self) -> str | None:
        if not self.exists():
            return None
        try:
            result = self._run(["config", "--get", "remote.origin.url"], check=False)
        except GitOperationError:
            return None
        url = (result.stdout or "").strip()
        return url or None

    def _output(self, args: list[str]) -> str:
        return (self._run(args).stdout or "").strip()

    def _run(
        self,
        args: list[str],
        *,
        cwd: Path | None = None,
        check: bool = True,
    ) -> subprocess.CompletedProcess[str]:
        workdir = cwd or self.dir
        command = ["git", *args]
        env = {**os.environ, "GIT_TERMINAL_PROMPT": "0"}
        logger.debug("git command cwd=%s cmd=%s", workdir, " ".join(command))
        try:
            result = subprocess.run(
                command,
                cwd=str(workdir),
                check=False,
                capture_output=True,
                text=True,
                timeout=max(float(self.timeout), 1.0),
                env=env,
            )
        except FileNotFoundError as exc:
            raise GitOperationError(
                "git not found. Install git and ensure it is available in PATH."
            ) from exc
        except subprocess.TimeoutExpired as exc:
            raise GitOperationError(
                f"git {args[0]} timed out after {self.timeout:.1f}s in {workdir}"
            ) from exc
        if check and result.returncode != 0:
            detail = (result.stderr or "").strip()
            raise GitOperationError(
                f"git command failed (exit={result.returncode}) cmd='{' '.join(command)}' "
                f"dir='{workdir}' err='{detail}'"
            )
        return result
