"""Backend for git-hosted plugins that expose ``bin/*`` lifecycle scripts."""

from __future__ import annotations

import logging
import os
import subprocess
from functools import cached_property
from pathlib import Path
from typing import Mapping

from tvm_core.cache import CacheManager
from tvm_core.errors import HookError, InvalidIdentifier, PluginNotInstalled
from tvm_core.files import remove_tree
from tvm_core.git import Git
from tvm_core.identity import PluginIdentity
from tvm_core.install_context import InstallContext, ToolVersion
from tvm_core.lifecycle import PluginLifecycle
from tvm_core.lock import plugin_lock
from tvm_core.paths import TvmDirs
from tvm_core.progress import ProgressReport
from tvm_core.settings import Settings
from tvm_core.shorthands import ShorthandRegistry, load_shorthands

from .base import Backend, BackendType, plugin_dir_name

logger = logging.getLogger(__name__)

# variables a bare ``bash -c`` sets on its own
_SHELL_NOISE = frozenset({"_", "PWD", "OLDPWD", "SHLVL"})


def split_url_and_ref(url: str) -> tuple[str, str | None]:
    """Split ``https://host/repo#ref`` into the URL and the optional ref."""

    if "#" not in url:
        return url, None
    base, ref = url.split("#", 1)
    return base, ref or None


class GitBackend(Backend):
    """Plugin cloned from a git remote into ``<data>/plugins/<name>``."""

    backend_type = BackendType.GIT

    def __init__(
        self,
        name: str,
        *,
        settings: Settings | None = None,
        dirs: TvmDirs | None = None,
        remote: str | None = None,
        shorthands: ShorthandRegistry | None = None,
        lifecycle: PluginLifecycle | None = None,
    ) -> None:
        super().__init__(name, settings=settings, dirs=dirs, remote=remote, lifecycle=lifecycle)
        self._shorthands = shorthands
        self._plugin_path = self.dirs.plugins / plugin_dir_name(name)
        self.repo = Git(self._plugin_path, timeout=self.settings.git_timeout)
        self.cache_key = plugin_dir_name(name)
        self.remote_version_cache: CacheManager[list[str]] = CacheManager(
            self.dirs.plugin_cache_dir(self.cache_key) / "remote_versions-{KEY}.json.z",
            fresh_duration=self.settings.cache_fresh_seconds,
            fresh_files=(self._plugin_path / "bin" / "list-all",),
        )

    @property
    def plugin_path(self) -> Path:
        return self._plugin_path

    @cached_property
    def identity(self) -> PluginIdentity:
        shorthands = self._shorthands or load_shorthands(self.settings)
        return PluginIdentity.resolve(self.name, self.remote_override, shorthands)

    def is_installed(self) -> bool:
        return self.repo.exists()

    def remote_url(self) -> str | None:
        if self.remote_override or not self.is_installed():
            return self.identity.resolved_remote
        url = self.repo.get_remote_url()
        if url:
            return url
        try:
            return self.identity.resolved_remote
        except InvalidIdentifier:
            return None

    def current_abbrev_ref(self) -> str | None:
        if not self.repo.is_repo():
            return None
        return self.repo.current_abbrev_ref()

    def current_sha_short(self) -> str | None:
        if not self.repo.is_repo():
            return None
        return self.repo.current_sha_short()

    # -------------------- lifecycle steps --------------------

    def install_plugin(self, progress: ProgressReport, remote: str | None) -> None:
        url, gitref = split_url_and_ref(remote or "")
        progress.set_message(f"clone {url}")
        self.repo.clone(url)
        if gitref:
            progress.set_message(f"checkout {gitref}")
            self.repo.update(gitref)
        self._exec_hook(progress, "post-plugin-add")

    def remove_plugin(self, progress: ProgressReport) -> None:
        self._exec_hook(progress, "pre-plugin-remove")
        remove_tree(self.plugin_path, progress)

    def update_plugin(self, progress: ProgressReport, gitref: str | None) -> None:
        if self.plugin_path.is_symlink():
            logger.warning("plugin:%s is a symlink, not updating", self.name)
            return
        if not self.repo.is_repo():
            logger.warning("plugin:%s is not a git repository, not updating", self.name)
            return
        progress.set_message("updating git repo")
        pre, post = self.repo.update(gitref)
        sha = self.repo.current_sha_short()
        repo_url = self.repo.get_remote_url() or ""
        self._exec_hook(
            progress,
            "post-plugin-update",
            {"ASDF_PLUGIN_PREV_REF": pre, "ASDF_PLUGIN_POST_REF": post},
        )
        progress.finish_with_message(f"{repo_url}#{sha}")

    # -------------------- versions --------------------

    def list_remote_versions(self) -> list[str]:
        if not self.is_installed():
            raise PluginNotInstalled(self.name)
        return self.remote_version_cache.get_or_init(self.cache_key, self._fetch_remote_versions)

    def _fetch_remote_versions(self) -> list[str]:
        script = self._require_script("list-all")
        output = self._run_script(script, "list-all", self._script_env())
        return output.split()

    def install_version(self, ctx: InstallContext) -> None:
        tv = ctx.tool_version
        install = self._require_script("install")
        env = self._script_env(self._install_env(tv))
        with plugin_lock(tv.install_path, timeout=self.settings.lock_timeout):
            if tv.install_path.exists():
                if not ctx.force:
                    ctx.progress.finish_with_message(f"{self.name}@{tv.version} already installed")
                    return
                remove_tree(tv.install_path, ctx.progress)
            tv.download_path.mkdir(parents=True, exist_ok=True)
            tv.install_path.mkdir(parents=True, exist_ok=True)
            try:
                download = self.plugin_path / "bin" / "download"
                if download.is_file():
                    ctx.progress.set_message("downloading")
                    self._run_script(download, "download", env)
                ctx.progress.set_message("installing")
                self._run_script(install, "install", env)
            except BaseException:
                remove_tree(tv.install_path)
                raise
        ctx.progress.finish_with_message(f"installed {self.name}@{tv.version}")

    def export_environment(self, version: str) -> Mapping[str, str]:
        script = self.plugin_path / "bin" / "exec-env"
        if not script.is_file():
            return {}
        tv = ToolVersion.for_dirs(self.name, version, self.dirs)
        env = self._script_env(self._install_env(tv))
        command = ["bash", "-c", 'source "$1" >/dev/null && env -0', "exec-env", str(script)]
        result = self._run(command, "exec-env", env)
        exported: dict[str, str] = {}
        for item in result.split("\0"):
            key, sep, value = item.partition("=")
            if not sep or key in _SHELL_NOISE:
                continue
            if env.get(key) != value:
                exported[key] = value
        return exported

    # -------------------- scripts --------------------

    def _require_script(self, hook: str) -> Path:
        if not self.is_installed():
            raise PluginNotInstalled(self.name)
        script = self.plugin_path / "bin" / hook
        if not script.is_file():
            raise HookError(self.name, hook, f"{script} not found")
        return script

    def _exec_hook(
        self,
        progress: ProgressReport,
        hook: str,
        extra_env: Mapping[str, str] | None = None,
    ) -> None:
        script = self.plugin_path / "bin" / hook
        if not script.is_file():
            logger.debug("plugin:%s has no %s hook", self.name, hook)
            return
        progress.set_message(f"running {hook}")
        self._run_script(script, hook, self._script_env(extra_env))

    def _script_env(self, extra: Mapping[str, str] | None = None) -> dict[str, str]:
        try:
            source_url = self.remote_url() or ""
        except InvalidIdentifier:
            source_url = ""
        env = {
            **os.environ,
            "ASDF_PLUGIN_PATH": str(self.plugin_path),
            "ASDF_PLUGIN_SOURCE_URL": source_url,
        }
        env.update(extra or {})
        return env

    def _install_env(self, tv: ToolVersion) -> dict[str, str]:
        return {
            "ASDF_INSTALL_TYPE": "version",
            "ASDF_INSTALL_VERSION": tv.version,
            "ASDF_INSTALL_PATH": str(tv.install_path),
            "ASDF_DOWNLOAD_PATH": str(tv.download_path),
            "ASDF_CONCURRENCY": str(os.cpu_count() or 1),
        }

    def _run_script(self, script: Path, hook: str, env: Mapping[str, str]) -> str:
        return self._run([str(script)], hook, env)

    def _run(self, command: list[str], hook: str, env: Mapping[str, str]) -> str:
        logger.debug("plugin:%s running %s", self.name, " ".join(command))
        try:
            result = subprocess.run(
                command,
                cwd=str(self.plugin_path),
                env=dict(env),
                check=False,
                capture_output=True,
                text=True,
            )
        except OSError as exc:
            raise HookError(self.name, hook, str(exc)) from exc
        if result.returncode != 0:
            detail = (result.stderr or "").strip() or f"exit={result.returncode}"
            raise HookError(self.name, hook, detail)
        return result.stdout or ""
