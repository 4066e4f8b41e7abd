"""Sequence trust evaluation, locking and backend mutation for one plugin."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from enum import Enum
from typing import TYPE_CHECKING, Iterator

from .errors import InvalidIdentifier, PluginNotInstalled, RefusedUntrustedPlugin
from .files import remove_tree
from .lock import plugin_lock
from .progress import LoggingProgressReport
from .prompt import Prompter
from .settings import Settings
from .shorthands import ShorthandRegistry
from .trust import evaluate_trust

if TYPE_CHECKING:
    from .backends.base import Backend

logger = logging.getLogger(__name__)


class BackendState(Enum):
    UNINSTALLED = "uninstalled"
    INSTALLED = "installed"
    INSTALLING = "installing"
    UPDATING = "updating"
    REMOVING = "removing"


class PluginLifecycle:
    """Install/update/uninstall orchestration shared by every backend of a run."""

    def __init__(
        self,
        settings: Settings,
        trust_registry: ShorthandRegistry,
        *,
        prompter: Prompter | None = None,
    ) -> None:
        self.settings = settings
        self.trust_registry = trust_registry
        self.prompter = prompter or Prompter()

    def check_trust(self, backend: "Backend") -> None:
        """Warn about, refuse or confirm a plugin that is not trusted."""

        if self.settings.yes or backend.has_explicit_remote:
            return
        remote = backend.remote_url() or ""
        decision = evaluate_trust(backend.name, remote, self.trust_registry)
        if decision.is_trusted:
            return
        logger.warning("%s is a community-developed plugin", backend.name)
        logger.warning("url: %s", remote.removesuffix(".git"))
        if self.settings.paranoid:
            raise RefusedUntrustedPlugin(backend.name, remote)
        if not self.prompter.confirm_with_all(f"Would you like to install {backend.name}?"):
            raise PluginNotInstalled(backend.name)

    def ensure_installed(self, backend: "Backend", *, force: bool = False) -> bool:
        if not force:
            if backend.is_installed():
                return False
            self.check_trust(backend)

        progress = LoggingProgressReport(f"plugin:{backend.name}")
        with self._transition(backend, BackendState.INSTALLING):
            with plugin_lock(backend.plugin_path, timeout=self.settings.lock_timeout):
                if backend.is_installed() and not force:
                    logger.debug("plugin:%s was installed while waiting for the lock", backend.name)
                    return False
                # resolved before removal: an installed plugin reports its own origin
                remote = backend.remote_url()
                if backend.is_installed():
                    if not remote:
                        raise InvalidIdentifier(backend.name, "installed plugin has no remote to reinstall from")
                    backend.remove_plugin(progress)
                try:
                    backend.install_plugin(progress, remote)
                except BaseException:
                    self._discard_partial(backend)
                    raise
        logger.info("plugin:%s installed", backend.name)
        return True

    def uninstall(self, backend: "Backend") -> bool:
        if not backend.is_installed():
            return False

        progress = LoggingProgressReport(f"plugin:{backend.name}")
        with self._transition(backend, BackendState.REMOVING):
            with plugin_lock(backend.plugin_path, timeout=self.settings.lock_timeout):
                progress.set_message("uninstalling")
                backend.remove_plugin(progress)
        logger.info("plugin:%s uninstalled", backend.name)
        return True

    def update(self, backend: "Backend", gitref: str | None = None) -> None:
        progress = LoggingProgressReport(f"plugin:{backend.name}")
        with self._transition(backend, BackendState.UPDATING):
            with plugin_lock(backend.plugin_path, timeout=self.settings.lock_timeout):
                backend.update_plugin(progress, gitref)

    @contextmanager
    def _transition(self, backend: "Backend", state: BackendState) -> Iterator[None]:
        backend._transient_state = state
        try:
            yield
        finally:
            backend._transient_state = None

    def _discard_partial(self, backend: "Backend") -> None:
        try:
            remove_tree(backend.plugin_path)
        except Exception:
            logger.exception("plugin:%s failed to clean up partial install", backend.name)
