"""Progress reporting seam; the default implementation logs."""

from __future__ import annotations

import logging
from typing import Protocol

logger = logging.getLogger(__name__)


class ProgressReport(Protocol):
    def set_message(self, message: str) -> None:
        ...

    def finish_with_message(self, message: str) -> None:
        ...


class LoggingProgressReport:
    def __init__(self, prefix: str) -> None:
        self.prefix = prefix
        self.messages: list[str] = []

    def set_message(self, message: str) -> None:
        self.messages.append(message)
        logger.info("%s %s", self.prefix, message)

    def finish_with_message(self, message: str) -> None:
        self.messages.append(message)
        logger.info("%s %s", self.prefix, message)
