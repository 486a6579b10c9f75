"""
client/notifications.py -- User-facing auth notifications.

The session manager receives a Notifier at construction; there is no
module-level "active notifier". A GUI passes its toast adapter, a CLI the
LoggingNotifier below, tests a MagicMock.
"""

from __future__ import annotations

import logging
from typing import Protocol


class Notifier(Protocol):
    def login_success(self, name: str) -> None: ...

    def logout_success(self) -> None: ...

    def action_completed(self, message: str) -> None: ...

    def action_failed(self, title: str, message: str) -> None: ...


class LoggingNotifier:
    """Notifier that writes to the barnacle.client logger."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self.logger = logger or logging.getLogger("barnacle.client")

    def login_success(self, name: str) -> None:
        self.logger.info("Welcome aboard, %s", name)

    def logout_success(self) -> None:
        self.logger.info("You have been logged out")

    def action_completed(self, message: str) -> None:
        self.logger.info("%s", message)

    def action_failed(self, title: str, message: str) -> None:
        self.logger.warning("%s: %s", title, message)
