"""
Notifier — where transient user-facing messages go.

The import pipeline only knows the Notifier interface. The CLI prints;
tests collect messages in a list.
"""

import logging
from typing import List

logger = logging.getLogger('Notifier')


class Notifier:
    """Default sink: messages are logged."""

    def notify(self, message: str) -> None:
        logger.info(message)

    def error(self, message: str) -> None:
        logger.error(message)


class ConsoleNotifier(Notifier):
    """Prints messages for the command-line front end (and logs them)."""

    def notify(self, message: str) -> None:
        super().notify(message)
        print(message)

    def error(self, message: str) -> None:
        super().error(message)
        print(f"❌ {message}")


class CollectingNotifier(Notifier):
    """Keeps every message in memory."""

    def __init__(self):
        self.messages: List[str] = []
        self.errors: List[str] = []

    def notify(self, message: str) -> None:
        self.messages.append(message)

    def error(self, message: str) -> None:
        self.errors.append(message)
