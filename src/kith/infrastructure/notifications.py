"""ChangeNotifier implementations."""

import logging

logger = logging.getLogger(__name__)


class LoggingChangeNotifier:
    """Logs each changed aggregate id."""

    def notify(self, aggregate_id: str) -> None:
        logger.info("Aggregate changed: %s", aggregate_id)


class RecordingChangeNotifier:
    """Keeps changed aggregate ids in order of notification."""

    def __init__(self) -> None:
        self.events: list[str] = []

    def notify(self, aggregate_id: str) -> None:
        self.events.append(aggregate_id)

    def clear(self) -> None:
        self.events.clear()
