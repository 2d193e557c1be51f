from typing import Any

from loguru import logger


class LoggingProgressAdapter:
    def notify(self, event: str, payload: dict[str, Any]) -> None:
        logger.debug(f"[{event}] {payload}")


class FanOutProgressAdapter:
    """Forwards every event to several listeners in order."""

    def __init__(self, *listeners: Any) -> None:
        self.listeners = listeners

    def notify(self, event: str, payload: dict[str, Any]) -> None:
        for listener in self.listeners:
            listener.notify(event, payload)
