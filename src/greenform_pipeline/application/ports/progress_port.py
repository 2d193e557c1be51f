from typing import Any, Protocol


class ProgressPort(Protocol):
    def notify(self, event: str, payload: dict[str, Any]) -> None: ...
