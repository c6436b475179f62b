from __future__ import annotations

import logging
from typing import Any, Callable

ChangeCallback = Callable[[str, dict[str, Any]], None]

log = logging.getLogger("campaign_planner.events")


class ChangeNotifier:
    def __init__(self, name: str) -> None:
        self.name = name
        self._subscribers: list[ChangeCallback] = []

    def subscribe(self, callback: ChangeCallback) -> Callable[[], None]:
        if not callable(callback):
            raise TypeError(f"Change subscriber must be callable, got {type(callback).__name__}.")
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def notify(self, kind: str, summary: dict[str, Any]) -> int:
        delivered = 0
        for callback in list(self._subscribers):
            try:
                callback(kind, dict(summary))
            except Exception:
                log.exception("%s store: change subscriber %r failed on %s", self.name, callback, kind)
                continue
            delivered += 1
        return delivered
