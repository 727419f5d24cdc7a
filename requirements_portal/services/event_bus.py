"""
In-page event bus for the requirements form.

Other page logic can listen for form events without the engine knowing
about it. Events look like:
    { "event": "requirements:remove-click", "id": "tmpl-2", "ts": "..." }
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable

logger = logging.getLogger(__name__)

REMOVE_CLICK = "requirements:remove-click"

Listener = Callable[[dict[str, Any]], None]


class FormEvents:
    """Listener registry plus a short history per event name."""

    def __init__(self, history_limit: int = 50) -> None:
        self._listeners: dict[str, list[Listener]] = {}
        self._history: dict[str, list[dict[str, Any]]] = {}
        self._history_limit = history_limit

    def subscribe(self, event: str, listener: Listener) -> Callable[[], None]:
        """Register a listener; returns a function that removes it."""
        self._listeners.setdefault(event, []).append(listener)

        def unsubscribe() -> None:
            listeners = self._listeners.get(event, [])
            if listener in listeners:
                listeners.remove(listener)

        return unsubscribe

    def emit(self, event: str, payload: dict[str, Any]) -> None:
        message = {"event": event, **payload, "ts": datetime.now(timezone.utc).isoformat()}
        history = self._history.setdefault(event, [])
        history.append(message)
        del history[:-self._history_limit]

        for listener in list(self._listeners.get(event, [])):
            try:
                listener(message)
            except Exception:
                logger.exception(f"Listener for {event} failed")

    def history(self, event: str) -> list[dict[str, Any]]:
        return list(self._history.get(event, []))
