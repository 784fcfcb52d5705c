from __future__ import annotations

from collections import defaultdict
from collections.abc import Callable
import logging
from threading import Lock

logger = logging.getLogger(__name__)

Listener = Callable[[dict], None]

SUBSTITUTION_ACTIVATED = "substitution.activated"
SUBSTITUTION_ARCHIVED = "substitution.archived"


class NotificationHub:
    """Fan-out point for the external notification dispatcher.

    The engine only announces what happened; delivery is the listener's job.
    """

    def __init__(self) -> None:
        self._listeners: dict[str, list[Listener]] = defaultdict(list)
        self._lock = Lock()

    def subscribe(self, event: str, listener: Listener) -> Callable[[], None]:
        with self._lock:
            self._listeners[event].append(listener)

        def unsubscribe() -> None:
            with self._lock:
                listeners = self._listeners.get(event)
                if not listeners or listener not in listeners:
                    return
                listeners.remove(listener)
                if not listeners:
                    self._listeners.pop(event, None)

        return unsubscribe

    def publish(self, event: str, payload: dict) -> int:
        with self._lock:
            listeners = list(self._listeners.get(event, ()))

        delivered = 0
        for listener in listeners:
            try:
                listener({"event": event, **payload})
            except Exception:  # pragma: no cover - listener behavior
                logger.warning("Notification listener failed for %s", event, exc_info=True)
                continue
            delivered += 1
        return delivered
