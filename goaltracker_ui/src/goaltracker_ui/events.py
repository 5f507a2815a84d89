# src/goaltracker_ui/events.py

import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Type, TypeVar

logger = logging.getLogger(__name__)

E = TypeVar("E")


class Subscription:
    """
    Handle for a registered callback. Releasing it more than once is harmless,
    and it can be used as a context manager to tie the callback to a scope.
    """

    def __init__(self, release: Optional[Callable[[], None]] = None):
        self._release = release
        self.active = True

    def unsubscribe(self) -> None:
        if not self.active:
            return
        self.active = False
        release, self._release = self._release, None
        if release is not None:
            release()

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, *exc) -> None:
        self.unsubscribe()


# --- Typed events ---

@dataclass(frozen=True)
class GoalsChanged:
    source: str
    action: str  # "create" | "update" | "delete" | "progress"
    goal_id: Optional[int] = None


class EventBus:
    """Synchronous publish/subscribe keyed by event class."""

    def __init__(self):
        self._handlers: Dict[Type, List[Callable]] = {}

    def subscribe(self, event_type: Type[E], handler: Callable[[E], None]) -> Subscription:
        handlers = self._handlers.setdefault(event_type, [])
        handlers.append(handler)

        def release():
            try:
                handlers.remove(handler)
            except ValueError:
                pass

        return Subscription(release)

    def publish(self, event) -> int:
        # Copy so handlers may unsubscribe while being notified
        handlers = list(self._handlers.get(type(event), ()))
        for handler in handlers:
            try:
                handler(event)
            except Exception:
                logger.exception("Event handler %r failed for %r", handler, event)
        return len(handlers)

    def subscriber_count(self, event_type: Type) -> int:
        return len(self._handlers.get(event_type, ()))
