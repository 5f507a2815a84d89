# src/goaltracker_ui/location.py

import logging
from typing import Callable, List

from .events import Subscription

logger = logging.getLogger(__name__)


def normalize_hash(value: str) -> str:
    if not value:
        return ""
    return value if value.startswith("#") else f"#{value}"


class Location:
    """
    The browser's URL fragment and its "hashchange" event.
    Assigning the value it already holds fires nothing, as in a browser.
    """

    def __init__(self, hash: str = ""):
        self._hash = normalize_hash(hash)
        self._listeners: List[Callable[[str], None]] = []

    @property
    def hash(self) -> str:
        return self._hash

    def assign(self, value: str) -> bool:
        new_hash = normalize_hash(value)
        if new_hash == self._hash:
            return False
        old_hash, self._hash = self._hash, new_hash
        logger.debug("hashchange %s -> %s", old_hash or "<empty>", new_hash)
        for listener in list(self._listeners):
            listener(new_hash)
        return True

    def add_listener(self, listener: Callable[[str], None]) -> Subscription:
        self._listeners.append(listener)

        def release():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return Subscription(release)

    @property
    def listener_count(self) -> int:
        return len(self._listeners)
