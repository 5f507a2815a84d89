# src/goaltracker_ui/router.py

import logging
from enum import Enum
from typing import Callable, List, Optional

from .events import Subscription
from .location import Location

logger = logging.getLogger(__name__)


class Route(str, Enum):
    HOME = "#/"
    TIMELINE = "#/timeline"
    PROFILE = "#/profile"
    NEW_GOAL = "#/goals/new"
    AUTH_CALLBACK = "#/auth/callback"
    ACCOUNT = "#/account"
    SUGGESTIONS = "#/suggestions"
    MARKET = "#/market"
    ADMIN = "#/admin"


DEFAULT_ROUTE = Route.HOME

_EXACT_ROUTES = {route.value: route for route in Route}


def resolve_route(fragment: Optional[str]) -> Route:
    """Map a URL fragment to a route; unknown fragments fall back to the default."""
    if not fragment or fragment == "#":
        return DEFAULT_ROUTE
    # The provider appends its own '#access_token=...' segment to the callback route
    if fragment.startswith(Route.AUTH_CALLBACK.value):
        return Route.AUTH_CALLBACK
    return _EXACT_ROUTES.get(fragment, DEFAULT_ROUTE)


class HashRouter:
    """
    Tracks the current route from the location fragment. Every hashchange is
    reflected immediately; there is no history handling beyond the location's.
    """

    def __init__(self, location: Location):
        self.location = location
        self.current = location.hash or DEFAULT_ROUTE.value
        self._listeners: List[Callable[[Route], None]] = []
        self._hash_subscription: Optional[Subscription] = None

    @property
    def route(self) -> Route:
        return resolve_route(self.current)

    @property
    def started(self) -> bool:
        return self._hash_subscription is not None and self._hash_subscription.active

    def start(self) -> None:
        if self.started:
            return
        self.current = self.location.hash or DEFAULT_ROUTE.value
        self._hash_subscription = self.location.add_listener(self._on_hash_change)

    def stop(self) -> None:
        if self._hash_subscription is not None:
            self._hash_subscription.unsubscribe()
            self._hash_subscription = None

    def __enter__(self) -> "HashRouter":
        self.start()
        return self

    def __exit__(self, *exc) -> None:
        self.stop()

    def on_change(self, listener: Callable[[Route], None]) -> Subscription:
        self._listeners.append(listener)

        def release():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return Subscription(release)

    def navigate(self, route: Route) -> None:
        self.location.assign(route.value)

    def _on_hash_change(self, new_hash: str) -> None:
        self.current = new_hash or DEFAULT_ROUTE.value
        route = self.route
        logger.debug("Route is now %s (%s)", route.name, self.current)
        for listener in list(self._listeners):
            listener(route)
