# src/goaltracker_ui/goals.py

import itertools
import logging
from typing import Any, Dict, List, Optional

from .api import ApiClient, Payload
from .errors import ApiError
from .events import EventBus, GoalsChanged, Subscription
from .models import Goal
from .session_data import Session
from .session_store import SessionStore
from .timers import Debouncer

logger = logging.getLogger(__name__)

DEFAULT_DEBOUNCE_SECONDS = 0.3

_store_ids = itertools.count(1)


class GoalsStore:
    """
    In-memory list of the user's goals, kept in step with the backend.

    At most one list request is in flight per store. Mutations patch the list
    locally and broadcast GoalsChanged; other stores coalesce those signals
    into a single refetch after the debounce window. The store refetches on
    mount (when signed in) and whenever the session becomes authenticated.
    """

    def __init__(
        self,
        api: ApiClient,
        sessions: SessionStore,
        bus: EventBus,
        debounce: float = DEFAULT_DEBOUNCE_SECONDS,
        filters: Optional[Dict[str, Any]] = None,
    ):
        self._api = api
        self._sessions = sessions
        self._bus = bus
        self.filters = dict(filters or {})
        self.id = f"goals-{next(_store_ids)}"

        self.goals: List[Goal] = []
        self.loading = False
        self.error: Optional[str] = None
        # False until a list request has completed, so an empty list is not shown as "no goals"
        self.initialized = False

        self._in_flight = False
        self._authenticated = False
        self._mounted = False
        self._closed = False
        self._refetch = Debouncer(debounce, self.fetch)
        self._subscriptions: List[Subscription] = []

    # --- Lifecycle ---

    async def mount(self) -> None:
        if self._mounted:
            return
        self._mounted = True
        self._authenticated = self._sessions.session is not None
        self._subscriptions.append(self._bus.subscribe(GoalsChanged, self._on_goals_changed))
        self._subscriptions.append(self._sessions.subscribe(self._on_session_change))
        token = await self._sessions.current_token()
        self._authenticated = token is not None
        # Reading the token may have refreshed the session, which already fetched
        if self._authenticated and not self.initialized:
            await self.fetch()

    def close(self) -> None:
        self._closed = True
        self._refetch.cancel()
        for subscription in self._subscriptions:
            subscription.unsubscribe()
        self._subscriptions.clear()

    async def __aenter__(self) -> "GoalsStore":
        await self.mount()
        return self

    async def __aexit__(self, *exc) -> None:
        self.close()

    @property
    def refetch_pending(self) -> bool:
        return self._refetch.pending

    # --- Reading ---

    async def fetch(self) -> None:
        if self._in_flight or self._closed:
            return
        self._in_flight = True
        try:
            token = await self._sessions.current_token()
            if not token:
                logger.debug("%s: not signed in, skipping goals fetch", self.id)
                return

            self.loading = True
            try:
                goals = await self._api.list_goals(self.filters)
            except ApiError as e:
                logger.error("%s: error fetching goals: %s", self.id, e)
                if not self._closed:
                    self.error = "Failed to fetch goals"
                    self.initialized = True
                return

            if self._closed:
                logger.debug("%s: closed while fetching, dropping result", self.id)
                return
            self.goals = goals
            self.error = None
            self.initialized = True
        finally:
            self._in_flight = False
            self.loading = False

    refetch = fetch

    # --- Mutations ---

    async def create(self, goal_data: Payload) -> Goal:
        try:
            goal = await self._api.create_goal(goal_data)
        except ApiError:
            self.error = "Failed to create goal"
            raise
        self.goals = [*self.goals, goal]
        self._broadcast("create", goal.id)
        return goal

    async def update(self, goal_id: int, goal_data: Payload) -> Goal:
        try:
            goal = await self._api.update_goal(goal_id, goal_data)
        except ApiError:
            self.error = "Failed to update goal"
            raise
        self.goals = [goal if g.id == goal_id else g for g in self.goals]
        self._broadcast("update", goal_id)
        return goal

    async def delete(self, goal_id: int) -> None:
        try:
            await self._api.delete_goal(goal_id)
        except ApiError:
            self.error = "Failed to delete goal"
            raise
        self.goals = [g for g in self.goals if g.id != goal_id]
        self._broadcast("delete", goal_id)

    async def log_progress(self, goal_id: int, progress_data: Payload):
        try:
            entry = await self._api.create_progress(goal_id, progress_data)
        except ApiError:
            self.error = "Failed to log progress"
            raise
        self.goals = [
            g.model_copy(update={"progress": [*g.progress, entry]}) if g.id == goal_id else g
            for g in self.goals
        ]
        self._broadcast("progress", goal_id)
        return entry

    def get(self, goal_id: int) -> Optional[Goal]:
        return next((g for g in self.goals if g.id == goal_id), None)

    # --- Signals ---

    def _broadcast(self, action: str, goal_id: Optional[int]) -> None:
        self._bus.publish(GoalsChanged(source=self.id, action=action, goal_id=goal_id))

    def _on_goals_changed(self, event: GoalsChanged) -> None:
        # This store already patched its own list
        if self._closed or event.source == self.id:
            return
        self._refetch.trigger()

    async def _on_session_change(self, session: Optional[Session]) -> None:
        was_authenticated = self._authenticated
        self._authenticated = session is not None
        if session is None:
            self._refetch.cancel()
            self.goals = []
            self.error = None
            self.initialized = False
        elif not was_authenticated:
            await self.fetch()
