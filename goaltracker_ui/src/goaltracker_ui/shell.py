# src/goaltracker_ui/shell.py

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional

from .api import ApiClient
from .callback import CallbackHandler
from .errors import ApiError
from .events import Subscription
from .router import HashRouter, Route
from .session_data import Session
from .session_store import SessionStore

logger = logging.getLogger(__name__)


class View(str, Enum):
    LOADING = "loading"
    LOGIN = "login"
    CALLBACK = "callback"
    DASHBOARD = "dashboard"
    TIMELINE = "timeline"
    PROFILE = "profile"
    NEW_GOAL = "new_goal"
    ACCOUNT = "account"
    SUGGESTIONS = "suggestions"
    MARKET = "market"
    ADMIN = "admin"


ROUTE_VIEWS = {
    Route.HOME: View.DASHBOARD,
    Route.TIMELINE: View.TIMELINE,
    Route.PROFILE: View.PROFILE,
    Route.NEW_GOAL: View.NEW_GOAL,
    Route.ACCOUNT: View.ACCOUNT,
    Route.SUGGESTIONS: View.SUGGESTIONS,
    Route.MARKET: View.MARKET,
    Route.ADMIN: View.ADMIN,
}

# Reachable while the profile is still incomplete
ONBOARDING_ROUTES = frozenset({Route.PROFILE, Route.MARKET})


@dataclass(frozen=True)
class Screen:
    view: View
    # A different key means the view is mounted afresh rather than re-rendered
    key: Optional[str] = None


class AppShell:
    """
    Decides which view to show for the current route and session.

    The auth-callback route always shows the callback view; without a session
    the login view is shown; otherwise the route picks the view, with the
    dashboard as fallback. Route and session changes both re-render.
    """

    def __init__(self, router: HashRouter, sessions: SessionStore, api: Optional[ApiClient] = None):
        self.router = router
        self._sessions = sessions
        self._api = api

        self.session: Optional[Session] = None
        self.auth_loading = True
        self.must_onboard = False
        self.callback: Optional[CallbackHandler] = None
        self.callback_task: Optional[asyncio.Task] = None
        self.screen = Screen(View.LOADING)
        self.render_count = 0

        self._render_listeners: List[Callable[[Screen], None]] = []
        self._subscriptions: List[Subscription] = []
        self._mounted = False

    # --- Lifecycle ---

    async def mount(self) -> None:
        if self._mounted:
            return
        self._mounted = True
        self.router.start()
        self._subscriptions.append(self.router.on_change(self._on_route_change))
        self._subscriptions.append(self._sessions.subscribe(self._on_session_change))
        self._rerender()

        try:
            session = await self._sessions.current_session()
            if not self._mounted:
                return
            # A transition may have been delivered while we were reading
            if self.session is None and session is not None:
                self.session = session
                await self._check_onboarding()
        finally:
            if self._mounted:
                self.auth_loading = False
                self._rerender()

    def unmount(self) -> None:
        self._mounted = False
        for subscription in self._subscriptions:
            subscription.unsubscribe()
        self._subscriptions.clear()
        self.router.stop()
        self._close_callback()

    @property
    def mounted(self) -> bool:
        return self._mounted

    def on_render(self, listener: Callable[[Screen], None]) -> Subscription:
        self._render_listeners.append(listener)

        def release():
            if listener in self._render_listeners:
                self._render_listeners.remove(listener)

        return Subscription(release)

    # --- Rendering ---

    def render(self) -> Screen:
        route = self.router.route
        if route is Route.AUTH_CALLBACK:
            return Screen(View.CALLBACK)
        if self.auth_loading:
            return Screen(View.LOADING)
        if self.session is None:
            return Screen(View.LOGIN)
        if self.must_onboard and route not in ONBOARDING_ROUTES:
            return Screen(View.PROFILE)

        view = ROUTE_VIEWS.get(route, View.DASHBOARD)
        if view is View.DASHBOARD:
            return Screen(view, key=self.auth_key)
        return Screen(view)

    @property
    def auth_key(self) -> str:
        return "authenticated" if self.session is not None else "unauthenticated"

    def _rerender(self) -> None:
        self._sync_callback()
        self.screen = self.render()
        self.render_count += 1
        for listener in list(self._render_listeners):
            listener(self.screen)

    def _sync_callback(self) -> None:
        on_callback_route = self.router.route is Route.AUTH_CALLBACK
        if on_callback_route and self.callback is None:
            self.callback = CallbackHandler(self.router.location, self._sessions)
            self.callback_task = asyncio.create_task(self.callback.run())
        elif not on_callback_route and self.callback is not None:
            self._close_callback()

    def _close_callback(self) -> None:
        if self.callback is not None:
            self.callback.close()
            self.callback = None
        task = self.callback_task
        # The redirect itself runs inside the task and must let it finish
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()

    # --- Event handlers ---

    def _on_route_change(self, route: Route) -> None:
        self._rerender()

    async def _on_session_change(self, session: Optional[Session]) -> None:
        self.session = session
        self.auth_loading = False
        if session is not None:
            await self._check_onboarding()
        else:
            self.must_onboard = False
        if self._mounted:
            self._rerender()

    async def _check_onboarding(self) -> None:
        if self._api is None:
            self.must_onboard = False
            return
        try:
            profile = await self._api.get_or_create_profile()
        except ApiError as e:
            logger.warning("Could not load profile, skipping onboarding check: %s", e)
            self.must_onboard = False
            return
        self.must_onboard = profile.needs_onboarding

    # --- Actions ---

    async def logout(self) -> None:
        await self._sessions.sign_out()
        self.router.navigate(Route.HOME)
