# src/goaltracker_ui/callback.py

import logging
from enum import Enum
from typing import Optional

from .events import Subscription
from .location import Location
from .router import Route
from .session_data import Session
from .session_store import SessionStore
from .tokens import extract_tokens

logger = logging.getLogger(__name__)

ERROR_MESSAGE = "Could not complete sign-in. You can try again."


class CallbackState(str, Enum):
    EXTRACTING = "extracting"
    EXCHANGING = "exchanging"
    FINALIZING = "finalizing"
    DONE = "done"
    ERROR = "error"


class Redirect:
    """Navigates to the target route the first time it is called, and never again."""

    def __init__(self, location: Location, target: Route = Route.HOME):
        self._location = location
        self.target = target
        self.performed = False

    def __call__(self) -> bool:
        if self.performed:
            return False
        self.performed = True
        logger.info("Sign-in complete, redirecting to %s", self.target.value)
        self._location.assign(self.target.value)
        return True


class CallbackHandler:
    """
    Completes a login round trip on the auth-callback route.

    extracting -> exchanging -> finalizing -> done, with error reachable from
    any step. Finalizing waits on session changes when no session exists yet;
    close() drops that wait if the view goes away first.
    """

    continue_href = Route.HOME.value

    def __init__(self, location: Location, sessions: SessionStore):
        self._location = location
        self._sessions = sessions
        self._redirect = Redirect(location)
        self._subscription: Optional[Subscription] = None
        self._closed = False
        self.state = CallbackState.EXTRACTING
        self.status = "Signing you in..."
        self.error: Optional[str] = None

    @property
    def redirected(self) -> bool:
        return self._redirect.performed

    @property
    def waiting(self) -> bool:
        return self._subscription is not None and self._subscription.active

    async def run(self) -> CallbackState:
        try:
            await self._run()
        except Exception:
            logger.exception("Sign-in callback failed in state %s", self.state.value)
            self.state = CallbackState.ERROR
            self.error = ERROR_MESSAGE
            self._release()
        return self.state

    async def _run(self) -> None:
        tokens = extract_tokens(self._location.hash)

        if not tokens.is_empty:
            self._enter(CallbackState.EXCHANGING, "Setting session...")
            session = await self._sessions.exchange_tokens(tokens.access_token, tokens.refresh_token)
            if session is not None:
                self._finish()
                return
            # One more attempt with the refresh token alone
            if tokens.access_token and tokens.refresh_token:
                self.status = "Finalizing session..."
                session = await self._sessions.exchange_tokens(None, tokens.refresh_token)
                if session is not None:
                    self._finish()
                    return

        self._enter(CallbackState.FINALIZING, "Finalizing sign-in...")
        # The provider may already hold a session established some other way
        session = await self._sessions.current_session()
        if session is not None:
            self._finish()
            return

        if self._closed:
            return
        self._subscription = self._sessions.subscribe(self._on_session_change)
        logger.debug("No session yet, waiting for an auth state change")

    def _on_session_change(self, session: Optional[Session]) -> None:
        if session is not None and self.state is CallbackState.FINALIZING:
            self._finish()

    def _enter(self, state: CallbackState, status: str) -> None:
        logger.debug("Callback %s -> %s", self.state.value, state.value)
        self.state = state
        self.status = status

    def _finish(self) -> None:
        # The user has already left the callback view
        if self._closed:
            self._release()
            return
        self._redirect()
        self.state = CallbackState.DONE
        self._release()

    def _release(self) -> None:
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None

    def close(self) -> None:
        """Release any pending wait; called when the callback view unmounts."""
        self._closed = True
        self._release()
