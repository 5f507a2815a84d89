# src/goaltracker_ui/session_store.py

import asyncio
import inspect
import logging
import time
from collections import deque
from typing import Any, Awaitable, Callable, Deque, Dict, List, Optional, Set, Union

from pydantic import ValidationError

from .errors import AuthProviderError
from .events import Subscription
from .log_config import mask_token
from .session_data import Session
from .storage import KeyValueStorage, MemoryStorage

logger = logging.getLogger(__name__)

SESSION_STORAGE_KEY = "sb-auth-token"

SessionCallback = Callable[[Optional[Session]], Union[None, Awaitable[None]]]


class _Subscriber:
    """
    Delivers session transitions to one callback, one at a time. A transition
    arriving while the callback is still running waits in the queue.
    """

    def __init__(self, callback: SessionCallback):
        self.callback = callback
        self.active = True
        self._pending: Deque[Optional[Session]] = deque()
        self._firing = False

    async def deliver(self, session: Optional[Session]) -> None:
        self._pending.append(session)
        if self._firing:
            return
        self._firing = True
        try:
            while self._pending and self.active:
                next_session = self._pending.popleft()
                try:
                    result = self.callback(next_session)
                    if inspect.isawaitable(result):
                        await result
                except Exception:
                    logger.exception("Session subscriber %r failed", self.callback)
        finally:
            self._firing = False
            if not self.active:
                self._pending.clear()


class SessionStore:
    """
    Sole owner of the current identity-provider session.

    Everything else reads it through current_session()/current_token() or
    observes transitions via subscribe(). Provider and network failures are
    logged and degrade to "no session"; they never reach the caller.
    """

    def __init__(
        self,
        provider,
        storage: Optional[KeyValueStorage] = None,
        refresh_margin: int = 60,
        magic_link_redirect: Optional[str] = None,
    ):
        self._provider = provider
        self._storage = storage if storage is not None else MemoryStorage()
        self._refresh_margin = refresh_margin
        self._magic_link_redirect = magic_link_redirect
        self._session: Optional[Session] = None
        self._loaded = False
        self._subscribers: List[_Subscriber] = []
        self._refresh_lock = asyncio.Lock()
        self._issued_at: Optional[float] = None
        self._deliveries: Set[asyncio.Future] = set()

    @property
    def session(self) -> Optional[Session]:
        """Last known session without touching storage or the network."""
        return self._session

    # --- Reading ---

    async def current_session(self) -> Optional[Session]:
        if not self._loaded:
            self._load_persisted()
        session = self._session
        if session is not None and self._needs_refresh(session):
            return await self._refresh(session)
        return session

    async def current_token(self) -> Optional[str]:
        session = await self.current_session()
        return session.access_token if session else None

    # --- Subscriptions ---

    def subscribe(self, on_change: SessionCallback) -> Subscription:
        subscriber = _Subscriber(on_change)
        self._subscribers.append(subscriber)

        def release():
            subscriber.active = False
            if subscriber in self._subscribers:
                self._subscribers.remove(subscriber)

        return Subscription(release)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    # --- Transitions ---

    async def exchange_tokens(self, access_token: Optional[str], refresh_token: Optional[str]) -> Optional[Session]:
        """
        Establish a session from a redirect's token pair. Without an access
        token the refresh token alone is exchanged. Returns None on failure.
        """
        try:
            if access_token:
                session = await self._provider.set_session(access_token, refresh_token)
            elif refresh_token:
                session = await self._provider.refresh(refresh_token)
            else:
                return None
        except AuthProviderError as e:
            logger.warning(
                "Token exchange failed (access=%s, refresh=%s): %s",
                mask_token(access_token), mask_token(refresh_token), e.detail,
            )
            return None

        await self._set(session, "SIGNED_IN")
        return session

    async def sign_in_with_password(self, email: str, password: str) -> Session:
        """Raises AuthProviderError so the login form can show the provider's message."""
        session = await self._provider.sign_in_with_password(email, password)
        await self._set(session, "SIGNED_IN")
        return session

    async def send_magic_link(self, email: str) -> None:
        if not self._magic_link_redirect:
            raise ValueError("No redirect URL configured for magic links.")
        await self._provider.send_magic_link(email, self._magic_link_redirect)
        logger.info("Magic link requested for %s", email)

    async def update_user_metadata(self, data: Dict[str, Any]) -> Optional[Session]:
        session = await self.current_session()
        if session is None:
            return None
        user = await self._provider.update_user(session.access_token, data)
        updated = session.model_copy(update={"user": user})
        await self._set(updated, "USER_UPDATED")
        return updated

    async def sign_out(self) -> None:
        session = self._session
        if session is not None:
            try:
                await self._provider.sign_out(session.access_token)
            except AuthProviderError as e:
                # The local session is dropped regardless
                logger.warning("Provider sign-out failed: %s", e.detail)
        await self._set(None, "SIGNED_OUT")

    # --- Internals ---

    def _needs_refresh(self, session: Session) -> bool:
        # A session issued with less lifetime than the margin is refreshed at half-life instead
        margin = self._refresh_margin
        lifetime = session.expires_in
        if self._issued_at is not None and session.expires_at is not None:
            lifetime = int(session.expires_at - self._issued_at)
        if lifetime is not None:
            margin = min(margin, max(lifetime, 0) // 2)
        return session.is_expired(margin)

    async def _refresh(self, stale: Session) -> Optional[Session]:
        # Subscribers may read the session again, so they are notified after the lock is released
        async with self._refresh_lock:
            if self._session is not stale:
                # Another caller already refreshed or cleared it
                return self._session
            result, event = await self._refreshed(stale)
            changed = self._store(result)
        if changed:
            await self._notify(result, event)
        return result

    async def _refreshed(self, stale: Session):
        if not stale.refresh_token:
            if stale.is_expired():
                logger.info("Session expired and cannot be refreshed")
                return None, "SIGNED_OUT"
            return stale, None
        try:
            fresh = await self._provider.refresh(stale.refresh_token)
        except AuthProviderError as e:
            logger.warning("Session refresh failed: %s", e.detail)
            if stale.is_expired():
                return None, "SIGNED_OUT"
            return stale, None
        return fresh, "TOKEN_REFRESHED"

    async def _set(self, session: Optional[Session], event: str) -> None:
        if self._store(session):
            await self._notify(session, event)

    def _store(self, session: Optional[Session]) -> bool:
        """Hold and persist the session; returns whether subscribers should hear about it."""
        previous = self._session
        self._loaded = True
        if session is previous:
            return False
        if session is None or previous is None or session.access_token != previous.access_token:
            self._issued_at = time.time() if session is not None else None
        self._session = session
        self._persist(session)
        return not (previous is None and session is None)

    async def _notify(self, session: Optional[Session], event: str) -> None:
        logger.info("Auth state change: %s (user=%s)", event, session.user_email if session else None)
        # Delivery outlives a cancelled caller so no subscriber misses the transition
        delivery = asyncio.ensure_future(self._deliver(session))
        self._deliveries.add(delivery)
        delivery.add_done_callback(self._deliveries.discard)
        await asyncio.shield(delivery)

    async def _deliver(self, session: Optional[Session]) -> None:
        for subscriber in list(self._subscribers):
            await subscriber.deliver(session)

    def _persist(self, session: Optional[Session]) -> None:
        if session is None:
            self._storage.remove(SESSION_STORAGE_KEY)
        else:
            self._storage.set(SESSION_STORAGE_KEY, session.model_dump(mode="json"))

    def _load_persisted(self) -> None:
        self._loaded = True
        raw = self._storage.get(SESSION_STORAGE_KEY)
        if not raw:
            return
        try:
            self._session = Session.model_validate(raw)
            logger.debug("Restored persisted session for %s", self._session.user_email)
        except ValidationError as e:
            logger.warning("Discarding unreadable persisted session: %s", e)
            self._storage.remove(SESSION_STORAGE_KEY)
