# src/goaltracker_ui/app.py

import logging
from typing import Any, Dict, Optional

import httpx

from .api import ApiClient
from .auth_utils import SupabaseAuthClient
from .config import Settings, settings as default_settings
from .events import EventBus
from .goals import GoalsStore
from .location import Location
from .preferences import Preferences
from .router import HashRouter
from .session_store import SessionStore
from .shell import AppShell
from .storage import KeyValueStorage, storage_for

logger = logging.getLogger(__name__)


class ClientApp:
    """Wires the client together: one session store, bus, router and shell per app."""

    def __init__(
        self,
        settings: Settings,
        location: Location,
        storage: KeyValueStorage,
        auth_client: SupabaseAuthClient,
        sessions: SessionStore,
        api: ApiClient,
    ):
        self.settings = settings
        self.location = location
        self.storage = storage
        self.auth_client = auth_client
        self.preferences = Preferences(storage)
        self.sessions = sessions
        self.api = api
        self.bus = EventBus()
        self.router = HashRouter(location)
        self.shell = AppShell(self.router, self.sessions, api)

    @classmethod
    def create(
        cls,
        settings: Optional[Settings] = None,
        location: Optional[Location] = None,
        storage: Optional[KeyValueStorage] = None,
        auth_transport: Optional[httpx.AsyncBaseTransport] = None,
        api_transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "ClientApp":
        settings = settings or default_settings
        storage = storage if storage is not None else storage_for(settings.SESSION_STORAGE_PATH)
        auth_client = SupabaseAuthClient(
            settings.AUTH_BASE_URL,
            settings.SUPABASE_ANON_KEY,
            timeout=settings.REQUEST_TIMEOUT_SECONDS,
            transport=auth_transport,
        )
        sessions = SessionStore(
            auth_client,
            storage=storage,
            refresh_margin=settings.SESSION_REFRESH_MARGIN_SECONDS,
            magic_link_redirect=settings.AUTH_CALLBACK_URL,
        )
        api = ApiClient(
            settings.API_BASE_URL,
            token_provider=sessions.current_token,
            timeout=settings.REQUEST_TIMEOUT_SECONDS,
            transport=api_transport,
        )
        logger.info("Client created for API %s", settings.API_BASE_URL)
        return cls(settings, location or Location(), storage, auth_client, sessions, api)

    def goals_store(self, filters: Optional[Dict[str, Any]] = None) -> GoalsStore:
        return GoalsStore(
            self.api,
            self.sessions,
            self.bus,
            debounce=self.settings.GOALS_REFETCH_DEBOUNCE_SECONDS,
            filters=filters,
        )

    async def start(self) -> None:
        await self.shell.mount()

    async def aclose(self) -> None:
        self.shell.unmount()
        await self.api.aclose()
        await self.auth_client.aclose()

    async def __aenter__(self) -> "ClientApp":
        await self.start()
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()
