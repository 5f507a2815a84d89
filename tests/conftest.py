"""Shared fixtures for the test suite."""

from __future__ import annotations

import asyncio
import time
from datetime import datetime, timezone
from typing import Any

import pytest
from jose import jwt

from goaltracker_ui.errors import ApiError, AuthProviderError
from goaltracker_ui.events import EventBus
from goaltracker_ui.location import Location
from goaltracker_ui.models import Goal, ProgressEntry, UserProfile
from goaltracker_ui.session_data import Session
from goaltracker_ui.session_store import SessionStore
from goaltracker_ui.storage import MemoryStorage


# ---------------------------------------------------------------------------
# Fake identity provider (no real Supabase needed)
# ---------------------------------------------------------------------------

class FakeAuthProvider:
    """Stand-in for SupabaseAuthClient that accepts only known tokens."""

    def __init__(self):
        self.valid_access: set[str] = set()
        self.valid_refresh: set[str] = set()
        self.passwords: dict[str, str] = {}
        self.calls: list[tuple] = []

    async def set_session(self, access_token, refresh_token=None) -> Session:
        self.calls.append(("set_session", access_token, refresh_token))
        if access_token not in self.valid_access:
            raise AuthProviderError(401, "invalid JWT")
        return make_session(access_token, refresh_token)

    async def refresh(self, refresh_token) -> Session:
        self.calls.append(("refresh", refresh_token))
        if refresh_token not in self.valid_refresh:
            raise AuthProviderError(400, "Invalid Refresh Token")
        return make_session(f"fresh-{refresh_token}", refresh_token)

    async def sign_in_with_password(self, email, password) -> Session:
        self.calls.append(("password", email))
        if self.passwords.get(email) != password:
            raise AuthProviderError(400, "Invalid login credentials")
        return make_session(f"access-{email}", f"refresh-{email}", email=email)

    async def send_magic_link(self, email, redirect_to) -> None:
        self.calls.append(("otp", email, redirect_to))

    async def update_user(self, access_token, data) -> dict:
        self.calls.append(("update_user", access_token, data))
        return {"email": "ada@example.com", "user_metadata": data}

    async def sign_out(self, access_token) -> None:
        self.calls.append(("sign_out", access_token))

    def call_names(self) -> list[str]:
        return [c[0] for c in self.calls]


class GatedAuthProvider(FakeAuthProvider):
    """Holds every token exchange until the gate is opened."""

    def __init__(self):
        super().__init__()
        self.gate = asyncio.Event()

    async def set_session(self, access_token, refresh_token=None) -> Session:
        await self.gate.wait()
        return await super().set_session(access_token, refresh_token)


# ---------------------------------------------------------------------------
# Fake backend API
# ---------------------------------------------------------------------------

class FakeApi:
    """Stand-in for ApiClient covering what the stores and shell call."""

    def __init__(self, goals: list[Goal] | None = None, profile: dict | None = None):
        self.goals = list(goals or [])
        self.profile = profile if profile is not None else {"id": 1, "current_role": "Engineer", "experience_level": "mid"}
        self.list_calls = 0
        self.list_params: list[Any] = []
        self.gate: asyncio.Event | None = None
        self.fail_list = False
        self.fail_mutations = False
        self.profile_calls = 0
        self._next_id = 100

    async def list_goals(self, params=None):
        self.list_calls += 1
        self.list_params.append(params)
        if self.gate is not None:
            await self.gate.wait()
        if self.fail_list:
            raise ApiError(500, "boom", "GET", "/goals")
        return list(self.goals)

    async def create_goal(self, data):
        if self.fail_mutations:
            raise ApiError(500, "boom", "POST", "/goals")
        self._next_id += 1
        payload = data if isinstance(data, dict) else data.to_payload()
        goal = Goal(id=self._next_id, **payload)
        self.goals.append(goal)
        return goal

    async def update_goal(self, goal_id, data):
        if self.fail_mutations:
            raise ApiError(500, "boom", "PUT", f"/goals/{goal_id}")
        payload = data if isinstance(data, dict) else data.to_payload()
        current = next(g for g in self.goals if g.id == goal_id)
        updated = current.model_copy(update=payload)
        self.goals = [updated if g.id == goal_id else g for g in self.goals]
        return updated

    async def delete_goal(self, goal_id):
        if self.fail_mutations:
            raise ApiError(500, "boom", "DELETE", f"/goals/{goal_id}")
        self.goals = [g for g in self.goals if g.id != goal_id]

    async def create_progress(self, goal_id, data):
        if self.fail_mutations:
            raise ApiError(500, "boom", "POST", f"/goals/{goal_id}/progress")
        payload = data if isinstance(data, dict) else data.to_payload()
        return ProgressEntry(id=1, goal_id=goal_id, created_at=datetime.now(timezone.utc), **payload)

    async def get_or_create_profile(self):
        self.profile_calls += 1
        return UserProfile.model_validate(self.profile)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def make_session(access_token: str = "access", refresh_token: str | None = "refresh", email: str = "ada@example.com",
                 expires_at: int | None = None) -> Session:
    if expires_at is None:
        expires_at = int(time.time()) + 3600
    return Session(access_token=access_token, refresh_token=refresh_token, expires_at=expires_at, user={"email": email})


def make_goal(goal_id: int, title: str = "Ship it", **extra) -> Goal:
    return Goal(id=goal_id, title=title, **extra)


def make_jwt(exp_offset: int, sub: str = "user-1") -> str:
    return jwt.encode({"sub": sub, "exp": int(time.time()) + exp_offset}, "test-secret", algorithm="HS256")


async def settle(rounds: int = 5) -> None:
    """Let scheduled callbacks and tasks run."""
    for _ in range(rounds):
        await asyncio.sleep(0)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture()
def provider():
    return FakeAuthProvider()


@pytest.fixture()
def storage():
    return MemoryStorage()


@pytest.fixture()
def sessions(provider, storage):
    return SessionStore(provider, storage=storage, magic_link_redirect="http://localhost:3000/#/auth/callback")


@pytest.fixture()
def signed_in(sessions):
    """Session store already holding a valid session."""
    sessions._session = make_session()
    sessions._loaded = True
    return sessions


@pytest.fixture()
def location():
    return Location("#/")


@pytest.fixture()
def bus():
    return EventBus()


@pytest.fixture()
def api():
    return FakeApi(goals=[make_goal(1, "Learn Go"), make_goal(2, "Run 10k")])
