"""Identity provider client against a mocked GoTrue API."""

from __future__ import annotations

import json

import httpx
import pytest

from conftest import make_jwt
from goaltracker_ui.auth_utils import SupabaseAuthClient
from goaltracker_ui.errors import AuthProviderError

AUTH_URL = "http://supabase.test/auth/v1"
USER = {"id": "user-1", "email": "ada@example.com"}


def session_json(access_token: str, refresh_token: str) -> dict:
    return {"access_token": access_token, "refresh_token": refresh_token, "token_type": "bearer",
            "expires_in": 3600, "user": USER}


def make_client(handler) -> tuple[SupabaseAuthClient, list[httpx.Request]]:
    seen: list[httpx.Request] = []

    def record(request):
        seen.append(request)
        return handler(request)

    return SupabaseAuthClient(AUTH_URL, "anon-key", transport=httpx.MockTransport(record)), seen


class TestSetSession:
    @pytest.mark.asyncio
    async def test_live_token_validated_with_get_user(self):
        access = make_jwt(3600)
        client, seen = make_client(lambda r: httpx.Response(200, json=USER))
        session = await client.set_session(access, "xyz")

        assert session.access_token == access
        assert session.refresh_token == "xyz"
        assert session.user_email == "ada@example.com"
        assert session.expires_at is not None
        request = seen[0]
        assert (request.method, request.url.path) == ("GET", "/auth/v1/user")
        assert request.headers["Authorization"] == f"Bearer {access}"
        assert request.headers["apikey"] == "anon-key"
        await client.aclose()

    @pytest.mark.asyncio
    async def test_opaque_token_still_validated(self):
        client, seen = make_client(lambda r: httpx.Response(200, json=USER))
        session = await client.set_session("abc", "xyz")
        assert session.access_token == "abc"
        assert session.expires_at is None
        assert seen[0].headers["Authorization"] == "Bearer abc"
        await client.aclose()

    @pytest.mark.asyncio
    async def test_expired_token_uses_refresh_grant(self):
        client, seen = make_client(lambda r: httpx.Response(200, json=session_json("new-access", "new-refresh")))
        session = await client.set_session(make_jwt(-60), "xyz")

        assert session.access_token == "new-access"
        request = seen[0]
        assert request.url.path == "/auth/v1/token"
        assert request.url.params["grant_type"] == "refresh_token"
        assert json.loads(request.content) == {"refresh_token": "xyz"}
        await client.aclose()

    @pytest.mark.asyncio
    async def test_expired_token_without_refresh_fails(self):
        client, seen = make_client(lambda r: httpx.Response(200, json=USER))
        with pytest.raises(AuthProviderError):
            await client.set_session(make_jwt(-60), None)
        assert seen == []
        await client.aclose()

    @pytest.mark.asyncio
    async def test_rejected_token(self):
        client, _ = make_client(lambda r: httpx.Response(401, json={"msg": "invalid JWT"}))
        with pytest.raises(AuthProviderError) as exc:
            await client.set_session("abc", "xyz")
        assert exc.value.status_code == 401
        assert exc.value.detail == "invalid JWT"
        await client.aclose()


class TestOtherCalls:
    @pytest.mark.asyncio
    async def test_password_grant(self):
        client, seen = make_client(lambda r: httpx.Response(200, json=session_json("a", "r")))
        session = await client.sign_in_with_password("ada@example.com", "pw")
        assert session.expires_at is not None
        assert seen[0].url.params["grant_type"] == "password"
        await client.aclose()

    @pytest.mark.asyncio
    async def test_bad_credentials(self):
        client, _ = make_client(
            lambda r: httpx.Response(400, json={"error": "invalid_grant", "error_description": "Invalid login credentials"})
        )
        with pytest.raises(AuthProviderError) as exc:
            await client.sign_in_with_password("ada@example.com", "nope")
        assert exc.value.detail == "Invalid login credentials"
        await client.aclose()

    @pytest.mark.asyncio
    async def test_magic_link(self):
        client, seen = make_client(lambda r: httpx.Response(200, json={}))
        await client.send_magic_link("ada@example.com", "http://localhost:3000/#/auth/callback")
        request = seen[0]
        assert request.url.path == "/auth/v1/otp"
        assert request.url.params["redirect_to"] == "http://localhost:3000/#/auth/callback"
        assert json.loads(request.content) == {"email": "ada@example.com", "create_user": True}
        await client.aclose()

    @pytest.mark.asyncio
    async def test_sign_out_empty_body(self):
        client, seen = make_client(lambda r: httpx.Response(204))
        await client.sign_out("abc")
        assert seen[0].url.path == "/auth/v1/logout"
        await client.aclose()

    @pytest.mark.asyncio
    async def test_unreachable_provider(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        client, _ = make_client(handler)
        with pytest.raises(AuthProviderError) as exc:
            await client.refresh("xyz")
        assert exc.value.status_code == 503
        await client.aclose()


class TestUnusableResponses:
    @pytest.mark.asyncio
    async def test_html_body_becomes_provider_error(self):
        client, _ = make_client(lambda r: httpx.Response(200, text="<html>proxy</html>"))
        with pytest.raises(AuthProviderError) as exc:
            await client.refresh("xyz")
        assert exc.value.status_code == 502
        await client.aclose()

    @pytest.mark.asyncio
    async def test_session_without_access_token(self):
        client, _ = make_client(lambda r: httpx.Response(200, json={"token_type": "bearer", "user": USER}))
        with pytest.raises(AuthProviderError) as exc:
            await client.refresh("xyz")
        assert exc.value.status_code == 502
        await client.aclose()

    @pytest.mark.asyncio
    async def test_user_that_is_not_an_object(self):
        client, _ = make_client(lambda r: httpx.Response(200, json=["ada@example.com"]))
        with pytest.raises(AuthProviderError) as exc:
            await client.set_session("abc", "xyz")
        assert exc.value.status_code == 502
        await client.aclose()
