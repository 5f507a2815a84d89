# src/goaltracker_ui/auth_utils.py

import logging
import time
from typing import Any, Dict, Optional

import httpx
from pydantic import ValidationError

from .errors import AuthProviderError
from .log_config import mask_token
from .session_data import Session, token_expiry

logger = logging.getLogger(__name__)


class SupabaseAuthClient:
    """
    Thin async client for the identity provider's GoTrue REST API.
    Every call sends the public anon key; user-scoped calls add the bearer token.
    """

    def __init__(
        self,
        base_url: str,
        anon_key: str,
        timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            transport=transport,
            headers={"apikey": anon_key, "Content-Type": "application/json"},
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        *,
        access_token: Optional[str] = None,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        headers = {"Authorization": f"Bearer {access_token}"} if access_token else None
        try:
            response = await self._client.request(method, path, params=params, json=json, headers=headers)
        except httpx.RequestError as e:
            logger.warning("Identity provider unreachable on %s %s: %s", method, path, e)
            raise AuthProviderError(503, f"Could not connect to identity provider: {e}") from e

        if response.status_code >= 400:
            detail = _error_detail(response)
            logger.warning("Identity provider rejected %s %s: %s - %s", method, path, response.status_code, detail)
            raise AuthProviderError(response.status_code, detail)

        if not response.content:
            return {}
        try:
            body = response.json()
        except ValueError as e:
            logger.warning("Identity provider sent a non-JSON body on %s %s", method, path)
            raise AuthProviderError(502, "Identity provider returned a non-JSON body.") from e
        if not isinstance(body, dict):
            raise AuthProviderError(502, "Identity provider returned an unexpected body.")
        return body

    # --- Session acquisition ---

    async def sign_in_with_password(self, email: str, password: str) -> Session:
        payload = await self._request(
            "POST", "/token", params={"grant_type": "password"}, json={"email": email, "password": password}
        )
        return _session_from(payload)

    async def refresh(self, refresh_token: str) -> Session:
        logger.debug("Refreshing session with refresh token %s", mask_token(refresh_token))
        payload = await self._request(
            "POST", "/token", params={"grant_type": "refresh_token"}, json={"refresh_token": refresh_token}
        )
        return _session_from(payload)

    async def get_user(self, access_token: str) -> Dict[str, Any]:
        return await self._request("GET", "/user", access_token=access_token)

    async def set_session(self, access_token: str, refresh_token: Optional[str] = None) -> Session:
        """
        Build a session from tokens handed over by a redirect.
        An expired access token is swapped for a fresh one via the refresh token;
        a live one is validated by fetching its user.
        """
        expires_at = token_expiry(access_token)
        if expires_at is not None and expires_at <= time.time():
            if not refresh_token:
                raise AuthProviderError(401, "Access token expired and no refresh token was supplied.")
            return await self.refresh(refresh_token)

        user = await self.get_user(access_token)
        return _session_from(
            {"access_token": access_token, "refresh_token": refresh_token, "expires_at": expires_at, "user": user}
        )

    # --- Account operations ---

    async def send_magic_link(self, email: str, redirect_to: str) -> None:
        await self._request(
            "POST", "/otp", params={"redirect_to": redirect_to}, json={"email": email, "create_user": True}
        )

    async def update_user(self, access_token: str, data: Dict[str, Any]) -> Dict[str, Any]:
        return await self._request("PUT", "/user", access_token=access_token, json={"data": data})

    async def sign_out(self, access_token: str) -> None:
        await self._request("POST", "/logout", access_token=access_token)


def _error_detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(body, dict):
        for key in ("error_description", "msg", "message", "error"):
            if body.get(key):
                return str(body[key])
    return response.text


def _session_from(payload: Dict[str, Any]) -> Session:
    try:
        return Session.from_provider(payload)
    except (ValidationError, TypeError, ValueError) as e:
        logger.warning("Identity provider sent an unusable session: %s", e)
        raise AuthProviderError(502, "Identity provider returned an incomplete session.") from e
