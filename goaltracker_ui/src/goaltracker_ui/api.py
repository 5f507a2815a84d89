# src/goaltracker_ui/api.py

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Type, TypeVar, Union

import httpx
from pydantic import BaseModel, TypeAdapter, ValidationError

from .errors import ApiError, CsrfRejectedError
from .models import (
    Goal,
    GoalInput,
    JobRole,
    ProgressEntry,
    ProgressInput,
    Responsibility,
    UserProfile,
)

logger = logging.getLogger(__name__)

CSRF_HEADER = "X-CSRF-Token"
CSRF_PATH = "/csrf-token"
STATE_CHANGING_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})

TokenProvider = Callable[[], Awaitable[Optional[str]]]
Payload = Union[BaseModel, Dict[str, Any]]
M = TypeVar("M", bound=BaseModel)


class ApiClient:
    """
    Async client for the goal-tracker backend.

    Attaches the bearer token when one is available. State-changing requests
    also carry a cached CSRF token; a CSRF rejection refreshes it and retries
    the request exactly once.
    """

    def __init__(
        self,
        base_url: str,
        token_provider: Optional[TokenProvider] = None,
        timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            transport=transport,
            headers={"Content-Type": "application/json"},
        )
        self._token_provider = token_provider
        self._csrf_token: Optional[str] = None
        self._csrf_lock = asyncio.Lock()

    async def aclose(self) -> None:
        await self._client.aclose()

    # --- Transport ---

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Any] = None,
    ) -> Any:
        method = method.upper()
        needs_csrf = method in STATE_CHANGING_METHODS
        response = await self._send(method, path, params=params, json=json, csrf=needs_csrf)

        if needs_csrf and _is_csrf_rejection(response):
            logger.info("CSRF token rejected on %s %s, refreshing and retrying once", method, path)
            self._csrf_token = None
            response = await self._send(method, path, params=params, json=json, csrf=True)

        return _unwrap(method, path, response)

    async def _send(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Any] = None,
        csrf: bool = False,
    ) -> httpx.Response:
        headers: Dict[str, str] = {}
        if self._token_provider is not None:
            token = await self._token_provider()
            if token:
                headers["Authorization"] = f"Bearer {token}"
        if csrf:
            headers[CSRF_HEADER] = await self._get_csrf_token()

        try:
            return await self._client.request(method, path, params=params, json=json, headers=headers)
        except httpx.TimeoutException as e:
            logger.warning("Request timed out: %s %s", method, path)
            raise ApiError(503, f"Request timed out: {e}", method, path) from e
        except httpx.RequestError as e:
            logger.warning("Could not reach backend on %s %s: %s", method, path, e)
            raise ApiError(503, f"Could not connect to backend: {e}", method, path) from e

    async def _get_csrf_token(self) -> str:
        async with self._csrf_lock:
            if self._csrf_token:
                return self._csrf_token
            response = await self._send("GET", CSRF_PATH)
            body = _unwrap("GET", CSRF_PATH, response)
            token = body.get("csrf_token") if isinstance(body, dict) else None
            if not token:
                raise ApiError(502, "CSRF token missing from response", "GET", CSRF_PATH)
            self._csrf_token = token
            return token

    async def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        return await self.request("GET", path, params=params)

    # --- Goals ---

    async def list_goals(self, params: Optional[Dict[str, Any]] = None) -> List[Goal]:
        data = await self._get("/goals", params=_clean_params(params))
        if data is None:
            raise ApiError(502, "Empty goals response", "GET", "/goals")
        return _parse_list(Goal, data, "/goals")

    async def get_goal(self, goal_id: int) -> Goal:
        return _parse(Goal, await self._get(f"/goals/{goal_id}"), f"/goals/{goal_id}")

    async def create_goal(self, data: Payload) -> Goal:
        return _parse(Goal, await self.request("POST", "/goals", json=_payload(data)), "/goals")

    async def update_goal(self, goal_id: int, data: Payload) -> Goal:
        path = f"/goals/{goal_id}"
        return _parse(Goal, await self.request("PUT", path, json=_payload(data)), path)

    async def delete_goal(self, goal_id: int) -> None:
        await self.request("DELETE", f"/goals/{goal_id}")

    # --- Progress ---

    async def list_progress(self, goal_id: int) -> List[ProgressEntry]:
        path = f"/goals/{goal_id}/progress"
        return _parse_list(ProgressEntry, await self._get(path), path)

    async def create_progress(self, goal_id: int, data: Payload) -> ProgressEntry:
        path = f"/goals/{goal_id}/progress"
        return _parse(ProgressEntry, await self.request("POST", path, json=_payload(data)), path)

    async def update_progress(self, progress_id: int, data: Payload) -> ProgressEntry:
        path = f"/progress/{progress_id}"
        return _parse(ProgressEntry, await self.request("PUT", path, json=_payload(data)), path)

    async def delete_progress(self, progress_id: int) -> None:
        await self.request("DELETE", f"/progress/{progress_id}")

    # --- Catalogue ---

    async def list_job_roles(self) -> List[JobRole]:
        return _parse_list(JobRole, await self._get("/job-roles"), "/job-roles")

    async def get_job_role(self, job_role_id: int) -> JobRole:
        path = f"/job-roles/{job_role_id}"
        return _parse(JobRole, await self._get(path), path)

    async def list_responsibilities(self, job_role_id: Optional[int] = None) -> List[Responsibility]:
        path = "/responsibilities" if job_role_id is None else f"/responsibilities/job-role/{job_role_id}"
        return _parse_list(Responsibility, await self._get(path), path)

    async def goal_suggestions(self, responsibility_id: Optional[int] = None) -> Any:
        if responsibility_id is None:
            return await self._get("/goal-suggestions")
        return await self._get(f"/goal-suggestions/for-responsibility/{responsibility_id}")

    async def progress_suggestions(self, goal_id: int) -> Any:
        return await self._get(f"/progress-suggestions/for-goal/{goal_id}")

    # --- Profile ---

    async def get_or_create_profile(self) -> UserProfile:
        return _parse(UserProfile, await self._get("/profiles/me") or {}, "/profiles/me")

    async def create_profile(self, data: Payload) -> UserProfile:
        return _parse(UserProfile, await self.request("POST", "/profiles", json=_payload(data)), "/profiles")

    async def update_profile(self, profile_id: int, data: Payload) -> UserProfile:
        path = f"/profiles/{profile_id}"
        return _parse(UserProfile, await self.request("PUT", path, json=_payload(data)), path)

    # --- AI assistance ---

    async def ai_goal_suggestions(self, data: Dict[str, Any]) -> Any:
        return await self.request("POST", "/ai/goal-suggestions", json=data)

    async def refine_smart(self, data: Dict[str, Any]) -> Any:
        return await self.request("POST", "/ai/refine-smart", json=data)

    async def milestones(self, data: Dict[str, Any]) -> Any:
        return await self.request("POST", "/ai/milestones", json=data)

    # --- Admin ---

    async def admin_health(self) -> Any:
        return await self._get("/admin/health")

    async def admin_users(self) -> Any:
        return await self._get("/admin/users")


def _payload(data: Payload) -> Dict[str, Any]:
    if isinstance(data, (GoalInput, ProgressInput)):
        return data.to_payload()
    if isinstance(data, BaseModel):
        return data.model_dump(mode="json", exclude_none=True)
    return data


def _clean_params(params: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if not params:
        return None
    return {k: (v.value if hasattr(v, "value") else v) for k, v in params.items() if v is not None}


def _parse(model: Type[M], data: Any, path: str) -> M:
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise ApiError(502, f"Malformed {model.__name__} in response: {e.error_count()} error(s)", path=path) from e


def _parse_list(model: Type[M], data: Any, path: str) -> List[M]:
    try:
        return TypeAdapter(List[model]).validate_python(data or [])
    except ValidationError as e:
        raise ApiError(502, f"Malformed {model.__name__} list in response: {e.error_count()} error(s)", path=path) from e


def _error_detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(body, dict):
        for key in ("error", "detail", "message"):
            if body.get(key):
                return str(body[key])
    return response.text


def _is_csrf_rejection(response: httpx.Response) -> bool:
    return response.status_code == 403 and "csrf" in _error_detail(response).lower()


def _unwrap(method: str, path: str, response: httpx.Response) -> Any:
    if response.status_code >= 400:
        detail = _error_detail(response)
        logger.warning("Backend error on %s %s: %s - %s", method, path, response.status_code, detail)
        if _is_csrf_rejection(response):
            raise CsrfRejectedError(response.status_code, detail, method, path)
        raise ApiError(response.status_code, detail, method, path)

    if response.status_code == 204 or not response.content:
        return None
    try:
        body = response.json()
    except ValueError as e:
        raise ApiError(502, "Backend returned a non-JSON body", method, path) from e
    if isinstance(body, dict) and "data" in body:
        return body["data"]
    return body
