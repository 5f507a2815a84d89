# src/goaltracker_ui/errors.py

from typing import Optional


class GoalTrackerError(Exception):
    """Base class for errors raised by the client."""


class ApiError(GoalTrackerError):
    """A backend request failed, either at the transport level or with an HTTP error status."""

    def __init__(self, status_code: int, detail: str, method: Optional[str] = None, path: Optional[str] = None):
        self.status_code = status_code
        self.detail = detail
        self.method = method
        self.path = path
        where = f" ({method} {path})" if method and path else ""
        super().__init__(f"{status_code}: {detail}{where}")


class CsrfRejectedError(ApiError):
    """The backend refused a state-changing request because of its CSRF token."""


class AuthProviderError(GoalTrackerError):
    def __init__(self, status_code: int, detail: str):
        self.status_code = status_code
        self.detail = detail
        super().__init__(f"Identity provider error {status_code}: {detail}")
