# src/goaltracker_ui/session_data.py

import time
from typing import Any, Dict, Optional

from jose import JWTError, jwt
from pydantic import BaseModel


class Session(BaseModel):
    """
    Identity-provider session as held by the session store.
    Instances are replaced on every transition, never mutated.
    """
    model_config = {"frozen": True, "extra": "ignore"}

    access_token: str
    refresh_token: Optional[str] = None
    token_type: str = "bearer"
    expires_in: Optional[int] = None
    expires_at: Optional[int] = None  # Unix seconds
    user: Dict[str, Any] = {}

    @classmethod
    def from_provider(cls, payload: Dict[str, Any]) -> "Session":
        data = dict(payload)
        if not data.get("expires_at"):
            data["expires_at"] = token_expiry(data.get("access_token"))
        if not data.get("expires_at") and data.get("expires_in"):
            data["expires_at"] = int(time.time()) + int(data["expires_in"])
        return cls.model_validate(data)

    def is_expired(self, margin: int = 0, now: Optional[float] = None) -> bool:
        if self.expires_at is None:
            return False
        current = time.time() if now is None else now
        return self.expires_at - margin <= current

    @property
    def user_email(self) -> Optional[str]:
        return self.user.get("email")


def token_claims(token: Optional[str]) -> Dict[str, Any]:
    """Read a JWT's claims without verifying it; the provider verifies on use."""
    if not token:
        return {}
    try:
        return jwt.get_unverified_claims(token)
    except JWTError:
        return {}


def token_expiry(token: Optional[str]) -> Optional[int]:
    exp = token_claims(token).get("exp")
    return int(exp) if isinstance(exp, (int, float)) else None
