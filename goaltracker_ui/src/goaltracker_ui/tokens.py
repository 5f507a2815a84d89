# src/goaltracker_ui/tokens.py

from typing import Optional
from urllib.parse import parse_qs

from pydantic import BaseModel

FRAGMENT_DELIMITER = "#"


class TokenPair(BaseModel):
    """Tokens carried by the provider's redirect; consumed once by the callback."""
    model_config = {"frozen": True}

    access_token: Optional[str] = None
    refresh_token: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return not self.access_token and not self.refresh_token


def extract_tokens(fragment: Optional[str]) -> TokenPair:
    """
    Pull access/refresh tokens out of a double-fragment redirect such as
    ``#/auth/callback#access_token=...&refresh_token=...``.

    Only the text after the last '#' is a query string, and only when the
    fragment has a second '#' beyond the route's own. Malformed input yields an
    empty pair instead of raising.
    """
    if not isinstance(fragment, str) or fragment.count(FRAGMENT_DELIMITER) < 2:
        return TokenPair()

    params_str = fragment[fragment.rfind(FRAGMENT_DELIMITER) + 1:]
    try:
        params = parse_qs(params_str, keep_blank_values=False)
    except ValueError:
        return TokenPair()

    return TokenPair(
        access_token=_first(params.get("access_token")),
        refresh_token=_first(params.get("refresh_token")),
    )


def _first(values) -> Optional[str]:
    return values[0] if values else None
