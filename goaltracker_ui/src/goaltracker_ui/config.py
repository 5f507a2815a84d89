# src/goaltracker_ui/config.py

import logging
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv
from pydantic import AnyHttpUrl, TypeAdapter, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

# .env is at the project root, three levels up from goaltracker_ui/src/goaltracker_ui/
CONFIG_FILE_DIR = Path(__file__).resolve().parent
PROJECT_ROOT_DIR = CONFIG_FILE_DIR.parent.parent.parent
ENV_FILE_PATH = PROJECT_ROOT_DIR / ".env"
PACKAGE_DIR = CONFIG_FILE_DIR

_HTTP_URL = TypeAdapter(AnyHttpUrl)

if ENV_FILE_PATH.exists():
    load_dotenv(dotenv_path=ENV_FILE_PATH, override=True)
    logger.info("Loaded .env file from %s", ENV_FILE_PATH)
else:
    logger.debug(".env file not found at %s, relying on environment variables", ENV_FILE_PATH)


class Settings(BaseSettings):
    # === Backend API ===
    API_BASE_URL: str = "http://localhost:8080/api/v1"
    REQUEST_TIMEOUT_SECONDS: float = 15.0

    # === Identity provider (Supabase) ===
    SUPABASE_URL: str = "http://localhost:54321"
    SUPABASE_ANON_KEY: str = ""
    # Origin the magic link sends the user back to
    SITE_URL: str = "http://localhost:3000"
    SESSION_REFRESH_MARGIN_SECONDS: int = 60

    # === Client behaviour ===
    GOALS_REFETCH_DEBOUNCE_SECONDS: float = 0.3
    # None keeps session and preferences in memory only
    SESSION_STORAGE_PATH: Optional[Path] = None

    LOG_LEVEL: str = "INFO"

    # === Derived properties ===
    @property
    def AUTH_BASE_URL(self) -> str:
        return f"{self.SUPABASE_URL}/auth/v1"

    @property
    def AUTH_CALLBACK_URL(self) -> str:
        return f"{self.SITE_URL}/#/auth/callback"

    model_config = SettingsConfigDict(
        env_file=str(ENV_FILE_PATH),
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    @field_validator("API_BASE_URL", "SUPABASE_URL", "SITE_URL", mode="before")
    @classmethod
    def validate_http_url(cls, v: Any) -> str:
        if not isinstance(v, str) or not v.strip():
            raise ValueError("Expected a non-empty http(s) URL.")
        # AnyHttpUrl rejects anything that is not http/https
        try:
            _HTTP_URL.validate_python(v.strip())
        except ValidationError as e:
            raise ValueError(f"Invalid http(s) URL {v!r}: {e.errors()[0]['msg']}") from e
        return v.strip().rstrip("/")

    @field_validator("LOG_LEVEL", mode="before")
    @classmethod
    def normalize_log_level(cls, v: Any) -> str:
        level = str(v or "INFO").upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {v}")
        return level

    @field_validator("GOALS_REFETCH_DEBOUNCE_SECONDS", "REQUEST_TIMEOUT_SECONDS")
    @classmethod
    def positive_seconds(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("Must be greater than zero.")
        return v


try:
    settings = Settings()
    logger.debug("API base URL: %s", settings.API_BASE_URL)
    logger.debug("Auth base URL: %s", settings.AUTH_BASE_URL)
except Exception:
    logger.exception("Error instantiating Settings")
    raise
