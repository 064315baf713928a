# Central place for all configurable settings. We use Pydantic's
# BaseSettings so values can be read from env vars or a .env file.
# Secrets (JWT key, vault secret) must come from the environment.

import json
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def safe_json_loads(value):
    try:
        return json.loads(value)
    except (TypeError, ValueError):
        return value


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_json_loads=safe_json_loads,
    )

    # Core DB connection string, like sqlite:///./app.db or a Postgres URL.
    DATABASE_URL: str

    # Secret key used for signing JWTs and keying invite token digests.
    SECRET_KEY: str

    # JWT algorithm to use. Default HS256 (symmetric HMAC-SHA256).
    ALGORITHM: str = "HS256"

    # How long issued session tokens are valid, in minutes.
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24

    # Session cookie set after login / invite acceptance.
    AUTH_COOKIE_NAME: str = "auth_token"
    AUTH_COOKIE_SECURE: bool = False

    # Deployment environment. Test-only routes are disabled in production.
    ENVIRONMENT: str = "development"

    # Public URL of the web client; invite links are built from it.
    APP_BASE_URL: str = "http://localhost:3000"

    # Invitation lifetime (7 days by default).
    INVITE_TOKEN_TTL_HOURS: int = Field(default=168, gt=0)

    # Server-side secret the credential vault derives its AES key from.
    INTEGRATION_ENCRYPTION_KEY: Optional[str] = None

    # Close CRM API used to verify stored credentials.
    CLOSE_API_BASE_URL: str = "https://api.close.com/api/v1"
    CLOSE_API_TIMEOUT_SECONDS: float = Field(default=10.0, gt=0)

    # Cache for credential test results (keyed by key digest, never plaintext).
    INTEGRATION_TEST_CACHE_TTL_SECONDS: int = Field(default=60, ge=0)
    INTEGRATION_TEST_CACHE_MAX_ENTRIES: int = Field(default=256, gt=0)

    # Echo SQL statements (debugging only).
    DB_ECHO: bool = False

    @field_validator("ENVIRONMENT", mode="before")
    @classmethod
    def _normalize_environment(cls, value):
        if value is None:
            return "development"
        return str(value).strip().lower()

    @field_validator("APP_BASE_URL", "CLOSE_API_BASE_URL", mode="before")
    @classmethod
    def _strip_trailing_slash(cls, value):
        if isinstance(value, str):
            return value.strip().rstrip("/")
        return value

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT in {"production", "prod"}


settings = Settings()
