"""
client/config.py -- Configuration for the client-side session manager.

Same pattern as core/config.py: a pydantic-settings class read from the
environment (prefix BARNACLE_) with every option enumerated and validated at
construction. No free-form options bags.
"""

from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ClientSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="BARNACLE_", extra="ignore")

    # Base URL including the /api prefix, e.g. http://localhost:8000/api
    api_url: str = "http://localhost:8000/api"
    # Persistent ("remember me") token store.
    token_file: Path = Path.home() / ".barnacle" / "session.json"
    token_key: str = "authToken"
    request_timeout: float = 10.0
    # Extra attempts for profile verification after a non-auth failure.
    # 401/403 are never retried.
    verify_retries: int = 2
    query_stale_seconds: int = 30 * 60
    query_gc_seconds: int = 60 * 60

    @field_validator("api_url")
    @classmethod
    def check_api_url(cls, value: str) -> str:
        if not value.startswith(("http://", "https://")):
            raise ValueError("BARNACLE_API_URL must be an http(s) URL")
        return value.rstrip("/")

    @field_validator("request_timeout")
    @classmethod
    def check_timeout(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("BARNACLE_REQUEST_TIMEOUT must be positive")
        return value

    @field_validator("verify_retries", "query_stale_seconds", "query_gc_seconds")
    @classmethod
    def check_non_negative(cls, value: int) -> int:
        if value < 0:
            raise ValueError("must not be negative")
        return value
