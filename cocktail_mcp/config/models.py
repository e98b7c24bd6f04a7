"""Config models and loader.

Settings come from the environment (prefix ``BAR_ASSISTANT_``) or a ``.env``
file in the working directory. Cache sizing and TTLs are fixed here at
startup; tool parameters never change them.
"""

from __future__ import annotations

from typing import Optional
from urllib.parse import urlparse

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class EnvSettings(BaseSettings):
    """Environment-driven settings and .env support.

    Attributes
    ----------
    url: Optional[str]
        Base URL of the Bar Assistant instance. Required to run the server.
    token: Optional[str]
        Bearer token for the Bar Assistant API.
    bar_id: str
        Bar selected through the ``Bar-Assistant-Bar-Id`` header.
    timeout_seconds: float
        HTTP request timeout for adapter operations.
    max_retries: int
        Retries for transient upstream failures (timeouts, 429, 5xx).
    cache_ttl_seconds: float
        TTL of cached full recipes.
    cache_max_size: int
        Capacity of each cache.
    search_cache_ttl_seconds: float
        TTL of memoized search results.
    batch_chunk_size: int
        Maximum concurrent detail fetches during a batch.
    max_batch_size: int
        Maximum references accepted by one batch request.
    log_level: str
        Logging level name (e.g., "DEBUG", "INFO"). Defaults to "INFO".
    """

    model_config = SettingsConfigDict(
        env_file=".env", env_prefix="BAR_ASSISTANT_", extra="ignore"
    )

    url: Optional[str] = Field(None, description="Bar Assistant base URL")
    token: Optional[str] = Field(None, description="Bar Assistant API token")
    bar_id: str = Field("1", min_length=1)
    timeout_seconds: float = Field(30, gt=0)
    max_retries: int = Field(1, ge=0, description="Number of retry attempts")
    backoff_initial_ms: int = Field(
        200, ge=0, description="Initial backoff in milliseconds"
    )
    backoff_multiplier: float = Field(
        2.0, ge=1.0, description="Backoff multiplier per attempt"
    )

    cache_ttl_seconds: float = Field(300, gt=0)
    cache_max_size: int = Field(1000, ge=1)
    search_cache_ttl_seconds: float = Field(300, gt=0)
    batch_chunk_size: int = Field(5, ge=1, le=50)
    max_batch_size: int = Field(20, ge=1)

    log_level: str = Field("INFO")

    @field_validator("url")
    @classmethod
    def _check_url(cls, value: Optional[str]) -> Optional[str]:
        if value is None or not value.strip():
            return None
        value = value.strip()
        parsed = urlparse(value)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError(f"invalid Bar Assistant URL: {value!r}")
        return value.rstrip("/")

    @field_validator("log_level")
    @classmethod
    def _upper_level(cls, value: str) -> str:
        return value.upper()


def load_settings(**overrides: object) -> EnvSettings:
    """Load and validate settings; keyword overrides win over the environment."""
    return EnvSettings(**overrides)  # type: ignore[arg-type]
