from __future__ import annotations

import json
from collections.abc import Sequence
from typing import Annotated, Any

from pydantic import AnyHttpUrl, Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from ..common.cache import CacheCategory, CacheSettings
from ..common.retry import DEFAULT_BACKOFF, RetryPolicy

RawBackoff = str | Sequence[Any] | None


class Settings(BaseSettings):
    """Application configuration settings."""

    overseerr_url: AnyHttpUrl | None = Field(
        default=None, validation_alias="OVERSEERR_URL"
    )
    overseerr_api_key: str | None = Field(
        default=None, validation_alias="OVERSEERR_API_KEY"
    )
    http_timeout: float = Field(default=30.0, validation_alias="OVERSEERR_TIMEOUT", gt=0)
    default_language: str = Field(default="en", validation_alias="OVERSEERR_LANGUAGE")
    cache_enabled: bool = Field(default=True, validation_alias="CACHE_ENABLED")
    cache_search_ttl: float = Field(
        default=300.0, validation_alias="CACHE_SEARCH_TTL", gt=0
    )
    cache_media_ttl: float = Field(
        default=1800.0, validation_alias="CACHE_MEDIA_TTL", gt=0
    )
    cache_requests_ttl: float = Field(
        default=60.0, validation_alias="CACHE_REQUESTS_TTL", gt=0
    )
    cache_max_size: int = Field(default=1000, validation_alias="CACHE_MAX_SIZE", gt=0)
    retry_max_attempts: int = Field(
        default=3, validation_alias="RETRY_MAX_ATTEMPTS", ge=1
    )
    retry_backoff: Annotated[tuple[float, ...], NoDecode] = Field(
        default=DEFAULT_BACKOFF, validation_alias="RETRY_BACKOFF"
    )
    confirm_episode_threshold: int = Field(
        default=24, validation_alias="CONFIRM_EPISODE_THRESHOLD", ge=0
    )

    @field_validator("retry_backoff", mode="before")
    @classmethod
    def _parse_backoff(cls, value: RawBackoff) -> tuple[float, ...]:
        if value in (None, ""):
            return DEFAULT_BACKOFF

        if isinstance(value, str):
            text = value.strip()
            if text.startswith("["):
                try:
                    loaded = json.loads(text)
                except json.JSONDecodeError as exc:
                    raise ValueError("RETRY_BACKOFF must be valid JSON") from exc
                if not isinstance(loaded, list):
                    raise ValueError("RETRY_BACKOFF JSON must decode to a list")
                value = loaded
            else:
                value = [part for part in text.split(",") if part.strip()]

        if not isinstance(value, Sequence):
            raise ValueError("RETRY_BACKOFF must be a list of delays")

        delays: list[float] = []
        for raw_delay in value:
            try:
                delay = float(raw_delay)
            except (TypeError, ValueError) as exc:
                raise ValueError(
                    f"RETRY_BACKOFF entries must be numbers, got {raw_delay!r}"
                ) from exc
            if delay < 0:
                raise ValueError("RETRY_BACKOFF entries must not be negative")
            delays.append(delay)
        if not delays:
            raise ValueError("RETRY_BACKOFF must contain at least one delay")
        return tuple(delays)

    @property
    def api_base_url(self) -> str | None:
        if self.overseerr_url is None:
            return None
        return f"{str(self.overseerr_url).rstrip('/')}/api/v1"

    def cache_settings(self) -> CacheSettings:
        """Return the cache configuration derived from these settings."""

        return CacheSettings(
            enabled=self.cache_enabled,
            ttl={
                CacheCategory.SEARCH: self.cache_search_ttl,
                CacheCategory.MEDIA_DETAILS: self.cache_media_ttl,
                CacheCategory.REQUESTS: self.cache_requests_ttl,
            },
            max_size=self.cache_max_size,
        )

    def retry_policy(self) -> RetryPolicy:
        """Return the retry policy derived from these settings."""

        return RetryPolicy(
            max_attempts=self.retry_max_attempts,
            backoff=self.retry_backoff,
        )

    model_config = SettingsConfigDict(case_sensitive=False)
