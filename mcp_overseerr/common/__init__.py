"""Shared utilities for the Overseerr server package."""

from __future__ import annotations

from .cache import CacheCategory, CacheSettings, ResponseCache
from .errors import (
    EmptyCandidateSetError,
    MediaValidationError,
    OverseerrError,
    UpstreamError,
)
from .retry import BatchItemResult, RetryPolicy, batch_with_retry, with_retry
from .validation import require_positive

__all__ = [
    "BatchItemResult",
    "CacheCategory",
    "CacheSettings",
    "EmptyCandidateSetError",
    "MediaValidationError",
    "OverseerrError",
    "ResponseCache",
    "RetryPolicy",
    "UpstreamError",
    "batch_with_retry",
    "require_positive",
    "with_retry",
]
