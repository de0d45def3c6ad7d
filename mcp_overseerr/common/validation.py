"""Validation helpers shared across packages."""

from __future__ import annotations

from typing import Any

from .errors import MediaValidationError


def require_positive(value: int | float, *, name: str) -> int | float:
    """Return *value* if it is a positive number, otherwise raise an error."""

    if not isinstance(value, (int, float)) or isinstance(value, bool):
        raise TypeError(f"{name} must be a number")
    if value <= 0:
        raise ValueError(f"{name} must be positive")
    return value


def require_media_type(value: Any) -> str:
    if value not in ("movie", "tv"):
        raise MediaValidationError(f"mediaType must be 'movie' or 'tv', got {value!r}")
    return value


def coerce_media_id(raw_id: Any, *, name: str = "mediaId") -> int:
    """Convert a TMDB identifier to a positive integer.

    Numeric strings are accepted since MCP clients frequently send ids as
    text.
    """

    if isinstance(raw_id, bool):
        raise MediaValidationError(f"{name} must be an integer")
    if isinstance(raw_id, float) and not raw_id.is_integer():
        raise MediaValidationError(f"{name} must be an integer, got {raw_id!r}")
    if isinstance(raw_id, str):
        raw_id = raw_id.strip()
    try:
        media_id = int(raw_id)
    except (TypeError, ValueError) as exc:
        raise MediaValidationError(f"{name} must be an integer, got {raw_id!r}") from exc
    if media_id <= 0:
        raise MediaValidationError(f"{name} must be positive, got {media_id}")
    return media_id


__all__ = ["coerce_media_id", "require_media_type", "require_positive"]
