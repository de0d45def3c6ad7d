"""Typed response models shared across the Overseerr server package."""

from __future__ import annotations

from collections.abc import ItemsView, Iterator, KeysView, Mapping, ValuesView
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _DictLikeModel(BaseModel, Mapping[str, object]):
    """Base model that preserves dict-like ergonomics for responses.

    Attributes are snake_case in Python and serialise as camelCase.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        extra="allow",
        validate_by_name=True,
        validate_by_alias=True,
        serialize_by_alias=True,
    )

    def _as_dict(self) -> dict[str, object]:
        return self.model_dump(mode="python")

    def __getitem__(self, key: str) -> object:
        return self._as_dict()[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._as_dict())

    def __len__(self) -> int:
        return len(self._as_dict())

    def __contains__(self, key: object) -> bool:
        if not isinstance(key, str):
            return False
        return key in self._as_dict()

    def get(self, key: str, default: object | None = None) -> object | None:
        return self._as_dict().get(key, default)

    def items(self) -> ItemsView[str, object]:
        return self._as_dict().items()

    def keys(self) -> KeysView[str]:
        return self._as_dict().keys()

    def values(self) -> ValuesView[object]:
        return self._as_dict().values()


class BatchError(_DictLikeModel):
    """A failed batch item, reported alongside the full results list."""

    index: int
    item: Any = None
    error: str
    status: int | None = None


class BatchSummary(_DictLikeModel):
    total: int = 0
    successful: int = 0
    failed: int = 0


class DedupeResult(_DictLikeModel):
    """Verdict for one input title."""

    title: str
    matched_id: int | None = None
    matched_title: str | None = None
    media_type: Literal["movie", "tv"] | None = None
    status: Literal["pass", "blocked"]
    reason_code: str
    is_actionable: bool = False
    reason: str | None = None
    franchise_summary: str | None = None
    requested_season: int | None = None
    open_seasons: list[int] | None = None
    confidence: str | None = None
    note: str | None = None
    enriched_details: dict[str, Any] | None = None


class DedupeSummary(_DictLikeModel):
    total: int = 0
    passed: int = Field(default=0, alias="pass")
    blocked: int = 0
    actionable: int = 0
    pass_rate: str = "0%"
    successful: int = 0
    failed: int = 0


class AutoRequestItem(_DictLikeModel):
    title: str
    media_type: Literal["movie", "tv"]
    media_id: int
    success: bool
    dry_run: bool = False
    request_id: int | None = None
    seasons: list[int] | None = None
    message: str


class AutoRequestReport(_DictLikeModel):
    attempted: int = 0
    succeeded: int = 0
    failed: int = 0
    dry_run: bool = False
    results: list[AutoRequestItem] = Field(default_factory=list)


class DedupeReport(_DictLikeModel):
    """Response of the bulk title classification tool."""

    summary: DedupeSummary
    results: list[DedupeResult] = Field(default_factory=list)
    errors: list[BatchError] = Field(default_factory=list)
    auto_request: AutoRequestReport | None = None


RequestOutcomeStatus = Literal[
    "CREATED", "DRY_RUN", "ALREADY_AVAILABLE", "ALREADY_REQUESTED", "FAILED"
]


class RequestOutcome(_DictLikeModel):
    """Result of a single media request attempt."""

    success: bool
    status: RequestOutcomeStatus
    media_type: Literal["movie", "tv"]
    media_id: int
    title: str | None = None
    request_id: int | None = None
    request_status: str | None = None
    seasons_requested: list[int] | None = None
    dry_run: bool = False
    message: str


class ConfirmationMedia(_DictLikeModel):
    title: str
    total_seasons: int
    total_episodes: int
    requesting_seasons: list[int]


class ConfirmationRequired(_DictLikeModel):
    """Returned instead of creating a large request until it is confirmed."""

    requires_confirmation: Literal[True] = True
    media: ConfirmationMedia
    message: str
    confirm_with: dict[str, Any]


class RequestBatchResponse(_DictLikeModel):
    summary: BatchSummary
    results: list[RequestOutcome | ConfirmationRequired] = Field(default_factory=list)
    errors: list[BatchError] = Field(default_factory=list)


class RequestSummary(_DictLikeModel):
    request_id: int
    status: str
    media_status: str
    media_type: str | None = None
    tmdb_id: int | None = None
    requested_by: str | None = None
    seasons: list[int] = Field(default_factory=list)
    is4k: bool = False
    created_at: str | None = None
    updated_at: str | None = None


class RequestActionResult(_DictLikeModel):
    request_id: int
    success: bool
    status: str | None = None
    message: str


class ManageRequestsResponse(_DictLikeModel):
    """Response of the request management tool for every action."""

    action: Literal["get", "list", "approve", "decline", "delete"]
    success: bool = True
    message: str | None = None
    request: RequestSummary | None = None
    requests: list[RequestSummary] | None = None
    page_info: dict[str, int] | None = None
    counts: dict[str, int] | None = None
    results: list[RequestActionResult] | None = None
    summary: BatchSummary | None = None
    errors: list[BatchError] = Field(default_factory=list)


class MediaDetailsResponse(_DictLikeModel):
    media_type: Literal["movie", "tv"]
    media_id: int
    level: str
    details: dict[str, Any] = Field(default_factory=dict)
    error: str | None = None


class MediaDetailsBatchResponse(_DictLikeModel):
    summary: BatchSummary
    results: list[MediaDetailsResponse] = Field(default_factory=list)
    errors: list[BatchError] = Field(default_factory=list)


class SearchResultItem(_DictLikeModel):
    id: int
    type: str
    title: str
    year: str | None = None
    rating: float | None = None
    status: str | None = None


class SearchMediaResponse(_DictLikeModel):
    query: str
    page: int = 1
    total_pages: int = 0
    total_results: int = 0
    results: list[SearchResultItem] = Field(default_factory=list)


class MediaItemInput(BaseModel):
    """One title addressed by TMDB id in a batch tool call."""

    model_config = ConfigDict(
        alias_generator=to_camel, validate_by_name=True, validate_by_alias=True
    )

    media_type: Literal["movie", "tv"]
    media_id: int = Field(gt=0)
    seasons: Literal["all"] | list[int] | None = None
    is4k: bool = False


def batch_error(index: int, item: Any, error: BaseException | None) -> BatchError:
    """Describe a failed batch item for the ``errors`` array."""

    status = getattr(error, "status", None)
    message = (str(error) or type(error).__name__) if error else "unknown error"
    return BatchError(
        index=index,
        item=item,
        error=message,
        status=status if isinstance(status, int) else None,
    )


__all__ = [
    "AutoRequestItem",
    "AutoRequestReport",
    "BatchError",
    "BatchSummary",
    "ConfirmationMedia",
    "ConfirmationRequired",
    "DedupeReport",
    "DedupeResult",
    "DedupeSummary",
    "ManageRequestsResponse",
    "MediaItemInput",
    "MediaDetailsBatchResponse",
    "MediaDetailsResponse",
    "RequestActionResult",
    "RequestBatchResponse",
    "RequestOutcome",
    "RequestSummary",
    "SearchMediaResponse",
    "SearchResultItem",
    "batch_error",
]
