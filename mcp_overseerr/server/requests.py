"""Creating and managing Overseerr media requests."""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, Literal

from ..common.errors import MediaValidationError
from ..common.retry import RetryPolicy, batch_with_retry
from ..common.types import (
    IN_LIBRARY_STATUSES,
    MediaDetails,
    MediaRequest,
    MediaStatus,
    MediaType,
    media_status_label,
    request_body,
)
from ..common.validation import coerce_media_id, require_media_type
from .classifier import (
    DedupeStatus,
    ReasonCode,
    classify_movie,
    format_seasons,
    request_covers,
)
from .media import MediaLookup
from .models import (
    BatchSummary,
    ConfirmationMedia,
    ConfirmationRequired,
    ManageRequestsResponse,
    RequestActionResult,
    RequestBatchResponse,
    RequestOutcome,
    RequestSummary,
    batch_error,
)

logger = logging.getLogger(__name__)

SeasonSelection = Literal["all"] | Sequence[int]
RequestAction = Literal["get", "list", "approve", "decline", "delete"]

DEFAULT_CONFIRM_EPISODE_THRESHOLD = 24


@dataclass(frozen=True)
class RequestItem:
    """One entry of a batch media request."""

    media_type: MediaType
    media_id: int
    seasons: SeasonSelection | None = None
    is4k: bool = False


def expand_seasons(details: MediaDetails, seasons: SeasonSelection) -> list[int]:
    """Resolve ``"all"`` or an explicit list into concrete season numbers.

    ``"all"`` covers every declared season except season 0 (specials).
    """

    if isinstance(seasons, str):
        if seasons != "all":
            raise MediaValidationError(
                f"seasons must be 'all' or a list of season numbers, got {seasons!r}"
            )
        numbers = [season.season_number for season in details.regular_seasons]
        if not numbers and details.number_of_seasons:
            numbers = list(range(1, details.number_of_seasons + 1))
        if not numbers:
            raise MediaValidationError(
                f"{details.display_name} does not declare any regular seasons"
            )
        return sorted(numbers)

    numbers = []
    for raw in seasons:
        if isinstance(raw, bool) or not isinstance(raw, int) or raw < 0:
            raise MediaValidationError(f"invalid season number {raw!r}")
        if raw not in numbers:
            numbers.append(raw)
    if not numbers:
        raise MediaValidationError("at least one season number is required")
    declared = {season.season_number for season in details.seasons}
    missing = [n for n in numbers if declared and n not in declared]
    if missing:
        raise MediaValidationError(
            f"{details.display_name} does not declare {format_seasons(missing)}"
        )
    return sorted(numbers)


def episode_total(details: MediaDetails, season_numbers: Sequence[int]) -> int:
    total = 0
    for number in season_numbers:
        season = details.season(number)
        if season is not None:
            total += season.episode_count
    return total


def summarize_request(request: MediaRequest) -> RequestSummary:
    media = request.media
    return RequestSummary(
        request_id=request.id,
        status=request.status_label,
        media_status=media_status_label(media.status if media else None),
        media_type=media.media_type if media else None,
        tmdb_id=media.tmdb_id if media else None,
        requested_by=request.requester,
        seasons=request.requested_seasons,
        is4k=request.is4k,
        created_at=request.created_at,
        updated_at=request.updated_at,
    )


class RequestService:
    """Request creation with pre-validation and two-step confirmation."""

    def __init__(
        self,
        lookup: MediaLookup,
        *,
        retry_policy: RetryPolicy | None = None,
        confirm_episode_threshold: int = DEFAULT_CONFIRM_EPISODE_THRESHOLD,
    ) -> None:
        self.lookup = lookup
        self.retry_policy = retry_policy or RetryPolicy()
        self.confirm_episode_threshold = confirm_episode_threshold

    def _existing_tv_outcome(
        self,
        details: MediaDetails,
        season_numbers: list[int],
        *,
        whole_series: bool,
    ) -> tuple[ReasonCode | None, list[int]]:
        """Return a blocking reason, or the seasons still open to request.

        The show-level flags only apply to whole-series requests; explicit
        season lists are judged season by season like the classifier does.
        """

        info = details.media_info
        if info is None:
            return None, season_numbers
        if whole_series:
            if info.status == MediaStatus.AVAILABLE:
                return ReasonCode.ALREADY_AVAILABLE, []
            if any(not request.requested_seasons for request in info.requests):
                return ReasonCode.ALREADY_REQUESTED, []

        available = [
            n for n in season_numbers if info.season_status(n) in IN_LIBRARY_STATUSES
        ]
        open_seasons = [
            n
            for n in season_numbers
            if n not in available and not request_covers(info, n)
        ]
        if len(available) == len(season_numbers):
            return ReasonCode.ALREADY_AVAILABLE, []
        if not open_seasons:
            return ReasonCode.ALREADY_REQUESTED, []
        return None, open_seasons

    async def request_media(
        self,
        media_type: MediaType,
        media_id: int,
        *,
        seasons: SeasonSelection | None = None,
        is4k: bool = False,
        server_id: int | None = None,
        profile_id: int | None = None,
        root_folder: str | None = None,
        validate_first: bool = True,
        dry_run: bool = False,
        confirmed: bool = False,
        language: str | None = None,
    ) -> RequestOutcome | ConfirmationRequired:
        """Request a movie or TV seasons.

        TV requests need ``seasons``. Requests covering more episodes than
        the confirmation threshold return :class:`ConfirmationRequired`
        until resubmitted with ``confirmed=True``.
        """

        require_media_type(media_type)
        media_id = coerce_media_id(media_id)
        if media_type == "tv" and seasons is None:
            raise MediaValidationError(
                "seasons is required for TV requests ('all' or a list of numbers)"
            )

        details: MediaDetails | None = None
        if media_type == "tv" or validate_first:
            details = await self.lookup.details(
                media_type, media_id, language=language
            )
        title = details.display_name if details else None

        season_numbers: list[int] | None = None
        if media_type == "tv":
            assert details is not None and seasons is not None
            season_numbers = expand_seasons(details, seasons)

        if validate_first and details is not None:
            blocked_code: ReasonCode | None = None
            message = ""
            if media_type == "movie":
                verdict = classify_movie(details)
                if verdict.status is DedupeStatus.BLOCKED:
                    blocked_code = verdict.reason_code
                    message = verdict.reason or ""
            else:
                assert season_numbers is not None
                blocked_code, open_seasons = self._existing_tv_outcome(
                    details, season_numbers, whole_series=seasons == "all"
                )
                if blocked_code is not None:
                    message = (
                        f"{title} {format_seasons(season_numbers)}: "
                        f"{blocked_code.value.replace('_', ' ').lower()}"
                    )
                elif open_seasons != season_numbers:
                    logger.info(
                        "Skipping seasons of %s already tracked: %s",
                        title,
                        sorted(set(season_numbers) - set(open_seasons)),
                    )
                    season_numbers = open_seasons
            if blocked_code is not None:
                return RequestOutcome(
                    success=False,
                    status=blocked_code.value,
                    media_type=media_type,
                    media_id=media_id,
                    title=title,
                    seasons_requested=season_numbers,
                    message=message,
                )

        if media_type == "tv" and not confirmed:
            assert details is not None and season_numbers is not None
            episodes = episode_total(details, season_numbers)
            if episodes > self.confirm_episode_threshold:
                confirm_with: dict[str, Any] = {
                    "media_type": media_type,
                    "media_id": media_id,
                    "seasons": seasons if isinstance(seasons, str) else list(seasons),
                    "is4k": is4k,
                    "validate_first": validate_first,
                    "dry_run": dry_run,
                    "confirmed": True,
                }
                for key, value in (
                    ("server_id", server_id),
                    ("profile_id", profile_id),
                    ("root_folder", root_folder),
                ):
                    if value is not None:
                        confirm_with[key] = value
                return ConfirmationRequired(
                    media=ConfirmationMedia(
                        title=title or str(media_id),
                        total_seasons=len(season_numbers),
                        total_episodes=episodes,
                        requesting_seasons=season_numbers,
                    ),
                    message=(
                        f"Requesting {format_seasons(season_numbers)} of {title} "
                        f"({episodes} episodes) needs confirmation; resubmit with "
                        "confirmed=true"
                    ),
                    confirm_with=confirm_with,
                )

        label = title or f"{media_type} {media_id}"
        if dry_run:
            return RequestOutcome(
                success=True,
                status="DRY_RUN",
                media_type=media_type,
                media_id=media_id,
                title=title,
                seasons_requested=season_numbers,
                dry_run=True,
                message=f"Dry run: would request {label}",
            )

        body = request_body(
            media_type,
            media_id,
            seasons=season_numbers,
            is4k=is4k,
            server_id=server_id,
            profile_id=profile_id,
            root_folder=root_folder,
        )
        created = await self.lookup.create_request(body)
        logger.info("Created request %s for %s", created.id, label)
        return RequestOutcome(
            success=True,
            status="CREATED",
            media_type=media_type,
            media_id=media_id,
            title=title,
            request_id=created.id,
            request_status=created.status_label,
            seasons_requested=season_numbers,
            message=f"Requested {label}",
        )

    async def request_many(
        self,
        items: Sequence[RequestItem],
        *,
        server_id: int | None = None,
        profile_id: int | None = None,
        root_folder: str | None = None,
        validate_first: bool = True,
        dry_run: bool = False,
        confirmed: bool = False,
        language: str | None = None,
    ) -> RequestBatchResponse:
        """Request every item concurrently; failures do not stop the batch."""

        async def _request(item: RequestItem) -> RequestOutcome | ConfirmationRequired:
            return await self.request_media(
                item.media_type,
                item.media_id,
                seasons=item.seasons,
                is4k=item.is4k,
                server_id=server_id,
                profile_id=profile_id,
                root_folder=root_folder,
                validate_first=validate_first,
                dry_run=dry_run,
                confirmed=confirmed,
                language=language,
            )

        batch = await batch_with_retry(items, _request, self.retry_policy)
        results: list[RequestOutcome | ConfirmationRequired] = []
        errors = []
        for index, entry in enumerate(batch):
            if entry.success and entry.result is not None:
                results.append(entry.result)
                continue
            errors.append(
                batch_error(
                    index,
                    {"mediaType": entry.item.media_type, "mediaId": entry.item.media_id},
                    entry.error,
                )
            )
            results.append(
                RequestOutcome(
                    success=False,
                    status="FAILED",
                    media_type=entry.item.media_type,
                    media_id=entry.item.media_id,
                    message=entry.error_message or "request failed",
                )
            )
        failed = len(errors)
        return RequestBatchResponse(
            summary=BatchSummary(
                total=len(batch), successful=len(batch) - failed, failed=failed
            ),
            results=results,
            errors=errors,
        )

    async def manage_requests(
        self,
        action: RequestAction,
        *,
        request_id: int | None = None,
        request_ids: Sequence[int] | None = None,
        take: int = 20,
        skip: int = 0,
        filter: str = "all",
        sort: str = "added",
        summary: bool = False,
    ) -> ManageRequestsResponse:
        """Get, list, approve, decline or delete requests."""

        if action == "get":
            if request_id is None:
                raise MediaValidationError("requestId is required for action 'get'")
            request = await self.lookup.get_request(request_id)
            return ManageRequestsResponse(
                action=action, request=summarize_request(request)
            )

        if action == "list":
            listing = await self.lookup.list_requests(
                take=take, skip=skip, filter=filter, sort=sort
            )
            requests = [summarize_request(r) for r in listing.results]
            counts = dict(Counter(r.status for r in requests)) if summary else None
            return ManageRequestsResponse(
                action=action,
                requests=requests,
                page_info=listing.page_info.model_dump(by_alias=True),
                counts=counts,
            )

        if action not in ("approve", "decline", "delete"):
            raise MediaValidationError(f"unknown request action {action!r}")

        if request_ids:
            return await self._mutate_many(action, list(request_ids))
        if request_id is None:
            raise MediaValidationError(
                f"requestId or requestIds is required for action {action!r}"
            )
        result = await self._mutate(action, request_id)
        return ManageRequestsResponse(
            action=action,
            message=result.message,
            results=[result],
        )

    async def _mutate(self, action: str, request_id: int) -> RequestActionResult:
        if action == "delete":
            await self.lookup.delete_request(request_id)
            return RequestActionResult(
                request_id=request_id,
                success=True,
                message=f"Request {request_id} deleted",
            )
        if action == "approve":
            updated = await self.lookup.approve_request(request_id)
        else:
            updated = await self.lookup.decline_request(request_id)
        return RequestActionResult(
            request_id=request_id,
            success=True,
            status=updated.status_label,
            message=f"Request {request_id} {action}d",
        )

    async def _mutate_many(
        self, action: str, request_ids: list[int]
    ) -> ManageRequestsResponse:
        batch = await batch_with_retry(
            request_ids,
            lambda request_id: self._mutate(action, request_id),
            self.retry_policy,
        )
        results: list[RequestActionResult] = []
        errors = []
        for index, entry in enumerate(batch):
            if entry.success and entry.result is not None:
                results.append(entry.result)
                continue
            errors.append(batch_error(index, entry.item, entry.error))
            results.append(
                RequestActionResult(
                    request_id=entry.item,
                    success=False,
                    message=entry.error_message or f"{action} failed",
                )
            )
        failed = len(errors)
        return ManageRequestsResponse(
            action=action,
            success=failed == 0,
            message=f"{len(batch) - failed}/{len(batch)} requests {action}d",
            results=results,
            summary=BatchSummary(
                total=len(batch), successful=len(batch) - failed, failed=failed
            ),
            errors=errors,
        )


__all__ = [
    "DEFAULT_CONFIRM_EPISODE_THRESHOLD",
    "RequestAction",
    "RequestItem",
    "RequestService",
    "SeasonSelection",
    "episode_total",
    "expand_seasons",
    "summarize_request",
]
