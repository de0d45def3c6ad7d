"""Bulk title classification against an Overseerr instance.

Each title goes through normalize -> cached search -> match selection ->
season validation (TV) -> availability classification. Titles run
concurrently through :func:`batch_with_retry`; a title that still fails
after its retries is reported as ``LOOKUP_FAILED`` without affecting the
others. Actionable titles can then be requested in a second phase.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from ..common.retry import RetryPolicy, batch_with_retry
from ..common.text import (
    extract_season_number,
    infer_expected_media_type,
    normalize_title,
)
from ..common.types import MediaDetails, SearchCandidate
from .classifier import Verdict, classify, lookup_failed, not_found
from .details import MediaField, enriched_details
from .matching import MatchConfidence, resolve_season_match, select_match
from .media import MediaLookup
from .models import (
    AutoRequestItem,
    AutoRequestReport,
    DedupeReport,
    DedupeResult,
    DedupeSummary,
    RequestOutcome,
    batch_error,
)
from .requests import RequestService, SeasonSelection

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DetailOptions:
    """Which detail fields to attach to each classified title."""

    fields: tuple[MediaField, ...] = ()
    include_season: bool = True


@dataclass(frozen=True)
class RequestDefaults:
    """Request settings applied during the auto-request phase."""

    seasons: SeasonSelection = "all"
    is4k: bool = False
    server_id: int | None = None
    profile_id: int | None = None
    root_folder: str | None = None
    dry_run: bool = False


@dataclass(frozen=True)
class DedupeOptions:
    auto_normalize: bool = True
    auto_request: bool = False
    language: str | None = None
    include_details: DetailOptions | None = None
    request_defaults: RequestDefaults = field(default_factory=RequestDefaults)


def _result(
    title: str,
    verdict: Verdict,
    *,
    match: SearchCandidate | None = None,
    season_hint: int | None = None,
) -> DedupeResult:
    return DedupeResult(
        title=title,
        matched_id=match.id if match else None,
        matched_title=match.display_title if match else None,
        media_type=match.media_type if match else None,
        status=verdict.status.value,
        reason_code=verdict.reason_code.value,
        is_actionable=verdict.is_actionable,
        reason=verdict.reason,
        franchise_summary=verdict.franchise_summary,
        requested_season=season_hint,
        open_seasons=list(verdict.open_seasons) if verdict.open_seasons else None,
    )


def summarize(
    results: Sequence[DedupeResult], *, failed: int = 0
) -> DedupeSummary:
    total = len(results)
    passed = sum(1 for r in results if r.status == "pass")
    return DedupeSummary(
        total=total,
        passed=passed,
        blocked=total - passed,
        actionable=sum(1 for r in results if r.is_actionable),
        pass_rate=f"{passed / total * 100:.1f}%" if total else "0%",
        successful=total - failed,
        failed=failed,
    )


class DedupeOrchestrator:
    """Classify batches of free-text titles and optionally request them."""

    def __init__(
        self,
        lookup: MediaLookup,
        requests: RequestService,
        *,
        retry_policy: RetryPolicy | None = None,
    ) -> None:
        self.lookup = lookup
        self.requests = requests
        self.retry_policy = retry_policy or RetryPolicy()

    async def classify_title(
        self, title: str, options: DedupeOptions | None = None
    ) -> DedupeResult:
        """Classify one title; lookup failures propagate to the caller."""

        options = options or DedupeOptions()
        raw = " ".join(title.split())
        if not raw:
            return _result(title, not_found("Empty title"))

        season_hint = extract_season_number(raw)
        query = normalize_title(raw) if options.auto_normalize else raw
        expected_type = infer_expected_media_type(raw)

        response = await self.lookup.search(query, language=options.language)
        candidates = response.media_results
        if not candidates:
            return _result(
                title,
                not_found(f"No search results for {query!r}"),
                season_hint=season_hint,
            )

        selection = select_match(candidates, expected_type, query)

        async def _fetch(candidate: SearchCandidate) -> MediaDetails:
            return await self.lookup.details(
                candidate.media_type, candidate.id, language=options.language
            )

        resolution = await resolve_season_match(selection, season_hint, _fetch)
        if not resolution.found:
            return _result(
                title,
                not_found(
                    f"No TV match for {query!r} declares Season {season_hint}"
                ),
                season_hint=season_hint,
            )
        match = resolution.match
        details = resolution.details
        assert match is not None and details is not None

        effective_hint = season_hint if match.media_type == "tv" else None
        verdict = classify(match.media_type, effective_hint, details)
        result = _result(title, verdict, match=match, season_hint=effective_hint)
        result.confidence = selection.confidence.value

        notes: list[str] = []
        if resolution.substituted:
            notes.append(
                f"First match {selection.match.display_title!r} has too few "
                f"seasons; matched {match.display_title!r} instead"
            )
        elif selection.confidence is MatchConfidence.LOW:
            notes.append(
                f"Low confidence match {match.display_title!r}; verify before "
                "requesting"
            )
        if notes:
            result.note = "; ".join(notes)

        if options.include_details is not None:
            result.enriched_details = enriched_details(
                details,
                options.include_details.fields,
                season_hint=effective_hint,
                include_season=options.include_details.include_season,
            )
        return result

    async def classify_titles(
        self, titles: Sequence[str], options: DedupeOptions | None = None
    ) -> DedupeReport:
        """Classify every title, returning one result per input in order."""

        options = options or DedupeOptions()
        batch = await batch_with_retry(
            list(titles),
            lambda title: self.classify_title(title, options),
            self.retry_policy,
        )

        results: list[DedupeResult] = []
        errors = []
        for index, entry in enumerate(batch):
            if entry.success and entry.result is not None:
                results.append(entry.result)
                continue
            errors.append(batch_error(index, entry.item, entry.error))
            results.append(
                _result(
                    entry.item,
                    lookup_failed(entry.error_message or "lookup failed"),
                    season_hint=extract_season_number(entry.item),
                )
            )

        report = DedupeReport(
            summary=summarize(results, failed=len(errors)),
            results=results,
            errors=errors,
        )
        logger.info(
            "Classified %d titles: %d pass, %d blocked, %d lookup failures",
            report.summary.total,
            report.summary.passed,
            report.summary.blocked,
            len(errors),
        )
        if options.auto_request:
            report.auto_request = await self.auto_request(results, options)
        return report

    async def auto_request(
        self, results: Sequence[DedupeResult], options: DedupeOptions
    ) -> AutoRequestReport:
        """Submit requests for every actionable result."""

        defaults = options.request_defaults
        targets = [
            r
            for r in results
            if r.is_actionable and r.matched_id is not None and r.media_type
        ]

        async def _request(result: DedupeResult) -> AutoRequestItem:
            assert result.media_type is not None and result.matched_id is not None
            seasons: SeasonSelection | None = None
            if result.media_type == "tv":
                if result.requested_season is not None:
                    seasons = [result.requested_season]
                elif result.open_seasons:
                    seasons = result.open_seasons
                else:
                    seasons = defaults.seasons
            outcome = await self.requests.request_media(
                result.media_type,
                result.matched_id,
                seasons=seasons,
                is4k=defaults.is4k,
                server_id=defaults.server_id,
                profile_id=defaults.profile_id,
                root_folder=defaults.root_folder,
                validate_first=False,
                dry_run=defaults.dry_run,
                confirmed=True,
                language=options.language,
            )
            assert isinstance(outcome, RequestOutcome)
            return AutoRequestItem(
                title=result.title,
                media_type=result.media_type,
                media_id=result.matched_id,
                success=outcome.success,
                dry_run=outcome.dry_run,
                request_id=outcome.request_id,
                seasons=outcome.seasons_requested,
                message=outcome.message,
            )

        batch = await batch_with_retry(targets, _request, self.retry_policy)
        items: list[AutoRequestItem] = []
        for entry in batch:
            if entry.success and entry.result is not None:
                items.append(entry.result)
                continue
            items.append(
                AutoRequestItem(
                    title=entry.item.title,
                    media_type=entry.item.media_type,
                    media_id=entry.item.matched_id,
                    success=False,
                    dry_run=defaults.dry_run,
                    message=entry.error_message or "request failed",
                )
            )
        succeeded = sum(1 for item in items if item.success)
        return AutoRequestReport(
            attempted=len(items),
            succeeded=succeeded,
            failed=len(items) - succeeded,
            dry_run=defaults.dry_run,
            results=items,
        )


__all__ = [
    "DedupeOptions",
    "DedupeOrchestrator",
    "DetailOptions",
    "RequestDefaults",
    "summarize",
]
