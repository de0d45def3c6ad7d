import asyncio
import logging

import pytest

from mcp_overseerr.common.errors import EmptyCandidateSetError, UpstreamError
from mcp_overseerr.common.types import MediaDetails, SearchCandidate
from mcp_overseerr.server.matching import (
    MatchConfidence,
    resolve_season_match,
    select_match,
)

from fakes import movie_row, tv_details, tv_row


def _candidates(*rows):
    return [SearchCandidate.model_validate(row) for row in rows]


def test_select_match_requires_candidates():
    with pytest.raises(EmptyCandidateSetError):
        select_match([], "any", "Anything")


def test_typed_filter_picks_first_of_expected_type():
    candidates = _candidates(
        movie_row(1, "Attack on Titan"),
        tv_row(2, "Attack on Titan"),
        tv_row(3, "Attack on Titan: Junior High"),
    )
    selection = select_match(candidates, "tv", "Attack on Titan")
    assert selection.match.id == 2
    assert selection.confidence is MatchConfidence.HIGH
    assert [c.id for c in selection.alternates] == [1, 3]


def test_typed_filter_falls_back_to_first_row():
    candidates = _candidates(movie_row(1, "Rocky II"), movie_row(2, "Rocky"))
    selection = select_match(candidates, "tv", "Rocky")
    assert selection.match.id == 1
    assert selection.confidence is MatchConfidence.MEDIUM


def test_low_confidence_is_logged(caplog):
    candidates = _candidates(movie_row(9, "Something Else Entirely"))
    with caplog.at_level(logging.WARNING, logger="mcp_overseerr.server.matching"):
        selection = select_match(candidates, "any", "Totally Fake Show XYZ123")
    assert selection.confidence is MatchConfidence.LOW
    assert selection.match.id == 9
    assert "Low confidence match" in caplog.text


def _fetcher(payloads, calls):
    async def fetch(candidate: SearchCandidate) -> MediaDetails:
        calls.append(candidate.id)
        payload = payloads.get(candidate.id)
        if payload is None:
            raise UpstreamError("missing", status=404)
        return MediaDetails.model_validate(payload)

    return fetch


def test_season_hint_within_range_keeps_match():
    selection = select_match(_candidates(tv_row(1, "Frieren")), "tv", "Frieren")
    calls: list[int] = []
    resolution = asyncio.run(
        resolve_season_match(
            selection, 1, _fetcher({1: tv_details(1, "Frieren", {1: 28})}, calls)
        )
    )
    assert resolution.found
    assert resolution.match.id == 1
    assert not resolution.substituted
    assert calls == [1]


def test_alternate_with_enough_seasons_replaces_match(caplog):
    selection = select_match(
        _candidates(
            tv_row(10, "Attack on Titan Junior High"),
            tv_row(11, "Attack on Titan Lost Girls"),
            tv_row(12, "Attack on Titan"),
        ),
        "tv",
        "Attack on Titan",
    )
    payloads = {
        10: tv_details(10, "Attack on Titan Junior High", {1: 12}),
        12: tv_details(12, "Attack on Titan", {1: 25, 2: 12, 3: 22, 4: 30}),
    }
    calls: list[int] = []
    with caplog.at_level(logging.INFO, logger="mcp_overseerr.server.matching"):
        resolution = asyncio.run(
            resolve_season_match(selection, 4, _fetcher(payloads, calls))
        )
    assert resolution.match.id == 12
    assert resolution.substituted
    assert calls == [10, 11, 12]
    assert "using alternate" in caplog.text


def test_no_alternate_has_the_season():
    selection = select_match(
        _candidates(tv_row(1, "Short Show"), movie_row(2, "Short Show")),
        "tv",
        "Short Show",
    )
    calls: list[int] = []
    resolution = asyncio.run(
        resolve_season_match(
            selection, 5, _fetcher({1: tv_details(1, "Short Show", {1: 10})}, calls)
        )
    )
    assert not resolution.found
    assert resolution.details is None
    assert calls == [1]


def test_movie_match_ignores_season_hint():
    selection = select_match(
        _candidates(movie_row(7, "Rocky II")), "any", "Rocky II"
    )
    calls: list[int] = []
    resolution = asyncio.run(
        resolve_season_match(
            selection, 2, _fetcher({7: {"id": 7, "title": "Rocky II"}}, calls)
        )
    )
    assert resolution.match.id == 7
    assert calls == [7]
