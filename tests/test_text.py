import pytest

from mcp_overseerr.common.text import (
    extract_season_number,
    infer_expected_media_type,
    is_sequel_title,
    normalize_title,
    title_similarity,
)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("Attack on Titan Season 4", "Attack on Titan"),
        ("My Hero Academia Season 7", "My Hero Academia"),
        ("Frieren (Season 2)", "Frieren"),
        ("Vinland Saga: Season 2", "Vinland Saga"),
        ("Mob Psycho 100 III", "Mob Psycho 100"),
        ("Mob Psycho 100", "Mob Psycho 100"),
        ("Spy x Family Part 2", "Spy x Family"),
        ("Kaguya-sama 3rd Season", "Kaguya-sama"),
        ("Attack on Titan The Final Season", "Attack on Titan"),
        ("The Matrix (1999)", "The Matrix"),
        ("Overlord IV (2022)", "Overlord"),
        ("Dr. Stone S3", "Dr. Stone"),
        ("Dr. Stone S 3", "Dr. Stone"),
        ("Ocean's 11", "Ocean's 11"),
        ("  Blade   Runner  ", "Blade Runner"),
    ],
)
def test_normalize_title(raw, expected):
    assert normalize_title(raw) == expected


def test_normalize_title_is_idempotent():
    for raw in (
        "Re:Zero Season 3 (2024)",
        "Oshi no Ko Season 2 -",
        "Demon Slayer Part 2 Season 3",
    ):
        once = normalize_title(raw)
        assert normalize_title(once) == once


def test_normalize_title_never_returns_empty():
    assert normalize_title("Season 2") == "Season 2"


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("Attack on Titan Season 4", 4),
        ("Mob Psycho 100 III", 3),
        ("Overlord IV (2022)", 4),
        ("Dr. Stone S3", 3),
        ("Dr. Stone S 3", 3),
        ("Spy x Family Part 2", 2),
        ("Kaguya-sama 3rd Season", 3),
        ("Mob Psycho 100", None),
        ("The Matrix (1999)", None),
        ("Ocean's 11", None),
    ],
)
def test_extract_season_number(raw, expected):
    assert extract_season_number(raw) == expected


def test_roman_numerals_are_case_sensitive():
    assert extract_season_number("Bleach iii") is None


def test_sequel_and_expected_type():
    assert is_sequel_title("Attack on Titan The Final Season")
    assert is_sequel_title("Overlord II")
    assert not is_sequel_title("Overlord I")
    assert is_sequel_title("Dr. Stone S 2")
    assert not is_sequel_title("Dr. Stone S 1")
    assert infer_expected_media_type("Attack on Titan Season 4") == "tv"
    assert infer_expected_media_type("Attack on Titan Final Season") == "tv"
    assert infer_expected_media_type("The Matrix (1999)") == "any"


def test_title_similarity():
    assert title_similarity("The Matrix", "the matrix") == 1.0
    assert title_similarity("The Matrix Reloaded", "The Matrix") == 0.9
    assert title_similarity("", "The Matrix") == 0.0
    assert title_similarity("Blade Runner", "Runner Blade 2049") == pytest.approx(
        0.8
    )
    assert title_similarity("Totally Fake Show", "Unrelated Movie") == 0.0
