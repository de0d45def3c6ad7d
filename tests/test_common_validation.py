"""Tests for shared validation helpers."""

import pytest

from mcp_overseerr.common.errors import MediaValidationError
from mcp_overseerr.common.validation import (
    coerce_media_id,
    require_media_type,
    require_positive,
)


def test_require_positive_accepts_positive_numbers() -> None:
    assert require_positive(5, name="value") == 5
    assert require_positive(0.5, name="value") == 0.5


@pytest.mark.parametrize("bad", [0, -1, -0.1])
def test_require_positive_rejects_non_positive(bad: float) -> None:
    with pytest.raises(ValueError, match="value must be positive"):
        require_positive(bad, name="value")


@pytest.mark.parametrize("bad_type", ["1", None, object(), True])
def test_require_positive_enforces_number_type(bad_type: object) -> None:
    with pytest.raises(TypeError, match="value must be a number"):
        require_positive(bad_type, name="value")  # type: ignore[arg-type]


def test_require_media_type() -> None:
    assert require_media_type("tv") == "tv"
    with pytest.raises(MediaValidationError, match="'person'"):
        require_media_type("person")


@pytest.mark.parametrize(
    "raw, expected",
    [
        (7, 7),
        (" 42 ", 42),
        (603.0, 603),
    ],
)
def test_coerce_media_id_normalizes_values(raw, expected) -> None:
    assert coerce_media_id(raw) == expected


@pytest.mark.parametrize("raw", [None, "", "not-a-number", True, 0, -3, 1.5])
def test_coerce_media_id_rejects_invalid_values(raw) -> None:
    with pytest.raises(MediaValidationError):
        coerce_media_id(raw)
