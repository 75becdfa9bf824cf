"""
Tests for last-commit identity metrics.
"""

import pytest

from repo_parity_guard.metrics.base import Status
from repo_parity_guard.metrics.identity import (
    compare_dates,
    compare_identity,
    format_commit_date,
)
from repo_parity_guard.normalize import to_epoch_millis


def test_format_commit_date():
    assert format_commit_date(1700000000000) == "14 November 2023"
    assert format_commit_date(None) is None


@pytest.mark.parametrize(
    "dest",
    ["2023-11-14T22:13:20Z", "2023-11-14T23:59:59+00:00", "2023-11-14T08:00:00.123Z"],
)
def test_same_day_different_precision_matches(dest):
    """Test second vs millisecond precision and time of day do not matter."""
    result = compare_dates("Last Commit Date", 1700000000123, to_epoch_millis(dest))
    assert result.status is Status.SUCCESS
    assert result.source_value == "14 November 2023"


def test_offset_is_normalized_to_utc():
    """Test 01:00+02:00 on the 15th is the 14th in UTC."""
    source = to_epoch_millis("2023-11-14T23:00:00Z")
    dest = to_epoch_millis("2023-11-15T01:00:00+02:00")
    assert compare_dates("Last Commit Date", source, dest).status is Status.SUCCESS


def test_different_day_fails():
    result = compare_dates(
        "Last Commit Date",
        to_epoch_millis("2023-11-14T12:00:00Z"),
        to_epoch_millis("2023-11-15T12:00:00Z"),
    )
    assert result.status is Status.FAILED
    assert result.dest_value == "15 November 2023"


def test_compare_identity():
    assert compare_identity("Last Commit SHA", "a" * 40, "a" * 40).status is Status.SUCCESS
    assert compare_identity("Last Commit SHA", "a" * 40, "b" * 40).status is Status.FAILED
    assert compare_identity("Last Commit SHA", "abc", None).status is Status.FAILED
    assert compare_identity("Last Commit SHA", None, None).status is Status.NOT_APPLICABLE


def test_author_comparison_is_exact():
    assert compare_identity("Last Commit Author", "Jane Doe", "jane doe").status is Status.FAILED
