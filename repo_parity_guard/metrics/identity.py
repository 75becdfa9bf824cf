"""Identity metrics for the last commit on the compared branch."""

from datetime import datetime, timezone

from repo_parity_guard.metrics.base import (
    MetricResult,
    MetricSpec,
    RepoSnapshot,
    display,
    not_applicable,
    status_for,
)

# Day, full month name, year: timestamps of different precision compare equal
COMMIT_DATE_FORMAT = "%d %B %Y"


def compare_identity(label: str, source_value: str | None, dest_value: str | None) -> MetricResult:
    """
    Compare two identity strings exactly.

    When neither side has a value there is nothing to compare and the row is
    not applicable. A value on only one side fails.
    """
    if not source_value and not dest_value:
        return not_applicable(label)
    return MetricResult(
        label,
        display(source_value),
        display(dest_value),
        status_for(source_value == dest_value),
    )


def format_commit_date(epoch_millis: int | None) -> str | None:
    if epoch_millis is None:
        return None
    moment = datetime.fromtimestamp(epoch_millis / 1000, tz=timezone.utc)
    return moment.strftime(COMMIT_DATE_FORMAT)


def compare_dates(label: str, source_millis: int | None, dest_millis: int | None) -> MetricResult:
    """Compare two epoch-millisecond timestamps at calendar-day granularity (UTC)."""
    return compare_identity(
        label, format_commit_date(source_millis), format_commit_date(dest_millis)
    )


def _last_commit_date(source: RepoSnapshot, dest: RepoSnapshot) -> MetricResult:
    return compare_dates(
        "Last Commit Date",
        source.last_commit.date if source.last_commit else None,
        dest.last_commit.date if dest.last_commit else None,
    )


def _last_commit_author(source: RepoSnapshot, dest: RepoSnapshot) -> MetricResult:
    return compare_identity(
        "Last Commit Author",
        source.last_commit.author if source.last_commit else None,
        dest.last_commit.author if dest.last_commit else None,
    )


def _last_commit_sha(source: RepoSnapshot, dest: RepoSnapshot) -> MetricResult:
    return compare_identity(
        "Last Commit SHA",
        source.last_commit.sha if source.last_commit else None,
        dest.last_commit.sha if dest.last_commit else None,
    )


METRICS = (
    MetricSpec(name="Last Commit Date", checker=_last_commit_date),
    MetricSpec(name="Last Commit Author", checker=_last_commit_author),
    MetricSpec(name="Last Commit SHA", checker=_last_commit_sha),
)
