"""
Shared metric types and formatting helpers.
"""

from enum import Enum
from typing import Any, Callable, NamedTuple

from repo_parity_guard.normalize import Branch, Commit, PullRequestState, Tag

PLACEHOLDER = "-"


class Status(str, Enum):
    """Verdict attached to every reconciled value."""

    SUCCESS = "Validation Success"
    FAILED = "Validation Failed"
    NOT_APPLICABLE = "Not Applicable"
    TEAM_NOT_PRESENT = "Team not present"
    MISSING_IN_SOURCE = "Missing in source"
    MISSING_IN_DEST = "Missing in destination"


class MetricResult(NamedTuple):
    """One row of the repository validation table."""

    label: str
    source_value: str
    dest_value: str
    status: Status


class RepoSnapshot(NamedTuple):
    """Everything fetched from one side that the summary metrics compare."""

    branches: list[Branch]
    tags: list[Tag]
    default_branch: str | None  # as declared by the repository
    compared_branch: str | None  # branch used for commit metrics
    commit_count: int | None
    last_commit: Commit | None
    pull_requests: dict[PullRequestState, int]
    codeowners_present: bool | None = None


class MetricSpec(NamedTuple):
    """Specification for a two-sided metric check."""

    name: str
    checker: Callable[[RepoSnapshot, RepoSnapshot], MetricResult]
    on_error: Callable[[Exception], MetricResult] | None = None


def status_for(matches: bool) -> Status:
    return Status.SUCCESS if matches else Status.FAILED


def display(value: Any) -> str:
    """Render a metric value as a table cell."""
    if value is None or value == "":
        return PLACEHOLDER
    if isinstance(value, bool):
        return "Yes" if value else "No"
    if isinstance(value, (list, tuple, set, frozenset)):
        return ", ".join(str(v) for v in value) if value else PLACEHOLDER
    return str(value)


def not_applicable(label: str, source_value: Any = None, dest_value: Any = None) -> MetricResult:
    return MetricResult(label, display(source_value), display(dest_value), Status.NOT_APPLICABLE)


def error_result(label: str, error: Exception) -> MetricResult:
    return MetricResult(
        label, PLACEHOLDER, f"Analysis incomplete - {error}", Status.NOT_APPLICABLE
    )
