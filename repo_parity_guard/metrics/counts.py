"""Count metrics: branches, tags, commits and pull requests."""

from repo_parity_guard.metrics.base import (
    MetricResult,
    MetricSpec,
    RepoSnapshot,
    not_applicable,
    status_for,
)
from repo_parity_guard.normalize import PullRequestState


def compare_counts(label: str, source_count: int | None, dest_count: int | None) -> MetricResult:
    """
    Compare two integer counts.

    Success only when both counts are known and exactly equal. A count that
    could not be determined on either side makes the row not applicable.
    """
    if source_count is None or dest_count is None:
        return not_applicable(label, source_count, dest_count)
    return MetricResult(
        label, str(source_count), str(dest_count), status_for(source_count == dest_count)
    )


def closed_count(pull_requests: dict[PullRequestState, int]) -> int:
    """Closed means merged plus declined."""
    return pull_requests.get(PullRequestState.MERGED, 0) + pull_requests.get(
        PullRequestState.DECLINED, 0
    )


def _branches(source: RepoSnapshot, dest: RepoSnapshot) -> MetricResult:
    return compare_counts("Total Branch", len(source.branches), len(dest.branches))


def _tags(source: RepoSnapshot, dest: RepoSnapshot) -> MetricResult:
    return compare_counts("Total Tags", len(source.tags), len(dest.tags))


def _commits(source: RepoSnapshot, dest: RepoSnapshot) -> MetricResult:
    return compare_counts(
        "Total Commits in Default Branch", source.commit_count, dest.commit_count
    )


def _open_prs(source: RepoSnapshot, dest: RepoSnapshot) -> MetricResult:
    return compare_counts(
        "Open PRs",
        source.pull_requests.get(PullRequestState.OPEN, 0),
        dest.pull_requests.get(PullRequestState.OPEN, 0),
    )


def _closed_prs(source: RepoSnapshot, dest: RepoSnapshot) -> MetricResult:
    return compare_counts(
        "Closed PRs", closed_count(source.pull_requests), closed_count(dest.pull_requests)
    )


def _merged_prs(source: RepoSnapshot, dest: RepoSnapshot) -> MetricResult:
    return compare_counts(
        "Merged PRs",
        source.pull_requests.get(PullRequestState.MERGED, 0),
        dest.pull_requests.get(PullRequestState.MERGED, 0),
    )


METRICS = (
    MetricSpec(name="Total Branch", checker=_branches),
    MetricSpec(name="Total Tags", checker=_tags),
    MetricSpec(name="Total Commits in Default Branch", checker=_commits),
    MetricSpec(name="Open PRs", checker=_open_prs),
    MetricSpec(name="Closed PRs", checker=_closed_prs),
    MetricSpec(name="Merged PRs", checker=_merged_prs),
)
