"""Default branch resolution and the default branch name metric."""

from repo_parity_guard.metrics.base import MetricResult, MetricSpec, RepoSnapshot
from repo_parity_guard.metrics.identity import compare_identity
from repo_parity_guard.normalize import Branch

FALLBACK_DEFAULT_BRANCH = "master"


def resolve_source_default(branches: list[Branch], declared: str | None = None) -> str:
    """
    Pick the source repository's default branch.

    The branch flagged ``isDefault`` wins, then the branch the server
    declares as default. Otherwise the conventional ``master`` is assumed.
    """
    for branch in branches:
        if branch.is_default:
            return branch.name
    return declared or FALLBACK_DEFAULT_BRANCH


def resolve_destination_branch(
    source_default: str,
    dest_branches: list[Branch],
    declared_default: str | None,
) -> str | None:
    """
    Choose the destination branch that commit metrics are computed on.

    Precedence:
    1. A destination branch named like the source default
    2. The destination repository's declared default branch, if it exists
    3. The first branch the destination lists

    GitHub declares a default branch even for an empty repository, so the
    declared name only counts when it is among the listed branches.

    Returns:
        Branch name, or None when the destination has no branches at all.
    """
    names = [branch.name for branch in dest_branches]
    if not names:
        return None
    if source_default in names:
        return source_default
    if declared_default in names:
        return declared_default
    return names[0]


def _check(source: RepoSnapshot, dest: RepoSnapshot) -> MetricResult:
    return compare_identity("Default Branch Name", source.default_branch, dest.default_branch)


METRIC = MetricSpec(
    name="Default Branch Name",
    checker=_check,
)
