"""
Validation orchestration.

Fetches both sides one request at a time, builds the two snapshots, runs the
metric registry and assembles the ValidationReport. The only value shared
between metrics is the destination branch resolved once from the source
default branch.
"""

import logging
from typing import NamedTuple

from repo_parity_guard.config import Settings
from repo_parity_guard.coordinates import RepoCoordinate
from repo_parity_guard.expectations import ProjectExpectations
from repo_parity_guard.git import inject_credentials, list_lfs_objects, temporary_clone
from repo_parity_guard.metrics import run_metrics
from repo_parity_guard.metrics.base import RepoSnapshot
from repo_parity_guard.metrics.codeowners import validate_codeowners
from repo_parity_guard.metrics.custom_properties import validate_expected_properties
from repo_parity_guard.metrics.default_branch import (
    resolve_destination_branch,
    resolve_source_default,
)
from repo_parity_guard.metrics.lfs import LfsComparison, compare_lfs
from repo_parity_guard.metrics.membership import MembershipResult, compare_membership
from repo_parity_guard.metrics.team_access import validate_team_access
from repo_parity_guard.metrics.webhooks import validate_expected_webhook
from repo_parity_guard.normalize import (
    Branch,
    LfsObject,
    Tag,
    Webhook,
    merge_codeowners,
)
from repo_parity_guard.report import ValidationReport
from repo_parity_guard.vcs.bitbucket import BitbucketServerProvider
from repo_parity_guard.vcs.github import GitHubProvider

logger = logging.getLogger(__name__)


class SideData(NamedTuple):
    """Raw-normalized collections of one side kept beside its snapshot."""

    snapshot: RepoSnapshot
    webhooks: list[Webhook]
    codeowners: list[str]


def _names(items: list[Branch] | list[Tag]) -> list[str]:
    return [item.name for item in items]


def collect_source(
    provider: BitbucketServerProvider, coord: RepoCoordinate, settings: Settings
) -> SideData:
    owner, repo = coord.project_or_org, coord.repo_slug
    logger.info("Fetching source repository %s", coord.full_name)
    branches = provider.list_branches(owner, repo)
    declared = None
    if not any(branch.is_default for branch in branches):
        declared = provider.get_default_branch(owner, repo)
    default = resolve_source_default(branches, declared)
    has_branches = bool(branches)

    codeowner_texts = (
        provider.fetch_codeowners(owner, repo, default, settings.codeowners_paths)
        if has_branches
        else []
    )
    snapshot = RepoSnapshot(
        branches=branches,
        tags=provider.list_tags(owner, repo),
        default_branch=default if has_branches else None,
        compared_branch=default if has_branches else None,
        commit_count=provider.count_commits(owner, repo, default) if has_branches else 0,
        last_commit=provider.get_last_commit(owner, repo, default) if has_branches else None,
        pull_requests=provider.count_pull_requests(owner, repo),
        codeowners_present=bool(codeowner_texts),
    )
    return SideData(snapshot, provider.list_webhooks(owner, repo), codeowner_texts)


def collect_destination(
    provider: GitHubProvider,
    coord: RepoCoordinate,
    settings: Settings,
    source_default: str,
    graphql_commit_count: bool = False,
) -> SideData:
    owner, repo = coord.project_or_org, coord.repo_slug
    logger.info("Fetching destination repository %s", coord.full_name)
    declared = provider.get_default_branch(owner, repo)
    branches = provider.list_branches(owner, repo)
    compared = resolve_destination_branch(source_default, branches, declared)
    if compared is None:
        commit_count, last_commit, codeowner_texts = 0, None, []
    else:
        logger.info("Comparing destination branch %s", compared)
        if graphql_commit_count:
            commit_count = provider.count_commits_graphql(owner, repo, compared)
        else:
            commit_count = provider.count_commits(owner, repo, compared)
        last_commit = provider.get_last_commit(owner, repo, compared)
        codeowner_texts = provider.fetch_codeowners(
            owner, repo, compared, settings.codeowners_paths
        )
    snapshot = RepoSnapshot(
        branches=branches,
        tags=provider.list_tags(owner, repo),
        default_branch=declared,
        compared_branch=compared,
        commit_count=commit_count,
        last_commit=last_commit,
        pull_requests=provider.count_pull_requests(owner, repo),
        codeowners_present=bool(codeowner_texts),
    )
    return SideData(snapshot, provider.list_webhooks(owner, repo), codeowner_texts)


def compare_refs(
    source_coord: RepoCoordinate,
    dest_coord: RepoCoordinate,
    source_provider: BitbucketServerProvider,
    dest_provider: GitHubProvider,
) -> list[MembershipResult]:
    """Branch and tag name membership only."""
    src = (source_coord.project_or_org, source_coord.repo_slug)
    dst = (dest_coord.project_or_org, dest_coord.repo_slug)
    return [
        compare_membership(
            "Branches",
            _names(source_provider.list_branches(*src)),
            _names(dest_provider.list_branches(*dst)),
        ),
        compare_membership(
            "Tags",
            _names(source_provider.list_tags(*src)),
            _names(dest_provider.list_tags(*dst)),
        ),
    ]


def source_clone_url(coord: RepoCoordinate, settings: Settings) -> str:
    """Source clone URL carrying the configured Bitbucket credentials."""
    if settings.bitbucket_user and (settings.bitbucket_password or settings.bitbucket_token):
        return inject_credentials(
            coord.clone_url,
            user=settings.bitbucket_user,
            password=settings.bitbucket_password or settings.bitbucket_token,
        )
    return inject_credentials(coord.clone_url, token=settings.bitbucket_token)


def _lfs_objects(url: str, branch: str | None) -> list[LfsObject]:
    with temporary_clone(url, branch=branch, prefix="repo-parity-guard-lfs-") as repo_dir:
        return list_lfs_objects(repo_dir)


def compare_lfs_objects(
    source_coord: RepoCoordinate,
    dest_coord: RepoCoordinate,
    settings: Settings,
    source_branch: str | None,
    dest_branch: str | None,
) -> LfsComparison:
    """Clone both sides shallowly and compare their LFS object listings."""
    source_objects = _lfs_objects(source_clone_url(source_coord, settings), source_branch)
    dest_url = inject_credentials(dest_coord.clone_url, token=settings.github_token)
    dest_objects = _lfs_objects(dest_url, dest_branch)
    return compare_lfs(source_objects, dest_objects)


def validate_repositories(
    source_coord: RepoCoordinate,
    dest_coord: RepoCoordinate,
    settings: Settings,
    source_provider: BitbucketServerProvider,
    dest_provider: GitHubProvider,
    expectations: ProjectExpectations | None = None,
    include_lfs: bool = False,
    graphql_commit_count: bool = False,
) -> ValidationReport:
    """
    Validate one migrated repository against its source.

    Args:
        source_coord: Bitbucket Server repository.
        dest_coord: GitHub repository.
        settings: Resolved run configuration.
        source_provider: Provider reading the source.
        dest_provider: Provider reading the destination.
        expectations: Expected teams, CODEOWNERS, webhook and properties;
            None skips those sub-tables.
        include_lfs: Clone both repositories and compare LFS objects.
        graphql_commit_count: Count destination commits with one GraphQL query.

    Returns:
        The assembled report. Mismatches are statuses, never exceptions.

    Raises:
        FetchError: If a required API call fails after retries.
        GitCommandError: If an LFS clone fails.
    """
    source = collect_source(source_provider, source_coord, settings)
    source_default = resolve_source_default(
        source.snapshot.branches, source.snapshot.default_branch
    )
    dest = collect_destination(
        dest_provider, dest_coord, settings, source_default, graphql_commit_count
    )

    report = ValidationReport(
        source=source_coord,
        dest=dest_coord,
        compared_branch=dest.snapshot.compared_branch,
    )
    report.metrics = run_metrics(source.snapshot, dest.snapshot)
    report.membership = [
        compare_membership(
            "Branches", _names(source.snapshot.branches), _names(dest.snapshot.branches)
        ),
        compare_membership(
            "Tags", _names(source.snapshot.tags), _names(dest.snapshot.tags)
        ),
        compare_membership(
            "Webhooks",
            [hook.name_or_url for hook in source.webhooks],
            [hook.name_or_url for hook in dest.webhooks],
        ),
    ]

    owner, repo = dest_coord.project_or_org, dest_coord.repo_slug
    report.custom_properties = dest_provider.get_custom_properties(owner, repo)

    if expectations is not None:
        report.teams = validate_team_access(
            expectations.teams, dest_provider.list_teams(owner, repo)
        )
        report.codeowners = validate_codeowners(
            expectations.codeowners, merge_codeowners(dest.codeowners)
        )
        report.webhook = validate_expected_webhook(
            expectations.webhook, [hook.name_or_url for hook in dest.webhooks]
        )
        if expectations.properties:
            report.expected_properties = validate_expected_properties(
                expectations.properties, report.custom_properties
            )

    if include_lfs:
        report.lfs = compare_lfs_objects(
            source_coord,
            dest_coord,
            settings,
            source.snapshot.compared_branch,
            dest.snapshot.compared_branch,
        )
    return report
