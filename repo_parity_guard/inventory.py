"""
Read-only inventories of source and destination repositories, written as CSV.
"""

import csv
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable, NamedTuple, Sequence

from repo_parity_guard.coordinates import RepoCoordinate
from repo_parity_guard.metrics.counts import closed_count
from repo_parity_guard.normalize import PullRequestState, to_epoch_millis
from repo_parity_guard.vcs.bitbucket import BitbucketServerProvider
from repo_parity_guard.vcs.github import GitHubProvider

logger = logging.getLogger(__name__)

URL_COLUMN = "url"
OUTPUT_HEADER = ["Project", "Repo", "Repo_URL", "Branches", "Tags", "Open_PRs", "Closed_PRs"]
ARCHIVED_HEADER = ["Project Key", "Repo Slug", "Repo URL"]
CODEOWNERS_HEADER = ["repo_name", "repo_url", "has_codeowners_file"]


class RepoInfo(NamedTuple):
    project: str
    repo: str
    repo_url: str
    branches: int
    tags: int
    open_prs: int
    closed_prs: int

    def as_row(self) -> list[Any]:
        return list(self)


def self_link(repository: dict[str, Any]) -> str:
    """Return the first http(s) ``self`` link of a repository object."""
    for link in (repository.get("links") or {}).get("self") or []:
        href = link.get("href") or ""
        if href.startswith(("http://", "https://")):
            return href
    return ""


def collect_repo_info(provider: BitbucketServerProvider, coord: RepoCoordinate) -> RepoInfo:
    owner, repo = coord.project_or_org, coord.repo_slug
    pull_requests = provider.count_pull_requests(owner, repo)
    return RepoInfo(
        project=owner,
        repo=repo,
        repo_url=self_link(provider.get_repository(owner, repo)),
        branches=len(provider.list_branches(owner, repo)),
        tags=len(provider.list_tags(owner, repo)),
        open_prs=pull_requests.get(PullRequestState.OPEN, 0),
        closed_prs=closed_count(pull_requests),
    )


def read_repo_urls(csv_path: Path) -> list[str]:
    """Read the ``url`` column of a CSV file, skipping blank cells."""
    with open(csv_path, newline="", encoding="utf-8") as f:
        return [
            row[URL_COLUMN].strip()
            for row in csv.DictReader(f)
            if (row.get(URL_COLUMN) or "").strip()
        ]


def append_repo_info(output_path: Path, rows: Iterable[RepoInfo]) -> int:
    """
    Append rows to ``output_path``; the header is written only for a new file.

    Returns:
        Number of rows written.
    """
    write_header = not output_path.exists()
    written = 0
    with open(output_path, "a", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        if write_header:
            writer.writerow(OUTPUT_HEADER)
        for info in rows:
            writer.writerow(info.as_row())
            written += 1
    return written


def write_rows(output_path: Path, header: Sequence[str], rows: Iterable[Sequence[Any]]) -> int:
    """Write ``header`` and ``rows`` to ``output_path``, replacing the file."""
    written = 0
    with open(output_path, "w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(header)
        for row in rows:
            writer.writerow(row)
            written += 1
    return written


class ArchivedRepo(NamedTuple):
    project_key: str
    slug: str
    url: str


def collect_archived_repos(
    provider: BitbucketServerProvider, project_key: str | None = None
) -> list[ArchivedRepo]:
    """Archived repositories of one project, or of the whole server."""
    return [
        ArchivedRepo(
            project_key=(repository.get("project") or {}).get("key", ""),
            slug=repository.get("slug", ""),
            url=self_link(repository),
        )
        for repository in provider.list_repositories(project_key)
        if repository.get("archived")
    ]


class CodeownersPresence(NamedTuple):
    repo_name: str
    repo_url: str
    has_codeowners: bool

    def as_row(self) -> list[str]:
        return [self.repo_name, self.repo_url, "yes" if self.has_codeowners else "no"]


def created_since(repository: dict[str, Any], since: datetime | None) -> bool:
    """True when ``since`` is unset or the repository was created on or after it."""
    if since is None:
        return True
    if since.tzinfo is None:
        since = since.replace(tzinfo=timezone.utc)
    created = to_epoch_millis(repository.get("created_at"))
    return created is not None and created >= since.timestamp() * 1000


def list_org_repositories(
    provider: GitHubProvider, org: str, since: datetime | None = None
) -> list[dict[str, Any]]:
    return [
        repository
        for repository in provider.list_org_repositories(org)
        if created_since(repository, since)
    ]


def codeowners_presence(
    provider: GitHubProvider, repository: dict[str, Any], paths: tuple[str, ...]
) -> CodeownersPresence:
    """
    Probe the CODEOWNERS locations on the repository's default branch.

    An empty repository has no default branch content and reports ``no``.
    """
    full_name = repository.get("full_name", "")
    owner, _, name = full_name.partition("/")
    branch = repository.get("default_branch")
    present = bool(branch) and bool(provider.fetch_codeowners(owner, name, branch, paths))
    return CodeownersPresence(full_name, repository.get("html_url", ""), present)
