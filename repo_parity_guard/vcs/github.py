"""
GitHub VCS provider implementation for Repo Parity Guard.

Uses the REST API with page-number pagination for every list, and the GraphQL
API for commit history totals on large branches.
"""

import base64
import binascii
import logging
from typing import Any

from repo_parity_guard.config import DEFAULT_GITHUB_API_URL
from repo_parity_guard.coordinates import System
from repo_parity_guard.errors import ConfigurationError, FetchError
from repo_parity_guard.http_client import get_json, request
from repo_parity_guard.normalize import (
    Branch,
    Commit,
    CustomProperty,
    PullRequestState,
    Tag,
    Team,
    Webhook,
    normalize_branch,
    normalize_commit,
    normalize_custom_properties,
    normalize_pull_request,
    normalize_tag,
    normalize_team,
    normalize_webhook,
)
from repo_parity_guard.pagination import PaginationStyle, fetch_items
from repo_parity_guard.vcs.base import BaseVCSProvider

logger = logging.getLogger(__name__)

GITHUB_API_VERSION = "2022-11-28"

COMMIT_COUNT_QUERY = """
query CommitCount($owner: String!, $name: String!, $ref: String!) {
  repository(owner: $owner, name: $name) {
    ref(qualifiedName: $ref) {
      target {
        ... on Commit {
          history {
            totalCount
          }
        }
      }
    }
  }
}
"""


class GitHubProvider(BaseVCSProvider):
    """GitHub VCS provider using the REST and GraphQL APIs."""

    def __init__(
        self,
        token: str | None = None,
        api_url: str = DEFAULT_GITHUB_API_URL,
        **kwargs: Any,
    ):
        """
        Initialize GitHub provider.

        Args:
            token: GitHub Personal Access Token.
            api_url: REST API root (GitHub Enterprise Server uses
                ``https://host/api/v3``).
            **kwargs: client / policy / timeout, see BaseVCSProvider.

        Raises:
            ConfigurationError: If token is not provided
        """
        super().__init__(**kwargs)
        self.token = token
        self.api_url = api_url.rstrip("/")
        if not self.validate_credentials():
            raise ConfigurationError(
                "GITHUB_TOKEN is required for GitHub provider.\n"
                "\n"
                "To get started:\n"
                "1. Create a GitHub Personal Access Token with 'repo' and 'read:org'\n"
                "   scopes (admin:repo_hook to compare webhooks)\n"
                "2. Set the token:\n"
                "   export GITHUB_TOKEN='your_token_here'  # Linux/macOS\n"
                "   or add to your .env file: GITHUB_TOKEN=your_token_here\n"
            )

    def get_platform_name(self) -> str:
        """Return 'github' as the platform identifier."""
        return "github"

    def validate_credentials(self) -> bool:
        """Check if GitHub token is configured."""
        return self.token is not None and len(self.token) > 0

    def get_repository_url(self, owner: str, repo: str) -> str:
        """Construct GitHub repository URL."""
        return f"https://github.com/{owner}/{repo}"

    @property
    def graphql_url(self) -> str:
        if self.api_url.endswith("/api/v3"):
            return self.api_url[: -len("/v3")] + "/graphql"
        return f"{self.api_url}/graphql"

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": GITHUB_API_VERSION,
        }

    def _repo_url(self, owner: str, repo: str, suffix: str = "") -> str:
        url = f"{self.api_url}/repos/{owner}/{repo}"
        return f"{url}/{suffix}" if suffix else url

    def _items(self, owner: str, repo: str, suffix: str, **params: Any):
        return fetch_items(
            self._repo_url(owner, repo, suffix),
            PaginationStyle.PAGE,
            params=params or None,
            **self._request_kwargs(),
        )

    def get_repository(self, owner: str, repo: str) -> dict[str, Any]:
        """
        Fetch the repository object.

        Raises:
            FetchError: If the repository is missing or inaccessible.
        """
        data, _ = get_json(self._repo_url(owner, repo), **self._request_kwargs())
        return data

    def list_org_repositories(self, org: str) -> list[dict[str, Any]]:
        """List raw repository objects of an organization, newest first."""
        return list(
            fetch_items(
                f"{self.api_url}/orgs/{org}/repos",
                PaginationStyle.PAGE,
                params={"type": "all", "sort": "created", "direction": "desc"},
                **self._request_kwargs(),
            )
        )

    def get_default_branch(self, owner: str, repo: str) -> str | None:
        return self.get_repository(owner, repo).get("default_branch")

    def list_branches(self, owner: str, repo: str) -> list[Branch]:
        return [
            normalize_branch(raw, System.DEST)
            for raw in self._items(owner, repo, "branches")
        ]

    def list_tags(self, owner: str, repo: str) -> list[Tag]:
        return [normalize_tag(raw, System.DEST) for raw in self._items(owner, repo, "tags")]

    def count_commits(self, owner: str, repo: str, branch: str) -> int:
        return sum(1 for _ in self._items(owner, repo, "commits", sha=branch))

    def count_commits_graphql(self, owner: str, repo: str, branch: str) -> int:
        """Return the commit total of ``branch`` from a single GraphQL query."""
        data = self._query_graphql(
            COMMIT_COUNT_QUERY,
            {"owner": owner, "name": repo, "ref": f"refs/heads/{branch}"},
        )
        repository = data.get("repository") or {}
        ref = repository.get("ref")
        if not ref:
            raise FetchError(self.graphql_url, 200, f"branch {branch} not found")
        return int(ref["target"]["history"]["totalCount"])

    def get_last_commit(self, owner: str, repo: str, branch: str) -> Commit | None:
        data, _ = get_json(
            self._repo_url(owner, repo, "commits"),
            params={"sha": branch, "per_page": 1},
            **self._request_kwargs(),
        )
        if not isinstance(data, list) or not data:
            return None
        return normalize_commit(data[0], System.DEST)

    def count_pull_requests(self, owner: str, repo: str) -> dict[PullRequestState, int]:
        """
        Count pull requests by lifecycle state.

        GitHub only lists ``open`` and ``closed``; closed requests are split
        into merged and declined from their ``merged_at`` field.
        """
        counts = {state: 0 for state in PullRequestState}
        for list_state in ("open", "closed"):
            for raw in self._items(owner, repo, "pulls", state=list_state):
                counts[normalize_pull_request(raw, System.DEST).state] += 1
        return counts

    def list_teams(self, owner: str, repo: str) -> list[Team]:
        """Return direct team grants; inherited grants are dropped."""
        try:
            raw_teams = list(self._items(owner, repo, "teams"))
        except FetchError as e:
            if not e.is_not_found:
                raise
            logger.debug("Teams not visible for %s/%s: %s", owner, repo, e)
            return []
        teams = [normalize_team(raw) for raw in raw_teams]
        return [team for team in teams if team is not None]

    def list_webhooks(self, owner: str, repo: str) -> list[Webhook]:
        try:
            hooks = [
                normalize_webhook(raw, System.DEST)
                for raw in self._items(owner, repo, "hooks")
            ]
        except FetchError as e:
            if not e.is_not_found:
                raise
            logger.debug("Webhooks not visible for %s/%s: %s", owner, repo, e)
            return []
        unique = []
        for hook in hooks:
            if hook not in unique:
                unique.append(hook)
        return unique

    def fetch_codeowners(
        self, owner: str, repo: str, branch: str, paths: tuple[str, ...]
    ) -> list[str]:
        texts = []
        for path in paths:
            try:
                data, _ = get_json(
                    self._repo_url(owner, repo, f"contents/{path}"),
                    params={"ref": branch},
                    **self._request_kwargs(),
                )
            except FetchError as e:
                if not e.is_not_found:
                    raise
                logger.debug("No %s in %s/%s@%s", path, owner, repo, branch)
                continue
            content = data.get("content") if isinstance(data, dict) else None
            if content is None:
                continue
            try:
                texts.append(base64.b64decode(content).decode("utf-8", errors="replace"))
            except (binascii.Error, ValueError):
                logger.warning("Undecodable %s in %s/%s", path, owner, repo)
        return texts

    def get_custom_properties(self, owner: str, repo: str) -> list[CustomProperty]:
        """Return custom property values, or an empty list when unavailable."""
        try:
            data, _ = get_json(
                self._repo_url(owner, repo, "properties/values"),
                **self._request_kwargs(),
            )
        except FetchError as e:
            if not e.is_not_found:
                raise
            logger.debug("Custom properties not visible for %s/%s: %s", owner, repo, e)
            return []
        return normalize_custom_properties(data)

    def post_issue_comment(self, full_name: str, issue_number: int, body: str) -> str | None:
        """
        Post a comment on an issue.

        Returns:
            The comment's browser URL.
        """
        data, _ = request(
            "POST",
            f"{self.api_url}/repos/{full_name}/issues/{issue_number}/comments",
            json_body={"body": body},
            **self._request_kwargs(),
        )
        return data.get("html_url") if isinstance(data, dict) else None

    def _query_graphql(self, query: str, variables: dict[str, Any]) -> dict[str, Any]:
        """
        Execute GraphQL query against GitHub API.

        Args:
            query: GraphQL query string
            variables: Query variables

        Returns:
            Response data dictionary

        Raises:
            FetchError: If API returns an error
        """
        data, response = request(
            "POST",
            self.graphql_url,
            json_body={"query": query, "variables": variables},
            **self._request_kwargs(),
        )
        if "errors" in data:
            raise FetchError(
                self.graphql_url,
                response.status_code,
                f"GitHub API Errors: {data['errors']}",
            )
        return data.get("data") or {}


PROVIDER = GitHubProvider
