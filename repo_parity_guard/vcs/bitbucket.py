"""
Bitbucket Server (Data Center) VCS provider.

Uses the REST API 1.0 with offset pagination. Authenticates with a bearer
token when one is configured, otherwise with basic auth.
"""

import logging
from collections import Counter
from typing import Any

from repo_parity_guard.coordinates import System
from repo_parity_guard.errors import ConfigurationError, FetchError
from repo_parity_guard.http_client import get_json, request
from repo_parity_guard.normalize import (
    Branch,
    Commit,
    PullRequestState,
    Tag,
    Webhook,
    normalize_branch,
    normalize_commit,
    normalize_pull_request,
    normalize_tag,
    normalize_webhook,
)
from repo_parity_guard.pagination import PaginationStyle, fetch_items
from repo_parity_guard.vcs.base import BaseVCSProvider

logger = logging.getLogger(__name__)

# Bitbucket list states; closed pull requests are MERGED plus DECLINED
PULL_REQUEST_STATES = ("OPEN", "MERGED", "DECLINED")


class BitbucketServerProvider(BaseVCSProvider):
    """Bitbucket Server provider using the REST API 1.0."""

    def __init__(
        self,
        base_url: str | None = None,
        user: str | None = None,
        password: str | None = None,
        token: str | None = None,
        **kwargs: Any,
    ):
        """
        Initialize Bitbucket Server provider.

        Args:
            base_url: Server root, e.g. ``https://bitbucket.example.com``.
            user: Username for basic auth.
            password: Password or HTTP access token for basic auth.
            token: Bearer token; takes precedence over basic auth.
            **kwargs: client / policy / timeout, see BaseVCSProvider.

        Raises:
            ConfigurationError: If the base URL or credentials are missing.
        """
        super().__init__(**kwargs)
        if not base_url:
            raise ConfigurationError(
                "BITBUCKET_BASEURL is required for Bitbucket Server provider."
            )
        self.base_url = base_url.rstrip("/")
        self.user = user
        self.password = password
        self.token = token
        if not self.validate_credentials():
            raise ConfigurationError(
                "Bitbucket credentials are required: set BITBUCKET_TOKEN, or both "
                "BITBUCKET_USER and BITBUCKET_PASS."
            )

    def get_platform_name(self) -> str:
        """Return 'bitbucket' as the platform identifier."""
        return "bitbucket"

    def validate_credentials(self) -> bool:
        return bool(self.token) or bool(self.user and self.password)

    def get_repository_url(self, owner: str, repo: str) -> str:
        return f"{self.base_url}/projects/{owner}/repos/{repo}/browse"

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def _request_kwargs(self) -> dict[str, Any]:
        kwargs = super()._request_kwargs()
        if not self.token:
            kwargs["auth"] = (self.user, self.password)
        return kwargs

    def _repo_url(self, owner: str, repo: str, suffix: str = "") -> str:
        url = f"{self.base_url}/rest/api/1.0/projects/{owner}/repos/{repo}"
        return f"{url}/{suffix}" if suffix else url

    def _items(self, owner: str, repo: str, suffix: str, **params: Any):
        return fetch_items(
            self._repo_url(owner, repo, suffix),
            PaginationStyle.OFFSET,
            params=params or None,
            **self._request_kwargs(),
        )

    def get_repository(self, owner: str, repo: str) -> dict[str, Any]:
        data, _ = get_json(self._repo_url(owner, repo), **self._request_kwargs())
        return data

    def list_repositories(self, project_key: str | None = None) -> list[dict[str, Any]]:
        """List raw repository objects of one project, or of the whole server."""
        if project_key:
            url = f"{self.base_url}/rest/api/1.0/projects/{project_key}/repos"
        else:
            url = f"{self.base_url}/rest/api/1.0/repos"
        return list(fetch_items(url, PaginationStyle.OFFSET, **self._request_kwargs()))

    def get_default_branch(self, owner: str, repo: str) -> str | None:
        """Return the declared default branch, or None for an empty repository."""
        try:
            data, _ = get_json(
                self._repo_url(owner, repo, "branches/default"), **self._request_kwargs()
            )
        except FetchError as e:
            if not e.is_not_found:
                raise
            return None
        if not isinstance(data, dict):
            return None
        return data.get("displayId")

    def list_branches(self, owner: str, repo: str) -> list[Branch]:
        return [
            normalize_branch(raw, System.SOURCE)
            for raw in self._items(owner, repo, "branches")
        ]

    def list_tags(self, owner: str, repo: str) -> list[Tag]:
        return [
            normalize_tag(raw, System.SOURCE) for raw in self._items(owner, repo, "tags")
        ]

    def count_commits(self, owner: str, repo: str, branch: str) -> int:
        return sum(1 for _ in self._items(owner, repo, "commits", until=branch))

    def get_last_commit(self, owner: str, repo: str, branch: str) -> Commit | None:
        data, _ = get_json(
            self._repo_url(owner, repo, "commits"),
            params={"until": branch, "limit": 1},
            **self._request_kwargs(),
        )
        values = data.get("values") if isinstance(data, dict) else None
        if not values:
            return None
        return normalize_commit(values[0], System.SOURCE)

    def count_pull_requests(self, owner: str, repo: str) -> dict[PullRequestState, int]:
        counts: Counter = Counter({state: 0 for state in PullRequestState})
        for state in PULL_REQUEST_STATES:
            for raw in self._items(owner, repo, "pull-requests", state=state):
                counts[normalize_pull_request(raw, System.SOURCE).state] += 1
        return dict(counts)

    def list_webhooks(self, owner: str, repo: str) -> list[Webhook]:
        try:
            return [
                normalize_webhook(raw, System.SOURCE)
                for raw in self._items(owner, repo, "webhooks")
            ]
        except FetchError as e:
            if not e.is_not_found:
                raise
            logger.debug("Webhooks not visible for %s/%s: %s", owner, repo, e)
            return []

    def fetch_codeowners(
        self, owner: str, repo: str, branch: str, paths: tuple[str, ...]
    ) -> list[str]:
        texts = []
        for path in paths:
            try:
                text, _ = request(
                    "GET",
                    self._repo_url(owner, repo, f"raw/{path}"),
                    params={"at": f"refs/heads/{branch}"},
                    expect_json=False,
                    **self._request_kwargs(),
                )
            except FetchError as e:
                if not e.is_not_found:
                    raise
                logger.debug("No %s in %s/%s@%s", path, owner, repo, branch)
                continue
            texts.append(text)
        return texts


PROVIDER = BitbucketServerProvider
