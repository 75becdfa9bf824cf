"""
Base VCS provider interface.

Every provider returns normalized items, so the reconciliation code never
touches a platform payload.
"""

from abc import ABC, abstractmethod
from typing import Any

import httpx

from repo_parity_guard.http_client import DEFAULT_RETRY_POLICY, RetryPolicy
from repo_parity_guard.normalize import (
    Branch,
    Commit,
    PullRequestState,
    Tag,
    Webhook,
)


class BaseVCSProvider(ABC):
    """Read-only access to one version-control platform."""

    def __init__(
        self,
        client: httpx.Client | None = None,
        policy: RetryPolicy = DEFAULT_RETRY_POLICY,
        timeout: float | None = None,
    ):
        self.client = client
        self.policy = policy
        self.timeout = timeout

    def _request_kwargs(self) -> dict[str, Any]:
        """Keyword arguments shared by every request this provider makes."""
        return {
            "headers": self._headers(),
            "client": self.client,
            "policy": self.policy,
            "timeout": self.timeout,
        }

    @abstractmethod
    def _headers(self) -> dict[str, str]:
        """Return authentication and content negotiation headers."""

    @abstractmethod
    def get_platform_name(self) -> str:
        """Return the platform identifier (e.g. 'github')."""

    @abstractmethod
    def validate_credentials(self) -> bool:
        """Return True when credentials are configured."""

    @abstractmethod
    def get_repository_url(self, owner: str, repo: str) -> str:
        """Return the browser URL of a repository."""

    @abstractmethod
    def list_branches(self, owner: str, repo: str) -> list[Branch]:
        """Return every branch."""

    @abstractmethod
    def list_tags(self, owner: str, repo: str) -> list[Tag]:
        """Return every tag."""

    @abstractmethod
    def count_commits(self, owner: str, repo: str, branch: str) -> int:
        """Return the number of commits reachable from ``branch``."""

    @abstractmethod
    def get_last_commit(self, owner: str, repo: str, branch: str) -> Commit | None:
        """Return the tip commit of ``branch``, or None for an empty branch."""

    @abstractmethod
    def count_pull_requests(self, owner: str, repo: str) -> dict[PullRequestState, int]:
        """Return pull request counts keyed by lifecycle state."""

    @abstractmethod
    def list_webhooks(self, owner: str, repo: str) -> list[Webhook]:
        """Return configured webhooks (empty when not visible)."""

    @abstractmethod
    def fetch_codeowners(
        self, owner: str, repo: str, branch: str, paths: tuple[str, ...]
    ) -> list[str]:
        """Return the text of every CODEOWNERS file found, in ``paths`` order."""
