"""
Issue-driven validation requests.

A migration request issue carries ``key: value`` lines naming the source
project and repository and the destination organization and repository.
When run from a GitHub Actions issue event, the event payload file gives
the issue body and the repository / number to comment on.
"""

import json
import logging
import re
from pathlib import Path
from typing import Any, NamedTuple

from repo_parity_guard.config import Settings
from repo_parity_guard.coordinates import (
    RepoCoordinate,
    destination_coordinate,
    source_coordinate,
)
from repo_parity_guard.errors import ConfigurationError

logger = logging.getLogger(__name__)

SOURCE_PROJECT_FIELD = "bitbucket-source-project-key"
SOURCE_REPO_FIELD = "bitbucket-source-repo-slug"
SOURCE_URL_FIELD = "repo-url"
DEST_ORG_FIELD = "github-target-org"
DEST_REPO_FIELD = "github-target-repo-name"


class IssueContext(NamedTuple):
    """The issue that triggered the run."""

    body: str
    repository: str | None  # ``owner/name`` hosting the issue
    number: int | None


class IssueRequest(NamedTuple):
    source: RepoCoordinate
    dest: RepoCoordinate


def extract_field(body: str, key: str) -> str | None:
    """Return the value of the first ``key: value`` line, stripped."""
    match = re.search(rf"{re.escape(key)}:[ \t]*([^\n]+)", body or "")
    if not match:
        return None
    value = match.group(1).strip()
    return value or None


def load_event(event_path: str | None) -> dict[str, Any]:
    if not event_path:
        return {}
    path = Path(event_path)
    if not path.exists():
        logger.warning("Event payload %s does not exist", event_path)
        return {}
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Cannot parse event payload {event_path}: {e}") from e


def load_issue_context(settings: Settings) -> IssueContext:
    """
    Read the triggering issue from the Actions event payload.

    Without an event payload the body is empty and the issue number is None;
    the repository then falls back to ``GITHUB_REPOSITORY``.
    """
    event = load_event(settings.github_event_path)
    issue = event.get("issue") or {}
    repository = (event.get("repository") or {}).get("full_name")
    return IssueContext(
        body=issue.get("body") or "",
        repository=repository or settings.github_repository,
        number=issue.get("number"),
    )


def parse_issue_request(body: str, settings: Settings) -> IssueRequest:
    """
    Build both coordinates from an issue body.

    The Bitbucket base URL comes from the settings when configured, otherwise
    from the issue's ``repo-url`` with any ``/browse`` suffix dropped.

    Raises:
        ConfigurationError: If a required field is missing.
    """
    base_url = settings.bitbucket_base_url
    if not base_url:
        repo_url = extract_field(body, SOURCE_URL_FIELD)
        base_url = re.sub(r"/browse.*$", "", repo_url) if repo_url else None
    missing = [
        key
        for key in (SOURCE_PROJECT_FIELD, SOURCE_REPO_FIELD, DEST_ORG_FIELD, DEST_REPO_FIELD)
        if not extract_field(body, key)
    ]
    if missing:
        raise ConfigurationError(f"Issue body is missing: {', '.join(missing)}")
    if not base_url:
        raise ConfigurationError(
            f"Set BITBUCKET_BASEURL or provide '{SOURCE_URL_FIELD}' in the issue body."
        )
    return IssueRequest(
        source=source_coordinate(
            base_url,
            extract_field(body, SOURCE_PROJECT_FIELD),
            extract_field(body, SOURCE_REPO_FIELD),
        ),
        dest=destination_coordinate(
            extract_field(body, DEST_ORG_FIELD),
            extract_field(body, DEST_REPO_FIELD),
        ),
    )
