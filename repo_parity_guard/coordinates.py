"""Repository coordinates parsed from source and destination URLs."""

import re
from enum import Enum
from typing import NamedTuple

from repo_parity_guard.errors import ConfigurationError

GITHUB_WEB_URL = "https://github.com"

_SOURCE_BROWSE_RE = re.compile(
    r"^(?P<base>https?://.+?)/projects/(?P<project>[^/]+)/repos/(?P<repo>[^/?#]+)"
)
_SOURCE_SCM_RE = re.compile(
    r"^(?P<base>https?://.+?)/scm/(?P<project>[^/]+)/(?P<repo>[^/?#]+?)(?:\.git)?/?$"
)
_DEST_RE = re.compile(
    r"github\.com[:/]+(?P<org>[^/]+)/(?P<repo>[^/]+?)(?:\.git)?(?:[/?#].*)?$"
)


class System(str, Enum):
    """Which side of the migration a repository lives on."""

    SOURCE = "source"
    DEST = "dest"


class RepoCoordinate(NamedTuple):
    """Immutable address of one repository."""

    system: System
    project_or_org: str
    repo_slug: str
    base_url: str

    @property
    def full_name(self) -> str:
        return f"{self.project_or_org}/{self.repo_slug}"

    @property
    def clone_url(self) -> str:
        if self.system is System.SOURCE:
            return f"{self.base_url}/scm/{self.project_or_org.lower()}/{self.repo_slug}.git"
        return f"{self.base_url}/{self.project_or_org}/{self.repo_slug}.git"

    @property
    def web_url(self) -> str:
        if self.system is System.SOURCE:
            return (
                f"{self.base_url}/projects/{self.project_or_org}"
                f"/repos/{self.repo_slug}/browse"
            )
        return f"{self.base_url}/{self.project_or_org}/{self.repo_slug}"


def parse_source_url(url: str) -> RepoCoordinate:
    """
    Parse a Bitbucket Server repository URL.

    Accepts browse URLs (``https://host/projects/KEY/repos/slug/browse``) and
    clone URLs (``https://host/scm/key/slug.git``). Any context path in front
    of ``/projects`` or ``/scm`` is kept in the base URL.

    Raises:
        ConfigurationError: If the URL matches neither form.
    """
    url = url.strip()
    match = _SOURCE_BROWSE_RE.match(url) or _SOURCE_SCM_RE.match(url)
    if not match:
        raise ConfigurationError(f"Invalid Bitbucket repository URL: {url!r}")
    return RepoCoordinate(
        system=System.SOURCE,
        project_or_org=match.group("project").upper(),
        repo_slug=match.group("repo"),
        base_url=match.group("base").rstrip("/"),
    )


def parse_destination_url(url: str) -> RepoCoordinate:
    """
    Parse a GitHub repository URL (https or ssh form).

    Raises:
        ConfigurationError: If the URL is not a github.com repository URL.
    """
    url = url.strip()
    match = _DEST_RE.search(url)
    if not match:
        raise ConfigurationError(f"Invalid GitHub repository URL: {url!r}")
    return RepoCoordinate(
        system=System.DEST,
        project_or_org=match.group("org"),
        repo_slug=match.group("repo"),
        base_url=GITHUB_WEB_URL,
    )


def source_coordinate(base_url: str, project_key: str, repo_slug: str) -> RepoCoordinate:
    """Build a source coordinate from explicit configuration values."""
    if not base_url or not project_key or not repo_slug:
        raise ConfigurationError(
            "Bitbucket base URL, project key and repository slug are all required."
        )
    base_url = re.sub(r"/(browse|projects|scm)(/.*)?$", "", base_url.strip()).rstrip("/")
    if not base_url.startswith(("http://", "https://")):
        raise ConfigurationError(f"Invalid Bitbucket base URL: {base_url!r}")
    return RepoCoordinate(System.SOURCE, project_key.strip().upper(), repo_slug.strip(), base_url)


def destination_coordinate(org: str, repo: str) -> RepoCoordinate:
    """Build a destination coordinate from explicit configuration values."""
    if not org or not repo:
        raise ConfigurationError("GitHub organization and repository name are required.")
    return RepoCoordinate(System.DEST, org.strip(), repo.strip(), GITHUB_WEB_URL)
