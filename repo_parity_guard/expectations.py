"""
Expected repository state, read from an expectation repository.

The expectation repository holds one document listing, per source project,
the team grants (``Roles``), the ``CodeOwners`` and the ``Webhook`` every
migrated repository must carry. An optional per-project repository list
(``repos/<PROJECT>_repos.json``) names expected custom property values.
Documents may be JSON or YAML.
"""

import json
import logging
from pathlib import Path
from typing import Any, NamedTuple

import yaml

from repo_parity_guard.config import Settings
from repo_parity_guard.errors import ConfigurationError
from repo_parity_guard.git import inject_credentials, temporary_clone
from repo_parity_guard.metrics.codeowners import owner_handles
from repo_parity_guard.metrics.team_access import (
    ExpectedTeam,
    expected_teams_from_roles,
)

logger = logging.getLogger(__name__)

PROJECT_KEY_FIELDS = ("Projectkey", "ProjectKey", "projectKey", "projectkey")
REPO_NAME_FIELDS = ("Name", "name")
# Repository list fields that map to destination custom properties
EXPECTED_PROPERTY_NAMES = ("BSN", "ICEBID")


class ProjectExpectations(NamedTuple):
    """What the destination repository is expected to carry."""

    teams: list[ExpectedTeam]
    codeowners: list[str]  # ``@``-prefixed handles
    webhook: str | None
    properties: dict[str, str | None]

    @classmethod
    def empty(cls) -> "ProjectExpectations":
        return cls([], [], None, {})


def parse_document(text: str, source_name: str = "<document>") -> Any:
    """
    Parse a JSON or YAML expectation document.

    The format follows the file suffix; anything other than ``.yml`` /
    ``.yaml`` is read as JSON.

    Raises:
        ConfigurationError: If the document does not parse.
    """
    try:
        if source_name.endswith((".yml", ".yaml")):
            return yaml.safe_load(text)
        return json.loads(text)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Cannot parse {source_name}: {e}") from e


def load_document(path: Path) -> Any:
    return parse_document(path.read_text(encoding="utf-8"), path.name)


def _entries(data: Any, list_key: str) -> list[dict[str, Any]]:
    if isinstance(data, dict) and isinstance(data.get(list_key), list):
        data = data[list_key]
    if not isinstance(data, list):
        return []
    return [entry for entry in data if isinstance(entry, dict)]


def _field(entry: dict[str, Any], names: tuple[str, ...]) -> Any:
    for name in names:
        if entry.get(name) is not None:
            return entry[name]
    return None


def find_project(data: Any, project_key: str) -> dict[str, Any] | None:
    """
    Find the entry for ``project_key`` (case-insensitive).

    ``data`` is an object with a ``teams`` array or a bare array.
    """
    wanted = project_key.strip().lower()
    for entry in _entries(data, "teams"):
        key = _field(entry, PROJECT_KEY_FIELDS)
        if key is not None and str(key).strip().lower() == wanted:
            return entry
    return None


def find_repository_entry(data: Any, repo_name: str) -> dict[str, Any] | None:
    """Find the repository list entry named ``repo_name`` (case-insensitive)."""
    wanted = repo_name.strip().lower()
    for entry in _entries(data, "repos"):
        name = _field(entry, REPO_NAME_FIELDS)
        if name is not None and str(name).strip().lower() == wanted:
            return entry
    return None


def expected_properties(entry: dict[str, Any] | None) -> dict[str, str | None]:
    """Pick the known property fields present in a repository list entry."""
    if not entry:
        return {}
    by_lower = {str(key).lower(): value for key, value in entry.items()}
    properties = {}
    for name in EXPECTED_PROPERTY_NAMES:
        if name.lower() in by_lower:
            value = by_lower[name.lower()]
            properties[name] = None if value is None else str(value)
    return properties


def expectations_from_project(
    project: dict[str, Any] | None,
    properties: dict[str, str | None] | None = None,
) -> ProjectExpectations:
    if not project:
        return ProjectExpectations([], [], None, properties or {})
    codeowners = project.get("CodeOwners") or []
    if isinstance(codeowners, str):
        codeowners = [codeowners]
    return ProjectExpectations(
        teams=expected_teams_from_roles(project.get("Roles") or {}),
        codeowners=owner_handles([str(name) for name in codeowners]),
        webhook=project.get("Webhook") or None,
        properties=properties or {},
    )


def load_expectations(
    root: Path, settings: Settings, project_key: str, repo_name: str
) -> ProjectExpectations:
    """
    Read the expectations for one repository from a checked-out directory.

    A missing document or an unknown project yields empty expectations, so
    the dependent sub-tables render as not applicable.
    """
    document = root / settings.expectations_path
    if not document.exists():
        logger.warning("Expectation document %s not found", settings.expectations_path)
        return ProjectExpectations.empty()
    project = find_project(load_document(document), project_key)
    if project is None:
        logger.warning("Project key %s not found in %s", project_key, document.name)

    properties: dict[str, str | None] = {}
    repo_list = root / settings.properties_path.format(project=project_key)
    if repo_list.exists():
        entry = find_repository_entry(load_document(repo_list), repo_name)
        if entry is None:
            logger.info("Repository %s not listed in %s", repo_name, repo_list.name)
        properties = expected_properties(entry)
    return expectations_from_project(project, properties)


def expectations_clone_url(settings: Settings) -> str | None:
    """Clone URL of the expectation repository; ``org/repo`` means github.com."""
    repo = settings.expectations_repo
    if not repo:
        return None
    if "://" not in repo and not repo.startswith("git@"):
        repo = f"https://github.com/{repo.strip('/')}.git"
    return inject_credentials(repo, token=settings.github_token)


def fetch_expectations(
    settings: Settings, project_key: str, repo_name: str
) -> ProjectExpectations | None:
    """
    Clone the expectation repository and read one repository's expectations.

    Returns:
        None when no expectation repository is configured.

    Raises:
        GitCommandError: If the clone fails.
        ConfigurationError: If a document does not parse.
    """
    url = expectations_clone_url(settings)
    if url is None:
        return None
    with temporary_clone(url, prefix="repo-parity-guard-expectations-") as root:
        return load_expectations(root, settings, project_key, repo_name)
