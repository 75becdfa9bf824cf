"""
Configuration management for Repo Parity Guard.

Settings are resolved once at start-up from, in order of priority:
1. Explicit overrides (CLI options)
2. Environment variables (a local .env file is loaded first)
3. .repo-parity-guard.toml (local config)
4. pyproject.toml (project-level config)
5. Built-in defaults

The resulting Settings value is passed to every component; nothing outside
this module reads the process environment.
"""

import os
import tomllib
from pathlib import Path
from typing import Any, NamedTuple

from dotenv import load_dotenv

from repo_parity_guard.errors import ConfigurationError

# Config files are looked up relative to the directory the tool runs in
PROJECT_ROOT = Path.cwd()

# Global configuration for SSL verification
# Default: True (verify SSL certificates)
# Can be set to False by CLI --insecure flag
VERIFY_SSL = True

DEFAULT_GITHUB_API_URL = "https://api.github.com"
DEFAULT_EXPECTATIONS_PATH = "teams/teams.json"
DEFAULT_PROPERTIES_PATH = "repos/{project}_repos.json"
DEFAULT_CODEOWNERS_PATHS = (".github/CODEOWNERS", "CODEOWNERS", "docs/CODEOWNERS")
DEFAULT_TIMEOUT = 30.0
DEFAULT_MAX_ATTEMPTS = 5


class Settings(NamedTuple):
    """Immutable run configuration."""

    bitbucket_base_url: str | None = None
    bitbucket_user: str | None = None
    bitbucket_password: str | None = None
    bitbucket_token: str | None = None
    github_token: str | None = None
    github_api_url: str = DEFAULT_GITHUB_API_URL
    expectations_repo: str | None = None
    expectations_path: str = DEFAULT_EXPECTATIONS_PATH
    properties_path: str = DEFAULT_PROPERTIES_PATH
    codeowners_paths: tuple[str, ...] = DEFAULT_CODEOWNERS_PATHS
    timeout: float = DEFAULT_TIMEOUT
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    github_event_path: str | None = None
    github_repository: str | None = None

    def require_github_token(self) -> str:
        if not self.github_token:
            raise ConfigurationError(
                "GITHUB_TOKEN is required to query the destination repository. "
                "Set it in the environment or in a .env file."
            )
        return self.github_token

    def require_bitbucket_credentials(self) -> None:
        """Fail unless a Bitbucket token or a user/password pair is configured."""
        if self.bitbucket_token:
            return
        if self.bitbucket_user and self.bitbucket_password:
            return
        raise ConfigurationError(
            "Bitbucket credentials are required: set BITBUCKET_TOKEN, or both "
            "BITBUCKET_USER and BITBUCKET_PASS."
        )


def load_config_file(config_path: Path) -> dict:
    """Load a TOML configuration file."""
    if not config_path.exists():
        return {}
    try:
        with open(config_path, "rb") as f:
            return tomllib.load(f)
    except Exception as e:
        raise ConfigurationError(f"Failed to load config from {config_path}: {e}") from e


def get_tool_config() -> dict[str, Any]:
    """
    Load the [tool.repo-parity-guard] table.

    Priority:
    1. .repo-parity-guard.toml (local config, highest priority)
    2. pyproject.toml (project-level config, fallback)

    Returns:
        The table contents, or an empty dict when neither file defines it.
    """
    for name in (".repo-parity-guard.toml", "pyproject.toml"):
        config = load_config_file(PROJECT_ROOT / name)
        section = config.get("tool", {}).get("repo-parity-guard", {})
        if section:
            return section
    return {}


def _env(*names: str) -> str | None:
    for name in names:
        value = os.getenv(name)
        if value:
            return value
    return None


def load_settings(**overrides: Any) -> Settings:
    """
    Build the run Settings.

    Args:
        **overrides: Field values that win over every other source. ``None``
            values are ignored so CLI options can be passed straight through.

    Returns:
        A fully resolved Settings instance.

    Raises:
        ConfigurationError: If a config file is unreadable or a numeric value
            cannot be parsed.
    """
    load_dotenv()
    file_config = get_tool_config()

    values: dict[str, Any] = {
        "bitbucket_base_url": _env("BITBUCKET_BASEURL", "BB_SERVER_URL"),
        "bitbucket_user": _env("BITBUCKET_USER", "BITBUCKET_USERNAME", "BB_ACCT_USER"),
        "bitbucket_password": _env("BITBUCKET_PASS", "BB_ACCT_PASSWORD"),
        "bitbucket_token": _env("BITBUCKET_TOKEN", "BB_ACCT_TOKEN"),
        "github_token": _env("GITHUB_TOKEN", "GH_TOKEN"),
        "github_api_url": _env("GITHUB_API_URL")
        or file_config.get("github_api_url", DEFAULT_GITHUB_API_URL),
        "expectations_repo": _env("REPO_PARITY_GUARD_EXPECTATIONS_REPO")
        or file_config.get("expectations_repo"),
        "expectations_path": _env("REPO_PARITY_GUARD_EXPECTATIONS_PATH")
        or file_config.get("expectations_path", DEFAULT_EXPECTATIONS_PATH),
        "properties_path": file_config.get("properties_path", DEFAULT_PROPERTIES_PATH),
        "codeowners_paths": tuple(
            file_config.get("codeowners_paths", DEFAULT_CODEOWNERS_PATHS)
        ),
        "github_event_path": _env("GITHUB_EVENT_PATH"),
        "github_repository": _env("GITHUB_REPOSITORY"),
    }
    try:
        values["timeout"] = float(file_config.get("timeout", DEFAULT_TIMEOUT))
        values["max_attempts"] = int(
            file_config.get("max_attempts", DEFAULT_MAX_ATTEMPTS)
        )
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid numeric setting: {e}") from e

    values.update({key: value for key, value in overrides.items() if value is not None})
    return Settings(**values)


def set_verify_ssl(verify: bool) -> None:
    """
    Set the SSL verification setting globally.

    Args:
        verify: Whether to verify SSL certificates.
    """
    global VERIFY_SSL
    VERIFY_SSL = verify


def get_verify_ssl() -> bool:
    """
    Get the current SSL verification setting.

    Returns:
        Whether SSL verification is enabled.
    """
    return VERIFY_SSL
