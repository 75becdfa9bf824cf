"""Tests for the VCS provider registry."""

import pytest

from repo_parity_guard.config import Settings
from repo_parity_guard.errors import ConfigurationError
from repo_parity_guard.vcs import (
    BitbucketServerProvider,
    GitHubProvider,
    get_vcs_provider,
    providers_from_settings,
    source_provider_from_settings,
)


def test_get_vcs_provider_is_case_insensitive():
    provider = get_vcs_provider("GitHub", token="t")
    assert isinstance(provider, GitHubProvider)


def test_get_vcs_provider_unsupported():
    with pytest.raises(ValueError, match="Unsupported VCS platform"):
        get_vcs_provider("gitea")


def test_providers_from_settings():
    """Test the source URL's base wins over the configured one."""
    settings = Settings(
        bitbucket_base_url="https://configured.example.com",
        bitbucket_token="bb",
        github_token="gh",
        max_attempts=3,
        timeout=12.0,
    )

    source, dest = providers_from_settings(settings, "https://parsed.example.com")

    assert isinstance(source, BitbucketServerProvider)
    assert source.base_url == "https://parsed.example.com"
    assert source.policy.max_attempts == 3
    assert source.timeout == 12.0
    assert isinstance(dest, GitHubProvider)
    assert dest.api_url == "https://api.github.com"


def test_source_provider_uses_configured_base_url():
    settings = Settings(bitbucket_base_url="https://bb.example.com", bitbucket_token="bb")
    assert source_provider_from_settings(settings).base_url == "https://bb.example.com"


def test_missing_github_token():
    settings = Settings(bitbucket_base_url="https://bb.example.com", bitbucket_token="bb")
    with pytest.raises(ConfigurationError):
        providers_from_settings(settings)
