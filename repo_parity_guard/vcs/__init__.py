"""
VCS (Version Control System) abstraction layer for Repo Parity Guard.

This module provides a unified interface for reading the source (Bitbucket
Server) and destination (GitHub) repositories of a migration.
"""

from repo_parity_guard.config import Settings
from repo_parity_guard.http_client import RetryPolicy
from repo_parity_guard.vcs.base import BaseVCSProvider
from repo_parity_guard.vcs.bitbucket import BitbucketServerProvider
from repo_parity_guard.vcs.github import GitHubProvider

__all__ = [
    "BaseVCSProvider",
    "BitbucketServerProvider",
    "GitHubProvider",
    "get_vcs_provider",
    "destination_provider_from_settings",
    "providers_from_settings",
    "source_provider_from_settings",
]

# Registry of supported VCS providers
_PROVIDERS: dict[str, type[BaseVCSProvider]] = {
    "bitbucket": BitbucketServerProvider,
    "github": GitHubProvider,
}


def get_vcs_provider(platform: str = "github", **kwargs) -> BaseVCSProvider:
    """
    Factory function to get VCS provider instance.

    Args:
        platform: VCS platform name ('bitbucket', 'github'). Default: 'github'
        **kwargs: Provider-specific configuration (e.g., token, base_url)

    Returns:
        Initialized VCS provider instance

    Raises:
        ValueError: If platform is not supported

    Example:
        >>> provider = get_vcs_provider("github", token="ghp_xxx")
        >>> provider.list_branches("octo-org", "service")
    """
    platform_lower = platform.lower()

    if platform_lower not in _PROVIDERS:
        supported = ", ".join(sorted(_PROVIDERS.keys()))
        raise ValueError(
            f"Unsupported VCS platform: {platform}. Supported platforms: {supported}"
        )

    provider_class = _PROVIDERS[platform_lower]
    return provider_class(**kwargs)


def source_provider_from_settings(
    settings: Settings, base_url: str | None = None
) -> BitbucketServerProvider:
    """Build the Bitbucket provider; ``base_url`` wins over the configured one."""
    return get_vcs_provider(
        "bitbucket",
        base_url=base_url or settings.bitbucket_base_url,
        user=settings.bitbucket_user,
        password=settings.bitbucket_password,
        token=settings.bitbucket_token,
        policy=RetryPolicy(max_attempts=settings.max_attempts),
        timeout=settings.timeout,
    )


def destination_provider_from_settings(settings: Settings) -> GitHubProvider:
    return get_vcs_provider(
        "github",
        token=settings.github_token,
        api_url=settings.github_api_url,
        policy=RetryPolicy(max_attempts=settings.max_attempts),
        timeout=settings.timeout,
    )


def providers_from_settings(
    settings: Settings, source_base_url: str | None = None
) -> tuple[BitbucketServerProvider, GitHubProvider]:
    """
    Build the source and destination providers for one run.

    Args:
        settings: Resolved run configuration.
        source_base_url: Bitbucket root parsed from the source URL; wins over
            ``settings.bitbucket_base_url``.

    Raises:
        ConfigurationError: If a credential or the Bitbucket base URL is missing.
    """
    source = source_provider_from_settings(settings, source_base_url)
    return source, destination_provider_from_settings(settings)
