"""Exception types raised by Repo Parity Guard."""


class RepoParityError(Exception):
    """Base class for every error raised by this package."""


class ConfigurationError(RepoParityError, ValueError):
    """Missing credential, unparseable repository URL or bad config file."""


class FetchError(RepoParityError):
    """An API request failed for good (after retries where they apply)."""

    def __init__(self, endpoint: str, status_code: int | None, detail: str = ""):
        self.endpoint = endpoint
        self.status_code = status_code
        self.detail = detail
        status = status_code if status_code is not None else "no response"
        message = f"GET {endpoint} failed ({status})"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)

    @property
    def is_not_found(self) -> bool:
        """True for 403/404, which sub-resource lookups treat as "absent"."""
        return self.status_code in (403, 404)


class PaginationError(FetchError):
    """A paginated endpoint returned a page that breaks the paging contract."""


class GitCommandError(RepoParityError):
    """A git / git-lfs subprocess exited with a non-zero status."""
