"""Shared HTTP client handling, retries and rate-limit waits."""

import logging
import time
from typing import Any, NamedTuple

import httpx

from repo_parity_guard.config import DEFAULT_TIMEOUT, get_verify_ssl
from repo_parity_guard.errors import FetchError

logger = logging.getLogger(__name__)

_http_client: httpx.Client | None = None
_http_client_verify_ssl: bool | None = None


class RetryPolicy(NamedTuple):
    """Bounds for the request retry loop."""

    max_attempts: int = 5
    backoff_base: float = 2.0
    min_rate_limit_wait: float = 1.0
    max_rate_limit_waits: int = 5


DEFAULT_RETRY_POLICY = RetryPolicy()


def _get_http_client() -> httpx.Client:
    """Get or create a global HTTP client with connection pooling.

    Recreates the client if SSL verification setting has changed.
    """
    global _http_client, _http_client_verify_ssl
    current_verify_ssl = get_verify_ssl()

    # Recreate client if setting changed or client is closed/None
    if (
        _http_client is None
        or _http_client.is_closed
        or _http_client_verify_ssl != current_verify_ssl
    ):
        if _http_client is not None and not _http_client.is_closed:
            _http_client.close()

        _http_client = httpx.Client(
            verify=current_verify_ssl,
            timeout=DEFAULT_TIMEOUT,
            follow_redirects=True,
            limits=httpx.Limits(
                max_connections=10,
                max_keepalive_connections=5,
                keepalive_expiry=30.0,
            ),
        )
        _http_client_verify_ssl = current_verify_ssl
    return _http_client


def close_http_client():
    """Close the global HTTP client. Call this when shutting down."""
    global _http_client, _http_client_verify_ssl
    if _http_client is not None and not _http_client.is_closed:
        _http_client.close()
        _http_client = None
        _http_client_verify_ssl = None


def is_rate_limited(response: httpx.Response) -> bool:
    """Return True for a quota rejection (429, or 403 with no remaining quota)."""
    if response.status_code == 429:
        return True
    return (
        response.status_code == 403
        and response.headers.get("X-RateLimit-Remaining") == "0"
    )


def rate_limit_wait_seconds(
    headers: httpx.Headers | dict[str, str], minimum: float = 1.0
) -> float:
    """
    Compute how long to sleep before retrying a rate-limited request.

    Uses Retry-After when present, otherwise the X-RateLimit-Reset epoch.

    Returns:
        Seconds to wait, never less than ``minimum``.
    """
    wait = 0.0
    retry_after = headers.get("Retry-After")
    reset = headers.get("X-RateLimit-Reset")
    try:
        if retry_after is not None:
            wait = float(retry_after)
        elif reset is not None:
            wait = float(reset) - time.time()
    except ValueError:
        wait = 0.0
    return max(wait, minimum)


def _backoff(endpoint: str, attempt: int, policy: RetryPolicy, reason: str) -> None:
    delay = policy.backoff_base**attempt
    logger.info(
        "Retrying %s in %.0fs (attempt %d/%d): %s",
        endpoint,
        delay,
        attempt,
        policy.max_attempts,
        reason,
    )
    time.sleep(delay)


def request(
    method: str,
    url: str,
    *,
    params: dict[str, Any] | None = None,
    headers: dict[str, str] | None = None,
    auth: tuple[str, str] | None = None,
    json_body: Any = None,
    expect_json: bool = True,
    timeout: float | None = None,
    policy: RetryPolicy = DEFAULT_RETRY_POLICY,
    client: httpx.Client | None = None,
) -> tuple[Any, httpx.Response]:
    """
    Issue one logical request, retrying transient failures.

    Transport errors, 5xx responses and undecodable JSON bodies are retried
    with ``backoff_base ** attempt`` seconds of backoff until
    ``policy.max_attempts`` attempts have failed. Rate-limit rejections sleep
    until the advertised reset and do not count as attempts.

    Args:
        method: HTTP method.
        url: Absolute URL without query string.
        params: Query parameters.
        headers: Request headers.
        auth: Optional basic-auth pair.
        json_body: Optional JSON request body.
        expect_json: Decode the body as JSON. When False the text is returned.
        timeout: Per-request timeout in seconds (client default when None).
        policy: Retry bounds.
        client: HTTP client to use (defaults to the shared client).

    Returns:
        Tuple of (decoded body, response).

    Raises:
        FetchError: On a non-retryable status, or once retries are exhausted.
    """
    client = client or _get_http_client()
    attempt = 0
    rate_limit_waits = 0

    while True:
        try:
            response = client.request(
                method,
                url,
                params=params,
                headers=headers,
                auth=auth,
                json=json_body,
                timeout=httpx.USE_CLIENT_DEFAULT if timeout is None else timeout,
            )
        except httpx.TransportError as e:
            attempt += 1
            if attempt >= policy.max_attempts:
                raise FetchError(url, None, str(e)) from e
            _backoff(url, attempt, policy, f"{type(e).__name__}: {e}")
            continue

        if is_rate_limited(response):
            rate_limit_waits += 1
            if rate_limit_waits > policy.max_rate_limit_waits:
                raise FetchError(url, response.status_code, "rate limit did not reset")
            wait = rate_limit_wait_seconds(response.headers, policy.min_rate_limit_wait)
            logger.warning("Rate limited on %s, sleeping %.0fs", url, wait)
            time.sleep(wait)
            continue

        if response.status_code >= 500:
            attempt += 1
            if attempt >= policy.max_attempts:
                raise FetchError(url, response.status_code, "server error")
            _backoff(url, attempt, policy, f"HTTP {response.status_code}")
            continue

        if not response.is_success:
            raise FetchError(url, response.status_code, response.text[:200].strip())

        if not expect_json:
            return response.text, response

        if response.status_code == 204:
            return None, response

        try:
            return response.json(), response
        except ValueError as e:
            attempt += 1
            if attempt >= policy.max_attempts:
                raise FetchError(url, response.status_code, "malformed JSON body") from e
            _backoff(url, attempt, policy, "malformed JSON body")


def get_json(url: str, **kwargs: Any) -> tuple[Any, httpx.Response]:
    """GET ``url`` and decode the JSON body. See ``request`` for arguments."""
    return request("GET", url, **kwargs)
