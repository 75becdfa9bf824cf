"""Expected webhook validation."""

from typing import NamedTuple

from repo_parity_guard.metrics.base import Status, status_for


class WebhookResult(NamedTuple):
    expected: str | None
    actual: list[str]
    status: Status


def validate_expected_webhook(expected: str | None, actual: list[str]) -> WebhookResult:
    """The expected target URL must be one of the destination webhook identifiers."""
    if not expected:
        return WebhookResult(None, list(actual), Status.NOT_APPLICABLE)
    normalized = {hook.rstrip("/") for hook in actual}
    return WebhookResult(
        expected, list(actual), status_for(expected.rstrip("/") in normalized)
    )
