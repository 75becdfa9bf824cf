"""CODEOWNERS presence and owner validation."""

from typing import NamedTuple

from repo_parity_guard.metrics.base import (
    MetricResult,
    MetricSpec,
    RepoSnapshot,
    Status,
    display,
    not_applicable,
    status_for,
)


class CodeownersResult(NamedTuple):
    expected: list[str]
    actual: list[str]
    missing: list[str]
    status: Status


def compare_presence(source_exists: bool | None, dest_exists: bool | None) -> MetricResult:
    label = "CODEOWNERS Present"
    if source_exists is None or dest_exists is None:
        return not_applicable(label, source_exists, dest_exists)
    return MetricResult(
        label, display(source_exists), display(dest_exists), status_for(source_exists == dest_exists)
    )


def owner_handles(names: list[str]) -> list[str]:
    """Prefix bare account or team names with ``@`` as CODEOWNERS writes them."""
    return [name if name.startswith("@") else f"@{name}" for name in names if name]


def validate_codeowners(expected: list[str], actual: list[str]) -> CodeownersResult:
    """
    Check that every expected owner appears in the fetched CODEOWNERS.

    An expected owner is satisfied when it is a substring of any actual owner
    token, so ``@team`` matches ``@org/team``.
    """
    if not expected:
        return CodeownersResult([], list(actual), [], Status.NOT_APPLICABLE)
    missing = [name for name in expected if not any(name in real for real in actual)]
    return CodeownersResult(list(expected), list(actual), missing, status_for(not missing))


def _check(source: RepoSnapshot, dest: RepoSnapshot) -> MetricResult:
    return compare_presence(source.codeowners_present, dest.codeowners_present)


METRIC = MetricSpec(
    name="CODEOWNERS Present",
    checker=_check,
)
