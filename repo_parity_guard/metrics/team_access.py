"""Team access validation against the expected role assignments."""

from typing import Any, NamedTuple

from repo_parity_guard.metrics.base import PLACEHOLDER, Status
from repo_parity_guard.normalize import Team

# Source role names mapped to destination permission levels
ROLE_ALIASES = {
    "rw": "push",
    "ro": "pull",
    "owner": "admin",
}
HIGHEST_PERMISSION = "admin"
# Destination labels that all grant top-level access
HIGHEST_PERMISSION_EQUIVALENTS = frozenset({"admin", "maintain", "Repo-Owner"})


class ExpectedTeam(NamedTuple):
    name: str
    permission: str


class TeamAccessResult(NamedTuple):
    """One row of the teams sub-table."""

    index: int
    name: str
    expected_permission: str
    actual_permission: str
    status: Status


def expected_teams_from_roles(roles: dict[str, Any]) -> list[ExpectedTeam]:
    """
    Flatten a ``{role: [team, ...]}`` mapping into expected grants.

    Teams may be given as ``{"name": ...}`` objects or plain strings. Roles
    are translated through ``ROLE_ALIASES``; unknown roles pass through
    lower-cased.
    """
    expected = []
    for role, teams in (roles or {}).items():
        permission = ROLE_ALIASES.get(str(role).lower(), str(role).lower())
        for team in teams or []:
            name = team.get("name") if isinstance(team, dict) else team
            if name:
                expected.append(ExpectedTeam(str(name), permission))
    return expected


def permission_matches(expected: str, actual: str) -> bool:
    """Return True when ``actual`` satisfies the ``expected`` permission."""
    if expected == HIGHEST_PERMISSION:
        return actual in HIGHEST_PERMISSION_EQUIVALENTS
    return expected == actual


def validate_team_access(
    expected_teams: list[ExpectedTeam], dest_teams: list[Team]
) -> list[TeamAccessResult]:
    """
    Check every expected grant against the destination's direct team grants.

    Team names match case-insensitively. A team absent from the destination
    gets ``Status.TEAM_NOT_PRESENT`` rather than a failure.
    """
    by_name = {team.name.strip().lower(): team for team in dest_teams}
    results = []
    for index, expected in enumerate(expected_teams, start=1):
        actual = by_name.get(expected.name.strip().lower())
        if actual is None:
            status = Status.TEAM_NOT_PRESENT
            actual_permission = PLACEHOLDER
        else:
            actual_permission = actual.permission or PLACEHOLDER
            status = (
                Status.SUCCESS
                if permission_matches(expected.permission, actual.permission)
                else Status.FAILED
            )
        results.append(
            TeamAccessResult(
                index, expected.name, expected.permission, actual_permission, status
            )
        )
    return results
