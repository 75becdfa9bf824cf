"""Expected custom property validation."""

from typing import NamedTuple

from repo_parity_guard.metrics.base import PLACEHOLDER, Status, status_for
from repo_parity_guard.normalize import CustomProperty


class PropertyCheck(NamedTuple):
    name: str
    expected: str
    actual: str
    status: Status


def validate_expected_properties(
    expected: dict[str, str | None], actual: list[CustomProperty]
) -> list[PropertyCheck]:
    """
    Compare expected property values with the destination's values.

    Property names match case-insensitively; values compare as strings.
    A property missing on the destination fails.
    """
    by_name = {prop.name.lower(): prop for prop in actual}
    checks = []
    for name, expected_value in expected.items():
        expected_text = "" if expected_value is None else str(expected_value)
        prop = by_name.get(name.lower())
        actual_text = "" if prop is None or prop.value is None else prop.value
        checks.append(
            PropertyCheck(
                name=name,
                expected=expected_text or PLACEHOLDER,
                actual=actual_text or PLACEHOLDER,
                status=status_for(prop is not None and expected_text == actual_text),
            )
        )
    return checks
