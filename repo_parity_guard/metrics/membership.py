"""Set-membership metrics: branch names, tag names, webhook identifiers."""

from typing import Iterable, NamedTuple

from repo_parity_guard.metrics.base import MetricResult, Status, display, status_for


class MembershipResult(NamedTuple):
    """Source/destination counts plus what the destination is missing."""

    label: str
    source_count: int
    dest_count: int
    missing_in_dest: list[str]
    status: Status

    @property
    def metric(self) -> MetricResult:
        return MetricResult(
            self.label, str(self.source_count), str(self.dest_count), self.status
        )

    @property
    def missing_display(self) -> str:
        return display(self.missing_in_dest)


def compare_membership(
    label: str, source_items: Iterable[str], dest_items: Iterable[str]
) -> MembershipResult:
    """
    Compare two collections of identifiers as sets.

    Only identifiers present on the source and absent on the destination are
    reported (sorted). Extra destination identifiers never fail the check.
    """
    source_list = list(source_items)
    dest_list = list(dest_items)
    dest_set = set(dest_list)
    missing = sorted({item for item in source_list if item not in dest_set})
    return MembershipResult(
        label=label,
        source_count=len(source_list),
        dest_count=len(dest_list),
        missing_in_dest=missing,
        status=status_for(not missing),
    )
