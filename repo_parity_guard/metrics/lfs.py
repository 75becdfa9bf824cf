"""Git-LFS object comparison."""

from typing import NamedTuple

from repo_parity_guard.metrics.base import PLACEHOLDER, Status
from repo_parity_guard.normalize import BYTES_PER_MB, LfsObject

HASH_DISPLAY_LENGTH = 12


def format_mb(size_bytes: int) -> str:
    return f"{size_bytes / BYTES_PER_MB:.2f}"


class LfsRow(NamedTuple):
    path: str
    source_hash: str
    dest_hash: str
    source_size_mb: str
    dest_size_mb: str
    status: Status


class LfsComparison(NamedTuple):
    rows: list[LfsRow]
    source_total_bytes: int
    dest_total_bytes: int

    @property
    def source_total_mb(self) -> str:
        """Source size total, converted once from the exact byte sum."""
        return format_mb(self.source_total_bytes)

    @property
    def dest_total_mb(self) -> str:
        return format_mb(self.dest_total_bytes)

    @property
    def status(self) -> Status:
        if not self.rows:
            return Status.NOT_APPLICABLE
        if all(row.status is Status.SUCCESS for row in self.rows):
            return Status.SUCCESS
        return Status.FAILED


def _hash(obj: LfsObject | None) -> str:
    return obj.content_hash[:HASH_DISPLAY_LENGTH] if obj else PLACEHOLDER


def _size(obj: LfsObject | None) -> str:
    return format_mb(obj.size_bytes) if obj else PLACEHOLDER


def compare_lfs(source: list[LfsObject], dest: list[LfsObject]) -> LfsComparison:
    """
    Compare LFS objects path by path.

    A path on both sides succeeds when hash and size both match. A path on
    one side only is reported as missing on the other, not as a failure.
    Rows are sorted by path.
    """
    source_by_path = {obj.path: obj for obj in source}
    dest_by_path = {obj.path: obj for obj in dest}
    rows = []
    for path in sorted(source_by_path.keys() | dest_by_path.keys()):
        src = source_by_path.get(path)
        dst = dest_by_path.get(path)
        if dst is None:
            status = Status.MISSING_IN_DEST
        elif src is None:
            status = Status.MISSING_IN_SOURCE
        elif src.content_hash == dst.content_hash and src.size_bytes == dst.size_bytes:
            status = Status.SUCCESS
        else:
            status = Status.FAILED
        rows.append(LfsRow(path, _hash(src), _hash(dst), _size(src), _size(dst), status))
    return LfsComparison(
        rows=rows,
        source_total_bytes=sum(obj.size_bytes for obj in source_by_path.values()),
        dest_total_bytes=sum(obj.size_bytes for obj in dest_by_path.values()),
    )
