"""
Tests for Git-LFS object comparison.
"""

from repo_parity_guard.metrics.base import Status
from repo_parity_guard.metrics.lfs import compare_lfs
from repo_parity_guard.normalize import LfsObject

MB = 1024 * 1024


def test_matching_objects_succeed():
    objects = [LfsObject("a.bin", "1" * 64, 2 * MB)]
    comparison = compare_lfs(objects, list(objects))
    assert comparison.status is Status.SUCCESS
    assert comparison.rows[0].source_hash == "1" * 12
    assert comparison.rows[0].source_size_mb == "2.00"


def test_one_sided_paths_are_missing_not_failed():
    """Test a path on one side only is reported as missing on the other."""
    source = [LfsObject("a.bin", "1" * 64, MB), LfsObject("b.bin", "2" * 64, MB)]
    dest = [LfsObject("a.bin", "1" * 64, MB), LfsObject("c.bin", "3" * 64, MB)]

    comparison = compare_lfs(source, dest)

    assert [(r.path, r.status) for r in comparison.rows] == [
        ("a.bin", Status.SUCCESS),
        ("b.bin", Status.MISSING_IN_DEST),
        ("c.bin", Status.MISSING_IN_SOURCE),
    ]
    assert comparison.rows[1].dest_hash == "-"
    assert comparison.status is Status.FAILED


def test_hash_or_size_mismatch_fails():
    source = [LfsObject("a.bin", "1" * 64, MB), LfsObject("b.bin", "2" * 64, MB)]
    dest = [LfsObject("a.bin", "9" * 64, MB), LfsObject("b.bin", "2" * 64, 2 * MB)]
    comparison = compare_lfs(source, dest)
    assert [r.status for r in comparison.rows] == [Status.FAILED, Status.FAILED]


def test_totals_and_empty():
    comparison = compare_lfs([LfsObject("a", "1", MB), LfsObject("b", "2", 3 * MB)], [])
    assert comparison.source_total_bytes == 4 * MB
    assert comparison.dest_total_bytes == 0

    empty = compare_lfs([], [])
    assert empty.rows == []
    assert empty.status is Status.NOT_APPLICABLE


def test_totals_are_not_summed_from_rounded_sizes():
    """Test many objects too small to show in a row still add up in the total."""
    objects = [LfsObject(f"icons/{i}.png", f"{i:064x}", 4096) for i in range(100)]
    comparison = compare_lfs(objects, list(objects))

    assert {row.source_size_mb for row in comparison.rows} == {"0.00"}
    assert comparison.source_total_mb == "0.39"
    assert comparison.dest_total_mb == "0.39"
