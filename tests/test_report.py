"""
Tests for report rendering.
"""

from repo_parity_guard.coordinates import parse_destination_url, parse_source_url
from repo_parity_guard.metrics.base import MetricResult, Status
from repo_parity_guard.metrics.codeowners import validate_codeowners
from repo_parity_guard.metrics.lfs import compare_lfs
from repo_parity_guard.metrics.membership import compare_membership
from repo_parity_guard.metrics.team_access import TeamAccessResult
from repo_parity_guard.normalize import CustomProperty, LfsObject
from repo_parity_guard.report import (
    NO_CODEOWNERS,
    NO_CUSTOM_PROPERTIES,
    NO_LFS_FILES,
    OutputFormat,
    ValidationReport,
    codeowners_section,
    custom_properties_section,
    lfs_section,
    membership_section,
    render_markdown_table,
    render_refs,
    render_report,
    render_table,
)

SOURCE = parse_source_url("https://bb.example.com/projects/PROJ/repos/payments/browse")
DEST = parse_destination_url("https://github.com/acme/payments")


def _report(**kwargs):
    report = ValidationReport(source=SOURCE, dest=DEST, compared_branch="main")
    report.metrics = [
        MetricResult("Total Branch", "2", "1", Status.FAILED),
        MetricResult("Total Tags", "3", "3", Status.SUCCESS),
    ]
    for key, value in kwargs.items():
        setattr(report, key, value)
    return report


def test_render_table_layout():
    """Test widths come from the widest cell and separators frame the table."""
    text = render_table(["Metric", "GitHub"], [["Total Tags", "3"], ["Open PRs", None]])
    assert text == "\n".join(
        [
            "+------------+--------+",
            "| Metric     | GitHub |",
            "+------------+--------+",
            "| Total Tags | 3      |",
            "| Open PRs   | -      |",
            "+------------+--------+",
        ]
    )


def test_empty_table_renders_message():
    assert render_table(["SINO"], [], NO_CUSTOM_PROPERTIES) == NO_CUSTOM_PROPERTIES
    assert render_markdown_table(["SINO"], [], NO_CUSTOM_PROPERTIES) == NO_CUSTOM_PROPERTIES


def test_empty_table_without_message_keeps_headers():
    assert render_table(["Name"], []).splitlines()[1] == "| Name |"


def test_markdown_table_escapes_pipes():
    text = render_markdown_table(["Name", "Value"], [["a|b", ""]])
    assert text.splitlines() == ["| Name | Value |", "|------|-------|", "| a\\|b | -     |"]


def test_markdown_table_pads_to_column_width():
    text = render_markdown_table(["Item", "Count"], [["Branches", "12"], ["Tags", "3"]])
    assert text.splitlines() == [
        "| Item     | Count |",
        "|----------|-------|",
        "| Branches | 12    |",
        "| Tags     | 3     |",
    ]


def test_membership_section_has_no_totals_row():
    """Test branch, tag and webhook counts are never added together."""
    results = [
        compare_membership("Branches", ["main", "dev"], ["main"]),
        compare_membership("Tags", ["v1"], ["v1"]),
    ]
    section = membership_section(results)
    assert section.rows[0] == ["Branches", "2", "1", "dev", Status.FAILED.value]
    assert [row[0] for row in section.rows] == ["Branches", "Tags"]


def test_lfs_section_total_in_megabytes():
    mb = 1024 * 1024
    comparison = compare_lfs(
        [LfsObject("a.bin", "1" * 64, mb), LfsObject("b.bin", "2" * 64, mb // 2)],
        [LfsObject("a.bin", "1" * 64, mb)],
    )
    section = lfs_section(comparison)
    assert section.rows[-1][0] == "Total (MB)"
    assert section.rows[-1][3:5] == ["1.50", "1.00"]


def test_lfs_section_total_of_small_objects():
    """Test the total uses exact sizes even when every row shows 0.00."""
    objects = [LfsObject(f"icons/{i}.png", f"{i:064x}", 4096) for i in range(100)]
    section = lfs_section(compare_lfs(objects, list(objects)))

    assert section.rows[0][3] == "0.00"
    assert section.rows[-1] == ["Total (MB)", "", "", "0.39", "0.39", ""]


def test_lfs_section_empty_message():
    section = lfs_section(compare_lfs([], []))
    assert section.render(OutputFormat.TABLE) == f"LFS Objects Validation:\n{NO_LFS_FILES}"


def test_codeowners_section_without_expectations():
    section = codeowners_section(validate_codeowners([], ["@acme/platform"]))
    assert section.rows == []
    assert section.render(OutputFormat.MARKDOWN).endswith(NO_CODEOWNERS)


def test_custom_properties_section():
    section = custom_properties_section([CustomProperty("BSN", "Payments")])
    assert section.rows == [["1", "BSN", "Payments"]]


def test_render_report_table():
    text = render_report(_report(), OutputFormat.TABLE)

    assert text.startswith(
        "Repository validation: PROJ/payments -> acme/payments\nCompared branch: main\n\n"
    )
    assert "Repository Validation Metrics:\n+" in text
    assert "| Total Branch | 2                | 1      | Validation Failed  |" in text
    assert NO_CUSTOM_PROPERTIES in text
    assert "Teams Validation" not in text
    assert text.endswith("\n")


def test_render_report_markdown_optional_sections():
    teams = [TeamAccessResult(1, "payments-dev", "push", "-", Status.TEAM_NOT_PRESENT)]
    text = render_report(_report(teams=teams), "markdown")

    assert text.startswith("### Repository validation: PROJ/payments -> acme/payments")
    assert "**Teams Validation:**\n\n| SI No |" in text
    assert "| 1     | payments-dev | push                | -          | Team not present  |" in text


def test_render_report_is_deterministic():
    assert render_report(_report()) == render_report(_report())


def test_report_passed():
    assert not _report().passed
    report = _report()
    report.metrics = [MetricResult("Total Tags", "3", "3", Status.SUCCESS)]
    assert report.passed
    report.teams = [TeamAccessResult(1, "x", "push", "-", Status.TEAM_NOT_PRESENT)]
    assert not report.passed


def test_render_refs():
    results = [
        compare_membership("Branches", ["main", "dev"], ["main"]),
        compare_membership("Tags", ["v1"], ["v1", "v2"]),
    ]
    text = render_refs(results)

    assert "Branches Comparison:" in text
    assert "| Total Count       | 2         | 1      |" in text
    assert "Missing branches in GitHub:" in text
    assert "| dev  |" in text
    assert "Missing tags in GitHub" not in text
