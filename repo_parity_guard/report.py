"""
Report assembly and rendering.

A ValidationReport collects the summary metric rows and the sub-tables of
one source/destination pair. ``render_report`` turns it into byte-stable
text: a fixed-width console table or GitHub-flavoured markdown.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import NamedTuple, Sequence

from repo_parity_guard.coordinates import RepoCoordinate
from repo_parity_guard.metrics.base import PLACEHOLDER, MetricResult, Status
from repo_parity_guard.metrics.codeowners import CodeownersResult
from repo_parity_guard.metrics.custom_properties import PropertyCheck
from repo_parity_guard.metrics.lfs import LfsComparison
from repo_parity_guard.metrics.membership import MembershipResult
from repo_parity_guard.metrics.team_access import TeamAccessResult
from repo_parity_guard.metrics.webhooks import WebhookResult
from repo_parity_guard.normalize import CustomProperty

METRIC_HEADERS = ["Metric", "Bitbucket Server", "GitHub", "Validation Status"]

NO_CUSTOM_PROPERTIES = "No custom properties found for this GitHub repository."
NO_LFS_FILES = "No LFS files found in either repository."
NO_CODEOWNERS = "No CodeOwners data to validate."
NO_TEAMS = "No expected teams to validate."
NO_WEBHOOK = "No expected webhook to validate."
NO_EXPECTED_PROPERTIES = "No expected custom properties to validate."
NO_METRICS = "No metrics were evaluated."


class OutputFormat(str, Enum):
    TABLE = "table"
    MARKDOWN = "markdown"


@dataclass
class ValidationReport:
    """Everything one validation run found, in rendering order."""

    source: RepoCoordinate
    dest: RepoCoordinate
    compared_branch: str | None = None
    metrics: list[MetricResult] = field(default_factory=list)
    membership: list[MembershipResult] = field(default_factory=list)
    teams: list[TeamAccessResult] | None = None
    codeowners: CodeownersResult | None = None
    webhook: WebhookResult | None = None
    custom_properties: list[CustomProperty] = field(default_factory=list)
    expected_properties: list[PropertyCheck] | None = None
    lfs: LfsComparison | None = None

    def statuses(self) -> list[Status]:
        """Every verdict in the report."""
        statuses = [row.status for row in self.metrics]
        statuses += [row.status for row in self.membership]
        statuses += [row.status for row in self.teams or []]
        statuses += [row.status for row in self.expected_properties or []]
        if self.codeowners is not None:
            statuses.append(self.codeowners.status)
        if self.webhook is not None:
            statuses.append(self.webhook.status)
        if self.lfs is not None:
            statuses.append(self.lfs.status)
        return statuses

    @property
    def passed(self) -> bool:
        """True unless some check failed or an expected team is absent."""
        bad = {Status.FAILED, Status.TEAM_NOT_PRESENT}
        return not any(status in bad for status in self.statuses())


# --- Table primitives ---


def _cell(value: object) -> str:
    text = "" if value is None else str(value)
    return text if text else PLACEHOLDER


def render_table(
    headers: Sequence[str],
    rows: Sequence[Sequence[object]],
    empty_message: str | None = None,
) -> str:
    """
    Render a fixed-width table with ``+---+`` separators.

    Column widths are the widest of the header and every cell. With no rows
    and an ``empty_message``, the message is returned instead of a table.
    """
    if not rows and empty_message is not None:
        return empty_message
    cells = [[_cell(value) for value in row] for row in rows]
    widths = _column_widths(headers, cells)
    sep = "+-" + "-+-".join("-" * w for w in widths) + "-+"

    lines = [sep, _padded_line(headers, widths), sep]
    lines.extend(_padded_line(row, widths) for row in cells)
    lines.append(sep)
    return "\n".join(lines)


def _column_widths(headers: Sequence[str], cells: Sequence[Sequence[str]]) -> list[int]:
    widths = [len(header) for header in headers]
    for row in cells:
        for i, value in enumerate(row):
            widths[i] = max(widths[i], len(value))
    return widths


def _padded_line(values: Sequence[str], widths: Sequence[int]) -> str:
    return "| " + " | ".join(v.ljust(widths[i]) for i, v in enumerate(values)) + " |"


def _md_escape(text: str) -> str:
    return text.replace("|", "\\|").replace("\n", " ")


def render_markdown_table(
    headers: Sequence[str],
    rows: Sequence[Sequence[object]],
    empty_message: str | None = None,
) -> str:
    """
    Render a GitHub-flavoured markdown table (same empty-state rule).

    Cells are escaped first and then padded to the column width, so the
    source text lines up like the console table.
    """
    if not rows and empty_message is not None:
        return empty_message
    cells = [[_md_escape(_cell(value)) for value in row] for row in rows]
    widths = _column_widths(headers, cells)
    lines = [
        _padded_line(headers, widths),
        "|" + "|".join("-" * (w + 2) for w in widths) + "|",
    ]
    lines.extend(_padded_line(row, widths) for row in cells)
    return "\n".join(lines)


# --- Sections ---


class Section(NamedTuple):
    """A titled table of a report."""

    title: str
    headers: list[str]
    rows: list[list[str]]
    empty_message: str | None = None

    def render(self, fmt: OutputFormat) -> str:
        if fmt is OutputFormat.MARKDOWN:
            body = render_markdown_table(self.headers, self.rows, self.empty_message)
            return f"**{self.title}:**\n\n{body}"
        body = render_table(self.headers, self.rows, self.empty_message)
        return f"{self.title}:\n{body}"


def _status(status: Status) -> str:
    return status.value


def metrics_section(metrics: list[MetricResult]) -> Section:
    rows = [[m.label, m.source_value, m.dest_value, _status(m.status)] for m in metrics]
    return Section("Repository Validation Metrics", METRIC_HEADERS, rows, NO_METRICS)


def membership_section(results: list[MembershipResult]) -> Section:
    rows = [
        [r.label, str(r.source_count), str(r.dest_count), r.missing_display, _status(r.status)]
        for r in results
    ]
    return Section(
        "Membership Validation",
        ["Item", "Bitbucket Server", "GitHub", "Missing in GitHub", "Validation Status"],
        rows,
    )


def teams_section(results: list[TeamAccessResult] | None) -> Section:
    rows = [
        [str(r.index), r.name, r.expected_permission, r.actual_permission, _status(r.status)]
        for r in results or []
    ]
    return Section(
        "Teams Validation",
        ["SI No", "Team Name", "Expected Permission", "Permission", "Validation Status"],
        rows,
        NO_TEAMS,
    )


def codeowners_section(result: CodeownersResult | None) -> Section:
    rows = []
    if result is not None and result.expected:
        rows.append(
            [
                ", ".join(result.expected),
                ", ".join(result.actual),
                ", ".join(result.missing),
                _status(result.status),
            ]
        )
    return Section(
        "CodeOwners Validation",
        ["Expected", "Actual", "Missing", "Validation Status"],
        rows,
        NO_CODEOWNERS,
    )


def webhook_section(result: WebhookResult | None) -> Section:
    rows = []
    if result is not None and result.expected:
        rows.append([result.expected, ", ".join(result.actual), _status(result.status)])
    return Section(
        "Webhook Validation",
        ["Expected", "Actual", "Validation Status"],
        rows,
        NO_WEBHOOK,
    )


def custom_properties_section(properties: list[CustomProperty]) -> Section:
    rows = [
        [str(index), prop.name, _cell(prop.value)]
        for index, prop in enumerate(properties, start=1)
    ]
    return Section(
        "GitHub Custom Properties",
        ["SINO", "Property-Name", "Property-Value"],
        rows,
        NO_CUSTOM_PROPERTIES,
    )


def expected_properties_section(checks: list[PropertyCheck] | None) -> Section:
    rows = [[c.name, c.expected, c.actual, _status(c.status)] for c in checks or []]
    return Section(
        "Custom Property Validation",
        ["Property", "Expected Value", "GitHub Value", "Validation Status"],
        rows,
        NO_EXPECTED_PROPERTIES,
    )


def lfs_section(comparison: LfsComparison) -> Section:
    rows = [
        [
            r.path,
            r.source_hash,
            r.dest_hash,
            r.source_size_mb,
            r.dest_size_mb,
            _status(r.status),
        ]
        for r in comparison.rows
    ]
    if rows:
        # Totals come from the byte sums; absent objects add nothing
        rows.append(
            [
                "Total (MB)",
                "",
                "",
                comparison.source_total_mb,
                comparison.dest_total_mb,
                "",
            ]
        )
    return Section(
        "LFS Objects Validation",
        [
            "Path",
            "Bitbucket OID",
            "GitHub OID",
            "Bitbucket Size (MB)",
            "GitHub Size (MB)",
            "Validation Status",
        ],
        rows,
        NO_LFS_FILES,
    )


def report_sections(report: ValidationReport) -> list[Section]:
    """Sections in rendering order; optional ones only when evaluated."""
    sections = [metrics_section(report.metrics)]
    if report.membership:
        sections.append(membership_section(report.membership))
    if report.teams is not None:
        sections.append(teams_section(report.teams))
    if report.codeowners is not None:
        sections.append(codeowners_section(report.codeowners))
    if report.webhook is not None:
        sections.append(webhook_section(report.webhook))
    sections.append(custom_properties_section(report.custom_properties))
    if report.expected_properties is not None:
        sections.append(expected_properties_section(report.expected_properties))
    if report.lfs is not None:
        sections.append(lfs_section(report.lfs))
    return sections


def render_report(
    report: ValidationReport, fmt: OutputFormat | str = OutputFormat.TABLE
) -> str:
    """Render the whole report; identical input gives identical output."""
    fmt = OutputFormat(fmt)
    title = f"{report.source.full_name} -> {report.dest.full_name}"
    if fmt is OutputFormat.MARKDOWN:
        header = f"### Repository validation: {title}"
    else:
        header = f"Repository validation: {title}"
    if report.compared_branch:
        header += f"\nCompared branch: {report.compared_branch}"
    parts = [header] + [section.render(fmt) for section in report_sections(report)]
    return "\n\n".join(parts) + "\n"


def refs_sections(results: list[MembershipResult]) -> list[Section]:
    """Per-kind count table, plus the missing names when there are any."""
    sections = []
    for result in results:
        sections.append(
            Section(
                f"{result.label} Comparison",
                ["Metric", "Bitbucket", "GitHub"],
                [
                    ["Total Count", str(result.source_count), str(result.dest_count)],
                    ["Missing in GitHub", str(len(result.missing_in_dest)), PLACEHOLDER],
                ],
            )
        )
        if result.missing_in_dest:
            sections.append(
                Section(
                    f"Missing {result.label.lower()} in GitHub",
                    ["Name"],
                    [[name] for name in result.missing_in_dest],
                )
            )
    return sections


def render_refs(
    results: list[MembershipResult], fmt: OutputFormat | str = OutputFormat.TABLE
) -> str:
    fmt = OutputFormat(fmt)
    return "\n\n".join(section.render(fmt) for section in refs_sections(results)) + "\n"
