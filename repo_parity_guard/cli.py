"""
Command-line interface for Repo Parity Guard.
"""

import logging
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Iterator

import typer
from rich.console import Console
from rich.logging import RichHandler

from repo_parity_guard import __version__
from repo_parity_guard.config import Settings, load_settings, set_verify_ssl
from repo_parity_guard.coordinates import (
    RepoCoordinate,
    parse_destination_url,
    parse_source_url,
)
from repo_parity_guard.errors import ConfigurationError, FetchError, GitCommandError
from repo_parity_guard.expectations import (
    ProjectExpectations,
    fetch_expectations,
    load_expectations,
)
from repo_parity_guard.git import mask_credentials
from repo_parity_guard.http_client import close_http_client
from repo_parity_guard.inventory import (
    ARCHIVED_HEADER,
    CODEOWNERS_HEADER,
    append_repo_info,
    codeowners_presence,
    collect_archived_repos,
    collect_repo_info,
    list_org_repositories,
    read_repo_urls,
    write_rows,
)
from repo_parity_guard.issue import load_issue_context, parse_issue_request
from repo_parity_guard.metrics.base import Status
from repo_parity_guard.report import (
    OutputFormat,
    ValidationReport,
    render_refs,
    render_report,
)
from repo_parity_guard.validator import compare_refs, validate_repositories
from repo_parity_guard.vcs import (
    destination_provider_from_settings,
    providers_from_settings,
    source_provider_from_settings,
)

# --- Typer App ---
app = typer.Typer(help="Validate that a Bitbucket Server to GitHub migration preserved repository state.")
console = Console()
error_console = Console(stderr=True)

logger = logging.getLogger("repo_parity_guard")

# --- Helper Functions ---


def _configure_logging(verbose: bool) -> None:
    """Send library log records to stderr through rich."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=error_console, show_path=False)],
        force=True,
    )
    # One line per request is noise even in verbose mode
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def _diagnostic(error: Exception) -> str:
    lines = str(error).strip().splitlines()
    return mask_credentials(lines[0] if lines else type(error).__name__)


@contextmanager
def _handled_errors() -> Iterator[None]:
    """Turn package errors into a one-line diagnostic and an exit code."""
    try:
        yield
    except ConfigurationError as e:
        error_console.print(f"[yellow]⚠️  {_diagnostic(e)}[/yellow]")
        logger.debug("%s", mask_credentials(str(e)))
        raise typer.Exit(code=2) from None
    except (FetchError, GitCommandError) as e:
        error_console.print(f"[red]❌ {_diagnostic(e)}[/red]")
        raise typer.Exit(code=1) from None
    finally:
        close_http_client()


def _emit(text: str, output: Path | None) -> None:
    if output:
        output.write_text(text, encoding="utf-8")
        console.print(f"[dim]Report written to {output}[/dim]")
    else:
        console.print(text, markup=False, highlight=False, soft_wrap=True, end="")


def _expectations(
    settings: Settings,
    source: RepoCoordinate,
    dest: RepoCoordinate,
    expectations_dir: Path | None,
) -> ProjectExpectations | None:
    if expectations_dir:
        return load_expectations(
            expectations_dir, settings, source.project_or_org, dest.repo_slug
        )
    if settings.expectations_repo:
        console.print("[dim]Cloning expectation repository...[/dim]")
    return fetch_expectations(settings, source.project_or_org, dest.repo_slug)


def _run_validation(
    settings: Settings,
    source: RepoCoordinate,
    dest: RepoCoordinate,
    expectations_dir: Path | None,
    lfs: bool,
    graphql_commit_count: bool,
) -> ValidationReport:
    settings.require_bitbucket_credentials()
    settings.require_github_token()
    source_provider, dest_provider = providers_from_settings(settings, source.base_url)
    expectations = _expectations(settings, source, dest, expectations_dir)
    console.print(
        f"🔍 Validating [bold]{source.full_name}[/bold] -> [bold]{dest.full_name}[/bold]..."
    )
    return validate_repositories(
        source,
        dest,
        settings,
        source_provider,
        dest_provider,
        expectations=expectations,
        include_lfs=lfs,
        graphql_commit_count=graphql_commit_count,
    )


def display_summary(report: ValidationReport) -> None:
    """Print a one-line verdict under the report."""
    failed = sum(1 for status in report.statuses() if status is Status.FAILED)
    absent = sum(1 for status in report.statuses() if status is Status.TEAM_NOT_PRESENT)
    if report.passed:
        console.print("[green]✅ All validations passed.[/green]")
        return
    parts = []
    if failed:
        parts.append(f"{failed} failed")
    if absent:
        parts.append(f"{absent} team(s) not present")
    console.print(f"[yellow]⚠️  Validation needs attention: {', '.join(parts)}.[/yellow]")


# --- Commands ---

_FORMAT_HELP = "Output format: 'table' (fixed-width console) or 'markdown'."


@app.command()
def validate(
    source_url: str = typer.Argument(
        ...,
        help="Bitbucket Server repository URL (browse or /scm/ clone URL).",
    ),
    dest_url: str = typer.Argument(
        ...,
        help="GitHub repository URL.",
    ),
    output_format: OutputFormat = typer.Option(
        OutputFormat.TABLE,
        "--format",
        "-f",
        help=_FORMAT_HELP,
    ),
    expectations_repo: str | None = typer.Option(
        None,
        "--expectations-repo",
        help="Expectation repository ('org/repo' on github.com, or a clone URL).",
    ),
    expectations_dir: Path | None = typer.Option(
        None,
        "--expectations-dir",
        help="Local checkout of the expectation repository (skips cloning).",
    ),
    lfs: bool = typer.Option(
        False,
        "--lfs",
        help="Clone both repositories and compare Git-LFS objects.",
    ),
    graphql_commit_count: bool = typer.Option(
        False,
        "--graphql-commit-count",
        help="Count destination commits with a single GraphQL query.",
    ),
    post_comment: int | None = typer.Option(
        None,
        "--post-comment",
        help="Also post the markdown report as a comment on this issue number.",
    ),
    issue_repo: str | None = typer.Option(
        None,
        "--issue-repo",
        help="Repository ('owner/name') holding the issue (default: GITHUB_REPOSITORY).",
    ),
    output: Path | None = typer.Option(
        None,
        "--output",
        "-o",
        help="Write the report to this file instead of standard output.",
    ),
    insecure: bool = typer.Option(
        False,
        "--insecure",
        help="Disable SSL certificate verification for HTTPS requests.",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Log requests, retries and fallbacks to stderr.",
    ),
):
    """Compare a Bitbucket Server repository with its GitHub migration."""
    _configure_logging(verbose)
    set_verify_ssl(not insecure)
    with _handled_errors():
        settings = load_settings(expectations_repo=expectations_repo)
        source = parse_source_url(source_url)
        dest = parse_destination_url(dest_url)
        report = _run_validation(
            settings, source, dest, expectations_dir, lfs, graphql_commit_count
        )
        _emit(render_report(report, output_format), output)
        display_summary(report)

        if post_comment is not None:
            repository = issue_repo or settings.github_repository
            if not repository:
                raise ConfigurationError(
                    "--post-comment needs --issue-repo or GITHUB_REPOSITORY."
                )
            _, dest_provider = providers_from_settings(settings, source.base_url)
            url = dest_provider.post_issue_comment(
                repository, post_comment, render_report(report, OutputFormat.MARKDOWN)
            )
            console.print(f"💬 Posted result as a comment to {repository}#{post_comment}")
            if url:
                console.print(f"   [dim]{url}[/dim]")


@app.command("validate-issue")
def validate_issue(
    lfs: bool = typer.Option(
        False,
        "--lfs",
        help="Clone both repositories and compare Git-LFS objects.",
    ),
    graphql_commit_count: bool = typer.Option(
        False,
        "--graphql-commit-count",
        help="Count destination commits with a single GraphQL query.",
    ),
    insecure: bool = typer.Option(
        False,
        "--insecure",
        help="Disable SSL certificate verification for HTTPS requests.",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Log requests, retries and fallbacks to stderr.",
    ),
):
    """Validate the migration requested by the issue in GITHUB_EVENT_PATH and comment on it."""
    _configure_logging(verbose)
    set_verify_ssl(not insecure)
    with _handled_errors():
        settings = load_settings()
        context = load_issue_context(settings)
        request = parse_issue_request(context.body, settings)
        report = _run_validation(
            settings, request.source, request.dest, None, lfs, graphql_commit_count
        )
        body = render_report(report, OutputFormat.MARKDOWN)

        if context.number is not None and context.repository:
            _, dest_provider = providers_from_settings(settings, request.source.base_url)
            dest_provider.post_issue_comment(context.repository, context.number, body)
            console.print(
                f"💬 Posted result as a comment to issue #{context.number} "
                f"in {context.repository}"
            )
        else:
            console.print("[dim]No triggering issue context found; skipping comment.[/dim]")
            _emit(body, None)
        display_summary(report)


@app.command("compare-refs")
def compare_refs_command(
    source_url: str = typer.Argument(..., help="Bitbucket Server repository URL."),
    dest_url: str = typer.Argument(..., help="GitHub repository URL."),
    output_format: OutputFormat = typer.Option(
        OutputFormat.TABLE,
        "--format",
        "-f",
        help=_FORMAT_HELP,
    ),
    insecure: bool = typer.Option(
        False,
        "--insecure",
        help="Disable SSL certificate verification for HTTPS requests.",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Log requests, retries and fallbacks to stderr.",
    ),
):
    """Compare branch and tag names only."""
    _configure_logging(verbose)
    set_verify_ssl(not insecure)
    with _handled_errors():
        settings = load_settings()
        source = parse_source_url(source_url)
        dest = parse_destination_url(dest_url)
        settings.require_bitbucket_credentials()
        settings.require_github_token()
        source_provider, dest_provider = providers_from_settings(settings, source.base_url)
        console.print("[dim]Fetching Bitbucket and GitHub data. Please wait...[/dim]")
        results = compare_refs(source, dest, source_provider, dest_provider)
        _emit(render_refs(results, output_format), None)


@app.command("repo-info")
def repo_info(
    input_csv: Path = typer.Argument(
        Path("repos.csv"),
        help="CSV file with a 'url' column of Bitbucket repository URLs.",
    ),
    output: Path = typer.Option(
        Path("output.csv"),
        "--output",
        "-o",
        help="CSV file to append results to (header written only when new).",
    ),
    insecure: bool = typer.Option(
        False,
        "--insecure",
        help="Disable SSL certificate verification for HTTPS requests.",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Log requests, retries and fallbacks to stderr.",
    ),
):
    """Count branches, tags and pull requests of Bitbucket repositories listed in a CSV."""
    _configure_logging(verbose)
    set_verify_ssl(not insecure)
    if not input_csv.is_file():
        console.print(f"[yellow]⚠️  Input file not found: {input_csv}[/yellow]")
        raise typer.Exit(code=2)

    with _handled_errors():
        settings = load_settings()
        settings.require_bitbucket_credentials()
        rows = []
        for url in read_repo_urls(input_csv):
            try:
                coord = parse_source_url(url)
                source_provider = source_provider_from_settings(settings, coord.base_url)
                info = collect_repo_info(source_provider, coord)
            except (ConfigurationError, FetchError) as e:
                console.print(f"[yellow]Error processing {url}: {_diagnostic(e)}[/yellow]")
                continue
            console.print(
                f"{info.project}, {info.repo}, Repo URL: {info.repo_url}, "
                f"Branches: {info.branches}, Tags: {info.tags}, "
                f"Open PRs: {info.open_prs}, Closed PRs: {info.closed_prs}"
            )
            rows.append(info)
        written = append_repo_info(output, rows)
        console.print(f"[green]✨ Appended {written} row(s) to {output}[/green]")


@app.command("archived-repos")
def archived_repos(
    project: str | None = typer.Option(
        None,
        "--project",
        "-p",
        help="Bitbucket project key (default: every project on the server).",
    ),
    base_url: str | None = typer.Option(
        None,
        "--base-url",
        help="Bitbucket Server root (default: BITBUCKET_BASEURL).",
    ),
    output: Path = typer.Option(
        Path("archived_repos.csv"),
        "--output",
        "-o",
        help="CSV file to write (replaced when it exists).",
    ),
    insecure: bool = typer.Option(
        False,
        "--insecure",
        help="Disable SSL certificate verification for HTTPS requests.",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Log requests, retries and fallbacks to stderr.",
    ),
):
    """List archived Bitbucket Server repositories to a CSV file."""
    _configure_logging(verbose)
    set_verify_ssl(not insecure)
    with _handled_errors():
        settings = load_settings()
        settings.require_bitbucket_credentials()
        provider = source_provider_from_settings(settings, base_url)
        repos = collect_archived_repos(provider, project)
        if not repos:
            console.print("[dim]No archived repositories found.[/dim]")
            return
        write_rows(output, ARCHIVED_HEADER, repos)
        console.print(
            f"[green]✅ Archived repositories saved to {output} ({len(repos)} repos)[/green]"
        )


@app.command("org-codeowners")
def org_codeowners(
    org: str = typer.Argument(..., help="GitHub organization to scan."),
    since: datetime | None = typer.Option(
        None,
        "--since",
        formats=["%Y-%m-%d"],
        help="Only repositories created on or after this date (YYYY-MM-DD).",
    ),
    output: Path = typer.Option(
        Path("codeowners_report.csv"),
        "--output",
        "-o",
        help="CSV file to write (replaced when it exists).",
    ),
    insecure: bool = typer.Option(
        False,
        "--insecure",
        help="Disable SSL certificate verification for HTTPS requests.",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Log requests, retries and fallbacks to stderr.",
    ),
):
    """Report which repositories of a GitHub organization have a CODEOWNERS file."""
    _configure_logging(verbose)
    set_verify_ssl(not insecure)
    with _handled_errors():
        settings = load_settings()
        settings.require_github_token()
        provider = destination_provider_from_settings(settings)
        repositories = list_org_repositories(provider, org, since)
        console.print(f"🔍 Checking {len(repositories)} repositories in [bold]{org}[/bold]...")
        rows = []
        for index, repository in enumerate(repositories, start=1):
            presence = codeowners_presence(provider, repository, settings.codeowners_paths)
            console.print(
                f"[{index}/{len(repositories)}] {presence.repo_name} - "
                f"CODEOWNERS: {presence.as_row()[2]}",
                markup=False,
            )
            rows.append(presence.as_row())
        write_rows(output, CODEOWNERS_HEADER, rows)
        console.print(f"[green]✨ Wrote {len(rows)} row(s) to {output}[/green]")


@app.command()
def version():
    """Show the installed version."""
    console.print(f"repo-parity-guard {__version__}")


if __name__ == "__main__":
    app()
