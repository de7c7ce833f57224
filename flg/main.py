"""flg CLI commands."""

import json
import sys
from pathlib import Path
from typing import Annotated

import typer
from rich import print as rprint
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from flg.errors import ConfigError, IssueBodyError, OutputError, SourceError
from flg.logging import configure_logging
from flg.models import LinkGroup, PipelineResult
from flg.output import build_document, render, write_output
from flg.parsing import parse_issue_body
from flg.pipeline import group_records, run_pipeline
from flg.providers.base import IssueSource
from flg.providers.github import GitHubIssueSource
from flg.settings import FlgSettings, get_settings, resolve_config_path

app = typer.Typer(help="flg: build friend-link data files from GitHub issues", no_args_is_help=True)

# Summaries go to stderr so that --dry-run output can be piped.
err_console = Console(stderr=True)

ConfigOpt = Annotated[
    Path | None,
    typer.Option("--config", "-c", help="Path to config.toml (default: $FLG_CONFIG or ./config.toml)"),
]

OUTPUT_FORMATS = ("json", "js")


@app.callback()
def main(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Show debug logging")] = False,
) -> None:
    configure_logging(verbose=verbose)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def load_settings(config: Path | None) -> FlgSettings:
    try:
        return get_settings(config)
    except ConfigError as exc:
        rprint(f"[red]{escape(str(exc))}[/red]")
        raise typer.Exit(1) from exc


def get_source(settings: FlgSettings) -> IssueSource:
    return GitHubIssueSource(settings)


def _print_summary(result: PipelineResult, groups: list[LinkGroup]) -> None:
    table = Table(title="Friend Links")
    table.add_column("Group", style="cyan")
    table.add_column("Label", style="dim")
    table.add_column("Entries", justify="right")
    for group in groups:
        table.add_row(group.name, group.label or "[dim](ungrouped)[/dim]", str(len(group.entries)))
    err_console.print(table)

    err_console.print(
        f"{len(result.records)} accepted, {len(result.diagnostics)} skipped, {result.inactive_count} inactive"
    )
    if not result.diagnostics:
        return

    skipped = Table(title="Skipped Issues")
    skipped.add_column("Issue", style="cyan")
    skipped.add_column("Kind", style="yellow")
    skipped.add_column("Reason")
    for diagnostic in result.diagnostics:
        skipped.add_row(f"#{diagnostic.issue_number}", diagnostic.kind, escape(diagnostic.message))
    err_console.print(skipped)


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@app.command("generate")
def generate(
    config: ConfigOpt = None,
    output: Annotated[
        Path | None,
        typer.Option("--output", "-o", help="Output file (default: output.path from the config)"),
    ] = None,
    output_format: Annotated[
        str | None,
        typer.Option("--format", "-f", help="json or js (default: output.format from the config)"),
    ] = None,
    dry_run: Annotated[bool, typer.Option("--dry-run", help="Print the output instead of writing it")] = False,
    workers: Annotated[int, typer.Option("--workers", "-w", min=1, help="Issues parsed in parallel")] = 1,
) -> None:
    """Fetch issues, extract friend links and write the data file."""
    settings = load_settings(config)
    fmt = output_format or settings.output.format
    if fmt not in OUTPUT_FORMATS:
        rprint(f"[red]Unknown output format '{escape(fmt)}'. Valid: {', '.join(OUTPUT_FORMATS)}[/red]")
        raise typer.Exit(1)

    source = get_source(settings)
    try:
        issues = source.list_issues()
    except SourceError as exc:
        rprint(f"[red]{escape(str(exc))}[/red]")
        raise typer.Exit(1) from exc

    result = run_pipeline(issues, settings.generation, max_workers=workers)
    groups = group_records(result.records, settings.generation)
    document = build_document(groups, keep_extra=settings.generation.keep_extra_fields)
    content = render(document, fmt)

    if dry_run:
        typer.echo(content, nl=False)
    else:
        target = output or settings.output.path
        try:
            write_output(target, content)
        except OutputError as exc:
            rprint(f"[red]{escape(str(exc))}[/red]")
            raise typer.Exit(1) from exc
        err_console.print(f"[green]✓[/green] Wrote {target}")

    _print_summary(result, groups)


@app.command("check")
def check(
    file: Annotated[
        Path | None,
        typer.Argument(exists=True, dir_okay=False, readable=True, help="Issue body file (reads stdin if omitted)"),
    ] = None,
) -> None:
    """Validate an issue body and print the link entry it carries."""
    try:
        body = file.read_text(encoding="utf-8") if file else sys.stdin.read()
    except (OSError, UnicodeDecodeError) as exc:
        rprint(f"[red]Could not read issue body: {escape(str(exc))}[/red]")
        raise typer.Exit(1) from exc

    try:
        record = parse_issue_body(body)
    except IssueBodyError as exc:
        rprint(f"[red]✗ {exc.kind}:[/red] {escape(str(exc))}")
        raise typer.Exit(1) from exc

    err_console.print("[green]✓[/green] Valid friend link entry")
    typer.echo(json.dumps(record.to_entry(), indent=2, ensure_ascii=False))


@app.command("config-show")
def config_show(config: ConfigOpt = None) -> None:
    """Show resolved configuration (masks the token)."""
    settings = load_settings(config)

    def mask(val: str | None) -> str:
        if val is None:
            return "[dim](not set)[/dim]"
        if len(val) <= 5:
            return "***"
        return f"...{val[-5:]}"

    github = settings.github
    generation = settings.generation

    table = Table(title="flg Configuration")
    table.add_column("Field", style="bold")
    table.add_column("Value")

    table.add_row("config file", str(resolve_config_path(config)))
    table.add_row("github.owner", github.owner)
    table.add_row("github.repository", github.repository)
    table.add_row("github.token", mask(github.token.get_secret_value() if github.token else None))
    table.add_row("github.state", github.state)
    table.add_row("github.filter_by_label", str(github.filter_by_label))
    table.add_row("generation.label", generation.label)
    table.add_row("generation.sort_by_updated_time", str(generation.sort_by_updated_time))
    table.add_row("generation.keep_extra_fields", str(generation.keep_extra_fields))
    for group in generation.groups:
        table.add_row("generation.groups", f"{group.name} ({group.label})")
    table.add_row("generation.ungrouped.enabled", str(generation.ungrouped.enabled))
    table.add_row("output.path", str(settings.output.path))
    table.add_row("output.format", settings.output.format)

    rprint(table)
