"""CLI entry point for the sales recon tool."""

from __future__ import annotations

import asyncio
import io
import json
import logging
import os
import sys

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from sales_recon.config import load_config
from sales_recon.errors import AppError, get_user_message
from sales_recon.models import AdvancedSearchParams, AnalysisResult
from sales_recon.pipeline import ReconPipeline

# Fix Windows console encoding for Unicode output
if sys.platform == "win32":
    sys.stdout = io.TextIOWrapper(sys.stdout.buffer, encoding="utf-8", errors="replace")
    sys.stderr = io.TextIOWrapper(sys.stderr.buffer, encoding="utf-8", errors="replace")
    os.environ.setdefault("PYTHONIOENCODING", "utf-8")

console = Console()


@click.command()
@click.argument("url")
@click.option("--contact-person", default=None, help="Person to tailor the research to")
@click.option("--department", default=None, help="Department within the company")
@click.option("--location", default=None, help="Office or region")
@click.option("--job-title", default=None, help="Contact's job title")
@click.option("--focus", default=None, help="Specific topic to focus on")
@click.option(
    "--language", "-l",
    type=click.Choice(["en", "sv"]),
    default="en",
    show_default=True,
    help="Language of the generated analysis",
)
@click.option("--json", "as_json", is_flag=True, help="Print the raw result as JSON")
@click.option("--stats", is_flag=True, help="Print provider and cache statistics afterwards")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose debug logging")
def main(
    url: str,
    contact_person: str | None,
    department: str | None,
    location: str | None,
    job_title: str | None,
    focus: str | None,
    language: str,
    as_json: bool,
    stats: bool,
    verbose: bool,
) -> None:
    """Research a company from its website URL and print sales intelligence.

    Example: sales-recon acme.se --contact-person "Jane Doe" --language sv
    """
    log_level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=log_level,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False, show_time=False)],
    )

    try:
        config = load_config()
    except AppError as e:
        console.print(f"[red]Configuration error: {e.developer_message}[/red]")
        sys.exit(1)

    params = AdvancedSearchParams(
        contact_person=contact_person,
        department=department,
        location=location,
        job_title=job_title,
        specific_focus=focus,
    )

    try:
        result, pipeline_stats = asyncio.run(
            _run(config, url, None if params.is_empty() else params, language)
        )
    except AppError as e:
        console.print(f"[red]{get_user_message(e, language)}[/red]")
        if verbose:
            console.print(f"[dim]{type(e).__name__}: {e.developer_message}[/dim]")
        sys.exit(1)

    if as_json:
        click.echo(result.model_dump_json(indent=2))
    else:
        _print_result(url, result)

    if stats:
        _print_stats(pipeline_stats, as_json)


async def _run(config, url, params, language):
    async with ReconPipeline(config) as pipeline:
        with console.status(f"Researching {url}...", spinner="dots"):
            result = await pipeline.analyze(url, advanced_params=params, language=language)
        return result, pipeline.stats()


def _print_result(url: str, result: AnalysisResult) -> None:
    if result.error:
        console.print(f"[yellow]No analysis produced for {url}: {result.error}[/yellow]")
        return

    console.print(Panel(result.summary, title=f"[bold green]{url}[/bold green]", expand=False))

    table = Table(title="Ice breakers", show_lines=True)
    table.add_column("#", style="dim", width=3)
    table.add_column("Opener")
    table.add_column("Source", style="cyan", overflow="fold")
    for i, ice in enumerate(result.ice_breaker, 1):
        table.add_row(str(i), ice.text, ice.source_url or "-")
    console.print(table)

    console.print("\n[bold]Pain points[/bold]")
    for point in result.pain_points:
        console.print(f"  - {point}")
    console.print("\n[bold]Sales hooks[/bold]")
    for hook in result.sales_hooks:
        console.print(f"  - {hook}")
    console.print(f"\n[bold]Financial signals:[/bold] {result.financial_signals}")
    console.print(f"[bold]Company tone:[/bold] {result.company_tone}\n")


def _print_stats(stats: dict, as_json: bool) -> None:
    if as_json:
        click.echo(json.dumps(stats, indent=2))
        return

    table = Table(title="Search providers")
    table.add_column("Provider")
    table.add_column("Searches", justify="right")
    table.add_column("Failures", justify="right")
    table.add_column("Last error", overflow="fold")
    for provider in stats["providers"]:
        table.add_row(
            provider["name"],
            str(provider["searches"]),
            str(provider["failures"]),
            provider["last_error"] or "",
        )
    console.print(table)

    cache = stats["cache"]
    console.print(
        f"[dim]Cache: {cache['size']} entries, {cache['hits']} hits, "
        f"{cache['misses']} misses, hit rate {cache['hit_rate']}[/dim]"
    )


if __name__ == "__main__":
    main()
