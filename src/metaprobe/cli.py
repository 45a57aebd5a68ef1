"""Command-line interface for metaprobe."""

from __future__ import annotations

import asyncio
import json
import sys
from pathlib import Path
from typing import Any, Dict, Optional

import click
import structlog
from rich.console import Console
from rich.table import Table

from metaprobe import __version__
from metaprobe.config.config import Config, FetchOptions, find_config_file
from metaprobe.enrichment.engine import EnrichmentEngine
from metaprobe.enrichment.lexicons import load_lexicons
from metaprobe.enrichment.models import EnrichedMetadataRecord
from metaprobe.exceptions import URLValidationError
from metaprobe.observability.logging import configure_logging
from metaprobe.protocols import MetadataRecord
from metaprobe.service import MetadataService

console = Console()
logger = structlog.get_logger(__name__)


def load_config(config_path: Optional[Path], log_level: Optional[str]) -> Config:
    path = config_path or find_config_file()
    config = Config.from_yaml(path) if path else Config()
    if log_level:
        config = config.model_copy(update={"monitoring": config.monitoring.model_copy(update={"log_level": log_level})})
    return config


def summary_table(result: EnrichedMetadataRecord) -> Table:
    record = result.record
    table = Table(title=record.url)
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="magenta")

    table.add_row("title", record.title or "-")
    table.add_row("description", record.description or "-")
    table.add_row("content type", record.content_type.value)
    table.add_row("fetch method", record.fetch_method.value)
    table.add_row("primary image", record.primary_image or "-")
    table.add_row("images", str(len(record.images)))
    table.add_row("navbar links", str(len(record.navbar_links)))
    table.add_row("load time (ms)", str(record.load_time_ms))

    enhancements = result.ai_enhancements
    if enhancements.category:
        table.add_row("category", enhancements.category.primary)
    if enhancements.sentiment:
        table.add_row("sentiment", enhancements.sentiment.overall)
    for issue in record.errors:
        table.add_row(f"error ({issue.stage})", f"[red]{issue.kind}: {issue.message}[/red]")
    return table


def emit(data: Dict[str, Any], output: Optional[str]) -> None:
    formatted = json.dumps(data, indent=2, ensure_ascii=False)
    if output:
        Path(output).write_text(formatted, encoding="utf-8")
        console.print(f"[green]Saved to {output}[/green]")
    else:
        console.print_json(formatted)


@click.group()
@click.version_option(version=__version__)
@click.option("--config", "-c", type=click.Path(exists=True), help="Configuration file path")
@click.option(
    "--log-level",
    default=None,
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"]),
    help="Logging level (overrides the configuration file)",
)
@click.pass_context
def cli(ctx: click.Context, config: Optional[str], log_level: Optional[str]) -> None:
    """metaprobe - URL metadata extraction and enrichment."""
    ctx.ensure_object(dict)
    ctx.obj["config"] = load_config(Path(config) if config else None, log_level)
    configure_logging(ctx.obj["config"].monitoring)


@cli.command()
@click.argument("url")
@click.option("--rendered", is_flag=True, help="Render the page in a headless browser")
@click.option("--no-fallback", is_flag=True, help="Never fall back to rendering")
@click.option("--no-cache", is_flag=True, help="Bypass the cache")
@click.option("--timeout", type=int, default=None, help="Network timeout in milliseconds")
@click.option("--output", "-o", type=click.Path(), help="Write the JSON record to a file")
@click.option(
    "--format",
    "output_format",
    default="json",
    type=click.Choice(["json", "table"]),
    help="Output format",
)
@click.pass_context
def fetch(
    ctx: click.Context,
    url: str,
    rendered: bool,
    no_fallback: bool,
    no_cache: bool,
    timeout: Optional[int],
    output: Optional[str],
    output_format: str,
) -> None:
    """Fetch and enrich metadata for URL."""
    config: Config = ctx.obj["config"]
    overrides: Dict[str, Any] = {}
    if rendered:
        overrides["prefer_rendered"] = True
    if no_fallback:
        overrides["fallback_to_rendered"] = False
    if no_cache:
        overrides["enable_caching"] = False
    if timeout is not None:
        overrides["timeout"] = timeout

    async def run_fetch() -> EnrichedMetadataRecord:
        async with MetadataService(config) as service:
            return await service.fetch_metadata(url, overrides)

    try:
        result = asyncio.run(run_fetch())
    except URLValidationError as e:
        console.print(f"[red]Invalid URL: {e}[/red]")
        sys.exit(2)

    if output_format == "table":
        console.print(summary_table(result))
        if output:
            emit(result.to_dict(), output)
    else:
        emit(result.to_dict(), output)

    if result.record.errors and not result.record.title:
        sys.exit(1)


@cli.command()
@click.option("--title", default="", help="Page title")
@click.option("--description", default="", help="Page description")
@click.option("--url", default="https://example.com", help="URL used in the suggested templates")
@click.option("--output", "-o", type=click.Path(), help="Write the JSON analysis to a file")
@click.pass_context
def analyze(ctx: click.Context, title: str, description: str, url: str, output: Optional[str]) -> None:
    """Run content enrichment on a title and description without fetching."""
    config: Config = ctx.obj["config"]
    record = MetadataRecord(url=url, title=title.strip(), description=description.strip())
    options: FetchOptions = config.fetch
    result = EnrichmentEngine(load_lexicons(config.enrichment.lexicons_file)).enrich(record, options)
    emit(result.ai_enhancements.to_dict(), output)


def main() -> None:
    """Main entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
