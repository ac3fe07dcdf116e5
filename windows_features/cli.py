"""windows-features CLI - Cargo features required by `use windows::` imports."""

from __future__ import annotations

import logging
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler

from windows_features import __version__
from windows_features.config import (
    DEFAULT_METADATA_URL,
    FeatureReport,
    MetadataLoadError,
    NothingToResolveError,
    ResolverConfig,
)

EXIT_METADATA_ERROR = 1
EXIT_NOTHING_TO_RESOLVE = 2


def _configure_logging(console: Console, debug: bool, quiet: bool) -> None:
    if debug:
        level = logging.DEBUG
    elif quiet:
        level = logging.ERROR
    else:
        level = logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_time=False, show_path=False)],
        force=True,
    )


@click.group()
@click.version_option(__version__, prog_name="windows-features")
def cli() -> None:
    """windows-features - Find the windows-rs features your imports need."""
    pass


def _run_with_progress(config: ResolverConfig, console: Console) -> FeatureReport:
    """Run the pipeline with Rich progress display."""
    from rich.progress import Progress, SpinnerColumn, TextColumn, TimeElapsedColumn

    from windows_features.pipeline import run_pipeline

    with Progress(
        SpinnerColumn(),
        TextColumn("[bold blue]{task.description}"),
        TimeElapsedColumn(),
        console=console,
        transient=True,
    ) as progress:
        task = progress.add_task("Initialising...", total=None)

        def on_phase(name, label):
            progress.update(task, description=label)

        return run_pipeline(config, progress_callback=on_phase)


def _print_summary(report: FeatureReport, config: ResolverConfig, console: Console) -> None:
    from rich.table import Table

    stats = report.stats
    metadata = report.metadata

    table = Table(title=f"windows-features: {Path(config.scan_root).resolve().name}", show_edge=False)
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")

    table.add_row("Import lines", str(stats.get("import_lines", 0)))
    table.add_row("Distinct imports", str(stats.get("distinct_imports", 0)))
    table.add_row("Features", str(stats.get("features", 0)))
    for kind, count in stats.get("diagnostics", {}).items():
        table.add_row(kind, str(count), style="yellow")
    table.add_row("Duration", f"{metadata.get('resolution_duration_ms', 0):.1f}ms")

    console.print(table)


def _print_trace(report: FeatureReport, config: ResolverConfig, console: Console) -> None:
    from rich.table import Table

    table = Table(title="Resolution trace", show_edge=False)
    table.add_column("Import", style="bold")
    table.add_column("Namespace")
    table.add_column("Symbol")
    table.add_column("Features")

    for req in report.requirements:
        stmt = req.import_
        namespace = stmt.namespace(config.namespace_root)
        if req.namespace_id is None:
            namespace = f"[red]{namespace}[/red]"
        table.add_row(
            stmt.statement,
            namespace,
            req.matched_symbol or "*",
            ", ".join(sorted(req.features)),
        )
    console.print(table)

    timings = report.metadata.get("phase_timings", {})
    if timings:
        timing_table = Table(title="Phase Timings", show_edge=False)
        timing_table.add_column("Phase", style="bold")
        timing_table.add_column("Time (ms)", justify="right")
        for phase, seconds in timings.items():
            timing_table.add_row(phase, f"{seconds * 1000:.1f}")
        console.print(timing_table)


@cli.command("resolve")
@click.argument("path", default=".", type=click.Path(exists=True, file_okay=False))
@click.option("--metadata", "metadata_path", default=None, help="Local features.json to use instead of the cached download")
@click.option("--url", "metadata_url", default=DEFAULT_METADATA_URL, show_default=True, help="Where to download features.json from")
@click.option("--cache-dir", default=None, help="Directory for the downloaded features.json")
@click.option("--refresh", is_flag=True, help="Download features.json even if a cached copy exists")
@click.option("-o", "--output", "output_path", default=None, help="Report file path")
@click.option("--workers", default=1, type=click.IntRange(min=1), help="Threads used for resolution")
@click.option("--exclude", multiple=True, help="Additional directory names to skip")
@click.option("--debug", is_flag=True, help="Print the per-import resolution trace")
@click.option("--quiet", is_flag=True, help="Suppress all output except the final list of features")
@click.pass_context
def resolve_cmd(
    ctx: click.Context,
    path: str,
    metadata_path: str | None,
    metadata_url: str,
    cache_dir: str | None,
    refresh: bool,
    output_path: str | None,
    workers: int,
    exclude: tuple[str, ...],
    debug: bool,
    quiet: bool,
) -> None:
    """Scan PATH for `use windows::` imports and print the features they need."""
    scan_root = Path(path).resolve()
    console = Console(stderr=True)
    _configure_logging(console, debug, quiet)

    if output_path is None:
        output_path = f"{scan_root.name}.features.txt"

    config = ResolverConfig(
        scan_root=str(scan_root),
        metadata_path=metadata_path,
        metadata_url=metadata_url,
        output_path=output_path,
        workers=workers,
        refresh=refresh,
        exclude_patterns=list(exclude),
        debug=debug,
        quiet=quiet,
    )
    if cache_dir:
        config.cache_dir = cache_dir

    try:
        if quiet:
            from windows_features.pipeline import run_pipeline
            report = run_pipeline(config)
        else:
            report = _run_with_progress(config, console)
    except MetadataLoadError as e:
        console.print(f"[red]Metadata error:[/red] {e}")
        ctx.exit(EXIT_METADATA_ERROR)
    except NothingToResolveError as e:
        console.print(f"[yellow]Nothing to resolve:[/yellow] {e}")
        ctx.exit(EXIT_NOTHING_TO_RESOLVE)

    from windows_features.output import format_features, write_report

    write_report(report, output_path)

    if debug:
        _print_trace(report, config, console)
    if not quiet:
        _print_summary(report, config, console)
        console.print("Required windows-rs features:")

    click.echo(format_features(report.features), nl=False)

    if not quiet:
        console.print(f"[green]Report written to:[/green] {output_path}")


@cli.command("clear-cache")
@click.option("--cache-dir", default=None, help="Directory holding the downloaded features.json")
def clear_cache_cmd(cache_dir: str | None) -> None:
    """Delete the downloaded features.json so the next run fetches it again."""
    from windows_features.index.metadata import clear_cached_metadata, metadata_cache_path

    config = ResolverConfig()
    if cache_dir:
        config.cache_dir = cache_dir

    if clear_cached_metadata(config):
        click.echo(f"Removed {metadata_cache_path(config)}")
    else:
        click.echo("No cached features.json found")


if __name__ == "__main__":
    cli()
