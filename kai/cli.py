#!/usr/bin/env python3
"""Command line interface for kai using Typer."""

from pathlib import Path
from typing import Annotated, Any, Optional

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.text import Text

from kai.core.constants import (
    ASCII_ART,
    DEFAULT_BARCODE_TAG,
    DEFAULT_LOCUS_TAG,
    DEFAULT_MAX_LOCI,
    EmptyAllowlistPolicy,
    InsertionPolicy,
    RegionOrder,
)
from kai.core.logging_config import add_file_handler, get_log_path, get_logger, setup_logging
from kai.version import __version__

app = typer.Typer(
    name="kai",
    help="Count reads mapped to regions of interest from bulk/single-cell RNA-seq data.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

console = Console()
logger = get_logger("cli")

# Shared argument and option declarations
BamArg = Annotated[Path, typer.Argument(help="Path to the indexed BAM file.")]
RegionsArg = Annotated[Path, typer.Argument(help="Path to the BED file containing regions of interest.")]
PrefixArg = Annotated[Path, typer.Argument(help="Output prefix for the output files.")]
MaxLociOpt = Annotated[int, typer.Option("-l", "--max-loci", help="Maximum number of loci the read maps to.")]
ThreadsOpt = Annotated[int, typer.Option("-t", "--threads", help="Number of worker processes.")]
InsertionsOpt = Annotated[
    InsertionPolicy,
    typer.Option(
        "--insertions",
        help="Whether insertions move the reference position when testing overlap. "
        "'advance' reproduces kai 0.x counts.",
        case_sensitive=False,
    ),
]
RegionOrderOpt = Annotated[
    RegionOrder,
    typer.Option("--region-order", help="Row order of regions in the output.", case_sensitive=False),
]
LocusTagOpt = Annotated[str, typer.Option("--locus-tag", help="BAM tag with the number of loci of a read.")]


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:
        console.print(f"[bold green]kai[/bold green] version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool,
        typer.Option("--version", callback=version_callback, is_eager=True, help="Show version and exit."),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable verbose output (DEBUG level)."),
    ] = False,
) -> None:
    """kai - Count reads mapped to regions of interest."""
    log_level = "DEBUG" if verbose else "INFO"
    setup_logging(level=log_level)  # type: ignore


def _run(**kwargs: Any) -> None:
    """Validate the configuration, run the counter and map failures to exit code 1."""
    from kai.count import run_count
    from kai.models.models import CountConfig

    try:
        config = CountConfig(**kwargs)
    except ValidationError as e:
        for error in e.errors():
            console.print(f"[red]Error:[/red] {error['msg']}")
        raise typer.Exit(1) from None

    # Set up file logging next to the outputs
    log_path = get_log_path(config.output_dir)
    add_file_handler(log_path)
    logger.info(f"Logging to {log_path}")

    console.print(Text(ASCII_ART, style="bold green"))
    console.print(f"  Version: {__version__}")
    console.print()

    try:
        result = run_count(config)
    except (ValueError, OSError) as e:
        logger.error(str(e))
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from None

    console.print(f"  Regions: {result.regions}")
    console.print(f"  Regions with reads: {result.features}")
    console.print(f"  Reads counted: {result.hits}")
    if result.mode == "single":
        console.print(f"  Barcodes: {result.barcodes}")
    for path in result.output_files:
        console.print(f"  [blue]Output:[/blue] {path}")


@app.command()
def bulk(
    bam: BamArg,
    regions: RegionsArg,
    output_prefix: PrefixArg,
    max_loci: MaxLociOpt = DEFAULT_MAX_LOCI,
    threads: ThreadsOpt = 1,
    insertions: InsertionsOpt = InsertionPolicy.ADVANCE,
    region_order: RegionOrderOpt = RegionOrder.LEXICOGRAPHIC,
    locus_tag: LocusTagOpt = DEFAULT_LOCUS_TAG,
) -> None:
    """Count reads per region.

    Writes <prefix>_count.tsv.gz with one row per region that has at least one read.

    Example:

        kai bulk sample.bam regions.bed results/sample
    """
    _run(
        mode="bulk",
        bam_file=bam,
        regions_file=regions,
        output_prefix=output_prefix,
        max_loci=max_loci,
        threads=threads,
        insertion_policy=insertions,
        region_order=region_order,
        locus_tag=locus_tag,
    )


@app.command()
def single(
    bam: BamArg,
    regions: RegionsArg,
    output_prefix: PrefixArg,
    cell_barcodes: Annotated[
        Optional[Path],
        typer.Option("-c", "--cell-barcodes", help="Optional file specifying cell barcodes of interest."),
    ] = None,
    empty_allowlist: Annotated[
        EmptyAllowlistPolicy,
        typer.Option(
            "--empty-allowlist",
            help="What an empty --cell-barcodes file means: 'keep_all' (no filtering) or 'drop_all'.",
            case_sensitive=False,
        ),
    ] = EmptyAllowlistPolicy.KEEP_ALL,
    register_rejected_barcodes: Annotated[
        bool,
        typer.Option(
            "--register-rejected-barcodes",
            help="List barcodes rejected by --cell-barcodes in the barcodes file (as empty matrix columns).",
        ),
    ] = False,
    legacy_barcode_offset: Annotated[
        bool,
        typer.Option("--legacy-barcode-offset", help="Write 2-based barcode columns in the matrix, as kai 0.x did."),
    ] = False,
    max_loci: MaxLociOpt = DEFAULT_MAX_LOCI,
    threads: ThreadsOpt = 1,
    insertions: InsertionsOpt = InsertionPolicy.ADVANCE,
    region_order: RegionOrderOpt = RegionOrder.LEXICOGRAPHIC,
    locus_tag: LocusTagOpt = DEFAULT_LOCUS_TAG,
    barcode_tag: Annotated[
        str, typer.Option("--barcode-tag", help="BAM tag with the cell barcode.")
    ] = DEFAULT_BARCODE_TAG,
) -> None:
    """Count reads per region and cell barcode.

    Writes <prefix>_barcodes.tsv.gz, <prefix>_features.tsv.gz, <prefix>_matrix.mtx.gz
    and <prefix>_count_barcodes.tsv.gz.

    Example:

        kai single sample.bam regions.bed results/sample -c barcodes.tsv.gz
    """
    _run(
        mode="single",
        bam_file=bam,
        regions_file=regions,
        output_prefix=output_prefix,
        cell_barcode_file=cell_barcodes,
        empty_allowlist=empty_allowlist,
        register_rejected_barcodes=register_rejected_barcodes,
        legacy_barcode_offset=legacy_barcode_offset,
        max_loci=max_loci,
        threads=threads,
        insertion_policy=insertions,
        region_order=region_order,
        locus_tag=locus_tag,
        barcode_tag=barcode_tag,
    )


def main_cli() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main_cli()
