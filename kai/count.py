#!/usr/bin/env python3
"""Count reads overlapping regions of interest in an indexed BAM file."""

from __future__ import annotations

import math
from concurrent.futures import ProcessPoolExecutor, as_completed
from pathlib import Path

import pysam
from rich.console import Console
from rich.progress import BarColumn, Progress, SpinnerColumn, TaskProgressColumn, TextColumn

from kai.core.barcodes import load_cell_barcodes
from kai.core.cigar import read_overlaps_region
from kai.core.constants import (
    DEFAULT_BARCODE_TAG,
    DEFAULT_LOCUS_TAG,
    CountMode,
    EmptyAllowlistPolicy,
    InsertionPolicy,
)
from kai.core.counter import RegionCounter
from kai.core.filter import FilterPolicy, SkipStats
from kai.core.logging_config import get_logger
from kai.core.regions import Region, read_bed
from kai.core.utils import check_bam_index
from kai.core.writers import write_bulk_counts, write_single_cell_outputs
from kai.models.models import AlignmentRecord, CountConfig, CountResult, FilterConfig

logger = get_logger(__name__)
console = Console()

CHUNKS_PER_WORKER = 4


def count_region(
    bam: pysam.AlignmentFile,
    region: Region,
    policy: FilterPolicy,
    counter: RegionCounter,
    insertion_policy: InsertionPolicy = InsertionPolicy.ADVANCE,
    locus_tag: str = DEFAULT_LOCUS_TAG,
    barcode_tag: str = DEFAULT_BARCODE_TAG,
) -> None:
    """Count the reads of one region into ``counter``.

    Every read returned by the index query is filtered first, so in single mode its
    barcode is registered even when none of its aligned blocks overlaps the region.
    """
    for read in bam.fetch(region.chromosome, region.start, region.end):
        record = AlignmentRecord.from_segment(read, locus_tag, barcode_tag)
        decision = policy.accept(record)
        if not decision.proceed:
            continue
        if read_overlaps_region(record, region, insertion_policy):
            counter.record_hit(region.key, decision.barcode)
        else:
            policy.stats.no_overlap += 1


def count_regions(
    bam_file: str | Path,
    regions: list[Region],
    mode: CountMode,
    filter_config: FilterConfig,
    insertion_policy: InsertionPolicy = InsertionPolicy.ADVANCE,
    locus_tag: str = DEFAULT_LOCUS_TAG,
    barcode_tag: str = DEFAULT_BARCODE_TAG,
    log_progress: bool = False,
) -> tuple[RegionCounter, SkipStats]:
    """Count reads for a list of regions, one region at a time.

    Args:
        bam_file: Indexed BAM file.
        regions: Regions to count.
        mode: ``"bulk"`` or ``"single"``.
        filter_config: Record filter settings.
        insertion_policy: Whether insertions move the reference cursor.
        locus_tag: Tag holding the number of loci a read maps to.
        barcode_tag: Tag holding the cell barcode.
        log_progress: Log progress at every whole percent of regions processed.

    Returns:
        The filled counter and the tally of skipped records.
    """
    counter = RegionCounter(mode)
    stats = SkipStats()
    policy = FilterPolicy(filter_config, mode, register_barcode=counter.register_barcode, stats=stats)

    last_percentage = 0
    with pysam.AlignmentFile(str(bam_file), "rb") as bam:
        for region_counter, region in enumerate(regions, start=1):
            if log_progress:
                progress_percentage = (region_counter * 100) // len(regions)
                if progress_percentage > last_percentage:
                    logger.info(f"Progress: {progress_percentage}% / ({region_counter} / {len(regions)})")
                    last_percentage = progress_percentage
            count_region(bam, region, policy, counter, insertion_policy, locus_tag, barcode_tag)

    return counter, stats


def count_regions_worker(args: tuple) -> tuple[RegionCounter, SkipStats]:
    """Count one chunk of regions in a worker process."""
    (
        bam_file,
        regions,
        mode,
        filter_config,
        insertion_policy,
        locus_tag,
        barcode_tag,
    ) = args  # extract args
    return count_regions(bam_file, regions, mode, filter_config, insertion_policy, locus_tag, barcode_tag)


def chunk_regions(regions: list[Region], num_chunks: int) -> list[list[Region]]:
    """Split regions into at most ``num_chunks`` contiguous, non-empty chunks."""
    if not regions:
        return []
    chunk_size = math.ceil(len(regions) / max(num_chunks, 1))
    return [regions[i : i + chunk_size] for i in range(0, len(regions), chunk_size)]


def count_regions_parallel(
    bam_file: str | Path,
    regions: list[Region],
    mode: CountMode,
    filter_config: FilterConfig,
    threads: int,
    insertion_policy: InsertionPolicy = InsertionPolicy.ADVANCE,
    locus_tag: str = DEFAULT_LOCUS_TAG,
    barcode_tag: str = DEFAULT_BARCODE_TAG,
) -> tuple[RegionCounter, SkipStats]:
    """Count regions in worker processes and merge the partial counters.

    Each worker opens its own BAM handle and fills a private counter. Counts are sums
    and barcodes a set union, so the merged result does not depend on the order in
    which chunks finish.
    """
    chunks = chunk_regions(regions, threads * CHUNKS_PER_WORKER)
    process_args = [
        (str(bam_file), chunk, mode, filter_config, insertion_policy, locus_tag, barcode_tag) for chunk in chunks
    ]

    counter = RegionCounter(mode)
    stats = SkipStats()

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        console=console,
    ) as progress:
        task = progress.add_task("[cyan]Counting regions...", total=len(regions))

        with ProcessPoolExecutor(max_workers=threads) as executor:
            future_to_size = {executor.submit(count_regions_worker, args): len(args[1]) for args in process_args}

            for future in as_completed(future_to_size):
                chunk_counter, chunk_stats = future.result()
                counter.merge(chunk_counter)
                stats.merge(chunk_stats)
                progress.update(task, advance=future_to_size[future])

    return counter, stats


def run_count(config: CountConfig) -> CountResult:
    """Count reads mapped to regions of interest and write the output files.

    Args:
        config: Configuration object containing all parameters for the run.

    Returns:
        Summary of the run, including the written files.
    """
    logger.info("Running kai")
    logger.info(f"Mode: {config.mode}")
    logger.info(f"BAM file: {config.bam_file}")
    logger.info(f"Regions file: {config.regions_file}")
    logger.info(f"Output prefix: {config.output_prefix}")
    logger.info(f"Maximum loci ({config.locus_tag}): {config.max_loci}")
    logger.debug(f"Insertion policy: {config.insertion_policy.value}")
    logger.debug(f"Region order: {config.region_order.value}")

    check_bam_index(config.bam_file)

    barcode_allowlist: frozenset[str] = frozenset()
    if config.mode == "single":
        barcode_allowlist = load_cell_barcodes(config.cell_barcode_file)
        if barcode_allowlist:
            logger.info(f"Cell barcodes of interest: {len(barcode_allowlist)} barcodes")
        elif config.cell_barcode_file is not None and config.empty_allowlist == EmptyAllowlistPolicy.DROP_ALL:
            logger.info("Cell barcodes of interest: None (empty list, no reads will be counted)")
        else:
            logger.info("Cell barcodes of interest: None (processing all reads)")
    filter_config = config.filter_config(barcode_allowlist)

    logger.info("Parsing regions of interest from BED file")
    regions = read_bed(config.regions_file)

    logger.info("Counting reads mapped to regions of interest")
    if config.threads > 1 and len(regions) > 1:
        logger.info(f"Starting {config.threads} worker processes")
        counter, stats = count_regions_parallel(
            config.bam_file,
            regions,
            config.mode,
            filter_config,
            config.threads,
            config.insertion_policy,
            config.locus_tag,
            config.barcode_tag,
        )
    else:
        counter, stats = count_regions(
            config.bam_file,
            regions,
            config.mode,
            filter_config,
            config.insertion_policy,
            config.locus_tag,
            config.barcode_tag,
            log_progress=True,
        )

    for reason, n in stats.as_dict().items():
        logger.debug(f"Skipped reads ({reason}): {n}")

    logger.info("Writing output files")
    if config.mode == "single":
        output_files = write_single_cell_outputs(
            counter, config.output_prefix, config.region_order, config.legacy_barcode_offset
        )
    else:
        output_files = write_bulk_counts(counter, config.output_prefix, config.region_order)

    result = CountResult(
        mode=config.mode,
        regions=len(regions),
        features=len(counter.feature_keys()),
        hits=counter.total_hits,
        barcodes=len(counter.observed_barcodes),
        output_files=output_files,
    )
    logger.info(
        f"Counted {result.hits} reads in {result.features} of {result.regions} regions, "
        f"output written to {', '.join(str(p) for p in output_files)}"
    )
    logger.info("Finished processing")
    return result
