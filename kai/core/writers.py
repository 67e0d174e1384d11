#!/usr/bin/env python3
"""Serialization of count tables to gzip-compressed text files.

Bulk mode writes one table with a row per region. Single mode writes the three files
of a Matrix Market feature-barcode matrix (barcodes, features, matrix) plus a long-form
table with one row per feature and barcode.

Every artifact is sorted at each level (features, then barcodes within a feature) and
the gzip header carries neither a file name nor a timestamp, so repeated runs on the
same input produce byte-identical files.
"""

from __future__ import annotations

import gzip
import io
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import TextIO

from kai.core.constants import (
    BARCODES_SUFFIX,
    BULK_COUNT_HEADER,
    BULK_COUNT_SUFFIX,
    COUNT_BARCODES_HEADER,
    COUNT_BARCODES_SUFFIX,
    FEATURES_SUFFIX,
    GZIP_COMPRESSLEVEL,
    MATRIX_MARKET_COMMENT,
    MATRIX_MARKET_HEADER,
    MATRIX_SUFFIX,
    RegionOrder,
)
from kai.core.counter import RegionCounter
from kai.core.logging_config import get_logger
from kai.core.regions import Region
from kai.core.utils import get_output_path

logger = get_logger(__name__)


@contextmanager
def open_gzip_text(path: str | Path) -> Iterator[TextIO]:
    """Open a gzip file for text writing with a reproducible header."""
    with (
        Path(path).open("wb") as raw,
        gzip.GzipFile(filename="", mode="wb", fileobj=raw, compresslevel=GZIP_COMPRESSLEVEL, mtime=0) as gz,
        io.TextIOWrapper(gz, encoding="utf-8", newline="\n") as f,
    ):
        yield f


def write_lines(path: str | Path, lines: Iterable[str]) -> Path:
    """Write newline-terminated lines to a gzip file."""
    path = Path(path)
    with open_gzip_text(path) as f:
        for line in lines:
            f.write(line + "\n")
    logger.debug(f"Wrote {path}")
    return path


# =============================================================================
# Bulk mode
# =============================================================================


def bulk_count_lines(counter: RegionCounter, order: RegionOrder = RegionOrder.LEXICOGRAPHIC) -> Iterator[str]:
    """Header plus one ``chr, start, end, region, count`` row per counted region."""
    yield "\t".join(BULK_COUNT_HEADER)
    for region_key in counter.feature_keys(order):
        region = Region.from_key(region_key)
        yield f"{region.chromosome}\t{region.start}\t{region.end}\t{region_key}\t{counter.totals[region_key]}"


def write_bulk_counts(
    counter: RegionCounter,
    output_prefix: str | Path,
    order: RegionOrder = RegionOrder.LEXICOGRAPHIC,
) -> list[Path]:
    """Write ``<prefix>_count.tsv.gz``.

    Args:
        counter: Bulk mode counter.
        output_prefix: Output prefix, may include directories.
        order: Row order of the regions.

    Returns:
        List with the path of the written file.
    """
    if counter.mode != "bulk":
        raise ValueError("write_bulk_counts requires a bulk mode counter")
    logger.debug("Writing count.tsv.gz")
    path = write_lines(get_output_path(output_prefix, BULK_COUNT_SUFFIX), bulk_count_lines(counter, order))
    return [path]


# =============================================================================
# Single-cell mode
# =============================================================================


def matrix_entries(
    counter: RegionCounter,
    order: RegionOrder = RegionOrder.LEXICOGRAPHIC,
    legacy_barcode_offset: bool = False,
) -> Iterator[tuple[int, int, str, str, int]]:
    """Yield ``(row, column, feature, barcode, count)`` for each nonzero entry.

    Rows and columns are 1-based positions in the features and barcodes files. Features
    are visited in output order and barcodes in sorted order within each feature.

    With ``legacy_barcode_offset`` the column is shifted by one more, reproducing the
    2-based columns written by kai 0.x so downstream tooling built around those files
    keeps working.
    """
    column_offset = 2 if legacy_barcode_offset else 1
    barcode_columns = {barcode: i + column_offset for i, barcode in enumerate(counter.barcode_list())}
    for row, feature in enumerate(counter.feature_keys(order), start=1):
        cell_counts = counter.cell_counts[feature]
        for barcode in sorted(cell_counts):
            yield row, barcode_columns[barcode], feature, barcode, cell_counts[barcode]


def matrix_market_lines(
    counter: RegionCounter,
    order: RegionOrder = RegionOrder.LEXICOGRAPHIC,
    legacy_barcode_offset: bool = False,
) -> Iterator[str]:
    """Coordinate-format matrix with features as rows and barcodes as columns."""
    yield MATRIX_MARKET_HEADER
    yield MATRIX_MARKET_COMMENT
    yield f"{len(counter.cell_counts)} {len(counter.observed_barcodes)} {counter.nonzero_entries}"
    for row, column, _, _, count in matrix_entries(counter, order, legacy_barcode_offset):
        yield f"{row} {column} {count}"


def count_barcode_lines(counter: RegionCounter, order: RegionOrder = RegionOrder.LEXICOGRAPHIC) -> Iterator[str]:
    """Long-form table with one row per feature and barcode."""
    yield "\t".join(COUNT_BARCODES_HEADER)
    for _, _, feature, barcode, count in matrix_entries(counter, order):
        yield f"{feature}\t{barcode}\t{count}"


def write_single_cell_outputs(
    counter: RegionCounter,
    output_prefix: str | Path,
    order: RegionOrder = RegionOrder.LEXICOGRAPHIC,
    legacy_barcode_offset: bool = False,
) -> list[Path]:
    """Write the barcodes, features, matrix and long-form count files.

    Args:
        counter: Single mode counter.
        output_prefix: Output prefix, may include directories.
        order: Order of the features (matrix rows).
        legacy_barcode_offset: Write 2-based barcode columns in the matrix.

    Returns:
        Paths of the written files.
    """
    if counter.mode != "single":
        raise ValueError("write_single_cell_outputs requires a single mode counter")

    logger.debug("Writing barcodes.tsv.gz")
    barcodes_path = write_lines(get_output_path(output_prefix, BARCODES_SUFFIX), counter.barcode_list())

    logger.debug("Writing features.tsv.gz")
    features_path = write_lines(get_output_path(output_prefix, FEATURES_SUFFIX), counter.feature_keys(order))

    logger.debug("Writing matrix.mtx.gz and count_barcodes.tsv.gz")
    matrix_path = write_lines(
        get_output_path(output_prefix, MATRIX_SUFFIX),
        matrix_market_lines(counter, order, legacy_barcode_offset),
    )
    table_path = write_lines(get_output_path(output_prefix, COUNT_BARCODES_SUFFIX), count_barcode_lines(counter, order))

    return [barcodes_path, features_path, matrix_path, table_path]
