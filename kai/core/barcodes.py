#!/usr/bin/env python3
import gzip
from pathlib import Path

from kai.core.constants import Barcode
from kai.core.logging_config import get_logger

logger = get_logger(__name__)


def load_cell_barcodes(barcode_file: str | Path | None) -> frozenset[Barcode]:
    """Load cell barcodes of interest, one per line.

    Lines are stripped of surrounding whitespace and blank lines are ignored. Files
    ending in ``.gz`` (e.g. a Cell Ranger ``barcodes.tsv.gz``) are read transparently.

    Args:
        barcode_file: Path to the barcode file, or None when no file was given.

    Returns:
        Set of barcodes; empty when no file was given.
    """
    if barcode_file is None:
        return frozenset()

    barcodes: set[Barcode] = set()
    barcode_path = Path(barcode_file)
    opener = gzip.open if barcode_path.suffix == ".gz" else open
    with opener(barcode_path, "rt") as f:
        for line in f:
            barcode = line.strip()
            if barcode:
                barcodes.add(barcode)

    if not barcodes:
        logger.warning(f"Cell barcode file {barcode_file} contains no barcodes")
    return frozenset(barcodes)
