#!/usr/bin/env python3
"""Regions of interest and BED parsing."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from kai.core.constants import (
    BED_COMMENT_PREFIX,
    BED_HEADER_KEYWORDS,
    BED_MIN_FIELDS,
    RegionKey,
    RegionOrder,
)
from kai.core.logging_config import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class Region:
    """A half-open ``[start, end)`` interval on one chromosome."""

    chromosome: str
    start: int
    end: int

    def __post_init__(self) -> None:
        if self.start < 0:
            raise ValueError(f"Region start must be non-negative: {self.chromosome}:{self.start}-{self.end}")
        if self.end < self.start:
            raise ValueError(f"Region end must not precede start: {self.chromosome}:{self.start}-{self.end}")

    @property
    def key(self) -> RegionKey:
        """Canonical ``chromosome:start-end`` identifier."""
        return f"{self.chromosome}:{self.start}-{self.end}"

    @classmethod
    def from_key(cls, key: RegionKey) -> Region:
        """Rebuild a region from its key.

        The key is split at the last ``:`` and the last ``-`` so that contig names
        containing those characters (e.g. ``HLA-A*01:01``) survive the round trip.
        """
        chromosome, sep, span = key.rpartition(":")
        start, dash, end = span.rpartition("-")
        if not sep or not dash:
            raise ValueError(f"Malformed region key: {key}")
        return cls(chromosome, int(start), int(end))

    def __str__(self) -> str:
        return self.key


def read_bed(bedfile: str | Path) -> list[Region]:
    """Read a BED file and return its regions in file order.

    Blank lines, ``#`` comments and ``track`` or ``browser`` header lines are skipped.
    A header is recognised by its first word, so contigs such as ``trackA`` are kept.
    Lines with fewer than three fields are skipped with a debug message. Lines that have
    enough fields but non-integer coordinates raise ``ValueError``.

    Args:
        bedfile: Path to the BED file.

    Returns:
        List of regions, in the order they appear in the file.
    """
    regions: list[Region] = []
    with Path(bedfile).open() as f:
        for line_number, line in enumerate(f, start=1):
            line = line.rstrip("\r\n")
            if not line.strip() or line.startswith(BED_COMMENT_PREFIX):
                continue
            if line.split(None, 1)[0] in BED_HEADER_KEYWORDS:
                continue
            parts = line.split("\t")
            if len(parts) < BED_MIN_FIELDS:
                logger.debug(f"Invalid BED format at {bedfile}:{line_number}: {line}")
                continue
            contig, start, end = parts[0:3]
            try:
                region = Region(contig, int(start), int(end))
            except ValueError as e:
                raise ValueError(f"Invalid coordinates at {bedfile}:{line_number}: {e}") from e
            regions.append(region)

    logger.info(f"Parsed {len(regions)} regions")
    return regions


def sort_region_keys(keys, order: RegionOrder = RegionOrder.LEXICOGRAPHIC) -> list[RegionKey]:
    """Sort region keys for output.

    ``LEXICOGRAPHIC`` sorts the key strings, so ``chr1:1000-2000`` comes before
    ``chr1:200-300``. ``GENOMIC`` sorts by chromosome name, then numeric start and end.
    """
    if order == RegionOrder.GENOMIC:

        def genomic(key: RegionKey) -> tuple[str, int, int]:
            region = Region.from_key(key)
            return (region.chromosome, region.start, region.end)

        return sorted(keys, key=genomic)
    return sorted(keys)
