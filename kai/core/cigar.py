#!/usr/bin/env python3
"""CIGAR operations and the read/region overlap test."""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from kai.core.constants import (
    BAM_CBACK,
    BAM_CDEL,
    BAM_CDIFF,
    BAM_CEQUAL,
    BAM_CHARD_CLIP,
    BAM_CINS,
    BAM_CMATCH,
    BAM_CPAD,
    BAM_CREF_SKIP,
    BAM_CSOFT_CLIP,
    CIGAR_OPS,
    InsertionPolicy,
)

if TYPE_CHECKING:
    from kai.core.regions import Region
    from kai.models.models import AlignmentRecord

CIGAR_PATTERN = re.compile(r"(\d+)([MIDNSHP=XB])")


class CigarKind(Enum):
    """How an operation takes part in the overlap walk."""

    MATCH_LIKE = "match_like"
    SOFT_CLIP = "soft_clip"
    INSERTION = "insertion"
    DELETION = "deletion"
    REF_SKIP = "ref_skip"
    NO_OP = "no_op"


_KIND_BY_CODE = {
    BAM_CMATCH: CigarKind.MATCH_LIKE,
    BAM_CEQUAL: CigarKind.MATCH_LIKE,
    BAM_CDIFF: CigarKind.MATCH_LIKE,
    BAM_CSOFT_CLIP: CigarKind.SOFT_CLIP,
    BAM_CINS: CigarKind.INSERTION,
    BAM_CDEL: CigarKind.DELETION,
    BAM_CREF_SKIP: CigarKind.REF_SKIP,
    BAM_CHARD_CLIP: CigarKind.NO_OP,
    BAM_CPAD: CigarKind.NO_OP,
    BAM_CBACK: CigarKind.NO_OP,
}


@dataclass(frozen=True)
class CigarOp:
    kind: CigarKind
    length: int

    @classmethod
    def from_code(cls, code: int, length: int) -> CigarOp:
        """Build an operation from a pysam/htslib operation code."""
        try:
            kind = _KIND_BY_CODE[code]
        except KeyError:
            raise ValueError(f"Unknown CIGAR operation code: {code}") from None
        return cls(kind, length)


def cigar_from_tuples(cigartuples: Iterable[tuple[int, int]] | None) -> tuple[CigarOp, ...]:
    """Convert ``AlignedSegment.cigartuples`` to CIGAR operations.

    Unmapped reads have no CIGAR (pysam returns None); they map to an empty tuple.
    """
    if not cigartuples:
        return ()
    return tuple(CigarOp.from_code(code, length) for code, length in cigartuples)


def parse_cigar_string(cigar: str) -> tuple[CigarOp, ...]:
    """Parse a SAM CIGAR string such as ``10S50M2I30M``.

    ``*`` (no CIGAR) yields an empty tuple.
    """
    if cigar == "*":
        return ()
    ops = CIGAR_PATTERN.findall(cigar)
    if not ops or "".join(length + op for length, op in ops) != cigar:
        raise ValueError(f"Invalid CIGAR string: {cigar}")
    return tuple(CigarOp.from_code(CIGAR_OPS.index(op), int(length)) for length, op in ops)


def read_overlaps_region(
    record: AlignmentRecord,
    region: Region,
    insertion_policy: InsertionPolicy = InsertionPolicy.ADVANCE,
) -> bool:
    """Return True if any aligned block of the read overlaps the region.

    The reference cursor starts at the read's 0-based start and walks the CIGAR.
    Match-like blocks (M, =, X) are tested against ``[region.start, region.end)``; the
    first overlapping block ends the walk, so a read is counted at most once per region
    however many of its blocks fall inside it. Soft clips, hard clips and padding leave
    the cursor in place. Deletions and reference skips move it by their length;
    insertions do too under ``InsertionPolicy.ADVANCE``.

    Args:
        record: Alignment to test.
        region: Region of interest.
        insertion_policy: Whether insertions move the reference cursor.

    Returns:
        True if the read has a match-like block inside the region.
    """
    cursor = record.ref_start
    for op in record.cigar:
        if op.kind is CigarKind.MATCH_LIKE:
            block_end = cursor + op.length
            if cursor < region.end and block_end > region.start:
                return True
            cursor = block_end
        elif op.kind in (CigarKind.DELETION, CigarKind.REF_SKIP):
            cursor += op.length
        elif op.kind is CigarKind.INSERTION and insertion_policy == InsertionPolicy.ADVANCE:
            cursor += op.length
    return False
