#!/usr/bin/env python3
"""Constants and type aliases used throughout the kai package."""

from enum import Enum
from typing import Literal, TypeAlias

# =============================================================================
# Type Aliases
# =============================================================================
Barcode: TypeAlias = str
RegionKey: TypeAlias = str
Contig: TypeAlias = str

BulkCounts: TypeAlias = dict[RegionKey, int]
CellCounts: TypeAlias = dict[RegionKey, dict[Barcode, int]]

CountMode: TypeAlias = Literal["bulk", "single"]


class InsertionPolicy(str, Enum):
    """How an insertion (I) operation moves the reference cursor during the overlap walk.

    ``ADVANCE`` reproduces the counts of kai 0.x, which moves the cursor by the insertion
    length. ``SKIP`` leaves the cursor in place, since insertions do not consume
    reference bases.
    """

    ADVANCE = "advance"
    SKIP = "skip"


class EmptyAllowlistPolicy(str, Enum):
    """What a supplied but empty cell barcode file means."""

    KEEP_ALL = "keep_all"
    DROP_ALL = "drop_all"


class RegionOrder(str, Enum):
    """Row order of features in the output tables."""

    LEXICOGRAPHIC = "lexicographic"
    GENOMIC = "genomic"


# =============================================================================
# BAM Tags
# =============================================================================
DEFAULT_LOCUS_TAG = "NH"
"""Number of reported alignments (loci) for the read."""

DEFAULT_BARCODE_TAG = "CB"
"""Corrected cell barcode."""

DEFAULT_MAX_LOCI = 1

# =============================================================================
# CIGAR operation codes (SAM spec order, as used by pysam cigartuples)
# =============================================================================
CIGAR_OPS = "MIDNSHP=XB"

BAM_CMATCH = 0
BAM_CINS = 1
BAM_CDEL = 2
BAM_CREF_SKIP = 3
BAM_CSOFT_CLIP = 4
BAM_CHARD_CLIP = 5
BAM_CPAD = 6
BAM_CEQUAL = 7
BAM_CDIFF = 8
BAM_CBACK = 9

# =============================================================================
# Output files
# =============================================================================
BULK_COUNT_SUFFIX = "_count.tsv.gz"
BARCODES_SUFFIX = "_barcodes.tsv.gz"
FEATURES_SUFFIX = "_features.tsv.gz"
MATRIX_SUFFIX = "_matrix.mtx.gz"
COUNT_BARCODES_SUFFIX = "_count_barcodes.tsv.gz"

BULK_COUNT_HEADER = ("Chr", "Start", "End", "Region", "Count")
COUNT_BARCODES_HEADER = ("Feature", "Barcode", "Count")

MATRIX_MARKET_HEADER = "%%MatrixMarket matrix coordinate integer general"
MATRIX_MARKET_COMMENT = "%"

GZIP_COMPRESSLEVEL = 6
"""zlib default level, as used by kai 0.x."""

# =============================================================================
# BED parsing
# =============================================================================
BED_MIN_FIELDS = 3
BED_COMMENT_PREFIX = "#"
BED_HEADER_KEYWORDS = ("track", "browser")

ASCII_ART = r"""
  _  __     _
 | |/ /__ _(_)
 | ' // _` | |
 | . \ (_| | |
 |_|\_\__,_|_|
"""
"""ASCII art for the CLI banner."""
