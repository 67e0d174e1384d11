from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import pysam
from pydantic import BaseModel, ConfigDict, field_validator, model_validator

from kai.core.cigar import CigarOp, cigar_from_tuples
from kai.core.constants import (
    DEFAULT_BARCODE_TAG,
    DEFAULT_LOCUS_TAG,
    DEFAULT_MAX_LOCI,
    Barcode,
    CountMode,
    EmptyAllowlistPolicy,
    InsertionPolicy,
    RegionOrder,
)
from kai.core.utils import check_output_directory

# =============================================================================
# Alignment records
# =============================================================================


@dataclass(frozen=True)
class AlignmentRecord:
    """The parts of an alignment the counter looks at."""

    ref_start: int  # 0-based
    cigar: tuple[CigarOp, ...] = ()
    locus_count: int | None = None
    cell_barcode: Barcode | None = None

    @classmethod
    def from_segment(
        cls,
        read: pysam.AlignedSegment,
        locus_tag: str = DEFAULT_LOCUS_TAG,
        barcode_tag: str = DEFAULT_BARCODE_TAG,
    ) -> AlignmentRecord:
        """Adapt a pysam alignment.

        Only an integer locus tag and a string barcode tag are honoured; a tag of any
        other type is treated as absent.
        """
        locus_count = None
        if read.has_tag(locus_tag):
            value = read.get_tag(locus_tag)
            if isinstance(value, int):
                locus_count = value

        cell_barcode = None
        if read.has_tag(barcode_tag):
            value = read.get_tag(barcode_tag)
            if isinstance(value, str):
                cell_barcode = value

        return cls(
            ref_start=read.reference_start,
            cigar=cigar_from_tuples(read.cigartuples),
            locus_count=locus_count,
            cell_barcode=cell_barcode,
        )


# =============================================================================
# Configuration
# =============================================================================


class FilterConfig(BaseModel):
    """Record eligibility settings."""

    max_loci: int = DEFAULT_MAX_LOCI
    barcode_allowlist: frozenset[str] = frozenset()
    allowlist_supplied: bool = False
    empty_allowlist: EmptyAllowlistPolicy = EmptyAllowlistPolicy.KEEP_ALL
    register_rejected_barcodes: bool = False

    model_config = ConfigDict(frozen=True)

    @field_validator("max_loci")
    @classmethod
    def validate_max_loci(cls, v: int) -> int:
        if v < 0:
            raise ValueError(f"max_loci must be non-negative, got {v}")
        return v


def _validate_tag(v: str) -> str:
    if len(v) != 2 or not v.isalnum():
        raise ValueError(f"BAM tags are two alphanumeric characters, got {v!r}")
    return v


class CountConfig(BaseModel):
    """Configuration for one counting run."""

    # Required
    mode: CountMode
    bam_file: Path
    regions_file: Path
    output_prefix: Path

    # Filtering
    max_loci: int = DEFAULT_MAX_LOCI
    cell_barcode_file: Path | None = None
    empty_allowlist: EmptyAllowlistPolicy = EmptyAllowlistPolicy.KEEP_ALL
    register_rejected_barcodes: bool = False
    locus_tag: str = DEFAULT_LOCUS_TAG
    barcode_tag: str = DEFAULT_BARCODE_TAG

    # Overlap and output
    insertion_policy: InsertionPolicy = InsertionPolicy.ADVANCE
    region_order: RegionOrder = RegionOrder.LEXICOGRAPHIC
    legacy_barcode_offset: bool = False

    # Processing
    threads: int = 1

    model_config = ConfigDict(arbitrary_types_allowed=True)

    @field_validator("max_loci")
    @classmethod
    def validate_max_loci(cls, v: int) -> int:
        if v < 0:
            raise ValueError(f"max_loci must be non-negative, got {v}")
        return v

    @field_validator("threads")
    @classmethod
    def validate_threads(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"threads must be at least 1, got {v}")
        return v

    @field_validator("locus_tag", "barcode_tag")
    @classmethod
    def validate_tag(cls, v: str) -> str:
        return _validate_tag(v)

    @model_validator(mode="after")
    def validate_and_configure(self) -> CountConfig:
        """Check inputs exist and prepare the output directory."""
        if not self.bam_file.is_file():
            raise ValueError(f"BAM file not found: {self.bam_file}")
        if not self.regions_file.is_file():
            raise ValueError(f"Regions file not found: {self.regions_file}")

        if self.cell_barcode_file is not None:
            if self.mode != "single":
                raise ValueError("A cell barcode file can only be used in single mode.")
            if not self.cell_barcode_file.is_file():
                raise ValueError(f"Cell barcode file not found: {self.cell_barcode_file}")

        if self.mode != "single":
            if self.legacy_barcode_offset:
                raise ValueError("legacy_barcode_offset only applies to single mode.")
            if self.register_rejected_barcodes:
                raise ValueError("register_rejected_barcodes only applies to single mode.")

        check_output_directory(str(self.output_dir))
        return self

    @property
    def output_dir(self) -> Path:
        return self.output_prefix.parent

    def filter_config(self, barcode_allowlist: frozenset[str] = frozenset()) -> FilterConfig:
        """Build the record filter settings from this run configuration."""
        return FilterConfig(
            max_loci=self.max_loci,
            barcode_allowlist=barcode_allowlist,
            allowlist_supplied=self.cell_barcode_file is not None,
            empty_allowlist=self.empty_allowlist,
            register_rejected_barcodes=self.register_rejected_barcodes,
        )


# =============================================================================
# Results
# =============================================================================


@dataclass
class CountResult:
    """Summary of a finished counting run."""

    mode: CountMode
    regions: int
    features: int
    hits: int
    barcodes: int = 0
    output_files: list[Path] = field(default_factory=list)
