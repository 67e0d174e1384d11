#!/usr/bin/env python3
"""Utility functions shared by the kai modules."""

from pathlib import Path

import pysam


def check_output_directory(outdir: str) -> str:
    """Check if outdir exists, otherwise create it.

    Args:
        outdir: Path to the output directory.

    Returns:
        The output directory path as a string.
    """
    outdir_path = Path(outdir)
    if outdir_path.is_dir():
        return outdir
    else:
        outdir_path.mkdir(parents=True, exist_ok=True)
        return outdir


def get_output_path(output_prefix: str | Path, suffix: str) -> Path:
    """Append an output suffix such as ``_count.tsv.gz`` to a prefix.

    Args:
        output_prefix: Prefix given on the command line, may include directories.
        suffix: File suffix.

    Returns:
        The output file path.
    """
    return Path(f"{output_prefix}{suffix}")


def check_bam_index(bamfile: str | Path) -> None:
    """Raise ValueError if the BAM file cannot be opened with an index.

    Region queries need random access, so a ``.bai`` or ``.csi`` index must sit next to
    the BAM file.
    """
    with pysam.AlignmentFile(str(bamfile), "rb") as f:
        if not f.has_index():
            raise ValueError(f"No index found for {bamfile}. Create one with 'samtools index {bamfile}'.")
