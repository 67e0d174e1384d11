"""Shared pytest fixtures for kai tests."""

import gzip
import shutil
import tempfile
from pathlib import Path

import pysam
import pytest
from loguru import logger

CONTIGS = [("chr1", 10000), ("chr2", 10000)]


def write_bam(path: Path, reads: list[tuple], contigs: list[tuple[str, int]] = CONTIGS, index: bool = True) -> Path:
    """Write a coordinate-sorted BAM file.

    Each read is ``(contig, reference_start, cigarstring, tags)`` where tags is a list of
    ``(tag, value)`` pairs.
    """
    header = {"HD": {"VN": "1.6", "SO": "coordinate"}, "SQ": [{"SN": name, "LN": length} for name, length in contigs]}
    unsorted = path.with_name(path.stem + ".unsorted.bam")
    with pysam.AlignmentFile(str(unsorted), "wb", header=header) as out:
        for i, (contig, start, cigar, tags) in enumerate(reads):
            a = pysam.AlignedSegment(out.header)
            a.query_name = f"read{i}"
            a.flag = 0
            a.reference_name = contig
            a.reference_start = start
            a.mapping_quality = 60
            a.cigarstring = cigar
            query_length = a.infer_query_length()
            a.query_sequence = "A" * query_length
            a.query_qualities = pysam.qualitystring_to_array("I" * query_length)
            a.set_tags(tags)
            out.write(a)
    pysam.sort("-o", str(path), str(unsorted))
    unsorted.unlink()
    if index:
        pysam.index(str(path))
    return path


def read_gzip_lines(path: Path) -> list[str]:
    with gzip.open(path, "rt") as f:
        return f.read().splitlines()


@pytest.fixture
def temp_output_dir():
    """Create a temporary directory for test outputs."""
    tmpdir = tempfile.mkdtemp()
    yield Path(tmpdir)
    # Close log files written into the directory before it goes away
    logger.remove()
    shutil.rmtree(tmpdir)


@pytest.fixture
def temp_bed_file(temp_output_dir):
    """Create a temporary BED file for testing."""
    bed_path = temp_output_dir / "test_regions.bed"
    bed_content = """chr1\t100\t200\tregion1
chr1\t300\t400\tregion2
chr2\t1000\t1100\tregion3
"""
    bed_path.write_text(bed_content)
    return bed_path


@pytest.fixture
def sample_reads():
    """Reads for the regions in ``temp_bed_file``.

    - read0: inside chr1:100-200, cell AAAA
    - read1: inside chr1:100-200, cell AAAA
    - read2: spans chr1:100-200 and chr1:300-400, cell CCCC
    - read3: multi-mapped (NH=3), inside chr1:100-200, cell GGGG
    - read4: spliced over chr1:100-200 (blocks at 50 and 450), cell TTTT
    - read5: inside chr2:1000-1100, no cell barcode
    - read6: inside chr2:1000-1100, cell CCCC
    """
    return [
        ("chr1", 150, "50M", [("NH", 1), ("CB", "AAAA")]),
        ("chr1", 120, "30M", [("NH", 1), ("CB", "AAAA")]),
        ("chr1", 180, "30M100N30M", [("NH", 1), ("CB", "CCCC")]),
        ("chr1", 110, "40M", [("NH", 3), ("CB", "GGGG")]),
        ("chr1", 50, "20M380N20M", [("NH", 1), ("CB", "TTTT")]),
        ("chr2", 1010, "40M", [("NH", 1)]),
        ("chr2", 1020, "10S40M", [("NH", 1), ("CB", "CCCC")]),
    ]


@pytest.fixture
def sample_bam(temp_output_dir, sample_reads):
    """Indexed BAM file with ``sample_reads``."""
    return write_bam(temp_output_dir / "sample.bam", sample_reads)
