"""Unit tests for kai.core.writers module."""

import gzip

import pytest

from conftest import read_gzip_lines
from kai.core.constants import RegionOrder
from kai.core.counter import RegionCounter
from kai.core.writers import (
    bulk_count_lines,
    matrix_market_lines,
    write_bulk_counts,
    write_lines,
    write_single_cell_outputs,
)


@pytest.fixture
def bulk_counter():
    counter = RegionCounter("bulk")
    for key in ["chr2:5-10", "chr1:200-300", "chr1:1000-2000", "chr1:200-300"]:
        counter.record_hit(key)
    return counter


@pytest.fixture
def single_counter():
    """Two features and three barcodes; TTTT was observed but never counted."""
    counter = RegionCounter("single")
    for barcode in ["TTTT", "CCCC", "AAAA"]:
        counter.register_barcode(barcode)
    hits = [
        ("chr1:300-400", "CCCC"),
        ("chr1:100-200", "CCCC"),
        ("chr1:100-200", "AAAA"),
        ("chr1:100-200", "AAAA"),
    ]
    for key, barcode in hits:
        counter.record_hit(key, barcode)
    return counter


class TestBulk:
    def test_lines(self, bulk_counter):
        assert list(bulk_count_lines(bulk_counter)) == [
            "Chr\tStart\tEnd\tRegion\tCount",
            "chr1\t1000\t2000\tchr1:1000-2000\t1",
            "chr1\t200\t300\tchr1:200-300\t2",
            "chr2\t5\t10\tchr2:5-10\t1",
        ]

    def test_genomic_order(self, bulk_counter):
        lines = list(bulk_count_lines(bulk_counter, RegionOrder.GENOMIC))

        assert [line.split("\t")[3] for line in lines[1:]] == ["chr1:200-300", "chr1:1000-2000", "chr2:5-10"]

    def test_write(self, bulk_counter, temp_output_dir):
        paths = write_bulk_counts(bulk_counter, temp_output_dir / "sample")

        assert paths == [temp_output_dir / "sample_count.tsv.gz"]
        assert read_gzip_lines(paths[0]) == list(bulk_count_lines(bulk_counter))

    def test_empty_counter_writes_header_only(self, temp_output_dir):
        paths = write_bulk_counts(RegionCounter("bulk"), temp_output_dir / "empty")

        assert read_gzip_lines(paths[0]) == ["Chr\tStart\tEnd\tRegion\tCount"]

    def test_wrong_mode(self, single_counter, temp_output_dir):
        with pytest.raises(ValueError, match="bulk mode counter"):
            write_bulk_counts(single_counter, temp_output_dir / "sample")


class TestSingleCell:
    def test_artifacts(self, single_counter, temp_output_dir):
        paths = write_single_cell_outputs(single_counter, temp_output_dir / "sample")

        assert [p.name for p in paths] == [
            "sample_barcodes.tsv.gz",
            "sample_features.tsv.gz",
            "sample_matrix.mtx.gz",
            "sample_count_barcodes.tsv.gz",
        ]
        barcodes, features, matrix, table = (read_gzip_lines(p) for p in paths)

        assert barcodes == ["AAAA", "CCCC", "TTTT"]
        assert features == ["chr1:100-200", "chr1:300-400"]
        assert matrix == [
            "%%MatrixMarket matrix coordinate integer general",
            "%",
            "2 3 3",
            "1 1 2",
            "1 2 1",
            "2 2 1",
        ]
        assert table == [
            "Feature\tBarcode\tCount",
            "chr1:100-200\tAAAA\t2",
            "chr1:100-200\tCCCC\t1",
            "chr1:300-400\tCCCC\t1",
        ]

    def test_legacy_barcode_offset(self, single_counter):
        """kai 0.x wrote barcode columns shifted by one (2-based)."""
        matrix = list(matrix_market_lines(single_counter, legacy_barcode_offset=True))

        assert matrix[2] == "2 3 3"
        assert matrix[3:] == ["1 2 2", "1 3 1", "2 3 1"]

    def test_dimensions_match_entries(self, single_counter):
        matrix = list(matrix_market_lines(single_counter))
        n_features, n_barcodes, nnz = (int(x) for x in matrix[2].split())
        entries = [tuple(int(x) for x in line.split()) for line in matrix[3:]]

        assert len(entries) == nnz
        assert all(1 <= row <= n_features and 1 <= col <= n_barcodes for row, col, _ in entries)

    def test_barcodes_sorted_within_feature(self):
        counter = RegionCounter("single")
        barcodes = ["GGGG", "AAAA", "TTTT", "CCCC"]
        for barcode in barcodes:
            counter.register_barcode(barcode)
            counter.record_hit("chr1:1-2", barcode)

        matrix = list(matrix_market_lines(counter))

        assert matrix[3:] == ["1 1 1", "1 2 1", "1 3 1", "1 4 1"]

    def test_empty_counter(self, temp_output_dir):
        paths = write_single_cell_outputs(RegionCounter("single"), temp_output_dir / "empty")
        barcodes, features, matrix, table = (read_gzip_lines(p) for p in paths)

        assert barcodes == []
        assert features == []
        assert matrix[2] == "0 0 0"
        assert table == ["Feature\tBarcode\tCount"]

    def test_outputs_are_byte_identical(self, single_counter, temp_output_dir):
        first = [p.read_bytes() for p in write_single_cell_outputs(single_counter, temp_output_dir / "a")]
        second = [p.read_bytes() for p in write_single_cell_outputs(single_counter, temp_output_dir / "b")]

        assert first == second

    def test_wrong_mode(self, bulk_counter, temp_output_dir):
        with pytest.raises(ValueError, match="single mode counter"):
            write_single_cell_outputs(bulk_counter, temp_output_dir / "sample")


def test_write_lines_newline_terminated(temp_output_dir):
    path = write_lines(temp_output_dir / "x.gz", ["a", "b"])

    with gzip.open(path, "rb") as f:
        assert f.read() == b"a\nb\n"
