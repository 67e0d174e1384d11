"""Unit tests for kai.core.barcodes module."""

import gzip

import pytest

from kai.core.barcodes import load_cell_barcodes


def test_no_file_gives_empty_set():
    assert load_cell_barcodes(None) == frozenset()


def test_load_barcodes(temp_output_dir):
    path = temp_output_dir / "barcodes.txt"
    path.write_text("AAAA\nCCCC\n")

    assert load_cell_barcodes(path) == {"AAAA", "CCCC"}


def test_lines_are_trimmed_and_blank_lines_ignored(temp_output_dir):
    path = temp_output_dir / "barcodes.txt"
    path.write_text("  AAAA-1 \n\n\tCCCC-1\r\n   \n")

    assert load_cell_barcodes(path) == {"AAAA-1", "CCCC-1"}


def test_gzip_barcodes(temp_output_dir):
    path = temp_output_dir / "barcodes.tsv.gz"
    with gzip.open(path, "wt") as f:
        f.write("AAAA-1\nCCCC-1\n")

    assert load_cell_barcodes(path) == {"AAAA-1", "CCCC-1"}


def test_empty_file(temp_output_dir):
    path = temp_output_dir / "empty.txt"
    path.write_text("")

    assert load_cell_barcodes(path) == frozenset()


def test_missing_file(temp_output_dir):
    with pytest.raises(FileNotFoundError):
        load_cell_barcodes(temp_output_dir / "missing.txt")
