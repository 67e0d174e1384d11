"""Unit tests for kai.core.utils and kai.core.logging_config modules."""

import pytest

from conftest import write_bam
from kai.core.logging_config import add_file_handler, get_log_path, get_logger, setup_logging
from kai.core.utils import check_bam_index, check_output_directory, get_output_path


class TestCheckOutputDirectory:
    def test_existing_directory(self, temp_output_dir):
        assert check_output_directory(str(temp_output_dir)) == str(temp_output_dir)

    def test_create_new_directory(self, temp_output_dir):
        new_dir = temp_output_dir / "a" / "b"
        assert not new_dir.exists()

        check_output_directory(str(new_dir))

        assert new_dir.is_dir()


def test_get_output_path(temp_output_dir):
    assert get_output_path(temp_output_dir / "sample", "_count.tsv.gz") == temp_output_dir / "sample_count.tsv.gz"
    assert get_output_path("sample", "_matrix.mtx.gz").name == "sample_matrix.mtx.gz"


class TestCheckBamIndex:
    def test_indexed(self, sample_bam):
        check_bam_index(sample_bam)

    def test_not_indexed(self, temp_output_dir, sample_reads):
        bam = write_bam(temp_output_dir / "noindex.bam", sample_reads, index=False)

        with pytest.raises(ValueError, match="samtools index"):
            check_bam_index(bam)


class TestLogging:
    def test_log_path(self, temp_output_dir):
        path = get_log_path(temp_output_dir)

        assert path.parent == temp_output_dir
        assert path.name.startswith("kai_")
        assert path.suffix == ".log"

    def test_file_handler(self, temp_output_dir):
        log_path = temp_output_dir / "logs" / "kai.log"
        add_file_handler(log_path)
        get_logger("test").info("hello from kai")

        assert "hello from kai" in log_path.read_text()

    def test_file_handler_keeps_debug_at_info_console(self, temp_output_dir):
        """The console level does not limit what goes to the log file."""
        setup_logging("INFO")
        log_path = temp_output_dir / "kai.log"
        add_file_handler(log_path)
        get_logger("test").debug("debug detail")

        assert "debug detail" in log_path.read_text()
