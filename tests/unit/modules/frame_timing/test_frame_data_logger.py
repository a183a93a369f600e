"""Unit tests for FrameDataLogger."""

import csv

import pytest

from framecert.modules.FrameTiming.constants import FRAME_CSV_HEADER
from framecert.modules.FrameTiming.frame_core.data_logger import FrameDataLogger
from framecert.modules.FrameTiming.frame_core.types import FrameRecord


class TestFrameCsv:
    """Test streaming frame rows to CSV."""

    def test_start_creates_file_with_header(self, temp_output_dir):
        data_logger = FrameDataLogger(temp_output_dir, "emulator-5554")

        path = data_logger.start_recording()
        data_logger.stop_recording()

        assert path.exists()
        assert path.name.startswith("emulator-5554_")
        assert path.name.endswith("_frames.csv")
        with path.open(newline="") as f:
            assert next(csv.reader(f)) == FRAME_CSV_HEADER

    def test_rows_and_deltas(self, temp_output_dir):
        data_logger = FrameDataLogger(temp_output_dir, "dev")
        path = data_logger.start_recording()

        data_logger.log_frames([FrameRecord(100, 90), FrameRecord(116, 107)])
        data_logger.log_frames([FrameRecord(140, 125)])
        data_logger.stop_recording()

        with path.open(newline="") as f:
            rows = list(csv.reader(f))[1:]
        assert rows == [
            ["0", "100", "90", "", ""],
            ["1", "116", "107", "16", "17"],
            ["2", "140", "125", "24", "18"],
        ]

    def test_log_without_recording(self, temp_output_dir):
        data_logger = FrameDataLogger(temp_output_dir, "dev")

        assert data_logger.log_frames([FrameRecord(1, 1)]) == 0

    def test_device_id_sanitized(self, temp_output_dir):
        data_logger = FrameDataLogger(temp_output_dir, "192.168.1.5:5555")

        path = data_logger.start_recording()
        data_logger.stop_recording()

        assert ":" not in path.name
        assert path.name.startswith("192.168.1.5_5555_")

    def test_start_twice_returns_same_path(self, temp_output_dir):
        data_logger = FrameDataLogger(temp_output_dir, "dev")

        first = data_logger.start_recording()
        second = data_logger.start_recording()
        data_logger.stop_recording()

        assert first == second
        assert not data_logger.is_recording

    def test_unwritable_directory(self, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("x")
        data_logger = FrameDataLogger(blocker / "sub", "dev")

        assert data_logger.start_recording() is None
        assert not data_logger.is_recording


class TestTextArtifacts:
    """Test run log and raw output files."""

    @pytest.mark.asyncio
    async def test_write_run_log(self, temp_output_dir):
        data_logger = FrameDataLogger(temp_output_dir, "dev")

        path = await data_logger.write_run_log("Summary\n")

        assert path == data_logger.run_log_path
        assert path.read_text(encoding="utf-8") == "Summary\n"

    @pytest.mark.asyncio
    async def test_write_raw_outputs(self, temp_output_dir):
        data_logger = FrameDataLogger(temp_output_dir, "dev")

        path = await data_logger.write_raw_outputs(["16666666\n", "16666666\n1\t2\t3\n"])

        text = path.read_text(encoding="utf-8")
        assert "----- poll 0 -----" in text
        assert "----- poll 1 -----\n16666666\n1\t2\t3\n" in text
