"""Frame timeline data logger.

Streams accepted frames to a CSV file from a background thread so polls never
wait on disk I/O, and writes the per-run text artifacts (run log and raw
latency dumps) once the run is over.
"""

from __future__ import annotations

import csv
import threading
import time
from pathlib import Path
from queue import Empty, Full, Queue
from typing import Any, Iterable, List, Optional, Sequence, TextIO

import aiofiles

from framecert.core.logging_utils import get_module_logger
from ..constants import FRAME_CSV_HEADER
from .types import FrameRecord

logger = get_module_logger(__name__)

RAW_OUTPUT_SEPARATOR = "\n----- poll {index} -----\n"


class FrameDataLogger:
    """Handles file output for one sampling run.

    Example:
        data_logger = FrameDataLogger(output_dir, "emulator-5554")
        data_logger.start_recording()
        sampler.frame_callback = data_logger.log_frames
        ...
        data_logger.stop_recording()
        await data_logger.write_run_log(text)
    """

    def __init__(
        self,
        output_dir: Path,
        device_id: str,
        flush_threshold: int = 256,
    ):
        """Initialize the data logger.

        Args:
            output_dir: Directory for the run's files
            device_id: Device serial, used in file names
            flush_threshold: Number of rows to buffer before flushing to disk
        """
        self.output_dir = Path(output_dir)
        self.device_id = device_id
        self._flush_threshold = flush_threshold
        self._stem = f"{self._sanitize_device_id()}_{time.strftime('%Y%m%d_%H%M%S')}"

        self._record_file: Optional[TextIO] = None
        self._record_writer: Optional[Any] = None
        self._record_path: Optional[Path] = None

        self._write_queue: Queue[Optional[List[Any]]] = Queue(maxsize=4096)
        self._writer_thread: Optional[threading.Thread] = None
        self._dropped_records = 0

        self._recording = False
        self._row_index = 0
        self._previous: Optional[FrameRecord] = None

    @property
    def is_recording(self) -> bool:
        return self._recording

    @property
    def filepath(self) -> Optional[Path]:
        """Path of the frame CSV, once recording has started."""
        return self._record_path

    @property
    def run_log_path(self) -> Path:
        return self.output_dir / f"{self._stem}_run.txt"

    @property
    def raw_output_path(self) -> Path:
        return self.output_dir / f"{self._stem}_latency.txt"

    @property
    def dropped_records(self) -> int:
        return self._dropped_records

    def _sanitize_device_id(self) -> str:
        # 192.168.1.5:5555 -> 192.168.1.5_5555
        return (self.device_id or "device").replace(":", "_").replace("/", "_").replace("\\", "_")

    # ------------------------------------------------------------------
    # Frame CSV

    def start_recording(self) -> Optional[Path]:
        """Open the frame CSV and start the writer thread.

        Returns:
            Path to the CSV file, or None if it could not be created
        """
        if self._recording:
            logger.debug("Recording already active for %s", self.device_id)
            return self._record_path

        self._dropped_records = 0
        self._row_index = 0
        self._previous = None

        try:
            self.output_dir.mkdir(parents=True, exist_ok=True)
            path = self.output_dir / f"{self._stem}_frames.csv"
            handle = path.open("w", encoding="utf-8", newline="")
        except OSError as exc:
            logger.error("Failed to start frame recording for %s: %s", self.device_id, exc)
            return None

        writer = csv.writer(handle)
        writer.writerow(FRAME_CSV_HEADER)
        self._record_file = handle
        self._record_writer = writer
        self._record_path = path

        self._writer_thread = threading.Thread(
            target=self._writer_loop,
            name=f"FrameWriter-{self._sanitize_device_id()}",
            daemon=True,
        )
        self._writer_thread.start()

        self._recording = True
        logger.info("Recording frames to %s", path)
        return path

    def stop_recording(self) -> None:
        """Flush queued rows, stop the writer thread and close the CSV."""
        if not self._recording:
            return

        if self._writer_thread and self._writer_thread.is_alive():
            self._write_queue.put(None)
            self._writer_thread.join(timeout=5.0)
            if self._writer_thread.is_alive():
                logger.error("Frame writer thread still alive for %s, proceeding with cleanup", self.device_id)
        self._writer_thread = None

        if self._record_file:
            try:
                self._record_file.close()
            except OSError as exc:
                logger.debug("Error closing frame file: %s", exc)

        if self._dropped_records > 0:
            logger.warning(
                "Frame recording stopped with %d dropped rows for %s",
                self._dropped_records,
                self.device_id,
            )

        logger.info("Stopped frame recording: %s (%d frames)", self._record_path, self._row_index)
        self._record_file = None
        self._record_writer = None
        self._recording = False

    def log_frames(self, records: Sequence[FrameRecord]) -> int:
        """Queue newly accepted frames.

        Returns:
            Number of rows queued
        """
        if not self._recording:
            return 0

        queued = 0
        for record in records:
            previous = self._previous
            row = [
                self._row_index,
                record.present_time,
                record.ready_time,
                "" if previous is None else record.present_time - previous.present_time,
                "" if previous is None else record.ready_time - previous.ready_time,
            ]
            self._previous = record
            self._row_index += 1
            try:
                self._write_queue.put_nowait(row)
                queued += 1
            except Full:
                self._dropped_records += 1
                if self._dropped_records % 50 == 1:
                    logger.warning(
                        "Frame row queue overflow for %s (dropped: %d)",
                        self.device_id,
                        self._dropped_records,
                    )
        return queued

    def _writer_loop(self) -> None:
        """Background thread: batch queued rows and write them until the stop marker."""
        writer, handle = self._record_writer, self._record_file
        if writer is None or handle is None:
            return

        stopping = False
        while not stopping:
            try:
                batch = [self._write_queue.get(timeout=0.5)]
            except Empty:
                continue
            # Take whatever else is already queued, up to one flush worth
            while len(batch) < self._flush_threshold:
                try:
                    batch.append(self._write_queue.get_nowait())
                except Empty:
                    break
            if None in batch:
                stopping = True
                batch = batch[:batch.index(None)]
            if batch:
                self._write_rows(writer, handle, batch)

    def _write_rows(self, writer: Any, handle: TextIO, rows: List[List[Any]]) -> None:
        try:
            writer.writerows(rows)
            handle.flush()
        except (OSError, csv.Error) as exc:
            logger.error("Failed to write %d frame rows to %s: %s", len(rows), self._record_path, exc)

    # ------------------------------------------------------------------
    # Text artifacts

    async def write_run_log(self, text: str) -> Path:
        path = self.run_log_path
        await _write_text(path, text)
        logger.info("Wrote run log %s", path)
        return path

    async def write_raw_outputs(self, outputs: Iterable[str]) -> Path:
        """Keep every latency dump as received, for offline inspection."""
        path = self.raw_output_path
        text = "".join(
            RAW_OUTPUT_SEPARATOR.format(index=index) + output
            for index, output in enumerate(outputs)
        )
        await _write_text(path, text)
        logger.debug("Wrote raw latency output %s", path)
        return path


async def _write_text(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    async with aiofiles.open(path, "w", encoding="utf-8") as f:
        await f.write(text)


__all__ = ["FrameDataLogger"]
