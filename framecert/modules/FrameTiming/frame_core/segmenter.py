"""Split a run's frame timeline into loops using lifecycle events."""

from __future__ import annotations

import bisect
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from framecert.core.logging_utils import get_module_logger
from ..metrics.loop_summary import TimeType
from ..metrics.metric_summary import MetricSummaryBuilder
from .lifecycle import LifecycleEvent, app_launch_time, loop_starts
from .types import FrameRecord

logger = get_module_logger(__name__)


@dataclass(frozen=True, slots=True)
class SliceInfo:
    """Time range of one loop and how many frames fell inside it."""

    index: int
    start_ns: int
    end_ns: int
    record_count: int
    # The last slice ends at the last frame and includes it
    end_inclusive: bool = False

    @property
    def is_spurious(self) -> bool:
        return self.record_count < 2


@dataclass(slots=True)
class SegmentationResult:
    load_time_ms: Optional[int] = None
    slices: List[SliceInfo] = field(default_factory=list)

    @property
    def loop_count(self) -> int:
        return len(self.slices)


class LoopSegmenter:
    """
    Feeds a finished frame timeline into a MetricSummaryBuilder, one loop per
    START_LOOP event.

    Loop ``i`` covers present times in ``[start_i, start_i+1)``; the last loop
    runs from the last START_LOOP up to and including the last frame. Within a
    loop the first frame is only the baseline for the first delta, so no delta
    ever spans two loops. A loop with fewer than two frames still produces an
    (empty) LoopSummary; it usually comes from a START_LOOP that arrived after
    the host had stopped sampling.
    """

    def segment(
        self,
        records: Sequence[FrameRecord],
        events: Sequence[LifecycleEvent],
        builder: MetricSummaryBuilder,
    ) -> SegmentationResult:
        result = SegmentationResult()

        launch_ms = app_launch_time(events)
        starts = loop_starts(events)

        if not starts:
            logger.warning("No START_LOOP event received; no loops to measure")
            builder.set_load_time_ms(None)
            return result

        if launch_ms is not None:
            result.load_time_ms = starts[0].timestamp_ms - launch_ms
        else:
            logger.warning("No APP_LAUNCH event received; load time unknown")
        builder.set_load_time_ms(result.load_time_ms)

        present_times = [record.present_time for record in records]
        boundaries = [event.timestamp_ns for event in starts]

        for index, start_ns in enumerate(boundaries):
            first = bisect.bisect_left(present_times, start_ns)
            if index + 1 < len(boundaries):
                end_ns = boundaries[index + 1]
                last = bisect.bisect_left(present_times, end_ns)
                inclusive = False
            else:
                end_ns = present_times[-1] if present_times else start_ns
                last = len(present_times)
                inclusive = True

            loop_records = records[first:last] if last > first else ()
            info = SliceInfo(index, start_ns, end_ns, len(loop_records), inclusive)
            result.slices.append(info)
            self._feed_loop(builder, info, loop_records)

        logger.info(
            "Segmented %d frames into %d loops (load time %s)",
            len(records),
            result.loop_count,
            "unknown" if result.load_time_ms is None else f"{result.load_time_ms} ms",
        )
        return result

    def _feed_loop(self, builder: MetricSummaryBuilder, info: SliceInfo, records: Sequence[FrameRecord]) -> None:
        builder.begin_loop()
        if info.is_spurious:
            logger.warning(
                "No samples in period for loop %d, assuming spurious lifecycle event", info.index
            )
        else:
            previous = records[0]
            for record in records[1:]:
                builder.add_frame_time(TimeType.PRESENT, record.present_time - previous.present_time)
                builder.add_frame_time(TimeType.READY, record.ready_time - previous.ready_time)
                previous = record
        builder.end_loop()


__all__ = ["LoopSegmenter", "SegmentationResult", "SliceInfo"]
