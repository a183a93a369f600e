"""Frame time statistics for one loop of one timing channel."""

from __future__ import annotations

import heapq
import math
from enum import Enum
from typing import List, Mapping, Optional

from ..constants import FIVE_PERCENT, INT64_MAX, NS_PER_MS, NS_PER_SECOND, ONE_PERCENT, TEN_PERCENT
from .metric_data import Metric, MetricMap, get_double_metric, get_int_metric


class TimeType(Enum):
    """Timing channel a frame time was measured on."""
    PRESENT = "present"  # Display present timestamps
    READY = "ready"      # GPU completion timestamps


class LoopSummaryStateError(RuntimeError):
    """LoopSummary used out of order (a programming error)."""


class FrameTimesNotProcessedError(LoopSummaryStateError):
    pass


class FrameTimesAlreadyProcessedError(LoopSummaryStateError):
    pass


def metric_key(time_type: TimeType, loop_index: int, label: str) -> str:
    return f"run_{loop_index}.{time_type.value}_{label}"


def _fps(frame_time: float) -> float:
    # Tied timestamps give a zero frame time
    return NS_PER_SECOND / frame_time if frame_time else math.inf


def _ns_to_ms(value: float) -> float:
    return value / NS_PER_MS


class LoopSummary:
    """Accumulates frame time deltas and derives percentiles once the loop ends.

    ``process_frame_times`` must be called exactly once before the average or
    any percentile is read. Percentiles are "largest frame time" percentiles:
    the 99th is the value with roughly 1% of samples above it. They are
    obtained by popping from a max-heap ``floor(count * 0.10) + 1`` times and
    taking the top at pop ``floor(count * 0.01)``, ``floor(count * 0.05)`` and
    ``floor(count * 0.10)``. Below 100 samples those indices collapse (all of
    them are 0 below 20 samples), so small loops report the maximum for every
    percentile.
    """

    def __init__(self) -> None:
        self._processed = False
        self.count = 0
        self.duration = 0
        self.min_frame_time = INT64_MAX
        self.max_frame_time = 0
        self._avg_frame_time = 0.0
        self._percentile_90 = -1
        self._percentile_95 = -1
        self._percentile_99 = -1
        # Negated values; heapq is a min-heap
        self._frame_times: List[int] = []

    # ------------------------------------------------------------------
    # Accumulation

    def add_frame_time(self, frame_time_ns: int) -> None:
        if self._processed:
            raise FrameTimesAlreadyProcessedError("Cannot add frame times after processing")
        self.min_frame_time = min(self.min_frame_time, frame_time_ns)
        self.max_frame_time = max(self.max_frame_time, frame_time_ns)
        self.duration += frame_time_ns
        heapq.heappush(self._frame_times, -frame_time_ns)
        self.count += 1

    def process_frame_times(self) -> None:
        if self._processed:
            raise FrameTimesAlreadyProcessedError("Frame times were already processed")
        self._processed = True
        if self.count == 0:
            return
        self._avg_frame_time = self.duration / self.count
        self._calc_percentiles()

    def _calc_percentiles(self) -> None:
        size = len(self._frame_times)
        one_percent = int(size * ONE_PERCENT)
        five_percent = int(size * FIVE_PERCENT)
        ten_percent = int(size * TEN_PERCENT)
        for i in range(ten_percent + 1):
            largest = -self._frame_times[0]
            if i == one_percent:
                self._percentile_99 = largest
            if i == five_percent:
                self._percentile_95 = largest
            if i == ten_percent:
                self._percentile_90 = largest
            heapq.heappop(self._frame_times)
        self._frame_times.clear()

    # ------------------------------------------------------------------
    # Derived values

    @property
    def processed(self) -> bool:
        return self._processed

    def _require_processed(self) -> None:
        if not self._processed:
            raise FrameTimesNotProcessedError("process_frame_times must be called")

    @property
    def avg_frame_time(self) -> float:
        self._require_processed()
        return self._avg_frame_time

    @property
    def percentile_90(self) -> int:
        self._require_processed()
        return self._percentile_90

    @property
    def percentile_95(self) -> int:
        self._require_processed()
        return self._percentile_95

    @property
    def percentile_99(self) -> int:
        self._require_processed()
        return self._percentile_99

    @property
    def min_fps(self) -> float:
        return _fps(self.max_frame_time)

    @property
    def max_fps(self) -> float:
        return _fps(self.min_frame_time)

    @property
    def avg_fps(self) -> float:
        return _fps(self.avg_frame_time)

    # ------------------------------------------------------------------
    # Metric map

    def add_to_metric_data(self, metrics: MetricMap, loop_index: int, time_type: TimeType) -> None:
        metrics[metric_key(time_type, loop_index, "frame_count")] = Metric.integer(self.count)
        metrics[metric_key(time_type, loop_index, "duration")] = Metric.ns(self.duration)
        metrics[metric_key(time_type, loop_index, "min_frametime")] = Metric.ns(self.min_frame_time)
        metrics[metric_key(time_type, loop_index, "max_frametime")] = Metric.ns(self.max_frame_time)
        metrics[metric_key(time_type, loop_index, "frametime")] = Metric.ns(float(self.avg_frame_time))
        metrics[metric_key(time_type, loop_index, "90th_percentile")] = Metric.ns(self.percentile_90)
        metrics[metric_key(time_type, loop_index, "95th_percentile")] = Metric.ns(self.percentile_95)
        metrics[metric_key(time_type, loop_index, "99th_percentile")] = Metric.ns(self.percentile_99)

    @classmethod
    def parse_run_metrics(
        cls,
        metrics: Mapping[str, Metric],
        loop_index: int,
        time_type: TimeType,
        device_name: Optional[str] = None,
    ) -> "LoopSummary":
        """Rebuild a processed summary from a metric map."""

        def _int(label: str) -> int:
            return get_int_metric(metrics, metric_key(time_type, loop_index, label), device_name)

        summary = cls()
        summary.count = _int("frame_count")
        summary.duration = _int("duration")
        summary.min_frame_time = _int("min_frametime")
        summary.max_frame_time = _int("max_frametime")
        summary._avg_frame_time = get_double_metric(
            metrics, metric_key(time_type, loop_index, "frametime"), device_name
        )
        summary._percentile_90 = _int("90th_percentile")
        summary._percentile_95 = _int("95th_percentile")
        summary._percentile_99 = _int("99th_percentile")
        summary._processed = True
        return summary

    # ------------------------------------------------------------------

    def _key(self) -> tuple:
        return (
            self._processed,
            self.count,
            self.duration,
            self.min_frame_time,
            self.max_frame_time,
            self._avg_frame_time,
            self._percentile_90,
            self._percentile_95,
            self._percentile_99,
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, LoopSummary):
            return NotImplemented
        return self._key() == other._key()

    def __hash__(self) -> int:
        return hash(self._key())

    def __repr__(self) -> str:
        return f"LoopSummary(count={self.count}, duration={self.duration}, processed={self._processed})"

    def __str__(self) -> str:
        return (
            f"duration: {_ns_to_ms(self.duration):.3f} ms\n"
            f"avg Frame Time: {_ns_to_ms(self.avg_frame_time):7.3f} ms\t\tavg FPS = {self.avg_fps:.3f} fps\n"
            f"max Frame Time: {_ns_to_ms(self.max_frame_time):7.3f} ms\t\tmin FPS = {self.min_fps:.3f} fps\n"
            f"min Frame Time: {_ns_to_ms(self.min_frame_time):7.3f} ms\t\tmax FPS = {self.max_fps:.3f} fps\n"
            f"90th Percentile Frame Time: {_ns_to_ms(self.percentile_90):7.3f} ms\n"
            f"95th Percentile Frame Time: {_ns_to_ms(self.percentile_95):7.3f} ms\n"
            f"99th Percentile Frame Time: {_ns_to_ms(self.percentile_99):7.3f} ms\n"
        )


__all__ = [
    "FrameTimesAlreadyProcessedError",
    "FrameTimesNotProcessedError",
    "LoopSummary",
    "LoopSummaryStateError",
    "TimeType",
    "metric_key",
]
