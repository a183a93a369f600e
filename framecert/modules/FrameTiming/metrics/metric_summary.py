"""Run-level frame timing summary and its incremental builder."""

from __future__ import annotations

import math
from typing import Dict, List, Mapping, Optional

from framecert.core.logging_utils import get_module_logger
from ..constants import JANK_RATE_KEY, LOAD_TIME_KEY, LOAD_TIME_UNKNOWN, LOOP_COUNT_KEY, NS_PER_MS, NS_PER_SECOND
from .loop_summary import LoopSummary, TimeType
from .metric_data import Direction, Metric, MetricMap, get_double_metric, get_int_metric
from .requirements import CertificationRequirements

logger = get_module_logger(__name__)


class MetricSummary:
    """
    Immutable result of one certification run.

    ``summaries[channel][i]`` is the LoopSummary of loop ``i`` on that channel;
    both channels always hold ``loop_count`` entries. ``load_time_ms`` is None
    when the launch or first loop start was not observed.
    """

    def __init__(
        self,
        loop_count: int,
        jank_rate: float,
        load_time_ms: Optional[int],
        summaries: Mapping[TimeType, List[LoopSummary]],
    ):
        self._loop_count = loop_count
        self._jank_rate = jank_rate
        self._load_time_ms = load_time_ms
        self._summaries: Dict[TimeType, tuple] = {
            time_type: tuple(summaries.get(time_type, ())) for time_type in TimeType
        }

    @property
    def loop_count(self) -> int:
        return self._loop_count

    @property
    def jank_rate(self) -> float:
        return self._jank_rate

    @property
    def load_time_ms(self) -> Optional[int]:
        return self._load_time_ms

    def get_summaries(self, time_type: TimeType) -> tuple:
        return self._summaries[time_type]

    def get_loop(self, loop_index: int, time_type: TimeType = TimeType.PRESENT) -> LoopSummary:
        return self._summaries[time_type][loop_index]

    # ------------------------------------------------------------------
    # Metric map

    def add_to_metric_data(self, metrics: MetricMap) -> MetricMap:
        metrics[LOOP_COUNT_KEY] = Metric.integer(self._loop_count)
        metrics[JANK_RATE_KEY] = Metric.double(self._jank_rate, "", Direction.DOWN_BETTER)
        load_time = LOAD_TIME_UNKNOWN if self._load_time_ms is None else self._load_time_ms
        metrics[LOAD_TIME_KEY] = Metric.integer(load_time, "ms", Direction.DOWN_BETTER)
        for time_type in TimeType:
            for index, summary in enumerate(self._summaries[time_type]):
                summary.add_to_metric_data(metrics, index, time_type)
        return metrics

    @classmethod
    def parse_run_metrics(cls, metrics: Mapping[str, Metric], device_name: Optional[str] = None) -> "MetricSummary":
        """
        Rebuild a summary from a metric map written by ``add_to_metric_data``.

        Raises:
            MissingMetricError: A required key is absent or has the wrong kind
        """
        loop_count = get_int_metric(metrics, LOOP_COUNT_KEY, device_name)
        jank_rate = get_double_metric(metrics, JANK_RATE_KEY, device_name)
        load_time = get_int_metric(metrics, LOAD_TIME_KEY, device_name)

        summaries = {
            time_type: [
                LoopSummary.parse_run_metrics(metrics, index, time_type, device_name)
                for index in range(loop_count)
            ]
            for time_type in TimeType
        }
        return cls(
            loop_count,
            jank_rate,
            None if load_time == LOAD_TIME_UNKNOWN else load_time,
            summaries,
        )

    # ------------------------------------------------------------------

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, MetricSummary):
            return NotImplemented
        return (
            self._loop_count == other._loop_count
            and self._jank_rate == other._jank_rate
            and self._load_time_ms == other._load_time_ms
            and self._summaries == other._summaries
        )

    def __hash__(self) -> int:
        return hash((self._loop_count, self._jank_rate, self._load_time_ms))

    def __repr__(self) -> str:
        return (
            f"MetricSummary(loop_count={self._loop_count}, jank_rate={self._jank_rate!r}, "
            f"load_time_ms={self._load_time_ms!r})"
        )

    def __str__(self) -> str:
        lines = [
            "Summary",
            "-------",
            f"'Jank' rate: {self._jank_rate:.3f}",
        ]
        if self._load_time_ms is None:
            lines.append("Load time: unknown")
        else:
            lines.append(f"Load time: {self._load_time_ms} ms")
        lines.extend(["", "Details", "-------"])
        text = "\n".join(lines) + "\n"

        for index in range(self._loop_count):
            # Empty loops come from spurious lifecycle events
            if self._summaries[TimeType.PRESENT][index].count == 0:
                continue
            text += f"Loop {index}\n"
            for time_type in TimeType:
                text += f"{time_type.name} Time Statistics\n"
                text += str(self._summaries[time_type][index])
                text += "\n"
        return text


class MetricSummaryBuilder:
    """
    Accumulates frame time deltas loop by loop and scores jank on the fly.

    Jank is scored on PRESENT deltas only: each delta is snapped to the nearest
    whole number of vsync periods (halves round up) and, when that exceeds the
    target frame time, contributes ``(snapped - target) / target``. The final
    rate is the score per second of presented time.
    """

    def __init__(self, requirements: Optional[CertificationRequirements], vsync_period_ns: int):
        self._requirements = requirements
        self._vsync_period_ns = vsync_period_ns
        self._jank_score = 0.0
        self._total_time_ns = 0
        self._loop_count = 0
        self._load_time_ms: Optional[int] = None
        self._summaries: Dict[TimeType, List[LoopSummary]] = {time_type: [] for time_type in TimeType}

    @property
    def loop_count(self) -> int:
        return self._loop_count

    def _latest_summary(self, time_type: TimeType) -> LoopSummary:
        if self._loop_count == 0:
            raise RuntimeError("First loop has not been started.")
        return self._summaries[time_type][-1]

    def set_load_time_ms(self, load_time_ms: Optional[int]) -> "MetricSummaryBuilder":
        self._load_time_ms = load_time_ms
        return self

    def add_frame_time(self, time_type: TimeType, frame_time_ns: int) -> None:
        summary = self._latest_summary(time_type)
        if time_type is TimeType.PRESENT:
            self._total_time_ns += frame_time_ns
            if self._requirements is not None:
                self._jank_score += self._score(frame_time_ns)
        summary.add_frame_time(frame_time_ns)

    def _score(self, frame_time_ns: int) -> float:
        target_ns = self._requirements.frame_time_ms * NS_PER_MS
        if target_ns <= 0 or self._vsync_period_ns <= 0:
            return 0.0
        periods = math.floor(frame_time_ns / self._vsync_period_ns + 0.5)
        snapped_ns = periods * self._vsync_period_ns
        if snapped_ns > target_ns:
            return (snapped_ns - target_ns) / target_ns
        return 0.0

    def begin_loop(self) -> None:
        self._loop_count += 1
        for time_type in TimeType:
            self._summaries[time_type].append(LoopSummary())

    def end_loop(self) -> None:
        for time_type in TimeType:
            self._latest_summary(time_type).process_frame_times()

    def build(self) -> MetricSummary:
        if self._total_time_ns == 0:
            jank_rate = 0.0
        else:
            jank_rate = self._jank_score * NS_PER_SECOND / self._total_time_ns
        logger.debug(
            "Built summary: %d loops, jank score %.3f over %d ns",
            self._loop_count, self._jank_score, self._total_time_ns,
        )
        return MetricSummary(self._loop_count, jank_rate, self._load_time_ms, self._summaries)


MetricSummary.Builder = MetricSummaryBuilder


__all__ = [
    "MetricSummary",
    "MetricSummaryBuilder",
    "TimeType",
]
