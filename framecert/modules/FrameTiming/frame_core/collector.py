"""Frame Timing Collector

Owns one certification run: starts the sampler when the workload starts,
and when it ends stops sampling, segments the timeline into loops, builds the
statistics and checks them against the requirements.

Everything the run needs (transport, configuration, requirements) is passed
to the constructor; two collectors never share state, so runs on several
devices can proceed side by side.
"""

from __future__ import annotations

import asyncio
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence

import numpy as np

from framecert.core.logging_utils import get_module_logger
from ..config import FrameTimingConfig
from ..constants import NS_PER_MS
from ..metrics.certification import PerformanceReport, evaluate_performance
from ..metrics.histogram import Histogram
from ..metrics.metric_data import MetricMap
from ..metrics.metric_summary import MetricSummary, MetricSummaryBuilder
from ..metrics.requirements import CertificationRequirements
from .data_logger import FrameDataLogger
from .lifecycle import LifecycleEvent, read_event_log_async
from .sampler import FrameSampler
from .segmenter import LoopSegmenter, SegmentationResult
from .transports import DeviceCommandTransport, DeviceNotAvailableError
from .types import FrameRecord, SamplerState

logger = get_module_logger(__name__)


@dataclass(frozen=True, slots=True)
class RunResult:
    summary: MetricSummary
    state: SamplerState
    metrics: MetricMap
    report: PerformanceReport
    incomplete: bool
    segmentation: Optional[SegmentationResult] = None
    run_log_path: Optional[Path] = None

    @property
    def success(self) -> bool:
        return self.report.success


def present_deltas_ms(records: Sequence[FrameRecord]) -> np.ndarray:
    """Present-to-present frame times of the whole timeline, in ms."""
    if len(records) < 2:
        return np.empty(0)
    present = np.fromiter((record.present_time for record in records), dtype=np.int64, count=len(records))
    return np.diff(present) / NS_PER_MS


def render_run_log(
    *,
    layer_name: str,
    vsync_period_ns: Optional[int],
    state: SamplerState,
    segmentation: SegmentationResult,
    summary: MetricSummary,
    report: PerformanceReport,
    histogram: Optional[Histogram],
    max_bar_width: int,
) -> str:
    lines: List[str] = [
        f"Layer: {layer_name}",
        f"VSync Period: {vsync_period_ns if vsync_period_ns is not None else 'unknown'} ns",
        f"Sampler state: {state.value}",
        "",
    ]
    for info in segmentation.slices:
        bracket = "]" if info.end_inclusive else ")"
        lines.append(
            f"Loop {info.index}: [{info.start_ns}, {info.end_ns}{bracket} ns, {info.record_count} frames"
        )
        if info.is_spurious:
            lines.append("No samples in period, assuming spurious lifecycle event.")
    lines.append("")

    text = "\n".join(lines) + "\n" + str(summary) + "\n"
    if histogram is not None and histogram.counts:
        text += f"Present frame time histogram (ms, bucket {histogram.bucket_size})\n"
        text += histogram.render(max_bar_width) + "\n"
    text += str(report)
    return text


class FrameTimingCollector:
    """
    Collects and evaluates frame timing for one run of one application.

    Example:
        collector = FrameTimingCollector(transport, config, requirements)
        await collector.on_run_start()
        ...  # workload runs
        result = await collector.on_run_end(events)
    """

    def __init__(
        self,
        transport: DeviceCommandTransport,
        config: FrameTimingConfig,
        requirements: Optional[CertificationRequirements] = None,
        *,
        test_name: Optional[str] = None,
    ):
        if not config.layer_name:
            raise ValueError("FrameTimingConfig.layer_name is required")

        self.transport = transport
        self.config = config
        self.requirements = requirements
        self.test_name = test_name or (requirements.name if requirements and requirements.name else config.layer_name)
        self._log = logger.bind(device=config.device_serial or transport.device)

        self.sampler = FrameSampler(
            transport,
            config.layer_name,
            interval_s=config.interval_s,
            fixed_rate=config.fixed_rate,
            command_timeout_s=config.command_timeout_s,
        )
        self._segmenter = LoopSegmenter()
        self._data_logger: Optional[FrameDataLogger] = None
        if config.output_dir is not None:
            self._data_logger = FrameDataLogger(config.output_dir, config.device_serial or transport.device)

        self._started = False
        self._result: Optional[RunResult] = None

    @property
    def result(self) -> Optional[RunResult]:
        return self._result

    async def on_run_start(self) -> None:
        if self._started:
            self._log.warning("Run for %s already started", self.test_name)
            return
        self._started = True

        if self._data_logger is not None and self._data_logger.start_recording():
            self.sampler.frame_callback = self._data_logger.log_frames

        await self.sampler.start()
        self._log.info("Run started for %s", self.test_name)

    async def on_run_end(self, events: Optional[Sequence[LifecycleEvent]] = None) -> RunResult:
        """
        Finish the run and evaluate it.

        Args:
            events: Lifecycle events of the run; pulled from the device when
                omitted and an event log path is configured

        Returns:
            RunResult with the summary, exported metrics and verdict
        """
        if self._result is not None:
            return self._result

        state = await self.sampler.stop()
        if self._data_logger is not None:
            await asyncio.to_thread(self._data_logger.stop_recording)

        if events is None:
            events = await self._fetch_events()

        records = self.sampler.frame_records
        vsync = self.sampler.vsync_period_ns
        builder = MetricSummaryBuilder(self.requirements, vsync or 0)
        segmentation = self._segmenter.segment(records, events, builder)
        summary = builder.build()
        metrics = summary.add_to_metric_data({})

        incomplete = state is SamplerState.TERMINATED
        report = evaluate_performance(self.test_name, summary, self.requirements, incomplete=incomplete)

        run_log_path = None
        if self._data_logger is not None:
            histogram = Histogram(present_deltas_ms(records), self.config.histogram_bucket_ms)
            text = render_run_log(
                layer_name=self.config.layer_name,
                vsync_period_ns=vsync,
                state=state,
                segmentation=segmentation,
                summary=summary,
                report=report,
                histogram=histogram,
                max_bar_width=self.config.histogram_max_bar,
            )
            run_log_path = await self._data_logger.write_run_log(text)
            await self._data_logger.write_raw_outputs(self.sampler.raw_outputs)

        self._result = RunResult(
            summary=summary,
            state=state,
            metrics=metrics,
            report=report,
            incomplete=incomplete,
            segmentation=segmentation,
            run_log_path=run_log_path,
        )
        self._log.info(
            "Run ended for %s: %d frames, %d loops, jank rate %.3f, %s",
            self.test_name, len(records), summary.loop_count, summary.jank_rate,
            "PASSED" if report.success else "FAILED",
        )
        return self._result

    async def _fetch_events(self) -> List[LifecycleEvent]:
        remote = self.config.event_log_remote_path
        if not remote:
            self._log.warning("No lifecycle events supplied and no event log configured")
            return []

        if self.config.output_dir is not None:
            return await self._pull_events(remote, Path(self.config.output_dir))

        with tempfile.TemporaryDirectory(prefix="framecert_") as tmp:
            return await self._pull_events(remote, Path(tmp))

    async def _pull_events(self, remote: str, directory: Path) -> List[LifecycleEvent]:
        local = directory / Path(remote).name
        try:
            await self.transport.pull_file(remote, local)
        except DeviceNotAvailableError as exc:
            self._log.warning("Could not pull event log %s: %s", remote, exc)
            return []
        return await read_event_log_async(local)


__all__ = ["FrameTimingCollector", "RunResult", "present_deltas_ms", "render_run_log"]
