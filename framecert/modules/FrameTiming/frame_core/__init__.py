"""Frame timing core package - sampling, segmentation and run collection."""

from .types import FrameRecord, RawSample, SamplerState
from .parsers import LatencyDump, parse_latency_output, parse_sample_line
from .transports import AdbTransport, DeviceCommandTransport, DeviceNotAvailableError
from .lifecycle import (
    EventKind,
    LifecycleEvent,
    LifecycleLogError,
    parse_event_lines,
    read_event_log_async,
)
from .sampler import FrameSampler
from .segmenter import LoopSegmenter, SegmentationResult, SliceInfo
from .data_logger import FrameDataLogger
from .collector import FrameTimingCollector, RunResult

__all__ = [
    # Types
    "FrameRecord",
    "RawSample",
    "SamplerState",
    # Parser
    "LatencyDump",
    "parse_latency_output",
    "parse_sample_line",
    # Transport
    "AdbTransport",
    "DeviceCommandTransport",
    "DeviceNotAvailableError",
    # Lifecycle events
    "EventKind",
    "LifecycleEvent",
    "LifecycleLogError",
    "parse_event_lines",
    "read_event_log_async",
    # Sampling and segmentation
    "FrameSampler",
    "LoopSegmenter",
    "SegmentationResult",
    "SliceInfo",
    # Data Logger
    "FrameDataLogger",
    # Collector
    "FrameTimingCollector",
    "RunResult",
]
