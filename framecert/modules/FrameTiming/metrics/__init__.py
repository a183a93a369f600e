"""Frame time statistics, jank scoring and certification verdicts."""

from .certification import PerformanceReport, evaluate_performance
from .histogram import Histogram
from .loop_summary import (
    FrameTimesAlreadyProcessedError,
    FrameTimesNotProcessedError,
    LoopSummary,
    LoopSummaryStateError,
    TimeType,
)
from .metric_data import Direction, Metric, MetricKind, MetricMap, MissingMetricError
from .metric_summary import MetricSummary, MetricSummaryBuilder
from .requirements import CertificationRequirements

__all__ = [
    'CertificationRequirements',
    'Direction',
    'FrameTimesAlreadyProcessedError',
    'FrameTimesNotProcessedError',
    'Histogram',
    'LoopSummary',
    'LoopSummaryStateError',
    'Metric',
    'MetricKind',
    'MetricMap',
    'MetricSummary',
    'MetricSummaryBuilder',
    'MissingMetricError',
    'PerformanceReport',
    'TimeType',
    'evaluate_performance',
]
