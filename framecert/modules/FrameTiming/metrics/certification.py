"""Pass/fail verdict for a run against its certification requirements."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

from framecert.core.logging_utils import get_module_logger
from .metric_summary import MetricSummary
from .requirements import CertificationRequirements

logger = get_module_logger(__name__)


@dataclass(frozen=True, slots=True)
class PerformanceReport:
    success: bool
    text: str

    def headline(self) -> str:
        return f"Performance tests [{'PASSED' if self.success else 'FAILED'}]"

    def __str__(self) -> str:
        return f"{self.headline()}\n{self.text}"


def evaluate_performance(
    test_name: str,
    summary: MetricSummary,
    requirements: Optional[CertificationRequirements],
    *,
    incomplete: bool = False,
) -> PerformanceReport:
    """
    Compare one run's summary with its thresholds.

    Args:
        test_name: Name printed in every failure line
        summary: Statistics of the run
        requirements: Thresholds; None only produces a warning
        incomplete: True when the monitored process exited before the run ended

    Returns:
        PerformanceReport with the verdict and one line per finding
    """
    lines: List[str] = []
    success = True

    if incomplete:
        success = False
        lines.append(f"Run for {test_name} is incomplete: the rendering process exited before the run ended.")

    if requirements is None:
        lines.append(
            f"Warning: {test_name} was executed, but performance metrics was ignored "
            "because certification requirements was not found."
        )
    else:
        if summary.jank_rate > requirements.jank_rate:
            success = False
            lines.append(
                f"Jank rate for {test_name} is too high, actual: {summary.jank_rate}, "
                f"target: {requirements.jank_rate}"
            )
        if requirements.checks_load_time:
            if summary.load_time_ms is None:
                success = False
                lines.append(
                    f"Unable to determine load time for {test_name}.  "
                    "Expected START_LOOP event was not received."
                )
            elif summary.load_time_ms > requirements.load_time_ms:
                success = False
                lines.append(
                    f"Load time for {test_name} is too high, actual: {summary.load_time_ms} ms, "
                    f"target: {requirements.load_time_ms} ms"
                )

    report = PerformanceReport(success, "".join(f"{line}\n" for line in lines))
    logger.info("%s: %s", test_name, report.headline())
    return report


__all__ = ["PerformanceReport", "evaluate_performance"]
