"""Test data generators for the framecert test suite.

Usage:
    from tests.infrastructure.helpers import latency_output, frame_triples

    text = latency_output(16_666_666, frame_triples(start=1_000, count=5))
"""

from __future__ import annotations

from typing import Iterable, List, Optional, Sequence, Tuple

Triple = Tuple[int, int, int]

VSYNC_60HZ = 16_666_666


def frame_triples(
    start: int,
    count: int,
    step: int = VSYNC_60HZ,
    ready_offset: int = -2_000_000,
) -> List[Triple]:
    """Triples for ``count`` evenly spaced frames, first present time ``start``."""
    triples: List[Triple] = []
    for index in range(count):
        present = start + index * step
        triples.append((present - 1_000_000, present, present + ready_offset))
    return triples


def latency_output(vsync_period: Optional[int], triples: Iterable[Sequence[int]] = ()) -> str:
    """Format text the way ``dumpsys SurfaceFlinger --latency`` prints it."""
    header = "" if vsync_period is None else str(vsync_period)
    lines = [header]
    lines.extend("\t".join(str(value) for value in triple) for triple in triples)
    return "\n".join(lines) + "\n\n"


def event_log(*events: Tuple[str, int]) -> str:
    """Lifecycle event log text from ``(kind, timestamp_ms)`` pairs."""
    return "".join(f"{kind},{timestamp}\n" for kind, timestamp in events)
