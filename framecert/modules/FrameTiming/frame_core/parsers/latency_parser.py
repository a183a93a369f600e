"""Parsing for ``dumpsys SurfaceFlinger --latency`` output.

Line 0 holds the display refresh period in nanoseconds. Every following line
with exactly two tabs is ``desired\\tactual\\tready`` (three decimal integers,
nanoseconds). Lines with any other shape are ignored.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

from ..types import RawSample


def _parse_int(value: str | None) -> Optional[int]:
    """Parse a decimal integer, None on failure."""
    if value is None:
        return None
    text = value.strip()
    if not text:
        return None
    try:
        return int(text)
    except ValueError:
        return None


def parse_sample_line(line: str) -> Optional[RawSample]:
    """Parse one frame line, None if it is not a three-integer triple."""
    parts = line.split("\t")
    if len(parts) != 3:
        return None
    values = [_parse_int(part) for part in parts]
    if any(value is None for value in values):
        return None
    desired, actual, ready = values
    return RawSample(desired, actual, ready)


@dataclass(slots=True)
class LatencyDump:
    """One poll's worth of parsed output."""

    vsync_period: Optional[int] = None
    samples: List[RawSample] = field(default_factory=list)
    # Non-empty lines after the header, whether or not they parsed
    frame_lines: int = 0
    ignored_lines: int = 0

    @property
    def is_empty(self) -> bool:
        """True when nothing but the refresh period came back."""
        return self.frame_lines == 0


def parse_latency_output(text: str) -> LatencyDump:
    """Split raw command output into the refresh period and frame triples."""
    lines = text.splitlines()
    dump = LatencyDump()
    if not lines:
        return dump

    dump.vsync_period = _parse_int(lines[0])
    for line in lines[1:]:
        if not line.strip():
            continue
        dump.frame_lines += 1
        sample = parse_sample_line(line)
        if sample is None:
            dump.ignored_lines += 1
            continue
        dump.samples.append(sample)
    return dump


__all__ = ["LatencyDump", "parse_latency_output", "parse_sample_line"]
