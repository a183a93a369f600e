"""Application lifecycle events reported by the workload under test.

The device-side reporter writes one event per line. Two shapes are accepted:

    APP_LAUNCH,1700000000000
    START_LOOP,1700000000042

or a bare millisecond timestamp, which is a START_LOOP (the loop-start file
written by the benchmark helper). Blank lines and ``#`` comments are skipped.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Iterable, List, Optional, Sequence

import aiofiles

from framecert.core.logging_utils import get_module_logger
from ..constants import NS_PER_MS

logger = get_module_logger(__name__)


class LifecycleLogError(ValueError):
    """An event log line could not be understood."""


class EventKind(Enum):
    APP_LAUNCH = "APP_LAUNCH"
    START_LOOP = "START_LOOP"


@dataclass(frozen=True, slots=True)
class LifecycleEvent:
    kind: EventKind
    timestamp_ms: int

    @property
    def timestamp_ns(self) -> int:
        return self.timestamp_ms * NS_PER_MS


def app_launch_time(events: Sequence[LifecycleEvent]) -> Optional[int]:
    """Timestamp (ms) of the first APP_LAUNCH event, if any."""
    for event in events:
        if event.kind is EventKind.APP_LAUNCH:
            return event.timestamp_ms
    return None


def loop_starts(events: Sequence[LifecycleEvent]) -> List[LifecycleEvent]:
    return [event for event in events if event.kind is EventKind.START_LOOP]


def loop_start_times(events: Sequence[LifecycleEvent]) -> List[int]:
    """Ordered START_LOOP timestamps in ms."""
    return [event.timestamp_ms for event in loop_starts(events)]


def parse_event_line(line: str, line_number: int = 0) -> Optional[LifecycleEvent]:
    text = line.split("#", 1)[0].strip()
    if not text:
        return None

    kind_text, sep, stamp_text = text.partition(",")
    if not sep:
        kind_text, stamp_text = EventKind.START_LOOP.value, text

    try:
        kind = EventKind(kind_text.strip().upper())
    except ValueError as exc:
        raise LifecycleLogError(f"line {line_number}: unknown event kind {kind_text.strip()!r}") from exc

    try:
        timestamp_ms = int(stamp_text.strip())
    except ValueError as exc:
        raise LifecycleLogError(f"line {line_number}: bad timestamp {stamp_text.strip()!r}") from exc

    return LifecycleEvent(kind, timestamp_ms)


def parse_event_lines(lines: Iterable[str]) -> List[LifecycleEvent]:
    """Parse an event log, checking the ordering guarantees of the reporter."""
    events: List[LifecycleEvent] = []
    for number, line in enumerate(lines, start=1):
        event = parse_event_line(line, number)
        if event is not None:
            events.append(event)

    for previous, current in zip(events, events[1:]):
        if current.timestamp_ms < previous.timestamp_ms:
            logger.warning(
                "Lifecycle events out of order: %s@%d after %s@%d",
                current.kind.value, current.timestamp_ms,
                previous.kind.value, previous.timestamp_ms,
            )

    launch = app_launch_time(events)
    starts = loop_start_times(events)
    if launch is not None and starts and starts[0] < launch:
        logger.warning("First START_LOOP (%d) precedes APP_LAUNCH (%d)", starts[0], launch)

    return events


async def read_event_log_async(path: Path) -> List[LifecycleEvent]:
    """Read an event log file pulled from the device."""
    lines: list[str] = []
    async with aiofiles.open(Path(path), "r", encoding="utf-8") as f:
        async for line in f:
            lines.append(line)
    events = parse_event_lines(lines)
    logger.info("Read %d lifecycle events from %s", len(events), path)
    return events


__all__ = [
    "EventKind",
    "LifecycleEvent",
    "LifecycleLogError",
    "app_launch_time",
    "loop_start_times",
    "loop_starts",
    "parse_event_line",
    "parse_event_lines",
    "read_event_log_async",
]
