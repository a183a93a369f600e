"""Frame timing data types."""

from dataclasses import dataclass
from enum import Enum


class SamplerState(Enum):
    """Lifecycle of one sampling run."""
    NOT_STARTED = "not_started"  # Target has not rendered a frame yet
    RUNNING = "running"
    TERMINATED = "terminated"    # Monitored process went away mid-run
    STOPPED = "stopped"          # Orchestrator ended the run

    @property
    def is_final(self) -> bool:
        return self in (SamplerState.TERMINATED, SamplerState.STOPPED)


@dataclass(frozen=True, slots=True)
class RawSample:
    """One ``desired\\tactual\\tready`` line from the latency dump, in ns."""

    desired_present_time: int
    actual_present_time: int
    frame_ready_time: int


@dataclass(frozen=True, slots=True)
class FrameRecord:
    """An accepted, deduplicated frame."""

    present_time: int
    ready_time: int

    @classmethod
    def from_sample(cls, sample: RawSample) -> "FrameRecord":
        return cls(present_time=sample.actual_present_time, ready_time=sample.frame_ready_time)
