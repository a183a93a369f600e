"""Frame Sampler

Polls the SurfaceFlinger latency dump on a fixed interval and folds every
poll into one deduplicated, strictly increasing frame timeline.

The dump only ever holds the most recent ~128 frames, so consecutive polls
overlap. Each triple is compared with the newest present time already
accepted (the watermark): older and equal present times were seen before and
are dropped, newer ones are appended and advance the watermark. If a poll
shares no frame with the previous ones, frames were produced faster than the
dump could hold them between polls and some were lost; that is logged and
counted but the run continues.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence, Tuple

from framecert.core.asyncio_utils import cancel_and_wait, create_logged_task
from framecert.core.logging_utils import get_module_logger
from ..constants import DEFAULT_COMMAND_TIMEOUT_S, DEFAULT_INTERVAL_S, INT64_MAX, LATENCY_COMMAND
from .parsers import LatencyDump, parse_latency_output
from .transports import DeviceCommandTransport
from .types import FrameRecord, SamplerState

logger = get_module_logger(__name__)


def fixed_rate_delay(started_at: float, interval: float, tick_index: int, now: float) -> Tuple[float, int]:
    """
    Delay before tick ``tick_index`` of a fixed-rate schedule.

    Ticks are due at ``started_at + k * interval``. A tick that is already late
    runs immediately, and the slots it overran are dropped rather than
    replayed back to back.

    Returns:
        (seconds to sleep, index of the tick that will run)
    """
    deadline = started_at + tick_index * interval
    if deadline > now:
        return deadline - now, tick_index
    return 0.0, max(tick_index, int((now - started_at) // interval))


@dataclass
class _SamplerState:
    """Everything a poll mutates. Only touched with the sampler lock held."""

    state: SamplerState = SamplerState.NOT_STARTED
    vsync_period_ns: Optional[int] = None
    latest_seen: int = 0
    records: List[FrameRecord] = field(default_factory=list)
    raw_outputs: List[str] = field(default_factory=list)
    poll_count: int = 0
    failed_polls: int = 0
    missed_overlap_polls: int = 0
    discarded_samples: int = 0


class FrameSampler:
    """
    Periodic latency dump sampler for one layer on one device.

    Example:
        sampler = FrameSampler(transport, "com.example.game/MainActivity#0")
        await sampler.start()
        ...
        await sampler.stop()
        records = sampler.frame_records
    """

    def __init__(
        self,
        transport: DeviceCommandTransport,
        layer_name: str,
        *,
        interval_s: float = DEFAULT_INTERVAL_S,
        fixed_rate: bool = False,
        command_timeout_s: float = DEFAULT_COMMAND_TIMEOUT_S,
    ):
        if interval_s <= 0:
            raise ValueError(f"interval_s must be positive, got {interval_s}")

        self.transport = transport
        self.layer_name = layer_name
        self.interval_s = interval_s
        self.fixed_rate = fixed_rate
        self.command_timeout_s = command_timeout_s

        self._command = LATENCY_COMMAND.format(layer=layer_name)
        self._log = logger.bind(device=transport.device)
        self._lock = asyncio.Lock()
        self._state = _SamplerState()
        self._task: Optional[asyncio.Task] = None
        self._running = False

        # Called with each poll's newly accepted frames (set by the collector)
        self.frame_callback: Optional[Callable[[Sequence[FrameRecord]], object]] = None

    # =========================================================================
    # Accessors
    # =========================================================================

    @property
    def state(self) -> SamplerState:
        return self._state.state

    @property
    def is_terminated(self) -> bool:
        return self._state.state is SamplerState.TERMINATED

    @property
    def is_running(self) -> bool:
        """True while the polling task is alive."""
        return self._task is not None and not self._task.done()

    @property
    def vsync_period_ns(self) -> Optional[int]:
        return self._state.vsync_period_ns

    @property
    def frame_records(self) -> Tuple[FrameRecord, ...]:
        return tuple(self._state.records)

    @property
    def raw_outputs(self) -> Tuple[str, ...]:
        return tuple(self._state.raw_outputs)

    @property
    def poll_count(self) -> int:
        return self._state.poll_count

    @property
    def failed_polls(self) -> int:
        return self._state.failed_polls

    @property
    def missed_overlap_polls(self) -> int:
        return self._state.missed_overlap_polls

    @property
    def discarded_samples(self) -> int:
        return self._state.discarded_samples

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def start(self) -> None:
        """Start polling; the first poll runs immediately."""
        if self.is_running:
            self._log.warning("Sampler for %s already running", self.layer_name)
            return
        if self._state.state.is_final:
            self._log.warning("Sampler for %s already finished (%s)", self.layer_name, self._state.state.value)
            return

        self._running = True
        self._task = create_logged_task(
            self._poll_loop(),
            logger=self._log,
            context=f"FrameSampler[{self.layer_name}]",
        )
        self._log.info(
            "Sampling %s every %.3fs (%s)",
            self.layer_name, self.interval_s, "fixed rate" if self.fixed_rate else "fixed delay",
        )

    async def stop(self) -> SamplerState:
        """
        Stop polling and take one last sample.

        No scheduled poll runs after the polling task has been cancelled. If
        the run is still live a final drain poll collects the frames rendered
        since the last tick.

        Returns:
            The final sampler state
        """
        self._running = False
        await cancel_and_wait(self._task)
        self._task = None

        async with self._lock:
            if self._state.state is SamplerState.RUNNING:
                await self._poll_locked()
            if self._state.state in (SamplerState.NOT_STARTED, SamplerState.RUNNING):
                self._state.state = SamplerState.STOPPED

        self._log.info(
            "Sampler for %s stopped in state %s: %d frames, %d polls (%d failed, %d without overlap)",
            self.layer_name,
            self._state.state.value,
            len(self._state.records),
            self._state.poll_count,
            self._state.failed_polls,
            self._state.missed_overlap_polls,
        )
        return self._state.state

    async def _poll_loop(self) -> None:
        loop = asyncio.get_running_loop()
        started_at = loop.time()
        tick_index = 0

        try:
            while self._running:
                if not await self.tick():
                    break

                tick_index += 1
                if self.fixed_rate:
                    delay, tick_index = fixed_rate_delay(started_at, self.interval_s, tick_index, loop.time())
                else:
                    delay = self.interval_s
                await asyncio.sleep(delay)
        except asyncio.CancelledError:
            self._log.debug("Polling task for %s cancelled", self.layer_name)
            raise
        finally:
            self._running = False

    # =========================================================================
    # Polling
    # =========================================================================

    async def tick(self) -> bool:
        """
        Run one poll.

        Returns:
            False once the sampler reached a final state and polling should end
        """
        async with self._lock:
            if self._state.state.is_final:
                return False
            await self._poll_locked()
            return not self._state.state.is_final

    async def _poll_locked(self) -> None:
        s = self._state
        try:
            output = await self.transport.execute_shell_command(self._command, timeout=self.command_timeout_s)
        except (asyncio.TimeoutError, OSError) as exc:
            # DeviceNotAvailableError is an OSError
            s.failed_polls += 1
            self._log.warning("Poll of %s failed (%d so far): %s", self.layer_name, s.failed_polls, exc)
            return

        s.poll_count += 1
        s.raw_outputs.append(output)
        self._apply_dump(parse_latency_output(output))

    def _apply_dump(self, dump: LatencyDump) -> None:
        s = self._state

        if dump.is_empty:
            if s.state is SamplerState.NOT_STARTED:
                self._log.debug("No frames for %s yet", self.layer_name)
            else:
                s.state = SamplerState.TERMINATED
                self._log.warning(
                    "Layer %s stopped reporting frames; assuming the process exited (%d frames collected)",
                    self.layer_name, len(s.records),
                )
            return

        if s.state is SamplerState.NOT_STARTED:
            if dump.vsync_period is None:
                self._log.warning("Unparsable refresh period in latency output for %s, skipping poll", self.layer_name)
                return
            s.vsync_period_ns = dump.vsync_period
            s.state = SamplerState.RUNNING
            self._log.info("Layer %s is rendering, vsync period %d ns", self.layer_name, s.vsync_period_ns)

        if dump.ignored_lines:
            self._log.debug("Ignored %d malformed latency lines", dump.ignored_lines)

        watermark_before = s.latest_seen
        overlapped = False
        accepted: List[FrameRecord] = []

        for sample in dump.samples:
            present = sample.actual_present_time
            if present == INT64_MAX:
                # Frame still pending; it overlaps by definition
                overlapped = True
                continue
            if present <= watermark_before:
                overlapped = True
            if present <= s.latest_seen:
                s.discarded_samples += 1
                continue
            record = FrameRecord.from_sample(sample)
            s.records.append(record)
            s.latest_seen = present
            accepted.append(record)

        if watermark_before != 0 and not overlapped:
            s.missed_overlap_polls += 1
            self._log.warning(
                "No overlap with previous poll of %s; frames were likely missed (poll interval %.3fs too long?)",
                self.layer_name, self.interval_s,
            )

        self._log.debug("Poll %d of %s: %d new frames", s.poll_count, self.layer_name, len(accepted))
        if accepted and self.frame_callback is not None:
            try:
                self.frame_callback(accepted)
            except Exception:
                self._log.exception("Frame callback failed for %s", self.layer_name)


__all__ = ["FrameSampler", "fixed_rate_delay"]
