"""Unit tests for FrameSampler."""

import asyncio
import logging

import pytest

from framecert.modules.FrameTiming.constants import INT64_MAX
from framecert.modules.FrameTiming.frame_core.sampler import FrameSampler, fixed_rate_delay
from framecert.modules.FrameTiming.frame_core.transports import DeviceNotAvailableError
from framecert.modules.FrameTiming.frame_core.types import FrameRecord, SamplerState

from tests.infrastructure.helpers import VSYNC_60HZ, latency_output
from tests.infrastructure.mocks import MockDeviceTransport

LAYER = "com.example.game/com.example.game.MainActivity#0"
NOT_RENDERING = latency_output(VSYNC_60HZ)


def _dump(*presents: int) -> str:
    return latency_output(VSYNC_60HZ, [(p - 1, p, p - 2) for p in presents])


def _sampler(*responses, **kwargs) -> FrameSampler:
    return FrameSampler(MockDeviceTransport(responses), LAYER, **kwargs)


async def _wait_until(predicate, timeout: float = 2.0) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not reached in time")
        await asyncio.sleep(0.005)


class TestSamplerStartup:
    """Test the NOT_STARTED -> RUNNING transition."""

    @pytest.mark.asyncio
    async def test_not_rendering_yet(self):
        sampler = _sampler(NOT_RENDERING)

        assert await sampler.tick() is True

        assert sampler.state is SamplerState.NOT_STARTED
        assert sampler.vsync_period_ns is None
        assert sampler.frame_records == ()
        assert sampler.poll_count == 1

    @pytest.mark.asyncio
    async def test_first_data_poll_starts_run(self):
        sampler = _sampler(NOT_RENDERING, _dump(100, 200, 300))

        await sampler.tick()
        await sampler.tick()

        assert sampler.state is SamplerState.RUNNING
        assert sampler.vsync_period_ns == VSYNC_60HZ
        assert [r.present_time for r in sampler.frame_records] == [100, 200, 300]
        assert sampler.missed_overlap_polls == 0

    @pytest.mark.asyncio
    async def test_unparsable_refresh_period_skips_poll(self, caplog):
        sampler = _sampler("n/a\n1\t2\t3\n", _dump(100))

        with caplog.at_level(logging.WARNING):
            await sampler.tick()

        assert sampler.state is SamplerState.NOT_STARTED
        assert sampler.frame_records == ()
        assert "Unparsable refresh period" in caplog.text

        await sampler.tick()
        assert sampler.state is SamplerState.RUNNING

    @pytest.mark.asyncio
    async def test_command_and_timeout(self):
        transport = MockDeviceTransport([NOT_RENDERING])
        sampler = FrameSampler(transport, LAYER, command_timeout_s=3.5)

        await sampler.tick()

        assert transport.commands == [f'dumpsys SurfaceFlinger --latency "{LAYER}"']
        assert transport.timeouts == [3.5]

    def test_invalid_interval(self):
        with pytest.raises(ValueError):
            _sampler(interval_s=0)


class TestSamplerDeduplication:
    """Test watermark based deduplication."""

    @pytest.mark.asyncio
    async def test_overlapping_polls_are_merged(self):
        sampler = _sampler(_dump(100, 200, 300), _dump(200, 300, 400, 500))

        await sampler.tick()
        await sampler.tick()

        assert [r.present_time for r in sampler.frame_records] == [100, 200, 300, 400, 500]
        assert sampler.discarded_samples == 2
        assert sampler.missed_overlap_polls == 0

    @pytest.mark.asyncio
    async def test_stale_poll_adds_nothing(self):
        sampler = _sampler(_dump(100, 200, 300), _dump(100, 200))

        await sampler.tick()
        await sampler.tick()

        assert len(sampler.frame_records) == 3
        assert sampler.missed_overlap_polls == 0

    @pytest.mark.asyncio
    async def test_gap_between_polls_is_reported(self, caplog):
        sampler = _sampler(_dump(100, 200, 300), _dump(400, 500))

        await sampler.tick()
        with caplog.at_level(logging.WARNING):
            await sampler.tick()

        assert sampler.missed_overlap_polls == 1
        assert "No overlap with previous poll" in caplog.text
        # Frames are still accepted
        assert [r.present_time for r in sampler.frame_records] == [100, 200, 300, 400, 500]

    @pytest.mark.asyncio
    async def test_pending_frame_marker_counts_as_overlap(self):
        sampler = _sampler(_dump(100, 200), _dump(300, INT64_MAX))

        await sampler.tick()
        await sampler.tick()

        assert sampler.missed_overlap_polls == 0
        assert [r.present_time for r in sampler.frame_records] == [100, 200, 300]

    @pytest.mark.asyncio
    async def test_first_data_poll_exempt_from_overlap_check(self):
        sampler = _sampler(NOT_RENDERING, _dump(10_000))

        await sampler.tick()
        await sampler.tick()

        assert sampler.missed_overlap_polls == 0

    @pytest.mark.asyncio
    async def test_present_times_strictly_increase(self):
        # Sliding windows of five frames advancing three frames per poll, with
        # one out-of-order line in every window
        responses = []
        for start in range(0, 60, 3):
            presents = [1_000 * (start + offset + 1) for offset in range(5)]
            presents.insert(2, presents[0])
            responses.append(_dump(*presents))
        sampler = _sampler(*responses)

        for _ in responses:
            await sampler.tick()

        presents = [r.present_time for r in sampler.frame_records]
        assert all(b > a for a, b in zip(presents, presents[1:]))
        assert presents == [1_000 * n for n in range(1, 63)]
        assert sampler.missed_overlap_polls == 0

    @pytest.mark.asyncio
    async def test_frame_callback_receives_new_frames(self):
        received = []
        sampler = _sampler(_dump(100, 200), _dump(200, 300))
        sampler.frame_callback = received.append

        await sampler.tick()
        await sampler.tick()

        assert received == [
            [FrameRecord(100, 98), FrameRecord(200, 198)],
            [FrameRecord(300, 298)],
        ]

    @pytest.mark.asyncio
    async def test_raw_outputs_kept(self):
        sampler = _sampler(NOT_RENDERING, _dump(100))

        await sampler.tick()
        await sampler.tick()

        assert sampler.raw_outputs == (NOT_RENDERING, _dump(100))


class TestSamplerTermination:
    """Test detection of the monitored process exiting."""

    @pytest.mark.asyncio
    async def test_empty_poll_after_running_terminates(self, caplog):
        transport = MockDeviceTransport([_dump(100, 200), NOT_RENDERING])
        sampler = FrameSampler(transport, LAYER)

        assert await sampler.tick() is True
        with caplog.at_level(logging.WARNING):
            assert await sampler.tick() is False

        assert sampler.state is SamplerState.TERMINATED
        assert sampler.is_terminated
        assert "stopped reporting frames" in caplog.text

        # No more device commands once terminated
        assert await sampler.tick() is False
        assert len(transport.commands) == 2
        assert len(sampler.frame_records) == 2

    @pytest.mark.asyncio
    async def test_polling_loop_ends_on_termination(self):
        sampler = _sampler(_dump(100), NOT_RENDERING, interval_s=0.01)

        await sampler.start()
        await _wait_until(lambda: not sampler.is_running)

        assert sampler.state is SamplerState.TERMINATED
        assert await sampler.stop() is SamplerState.TERMINATED


class TestSamplerTransientFailures:
    """Test that device errors never stop polling."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error",
        [DeviceNotAvailableError("offline", device="x"), asyncio.TimeoutError(), OSError("broken pipe")],
    )
    async def test_failure_is_counted(self, error):
        sampler = _sampler(_dump(100), error, _dump(100, 200))

        await sampler.tick()
        assert await sampler.tick() is True
        assert sampler.failed_polls == 1
        assert sampler.state is SamplerState.RUNNING

        await sampler.tick()
        assert [r.present_time for r in sampler.frame_records] == [100, 200]
        assert sampler.poll_count == 2

    @pytest.mark.asyncio
    async def test_failure_before_start(self):
        sampler = _sampler(DeviceNotAvailableError("offline"), _dump(100))

        await sampler.tick()
        assert sampler.state is SamplerState.NOT_STARTED
        await sampler.tick()
        assert sampler.state is SamplerState.RUNNING

    @pytest.mark.asyncio
    async def test_polling_continues_after_failure(self):
        sampler = _sampler(DeviceNotAvailableError("offline"), _dump(100), interval_s=0.01)

        await sampler.start()
        await _wait_until(lambda: sampler.state is SamplerState.RUNNING)
        await sampler.stop()

        assert sampler.failed_polls == 1


class TestSamplerStop:
    """Test cancellation and the final drain poll."""

    @pytest.mark.asyncio
    async def test_start_stop(self):
        transport = MockDeviceTransport([_dump(100)])
        sampler = FrameSampler(transport, LAYER, interval_s=0.01)

        await sampler.start()
        assert sampler.is_running
        await _wait_until(lambda: sampler.poll_count >= 3)

        assert await sampler.stop() is SamplerState.STOPPED
        assert not sampler.is_running

        commands = len(transport.commands)
        await asyncio.sleep(0.05)
        assert len(transport.commands) == commands

    @pytest.mark.asyncio
    async def test_stop_drains_once(self):
        transport = MockDeviceTransport([_dump(100, 200)])
        sampler = FrameSampler(transport, LAYER, interval_s=60.0)

        await sampler.start()
        await _wait_until(lambda: sampler.poll_count == 1)
        transport.queue(_dump(200, 300, 400))

        await sampler.stop()

        assert len(transport.commands) == 2
        assert [r.present_time for r in sampler.frame_records] == [100, 200, 300, 400]
        assert sampler.state is SamplerState.STOPPED

    @pytest.mark.asyncio
    async def test_stop_before_rendering(self):
        transport = MockDeviceTransport([NOT_RENDERING])
        sampler = FrameSampler(transport, LAYER, interval_s=60.0)

        await sampler.start()
        await _wait_until(lambda: sampler.poll_count == 1)
        await sampler.stop()

        # No drain poll: nothing was running
        assert len(transport.commands) == 1
        assert sampler.state is SamplerState.STOPPED

    @pytest.mark.asyncio
    async def test_drain_may_observe_termination(self):
        transport = MockDeviceTransport([_dump(100)])
        sampler = FrameSampler(transport, LAYER, interval_s=60.0)

        await sampler.start()
        await _wait_until(lambda: sampler.poll_count == 1)
        transport.queue(NOT_RENDERING)

        assert await sampler.stop() is SamplerState.TERMINATED

    @pytest.mark.asyncio
    async def test_stop_without_start(self):
        sampler = _sampler()

        assert await sampler.stop() is SamplerState.STOPPED

    @pytest.mark.asyncio
    async def test_start_twice_is_noop(self):
        transport = MockDeviceTransport([_dump(100)])
        sampler = FrameSampler(transport, LAYER, interval_s=60.0)

        await sampler.start()
        task = sampler._task
        await sampler.start()

        assert sampler._task is task
        await sampler.stop()

    @pytest.mark.asyncio
    async def test_cannot_restart_after_stop(self):
        sampler = _sampler(_dump(100), interval_s=60.0)

        await sampler.stop()
        await sampler.start()

        assert not sampler.is_running


class TestFixedRateSchedule:
    """Test fixed-rate tick scheduling."""

    def test_on_time_tick_waits_for_its_slot(self):
        delay, index = fixed_rate_delay(started_at=100.0, interval=1.0, tick_index=3, now=102.25)

        assert delay == pytest.approx(0.75)
        assert index == 3

    def test_late_tick_runs_immediately(self):
        delay, index = fixed_rate_delay(started_at=100.0, interval=1.0, tick_index=3, now=103.5)

        assert delay == 0.0
        assert index == 3

    def test_missed_slots_are_not_replayed(self):
        delay, index = fixed_rate_delay(started_at=100.0, interval=1.0, tick_index=3, now=107.2)

        assert delay == 0.0
        assert index == 7
        # Next tick is due at the following slot, not back to back
        next_delay, next_index = fixed_rate_delay(100.0, 1.0, index + 1, now=107.3)
        assert next_index == 8
        assert next_delay == pytest.approx(0.7)

    @pytest.mark.asyncio
    async def test_fixed_rate_sampler_polls(self):
        sampler = _sampler(_dump(100), interval_s=0.01, fixed_rate=True)

        await sampler.start()
        await _wait_until(lambda: sampler.poll_count >= 3)
        await sampler.stop()

        assert sampler.state is SamplerState.STOPPED
