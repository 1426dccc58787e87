"""
Unit tests for RateOptimizer.

Covers the step-down search, batch short-circuiting, the interval floor
and the first-candidate fallback.
"""
import asyncio

import pytest

from pollmaster.config import Settings
from pollmaster.enums import FailureCause, Phase
from pollmaster.exceptions import ReadTimeout
from pollmaster.models import CalibrationResult, CalibrationStep
from pollmaster.optimizer import RateOptimizer
from pollmaster.reader import DeviceReader
from pollmaster.state import PollingState

from conftest import FakeTransport


def make_optimizer(transport, settings, clock, sink):
    reader = DeviceReader(transport, settings.devices)
    return RateOptimizer(reader, settings.devices, settings, clock, sink)


@pytest.fixture
def state(settings):
    return PollingState(current_interval_ms=settings.initial_interval_ms)


class TestStepDown:

    @pytest.mark.asyncio
    async def test_all_reads_succeed_reaches_floor(self, transport, settings, clock, sink, state):
        """Every candidate certifies down to the 50ms floor."""
        optimizer = make_optimizer(transport, settings, clock, sink)

        result = await optimizer.calibrate(state)

        assert result == 50
        assert sink.of_type(CalibrationResult)[0].candidates == list(range(500, 0, -50))
        # 10 candidates x 5 batches x 2 devices
        assert len(transport.calls) == 100

    @pytest.mark.asyncio
    async def test_failure_at_200_settles_on_250(self, settings, clock, sink, state):
        transport = FakeTransport(
            clock=clock,
            fail_if=lambda unit: (
                ReadTimeout(unit, "no response") if state.current_interval_ms <= 200 else None
            ),
        )
        optimizer = make_optimizer(transport, settings, clock, sink)

        result = await optimizer.calibrate(state)

        assert result == 250
        assert state.last_certified_interval_ms == 250
        steps = sink.of_type(CalibrationStep)
        assert [s.interval_ms for s in steps] == [500, 450, 400, 350, 300, 250, 200]
        assert [s.certified for s in steps] == [True] * 6 + [False]
        assert steps[-1].failure.cause is FailureCause.TIMEOUT
        assert steps[-1].failure.device_id == 1

    @pytest.mark.asyncio
    async def test_first_candidate_failure_keeps_initial(self, settings, clock, sink, state):
        transport = FakeTransport(clock=clock, fail_if=lambda unit: ReadTimeout(unit, "silent"))
        optimizer = make_optimizer(transport, settings, clock, sink)

        result = await optimizer.calibrate(state)

        assert result == 500
        assert state.last_certified_interval_ms == 500
        assert sink.of_type(CalibrationResult)[0].candidates == [500]
        assert transport.calls == [1]

    @pytest.mark.asyncio
    async def test_candidates_strictly_decrease_by_step(self, transport, settings, clock, sink, state):
        seen = []
        original = transport.read_data_point

        def spy(unit, address, function):
            seen.append(state.current_interval_ms)
            return original(unit, address, function)

        transport.read_data_point = spy
        optimizer = make_optimizer(transport, settings, clock, sink)

        await optimizer.calibrate(state)

        distinct = list(dict.fromkeys(seen))
        assert all(a - b == 50 for a, b in zip(distinct, distinct[1:]))
        assert seen == sorted(seen, reverse=True)

    @pytest.mark.asyncio
    async def test_never_returns_below_floor(self, transport, devices, clock, sink):
        settings = Settings(
            devices=devices,
            initial_interval_ms=500,
            decrease_step_ms=150,
            min_interval_ms=100,
            trial_batch_count=2,
        )
        state = PollingState(current_interval_ms=500)
        optimizer = make_optimizer(transport, settings, clock, sink)

        result = await optimizer.calibrate(state)

        assert result == 200
        assert sink.of_type(CalibrationResult)[0].candidates == [500, 350, 200]


class TestBatches:

    @pytest.mark.asyncio
    async def test_failure_aborts_rest_of_batch_and_candidate(self, settings, clock, sink, state):
        """Device 1 fails in the third batch: device 2 is not read again."""
        count = {"unit1": 0}

        def fail_if(unit):
            if unit == 1:
                count["unit1"] += 1
                if count["unit1"] == 3:
                    return ReadTimeout(unit, "late")
            return None

        transport = FakeTransport(clock=clock, fail_if=fail_if)
        optimizer = make_optimizer(transport, settings, clock, sink)

        result = await optimizer.calibrate(state)

        assert result == 500
        assert transport.calls == [1, 2, 1, 2, 1]
        step = sink.of_type(CalibrationStep)[0]
        assert step.certified is False
        assert step.batches_passed == 2

    @pytest.mark.asyncio
    async def test_batches_are_paced_at_candidate(self, devices, transport, clock, sink):
        settings = Settings(
            devices=devices,
            initial_interval_ms=100,
            decrease_step_ms=50,
            min_interval_ms=100,
            trial_batch_count=3,
        )
        transport.latency_ms = 10
        state = PollingState(current_interval_ms=100)
        optimizer = make_optimizer(transport, settings, clock, sink)

        await optimizer.calibrate(state)

        assert clock.sleeps == pytest.approx([80.0, 80.0, 80.0])

    @pytest.mark.asyncio
    async def test_stop_event_ends_with_last_certified(self, transport, settings, clock, sink, state):
        stop = asyncio.Event()
        stop.set()
        optimizer = make_optimizer(transport, settings, clock, sink)

        result = await optimizer.calibrate(state, stop)

        assert result == 500
        assert transport.calls == []


class TestStateDuringCalibration:

    @pytest.mark.asyncio
    async def test_state_is_calibrating_with_step(self, transport, settings, clock, sink, state):
        optimizer = make_optimizer(transport, settings, clock, sink)

        await optimizer.calibrate(state)

        assert state.phase is Phase.CALIBRATING
        assert state.step_size_ms == 50
        assert state.current_interval_ms == 50
