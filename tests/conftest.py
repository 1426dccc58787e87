"""
Shared pytest fixtures for PollMaster tests.

Provides:
- A fake clock whose sleeps advance time instantly
- A scripted transport standing in for the RS485 driver
- A sink that records events instead of logging them
"""
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional

import pytest

from pollmaster.config import Settings
from pollmaster.enums import FunctionCode
from pollmaster.models import Device


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.t = start
        self.sleeps: List[float] = []

    def now(self) -> float:
        return self.t

    def wall(self) -> datetime:
        return datetime(2026, 1, 1, tzinfo=timezone.utc) + timedelta(seconds=self.t)

    def advance(self, ms: float) -> None:
        self.t += ms / 1000

    async def sleep(self, ms: float) -> None:
        self.sleeps.append(ms)
        self.advance(ms)


class FakeTransport:
    """
    In-memory transport. ``fail_if(unit)`` may return an exception to
    raise for that read; ``latency_ms`` is charged to the clock per read.
    """

    def __init__(
        self,
        values: Optional[Dict[int, int]] = None,
        clock: Optional[FakeClock] = None,
        latency_ms: float = 0.0,
        fail_if: Optional[Callable[[int], Optional[Exception]]] = None,
        connect_error: Optional[Exception] = None,
    ):
        self.values = values or {}
        self.clock = clock
        self.latency_ms = latency_ms
        self.fail_if = fail_if
        self.connect_error = connect_error

        self.calls: List[int] = []
        self.timeout_ms: Optional[int] = None
        self.connected = False
        self.closed = False

    def connect(self) -> None:
        if self.connect_error is not None:
            raise self.connect_error
        self.connected = True

    def set_timeout(self, ms: int) -> None:
        self.timeout_ms = ms

    def close(self) -> None:
        self.closed = True

    def read_data_point(self, unit: int, address: int,
                        function: FunctionCode = FunctionCode.READ_HOLDING_REGISTERS) -> int:
        self.calls.append(unit)
        if self.clock is not None and self.latency_ms:
            self.clock.advance(self.latency_ms)
        if self.fail_if is not None:
            exc = self.fail_if(unit)
            if exc is not None:
                raise exc
        return self.values.get(unit, 0)


class RecordingSink:
    def __init__(self):
        self.events = []

    def record(self, event) -> None:
        self.events.append(event)

    def of_type(self, event_type):
        return [e for e in self.events if isinstance(e, event_type)]


@pytest.fixture
def devices():
    return [Device(id=1, data_point=0x0001), Device(id=2, data_point=0x0001)]


@pytest.fixture
def settings(devices):
    return Settings(
        devices=devices,
        initial_interval_ms=500,
        decrease_step_ms=50,
        min_interval_ms=50,
        trial_batch_count=5,
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def transport(clock):
    return FakeTransport(values={1: 101, 2: 202}, clock=clock)
