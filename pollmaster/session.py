"""
Session lifecycle: connect -> calibrate -> poll.

Phases run strictly in order and are never re-entered. A connection
failure ends the process with status 1.
"""
import asyncio
import logging
from typing import Optional

from .clock import MonotonicClock
from .config import Settings
from .enums import Phase
from .exceptions import ConnectError
from .models import FatalError
from .optimizer import RateOptimizer
from .reader import DeviceReader
from .rtu.driver import RtuDriver
from .scheduler import PollingScheduler
from .sink import LogSink
from .state import PollingState

log = logging.getLogger("PollMaster.session")


class Session:

    def __init__(
        self,
        settings: Settings,
        transport=None,
        clock: Optional[MonotonicClock] = None,
        sink: Optional[LogSink] = None,
    ):
        self.settings = settings
        self.transport = transport if transport is not None else RtuDriver(settings.line)
        self.clock = clock or MonotonicClock()
        self.sink = sink or LogSink()
        self.state = PollingState(current_interval_ms=settings.initial_interval_ms)

        self.reader = DeviceReader(self.transport, settings.devices)
        self.optimizer = RateOptimizer(
            self.reader, settings.devices, settings, self.clock, self.sink
        )
        self.scheduler = PollingScheduler(
            self.reader, settings.devices, self.clock, self.sink,
            stats_every_cycles=settings.stats_every_cycles,
        )

    def connect(self) -> None:
        self.state.phase = Phase.CONNECTING
        try:
            self.transport.connect()
        except ConnectError as e:
            log.error("Connection error: %s", e)
            self.sink.record(FatalError(reason=str(e)))
            raise SystemExit(1) from e
        self.transport.set_timeout(self.settings.response_timeout_ms)
        log.info("Connected to RS485 on %s", self.settings.line.serial_port)

    async def calibrate(self, stop: Optional[asyncio.Event] = None) -> int:
        interval = await self.optimizer.calibrate(self.state, stop)
        self.state.enter_polling(interval)
        return interval

    async def poll(self, stop: Optional[asyncio.Event] = None,
                   max_cycles: Optional[int] = None) -> None:
        await self.scheduler.run(self.state, stop, max_cycles)

    async def run(self, stop: Optional[asyncio.Event] = None,
                  max_cycles: Optional[int] = None) -> None:
        self.connect()
        try:
            await self.calibrate(stop)
            await self.poll(stop, max_cycles)
        finally:
            self.transport.close()
