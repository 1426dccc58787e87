"""
Steady-state polling at the calibrated interval.

Each cycle reads every device once, in configured order, then sleeps
for whatever is left of the interval. A slow cycle is never followed by
a catch-up burst: the next one simply starts late.
"""
import asyncio
import logging
from typing import Any, Dict, List, Optional, Sequence

from .clock import MonotonicClock
from .enums import Phase
from .models import CycleReport, Device, Reading
from .reader import DeviceReader
from .sink import LogSink
from .state import PollingState

log = logging.getLogger("PollMaster.scheduler")


class PollingScheduler:

    def __init__(
        self,
        reader: DeviceReader,
        devices: Sequence[Device],
        clock: Optional[MonotonicClock] = None,
        sink: Optional[LogSink] = None,
        stats_every_cycles: int = 0,
    ):
        self.reader = reader
        self.devices = list(devices)
        self.clock = clock or MonotonicClock()
        self.sink = sink or LogSink()
        self.stats_every_cycles = stats_every_cycles

        self._cycles = 0
        self._reads = 0
        self._overruns = 0
        self._failures: Dict[int, int] = {d.id: 0 for d in self.devices}

    async def run(
        self,
        state: PollingState,
        stop: Optional[asyncio.Event] = None,
        max_cycles: Optional[int] = None,
    ) -> None:
        """
        Poll until ``stop`` is set (or ``max_cycles`` cycles have run).
        """
        if state.phase is not Phase.POLLING:
            raise RuntimeError(f"scheduler started while {state.phase.value}")

        log.info("Polling %d devices every %dms", len(self.devices), state.current_interval_ms)
        done = 0
        while True:
            if stop is not None and stop.is_set():
                log.info("Stop requested, polling ends after %d cycles", done)
                break
            if max_cycles is not None and done >= max_cycles:
                break

            report = await self.run_cycle(state)
            done += 1
            await self.clock.sleep(report.delay_ms)

    async def run_cycle(self, state: PollingState) -> CycleReport:
        started = self.clock.now()
        readings: List[Reading] = []
        for device in self.devices:
            result = await self.reader.read(device)
            readings.append(Reading.from_result(result, self.clock.wall()))

        elapsed_ms = (self.clock.now() - started) * 1000
        interval_ms = state.current_interval_ms
        delay_ms = max(interval_ms - elapsed_ms, 0)

        self._cycles += 1
        self._reads += len(readings)
        for r in readings:
            if r.failure is not None:
                self._failures[r.device_id] = self._failures.get(r.device_id, 0) + 1
        if elapsed_ms > interval_ms:
            self._overruns += 1
            log.debug("cycle %d overran: %.1fms > %dms", self._cycles, elapsed_ms, interval_ms)

        report = CycleReport(
            cycle=self._cycles,
            interval_ms=interval_ms,
            elapsed_ms=elapsed_ms,
            delay_ms=delay_ms,
            readings=readings,
        )
        self.sink.record(report)

        if self.stats_every_cycles and self._cycles % self.stats_every_cycles == 0:
            log.info("Polling stats: %s", self.get_polling_stats())
        return report

    def get_polling_stats(self) -> Dict[str, Any]:
        return {
            "cycles": self._cycles,
            "reads": self._reads,
            "overruns": self._overruns,
            "failures": dict(self._failures),
        }
