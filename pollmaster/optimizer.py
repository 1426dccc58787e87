"""
Empirical search for the fastest reliable polling interval.

The interval is stepped down linearly from a known-safe start. Each
candidate must survive ``trial_batch_count`` consecutive batches, every
device read once per batch, without a single failure. Bus timing near the
failure edge is not smooth, so no bisection: the first rejected candidate
ends the search and the last certified interval wins.
"""
import asyncio
import logging
from typing import List, Optional, Sequence, Tuple

from .clock import MonotonicClock
from .config import Settings
from .models import CalibrationResult, CalibrationStep, Device, Failure
from .reader import DeviceReader
from .sink import LogSink
from .state import PollingState

log = logging.getLogger("PollMaster.optimizer")


class RateOptimizer:

    def __init__(
        self,
        reader: DeviceReader,
        devices: Sequence[Device],
        settings: Settings,
        clock: Optional[MonotonicClock] = None,
        sink: Optional[LogSink] = None,
    ):
        self.reader = reader
        self.devices = list(devices)
        self.settings = settings
        self.clock = clock or MonotonicClock()
        self.sink = sink or LogSink()

    async def calibrate(self, state: PollingState, stop: Optional[asyncio.Event] = None) -> int:
        """
        Run the step-down search and return the chosen interval in ms.

        The result is always either a certified candidate or, if the very
        first candidate fails, the initial interval itself.
        """
        cfg = self.settings
        state.begin_calibration(cfg.initial_interval_ms, cfg.decrease_step_ms)
        tested: List[int] = []
        interval = cfg.initial_interval_ms

        while True:
            if stop is not None and stop.is_set():
                log.info("Calibration stopped before %dms", interval)
                break

            state.try_candidate(interval)
            tested.append(interval)
            log.info("Testing polling interval: %dms", interval)

            passed, failure = await self._trial(interval, stop)
            step = CalibrationStep(
                interval_ms=interval,
                certified=passed == cfg.trial_batch_count,
                batches_passed=passed,
                failure=failure,
            )
            self.sink.record(step)
            if not step.certified:
                break

            state.certify()
            next_interval = interval - state.step_size_ms
            if next_interval < cfg.min_interval_ms:
                log.info("Reached interval floor %dms", cfg.min_interval_ms)
                break
            interval = next_interval

        chosen = state.last_certified_interval_ms
        self.sink.record(CalibrationResult(interval_ms=chosen, candidates=tested))
        return chosen

    async def _trial(
        self, interval_ms: int, stop: Optional[asyncio.Event]
    ) -> Tuple[int, Optional[Failure]]:
        """Returns (clean batches, first failure or None)."""
        passed = 0
        for _ in range(self.settings.trial_batch_count):
            if stop is not None and stop.is_set():
                break
            started = self.clock.now()
            failure = await self._batch()
            if failure is not None:
                return passed, failure
            passed += 1
            elapsed_ms = (self.clock.now() - started) * 1000
            await self.clock.sleep(max(interval_ms - elapsed_ms, 0))
        return passed, None

    async def _batch(self) -> Optional[Failure]:
        # short-circuit: the rest of the batch is pointless after one failure
        for device in self.devices:
            result = await self.reader.read(device)
            if not result.ok:
                return result
        return None
