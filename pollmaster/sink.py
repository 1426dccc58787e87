import logging

from .models import (
    CalibrationResult,
    CalibrationStep,
    CycleReport,
    Event,
    FatalError,
)

log = logging.getLogger("PollMaster")


class LogSink:
    """
    Fire-and-forget destination for cycle results, calibration progress
    and fatal errors. Everything goes through the ``PollMaster`` logger,
    which ``setup_logging`` routes into readings.log.
    """

    def record(self, event: Event) -> None:
        if isinstance(event, CycleReport):
            self._cycle(event)
        elif isinstance(event, CalibrationStep):
            self._calibration_step(event)
        elif isinstance(event, CalibrationResult):
            log.info("Optimal polling interval found: %dms (tested %s)",
                     event.interval_ms, event.candidates)
        elif isinstance(event, FatalError):
            log.critical("Fatal: %s", event.reason)
        else:
            log.debug("unhandled event %r", event)

    def _cycle(self, report: CycleReport) -> None:
        for r in report.readings:
            if r.failure is None:
                log.info("Sensor %d Data: %d", r.device_id, r.value)
            else:
                log.info("Sensor %d Data: none (%s)", r.device_id, r.failure.cause.value)
        log.debug("cycle %d: work %.1fms, sleep %.1fms (interval %dms)",
                  report.cycle, report.elapsed_ms, report.delay_ms, report.interval_ms)

    def _calibration_step(self, step: CalibrationStep) -> None:
        if step.certified:
            log.info("Interval %dms certified (%d batches clean)",
                     step.interval_ms, step.batches_passed)
            return
        f = step.failure
        if f is None:
            log.info("Interval %dms interrupted after %d clean batches",
                     step.interval_ms, step.batches_passed)
            return
        log.info("Interval %dms rejected after %d clean batches: Sensor %d %s %s",
                 step.interval_ms, step.batches_passed,
                 f.device_id, f.cause.value, f.detail)
