from typing import Optional

from pydantic import BaseModel

from .enums import Phase


class PollingState(BaseModel):
    """
    The only mutable process state. Owned by the session and handed to
    one phase at a time; phases never run concurrently.

    While calibrating, ``current_interval_ms`` follows the candidate under
    test and only moves down. Once polling it never changes.
    """
    current_interval_ms: int
    phase: Phase = Phase.CONNECTING
    last_certified_interval_ms: Optional[int] = None    # calibration only
    step_size_ms: Optional[int] = None                  # calibration only

    def begin_calibration(self, initial_ms: int, step_ms: int) -> None:
        self.phase = Phase.CALIBRATING
        self.current_interval_ms = initial_ms
        self.last_certified_interval_ms = initial_ms
        self.step_size_ms = step_ms

    def try_candidate(self, interval_ms: int) -> None:
        if self.phase is not Phase.CALIBRATING:
            raise RuntimeError(f"cannot test candidates while {self.phase.value}")
        if interval_ms > self.current_interval_ms:
            raise ValueError(
                f"candidate {interval_ms} ms above current {self.current_interval_ms} ms"
            )
        self.current_interval_ms = interval_ms

    def certify(self) -> None:
        """Record the candidate under test as passed."""
        self.last_certified_interval_ms = self.current_interval_ms

    def enter_polling(self, interval_ms: int) -> None:
        self.phase = Phase.POLLING
        self.current_interval_ms = interval_ms
        self.last_certified_interval_ms = None
        self.step_size_ms = None
