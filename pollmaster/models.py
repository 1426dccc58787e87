from datetime import datetime
from typing import List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, conint

from .enums import FailureCause, FunctionCode


class Device(BaseModel):
    model_config = ConfigDict(frozen=True)

    id:         conint(ge=1, le=247)          # Modbus unit address
    data_point: conint(ge=0, le=0xFFFF)       # register offset
    function:   FunctionCode = FunctionCode.READ_HOLDING_REGISTERS
    name:       Optional[str] = None


# ────────── read results: discriminated on ``ok``
class Sample(BaseModel):
    ok: Literal[True] = True
    device_id: int
    value: int


class Failure(BaseModel):
    ok: Literal[False] = False
    device_id: int
    cause: FailureCause
    detail: str = ""


ReadResult = Union[Sample, Failure]


class Reading(BaseModel):
    """One device's outcome in one cycle; ``value`` is None on failure."""
    device_id: int
    value: Optional[int] = None
    timestamp: datetime
    failure: Optional[Failure] = None

    @classmethod
    def from_result(cls, result: ReadResult, timestamp: datetime) -> "Reading":
        if result.ok:
            return cls(device_id=result.device_id, value=result.value, timestamp=timestamp)
        return cls(device_id=result.device_id, timestamp=timestamp, failure=result)


# ────────── sink events
class CycleReport(BaseModel):
    cycle: int
    interval_ms: int
    elapsed_ms: float
    delay_ms: float
    readings: List[Reading]

    @property
    def failures(self) -> List[Failure]:
        return [r.failure for r in self.readings if r.failure is not None]


class CalibrationStep(BaseModel):
    interval_ms: int
    certified: bool
    batches_passed: int
    failure: Optional[Failure] = None


class CalibrationResult(BaseModel):
    interval_ms: int
    candidates: List[int]


class FatalError(BaseModel):
    reason: str


Event = Union[CycleReport, CalibrationStep, CalibrationResult, FatalError]
