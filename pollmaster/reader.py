import asyncio
import logging
from typing import Dict, Iterable

from .enums import FailureCause
from .exceptions import (
    BusError,
    DeviceException,
    MalformedResponse,
    ReadError,
    ReadTimeout,
    UnknownDeviceError,
)
from .models import Device, Failure, ReadResult, Sample
from .rtu.driver import PORT_ERRORS

log = logging.getLogger("PollMaster.reader")

_CAUSES = (
    (ReadTimeout, FailureCause.TIMEOUT),
    (MalformedResponse, FailureCause.MALFORMED),
    (DeviceException, FailureCause.DEVICE_ERROR),
    (BusError, FailureCause.BUS_ERROR),
)


def failure_cause(exc: ReadError) -> FailureCause:
    for exc_type, cause in _CAUSES:
        if isinstance(exc, exc_type):
            return cause
    return FailureCause.BUS_ERROR


class DeviceReader:
    """
    One request/response exchange per call, no retries.

    Failures come back as ``Failure`` values so callers can count them;
    read errors never propagate past ``read``.
    """

    def __init__(self, transport, devices: Iterable[Device]):
        self.transport = transport
        self._devices: Dict[int, Device] = {d.id: d for d in devices}

    async def read(self, device: Device) -> ReadResult:
        if self._devices.get(device.id) != device:
            raise UnknownDeviceError(f"device {device.id} is not configured")

        try:
            value = await asyncio.get_running_loop().run_in_executor(
                None, self.transport.read_data_point,
                device.id, device.data_point, device.function,
            )
        except ReadError as e:
            failure = Failure(device_id=device.id, cause=failure_cause(e), detail=str(e))
        except PORT_ERRORS as e:
            failure = Failure(device_id=device.id, cause=FailureCause.BUS_ERROR, detail=str(e))
        else:
            log.debug("Sensor %d Data: %s", device.id, value)
            return Sample(device_id=device.id, value=value)

        log.warning("Error reading Sensor %d: %s (%s)",
                    device.id, failure.cause.value, failure.detail)
        return failure
