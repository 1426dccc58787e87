"""
Exception hierarchy for PollMaster.

Connection failures are fatal for the session. Read errors never leave
the device reader: they are converted into ``Failure`` values there.
"""


class PollMasterError(Exception):
    """Base class for all PollMaster errors."""


class ConnectError(PollMasterError):
    """The serial transport could not be opened."""

    def __init__(self, port: str, reason: str):
        self.port = port
        self.reason = reason
        super().__init__(f"cannot open {port}: {reason}")


class ReadError(PollMasterError):
    """A single register read failed."""

    def __init__(self, device_id: int, message: str):
        self.device_id = device_id
        super().__init__(message)


class ReadTimeout(ReadError):
    """The device did not answer within the response timeout."""


class MalformedResponse(ReadError):
    """The reply was truncated, mis-addressed or failed the CRC check."""


class DeviceException(ReadError):
    """The device answered with a Modbus exception response."""


class BusError(ReadError):
    """The serial port itself failed during the exchange."""


class UnknownDeviceError(PollMasterError):
    """A read was requested for a device outside the configured set."""
