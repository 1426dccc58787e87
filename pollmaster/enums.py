from enum import Enum, IntEnum


class FunctionCode(IntEnum):
    READ_HOLDING_REGISTERS = 0x03
    READ_INPUT_REGISTERS   = 0x04


class Phase(str, Enum):
    CONNECTING  = "connecting"
    CALIBRATING = "calibrating"
    POLLING     = "polling"


class FailureCause(str, Enum):
    TIMEOUT      = "timeout"
    MALFORMED    = "malformed"
    DEVICE_ERROR = "device_error"
    BUS_ERROR    = "bus_error"
