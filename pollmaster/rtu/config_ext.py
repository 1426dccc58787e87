from typing import Literal

from pydantic import BaseModel, Field


class DriverCfg(BaseModel):
    serial_port: str = Field("/dev/ttyUSB0")   # RS485 adapter
    baud_rate:   int = Field(9600, gt=0)
    parity:      Literal["N", "E", "O"] = "N"
    bytesize:    int = 8
    stopbits:    int = 1
    response_timeout_ms: int = Field(200, gt=0)
    local_echo:  bool = False    # adapter echoes our own frames back
