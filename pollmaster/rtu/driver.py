"""
driver.py – Modbus RTU master over a half-duplex RS485 line.
* one minimalmodbus Instrument shared by all units, readdressed per call
* one request/response exchange at a time, guarded by a lock
"""

from __future__ import annotations
import sys
import threading
from typing import Optional

import minimalmodbus
import serial

from ..enums import FunctionCode
from ..exceptions import (
    BusError,
    ConnectError,
    DeviceException,
    MalformedResponse,
    ReadTimeout,
)
from ..logging_config import get_logger, log_transaction_summary
from .config_ext import DriverCfg

_log = get_logger("rtu.driver")

PARITY = {
    "O": serial.PARITY_ODD,
    "E": serial.PARITY_EVEN,
    "N": serial.PARITY_NONE,
}

# an unplugged adapter surfaces from tcflush/tcdrain/ioctl, not as SerialException
if sys.platform == "win32":
    PORT_ERRORS = (serial.SerialException, OSError)
else:
    import termios
    PORT_ERRORS = (serial.SerialException, OSError, termios.error)


class RtuDriver:
    """
    Transport for the polling core.

    ``connect`` opens the port, ``read_data_point`` performs exactly one
    exchange and either returns the register value or raises a
    ``ReadError`` subclass.
    """

    def __init__(self, cfg: DriverCfg):
        self.cfg = cfg
        self._instrument: Optional[minimalmodbus.Instrument] = None
        self._lock = threading.Lock()

    @property
    def connected(self) -> bool:
        return self._instrument is not None and self._instrument.serial.is_open

    def connect(self) -> None:
        try:
            instrument = minimalmodbus.Instrument(
                self.cfg.serial_port, 1, mode=minimalmodbus.MODE_RTU
            )
            instrument.serial.baudrate = self.cfg.baud_rate
            instrument.serial.bytesize = self.cfg.bytesize
            instrument.serial.parity = PARITY[self.cfg.parity]
            instrument.serial.stopbits = self.cfg.stopbits
            instrument.serial.timeout = self.cfg.response_timeout_ms / 1000
        except (*PORT_ERRORS, ValueError) as e:
            _log.error("Cannot open %s: %s", self.cfg.serial_port, e)
            raise ConnectError(self.cfg.serial_port, str(e)) from e

        instrument.clear_buffers_before_each_transaction = True
        instrument.close_port_after_each_call = False
        instrument.handle_local_echo = self.cfg.local_echo
        self._instrument = instrument
        _log.info("Serial open %s @ %d bps (%s%d%d)",
                  self.cfg.serial_port, self.cfg.baud_rate,
                  self.cfg.parity, self.cfg.bytesize, self.cfg.stopbits)

    def set_timeout(self, ms: int) -> None:
        if self._instrument is not None:
            self._instrument.serial.timeout = ms / 1000
        _log.info("Response timeout set to %d ms", ms)

    def close(self) -> None:
        if self._instrument is not None:
            self._instrument.serial.close()
            _log.info("Serial closed %s", self.cfg.serial_port)
        self._instrument = None

    def read_data_point(self, unit: int, address: int,
                        function: FunctionCode = FunctionCode.READ_HOLDING_REGISTERS) -> int:
        """
        Read one register from ``unit``. Every failure leaves as a
        ``ReadError`` subclass.
        """
        if not self.connected:
            raise BusError(unit, "transport is not connected")

        log_transaction_summary(_log, "TX", unit, FunctionCode(function).name,
                                f"addr=0x{address:04X}")
        with self._lock:
            self._instrument.address = unit
            try:
                value = self._instrument.read_register(
                    address, 0, functioncode=int(function)
                )
            except minimalmodbus.NoResponseError as e:
                _log.warning("No response received from unit %d", unit)
                raise ReadTimeout(unit, f"no response: {e}") from e
            except (minimalmodbus.InvalidResponseError, minimalmodbus.LocalEchoError) as e:
                raise MalformedResponse(unit, f"invalid response: {e}") from e
            except minimalmodbus.SlaveReportedException as e:
                raise DeviceException(unit, f"{type(e).__name__}: {e}") from e
            except PORT_ERRORS as e:
                raise BusError(unit, f"serial failure: {e}") from e

        log_transaction_summary(_log, "RX", unit, "REGISTER", str(value))
        return int(value)
