import json
import os
from functools import lru_cache
from pathlib import Path
from typing import List

from pydantic import BaseModel, Field, field_validator, model_validator

from .models import Device
from .rtu.config_ext import DriverCfg


def _default_devices() -> List[Device]:
    return [Device(id=1, data_point=0x0001), Device(id=2, data_point=0x0001)]


class Settings(BaseModel):
    line: DriverCfg = Field(default_factory=DriverCfg)
    devices: List[Device] = Field(default_factory=_default_devices, min_length=1)

    initial_interval_ms: int = Field(500, gt=0)   # known-safe starting cadence
    decrease_step_ms:    int = Field(50, gt=0)
    min_interval_ms:     int = Field(50, gt=0)    # floor, never returned below
    trial_batch_count:   int = Field(5, ge=1)
    stats_every_cycles:  int = Field(100, ge=0)   # 0 = never

    @field_validator("devices")
    @classmethod
    def _unique_ids(cls, devices: List[Device]) -> List[Device]:
        ids = [d.id for d in devices]
        dupes = sorted({i for i in ids if ids.count(i) > 1})
        if dupes:
            raise ValueError(f"duplicate device ids: {dupes}")
        return devices

    @model_validator(mode="after")
    def _floor_below_start(self) -> "Settings":
        if self.min_interval_ms > self.initial_interval_ms:
            raise ValueError(
                f"min_interval_ms ({self.min_interval_ms}) exceeds "
                f"initial_interval_ms ({self.initial_interval_ms})"
            )
        return self

    @property
    def response_timeout_ms(self) -> int:
        return self.line.response_timeout_ms


def load_settings(path: Path | None = None) -> Settings:
    """
    Build settings from an optional JSON file, then apply the
    POLLMASTER_PORT / POLLMASTER_BAUD overrides.
    """
    data = json.loads(Path(path).read_text(encoding="utf-8")) if path else {}
    line = dict(data.get("line", {}))
    if os.getenv("POLLMASTER_PORT"):
        line["serial_port"] = os.environ["POLLMASTER_PORT"]
    if os.getenv("POLLMASTER_BAUD"):
        line["baud_rate"] = int(os.environ["POLLMASTER_BAUD"])
    if line:
        data["line"] = line
    return Settings.model_validate(data)


@lru_cache
def get_settings() -> Settings:
    path = os.getenv("POLLMASTER_CONFIG")
    return load_settings(Path(path) if path else None)
