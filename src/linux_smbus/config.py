from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Union

import yaml

from .bus.smbus import SMBus, bus_path


def _flag(b: Dict[str, Any], key: str, name: str) -> bool:
    v = b.get(key, False)
    if not isinstance(v, bool):
        raise ValueError(f"config.yaml: bus {name!r}: {key} must be true/false, got {v!r}")
    return v


def _addr(x: Any) -> Optional[int]:
    if x is None:
        return None
    return int(x, 0) if isinstance(x, str) else int(x)


@dataclass
class BusConfig:
    name: str
    device: Union[int, str]  # bus number or /dev path
    address: Optional[int] = None
    force: bool = False
    ten_bit: bool = False
    pec: bool = False

    @property
    def path(self) -> str:
        return bus_path(self.device)

    def open(self) -> SMBus:
        """Open the bus and apply address/PEC settings; closes it again if a setting fails."""
        bus = SMBus(self.device, force=self.force)
        try:
            if self.address is not None:
                bus.set_address(self.address, ten_bit=self.ten_bit)
            if self.pec:
                bus.enable_pec(True)
        except BaseException:
            bus.close()
            raise
        return bus


@dataclass
class LoggingConfig:
    level: str = "WARNING"

    @property
    def level_no(self) -> int:
        lv = logging.getLevelName(self.level.upper())
        if not isinstance(lv, int):
            raise ValueError(f"config.yaml: unknown logging level {self.level!r}")
        return lv


@dataclass
class ProjectConfig:
    buses: Dict[str, BusConfig]
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def parse_config(raw: Any) -> ProjectConfig:
    if not isinstance(raw, dict):
        raise ValueError("config.yaml: top level must be a mapping")

    buses: Dict[str, BusConfig] = {}
    raw_buses = raw.get("buses", {})
    if not isinstance(raw_buses, dict) or len(raw_buses) == 0:
        raise ValueError("config.yaml: buses block is missing/empty")

    for name, b in raw_buses.items():
        b = b or {}
        if "path" in b:
            device: Union[int, str] = str(b["path"])
        elif "bus" in b:
            device = int(b["bus"])
            if device < 0:
                raise ValueError(f"config.yaml: bus {name!r}: bus number must be >= 0, got {device}")
        else:
            raise ValueError(f"config.yaml: bus {name!r} needs either 'bus' or 'path'")
        buses[str(name)] = BusConfig(
            name=str(name),
            device=device,
            address=_addr(b.get("address")),
            force=_flag(b, "force", name),
            ten_bit=_flag(b, "ten_bit", name),
            pec=_flag(b, "pec", name),
        )

    lg = raw.get("logging", {}) or {}
    logging_cfg = LoggingConfig(level=str(lg.get("level", "WARNING")))

    return ProjectConfig(buses=buses, logging=logging_cfg)


def load_config(path: str) -> ProjectConfig:
    with open(path, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f)
    return parse_config(raw)
