"""Device status snapshots and the connection state derived from them."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple

XY = Tuple[float, float]

NETWORK_CONFIG_MIN_VERSION = (2, 30, 0)


class ConnectionState(str, Enum):
    OFFLINE = "offline"
    IDLE = "idle"
    DOODLING = "doodling"
    PAUSED = "paused"

    @property
    def connected(self) -> bool:
        return self is not ConnectionState.OFFLINE


@dataclass(frozen=True)
class DeviceStatus:
    """Snapshot of a single ``/status`` response."""

    position: XY = (0.0, 0.0)
    queue_depth: int = 0
    paused: bool = False
    homed: bool = False
    firmware_version: str = ""
    wifi_ip: str = ""
    ssid: str = ""
    mac: str = ""
    device_time: str = ""
    fetched_at: float = field(default_factory=time.time)

    @staticmethod
    def from_json(data: Mapping[str, Any], *, fetched_at: Optional[float] = None) -> "DeviceStatus":
        xyz = data.get("XYZ") or []
        x = _float(xyz[0]) if len(xyz) > 0 else 0.0
        y = _float(xyz[1]) if len(xyz) > 1 else 0.0
        return DeviceStatus(
            position=(x, y),
            queue_depth=_int(data.get("Qd")),
            paused=_flag(data.get("pause")),
            homed=_flag(data.get("Hmd")),
            firmware_version=str(data.get("espV") or ""),
            wifi_ip=str(data.get("wifiIP") or ""),
            ssid=str(data.get("ssid") or ""),
            mac=str(data.get("MAC") or ""),
            device_time=str(data.get("tod") or ""),
            fetched_at=time.time() if fetched_at is None else fetched_at,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "position": list(self.position),
            "queue_depth": self.queue_depth,
            "paused": self.paused,
            "homed": self.homed,
            "firmware_version": self.firmware_version,
            "wifi_ip": self.wifi_ip,
            "ssid": self.ssid,
            "mac": self.mac,
            "device_time": self.device_time,
            "fetched_at": self.fetched_at,
        }


def _float(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def _int(value: Any) -> int:
    # inf and nan are valid JSON numbers for some firmware builds
    try:
        return int(_float(value))
    except (OverflowError, ValueError):
        return 0


def _flag(value: Any) -> bool:
    return _float(value) == 1


def derive_connection_state(
    has_ever_connected: bool,
    last_poll_succeeded: bool,
    status: Optional[DeviceStatus],
) -> ConnectionState:
    """Classify the robot from the latest poll outcome.

    A failed last poll always reads as offline, even though the stale status
    is kept around for display.
    """
    if not has_ever_connected or not last_poll_succeeded or status is None:
        return ConnectionState.OFFLINE
    if status.queue_depth > 0:
        return ConnectionState.PAUSED if status.paused else ConnectionState.DOODLING
    return ConnectionState.IDLE


def parse_firmware_version(version: Any) -> Optional[Tuple[int, int, int]]:
    """Parse a dotted ``major.minor.patch`` string such as ``2.030.001``.

    Short strings return ``None``. Components that are not numbers count as
    zero.
    """
    if not version:
        return None
    parts = str(version).split(".")
    if len(parts) < 3:
        return None
    return _leading_int(parts[0]), _leading_int(parts[1]), _leading_int(parts[2])


def _leading_int(text: str) -> int:
    digits = ""
    for ch in text.strip():
        if not ch.isdigit():
            break
        digits += ch
    return int(digits) if digits else 0


def supports_network_config(status: Optional[DeviceStatus]) -> bool:
    if status is None:
        return False
    parsed = parse_firmware_version(status.firmware_version)
    return parsed is not None and parsed >= NETWORK_CONFIG_MIN_VERSION
