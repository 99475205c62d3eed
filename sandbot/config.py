"""Configuration models for the sand table dashboard."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Optional

DEFAULT_POLL_CYCLE = 10
POLL_CYCLE_MIN = 1
POLL_CYCLE_MAX = 60

EXPECTED_ROBOT_TYPE = "SandTableScara"


@dataclass
class AxisGeometry:
    """Speed and reach of a single robot axis."""

    max_speed: float = 10.0
    max_val: float = 100.0


@dataclass
class RobotGeometryConfig:
    """Per-axis geometry used for draw time estimates."""

    axis0: AxisGeometry = field(default_factory=AxisGeometry)
    axis1: AxisGeometry = field(default_factory=AxisGeometry)

    @property
    def max_radius(self) -> float:
        return max(self.axis0.max_val, self.axis1.max_val)

    @property
    def avg_speed(self) -> float:
        return (self.axis0.max_speed + self.axis1.max_speed) / 2.0

    @staticmethod
    def from_settings(data: Any) -> Optional["RobotGeometryConfig"]:
        """Build a config from ``/getsettings`` JSON.

        Returns ``None`` unless the robot reports the expected polar table
        type, so the caller keeps its current config instead of merging.
        """
        if not isinstance(data, Mapping):
            return None
        robot = data.get("robotConfig")
        if not isinstance(robot, Mapping) or robot.get("robotType") != EXPECTED_ROBOT_TYPE:
            return None
        geom = robot.get("robotGeom") or {}
        return RobotGeometryConfig(
            axis0=_axis_from_json(geom.get("axis0")),
            axis1=_axis_from_json(geom.get("axis1")),
        )


def _axis_from_json(data: Any) -> AxisGeometry:
    defaults = AxisGeometry()
    if not isinstance(data, Mapping):
        return defaults
    return AxisGeometry(
        max_speed=_positive_or(data.get("maxSpeed"), defaults.max_speed),
        max_val=_positive_or(data.get("maxVal"), defaults.max_val),
    )


def _positive_or(value: Any, fallback: float) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return fallback
    return number if number else fallback


class ControlMode(str, Enum):
    DISABLED = "disabled"
    WLED = "wled"
    LEGACY = "legacy"
    CNC = "cnc"

    @property
    def label(self) -> str:
        return {
            ControlMode.DISABLED: "Disabled",
            ControlMode.WLED: "wLED Control",
            ControlMode.LEGACY: "Sand UI",
            ControlMode.CNC: "CNC Control",
        }[self]


@dataclass
class SessionConfig:
    """User supplied connection settings.

    The URL query string is the only place these survive a page reload, so
    every field has a default and is omitted from the query when unchanged.
    """

    device_address: str = ""
    poll_cycle: int = DEFAULT_POLL_CYCLE
    control_mode: ControlMode = ControlMode.DISABLED
    secondary_address: str = ""

    def __post_init__(self) -> None:
        self.device_address = (self.device_address or "").strip()
        self.secondary_address = (self.secondary_address or "").strip()
        self.control_mode = ControlMode(self.control_mode)
        if int(self.poll_cycle) <= 0:
            raise ValueError(f"poll_cycle must be positive, got {self.poll_cycle!r}")
        self.poll_cycle = int(self.poll_cycle)
        if self.control_mode is ControlMode.WLED and not self.secondary_address:
            self.secondary_address = self.device_address

    @property
    def has_target(self) -> bool:
        return bool(self.device_address)

    def control_url(self) -> Optional[str]:
        """URL of the embedded control interface for the selected mode."""
        if self.control_mode is ControlMode.DISABLED:
            return None
        if self.control_mode is ControlMode.WLED:
            host = self.secondary_address or self.device_address
            return f"http://{host}" if host else None
        if not self.device_address:
            return None
        page = "sand.html" if self.control_mode is ControlMode.LEGACY else "cnc.html"
        return f"http://{self.device_address}/{page}"

    # ------------------------------------------------------------------
    # URL query round trip
    # ------------------------------------------------------------------
    @staticmethod
    def from_query(params: Mapping[str, Any]) -> "SessionConfig":
        kwargs: Dict[str, Any] = {}
        if params.get("hostIP"):
            kwargs["device_address"] = str(params["hostIP"])
        if "pollCycle" in params:
            try:
                poll = int(str(params["pollCycle"]))
            except ValueError:
                poll = 0
            if poll > 0:
                kwargs["poll_cycle"] = poll
        if "wledEnabled" in params:
            enabled = str(params["wledEnabled"]).lower() == "true"
            kwargs["control_mode"] = ControlMode.WLED if enabled else ControlMode.DISABLED
        if params.get("wledAddress"):
            kwargs["secondary_address"] = str(params["wledAddress"])
        return SessionConfig(**kwargs)

    def to_query(self) -> Dict[str, str]:
        query: Dict[str, str] = {}
        if self.device_address:
            query["hostIP"] = self.device_address
        if self.poll_cycle != DEFAULT_POLL_CYCLE:
            query["pollCycle"] = str(self.poll_cycle)
        if self.control_mode is not ControlMode.DISABLED:
            query["wledEnabled"] = "true"
        if self.secondary_address and self.secondary_address != self.device_address:
            query["wledAddress"] = self.secondary_address
        return query
