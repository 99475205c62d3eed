"""Top-level package for the SandBot dashboard.

This package polls a sand table robot over HTTP, sequences its motion
commands, and previews polar drawing patterns. It also serves the browser
control interface.
"""

from .commands import DeviceCommand, PlayPauseAction, resolve_play_pause_action
from .config import RobotGeometryConfig, SessionConfig
from .controller import SandBotController
from .geometry import Pattern, PatternPoint, estimate_draw_time, format_duration, parse_pattern
from .history import HistoryLedger
from .session import PollingSession
from .status import ConnectionState, DeviceStatus

__all__ = [
    "DeviceCommand",
    "PlayPauseAction",
    "resolve_play_pause_action",
    "RobotGeometryConfig",
    "SessionConfig",
    "SandBotController",
    "Pattern",
    "PatternPoint",
    "estimate_draw_time",
    "format_duration",
    "parse_pattern",
    "HistoryLedger",
    "PollingSession",
    "ConnectionState",
    "DeviceStatus",
]
