"""In-memory mock sand table used for development and unit tests."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple

from ..errors import DeviceRejected, TransportError

XY = Tuple[float, float]


@dataclass
class MockSandTable:
    """Small simulation that mimics the :class:`DeviceClient` API."""

    host: str = "mock-sandtable"
    firmware_version: str = "2.030.001"
    robot_type: str = "SandTableScara"
    fs_name: str = "sd"

    def __post_init__(self) -> None:
        self.online = True
        self.position: XY = (0.0, 0.0)
        self.queue_depth = 0
        self.paused = False
        self.homed = False
        self.axes: Dict[str, Dict[str, float]] = {
            "axis0": {"maxSpeed": 10, "maxVal": 100},
            "axis1": {"maxSpeed": 10, "maxVal": 100},
        }
        self.files: Dict[str, bytes] = {}
        self.calls: List[Tuple[str, ...]] = []
        self.status_hook: Optional[Callable[[], None]] = None
        self.reject_deletes = False

    # Helpers -----------------------------------------------------------
    def add_file(self, name: str, content: str | bytes = b"") -> None:
        if isinstance(content, str):
            content = content.encode("utf-8")
        self.files[name] = content

    def calls_to(self, name: str) -> List[Tuple[str, ...]]:
        return [c for c in self.calls if c[0] == name]

    def _check_online(self, name: str) -> None:
        if not self.online:
            raise TransportError(f"{self.host} unreachable during {name}")

    def _check_fs(self, fs_name: str) -> None:
        if fs_name != self.fs_name:
            raise DeviceRejected(f"unknown file system {fs_name}", reason="fail")

    # Endpoints ---------------------------------------------------------
    def status(self) -> Dict[str, Any]:
        self.calls.append(("status",))
        if self.status_hook is not None:
            self.status_hook()
        self._check_online("status")
        return {
            "XYZ": [self.position[0], self.position[1], 0.0],
            "Qd": self.queue_depth,
            "pause": 1 if self.paused else 0,
            "Hmd": 1 if self.homed else 0,
            "espV": self.firmware_version,
            "wifiIP": "192.168.1.50",
            "ssid": "sandnet",
            "MAC": "aa:bb:cc:dd:ee:ff",
            "tod": "2026-10-18 09:00:00",
        }

    def settings(self) -> Dict[str, Any]:
        self.calls.append(("settings",))
        self._check_online("settings")
        return {"robotConfig": {"robotType": self.robot_type, "robotGeom": dict(self.axes)}}

    def file_list(self) -> Dict[str, Any]:
        self.calls.append(("file_list",))
        self._check_online("file_list")
        return {
            "rslt": "ok",
            "fsName": self.fs_name,
            "files": [{"name": n, "size": len(c)} for n, c in sorted(self.files.items())],
        }

    def delete_file(self, fs_name: str, name: str) -> Dict[str, Any]:
        self.calls.append(("delete_file", fs_name, name))
        self._check_online("delete_file")
        self._check_fs(fs_name)
        if self.reject_deletes or name not in self.files:
            raise DeviceRejected(f"Delete {name} failed: fail", reason="fail")
        del self.files[name]
        return {"rslt": "ok"}

    def play_file(self, fs_name: str, name: str) -> None:
        self.calls.append(("play_file", fs_name, name))
        self._check_online("play_file")
        self.queue_depth += 1
        self.paused = False

    def file_content(self, fs_name: str, name: str) -> str:
        self.calls.append(("file_content", fs_name, name))
        self._check_online("file_content")
        self._check_fs(fs_name)
        if name not in self.files:
            raise TransportError(f"GET /files/{fs_name}/{name} returned HTTP 404")
        return self.files[name].decode("utf-8")

    def upload(self, name: str, content: bytes | str, content_type: str = "text/plain") -> None:
        self.calls.append(("upload", name))
        self._check_online("upload")
        self.add_file(name, content)

    def execute(self, command: str) -> None:
        self.calls.append(("execute", command))
        self._check_online("execute")
        if command == "pause" and self.queue_depth:
            self.paused = True
        elif command in ("resume", "play"):
            self.paused = False
        elif command == "stop":
            self.queue_depth = 0
            self.paused = False
        elif command == "G28":
            self.homed = True
            self.position = (0.0, 0.0)
        elif command == "G92 X0 Y0":
            self.position = (0.0, 0.0)

