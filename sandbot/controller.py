"""High level orchestration for the sand table dashboard and API."""
from __future__ import annotations

import logging
import threading
from datetime import datetime
from typing import Any, Dict, Optional

from .commands import DIRECT_COMMANDS, DeviceCommand, PlayPauseAction, resolve_play_pause_action
from .config import SessionConfig
from .errors import PreconditionError
from .files import FileSystemListing, is_previewable
from .geometry import Pattern, estimate_draw_time, format_duration, format_geometry, parse_pattern
from .history import HistoryEntry, HistoryLedger, playlist_filename, playlist_text
from .network import NETWORK_FILE, NETWORK_FS, NetworkConfig, load_network_config
from .session import PollingSession, StatusCallback
from .status import ConnectionState, supports_network_config

logger = logging.getLogger(__name__)

DEFAULT_FS = "sd"


class SandBotController:
    """Coordinate the polling session, the loaded pattern and the gallery."""

    def __init__(
        self,
        session: Optional[PollingSession] = None,
        *,
        ledger: Optional[HistoryLedger] = None,
        status_cb: Optional[StatusCallback] = None,
    ) -> None:
        self.status_cb = status_cb or (lambda message: None)
        self.session = session or PollingSession(status_cb=self.status_cb)
        self.ledger = ledger or HistoryLedger()
        self._lock = threading.Lock()
        self._pattern = Pattern()
        self._loaded_name = ""
        self._progress = 100.0

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------
    @property
    def config(self) -> SessionConfig:
        return self.session.config

    def configure(self, config: SessionConfig) -> None:
        self.session.configure(config)

    def close(self) -> None:
        self.session.dispose()

    @property
    def connection_state(self) -> ConnectionState:
        return self.session.connection_state

    # ------------------------------------------------------------------
    # Preconditions
    # ------------------------------------------------------------------
    def _client_for(self, action: str, *, needs_pattern: bool = False):
        epoch, client = self.session.current_client()
        if client is None:
            raise PreconditionError(f"{action}: no robot address configured")
        if not self.connection_state.connected:
            raise PreconditionError(f"{action}: robot is offline")
        if needs_pattern and not self._loaded_name:
            raise PreconditionError(f"{action}: no pattern loaded")
        return epoch, client

    @property
    def can_command(self) -> bool:
        return self.config.has_target and self.connection_state.connected

    @property
    def can_play_pause(self) -> bool:
        return self.can_command and bool(self._loaded_name)

    @property
    def can_save_playlist(self) -> bool:
        return self.can_command and len(self.ledger) >= 2

    @property
    def can_edit_network(self) -> bool:
        return self.can_command and supports_network_config(self.session.status)

    # ------------------------------------------------------------------
    # Motion commands
    # ------------------------------------------------------------------
    def play_pause(self) -> PlayPauseAction:
        epoch, client = self._client_for("Play/pause", needs_pattern=True)
        action = resolve_play_pause_action(self.session.status)
        client.execute(action.command.value)
        if self.session.is_current(epoch):
            self.session.request_refresh()
        return action

    def command(self, command: DeviceCommand) -> None:
        if command not in DIRECT_COMMANDS:
            raise ValueError(f"{command.name} must go through play_pause()")
        epoch, client = self._client_for(command.name.replace("_", " ").title())
        client.execute(command.value)
        if self.session.is_current(epoch):
            self.session.request_refresh()

    def stop(self) -> None:
        self.command(DeviceCommand.STOP)

    def home(self) -> None:
        self.command(DeviceCommand.HOME)

    def set_home(self) -> None:
        self.command(DeviceCommand.SET_HOME)

    # ------------------------------------------------------------------
    # Pattern management
    # ------------------------------------------------------------------
    @property
    def pattern(self) -> Pattern:
        return self._pattern

    @property
    def loaded_name(self) -> str:
        return self._loaded_name

    @property
    def progress(self) -> float:
        return self._progress

    def set_progress(self, value: float) -> None:
        self._progress = max(0.0, min(100.0, float(value)))

    def set_pattern(self, pattern: Pattern, name: str = "") -> None:
        with self._lock:
            self._pattern = pattern
            self._loaded_name = name
            self._progress = 100.0

    def load_pattern_text(self, text: str, name: str) -> Pattern:
        pattern = parse_pattern(text)
        self.set_pattern(pattern, name)
        logger.info("loaded %s with %d points", name, len(pattern))
        return pattern

    def clear_pattern(self) -> None:
        self.set_pattern(Pattern(), "")

    def draw_time_estimate(self) -> Optional[float]:
        return estimate_draw_time(self._pattern, self.session.geometry)

    # ------------------------------------------------------------------
    # File management
    # ------------------------------------------------------------------
    @property
    def files(self) -> FileSystemListing:
        return self.session.files

    def _fs_name(self) -> str:
        return self.session.files.fs_name or DEFAULT_FS

    def refresh_files(self) -> Optional[FileSystemListing]:
        self._client_for("Refresh files")
        return self.session.refresh_files()

    def play_file(self, name: str, *, now: Optional[datetime] = None) -> Optional[HistoryEntry]:
        epoch, client = self._client_for(f"Play {name}")
        client.play_file(self._fs_name(), name)
        if not self.session.is_current(epoch):
            return None
        entry = self.ledger.record(name, now)
        with self._lock:
            self._loaded_name = name
        self.status_cb(f"Playing {name}")
        return entry

    def preview_file(self, name: str) -> Optional[Pattern]:
        if not is_previewable(name):
            raise ValueError(f"{name} is not a .thr pattern and cannot be previewed")
        epoch, client = self._client_for(f"Preview {name}")
        content = client.file_content(self._fs_name(), name)
        if not self.session.is_current(epoch):
            return None
        return self.load_pattern_text(content, name)

    def delete_file(self, name: str) -> None:
        epoch, client = self._client_for(f"Delete {name}")
        client.delete_file(self._fs_name(), name)
        self.status_cb(f"File {name} deleted successfully")
        if self.session.is_current(epoch):
            self.session.refresh_files(epoch)

    def upload_file(self, name: str, content: bytes | str) -> None:
        epoch, client = self._client_for(f"Upload {name}")
        client.upload(name, content)
        self.status_cb(f"File {name} uploaded successfully")
        if self.session.is_current(epoch):
            self.session.refresh_files(epoch)

    def upload_pattern(self) -> str:
        """Send the loaded pattern back to the robot under its loaded name."""
        if not self._loaded_name or not self._pattern:
            raise PreconditionError("Upload pattern: no pattern loaded")
        name = self._loaded_name
        self.upload_file(name, self._pattern.to_text())
        return name

    def save_playlist(self, name: str) -> str:
        if len(self.ledger) < 2:
            raise PreconditionError("Save playlist: gallery needs at least two entries")
        filename = playlist_filename(name)
        self.upload_file(filename, playlist_text(self.ledger.entries))
        return filename

    # ------------------------------------------------------------------
    # Network configuration
    # ------------------------------------------------------------------
    def _network_client(self, action: str):
        epoch, client = self._client_for(action)
        if not supports_network_config(self.session.status):
            raise PreconditionError(f"{action}: firmware does not support network configuration")
        return epoch, client

    def load_network_config(self) -> NetworkConfig:
        _, client = self._network_client("Load WiFi config")
        return load_network_config(client)

    def save_network_config(self, config: NetworkConfig) -> NetworkConfig:
        _, client = self._network_client("Save WiFi config")
        client.upload(NETWORK_FILE, config.to_text(), "application/json")
        self.status_cb("WiFi configuration saved successfully")
        config.exists = True
        return config

    def delete_network_config(self) -> None:
        _, client = self._network_client("Delete WiFi config")
        client.delete_file(NETWORK_FS, NETWORK_FILE)
        self.status_cb("WiFi configuration deleted successfully")

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------
    def snapshot(self) -> Dict[str, Any]:
        status = self.session.status
        estimate = self.draw_time_estimate()
        action = resolve_play_pause_action(status)
        return {
            "config": {
                "device_address": self.config.device_address,
                "poll_cycle": self.config.poll_cycle,
                "control_mode": self.config.control_mode.value,
                "secondary_address": self.config.secondary_address,
                "control_url": self.config.control_url(),
            },
            "connection": self.connection_state.value,
            "status": status.to_dict() if status is not None else None,
            "play_pause_action": action.value,
            "can_play_pause": self.can_play_pause,
            "can_command": self.can_command,
            "network_config_supported": supports_network_config(status),
            "pattern": {
                "name": self._loaded_name,
                "count": len(self._pattern),
                "progress": self._progress,
                "estimate_s": estimate,
                "estimate": format_duration(estimate),
                "geometry": format_geometry(self.session.geometry),
            },
            "history": [entry.to_dict() for entry in self.ledger.entries],
        }


__all__ = ["SandBotController", "DEFAULT_FS"]
