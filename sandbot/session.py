"""Connection session against a single sand table robot.

The session polls ``/status`` on a fixed cycle, keeps the latest snapshot and
fetches settings and the file list once per target.  Every asynchronous effect
is tagged with the epoch it was dispatched in; bumping the epoch (new target,
new cycle, disposal) makes late results fall on the floor.
"""
from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Dict, Optional, Tuple

from .config import RobotGeometryConfig, SessionConfig
from .device import DeviceClient
from .errors import ParseError, SandBotError
from .files import FileSystemListing
from .scheduler import Scheduler, ThreadScheduler, TimerHandle
from .status import ConnectionState, DeviceStatus, derive_connection_state

logger = logging.getLogger(__name__)

StatusCallback = Callable[[str], None]
ClientFactory = Callable[[str], Any]

REFRESH_DELAY_S = 0.5


class PollingSession:
    """Owns connectivity state for the configured robot."""

    def __init__(
        self,
        *,
        client_factory: ClientFactory = DeviceClient,
        scheduler: Optional[Scheduler] = None,
        status_cb: Optional[StatusCallback] = None,
    ) -> None:
        self.client_factory = client_factory
        self.scheduler: Scheduler = scheduler or ThreadScheduler()
        self.status_cb = status_cb or (lambda message: None)

        self._lock = threading.Lock()
        self._config = SessionConfig()
        self._epoch = 0
        self._disposed = False
        self._client: Any = None
        self._periodic: Optional[TimerHandle] = None
        self._in_flight = False
        self._bootstrap_done = False

        self._status: Optional[DeviceStatus] = None
        self._has_ever_connected = False
        self._last_poll_succeeded = False
        self._geometry = RobotGeometryConfig()
        self._settings: Optional[Dict[str, Any]] = None
        self._files = FileSystemListing()

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------
    @property
    def config(self) -> SessionConfig:
        return self._config

    @property
    def status(self) -> Optional[DeviceStatus]:
        return self._status

    @property
    def geometry(self) -> RobotGeometryConfig:
        return self._geometry

    @property
    def settings(self) -> Optional[Dict[str, Any]]:
        return self._settings

    @property
    def files(self) -> FileSystemListing:
        return self._files

    @property
    def epoch(self) -> int:
        return self._epoch

    @property
    def is_polling(self) -> bool:
        return self._in_flight

    @property
    def is_active(self) -> bool:
        return self._periodic is not None

    @property
    def connection_state(self) -> ConnectionState:
        with self._lock:
            return derive_connection_state(
                self._has_ever_connected, self._last_poll_succeeded, self._status
            )

    def current_client(self) -> Tuple[int, Any]:
        """The client for the current target together with its epoch."""
        with self._lock:
            return self._epoch, self._client

    def is_current(self, epoch: int) -> bool:
        return not self._disposed and epoch == self._epoch

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def configure(self, config: SessionConfig) -> bool:
        """Apply new settings; restart polling when they affect the timer.

        Returns ``True`` if the timer was restarted (or stopped).
        """
        with self._lock:
            if self._disposed:
                raise RuntimeError("session has been disposed")
            old = self._config
            self._config = config
            target_changed = config.device_address != old.device_address
            if not (
                target_changed
                or config.poll_cycle != old.poll_cycle
                or config.control_mode != old.control_mode
            ):
                return False

            self._cancel_periodic()
            self._epoch += 1
            self._in_flight = False
            if target_changed:
                self._bootstrap_done = False
                self._status = None
                self._has_ever_connected = False
                self._last_poll_succeeded = False
                self._settings = None
                self._geometry = RobotGeometryConfig()
                self._files = FileSystemListing()
                self._client = self.client_factory(config.device_address) if config.has_target else None

            if self._client is None:
                logger.info("no target configured, polling stopped")
                return True

            epoch = self._epoch
            self.scheduler.call_later(0.0, lambda: self._poll(epoch))
            self._periodic = self.scheduler.call_later(config.poll_cycle, lambda: self._tick(epoch))
            logger.info(
                "polling %s every %ss (epoch %d)", config.device_address, config.poll_cycle, epoch
            )
        return True

    def dispose(self) -> None:
        with self._lock:
            self._disposed = True
            self._cancel_periodic()
            self._epoch += 1
            self._client = None
            self._in_flight = False
        logger.info("session disposed")

    def _cancel_periodic(self) -> None:
        if self._periodic is not None:
            self._periodic.cancel()
            self._periodic = None

    # ------------------------------------------------------------------
    # Polling
    # ------------------------------------------------------------------
    def _tick(self, epoch: int) -> None:
        with self._lock:
            if not self.is_current(epoch):
                return
            self._periodic = self.scheduler.call_later(
                self._config.poll_cycle, lambda: self._tick(epoch)
            )
        self._poll(epoch)

    def request_refresh(self, delay: float = REFRESH_DELAY_S) -> None:
        """Schedule one extra poll without touching the periodic timer."""
        epoch = self._epoch
        self.scheduler.call_later(delay, lambda: self._poll(epoch))

    def poll_now(self) -> None:
        self._poll(self._epoch)

    def _poll(self, epoch: int) -> None:
        with self._lock:
            if not self.is_current(epoch) or self._client is None:
                return
            if self._in_flight:
                logger.debug("poll skipped, previous request still in flight")
                return
            self._in_flight = True
            client = self._client
            host = self._config.device_address

        status: Optional[DeviceStatus] = None
        error: Optional[Exception] = None
        try:
            data = client.status()
            try:
                status = DeviceStatus.from_json(data)
            except Exception as exc:
                raise ParseError(f"unexpected status payload: {exc}") from exc
        except SandBotError as exc:
            error = exc
        except Exception as exc:
            logger.exception("status poll of %s raised unexpectedly", host)
            error = exc
        finally:
            with self._lock:
                if self.is_current(epoch):
                    self._in_flight = False

        with self._lock:
            if not self.is_current(epoch):
                logger.debug("discarding status from stale epoch %d", epoch)
                return
            was_connected = derive_connection_state(
                self._has_ever_connected, self._last_poll_succeeded, self._status
            ).connected
            if error is not None or status is None:
                self._last_poll_succeeded = False
                bootstrap = False
            else:
                self._status = status
                self._has_ever_connected = True
                self._last_poll_succeeded = True
                bootstrap = not self._bootstrap_done
                self._bootstrap_done = True

        if error is not None:
            logger.debug("status poll of %s failed: %s", host, error)
            if was_connected:
                logger.warning("lost connection to %s: %s", host, error)
                self.status_cb(f"Lost connection to {host}")
        elif not was_connected:
            logger.info("connected to %s", host)
            self.status_cb(f"Connected to {host}")

        if bootstrap:
            self.fetch_settings(epoch)
            self.refresh_files(epoch)

    # ------------------------------------------------------------------
    # Bootstrap reads
    # ------------------------------------------------------------------
    def fetch_settings(self, epoch: Optional[int] = None) -> Optional[Dict[str, Any]]:
        epoch = self._epoch if epoch is None else epoch
        with self._lock:
            if not self.is_current(epoch) or self._client is None:
                return None
            client = self._client
        try:
            data = client.settings()
        except SandBotError as exc:
            logger.warning("fetching settings failed: %s", exc)
            return None
        with self._lock:
            if not self.is_current(epoch):
                return None
            self._settings = data
            geometry = RobotGeometryConfig.from_settings(data)
            if geometry is not None:
                self._geometry = geometry
                logger.info("robot geometry updated: %s", geometry)
        return data

    def refresh_files(self, epoch: Optional[int] = None) -> Optional[FileSystemListing]:
        epoch = self._epoch if epoch is None else epoch
        with self._lock:
            if not self.is_current(epoch) or self._client is None:
                return None
            client = self._client
        try:
            listing = FileSystemListing.from_json(client.file_list())
        except SandBotError as exc:
            logger.warning("fetching file list failed: %s", exc)
            return None
        with self._lock:
            if not self.is_current(epoch):
                return None
            self._files = listing
        logger.info("file list refreshed: %d files on %s", len(listing.files), listing.fs_name)
        return listing


__all__ = ["PollingSession", "REFRESH_DELAY_S", "StatusCallback"]
