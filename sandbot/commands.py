"""Mapping of user gestures onto robot motion commands."""
from __future__ import annotations

from enum import Enum
from typing import Optional

from .status import DeviceStatus


class DeviceCommand(str, Enum):
    """Commands sent through ``/exec/<command>``."""

    PLAY = "play"
    PAUSE = "pause"
    RESUME = "resume"
    STOP = "stop"
    HOME = "G28"
    SET_HOME = "G92 X0 Y0"


class PlayPauseAction(str, Enum):
    RESUME = "resume"
    PAUSE = "pause"
    PLAY = "play"

    @property
    def command(self) -> DeviceCommand:
        return DeviceCommand(self.value)


def resolve_play_pause_action(status: Optional[DeviceStatus]) -> PlayPauseAction:
    """Choose what the play/pause button does for the current status.

    The pause flag wins over the queue depth: a paused robot still has a
    queue and must be resumed, not paused again.
    """
    if status is not None and status.paused:
        return PlayPauseAction.RESUME
    if status is not None and status.queue_depth >= 1:
        return PlayPauseAction.PAUSE
    return PlayPauseAction.PLAY


DIRECT_COMMANDS = (DeviceCommand.STOP, DeviceCommand.HOME, DeviceCommand.SET_HOME)

__all__ = ["DeviceCommand", "PlayPauseAction", "resolve_play_pause_action", "DIRECT_COMMANDS"]
