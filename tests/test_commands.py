import pytest

from sandbot.commands import DeviceCommand, PlayPauseAction, resolve_play_pause_action
from sandbot.status import DeviceStatus


def status(paused, queue):
    return DeviceStatus(paused=paused, queue_depth=queue)


def test_pause_flag_means_resume_even_with_queue():
    assert resolve_play_pause_action(status(True, 5)) is PlayPauseAction.RESUME


def test_queued_work_means_pause():
    assert resolve_play_pause_action(status(False, 3)) is PlayPauseAction.PAUSE
    assert resolve_play_pause_action(status(False, 1)) is PlayPauseAction.PAUSE


def test_idle_means_play():
    assert resolve_play_pause_action(status(False, 0)) is PlayPauseAction.PLAY


def test_paused_with_empty_queue_still_resumes():
    assert resolve_play_pause_action(status(True, 0)) is PlayPauseAction.RESUME


def test_no_status_means_play():
    assert resolve_play_pause_action(None) is PlayPauseAction.PLAY


@pytest.mark.parametrize(
    "action, path",
    [
        (PlayPauseAction.RESUME, "resume"),
        (PlayPauseAction.PAUSE, "pause"),
        (PlayPauseAction.PLAY, "play"),
    ],
)
def test_actions_map_to_exec_commands(action, path):
    assert action.command.value == path


def test_homing_commands():
    assert DeviceCommand.HOME.value == "G28"
    assert DeviceCommand.SET_HOME.value == "G92 X0 Y0"
