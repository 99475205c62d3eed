import json

import pytest

from sandbot.config import ControlMode, SessionConfig
from sandbot.device import MockSandTable
from sandbot.session import PollingSession
from sandbot.status import ConnectionState


def start(session, scheduler, host="table.local", **kwargs):
    session.configure(SessionConfig(device_address=host, **kwargs))
    scheduler.advance(0)


def test_no_target_keeps_session_inert(session, scheduler):
    assert session.configure(SessionConfig()) is False
    scheduler.advance(100)
    assert scheduler.armed_count == 0
    assert session.connection_state is ConnectionState.OFFLINE
    assert not session.is_active


def test_first_poll_is_immediate_and_bootstraps_once(session, scheduler, table, messages):
    start(session, scheduler)
    assert len(table.calls_to("status")) == 1
    assert session.connection_state is ConnectionState.IDLE
    assert len(table.calls_to("settings")) == 1
    assert len(table.calls_to("file_list")) == 1
    assert "Connected to table.local" in messages

    for _ in range(5):
        scheduler.advance(10)
    assert len(table.calls_to("status")) == 6
    assert len(table.calls_to("settings")) == 1
    assert len(table.calls_to("file_list")) == 1


def test_bootstrap_applies_geometry_and_files(session, scheduler, table):
    table.axes["axis0"] = {"maxSpeed": 25, "maxVal": 140}
    table.add_file("spiral.thr", "0 0\n1 1")
    table.add_file(".hidden", "x")
    start(session, scheduler)
    assert session.geometry.axis0.max_speed == 25
    assert session.geometry.max_radius == 140
    assert [f.name for f in session.files.files] == ["spiral.thr"]
    assert session.files.fs_name == "sd"


def test_settings_for_other_robot_type_keep_geometry(session, scheduler, table):
    table.robot_type = "XYBot"
    table.axes["axis0"] = {"maxSpeed": 99, "maxVal": 99}
    start(session, scheduler)
    assert session.settings is not None
    assert session.geometry.axis0.max_speed == 10
    assert session.geometry.max_radius == 100


def test_state_follows_latest_status(session, scheduler, table):
    start(session, scheduler)
    table.queue_depth = 2
    scheduler.advance(10)
    assert session.connection_state is ConnectionState.DOODLING
    table.paused = True
    scheduler.advance(10)
    assert session.connection_state is ConnectionState.PAUSED
    table.queue_depth = 0
    table.paused = False
    scheduler.advance(10)
    assert session.connection_state is ConnectionState.IDLE


def test_failure_goes_offline_but_keeps_stale_status(session, scheduler, table, messages):
    start(session, scheduler)
    last = session.status
    table.online = False
    scheduler.advance(10)
    assert session.connection_state is ConnectionState.OFFLINE
    assert session.status is last
    assert "Lost connection to table.local" in messages

    # polling carries on without backoff
    scheduler.advance(10)
    scheduler.advance(10)
    assert len(table.calls_to("status")) == 4

    table.online = True
    scheduler.advance(10)
    assert session.connection_state is ConnectionState.IDLE
    assert len(table.calls_to("settings")) == 1


def test_unreachable_first_poll_defers_bootstrap(session, scheduler, table):
    table.online = False
    start(session, scheduler)
    assert session.status is None
    assert table.calls_to("settings") == []
    table.online = True
    scheduler.advance(10)
    assert len(table.calls_to("settings")) == 1


def test_malformed_status_counts_as_failure(session, scheduler, table):
    class Garbled(MockSandTable):
        def status(self):
            return {"XYZ": 5}

    start(session, scheduler)
    session.client_factory = lambda host: Garbled(host=host)
    session.configure(SessionConfig(device_address="garbled.local"))
    scheduler.advance(0)
    assert session.connection_state is ConnectionState.OFFLINE


def test_changing_poll_cycle_replaces_exactly_one_timer(session, scheduler, table):
    start(session, scheduler)
    armed, cancelled = scheduler.armed_count, scheduler.cancel_count

    assert session.configure(SessionConfig(device_address="table.local", poll_cycle=5)) is True
    assert scheduler.cancel_count == cancelled + 1
    # one immediate poll plus one periodic timer
    assert scheduler.armed_count == armed + 2
    assert scheduler.pending == 2

    scheduler.advance(0)
    before = len(table.calls_to("status"))
    scheduler.advance(20)
    assert len(table.calls_to("status")) == before + 4


@pytest.mark.parametrize("cycle", [1, 7, 60])
def test_no_duplicate_ticks_after_repeated_reconfiguration(session, scheduler, table, cycle):
    for poll in (3, 4, cycle):
        session.configure(SessionConfig(device_address="table.local", poll_cycle=poll))
    scheduler.advance(0)
    before = len(table.calls_to("status"))
    scheduler.advance(cycle * 5)
    assert len(table.calls_to("status")) == before + 5


def test_unchanged_config_does_not_restart(session, scheduler, table):
    start(session, scheduler)
    armed = scheduler.armed_count
    assert session.configure(SessionConfig(device_address="table.local")) is False
    assert scheduler.armed_count == armed


def test_mode_change_restarts_timer_without_rebootstrap(session, scheduler, table):
    start(session, scheduler)
    session.configure(SessionConfig(device_address="table.local", control_mode=ControlMode.CNC))
    scheduler.advance(0)
    assert len(table.calls_to("status")) == 2
    assert len(table.calls_to("settings")) == 1


def test_new_target_bootstraps_again(session, scheduler, registry, table):
    start(session, scheduler)
    other = registry.add(MockSandTable(host="other.local"))
    session.configure(SessionConfig(device_address="other.local"))
    assert session.status is None
    scheduler.advance(0)
    assert len(other.calls_to("settings")) == 1
    assert len(table.calls_to("settings")) == 1

    scheduler.advance(30)
    assert len(table.calls_to("status")) == 1


def test_clearing_target_stops_polling(session, scheduler, table):
    start(session, scheduler)
    session.configure(SessionConfig())
    scheduler.advance(100)
    assert len(table.calls_to("status")) == 1
    assert scheduler.pending == 0
    assert session.connection_state is ConnectionState.OFFLINE


def test_overlapping_tick_is_skipped(session, scheduler, table):
    start(session, scheduler)

    def reentrant_poll():
        table.status_hook = None
        session.poll_now()

    table.status_hook = reentrant_poll
    scheduler.advance(10)
    assert len(table.calls_to("status")) == 2
    assert not session.is_polling


def test_result_for_previous_target_is_discarded(session, scheduler, registry, table):
    other = registry.add(MockSandTable(host="other.local"))
    table.queue_depth = 7

    def switch_target():
        table.status_hook = None
        session.configure(SessionConfig(device_address="other.local"))

    table.status_hook = switch_target
    session.configure(SessionConfig(device_address="table.local"))
    scheduler.advance(0)
    # only the new target's answer is applied
    assert len(other.calls_to("status")) == 1
    assert session.status.queue_depth == 0
    assert table.calls_to("settings") == []
    assert len(other.calls_to("settings")) == 1


def test_result_after_dispose_is_discarded(registry, scheduler, table):
    session = PollingSession(client_factory=registry, scheduler=scheduler)

    def dispose():
        table.status_hook = None
        session.dispose()

    table.status_hook = dispose
    session.configure(SessionConfig(device_address="table.local"))
    scheduler.advance(0)
    assert session.status is None
    scheduler.advance(60)
    assert len(table.calls_to("status")) == 1
    with pytest.raises(RuntimeError):
        session.configure(SessionConfig(device_address="table.local"))


def test_out_of_band_refresh_keeps_periodic_schedule(session, scheduler, table):
    start(session, scheduler)
    scheduler.advance(3)
    session.request_refresh()
    scheduler.advance(0.5)
    assert len(table.calls_to("status")) == 2
    # periodic tick still lands at t=10
    scheduler.advance(6)
    assert len(table.calls_to("status")) == 2
    scheduler.advance(0.5)
    assert len(table.calls_to("status")) == 3


def test_refresh_for_old_target_is_dropped(session, scheduler, registry, table):
    start(session, scheduler)
    session.request_refresh()
    session.configure(SessionConfig())
    scheduler.advance(1)
    assert len(table.calls_to("status")) == 1


class OverflowingTable(MockSandTable):
    """Reports an infinite queue depth on its first status call."""

    def status(self):
        data = super().status()
        if len(self.calls_to("status")) == 1:
            data["Qd"] = json.loads("1e999")
        return data


def test_overflowing_queue_depth_does_not_stall_polling(session, scheduler, registry):
    table = registry.add(OverflowingTable(host="table.local"))
    start(session, scheduler)
    assert not session.is_polling
    assert session.status.queue_depth == 0
    scheduler.advance(10)
    assert len(table.calls_to("status")) == 2
    assert session.connection_state is ConnectionState.IDLE


def test_unexpected_client_error_counts_as_failed_poll(session, scheduler, table, messages):
    start(session, scheduler)

    def explode():
        table.status_hook = None
        raise KeyError("boom")

    table.status_hook = explode
    scheduler.advance(10)
    assert not session.is_polling
    assert session.connection_state is ConnectionState.OFFLINE
    assert "Lost connection to table.local" in messages

    scheduler.advance(10)
    assert len(table.calls_to("status")) == 3
    assert session.connection_state is ConnectionState.IDLE
