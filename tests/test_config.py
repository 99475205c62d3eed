import pytest

from sandbot.config import ControlMode, RobotGeometryConfig, SessionConfig


def test_defaults_produce_empty_query():
    config = SessionConfig()
    assert config.to_query() == {}
    assert not config.has_target


def test_query_round_trip():
    config = SessionConfig(
        device_address="table.local",
        poll_cycle=5,
        control_mode=ControlMode.WLED,
        secondary_address="leds.local",
    )
    query = config.to_query()
    assert query == {
        "hostIP": "table.local",
        "pollCycle": "5",
        "wledEnabled": "true",
        "wledAddress": "leds.local",
    }
    assert SessionConfig.from_query(query) == config


def test_default_fields_are_omitted():
    query = SessionConfig(device_address="table.local", poll_cycle=10).to_query()
    assert query == {"hostIP": "table.local"}


def test_wled_defaults_secondary_address_to_device():
    config = SessionConfig.from_query({"hostIP": "table.local", "wledEnabled": "TRUE"})
    assert config.control_mode is ControlMode.WLED
    assert config.secondary_address == "table.local"
    assert "wledAddress" not in config.to_query()
    assert config.control_url() == "http://table.local"


@pytest.mark.parametrize("raw", ["0", "-4", "abc", ""])
def test_invalid_poll_cycle_in_query_is_ignored(raw):
    assert SessionConfig.from_query({"pollCycle": raw}).poll_cycle == 10


def test_non_positive_poll_cycle_rejected():
    with pytest.raises(ValueError):
        SessionConfig(poll_cycle=0)


def test_control_urls():
    assert SessionConfig(device_address="t").control_url() is None
    assert SessionConfig(device_address="t", control_mode="legacy").control_url() == "http://t/sand.html"
    assert SessionConfig(device_address="t", control_mode="cnc").control_url() == "http://t/cnc.html"


def test_geometry_from_matching_settings():
    geometry = RobotGeometryConfig.from_settings({
        "robotConfig": {
            "robotType": "SandTableScara",
            "robotGeom": {
                "axis0": {"maxSpeed": 20, "maxVal": 150},
                "axis1": {"maxSpeed": 30},
            },
        }
    })
    assert geometry is not None
    assert geometry.axis0.max_speed == 20
    assert geometry.axis0.max_val == 150
    assert geometry.axis1.max_speed == 30
    assert geometry.axis1.max_val == 100
    assert geometry.max_radius == 150
    assert geometry.avg_speed == 25


@pytest.mark.parametrize(
    "settings",
    [
        {"robotConfig": {"robotType": "XYBot", "robotGeom": {"axis0": {"maxSpeed": 99}}}},
        {"robotConfig": {}},
        {},
        None,
        [],
    ],
)
def test_geometry_from_other_settings_is_none(settings):
    assert RobotGeometryConfig.from_settings(settings) is None
