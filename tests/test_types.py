import dataclasses
import time

import pytest

from padinput.types import (
    AxisInfo,
    AxisValueChanged,
    ButtonPressed,
    ButtonReleased,
    Connected,
    Disconnected,
    Event,
    GilrsError,
    PowerInfo,
    PowerStatus,
    UnsupportedPlatformError,
)


def test_power_info_charging_keeps_level():
    info = PowerInfo.charging(42)
    assert info.status is PowerStatus.CHARGING
    assert info.level == 42


def test_power_info_discharging_keeps_level():
    info = PowerInfo.discharging(7)
    assert info.status is PowerStatus.DISCHARGING
    assert info.level == 7


@pytest.mark.parametrize(
    "factory, status",
    [
        (PowerInfo.unknown, PowerStatus.UNKNOWN),
        (PowerInfo.wired, PowerStatus.WIRED),
        (PowerInfo.charged, PowerStatus.CHARGED),
    ],
)
def test_power_info_without_level(factory, status):
    info = factory()
    assert info.status is status
    assert info.level is None


def test_power_info_equality():
    assert PowerInfo.charging(10) == PowerInfo.charging(10)
    assert PowerInfo.charging(10) != PowerInfo.discharging(10)


@pytest.mark.parametrize("level", [-1, 256])
def test_power_info_rejects_out_of_range_level(level):
    with pytest.raises(ValueError):
        PowerInfo.charging(level)


def test_power_info_rejects_missing_level():
    with pytest.raises(ValueError):
        PowerInfo(PowerStatus.DISCHARGING)


def test_power_info_rejects_level_for_wired():
    with pytest.raises(ValueError):
        PowerInfo(PowerStatus.WIRED, 5)


def test_event_defaults_to_current_time():
    before = time.time()
    ev = Event(3, Connected())
    after = time.time()
    assert before <= ev.time <= after
    assert ev.id == 3
    assert ev.event == Connected()


def test_event_is_frozen():
    ev = Event(0, Disconnected(), 1.0)
    with pytest.raises(dataclasses.FrozenInstanceError):
        ev.id = 1
    assert ev.id == 0
    assert ev == Event(0, Disconnected(), 1.0)


def test_event_variants_compare_by_value():
    assert ButtonPressed("a") == ButtonPressed("a")
    assert ButtonPressed("a") != ButtonReleased("a")
    assert AxisValueChanged(5, "x") == AxisValueChanged(5, "x")
    assert AxisValueChanged(5, "x") != AxisValueChanged(6, "x")
    assert Connected() != Disconnected()


def test_axis_info_default_deadzone():
    info = AxisInfo(-10, 10)
    assert (info.min, info.max, info.deadzone) == (-10, 10, None)


def test_unsupported_platform_error():
    dummy = object()
    err = UnsupportedPlatformError(dummy)
    assert isinstance(err, GilrsError)
    assert str(err) == "Gilrs does not support current platform."
    assert err.context is dummy
    with pytest.raises(GilrsError):
        raise err