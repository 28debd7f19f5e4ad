import os
import time
from datetime import timedelta
from pathlib import Path
from unittest import mock

import pytest

from padinput.codes import (
    AXIS_LSTICKX,
    AXIS_LSTICKY,
    BTN_SOUTH,
    EV_ABS,
    EV_KEY,
    EV_MSC,
    create_uuid,
)
from padinput.context import Gilrs
from padinput.gamepad import Gamepad
from padinput.ioctl import InputEvent
from padinput.types import (
    AxisValueChanged,
    ButtonPressed,
    ButtonReleased,
    Connected,
    Disconnected,
    Event,
    GilrsError,
    UnsupportedPlatformError,
)

DEFAULT_UUID = create_uuid(0x3, 0x045E, 0x028E, 0x2020)
OTHER_UUID = create_uuid(0x5, 0x054C, 0x05C4, 0x0100)

# Kernel event codes of the south button and the left stick X axis.
BTN_SOUTH_NR = 0x130
ABS_X_NR = 0x00


class FakeOpener:
    def __init__(self, accept=None, uuids=None):
        self.accept = accept
        self.uuids = uuids or {}
        self.calls = []
        self.writers = {}

    def __call__(self, path, syspath, quiet):
        self.calls.append((os.fspath(path), os.fspath(syspath), quiet))
        name = Path(path).name
        if self.accept is not None and name not in self.accept:
            return None
        read_fd, write_fd = os.pipe()
        os.set_blocking(read_fd, False)
        old = self.writers.pop(name, None)
        if old is not None:
            os.close(old)
        self.writers[name] = write_fd
        return Gamepad(
            read_fd,
            os.fspath(path),
            "Test Pad",
            self.uuids.get(name, DEFAULT_UUID),
            0x045E,
            0x028E,
            buttons=[BTN_SOUTH],
            axes=[AXIS_LSTICKX, AXIS_LSTICKY],
        )

    def close(self):
        for fd in self.writers.values():
            os.close(fd)
        self.writers.clear()


@pytest.fixture
def opener():
    fake = FakeOpener()
    yield fake
    fake.close()


def _wait_for(ctx, kind, limit=10.0):
    deadline = time.monotonic() + limit
    while True:
        left = deadline - time.monotonic()
        if left <= 0:
            raise AssertionError(f"no {kind.__name__} event arrived")
        event = ctx.next_event_blocking(left)
        if event is not None and isinstance(event.event, kind):
            return event


def test_scan_opens_only_event_nodes(tmp_path, opener):
    for name in ("event0", "event1", "mouse0", "eventX", "event"):
        (tmp_path / name).touch()
    opener.accept = {"event0"}
    with Gilrs(tmp_path, watch=False, opener=opener) as ctx:
        assert sorted(call[0] for call in opener.calls) == [
            str(tmp_path / "event0"),
            str(tmp_path / "event1"),
        ]
        assert all(call[2] is True for call in opener.calls)
        assert opener.calls[0][1] == "/sys/class/input/event0"
        assert ctx.last_gamepad_hint() == 1
        assert ctx.gamepad(0).devpath == str(tmp_path / "event0")
        assert ctx.gamepad(1) is None
        assert ctx.gamepad(-1) is None


def test_events_are_read_in_order(tmp_path, opener):
    (tmp_path / "event0").touch()
    with Gilrs(tmp_path, watch=False, opener=opener) as ctx:
        writer = opener.writers["event0"]
        os.write(
            writer,
            InputEvent(EV_KEY, BTN_SOUTH_NR, 1, 12, 250000).pack()
            + InputEvent(EV_ABS, ABS_X_NR, -200, 12, 500000).pack(),
        )
        assert ctx.next_event_blocking(1.0) == Event(0, ButtonPressed(BTN_SOUTH), 12.25)
        assert ctx.next_event() == Event(0, AxisValueChanged(-200, AXIS_LSTICKX), 12.5)
        assert ctx.next_event() is None


def test_unknown_events_are_skipped(tmp_path, opener):
    (tmp_path / "event2").touch()
    with Gilrs(tmp_path, watch=False, opener=opener) as ctx:
        os.write(
            opener.writers["event2"],
            InputEvent(EV_MSC, 4, 7, 3, 0).pack() + InputEvent(EV_KEY, BTN_SOUTH_NR, 0, 4, 0).pack(),
        )
        event = ctx.next_event_blocking(timedelta(seconds=1))
        assert event == Event(0, ButtonReleased(BTN_SOUTH), 4.0)


def test_no_gamepads_means_no_events(tmp_path, opener):
    with Gilrs(tmp_path, watch=False, opener=opener) as ctx:
        assert ctx.next_event() is None
        assert ctx.next_event_blocking(timedelta(milliseconds=10)) is None
        assert ctx.last_gamepad_hint() == 0
        assert opener.calls == []


def test_negative_timeout_is_rejected(tmp_path, opener):
    with Gilrs(tmp_path, watch=False, opener=opener) as ctx:
        with pytest.raises(ValueError):
            ctx.next_event_blocking(-1)


def test_missing_input_dir_raises(tmp_path, opener):
    with pytest.raises(GilrsError):
        Gilrs(tmp_path / "missing", watch=False, opener=opener)


def test_close_releases_gamepads(tmp_path, opener):
    (tmp_path / "event0").touch()
    ctx = Gilrs(tmp_path, watch=False, opener=opener)
    pad = ctx.gamepad(0)
    ctx.close()
    ctx.close()
    with pytest.raises(ValueError):
        ctx.next_event()
    with pytest.raises(ValueError):
        pad.fileno()


def test_hotplug_connect_disconnect_and_reuse(tmp_path, opener):
    with Gilrs(tmp_path, opener=opener) as ctx:
        assert ctx.last_gamepad_hint() == 0
        (tmp_path / "mouse1").touch()
        node = tmp_path / "event4"
        node.touch()

        event = _wait_for(ctx, Connected)
        assert event.id == 0
        assert ctx.gamepad(0).devpath == str(node)
        assert ctx.gamepad(0).is_connected

        node.unlink()
        event = _wait_for(ctx, Disconnected)
        assert event.id == 0
        assert not ctx.gamepad(0).is_connected

        node.touch()
        event = _wait_for(ctx, Connected)
        assert event.id == 0
        assert ctx.last_gamepad_hint() == 1
        assert ctx.gamepad(0).is_connected
        assert all(Path(call[0]).name != "mouse1" for call in opener.calls)


def test_hotplug_new_model_gets_new_id(tmp_path, opener):
    opener.uuids = {"event5": OTHER_UUID}
    (tmp_path / "event0").touch()
    with Gilrs(tmp_path, opener=opener) as ctx:
        assert ctx.last_gamepad_hint() == 1
        (tmp_path / "event0").unlink()
        assert _wait_for(ctx, Disconnected).id == 0

        (tmp_path / "event5").touch()
        event = _wait_for(ctx, Connected)
        assert event.id == 1
        assert ctx.gamepad(1).uuid == OTHER_UUID
        assert not ctx.gamepad(0).is_connected


def test_unsupported_platform_gives_inert_context():
    with mock.patch("sys.platform", "darwin"):
        with pytest.raises(UnsupportedPlatformError) as info:
            Gilrs()
    ctx = info.value.context
    assert str(info.value) == "Gilrs does not support current platform."
    assert ctx.next_event() is None
    assert ctx.next_event_blocking(None) is None
    assert ctx.gamepad(0) is None
    assert ctx.last_gamepad_hint() == 0