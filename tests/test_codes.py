import uuid
from pathlib import Path

import pytest

from padinput import codes
from padinput.codes import EvCode, create_uuid, find_axes, find_buttons, gamepad_paths


def _bitmap(size, *bits):
    data = bytearray(size)
    for bit in bits:
        data[bit // 8] |= 1 << (bit % 8)
    return bytes(data)


KEY_BYTES = codes.KEY_MAX // 8 + 1
ABS_BYTES = codes.ABS_MAX // 8 + 1


def test_sdl_uuid():
    expected = uuid.UUID("030000005e0400008e02000020200000")
    assert create_uuid(0x3, 0x045E, 0x028E, 0x2020) == expected


def test_create_uuid_rejects_out_of_range():
    with pytest.raises(ValueError):
        create_uuid(0x3, 0x1_0000, 0, 0)


def test_create_uuid_distinguishes_models():
    assert create_uuid(3, 1, 2, 3) != create_uuid(3, 1, 2, 4)


def test_into_u32_packs_kind_and_code():
    assert codes.BTN_SOUTH.into_u32() == (codes.EV_KEY << 16) | 0x130
    assert codes.AXIS_LSTICKX.into_u32() == codes.EV_ABS << 16


def test_display_known_kind():
    assert str(EvCode(codes.EV_KEY, 304)) == "KEY(304)"
    assert str(EvCode(codes.EV_ABS, 16)) == "ABS(16)"


def test_display_unknown_kind():
    assert str(EvCode(codes.EV_FF, 0)) == "EV_TYPE_21(0)"


def test_evcode_ordering_and_equality():
    assert EvCode(1, 5) == EvCode(1, 5)
    assert sorted([EvCode(3, 0), EvCode(1, 9), EvCode(1, 2)]) == [
        EvCode(1, 2),
        EvCode(1, 9),
        EvCode(3, 0),
    ]


def test_test_bit():
    data = bytes([0b00000101, 0b10000000])
    assert codes.test_bit(0, data) is True
    assert codes.test_bit(1, data) is False
    assert codes.test_bit(2, data) is True
    assert codes.test_bit(15, data) is True


def test_test_bit_rejects_negative():
    with pytest.raises(ValueError):
        codes.test_bit(-1, b"\x01")


@pytest.mark.parametrize(
    "name",
    ["event", "js0", "eventx1", "event1a", "mouse0", "event\u0661"],
)
def test_gamepad_paths_rejects_other_names(name):
    assert gamepad_paths(name) is None


def test_gamepad_paths_accepts_event_nodes():
    assert gamepad_paths("event12") == (
        Path("/dev/input/event12"),
        Path("/sys/class/input/event12"),
    )


def test_find_buttons_orders_gamepad_buttons_first():
    bits = _bitmap(KEY_BYTES, 0x10, 0x101, 0x110, 0x130, 0x2C0)
    assert find_buttons(bits, False) == [
        EvCode(codes.EV_KEY, 0x101),
        EvCode(codes.EV_KEY, 0x130),
        EvCode(codes.EV_KEY, 0x2C0),
        EvCode(codes.EV_KEY, 0x10),
        EvCode(codes.EV_KEY, 0x110),
    ]


def test_find_buttons_only_gamepad():
    bits = _bitmap(KEY_BYTES, 0x10, 0x101, 0x110, 0x130, 0x2C0)
    assert find_buttons(bits, True) == [
        EvCode(codes.EV_KEY, 0x101),
        EvCode(codes.EV_KEY, 0x130),
        EvCode(codes.EV_KEY, 0x2C0),
    ]


def test_find_buttons_empty_bitmap():
    assert find_buttons(bytes(KEY_BYTES), False) == []


def test_find_axes():
    bits = _bitmap(ABS_BYTES, 0, 1, 0x10)
    assert find_axes(bits) == [codes.AXIS_LSTICKX, codes.AXIS_LSTICKY, codes.AXIS_DPADX]


def test_find_axes_all_set_covers_every_bit():
    bits = bytes([0xFF] * ABS_BYTES)
    axes = find_axes(bits)
    assert [axis.code for axis in axes] == list(range(ABS_BYTES * 8))
    assert all(axis.kind == codes.EV_ABS for axis in axes)