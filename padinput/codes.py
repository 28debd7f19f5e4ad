"""Evdev event codes, capability bitmaps and device identification helpers."""

from __future__ import annotations

import struct
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple

IS_Y_AXIS_REVERSED = True

INPUT_DIR_PATH = Path("/dev/input")
SYS_INPUT_PATH = Path("/sys/class/input")

KEY_MAX = 0x2FF
EV_MAX = 0x1F
EV_SYN = 0x00
EV_KEY = 0x01
EV_REL = 0x02
EV_ABS = 0x03
EV_MSC = 0x04
EV_SW = 0x05
ABS_MAX = 0x3F
EV_FF = 0x15

SYN_REPORT = 0x00
SYN_DROPPED = 0x03

BTN_MISC = 0x100
BTN_MOUSE = 0x110
BTN_JOYSTICK = 0x120

FF_SQUARE = 0x58
FF_TRIANGLE = 0x59
FF_SINE = 0x5A
FF_GAIN = 0x60
FF_MAX = FF_GAIN

ABS_X = 0x00
ABS_Y = 0x01
ABS_Z = 0x02
ABS_RX = 0x03
ABS_RY = 0x04
ABS_RZ = 0x05
ABS_HAT0X = 0x10
ABS_HAT0Y = 0x11
ABS_HAT1X = 0x12
ABS_HAT1Y = 0x13
ABS_HAT2X = 0x14
ABS_HAT2Y = 0x15

_KIND_NAMES = {
    EV_SYN: "SYN",
    EV_KEY: "KEY",
    EV_REL: "REL",
    EV_ABS: "ABS",
    EV_MSC: "MSC",
    EV_SW: "SW",
}

_ASCII_DIGITS = frozenset("0123456789")


@dataclass(frozen=True, order=True)
class EvCode:
    """An evdev event type together with the code of a button or axis."""

    kind: int
    code: int

    def into_u32(self) -> int:
        """Pack type and code into a single integer: type in the high half, code in the low."""
        return ((self.kind & 0xFFFF) << 16) | (self.code & 0xFFFF)

    def __str__(self) -> str:
        name = _KIND_NAMES.get(self.kind, f"EV_TYPE_{self.kind}")
        return f"{name}({self.code})"


# The most common placement of gamepad elements; many devices differ.
BTN_SOUTH = EvCode(EV_KEY, 0x130)
BTN_EAST = EvCode(EV_KEY, 0x131)
BTN_C = EvCode(EV_KEY, 0x132)
BTN_NORTH = EvCode(EV_KEY, 0x133)
BTN_WEST = EvCode(EV_KEY, 0x134)
BTN_Z = EvCode(EV_KEY, 0x135)
BTN_LT = EvCode(EV_KEY, 0x136)
BTN_RT = EvCode(EV_KEY, 0x137)
BTN_LT2 = EvCode(EV_KEY, 0x138)
BTN_RT2 = EvCode(EV_KEY, 0x139)
BTN_SELECT = EvCode(EV_KEY, 0x13A)
BTN_START = EvCode(EV_KEY, 0x13B)
BTN_MODE = EvCode(EV_KEY, 0x13C)
BTN_LTHUMB = EvCode(EV_KEY, 0x13D)
BTN_RTHUMB = EvCode(EV_KEY, 0x13E)
BTN_DPAD_UP = EvCode(EV_KEY, 0x220)
BTN_DPAD_DOWN = EvCode(EV_KEY, 0x221)
BTN_DPAD_LEFT = EvCode(EV_KEY, 0x222)
BTN_DPAD_RIGHT = EvCode(EV_KEY, 0x223)
BTN_TRIGGER_HAPPY1 = EvCode(EV_KEY, 0x2C0)
BTN_TRIGGER_HAPPY2 = EvCode(EV_KEY, 0x2C1)
BTN_TRIGGER_HAPPY3 = EvCode(EV_KEY, 0x2C2)
BTN_TRIGGER_HAPPY4 = EvCode(EV_KEY, 0x2C3)
BTN_TRIGGER_HAPPY5 = EvCode(EV_KEY, 0x2C4)
BTN_TRIGGER_HAPPY6 = EvCode(EV_KEY, 0x2C5)
BTN_TRIGGER_HAPPY7 = EvCode(EV_KEY, 0x2C6)
BTN_TRIGGER_HAPPY8 = EvCode(EV_KEY, 0x2C7)

AXIS_LSTICKX = EvCode(EV_ABS, ABS_X)
AXIS_LSTICKY = EvCode(EV_ABS, ABS_Y)
AXIS_LEFTZ = EvCode(EV_ABS, ABS_Z)
AXIS_RSTICKX = EvCode(EV_ABS, ABS_RX)
AXIS_RSTICKY = EvCode(EV_ABS, ABS_RY)
AXIS_RIGHTZ = EvCode(EV_ABS, ABS_RZ)
AXIS_DPADX = EvCode(EV_ABS, ABS_HAT0X)
AXIS_DPADY = EvCode(EV_ABS, ABS_HAT0Y)
AXIS_RT = EvCode(EV_ABS, ABS_HAT1X)
AXIS_LT = EvCode(EV_ABS, ABS_HAT1Y)
AXIS_RT2 = EvCode(EV_ABS, ABS_HAT2X)
AXIS_LT2 = EvCode(EV_ABS, ABS_HAT2Y)


def test_bit(bit: int, data: bytes) -> bool:
    """Return whether ``bit`` is set in a little-endian bitmap."""
    if bit < 0:
        raise ValueError(f"negative bit index: {bit}")
    byte, offset = divmod(bit, 8)
    return bool(data[byte] & (1 << offset))


# pytest would otherwise try to collect the helper above when it is imported by name.
test_bit.__test__ = False  # type: ignore[attr-defined]


def create_uuid(bustype: int, vendor: int, product: int, version: int) -> uuid.UUID:
    """Build the SDL-compatible UUID of a device model from its input ids."""
    try:
        raw = struct.pack("<IHHHHHH", bustype, vendor, 0, product, 0, version, 0)
    except struct.error as exc:
        raise ValueError(f"input id out of range: {exc}") from exc
    if max(vendor, product, version, bustype) > 0xFFFF:
        raise ValueError("input ids must fit in 16 bits")
    return uuid.UUID(bytes=raw)


def gamepad_paths(name: str) -> Optional[Tuple[Path, Path]]:
    """Map an ``eventN`` file name to its device node and sysfs path, or None for other names."""
    if not name.startswith("event"):
        return None
    event_id = name[len("event"):]
    if not event_id or any(ch not in _ASCII_DIGITS for ch in event_id):
        return None
    return INPUT_DIR_PATH / name, SYS_INPUT_PATH / name


def _set_bits(bits: range, data: bytes) -> List[int]:
    return [bit for bit in bits if test_bit(bit, data)]


def find_buttons(key_bits: bytes, only_gamepad_buttons: bool) -> List[EvCode]:
    """List the key codes present in a key bitmap, gamepad buttons first."""
    ranges = [range(BTN_MISC, BTN_MOUSE), range(BTN_JOYSTICK, len(key_bits) * 8)]
    if not only_gamepad_buttons:
        ranges += [range(0, BTN_MISC), range(BTN_MOUSE, BTN_JOYSTICK)]
    return [EvCode(EV_KEY, bit) for bits in ranges for bit in _set_bits(bits, key_bits)]


def find_axes(abs_bits: bytes) -> List[EvCode]:
    """List the absolute axis codes present in an axis bitmap."""
    return [EvCode(EV_ABS, bit) for bit in _set_bits(range(len(abs_bits) * 8), abs_bits)]