"""A single evdev gamepad: discovery checks, event decoding and device state."""

from __future__ import annotations

import logging
import os
import re
import uuid as _uuid
from pathlib import Path
from typing import BinaryIO, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from padinput import ioctl
from padinput.codes import (
    ABS_MAX,
    EV_ABS,
    EV_FF,
    EV_KEY,
    EV_SYN,
    FF_GAIN,
    FF_MAX,
    FF_SINE,
    FF_SQUARE,
    FF_TRIANGLE,
    KEY_MAX,
    SYN_DROPPED,
    SYN_REPORT,
    EvCode,
    create_uuid,
    find_axes,
    find_buttons,
    test_bit,
)
from padinput.ff import FfDevice
from padinput.ioctl import AbsInfo, InputEvent
from padinput.types import (
    AxisInfo,
    AxisValueChanged,
    ButtonPressed,
    ButtonReleased,
    EventType,
    PowerInfo,
)

log = logging.getLogger(__name__)

_READ_BATCH = 12
_BATTERY_READ_LEN = 15
_KEY_BITS_LEN = KEY_MAX // 8 + 1
_ABS_BITS_LEN = ABS_MAX // 8 + 1
_FF_BITS_LEN = FF_MAX // 8 + 1
_CAPACITY_RE = re.compile(r"\+?[0-9]+")

PathLike = Union[str, "os.PathLike[str]"]


def parse_power_info(capacity_text: str, status_text: str) -> PowerInfo:
    """Interpret the sysfs ``capacity`` and ``status`` texts of a battery.

    Each text is taken as read from sysfs; its last character, the newline, is dropped.
    """
    if not capacity_text:
        return PowerInfo.unknown()
    capacity = capacity_text[:-1]
    if not _CAPACITY_RE.fullmatch(capacity) or int(capacity) > 255:
        log.error("Failed to parse battery capacity: %s", capacity)
        return PowerInfo.unknown()
    level = int(capacity)

    if not status_text:
        return PowerInfo.unknown()
    status = status_text[:-1]
    if status == "Charging":
        return PowerInfo.charging(level)
    if status == "Discharging":
        return PowerInfo.discharging(level)
    if status in ("Full", "Not charging"):
        return PowerInfo.charged()
    log.error("Unknown battery status value: %s", status)
    return PowerInfo.unknown()


def _bitmap(fd: int, ev: int, length: int) -> bytes:
    try:
        return ioctl.eviocgbit(fd, ev, length)
    except OSError:
        return bytes(length)


def _read_axes_info(fd: int) -> Dict[int, AxisInfo]:
    info: Dict[int, AxisInfo] = {}
    for axis in find_axes(_bitmap(fd, EV_ABS, _ABS_BITS_LEN)):
        try:
            absinfo = ioctl.eviocgabs(fd, axis.code)
        except OSError:
            absinfo = AbsInfo()
        info[axis.code] = AxisInfo(
            min=absinfo.minimum,
            max=absinfo.maximum,
            deadzone=absinfo.flat & 0xFFFFFFFF,
        )
    return info


def _test_ff(fd: int) -> bool:
    try:
        bits = ioctl.eviocgbit(fd, EV_FF, _FF_BITS_LEN)
    except OSError:
        return False
    return all(test_bit(bit, bits) for bit in (FF_SQUARE, FF_TRIANGLE, FF_SINE, FF_GAIN))


def _open_battery(syspath: Path) -> Optional[Tuple[BinaryIO, BinaryIO]]:
    # syspath is <device>/input/inputXX/eventXX: the first "device" link leads to
    # inputXX, the second to the device root.
    supply_dir = syspath / "device" / "device" / "power_supply"
    try:
        entry = next(iter(os.scandir(supply_dir)), None)
    except OSError:
        return None
    if entry is None:
        return None
    battery = Path(entry.path)
    try:
        capacity = open(battery / "capacity", "rb", buffering=0)
    except OSError:
        return None
    try:
        status = open(battery / "status", "rb", buffering=0)
    except OSError:
        capacity.close()
        return None
    return capacity, status


class Gamepad:
    """An opened evdev gamepad together with its capabilities and last known state."""

    def __init__(
        self,
        fd: int,
        devpath: str,
        name: str,
        uuid: _uuid.UUID,
        vendor_id: Optional[int],
        product_id: Optional[int],
        *,
        buttons: Iterable[EvCode] = (),
        axes: Iterable[EvCode] = (),
        axes_info: Optional[Mapping[int, AxisInfo]] = None,
        ff_supported: bool = False,
        battery: Optional[Tuple[BinaryIO, BinaryIO]] = None,
    ) -> None:
        self._fd = fd
        self.devpath = devpath
        self.name = name
        self.uuid = uuid
        self.vendor_id = vendor_id
        self.product_id = product_id
        self.buttons: List[EvCode] = list(buttons)
        self.axes: List[EvCode] = list(axes)
        self._axes_info: Dict[int, AxisInfo] = dict(axes_info or {})
        self.is_ff_supported = ff_supported
        self._battery = battery
        self._axes_values: Dict[int, int] = {}
        self._buttons_values: Dict[int, bool] = {}
        self._pending: List[InputEvent] = []
        self.is_connected = True

    @classmethod
    def open(cls, path: PathLike, syspath: PathLike, quiet: bool = False) -> Optional["Gamepad"]:
        """Open the device node ``path``; None if it is not a usable gamepad.

        ``quiet`` lowers the level of routine failures, as when scanning a directory.
        """
        devpath = os.fspath(path)
        if "js" in devpath:
            log.debug("Device %s is js interface, ignoring.", devpath)
            return None

        try:
            fd = os.open(devpath, os.O_RDWR | os.O_NONBLOCK)
        except OSError:
            log.log(logging.DEBUG if quiet else logging.ERROR, "Failed to open %s", devpath)
            return None

        try:
            input_id = ioctl.eviocgid(fd)
        except OSError:
            log.error("Failed to get id of device %s", devpath)
            os.close(fd)
            return None

        try:
            name = ioctl.eviocgname(fd)
        except OSError:
            log.error("Failed to get name of device %s", devpath)
            name = "Unknown"

        gamepad = cls(
            fd,
            devpath,
            name,
            create_uuid(input_id.bustype, input_id.vendor, input_id.product, input_id.version),
            input_id.vendor,
            input_id.product,
            buttons=find_buttons(_bitmap(fd, EV_KEY, _KEY_BITS_LEN), False),
            axes=find_axes(_bitmap(fd, EV_ABS, _ABS_BITS_LEN)),
            axes_info=_read_axes_info(fd),
            ff_supported=_test_ff(fd),
            battery=_open_battery(Path(syspath)),
        )

        if not gamepad.is_gamepad():
            log.log(
                logging.DEBUG if quiet else logging.WARNING,
                "%s doesn't have at least 1 button and 2 axes, ignoring.",
                devpath,
            )
            gamepad.close()
            return None

        log.info("Gamepad %s (%s) connected.", gamepad.devpath, gamepad.name)
        log.debug(
            "Gamepad %s: uuid: %s, ff_supported: %s, axes: %s, buttons: %s, axes_info: %s",
            gamepad.devpath,
            gamepad.uuid,
            gamepad.is_ff_supported,
            gamepad.axes,
            gamepad.buttons,
            gamepad._axes_info,
        )
        return gamepad

    def __repr__(self) -> str:
        return (
            f"Gamepad(devpath={self.devpath!r}, name={self.name!r}, uuid={self.uuid}, "
            f"connected={self.is_connected})"
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Gamepad):
            return NotImplemented
        return self.uuid == other.uuid

    def __hash__(self) -> int:
        return hash(self.uuid)

    def fileno(self) -> int:
        """File descriptor of the device node, for polling."""
        if self._fd < 0:
            raise ValueError("gamepad is disconnected")
        return self._fd

    def is_gamepad(self) -> bool:
        """Whether the device has at least one button and two axes."""
        return bool(self.buttons) and len(self.axes) >= 2

    def event(self) -> Optional[Tuple[EventType, float]]:
        """Next known event and its time, or None when nothing more can be read.

        Unknown events are skipped; after dropped events the state is resynchronised.
        """
        skip = False
        while True:
            raw = self._next_input_event()
            if raw is None:
                return None

            if skip:
                if raw.type == EV_SYN and raw.code == SYN_REPORT:
                    skip = False
                    self._compare_state()
                continue

            event: Optional[EventType] = None
            if raw.type == EV_SYN and raw.code == SYN_DROPPED:
                skip = True
            elif raw.type == EV_KEY:
                self._buttons_values[raw.code] = raw.value == 1
                code = EvCode(raw.type, raw.code)
                if raw.value == 0:
                    event = ButtonReleased(code)
                elif raw.value == 1:
                    event = ButtonPressed(code)
            elif raw.type == EV_ABS:
                self._axes_values[raw.code] = raw.value
                event = AxisValueChanged(raw.value, EvCode(raw.type, raw.code))
            else:
                log.debug("Skipping event %s", raw)

            if event is not None:
                return event, raw.timestamp

    def _next_input_event(self) -> Optional[InputEvent]:
        if self._pending:
            return self._pending.pop()
        if self._fd < 0:
            return None
        try:
            data = os.read(self._fd, InputEvent.size * _READ_BATCH)
        except OSError:
            return None
        if not data:
            return None
        try:
            events = InputEvent.unpack_many(data)
        except ValueError:
            log.error("Unexpected read of size %d", len(data))
            return None
        log.debug("Got %d new events", len(events))
        self._pending.extend(reversed(events[1:]))
        return events[0]

    def _compare_state(self) -> None:
        absinfo = AbsInfo()
        for axis in self.axes:
            try:
                absinfo = ioctl.eviocgabs(self._fd, axis.code)
            except OSError:
                pass
            if self._axes_values.get(axis.code, 0) != absinfo.value:
                self._pending.append(InputEvent(EV_ABS, axis.code, absinfo.value))

        try:
            keys = ioctl.eviocgkey(self._fd, _KEY_BITS_LEN)
        except OSError:
            keys = bytes(_KEY_BITS_LEN)
        for button in self.buttons:
            pressed = test_bit(button.code, keys)
            if self._buttons_values.get(button.code, False) != pressed:
                self._pending.append(InputEvent(EV_KEY, button.code, int(pressed)))

    def disconnect(self) -> None:
        """Release the device node and mark the gamepad as disconnected."""
        if self._fd >= 0:
            os.close(self._fd)
        self._fd = -2
        self.devpath = ""
        self.is_connected = False

    def close(self) -> None:
        """Release the device node and the battery files."""
        if self._fd >= 0:
            os.close(self._fd)
            self._fd = -1
        battery, self._battery = self._battery, None
        if battery is not None:
            for handle in battery:
                handle.close()

    def __del__(self) -> None:
        try:
            self.close()
        except Exception:
            pass

    def power_info(self) -> PowerInfo:
        """Current state of the device's power supply."""
        if self._battery is not None:
            capacity_file, status_file = self._battery
            try:
                capacity_file.seek(0)
                status_file.seek(0)
                capacity = capacity_file.read(_BATTERY_READ_LEN) or b""
                if not capacity:
                    return PowerInfo.unknown()
                status = status_file.read(_BATTERY_READ_LEN) or b""
            except OSError:
                return PowerInfo.unknown()
            return parse_power_info(
                capacity.decode("utf-8", errors="replace"),
                status.decode("utf-8", errors="replace"),
            )
        if self._fd > -1:
            return PowerInfo.wired()
        return PowerInfo.unknown()

    def ff_device(self) -> Optional[FfDevice]:
        """A force-feedback handle for this gamepad, or None if unsupported or unavailable."""
        if not self.is_ff_supported:
            return None
        try:
            return FfDevice(self.devpath)
        except OSError:
            return None

    def axis_info(self, code: EvCode) -> Optional[AxisInfo]:
        """Range and deadzone of an axis, or None if the device has no such axis."""
        if code.kind != EV_ABS:
            return None
        return self._axes_info.get(code.code)