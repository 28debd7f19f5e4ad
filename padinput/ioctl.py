"""Evdev kernel structures and the ioctl requests used to talk to input devices."""

from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import ClassVar, List

try:
    import fcntl
except ImportError:  # not a Unix system
    fcntl = None  # type: ignore[assignment]

IOC_NONE = 0
IOC_WRITE = 1
IOC_READ = 2

_IOC_NRBITS = 8
_IOC_TYPEBITS = 8
_IOC_SIZEBITS = 14
_IOC_NRSHIFT = 0
_IOC_TYPESHIFT = _IOC_NRSHIFT + _IOC_NRBITS
_IOC_SIZESHIFT = _IOC_TYPESHIFT + _IOC_TYPEBITS
_IOC_DIRSHIFT = _IOC_SIZESHIFT + _IOC_SIZEBITS

FF_RUMBLE = 0x50

_NAME_LEN = 128
_INT_SIZE = struct.calcsize("i")


def request_code(direction: int, type_char, nr: int, size: int) -> int:
    """Build an ioctl request number the way the kernel's _IOC macro does."""
    type_value = ord(type_char) if isinstance(type_char, str) else int(type_char)
    if not 0 <= direction <= 3:
        raise ValueError(f"invalid ioctl direction: {direction}")
    if not 0 <= type_value < 1 << _IOC_TYPEBITS:
        raise ValueError(f"invalid ioctl type: {type_char!r}")
    if not 0 <= nr < 1 << _IOC_NRBITS:
        raise ValueError(f"invalid ioctl number: {nr}")
    if not 0 <= size < 1 << _IOC_SIZEBITS:
        raise ValueError(f"ioctl argument size too large: {size}")
    return (
        (direction << _IOC_DIRSHIFT)
        | (size << _IOC_SIZESHIFT)
        | (type_value << _IOC_TYPESHIFT)
        | (nr << _IOC_NRSHIFT)
    )


@dataclass(frozen=True)
class InputEvent:
    """struct input_event: a timestamp, an event type, a code and a value."""

    type: int
    code: int
    value: int
    sec: int = 0
    usec: int = 0

    _STRUCT: ClassVar[struct.Struct] = struct.Struct("@llHHi")
    size: ClassVar[int] = _STRUCT.size

    @property
    def timestamp(self) -> float:
        return self.sec + self.usec / 1_000_000

    def pack(self) -> bytes:
        return self._STRUCT.pack(self.sec, self.usec, self.type, self.code, self.value)

    @classmethod
    def unpack(cls, data: bytes) -> "InputEvent":
        sec, usec, type_, code, value = cls._STRUCT.unpack(bytes(data))
        return cls(type_, code, value, sec, usec)

    @classmethod
    def unpack_many(cls, data: bytes) -> List["InputEvent"]:
        """Decode a buffer holding whole events; a partial event is an error."""
        data = bytes(data)
        if len(data) % cls.size:
            raise ValueError(f"unexpected read of size {len(data)}")
        return [
            cls(type_, code, value, sec, usec)
            for sec, usec, type_, code, value in cls._STRUCT.iter_unpack(data)
        ]


@dataclass(frozen=True)
class InputId:
    """struct input_id: bus type, vendor, product and version."""

    bustype: int
    vendor: int
    product: int
    version: int

    _STRUCT: ClassVar[struct.Struct] = struct.Struct("@HHHH")
    size: ClassVar[int] = _STRUCT.size

    def pack(self) -> bytes:
        return self._STRUCT.pack(self.bustype, self.vendor, self.product, self.version)

    @classmethod
    def unpack(cls, data: bytes) -> "InputId":
        return cls(*cls._STRUCT.unpack(bytes(data)))


@dataclass(frozen=True)
class AbsInfo:
    """struct input_absinfo: current value and range of an absolute axis."""

    value: int = 0
    minimum: int = 0
    maximum: int = 0
    fuzz: int = 0
    flat: int = 0
    resolution: int = 0

    _STRUCT: ClassVar[struct.Struct] = struct.Struct("@6i")
    size: ClassVar[int] = _STRUCT.size

    def pack(self) -> bytes:
        return self._STRUCT.pack(
            self.value, self.minimum, self.maximum, self.fuzz, self.flat, self.resolution
        )

    @classmethod
    def unpack(cls, data: bytes) -> "AbsInfo":
        return cls(*cls._STRUCT.unpack(bytes(data)))


def _ff_effect_struct() -> struct.Struct:
    # The effect union is four u64 on 64-bit systems and seven u32 on 32-bit ones;
    # only the rumble part (two u16 magnitudes at its start) is used.
    union_size = 32 if struct.calcsize("P") == 8 else 28
    return struct.Struct(f"=HhHHHHH2xHH{union_size - 4}x")


@dataclass(frozen=True)
class FfEffect:
    """struct ff_effect restricted to rumble effects."""

    type: int = FF_RUMBLE
    id: int = -1
    direction: int = 0
    trigger_button: int = 0
    trigger_interval: int = 0
    replay_length: int = 0
    replay_delay: int = 0
    strong_magnitude: int = 0
    weak_magnitude: int = 0

    _STRUCT: ClassVar[struct.Struct] = _ff_effect_struct()
    size: ClassVar[int] = _STRUCT.size

    def pack(self) -> bytes:
        return self._STRUCT.pack(
            self.type,
            self.id,
            self.direction,
            self.trigger_button,
            self.trigger_interval,
            self.replay_length,
            self.replay_delay,
            self.strong_magnitude,
            self.weak_magnitude,
        )

    @classmethod
    def unpack(cls, data: bytes) -> "FfEffect":
        return cls(*cls._STRUCT.unpack(bytes(data)))


def _ioctl(fd: int, request: int, arg):
    if fcntl is None:
        raise OSError("ioctl is not available on this platform")
    if isinstance(arg, bytearray):
        fcntl.ioctl(fd, request, arg, True)
        return arg
    return fcntl.ioctl(fd, request, arg)


def _read_buffer(fd: int, nr: int, length: int) -> bytes:
    buf = bytearray(length)
    _ioctl(fd, request_code(IOC_READ, "E", nr, length), buf)
    return bytes(buf)


def eviocgbit(fd: int, ev: int, length: int) -> bytes:
    """Return the capability bitmap of event type ``ev``."""
    return _read_buffer(fd, 0x20 + ev, length)


def eviocgabs(fd: int, axis: int) -> AbsInfo:
    """Return the state and range of an absolute axis."""
    return AbsInfo.unpack(_read_buffer(fd, 0x40 + axis, AbsInfo.size))


def eviocgid(fd: int) -> InputId:
    """Return the device's bus, vendor, product and version ids."""
    return InputId.unpack(_read_buffer(fd, 0x02, InputId.size))


def eviocgname(fd: int) -> str:
    """Return the device name."""
    raw = _read_buffer(fd, 0x06, _NAME_LEN)
    return raw.split(b"\0", 1)[0].decode("utf-8", errors="replace")


def eviocgkey(fd: int, length: int) -> bytes:
    """Return the bitmap of keys currently held down."""
    return _read_buffer(fd, 0x18, length)


def eviocsff(fd: int, effect: FfEffect) -> FfEffect:
    """Upload a force-feedback effect; the result carries the id the kernel assigned."""
    buf = bytearray(effect.pack())
    _ioctl(fd, request_code(IOC_WRITE, "E", 0x80, FfEffect.size), buf)
    return FfEffect.unpack(buf)


def eviocrmff(fd: int, effect_id: int) -> None:
    """Remove a previously uploaded force-feedback effect."""
    _ioctl(fd, request_code(IOC_WRITE, "E", 0x81, _INT_SIZE), int(effect_id))