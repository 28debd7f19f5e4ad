"""Event, axis and power-supply types shared by the whole package."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from time import time as _now
from typing import Any, Optional, Union


@dataclass(frozen=True)
class ButtonPressed:
    """A button went down."""

    code: Any


@dataclass(frozen=True)
class ButtonReleased:
    """A button went up."""

    code: Any


@dataclass(frozen=True)
class AxisValueChanged:
    """An axis reported a new raw value."""

    value: int
    code: Any


@dataclass(frozen=True)
class Connected:
    """A gamepad was connected."""


@dataclass(frozen=True)
class Disconnected:
    """A gamepad was disconnected."""


EventType = Union[ButtonPressed, ButtonReleased, AxisValueChanged, Connected, Disconnected]


@dataclass(frozen=True)
class Event:
    """A gamepad event: the gamepad id, what happened and when (seconds since the epoch)."""

    id: int
    event: EventType
    time: float = field(default_factory=_now)


@dataclass(frozen=True)
class AxisInfo:
    """Expected range of an axis and its deadzone, if known."""

    min: int
    max: int
    deadzone: Optional[int] = None


class PowerStatus(enum.Enum):
    """State of a device's power supply."""

    UNKNOWN = "unknown"
    WIRED = "wired"
    DISCHARGING = "discharging"
    CHARGING = "charging"
    CHARGED = "charged"


_LEVELLED = (PowerStatus.CHARGING, PowerStatus.DISCHARGING)


@dataclass(frozen=True)
class PowerInfo:
    """Power supply state; ``level`` is the battery level while charging or discharging."""

    status: PowerStatus
    level: Optional[int] = None

    def __post_init__(self) -> None:
        if self.status in _LEVELLED:
            if self.level is None:
                raise ValueError(f"{self.status.value} power info needs a battery level")
            if not 0 <= self.level <= 255:
                raise ValueError(f"battery level out of range: {self.level}")
        elif self.level is not None:
            raise ValueError(f"{self.status.value} power info takes no battery level")

    @classmethod
    def unknown(cls) -> "PowerInfo":
        return cls(PowerStatus.UNKNOWN)

    @classmethod
    def wired(cls) -> "PowerInfo":
        return cls(PowerStatus.WIRED)

    @classmethod
    def charged(cls) -> "PowerInfo":
        return cls(PowerStatus.CHARGED)

    @classmethod
    def charging(cls, level: int) -> "PowerInfo":
        return cls(PowerStatus.CHARGING, level)

    @classmethod
    def discharging(cls, level: int) -> "PowerInfo":
        return cls(PowerStatus.DISCHARGING, level)


class GilrsError(Exception):
    """Raised when a gamepad context cannot be created."""


class UnsupportedPlatformError(GilrsError):
    """The current platform is not supported; ``context`` is a dummy context that can still be used."""

    def __init__(self, context: Any = None) -> None:
        super().__init__("Gilrs does not support current platform.")
        self.context = context