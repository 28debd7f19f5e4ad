"""Rumble force feedback for evdev gamepads."""

from __future__ import annotations

import errno
import logging
import os
from datetime import timedelta
from typing import Optional, Union

from padinput import ioctl
from padinput.codes import EV_FF
from padinput.ioctl import FF_RUMBLE, FfEffect, InputEvent

log = logging.getLogger(__name__)

_U16_MAX = 0xFFFF

Duration = Union[timedelta, int, float]


def duration_to_millis(min_duration: Duration) -> int:
    """Whole milliseconds of a duration, capped at the 16-bit limit of an effect's length."""
    if not isinstance(min_duration, timedelta):
        min_duration = timedelta(seconds=min_duration)
    if min_duration < timedelta(0):
        raise ValueError(f"negative duration: {min_duration}")
    seconds = min_duration.days * 86400 + min_duration.seconds
    millis = seconds * 1000 + min_duration.microseconds // 1000
    return min(millis, _U16_MAX)


def _check_magnitude(name: str, value: int) -> None:
    if not 0 <= value <= _U16_MAX:
        raise ValueError(f"{name} magnitude out of range: {value}")


class FfDevice:
    """Controls the strong and weak rumble motors of a gamepad.

    Without a path the device is inert, as on platforms without force feedback.
    """

    def __init__(self, path: Optional[Union[str, os.PathLike]] = None) -> None:
        self._fd: Optional[int] = None
        self._effect = -1
        self._path = None if path is None else os.fspath(path)
        if self._path is None:
            return
        fd = os.open(self._path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o666)
        try:
            uploaded = ioctl.eviocsff(fd, FfEffect(type=FF_RUMBLE, id=-1))
        except OSError as exc:
            os.close(fd)
            raise OSError("Failed to create effect") from exc
        self._fd = fd
        self._effect = uploaded.id

    def __repr__(self) -> str:
        return f"FfDevice(path={self._path!r}, effect={self._effect})"

    def set_ff_state(self, strong: int, weak: int, min_duration: Duration) -> None:
        """Set the magnitudes of the strong and weak motors for at least ``min_duration``."""
        _check_magnitude("strong", strong)
        _check_magnitude("weak", weak)
        length = duration_to_millis(min_duration)
        if self._fd is None:
            return

        effect = FfEffect(
            type=FF_RUMBLE,
            id=self._effect,
            replay_length=length,
            replay_delay=0,
            strong_magnitude=strong,
            weak_magnitude=weak,
        )
        try:
            ioctl.eviocsff(self._fd, effect)
        except OSError as exc:
            log.error("Failed to modify effect of gamepad %s, error: %s", self._path, exc)
            return

        play = InputEvent(type=EV_FF, code=self._effect & 0xFFFF, value=1).pack()
        try:
            written = os.write(self._fd, play)
        except OSError as exc:
            log.error("Failed to set ff state: %s", exc)
            return
        if written != len(play):
            log.error("Short write while setting ff state: %d of %d bytes", written, len(play))

    def close(self) -> None:
        """Remove the uploaded effect and release the device."""
        fd, self._fd = self._fd, None
        if fd is None:
            return
        try:
            ioctl.eviocrmff(fd, self._effect)
        except OSError as exc:
            if exc.errno != errno.ENODEV:
                log.error("Failed to remove effect of gamepad %s: %s", self._path, exc)
        finally:
            os.close(fd)

    def __enter__(self) -> "FfDevice":
        return self

    def __exit__(self, *args) -> None:
        self.close()

    def __del__(self) -> None:
        try:
            self.close()
        except Exception:
            pass