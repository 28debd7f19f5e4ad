"""Gamepad context: discovery, hotplug handling and event retrieval for evdev devices."""

from __future__ import annotations

import logging
import os
import queue
import selectors
import sys
from collections import deque
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path
from typing import Callable, Deque, List, Optional, Tuple, Union

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from padinput.codes import INPUT_DIR_PATH, gamepad_paths
from padinput.gamepad import Gamepad
from padinput.types import (
    Connected,
    Disconnected,
    Event,
    GilrsError,
    UnsupportedPlatformError,
)

log = logging.getLogger(__name__)

_HOTPLUG = object()

Opener = Callable[[Path, Path, bool], Optional[Gamepad]]
Timeout = Union[None, int, float, timedelta]


@dataclass(frozen=True)
class _New:
    devpath: Path
    syspath: Path


@dataclass(frozen=True)
class _Removed:
    devpath: str


def _seconds(timeout: Timeout) -> Optional[float]:
    if timeout is None:
        return None
    seconds = timeout.total_seconds() if isinstance(timeout, timedelta) else float(timeout)
    if seconds < 0:
        raise ValueError(f"negative timeout: {timeout}")
    return seconds


class _HotplugHandler(FileSystemEventHandler):
    """Turns file-system changes in the input directory into hotplug notifications."""

    def __init__(self, notify: Callable[[str, bool], None]) -> None:
        super().__init__()
        self._notify = notify

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        src = os.fsdecode(event.src_path)
        if event.event_type in ("created", "modified"):
            self._notify(src, True)
        elif event.event_type == "deleted":
            self._notify(src, False)
        elif event.event_type == "moved":
            self._notify(src, False)
            self._notify(os.fsdecode(event.dest_path), True)


class Gilrs:
    """Manages connected gamepads and hands out their events one at a time.

    ``input_dir`` is scanned for ``eventN`` device nodes and, with ``watch``, observed
    for devices that appear or vanish. ``opener`` opens a node; it defaults to
    :meth:`Gamepad.open`.
    """

    def __init__(
        self,
        input_dir: Union[str, "os.PathLike[str]"] = INPUT_DIR_PATH,
        *,
        watch: bool = True,
        opener: Optional[Opener] = None,
    ) -> None:
        if not sys.platform.startswith("linux"):
            raise UnsupportedPlatformError(Gilrs._inert_context())
        self._setup(Path(input_dir), opener, with_io=True)
        try:
            self._scan()
            if watch:
                self._start_observer()
        except BaseException:
            self.close()
            raise

    @classmethod
    def _inert_context(cls) -> "Gilrs":
        ctx = cls.__new__(cls)
        ctx._setup(None, None, with_io=False)
        return ctx

    def _setup(self, input_dir: Optional[Path], opener: Optional[Opener], *, with_io: bool) -> None:
        self._closed = False
        self._inert = not with_io
        self._input_dir = input_dir
        self._opener: Opener = opener or Gamepad.open
        self._gamepads: List[Gamepad] = []
        self._to_check: Deque[int] = deque()
        self._hotplug: "queue.SimpleQueue[Union[_New, _Removed]]" = queue.SimpleQueue()
        self._observer = None
        self._selector: Optional[selectors.BaseSelector] = None
        self._wake_r: Optional[int] = None
        self._wake_w: Optional[int] = None
        if not with_io:
            return
        self._wake_r, self._wake_w = os.pipe()
        os.set_blocking(self._wake_r, False)
        os.set_blocking(self._wake_w, False)
        self._selector = selectors.DefaultSelector()
        self._selector.register(self._wake_r, selectors.EVENT_READ, _HOTPLUG)

    def __repr__(self) -> str:
        return (
            f"Gilrs(input_dir={self._input_dir!s}, gamepads={len(self._gamepads)}, "
            f"closed={self._closed})"
        )

    def _paths(self, name: str) -> Optional[Tuple[Path, Path]]:
        found = gamepad_paths(name)
        if found is None or self._input_dir is None:
            return None
        return self._input_dir / name, found[1]

    def _scan(self) -> None:
        try:
            names = sorted(entry.name for entry in os.scandir(self._input_dir))
        except OSError as exc:
            raise GilrsError(f"reading {self._input_dir} failed: {exc}") from exc
        for name in names:
            paths = self._paths(name)
            if paths is None:
                continue
            gamepad = self._opener(paths[0], paths[1], True)
            if gamepad is None:
                continue
            try:
                self._register(gamepad, len(self._gamepads))
            except (OSError, ValueError, KeyError) as exc:
                gamepad.close()
                raise GilrsError(f"registering gamepad for polling failed: {exc}") from exc
            self._gamepads.append(gamepad)

    def _start_observer(self) -> None:
        observer = Observer()
        try:
            observer.schedule(_HotplugHandler(self._notify), str(self._input_dir), recursive=False)
            observer.start()
        except OSError as exc:
            raise GilrsError(f"watching {self._input_dir} failed: {exc}") from exc
        log.debug("Started gilrs hotplug watcher on %s", self._input_dir)
        self._observer = observer

    def _register(self, gamepad: Gamepad, idx: int) -> None:
        self._selector.register(gamepad.fileno(), selectors.EVENT_READ, idx)

    def _notify(self, path: str, added: bool) -> None:
        paths = self._paths(Path(path).name)
        if paths is None:
            return
        devpath, syspath = paths
        self._hotplug.put(_New(devpath, syspath) if added else _Removed(os.fspath(devpath)))
        self._wake()

    def _wake(self) -> None:
        if self._wake_w is None:
            return
        try:
            os.write(self._wake_w, b"\0")
        except BlockingIOError:
            pass
        except OSError as exc:
            log.error("Failed to notify other thread about new hotplug events: %s", exc)

    def _drain_wake(self) -> None:
        while True:
            try:
                if not os.read(self._wake_r, 4096):
                    return
            except OSError:
                return

    def _check_open(self) -> None:
        if self._closed:
            raise ValueError("context is closed")

    def next_event(self) -> Optional[Event]:
        """Oldest pending event, or None if there is none right now."""
        return self._next_event(0.0)

    def next_event_blocking(self, timeout: Timeout = None) -> Optional[Event]:
        """Oldest event, waiting up to ``timeout`` (seconds or timedelta; None waits forever)."""
        return self._next_event(_seconds(timeout))

    def _next_event(self, timeout: Optional[float]) -> Optional[Event]:
        self._check_open()
        if self._inert:
            return None

        check_hotplug = False
        if not self._to_check:
            try:
                ready = self._selector.select(timeout)
            except OSError as exc:
                log.error("polling failed: %s", exc)
                return None
            if not ready:
                return None
            for key, _mask in ready:
                if key.data is _HOTPLUG:
                    check_hotplug = True
                else:
                    self._to_check.append(key.data)

        if check_hotplug:
            event = self._handle_hotplug()
            if event is not None:
                return event

        while self._to_check:
            idx = self._to_check[0]
            if not 0 <= idx < len(self._gamepads):
                log.warning("Somehow got invalid index from event")
                self._to_check.popleft()
                return None
            gamepad = self._gamepads[idx]
            if not gamepad.is_connected:
                self._to_check.popleft()
                continue
            result = gamepad.event()
            if result is None:
                self._to_check.popleft()
                continue
            kind, time = result
            return Event(idx, kind, time)
        return None

    def _handle_hotplug(self) -> Optional[Event]:
        self._drain_wake()
        while True:
            try:
                item = self._hotplug.get_nowait()
            except queue.Empty:
                return None
            event = self._apply_hotplug(item)
            if event is not None:
                if not self._hotplug.empty():
                    self._wake()
                return event

    def _apply_hotplug(self, item: Union[_New, _Removed]) -> Optional[Event]:
        if isinstance(item, _Removed):
            return self._remove(item.devpath)

        devpath = os.fspath(item.devpath)
        if any(gp.devpath == devpath and gp.is_connected for gp in self._gamepads):
            return None
        gamepad = self._opener(item.devpath, item.syspath, True)
        if gamepad is None:
            return None

        for idx, old in enumerate(self._gamepads):
            if old.uuid == gamepad.uuid and not old.is_connected:
                self._try_register(gamepad, idx)
                old.close()
                self._gamepads[idx] = gamepad
                return Event(idx, Connected())

        idx = len(self._gamepads)
        self._try_register(gamepad, idx)
        self._gamepads.append(gamepad)
        return Event(idx, Connected())

    def _try_register(self, gamepad: Gamepad, idx: int) -> None:
        try:
            self._register(gamepad, idx)
        except (OSError, ValueError, KeyError) as exc:
            log.error("Failed to add gamepad to poller: %s", exc)

    def _remove(self, devpath: str) -> Optional[Event]:
        for idx, gamepad in enumerate(self._gamepads):
            if gamepad.is_connected and gamepad.devpath == devpath:
                try:
                    self._selector.unregister(gamepad.fileno())
                except (KeyError, ValueError) as exc:
                    log.error("Failed to remove disconnected gamepad from poller: %s", exc)
                gamepad.disconnect()
                return Event(idx, Disconnected())
        log.debug("Could not find disconnected gamepad %s", devpath)
        return None

    def gamepad(self, id: int) -> Optional[Gamepad]:
        """The gamepad with this id, or None; it may be disconnected."""
        if 0 <= id < len(self._gamepads):
            return self._gamepads[id]
        return None

    def last_gamepad_hint(self) -> int:
        """A number greater than the id of every gamepad seen so far."""
        return len(self._gamepads)

    def close(self) -> None:
        """Stop watching for devices and release every gamepad."""
        if getattr(self, "_closed", True):
            return
        self._closed = True
        observer, self._observer = self._observer, None
        if observer is not None:
            observer.stop()
            observer.join()
        if self._selector is not None:
            self._selector.close()
        for fd in (self._wake_r, self._wake_w):
            if fd is not None:
                os.close(fd)
        self._wake_r = self._wake_w = None
        for gamepad in self._gamepads:
            gamepad.close()

    def __enter__(self) -> "Gilrs":
        return self

    def __exit__(self, *args) -> None:
        self.close()

    def __del__(self) -> None:
        try:
            self.close()
        except Exception:
            pass