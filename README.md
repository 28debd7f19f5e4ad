# padinput

Read gamepad events and drive rumble motors on Linux through the kernel's
evdev interface (`/dev/input/eventN` device nodes).

## Install

```
pip install padinput
```

## Watching events

The `padinput-events` command opens every gamepad it finds in the input
directory and prints each event as it arrives, including gamepads that are
plugged in or removed while it runs:

```
padinput-events
```

Options:

- `--input-dir DIR` – directory of device nodes (default `/dev/input`)
- `--no-watch` – only use the devices present at start, do not watch for new ones
- `--timeout SECONDS` – stop after this long without an event
- `--count N` – stop after N events
- `--log-level LEVEL` – `DEBUG`, `INFO`, `WARNING`, `ERROR` or `CRITICAL`;
  the default comes from the `PADINPUT_LOG` environment variable, else `WARNING`

It exits with status 1 if the context cannot be created and 130 when
stopped with Ctrl-C.

## Using the library

```python
from padinput.context import Gilrs
from padinput.types import AxisValueChanged, ButtonPressed, Connected

with Gilrs() as gilrs:
    while True:
        event = gilrs.next_event_blocking(None)
        if event is None:
            continue
        if isinstance(event.event, ButtonPressed):
            print(f"gamepad {event.id}: pressed {event.event.code}")
        elif isinstance(event.event, AxisValueChanged):
            print(f"gamepad {event.id}: axis {event.event.code} = {event.event.value}")
        elif isinstance(event.event, Connected):
            pad = gilrs.gamepad(event.id)
            print(f"gamepad {event.id} connected: {pad.name}")
```

`Gilrs(input_dir="/dev/input", *, watch=True, opener=None)` scans
`input_dir` for `eventN` nodes and, with `watch`, follows nodes that appear
or disappear there.

- `next_event()` returns at once, giving `None` when nothing is pending.
- `next_event_blocking(timeout)` waits up to `timeout` (seconds or a
  `timedelta`; `None` waits forever).
- `gamepad(id)` returns the gamepad for an id, which may since have been
  disconnected, or `None`.
- `last_gamepad_hint()` gives a number greater than every id seen so far.
- `close()` stops watching and releases every device; the context is also a
  context manager.

Each `Event` (in `padinput.types`) has an `id`, an `event` that is one of
`ButtonPressed`, `ButtonReleased`, `AxisValueChanged`, `Connected` or
`Disconnected`, and a `time` in seconds since the epoch. A gamepad that
comes back with the same UUID after being disconnected gets its old id.

Button and axis codes are `padinput.codes.EvCode` values (an event type and
a code); `padinput.codes` also names the usual gamepad layout, such as
`BTN_SOUTH`, `BTN_START` or `AXIS_LSTICKX`, though many devices differ.

### Gamepad details

A `padinput.gamepad.Gamepad` has `name`, `uuid` (the SDL-compatible model
UUID), `vendor_id`, `product_id`, `buttons`, `axes`, `is_connected` and
`is_ff_supported`. `axis_info(code)` gives an `AxisInfo` with the axis
range and deadzone, and `power_info()` the battery state read from sysfs:

```python
pad = gilrs.gamepad(0)
info = pad.power_info()
print(info.status, info.level)
```

`info.status` is a `PowerStatus`; `level` is set only while charging or
discharging.

### Rumble

When a gamepad supports force feedback, `ff_device()` returns a
`padinput.ff.FfDevice` that sets the strong and weak motor magnitudes
(0 to 65535) for at least a given duration, capped at 65535 ms:

```python
from datetime import timedelta

ff = pad.ff_device()
if ff is not None:
    with ff:
        ff.set_ff_state(0xFFFF, 0x8000, timedelta(milliseconds=500))
```

### Errors

Creating a `Gilrs` raises `GilrsError` when the input directory cannot be
read or watched. On systems other than Linux it raises
`UnsupportedPlatformError`, whose `context` attribute is an inert context
that never yields events.

## What it does not do

Only Linux evdev devices are supported. Devices are found by scanning and
watching the input directory for files; there is no udev enumeration or
udev hotplug monitoring. Legacy `js` joystick nodes are ignored.

## Permissions

Reading `/dev/input/event*` usually needs membership of the `input` group
or a matching udev rule.