"""Gamepad input, hotplug handling and rumble force feedback for Linux evdev devices."""

__version__ = "0.1.0"