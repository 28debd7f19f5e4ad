[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "padinput"
version = "0.1.0"
description = "Gamepad input and rumble force feedback for Linux evdev devices"
requires-python = ">=3.10"
dependencies = [
    "watchdog",
]
keywords = ["gamepad", "joystick", "evdev", "input", "force-feedback", "rumble", "hotplug"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Games/Entertainment",
    "Topic :: Software Development :: Libraries",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
padinput-events = "padinput.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["padinput"]

[tool.pytest.ini_options]
addopts = "-ra"
