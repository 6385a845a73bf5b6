"""Sink volume control via pactl."""

from __future__ import annotations

import logging
import os
import re
import shutil
import subprocess  # nosec B404 - subprocess used for pactl interactions
from typing import Protocol

from .level import BoundedLevel, LevelError

_LOGGER = logging.getLogger("volsched.audio")

DEFAULT_SINK = "@DEFAULT_SINK@"
# Output format: "Volume: front-left: 32768 /  50% / -18.06 dB,   front-right: 32768 /  50% / -18.06 dB"
_VOLUME_RE = re.compile(r"(\d{1,3})%")


class VolumeError(Exception):
    """Base class for actuator failures."""


class VolumeCommandError(VolumeError):
    """pactl could not be spawned or exited non-zero."""

    def __init__(self, status: int, stderr: str) -> None:
        self.status = status
        self.stderr = stderr
        super().__init__(f"pactl returned non-zero exit status: {status}. stderr: {stderr}")


class VolumeParseError(VolumeError):
    """pactl's volume report did not contain a usable percentage."""

    def __init__(self, output: str) -> None:
        self.output = output
        super().__init__(f"Failed to parse volume from pactl output: {output.strip()!r}")


class VolumeControl(Protocol):
    """The two operations the scheduler needs from an actuator.

    Both calls may block and raise ``VolumeError`` on failure.
    """

    def get_level(self) -> BoundedLevel: ...

    def set_level(self, level: BoundedLevel) -> None: ...


def _runtime_env() -> dict[str, str]:
    env = os.environ.copy()
    env.setdefault("XDG_RUNTIME_DIR", f"/run/user/{os.getuid()}")
    return env


def _run_pactl(args: list[str], timeout: float | None = None) -> subprocess.CompletedProcess[str]:
    try:
        result = subprocess.run(  # nosec B603 B607 - hardcoded command array
            ["pactl", *args],
            capture_output=True,
            text=True,
            check=False,
            env=_runtime_env(),
            timeout=timeout,
        )
    except subprocess.TimeoutExpired as exc:
        raise VolumeCommandError(-1, f"pactl {' '.join(args)} timed out after {timeout}s") from exc
    except OSError as exc:
        raise VolumeCommandError(-1, f"failed to spawn pactl: {exc}") from exc
    if result.returncode != 0:
        raise VolumeCommandError(result.returncode, (result.stderr or "").strip())
    return result


def parse_volume_report(output: str) -> BoundedLevel:
    """Extract the first percentage token from ``pactl get-sink-volume`` output."""
    match = _VOLUME_RE.search(output)
    if not match:
        raise VolumeParseError(output)
    try:
        return BoundedLevel(int(match.group(1)))
    except LevelError as exc:
        # Boosted sinks report > 100%
        raise VolumeParseError(output) from exc


def pactl_available() -> bool:
    return shutil.which("pactl") is not None


class PactlVolumeControl:
    """Reads and writes a sink volume with the ``pactl`` command line tool."""

    def __init__(self, sink: str = DEFAULT_SINK, timeout: float | None = None) -> None:
        self.sink = sink
        self.timeout = timeout

    def get_level(self) -> BoundedLevel:
        result = _run_pactl(["get-sink-volume", self.sink], self.timeout)
        level = parse_volume_report(result.stdout)
        _LOGGER.debug("[audio] %s is at %s%%", self.sink, level)
        return level

    def set_level(self, level: BoundedLevel) -> None:
        _run_pactl(["set-sink-volume", self.sink, level.as_pactl()], self.timeout)
        _LOGGER.debug("[audio] Set %s to %s", self.sink, level.as_pactl())
