"""Daily volume targets and the "what happens next" query."""

from __future__ import annotations

import logging
import time as _time
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import datetime, time
from typing import Any, Literal

from .datetime_utils import ensure_utc, local_now, next_occurrence, parse_time_string, seconds_between
from .level import BoundedLevel, LevelError

LOGGER = logging.getLogger("volsched.schedule")

ScheduleErrorKind = Literal["time", "level", "item", "ramp"]

DEFAULT_RAMP_SECONDS = 180
DEFAULT_SCHEDULE_ITEMS: tuple[tuple[str, int], ...] = (
    ("08:00", 54),
    ("09:00", 23),
)


class ScheduleError(ValueError):
    """A schedule entry could not be parsed; the whole schedule is rejected."""

    def __init__(self, kind: ScheduleErrorKind, message: str, index: int | None = None) -> None:
        self.kind = kind
        self.index = index
        prefix = f"schedule item {index}: " if index is not None else ""
        super().__init__(prefix + message)


@dataclass(frozen=True, order=True)
class Target:
    time: time
    level: BoundedLevel

    def __str__(self) -> str:
        return f"{self.time:%H:%M} -> {self.level}%"


@dataclass(frozen=True)
class Invocation:
    """One concrete scheduled change.

    ``deadline`` is on the ``time.monotonic()`` clock so waiting for it is
    immune to wall-clock adjustments. ``occurrence`` is the wall-clock instant
    it was derived from and is informational only.
    """

    level: BoundedLevel
    deadline: float
    ramp_duration: float
    occurrence: datetime

    @property
    def ramp_start(self) -> float:
        return self.deadline - self.ramp_duration


def _split_item(raw: Any, index: int) -> tuple[Any, Any]:
    if isinstance(raw, Mapping):
        if "time" not in raw:
            raise ScheduleError("item", "missing 'time'", index)
        level = raw.get("volume", raw.get("level"))
        if level is None:
            raise ScheduleError("item", "missing 'volume'", index)
        return raw["time"], level
    try:
        time_value, level = raw
    except (TypeError, ValueError) as exc:
        raise ScheduleError("item", f"expected a (time, level) pair, got {raw!r}", index) from exc
    return time_value, level


def _parse_target(raw: Any, index: int) -> Target:
    time_value, level_value = _split_item(raw, index)
    if not isinstance(time_value, str):
        raise ScheduleError("time", f"time must be a string, got {time_value!r}", index)
    try:
        parsed_time = parse_time_string(time_value)
    except ValueError as exc:
        raise ScheduleError("time", str(exc), index) from exc
    try:
        if isinstance(level_value, str):
            level = BoundedLevel.parse(level_value)
        else:
            level = BoundedLevel(level_value)
    except LevelError as exc:
        raise ScheduleError("level", str(exc), index) from exc
    return Target(time=parsed_time, level=level)


@dataclass(frozen=True)
class Schedule:
    targets: tuple[Target, ...]
    ramp_duration: float = DEFAULT_RAMP_SECONDS

    def __post_init__(self) -> None:
        if self.ramp_duration < 0:
            raise ScheduleError("ramp", f"ramp duration must not be negative, got {self.ramp_duration}")
        # sorted() is stable: duplicate times keep their configured order
        object.__setattr__(self, "targets", tuple(sorted(self.targets, key=lambda target: target.time)))

    @classmethod
    def from_items(cls, raw_items: Iterable[Any], pre_ramp_seconds: float) -> Schedule:
        """Build a schedule from ``(time, level)`` pairs or ``{"time", "volume"}`` mappings.

        Any malformed item rejects the whole schedule.
        """
        targets = [_parse_target(raw, index) for index, raw in enumerate(raw_items)]
        return cls(targets=tuple(targets), ramp_duration=float(pre_ramp_seconds))

    @classmethod
    def default(cls) -> Schedule:
        return cls.from_items(DEFAULT_SCHEDULE_ITEMS, DEFAULT_RAMP_SECONDS)

    def __len__(self) -> int:
        return len(self.targets)

    def next(self, now: datetime | None = None, now_monotonic: float | None = None) -> Invocation | None:
        """Return the globally next invocation, or None when the schedule is empty."""
        if not self.targets:
            return None
        if now is None:
            now = local_now()
        if now_monotonic is None:
            now_monotonic = _time.monotonic()

        candidates = [(next_occurrence(target.time, now), target) for target in self.targets]
        # min() keeps the first of equal keys, so ties go to the earliest configured target
        winner_at, winner = min(candidates, key=lambda pair: ensure_utc(pair[0]))

        delta = seconds_between(now, winner_at)
        LOGGER.debug("[schedule] Next target %s at %s (in %.0fs)", winner, winner_at.isoformat(), delta)
        return Invocation(
            level=winner.level,
            deadline=now_monotonic + delta,
            ramp_duration=self.ramp_duration,
            occurrence=winner_at,
        )
