"""Eased volume ramps."""

from __future__ import annotations

import math
from dataclasses import dataclass

from .level import LEVEL_MAX, LEVEL_MIN, BoundedLevel


def smootherstep(t: float) -> float:
    """Quintic ease with zero first and second derivatives at 0 and 1."""
    return t * t * t * (t * (t * 6.0 - 15.0) + 10.0)


@dataclass(frozen=True)
class VolumeRamp:
    """A single ramp from ``from_level`` to ``to_level`` ending at ``end``.

    Times are seconds on the monotonic clock. ``value_at`` is a pure function
    of the stored fields and may be queried any number of times.
    """

    from_level: BoundedLevel
    to_level: BoundedLevel
    start: float
    end: float

    @classmethod
    def new(cls, current: BoundedLevel, target: BoundedLevel, deadline: float, duration: float) -> VolumeRamp:
        return cls(from_level=current, to_level=target, start=deadline - duration, end=deadline)

    def value_at(self, now: float) -> BoundedLevel:
        if now <= self.start:
            return self.from_level
        if now >= self.end:
            return self.to_level

        progress = smootherstep((now - self.start) / (self.end - self.start))
        start_value = self.from_level.value
        value = start_value + (self.to_level.value - start_value) * progress
        rounded = math.floor(value + 0.5)
        return BoundedLevel(max(LEVEL_MIN, min(LEVEL_MAX, rounded)))
