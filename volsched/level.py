"""Bounded volume level type."""

from __future__ import annotations

import re
from dataclasses import dataclass

LEVEL_MIN = 0
LEVEL_MAX = 100

_LEVEL_TEXT_RE = re.compile(r"^(\d{1,9})\s*%?$", re.ASCII)


class LevelError(ValueError):
    """Raised when a value cannot be represented as a volume level."""

    def __init__(self, value: object, message: str | None = None) -> None:
        self.value = value
        self.minimum = LEVEL_MIN
        self.maximum = LEVEL_MAX
        super().__init__(message or f"level {value!r} is out of range ({LEVEL_MIN}-{LEVEL_MAX} allowed)")


@dataclass(frozen=True, order=True)
class BoundedLevel:
    """An actuator setting in the closed range 0-100.

    Construction always validates; out-of-range input raises ``LevelError``
    rather than being clamped.
    """

    value: int

    def __post_init__(self) -> None:
        value = self.value
        if isinstance(value, bool) or not isinstance(value, int):
            if isinstance(value, float) and value.is_integer():
                object.__setattr__(self, "value", int(value))
                value = int(value)
            else:
                raise LevelError(value, f"level {value!r} is not an integer")
        if not LEVEL_MIN <= value <= LEVEL_MAX:
            raise LevelError(value)

    @classmethod
    def parse(cls, text: str) -> BoundedLevel:
        """Parse ``"42"`` or ``"42%"`` into a level."""
        match = _LEVEL_TEXT_RE.match(text.strip())
        if not match:
            raise LevelError(text, f"invalid level {text!r}")
        return cls(int(match.group(1)))

    def as_pactl(self) -> str:
        return f"{self.value}%"

    def __int__(self) -> int:
        return self.value

    def __str__(self) -> str:
        return str(self.value)
