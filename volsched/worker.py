"""Drive a single invocation from the current level to its target.

The worker reads the sink's current level once, builds an eased ramp that ends
at the invocation's deadline and then polls it every ``interval`` seconds,
pushing a new level only when the rounded value changes. When the deadline is
reached the exact target is pushed one final time.

Failures are not retried: any actuator error ends the invocation with a
``Failed`` outcome and the caller decides what happens next.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Literal

from .audio import VolumeControl, VolumeError
from .level import BoundedLevel, LevelError
from .ramp import VolumeRamp
from .schedule import Invocation

LOGGER = logging.getLogger("volsched.worker")

# 20 updates per second
RAMP_UPDATE_INTERVAL = 0.05

FailureStage = Literal["prime", "ramp", "set"]


@dataclass(frozen=True)
class Settled:
    level: BoundedLevel
    pushes: int


@dataclass(frozen=True)
class Failed:
    stage: FailureStage
    error: Exception

    @property
    def reason(self) -> str:
        return f"{self.stage}: {self.error}"


Outcome = Settled | Failed


class InvocationWorker:
    def __init__(
        self,
        control: VolumeControl,
        *,
        interval: float = RAMP_UPDATE_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if interval <= 0:
            raise ValueError("Ramp update interval must be positive")
        self._control = control
        self._interval = interval
        self._clock = clock
        self._sleep = sleep

    async def _push(self, level: BoundedLevel) -> None:
        await asyncio.to_thread(self._control.set_level, level)

    async def process(self, invocation: Invocation) -> Outcome:
        try:
            current = await asyncio.to_thread(self._control.get_level)
        except VolumeError as exc:
            LOGGER.error("[worker] Unable to read current volume: %s", exc)
            return Failed("prime", exc)

        ramp = VolumeRamp.new(current, invocation.level, invocation.deadline, invocation.ramp_duration)
        LOGGER.info(
            "[worker] Ramping %s%% -> %s%% over %.0fs",
            current,
            invocation.level,
            max(0.0, invocation.deadline - max(ramp.start, self._clock())),
        )

        last_set: BoundedLevel | None = None
        pushes = 0
        while True:
            now = self._clock()
            try:
                value = ramp.value_at(now)
            except LevelError as exc:
                LOGGER.error("[worker] Ramp produced an invalid level: %s", exc)
                return Failed("ramp", exc)

            try:
                if value != last_set:
                    await self._push(value)
                    last_set = value
                    pushes += 1

                if now >= invocation.deadline:
                    # Re-assert the exact target in case the last tick was missed
                    await self._push(invocation.level)
                    pushes += 1
                    LOGGER.info("[worker] Settled at %s%% after %d updates", invocation.level, pushes)
                    return Settled(invocation.level, pushes)
            except VolumeError as exc:
                LOGGER.error("[worker] Failed to set volume to %s%%: %s", value, exc)
                return Failed("set", exc)

            await self._sleep(self._interval)
