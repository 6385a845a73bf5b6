"""
Top-level wait/process loop

Repeatedly asks the schedule for the next invocation, sleeps until its
pre-ramp window opens and hands it to the worker. Invocations are processed
strictly one at a time. Every wait and every ramp races a shutdown event, so
setting the event ends the loop within one polling interval without any
further actuator calls.

Failure policy:
- stop: a failed invocation ends the loop (run() returns False)
- skip: the failure is logged and the loop immediately queries the next
  occurrence after the failed one. With overlapping targets that ramp may
  start before the failed deadline.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import Any, Literal, Protocol

from . import systemd_notify
from .datetime_utils import ensure_utc, local_now, seconds_between
from .schedule import Invocation, Schedule
from .worker import Failed, InvocationWorker, Outcome

LOGGER = logging.getLogger("volsched.scheduler")

FailurePolicy = Literal["stop", "skip"]
FAILURE_POLICIES: tuple[str, ...] = ("stop", "skip")

# Upper bound for a single sleep while waiting for a ramp window
MAX_WAIT_SLICE = 60.0


class StatePublisher(Protocol):
    def publish_state(self, state: str, **fields: Any) -> None: ...


class VolumeScheduler:
    def __init__(
        self,
        schedule: Schedule,
        worker: InvocationWorker,
        *,
        failure_policy: FailurePolicy = "stop",
        publisher: StatePublisher | None = None,
        clock: Callable[[], float] = time.monotonic,
        now: Callable[[], datetime] = local_now,
    ) -> None:
        if failure_policy not in FAILURE_POLICIES:
            raise ValueError(f"Unknown failure policy: {failure_policy}")
        self.schedule = schedule
        self.worker = worker
        self.failure_policy = failure_policy
        self._publisher = publisher
        self._clock = clock
        self._now = now

    def _publish(self, state: str, **fields: Any) -> None:
        if self._publisher is not None:
            self._publisher.publish_state(state, **fields)

    def _next_invocation(self, previous: datetime | None) -> Invocation | None:
        now = self._now()
        mono = self._clock()
        if previous is not None and ensure_utc(now) < ensure_utc(previous):
            # Never hand out the occurrence just processed again: query from its instant instead
            return self.schedule.next(previous, mono + seconds_between(now, previous))
        return self.schedule.next(now, mono)

    async def _wait_until(self, deadline: float, stop_event: asyncio.Event) -> bool:
        """Sleep until the monotonic ``deadline``. Returns False if stopped first."""
        while True:
            remaining = deadline - self._clock()
            if remaining <= 0:
                return True
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=min(remaining, MAX_WAIT_SLICE))
            except TimeoutError:
                continue
            return False

    async def _race(self, work: Awaitable[Outcome], stop_event: asyncio.Event) -> Outcome | None:
        task = asyncio.ensure_future(work)
        stopper = asyncio.ensure_future(stop_event.wait())
        try:
            done, _ = await asyncio.wait({task, stopper}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            stopper.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await stopper
        if task in done:
            return task.result()
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
        return None

    async def run(self, stop_event: asyncio.Event) -> bool:
        """Run until stopped. Returns False when a failure ended the loop."""
        previous: datetime | None = None
        while not stop_event.is_set():
            invocation = self._next_invocation(previous)
            if invocation is None:
                LOGGER.info("[scheduler] Schedule is empty; nothing to do")
                self._publish("idle")
                systemd_notify.status("Schedule is empty")
                return True

            when = invocation.occurrence.isoformat()
            LOGGER.info(
                "[scheduler] Next: %s%% at %s (ramp starts in %.0fs)",
                invocation.level,
                when,
                max(0.0, invocation.ramp_start - self._clock()),
            )
            self._publish("waiting", level=invocation.level.value, at=when)
            systemd_notify.status(f"Next: {invocation.level}% at {when}")

            if not await self._wait_until(invocation.ramp_start, stop_event):
                break

            self._publish("ramping", level=invocation.level.value, at=when)
            outcome = await self._race(self.worker.process(invocation), stop_event)
            if outcome is None:
                LOGGER.info("[scheduler] Shutdown requested; abandoning ramp to %s%%", invocation.level)
                break
            previous = invocation.occurrence

            if isinstance(outcome, Failed):
                LOGGER.error("[scheduler] Invocation for %s failed (%s)", when, outcome.reason)
                self._publish("failed", level=invocation.level.value, at=when, reason=outcome.reason)
                if self.failure_policy == "stop":
                    return False
                continue

            self._publish("settled", level=outcome.level.value, at=when)

        self._publish("stopped")
        return True
