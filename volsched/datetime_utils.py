"""Local time helpers for resolving daily times of day into concrete instants."""

from __future__ import annotations

import logging
import os
import re
from datetime import UTC, date, datetime, time, timedelta, tzinfo
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

LOGGER = logging.getLogger("volsched.datetime_utils")

_TIME_OF_DAY_RE = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$", re.ASCII)
_LOCALTIME_PATH = Path("/etc/localtime")
# Gaps are at most a few hours; a full day of probing means the zone data is broken.
_GAP_PROBE_STEP = timedelta(minutes=1)
_GAP_PROBE_LIMIT = 24 * 60


def local_zone() -> tzinfo:
    """Return the process's local time zone, preferring real zone rules over a fixed offset."""
    name = (os.environ.get("TZ") or "").lstrip(":")
    if name:
        try:
            return ZoneInfo(name)
        except (ZoneInfoNotFoundError, ValueError):
            LOGGER.debug("[time] TZ=%s is not a known zone; falling back", name)
    if _LOCALTIME_PATH.exists():
        try:
            with _LOCALTIME_PATH.open("rb") as handle:
                return ZoneInfo.from_file(handle, key="localtime")
        except (OSError, ValueError):
            LOGGER.debug("[time] Unable to read %s", _LOCALTIME_PATH, exc_info=True)
    fallback = datetime.now().astimezone().tzinfo
    return fallback or UTC


def local_now(zone: tzinfo | None = None) -> datetime:
    """Get current datetime in the local timezone."""
    return datetime.now(zone or local_zone())


def ensure_utc(dt: datetime) -> datetime:
    """Ensure datetime is in UTC timezone."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def parse_time_string(value: str) -> time:
    """Parse a strict 24-hour ``HH:MM`` string. Raises ValueError if invalid."""
    match = _TIME_OF_DAY_RE.fullmatch(value)
    if not match:
        raise ValueError(f"Invalid time format {value!r} (expected HH:MM)")
    return time(int(match.group(1)), int(match.group(2)))


def _exists(naive: datetime, zone: tzinfo) -> bool:
    candidate = naive.replace(tzinfo=zone, fold=0)
    round_trip = candidate.astimezone(UTC).astimezone(zone)
    return round_trip.replace(tzinfo=None) == naive


def resolve_local(naive: datetime, zone: tzinfo) -> datetime:
    """Attach ``zone`` to a naive wall-clock datetime.

    Ambiguous wall times (clocks falling back) resolve to the earlier instant.
    Wall times skipped by a spring-forward gap are probed forward a minute at
    a time until one exists.
    """
    probe = naive
    for _ in range(_GAP_PROBE_LIMIT):
        if _exists(probe, zone):
            # fold=0 is the earlier of two instants when the wall time repeats
            return probe.replace(tzinfo=zone, fold=0)
        probe = probe + _GAP_PROBE_STEP
    raise ValueError(f"Unable to resolve {naive.isoformat()} in {zone}")


def combine_date(day: date, time_of_day: time, zone: tzinfo) -> datetime:
    """Resolve ``time_of_day`` on ``day`` in ``zone``."""
    return resolve_local(datetime.combine(day, time_of_day), zone)


def next_occurrence(time_of_day: time, now: datetime) -> datetime:
    """Find the next instant at which ``time_of_day`` occurs after ``now``.

    ``now`` must be timezone-aware; its zone is used for resolution. An
    occurrence equal to ``now`` counts as already past, so the result is
    always strictly later than ``now``: today's occurrence if it is still
    ahead, otherwise tomorrow's.
    """
    if now.tzinfo is None:
        raise ValueError("now must be timezone-aware")
    zone = now.tzinfo
    today = combine_date(now.date(), time_of_day, zone)
    if ensure_utc(today) > ensure_utc(now):
        return today
    return combine_date(now.date() + timedelta(days=1), time_of_day, zone)


def seconds_between(start: datetime, end: datetime) -> float:
    """Elapsed seconds from ``start`` to ``end``, correct across offset changes."""
    return (ensure_utc(end) - ensure_utc(start)).total_seconds()
