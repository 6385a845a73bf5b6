"""
Shared parsing helpers for environment-driven settings

Provides:
- parse_bool, parse_int, parse_float: env-style conversion with fallback defaults
- strip_or_none: normalize blank strings to None
- sanitize_hostname: hostnames to MQTT-topic-safe identifiers
"""

from __future__ import annotations


def sanitize_hostname(hostname: str) -> str:
    """Convert hostnames to topic-safe identifiers."""
    return hostname.lower().replace(".", "_").replace(" ", "_")


def strip_or_none(value: str | None) -> str | None:
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None


def parse_bool(value: str | None, default: bool = False) -> bool:
    """Interpret env-style booleans."""
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def parse_int(value: str | None, default: int) -> int:
    """Best-effort int parser with fallback."""
    if value is None:
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def parse_float(value: str | None, default: float | None) -> float | None:
    """Best-effort float parser with fallback."""
    if value is None or not value.strip():
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default
