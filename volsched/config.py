"""Configuration loading for the volume scheduler.

The schedule itself lives in a TOML file::

    ramp_duration_seconds = 180

    [[schedule]]
    time = "08:00"
    volume = 54

Ambient settings (logging, pactl timeout, MQTT) come from environment
variables, parsed the same best-effort way everywhere.
"""

from __future__ import annotations

import logging
import os
import socket
import tomllib
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .audio import DEFAULT_SINK
from .schedule import Schedule, ScheduleError
from .scheduler import FAILURE_POLICIES, FailurePolicy
from .utils import parse_bool, parse_float, parse_int, sanitize_hostname, strip_or_none

LOGGER = logging.getLogger("volsched.config")

DEFAULT_CONFIG_PATH = Path("config.toml")
_MAX_RAW_VOLUME = 255


class ConfigError(Exception):
    """The configuration file could not be read or has the wrong structure."""


@dataclass(frozen=True)
class ScheduleItem:
    time: str
    volume: int


@dataclass(frozen=True)
class SchedulerConfig:
    ramp_duration_seconds: int
    schedule: tuple[ScheduleItem, ...]
    failure_policy: FailurePolicy = "stop"
    sink: str = DEFAULT_SINK

    def build_schedule(self) -> Schedule:
        return Schedule.from_items(
            [(item.time, item.volume) for item in self.schedule],
            self.ramp_duration_seconds,
        )

    @staticmethod
    def from_mapping(data: Mapping[str, Any]) -> SchedulerConfig:
        ramp = data.get("ramp_duration_seconds")
        if isinstance(ramp, bool) or not isinstance(ramp, int) or ramp < 0:
            raise ConfigError(f"ramp_duration_seconds must be a non-negative integer, got {ramp!r}")

        raw_schedule = data.get("schedule")
        if not isinstance(raw_schedule, list):
            raise ConfigError("schedule must be an array of tables")
        items = tuple(_parse_item(raw, index) for index, raw in enumerate(raw_schedule))

        policy = data.get("failure_policy", "stop")
        if policy not in FAILURE_POLICIES:
            raise ConfigError(f"failure_policy must be one of {', '.join(FAILURE_POLICIES)}, got {policy!r}")

        sink = data.get("sink", DEFAULT_SINK)
        if not isinstance(sink, str) or not sink.strip():
            raise ConfigError(f"sink must be a non-empty string, got {sink!r}")

        return SchedulerConfig(
            ramp_duration_seconds=ramp,
            schedule=items,
            failure_policy=policy,
            sink=sink.strip(),
        )


def _parse_item(raw: Any, index: int) -> ScheduleItem:
    if not isinstance(raw, Mapping):
        raise ConfigError(f"schedule[{index}] must be a table")
    time_value = raw.get("time")
    volume = raw.get("volume")
    if not isinstance(time_value, str):
        raise ConfigError(f"schedule[{index}].time must be a string")
    if isinstance(volume, bool) or not isinstance(volume, int) or not 0 <= volume <= _MAX_RAW_VOLUME:
        raise ConfigError(f"schedule[{index}].volume must be an integer between 0 and {_MAX_RAW_VOLUME}")
    return ScheduleItem(time=time_value, volume=volume)


def load_config(path: str | os.PathLike[str]) -> SchedulerConfig:
    try:
        with open(path, "rb") as handle:
            data = tomllib.load(handle)
    except OSError as exc:
        raise ConfigError(f"failed to read config file: {exc}") from exc
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"failed to parse config file: {exc}") from exc
    return SchedulerConfig.from_mapping(data)


def load_schedule(path: str | os.PathLike[str]) -> tuple[Schedule, SchedulerConfig | None]:
    """Load the user's schedule, falling back to the built-in default on any problem.

    The returned config is None when the fallback was used. A broken built-in
    default raises ``ScheduleError``.
    """
    try:
        config = load_config(path)
        schedule = config.build_schedule()
    except (ConfigError, ScheduleError) as exc:
        LOGGER.warning("[config] Using default schedule; could not load %s: %s", path, exc)
        return Schedule.default(), None
    LOGGER.info("[config] Loaded %d schedule entries from %s", len(schedule), path)
    return schedule, config


@dataclass(frozen=True)
class MqttConfig:
    host: str | None
    port: int
    username: str | None
    password: str | None
    tls_enabled: bool
    cert: str | None
    key: str | None
    ca_cert: str | None
    topic_base: str


@dataclass(frozen=True)
class RuntimeConfig:
    log_level: str
    pactl_timeout: float | None
    failure_policy: FailurePolicy | None
    mqtt: MqttConfig

    @staticmethod
    def from_env(env: Mapping[str, str] | None = None) -> RuntimeConfig:
        source = os.environ if env is None else env
        hostname = source.get("VOLSCHED_HOSTNAME") or socket.gethostname()

        policy = (source.get("VOLSCHED_FAILURE_POLICY") or "").strip().lower()
        timeout = parse_float(source.get("VOLSCHED_PACTL_TIMEOUT"), None)
        if timeout is not None and timeout <= 0:
            timeout = None

        topic_base = source.get("VOLSCHED_TOPIC_BASE") or f"volsched/{sanitize_hostname(hostname)}"
        mqtt = MqttConfig(
            host=strip_or_none(source.get("MQTT_HOST")),
            port=parse_int(source.get("MQTT_PORT"), 1883),
            username=strip_or_none(source.get("MQTT_USER") or source.get("MQTT_USERNAME")),
            password=strip_or_none(source.get("MQTT_PASS") or source.get("MQTT_PASSWORD")),
            tls_enabled=parse_bool(source.get("MQTT_TLS_ENABLED"), False),
            cert=strip_or_none(source.get("MQTT_CERT")),
            key=strip_or_none(source.get("MQTT_KEY")),
            ca_cert=strip_or_none(source.get("MQTT_CA_CERT")),
            topic_base=topic_base.rstrip("/"),
        )

        return RuntimeConfig(
            log_level=(source.get("VOLSCHED_LOG_LEVEL") or "INFO").strip().upper(),
            pactl_timeout=timeout,
            failure_policy=policy if policy in FAILURE_POLICIES else None,  # type: ignore[arg-type]
            mqtt=mqtt,
        )
