"""Shared test fixtures for the volsched test suite.

This module provides reusable fixtures for:
- A scriptable in-memory volume control
- A fake monotonic clock whose sleep advances time instantly
- MQTT configuration objects
"""

from __future__ import annotations

import asyncio
import logging
from unittest.mock import Mock

import pytest

from volsched.audio import VolumeCommandError
from volsched.config import MqttConfig
from volsched.level import BoundedLevel

# ============================================================================
# Pytest Configuration
# ============================================================================


@pytest.fixture(scope="session")
def anyio_backend():
    """Configure anyio backend for async tests."""
    return "asyncio"


@pytest.fixture
def mock_logger():
    """Create a mock logger for testing."""
    return Mock(spec=logging.Logger)


# ============================================================================
# Actuator Fakes
# ============================================================================


class FakeVolumeControl:
    """In-memory actuator that records every level pushed to it."""

    def __init__(self, level: int = 50) -> None:
        self.level = BoundedLevel(level)
        self.pushed: list[int] = []
        self.get_calls = 0
        self.fail_get: Exception | None = None
        self.fail_set_after: int | None = None

    def get_level(self) -> BoundedLevel:
        self.get_calls += 1
        if self.fail_get is not None:
            raise self.fail_get
        return self.level

    def set_level(self, level: BoundedLevel) -> None:
        if self.fail_set_after is not None and len(self.pushed) >= self.fail_set_after:
            raise VolumeCommandError(1, "Connection failure: Connection refused")
        self.pushed.append(level.value)
        self.level = level


@pytest.fixture
def volume_control():
    """Create a fake volume control starting at 50%."""
    return FakeVolumeControl()


class FakeClock:
    """Monotonic clock stand-in; ``sleep`` advances it without waiting."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds
        await asyncio.sleep(0)


@pytest.fixture
def fake_clock():
    return FakeClock()


# ============================================================================
# MQTT Fixtures
# ============================================================================


@pytest.fixture
def mqtt_config():
    """Create a basic MQTT configuration for testing."""
    return MqttConfig(
        host="localhost",
        port=1883,
        username=None,
        password=None,
        tls_enabled=False,
        cert=None,
        key=None,
        ca_cert=None,
        topic_base="volsched/test-host",
    )


@pytest.fixture
def mqtt_config_with_tls():
    """Create MQTT configuration with TLS and credentials."""
    return MqttConfig(
        host="localhost",
        port=8883,
        username="mqtt_user",
        password="mqtt_pass",
        tls_enabled=True,
        cert="/path/to/client.crt",
        key="/path/to/client.key",
        ca_cert="/path/to/ca.crt",
        topic_base="volsched/test-host",
    )
