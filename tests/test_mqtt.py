"""Tests for MQTT status publishing (volsched/mqtt.py)."""

from __future__ import annotations

import dataclasses
import json
import logging
from unittest.mock import MagicMock, patch

from volsched.mqtt import StatusMqtt


def test_init_without_logger(mqtt_config):
    client = StatusMqtt(mqtt_config)
    assert isinstance(client._logger, logging.Logger)
    assert client._client is None
    assert client.state_topic == "volsched/test-host/state"


@patch("paho.mqtt.client.Client")
def test_connect_disabled_without_host(mock_client_class, mqtt_config, mock_logger):
    config = dataclasses.replace(mqtt_config, host=None)
    client = StatusMqtt(config, mock_logger)
    client.connect()
    mock_client_class.assert_not_called()
    assert client.is_connected() is False


@patch("paho.mqtt.client.Client")
def test_connect_success(mock_client_class, mqtt_config, mock_logger):
    mock_client_instance = MagicMock()
    mock_client_class.return_value = mock_client_instance

    client = StatusMqtt(mqtt_config, mock_logger)
    client.connect()

    call_kwargs = mock_client_class.call_args[1]
    assert call_kwargs["client_id"] == "volsched-volsched-test-host"
    assert call_kwargs["clean_session"] is True
    mock_client_instance.will_set.assert_called_once_with(
        "volsched/test-host/state", payload='{"state": "offline"}', retain=True
    )
    mock_client_instance.connect.assert_called_once_with("localhost", 1883, keepalive=30)
    mock_client_instance.loop_start.assert_called_once()
    mock_client_instance.username_pw_set.assert_not_called()
    mock_client_instance.tls_set.assert_not_called()


@patch("paho.mqtt.client.Client")
def test_connect_is_idempotent(mock_client_class, mqtt_config, mock_logger):
    mock_client_class.return_value = MagicMock()
    client = StatusMqtt(mqtt_config, mock_logger)
    client.connect()
    client.connect()
    mock_client_class.assert_called_once()


@patch("paho.mqtt.client.Client")
def test_connect_with_tls_and_auth(mock_client_class, mqtt_config_with_tls, mock_logger):
    mock_client_instance = MagicMock()
    mock_client_class.return_value = mock_client_instance

    StatusMqtt(mqtt_config_with_tls, mock_logger).connect()

    mock_client_instance.username_pw_set.assert_called_once_with("mqtt_user", "mqtt_pass")
    tls_kwargs = mock_client_instance.tls_set.call_args[1]
    assert tls_kwargs["ca_certs"] == "/path/to/ca.crt"
    assert tls_kwargs["certfile"] == "/path/to/client.crt"
    assert tls_kwargs["keyfile"] == "/path/to/client.key"
    mock_client_instance.connect.assert_called_once_with("localhost", 8883, keepalive=30)


@patch("paho.mqtt.client.Client")
def test_connect_failure_is_logged(mock_client_class, mqtt_config, mock_logger):
    mock_client_instance = MagicMock()
    mock_client_instance.connect.side_effect = OSError("Connection refused")
    mock_client_class.return_value = mock_client_instance

    client = StatusMqtt(mqtt_config, mock_logger)
    client.connect()

    mock_logger.warning.assert_called_once()
    assert client._client is None
    mock_client_instance.loop_start.assert_not_called()


@patch("paho.mqtt.client.Client")
def test_publish_state(mock_client_class, mqtt_config, mock_logger):
    mock_client_instance = MagicMock()
    mock_client_class.return_value = mock_client_instance
    client = StatusMqtt(mqtt_config, mock_logger)
    client.connect()

    client.publish_state("waiting", level=54, at="2025-01-15T08:00:00+01:00")

    args, kwargs = mock_client_instance.publish.call_args
    assert args[0] == "volsched/test-host/state"
    assert json.loads(kwargs["payload"]) == {"state": "waiting", "level": 54, "at": "2025-01-15T08:00:00+01:00"}
    assert kwargs["retain"] is True


def test_publish_state_without_connection_is_noop(mqtt_config, mock_logger):
    StatusMqtt(mqtt_config, mock_logger).publish_state("settled", level=10)


@patch("paho.mqtt.client.Client")
def test_publish_state_skipped_while_disconnected(mock_client_class, mqtt_config, mock_logger):
    mock_client_instance = MagicMock()
    mock_client_instance.is_connected.return_value = False
    mock_client_class.return_value = mock_client_instance
    client = StatusMqtt(mqtt_config, mock_logger)
    client.connect()

    client.publish_state("ramping", level=40)

    mock_client_instance.publish.assert_not_called()


@patch("paho.mqtt.client.Client")
def test_publish_error_is_swallowed(mock_client_class, mqtt_config, mock_logger):
    mock_client_instance = MagicMock()
    mock_client_instance.publish.side_effect = RuntimeError("broker gone")
    mock_client_class.return_value = mock_client_instance
    client = StatusMqtt(mqtt_config, mock_logger)
    client.connect()

    client.publish_state("failed", reason="set: boom")

    mock_logger.debug.assert_called()


@patch("paho.mqtt.client.Client")
def test_disconnect(mock_client_class, mqtt_config, mock_logger):
    mock_client_instance = MagicMock()
    mock_client_class.return_value = mock_client_instance
    client = StatusMqtt(mqtt_config, mock_logger)
    client.connect()

    client.disconnect()

    mock_client_instance.loop_stop.assert_called_once()
    mock_client_instance.disconnect.assert_called_once()
    assert client._client is None
    client.disconnect()


@patch("paho.mqtt.client.Client")
def test_is_connected(mock_client_class, mqtt_config, mock_logger):
    mock_client_instance = MagicMock()
    mock_client_instance.is_connected.return_value = True
    mock_client_class.return_value = mock_client_instance
    client = StatusMqtt(mqtt_config, mock_logger)
    client.connect()
    assert client.is_connected() is True
