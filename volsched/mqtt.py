"""Optional MQTT status publishing for the scheduler."""

from __future__ import annotations

import json
import logging
import ssl
import threading
from typing import Any

import paho.mqtt.client as mqtt

from .config import MqttConfig


class StatusMqtt:
    def __init__(self, config: MqttConfig, logger: logging.Logger | None = None) -> None:
        self.config = config
        self._logger = logger or logging.getLogger("volsched.mqtt")
        self._client: mqtt.Client | None = None
        self._lock = threading.Lock()

    @property
    def state_topic(self) -> str:
        return f"{self.config.topic_base}/state"

    def connect(self) -> None:
        if not self.config.host:
            self._logger.debug("[mqtt] MQTT host not configured; status publishing disabled")
            return
        with self._lock:
            if self._client is not None:
                return
            callback_kwargs: dict[str, object] = {}
            if hasattr(mqtt, "CallbackAPIVersion"):
                callback_kwargs["callback_api_version"] = mqtt.CallbackAPIVersion.VERSION2
            client = mqtt.Client(
                client_id=f"volsched-{self.config.topic_base.replace('/', '-')}",
                clean_session=True,
                **callback_kwargs,
            )
            if self.config.username:
                client.username_pw_set(self.config.username, self.config.password or "")
            if self.config.tls_enabled:
                tls_kwargs: dict[str, object] = {}
                if self.config.ca_cert:
                    tls_kwargs["ca_certs"] = self.config.ca_cert
                if self.config.cert:
                    tls_kwargs["certfile"] = self.config.cert
                if self.config.key:
                    tls_kwargs["keyfile"] = self.config.key
                tls_kwargs["tls_version"] = ssl.PROTOCOL_TLS_CLIENT
                client.tls_set(**tls_kwargs)
            client.will_set(self.state_topic, payload=json.dumps({"state": "offline"}), retain=True)
            try:
                client.connect(self.config.host, self.config.port, keepalive=30)
            except Exception as exc:
                self._logger.warning("[mqtt] Failed to connect to MQTT: %s", exc)
                return
            client.loop_start()
            self._client = client

    def disconnect(self) -> None:
        with self._lock:
            client = self._client
            self._client = None
        if client:
            client.loop_stop()
            client.disconnect()

    def is_connected(self) -> bool:
        client = self._client
        try:
            return bool(client and client.is_connected())
        except Exception:
            return False

    def publish_state(self, state: str, **fields: Any) -> None:
        client = self._client
        if not client or not self.is_connected():
            self._logger.debug("[mqtt] Not connected; dropping %s state", state)
            return
        payload = json.dumps({"state": state, **fields})
        try:
            client.publish(self.state_topic, payload=payload, qos=0, retain=True)
        except Exception as exc:
            self._logger.debug("[mqtt] Failed to publish state: %s", exc)
