"""paho-mqtt transport.

Encapsulates paho client setup and translates its callbacks into transport
events. This module must not import UI classes. paho runs its network loop on
its own thread, so every event goes through the owner's dispatch callable.
"""

from __future__ import annotations

import logging
from typing import Optional

import paho.mqtt.client as mqtt
from paho.mqtt.enums import CallbackAPIVersion

from live_spectrograph.transport.base import (
    BrokerAddress,
    ConnectError,
    ConnectOptions,
    Dispatch,
    TransportHandlers,
)

logger = logging.getLogger(__name__)


class MqttTransport(TransportHandlers):
    """
    Small wrapper around a paho MQTT client.

    Reconnects are left to paho; the delay grows between the two bounds.
    """

    def __init__(
        self,
        dispatch: Optional[Dispatch] = None,
        reconnect_min_s: int = 1,
        reconnect_max_s: int = 30,
    ) -> None:
        super().__init__(dispatch)
        self.reconnect_min_s = int(reconnect_min_s)
        self.reconnect_max_s = int(reconnect_max_s)
        self._client: Optional[mqtt.Client] = None

    def connect(self, broker: BrokerAddress, options: ConnectOptions) -> None:
        if self._client is not None:
            self.disconnect()
        client = mqtt.Client(
            callback_api_version=CallbackAPIVersion.VERSION2,
            client_id=options.client_id,
            clean_session=options.clean,
            transport=broker.transport,
        )
        if broker.transport == "websockets":
            client.ws_set_options(path=broker.path or "/")
        if broker.tls:
            client.tls_set()
        if options.username:
            client.username_pw_set(options.username, options.password)
        client.connect_timeout = options.connect_timeout_ms / 1000.0
        client.reconnect_delay_set(min_delay=self.reconnect_min_s, max_delay=self.reconnect_max_s)

        client.on_connect = self._on_connect
        client.on_disconnect = self._on_disconnect
        client.on_message = self._on_message
        client.on_subscribe = self._on_subscribe
        client.on_connect_fail = self._on_connect_fail

        logger.info("connecting to %s as %s", broker.url, options.client_id)
        # Set before the network thread starts so its first callbacks are not dropped.
        self._client = client
        try:
            # Network I/O happens on paho's thread; failures come back as events.
            client.connect_async(broker.host, broker.port, keepalive=options.keepalive_s)
            client.loop_start()
        except (OSError, ValueError) as exc:
            self._client = None
            raise ConnectError(str(exc) or "failed to start MQTT client") from exc

    def subscribe(self, topic: str) -> None:
        if self._client is None:
            raise ConnectError("not connected")
        result, _mid = self._client.subscribe(topic)
        if result != mqtt.MQTT_ERR_SUCCESS:
            logger.warning("subscribe to %s failed: %s", topic, mqtt.error_string(result))
            self._emit("on_subscribe", False, mqtt.error_string(result))

    def publish(self, topic: str, payload: bytes) -> None:
        if self._client is None:
            raise ConnectError("not connected")
        self._client.publish(topic, payload)

    def disconnect(self) -> None:
        client = self._client
        if client is None:
            return
        self._client = None
        client.disconnect()
        client.loop_stop()

    def _is_stale(self, client) -> bool:
        # Events from a client already replaced by connect() or disconnect().
        return client is not self._client

    def _on_connect(self, client, userdata, flags, reason_code, properties) -> None:
        if self._is_stale(client):
            return
        if reason_code.is_failure:
            logger.warning("broker refused connection: %s", reason_code)
            self._emit("on_error", f"connection refused: {reason_code}")
            return
        self._emit("on_connect")

    def _on_disconnect(self, client, userdata, disconnect_flags, reason_code, properties) -> None:
        if self._is_stale(client):
            return
        self._emit("on_close", str(reason_code))

    def _on_connect_fail(self, client, userdata) -> None:
        if self._is_stale(client):
            return
        logger.warning("connection attempt failed")
        self._emit("on_error", "connection failed")

    def _on_message(self, client, userdata, msg) -> None:
        if self._is_stale(client):
            return
        self._emit("on_message", msg.topic, bytes(msg.payload))

    def _on_subscribe(self, client, userdata, mid, reason_code_list, properties) -> None:
        if self._is_stale(client):
            return
        failures = [str(code) for code in reason_code_list if code.is_failure]
        if failures:
            self._emit("on_subscribe", False, ", ".join(failures))
        else:
            self._emit("on_subscribe", True, "")
