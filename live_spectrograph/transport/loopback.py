"""In-process transport with broker-like topic matching.

Used by demo mode and tests: published payloads are delivered straight back to
this client when a subscription matches, and lifecycle events can be injected.
"""

from __future__ import annotations

from typing import Optional

from paho.mqtt.client import topic_matches_sub

from live_spectrograph.transport.base import (
    BrokerAddress,
    ConnectError,
    ConnectOptions,
    Dispatch,
    TransportHandlers,
)


class LoopbackTransport(TransportHandlers):
    def __init__(self, dispatch: Optional[Dispatch] = None, auto_connect: bool = True) -> None:
        super().__init__(dispatch)
        self.auto_connect = auto_connect
        self.broker: Optional[BrokerAddress] = None
        self.options: Optional[ConnectOptions] = None
        self.connected = False
        self.subscriptions: list[str] = []
        self.subscribe_calls: list[str] = []
        self.published: list[tuple[str, bytes]] = []
        self.connect_error: Optional[str] = None

    def connect(self, broker: BrokerAddress, options: ConnectOptions) -> None:
        if self.connect_error is not None:
            raise ConnectError(self.connect_error)
        self.broker = broker
        self.options = options
        if self.auto_connect:
            self.simulate_connect()

    def subscribe(self, topic: str) -> None:
        if not self.connected:
            raise ConnectError("not connected")
        self.subscribe_calls.append(topic)
        if topic not in self.subscriptions:
            self.subscriptions.append(topic)
        self._emit("on_subscribe", True, "")

    def publish(self, topic: str, payload: bytes) -> None:
        if not self.connected:
            raise ConnectError("not connected")
        self.published.append((topic, bytes(payload)))
        self.deliver(topic, payload)

    def disconnect(self) -> None:
        if not self.connected:
            return
        self.connected = False
        if self.options is not None and self.options.clean:
            self.subscriptions.clear()
        self._emit("on_close", "client disconnected")

    def deliver(self, topic: str, payload: bytes | str) -> None:
        """Deliver a message as the broker would, if a subscription matches."""

        if isinstance(payload, str):
            payload = payload.encode("utf-8")
        if any(topic_matches_sub(sub, topic) for sub in self.subscriptions):
            self._emit("on_message", topic, bytes(payload))

    def simulate_connect(self) -> None:
        self.connected = True
        self._emit("on_connect")

    def simulate_close(self, reason: str = "connection lost") -> None:
        self.connected = False
        self._emit("on_close", reason)

    def simulate_error(self, reason: str = "transport error") -> None:
        self._emit("on_error", reason)
