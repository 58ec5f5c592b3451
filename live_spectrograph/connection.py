"""Broker connection lifecycle and message intake.

ConnectionManager owns the transport, drives ConnectionState from transport
events, decodes telemetry messages, and writes frames into the store. No
exception leaves a handler: failures become state changes and status text.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Callable, Optional

from paho.mqtt.client import topic_matches_sub

from live_spectrograph.protocol import MalformedFrame, decode_frame
from live_spectrograph.status import StatusBoard
from live_spectrograph.store import TelemetryStore
from live_spectrograph.transport.base import (
    BrokerAddress,
    ConnectError,
    ConnectOptions,
    Transport,
)

logger = logging.getLogger(__name__)

CONNECTED_TEXT = "client is connected"
SUBSCRIBED_TEXT = "Subscribed to broker."
CLOSED_PREFIX = "onConnectionLost:"


class ConnectionState(Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    ERROR = "error"


StateCallback = Callable[[ConnectionState], None]


class ConnectionManager:
    def __init__(
        self,
        transport: Transport,
        broker: BrokerAddress,
        options: ConnectOptions,
        topic: str,
        num_bands: int,
        store: TelemetryStore,
        status: StatusBoard,
        strict_frames: bool = False,
    ) -> None:
        self.transport = transport
        self.broker = broker
        self.options = options
        self.topic = topic
        self.num_bands = int(num_bands)
        self.store = store
        self.status = status
        self.strict_frames = strict_frames

        self._state = ConnectionState.DISCONNECTED
        self._listeners: list[StateCallback] = []
        self.last_error: Optional[str] = None
        self.last_rejection: Optional[MalformedFrame] = None
        self.messages_received = 0
        self.frames_decoded = 0
        self.frames_rejected = 0

        transport.on_connect = self.handle_connect
        transport.on_close = self.handle_close
        transport.on_error = self.handle_error
        transport.on_message = self.handle_message
        transport.on_subscribe = self.handle_subscribe

    @property
    def state(self) -> ConnectionState:
        return self._state

    def add_listener(self, callback: StateCallback) -> None:
        self._listeners.append(callback)

    def remove_listener(self, callback: StateCallback) -> None:
        if callback in self._listeners:
            self._listeners.remove(callback)

    def start(self) -> bool:
        if self._state in (ConnectionState.CONNECTING, ConnectionState.CONNECTED):
            return True
        self._set_state(ConnectionState.CONNECTING)
        try:
            self.transport.connect(self.broker, self.options)
        except ConnectError as exc:
            self.handle_error(str(exc) or "connect failed")
            return False
        return True

    def stop(self) -> None:
        self.transport.disconnect()
        if self._state is not ConnectionState.DISCONNECTED:
            self._set_state(ConnectionState.DISCONNECTED)

    def handle_connect(self) -> None:
        self.last_error = None
        self._set_state(ConnectionState.CONNECTED)
        self.status.set_connection_text(CONNECTED_TEXT)
        try:
            self.transport.subscribe(self.topic)
        except ConnectError as exc:
            self.handle_error(str(exc) or "subscribe failed")

    def handle_close(self, reason: str = "") -> None:
        logger.info("connection closed: %s", reason)
        self._set_state(ConnectionState.DISCONNECTED)
        self.status.set_connection_text(f"{CLOSED_PREFIX}{reason}")

    def handle_error(self, reason: str = "") -> None:
        # Non-terminal: the transport keeps retrying and the last frame stays.
        logger.warning("transport error: %s", reason)
        self.last_error = reason
        self._set_state(ConnectionState.ERROR)
        self.status.set_connection_text(reason)

    def handle_subscribe(self, ok: bool, reason: str = "") -> None:
        if ok:
            self.status.set_connection_text(SUBSCRIBED_TEXT)
        else:
            logger.warning("subscribe to %s rejected: %s", self.topic, reason)
            self.status.set_connection_text(reason or "subscribe failed")

    def handle_message(self, topic: str, payload: bytes) -> None:
        if not topic_matches_sub(self.topic, topic):
            return
        self.messages_received += 1
        result = decode_frame(payload, self.num_bands, strict=self.strict_frames)
        if isinstance(result, MalformedFrame):
            self.frames_rejected += 1
            self.last_rejection = result
            logger.debug("dropped frame on %s: %s", topic, result.reason)
            self.status.set_diagnostic(f"dropped frame: {result.reason}")
            return
        self.frames_decoded += 1
        self.store.update(result)
        self.status.set_last_frame(result.received_at)

    def _set_state(self, state: ConnectionState) -> None:
        if state is self._state:
            return
        logger.info("connection state %s -> %s", self._state.value, state.value)
        self._state = state
        for callback in list(self._listeners):
            try:
                callback(state)
            except Exception:
                logger.exception("state listener failed")
                continue
