"""Transport contract shared by the MQTT and loopback transports.

A transport connects to a broker, subscribes, publishes, and reports four
lifecycle events (connect, close, error, message) plus subscribe acks through
handler attributes. Handlers are invoked through a dispatch callable so the
owner decides which thread or event loop runs them.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional, Protocol
from urllib.parse import urlsplit

from live_spectrograph.config import SpectrographConfig

Dispatch = Callable[[Callable[[], None]], None]

DEFAULT_PORTS = {
    "mqtt": 1883,
    "tcp": 1883,
    "mqtts": 8883,
    "ssl": 8883,
    "ws": 80,
    "wss": 443,
}
WEBSOCKET_SCHEMES = {"ws", "wss"}
TLS_SCHEMES = {"mqtts", "ssl", "wss"}


def call_now(fn: Callable[[], None]) -> None:
    fn()


class ConnectError(Exception):
    """Transport-level failure to reach or stay connected to the broker."""


@dataclass(frozen=True)
class BrokerAddress:
    scheme: str
    host: str
    port: int
    path: str = ""

    @classmethod
    def parse(cls, url: str) -> "BrokerAddress":
        text = url.strip()
        if "://" not in text:
            text = "mqtt://" + text
        parts = urlsplit(text)
        scheme = parts.scheme.lower()
        if scheme not in DEFAULT_PORTS:
            raise ValueError(f"Unsupported broker scheme: {parts.scheme}")
        if not parts.hostname:
            raise ValueError(f"Broker URL has no host: {url}")
        port = parts.port or DEFAULT_PORTS[scheme]
        path = parts.path
        if scheme in WEBSOCKET_SCHEMES and not path:
            path = "/"
        return cls(scheme=scheme, host=parts.hostname, port=port, path=path)

    @property
    def transport(self) -> str:
        return "websockets" if self.scheme in WEBSOCKET_SCHEMES else "tcp"

    @property
    def tls(self) -> bool:
        return self.scheme in TLS_SCHEMES

    @property
    def url(self) -> str:
        return f"{self.scheme}://{self.host}:{self.port}{self.path}"


@dataclass(frozen=True)
class ConnectOptions:
    client_id: str
    clean: bool = True
    connect_timeout_ms: int = 10_000
    username: Optional[str] = None
    password: Optional[str] = None
    keepalive_s: int = 60

    @classmethod
    def from_config(cls, cfg: SpectrographConfig) -> "ConnectOptions":
        return cls(
            client_id=cfg.resolved_client_id(),
            clean=cfg.clean_session,
            connect_timeout_ms=int(cfg.connect_timeout_ms),
            username=cfg.username or None,
            password=cfg.password if cfg.username else None,
            keepalive_s=int(cfg.keepalive_s),
        )


class Transport(Protocol):
    on_connect: Optional[Callable[[], None]]
    on_close: Optional[Callable[[str], None]]
    on_error: Optional[Callable[[str], None]]
    on_message: Optional[Callable[[str, bytes], None]]
    on_subscribe: Optional[Callable[[bool, str], None]]

    def connect(self, broker: BrokerAddress, options: ConnectOptions) -> None: ...

    def subscribe(self, topic: str) -> None: ...

    def publish(self, topic: str, payload: bytes) -> None: ...

    def disconnect(self) -> None: ...

    def set_dispatch(self, dispatch: Dispatch) -> None: ...


class TransportHandlers:
    """Handler slots and dispatching shared by concrete transports."""

    def __init__(self, dispatch: Optional[Dispatch] = None) -> None:
        self.on_connect: Optional[Callable[[], None]] = None
        self.on_close: Optional[Callable[[str], None]] = None
        self.on_error: Optional[Callable[[str], None]] = None
        self.on_message: Optional[Callable[[str, bytes], None]] = None
        self.on_subscribe: Optional[Callable[[bool, str], None]] = None
        self._dispatch: Dispatch = dispatch or call_now

    def set_dispatch(self, dispatch: Dispatch) -> None:
        self._dispatch = dispatch

    def _emit(self, name: str, *args: object) -> None:
        def _call() -> None:
            # Resolve at call time so handlers bound after connect still fire.
            handler = getattr(self, name)
            if handler is not None:
                handler(*args)

        self._dispatch(_call)
