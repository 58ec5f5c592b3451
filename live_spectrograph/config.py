"""Application configuration defaults and validation.

Defines the SpectrographConfig dataclass and default values. This module should
not import UI or transport classes, and it should stay focused on configuration
data only.
"""

from __future__ import annotations

import os
import random
from dataclasses import dataclass, field, replace
from typing import Mapping, Optional, Union

Wavelength = Union[float, int, str]

ENV_PREFIX = "SPECTROGRAPH_"

# Public brokers known to work with the spectrometer bridge.
KNOWN_BROKERS = [
    "wss://public.cloud.shiftr.io",
    "wss://broker.emqx.io:8084/mqtt",
    "ws://broker.emqx.io:8083/mqtt",
    "wss://test.mosquitto.org:8081",
    "ws://localhost:1884",
]


def _default_wavelengths() -> list[Wavelength]:
    # AS7341 channel centers F1..F8, the NIR photodiode and the clear channel.
    return [415, 445, 480, 515, 555, 590, 630, 680, 910, "clear"]


def make_client_id(prefix: str) -> str:
    # Brokers drop an existing session when a second client reuses its id.
    return f"{prefix}-{random.randint(0, 999_999)}"


@dataclass
class SpectrographConfig:
    """
    Configuration for the live spectrograph.

    Notes
    The broker URL scheme selects the transport: mqtt/tcp, mqtts/ssl, ws, wss.
    Band order must match the order of values in each published frame.
    """

    # Public shiftr.io instance; it requires the public/public credentials.
    broker_url: str = "wss://public.cloud.shiftr.io"
    topic: str = "spectrometer"
    username: Optional[str] = "public"
    password: Optional[str] = "public"

    # Session settings passed straight to the transport.
    client_id_prefix: str = "mqttPyClient"
    client_id: Optional[str] = None
    clean_session: bool = True
    connect_timeout_ms: int = 10_000
    keepalive_s: int = 60

    # Spectrometer bands, in frame order.
    wavelengths: list[Wavelength] = field(default_factory=_default_wavelengths)

    # Reject frames carrying more tokens than bands.
    strict_frames: bool = False

    # Chart refresh period, independent of message rate.
    update_ms: int = 2000
    chart_title: str = "AS7341 Spectrometer"
    # Bar transition time, mirrors the chart animation of the browser client.
    animation_ms: int = 200

    # Headless server.
    server_host: str = "127.0.0.1"
    server_port: int = 8000

    log_level: str = "INFO"

    @property
    def num_bands(self) -> int:
        return len(self.wavelengths)

    def resolved_client_id(self) -> str:
        if self.client_id:
            return self.client_id
        self.client_id = make_client_id(self.client_id_prefix)
        return self.client_id

    def validate(self) -> None:
        if not self.broker_url.strip():
            raise ValueError("broker_url must not be empty")
        if not self.topic.strip():
            raise ValueError("topic must not be empty")
        if not self.wavelengths:
            raise ValueError("at least one band wavelength is required")
        if self.update_ms <= 0:
            raise ValueError("update_ms must be positive")
        if self.connect_timeout_ms <= 0:
            raise ValueError("connect_timeout_ms must be positive")
        if self.keepalive_s <= 0:
            raise ValueError("keepalive_s must be positive")
        if not 0 < self.server_port < 65536:
            raise ValueError("server_port must be a valid TCP port")

    def with_overrides(self, **updates: object) -> "SpectrographConfig":
        # Ignore unset CLI flags so defaults and environment values survive.
        applied = {key: value for key, value in updates.items() if value is not None}
        return replace(self, **applied)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "SpectrographConfig":
        env = os.environ if environ is None else environ
        cfg = cls()
        overrides: dict[str, object] = {}

        def _get(name: str) -> Optional[str]:
            value = env.get(ENV_PREFIX + name)
            if value is None:
                return None
            value = value.strip()
            return value or None

        for name, key in (
            ("BROKER", "broker_url"),
            ("TOPIC", "topic"),
            ("USERNAME", "username"),
            ("PASSWORD", "password"),
            ("CLIENT_ID", "client_id"),
            ("LOG_LEVEL", "log_level"),
        ):
            value = _get(name)
            if value is not None:
                overrides[key] = value

        update_ms = _get("UPDATE_MS")
        if update_ms is not None:
            overrides["update_ms"] = int(update_ms)

        wavelengths = _get("WAVELENGTHS")
        if wavelengths is not None:
            overrides["wavelengths"] = parse_wavelengths(wavelengths)

        return cfg.with_overrides(**overrides)


def parse_wavelengths(text: str) -> list[Wavelength]:
    """Parse ``"415,445,clear"`` into numbers and tags."""

    items: list[Wavelength] = []
    for token in text.split(","):
        token = token.strip()
        if not token:
            continue
        try:
            number = float(token)
        except ValueError:
            items.append(token)
            continue
        items.append(int(number) if number.is_integer() else number)
    return items
