"""Band/frame types, the telemetry frame decoder, and headless wire helpers.

Telemetry frames arrive as comma-separated text, one token per band in the
configured band order, with no length prefix or checksum. Decoding is lenient:
tokens are kept as received and only a token-count shortfall is rejected.

Wire messages for the headless server are dict objects built via helpers and
validated against the JSON schema returned by ``protocol_json_schema``.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Iterable, Optional, Sequence, Union

import numpy as np

from live_spectrograph.color import Rgba, as_wavelength

FRAME_DELIMITER = ","

PROTO_VERSION = "1.0"
MESSAGE_TYPES = {"status", "chart", "bands"}
CONNECTION_STATES = ("disconnected", "connecting", "connected", "error")


@dataclass(frozen=True)
class BandSpec:
    """One spectral channel: its position in a frame and its wavelength or tag."""

    index: int
    wavelength: Union[float, int, str]

    @property
    def label(self) -> str:
        wl = as_wavelength(self.wavelength)
        if wl is None:
            return str(self.wavelength)
        return f"{wl:g}"

    @property
    def is_tag(self) -> bool:
        return as_wavelength(self.wavelength) is None


def build_band_specs(wavelengths: Iterable[Union[float, int, str]]) -> tuple[BandSpec, ...]:
    bands = tuple(BandSpec(index=i, wavelength=wl) for i, wl in enumerate(wavelengths))
    if not bands:
        raise ValueError("at least one band is required")
    return bands


@dataclass(frozen=True)
class Frame:
    """One decoded set of per-band readings plus its arrival time."""

    readings: tuple[str, ...]
    received_at: datetime

    def __len__(self) -> int:
        return len(self.readings)

    def values(self) -> np.ndarray:
        # Non-numeric tokens become NaN; decoding does not reject them.
        out = np.full(len(self.readings), np.nan, dtype=np.float64)
        for i, token in enumerate(self.readings):
            try:
                value = float(token)
            except ValueError:
                continue
            # "inf" and overflowing tokens such as "1e999" are not readings either.
            if math.isfinite(value):
                out[i] = value
        return out


class DecodeError(Exception):
    """A payload that could not be turned into a Frame."""


class MalformedFrame(DecodeError):
    def __init__(self, reason: str, token_count: int, expected: int) -> None:
        super().__init__(reason)
        self.reason = reason
        self.token_count = token_count
        self.expected = expected


DecodeResult = Union[Frame, MalformedFrame]


def decode_frame(
    raw: Union[bytes, bytearray, str],
    expected_bands: int,
    *,
    strict: bool = False,
    now: Optional[datetime] = None,
) -> DecodeResult:
    """Decode one payload; returns the Frame or a MalformedFrame, never raises."""

    if isinstance(raw, (bytes, bytearray)):
        text = bytes(raw).decode("utf-8", errors="replace")
    else:
        text = str(raw)
    # Serial bridges usually forward the sensor's line terminator.
    tokens = [token.strip() for token in text.strip().split(FRAME_DELIMITER)]
    count = len(tokens)
    if count < expected_bands:
        return MalformedFrame(
            f"expected {expected_bands} values, got {count}",
            token_count=count,
            expected=expected_bands,
        )
    if strict and count != expected_bands:
        return MalformedFrame(
            f"expected exactly {expected_bands} values, got {count}",
            token_count=count,
            expected=expected_bands,
        )
    return Frame(
        readings=tuple(tokens[:expected_bands]),
        received_at=now or datetime.now(),
    )


def encode_frame(values: Sequence[Union[float, int, str]]) -> str:
    """Format readings the way the spectrometer bridge publishes them."""

    return FRAME_DELIMITER.join(_format_reading(value) for value in values)


def _format_reading(value: Union[float, int, str]) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def protocol_json_schema() -> dict[str, Any]:
    """Return the JSON schema for headless status, chart and band messages."""

    base_fields = {
        "proto_version": {"const": PROTO_VERSION},
        "type": {"enum": sorted(MESSAGE_TYPES)},
        "seq": {"type": "integer", "minimum": 0},
    }
    color_item = {
        "type": "object",
        "properties": {
            "css": {"type": "string"},
            "hex": {"type": "string", "pattern": "^#[0-9a-f]{6}$"},
            "alpha": {"type": "number", "minimum": 0, "maximum": 1},
        },
        "required": ["css", "hex", "alpha"],
        "additionalProperties": False,
    }

    return {
        "$schema": "https://json-schema.org/draft/2020-12/schema",
        "title": "Live Spectrograph v1.0 Messages",
        "type": "object",
        "oneOf": [
            {
                "title": "Status Message",
                "type": "object",
                "properties": {
                    **base_fields,
                    "type": {"const": "status"},
                    "state": {"enum": list(CONNECTION_STATES)},
                    "broker": {"type": "string"},
                    "topic": {"type": "string"},
                    "connection_text": {"type": "string"},
                    "timestamp_text": {"type": "string"},
                    "diagnostic_text": {"type": ["string", "null"]},
                    "last_frame_at": {"type": ["string", "null"]},
                    "messages_received": {"type": "integer", "minimum": 0},
                    "frames_decoded": {"type": "integer", "minimum": 0},
                    "frames_rejected": {"type": "integer", "minimum": 0},
                    "frames_skipped": {"type": "integer", "minimum": 0},
                },
                "required": [
                    "proto_version",
                    "type",
                    "seq",
                    "state",
                    "broker",
                    "topic",
                    "connection_text",
                    "timestamp_text",
                    "diagnostic_text",
                    "last_frame_at",
                    "messages_received",
                    "frames_decoded",
                    "frames_rejected",
                    "frames_skipped",
                ],
                "additionalProperties": False,
            },
            {
                "title": "Chart Message",
                "type": "object",
                "properties": {
                    **base_fields,
                    "type": {"const": "chart"},
                    "title": {"type": "string"},
                    "labels": {"type": "array", "items": {"type": "string"}, "minItems": 1},
                    "data": {"type": "array", "items": {"type": ["number", "null"]}},
                    "background_color": {"type": "array", "items": color_item},
                    "received_at": {"type": ["string", "null"]},
                },
                "required": [
                    "proto_version",
                    "type",
                    "seq",
                    "title",
                    "labels",
                    "data",
                    "background_color",
                    "received_at",
                ],
                "additionalProperties": False,
            },
            {
                "title": "Bands Message",
                "type": "object",
                "properties": {
                    **base_fields,
                    "type": {"const": "bands"},
                    "bands": {
                        "type": "array",
                        "minItems": 1,
                        "items": {
                            "type": "object",
                            "properties": {
                                "index": {"type": "integer", "minimum": 0},
                                "label": {"type": "string"},
                                "wavelength_nm": {"type": ["number", "null"]},
                                "color": color_item,
                            },
                            "required": ["index", "label", "wavelength_nm", "color"],
                            "additionalProperties": False,
                        },
                    },
                },
                "required": ["proto_version", "type", "seq", "bands"],
                "additionalProperties": False,
            },
        ],
    }


def make_message_base(*, message_type: str, seq: int) -> dict[str, Any]:
    if message_type not in MESSAGE_TYPES:
        raise ValueError(f"Unsupported message type: {message_type}")
    return {"proto_version": PROTO_VERSION, "type": message_type, "seq": int(seq)}


def color_to_wire(color: Rgba) -> dict[str, Any]:
    return {"css": color.to_css(), "hex": color.to_hex(), "alpha": float(color.alpha)}


def _iso(ts: Optional[datetime]) -> Optional[str]:
    return ts.isoformat() if ts is not None else None


def status_to_wire(
    *,
    seq: int,
    state: str,
    broker: str,
    topic: str,
    connection_text: str,
    timestamp_text: str,
    diagnostic_text: Optional[str],
    last_frame_at: Optional[datetime],
    messages_received: int,
    frames_decoded: int,
    frames_rejected: int,
    frames_skipped: int,
) -> dict[str, Any]:
    if state not in CONNECTION_STATES:
        raise ValueError(f"Unknown connection state: {state}")
    message = make_message_base(message_type="status", seq=seq)
    message.update(
        {
            "state": state,
            "broker": str(broker),
            "topic": str(topic),
            "connection_text": str(connection_text),
            "timestamp_text": str(timestamp_text),
            "diagnostic_text": diagnostic_text,
            "last_frame_at": _iso(last_frame_at),
            "messages_received": int(messages_received),
            "frames_decoded": int(frames_decoded),
            "frames_rejected": int(frames_rejected),
            "frames_skipped": int(frames_skipped),
        }
    )
    return message


def chart_to_wire(
    *,
    seq: int,
    title: str,
    labels: Sequence[str],
    data: Sequence[float],
    colors: Sequence[Rgba],
    received_at: Optional[datetime],
) -> dict[str, Any]:
    message = make_message_base(message_type="chart", seq=seq)
    message.update(
        {
            "title": str(title),
            "labels": [str(label) for label in labels],
            # JSON has no NaN or Infinity; such readings are sent as null.
            "data": [float(v) if math.isfinite(float(v)) else None for v in data],
            "background_color": [color_to_wire(color) for color in colors],
            "received_at": _iso(received_at),
        }
    )
    return message


def bands_to_wire(
    *,
    seq: int,
    bands: Sequence[BandSpec],
    colors: Sequence[Rgba],
) -> dict[str, Any]:
    if len(bands) != len(colors):
        raise ValueError("bands and colors must have matching lengths")
    message = make_message_base(message_type="bands", seq=seq)
    message["bands"] = [
        {
            "index": band.index,
            "label": band.label,
            "wavelength_nm": as_wavelength(band.wavelength),
            "color": color_to_wire(color),
        }
        for band, color in zip(bands, colors)
    ]
    return message
