"""Wavelength to display color mapping.

Converts band wavelengths (nm) into RGBA colors for the chart. Channels are
linear ramps across six visible sub-ranges, with alpha falling off at the edges
of the visible spectrum. This module is pure and must not import UI classes.
"""

from __future__ import annotations

import math
import numbers
from dataclasses import dataclass
from typing import Iterable, Optional

# Visible range covered by the ramp table.
VISIBLE_MIN_NM = 380.0
VISIBLE_MAX_NM = 780.0
# Bands above this are drawn with a fixed near-infrared color.
NEAR_IR_MIN_NM = 900.0


@dataclass(frozen=True)
class Rgba:
    """Color with R, G, B in percent (0..100) and alpha as a 0..1 fraction."""

    r: float
    g: float
    b: float
    alpha: float

    def to_css(self) -> str:
        return (
            f"rgba({_fmt(self.r)}%,{_fmt(self.g)}%,{_fmt(self.b)}%, {_fmt(self.alpha)})"
        )

    def to_rgba8(self) -> tuple[int, int, int, int]:
        return (
            _to_byte(self.r / 100.0),
            _to_byte(self.g / 100.0),
            _to_byte(self.b / 100.0),
            _to_byte(self.alpha),
        )

    def to_hex(self) -> str:
        r, g, b, _ = self.to_rgba8()
        return f"#{r:02x}{g:02x}{b:02x}"


ColorTable = tuple[Rgba, ...]

# Non-numeric bands such as the clear channel.
TAG_COLOR = Rgba(0.0, 0.0, 0.0, 1.0)
# #770000, deep red.
NEAR_IR_COLOR = Rgba(0x77 / 255.0 * 100.0, 0.0, 0.0, 1.0)


def _fmt(value: float) -> str:
    return f"{round(value, 4):g}"


def _to_byte(fraction: float) -> int:
    return int(round(min(1.0, max(0.0, fraction)) * 255.0))


def as_wavelength(value: object) -> Optional[float]:
    """Return the numeric wavelength for a band, or None for a tag."""

    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, numbers.Real):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def _visible_rgb(wl: float) -> tuple[float, float, float]:
    if 380.0 <= wl < 440.0:
        # UV to indigo.
        return -(wl - 440.0) / (440.0 - 380.0), 0.0, 1.0
    if 440.0 <= wl < 490.0:
        # Indigo to blue.
        return 0.0, (wl - 440.0) / (490.0 - 440.0), 1.0
    if 490.0 <= wl < 510.0:
        # Blue to green.
        return 0.0, 1.0, -(wl - 510.0) / (510.0 - 490.0)
    if 510.0 <= wl < 580.0:
        # Green to yellow.
        return (wl - 510.0) / (580.0 - 510.0), 1.0, 0.0
    if 580.0 <= wl < 645.0:
        # Yellow to orange.
        return 1.0, -(wl - 645.0) / (645.0 - 580.0), 0.0
    if 645.0 <= wl <= 780.0:
        # Orange to red.
        return 1.0, 0.0, 0.0
    return 0.0, 0.0, 0.0


def _edge_alpha(wl: float) -> float:
    # Intensity is lower at the edges of the visible spectrum.
    if wl > VISIBLE_MAX_NM or wl < VISIBLE_MIN_NM:
        return 0.0
    if wl > 700.0:
        return (VISIBLE_MAX_NM - wl) / (VISIBLE_MAX_NM - 700.0)
    if wl < 420.0:
        return (wl - VISIBLE_MIN_NM) / (420.0 - VISIBLE_MIN_NM)
    return 1.0


def color_for(wavelength: object) -> Rgba:
    """Map a band wavelength in nm, or a band tag, to its display color."""

    wl = as_wavelength(wavelength)
    if wl is None:
        return TAG_COLOR
    if wl > NEAR_IR_MIN_NM:
        return NEAR_IR_COLOR
    r, g, b = _visible_rgb(wl)
    return Rgba(r * 100.0, g * 100.0, b * 100.0, _edge_alpha(wl))


def build_color_table(wavelengths: Iterable[object]) -> ColorTable:
    """Compute the per-band colors once; accepts wavelengths or BandSpecs."""

    table = []
    for item in wavelengths:
        table.append(color_for(getattr(item, "wavelength", item)))
    return tuple(table)
