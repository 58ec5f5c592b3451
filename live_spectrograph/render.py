"""Fixed-cadence render loop.

Pushes the latest stored frame into the chart model and redraws, on a timer
that is independent of message arrival. Frames overwritten between two ticks
are never drawn. This module must not import UI classes; the Qt timer and the
asyncio loop are both plain drivers of ``tick``.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Optional, Protocol, Sequence

import numpy as np

from live_spectrograph.color import ColorTable, Rgba
from live_spectrograph.protocol import BandSpec
from live_spectrograph.store import TelemetryStore

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_MS = 2000


@dataclass
class ChartModel:
    """Declarative bar chart state: one bar per band."""

    labels: list[str]
    data: np.ndarray
    background_color: list[Rgba] = field(default_factory=list)
    title: str = ""
    received_at: Optional[datetime] = None

    @classmethod
    def for_bands(cls, bands: Sequence[BandSpec], title: str = "") -> "ChartModel":
        return cls(
            labels=[band.label for band in bands],
            data=np.zeros(len(bands), dtype=np.float64),
            title=title,
        )


class Chart(Protocol):
    model: ChartModel

    def redraw(self) -> None: ...


class RenderLoop:
    def __init__(
        self,
        store: TelemetryStore,
        chart: Chart,
        interval_ms: int = DEFAULT_INTERVAL_MS,
    ) -> None:
        if interval_ms <= 0:
            raise ValueError("interval_ms must be positive")
        self.store = store
        self.chart = chart
        self.interval_ms = int(interval_ms)
        self.ticks = 0
        self.frames_rendered = 0
        self._colors_installed = False
        self._timer: Any = None
        self._task: Optional[asyncio.Task] = None

    def install_colors(self, colors: ColorTable) -> None:
        # Wavelengths are fixed, so colors are written once.
        if self._colors_installed:
            return
        if len(colors) != len(self.chart.model.labels):
            raise ValueError("color table length must match the band count")
        self.chart.model.background_color = list(colors)
        self._colors_installed = True

    def tick(self) -> bool:
        """Render the latest frame if it is new; returns True when data changed."""

        self.ticks += 1
        frame = self.store.latest()
        changed = False
        if frame is not None and not self.store.is_rendered(frame):
            self.chart.model.data = frame.values()
            self.chart.model.received_at = frame.received_at
            self.store.mark_rendered(frame)
            self.frames_rendered += 1
            changed = True
        self.chart.redraw()
        return changed

    def start(self, timer: Any) -> None:
        """Drive ticks from a Qt-style timer (``timeout.connect``, ``start``)."""

        self._timer = timer
        timer.timeout.connect(self.tick)
        timer.start(self.interval_ms)
        logger.info("render loop started, %d ms period", self.interval_ms)

    async def run_async(self) -> None:
        """Drive ticks from the running asyncio loop until cancelled."""

        self._task = asyncio.current_task()
        period = self.interval_ms / 1000.0
        loop = asyncio.get_running_loop()
        next_time = loop.time()
        while True:
            self.tick()
            # Keep a fixed cadence regardless of how long the redraw took.
            next_time += period
            await asyncio.sleep(max(0.0, next_time - loop.time()))

    def stop(self) -> None:
        if self._timer is not None:
            self._timer.stop()
            self._timer = None
        if self._task is not None:
            self._task.cancel()
            self._task = None


RedrawCallback = Callable[[ChartModel], None]


class HeadlessChart:
    """Chart without a display; each redraw is published to subscribers."""

    def __init__(self, model: ChartModel) -> None:
        self.model = model
        self.redraws = 0
        self._subscribers: list[RedrawCallback] = []

    def subscribe(self, callback: RedrawCallback) -> None:
        self._subscribers.append(callback)

    def unsubscribe(self, callback: RedrawCallback) -> None:
        if callback in self._subscribers:
            self._subscribers.remove(callback)

    def redraw(self) -> None:
        self.redraws += 1
        for callback in list(self._subscribers):
            try:
                callback(self.model)
            except Exception:
                logger.exception("redraw subscriber failed")
                continue
