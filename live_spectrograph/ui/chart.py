"""pyqtgraph bar chart bound to a ChartModel."""

from __future__ import annotations

from typing import Optional

import numpy as np
import pyqtgraph as pg
from pyqtgraph.Qt import QtCore

from live_spectrograph.render import ChartModel

BAR_WIDTH = 0.8
TWEEN_STEP_MS = 20


class SpectrumBarChart(pg.PlotWidget):
    """
    One bar per band, colored by the model's color table.

    Redraws ease from the previous heights to the new ones over
    ``animation_ms``; an unchanged model redraws nothing.
    """

    def __init__(self, model: ChartModel, animation_ms: int = 200, parent=None):
        super().__init__(parent=parent)
        self.model = model
        self.animation_ms = int(animation_ms)
        self._x = np.arange(len(model.labels), dtype=np.float64)
        self._shown = np.zeros(len(model.labels), dtype=np.float64)
        self._start: Optional[np.ndarray] = None
        self._target = self._shown.copy()
        self._step = 0
        self._steps = max(1, self.animation_ms // TWEEN_STEP_MS)
        self._brush_source: list = []

        self.setMenuEnabled(False)
        self.showGrid(x=False, y=True, alpha=0.3)
        self.setTitle(model.title)
        self.getAxis("bottom").setTicks([list(enumerate(model.labels))])
        self.setLabel("bottom", "Wavelength (nm)")
        self.setLabel("left", "Counts")
        self.setMouseEnabled(x=False, y=False)

        self.bars = pg.BarGraphItem(
            x=self._x,
            height=self._shown,
            width=BAR_WIDTH,
            pen=pg.mkPen((90, 90, 90)),
        )
        self.addItem(self.bars)

        self._tween = QtCore.QTimer(self)
        self._tween.setInterval(TWEEN_STEP_MS)
        self._tween.timeout.connect(self._advance)

    def _sync_brushes(self) -> None:
        colors = self.model.background_color
        if colors == self._brush_source:
            return
        self._brush_source = list(colors)
        self.bars.setOpts(brushes=[pg.mkBrush(color.to_rgba8()) for color in colors])

    def redraw(self) -> None:
        self._sync_brushes()
        # Non-numeric readings draw as empty bars.
        target = np.nan_to_num(
            np.asarray(self.model.data, dtype=np.float64), nan=0.0, posinf=0.0, neginf=0.0
        )
        if target.shape == self._target.shape and np.array_equal(target, self._target):
            return
        self._target = target
        if self.animation_ms <= 0:
            self._set_heights(target)
            return
        self._start = self._shown.copy()
        self._step = 0
        self._tween.start()

    def _advance(self) -> None:
        self._step += 1
        if self._start is None or self._step >= self._steps:
            self._tween.stop()
            self._set_heights(self._target)
            return
        frac = self._step / self._steps
        self._set_heights(self._start + (self._target - self._start) * frac)

    def _set_heights(self, heights: np.ndarray) -> None:
        self._shown = np.asarray(heights, dtype=np.float64)
        self.bars.setOpts(height=self._shown)
