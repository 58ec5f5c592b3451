import asyncio
from datetime import datetime

import numpy as np
import pytest

from live_spectrograph.color import build_color_table
from live_spectrograph.protocol import Frame, build_band_specs
from live_spectrograph.render import ChartModel, HeadlessChart, RenderLoop
from live_spectrograph.store import TelemetryStore

BANDS = build_band_specs([415, 555, "clear"])


class _Signal:
    def __init__(self) -> None:
        self.slots = []

    def connect(self, slot) -> None:
        self.slots.append(slot)


class _FakeTimer:
    def __init__(self) -> None:
        self.timeout = _Signal()
        self.interval = None
        self.stopped = False

    def start(self, interval: int) -> None:
        self.interval = interval

    def stop(self) -> None:
        self.stopped = True

    def fire(self) -> None:
        for slot in self.timeout.slots:
            slot()


def _frame(*readings: str) -> Frame:
    return Frame(readings=tuple(readings), received_at=datetime(2025, 2, 18, 12, 0, 0))


def _loop(interval_ms: int = 2000) -> tuple[TelemetryStore, HeadlessChart, RenderLoop]:
    store = TelemetryStore()
    chart = HeadlessChart(ChartModel.for_bands(BANDS, title="AS7341 Spectrometer"))
    return store, chart, RenderLoop(store, chart, interval_ms=interval_ms)


def test_last_write_wins_between_ticks() -> None:
    store, chart, loop = _loop()
    store.update(_frame("1", "2", "3"))
    second = _frame("4", "5", "6")
    store.update(second)

    assert loop.tick() is True
    assert list(chart.model.data) == [4.0, 5.0, 6.0]
    assert chart.model.received_at == second.received_at
    assert store.overwritten == 1
    assert loop.frames_rendered == 1


def test_tick_without_frame_redraws_existing_state() -> None:
    store, chart, loop = _loop()
    assert loop.tick() is False
    assert chart.redraws == 1
    assert list(chart.model.data) == [0.0, 0.0, 0.0]


def test_repeat_tick_does_not_rewrite_data() -> None:
    store, chart, loop = _loop()
    store.update(_frame("1", "2", "3"))
    assert loop.tick() is True
    assert loop.tick() is False
    assert chart.redraws == 2
    assert loop.frames_rendered == 1

    store.update(_frame("7", "8", "9"))
    assert store.overwritten == 0
    assert loop.tick() is True
    assert list(chart.model.data) == [7.0, 8.0, 9.0]


def test_colors_installed_once() -> None:
    store, chart, loop = _loop()
    colors = build_color_table(BANDS)
    loop.install_colors(colors)
    assert chart.model.background_color == list(colors)

    loop.install_colors(build_color_table([700, 700, 700]))
    assert chart.model.background_color == list(colors)

    loop.tick()
    assert chart.model.background_color == list(colors)


def test_color_table_length_must_match() -> None:
    store, chart, loop = _loop()
    with pytest.raises(ValueError):
        loop.install_colors(build_color_table([415]))


def test_redraw_subscribers_see_model() -> None:
    store, chart, loop = _loop()
    seen = []
    chart.subscribe(lambda model: seen.append(list(model.data)))
    store.update(_frame("120", "340", "60"))
    loop.tick()
    assert seen == [[120.0, 340.0, 60.0]]


def test_non_numeric_reading_renders_nan() -> None:
    store, chart, loop = _loop()
    store.update(_frame("120", "garbage", "60"))
    loop.tick()
    assert np.isnan(chart.model.data[1])


def test_timer_driver() -> None:
    store, chart, loop = _loop(interval_ms=1500)
    timer = _FakeTimer()
    loop.start(timer)
    assert timer.interval == 1500

    store.update(_frame("1", "2", "3"))
    timer.fire()
    assert list(chart.model.data) == [1.0, 2.0, 3.0]

    loop.stop()
    assert timer.stopped is True


def test_async_driver_ticks_until_cancelled() -> None:
    store, chart, loop = _loop(interval_ms=10)

    async def _drive() -> None:
        task = asyncio.create_task(loop.run_async())
        await asyncio.sleep(0.08)
        loop.stop()
        with pytest.raises(asyncio.CancelledError):
            await task

    asyncio.run(_drive())
    assert loop.ticks >= 2


def test_interval_must_be_positive() -> None:
    with pytest.raises(ValueError):
        RenderLoop(TelemetryStore(), HeadlessChart(ChartModel.for_bands(BANDS)), interval_ms=0)
