"""Process-scoped context wiring the telemetry pipeline together."""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Optional, Sequence, Union

import numpy as np

from live_spectrograph.color import ColorTable, build_color_table, as_wavelength
from live_spectrograph.config import SpectrographConfig
from live_spectrograph.connection import ConnectionManager, ConnectionState
from live_spectrograph.protocol import (
    BandSpec,
    bands_to_wire,
    build_band_specs,
    chart_to_wire,
    encode_frame,
    status_to_wire,
)
from live_spectrograph.render import Chart, ChartModel, HeadlessChart, RenderLoop
from live_spectrograph.status import StatusBoard
from live_spectrograph.store import TelemetryStore
from live_spectrograph.transport.base import (
    BrokerAddress,
    ConnectError,
    ConnectOptions,
    Dispatch,
    Transport,
)
from live_spectrograph.transport.mqtt import MqttTransport

logger = logging.getLogger(__name__)

ChartFactory = Callable[[ChartModel], Chart]


class Engine:
    """
    Owns the connection manager, the telemetry store and the chart handle.

    Built once at startup and shared by every event handler.
    """

    def __init__(
        self,
        cfg: SpectrographConfig,
        transport: Optional[Transport] = None,
        dispatch: Optional[Dispatch] = None,
    ):
        cfg.validate()
        self.cfg = cfg
        self.bands: tuple[BandSpec, ...] = build_band_specs(cfg.wavelengths)
        self.colors: ColorTable = build_color_table(self.bands)
        self.store = TelemetryStore()
        self.status = StatusBoard()
        self.transport: Transport = transport or MqttTransport(dispatch=dispatch)
        self.connection = ConnectionManager(
            self.transport,
            BrokerAddress.parse(cfg.broker_url),
            ConnectOptions.from_config(cfg),
            topic=cfg.topic,
            num_bands=len(self.bands),
            store=self.store,
            status=self.status,
            strict_frames=cfg.strict_frames,
        )
        self.chart: Optional[Chart] = None
        self.render_loop: Optional[RenderLoop] = None

    def new_chart_model(self) -> ChartModel:
        return ChartModel.for_bands(self.bands, title=self.cfg.chart_title)

    def attach_chart(self, factory: ChartFactory = HeadlessChart) -> RenderLoop:
        """Create the chart once, push the color table, and build the render loop."""

        if self.render_loop is not None:
            return self.render_loop
        self.chart = factory(self.new_chart_model())
        self.render_loop = RenderLoop(self.store, self.chart, interval_ms=self.cfg.update_ms)
        self.render_loop.install_colors(self.colors)
        return self.render_loop

    @property
    def state(self) -> ConnectionState:
        return self.connection.state

    def start(self) -> bool:
        return self.connection.start()

    def stop(self) -> None:
        if self.render_loop is not None:
            self.render_loop.stop()
        self.connection.stop()

    def reconfigure(
        self,
        *,
        broker_url: Optional[str] = None,
        topic: Optional[str] = None,
        username: Optional[str] = None,
        password: Optional[str] = None,
    ) -> bool:
        """Apply new broker settings and reconnect."""

        cfg = self.cfg.with_overrides(
            broker_url=broker_url,
            topic=topic,
            username=username,
            password=password,
        )
        cfg.validate()
        broker = BrokerAddress.parse(cfg.broker_url)
        self.connection.stop()
        self.cfg = cfg
        self.connection.broker = broker
        self.connection.options = ConnectOptions.from_config(cfg)
        self.connection.topic = cfg.topic
        return self.connection.start()

    def publish_frame(self, values: Sequence[Union[float, int, str]]) -> bool:
        """Publish readings on the configured topic, as the sensor bridge does."""

        try:
            self.transport.publish(self.cfg.topic, encode_frame(values).encode("utf-8"))
        except ConnectError as exc:
            logger.debug("publish skipped: %s", exc)
            return False
        return True

    def demo_values(self, t: Optional[float] = None) -> list[int]:
        """Synthetic readings: a drifting peak over the visible bands plus noise."""

        t = time.monotonic() if t is None else t
        peak_nm = 550.0 + 120.0 * np.sin(t / 5.0)
        levels: list[Optional[int]] = []
        for band in self.bands:
            wl = as_wavelength(band.wavelength)
            if wl is None:
                levels.append(None)
                continue
            level = 3000.0 * np.exp(-((wl - peak_nm) / 60.0) ** 2) + 150.0
            levels.append(int(max(0.0, level + np.random.normal(0.0, 40.0))))
        # Broadband (tagged) channels see a share of everything.
        broadband = int(0.6 * sum(v for v in levels if v is not None))
        return [broadband if v is None else v for v in levels]

    def status_message(self, seq: int) -> dict[str, Any]:
        return status_to_wire(
            seq=seq,
            state=self.state.value,
            broker=self.connection.broker.url,
            topic=self.connection.topic,
            connection_text=self.status.connection_text,
            timestamp_text=self.status.timestamp_text,
            diagnostic_text=self.status.diagnostic_text,
            last_frame_at=self.status.last_frame_at,
            messages_received=self.connection.messages_received,
            frames_decoded=self.connection.frames_decoded,
            frames_rejected=self.connection.frames_rejected,
            frames_skipped=self.store.overwritten,
        )

    def chart_message(self, seq: int) -> dict[str, Any]:
        model = self.chart.model if self.chart is not None else self.new_chart_model()
        colors = model.background_color or list(self.colors)
        return chart_to_wire(
            seq=seq,
            title=model.title,
            labels=model.labels,
            data=model.data,
            colors=colors,
            received_at=model.received_at,
        )

    def bands_message(self, seq: int) -> dict[str, Any]:
        return bands_to_wire(seq=seq, bands=self.bands, colors=self.colors)
