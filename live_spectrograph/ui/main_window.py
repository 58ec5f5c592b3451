"""Qt UI for the live spectrograph main window.

Builds the status lines, the bar chart, and menus, and runs the render loop on
a QTimer. This module must not decode frames or talk to the broker directly;
everything goes through the Engine.
"""

from __future__ import annotations

from typing import Callable, Optional

import pyqtgraph as pg
from pyqtgraph.Qt import QtCore, QtWidgets

from live_spectrograph.connection import ConnectionState
from live_spectrograph.engine import Engine
from live_spectrograph.render import ChartModel
from live_spectrograph.status import StatusBoard
from live_spectrograph.ui.chart import SpectrumBarChart
from live_spectrograph.ui.dialogs import AboutDialog, BrokerSettingsDialog

STATE_COLORS = {
    ConnectionState.DISCONNECTED: "#9aa0a6",
    ConnectionState.CONNECTING: "#f0b429",
    ConnectionState.CONNECTED: "#38d0d4",
    ConnectionState.ERROR: "#ef5350",
}
DEMO_PUBLISH_MS = 500


class _QtDispatcher(QtCore.QObject):
    """Runs callables on the thread that owns this object (the GUI thread)."""

    invoke = QtCore.Signal(object)

    def __init__(self, parent: Optional[QtCore.QObject] = None) -> None:
        super().__init__(parent)
        # Emits from paho's thread become queued calls on the GUI thread.
        self.invoke.connect(self._run)

    def __call__(self, fn: Callable[[], None]) -> None:
        self.invoke.emit(fn)

    def _run(self, fn: Callable[[], None]) -> None:
        fn()


class SpectrographWindow(QtWidgets.QMainWindow):
    """
    Main UI class.
    Transport events are serialized onto the GUI thread with the render timer.
    """

    def __init__(self, engine: Engine, demo: bool = False):
        super().__init__()
        self.engine = engine
        self.demo = demo
        self.setWindowTitle("Live Spectrograph")

        pg.setConfigOptions(antialias=True)
        pg.setConfigOption("background", (10, 10, 10))
        pg.setConfigOption("foreground", "w")

        self.dispatcher = _QtDispatcher(self)
        engine.transport.set_dispatch(self.dispatcher)

        self.render_loop = engine.attach_chart(self._make_chart)
        self.chart: SpectrumBarChart = engine.chart

        self._build_ui()
        self._build_menu()

        engine.status.subscribe(self._on_status)
        engine.connection.add_listener(self._on_state)
        self._on_status(engine.status)
        self._on_state(engine.state)

        # Redraw cadence is fixed and independent of message arrival.
        self.render_timer = QtCore.QTimer(self)
        self.render_loop.start(self.render_timer)

        self.demo_timer = QtCore.QTimer(self)
        self.demo_timer.timeout.connect(self._publish_demo_frame)
        if demo:
            self.demo_timer.start(DEMO_PUBLISH_MS)

        engine.start()

    def _make_chart(self, model: ChartModel) -> SpectrumBarChart:
        return SpectrumBarChart(model, animation_ms=self.engine.cfg.animation_ms)

    def closeEvent(self, event):
        self.demo_timer.stop()
        self.engine.status.unsubscribe(self._on_status)
        self.engine.connection.remove_listener(self._on_state)
        self.engine.stop()
        event.accept()

    def _build_ui(self) -> None:
        cw = QtWidgets.QWidget()
        self.setCentralWidget(cw)
        layout = QtWidgets.QVBoxLayout(cw)
        layout.setSpacing(6)

        brand_layout = QtWidgets.QHBoxLayout()
        brand_label = QtWidgets.QLabel("Live Spectrograph")
        brand_label.setStyleSheet("QLabel { font-size: 16px; font-weight: 600; color: #38d0d4; }")
        self.state_label = QtWidgets.QLabel()
        brand_layout.addWidget(brand_label)
        brand_layout.addStretch(1)
        brand_layout.addWidget(self.state_label)
        layout.addLayout(brand_layout)

        self.connection_label = QtWidgets.QLabel()
        self.connection_label.setStyleSheet("QLabel { color: #e0e0e0; }")
        layout.addWidget(self.connection_label)

        layout.addWidget(self.chart, 1)

        footer = QtWidgets.QHBoxLayout()
        self.timestamp_label = QtWidgets.QLabel()
        self.diagnostic_label = QtWidgets.QLabel()
        self.diagnostic_label.setStyleSheet("QLabel { color: #9aa0a6; }")
        footer.addWidget(self.timestamp_label)
        footer.addStretch(1)
        footer.addWidget(self.diagnostic_label)
        layout.addLayout(footer)

        self.resize(900, 560)

    def _build_menu(self) -> None:
        menu = self.menuBar().addMenu("&Connection")
        settings_action = menu.addAction("Broker Settings...")
        settings_action.triggered.connect(self.open_broker_settings)
        reconnect_action = menu.addAction("Reconnect")
        reconnect_action.triggered.connect(self.reconnect)
        disconnect_action = menu.addAction("Disconnect")
        disconnect_action.triggered.connect(self.engine.connection.stop)
        menu.addSeparator()
        self.demo_action = menu.addAction("Publish demo frames")
        self.demo_action.setCheckable(True)
        self.demo_action.setChecked(self.demo)
        self.demo_action.toggled.connect(self.set_demo_publishing)
        menu.addSeparator()
        quit_action = menu.addAction("Quit")
        quit_action.triggered.connect(self.close)

        help_menu = self.menuBar().addMenu("&Help")
        about_action = help_menu.addAction("About")
        about_action.triggered.connect(lambda: AboutDialog(self).exec())

    def open_broker_settings(self) -> None:
        cfg = self.engine.cfg
        dialog = BrokerSettingsDialog(
            self,
            broker_url=cfg.broker_url,
            topic=cfg.topic,
            username=cfg.username,
            password=cfg.password,
        )
        if dialog.exec() != QtWidgets.QDialog.DialogCode.Accepted:
            return
        try:
            self.engine.reconfigure(
                broker_url=dialog.broker_url,
                topic=dialog.topic,
                username=dialog.username,
                password=dialog.password,
            )
        except ValueError as exc:
            QtWidgets.QMessageBox.warning(self, "Broker Settings", str(exc))

    def reconnect(self) -> None:
        self.engine.connection.stop()
        self.engine.start()

    def set_demo_publishing(self, enabled: bool) -> None:
        self.demo = bool(enabled)
        if self.demo:
            self.demo_timer.start(DEMO_PUBLISH_MS)
        else:
            self.demo_timer.stop()

    def _publish_demo_frame(self) -> None:
        self.engine.publish_frame(self.engine.demo_values())

    def _on_status(self, board: StatusBoard) -> None:
        self.connection_label.setText(board.connection_text)
        self.timestamp_label.setText(board.timestamp_text)
        self.diagnostic_label.setText(board.diagnostic_text or "")

    def _on_state(self, state: ConnectionState) -> None:
        color = STATE_COLORS.get(state, "#9aa0a6")
        self.state_label.setText(state.value)
        self.state_label.setStyleSheet(f"QLabel {{ color: {color}; font-weight: 600; }}")
