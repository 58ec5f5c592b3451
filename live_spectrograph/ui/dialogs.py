"""Dialog windows for broker settings and about/help.

Defines modal dialogs used by the GUI. This module should not perform broker
I/O; the main window applies the settings through the engine.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence

from pyqtgraph.Qt import QtWidgets

from live_spectrograph import __version__
from live_spectrograph.config import KNOWN_BROKERS


class BrokerSettingsDialog(QtWidgets.QDialog):
    def __init__(
        self,
        parent: QtWidgets.QWidget,
        broker_url: str,
        topic: str,
        username: Optional[str],
        password: Optional[str],
        known_brokers: Sequence[str] = KNOWN_BROKERS,
    ) -> None:
        super().__init__(parent)
        self.setWindowTitle("Broker Settings")
        self._broker_url = broker_url
        self._topic = topic
        self._username = username
        self._password = password

        layout = QtWidgets.QVBoxLayout(self)
        form = QtWidgets.QFormLayout()

        self.broker_edit = QtWidgets.QLineEdit(broker_url)
        self.broker_edit.setPlaceholderText("wss://public.cloud.shiftr.io")
        form.addRow("Broker URL", self.broker_edit)

        if known_brokers:
            self.known_combo = QtWidgets.QComboBox()
            self.known_combo.addItems(list(known_brokers))
            self.known_combo.setCurrentIndex(-1)
            self.known_combo.currentTextChanged.connect(self.broker_edit.setText)
            form.addRow("Known brokers", self.known_combo)

        self.topic_edit = QtWidgets.QLineEdit(topic)
        form.addRow("Topic", self.topic_edit)

        self.username_edit = QtWidgets.QLineEdit(username or "")
        form.addRow("Username", self.username_edit)

        self.password_edit = QtWidgets.QLineEdit(password or "")
        self.password_edit.setEchoMode(QtWidgets.QLineEdit.EchoMode.Password)
        form.addRow("Password", self.password_edit)

        layout.addLayout(form)

        buttons = QtWidgets.QDialogButtonBox(
            QtWidgets.QDialogButtonBox.StandardButton.Save
            | QtWidgets.QDialogButtonBox.StandardButton.Cancel
        )
        layout.addWidget(buttons)

        buttons.accepted.connect(self._on_save)
        buttons.rejected.connect(self.reject)

    @property
    def broker_url(self) -> str:
        return self._broker_url

    @property
    def topic(self) -> str:
        return self._topic

    @property
    def username(self) -> Optional[str]:
        return self._username

    @property
    def password(self) -> Optional[str]:
        return self._password

    def _on_save(self) -> None:
        broker_url = self.broker_edit.text().strip()
        topic = self.topic_edit.text().strip()
        if not broker_url or not topic:
            QtWidgets.QMessageBox.warning(self, "Broker Settings", "Broker URL and topic are required.")
            return
        self._broker_url = broker_url
        self._topic = topic
        # Empty strings clear the stored credentials.
        self._username = self.username_edit.text().strip()
        self._password = self.password_edit.text()
        self.accept()


class AboutDialog(QtWidgets.QDialog):
    def __init__(self, parent: QtWidgets.QWidget) -> None:
        super().__init__(parent)
        self.setWindowTitle("About")
        layout = QtWidgets.QVBoxLayout(self)

        version_label = QtWidgets.QLabel(f"Live Spectrograph v{__version__}")
        version_label.setStyleSheet("font-weight: 600;")
        build_label = QtWidgets.QLabel(f"Build date: {datetime.now().strftime('%Y-%m-%d')}")
        source_label = QtWidgets.QLabel("Bar chart of AS7341 readings received over MQTT")

        layout.addWidget(version_label)
        layout.addWidget(build_label)
        layout.addWidget(source_label)

        buttons = QtWidgets.QDialogButtonBox(QtWidgets.QDialogButtonBox.StandardButton.Close)
        buttons.rejected.connect(self.reject)
        buttons.accepted.connect(self.accept)
        layout.addWidget(buttons)
