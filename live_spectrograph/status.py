"""Plain-text status surface shared by the Qt and headless front ends."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Optional

logger = logging.getLogger(__name__)

WAITING_TEXT = "Waiting for client connection"
TIMESTAMP_PREFIX = "last reading at: "
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

StatusCallback = Callable[["StatusBoard"], None]


class StatusBoard:
    """Connection line, last-reading line, and a diagnostic line."""

    def __init__(self) -> None:
        self.connection_text: str = WAITING_TEXT
        self.timestamp_text: str = TIMESTAMP_PREFIX
        self.diagnostic_text: Optional[str] = None
        self.last_frame_at: Optional[datetime] = None
        self._subscribers: list[StatusCallback] = []

    def subscribe(self, callback: StatusCallback) -> None:
        self._subscribers.append(callback)

    def unsubscribe(self, callback: StatusCallback) -> None:
        if callback in self._subscribers:
            self._subscribers.remove(callback)

    def set_connection_text(self, text: str) -> None:
        self.connection_text = str(text)
        self._emit()

    def set_last_frame(self, received_at: datetime) -> None:
        self.last_frame_at = received_at
        self.timestamp_text = TIMESTAMP_PREFIX + received_at.strftime(TIMESTAMP_FORMAT)
        self._emit()

    def set_diagnostic(self, text: Optional[str]) -> None:
        self.diagnostic_text = text
        self._emit()

    def _emit(self) -> None:
        for callback in list(self._subscribers):
            try:
                callback(self)
            except Exception:
                # One broken view must not stop the others from updating.
                logger.exception("status subscriber failed")
                continue
