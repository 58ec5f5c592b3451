"""Latest-frame slot shared by the message handler and the render loop."""

from __future__ import annotations

from typing import Optional

from live_spectrograph.protocol import Frame


class TelemetryStore:
    """
    Holds only the most recent Frame.

    Written by the connection manager, read by the render loop. Frames that
    are overwritten before a render tick are counted, not kept.
    """

    def __init__(self) -> None:
        self._latest: Optional[Frame] = None
        self._rendered: Optional[Frame] = None
        self._overwritten = 0

    def update(self, frame: Frame) -> None:
        if self._latest is not None and self._latest is not self._rendered:
            self._overwritten += 1
        self._latest = frame

    def latest(self) -> Optional[Frame]:
        return self._latest

    def mark_rendered(self, frame: Frame) -> None:
        self._rendered = frame

    def is_rendered(self, frame: Frame) -> bool:
        return frame is self._rendered

    @property
    def overwritten(self) -> int:
        return self._overwritten
