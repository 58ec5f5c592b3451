"""WebSocket handler streaming chart redraws and status changes."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from live_spectrograph.engine import Engine
from live_spectrograph.render import ChartModel, HeadlessChart
from live_spectrograph.status import StatusBoard


router = APIRouter()

STATUS = "status"
CHART = "chart"


@dataclass
class _ClientSession:
    websocket: WebSocket
    queue: asyncio.Queue[str]
    seq: int = 0

    def next_seq(self) -> int:
        self.seq += 1
        return self.seq


class _StreamHub:
    """Fan out status changes and chart redraws to WebSocket clients."""

    def __init__(self, engine: Engine, loop: asyncio.AbstractEventLoop) -> None:
        self._engine = engine
        self._loop = loop
        self._clients: list[_ClientSession] = []
        self.dropped = 0
        engine.attach_chart()
        # Subscribe once so every client sees the same redraws.
        if isinstance(engine.chart, HeadlessChart):
            engine.chart.subscribe(self._on_redraw)
        engine.status.subscribe(self._on_status)

    def close(self) -> None:
        if isinstance(self._engine.chart, HeadlessChart):
            self._engine.chart.unsubscribe(self._on_redraw)
        self._engine.status.unsubscribe(self._on_status)
        self._clients.clear()

    def register(self, session: _ClientSession) -> None:
        self._clients.append(session)

    def unregister(self, session: _ClientSession) -> None:
        if session in self._clients:
            self._clients.remove(session)

    def _on_redraw(self, model: ChartModel) -> None:
        self.publish(CHART)

    def _on_status(self, board: StatusBoard) -> None:
        self.publish(STATUS)

    def publish(self, kind: str) -> None:
        self._loop.call_soon_threadsafe(self._enqueue, kind)

    def _enqueue(self, kind: str) -> None:
        for session in list(self._clients):
            try:
                session.queue.put_nowait(kind)
            except asyncio.QueueFull:
                # A slow client loses updates instead of blocking the others.
                self.dropped += 1
                continue


def _get_hub(websocket: WebSocket) -> _StreamHub:
    app = websocket.app
    hub = getattr(app.state, "ws_hub", None)
    if hub is None:
        hub = _StreamHub(app.state.engine, asyncio.get_running_loop())
        app.state.ws_hub = hub
    return hub


async def _send(session: _ClientSession, kind: str, engine: Engine) -> None:
    if kind == CHART:
        await session.websocket.send_json(engine.chart_message(seq=session.next_seq()))
    else:
        await session.websocket.send_json(engine.status_message(seq=session.next_seq()))


@router.websocket("/ws/stream")
async def stream(websocket: WebSocket) -> None:
    await websocket.accept()
    session = _ClientSession(websocket=websocket, queue=asyncio.Queue(maxsize=64))
    engine: Engine = websocket.app.state.engine

    # Send status and the current chart before joining the broadcast stream.
    hub = _get_hub(websocket)
    await _send(session, STATUS, engine)
    await _send(session, CHART, engine)
    hub.register(session)

    try:
        while True:
            kind = await session.queue.get()
            await _send(session, kind, engine)
    except WebSocketDisconnect:
        pass
    finally:
        hub.unregister(session)
