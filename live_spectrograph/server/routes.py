"""REST endpoints for the headless spectrograph."""

from __future__ import annotations

import math
from typing import Any

from fastapi import APIRouter, Body, HTTPException, Request

from live_spectrograph.engine import Engine


router = APIRouter()

RECONFIGURE_KEYS = ("broker_url", "topic", "username", "password")


def _engine(request: Request) -> Engine:
    return request.app.state.engine


def _serialize_status(engine: Engine) -> dict[str, Any]:
    return {
        "status": engine.status_message(seq=0),
        "error": engine.connection.last_error,
    }


@router.get("/api/status")
def get_status(request: Request) -> dict[str, Any]:
    return _serialize_status(_engine(request))


@router.get("/api/bands")
def get_bands(request: Request) -> dict[str, Any]:
    return _engine(request).bands_message(seq=0)


@router.get("/api/chart")
def get_chart(request: Request) -> dict[str, Any]:
    return _engine(request).chart_message(seq=0)


@router.get("/api/frame")
def get_frame(request: Request) -> dict[str, Any]:
    frame = _engine(request).store.latest()
    if frame is None:
        return {"frame": None}
    return {
        "frame": {
            "readings": list(frame.readings),
            "values": [float(v) if math.isfinite(v) else None for v in frame.values()],
            "received_at": frame.received_at.isoformat(),
        }
    }


@router.post("/api/connect")
def connect(request: Request, payload: dict[str, Any] | None = Body(default=None)) -> dict[str, Any]:
    engine = _engine(request)
    updates = {key: payload.get(key) for key in RECONFIGURE_KEYS} if payload else {}
    try:
        if any(value is not None for value in updates.values()):
            ok = engine.reconfigure(**updates)
        else:
            ok = engine.start()
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return {"ok": ok, **_serialize_status(engine)}


@router.post("/api/disconnect")
def disconnect(request: Request) -> dict[str, Any]:
    engine = _engine(request)
    engine.connection.stop()
    return {"ok": True, **_serialize_status(engine)}


@router.post("/api/publish")
def publish(request: Request, payload: dict[str, Any] = Body(...)) -> dict[str, Any]:
    values = payload.get("values") if isinstance(payload, dict) else None
    if not isinstance(values, list) or not values:
        raise HTTPException(status_code=400, detail="values must be a non-empty list")
    ok = _engine(request).publish_frame(values)
    return {"ok": ok}
