"""FastAPI application factory for the headless spectrograph."""

from __future__ import annotations

import asyncio
import contextlib
from typing import AsyncIterator

from fastapi import FastAPI

from live_spectrograph.config import SpectrographConfig
from live_spectrograph.engine import Engine
from live_spectrograph.server.routes import router
from live_spectrograph.server.ws import router as ws_router


def create_app(engine: Engine | None = None, autostart: bool = True) -> FastAPI:
    @contextlib.asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        engine_: Engine = app.state.engine
        # paho callbacks arrive on its network thread; run them on this loop.
        engine_.transport.set_dispatch(asyncio.get_running_loop().call_soon_threadsafe)
        render_loop = engine_.attach_chart()
        render_task = None
        if autostart:
            engine_.start()
            render_task = asyncio.create_task(render_loop.run_async())
        try:
            yield
        finally:
            if render_task is not None:
                render_task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await render_task
            hub = getattr(app.state, "ws_hub", None)
            if hub is not None:
                hub.close()
                app.state.ws_hub = None
            engine_.stop()

    app = FastAPI(title="Live Spectrograph", lifespan=lifespan)
    app.state.engine = engine or Engine(SpectrographConfig.from_env())
    app.include_router(router)
    app.include_router(ws_router)
    return app


# Provide a default app instance for non-factory uvicorn usage.
app = create_app()
