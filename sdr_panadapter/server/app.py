"""FastAPI application factory for the panadapter server."""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI

from sdr_panadapter.config import PanadapterConfig
from sdr_panadapter.engine import Engine
from sdr_panadapter.scheduling import AsyncioScheduler
from sdr_panadapter.server.routes import router
from sdr_panadapter.server.ws import router as ws_router


def create_app(
    engine: Engine | None = None,
    cfg: PanadapterConfig | None = None,
    autostart: bool = False,
) -> FastAPI:
    cfg = cfg or PanadapterConfig()
    engine = engine or Engine(cfg, AsyncioScheduler())

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if autostart:
            app.state.engine.start_receiving()
        yield
        app.state.engine.disconnect()

    app = FastAPI(title="SDR Panadapter", lifespan=lifespan)
    app.state.engine = engine
    app.include_router(router)
    app.include_router(ws_router)
    return app
