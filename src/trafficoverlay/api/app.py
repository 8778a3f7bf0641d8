from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from trafficoverlay.api.routes_overlay import router as overlay_router
from trafficoverlay.logging_config import configure_logging
from trafficoverlay.overlay.assembler import OverlayAssembler
from trafficoverlay.settings import get_config


def create_app(assembler: Optional[OverlayAssembler] = None) -> FastAPI:
    configure_logging()
    config = get_config()
    overlay = assembler or OverlayAssembler.from_config(config)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await overlay.aclose()

    app = FastAPI(title="TrafficOverlay API", version="0.1.0", lifespan=lifespan)
    app.state.assembler = overlay

    @app.get("/healthz")
    def healthz() -> dict[str, bool]:
        return {"ok": True}

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.api.cors.allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(overlay_router, tags=["overlay"])

    return app


app = create_app()
