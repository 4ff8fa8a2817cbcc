# roomchat/main.py

from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from roomchat.core import state
from roomchat.core.config import settings
from roomchat.core.logging import setup_logging
from roomchat.api.routes import root, health, metrics, rooms
from roomchat.api import websocket as websocket_module
from roomchat.services.factory import build_stores

# Configure logging first
setup_logging()
logger = logging.getLogger(__name__)

# FastAPI app
app = FastAPI(title="Room Chat")

# CORS (relaxed for now - tighten in prod)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# REST routes
app.include_router(root.router)
app.include_router(health.router)
app.include_router(metrics.router)
app.include_router(rooms.router)

# WebSocket routes
app.include_router(websocket_module.router)


@app.on_event("startup")
async def startup_event():
    logger.info("🚀 Application starting - store backend: %s", settings.STORE_BACKEND)
    state.stores = await build_stores(settings)


@app.on_event("shutdown")
async def on_shutdown():
    for session in list(state.sessions.values()):
        await session.exit()
    state.sessions.clear()

    if state.stores is not None:
        await state.stores.close()
        state.stores = None


def run() -> None:
    import uvicorn
    uvicorn.run("roomchat.main:app", host="0.0.0.0", port=8000)


if __name__ == "__main__":
    run()

# ============================================================================
# END OF FILE
# ============================================================================
