"""ASGI entry point for uvicorn with hot reload support.

Usage:
    uvicorn c64bot.asgi:app --reload --host 0.0.0.0 --port 3000
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, HTTPException

from c64bot.config import BotConfig
from c64bot.logging_filters import install_uvicorn_access_log_filters
from c64bot.main import Application
from c64bot.observability.health_state import snapshot as health_snapshot
from c64bot.routers import create_files_router

# Global application instance for lifespan management
_application: Application | None = None
_stall_seconds = 180


@asynccontextmanager
async def lifespan(fastapi_app: FastAPI) -> AsyncGenerator[None, None]:
    """Manage application lifespan for ASGI server."""
    global _application, _stall_seconds

    config = BotConfig.from_json_file()
    _stall_seconds = config.health_stall_seconds
    install_uvicorn_access_log_filters()
    _application = Application(config)
    await _application.setup()

    if _application.store:
        fastapi_app.include_router(create_files_router(_application.store, config))

    await _application.start_background_services()

    yield

    await _application.shutdown()
    _application = None


app = FastAPI(
    title="C64 Bot",
    description="Commodore 64 program sharing bot with a web emulator link",
    version="1.0.0",
    lifespan=lifespan,
)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    snap = health_snapshot(stall_seconds=_stall_seconds)
    if snap.status != "healthy":
        raise HTTPException(status_code=503, detail=snap.to_dict())
    return snap.to_dict()
