"""
FastAPI server bridging Twilio phone calls to the OpenAI Realtime API.

This module initializes and configures the FastAPI application that serves as
both the Twilio voice webhook (returning TwiML that greets the caller and
connects the call to a media stream) and the media-stream WebSocket endpoint
where each call is bridged to its own OpenAI Realtime conversation.

Tenant lookups and appointments are stored in SQL when DATABASE_URL is set,
otherwise in memory (optionally seeded from a TENANTS_FILE).
"""

from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional, Tuple

import dotenv
from fastapi import FastAPI, Request, WebSocket
from sqlalchemy.ext.asyncio import AsyncEngine

from clinicvoice.config.constants import MEDIA_STREAM_PATH, WEBHOOK_PATH
from clinicvoice.config.logging_config import configure_logging
from clinicvoice.config.settings import BridgeSettings, load_settings
from clinicvoice.db.database import create_engine, create_session_factory, init_db
from clinicvoice.db.stores import SqlSchedulingStore, SqlTenantStore
from clinicvoice.handlers.voice_webhook import handle_voice_webhook
from clinicvoice.services.booking_executor import BookingExecutor
from clinicvoice.services.stores import (
    InMemorySchedulingStore,
    InMemoryTenantStore,
    SchedulingStore,
    TenantStore,
)
from clinicvoice.services.tenant_resolver import TenantResolver
from clinicvoice.websocket_manager import MediaStreamManager

# Load environment variables from .env file if it exists
env_path = Path(".") / ".env"
if env_path.exists():
    dotenv.load_dotenv(env_path)

# Configure logging
logger = configure_logging()

settings = load_settings()


def build_stores(
    settings: BridgeSettings,
) -> Tuple[TenantStore, SchedulingStore, Optional[AsyncEngine]]:
    """
    Create the tenant and scheduling stores for the configured backend.

    Returns:
        The tenant store, the scheduling store and the SQL engine (None for in-memory stores)
    """
    if settings.database_url:
        engine = create_engine(settings.database_url)
        session_factory = create_session_factory(engine)
        logger.info("Using SQL tenant and scheduling stores")
        return SqlTenantStore(session_factory), SqlSchedulingStore(session_factory), engine

    if settings.tenants_file:
        tenant_store = InMemoryTenantStore.from_yaml(settings.tenants_file)
    else:
        tenant_store = InMemoryTenantStore()
    logger.info("Using in-memory tenant and scheduling stores")
    return tenant_store, InMemorySchedulingStore(), None


tenant_store, scheduling_store, engine = build_stores(settings)

# Create media stream manager
websocket_manager = MediaStreamManager(
    resolver=TenantResolver(tenant_store, default_voice=settings.voice),
    executor=BookingExecutor(scheduling_store),
    settings=settings,
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if engine is not None:
        await init_db(engine)
    yield
    await websocket_manager.registry.close_all("shutdown")
    if engine is not None:
        await engine.dispose()


# Create FastAPI application
app = FastAPI(
    title="ClinicVoice Call Bridge",
    description="Bridges Twilio phone calls to the OpenAI Realtime API for clinic receptionist calls",
    version="1.0.0",
    lifespan=lifespan,
)


@app.post(WEBHOOK_PATH)
async def voice_webhook(request: Request):
    """Twilio voice webhook returning TwiML for an inbound call."""
    return await handle_voice_webhook(request, websocket_manager.resolver, settings)


@app.websocket(MEDIA_STREAM_PATH)
async def media_stream_endpoint(websocket: WebSocket):
    """WebSocket endpoint for Twilio Media Streams.

    Each connection is one phone call, bridged to its own OpenAI Realtime
    session until either side hangs up.
    """
    await websocket_manager.handle_websocket(websocket)


@app.get("/health")
async def health_check():
    """Health check endpoint for monitoring system status.

    Returns:
        dict: Status information indicating the server is operational.
    """
    return {
        "status": "healthy",
        "openai_api_key_configured": bool(settings.openai_api_key),
        "active_sessions": len(websocket_manager.registry),
    }


@app.get("/")
async def root():
    """Root endpoint to display basic information about the API.

    Returns:
        dict: Basic information about the API and its purpose.
    """
    return {
        "name": "ClinicVoice Call Bridge",
        "description": "Bridges Twilio phone calls to the OpenAI Realtime API for clinic receptionist calls",
        "version": "1.0.0",
        "endpoints": {
            WEBHOOK_PATH: "Twilio voice webhook (TwiML)",
            MEDIA_STREAM_PATH: "WebSocket endpoint for Twilio Media Streams",
            "/health": "Health check endpoint",
        },
    }


if __name__ == "__main__":
    import uvicorn

    logger.info(f"Starting server on http://{settings.host}:{settings.port}")
    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        ws_ping_interval=5,
        ws_max_size=16777216,  # 16MB - large enough for audio chunks
        ws_ping_timeout=20,
        http="h11",
    )
