"""
FastAPI server bridging telephony media streams to a conversational AI agent.

This module initializes and configures the FastAPI application that the call
platform connects its media streams to. Each stream is bridged to its own agent
conversation opened through a signed URL from the agent provider.
"""

import os
from pathlib import Path

import dotenv

# Load environment variables before modules that read them at import time
env_path = Path(".") / ".env"
if env_path.exists():
    dotenv.load_dotenv(env_path)

from fastapi import FastAPI, WebSocket  # noqa: E402

from call_bridge.config.logging_config import configure_logging  # noqa: E402
from call_bridge.websocket_manager import WebSocketManager  # noqa: E402

# Configure logging
logger = configure_logging()

# Get configuration from environment variables
PORT = int(os.getenv("PORT", "8000"))
HOST = os.getenv("HOST", "0.0.0.0")

# Create FastAPI application
app = FastAPI(
    title="Call Bridge",
    description="Bridges telephony media streams to a conversational AI agent",
    version="1.0.0",
)

# Create WebSocket manager
websocket_manager = WebSocketManager()


@app.websocket("/media-stream")
async def media_stream(websocket: WebSocket):
    """WebSocket endpoint the call platform streams call audio to.

    The connection carries start, media and stop events for one call; agent audio
    and clear events are sent back on the same socket.
    """
    await websocket_manager.handle_websocket(websocket)


@app.get("/health")
async def health_check():
    """Health check endpoint for monitoring system status.

    Returns:
        dict: Status information, configuration flags and the number of live calls.
    """
    return {
        "status": "healthy",
        "agent_api_key_configured": bool(websocket_manager.url_issuer.api_key),
        "agent_id_configured": bool(websocket_manager.agent_id),
        "agent_output_format": websocket_manager.transcoder.source_format,
        "active_calls": websocket_manager.active_calls,
    }


@app.get("/")
async def root():
    """Root endpoint to display basic information about the API.

    Returns:
        dict: Basic information about the API and its purpose.
    """
    return {
        "name": "Call Bridge",
        "description": "Bridges telephony media streams to a conversational AI agent",
        "version": "1.0.0",
        "endpoints": {
            "/media-stream": "WebSocket endpoint for telephony media streams",
            "/health": "Health check endpoint",
        },
    }


if __name__ == "__main__":
    import uvicorn

    logger.info(f"Starting server on http://{HOST}:{PORT}")
    uvicorn.run(
        app,
        host=HOST,
        port=PORT,
        ws_ping_interval=5,
        ws_max_size=16777216,  # 16MB - large enough for audio chunks
        ws_ping_timeout=20,
        http="h11",
    )
