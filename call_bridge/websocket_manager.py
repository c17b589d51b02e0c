"""
WebSocket connection manager for telephony media streams.

This module implements the server-side handling of media-stream connections from the
call platform. For every accepted connection it creates an independent CallBridge,
runs it to completion, and makes sure the socket is released however the call ends.
Calls share nothing except the stateless URL issuer and audio transcoder.
"""

import logging
import os
import socket
from typing import Any, Optional

from fastapi import WebSocket

from call_bridge.audio.transcoder import AgentAudioTranscoder
from call_bridge.bridge.controller import AgentConnector, CallBridge
from call_bridge.config.constants import AUDIO_FORMAT_ULAW_8000, LOGGER_NAME
from call_bridge.services.legs import AgentLeg, TelephonyLeg
from call_bridge.services.signed_url import SignedUrlClient

logger = logging.getLogger(LOGGER_NAME)

AGENT_OUTPUT_FORMAT = os.getenv("AGENT_OUTPUT_FORMAT", AUDIO_FORMAT_ULAW_8000)


class WebSocketManager:
    """Accepts media-stream WebSockets and runs one CallBridge per call."""

    def __init__(
        self,
        url_issuer: Optional[Any] = None,
        agent_id: Optional[str] = None,
        agent_output_format: Optional[str] = None,
        agent_connector: AgentConnector = AgentLeg.connect,
    ):
        self.url_issuer = url_issuer or SignedUrlClient()
        self.agent_id = agent_id if agent_id is not None else os.getenv("ELEVENLABS_AGENT_ID")
        self.transcoder = AgentAudioTranscoder(agent_output_format or AGENT_OUTPUT_FORMAT)
        self.agent_connector = agent_connector
        self.active_calls = 0

    async def _optimize_socket(self, websocket: WebSocket) -> None:
        """
        Optimize the WebSocket's underlying TCP socket for low-latency transmission.

        Args:
            websocket: The FastAPI WebSocket connection
        """
        try:
            client = websocket.client
            if hasattr(client, "sock") and client.sock is not None:
                # Disable Nagle's algorithm to send packets immediately
                client.sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
                logger.info("Optimized socket: TCP_NODELAY enabled for low latency")
        except OSError as e:
            logger.warning(f"Could not optimize socket: {e}")

    def create_bridge(self, websocket: WebSocket) -> CallBridge:
        """Build the CallBridge for one accepted connection."""
        return CallBridge(
            TelephonyLeg(websocket),
            self.url_issuer,
            agent_id=self.agent_id,
            agent_connector=self.agent_connector,
            transcoder=self.transcoder,
        )

    async def handle_websocket(self, websocket: WebSocket) -> None:
        """Handle a media-stream connection throughout its lifecycle.

        Args:
            websocket (WebSocket): The FastAPI WebSocket connection object

        The connection stays open until the call platform stops the stream, either
        leg disconnects, or the agent leg cannot be established.
        """
        await websocket.accept()
        await self._optimize_socket(websocket)
        logger.info("Media stream connection established")

        bridge = self.create_bridge(websocket)
        self.active_calls += 1
        try:
            await bridge.run()
        except Exception as e:
            logger.error(f"Error in call bridge: {e}", exc_info=True)
        finally:
            self.active_calls -= 1
            await bridge.close()
            logger.info(f"Media stream connection closed for stream: {bridge.stream_sid}")
