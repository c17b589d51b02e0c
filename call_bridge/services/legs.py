"""
Message channels for the two legs of a bridged call.

TelephonyLeg wraps the FastAPI WebSocket the call platform connected to; AgentLeg
wraps the outbound ``websockets`` connection to the conversational agent. Both expose
the same small surface (``messages``, ``send``, ``close``) so the CallBridge can treat
them alike, and both make ``close`` safe to call any number of times.
"""

import asyncio
import json
import logging
from typing import Any, AsyncIterator, Dict, Union

import websockets
from fastapi import WebSocket, WebSocketDisconnect
from pydantic import BaseModel
from websockets.exceptions import ConnectionClosedOK, WebSocketException

from call_bridge.config.constants import LOGGER_NAME
from call_bridge.exceptions import AgentConnectionError

logger = logging.getLogger(LOGGER_NAME)

# WebSocket configuration for low latency
WS_MAX_SIZE = 16 * 1024 * 1024  # 16MB - large enough for audio chunks
WS_MAX_QUEUE = 32  # Small queue to prevent buffering
WS_PING_INTERVAL = 20
WS_PING_TIMEOUT = 10

Message = Union[BaseModel, Dict[str, Any]]


def _serialize(message: Message) -> str:
    if isinstance(message, BaseModel):
        return message.model_dump_json(exclude_none=True)
    return json.dumps(message)


class TelephonyLeg:
    """The call platform's media-stream WebSocket, accepted by our server."""

    name = "telephony"

    def __init__(self, websocket: WebSocket):
        self.websocket = websocket
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def messages(self) -> AsyncIterator[str]:
        """Yield text frames until the platform disconnects.

        Binary frames are not part of the media-stream protocol; they are logged and
        skipped without ending the call.
        """
        while not self._closed:
            try:
                message = await self.websocket.receive()
            except WebSocketDisconnect as e:
                message = {"type": "websocket.disconnect", "code": e.code}

            if message["type"] == "websocket.disconnect":
                logger.info(f"Telephony leg disconnected (code {message.get('code')})")
                self._closed = True
                return

            text = message.get("text")
            if text is None:
                size = len(message.get("bytes") or b"")
                logger.warning(f"Discarding non-text telephony frame ({size} bytes)")
                continue
            yield text

    async def send(self, message: Message) -> None:
        if self._closed:
            logger.debug("Dropping message for closed telephony leg")
            return
        await self.websocket.send_text(_serialize(message))

    async def close(self, code: int = 1000) -> None:
        """Close the socket once; later calls do nothing."""
        if self._closed:
            return
        self._closed = True
        try:
            await self.websocket.close(code=code)
        except RuntimeError as e:
            # Starlette raises when the peer already completed the close handshake
            logger.debug(f"Telephony leg already closed: {e}")
        logger.info("Telephony leg closed")


class AgentLeg:
    """The outbound WebSocket to the conversational agent."""

    name = "agent"

    def __init__(self, ws: Any):
        self.ws = ws
        self._closed = False

    @classmethod
    async def connect(cls, url: str) -> "AgentLeg":
        """
        Open the agent WebSocket at a signed URL.

        Raises:
            AgentConnectionError: If the connection cannot be established
        """
        try:
            ws = await websockets.connect(
                url,
                max_size=WS_MAX_SIZE,
                max_queue=WS_MAX_QUEUE,
                ping_interval=WS_PING_INTERVAL,
                ping_timeout=WS_PING_TIMEOUT,
                compression=None,  # Disable compression for lower latency
            )
        except (OSError, WebSocketException, asyncio.TimeoutError) as e:
            raise AgentConnectionError(f"Could not connect to agent: {e}") from e
        logger.info("Agent leg connected")
        return cls(ws)

    @property
    def closed(self) -> bool:
        return self._closed

    async def messages(self) -> AsyncIterator[str]:
        """Yield messages until the agent closes the connection.

        A normal close ends the iteration; an abnormal one raises ConnectionClosedError.
        """
        try:
            async for message in self.ws:
                if isinstance(message, bytes):
                    message = message.decode("utf-8", errors="replace")
                yield message
        except ConnectionClosedOK:
            logger.info("Agent leg closed normally")

    async def send(self, message: Message) -> None:
        if self._closed:
            logger.debug("Dropping message for closed agent leg")
            return
        await self.ws.send(_serialize(message))

    async def close(self) -> None:
        """Close the socket once; later calls do nothing."""
        if self._closed:
            return
        self._closed = True
        await self.ws.close()
        logger.info("Agent leg closed")
