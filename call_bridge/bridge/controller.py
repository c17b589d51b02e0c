"""
Bridge controller connecting one telephony media stream to one agent conversation.

A CallBridge owns a Session and both of its legs. Each leg is read by its own task,
but every message, readiness signal and close notice is funnelled through a single
queue and handled one at a time by ``run``, so state changes for a call are always
serialized. The signed-URL fetch and agent connect happen in a separate task that
reports back through the same queue, which keeps the telephony leg serviced while
the agent leg is being opened.
"""

import asyncio
import json
import logging
from collections import deque
from typing import Any, Awaitable, Callable, Deque, Dict, Optional

from pydantic import ValidationError

from call_bridge.audio.transcoder import AgentAudioTranscoder
from call_bridge.bridge.translator import (
    agent_audio_to_telephony,
    build_initiation_payload,
    interruption_to_telephony,
    ping_to_pong,
    telephony_media_to_agent,
)
from call_bridge.config.constants import (
    AGENT_MESSAGE_AGENT_RESPONSE,
    AGENT_MESSAGE_AGENT_RESPONSE_CORRECTION,
    AGENT_MESSAGE_AUDIO,
    AGENT_MESSAGE_INITIATION_METADATA,
    AGENT_MESSAGE_INTERRUPTION,
    AGENT_MESSAGE_PING,
    AGENT_MESSAGE_TRANSCRIPT_RESPONSE,
    AGENT_MESSAGE_USER_TRANSCRIPT,
    AGENT_MESSAGE_VAD_SCORE,
    EARLY_MEDIA_LIMIT,
    LOGGER_NAME,
    TELEPHONY_EVENT_CONNECTED,
    TELEPHONY_EVENT_MARK,
    TELEPHONY_EVENT_MEDIA,
    TELEPHONY_EVENT_START,
    TELEPHONY_EVENT_STOP,
)
from call_bridge.models.message_schemas import StartMessage, UserAudioChunkMessage
from call_bridge.models.session import Session, SessionState
from call_bridge.services.legs import AgentLeg

logger = logging.getLogger(LOGGER_NAME)

TELEPHONY = "telephony"
AGENT = "agent"

# Kinds of events queued for the session loop
_MESSAGE = "message"
_CLOSED = "closed"
_READY = "ready"
_FAILED = "failed"
_WAKE = "wake"

AgentConnector = Callable[[str], Awaitable[Any]]
Handler = Callable[[Dict[str, Any]], Awaitable[None]]


class CallBridge:
    """
    Bridge between one telephony media stream and one agent WebSocket.

    This class handles:
    - Driving the session through INIT, CONNECTING, STREAMING, CLOSING and CLOSED
    - Opening exactly one agent leg from a signed URL once the call starts
    - Translating and forwarding messages in both directions
    - Tearing down the remaining leg as soon as either side ends or fails
    """

    def __init__(
        self,
        telephony_leg: Any,
        url_issuer: Any,
        agent_id: Optional[str] = None,
        agent_connector: AgentConnector = AgentLeg.connect,
        transcoder: Optional[AgentAudioTranscoder] = None,
        early_media_limit: int = EARLY_MEDIA_LIMIT,
    ):
        """
        Args:
            telephony_leg: The accepted telephony channel
            url_issuer: Object with an async ``get_signed_url(agent_id)``
            agent_id: Agent the call is connected to
            agent_connector: Coroutine function opening an agent leg from a URL
            transcoder: Converts agent audio for the telephony leg
            early_media_limit: Caller audio chunks held while the agent connects
        """
        self.session = Session(telephony_leg=telephony_leg)
        self.url_issuer = url_issuer
        self.agent_id = agent_id
        self.agent_connector = agent_connector
        self.transcoder = transcoder or AgentAudioTranscoder()

        self._events: asyncio.Queue = asyncio.Queue()
        self._early_media: Deque[UserAudioChunkMessage] = deque(maxlen=early_media_limit)
        self._telephony_task: Optional[asyncio.Task] = None
        self._agent_task: Optional[asyncio.Task] = None
        self._connect_task: Optional[asyncio.Task] = None

        self.telephony_handlers: Dict[str, Handler] = {
            TELEPHONY_EVENT_START: self._handle_start,
            TELEPHONY_EVENT_MEDIA: self._handle_media,
            TELEPHONY_EVENT_STOP: self._handle_stop,
            TELEPHONY_EVENT_CONNECTED: self._handle_telephony_info,
            TELEPHONY_EVENT_MARK: self._handle_telephony_info,
        }
        self.agent_handlers: Dict[str, Handler] = {
            AGENT_MESSAGE_AUDIO: self._handle_agent_audio,
            AGENT_MESSAGE_INTERRUPTION: self._handle_interruption,
            AGENT_MESSAGE_PING: self._handle_ping,
            AGENT_MESSAGE_INITIATION_METADATA: self._handle_initiation_metadata,
            AGENT_MESSAGE_USER_TRANSCRIPT: self._handle_transcript,
            AGENT_MESSAGE_TRANSCRIPT_RESPONSE: self._handle_transcript,
            AGENT_MESSAGE_AGENT_RESPONSE: self._handle_transcript,
            AGENT_MESSAGE_AGENT_RESPONSE_CORRECTION: self._handle_transcript,
            AGENT_MESSAGE_VAD_SCORE: self._handle_agent_info,
        }

    @property
    def stream_sid(self) -> Optional[str]:
        return self.session.stream_sid

    async def run(self) -> None:
        """Service the call until it is torn down, then release both legs."""
        self._telephony_task = asyncio.create_task(
            self._pump(TELEPHONY, self.session.telephony_leg)
        )
        try:
            while not self.session.is_closing:
                source, kind, payload = await self._events.get()
                if self.session.is_closing:
                    break
                await self._dispatch(source, kind, payload)
        except asyncio.CancelledError:
            logger.info(f"Call bridge cancelled for stream: {self.stream_sid}")
            raise
        finally:
            await self.close()

    async def close(self) -> None:
        """Tear the call down. Calling it again, or after the call ended, does nothing."""
        if self.session.is_closing:
            return
        self.session.transition(SessionState.CLOSING)
        logger.info(f"Closing call bridge for stream: {self.stream_sid}")

        current = asyncio.current_task()
        tasks = [
            task
            for task in (self._connect_task, self._agent_task, self._telephony_task)
            if task is not None and task is not current and not task.done()
        ]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

        # An agent leg may have finished opening after teardown began
        while not self._events.empty():
            _, kind, payload = self._events.get_nowait()
            if kind == _READY:
                await payload.close()

        self._early_media.clear()
        await self.session.close_legs()
        self.session.transition(SessionState.CLOSED)
        # Release run() if teardown was started from outside the loop
        self._events.put_nowait((None, _WAKE, None))
        logger.info(f"Call bridge closed for stream: {self.stream_sid}")

    async def _pump(self, source: str, leg: Any) -> None:
        """Queue every inbound message of one leg, then a close notice."""
        error: Optional[Exception] = None
        try:
            async for raw in leg.messages():
                self._events.put_nowait((source, _MESSAGE, raw))
        except asyncio.CancelledError:
            raise
        except Exception as e:
            error = e
        self._events.put_nowait((source, _CLOSED, error))

    async def _open_agent_leg(self) -> None:
        """Fetch a signed URL and connect the agent leg, reporting the outcome."""
        try:
            url = await self.url_issuer.get_signed_url(self.agent_id)
            leg = await self.agent_connector(url)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self._events.put_nowait((AGENT, _FAILED, e))
            return
        self._events.put_nowait((AGENT, _READY, leg))

    async def _dispatch(self, source: str, kind: str, payload: Any) -> None:
        try:
            if kind == _MESSAGE:
                if source == TELEPHONY:
                    await self._on_telephony_message(payload)
                else:
                    await self._on_agent_message(payload)
            elif kind == _READY:
                await self._on_agent_ready(payload)
            elif kind == _FAILED:
                logger.error(f"Could not open agent leg for stream {self.stream_sid}: {payload}")
                await self.close()
            elif kind == _CLOSED:
                if payload is not None:
                    logger.error(f"{source.capitalize()} leg failed for stream {self.stream_sid}: {payload}")
                else:
                    logger.info(f"{source.capitalize()} leg ended for stream: {self.stream_sid}")
                await self.close()
        except Exception as e:
            # A failed send means the leg is gone
            logger.error(
                f"Error handling {source} {kind} for stream {self.stream_sid}: {e}",
                exc_info=True,
            )
            await self.close()

    @staticmethod
    def _parse(source: str, raw: Any) -> Optional[Dict[str, Any]]:
        try:
            message = json.loads(raw)
        except (TypeError, ValueError) as e:
            logger.warning(f"Discarding malformed {source} message: {e}")
            return None
        if not isinstance(message, dict):
            logger.warning(f"Discarding {source} message that is not an object: {raw!r:.100}")
            return None
        return message

    # Telephony leg

    async def _on_telephony_message(self, raw: Any) -> None:
        message = self._parse(TELEPHONY, raw)
        if message is None:
            return
        event = message.get("event")
        handler = self.telephony_handlers.get(event)
        if handler is None:
            logger.warning(f"Discarding unknown telephony event: {event}")
            return
        await handler(message)

    async def _handle_start(self, message: Dict[str, Any]) -> None:
        if self.session.state is not SessionState.INIT:
            logger.warning(f"Ignoring repeated start for stream: {self.stream_sid}")
            return
        try:
            start = StartMessage(**message).start
        except ValidationError as e:
            logger.error(f"Invalid start message: {e}")
            return

        self.session.begin(start.streamSid, start.customParameters, call_sid=start.callSid)
        logger.info(f"Call started: stream {start.streamSid}, call {start.callSid}")
        self._connect_task = asyncio.create_task(self._open_agent_leg())

    async def _handle_media(self, message: Dict[str, Any]) -> None:
        state = self.session.state
        if state is SessionState.INIT:
            logger.warning("Dropping media received before start")
            return
        if state is not SessionState.STREAMING and state is not SessionState.CONNECTING:
            return

        chunk = telephony_media_to_agent(message)
        if chunk is None:
            logger.debug("Telephony media event without payload")
            return

        if state is SessionState.CONNECTING:
            if len(self._early_media) == self._early_media.maxlen:
                logger.warning(
                    f"Early media buffer full for stream {self.stream_sid}, dropping oldest chunk"
                )
            self._early_media.append(chunk)
            return

        await self.session.agent_leg.send(chunk)

    async def _handle_stop(self, message: Dict[str, Any]) -> None:
        logger.info(f"Telephony stop received for stream: {self.stream_sid}")
        await self.close()

    async def _handle_telephony_info(self, message: Dict[str, Any]) -> None:
        logger.debug(f"Telephony event {message.get('event')} for stream: {self.stream_sid}")

    # Agent leg

    async def _on_agent_ready(self, leg: Any) -> None:
        if self.session.state is not SessionState.CONNECTING:
            await leg.close()
            return

        self.session.attach_agent_leg(leg)
        await leg.send(build_initiation_payload(self.session.agent_parameters))
        self.session.transition(SessionState.STREAMING)
        self._agent_task = asyncio.create_task(self._pump(AGENT, leg))
        logger.info(f"Agent leg ready for stream: {self.stream_sid}")

        while self._early_media:
            await leg.send(self._early_media.popleft())

    async def _on_agent_message(self, raw: Any) -> None:
        if self.session.state is not SessionState.STREAMING:
            return
        message = self._parse(AGENT, raw)
        if message is None:
            return
        message_type = message.get("type")
        handler = self.agent_handlers.get(message_type)
        if handler is None:
            logger.warning(f"Discarding unknown agent message type: {message_type}")
            return
        await handler(message)

    async def _handle_agent_audio(self, message: Dict[str, Any]) -> None:
        try:
            media = agent_audio_to_telephony(message, self.stream_sid, self.transcoder)
        except ValueError as e:
            # binascii.Error and pydantic's ValidationError are both ValueErrors
            logger.warning(f"Discarding undecodable agent audio: {e}")
            return
        if media is None:
            logger.warning("Agent audio message without audio payload")
            return
        await self.session.telephony_leg.send(media)

    async def _handle_interruption(self, message: Dict[str, Any]) -> None:
        logger.info(f"Agent interrupted, clearing playback for stream: {self.stream_sid}")
        await self.session.telephony_leg.send(interruption_to_telephony(self.stream_sid))

    async def _handle_ping(self, message: Dict[str, Any]) -> None:
        pong = ping_to_pong(message)
        if pong is None:
            logger.warning("Agent ping without event id")
            return
        await self.session.agent_leg.send(pong)

    async def _handle_initiation_metadata(self, message: Dict[str, Any]) -> None:
        metadata = message.get("conversation_initiation_metadata_event") or {}
        self.session.conversation_id = metadata.get("conversation_id")
        logger.info(
            f"Agent conversation {self.session.conversation_id} started for stream: {self.stream_sid}"
        )

    async def _handle_transcript(self, message: Dict[str, Any]) -> None:
        message_type = message.get("type")
        if message_type == AGENT_MESSAGE_USER_TRANSCRIPT:
            text = (message.get("user_transcription_event") or {}).get("user_transcript")
            logger.info(f"[{self.stream_sid}] Caller: {text}")
        elif message_type == AGENT_MESSAGE_AGENT_RESPONSE:
            text = (message.get("agent_response_event") or {}).get("agent_response")
            logger.info(f"[{self.stream_sid}] Agent: {text}")
        else:
            logger.debug(f"[{self.stream_sid}] {message_type}: {message}")

    async def _handle_agent_info(self, message: Dict[str, Any]) -> None:
        logger.debug(f"Agent event {message.get('type')} for stream: {self.stream_sid}")
