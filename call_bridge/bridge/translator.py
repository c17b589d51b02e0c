"""
Protocol translation between the telephony media stream and the agent WebSocket.

Every function here is a pure mapping from one envelope to another. None of them do
I/O or touch session state; the CallBridge decides what to send and where.
"""

import logging
from typing import Any, Dict, Mapping, Optional

from call_bridge.audio.transcoder import AgentAudioTranscoder
from call_bridge.config.constants import (
    DEFAULT_FIRST_MESSAGE,
    DEFAULT_PROMPT,
    LOGGER_NAME,
    PARAM_FIRST_MESSAGE,
    PARAM_PROMPT,
)
from call_bridge.models.message_schemas import (
    AgentOverride,
    AgentPromptOverride,
    ClearMessage,
    ConversationConfigOverride,
    ConversationInitiationClientData,
    MediaPayload,
    OutboundMediaMessage,
    PongMessage,
    UserAudioChunkMessage,
)

logger = logging.getLogger(LOGGER_NAME)


def telephony_media_to_agent(message: Mapping[str, Any]) -> Optional[UserAudioChunkMessage]:
    """
    Translate a telephony media event into an agent user-audio chunk.

    The payload is forwarded byte for byte; caller audio is already in the agent's
    input encoding.

    Returns:
        The agent envelope, or None if the event carries no payload
    """
    media = message.get("media")
    payload = media.get("payload") if isinstance(media, dict) else None
    if not payload:
        return None
    return UserAudioChunkMessage(user_audio_chunk=payload)


def extract_agent_audio(message: Mapping[str, Any]) -> Optional[str]:
    """
    Find the base64 audio chunk in an agent audio message.

    Two message shapes are in circulation: ``{"audio": {"chunk": ...}}`` and
    ``{"audio_event": {"audio_base_64": ...}}``. The first one present wins.
    """
    for outer, inner in (("audio", "chunk"), ("audio_event", "audio_base_64")):
        container = message.get(outer)
        if isinstance(container, dict) and container.get(inner):
            return container[inner]
    return None


def agent_audio_to_telephony(
    message: Mapping[str, Any],
    stream_sid: str,
    transcoder: Optional[AgentAudioTranscoder] = None,
) -> Optional[OutboundMediaMessage]:
    """
    Translate an agent audio message into a telephony media event.

    Args:
        message: Parsed agent audio message
        stream_sid: The session's stream identifier
        transcoder: Applied to the payload unless it is a pass-through

    Returns:
        The telephony envelope, or None if the message carries no audio

    Raises:
        binascii.Error: If transcoding is needed and the payload is not base64
        pydantic.ValidationError: If the resulting payload is not valid base64
    """
    payload = extract_agent_audio(message)
    if payload is None:
        return None
    if transcoder is not None and not transcoder.passthrough:
        payload = transcoder.transcode_base64(payload)
    return OutboundMediaMessage(streamSid=stream_sid, media=MediaPayload(payload=payload))


def interruption_to_telephony(stream_sid: str) -> ClearMessage:
    """Build the clear event that flushes the telephony leg's queued playback."""
    return ClearMessage(streamSid=stream_sid)


def ping_to_pong(message: Mapping[str, Any]) -> Optional[PongMessage]:
    """Build the pong answering an agent ping, or None if the ping has no event id."""
    ping_event = message.get("ping_event")
    event_id = None
    if isinstance(ping_event, dict):
        event_id = ping_event.get("event_id")
    if event_id is None:
        event_id = message.get("event_id")
    if event_id is None:
        return None
    return PongMessage(event_id=event_id)


def _override_text(value: Any, default: str) -> str:
    if value is None:
        return default
    text = value if isinstance(value, str) else str(value)
    return text if text.strip() else default


def build_initiation_payload(
    parameters: Mapping[str, Any],
    default_prompt: str = DEFAULT_PROMPT,
    default_first_message: str = DEFAULT_FIRST_MESSAGE,
) -> ConversationInitiationClientData:
    """
    Build the one-time initiation payload for the agent leg.

    The ``prompt`` and ``first_message`` parameters override the agent's persona and
    greeting, falling back to the defaults when absent or blank. Parameters are
    free-form, so non-string values are rendered as text. Every parameter is also
    exposed to the agent as a dynamic variable.
    """
    prompt = _override_text(parameters.get(PARAM_PROMPT), default_prompt)
    first_message = _override_text(parameters.get(PARAM_FIRST_MESSAGE), default_first_message)
    dynamic_variables: Dict[str, Any] = {
        str(key): value for key, value in parameters.items() if str(key).strip()
    }

    return ConversationInitiationClientData(
        dynamic_variables=dynamic_variables,
        conversation_config_override=ConversationConfigOverride(
            agent=AgentOverride(
                prompt=AgentPromptOverride(prompt=prompt),
                first_message=first_message,
            )
        ),
    )
