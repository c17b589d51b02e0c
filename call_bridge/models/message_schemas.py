"""
Pydantic models for the telephony media-stream and agent WebSocket message schemas.

This module defines structured data models for the messages the bridge parses and
produces on both legs, providing type validation and documentation. Inbound audio
chunks are deliberately not modelled: they take a fast path through plain dicts.
"""

import base64
from typing import Any, Dict, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _validate_base64(v: str) -> str:
    if not v:
        raise ValueError("Audio payload cannot be empty")
    try:
        base64.b64decode(v, validate=True)
    except ValueError:
        raise ValueError("Invalid base64 encoded audio data")
    return v


# Telephony leg, inbound
class TelephonyMessage(BaseModel):
    """Base model for messages arriving on the telephony leg."""

    model_config = ConfigDict(extra="allow")

    event: str = Field(..., description="Event name")
    sequenceNumber: Optional[str] = Field(None, description="Per-stream sequence number")
    streamSid: Optional[str] = Field(None, description="Stream identifier")


class StartPayload(BaseModel):
    """Body of the start event."""

    model_config = ConfigDict(extra="allow")

    streamSid: str = Field(..., description="Identifier of the media stream")
    callSid: Optional[str] = Field(None, description="Identifier of the call")
    accountSid: Optional[str] = Field(None, description="Account owning the call")
    customParameters: Dict[str, Any] = Field(
        default_factory=dict, description="Free-form parameters attached to the stream"
    )
    mediaFormat: Optional[Dict[str, Any]] = Field(None, description="Inbound audio format")

    @field_validator("streamSid")
    def validate_stream_sid(cls, v):
        """Validate that the stream identifier is not blank."""
        if not v.strip():
            raise ValueError("streamSid cannot be empty")
        return v


class StartMessage(TelephonyMessage):
    """Model for the start event announcing a new media stream."""

    event: Literal["start"]
    start: StartPayload


class StopMessage(TelephonyMessage):
    """Model for the stop event ending the media stream."""

    event: Literal["stop"]
    stop: Optional[Dict[str, Any]] = None


# Telephony leg, outbound
class MediaPayload(BaseModel):
    """Audio carried in an outbound media event."""

    payload: str = Field(..., description="Base64-encoded mu-law audio")

    @field_validator("payload")
    def validate_payload(cls, v):
        """Validate that the payload is valid base64."""
        return _validate_base64(v)


class OutboundMediaMessage(BaseModel):
    """Model for a media event sent to the telephony leg."""

    event: Literal["media"] = "media"
    streamSid: str = Field(..., description="Stream the audio belongs to")
    media: MediaPayload


class ClearMessage(BaseModel):
    """Model for a clear event telling the telephony leg to drop queued audio."""

    event: Literal["clear"] = "clear"
    streamSid: str = Field(..., description="Stream whose playback buffer is cleared")


# Agent leg, outbound
class UserAudioChunkMessage(BaseModel):
    """Model for caller audio forwarded to the agent."""

    user_audio_chunk: str = Field(..., description="Base64-encoded caller audio")


class PongMessage(BaseModel):
    """Model for the reply to an agent ping."""

    type: Literal["pong"] = "pong"
    event_id: Union[int, str] = Field(..., description="Event id echoed from the ping")


class AgentPromptOverride(BaseModel):
    """Prompt section of the agent configuration override."""

    prompt: str


class AgentOverride(BaseModel):
    """Agent section of the conversation configuration override."""

    prompt: AgentPromptOverride
    first_message: str


class ConversationConfigOverride(BaseModel):
    """Per-call overrides of the agent's configuration."""

    agent: AgentOverride


class ConversationInitiationClientData(BaseModel):
    """Model for the one-time initiation payload sent when the agent leg is ready."""

    type: Literal["conversation_initiation_client_data"] = "conversation_initiation_client_data"
    dynamic_variables: Dict[str, Any] = Field(default_factory=dict)
    conversation_config_override: ConversationConfigOverride

    @field_validator("dynamic_variables")
    def validate_dynamic_variables(cls, v):
        """Validate that dynamic variable names are non-empty strings."""
        for key in v:
            if not isinstance(key, str) or not key.strip():
                raise ValueError(f"Invalid dynamic variable name: {key!r}")
        return v


# Union type for all messages the bridge sends to the telephony leg
TelephonyOutgoingMessage = Union[OutboundMediaMessage, ClearMessage]

# Union type for all messages the bridge sends to the agent leg
AgentOutgoingMessage = Union[
    UserAudioChunkMessage,
    PongMessage,
    ConversationInitiationClientData,
]

OutgoingMessage = Union[TelephonyOutgoingMessage, AgentOutgoingMessage]
