"""
Constants and configuration values used throughout the application.

This module defines constants that are used across different parts of the application,
providing a centralized location for protocol names and defaults so both legs of the
bridge use consistent naming.
"""

# Logger name used throughout the application
LOGGER_NAME = "call_bridge"

# Telephony leg (media stream) event names
TELEPHONY_EVENT_CONNECTED = "connected"
TELEPHONY_EVENT_START = "start"
TELEPHONY_EVENT_MEDIA = "media"
TELEPHONY_EVENT_MARK = "mark"
TELEPHONY_EVENT_STOP = "stop"

# Agent leg message types
AGENT_MESSAGE_AUDIO = "audio"
AGENT_MESSAGE_INTERRUPTION = "interruption"
AGENT_MESSAGE_PING = "ping"
AGENT_MESSAGE_USER_TRANSCRIPT = "user_transcript"
AGENT_MESSAGE_TRANSCRIPT_RESPONSE = "transcript_response"
AGENT_MESSAGE_AGENT_RESPONSE = "agent_response"
AGENT_MESSAGE_AGENT_RESPONSE_CORRECTION = "agent_response_correction"
AGENT_MESSAGE_INITIATION_METADATA = "conversation_initiation_metadata"
AGENT_MESSAGE_VAD_SCORE = "vad_score"

# Custom parameter keys understood at agent-leg initiation
PARAM_PROMPT = "prompt"
PARAM_FIRST_MESSAGE = "first_message"

# Defaults used when the telephony leg does not supply them
DEFAULT_PROMPT = "You are a helpful phone assistant. Keep your answers short and friendly."
DEFAULT_FIRST_MESSAGE = "Hello, how can I assist you today?"

# Audio format constants
AUDIO_FORMAT_ULAW_8000 = "ulaw_8000"
TELEPHONY_SAMPLE_RATE = 8000
SUPPORTED_AGENT_OUTPUT_FORMATS = [
    "ulaw_8000",
    "pcm_8000",
    "pcm_16000",
    "pcm_22050",
    "pcm_24000",
    "pcm_44100",
]

# Agent provider endpoints
DEFAULT_API_BASE = "https://api.elevenlabs.io"
SIGNED_URL_PATH = "/v1/convai/conversation/get_signed_url"

# Media received while the agent leg is still connecting is held up to this many chunks
EARLY_MEDIA_LIMIT = 50
