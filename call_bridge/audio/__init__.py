"""Audio conversion applied to agent audio before it reaches the telephony leg."""

from call_bridge.audio.transcoder import (
    AgentAudioTranscoder,
    linear_to_ulaw,
    parse_audio_format,
    pcm16_to_ulaw,
    resample_pcm16,
)

__all__ = [
    "AgentAudioTranscoder",
    "linear_to_ulaw",
    "parse_audio_format",
    "pcm16_to_ulaw",
    "resample_pcm16",
]
