"""
Audio transcoding for agent-leg audio bound for the telephony leg.

The telephony leg plays 8-bit mu-law at 8 kHz. Agents may emit mu-law directly or
16-bit little-endian linear PCM at a higher rate, in which case the chunk is
resampled down to 8 kHz and companded sample by sample. Every function here is
pure: chunks are converted independently, with no history carried between them.
"""

import base64
import logging
from functools import lru_cache
from typing import Tuple

import numpy as np

from call_bridge.config.constants import (
    AUDIO_FORMAT_ULAW_8000,
    LOGGER_NAME,
    SUPPORTED_AGENT_OUTPUT_FORMATS,
    TELEPHONY_SAMPLE_RATE,
)
from call_bridge.exceptions import UnsupportedAudioFormat

logger = logging.getLogger(LOGGER_NAME)

# mu-law constants
ULAW_CLIP = 32635  # Maximum magnitude before biasing
ULAW_BIAS = 0x84

# Low-pass filter used ahead of downsampling
FILTER_TAPS = 31
FILTER_CUTOFF_RATIO = 0.45


def linear_to_ulaw(sample: int) -> int:
    """Encode one signed 16-bit PCM sample as a mu-law byte."""
    if sample < 0:
        sign = 0x80
        magnitude = -sample
    else:
        sign = 0
        magnitude = sample

    if magnitude > ULAW_CLIP:
        magnitude = ULAW_CLIP
    magnitude += ULAW_BIAS

    # Segment is the highest set bit among bits 14..7
    exponent = 7
    mask = 0x4000
    while (magnitude & mask) == 0 and exponent > 0:
        exponent -= 1
        mask >>= 1

    mantissa = (magnitude >> (exponent + 3)) & 0x0F
    return ~(sign | (exponent << 4) | mantissa) & 0xFF


@lru_cache(maxsize=None)
def ulaw_encode_table() -> np.ndarray:
    """Lookup table indexed by the unsigned bit pattern of a 16-bit sample."""
    table = np.zeros(65536, dtype=np.uint8)
    for index in range(65536):
        sample = index - 65536 if index >= 32768 else index
        table[index] = linear_to_ulaw(sample)
    table.setflags(write=False)
    return table


def pcm16_to_ulaw(pcm_data: bytes) -> bytes:
    """Convert little-endian PCM16 audio to mu-law, one byte per sample.

    Args:
        pcm_data: PCM16 audio; a trailing odd byte is ignored

    Returns:
        mu-law encoded audio
    """
    if len(pcm_data) % 2:
        logger.debug("Dropping trailing odd byte from PCM16 chunk")
        pcm_data = pcm_data[:-1]
    if not pcm_data:
        return b""

    samples = np.frombuffer(pcm_data, dtype="<i2")
    return ulaw_encode_table()[samples.view("<u2")].tobytes()


def resample_pcm16(data: bytes, from_rate: int, to_rate: int) -> bytes:
    """Resample PCM16 audio using a low-pass filter and linear interpolation.

    Args:
        data: PCM16 audio data (little-endian)
        from_rate: Source sample rate in Hz
        to_rate: Target sample rate in Hz

    Returns:
        Resampled PCM16 audio data
    """
    if from_rate <= 0 or to_rate <= 0:
        raise ValueError(f"Sample rates must be positive, got {from_rate} -> {to_rate}")
    if from_rate == to_rate:
        return data

    if len(data) % 2:
        data = data[:-1]
    samples = np.frombuffer(data, dtype="<i2").astype(np.float32)
    if len(samples) == 0:
        return b""

    if to_rate < from_rate:
        norm_cutoff = (FILTER_CUTOFF_RATIO * to_rate) / (from_rate / 2.0)
        n = np.arange(FILTER_TAPS) - (FILTER_TAPS - 1) / 2.0
        h = np.sinc(norm_cutoff * n) * np.hamming(FILTER_TAPS)
        h /= np.sum(h)
        samples = np.convolve(samples, h, mode="same")

    new_length = int(len(samples) * to_rate / from_rate)
    if new_length == 0:
        return b""

    old_indices = np.arange(len(samples))
    new_indices = np.linspace(0, len(samples) - 1, new_length)
    resampled = np.interp(new_indices, old_indices, samples)

    resampled = np.clip(np.round(resampled), -32768, 32767).astype("<i2")
    return resampled.tobytes()


def parse_audio_format(name: str) -> Tuple[str, int]:
    """Split an agent output format such as ``pcm_16000`` into encoding and rate.

    Raises:
        UnsupportedAudioFormat: If the format is not one the bridge can convert
    """
    if name not in SUPPORTED_AGENT_OUTPUT_FORMATS:
        raise UnsupportedAudioFormat(
            f"Unsupported agent output format: {name!r} "
            f"(expected one of {SUPPORTED_AGENT_OUTPUT_FORMATS})"
        )
    encoding, _, rate = name.partition("_")
    return encoding, int(rate)


class AgentAudioTranscoder:
    """
    Converts agent audio chunks into the telephony leg's mu-law 8 kHz format.

    The instance only holds the negotiated formats; conversion of one chunk never
    depends on the chunks before it, so a single instance can be shared freely.
    """

    def __init__(
        self,
        source_format: str = AUDIO_FORMAT_ULAW_8000,
        target_rate: int = TELEPHONY_SAMPLE_RATE,
    ):
        self.source_format = source_format
        self.encoding, self.source_rate = parse_audio_format(source_format)
        self.target_rate = target_rate

    @property
    def passthrough(self) -> bool:
        """True when agent audio is already in the telephony format."""
        return self.encoding == "ulaw" and self.source_rate == self.target_rate

    def transcode(self, audio: bytes) -> bytes:
        """Convert one raw agent audio chunk to mu-law at the target rate."""
        if self.passthrough:
            return audio
        pcm = resample_pcm16(audio, self.source_rate, self.target_rate)
        return pcm16_to_ulaw(pcm)

    def transcode_base64(self, payload: str) -> str:
        """Convert one base64 agent audio chunk, returning base64.

        Raises:
            binascii.Error: If the payload is not valid base64
        """
        if self.passthrough:
            return payload
        audio = base64.b64decode(payload, validate=True)
        return base64.b64encode(self.transcode(audio)).decode("ascii")
