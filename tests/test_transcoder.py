"""Tests for mu-law companding and resampling of agent audio."""

import base64
import binascii

import pytest

from call_bridge.audio.transcoder import (
    AgentAudioTranscoder,
    linear_to_ulaw,
    parse_audio_format,
    pcm16_to_ulaw,
    resample_pcm16,
    ulaw_encode_table,
)
from call_bridge.exceptions import UnsupportedAudioFormat

# Segment lookup from the classic G.711 reference encoder
EXP_LUT = [0, 0, 1, 1, 2, 2, 2, 2] + [3] * 8 + [4] * 16 + [5] * 32 + [6] * 64 + [7] * 128


def reference_ulaw(sample: int) -> int:
    sign = (sample >> 8) & 0x80
    if sign:
        sample = -sample
    if sample > 32635:
        sample = 32635
    sample += 0x84
    exponent = EXP_LUT[(sample >> 7) & 0xFF]
    mantissa = (sample >> (exponent + 3)) & 0x0F
    return ~(sign | (exponent << 4) | mantissa) & 0xFF


ALL_SAMPLES = range(-32768, 32768)


class TestCompanding:
    """Golden tests against the reference encoder."""

    def test_every_sample_matches_reference(self):
        mismatches = [s for s in ALL_SAMPLES if linear_to_ulaw(s) != reference_ulaw(s)]
        assert mismatches == []

    def test_vectorised_encoder_matches_reference(self):
        pcm = b"".join(s.to_bytes(2, "little", signed=True) for s in ALL_SAMPLES)
        expected = bytes(reference_ulaw(s) for s in ALL_SAMPLES)
        assert pcm16_to_ulaw(pcm) == expected

    @pytest.mark.parametrize(
        "sample,expected",
        [
            (0, 0xFF),
            (1, 0xFF),
            (-1, 0x7F),
            (1000, 0xCE),
            (32767, 0x80),
            (-32768, 0x00),
            (-32767, 0x00),
        ],
    )
    def test_known_values(self, sample, expected):
        assert linear_to_ulaw(sample) == expected

    # First reconstruction level of each segment in the G.711 mu-law decode table,
    # paired with its code word; each level must encode back to the same code.
    @pytest.mark.parametrize(
        "sample,expected",
        [
            (0, 0xFF),
            (8, 0xFE),
            (132, 0xEF),
            (396, 0xDF),
            (924, 0xCF),
            (1980, 0xBF),
            (4092, 0xAF),
            (8316, 0x9F),
            (16764, 0x8F),
            (32124, 0x80),
            (-8, 0x7E),
            (-132, 0x6F),
            (-924, 0x4F),
            (-16764, 0x0F),
            (-32124, 0x00),
        ],
    )
    def test_g711_segment_levels(self, sample, expected):
        assert linear_to_ulaw(sample) == expected

    def test_clamped_magnitudes_share_a_code(self):
        assert linear_to_ulaw(32635) == linear_to_ulaw(32767)
        assert linear_to_ulaw(-32635) == linear_to_ulaw(-32768)

    def test_table_is_read_only_and_cached(self):
        table = ulaw_encode_table()
        assert table is ulaw_encode_table()
        assert len(table) == 65536
        with pytest.raises(ValueError):
            table[0] = 0

    def test_one_byte_per_sample(self):
        assert len(pcm16_to_ulaw(b"\x00" * 320)) == 160

    def test_trailing_odd_byte_is_ignored(self):
        assert pcm16_to_ulaw(b"\x00\x00\x01") == b"\xff"

    def test_empty_input(self):
        assert pcm16_to_ulaw(b"") == b""


class TestResample:
    def test_downsample_halves_length(self):
        pcm_16k = b"\x00\x00" * 320
        assert len(resample_pcm16(pcm_16k, 16000, 8000)) == 320

    def test_same_rate_returns_input(self):
        data = b"\x01\x02" * 10
        assert resample_pcm16(data, 8000, 8000) is data

    def test_empty_input(self):
        assert resample_pcm16(b"", 24000, 8000) == b""

    def test_invalid_rate(self):
        with pytest.raises(ValueError, match="Sample rates must be positive"):
            resample_pcm16(b"\x00\x00", 0, 8000)

    def test_constant_signal_survives(self):
        sample = (1000).to_bytes(2, "little", signed=True)
        out = resample_pcm16(sample * 480, 24000, 8000)
        middle = [
            int.from_bytes(out[i:i + 2], "little", signed=True)
            for i in range(40, len(out) - 40, 2)
        ]
        assert all(abs(value - 1000) <= 2 for value in middle)


class TestAgentAudioTranscoder:
    def test_parse_audio_format(self):
        assert parse_audio_format("pcm_16000") == ("pcm", 16000)
        assert parse_audio_format("ulaw_8000") == ("ulaw", 8000)

    def test_unsupported_format(self):
        with pytest.raises(UnsupportedAudioFormat):
            AgentAudioTranscoder("mp3_44100")

    def test_ulaw_is_passthrough(self):
        transcoder = AgentAudioTranscoder("ulaw_8000")
        assert transcoder.passthrough
        assert transcoder.transcode_base64("QUJD") == "QUJD"

    def test_pcm_16000_is_resampled_and_companded(self):
        transcoder = AgentAudioTranscoder("pcm_16000")
        payload = base64.b64encode(b"\x00\x00" * 320).decode()

        out = base64.b64decode(transcoder.transcode_base64(payload))

        assert not transcoder.passthrough
        assert out == b"\xff" * 160

    def test_pcm_8000_is_only_companded(self):
        transcoder = AgentAudioTranscoder("pcm_8000")
        pcm = b"".join(s.to_bytes(2, "little", signed=True) for s in (0, -1, 32767))
        assert transcoder.transcode(pcm) == bytes([0xFF, 0x7F, 0x80])

    def test_invalid_base64_raises(self):
        transcoder = AgentAudioTranscoder("pcm_16000")
        with pytest.raises(binascii.Error):
            transcoder.transcode_base64("not base64!")
