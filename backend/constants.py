"""
VOICE CONSTANTS
---------------
Single source of truth for all behavioral values in the voice pipeline.

Rules:
- If changing a value changes runtime behavior, it belongs here.
- Playback, capture and the Opus codec all read the SAME AudioFormat.
  Per-call literals for sample rate or frame size are a bug.
- Other modules MUST import from this file.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final, Tuple

# =============================================================================
# Audio Format (PCM16 stereo @ 24kHz, 20ms frames)
# =============================================================================
# 24kHz matches the native output rate of the OpenAI speech endpoint, so
# synthesized audio never needs resampling. Opus is rate-agnostic on the
# wire: Discord clients decode our 24kHz stream at 48kHz without help.

AUDIO_SAMPLE_RATE_HZ: Final[int] = 24_000  # must equal TTS_OUTPUT_RATE_HZ
AUDIO_CHANNELS: Final[int] = 2
AUDIO_SAMPLE_WIDTH_BYTES: Final[int] = 2  # PCM16 (signed 16-bit)
AUDIO_FRAME_MS: Final[int] = 20

AUDIO_SAMPLES_PER_CHANNEL_PER_FRAME: Final[int] = (
    AUDIO_SAMPLE_RATE_HZ * AUDIO_FRAME_MS
) // 1000
AUDIO_SAMPLES_PER_FRAME: Final[int] = AUDIO_SAMPLES_PER_CHANNEL_PER_FRAME * AUDIO_CHANNELS
AUDIO_FRAME_DURATION_S: Final[float] = AUDIO_FRAME_MS / 1000.0

# =============================================================================
# Opus
# =============================================================================

OPUS_BITRATE_BPS: Final[int] = 64_000
OPUS_INBAND_FEC: Final[bool] = True
OPUS_APPLICATION: Final[str] = "voip"

# Upper bound for one compressed frame (frameSize * 2 * channels)
OPUS_MAX_FRAME_BYTES: Final[int] = (
    AUDIO_SAMPLES_PER_CHANNEL_PER_FRAME * AUDIO_SAMPLE_WIDTH_BYTES * AUDIO_CHANNELS
)

OPUS_SUPPORTED_RATES_HZ: Final[Tuple[int, ...]] = (8_000, 12_000, 16_000, 24_000, 48_000)
OPUS_SUPPORTED_FRAME_MS: Final[Tuple[int, ...]] = (10, 20, 40, 60)

# =============================================================================
# Capture
# =============================================================================

CAPTURE_WINDOW_S: Final[float] = 5.0

# =============================================================================
# Container decode / encode
# =============================================================================

# Frames (per channel) pulled from the container decoder per read
DECODE_BLOCK_FRAMES: Final[int] = 4_096

WAV_HEADER_BYTES: Final[int] = 44
WAV_FMT_CHUNK_BYTES: Final[int] = 16
WAV_FORMAT_PCM: Final[int] = 1

# =============================================================================
# Transport hand-off
# =============================================================================

# Outbound: ~1s of audio may be queued ahead of the paced sender
TRANSPORT_OUTBOUND_QUEUE_FRAMES: Final[int] = 50
# Inbound: ~10s of audio; oldest frames are dropped past this
TRANSPORT_INBOUND_QUEUE_FRAMES: Final[int] = 500

VOICE_CONNECT_TIMEOUT_S: Final[float] = 30.0

# =============================================================================
# Speech services
# =============================================================================

TTS_MODEL_DEFAULT: Final[str] = "tts-1"
TTS_VOICE_DEFAULT: Final[str] = "alloy"
TTS_RESPONSE_FORMAT: Final[str] = "mp3"
TTS_OUTPUT_RATE_HZ: Final[int] = 24_000  # OpenAI speech output, any response format
STT_MODEL_DEFAULT: Final[str] = "whisper-1"
STT_UPLOAD_FILENAME: Final[str] = "audio.wav"

# =============================================================================
# Concurrent Speak/Listen arbitration
# =============================================================================

BUSY_POLICY_ALLOW: Final[str] = "allow"
BUSY_POLICY_REJECT: Final[str] = "reject"
BUSY_POLICIES: Final[Tuple[str, ...]] = (BUSY_POLICY_ALLOW, BUSY_POLICY_REJECT)

# =============================================================================
# Convenience Bundles
# =============================================================================

@dataclass(frozen=True)
class AudioFormat:
    """
    Immutable bundle describing the session audio format.

    One instance is built at startup and shared by the Opus codec, the
    playback driver and the capture driver.
    """
    sample_rate_hz: int = AUDIO_SAMPLE_RATE_HZ
    channels: int = AUDIO_CHANNELS
    sample_width_bytes: int = AUDIO_SAMPLE_WIDTH_BYTES
    frame_ms: int = AUDIO_FRAME_MS
    bitrate_bps: int = OPUS_BITRATE_BPS
    inband_fec: bool = OPUS_INBAND_FEC

    @property
    def samples_per_channel(self) -> int:
        """Samples per channel in one frame (the Opus frame size)."""
        return (self.sample_rate_hz * self.frame_ms) // 1000

    @property
    def samples_per_frame(self) -> int:
        """Interleaved samples in one frame across all channels."""
        return self.samples_per_channel * self.channels

    @property
    def max_frame_bytes(self) -> int:
        """Upper bound for one compressed frame."""
        return self.samples_per_channel * self.sample_width_bytes * self.channels

    @property
    def frame_duration_s(self) -> float:
        return self.frame_ms / 1000.0

    def validate(self) -> None:
        """
        Reject formats the Opus codec cannot carry.

        Raises:
            ValueError describing the first offending field.
        """
        if self.sample_rate_hz not in OPUS_SUPPORTED_RATES_HZ:
            raise ValueError(
                f"sample_rate_hz={self.sample_rate_hz} not supported by Opus "
                f"(expected one of {OPUS_SUPPORTED_RATES_HZ})"
            )
        if self.channels not in (1, 2):
            raise ValueError(f"channels={self.channels} must be 1 or 2")
        if self.sample_width_bytes != 2:
            raise ValueError("only 16-bit PCM is supported")
        if self.frame_ms not in OPUS_SUPPORTED_FRAME_MS:
            raise ValueError(
                f"frame_ms={self.frame_ms} not supported by Opus "
                f"(expected one of {OPUS_SUPPORTED_FRAME_MS})"
            )
        if self.bitrate_bps <= 0:
            raise ValueError("bitrate_bps must be > 0")


AUDIO_FORMAT_DEFAULT: Final[AudioFormat] = AudioFormat()
