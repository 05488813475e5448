"""
Audio data primitives.

Pure data containers only.
No behavior, no queues, no timing logic.
"""

from __future__ import annotations
from dataclasses import dataclass

import numpy as np


@dataclass(frozen=True)
class DecodedAudio:
    """
    Result of decoding a synthesized-speech container.

    samples:
        Flat int16 array, interleaved by channel exactly as the decoder
        returned it (L, R, L, R, ... for stereo).

    sample_rate_hz / channels:
        Format reported by the container.
    """
    samples: np.ndarray
    sample_rate_hz: int
    channels: int

    @property
    def duration_s(self) -> float:
        if self.sample_rate_hz <= 0 or self.channels <= 0:
            return 0.0
        return len(self.samples) / (self.sample_rate_hz * self.channels)


@dataclass(frozen=True)
class WavHeader:
    """
    Fields of a canonical 44-byte PCM WAV header.

    riff_size:
        Declared RIFF chunk size (36 + data_size for canonical files).

    data_size:
        Declared byte length of the sample data that follows the header.
    """
    riff_size: int
    format_tag: int
    channels: int
    sample_rate_hz: int
    byte_rate: int
    block_align: int
    bits_per_sample: int
    data_size: int
