"""
Opus frame codec adapter.

Converts between one frame of interleaved int16 PCM and one compressed
Opus frame. Configuration (rate, channels, bitrate, in-band FEC) is taken
from the shared AudioFormat at construction and never changes afterwards,
so the playback encoder and the capture decoder cannot drift apart.

Codec state is per-stream: build one codec per playback or capture call
(see OpusFrameCodec.factory) rather than sharing across guilds.
"""

from __future__ import annotations

from typing import Callable

import numpy as np
import opuslib

from audio.pcm import as_int16, int16_to_pcm16le, pcm16le_to_int16
from constants import OPUS_APPLICATION, AudioFormat
from errors import CodecError


class OpusFrameCodec:
    """
    Stateful Opus encoder/decoder pair for one audio stream.

    encode():
        Exactly audio_format.samples_per_frame samples in, one compressed
        frame out (at most audio_format.max_frame_bytes long).

    decode():
        One received frame in, up to samples_per_frame samples out.
        len() of the result is the decoded sample count.
    """

    def __init__(self, audio_format: AudioFormat) -> None:
        self._format = audio_format
        try:
            self._encoder = opuslib.Encoder(
                audio_format.sample_rate_hz,
                audio_format.channels,
                OPUS_APPLICATION,
            )
            self._encoder.bitrate = audio_format.bitrate_bps
            self._encoder.inband_fec = int(audio_format.inband_fec)
            self._decoder = opuslib.Decoder(
                audio_format.sample_rate_hz,
                audio_format.channels,
            )
        except opuslib.OpusError as exc:
            raise CodecError(f"failed to create Opus codec: {exc}") from exc

    @classmethod
    def factory(cls, audio_format: AudioFormat) -> Callable[[], OpusFrameCodec]:
        """Return a zero-argument constructor bound to one AudioFormat."""
        def _build() -> OpusFrameCodec:
            return cls(audio_format)
        return _build

    @property
    def audio_format(self) -> AudioFormat:
        return self._format

    def encode(self, samples: np.ndarray) -> bytes:
        """
        Encode exactly one frame of interleaved int16 samples.

        Raises:
            CodecError if the sample count is wrong or the encoder fails.
        """
        flat = as_int16(samples)
        expected = self._format.samples_per_frame
        if len(flat) != expected:
            raise CodecError(
                f"encode expects exactly {expected} samples, got {len(flat)}"
            )

        try:
            frame = self._encoder.encode(
                int16_to_pcm16le(flat),
                self._format.samples_per_channel,
            )
        except opuslib.OpusError as exc:
            raise CodecError(f"Opus encode failed: {exc}") from exc

        if len(frame) > self._format.max_frame_bytes:
            raise CodecError(
                f"encoded frame of {len(frame)} bytes exceeds "
                f"{self._format.max_frame_bytes}"
            )
        return frame

    def decode(self, frame: bytes) -> np.ndarray:
        """
        Decode one compressed frame into interleaved int16 samples.

        Raises:
            CodecError on empty or malformed input.
        """
        if not frame:
            raise CodecError("cannot decode an empty Opus frame")

        try:
            pcm = self._decoder.decode(
                bytes(frame),
                self._format.samples_per_channel,
                decode_fec=False,
            )
        except opuslib.OpusError as exc:
            raise CodecError(f"Opus decode failed: {exc}") from exc

        samples = pcm16le_to_int16(pcm)
        return samples[: self._format.samples_per_frame]
