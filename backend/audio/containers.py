"""
Container <-> PCM conversion.

Two directions:
- decode_synthesized_audio: MP3-class bytes from the speech synthesis
  service -> flat int16 samples. The decoder is pull-based: each read
  returns 0..N frames until end of stream. libsndfile hands back
  native int16, so no byte-pair assembly is needed here.
- encode_wav_container: flat int16 samples -> canonical 44-byte-header
  WAV bytes for the speech recognition upload.

Invariants:
- Decoded samples keep the decoder's channel interleaving.
- A malformed container yields DecodeError and no partial samples.
- The WAV header's declared data size equals the sample bytes that follow.
"""

from __future__ import annotations

import io
import struct

import numpy as np
import soundfile as sf

from audio.frames import DecodedAudio, WavHeader
from audio.pcm import as_int16, int16_to_pcm16le, mono_to_stereo
from constants import (
    DECODE_BLOCK_FRAMES,
    WAV_FMT_CHUNK_BYTES,
    WAV_FORMAT_PCM,
    WAV_HEADER_BYTES,
    AudioFormat,
)
from errors import DecodeError


# <4sI4s> RIFF chunk, <4sIHHIIHH> fmt chunk, <4sI> data chunk header
_WAV_HEADER = struct.Struct("<4sI4s4sIHHIIHH4sI")


# -------------------------
# Decode (synthesis output)
# -------------------------

def decode_synthesized_audio(
    container_bytes: bytes,
    *,
    block_frames: int = DECODE_BLOCK_FRAMES,
) -> DecodedAudio:
    """
    Decode a synthesized-speech container into int16 samples.

    Reads progressively until a pull returns nothing.

    Raises:
        DecodeError on empty or malformed input.
    """
    if not container_bytes:
        raise DecodeError("empty audio container")
    if block_frames <= 0:
        raise ValueError("block_frames must be > 0")

    blocks: list[np.ndarray] = []
    try:
        with sf.SoundFile(io.BytesIO(container_bytes)) as decoder:
            sample_rate_hz = int(decoder.samplerate)
            channels = int(decoder.channels)
            while True:
                block = decoder.read(block_frames, dtype="int16", always_2d=True)
                if len(block) == 0:
                    break
                # (frames, channels) row-major flattens to L, R, L, R, ...
                blocks.append(block.reshape(-1))
    except (sf.SoundFileError, RuntimeError) as exc:
        raise DecodeError(f"failed to decode audio container: {exc}") from exc

    samples = np.concatenate(blocks) if blocks else np.zeros(0, dtype=np.int16)
    return DecodedAudio(
        samples=samples,
        sample_rate_hz=sample_rate_hz,
        channels=channels,
    )


def conform_to_format(decoded: DecodedAudio, audio_format: AudioFormat) -> np.ndarray:
    """
    Return decoded samples laid out for the session audio format.

    - Sample rates must match exactly (no resampling).
    - Mono input is duplicated into both channels for a stereo session.
    - Anything else that disagrees is rejected.

    Raises:
        DecodeError on an incompatible format.
    """
    if decoded.sample_rate_hz != audio_format.sample_rate_hz:
        raise DecodeError(
            f"synthesized audio is {decoded.sample_rate_hz} Hz, "
            f"session expects {audio_format.sample_rate_hz} Hz"
        )

    if decoded.channels == audio_format.channels:
        return decoded.samples

    if decoded.channels == 1 and audio_format.channels == 2:
        return mono_to_stereo(decoded.samples)

    raise DecodeError(
        f"synthesized audio has {decoded.channels} channel(s), "
        f"session expects {audio_format.channels}"
    )


# -------------------------
# Encode (recognition input)
# -------------------------

def encode_wav_container(
    samples: np.ndarray,
    sample_rate_hz: int,
    channels: int,
    bits_per_sample: int = 16,
) -> bytes:
    """
    Serialize interleaved int16 samples as a canonical PCM WAV file.

    Layout: 44-byte header (RIFF size, fmt chunk, data size) followed
    immediately by the raw little-endian samples.

    Raises:
        ValueError if the parameters cannot describe the samples.
    """
    if bits_per_sample != 16:
        raise ValueError("only 16-bit PCM is supported")
    if channels <= 0:
        raise ValueError("channels must be > 0")
    if sample_rate_hz <= 0:
        raise ValueError("sample_rate_hz must be > 0")

    flat = as_int16(samples)
    if len(flat) % channels != 0:
        raise ValueError(
            f"{len(flat)} samples cannot be split evenly across {channels} channels"
        )

    bytes_per_sample = bits_per_sample // 8
    block_align = channels * bytes_per_sample
    byte_rate = sample_rate_hz * block_align
    data = int16_to_pcm16le(flat)
    data_size = len(data)

    header = _WAV_HEADER.pack(
        b"RIFF",
        WAV_HEADER_BYTES - 8 + data_size,
        b"WAVE",
        b"fmt ",
        WAV_FMT_CHUNK_BYTES,
        WAV_FORMAT_PCM,
        channels,
        sample_rate_hz,
        byte_rate,
        block_align,
        bits_per_sample,
        b"data",
        data_size,
    )
    return header + data


def parse_wav_header(data: bytes) -> WavHeader:
    """
    Parse the canonical 44-byte header written by encode_wav_container.

    Raises:
        DecodeError if the bytes are not a canonical PCM WAV header.
    """
    if len(data) < WAV_HEADER_BYTES:
        raise DecodeError(f"WAV data shorter than {WAV_HEADER_BYTES}-byte header")

    (
        riff, riff_size, wave, fmt, fmt_size, format_tag, channels,
        sample_rate_hz, byte_rate, block_align, bits_per_sample,
        data_tag, data_size,
    ) = _WAV_HEADER.unpack_from(data, 0)

    if riff != b"RIFF" or wave != b"WAVE" or fmt != b"fmt " or data_tag != b"data":
        raise DecodeError("not a canonical RIFF/WAVE header")
    if fmt_size != WAV_FMT_CHUNK_BYTES:
        raise DecodeError(f"unexpected fmt chunk size {fmt_size}")

    return WavHeader(
        riff_size=riff_size,
        format_tag=format_tag,
        channels=channels,
        sample_rate_hz=sample_rate_hz,
        byte_rate=byte_rate,
        block_align=block_align,
        bits_per_sample=bits_per_sample,
        data_size=data_size,
    )
