# pylint: disable=missing-module-docstring,missing-function-docstring

import io
import wave

import numpy as np
import pytest
import soundfile as sf

from audio import containers
from audio.containers import (
    conform_to_format,
    decode_synthesized_audio,
    encode_wav_container,
    parse_wav_header,
)
from audio.frames import DecodedAudio
from constants import AUDIO_FORMAT_DEFAULT, WAV_HEADER_BYTES, AudioFormat
from errors import DecodeError


def _ramp(n: int) -> np.ndarray:
    return (np.arange(n) % 2000 - 1000).astype(np.int16)


# ---------------------------------------------------------------------
# WAV encode
# ---------------------------------------------------------------------

def test_wav_header_fields_for_three_captured_frames():
    # 3 frames x 960 interleaved samples
    samples = _ramp(2880)

    wav = encode_wav_container(samples, 24_000, 2)
    header = parse_wav_header(wav)

    assert len(wav) == WAV_HEADER_BYTES + 5760
    assert header.data_size == 5760
    assert header.riff_size == 36 + 5760
    assert header.format_tag == 1
    assert header.channels == 2
    assert header.sample_rate_hz == 24_000
    assert header.byte_rate == 96_000
    assert header.block_align == 4
    assert header.bits_per_sample == 16


def test_wav_readable_by_stdlib_wave():
    samples = _ramp(4800)

    wav = encode_wav_container(samples, 24_000, 2)

    with wave.open(io.BytesIO(wav), "rb") as reader:
        assert reader.getnchannels() == 2
        assert reader.getframerate() == 24_000
        assert reader.getsampwidth() == 2
        assert reader.getnframes() == 2400
        decoded = np.frombuffer(reader.readframes(2400), dtype="<i2")

    assert np.array_equal(decoded, samples)


def test_wav_readable_by_soundfile():
    samples = _ramp(960)

    wav = encode_wav_container(samples, 24_000, 2)
    data, rate = sf.read(io.BytesIO(wav), dtype="int16", always_2d=True)

    assert rate == 24_000
    assert data.shape == (480, 2)
    assert np.array_equal(data.reshape(-1), samples)


def test_wav_rejects_samples_that_do_not_divide_into_channels():
    with pytest.raises(ValueError):
        encode_wav_container(_ramp(3), 24_000, 2)


def test_header_layout_is_44_bytes():
    assert containers._WAV_HEADER.size == WAV_HEADER_BYTES == 44  # pylint: disable=protected-access


def test_parse_rejects_garbage():
    with pytest.raises(DecodeError):
        parse_wav_header(b"\x00" * WAV_HEADER_BYTES)
    with pytest.raises(DecodeError):
        parse_wav_header(b"RIFF")


# ---------------------------------------------------------------------
# Container decode
# ---------------------------------------------------------------------

def test_decode_recovers_samples_written_by_wav_encoder():
    samples = _ramp(10_000)

    decoded = decode_synthesized_audio(encode_wav_container(samples, 24_000, 2))

    assert decoded.sample_rate_hz == 24_000
    assert decoded.channels == 2
    assert np.array_equal(decoded.samples, samples)


def test_decode_reads_across_many_small_blocks():
    samples = _ramp(2 * 1000)

    decoded = decode_synthesized_audio(
        encode_wav_container(samples, 24_000, 2),
        block_frames=7,
    )

    assert np.array_equal(decoded.samples, samples)


def test_decode_empty_input_raises():
    with pytest.raises(DecodeError):
        decode_synthesized_audio(b"")


def test_decode_malformed_input_raises():
    with pytest.raises(DecodeError):
        decode_synthesized_audio(b"definitely not an mp3 stream" * 10)


# ---------------------------------------------------------------------
# Format conformance
# ---------------------------------------------------------------------

def test_conform_duplicates_mono_into_stereo():
    decoded = DecodedAudio(
        samples=np.array([1, 2, 3], dtype=np.int16),
        sample_rate_hz=24_000,
        channels=1,
    )

    out = conform_to_format(decoded, AUDIO_FORMAT_DEFAULT)

    assert out.tolist() == [1, 1, 2, 2, 3, 3]


def test_conform_rejects_rate_mismatch():
    decoded = DecodedAudio(
        samples=np.zeros(4, dtype=np.int16),
        sample_rate_hz=44_100,
        channels=2,
    )

    with pytest.raises(DecodeError):
        conform_to_format(decoded, AUDIO_FORMAT_DEFAULT)


def test_conform_rejects_stereo_into_mono_session():
    decoded = DecodedAudio(
        samples=np.zeros(4, dtype=np.int16),
        sample_rate_hz=24_000,
        channels=2,
    )

    with pytest.raises(DecodeError):
        conform_to_format(decoded, AudioFormat(channels=1))
