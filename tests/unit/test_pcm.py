# pylint: disable=missing-module-docstring,missing-function-docstring

import numpy as np

from audio.pcm import as_int16, int16_to_pcm16le, mono_to_stereo, pcm16le_to_int16


def test_little_endian_pairs_become_samples():
    samples = pcm16le_to_int16(b"\x01\x00\xff\x7f\x00\x80\xff\xff")

    assert samples.dtype == np.int16
    assert samples.tolist() == [1, 32767, -32768, -1]


def test_trailing_odd_byte_is_discarded():
    samples = pcm16le_to_int16(b"\x02\x00\x03\x00\x09")

    assert samples.tolist() == [2, 3]


def test_single_byte_yields_no_samples():
    assert len(pcm16le_to_int16(b"\x09")) == 0


def test_int16_to_pcm16le_inverts_conversion():
    samples = np.array([0, 1, -1, 32767, -32768, 1234], dtype=np.int16)

    data = int16_to_pcm16le(samples)

    assert data[:4] == b"\x00\x00\x01\x00"
    assert len(data) == 2 * len(samples)
    assert np.array_equal(pcm16le_to_int16(data), samples)


def test_mono_to_stereo_duplicates_each_sample_left_then_right():
    stereo = mono_to_stereo(np.array([10, -20, 30], dtype=np.int16))

    assert stereo.tolist() == [10, 10, -20, -20, 30, 30]
    assert stereo.dtype == np.int16


def test_as_int16_flattens_without_rescaling():
    arr = as_int16([[1, 2], [3, 4]])

    assert arr.dtype == np.int16
    assert arr.tolist() == [1, 2, 3, 4]
