"""
Sample frame splitting utilities (pure).

Purpose:
- Convert a decoded utterance into fixed-size frames of int16 samples,
  each exactly one Opus frame long, for encoding and transport.

Invariants:
- Every frame holds exactly samples_per_frame interleaved samples.
- A short final frame is zero-padded to full length, never sent short.
- Real samples are never truncated; only padding is added.

Design:
- Pure functions only (no codec, no timing, no IO).
"""

from __future__ import annotations

import numpy as np

from audio.pcm import as_int16


def frame_count(num_samples: int, samples_per_frame: int) -> int:
    """
    Return the number of frames needed to carry num_samples (ceil).

    Raises:
        ValueError if samples_per_frame is not positive.
    """
    if samples_per_frame <= 0:
        raise ValueError("samples_per_frame must be > 0")
    if num_samples <= 0:
        return 0
    return -(-num_samples // samples_per_frame)


def padding_needed(num_samples: int, samples_per_frame: int) -> int:
    """Zero samples appended to the final frame."""
    if num_samples <= 0:
        return 0
    remainder = num_samples % samples_per_frame
    return 0 if remainder == 0 else samples_per_frame - remainder


def split_samples_into_frames(
    samples: np.ndarray,
    samples_per_frame: int,
) -> list[np.ndarray]:
    """
    Split interleaved int16 samples into fixed-size frames.

    Args:
        samples:
            Flat interleaved int16 samples for the whole utterance.
        samples_per_frame:
            Interleaved samples per frame (frame size * channels).

    Returns:
        ceil(len(samples) / samples_per_frame) frames of exactly
        samples_per_frame samples. The final frame is zero-padded.
        Empty input returns [].

    Raises:
        ValueError if samples_per_frame is not positive.
    """
    total = frame_count(len(samples), samples_per_frame)
    if total == 0:
        return []

    flat = as_int16(samples)
    pad = padding_needed(len(flat), samples_per_frame)
    if pad:
        flat = np.concatenate([flat, np.zeros(pad, dtype=np.int16)])

    return [
        flat[offset : offset + samples_per_frame]
        for offset in range(0, total * samples_per_frame, samples_per_frame)
    ]
