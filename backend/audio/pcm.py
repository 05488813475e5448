"""PCM conversion utilities."""
import numpy as np


def pcm16le_to_int16(pcm_bytes: bytes) -> np.ndarray:
    """
    Convert PCM16 little-endian bytes to an int16 sample array.

    Each little-endian byte pair becomes one sample. A stray trailing odd
    byte is discarded. Interleaving is preserved; no channel mixing.
    """
    if len(pcm_bytes) % 2 != 0:
        # Truncated sample
        pcm_bytes = pcm_bytes[: len(pcm_bytes) - 1]

    return np.frombuffer(pcm_bytes, dtype="<i2").astype(np.int16)


def int16_to_pcm16le(samples: np.ndarray) -> bytes:
    """Inverse of pcm16le_to_int16."""
    return np.asarray(samples, dtype=np.int16).astype("<i2").tobytes()


def as_int16(samples: object) -> np.ndarray:
    """
    Coerce a sample sequence to a flat int16 array.

    Accepts lists, tuples or arrays. Values are not rescaled.
    """
    arr = np.asarray(samples)
    if arr.dtype != np.int16:
        arr = arr.astype(np.int16)
    return arr.reshape(-1)


def mono_to_stereo(samples: np.ndarray) -> np.ndarray:
    """Duplicate each mono sample into both channels (L, R, L, R, ...)."""
    return np.repeat(as_int16(samples), 2)
