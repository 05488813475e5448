"""
Speech recognition contract.

This module defines the *interface only*. No buffering, capture windows,
retries or orchestration decisions live here.

Key invariants:
- Input is one complete WAV container (canonical 44-byte header + PCM16).
- Output is the transcript text for the whole container.
- The adapter MUST NOT retry internally.
- Failures surface as errors.TranscriptionError.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class SpeechRecognizer(ABC):
    """
    Abstract interface for a batch (non-streaming) speech-to-text provider.

    Implementations are responsible for:
    - Uploading the WAV container to the provider
    - Returning the recognized text

    Non-responsibilities:
    - No capture loop, timeouts or cancellation (the capture driver owns them)
    - No Opus decoding or WAV encoding
    """

    @abstractmethod
    async def transcribe(self, wav_bytes: bytes) -> str:
        """
        Transcribe one WAV container.

        Returns:
            Recognized text, stripped of surrounding whitespace.

        Raises:
            TranscriptionError on provider failure.
        """
        raise NotImplementedError
