"""
Speech synthesis contract.

This module defines the *interface only*. No decoding, no frame
splitting, no retries or playback decisions live here.

Key invariants:
- One call turns one utterance into one encoded audio container
  (MP3-class bytes). Decoding and framing happen in the pipeline.
- The adapter MUST NOT retry internally. Retries belong to the SDK/HTTP
  client layer.
- Failures surface as errors.SynthesisError.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class SpeechSynthesizer(ABC):
    """
    Abstract interface for a text-to-speech provider.

    Implementations are responsible for:
    - Calling the provider with the text and voice profile
    - Returning the complete encoded audio container

    Non-responsibilities:
    - No PCM conversion (the pipeline decodes the container)
    - No frame splitting or Opus encoding
    - No speaking-state or transport interaction
    """

    @abstractmethod
    async def synthesize(self, text: str, voice: str | None = None) -> bytes:
        """
        Synthesize one utterance.

        Args:
            text: Text to speak (non-empty).
            voice: Provider voice profile; None selects the adapter default.

        Returns:
            Encoded audio container bytes.

        Raises:
            SynthesisError on empty input, provider failure or empty output.
        """
        raise NotImplementedError
