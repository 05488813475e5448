"""
OpenAI Whisper transcription adapter.

This module is deliberately "dumb":
- Accepts one complete WAV container
- Uploads it to audio.transcriptions
- Returns text

Must NOT:
- Run capture loops or own timeouts
- Decode Opus or build WAV headers
- Retry
"""

from __future__ import annotations

from typing import Any

import openai

from adapters.asr.base import SpeechRecognizer
from constants import STT_MODEL_DEFAULT, STT_UPLOAD_FILENAME
from errors import TranscriptionError
from observability.logger import log_event


class OpenAITranscriber(SpeechRecognizer):
    """Batch speech-to-text over the OpenAI transcription endpoint."""

    def __init__(
        self,
        *,
        client: Any,  # Type: openai.AsyncOpenAI
        model: str = STT_MODEL_DEFAULT,
    ) -> None:
        self._client = client
        self._model = model

    async def transcribe(self, wav_bytes: bytes) -> str:
        if not wav_bytes:
            raise TranscriptionError("cannot transcribe an empty container")

        try:
            result = await self._client.audio.transcriptions.create(
                model=self._model,
                # The API infers the container type from the file name
                file=(STT_UPLOAD_FILENAME, wav_bytes, "audio/wav"),
            )
        except openai.OpenAIError as exc:
            raise TranscriptionError(
                f"transcription failed: {type(exc).__name__}: {exc}"
            ) from exc

        text = (getattr(result, "text", None) or "").strip()

        log_event({
            "event_type": "stt_transcribed",
            "model": self._model,
            "wav_bytes": len(wav_bytes),
            "chars": len(text),
        })
        return text
