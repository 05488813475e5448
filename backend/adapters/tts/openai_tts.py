"""
OpenAI speech synthesis adapter.

Role in the system:
- Receives one utterance from the playback driver.
- Performs one audio.speech.create call.
- Returns the MP3 container bytes unchanged.

Architectural constraints:
- Decoding to PCM and 20ms framing are NOT handled here.
- No retries (the OpenAI client owns its retry policy).
- No speaking-state or transport interaction.
"""
from __future__ import annotations

from typing import Any

import openai

from adapters.tts.base import SpeechSynthesizer
from constants import TTS_MODEL_DEFAULT, TTS_RESPONSE_FORMAT, TTS_VOICE_DEFAULT
from errors import SynthesisError
from observability.logger import log_event


class OpenAISpeechSynthesizer(SpeechSynthesizer):
    """
    Text-to-speech over the OpenAI audio.speech endpoint.

    The output is 24kHz MP3, which is why the default session AudioFormat
    runs at 24kHz.
    """

    def __init__(
        self,
        *,
        client: Any,  # Type: openai.AsyncOpenAI
        model: str = TTS_MODEL_DEFAULT,
        default_voice: str = TTS_VOICE_DEFAULT,
    ) -> None:
        self._client = client
        self._model = model
        self._default_voice = default_voice

    async def synthesize(self, text: str, voice: str | None = None) -> bytes:
        if not text or not text.strip():
            raise SynthesisError("cannot synthesize empty text")

        resolved_voice = voice or self._default_voice
        try:
            response = await self._client.audio.speech.create(
                model=self._model,
                voice=resolved_voice,
                input=text,
                response_format=TTS_RESPONSE_FORMAT,
            )
            audio_bytes = response.content
        except openai.OpenAIError as exc:
            raise SynthesisError(
                f"speech synthesis failed: {type(exc).__name__}: {exc}"
            ) from exc

        if not audio_bytes:
            raise SynthesisError("speech synthesis returned no audio")

        log_event({
            "event_type": "tts_synthesized",
            "model": self._model,
            "voice": resolved_voice,
            "chars": len(text),
            "audio_bytes": len(audio_bytes),
        })
        return audio_bytes
