# pylint: disable=missing-module-docstring,missing-function-docstring

from types import SimpleNamespace
from typing import Any

import openai
import pytest

from adapters.asr.openai_whisper import OpenAITranscriber
from adapters.tts.openai_tts import OpenAISpeechSynthesizer
from errors import SynthesisError, TranscriptionError


class FakeSpeech:
    def __init__(self, content: bytes = b"ID3mp3", error: Exception | None = None) -> None:
        self.content = content
        self.error = error
        self.calls: list[dict[str, Any]] = []

    async def create(self, **kwargs: Any) -> Any:
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return SimpleNamespace(content=self.content)


class FakeTranscriptions:
    def __init__(self, text: str | None = " hello bot \n", error: Exception | None = None) -> None:
        self.text = text
        self.error = error
        self.calls: list[dict[str, Any]] = []

    async def create(self, **kwargs: Any) -> Any:
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return SimpleNamespace(text=self.text)


def _client(speech: Any = None, transcriptions: Any = None) -> Any:
    return SimpleNamespace(audio=SimpleNamespace(speech=speech, transcriptions=transcriptions))


# ---------------------------------------------------------------------
# Synthesis
# ---------------------------------------------------------------------

@pytest.mark.asyncio
async def test_synthesize_requests_mp3_with_default_voice(captured_events):
    speech = FakeSpeech()
    tts = OpenAISpeechSynthesizer(client=_client(speech=speech), model="tts-1", default_voice="alloy")

    audio = await tts.synthesize("hello")

    assert audio == b"ID3mp3"
    assert speech.calls == [
        {"model": "tts-1", "voice": "alloy", "input": "hello", "response_format": "mp3"}
    ]


@pytest.mark.asyncio
async def test_synthesize_voice_override(captured_events):
    speech = FakeSpeech()
    tts = OpenAISpeechSynthesizer(client=_client(speech=speech))

    await tts.synthesize("hello", voice="nova")

    assert speech.calls[0]["voice"] == "nova"


@pytest.mark.asyncio
@pytest.mark.parametrize("text", ["", "   "])
async def test_synthesize_rejects_empty_text(text: str, captured_events):
    speech = FakeSpeech()
    tts = OpenAISpeechSynthesizer(client=_client(speech=speech))

    with pytest.raises(SynthesisError):
        await tts.synthesize(text)

    assert speech.calls == []


@pytest.mark.asyncio
async def test_synthesize_wraps_provider_errors(captured_events):
    tts = OpenAISpeechSynthesizer(client=_client(speech=FakeSpeech(error=openai.OpenAIError("quota"))))

    with pytest.raises(SynthesisError):
        await tts.synthesize("hello")


@pytest.mark.asyncio
async def test_synthesize_rejects_empty_audio(captured_events):
    tts = OpenAISpeechSynthesizer(client=_client(speech=FakeSpeech(content=b"")))

    with pytest.raises(SynthesisError):
        await tts.synthesize("hello")


# ---------------------------------------------------------------------
# Transcription
# ---------------------------------------------------------------------

@pytest.mark.asyncio
async def test_transcribe_uploads_named_wav(captured_events):
    transcriptions = FakeTranscriptions()
    stt = OpenAITranscriber(client=_client(transcriptions=transcriptions), model="whisper-1")

    text = await stt.transcribe(b"RIFF....")

    assert text == "hello bot"
    call = transcriptions.calls[0]
    assert call["model"] == "whisper-1"
    assert call["file"] == ("audio.wav", b"RIFF....", "audio/wav")


@pytest.mark.asyncio
async def test_transcribe_wraps_provider_errors(captured_events):
    stt = OpenAITranscriber(
        client=_client(transcriptions=FakeTranscriptions(error=openai.OpenAIError("down")))
    )

    with pytest.raises(TranscriptionError):
        await stt.transcribe(b"RIFF....")


@pytest.mark.asyncio
async def test_transcribe_rejects_empty_container(captured_events):
    transcriptions = FakeTranscriptions()
    stt = OpenAITranscriber(client=_client(transcriptions=transcriptions))

    with pytest.raises(TranscriptionError):
        await stt.transcribe(b"")

    assert transcriptions.calls == []
