# pylint: disable=missing-module-docstring,missing-function-docstring

import asyncio
from typing import Any, Callable

import numpy as np
import pytest

from audio.containers import encode_wav_container
from constants import AUDIO_FORMAT_DEFAULT
from errors import CodecError, SynthesisError
from orchestrator.cancellation import CancelToken
from pipeline.playback import PlaybackDriver, PlaybackOutcome, PlaybackState
from transport.base import VoiceTransport

SPF = AUDIO_FORMAT_DEFAULT.samples_per_frame


# ---------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------

class FakeTransport(VoiceTransport):
    def __init__(self, on_send: Callable[[int], None] | None = None) -> None:
        self.sent: list[bytes] = []
        self.speaking: list[bool] = []
        self._on_send = on_send

    @property
    def guild_id(self) -> str:
        return "g1"

    @property
    def channel_id(self) -> str:
        return "c1"

    @property
    def ready(self) -> bool:
        return True

    async def send_frame(self, frame: bytes) -> None:
        self.sent.append(frame)
        if self._on_send is not None:
            self._on_send(len(self.sent))

    async def receive_frame(self) -> bytes:
        raise AssertionError("playback never receives")

    async def set_speaking(self, speaking: bool) -> None:
        self.speaking.append(speaking)

    async def close(self) -> None:
        pass


class FakeCodec:
    def __init__(self, fail_at: int | None = None) -> None:
        self.encoded: list[np.ndarray] = []
        self._fail_at = fail_at

    def encode(self, samples: np.ndarray) -> bytes:
        if len(samples) != SPF:
            raise CodecError("wrong frame size")
        if self._fail_at is not None and len(self.encoded) == self._fail_at:
            raise CodecError("encoder exploded")
        self.encoded.append(samples)
        return f"frame-{len(self.encoded)}".encode()


class FakeSynthesizer:
    def __init__(self, audio: bytes | None = None, error: Exception | None = None) -> None:
        self.audio = audio
        self.error = error
        self.calls: list[tuple[str, Any]] = []

    async def synthesize(self, text: str, voice: str | None = None) -> bytes:
        self.calls.append((text, voice))
        if self.error is not None:
            raise self.error
        assert self.audio is not None
        return self.audio


class HangingSynthesizer:
    async def synthesize(self, text: str, voice: str | None = None) -> bytes:
        await asyncio.Event().wait()
        return b""


def _speech(num_samples: int) -> bytes:
    samples = (np.arange(num_samples) % 500).astype(np.int16)
    return encode_wav_container(samples, AUDIO_FORMAT_DEFAULT.sample_rate_hz, 2)


def _driver(synth: Any, codec: FakeCodec | None = None) -> tuple[PlaybackDriver, FakeCodec]:
    codec = codec or FakeCodec()
    driver = PlaybackDriver(
        synthesizer=synth,
        audio_format=AUDIO_FORMAT_DEFAULT,
        codec_factory=lambda: codec,
    )
    return driver, codec


# ---------------------------------------------------------------------
# Happy path
# ---------------------------------------------------------------------

@pytest.mark.asyncio
async def test_three_seconds_of_stereo_is_150_frames(captured_events):
    driver, codec = _driver(FakeSynthesizer(audio=_speech(144_000)))
    transport = FakeTransport()

    result = await driver.speak(transport, "hello there", voice="nova")

    assert result.outcome is PlaybackOutcome.COMPLETED
    assert result.final_state is PlaybackState.IDLE
    assert result.frames_sent == 150
    assert result.frames_total == 150
    assert result.padded_samples == 0
    assert len(transport.sent) == 150
    assert transport.speaking == [True, False]
    assert all(len(s) == SPF for s in codec.encoded)
    assert not any(e["event_type"] == "playback_padded_frame" for e in captured_events)


@pytest.mark.asyncio
async def test_frames_sent_in_utterance_order(captured_events):
    driver, _ = _driver(FakeSynthesizer(audio=_speech(SPF * 4)))
    transport = FakeTransport()

    await driver.speak(transport, "order")

    assert transport.sent == [f"frame-{i}".encode() for i in range(1, 5)]


@pytest.mark.asyncio
async def test_short_final_frame_is_padded_and_logged(captured_events):
    driver, codec = _driver(FakeSynthesizer(audio=_speech(SPF * 2 + 100)))
    transport = FakeTransport()

    result = await driver.speak(transport, "pad me")

    assert result.frames_sent == 3
    assert result.padded_samples == SPF - 100
    assert np.all(codec.encoded[-1][100:] == 0)
    padded = [e for e in captured_events if e["event_type"] == "playback_padded_frame"]
    assert padded and padded[0]["padding_samples"] == SPF - 100


@pytest.mark.asyncio
async def test_voice_is_forwarded_to_synthesizer(captured_events):
    synth = FakeSynthesizer(audio=_speech(SPF))
    driver, _ = _driver(synth)

    await driver.speak(FakeTransport(), "hi", voice="shimmer")

    assert synth.calls == [("hi", "shimmer")]


# ---------------------------------------------------------------------
# Cancellation
# ---------------------------------------------------------------------

@pytest.mark.asyncio
@pytest.mark.parametrize("k", [1, 5, 20])
async def test_cancel_after_frame_k_stops_and_clears_speaking(k: int, captured_events):
    token = CancelToken()

    def cancel_at(count: int) -> None:
        if count == k:
            token.cancel("user_stop")

    driver, _ = _driver(FakeSynthesizer(audio=_speech(SPF * 50)))
    transport = FakeTransport(on_send=cancel_at)

    result = await driver.speak(transport, "long answer", cancel=token)

    assert result.outcome is PlaybackOutcome.CANCELLED
    assert result.final_state is PlaybackState.ABORTED
    assert len(transport.sent) <= k
    assert result.frames_sent == len(transport.sent)
    assert result.frames_total == 50
    assert transport.speaking[-1] is False


@pytest.mark.asyncio
async def test_cancel_during_synthesis_never_touches_transport(captured_events):
    token = CancelToken.with_timeout(0.01)
    driver, _ = _driver(HangingSynthesizer())
    transport = FakeTransport()

    result = await driver.speak(transport, "slow", cancel=token)

    assert result.cancelled
    assert result.frames_sent == 0
    assert transport.sent == []
    assert transport.speaking == []


# ---------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------

@pytest.mark.asyncio
async def test_synthesis_failure_propagates_without_speaking(captured_events):
    driver, _ = _driver(FakeSynthesizer(error=SynthesisError("quota")))
    transport = FakeTransport()

    with pytest.raises(SynthesisError):
        await driver.speak(transport, "hi")

    assert transport.speaking == []


@pytest.mark.asyncio
async def test_encode_failure_mid_stream_resets_speaking(captured_events):
    driver, _ = _driver(FakeSynthesizer(audio=_speech(SPF * 5)), FakeCodec(fail_at=2))
    transport = FakeTransport()

    with pytest.raises(CodecError):
        await driver.speak(transport, "boom")

    assert len(transport.sent) == 2
    assert transport.speaking == [True, False]


@pytest.mark.asyncio
async def test_task_cancellation_resets_speaking(captured_events):
    release = asyncio.Event()

    class BlockingTransport(FakeTransport):
        async def send_frame(self, frame: bytes) -> None:
            await release.wait()

    driver, _ = _driver(FakeSynthesizer(audio=_speech(SPF * 3)))
    transport = BlockingTransport()

    task = asyncio.create_task(driver.speak(transport, "stuck"))
    while not transport.speaking:
        await asyncio.sleep(0)
    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task

    assert transport.speaking == [True, False]
