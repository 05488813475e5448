"""
Capture driver: transport -> Opus frames -> PCM buffer -> WAV -> text.

State machine (per call):
    IDLE -> LISTENING -> TIMED_OUT -> TRANSCRIBING -> IDLE
            LISTENING -> IDLE   (cancelled: buffer discarded, Cancelled raised)

Window semantics:
- The window is a wall-clock bound on LISTENING, measured from entry.
- A receive that is pending when the window closes is abandoned.
- Undecodable or empty frames are logged and skipped.
- Frames are decoded and appended in arrival order.

Outcomes:
- Zero captured samples -> NoAudioCaptured (recognizer is not called)
- Cancel token fired before transcription -> Cancelled (recognizer is
  not called, buffer discarded)
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Callable, NoReturn

import numpy as np

from adapters.asr.base import SpeechRecognizer
from audio.containers import encode_wav_container
from constants import CAPTURE_WINDOW_S, AudioFormat
from errors import Cancelled, CodecError, NoAudioCaptured
from observability.logger import log_event
from observability.metrics import timed
from orchestrator.cancellation import CancelToken, race
from transport.base import VoiceTransport

if TYPE_CHECKING:
    from audio.opus_codec import OpusFrameCodec


class CaptureState(str, Enum):
    IDLE = "IDLE"
    LISTENING = "LISTENING"
    TIMED_OUT = "TIMED_OUT"
    TRANSCRIBING = "TRANSCRIBING"


@dataclass(frozen=True)
class CaptureResult:
    text: str
    samples_captured: int
    frames_received: int
    frames_dropped: int
    duration_s: float


@dataclass
class _CaptureBuffer:
    """Accumulates decoded PCM for one listen() call."""

    chunks: list[np.ndarray]
    frames_received: int = 0
    frames_dropped: int = 0

    @property
    def samples(self) -> int:
        return sum(len(c) for c in self.chunks)

    def concatenate(self) -> np.ndarray:
        if not self.chunks:
            return np.zeros(0, dtype=np.int16)
        return np.concatenate(self.chunks).astype(np.int16, copy=False)


class CaptureDriver:
    """Listens to a guild's voice transport for a bounded window and transcribes it."""

    def __init__(
        self,
        *,
        recognizer: SpeechRecognizer,
        audio_format: AudioFormat,
        codec_factory: Callable[[], OpusFrameCodec],
        window_s: float = CAPTURE_WINDOW_S,
    ) -> None:
        if window_s <= 0:
            raise ValueError("window_s must be > 0")
        self._recognizer = recognizer
        self._format = audio_format
        self._codec_factory = codec_factory
        self._window_s = window_s

    async def listen(
        self,
        transport: VoiceTransport,
        *,
        window_s: float | None = None,
        cancel: CancelToken | None = None,
    ) -> CaptureResult:
        """
        Capture for window_s seconds (default: configured window), then transcribe.

        Raises:
            NoAudioCaptured, Cancelled, TransportError, TranscriptionError.
        """
        window = self._window_s if window_s is None else window_s
        if window <= 0:
            raise ValueError("window_s must be > 0")

        guild_id = transport.guild_id
        codec = self._codec_factory()
        self._transition(guild_id, CaptureState.IDLE, CaptureState.LISTENING)

        with timed("capture_window_ms", guild_id=guild_id) as details:
            buffer = await self._collect(transport, codec, window, cancel)
            details["frames_received"] = buffer.frames_received
            details["frames_dropped"] = buffer.frames_dropped

        if cancel is not None and cancel.cancelled:
            self._abort(guild_id, CaptureState.LISTENING, cancel, buffer)

        self._transition(guild_id, CaptureState.LISTENING, CaptureState.TIMED_OUT)

        samples = buffer.concatenate()
        if len(samples) == 0:
            log_event({
                "event_type": "capture_empty",
                "guild_id": guild_id,
                "frames_received": buffer.frames_received,
                "frames_dropped": buffer.frames_dropped,
            })
            self._transition(guild_id, CaptureState.TIMED_OUT, CaptureState.IDLE)
            raise NoAudioCaptured(f"no audio captured in {window:.1f}s window")

        wav_bytes = encode_wav_container(
            samples,
            self._format.sample_rate_hz,
            self._format.channels,
        )

        self._transition(guild_id, CaptureState.TIMED_OUT, CaptureState.TRANSCRIBING)
        with timed("transcription_ms", guild_id=guild_id):
            status, text = await race(self._recognizer.transcribe(wav_bytes), cancel)
        if status != "done" or text is None:
            self._abort(guild_id, CaptureState.TRANSCRIBING, cancel, buffer)

        self._transition(guild_id, CaptureState.TRANSCRIBING, CaptureState.IDLE)
        duration_s = len(samples) / (self._format.sample_rate_hz * self._format.channels)
        log_event({
            "event_type": "capture_completed",
            "guild_id": guild_id,
            "samples": len(samples),
            "duration_s": round(duration_s, 3),
            "text_chars": len(text),
        })
        return CaptureResult(
            text=text,
            samples_captured=len(samples),
            frames_received=buffer.frames_received,
            frames_dropped=buffer.frames_dropped,
            duration_s=duration_s,
        )

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    async def _collect(
        self,
        transport: VoiceTransport,
        codec: OpusFrameCodec,
        window_s: float,
        cancel: CancelToken | None,
    ) -> _CaptureBuffer:
        """Receive and decode frames until the window closes or the token fires."""
        loop = asyncio.get_running_loop()
        deadline = loop.time() + window_s
        buffer = _CaptureBuffer(chunks=[])

        while True:
            remaining = deadline - loop.time()
            if remaining <= 0:
                break
            status, frame = await race(transport.receive_frame(), cancel, timeout_s=remaining)
            if status != "done":
                break

            buffer.frames_received += 1
            if not frame:
                buffer.frames_dropped += 1
                continue
            try:
                pcm = codec.decode(frame)
            except CodecError as exc:
                buffer.frames_dropped += 1
                log_event({
                    "event_type": "capture_decode_failed",
                    "guild_id": transport.guild_id,
                    "frame_bytes": len(frame),
                    "error": str(exc),
                })
                continue
            buffer.chunks.append(pcm)

        return buffer

    @staticmethod
    def _transition(guild_id: str, src: CaptureState, dst: CaptureState) -> None:
        log_event({
            "event_type": "capture_state",
            "guild_id": guild_id,
            "from": src.value,
            "to": dst.value,
        })

    def _abort(
        self,
        guild_id: str,
        state: CaptureState,
        cancel: CancelToken | None,
        buffer: _CaptureBuffer,
    ) -> NoReturn:
        reason = cancel.reason if cancel is not None and cancel.reason else "cancelled"
        log_event({
            "event_type": "capture_cancelled",
            "guild_id": guild_id,
            "state": state.value,
            "reason": reason,
            "samples_discarded": buffer.samples,
        })
        self._transition(guild_id, state, CaptureState.IDLE)
        raise Cancelled(reason)
