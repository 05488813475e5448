"""
Playback driver: text -> speech -> PCM -> Opus frames -> transport.

State machine (per call):
    IDLE -> SYNTHESIZING -> DECODING -> STREAMING -> IDLE
                                        STREAMING -> ABORTED   (cancelled)

Guarantees:
- Frames are encoded and sent strictly in utterance order, one at a time.
- Every frame carries exactly samples_per_frame samples; only the final
  frame may be zero-padded.
- Each send races the cancel token. A cancelled call stops before the
  next frame is accepted; frames already sent are not retracted.
- The speaking flag is reset on every exit path once it has been set,
  including errors and task cancellation.
- No retries. Synthesis/decode/codec/transport errors propagate.

The driver holds no per-call state on self, so one instance serves every
guild concurrently.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Callable

import numpy as np

from adapters.tts.base import SpeechSynthesizer
from audio.containers import conform_to_format, decode_synthesized_audio
from audio.frame_generator import padding_needed, split_samples_into_frames
from constants import AudioFormat
from errors import DecodeError, TransportError
from observability.logger import log_event
from observability.metrics import timed
from orchestrator.cancellation import CancelToken, race
from transport.base import VoiceTransport

if TYPE_CHECKING:
    from audio.opus_codec import OpusFrameCodec


class PlaybackState(str, Enum):
    IDLE = "IDLE"
    SYNTHESIZING = "SYNTHESIZING"
    DECODING = "DECODING"
    STREAMING = "STREAMING"
    ABORTED = "ABORTED"


class PlaybackOutcome(str, Enum):
    COMPLETED = "completed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class PlaybackResult:
    """
    Outcome of one speak() call.

    frames_total:
        Frames the utterance was split into (0 if cancelled before framing).
    padded_samples:
        Zero samples appended to the final frame.
    """
    outcome: PlaybackOutcome
    final_state: PlaybackState
    frames_sent: int
    frames_total: int
    padded_samples: int = 0

    @property
    def cancelled(self) -> bool:
        return self.outcome is PlaybackOutcome.CANCELLED


class _PlaybackRun:
    """State tracker for one speak() call (logging only)."""

    def __init__(self, guild_id: str) -> None:
        self.guild_id = guild_id
        self.state = PlaybackState.IDLE

    def enter(self, state: PlaybackState) -> None:
        log_event({
            "event_type": "playback_state",
            "guild_id": self.guild_id,
            "from": self.state.value,
            "to": state.value,
        })
        self.state = state


class PlaybackDriver:
    """Speaks text into a guild's voice transport."""

    def __init__(
        self,
        *,
        synthesizer: SpeechSynthesizer,
        audio_format: AudioFormat,
        codec_factory: Callable[[], OpusFrameCodec],
    ) -> None:
        self._synthesizer = synthesizer
        self._format = audio_format
        self._codec_factory = codec_factory

    async def speak(
        self,
        transport: VoiceTransport,
        text: str,
        *,
        voice: str | None = None,
        cancel: CancelToken | None = None,
    ) -> PlaybackResult:
        """
        Synthesize text and stream it to the transport.

        Returns:
            PlaybackResult with outcome COMPLETED or CANCELLED.

        Raises:
            SynthesisError, DecodeError, CodecError, TransportError.
        """
        run = _PlaybackRun(transport.guild_id)

        # ---- SYNTHESIZING ----
        run.enter(PlaybackState.SYNTHESIZING)
        with timed("synthesis_ms", guild_id=run.guild_id):
            status, container = await race(
                self._synthesizer.synthesize(text, voice), cancel
            )
        if status != "done" or container is None:
            return self._cancelled(run, frames_sent=0, frames_total=0)

        # ---- DECODING ----
        run.enter(PlaybackState.DECODING)
        decoded = decode_synthesized_audio(container)
        samples = conform_to_format(decoded, self._format)
        if len(samples) == 0:
            raise DecodeError("synthesized audio contained no samples")

        frames = split_samples_into_frames(samples, self._format.samples_per_frame)
        padded = padding_needed(len(samples), self._format.samples_per_frame)
        if padded:
            log_event({
                "event_type": "playback_padded_frame",
                "guild_id": run.guild_id,
                "padding_samples": padded,
            })

        if cancel is not None and cancel.cancelled:
            return self._cancelled(run, frames_sent=0, frames_total=len(frames))

        codec = self._codec_factory()

        # ---- STREAMING ----
        run.enter(PlaybackState.STREAMING)
        log_event({
            "event_type": "playback_started",
            "guild_id": run.guild_id,
            "samples": len(samples),
            "frames": len(frames),
            "duration_s": round(decoded.duration_s, 3),
        })

        await transport.set_speaking(True)
        try:
            with timed("playback_duration_ms", guild_id=run.guild_id) as details:
                frames_sent = await self._send_frames(transport, codec, frames, cancel)
                details["frames_sent"] = frames_sent
        except BaseException:
            await self._reset_speaking_after_error(transport)
            raise
        await transport.set_speaking(False)

        if frames_sent < len(frames):
            return self._cancelled(
                run,
                frames_sent=frames_sent,
                frames_total=len(frames),
                padded=padded,
            )

        run.enter(PlaybackState.IDLE)
        log_event({
            "event_type": "playback_completed",
            "guild_id": run.guild_id,
            "frames_sent": frames_sent,
        })
        return PlaybackResult(
            outcome=PlaybackOutcome.COMPLETED,
            final_state=run.state,
            frames_sent=frames_sent,
            frames_total=len(frames),
            padded_samples=padded,
        )

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    @staticmethod
    async def _send_frames(
        transport: VoiceTransport,
        codec: OpusFrameCodec,
        frames: list[np.ndarray],
        cancel: CancelToken | None,
    ) -> int:
        """
        Encode and send frames in order.

        Returns the number of frames accepted by the transport. Fewer than
        len(frames) means the token fired.
        """
        sent = 0
        for chunk in frames:
            payload = codec.encode(chunk)
            status, _ = await race(transport.send_frame(payload), cancel)
            if status != "done":
                break
            sent += 1
        return sent

    @staticmethod
    async def _reset_speaking_after_error(transport: VoiceTransport) -> None:
        # The original failure is what the caller needs to see
        try:
            await transport.set_speaking(False)
        except TransportError as exc:
            log_event({
                "event_type": "playback_speaking_reset_failed",
                "guild_id": transport.guild_id,
                "error": str(exc),
            })

    @staticmethod
    def _cancelled(
        run: _PlaybackRun,
        *,
        frames_sent: int,
        frames_total: int,
        padded: int = 0,
    ) -> PlaybackResult:
        run.enter(PlaybackState.ABORTED)
        log_event({
            "event_type": "playback_cancelled",
            "guild_id": run.guild_id,
            "frames_sent": frames_sent,
            "frames_total": frames_total,
        })
        return PlaybackResult(
            outcome=PlaybackOutcome.CANCELLED,
            final_state=run.state,
            frames_sent=frames_sent,
            frames_total=frames_total,
            padded_samples=padded,
        )
