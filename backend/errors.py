"""
Voice pipeline error taxonomy.

Every failure leaving the pipeline is one of these types, so callers can
pick user-facing messaging from the type alone.

Propagation policy:
- Opus decode failures during capture are logged and skipped by the
  capture driver. They never reach the caller.
- Everything else aborts the current call and propagates.
- Nothing in the pipeline retries. Retrying mid-stream audio would break
  frame ordering; retry policy belongs to the HTTP/SDK client layer.
"""

from __future__ import annotations


class VoicePipelineError(Exception):
    """Base class for voice pipeline errors."""


class ConfigError(VoicePipelineError, ValueError):
    """Raised when configuration values are missing or inconsistent."""


class TransportError(VoicePipelineError):
    """
    Voice transport open/close/send/receive failed.

    Fatal to the current call, never to the connection registry.
    """


class CodecError(VoicePipelineError):
    """
    Opus frame encode/decode failed.

    Skip-and-continue while decoding captured audio; fatal while encoding
    playback audio because the frame cannot be sent.
    """


class DecodeError(VoicePipelineError):
    """Synthesized audio container could not be decoded. No partial output."""


class SynthesisError(VoicePipelineError):
    """The speech synthesis collaborator failed."""


class TranscriptionError(VoicePipelineError):
    """The speech recognition collaborator failed."""


class NoAudioCaptured(VoicePipelineError):
    """
    The capture window elapsed without any decodable audio.

    Expected outcome for a silent channel, not a system fault.
    """


class Cancelled(VoicePipelineError):
    """The caller aborted the operation. Shared state is left consistent."""

    def __init__(self, reason: str = "cancelled") -> None:
        super().__init__(reason)
        self.reason = reason


class AlreadyActive(VoicePipelineError):
    """A Speak/Listen call is already running for this guild (busy policy "reject")."""

    def __init__(self, guild_id: str, active: str) -> None:
        super().__init__(f"guild {guild_id} already has an active {active} call")
        self.guild_id = guild_id
        self.active = active
