"""
Voice command definitions.

Rules:
- Commands are declarative requests from the chat layer.
- Commands are executed by VoiceService via direct calls.
- No behavior, no async, no I/O.
Invariant:
    - All concrete Command subclasses MUST be frozen dataclasses.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

# =============================================================================
# Command Type Enumeration
# =============================================================================

class CommandType(str, Enum):
    """
    Canonical command types.

    Stable discriminants used for logging and dispatch.
    """

    JOIN_VOICE = "JOIN_VOICE"
    LEAVE_VOICE = "LEAVE_VOICE"
    SPEAK = "SPEAK"
    LISTEN = "LISTEN"


# =============================================================================
# Base Command
# =============================================================================

class Command:
    """
    Base command type.

    command_type is an explicit discriminant and must never be inferred
    from Python type identity.
    """

    command_type: CommandType
    guild_id: str


# =============================================================================
# Connection Commands
# =============================================================================

@dataclass(frozen=True)
class JoinVoice(Command):
    """Join (or move to) a voice channel."""
    guild_id: str
    channel_id: str
    command_type: CommandType = CommandType.JOIN_VOICE


@dataclass(frozen=True)
class LeaveVoice(Command):
    """Leave the guild's voice channel, if any."""
    guild_id: str
    command_type: CommandType = CommandType.LEAVE_VOICE


# =============================================================================
# Pipeline Commands
# =============================================================================

@dataclass(frozen=True)
class Speak(Command):
    """
    Speak text into the joined channel.

    voice=None uses the configured default voice.
    """
    guild_id: str
    text: str
    voice: str | None = None
    command_type: CommandType = CommandType.SPEAK


@dataclass(frozen=True)
class Listen(Command):
    """
    Capture the joined channel and return a transcript.

    window_s=None uses the configured capture window.
    """
    guild_id: str
    window_s: float | None = None
    command_type: CommandType = CommandType.LISTEN
