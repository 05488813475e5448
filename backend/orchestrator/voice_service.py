"""
Voice service: routes commands to the registry and the drivers.

Responsibilities:
- Dispatch JoinVoice/LeaveVoice to ConnectionRegistry
- Dispatch Speak/Listen to the drivers with the guild's live transport
- Apply the per-guild busy policy for Speak/Listen

Non-responsibilities:
- No audio handling
- Never holds a registry lock across a driver call
"""

from __future__ import annotations

from typing import Any

from constants import BUSY_POLICY_ALLOW, BUSY_POLICY_REJECT
from errors import AlreadyActive, TransportError
from observability.logger import log_event
from orchestrator.cancellation import CancelToken
from orchestrator.commands import (
    Command,
    CommandType,
    JoinVoice,
    LeaveVoice,
    Listen,
    Speak,
)
from pipeline.capture import CaptureDriver, CaptureResult
from pipeline.playback import PlaybackDriver, PlaybackResult
from session.registry import ConnectionRegistry
from transport.base import VoiceTransport


class VoiceService:
    """Single entry point used by the chat layer."""

    def __init__(
        self,
        *,
        registry: ConnectionRegistry,
        playback: PlaybackDriver,
        capture: CaptureDriver,
        busy_policy: str = BUSY_POLICY_ALLOW,
    ) -> None:
        if busy_policy not in (BUSY_POLICY_ALLOW, BUSY_POLICY_REJECT):
            raise ValueError(f"unknown busy policy {busy_policy!r}")
        self._registry = registry
        self._playback = playback
        self._capture = capture
        self._busy_policy = busy_policy
        # guild_id -> command type currently running
        self._active: dict[str, CommandType] = {}

    @property
    def registry(self) -> ConnectionRegistry:
        return self._registry

    async def handle(self, command: Command, cancel: CancelToken | None = None) -> Any:
        """
        Execute one command.

        Returns:
            JoinVoice  -> VoiceTransport
            LeaveVoice -> None
            Speak      -> PlaybackResult
            Listen     -> CaptureResult
        """
        log_event({
            "event_type": "command_received",
            "guild_id": command.guild_id,
            "command_type": command.command_type.value,
        })

        if isinstance(command, JoinVoice):
            return await self._registry.join(command.guild_id, command.channel_id)
        if isinstance(command, LeaveVoice):
            await self._registry.leave(command.guild_id)
            return None
        if isinstance(command, Speak):
            return await self._speak(command, cancel)
        if isinstance(command, Listen):
            return await self._listen(command, cancel)
        raise ValueError(f"unsupported command {command.command_type}")

    async def shutdown(self) -> None:
        await self._registry.close_all()

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    async def _speak(self, command: Speak, cancel: CancelToken | None) -> PlaybackResult:
        transport = self._transport_for(command.guild_id)
        self._claim(command)
        try:
            return await self._playback.speak(
                transport, command.text, voice=command.voice, cancel=cancel
            )
        finally:
            self._release(command)

    async def _listen(self, command: Listen, cancel: CancelToken | None) -> CaptureResult:
        transport = self._transport_for(command.guild_id)
        self._claim(command)
        try:
            return await self._capture.listen(
                transport, window_s=command.window_s, cancel=cancel
            )
        finally:
            self._release(command)

    def _transport_for(self, guild_id: str) -> VoiceTransport:
        session = self._registry.get(guild_id)
        if session is None or not session.ready:
            raise TransportError(f"not connected to voice in guild {guild_id}")
        return session.transport

    def _claim(self, command: Command) -> None:
        if self._busy_policy != BUSY_POLICY_REJECT:
            return
        active = self._active.get(command.guild_id)
        if active is not None:
            raise AlreadyActive(command.guild_id, active.value)
        self._active[command.guild_id] = command.command_type

    def _release(self, command: Command) -> None:
        if self._busy_policy != BUSY_POLICY_REJECT:
            return
        if self._active.get(command.guild_id) is command.command_type:
            del self._active[command.guild_id]
