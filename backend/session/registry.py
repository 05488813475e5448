"""
Connection registry: at most one live voice transport per guild.

Responsibilities:
- Own the guild_id -> VoiceSession map (constructed once per process,
  passed by reference; never module-level state)
- Serialize join/leave/replace per guild with a per-guild lock
- Close an old transport before opening its replacement

Non-responsibilities:
- No playback or capture. Drivers receive the transport and run without
  holding any registry lock.
- No retries on open failure.

Invariant:
- For a given guild, open/close side effects never interleave, and at no
  point are two transports live for the same guild.
"""

from __future__ import annotations

import asyncio

from errors import TransportError
from observability.logger import log_event
from session.connection_status import ConnectionStatus
from session.voice_session import VoiceSession
from transport.base import TransportFactory, VoiceTransport


class ConnectionRegistry:
    """Concurrency-safe guild -> voice session map."""

    def __init__(self, *, open_transport: TransportFactory) -> None:
        self._open_transport = open_transport
        self._sessions: dict[str, VoiceSession] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def join(self, guild_id: str, channel_id: str) -> VoiceTransport:
        """
        Return a ready transport for (guild_id, channel_id).

        - Ready session on the same channel: returned unchanged.
        - Session on another channel (or a stale one): closed, then a new
          transport is opened.
        - No session: a new transport is opened.

        Raises:
            TransportError if closing the old transport or opening the new
            one fails. No half-registered entry is left behind.
        """
        async with self._lock_for(guild_id):
            existing = self._sessions.get(guild_id)
            if existing is not None and existing.ready and existing.targets(channel_id):
                return existing.transport

            if existing is not None:
                await self._close_session(existing, reason="replaced")

            log_event({
                "event_type": "voice_connecting",
                "guild_id": guild_id,
                "channel_id": channel_id,
            })
            try:
                transport = await self._open_transport(guild_id, channel_id)
            except TransportError:
                raise
            except Exception as exc:
                raise TransportError(
                    f"failed to join voice channel {channel_id} in guild {guild_id}: {exc}"
                ) from exc

            session = VoiceSession(
                guild_id=guild_id,
                channel_id=channel_id,
                transport=transport,
            )
            self._sessions[guild_id] = session

            log_event({"event_type": "voice_joined", **session.log_context()})
            return transport

    async def leave(self, guild_id: str) -> None:
        """
        Close and remove the guild's transport. No-op if none exists.

        The entry is removed even when close() fails; the failure
        still propagates as TransportError.
        """
        async with self._lock_for(guild_id):
            existing = self._sessions.get(guild_id)
            if existing is None:
                return
            await self._close_session(existing, reason="left", drop_on_error=True)

    def get(self, guild_id: str) -> VoiceSession | None:
        """Current session for a guild (read-only view; may be stale)."""
        return self._sessions.get(guild_id)

    def guild_ids(self) -> tuple[str, ...]:
        return tuple(self._sessions)

    async def close_all(self) -> None:
        """Leave every guild. Used on shutdown."""
        for guild_id in self.guild_ids():
            try:
                await self.leave(guild_id)
            except TransportError as exc:
                log_event({
                    "event_type": "voice_close_failed",
                    "guild_id": guild_id,
                    "error": str(exc),
                })

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _lock_for(self, guild_id: str) -> asyncio.Lock:
        # Single-threaded event loop: setdefault cannot race
        return self._locks.setdefault(guild_id, asyncio.Lock())

    async def _close_session(
        self,
        session: VoiceSession,
        *,
        reason: str,
        drop_on_error: bool = False,
    ) -> None:
        """
        Close a registered session's transport. Caller holds the guild lock.

        On success the entry is removed. On failure the entry is kept
        (marked DOWN) unless drop_on_error, and TransportError propagates.
        """
        session.status = ConnectionStatus.CLOSING
        try:
            await session.transport.close()
        except Exception as exc:
            session.status = ConnectionStatus.DOWN
            if drop_on_error:
                self._sessions.pop(session.guild_id, None)
            if isinstance(exc, TransportError):
                raise
            raise TransportError(
                f"failed to close voice connection in guild {session.guild_id}: {exc}"
            ) from exc

        session.status = ConnectionStatus.DOWN
        self._sessions.pop(session.guild_id, None)
        log_event({
            "event_type": f"voice_{reason}",
            **session.log_context(),
        })
