"""
Discord voice transport (discord.py + discord-ext-voice-recv).

Outbound:
- send_frame() puts into a bounded asyncio.Queue (backpressure, never drops)
- A sender task paces frames onto the voice socket, one per frame duration

Inbound:
- voice_recv delivers Opus packets on its reader thread
- Packets are handed to the event loop via call_soon_threadsafe
- The inbound queue is bounded; when full the OLDEST frame is dropped

Failure:
- Any socket/gateway failure closes the transport and surfaces as
  TransportError on the next call
"""

from __future__ import annotations

import asyncio
from typing import Any

import discord
from discord.ext import voice_recv

from constants import (
    TRANSPORT_INBOUND_QUEUE_FRAMES,
    TRANSPORT_OUTBOUND_QUEUE_FRAMES,
    VOICE_CONNECT_TIMEOUT_S,
    AudioFormat,
)
from errors import TransportError
from observability.logger import log_event
from orchestrator.cancellation import CancelToken, race
from transport.base import VoiceTransport


class _InboundSink(voice_recv.AudioSink):
    """
    Receives raw Opus packets from voice_recv.

    write() runs on the voice_recv reader thread; everything that touches
    the queue is scheduled onto the event loop.
    """

    def __init__(
        self,
        loop: asyncio.AbstractEventLoop,
        queue: asyncio.Queue[bytes],
        guild_id: str,
    ) -> None:
        super().__init__()
        self._loop = loop
        self._queue = queue
        self._guild_id = guild_id
        self.dropped = 0

    def wants_opus(self) -> bool:
        return True

    def write(self, user: Any, data: Any) -> None:
        # Skip other bots (and ourselves)
        if user is not None and getattr(user, "bot", False):
            return
        packet = getattr(data, "opus", None)
        if not packet:
            return
        self._loop.call_soon_threadsafe(self._enqueue, bytes(packet))

    def cleanup(self) -> None:
        pass

    def _enqueue(self, packet: bytes) -> None:
        if self._queue.full():
            self._queue.get_nowait()
            self.dropped += 1
            log_event({
                "event_type": "transport_inbound_dropped",
                "guild_id": self._guild_id,
                "dropped_total": self.dropped,
            })
        self._queue.put_nowait(packet)


class DiscordVoiceTransport(VoiceTransport):
    """VoiceTransport over a connected voice_recv.VoiceRecvClient."""

    def __init__(
        self,
        voice_client: Any,
        *,
        guild_id: str,
        channel_id: str,
        audio_format: AudioFormat,
        outbound_frames: int = TRANSPORT_OUTBOUND_QUEUE_FRAMES,
        inbound_frames: int = TRANSPORT_INBOUND_QUEUE_FRAMES,
    ) -> None:
        self._vc = voice_client
        self._guild_id = guild_id
        self._channel_id = channel_id
        self._frame_s = audio_format.frame_duration_s

        self._outbound: asyncio.Queue[bytes] = asyncio.Queue(maxsize=outbound_frames)
        self._inbound: asyncio.Queue[bytes] = asyncio.Queue(maxsize=inbound_frames)
        self._closed = CancelToken()
        self._failure: BaseException | None = None
        self._sender: asyncio.Task[None] | None = None
        self._sink: _InboundSink | None = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Start the paced sender and attach the inbound sink. Requires a running loop."""
        loop = asyncio.get_running_loop()
        self._sink = _InboundSink(loop, self._inbound, self._guild_id)
        self._vc.listen(self._sink)
        self._sender = loop.create_task(self._send_loop())

    @property
    def guild_id(self) -> str:
        return self._guild_id

    @property
    def channel_id(self) -> str:
        return self._channel_id

    @property
    def ready(self) -> bool:
        return not self._closed.cancelled and self._vc.is_connected()

    # ------------------------------------------------------------------
    # VoiceTransport
    # ------------------------------------------------------------------

    async def send_frame(self, frame: bytes) -> None:
        self._raise_if_closed("send")
        status, _ = await race(self._outbound.put(frame), self._closed)
        if status == "done" and self._closed.cancelled:
            # Put landed after close drained the queue; nothing will consume it
            self._drain_outbound()
        self._raise_if_closed("send")

    async def receive_frame(self) -> bytes:
        self._raise_if_closed("receive")
        status, frame = await race(self._inbound.get(), self._closed)
        if status != "done" or frame is None:
            self._raise_if_closed("receive")
        return frame

    async def set_speaking(self, speaking: bool) -> None:
        if not speaking:
            if self._closed.cancelled:
                # No voice socket left to be speaking on
                return
            # Flag must not drop before the queued frames hit the socket
            status, _ = await race(self._outbound.join(), self._closed)
            if status != "done":
                return
        else:
            self._raise_if_closed("set_speaking")
        state = discord.SpeakingState.voice if speaking else discord.SpeakingState.none
        try:
            await self._vc.ws.speak(state)
        except (discord.DiscordException, OSError, AttributeError) as exc:
            raise TransportError(f"failed to set speaking={speaking}: {exc}") from exc

    async def close(self) -> None:
        if self._closed.cancelled and self._sender is None:
            return
        self._closed.cancel("closed")

        sender, self._sender = self._sender, None
        if sender is not None and not sender.done():
            sender.cancel()
            try:
                await sender
            except asyncio.CancelledError:
                pass
        self._drain_outbound()

        try:
            if self._vc.is_listening():
                self._vc.stop_listening()
            await self._vc.disconnect(force=True)
        except (discord.DiscordException, OSError) as exc:
            raise TransportError(
                f"failed to disconnect voice client in guild {self._guild_id}: {exc}"
            ) from exc

        log_event({
            "event_type": "transport_closed",
            "guild_id": self._guild_id,
            "channel_id": self._channel_id,
            "inbound_dropped": self._sink.dropped if self._sink is not None else 0,
        })

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    async def _send_loop(self) -> None:
        loop = asyncio.get_running_loop()
        next_at: float | None = None
        try:
            while True:
                frame = await self._outbound.get()
                try:
                    if not self._vc.is_connected():
                        raise TransportError("voice client disconnected")
                    now = loop.time()
                    if next_at is None or next_at < now:
                        # Start of a burst (or we fell behind): re-anchor pacing
                        next_at = now
                    self._vc.send_audio_packet(frame, encode=False)
                    next_at += self._frame_s
                finally:
                    self._outbound.task_done()
                await asyncio.sleep(max(0.0, next_at - loop.time()))
        except asyncio.CancelledError:
            raise
        except Exception as exc:  # pylint: disable=broad-exception-caught
            self._failure = exc
            log_event({
                "event_type": "transport_send_failed",
                "guild_id": self._guild_id,
                "error": str(exc),
            })
            self._closed.cancel("send_failed")
            self._drain_outbound()

    def _drain_outbound(self) -> None:
        while not self._outbound.empty():
            self._outbound.get_nowait()
            self._outbound.task_done()

    def _raise_if_closed(self, op: str) -> None:
        if not self._closed.cancelled:
            return
        if self._failure is not None:
            raise TransportError(f"{op} on failed transport: {self._failure}") from self._failure
        raise TransportError(f"{op} on closed transport (guild {self._guild_id})")


class DiscordTransportFactory:
    """
    Opens DiscordVoiceTransports. Used as the ConnectionRegistry's open_transport.

    Any stale voice client discord.py still holds for the guild is
    disconnected first; discord.py allows only one per guild.
    """

    def __init__(
        self,
        client: discord.Client,
        audio_format: AudioFormat,
        *,
        timeout_s: float = VOICE_CONNECT_TIMEOUT_S,
    ) -> None:
        self._client = client
        self._format = audio_format
        self._timeout_s = timeout_s

    async def __call__(self, guild_id: str, channel_id: str) -> VoiceTransport:
        guild = self._client.get_guild(int(guild_id))
        if guild is None:
            raise TransportError(f"unknown guild {guild_id}")
        channel = guild.get_channel(int(channel_id))
        if not isinstance(channel, (discord.VoiceChannel, discord.StageChannel)):
            raise TransportError(f"channel {channel_id} is not a voice channel")

        stale = guild.voice_client
        try:
            if stale is not None:
                await stale.disconnect(force=True)
            voice_client = await channel.connect(
                cls=voice_recv.VoiceRecvClient,
                timeout=self._timeout_s,
                self_deaf=False,
            )
        except (discord.DiscordException, asyncio.TimeoutError, OSError) as exc:
            raise TransportError(
                f"failed to connect to voice channel {channel_id}: {exc}"
            ) from exc

        transport = DiscordVoiceTransport(
            voice_client,
            guild_id=guild_id,
            channel_id=channel_id,
            audio_format=self._format,
        )
        transport.start()
        return transport
