"""
Voice transport contract.

This module defines the *interface only*. A transport is an open,
bidirectional Opus frame channel to one guild's voice connection.

Key invariants:
- send_frame() is a bounded, potentially-blocking hand-off. It returns
  once the frame is accepted; it never drops or reorders frames.
- receive_frame() suspends until one inbound compressed frame is
  available. Cancelling the awaiting task must not lose a frame.
- Both must yield to the event loop while waiting (no busy polling).
- Failures surface as errors.TransportError.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Awaitable, Callable


class VoiceTransport(ABC):
    """
    Abstract handle to a live voice connection for one guild.

    Implementations are responsible for:
    - Delivering outbound Opus frames to the voice server in order
    - Yielding inbound Opus frames in arrival order
    - Toggling the speaking indicator
    - Releasing the connection on close()

    Non-responsibilities:
    - No Opus encoding/decoding
    - No registry bookkeeping (ConnectionRegistry owns that)
    """

    @property
    @abstractmethod
    def guild_id(self) -> str:
        raise NotImplementedError

    @property
    @abstractmethod
    def channel_id(self) -> str:
        raise NotImplementedError

    @property
    @abstractmethod
    def ready(self) -> bool:
        """True while the connection is open and usable."""
        raise NotImplementedError

    @abstractmethod
    async def send_frame(self, frame: bytes) -> None:
        """
        Hand one compressed frame to the outbound channel.

        Suspends while the outbound channel is full.

        Raises:
            TransportError if the transport is closed or the send fails.
        """
        raise NotImplementedError

    @abstractmethod
    async def receive_frame(self) -> bytes:
        """
        Suspend until one inbound compressed frame is available.

        Raises:
            TransportError if the transport is closed.
        """
        raise NotImplementedError

    @abstractmethod
    async def set_speaking(self, speaking: bool) -> None:
        """Toggle the speaking indicator around a playback burst."""
        raise NotImplementedError

    @abstractmethod
    async def close(self) -> None:
        """
        Release the connection.

        Contract:
        - close() MUST be idempotent.
        - After close(), ready is False and send/receive raise TransportError.
        """
        raise NotImplementedError


# (guild_id, channel_id) -> open transport
TransportFactory = Callable[[str, str], Awaitable[VoiceTransport]]
