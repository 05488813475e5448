"""
Voice session container.

- One per guild, owned and mutated by ConnectionRegistry
- Holds the open transport plus identity/status for logging
- NOT a state machine
- Contains no pipeline logic
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any

from session.connection_status import ConnectionStatus
from transport.base import VoiceTransport


@dataclass
class VoiceSession:
    """Mutable registry entry for a single guild's voice connection."""

    # ------------------------------------------------------------------
    # Identity / lifecycle
    # ------------------------------------------------------------------

    guild_id: str
    channel_id: str
    transport: VoiceTransport
    created_at: float = field(default_factory=time.time)

    # ------------------------------------------------------------------
    # Registry-controlled state
    # ------------------------------------------------------------------

    status: ConnectionStatus = ConnectionStatus.UP

    @property
    def ready(self) -> bool:
        """True when the entry is registered UP and the transport is usable."""
        return self.status is ConnectionStatus.UP and self.transport.ready

    def targets(self, channel_id: str) -> bool:
        return self.channel_id == channel_id

    # ------------------------------------------------------------------
    # Observability helpers (read-only)
    # ------------------------------------------------------------------

    def log_context(self) -> dict[str, Any]:
        """Standard logging fields for this session."""
        return {
            "guild_id": self.guild_id,
            "channel_id": self.channel_id,
            "connection_status": self.status.value,
        }
