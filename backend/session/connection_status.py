"""
Connection status tracking for guild voice sessions.

Pure data owned by ConnectionRegistry. Independent of what the playback
or capture drivers are doing on the transport.
"""
from enum import Enum

class ConnectionStatus(Enum):
    """
    Voice connection lifecycle for one guild.

    Only UP sessions are reused by ConnectionRegistry.join().
    """
    DOWN = "DOWN"              # Closed, or close() failed
    UP = "UP"                  # Transport open and registered
    CLOSING = "CLOSING"        # close() in flight (leave or channel move)
