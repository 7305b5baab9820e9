"""
Transport Capability

The real-time core talks to clients only through this interface.
Transport-specific session objects (Socket.IO sids, raw websockets)
are wrapped by an adapter that implements it.
"""

from typing import Any, Protocol


class ClientConnection(Protocol):
    """Opaque handle to one live client session"""

    async def send(self, event: str, payload: Any) -> None:
        """
        Push an event to the client

        Raises:
            TransportPushError: the push failed (closed socket, etc.)
        """
        ...

    async def close(self) -> None:
        """Close the client session"""
        ...
