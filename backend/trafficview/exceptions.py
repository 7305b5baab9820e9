"""
Error Taxonomy

All errors raised by the real-time service derive from TrafficViewError.
Each kind is contained at the component that detects it:

- InvalidAreaError: bad subscribe payload, reported to the client
- UnknownConnectionError: disconnect race, dropped silently
- DuplicateConnectionError: registry misuse, a programming error
- StoreUnavailableError: store query failed or timed out
- TransportPushError: push to a single connection failed
"""


class TrafficViewError(Exception):
    """Base class for all Traffic View errors"""


class InvalidAreaError(TrafficViewError, ValueError):
    """Malformed or inconsistent bounding box"""


class UnknownConnectionError(TrafficViewError, KeyError):
    """Operation targets a connection that is not registered"""

    def __init__(self, connection_id: str):
        super().__init__(connection_id)
        self.connection_id = connection_id

    def __str__(self) -> str:
        return f"Unknown connection: {self.connection_id}"


class DuplicateConnectionError(TrafficViewError):
    """Connection id registered twice"""

    def __init__(self, connection_id: str):
        super().__init__(f"Connection already registered: {connection_id}")
        self.connection_id = connection_id


class StoreUnavailableError(TrafficViewError):
    """External store query failed or timed out"""


class TransportPushError(TrafficViewError):
    """Push to a specific connection failed"""

    def __init__(self, connection_id: str, event: str, reason: str = ""):
        message = f"Failed to push '{event}' to {connection_id}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.connection_id = connection_id
        self.event = event
