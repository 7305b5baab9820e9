"""
Connection Registry

Tracks each live client connection and its current subscription.
This is the only mutable state shared between the Socket.IO handlers
and the broadcast scheduler.

Mutations run under a lock so they stay atomic even if called from
worker threads; on the event loop they never contend.
"""

import threading
import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from trafficview.exceptions import DuplicateConnectionError, UnknownConnectionError
from trafficview.logger import get_logger
from trafficview.models import NO_SUBSCRIPTION, Subscription
from .transport import ClientConnection

logger = get_logger(__name__)


@dataclass
class Connection:
    """Registry entry for one live session"""
    connection_id: str
    handle: Optional[ClientConnection] = None
    subscription: Subscription = NO_SUBSCRIPTION
    created_at: float = field(default_factory=time.time)


@dataclass(frozen=True)
class ConnectionInfo:
    """Immutable point-in-time view of a registry entry"""
    connection_id: str
    subscription: Subscription
    created_at: float


class ConnectionRegistry:
    """
    Registry of live connections

    Usage:
        registry = ConnectionRegistry()
        registry.register(sid, handle)
        registry.set_subscription(sid, AreaSubscription(bounds))
        for info in registry.list_connections():
            ...
        registry.unregister(sid)
    """

    def __init__(self):
        self._connections: Dict[str, Connection] = {}
        self._lock = threading.Lock()

        # Statistics
        self.total_registered = 0
        self.total_unregistered = 0

    def register(self, connection_id: str, handle: Optional[ClientConnection] = None) -> Connection:
        """
        Create an entry with no subscription

        Raises:
            DuplicateConnectionError: id already registered
        """
        with self._lock:
            if connection_id in self._connections:
                raise DuplicateConnectionError(connection_id)
            connection = Connection(connection_id=connection_id, handle=handle)
            self._connections[connection_id] = connection
            self.total_registered += 1

        logger.debug("[REGISTRY] Registered %s", connection_id)
        return connection

    def unregister(self, connection_id: str) -> Optional[Connection]:
        """
        Remove an entry and its subscription

        Safe to call repeatedly; returns None if the id was not present.
        """
        with self._lock:
            connection = self._connections.pop(connection_id, None)
            if connection is not None:
                self.total_unregistered += 1

        if connection is None:
            logger.debug("[REGISTRY] Unregister ignored, unknown %s", connection_id)
        return connection

    def set_subscription(self, connection_id: str, subscription: Subscription) -> None:
        """
        Replace the connection's subscription wholesale

        Raises:
            UnknownConnectionError: connection not registered
        """
        with self._lock:
            connection = self._connections.get(connection_id)
            if connection is None:
                raise UnknownConnectionError(connection_id)
            connection.subscription = subscription

    def get_subscription(self, connection_id: str) -> Subscription:
        """
        Raises:
            UnknownConnectionError: connection not registered
        """
        with self._lock:
            connection = self._connections.get(connection_id)
            if connection is None:
                raise UnknownConnectionError(connection_id)
            return connection.subscription

    def get_handle(self, connection_id: str) -> Optional[ClientConnection]:
        """Transport handle for a live connection, or None if gone"""
        with self._lock:
            connection = self._connections.get(connection_id)
            return connection.handle if connection else None

    def is_registered(self, connection_id: str) -> bool:
        with self._lock:
            return connection_id in self._connections

    def list_connections(self) -> List[ConnectionInfo]:
        """Point-in-time copy of all entries, safe to iterate across awaits"""
        with self._lock:
            return [
                ConnectionInfo(c.connection_id, c.subscription, c.created_at)
                for c in self._connections.values()
            ]

    def count(self) -> int:
        with self._lock:
            return len(self._connections)

    def clear(self) -> None:
        """Drop all entries (shutdown)"""
        with self._lock:
            self._connections.clear()

    def get_stats(self) -> Dict[str, int]:
        """Registry statistics by subscription kind"""
        by_kind = {"none": 0, "global": 0, "area": 0}
        for info in self.list_connections():
            by_kind[info.subscription.kind] += 1
        return {
            "connected": sum(by_kind.values()),
            "totalRegistered": self.total_registered,
            "totalUnregistered": self.total_unregistered,
            "subscriptions": by_kind,
        }
