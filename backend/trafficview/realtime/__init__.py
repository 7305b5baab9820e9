"""
Real-Time Traffic Package

Connection registry, subscription handling, snapshot queries and the
broadcast scheduler behind the live dashboard feed.

Usage:
    from trafficview.realtime import (
        ConnectionRegistry, SubscriptionManager,
        SnapshotQueryService, BroadcastScheduler,
    )
"""

from .transport import ClientConnection
from .registry import ConnectionRegistry, Connection, ConnectionInfo
from .subscriptions import SubscriptionManager
from .snapshots import SnapshotQueryService
from .scheduler import BroadcastScheduler, SchedulerState

__all__ = [
    "ClientConnection",
    "ConnectionRegistry",
    "Connection",
    "ConnectionInfo",
    "SubscriptionManager",
    "SnapshotQueryService",
    "BroadcastScheduler",
    "SchedulerState",
]
