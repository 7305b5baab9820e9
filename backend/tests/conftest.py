"""
Shared test fixtures

FakeStore and FakeConnection stand in for the SQL store and the
Socket.IO transport so the real-time core can be driven directly.
"""

import asyncio
import time
import uuid
from typing import List, Optional

import pytest

from trafficview.config import RealtimeSettings
from trafficview.exceptions import StoreUnavailableError, TransportPushError
from trafficview.models import AreaBounds, Location, MetricsSnapshot, TrafficPointSnapshot
from trafficview.realtime import (
    BroadcastScheduler,
    ConnectionRegistry,
    SnapshotQueryService,
    SubscriptionManager,
)


def make_point(lat: float, lng: float, status: str = "low", speed: float = 50.0,
               timestamp: float = None, road: str = "MG Road") -> TrafficPointSnapshot:
    return TrafficPointSnapshot(
        id=f"tp-{uuid.uuid4().hex[:8]}",
        location=Location(lat=lat, lng=lng),
        status=status,
        speedKmph=speed,
        timestamp=timestamp if timestamp is not None else time.time(),
        roadName=road,
    )


class FakeStore:
    """In-memory TrafficStore with failure switches"""

    def __init__(self, points: List[TrafficPointSnapshot] = None):
        self.points = list(points or [])
        self.latest_metrics: Optional[MetricsSnapshot] = None
        self.aggregate_metrics: Optional[MetricsSnapshot] = None
        self.fail = False
        self.area_fail = False
        self.area_gate: Optional[asyncio.Event] = None
        self.calls = []

    def _newest_first(self):
        return sorted(self.points, key=lambda p: p.timestamp, reverse=True)

    def _check(self):
        if self.fail:
            raise StoreUnavailableError("store down")

    async def query_recent_points(self, limit):
        self.calls.append(("recent", limit))
        self._check()
        return self._newest_first()[:limit]

    async def query_points_in_bounds(self, bounds: AreaBounds, limit):
        self.calls.append(("area", bounds, limit))
        if self.area_gate is not None:
            await self.area_gate.wait()
        self._check()
        if self.area_fail:
            raise StoreUnavailableError("area query failed")
        inside = [p for p in self._newest_first() if bounds.contains(p.location.lat, p.location.lng)]
        return inside[:limit]

    async def query_latest_metrics(self):
        self.calls.append(("latest",))
        self._check()
        return self.latest_metrics

    async def query_aggregate_metrics(self, since):
        self.calls.append(("aggregate", since))
        self._check()
        return self.aggregate_metrics


class FakeConnection:
    """ClientConnection that records pushes"""

    def __init__(self, connection_id: str = "c", fail: bool = False):
        self.connection_id = connection_id
        self.fail = fail
        self.sent = []
        self.closed = False

    async def send(self, event, payload):
        if self.fail:
            raise TransportPushError(self.connection_id, event, "socket closed")
        self.sent.append((event, payload))

    async def close(self):
        self.closed = True

    def events(self) -> List[str]:
        return [event for event, _ in self.sent]

    def payloads(self, event: str) -> list:
        return [payload for e, payload in self.sent if e == event]


# Bengaluru box used across scenarios
INSIDE_BOUNDS = {"north": 13.0, "south": 12.9, "east": 77.7, "west": 77.5}


@pytest.fixture
def settings():
    return RealtimeSettings(
        broadcast_interval=0.01,
        default_limit=100,
        max_limit=500,
        metrics_window=3600,
        query_timeout=1.0,
    )


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def registry():
    return ConnectionRegistry()


@pytest.fixture
def subscriptions(registry):
    return SubscriptionManager(registry)


@pytest.fixture
def snapshots(store, settings):
    return SnapshotQueryService(store, settings)


@pytest.fixture
def scheduler(registry, snapshots, settings):
    return BroadcastScheduler(registry, snapshots, interval=settings.broadcast_interval)
