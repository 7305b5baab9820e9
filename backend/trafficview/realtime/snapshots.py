"""
Snapshot Query Service

Pure reads over the traffic store: recent points plus system metrics
for the global scope, and bounding-box filtered points for area scopes.
An empty store yields empty lists and zero metrics, never an error.
"""

import asyncio
import time
from typing import Awaitable, List, Optional, TypeVar

from trafficview.config import RealtimeSettings
from trafficview.database.store import TrafficStore
from trafficview.exceptions import StoreUnavailableError
from trafficview.models import (
    AreaBounds,
    GlobalSnapshot,
    MetricsSnapshot,
    TrafficPointSnapshot,
)

T = TypeVar("T")


class SnapshotQueryService:
    """
    Build traffic snapshots from the store

    Usage:
        service = SnapshotQueryService(store, settings)
        snapshot = await service.get_global_snapshot()
        points = await service.get_area_snapshot(bounds)
    """

    def __init__(self, store: TrafficStore, settings: Optional[RealtimeSettings] = None):
        self.store = store
        self.settings = settings or RealtimeSettings()

    def clamp_limit(self, limit: Optional[int]) -> int:
        """Default when absent; clamp into [1, max_limit]"""
        if limit is None:
            return self.settings.default_limit
        return max(1, min(int(limit), self.settings.max_limit))

    async def _query(self, coro: Awaitable[T]) -> T:
        """Await a store query under the configured timeout"""
        try:
            return await asyncio.wait_for(coro, timeout=self.settings.query_timeout)
        except asyncio.TimeoutError as e:
            raise StoreUnavailableError(
                f"Store query timed out after {self.settings.query_timeout}s"
            ) from e
        except StoreUnavailableError:
            raise
        except Exception as e:
            raise StoreUnavailableError(f"Store query failed: {e}") from e

    async def get_global_snapshot(self, limit: Optional[int] = None) -> GlobalSnapshot:
        """
        Most recent points (newest first) and system metrics

        Raises:
            StoreUnavailableError: store query failed or timed out
        """
        points = await self._query(self.store.query_recent_points(self.clamp_limit(limit)))
        metrics = await self.get_metrics()
        return GlobalSnapshot(points=list(points or []), metrics=metrics)

    async def get_area_snapshot(
        self, bounds: AreaBounds, limit: Optional[int] = None
    ) -> List[TrafficPointSnapshot]:
        """
        Points inside the inclusive bounding box, newest first

        Raises:
            StoreUnavailableError: store query failed or timed out
        """
        points = await self._query(
            self.store.query_points_in_bounds(bounds, self.clamp_limit(limit))
        )
        return list(points or [])

    async def get_metrics(self) -> MetricsSnapshot:
        """
        Metrics over the trailing window

        Falls back to the latest stored record when the window is empty,
        and to zero-valued metrics when the store holds none.
        """
        since = time.time() - self.settings.metrics_window
        metrics = await self._query(self.store.query_aggregate_metrics(since))
        if metrics is None:
            metrics = await self._query(self.store.query_latest_metrics())
        return metrics or MetricsSnapshot.empty()
