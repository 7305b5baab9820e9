"""
Broadcast Scheduler

A single recurring timer that pushes fresh snapshots to every connection
according to its current scope:

- None / Global scope: one shared global snapshot per tick
  (traffic-update + metrics-update)
- Area scope: a scoped query per connection (area-traffic-data)

The shared global query only runs when at least one connection is in
None or Global scope.

Failures are contained: a store failure on the shared query skips the
whole tick, a failed scoped query skips that connection, and a failed
push skips only the connection it targeted. The timer keeps running.

Usage:
    scheduler = BroadcastScheduler(registry, snapshots, interval=5.0)
    await scheduler.start()
    # ... later ...
    await scheduler.stop()
"""

import asyncio
import time
from enum import Enum
from typing import Any, Dict, List, Optional

from trafficview.exceptions import StoreUnavailableError, UnknownConnectionError
from trafficview.logger import get_logger
from trafficview.models import AreaBounds, AreaSubscription, TrafficPointSnapshot
from trafficview.websocket.events import ErrorData, ServerEvent
from .registry import ConnectionRegistry
from .snapshots import SnapshotQueryService

logger = get_logger(__name__)


class SchedulerState(str, Enum):
    """Broadcast scheduler lifecycle"""
    STOPPED = "STOPPED"
    RUNNING = "RUNNING"


def points_payload(points: List[TrafficPointSnapshot]) -> List[Dict[str, Any]]:
    return [p.model_dump(mode="json") for p in points]


class BroadcastScheduler:
    """
    Periodic snapshot fan-out

    Ticks never overlap: if the previous tick is still in flight when
    the interval elapses, that interval is skipped.
    """

    def __init__(
        self,
        registry: ConnectionRegistry,
        snapshots: SnapshotQueryService,
        interval: float = 5.0,
    ):
        """
        Initialize the scheduler

        Args:
            registry: Live connection registry
            snapshots: Snapshot query service
            interval: Seconds between ticks
        """
        if interval <= 0:
            raise ValueError("interval must be positive")

        self.registry = registry
        self.snapshots = snapshots
        self.interval = interval

        self._state = SchedulerState.STOPPED
        self._timer: Optional[asyncio.Task] = None
        self._current_tick: Optional[asyncio.Task] = None

        # Statistics
        self.ticks_run = 0
        self.ticks_skipped = 0
        self.ticks_overlapped = 0
        self.total_pushes = 0
        self.push_failures = 0
        self.last_tick_time = 0.0

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state == SchedulerState.RUNNING

    # ============================================
    # Lifecycle
    # ============================================

    async def start(self):
        """Start the recurring timer (no-op if already running)"""
        if self._state == SchedulerState.RUNNING:
            return

        self._state = SchedulerState.RUNNING
        self._timer = asyncio.create_task(self._timer_loop())
        logger.info("[BROADCAST] Scheduler started (interval: %.1fs)", self.interval)

    async def stop(self):
        """
        Stop the timer (no-op if already stopped)

        In-flight ticks are not awaited; they finish or are dropped on
        their own. No new tick starts once this returns.
        """
        if self._state == SchedulerState.STOPPED:
            return

        self._state = SchedulerState.STOPPED
        if self._timer:
            self._timer.cancel()
            try:
                await self._timer
            except asyncio.CancelledError:
                pass
            self._timer = None

        logger.info("[BROADCAST] Scheduler stopped")

    async def _timer_loop(self):
        """Fire a tick every interval until stopped"""
        while self._state == SchedulerState.RUNNING:
            await asyncio.sleep(self.interval)
            if self._state != SchedulerState.RUNNING:
                break

            if self._current_tick and not self._current_tick.done():
                self.ticks_overlapped += 1
                logger.debug("[BROADCAST] Previous tick still running, skipping interval")
                continue

            self._current_tick = asyncio.create_task(self._safe_tick())

    async def _safe_tick(self):
        try:
            await self.tick()
        except Exception:
            logger.exception("[BROADCAST] Unexpected error during tick")

    # ============================================
    # Tick
    # ============================================

    async def tick(self) -> bool:
        """
        Run one broadcast round

        Returns:
            False if the tick was skipped because the store failed
        """
        self.last_tick_time = time.time()
        connections = self.registry.list_connections()
        if not connections:
            self.ticks_run += 1
            return True

        area_connections = [c for c in connections if isinstance(c.subscription, AreaSubscription)]
        global_connections = [c for c in connections if not isinstance(c.subscription, AreaSubscription)]

        pushes = []
        if global_connections:
            try:
                snapshot = await self.snapshots.get_global_snapshot()
            except StoreUnavailableError as e:
                self.ticks_skipped += 1
                logger.warning("[BROADCAST] Store unavailable, skipping tick: %s", e)
                return False

            points = points_payload(snapshot.points)
            metrics = snapshot.metrics.model_dump(mode="json")
            for info in global_connections:
                pushes.append(self._push_global_update(info.connection_id, points, metrics))

        for info in area_connections:
            pushes.append(self._push_area_update(info.connection_id, info.subscription))

        await asyncio.gather(*pushes)
        self.ticks_run += 1
        return True

    async def _push_global_update(self, connection_id: str, points, metrics):
        if await self._push(connection_id, ServerEvent.TRAFFIC_UPDATE.value, points):
            await self._push(connection_id, ServerEvent.METRICS_UPDATE.value, metrics)

    async def _push_area_update(self, connection_id: str, subscription: AreaSubscription):
        try:
            points = await self.snapshots.get_area_snapshot(subscription.bounds)
        except StoreUnavailableError as e:
            logger.warning("[BROADCAST] Area query failed for %s: %s", connection_id, e)
            return

        # The connection may have left or changed scope while the query ran
        try:
            current = self.registry.get_subscription(connection_id)
        except UnknownConnectionError:
            logger.debug("[BROADCAST] %s left during area query, dropping push", connection_id)
            return
        if current != subscription:
            logger.debug("[BROADCAST] %s changed scope during area query", connection_id)
            return

        await self._push(connection_id, ServerEvent.AREA_TRAFFIC_DATA.value, points_payload(points))

    # ============================================
    # Immediate Pushes
    # ============================================

    async def send_initial_snapshot(self, connection_id: str):
        """Push the global snapshot to a newly connected client"""
        try:
            snapshot = await self.snapshots.get_global_snapshot()
        except StoreUnavailableError as e:
            logger.warning("[BROADCAST] Initial snapshot failed for %s: %s", connection_id, e)
            await self.send_error(connection_id, "Failed to load initial data")
            return

        if await self._push(
            connection_id, ServerEvent.TRAFFIC_DATA.value, points_payload(snapshot.points)
        ):
            await self._push(
                connection_id,
                ServerEvent.SYSTEM_METRICS.value,
                snapshot.metrics.model_dump(mode="json"),
            )

    async def send_area_snapshot(self, connection_id: str, bounds: AreaBounds):
        """Push a scoped snapshot right after a subscribe"""
        try:
            points = await self.snapshots.get_area_snapshot(bounds)
        except StoreUnavailableError as e:
            logger.warning("[BROADCAST] Area snapshot failed for %s: %s", connection_id, e)
            await self.send_error(connection_id, "Failed to load area data")
            return

        await self._push(connection_id, ServerEvent.AREA_TRAFFIC_DATA.value, points_payload(points))

    async def send_error(self, connection_id: str, message: str):
        """Push an error event to one client"""
        await self._push(connection_id, ServerEvent.ERROR.value, ErrorData(message=message).model_dump())

    async def _push(self, connection_id: str, event: str, payload: Any) -> bool:
        """
        Push to one connection, isolating failures

        Returns:
            True if the push was delivered to the transport
        """
        handle = self.registry.get_handle(connection_id)
        if handle is None:
            logger.debug("[BROADCAST] %s no longer connected, dropping '%s'", connection_id, event)
            return False

        try:
            await handle.send(event, payload)
        except Exception as e:
            self.push_failures += 1
            logger.warning("[BROADCAST] Push '%s' to %s failed: %s", event, connection_id, e)
            return False

        self.total_pushes += 1
        return True

    def get_stats(self) -> Dict[str, Any]:
        """Get scheduler statistics"""
        return {
            "state": self._state.value,
            "interval": self.interval,
            "ticksRun": self.ticks_run,
            "ticksSkipped": self.ticks_skipped,
            "ticksOverlapped": self.ticks_overlapped,
            "totalPushes": self.total_pushes,
            "pushFailures": self.push_failures,
            "lastTickTime": self.last_tick_time,
        }
