"""
Traffic Store

Read/write access to traffic points and metrics for the real-time service.

TrafficStore is the interface the snapshot service depends on;
SqlTrafficStore implements it over a SQLAlchemy session factory.
Sessions are synchronous, so every query runs in a worker thread and
is awaited without blocking the event loop.
"""

import asyncio
import json
import time
import uuid
from typing import Callable, List, Optional, Protocol, TypeVar

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from trafficview.exceptions import StoreUnavailableError
from trafficview.logger import get_logger
from trafficview.models import (
    AreaBounds,
    Location,
    MetricsSnapshot,
    TrafficPointCreate,
    TrafficPointSnapshot,
)
from .models import TrafficMetricsRecord, TrafficPointRecord

logger = get_logger(__name__)

T = TypeVar("T")


class TrafficStore(Protocol):
    """Queries the real-time service runs against the persistence layer"""

    async def query_recent_points(self, limit: int) -> List[TrafficPointSnapshot]:
        """Most recent points, newest first"""
        ...

    async def query_points_in_bounds(
        self, bounds: AreaBounds, limit: int
    ) -> List[TrafficPointSnapshot]:
        """Points inside the inclusive bounding box, newest first"""
        ...

    async def query_latest_metrics(self) -> Optional[MetricsSnapshot]:
        """Latest stored metrics record, or None"""
        ...

    async def query_aggregate_metrics(self, since: float) -> Optional[MetricsSnapshot]:
        """Metrics aggregated over records newer than `since`, or None"""
        ...


def point_to_snapshot(record: TrafficPointRecord) -> TrafficPointSnapshot:
    """Convert an ORM row to its wire projection"""
    return TrafficPointSnapshot(
        id=record.id,
        location=Location(lat=record.lat, lng=record.lng),
        status=record.status,
        speedKmph=record.speed_kmph,
        timestamp=record.timestamp,
        roadName=record.road_name,
    )


def metrics_to_snapshot(record: TrafficMetricsRecord) -> MetricsSnapshot:
    """Convert a single metrics row to a MetricsSnapshot"""
    return MetricsSnapshot(
        avgSpeed=record.average_speed,
        totalVehicles=record.vehicle_count,
        avgVehicles=float(record.vehicle_count),
        avgCongestion=record.congestion_level,
        sensorCount=len(set(record.sensor_ids)),
        lastUpdate=record.timestamp,
    )


class SqlTrafficStore:
    """
    SQLAlchemy-backed traffic store

    Usage:
        store = SqlTrafficStore(SessionLocal)
        points = await store.query_recent_points(100)
    """

    def __init__(self, session_factory: sessionmaker):
        """
        Initialize the store

        Args:
            session_factory: SQLAlchemy sessionmaker bound to an engine
        """
        self._session_factory = session_factory

    async def _run(self, fn: Callable[[Session], T]) -> T:
        """Run fn with a fresh session in a worker thread"""
        def work():
            with self._session_factory() as db:
                return fn(db)

        try:
            return await asyncio.to_thread(work)
        except SQLAlchemyError as e:
            logger.warning("[STORE] Query failed: %s", e)
            raise StoreUnavailableError(str(e)) from e
        except Exception as e:
            # Stored rows that do not map onto the wire models
            logger.warning("[STORE] Could not read stored data: %s", e)
            raise StoreUnavailableError(f"Invalid stored data: {e}") from e

    # ============================================
    # Realtime Queries
    # ============================================

    async def query_recent_points(self, limit: int) -> List[TrafficPointSnapshot]:
        def query(db: Session):
            rows = (
                db.query(TrafficPointRecord)
                .order_by(TrafficPointRecord.timestamp.desc())
                .limit(limit)
                .all()
            )
            return [point_to_snapshot(r) for r in rows]

        return await self._run(query)

    async def query_points_in_bounds(
        self, bounds: AreaBounds, limit: int
    ) -> List[TrafficPointSnapshot]:
        def query(db: Session):
            rows = (
                db.query(TrafficPointRecord)
                .filter(
                    TrafficPointRecord.lat >= bounds.south,
                    TrafficPointRecord.lat <= bounds.north,
                    TrafficPointRecord.lng >= bounds.west,
                    TrafficPointRecord.lng <= bounds.east,
                )
                .order_by(TrafficPointRecord.timestamp.desc())
                .limit(limit)
                .all()
            )
            return [point_to_snapshot(r) for r in rows]

        return await self._run(query)

    async def query_latest_metrics(self) -> Optional[MetricsSnapshot]:
        def query(db: Session):
            row = (
                db.query(TrafficMetricsRecord)
                .order_by(TrafficMetricsRecord.timestamp.desc())
                .first()
            )
            return metrics_to_snapshot(row) if row else None

        return await self._run(query)

    async def query_aggregate_metrics(self, since: float) -> Optional[MetricsSnapshot]:
        def query(db: Session):
            return aggregate_metrics(db, since)

        return await self._run(query)

    # ============================================
    # Writes
    # ============================================

    async def add_point(self, point: TrafficPointCreate) -> TrafficPointSnapshot:
        """Persist a new traffic point"""
        def write(db: Session):
            record = build_point_record(point)
            db.add(record)
            db.commit()
            db.refresh(record)
            return point_to_snapshot(record)

        return await self._run(write)


def build_point_record(point: TrafficPointCreate) -> TrafficPointRecord:
    """Build an ORM row for a new point"""
    return TrafficPointRecord(
        id=f"tp-{uuid.uuid4().hex[:12]}",
        lat=point.location.lat,
        lng=point.location.lng,
        status=point.status.value,
        speed_kmph=point.speedKmph,
        timestamp=point.timestamp if point.timestamp is not None else time.time(),
        road_name=point.roadName,
    )


def aggregate_metrics(db: Session, since: float) -> Optional[MetricsSnapshot]:
    """
    Aggregate metrics records newer than `since`

    Returns None when the window holds no records.
    """
    row = (
        db.query(
            func.count(TrafficMetricsRecord.id),
            func.avg(TrafficMetricsRecord.average_speed),
            func.sum(TrafficMetricsRecord.vehicle_count),
            func.avg(TrafficMetricsRecord.vehicle_count),
            func.avg(TrafficMetricsRecord.congestion_level),
            func.max(TrafficMetricsRecord.timestamp),
        )
        .filter(TrafficMetricsRecord.timestamp >= since)
        .one()
    )
    count, avg_speed, total_vehicles, avg_vehicles, avg_congestion, last_update = row
    if not count:
        return None

    sensors = set()
    for (sensors_json,) in (
        db.query(TrafficMetricsRecord.sensors_json)
        .filter(TrafficMetricsRecord.timestamp >= since)
        .all()
    ):
        if sensors_json:
            sensors.update(s.get("id") for s in json.loads(sensors_json) if s.get("id"))

    return MetricsSnapshot(
        avgSpeed=round(avg_speed or 0.0, 2),
        totalVehicles=int(total_vehicles or 0),
        avgVehicles=round(avg_vehicles or 0.0, 2),
        avgCongestion=round(avg_congestion or 0.0, 4),
        sensorCount=len(sensors),
        lastUpdate=last_update,
    )
