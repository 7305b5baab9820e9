"""
Traffic Routes - Traffic point endpoints

Endpoints:
- GET /api/traffic/points - Recent traffic points (newest first)
- GET /api/traffic/points/area - Traffic points inside a bounding box
- POST /api/traffic/points - Add a traffic point
- GET /api/traffic/metrics - Last-hour speed and congestion summary
"""

import time
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy import func
from sqlalchemy.orm import Session

from trafficview.database.database import get_db
from trafficview.database.models import TrafficPointRecord
from trafficview.database.store import build_point_record, point_to_snapshot
from trafficview.models import AreaBounds, TrafficPointCreate, TrafficPointSnapshot, TrafficStatus
from .dependencies import bounding_box

router = APIRouter(prefix="/api/traffic", tags=["traffic"])

WINDOW_SECONDS = 3600


# ============================================
# Response Models
# ============================================

class TrafficMetricsResponse(BaseModel):
    """Summary of recent traffic points"""
    averageSpeed: float
    vehicleCount: int
    congestionLevel: float  # 0-1, status weighted
    timestamp: float


def weighted_congestion(status_counts: dict) -> float:
    """
    Status-weighted congestion ratio

    low=0.25, medium=0.5, high=0.75, severe=1.0, averaged over all points.
    """
    total = sum(status_counts.values())
    if total == 0:
        return 0.0
    weighted = sum(
        TrafficStatus(status).congestion_weight * count
        for status, count in status_counts.items()
    )
    return weighted / total


# ============================================
# Endpoints
# ============================================

@router.get("/points", response_model=List[TrafficPointSnapshot])
def get_traffic_points(
    limit: Optional[int] = Query(None, ge=1, le=1000),
    db: Session = Depends(get_db),
):
    """Get traffic points, newest first"""
    query = db.query(TrafficPointRecord).order_by(TrafficPointRecord.timestamp.desc())
    if limit:
        query = query.limit(limit)
    return [point_to_snapshot(r) for r in query.all()]


@router.get("/points/area", response_model=List[TrafficPointSnapshot])
def get_traffic_points_by_area(
    bounds: AreaBounds = Depends(bounding_box),
    db: Session = Depends(get_db),
):
    """Get traffic points inside the inclusive bounding box"""
    rows = (
        db.query(TrafficPointRecord)
        .filter(
            TrafficPointRecord.lat >= bounds.south,
            TrafficPointRecord.lat <= bounds.north,
            TrafficPointRecord.lng >= bounds.west,
            TrafficPointRecord.lng <= bounds.east,
        )
        .order_by(TrafficPointRecord.timestamp.desc())
        .all()
    )
    return [point_to_snapshot(r) for r in rows]


@router.post("/points", response_model=TrafficPointSnapshot, status_code=201)
def add_traffic_point(request: TrafficPointCreate, db: Session = Depends(get_db)):
    """Add a traffic point"""
    record = build_point_record(request)
    db.add(record)
    db.commit()
    db.refresh(record)
    return point_to_snapshot(record)


@router.get("/metrics", response_model=TrafficMetricsResponse)
def get_traffic_metrics(db: Session = Depends(get_db)):
    """Average speed and status-weighted congestion over the last hour"""
    since = time.time() - WINDOW_SECONDS

    avg_speed, count = (
        db.query(func.avg(TrafficPointRecord.speed_kmph), func.count(TrafficPointRecord.id))
        .filter(TrafficPointRecord.timestamp >= since)
        .one()
    )
    status_counts = dict(
        db.query(TrafficPointRecord.status, func.count(TrafficPointRecord.id))
        .filter(TrafficPointRecord.timestamp >= since)
        .group_by(TrafficPointRecord.status)
        .all()
    )

    return TrafficMetricsResponse(
        averageSpeed=round(avg_speed or 0.0, 2),
        vehicleCount=count or 0,
        congestionLevel=round(weighted_congestion(status_counts), 4),
        timestamp=time.time(),
    )
