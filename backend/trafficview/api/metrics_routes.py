"""
Metrics Routes - Sensor metrics and forecasts

Endpoints:
- POST /api/metrics - Record metrics for a road segment
- GET /api/metrics/area - Latest metrics per segment inside a bounding box
- GET /api/metrics/historical - Bucketed averages for a segment
- GET /api/metrics/overview - System-wide summary and congestion hotspots
- GET /api/metrics/predict - Rush-hour forecast for a segment
"""

import json
import re
import time
from collections import defaultdict
from typing import Any, Dict, List, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field
from sqlalchemy import func
from sqlalchemy.orm import Session

from trafficview.database.database import get_db
from trafficview.database.models import TrafficMetricsRecord, TrafficPointRecord
from trafficview.database.store import aggregate_metrics
from trafficview.models import AreaBounds, Location, MetricsSnapshot
from trafficview.prediction import forecast_segment
from .dependencies import bounding_box

router = APIRouter(prefix="/api/metrics", tags=["metrics"])

AREA_WINDOW_SECONDS = 15 * 60
OVERVIEW_WINDOW_SECONDS = 60 * 60
HOTSPOT_THRESHOLD = 0.7
HOTSPOT_LIMIT = 10

INTERVAL_SECONDS = {
    "5min": 5 * 60,
    "15min": 15 * 60,
    "hour": 60 * 60,
    "day": 24 * 60 * 60,
}

DURATION_UNITS = {"h": 3600, "d": 86400, "w": 604800}


# ============================================
# Request/Response Models
# ============================================

class SegmentMetrics(BaseModel):
    """Measured values for a segment"""
    averageSpeed: float = Field(ge=0)
    vehicleCount: int = Field(ge=0)
    congestionLevel: float = Field(ge=0, le=1)
    trafficDensity: float = Field(ge=0)
    averageWaitTime: Optional[float] = None


class SensorInfo(BaseModel):
    """Sensor contributing to a metrics record"""
    id: str
    type: str
    status: Literal["active", "inactive", "degraded"] = "active"


class MetricsRecordRequest(BaseModel):
    """Request to record metrics"""
    location: Location
    metrics: SegmentMetrics
    roadSegmentId: Optional[str] = None
    sensors: List[SensorInfo] = Field(default_factory=list)
    timestamp: Optional[float] = None


class MetricsRecordResponse(MetricsRecordRequest):
    """Stored metrics record"""
    id: int
    timestamp: float


class HistoricalBucket(BaseModel):
    """Averages for one time bucket"""
    timestamp: float
    averageSpeed: float
    avgVehicleCount: float
    avgCongestionLevel: float
    avgTrafficDensity: float
    samples: int


class Hotspot(BaseModel):
    """Highly congested segment"""
    roadSegmentId: Optional[str]
    avgCongestion: float
    location: Location


class OverviewResponse(BaseModel):
    """System overview"""
    systemMetrics: MetricsSnapshot
    activePoints: int
    congestionHotspots: List[Hotspot]


def record_to_response(record: TrafficMetricsRecord) -> MetricsRecordResponse:
    return MetricsRecordResponse(
        id=record.id,
        timestamp=record.timestamp,
        location=Location(lat=record.lat, lng=record.lng),
        roadSegmentId=record.road_segment_id,
        metrics=SegmentMetrics(
            averageSpeed=record.average_speed,
            vehicleCount=record.vehicle_count,
            congestionLevel=record.congestion_level,
            trafficDensity=record.traffic_density,
            averageWaitTime=record.average_wait_time,
        ),
        sensors=json.loads(record.sensors_json) if record.sensors_json else [],
    )


def parse_duration(duration: str) -> float:
    """Parse '24h', '7d' or '2w' into seconds"""
    match = re.fullmatch(r"(\d+)([hdw])", duration.strip())
    if not match:
        raise ValueError(f"Invalid duration: {duration}")
    return int(match.group(1)) * DURATION_UNITS[match.group(2)]


def bucket_metrics(rows: List[TrafficMetricsRecord], bucket_seconds: int) -> List[HistoricalBucket]:
    """Group rows into fixed-width UTC buckets, oldest first"""
    buckets: Dict[int, List[TrafficMetricsRecord]] = defaultdict(list)
    for row in rows:
        buckets[int(row.timestamp // bucket_seconds)].append(row)

    result = []
    for key in sorted(buckets):
        group = buckets[key]
        n = len(group)
        result.append(HistoricalBucket(
            timestamp=min(r.timestamp for r in group),
            averageSpeed=round(sum(r.average_speed for r in group) / n, 2),
            avgVehicleCount=round(sum(r.vehicle_count for r in group) / n, 2),
            avgCongestionLevel=round(sum(r.congestion_level for r in group) / n, 4),
            avgTrafficDensity=round(sum(r.traffic_density for r in group) / n, 2),
            samples=n,
        ))
    return result


# ============================================
# Endpoints
# ============================================

@router.post("", response_model=MetricsRecordResponse, status_code=201)
def record_metrics(request: MetricsRecordRequest, db: Session = Depends(get_db)):
    """Record metrics for a road segment"""
    record = TrafficMetricsRecord(
        timestamp=request.timestamp if request.timestamp is not None else time.time(),
        lat=request.location.lat,
        lng=request.location.lng,
        road_segment_id=request.roadSegmentId,
        average_speed=request.metrics.averageSpeed,
        vehicle_count=request.metrics.vehicleCount,
        congestion_level=request.metrics.congestionLevel,
        traffic_density=request.metrics.trafficDensity,
        average_wait_time=request.metrics.averageWaitTime,
        sensors_json=json.dumps([s.model_dump() for s in request.sensors]),
    )
    db.add(record)
    db.commit()
    db.refresh(record)
    return record_to_response(record)


@router.get("/area", response_model=List[MetricsRecordResponse])
def get_latest_metrics_by_area(
    bounds: AreaBounds = Depends(bounding_box),
    db: Session = Depends(get_db),
):
    """Latest record per road segment inside the box, last 15 minutes"""
    rows = (
        db.query(TrafficMetricsRecord)
        .filter(
            TrafficMetricsRecord.lat >= bounds.south,
            TrafficMetricsRecord.lat <= bounds.north,
            TrafficMetricsRecord.lng >= bounds.west,
            TrafficMetricsRecord.lng <= bounds.east,
            TrafficMetricsRecord.timestamp >= time.time() - AREA_WINDOW_SECONDS,
        )
        .order_by(TrafficMetricsRecord.timestamp.desc())
        .all()
    )

    latest: Dict[Optional[str], TrafficMetricsRecord] = {}
    for row in rows:
        latest.setdefault(row.road_segment_id, row)
    return [record_to_response(r) for r in latest.values()]


@router.get("/historical", response_model=List[HistoricalBucket])
def get_historical_metrics(
    roadSegmentId: Optional[str] = None,
    interval: str = "hour",
    duration: str = "24h",
    db: Session = Depends(get_db),
):
    """Bucketed averages for a segment over the requested duration"""
    if not roadSegmentId:
        raise HTTPException(status_code=400, detail="Missing roadSegmentId parameter")
    if interval not in INTERVAL_SECONDS:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid interval: {interval}. Use one of {list(INTERVAL_SECONDS)}"
        )
    try:
        window = parse_duration(duration)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    rows = (
        db.query(TrafficMetricsRecord)
        .filter(
            TrafficMetricsRecord.road_segment_id == roadSegmentId,
            TrafficMetricsRecord.timestamp >= time.time() - window,
        )
        .all()
    )
    return bucket_metrics(rows, INTERVAL_SECONDS[interval])


@router.get("/overview", response_model=OverviewResponse)
def get_traffic_overview(db: Session = Depends(get_db)):
    """System metrics, active point count and congestion hotspots (last hour)"""
    since = time.time() - OVERVIEW_WINDOW_SECONDS

    system_metrics = aggregate_metrics(db, since) or MetricsSnapshot.empty()

    active_points = (
        db.query(func.count(TrafficPointRecord.id))
        .filter(TrafficPointRecord.timestamp >= since)
        .scalar()
    ) or 0

    by_segment: Dict[Optional[str], List[TrafficMetricsRecord]] = defaultdict(list)
    for row in (
        db.query(TrafficMetricsRecord)
        .filter(TrafficMetricsRecord.timestamp >= since)
        .order_by(TrafficMetricsRecord.timestamp.asc())
        .all()
    ):
        by_segment[row.road_segment_id].append(row)

    hotspots = []
    for segment_id, group in by_segment.items():
        avg_congestion = sum(r.congestion_level for r in group) / len(group)
        if avg_congestion >= HOTSPOT_THRESHOLD:
            hotspots.append(Hotspot(
                roadSegmentId=segment_id,
                avgCongestion=round(avg_congestion, 4),
                location=Location(lat=group[0].lat, lng=group[0].lng),
            ))
    hotspots.sort(key=lambda h: h.avgCongestion, reverse=True)

    return OverviewResponse(
        systemMetrics=system_metrics,
        activePoints=active_points,
        congestionHotspots=hotspots[:HOTSPOT_LIMIT],
    )


@router.get("/predict")
def predict_traffic(roadSegmentId: Optional[str] = None, db: Session = Depends(get_db)) -> Dict[str, Any]:
    """Rush-hour forecast from the segment's latest metrics"""
    if not roadSegmentId:
        raise HTTPException(status_code=400, detail="Missing roadSegmentId parameter")

    latest = (
        db.query(TrafficMetricsRecord)
        .filter(TrafficMetricsRecord.road_segment_id == roadSegmentId)
        .order_by(TrafficMetricsRecord.timestamp.desc())
        .first()
    )
    if latest is None:
        raise HTTPException(status_code=404, detail="No metrics found for this road segment")

    return forecast_segment(
        road_segment_id=roadSegmentId,
        average_speed=latest.average_speed,
        congestion_level=latest.congestion_level,
        vehicle_count=latest.vehicle_count,
    ).to_dict()
