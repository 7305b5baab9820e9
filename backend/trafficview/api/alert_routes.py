"""
Alert Routes - Traffic alert endpoints

Endpoints:
- GET /api/alerts - Active alerts (most severe first)
- GET /api/alerts/area - Active alerts inside a bounding box
- GET /api/alerts/proximity - Active alerts within a radius of a point
- GET /api/alerts/statistics - Active alert counts by severity and type
- POST /api/alerts - Create an alert
- PUT /api/alerts/{id} - Update an alert
- PATCH /api/alerts/{id}/close - Close an alert (endTime = now)
"""

import json
import math
import time
import uuid
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field
from sqlalchemy import or_
from sqlalchemy.orm import Query as OrmQuery, Session

from trafficview.database.database import get_db
from trafficview.database.models import TrafficAlertRecord
from trafficview.models import (
    Alert,
    AlertSeverity,
    AlertSource,
    AlertType,
    AreaBounds,
    Location,
)
from .dependencies import bounding_box

router = APIRouter(prefix="/api/alerts", tags=["alerts"])

EARTH_RADIUS_M = 6371000.0

SEVERITY_RANK = {
    AlertSeverity.CRITICAL.value: 0,
    AlertSeverity.MAJOR.value: 1,
    AlertSeverity.MINOR.value: 2,
}


# ============================================
# Request Models
# ============================================

class AlertCreateRequest(BaseModel):
    """Request to create an alert"""
    type: AlertType
    location: Location
    description: str = Field(min_length=1)
    severity: AlertSeverity
    startTime: Optional[float] = None
    endTime: Optional[float] = None
    affectedRoads: List[str] = Field(default_factory=list)
    impactRadius: Optional[float] = Field(None, ge=0)
    source: Optional[AlertSource] = None


class AlertUpdateRequest(BaseModel):
    """Partial alert update"""
    type: Optional[AlertType] = None
    location: Optional[Location] = None
    description: Optional[str] = Field(None, min_length=1)
    severity: Optional[AlertSeverity] = None
    endTime: Optional[float] = None
    affectedRoads: Optional[List[str]] = None
    impactRadius: Optional[float] = Field(None, ge=0)
    source: Optional[AlertSource] = None


# ============================================
# Helpers
# ============================================

def record_to_alert(record: TrafficAlertRecord) -> Alert:
    return Alert(
        id=record.id,
        type=record.type,
        location=Location(lat=record.lat, lng=record.lng),
        description=record.description,
        severity=record.severity,
        startTime=record.start_time,
        endTime=record.end_time,
        affectedRoads=json.loads(record.affected_roads_json) if record.affected_roads_json else [],
        impactRadius=record.impact_radius,
        source=record.source,
    )


def active_alerts(db: Session, now: Optional[float] = None) -> OrmQuery:
    """Alerts with no endTime or an endTime in the future"""
    now = time.time() if now is None else now
    return db.query(TrafficAlertRecord).filter(
        or_(TrafficAlertRecord.end_time.is_(None), TrafficAlertRecord.end_time > now)
    )


def sort_by_severity(records: List[TrafficAlertRecord]) -> List[Alert]:
    """Most severe first, then newest first"""
    ordered = sorted(
        records,
        key=lambda r: (SEVERITY_RANK.get(r.severity, len(SEVERITY_RANK)), -r.start_time),
    )
    return [record_to_alert(r) for r in ordered]


def haversine_m(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance in metres"""
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lng2 - lng1)
    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    return 2 * EARTH_RADIUS_M * math.asin(math.sqrt(a))


def get_alert_or_404(db: Session, alert_id: str) -> TrafficAlertRecord:
    record = db.query(TrafficAlertRecord).filter(TrafficAlertRecord.id == alert_id).first()
    if record is None:
        raise HTTPException(status_code=404, detail="Alert not found")
    return record


# ============================================
# Endpoints
# ============================================

@router.get("", response_model=List[Alert])
def get_all_alerts(
    severity: Optional[AlertSeverity] = None,
    type: Optional[AlertType] = None,
    db: Session = Depends(get_db),
):
    """Get active alerts, most severe first"""
    query = active_alerts(db)
    if severity:
        query = query.filter(TrafficAlertRecord.severity == severity.value)
    if type:
        query = query.filter(TrafficAlertRecord.type == type.value)
    return sort_by_severity(query.all())


@router.get("/area", response_model=List[Alert])
def get_alerts_by_area(
    bounds: AreaBounds = Depends(bounding_box),
    db: Session = Depends(get_db),
):
    """Get active alerts inside the inclusive bounding box"""
    rows = active_alerts(db).filter(
        TrafficAlertRecord.lat >= bounds.south,
        TrafficAlertRecord.lat <= bounds.north,
        TrafficAlertRecord.lng >= bounds.west,
        TrafficAlertRecord.lng <= bounds.east,
    ).all()
    return sort_by_severity(rows)


@router.get("/proximity", response_model=List[Alert])
def get_alerts_by_proximity(
    lat: float = Query(..., ge=-90, le=90),
    lng: float = Query(..., ge=-180, le=180),
    radius: float = Query(5000, gt=0, description="Radius in metres"),
    db: Session = Depends(get_db),
):
    """Get active alerts within `radius` metres of a point, nearest first"""
    nearby = []
    for record in active_alerts(db).all():
        distance = haversine_m(lat, lng, record.lat, record.lng)
        if distance <= radius:
            nearby.append((distance, record))
    nearby.sort(key=lambda item: item[0])
    return [record_to_alert(record) for _, record in nearby]


@router.get("/statistics")
def get_alert_statistics(db: Session = Depends(get_db)) -> Dict[str, object]:
    """Active alert counts by severity and by type"""
    by_severity = {s.value: 0 for s in AlertSeverity}
    by_type = {t.value: 0 for t in AlertType}

    rows = active_alerts(db).all()
    for record in rows:
        by_severity[record.severity] = by_severity.get(record.severity, 0) + 1
        by_type[record.type] = by_type.get(record.type, 0) + 1

    return {
        "totalActive": len(rows),
        "bySeverity": by_severity,
        "byType": by_type,
        "timestamp": time.time(),
    }


@router.post("", response_model=Alert, status_code=201)
def create_alert(request: AlertCreateRequest, db: Session = Depends(get_db)):
    """Create an alert"""
    record = TrafficAlertRecord(
        id=f"alert-{uuid.uuid4().hex[:12]}",
        type=request.type.value,
        lat=request.location.lat,
        lng=request.location.lng,
        description=request.description,
        start_time=request.startTime if request.startTime is not None else time.time(),
        end_time=request.endTime,
        severity=request.severity.value,
        affected_roads_json=json.dumps(request.affectedRoads),
        impact_radius=request.impactRadius,
        source=request.source.value if request.source else None,
    )
    db.add(record)
    db.commit()
    db.refresh(record)
    return record_to_alert(record)


@router.put("/{alert_id}", response_model=Alert)
def update_alert(alert_id: str, request: AlertUpdateRequest, db: Session = Depends(get_db)):
    """Update fields of an alert"""
    record = get_alert_or_404(db, alert_id)
    changes = request.model_dump(exclude_unset=True)

    if request.type is not None:
        record.type = request.type.value
    if request.location is not None:
        record.lat = request.location.lat
        record.lng = request.location.lng
    if request.description is not None:
        record.description = request.description
    if request.severity is not None:
        record.severity = request.severity.value
    if "endTime" in changes:
        record.end_time = request.endTime
    if "affectedRoads" in changes:
        record.affected_roads_json = json.dumps(request.affectedRoads or [])
    if "impactRadius" in changes:
        record.impact_radius = request.impactRadius
    if "source" in changes:
        record.source = request.source.value if request.source else None

    db.commit()
    db.refresh(record)
    return record_to_alert(record)


@router.patch("/{alert_id}/close", response_model=Alert)
def close_alert(alert_id: str, db: Session = Depends(get_db)):
    """Close an alert by setting endTime to now"""
    record = get_alert_or_404(db, alert_id)
    record.end_time = time.time()
    db.commit()
    db.refresh(record)
    return record_to_alert(record)
