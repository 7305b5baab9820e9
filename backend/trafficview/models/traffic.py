"""
Traffic Data Models

Read-only projections sent to clients (traffic points, metrics) and the
alert model consumed by the REST layer. Field names are camelCase to match
the dashboard's wire format.
"""

import time
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class TrafficStatus(str, Enum):
    """Traffic status, ordered low < medium < high < severe"""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    SEVERE = "severe"

    @property
    def rank(self) -> int:
        return _STATUS_ORDER.index(self)

    @property
    def congestion_weight(self) -> float:
        """Weight used for status-weighted congestion (0-1)"""
        return (self.rank + 1) / len(_STATUS_ORDER)

    def __lt__(self, other):
        if not isinstance(other, TrafficStatus):
            return NotImplemented
        return self.rank < other.rank


_STATUS_ORDER = [
    TrafficStatus.LOW,
    TrafficStatus.MEDIUM,
    TrafficStatus.HIGH,
    TrafficStatus.SEVERE,
]


class Location(BaseModel):
    """GPS location"""
    lat: float
    lng: float


class TrafficPointSnapshot(BaseModel):
    """
    Point-in-time traffic reading

    Produced fresh on every store query; never mutated in place.
    """
    id: str
    location: Location
    status: TrafficStatus
    speedKmph: float = Field(ge=0)
    timestamp: float                      # Unix timestamp
    roadName: str

    model_config = {"frozen": True}


class TrafficPointCreate(BaseModel):
    """Request body for adding a traffic point"""
    location: Location
    status: TrafficStatus
    speedKmph: float = Field(ge=0)
    roadName: str = Field(min_length=1)
    timestamp: Optional[float] = None


class MetricsSnapshot(BaseModel):
    """
    System-wide aggregate metrics

    Congestion is a 0-1 ratio.
    """
    avgSpeed: float = 0.0                 # km/h
    totalVehicles: int = 0
    avgVehicles: float = 0.0
    avgCongestion: float = 0.0            # 0-1
    sensorCount: int = 0
    lastUpdate: float = Field(default_factory=time.time)

    model_config = {"frozen": True}

    @classmethod
    def empty(cls) -> "MetricsSnapshot":
        """Zero-valued metrics for an empty store"""
        return cls()


class GlobalSnapshot(BaseModel):
    """Recent points plus system metrics"""
    points: List[TrafficPointSnapshot] = Field(default_factory=list)
    metrics: MetricsSnapshot = Field(default_factory=MetricsSnapshot.empty)

    model_config = {"frozen": True}


class AlertType(str, Enum):
    """Kinds of traffic alert"""
    ACCIDENT = "accident"
    CONSTRUCTION = "construction"
    EVENT = "event"
    WEATHER_HAZARD = "weatherHazard"
    ROAD_CLOSURE = "roadClosure"
    CONGESTION = "congestion"
    EMERGENCY = "emergency"
    SYSTEM_ALERT = "systemAlert"


class AlertSeverity(str, Enum):
    """Alert severity, critical > major > minor"""
    CRITICAL = "critical"
    MAJOR = "major"
    MINOR = "minor"


class AlertSource(str, Enum):
    """Where an alert came from"""
    SENSOR = "sensor"
    USER = "user"
    AUTHORITY = "authority"
    PREDICTION = "prediction"
    EMERGENCY = "emergency"


class Alert(BaseModel):
    """Traffic alert"""
    id: str
    type: AlertType
    location: Location
    description: str
    severity: AlertSeverity
    startTime: float
    endTime: Optional[float] = None
    affectedRoads: List[str] = Field(default_factory=list)
    impactRadius: Optional[float] = None  # metres
    source: Optional[AlertSource] = None

    def is_active(self, now: Optional[float] = None) -> bool:
        """Active while endTime is absent or in the future"""
        now = time.time() if now is None else now
        return self.endTime is None or self.endTime > now
