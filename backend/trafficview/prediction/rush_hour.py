"""
Rush-Hour Forecast

Short-horizon congestion forecast for a road segment based on the
time of day and day of week. Congestion is a 0-1 ratio.

Multipliers:
- Weekday 07:00-10:00: 1.5
- Weekday 16:00-19:00: 1.7
- Weekend 12:00-18:00: 1.3
- 22:00-05:00: 0.6
- Otherwise: 1.0
"""

from dataclasses import dataclass, field, asdict
from datetime import datetime
from typing import List, Optional

MIN_PREDICTED_SPEED = 5.0  # km/h

# (timeframe label, minutes ahead, horizon factor, confidence)
HORIZONS = [
    ("15min", 15, 0.9, 0.85),
    ("30min", 30, 1.0, 0.75),
    ("60min", 60, 1.1, 0.65),
]


@dataclass
class ForecastPoint:
    """Forecast for one horizon"""
    timeframe: str
    minutesAhead: int
    averageSpeed: float
    congestionLevel: float
    confidence: float


@dataclass
class SegmentForecast:
    """Forecast for a road segment"""
    roadSegmentId: str
    multiplier: float
    currentMetrics: dict
    predictions: List[ForecastPoint] = field(default_factory=list)
    timestamp: float = 0.0

    def to_dict(self) -> dict:
        return asdict(self)


def congestion_multiplier(moment: datetime) -> float:
    """Congestion multiplier for a local date and time"""
    hour = moment.hour
    weekday = moment.weekday() < 5  # Monday=0 .. Friday=4

    if weekday and 7 <= hour < 10:
        return 1.5
    if weekday and 16 <= hour < 19:
        return 1.7
    if not weekday and 12 <= hour < 18:
        return 1.3
    if hour >= 22 or hour < 5:
        return 0.6
    return 1.0


def forecast_segment(
    road_segment_id: str,
    average_speed: float,
    congestion_level: float,
    vehicle_count: int,
    moment: Optional[datetime] = None,
) -> SegmentForecast:
    """
    Forecast speed and congestion 15/30/60 minutes ahead

    Args:
        road_segment_id: Segment being forecast
        average_speed: Current average speed (km/h)
        congestion_level: Current congestion (0-1)
        vehicle_count: Current vehicle count
        moment: Local time to forecast from (default: now)
    """
    moment = moment or datetime.now()
    multiplier = congestion_multiplier(moment)

    predictions = []
    for label, minutes, factor, confidence in HORIZONS:
        scaled = multiplier * factor
        predictions.append(ForecastPoint(
            timeframe=label,
            minutesAhead=minutes,
            averageSpeed=round(max(MIN_PREDICTED_SPEED, average_speed / scaled), 2),
            congestionLevel=round(min(1.0, congestion_level * scaled), 4),
            confidence=confidence,
        ))

    return SegmentForecast(
        roadSegmentId=road_segment_id,
        multiplier=multiplier,
        currentMetrics={
            "averageSpeed": average_speed,
            "congestionLevel": congestion_level,
            "vehicleCount": vehicle_count,
        },
        predictions=predictions,
        timestamp=moment.timestamp(),
    )
