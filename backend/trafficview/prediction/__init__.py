"""
Prediction Package

Calendar-based congestion forecasts for road segments.
"""

from .rush_hour import (
    ForecastPoint,
    SegmentForecast,
    congestion_multiplier,
    forecast_segment,
)

__all__ = [
    "ForecastPoint",
    "SegmentForecast",
    "congestion_multiplier",
    "forecast_segment",
]
