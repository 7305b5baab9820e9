"""
Pydantic Models Package

Data models for the Traffic View backend.
Import from here for convenience.
"""

# Bounding box and subscription scope
from .subscription import (
    AreaBounds,
    parse_area_bounds,
    Subscription,
    NoSubscription,
    GlobalSubscription,
    AreaSubscription,
    NO_SUBSCRIPTION,
    GLOBAL_SUBSCRIPTION,
)

# Traffic snapshot models
from .traffic import (
    TrafficStatus,
    Location,
    TrafficPointSnapshot,
    TrafficPointCreate,
    MetricsSnapshot,
    GlobalSnapshot,
    AlertType,
    AlertSeverity,
    AlertSource,
    Alert,
)

__all__ = [
    "AreaBounds",
    "parse_area_bounds",
    "Subscription",
    "NoSubscription",
    "GlobalSubscription",
    "AreaSubscription",
    "NO_SUBSCRIPTION",
    "GLOBAL_SUBSCRIPTION",
    "TrafficStatus",
    "Location",
    "TrafficPointSnapshot",
    "TrafficPointCreate",
    "MetricsSnapshot",
    "GlobalSnapshot",
    "AlertType",
    "AlertSeverity",
    "AlertSource",
    "Alert",
]
