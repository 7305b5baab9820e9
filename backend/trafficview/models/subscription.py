"""
Subscription Scope Models

A connection's scope is one of three variants:
- NoSubscription: nothing recorded, still receives global pushes
- GlobalSubscription: all data
- AreaSubscription: points inside a bounding box

Bounding boxes arriving from clients are validated here, at the boundary,
and never passed on as raw dictionaries.
"""

import math
from dataclasses import dataclass
from typing import Any, Dict, Union

from pydantic import BaseModel, ValidationError, field_validator, model_validator

from trafficview.exceptions import InvalidAreaError


BOUND_FIELDS = ("north", "south", "east", "west")


class AreaBounds(BaseModel):
    """
    Geographic bounding box in degrees

    Bounds are inclusive: a point exactly on an edge is inside.
    """
    north: float                          # Maximum latitude
    south: float                          # Minimum latitude
    east: float                           # Maximum longitude
    west: float                           # Minimum longitude

    model_config = {
        "frozen": True,
        "json_schema_extra": {
            "example": {
                "north": 13.0,
                "south": 12.9,
                "east": 77.7,
                "west": 77.5
            }
        }
    }

    @field_validator("north", "south", "east", "west", mode="before")
    @classmethod
    def _must_be_number(cls, value: Any) -> float:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError("must be a number")
        if not math.isfinite(value):
            raise ValueError("must be a finite number")
        return float(value)

    @model_validator(mode="after")
    def _check_ordering(self) -> "AreaBounds":
        if self.south > self.north:
            raise ValueError(
                f"south ({self.south}) must not be greater than north ({self.north})"
            )
        if self.west > self.east:
            raise ValueError(
                f"west ({self.west}) must not be greater than east ({self.east})"
            )
        return self

    def contains(self, lat: float, lng: float) -> bool:
        """Check if a point is within bounds (inclusive)"""
        return (
            self.south <= lat <= self.north and
            self.west <= lng <= self.east
        )


def _describe(error: ValidationError) -> str:
    parts = []
    for item in error.errors():
        field = ".".join(str(p) for p in item.get("loc", ()))
        message = item.get("msg", "invalid value").removeprefix("Value error, ")
        parts.append(f"{field}: {message}" if field else message)
    return "; ".join(parts)


def parse_area_bounds(payload: Any) -> AreaBounds:
    """
    Validate a client-supplied bounding box

    Args:
        payload: {north, south, east, west} as sent by the client

    Returns:
        Validated AreaBounds

    Raises:
        InvalidAreaError: payload missing fields, non-numeric or inconsistent
    """
    if not isinstance(payload, dict):
        raise InvalidAreaError(
            "Area must be an object with north, south, east and west"
        )

    missing = [name for name in BOUND_FIELDS if payload.get(name) is None]
    if missing:
        raise InvalidAreaError(f"Missing bounds: {', '.join(missing)}")

    try:
        return AreaBounds(**{name: payload[name] for name in BOUND_FIELDS})
    except ValidationError as e:
        raise InvalidAreaError(f"Invalid area: {_describe(e)}") from e


@dataclass(frozen=True)
class NoSubscription:
    """No scope recorded"""
    kind: str = "none"


@dataclass(frozen=True)
class GlobalSubscription:
    """All data"""
    kind: str = "global"


@dataclass(frozen=True)
class AreaSubscription:
    """Points inside a bounding box"""
    bounds: AreaBounds
    kind: str = "area"

    def to_dict(self) -> Dict[str, float]:
        return self.bounds.model_dump()


Subscription = Union[NoSubscription, GlobalSubscription, AreaSubscription]

NO_SUBSCRIPTION = NoSubscription()
GLOBAL_SUBSCRIPTION = GlobalSubscription()
