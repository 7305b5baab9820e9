"""
Shared Route Dependencies
"""

from typing import Optional

from fastapi import HTTPException, Query

from trafficview.exceptions import InvalidAreaError
from trafficview.models import AreaBounds, parse_area_bounds


def bounding_box(
    north: Optional[float] = Query(None, description="Maximum latitude"),
    south: Optional[float] = Query(None, description="Minimum latitude"),
    east: Optional[float] = Query(None, description="Maximum longitude"),
    west: Optional[float] = Query(None, description="Minimum longitude"),
) -> AreaBounds:
    """Bounding box from query parameters, validated like subscribe-area"""
    if None in (north, south, east, west):
        raise HTTPException(status_code=400, detail="Missing coordinates for bounding box")
    try:
        return parse_area_bounds(
            {"north": north, "south": south, "east": east, "west": west}
        )
    except InvalidAreaError as e:
        raise HTTPException(status_code=400, detail=str(e))
