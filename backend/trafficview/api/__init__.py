"""
API Routes Package

This module exports all FastAPI routers for the Traffic View backend.
"""

from .traffic_routes import router as traffic_router
from .metrics_routes import router as metrics_router
from .alert_routes import router as alert_router

__all__ = [
    "traffic_router",
    "metrics_router",
    "alert_router",
]
