"""
Traffic View Real-Time Backend
Backend Application Package

Persists traffic points, alerts and metrics, and pushes live traffic
snapshots to connected dashboards over Socket.IO.
"""

__version__ = "1.0.0"
