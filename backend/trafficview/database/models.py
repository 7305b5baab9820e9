"""
SQLAlchemy ORM Models

Tables for the Traffic View backend:
- Traffic points (current readings along roads)
- Traffic metrics (sensor aggregates per road segment)
- Traffic alerts (incidents, closures, hazards)
"""

import json
import time

from sqlalchemy import Column, Integer, String, Float, Text, Index

from .database import Base


class TrafficPointRecord(Base):
    """
    Traffic reading at a location

    Broadcast to dashboards as TrafficPointSnapshot.
    """
    __tablename__ = "traffic_points"

    id = Column(String, primary_key=True)
    lat = Column(Float, nullable=False)
    lng = Column(Float, nullable=False)
    status = Column(String, nullable=False)  # low, medium, high, severe
    speed_kmph = Column(Float, nullable=False)
    timestamp = Column(Float, nullable=False, default=time.time, index=True)
    road_name = Column(String, nullable=False)

    __table_args__ = (
        Index('idx_point_lat_lng', 'lat', 'lng'),
    )


class TrafficMetricsRecord(Base):
    """
    Sensor metrics for a road segment

    Congestion level is stored as a 0-1 ratio.
    """
    __tablename__ = "traffic_metrics"

    id = Column(Integer, primary_key=True, autoincrement=True)
    timestamp = Column(Float, nullable=False, default=time.time, index=True)
    lat = Column(Float, nullable=False)
    lng = Column(Float, nullable=False)
    road_segment_id = Column(String, index=True)

    average_speed = Column(Float, nullable=False)       # km/h
    vehicle_count = Column(Integer, nullable=False)
    congestion_level = Column(Float, nullable=False)    # 0-1
    traffic_density = Column(Float, nullable=False)     # vehicles per km
    average_wait_time = Column(Float)                   # seconds

    sensors_json = Column(Text)  # JSON: [{"id", "type", "status"}]

    __table_args__ = (
        Index('idx_metrics_segment_time', 'road_segment_id', 'timestamp'),
    )

    @property
    def sensor_ids(self) -> list:
        if not self.sensors_json:
            return []
        return [s.get("id") for s in json.loads(self.sensors_json) if s.get("id")]


class TrafficAlertRecord(Base):
    """
    Traffic alert

    Active while end_time is NULL or in the future.
    """
    __tablename__ = "traffic_alerts"

    id = Column(String, primary_key=True)
    type = Column(String, nullable=False)
    lat = Column(Float, nullable=False)
    lng = Column(Float, nullable=False)
    description = Column(Text, nullable=False)
    start_time = Column(Float, nullable=False, default=time.time)
    end_time = Column(Float, nullable=True)
    severity = Column(String, nullable=False)  # critical, major, minor
    affected_roads_json = Column(Text)  # JSON: ["road name", ...]
    impact_radius = Column(Float)  # metres
    source = Column(String)

    __table_args__ = (
        Index('idx_alert_active', 'end_time', 'start_time', 'severity'),
    )
