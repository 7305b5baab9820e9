"""
REST API Tests

Runs the FastAPI app against an in-memory SQLite database. The
lifespan is not entered, so no broadcast timer runs.
"""

import time

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from trafficview.database.database import get_db, init_db, make_engine
from trafficview.main import app


@pytest.fixture
def client():
    engine = make_engine("sqlite:///:memory:")
    init_db(engine)
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    def override_get_db():
        db = TestingSession()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()
    engine.dispose()


def add_point(client, lat, lng, status="medium", speed=30.0, timestamp=None):
    body = {
        "location": {"lat": lat, "lng": lng},
        "status": status,
        "speedKmph": speed,
        "roadName": "Bannerghatta Road",
    }
    if timestamp is not None:
        body["timestamp"] = timestamp
    response = client.post("/api/traffic/points", json=body)
    assert response.status_code == 201
    return response.json()


def add_metrics(client, segment="seg-1", congestion=0.5, speed=40.0, vehicles=10, timestamp=None):
    body = {
        "location": {"lat": 12.95, "lng": 77.6},
        "roadSegmentId": segment,
        "metrics": {
            "averageSpeed": speed,
            "vehicleCount": vehicles,
            "congestionLevel": congestion,
            "trafficDensity": 12.0,
        },
        "sensors": [{"id": f"{segment}-cam", "type": "camera"}],
    }
    if timestamp is not None:
        body["timestamp"] = timestamp
    response = client.post("/api/metrics", json=body)
    assert response.status_code == 201
    return response.json()


def add_alert(client, severity="minor", lat=12.95, lng=77.6, **extra):
    body = {
        "type": "accident",
        "location": {"lat": lat, "lng": lng},
        "description": "Two-wheeler collision",
        "severity": severity,
        **extra,
    }
    response = client.post("/api/alerts", json=body)
    assert response.status_code == 201
    return response.json()


# ============================================
# Root
# ============================================

class TestRoot:
    """Root and health endpoints"""

    def test_root(self, client):
        data = client.get("/").json()
        assert data["name"] == "Traffic View"
        assert data["status"] == "operational"

    def test_health_without_realtime_service(self, client):
        data = client.get("/health").json()
        assert data["status"] == "healthy"
        assert data["websocket"]["connected_clients"] == 0
        assert data["websocket"]["broadcasting"] is False


# ============================================
# Traffic
# ============================================

class TestTrafficRoutes:
    """Traffic point endpoints"""

    def test_points_newest_first(self, client):
        now = time.time()
        old = add_point(client, 12.95, 77.6, timestamp=now - 60)
        new = add_point(client, 12.96, 77.6, timestamp=now)

        data = client.get("/api/traffic/points").json()
        assert [p["id"] for p in data] == [new["id"], old["id"]]

    def test_points_limit(self, client):
        for i in range(3):
            add_point(client, 12.95, 77.6, timestamp=time.time() - i)
        assert len(client.get("/api/traffic/points?limit=2").json()) == 2

    def test_invalid_point_rejected(self, client):
        response = client.post("/api/traffic/points", json={
            "location": {"lat": 12.95, "lng": 77.6},
            "status": "gridlock",
            "speedKmph": 10,
            "roadName": "X",
        })
        assert response.status_code == 422

    def test_points_by_area(self, client):
        inside = add_point(client, 12.95, 77.6)
        add_point(client, 28.6, 77.2)

        data = client.get(
            "/api/traffic/points/area",
            params={"north": 13.0, "south": 12.9, "east": 77.7, "west": 77.5},
        ).json()
        assert [p["id"] for p in data] == [inside["id"]]

    def test_area_missing_coordinates(self, client):
        response = client.get("/api/traffic/points/area", params={"north": 13.0})
        assert response.status_code == 400
        assert response.json()["detail"] == "Missing coordinates for bounding box"

    def test_area_inverted_box(self, client):
        response = client.get(
            "/api/traffic/points/area",
            params={"north": 12.0, "south": 13.0, "east": 77.7, "west": 77.5},
        )
        assert response.status_code == 400

    def test_traffic_metrics(self, client):
        add_point(client, 12.95, 77.6, status="low", speed=60.0)
        add_point(client, 12.95, 77.6, status="severe", speed=10.0)

        data = client.get("/api/traffic/metrics").json()
        assert data["averageSpeed"] == 35.0
        assert data["vehicleCount"] == 2
        assert data["congestionLevel"] == 0.625

    def test_traffic_metrics_empty(self, client):
        data = client.get("/api/traffic/metrics").json()
        assert data["averageSpeed"] == 0
        assert data["congestionLevel"] == 0


# ============================================
# Metrics
# ============================================

class TestMetricsRoutes:
    """Metrics endpoints"""

    def test_record_metrics(self, client):
        data = add_metrics(client)
        assert data["id"] >= 1
        assert data["metrics"]["congestionLevel"] == 0.5
        assert data["sensors"][0]["status"] == "active"

    def test_congestion_out_of_range_rejected(self, client):
        response = client.post("/api/metrics", json={
            "location": {"lat": 12.95, "lng": 77.6},
            "metrics": {"averageSpeed": 10, "vehicleCount": 1, "congestionLevel": 5, "trafficDensity": 1},
        })
        assert response.status_code == 422

    def test_area_latest_per_segment(self, client):
        now = time.time()
        add_metrics(client, "seg-1", congestion=0.2, timestamp=now - 120)
        add_metrics(client, "seg-1", congestion=0.6, timestamp=now)
        add_metrics(client, "seg-2", congestion=0.4, timestamp=now)

        data = client.get(
            "/api/metrics/area",
            params={"north": 13.0, "south": 12.9, "east": 77.7, "west": 77.5},
        ).json()
        by_segment = {d["roadSegmentId"]: d["metrics"]["congestionLevel"] for d in data}
        assert by_segment == {"seg-1": 0.6, "seg-2": 0.4}

    def test_historical_requires_segment(self, client):
        assert client.get("/api/metrics/historical").status_code == 400

    def test_historical_invalid_interval(self, client):
        response = client.get("/api/metrics/historical", params={"roadSegmentId": "seg-1", "interval": "week"})
        assert response.status_code == 400

    def test_historical_invalid_duration(self, client):
        response = client.get("/api/metrics/historical", params={"roadSegmentId": "seg-1", "duration": "forever"})
        assert response.status_code == 400

    def test_historical_buckets(self, client):
        now = time.time()
        add_metrics(client, "seg-1", speed=40.0, timestamp=now - 60)
        add_metrics(client, "seg-1", speed=20.0, timestamp=now - 60)

        data = client.get(
            "/api/metrics/historical",
            params={"roadSegmentId": "seg-1", "interval": "day", "duration": "1d"},
        ).json()
        assert len(data) == 1
        assert data[0]["averageSpeed"] == 30.0
        assert data[0]["samples"] == 2

    def test_overview(self, client):
        add_point(client, 12.95, 77.6)
        add_metrics(client, "seg-hot", congestion=0.9)
        add_metrics(client, "seg-calm", congestion=0.1)

        data = client.get("/api/metrics/overview").json()
        assert data["activePoints"] == 1
        assert data["systemMetrics"]["sensorCount"] == 2
        assert [h["roadSegmentId"] for h in data["congestionHotspots"]] == ["seg-hot"]

    def test_overview_empty(self, client):
        data = client.get("/api/metrics/overview").json()
        assert data["systemMetrics"]["avgSpeed"] == 0
        assert data["congestionHotspots"] == []

    def test_predict(self, client):
        add_metrics(client, "seg-1", congestion=0.4, speed=50.0)
        data = client.get("/api/metrics/predict", params={"roadSegmentId": "seg-1"}).json()
        assert data["roadSegmentId"] == "seg-1"
        assert len(data["predictions"]) == 3

    def test_predict_unknown_segment(self, client):
        response = client.get("/api/metrics/predict", params={"roadSegmentId": "nope"})
        assert response.status_code == 404

    def test_predict_requires_segment(self, client):
        assert client.get("/api/metrics/predict").status_code == 400


# ============================================
# Alerts
# ============================================

class TestAlertRoutes:
    """Alert endpoints"""

    def test_create_and_list_by_severity(self, client):
        minor = add_alert(client, "minor")
        critical = add_alert(client, "critical")
        major = add_alert(client, "major")

        data = client.get("/api/alerts").json()
        assert [a["id"] for a in data] == [critical["id"], major["id"], minor["id"]]
        assert critical["id"].startswith("alert-")

    def test_filter_by_severity(self, client):
        add_alert(client, "minor")
        critical = add_alert(client, "critical")
        data = client.get("/api/alerts", params={"severity": "critical"}).json()
        assert [a["id"] for a in data] == [critical["id"]]

    def test_expired_alert_hidden(self, client):
        add_alert(client, endTime=time.time() - 10)
        assert client.get("/api/alerts").json() == []

    def test_alerts_by_area(self, client):
        inside = add_alert(client)
        add_alert(client, lat=28.6, lng=77.2)
        data = client.get(
            "/api/alerts/area",
            params={"north": 13.0, "south": 12.9, "east": 77.7, "west": 77.5},
        ).json()
        assert [a["id"] for a in data] == [inside["id"]]

    def test_alerts_by_proximity(self, client):
        near = add_alert(client, lat=12.951, lng=77.601)
        nearer = add_alert(client, lat=12.9501, lng=77.6001)
        add_alert(client, lat=13.5, lng=78.0)

        data = client.get("/api/alerts/proximity", params={"lat": 12.95, "lng": 77.6, "radius": 1000}).json()
        assert [a["id"] for a in data] == [nearer["id"], near["id"]]

    def test_statistics(self, client):
        add_alert(client, "minor")
        add_alert(client, "critical")
        data = client.get("/api/alerts/statistics").json()
        assert data["totalActive"] == 2
        assert data["bySeverity"]["critical"] == 1
        assert data["byType"]["accident"] == 2

    def test_update_alert(self, client):
        alert = add_alert(client)
        response = client.put(f"/api/alerts/{alert['id']}", json={
            "severity": "critical",
            "affectedRoads": ["Hosur Road"],
        })
        assert response.status_code == 200
        data = response.json()
        assert data["severity"] == "critical"
        assert data["affectedRoads"] == ["Hosur Road"]
        assert data["description"] == alert["description"]

    def test_close_alert(self, client):
        alert = add_alert(client)
        response = client.patch(f"/api/alerts/{alert['id']}/close")
        assert response.status_code == 200
        assert response.json()["endTime"] is not None
        assert client.get("/api/alerts").json() == []

    def test_unknown_alert(self, client):
        assert client.put("/api/alerts/missing", json={}).status_code == 404
        assert client.patch("/api/alerts/missing/close").status_code == 404
