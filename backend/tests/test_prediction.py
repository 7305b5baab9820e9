"""
Rush-Hour Forecast Tests
"""

from datetime import datetime

import pytest

from trafficview.prediction import congestion_multiplier, forecast_segment


class TestCongestionMultiplier:
    """Time-of-day multipliers"""

    @pytest.mark.parametrize("moment,expected", [
        (datetime(2024, 1, 1, 8, 0), 1.5),    # Monday morning rush
        (datetime(2024, 1, 3, 17, 30), 1.7),  # Wednesday evening rush
        (datetime(2024, 1, 6, 13, 0), 1.3),   # Saturday afternoon
        (datetime(2024, 1, 3, 23, 0), 0.6),   # late night
        (datetime(2024, 1, 7, 3, 0), 0.6),    # Sunday early morning
        (datetime(2024, 1, 2, 12, 0), 1.0),   # weekday midday
        (datetime(2024, 1, 6, 8, 0), 1.0),    # weekend morning
    ])
    def test_multiplier(self, moment, expected):
        assert congestion_multiplier(moment) == expected


class TestForecastSegment:
    """Segment forecasts"""

    def test_rush_hour_forecast(self):
        forecast = forecast_segment("seg-1", 60.0, 0.5, 40, moment=datetime(2024, 1, 1, 8, 0))

        assert forecast.multiplier == 1.5
        assert [p.timeframe for p in forecast.predictions] == ["15min", "30min", "60min"]
        first = forecast.predictions[0]
        assert first.averageSpeed == pytest.approx(44.44, abs=0.01)
        assert first.congestionLevel == pytest.approx(0.675)
        assert first.confidence == 0.85

    def test_congestion_capped_at_one(self):
        forecast = forecast_segment("seg-1", 60.0, 0.9, 40, moment=datetime(2024, 1, 3, 17, 0))
        assert all(p.congestionLevel <= 1.0 for p in forecast.predictions)

    def test_speed_floor(self):
        forecast = forecast_segment("seg-1", 2.0, 0.5, 40, moment=datetime(2024, 1, 3, 17, 0))
        assert all(p.averageSpeed >= 5.0 for p in forecast.predictions)

    def test_to_dict(self):
        data = forecast_segment("seg-9", 30.0, 0.2, 5, moment=datetime(2024, 1, 2, 12, 0)).to_dict()
        assert data["roadSegmentId"] == "seg-9"
        assert data["currentMetrics"] == {"averageSpeed": 30.0, "congestionLevel": 0.2, "vehicleCount": 5}
        assert len(data["predictions"]) == 3
