"""
Time normalization and chart service tests.
"""

import time as time_module
from datetime import date, datetime, time, timedelta

import pytest

from bazichart.create_chart import (
    UNAVAILABLE_MESSAGE,
    ChartService,
    normalize_birth_time,
    parse_client_datetime,
)
from bazichart.errors import ExternalServiceUnavailable, ValidationError
from bazichart.timezones import TimezoneResolver


class TestParseClientDatetime:

    @pytest.mark.parametrize("value", [
        "1990-01-01T00:00:00.000Z",
        "1990-01-01T00:00",
        "1990-01-01T00:00:00+08:00",
        "1990-01-01T00:00:00-05:00",
    ])
    def test_reads_wall_clock(self, value):
        assert parse_client_datetime(value) == (date(1990, 1, 1), time(0, 0))

    def test_date_only_is_midnight(self):
        assert parse_client_datetime("1990-03-15") == (date(1990, 3, 15), time(0, 0))

    @pytest.mark.parametrize("value", ["", "   ", "yesterday", "1990-13-01T00:00", None])
    def test_rejects_garbage(self, value):
        with pytest.raises(ValueError):
            parse_client_datetime(value)


class TestNormalizeBirthTime:

    def test_wall_clock_is_kept(self):
        instant = normalize_birth_time(date(1990, 1, 1), time(0, 0), "Asia/Singapore")
        assert instant.isoformat() == "1990-01-01T00:00:00.000Z"
        assert instant.universal_time == datetime(1989, 12, 31, 16, 0)
        assert instant.utc_offset == timedelta(hours=8)
        assert not instant.dst_active

    def test_dst(self):
        instant = normalize_birth_time(date(1990, 7, 1), time(12, 0), "America/New_York")
        assert instant.dst_active
        assert instant.utc_offset == timedelta(hours=-4)
        assert instant.universal_time == datetime(1990, 7, 1, 16, 0)
        assert instant.wall_clock == datetime(1990, 7, 1, 12, 0)

    def test_unknown_zone_falls_back_to_utc(self):
        instant = normalize_birth_time(date(1990, 1, 1), time(8, 0), "Mars/Olympus_Mons")
        assert instant.timezone == "UTC"
        assert instant.universal_time == datetime(1990, 1, 1, 8, 0)

    def test_true_solar_time_is_opt_in(self):
        plain = normalize_birth_time(date(1990, 1, 1), time(12, 0), "Asia/Singapore",
                                     longitude=103.8198)
        assert plain.solar_time_correction_minutes == 0.0

    def test_true_solar_time_singapore(self):
        # Singapore sits ~16 degrees west of the UTC+8 meridian
        instant = normalize_birth_time(date(1990, 1, 1), time(12, 0), "Asia/Singapore",
                                       longitude=103.8198, true_solar_time=True)
        assert instant.solar_time_correction_minutes == pytest.approx(-64.7, abs=0.2)
        assert instant.wall_clock < datetime(1990, 1, 1, 11, 0)
        assert instant.universal_time == datetime(1990, 1, 1, 4, 0)


class TestChartService:

    def test_calculate(self, chart_service):
        chart = chart_service.calculate("1990-01-01T00:00:00.000Z", "Singapore", "male")
        assert chart.eight_characters == "己巳 丙子 丙寅 戊子"

    def test_same_wall_clock_same_chart_in_any_zone(self, chart_service):
        sg = chart_service.calculate("1990-01-01T00:00", "Singapore", "male")
        ny = chart_service.calculate("1990-01-01T00:00", "New York", "male")
        assert sg.day == ny.day
        assert sg.hour == ny.hour

    def test_bad_date_is_validation_error(self, chart_service):
        with pytest.raises(ValidationError):
            chart_service.calculate("not a date", "Singapore", "male")

    def test_out_of_range_is_validation_error(self, chart_service):
        with pytest.raises(ValidationError):
            chart_service.calculate("1850-01-01T00:00", "Singapore", "male")

    def test_calculation_failure(self, chart_service, monkeypatch):
        def broken(*args):
            raise RuntimeError("ephemeris files missing")

        monkeypatch.setattr("bazichart.create_chart.compute_chart", broken)
        with pytest.raises(ExternalServiceUnavailable) as exc:
            chart_service.calculate("1990-01-01T00:00", "Singapore", "male")
        assert exc.value.message == UNAVAILABLE_MESSAGE
        assert exc.value.status_code == 500

    def test_calculation_timeout(self, monkeypatch):
        def slow(*args):
            time_module.sleep(0.5)

        monkeypatch.setattr("bazichart.create_chart.compute_chart", slow)
        service = ChartService(TimezoneResolver(), timeout=0.05)
        try:
            with pytest.raises(ExternalServiceUnavailable):
                service.calculate("1990-01-01T00:00", "Singapore", "male")
        finally:
            service.close()
