"""
Tests for the daily-rate extrapolation and alert classification.
"""
import pytest

from meterwatch.domain import AlertLevel
from meterwatch.services.consumption import analyze, analyze_all, classify, daily_rate, usage_percent
from tests.factories import DAY_MS, T0, make_industry, make_reading


class TestDailyRate:
    def test_no_readings(self):
        assert daily_rate([]) == 0

    def test_single_reading(self):
        assert daily_rate([make_reading(value=500)]) == 0

    def test_equal_timestamps(self):
        readings = [
            make_reading('a', timestamp=T0, value=100),
            make_reading('b', timestamp=T0, value=900),
        ]
        assert daily_rate(readings) == 0

    def test_uses_two_most_recent_in_any_order(self):
        readings = [
            make_reading('old', timestamp=T0, value=0),
            make_reading('newest', timestamp=T0 + 3 * DAY_MS, value=1600),
            make_reading('middle', timestamp=T0 + 2 * DAY_MS, value=1000),
        ]
        assert daily_rate(readings) == pytest.approx(600)

    def test_rollback_is_negative_before_clamping(self):
        readings = [
            make_reading('a', timestamp=T0, value=1000),
            make_reading('b', timestamp=T0 + DAY_MS, value=400),
        ]
        assert daily_rate(readings) == pytest.approx(-600)


class TestClassify:
    @pytest.mark.parametrize("percent, level", [
        (0, AlertLevel.NORMAL),
        (69.9, AlertLevel.NORMAL),
        (70, AlertLevel.WARNING),
        (89.9, AlertLevel.WARNING),
        (90, AlertLevel.CRITICAL),
        (100, AlertLevel.CRITICAL),
    ])
    def test_boundaries(self, percent, level):
        assert classify(percent) == level

    def test_monotonic(self):
        order = [AlertLevel.NORMAL, AlertLevel.WARNING, AlertLevel.CRITICAL]
        levels = [order.index(classify(p / 10)) for p in range(0, 1001)]
        assert levels == sorted(levels)


class TestUsagePercent:
    @pytest.mark.parametrize("rate", [-1e9, -5, 0, 1, 999, 1e12])
    def test_always_within_bounds(self, rate):
        assert 0 <= usage_percent(rate, 1000) <= 100

    def test_zero_allowance(self):
        assert usage_percent(10, 0) == 100
        assert usage_percent(0, 0) == 0


class TestAnalyze:
    def test_two_day_extrapolation(self):
        industry = make_industry(allowed=1000)
        readings = [
            make_reading('a', timestamp=T0, value=1000),
            make_reading('b', timestamp=T0 + 2 * DAY_MS, value=2500),
        ]
        report = analyze(industry, readings)
        assert report.rate_per_day == pytest.approx(750)
        assert report.percent == pytest.approx(75)
        assert report.alert_level == AlertLevel.WARNING
        assert report.last_reading.id == 'b'

    def test_missing_history(self):
        report = analyze(make_industry(), [])
        assert report.rate_per_day == 0
        assert report.alert_level == AlertLevel.NORMAL
        assert report.last_reading is None

    def test_rollback_clamped_to_zero(self):
        industry = make_industry(allowed=1000)
        readings = [
            make_reading('a', timestamp=T0, value=5000),
            make_reading('b', timestamp=T0 + DAY_MS, value=10),
        ]
        report = analyze(industry, readings)
        assert report.rate_per_day == 0
        assert report.percent == 0
        assert report.alert_level == AlertLevel.NORMAL

    def test_over_allowance_is_capped(self):
        industry = make_industry(allowed=100)
        readings = [
            make_reading('a', timestamp=T0, value=0),
            make_reading('b', timestamp=T0 + DAY_MS, value=1000),
        ]
        report = analyze(industry, readings)
        assert report.rate_per_day == pytest.approx(1000)
        assert report.percent == 100
        assert report.alert_level == AlertLevel.CRITICAL

    def test_ignores_other_industries(self):
        industry = make_industry('IND-1')
        readings = [
            make_reading('a', industry_id='IND-1', timestamp=T0, value=0),
            make_reading('x', industry_id='IND-2', timestamp=T0 + DAY_MS, value=99999),
        ]
        assert analyze(industry, readings).rate_per_day == 0

    def test_analyze_all(self):
        industries = [make_industry('IND-1'), make_industry('IND-2', allowed=100)]
        readings = [
            make_reading('a', industry_id='IND-2', timestamp=T0, value=0),
            make_reading('b', industry_id='IND-2', timestamp=T0 + DAY_MS, value=95),
        ]
        reports = analyze_all(industries, readings)
        assert reports['IND-1'].alert_level == AlertLevel.NORMAL
        assert reports['IND-2'].alert_level == AlertLevel.CRITICAL
