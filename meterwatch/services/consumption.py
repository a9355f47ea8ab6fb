"""
Daily consumption extrapolation and alert classification.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from meterwatch.domain import AlertLevel, Industry, Reading

MS_PER_DAY = 86_400_000

CRITICAL_PERCENT = 90.0
WARNING_PERCENT = 70.0


@dataclass(frozen=True)
class ConsumptionReport:
    industry_id: str
    rate_per_day: float
    percent: float
    alert_level: AlertLevel
    last_reading: Optional[Reading] = None

    def to_dict(self) -> dict:
        return {
            "industryId": self.industry_id,
            "ratePerDay": self.rate_per_day,
            "percent": self.percent,
            "alertLevel": self.alert_level.value,
            "lastReading": self.last_reading.to_dict() if self.last_reading else None,
        }


def daily_rate(readings: Iterable[Reading]) -> float:
    """
    Extrapolate usage per day from the two most recent readings.

    Returns 0 when there are fewer than two readings or when the elapsed
    time between them is not positive. A counter rollback yields a
    negative rate here; callers clamp it.
    """
    ordered = sorted(readings, key=lambda r: r.timestamp, reverse=True)
    if len(ordered) < 2:
        return 0.0

    current, previous = ordered[0], ordered[1]
    elapsed_ms = current.timestamp - previous.timestamp
    if elapsed_ms <= 0:
        return 0.0

    elapsed_days = elapsed_ms / MS_PER_DAY
    return (current.value - previous.value) / elapsed_days


def usage_percent(rate_per_day: float, allowed_daily_consumption: float) -> float:
    """Share of the allowance consumed, always within [0, 100]."""
    rate = max(rate_per_day, 0.0)
    if allowed_daily_consumption <= 0:
        # Any consumption exceeds a zero allowance.
        return 100.0 if rate > 0 else 0.0
    percent = rate / allowed_daily_consumption * 100
    return min(max(percent, 0.0), 100.0)


def classify(percent: float) -> AlertLevel:
    if percent >= CRITICAL_PERCENT:
        return AlertLevel.CRITICAL
    if percent >= WARNING_PERCENT:
        return AlertLevel.WARNING
    return AlertLevel.NORMAL


def analyze(industry: Industry, readings: Iterable[Reading]) -> ConsumptionReport:
    """
    Compute rate and alert level for one industry from its reading history.

    ``readings`` may be in any order and may include readings of other
    industries; only those matching ``industry.id`` are used.
    """
    own = sorted(
        (r for r in readings if r.industry_id == industry.id),
        key=lambda r: r.timestamp,
        reverse=True,
    )
    rate = max(daily_rate(own), 0.0)
    percent = usage_percent(rate, industry.allowed_daily_consumption)
    return ConsumptionReport(
        industry_id=industry.id,
        rate_per_day=rate,
        percent=percent,
        alert_level=classify(percent),
        last_reading=own[0] if own else None,
    )


def analyze_all(industries: Iterable[Industry], readings: Iterable[Reading]) -> Dict[str, ConsumptionReport]:
    """Analyze every industry in one pass over the readings."""
    by_industry: Dict[str, List[Reading]] = {}
    for reading in readings:
        by_industry.setdefault(reading.industry_id, []).append(reading)
    return {
        industry.id: analyze(industry, by_industry.get(industry.id, []))
        for industry in industries
    }
