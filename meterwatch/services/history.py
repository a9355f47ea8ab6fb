"""
Read-side views over a snapshot: labelled reading history and dashboard totals.
"""
from __future__ import annotations

from typing import Dict, List, Optional

from meterwatch.domain import AlertLevel, Industry, Reading, Snapshot, User
from meterwatch.services.access import can_view_all_readings, visible_industries
from meterwatch.services.consumption import analyze_all

UNKNOWN = "unknown"


def label_readings(readings: List[Reading], industries: List[Industry]) -> List[dict]:
    """
    Attach industry and meter names to readings.

    Readings whose industry or meter is missing from ``industries`` get the
    ``unknown`` placeholder instead of failing.
    """
    by_id: Dict[str, Industry] = {industry.id: industry for industry in industries}
    labelled = []
    for reading in readings:
        industry = by_id.get(reading.industry_id)
        meter = industry.meter(reading.meter_id) if industry else None
        entry = reading.to_dict()
        entry["industryName"] = industry.name if industry else UNKNOWN
        entry["meterName"] = meter.name if meter else UNKNOWN
        labelled.append(entry)
    return labelled


def readings_for_user(snapshot: Snapshot, user: Optional[User]) -> List[dict]:
    """
    Reading history visible to ``user``, newest first.

    Admins see every reading, dangling ones included. Other users see
    readings of their visible industries only.
    """
    if user is None:
        return []
    readings = sorted(snapshot.readings, key=lambda r: r.timestamp, reverse=True)
    if not can_view_all_readings(user):
        industries = visible_industries(user, snapshot.industries, snapshot.assignments)
        allowed = {industry.id for industry in industries}
        readings = [r for r in readings if r.industry_id in allowed]
    return label_readings(readings, snapshot.industries)


def dashboard(snapshot: Snapshot, user: Optional[User]) -> dict:
    industries = visible_industries(user, snapshot.industries, snapshot.assignments)
    reports = analyze_all(industries, snapshot.readings)

    alert_counts = {level.value: 0 for level in AlertLevel}
    items = []
    for industry in industries:
        report = reports[industry.id]
        alert_counts[report.alert_level.value] += 1
        item = industry.to_dict()
        item["consumption"] = report.to_dict()
        items.append(item)

    visible_ids = {industry.id for industry in industries}
    return {
        "industries": items,
        "totals": {
            "industries": len(industries),
            "readings": sum(1 for r in snapshot.readings if r.industry_id in visible_ids),
            "alerts": alert_counts,
        },
        "fetchedAt": snapshot.fetched_at,
    }
