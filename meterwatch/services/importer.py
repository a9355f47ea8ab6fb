"""
Industry import from spreadsheet rows.

One row describes one industry with exactly one meter. Ids are derived
from the subscription id, so re-importing a subscription overwrites it.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, BinaryIO, Dict, Iterable, List, Mapping, Optional

import pandas as pd

from meterwatch.domain import Industry, Meter
from meterwatch.errors import MalformedInputError

logger = logging.getLogger(__name__)

SUBSCRIPTION_COLUMNS = ("SubscriptionID", "شناسه اشتراک")
NAME_COLUMNS = ("IndustryName", "نام صنعت")
METER_NAME_COLUMNS = ("MeterName", "نام کنتور")

DEFAULT_INDUSTRY_NAME = "صنعت"
DEFAULT_METER_NAME = "کنتور اصلی"


@dataclass
class ImportResult:
    industries: List[Industry] = field(default_factory=list)
    errors: List[MalformedInputError] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "imported": len(self.industries),
            "skipped": [{"row": e.row, "error": str(e)} for e in self.errors],
        }


def rows_from_file(stream: BinaryIO, filename: str) -> List[Dict[str, Any]]:
    """
    Read the first sheet of an .xlsx workbook, or a .csv file, as dict rows.

    A file the parser cannot read raises MalformedInputError.
    """
    name = (filename or "").lower()
    if not name.endswith((".csv", ".xlsx")):
        raise MalformedInputError(f"Unsupported spreadsheet type: {filename!r}")
    try:
        # dtype=str keeps subscription ids like "00123" intact
        if name.endswith(".csv"):
            df = pd.read_csv(stream, dtype=str)
        else:
            df = pd.read_excel(stream, sheet_name=0, dtype=str, engine="openpyxl")
    except Exception as exc:
        logger.info(f"Import: unreadable spreadsheet {filename!r}: {exc}")
        raise MalformedInputError(f"Unreadable spreadsheet: {exc}") from exc
    df = df.where(pd.notna(df), None)
    return df.to_dict(orient="records")


def industries_from_rows(rows: Iterable[Mapping[str, Any]], default_limit: float = 5000) -> ImportResult:
    """
    Turn tabular rows into Industry records.

    Rows without a subscription id or with an unparseable limit are
    skipped and reported; later rows win over earlier ones with the same
    subscription id.
    """
    result = ImportResult()
    by_id: Dict[str, Industry] = {}
    for index, row in enumerate(rows, start=1):
        try:
            industry = industry_from_row(row, default_limit, index)
        except MalformedInputError as exc:
            logger.info(f"Import: skipping row {index}: {exc}")
            result.errors.append(exc)
            continue
        # pop first so the replacing row takes the later position
        by_id.pop(industry.id, None)
        by_id[industry.id] = industry
    result.industries = list(by_id.values())
    return result


def industry_from_row(row: Mapping[str, Any], default_limit: float = 5000, index: Optional[int] = None) -> Industry:
    subscription_id = _text(_first(row, SUBSCRIPTION_COLUMNS))
    if not subscription_id:
        raise MalformedInputError("Missing subscription id", row=index)

    raw_limit = _first(row, ("Limit",))
    if _text(raw_limit):
        try:
            limit = float(str(raw_limit).replace(",", "").strip())
        except ValueError:
            raise MalformedInputError(f"Unparseable limit {raw_limit!r}", row=index) from None
        if limit <= 0:
            raise MalformedInputError(f"Limit must be positive, got {raw_limit!r}", row=index)
    else:
        limit = float(default_limit)

    return Industry(
        id=f"IND-{subscription_id}",
        name=_text(_first(row, NAME_COLUMNS)) or DEFAULT_INDUSTRY_NAME,
        subscription_id=subscription_id,
        city=_text(row.get("City")),
        address=_text(row.get("Address")),
        allowed_daily_consumption=limit,
        meters=(Meter(
            id=f"M-{subscription_id}",
            serial_number=subscription_id,
            name=_text(_first(row, METER_NAME_COLUMNS)) or DEFAULT_METER_NAME,
        ),),
    )


def _first(row: Mapping[str, Any], columns: Iterable[str]) -> Any:
    for column in columns:
        value = row.get(column)
        if _text(value):
            return value
    return None


def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float):
        if value != value:  # NaN
            return ""
        if value.is_integer():
            return str(int(value))
    return str(value).strip()
