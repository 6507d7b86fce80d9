"""Ingestion boundary: validate the response envelope, canonicalise rows.

Everything downstream of this module sees a plain list of dicts keyed by
canonical field names (see ``adreport.schema``) with dates as
``YYYY-MM-DD`` strings.
"""

from __future__ import annotations

import logging
import math
from typing import Any, Dict, Iterable, List, Mapping

from adreport.coerce import is_missing, normalize_date, to_float
from adreport.schema import FIELD_ALIASES

logger = logging.getLogger(__name__)

DATE_FIELDS = ("date", "date_start", "date_stop")

LONG_FORMAT_REQUIRED = ("date", "campaign", "metric", "value")
_LONG_IDENTITY = ("date", "campaign", "account", "account_name", "platform", "team")


class InputShapeError(ValueError):
    """Raised when top-level input is not a usable list of rows."""


def check_row_shapes(rows: Iterable[Any]) -> List[Mapping[str, Any]]:
    """Raise unless every element of *rows* is a mapping."""
    out = list(rows)
    for i, r in enumerate(out):
        if not isinstance(r, Mapping):
            raise InputShapeError(
                f"Row {i} must be an object, got {type(r).__name__}."
            )
    return out


def require_rows(rows: Any, what: str = "report generation") -> List[Mapping[str, Any]]:
    """Return *rows* as a list, or raise if it is not a non-empty list of rows."""
    if not isinstance(rows, (list, tuple)):
        raise InputShapeError(
            f"Expected a list of rows for {what}, got {type(rows).__name__}."
        )
    if len(rows) == 0:
        raise InputShapeError(
            f"No data available for {what}. Check the date range and campaign selection."
        )
    return check_row_shapes(rows)


def unwrap_envelope(payload: Any) -> List[Dict[str, Any]]:
    """Validate a ``{"success": bool, "data": [...]}`` envelope and return data.

    The envelope is checked once here; callers never re-check nested shapes.
    """
    if not isinstance(payload, Mapping):
        raise InputShapeError(
            f"Response envelope must be an object, got {type(payload).__name__}."
        )
    if not payload.get("success", False):
        raise InputShapeError(
            f"Upstream request failed: {payload.get('error') or 'unknown error'}"
        )
    data = payload.get("data")
    if not isinstance(data, list):
        raise InputShapeError(
            f"Response envelope 'data' must be a list, got {type(data).__name__}."
        )
    return [dict(r) for r in check_row_shapes(data)]


def normalize_row(row: Mapping[str, Any]) -> Dict[str, Any]:
    """Rename alias fields to canonical names and unwrap date cells.

    A canonical field already on the row wins over its alias.
    """
    out: Dict[str, Any] = {}
    for k, v in row.items():
        canonical = FIELD_ALIASES.get(k)
        if canonical is None:
            out[k] = v
    for k, v in row.items():
        canonical = FIELD_ALIASES.get(k)
        if canonical is not None and is_missing(out.get(canonical)):
            out[canonical] = v

    for f in DATE_FIELDS:
        if f in out:
            out[f] = normalize_date(out[f])
    return out


def normalize_rows(rows: Iterable[Mapping[str, Any]]) -> List[Dict[str, Any]]:
    return [normalize_row(r) for r in rows]


def canonical_value(row: Mapping[str, Any], field: str) -> Any:
    """``row[field]``, or the value under one of its registered aliases."""
    v = row.get(field)
    if not is_missing(v):
        return v
    for alias, canonical in FIELD_ALIASES.items():
        if canonical == field and not is_missing(row.get(alias)):
            return row[alias]
    return None


def convert_long_to_wide(long_rows: List[Mapping[str, Any]]) -> List[Dict[str, Any]]:
    """Pivot ``{date, campaign, metric, value}`` rows into one row per
    date/campaign/account/platform with each metric as a column.

    Rows missing an essential field or carrying a non-numeric value are
    skipped.
    """
    if not long_rows:
        return []

    missing = [f for f in LONG_FORMAT_REQUIRED if f not in long_rows[0]]
    if missing:
        raise InputShapeError(f"Data missing required fields: {', '.join(missing)}")

    grouped: Dict[tuple, Dict[str, Any]] = {}
    skipped = 0
    for row in long_rows:
        date_value = normalize_date(row.get("date"))
        campaign = row.get("campaign")
        metric = row.get("metric")
        value = row.get("value")
        if not date_value or is_missing(campaign) or is_missing(metric) or is_missing(value):
            skipped += 1
            continue

        numeric = to_float(value, default=float("nan"))
        if math.isnan(numeric):
            skipped += 1
            continue

        key = (
            date_value,
            campaign,
            row.get("account") or "unknown",
            row.get("platform") or "unknown",
        )
        if key not in grouped:
            grouped[key] = {f: row.get(f) for f in _LONG_IDENTITY}
            grouped[key]["date"] = date_value
        grouped[key][str(metric)] = numeric

    logger.info(
        "Converted %d long-format rows into %d wide rows (%d skipped)",
        len(long_rows),
        len(grouped),
        skipped,
    )
    return list(grouped.values())
