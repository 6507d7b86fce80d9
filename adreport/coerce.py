"""Coerce warehouse values into numbers/dates and format them for display.

Warehouse rows arrive loosely typed: numeric columns may be strings,
``None`` or NaN, and DATE columns may come wrapped as ``{"value": "..."}``.
Everything here is lenient; an unparseable number becomes ``0`` and an
unparseable date becomes ``None``.
"""

from __future__ import annotations

import math
import re
from datetime import date, datetime, timezone
from typing import Any, Optional

import pandas as pd

from adreport.schema import metric_unit

_ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

# es-MX short month names, as used on printed reports.
_MONTHS_ES = [
    "ene", "feb", "mar", "abr", "may", "jun",
    "jul", "ago", "sept", "oct", "nov", "dic",
]


def is_missing(v: Any) -> bool:
    """True for None, NaN/NaT and empty strings."""
    if v is None:
        return True
    if isinstance(v, str):
        return v.strip() == ""
    try:
        return bool(pd.isna(v))
    except (TypeError, ValueError):
        return False


def to_float(v: Any, default: float = 0.0) -> float:
    if is_missing(v):
        return default
    if isinstance(v, dict):
        return default
    try:
        out = float(v)
    except (TypeError, ValueError):
        return default
    if not math.isfinite(out):
        return default
    return out


def to_int(v: Any, default: int = 0) -> int:
    """Truncating integer parse (``"12.7"`` -> ``12``)."""
    return int(to_float(v, float(default)))


def to_fixed(value: float, digits: int = 2) -> str:
    return f"{value:.{digits}f}"


def safe_ratio(numerator: float, denominator: float, scale: float = 1.0) -> float:
    """numerator / denominator * scale, or 0 when denominator <= 0."""
    if denominator > 0:
        return numerator / denominator * scale
    return 0.0


# ─────────────────────────────────────────────────────────────────────────────
# Dates
# ─────────────────────────────────────────────────────────────────────────────


def unwrap_value(v: Any) -> Any:
    """Unwrap BigQuery-style ``{"value": ...}`` cells."""
    if isinstance(v, dict) and "value" in v:
        return v["value"]
    return v


def normalize_date(v: Any) -> Optional[str]:
    """Return ``YYYY-MM-DD`` for any recognised date shape, else None."""
    v = unwrap_value(v)
    if is_missing(v):
        return None
    if isinstance(v, datetime):
        return v.date().isoformat()
    if isinstance(v, date):
        return v.isoformat()
    if isinstance(v, bool):
        return None
    if isinstance(v, (int, float)):
        # epoch milliseconds
        try:
            return datetime.fromtimestamp(v / 1000, tz=timezone.utc).date().isoformat()
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(v, str):
        s = v.strip()
        if "T" in s and _ISO_DATE_RE.match(s.split("T", 1)[0]):
            s = s.split("T", 1)[0]
        if _ISO_DATE_RE.match(s):
            try:
                return date.fromisoformat(s).isoformat()
            except ValueError:
                return None
        parsed = pd.to_datetime(s, errors="coerce")
        if pd.isna(parsed):
            return None
        return parsed.date().isoformat()
    return None


def format_date(v: Any) -> str:
    """``2024-01-05`` -> ``5 ene 2024``; unparseable input is returned as text."""
    if is_missing(unwrap_value(v)):
        return ""
    iso = normalize_date(v)
    if iso is None:
        return str(unwrap_value(v))
    d = date.fromisoformat(iso)
    return f"{d.day} {_MONTHS_ES[d.month - 1]} {d.year}"


def format_date_range(start: Any, stop: Any) -> Optional[str]:
    if is_missing(unwrap_value(start)) or is_missing(unwrap_value(stop)):
        return None
    return f"{format_date(start)} - {format_date(stop)}"


# ─────────────────────────────────────────────────────────────────────────────
# Display formatting
# ─────────────────────────────────────────────────────────────────────────────


def _round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def format_metric_value(value: Any, fmt: str, currency_symbol: str = "$") -> str:
    """Format a value as currency / percentage / decimal / number.

    ``None`` renders as ``"-"``; unknown formats fall back to ``str(value)``.
    """
    if value is None:
        return "-"
    if fmt == "currency":
        x = to_float(value)
        sign = "-" if x < 0 else ""
        return f"{sign}{currency_symbol}{abs(x):,.2f}"
    if fmt == "percentage":
        return f"{to_float(value):.2f}%"
    if fmt == "decimal":
        return f"{to_float(value):.2f}"
    if fmt == "number":
        return f"{_round_half_up(to_float(value)):,}"
    return str(value)


_UNIT_FORMATS = {
    "currency": "currency",
    "ratio": "decimal",
    "percent": "percentage",
    "count": "number",
}


def metric_format(metric_id: str) -> str:
    """Display format for *metric_id*, picked from its unit."""
    return _UNIT_FORMATS[metric_unit(metric_id)]


def format_for_metric(value: Any, metric_id: str, currency_symbol: str = "$") -> str:
    return format_metric_value(value, metric_format(metric_id), currency_symbol)
