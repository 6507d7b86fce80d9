"""Fold daily warehouse rows into one row per group for the analysis period.

Additive metrics are summed, per-day percentage metrics are averaged over
the folded days, and ratio metrics are recomputed from the summed totals
(``0`` when the denominator is zero).
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from adreport.coerce import (
    format_date_range,
    is_missing,
    normalize_date,
    safe_ratio,
    to_float,
    to_int,
    unwrap_value,
)
from adreport.schema import (
    ADDITIVE_METRICS,
    IDENTITY_FIELDS,
    PERCENTAGE_METRICS,
    UNKNOWN,
)

logger = logging.getLogger(__name__)


def group_value(row: Mapping[str, Any], field: str) -> str:
    """String key component for *field*; ``"Unknown"`` when missing."""
    v = unwrap_value(row.get(field))
    if is_missing(v):
        return UNKNOWN
    return str(v)


def _row_dates(row: Mapping[str, Any]) -> Tuple[Optional[str], Optional[str]]:
    d = normalize_date(row.get("date"))
    if d:
        return d, d
    start = normalize_date(row.get("date_start"))
    stop = normalize_date(row.get("date_stop"))
    return start or stop, stop or start


def _row_weight(row: Mapping[str, Any]) -> int:
    """Days represented by *row*: 1 for a raw daily row."""
    if "days_count" in row:
        return max(to_int(row.get("days_count")), 1)
    return 1


def _new_group(key: str, group_by: str) -> Dict[str, Any]:
    g: Dict[str, Any] = {f: "" for f in IDENTITY_FIELDS}
    g["status"] = ""
    g[group_by] = key
    for m in ADDITIVE_METRICS:
        g[m] = 0.0
    for m in PERCENTAGE_METRICS:
        g[m] = 0.0
    g["date_start"] = None
    g["date_stop"] = None
    g["days_count"] = 0
    return g


def _fold(g: Dict[str, Any], row: Mapping[str, Any], group_by: str) -> None:
    weight = _row_weight(row)

    for m in ADDITIVE_METRICS:
        if not is_missing(row.get(m)):
            g[m] += to_float(row.get(m))

    # Stored as a day-weighted sum until finalisation.
    for m in PERCENTAGE_METRICS:
        if not is_missing(row.get(m)):
            g[m] += to_float(row.get(m)) * weight

    start, stop = _row_dates(row)
    if start and (g["date_start"] is None or start < g["date_start"]):
        g["date_start"] = start
    if stop and (g["date_stop"] is None or stop > g["date_stop"]):
        g["date_stop"] = stop

    g["days_count"] += weight

    for f in IDENTITY_FIELDS:
        if f == group_by:
            continue
        v = row.get(f)
        if not is_missing(v):
            g[f] = v

    if not is_missing(row.get("status")):
        g["status"] = row["status"]

    budget = to_float(row.get("budget"))
    if budget:
        g["budget"] = max(to_float(g.get("budget")), budget)


def _finalize(g: Dict[str, Any]) -> Dict[str, Any]:
    cost = g["cost"]
    clicks = g["clicks"]
    impressions = g["impressions"]
    revenue = g["revenue"]

    g["ctr"] = safe_ratio(clicks, impressions, 100.0)
    g["cpc"] = safe_ratio(cost, clicks)
    g["cpm"] = safe_ratio(cost, impressions, 1000.0)
    g["roas"] = safe_ratio(revenue, cost)
    g["frequency"] = safe_ratio(impressions, g["reach"])
    g["conversion_rate"] = safe_ratio(g["conversions"], clicks, 100.0)

    if g["days_count"] > 0:
        for m in PERCENTAGE_METRICS:
            g[m] = g[m] / g["days_count"]

    # TikTok reports purchase ROAS under its own name.
    if cost > 0 and revenue:
        g["p_complete_payment_roas"] = revenue / cost

    date_range = format_date_range(g["date_start"], g["date_stop"])
    if date_range:
        g["date_range"] = date_range
    return g


def aggregate_by_period(
    rows: Optional[Iterable[Mapping[str, Any]]],
    group_by: str = "campaign_name",
) -> List[Dict[str, Any]]:
    """Aggregate *rows* into one row per distinct ``row[group_by]``.

    Output order follows the first appearance of each key.  Input rows are
    not modified.
    """
    if not rows:
        return []

    grouped: Dict[str, Dict[str, Any]] = {}
    count = 0
    for row in rows:
        count += 1
        key = group_value(row, group_by)
        if key not in grouped:
            grouped[key] = _new_group(key, group_by)
        _fold(grouped[key], row, group_by)

    logger.debug(
        "Aggregated %d rows into %d groups by %s", count, len(grouped), group_by
    )
    return [_finalize(g) for g in grouped.values()]


def aggregate_hierarchical(
    rows: Optional[Iterable[Mapping[str, Any]]],
    group_by_fields: Sequence[str] = ("account_name", "campaign_name"),
) -> List[Dict[str, Any]]:
    """Aggregate under a composite key made of every field in *group_by_fields*.

    Each output row is tagged ``level_<i>_<field>`` with its key component
    at hierarchy level *i*, so callers can roll up by any key prefix.
    """
    fields = list(group_by_fields)
    if not fields:
        raise ValueError("group_by_fields must name at least one field")
    if not rows:
        return []

    buckets: Dict[Tuple[str, ...], List[Mapping[str, Any]]] = {}
    for row in rows:
        key = tuple(group_value(row, f) for f in fields)
        buckets.setdefault(key, []).append(row)

    result: List[Dict[str, Any]] = []
    for key, bucket in buckets.items():
        for item in aggregate_by_period(bucket, fields[-1]):
            for i, f in enumerate(fields):
                item[f"level_{i}_{f}"] = key[i]
            result.append(item)
    return result


def sort_aggregated_data(
    rows: Optional[Iterable[Mapping[str, Any]]],
    sort_by: str = "cost",
    order: str = "desc",
) -> List[Dict[str, Any]]:
    """Stable numeric sort; a missing or non-numeric value sorts as 0."""
    if not rows:
        return []
    return sorted(
        rows,
        key=lambda r: to_float(r.get(sort_by)),
        reverse=(order == "desc"),
    )


def filter_selected_fields(
    rows: Optional[Iterable[Mapping[str, Any]]],
    selected_fields: Optional[Sequence[str]],
) -> List[Dict[str, Any]]:
    """Project each row onto exactly *selected_fields*.

    Unknown fields resolve to None, except ``date_range`` which is built
    from ``date_start``/``date_stop`` when the row doesn't carry it.
    """
    if not rows or not selected_fields:
        return []

    out: List[Dict[str, Any]] = []
    for row in rows:
        projected: Dict[str, Any] = {}
        for f in selected_fields:
            if f in row:
                projected[f] = row[f]
            elif f == "date_range":
                projected[f] = format_date_range(row.get("date_start"), row.get("date_stop"))
            else:
                projected[f] = None
        out.append(projected)
    return out
