"""Report analytics over a full row set: summary, trends, performance,
period comparison, plus the card/chart/recommendation helpers used by the
presentation layer.

All sums coerce null or non-numeric cells to 0; ratios are computed from
totals (volume-weighted), never averaged per row.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Sequence

from adreport.aggregator import aggregate_by_period
from adreport.coerce import (
    format_for_metric,
    metric_format,
    normalize_date,
    safe_ratio,
    to_fixed,
    to_float,
    to_int,
)
from adreport.config import RecommendationConfig
from adreport.mappers import canonical_value
from adreport.schema import (
    ADDITIVE_METRICS,
    PERCENTAGE_METRICS,
    RATIO_METRICS,
    UNKNOWN,
    AnalyticsSummary,
    PerformanceTable,
    PeriodComparison,
    TrendSeries,
    metric_display_name,
)

SERIES_COLORS = ["#3b82f6", "#10b981", "#f59e0b", "#ef4444", "#8b5cf6", "#06b6d4"]

# Half-over-half change (percent) beyond which a metric trends up/down.
TREND_THRESHOLD_PCT = 5.0


def _conversions(row: Mapping[str, Any]) -> int:
    """Purchases when reported, else generic conversions.

    A purchases count of 0 (including the string ``"0"``) falls back to
    conversions.
    """
    purchases = to_int(row.get("purchases"))
    if purchases:
        return purchases
    return to_int(row.get("conversions"))


def _metric_amount(row: Mapping[str, Any], metric: str) -> float:
    if metric in ("conversions", "purchases"):
        return float(_conversions(row))
    return to_float(row.get(metric))


def _metric_value(rows: Sequence[Mapping[str, Any]], metric: str) -> float:
    """*metric* over a set of rows: ratios from the summed totals, frequency
    as the per-row mean, everything else summed."""
    ratio = RATIO_METRICS.get(metric)
    if ratio is not None:
        numerator, denominator, scale = ratio
        return safe_ratio(
            sum(_metric_amount(r, numerator) for r in rows),
            sum(_metric_amount(r, denominator) for r in rows),
            scale,
        )
    if metric == "frequency":
        total = sum(to_float(r.get("frequency")) for r in rows)
        return total / len(rows) if rows else 0.0
    return sum(_metric_amount(r, metric) for r in rows)


def _ratio_str(numerator: float, denominator: float, scale: float = 1.0) -> str:
    return to_fixed(safe_ratio(numerator, denominator, scale))


def _campaign_label(row: Mapping[str, Any]) -> str:
    name = canonical_value(row, "campaign_name")
    if name is None:
        name = canonical_value(row, "campaign")
    return UNKNOWN if name is None else str(name)


# ─────────────────────────────────────────────────────────────────────────────
# Summary / trends / performance
# ─────────────────────────────────────────────────────────────────────────────


def calculate_summary_metrics(rows: Optional[Sequence[Mapping[str, Any]]]) -> AnalyticsSummary:
    """Totals over every row plus CTR/CPC/CPM/ROAS derived from the totals.

    An empty or missing row set yields an all-zero summary.
    """
    if not rows:
        return AnalyticsSummary()

    cost = revenue = 0.0
    clicks = impressions = conversions = 0
    for row in rows:
        cost += to_float(row.get("cost"))
        clicks += to_int(row.get("clicks"))
        impressions += to_int(row.get("impressions"))
        conversions += _conversions(row)
        revenue += to_float(row.get("revenue"))

    return AnalyticsSummary(
        total_cost=round(cost, 2),
        total_clicks=clicks,
        total_impressions=impressions,
        total_conversions=conversions,
        total_revenue=round(revenue, 2),
        average_ctr=_ratio_str(clicks, impressions, 100.0),
        average_cpc=_ratio_str(cost, clicks),
        average_cpm=_ratio_str(cost, impressions, 1000.0),
        roas=_ratio_str(revenue, cost),
    )


def calculate_trends(rows: Optional[Sequence[Mapping[str, Any]]]) -> TrendSeries:
    """Per-date totals in ascending date order, with the max/min cost days.

    Rows whose date can't be parsed are left out of the series.
    """
    groups: Dict[str, Dict[str, Any]] = {}
    for row in rows or []:
        day = normalize_date(canonical_value(row, "date"))
        if day is None:
            continue
        g = groups.setdefault(
            day, {"cost": 0.0, "clicks": 0, "impressions": 0, "conversions": 0}
        )
        g["cost"] += to_float(row.get("cost"))
        g["clicks"] += to_int(row.get("clicks"))
        g["impressions"] += to_int(row.get("impressions"))
        g["conversions"] += _conversions(row)

    daily: List[Dict[str, Any]] = []
    for day in sorted(groups):
        g = groups[day]
        daily.append(
            {"date": day, **g, "ctr": _ratio_str(g["clicks"], g["impressions"], 100.0)}
        )

    best: Dict[str, Any] = daily[0] if daily else {}
    worst: Dict[str, Any] = daily[0] if daily else {}
    for day in daily[1:]:
        if day["cost"] > best["cost"]:
            best = day
        if day["cost"] < worst["cost"]:
            worst = day

    return TrendSeries(daily=daily, best_day=dict(best), worst_day=dict(worst))


def calculate_performance_metrics(
    rows: Optional[Sequence[Mapping[str, Any]]],
) -> PerformanceTable:
    """Per-campaign totals with CTR/CPC/ROAS and the best/worst ROAS campaign."""
    campaigns: Dict[str, Dict[str, Any]] = {}
    for row in rows or []:
        c = campaigns.setdefault(
            _campaign_label(row),
            {"cost": 0.0, "clicks": 0, "impressions": 0, "conversions": 0, "revenue": 0.0},
        )
        c["cost"] += to_float(row.get("cost"))
        c["clicks"] += to_int(row.get("clicks"))
        c["impressions"] += to_int(row.get("impressions"))
        c["conversions"] += _conversions(row)
        c["revenue"] += to_float(row.get("revenue"))

    by_campaign = [
        {
            "campaign": name,
            **m,
            "ctr": _ratio_str(m["clicks"], m["impressions"], 100.0),
            "cpc": _ratio_str(m["cost"], m["clicks"]),
            "roas": _ratio_str(m["revenue"], m["cost"]),
        }
        for name, m in campaigns.items()
    ]

    top: Dict[str, Any] = {}
    bottom: Dict[str, Any] = {}
    for c in by_campaign:
        roas = float(c["roas"])
        if not top or roas > float(top["roas"]):
            top = c
        if not bottom or roas < float(bottom["roas"]):
            bottom = c

    return PerformanceTable(
        by_campaign=by_campaign, top_performer=dict(top), bottom_performer=dict(bottom)
    )


# ─────────────────────────────────────────────────────────────────────────────
# Period-over-period
# ─────────────────────────────────────────────────────────────────────────────


_COMPARABLE_METRICS = (
    set(ADDITIVE_METRICS) | set(PERCENTAGE_METRICS) | set(RATIO_METRICS) | {"frequency"}
)


def _metric_keys(*rows: Optional[Mapping[str, Any]]) -> List[str]:
    """Known metric columns present on *rows*, in first-seen order."""
    keys: List[str] = []
    for row in rows:
        for k in row or {}:
            if k in _COMPARABLE_METRICS and k not in keys:
                keys.append(k)
    return keys


def compare_periods(
    current: Optional[Mapping[str, Any]],
    previous: Optional[Mapping[str, Any]],
    metrics: Optional[Sequence[str]] = None,
) -> PeriodComparison:
    """Absolute and percentage change per metric between two totals rows.

    ``percentage`` is 0 whenever the previous value is 0.
    """
    names = list(metrics) if metrics else _metric_keys(current, previous)
    cur = {m: to_float(current.get(m)) for m in names} if current else {}
    prev = {m: to_float(previous.get(m)) for m in names} if previous else {}

    changes: Dict[str, Dict[str, float]] = {}
    for m in names:
        c = cur.get(m, 0.0)
        p = prev.get(m, 0.0)
        changes[m] = {
            "absolute": c - p,
            "percentage": round((c - p) / p * 100, 2) if p > 0 else 0,
        }
    return PeriodComparison(current=cur, previous=prev, changes=changes)


def process_period_comparison(
    rows: Sequence[Mapping[str, Any]],
    metrics: Optional[Sequence[str]] = None,
) -> PeriodComparison:
    """Compare totals rows tagged ``period: "current"`` / ``"previous"``."""
    periods = {str(r.get("period")): r for r in rows}
    return compare_periods(periods.get("current"), periods.get("previous"), metrics)


def metric_trend(current: Any, previous: Any) -> Dict[str, Any]:
    c = to_float(current)
    p = to_float(previous)
    if not p:
        return {"trend": "neutral", "change": 0.0}
    trend = "up" if c > p else "down" if c < p else "neutral"
    return {"trend": trend, "change": round((c - p) / p * 100, 1)}


def _half_value(rows: Sequence[Mapping[str, Any]], metric: str) -> float:
    if metric in RATIO_METRICS or metric == "frequency":
        return _metric_value(rows, metric)
    return _metric_value(rows, metric) / len(rows)


def calculate_trend(rows: Sequence[Mapping[str, Any]], metric: str) -> Dict[str, Any]:
    """Compare *metric* in the later half of the period to the earlier half.

    Additive metrics compare per-row means; ratio metrics compare each
    half's ratio of totals.
    """
    if len(rows) < 2:
        return {"direction": "neutral", "percentage": 0.0}

    ordered = sorted(rows, key=lambda r: normalize_date(canonical_value(r, "date")) or "")
    mid = len(ordered) // 2
    first, second = ordered[:mid], ordered[mid:]
    first_mean = _half_value(first, metric)
    second_mean = _half_value(second, metric)

    if first_mean == 0:
        return {"direction": "neutral", "percentage": 0.0}

    pct = (second_mean - first_mean) / first_mean * 100
    if pct > TREND_THRESHOLD_PCT:
        direction = "up"
    elif pct < -TREND_THRESHOLD_PCT:
        direction = "down"
    else:
        direction = "neutral"
    return {"direction": direction, "percentage": round(abs(pct), 1)}


# ─────────────────────────────────────────────────────────────────────────────
# Cards / chart / recommendations
# ─────────────────────────────────────────────────────────────────────────────


def calculate_card_metrics(
    rows: Sequence[Mapping[str, Any]],
    metric_ids: Optional[Sequence[str]],
    currency_symbol: str = "$",
) -> Dict[str, Dict[str, Any]]:
    if not metric_ids:
        return {}

    cards: Dict[str, Dict[str, Any]] = {}
    for metric in metric_ids:
        cards[metric] = {
            "value": format_for_metric(_metric_value(rows, metric), metric, currency_symbol),
            "trend": calculate_trend(rows, metric),
            "format": metric_format(metric),
        }
    return cards


def calculate_chart_data(
    rows: Sequence[Mapping[str, Any]],
    chart_metrics: Optional[Sequence[str]],
    chart_type: str = "line",
) -> Dict[str, Any]:
    if not chart_metrics:
        return {}

    by_date: Dict[str, List[Mapping[str, Any]]] = {}
    for row in rows:
        day = normalize_date(canonical_value(row, "date"))
        if day is None:
            continue
        by_date.setdefault(day, []).append(row)

    dates = sorted(by_date)
    series = [
        {
            "name": metric_display_name(m),
            "data": [{"x": d, "y": _metric_value(by_date[d], m)} for d in dates],
            "color": SERIES_COLORS[i % len(SERIES_COLORS)],
        }
        for i, m in enumerate(chart_metrics)
    ]
    return {
        "type": chart_type,
        "series": series,
        "categories": dates,
        "metrics": list(chart_metrics),
    }


def generate_recommendations(
    rows: Sequence[Mapping[str, Any]],
    cfg: Optional[RecommendationConfig] = None,
) -> List[Dict[str, Any]]:
    """Flag CTR, CPC and ROAS against thresholds. Wording is left to callers."""
    if not rows:
        return []
    cfg = cfg or RecommendationConfig()
    summary = calculate_summary_metrics(rows)
    ctr = float(summary.average_ctr)
    cpc = float(summary.average_cpc)
    roas = float(summary.roas)

    recs: List[Dict[str, Any]] = []
    if ctr < cfg.min_ctr:
        recs.append(
            {"type": "optimization", "priority": "high", "metric": "ctr",
             "value": ctr, "threshold": cfg.min_ctr}
        )
    if cpc > cfg.max_cpc:
        recs.append(
            {"type": "cost", "priority": "medium", "metric": "cpc",
             "value": cpc, "threshold": cfg.max_cpc}
        )
    if roas < cfg.min_roas:
        recs.append(
            {"type": "revenue", "priority": "high", "metric": "roas",
             "value": roas, "threshold": cfg.min_roas}
        )
    return recs


# ─────────────────────────────────────────────────────────────────────────────
# Simple / campaign-comparison report shapes
# ─────────────────────────────────────────────────────────────────────────────


def summarize_metrics(
    rows: Sequence[Mapping[str, Any]],
    metrics: Sequence[str],
) -> Dict[str, Dict[str, float]]:
    """``{metric: {total, average, min, max}}``; all zeros for no rows."""
    out: Dict[str, Dict[str, float]] = {}
    for m in metrics:
        values = [to_float(r.get(m)) for r in rows]
        if not values:
            out[m] = {"total": 0.0, "average": 0.0, "min": 0.0, "max": 0.0}
            continue
        total = sum(values)
        out[m] = {
            "total": total,
            "average": total / len(values),
            "min": min(values),
            "max": max(values),
        }
    return out


def compare_campaigns(
    rows: Sequence[Mapping[str, Any]],
    metrics: Sequence[str],
    by: str = "campaign",
) -> Dict[str, Any]:
    """Side-by-side metrics per campaign (or account) plus column totals."""
    items = []
    for agg in aggregate_by_period(rows, by):
        items.append(
            {
                "id": agg.get(by),
                "name": agg.get(f"{by}_name") or agg.get(by),
                "metrics": {m: to_float(agg.get(m)) for m in metrics},
            }
        )
    totals = {m: sum(i["metrics"][m] for i in items) for m in metrics}
    return {"items": items, "totals": totals}
