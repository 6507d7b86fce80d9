"""Canonical row fields, metric catalog and analytics result types."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Tuple

MetricUnit = Literal["currency", "count", "ratio", "percent"]

UNKNOWN = "Unknown"

IDENTITY_FIELDS: List[str] = [
    "platform",
    "team",
    "account",
    "account_id",
    "account_name",
    "campaign",
    "campaign_id",
    "campaign_name",
    "adset_id",
    "adset_name",
    "ad_id",
    "ad_name",
    "objective",
]

# Summed across rows when aggregating.
ADDITIVE_METRICS: List[str] = [
    "cost",
    "impressions",
    "clicks",
    "reach",
    "conversions",
    "purchases",
    "revenue",
    "link_clicks",
    "video_views",
    "inline_link_clicks",
    "inline_post_engagement",
    # TikTok
    "p_video_play",
    "p_likes",
    "p_comments",
    "p_shares",
    "video_play_actions",
    "video_watched_2_s",
    "purchases_value",
    # Google
    "all_conversions",
    "conversion_value",
    "conversions_value",
]

# Per-day percentages: averaged over days_count instead of summed.
PERCENTAGE_METRICS: List[str] = [
    "p_video_play_100",
    "p_video_play_75",
    "p_video_play_50",
    "p_video_play_25",
    "search_impression_share",
]

# Ratio metrics: id -> (numerator, denominator, scale). Always computed
# from summed numerator and denominator, never summed per row.
RATIO_METRICS: Dict[str, Tuple[str, str, float]] = {
    "ctr": ("clicks", "impressions", 100.0),
    "cpm": ("cost", "impressions", 1000.0),
    "cpc": ("cost", "clicks", 1.0),
    "roas": ("revenue", "cost", 1.0),
    "conversion_rate": ("conversions", "clicks", 100.0),
    "cost_per_conversion": ("cost", "conversions", 1.0),
}

# Alternate spellings seen in upstream payloads -> canonical field.
FIELD_ALIASES: Dict[str, str] = {
    "fecha": "date",
    "campaignName": "campaign_name",
    "campaignId": "campaign_id",
    "accountName": "account_name",
    "accountId": "account_id",
    "adsetName": "adset_name",
    "adsetId": "adset_id",
}


METRIC_CATALOG: List[Dict[str, str]] = [
    # Universal
    {"id": "cost", "name": "Costo", "category": "universal", "unit": "currency"},
    {"id": "clicks", "name": "Clics", "category": "universal", "unit": "count"},
    {"id": "impressions", "name": "Impresiones", "category": "universal", "unit": "count"},
    # Facebook
    {"id": "reach", "name": "Alcance", "category": "facebook", "unit": "count"},
    {"id": "frequency", "name": "Frecuencia", "category": "facebook", "unit": "ratio"},
    {"id": "inline_link_clicks", "name": "Clics en Enlaces", "category": "facebook", "unit": "count"},
    {"id": "inline_post_engagement", "name": "Interacciones", "category": "facebook", "unit": "count"},
    {"id": "video_views", "name": "Visualizaciones de Video", "category": "facebook", "unit": "count"},
    {"id": "purchases", "name": "Compras", "category": "facebook", "unit": "count"},
    {"id": "revenue", "name": "Ingresos", "category": "facebook", "unit": "currency"},
    # TikTok
    {"id": "video_play_actions", "name": "Reproducciones de Video", "category": "tiktok", "unit": "count"},
    {"id": "video_watched_2_s", "name": "Videos > 2s", "category": "tiktok", "unit": "count"},
    {"id": "purchases_value", "name": "Valor de Compras", "category": "tiktok", "unit": "currency"},
    # Google
    {"id": "conversions", "name": "Conversiones", "category": "google", "unit": "count"},
]

_CATALOG_BY_ID = {m["id"]: m for m in METRIC_CATALOG}


def metric_unit(metric_id: str) -> MetricUnit:
    """Unit from the catalog, else guessed from the metric id."""
    known = _CATALOG_BY_ID.get(metric_id)
    if known:
        return known["unit"]  # type: ignore[return-value]
    ratio = RATIO_METRICS.get(metric_id)
    if ratio:
        numerator, _, scale = ratio
        if scale == 100.0:
            return "percent"
        return "currency" if numerator == "cost" else "ratio"
    mid = (metric_id or "").lower()
    if not mid:
        return "count"
    if mid == "cost" or "value" in mid or "revenue" in mid:
        return "currency"
    if mid == "frequency" or "rate" in mid or "ratio" in mid:
        return "ratio"
    return "count"


def metric_display_name(metric_id: str) -> str:
    known = _CATALOG_BY_ID.get(metric_id)
    return known["name"] if known else metric_id


# ─────────────────────────────────────────────────────────────────────────────
# Analytics results
# ─────────────────────────────────────────────────────────────────────────────


@dataclass
class AnalyticsSummary:
    total_cost: float = 0.0
    total_clicks: int = 0
    total_impressions: int = 0
    total_conversions: int = 0
    total_revenue: float = 0.0
    average_ctr: str = "0.00"
    average_cpc: str = "0.00"
    average_cpm: str = "0.00"
    roas: str = "0.00"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalCost": self.total_cost,
            "totalClicks": self.total_clicks,
            "totalImpressions": self.total_impressions,
            "totalConversions": self.total_conversions,
            "totalRevenue": self.total_revenue,
            "averageCTR": self.average_ctr,
            "averageCPC": self.average_cpc,
            "averageCPM": self.average_cpm,
            "roas": self.roas,
        }


@dataclass
class TrendSeries:
    daily: List[Dict[str, Any]] = field(default_factory=list)
    best_day: Dict[str, Any] = field(default_factory=dict)
    worst_day: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "daily": [dict(d) for d in self.daily],
            "bestDay": dict(self.best_day),
            "worstDay": dict(self.worst_day),
        }


@dataclass
class PerformanceTable:
    by_campaign: List[Dict[str, Any]] = field(default_factory=list)
    top_performer: Dict[str, Any] = field(default_factory=dict)
    bottom_performer: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "byCampaign": [dict(c) for c in self.by_campaign],
            "topPerformer": dict(self.top_performer),
            "bottomPerformer": dict(self.bottom_performer),
        }


@dataclass
class PeriodComparison:
    current: Dict[str, float] = field(default_factory=dict)
    previous: Dict[str, float] = field(default_factory=dict)
    changes: Dict[str, Dict[str, float]] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "current": dict(self.current),
            "previous": dict(self.previous),
            "changes": {k: dict(v) for k, v in self.changes.items()},
        }
