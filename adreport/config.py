"""Load and validate config.yaml, plus the per-request report selection."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml


@dataclass
class EvidenciaConfig:
    group_by: str = "campaign_name"
    sort_by: str = "cost"
    sort_order: str = "desc"
    max_rows: Optional[int] = None
    selected_fields: List[str] = field(default_factory=list)


@dataclass
class FormatConfig:
    currency_symbol: str = "$"


@dataclass
class RecommendationConfig:
    """Thresholds that trigger an optimisation recommendation."""

    min_ctr: float = 1.0  # percent
    max_cpc: float = 2.0
    min_roas: float = 3.0


@dataclass
class DateConfig:
    max_range_days: int = 365


@dataclass
class AppConfig:
    evidencia: EvidenciaConfig = field(default_factory=EvidenciaConfig)
    formatting: FormatConfig = field(default_factory=FormatConfig)
    recommendations: RecommendationConfig = field(
        default_factory=RecommendationConfig
    )
    dates: DateConfig = field(default_factory=DateConfig)


def load_config(path: str | Path = "config.yaml") -> AppConfig:
    """Load config from YAML file, falling back to defaults."""
    p = Path(path)
    raw: dict = {}
    if p.exists():
        with open(p, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}

    return AppConfig(
        evidencia=EvidenciaConfig(**raw.get("evidencia", {})),
        formatting=FormatConfig(**raw.get("formatting", {})),
        recommendations=RecommendationConfig(**raw.get("recommendations", {})),
        dates=DateConfig(**raw.get("dates", {})),
    )


# ─────────────────────────────────────────────────────────────────────────────
# Report selection (one instance per request / session)
# ─────────────────────────────────────────────────────────────────────────────


@dataclass
class DateRange:
    start: Optional[str] = None
    end: Optional[str] = None

    def label(self) -> str:
        return f"{self.start or ''} - {self.end or ''}"


def _date_range_from(raw: Any) -> Optional[DateRange]:
    if raw is None:
        return None
    if isinstance(raw, DateRange):
        return raw
    return DateRange(
        start=raw.get("start", raw.get("startDate")),
        end=raw.get("end", raw.get("endDate")),
    )


def _pick(raw: Dict[str, Any], *keys: str, default: Any = None) -> Any:
    for k in keys:
        if k in raw and raw[k] is not None:
            return raw[k]
    return default


@dataclass
class ReportSelection:
    """Resolved wizard choices for a single report request.

    Built explicitly by the caller and passed by reference; nothing in the
    package keeps selection state between calls.
    """

    platform: str = ""
    report_type: str = "simple"
    team: Optional[str] = None
    account_ids: List[str] = field(default_factory=list)
    campaign_ids: List[str] = field(default_factory=list)
    adset_ids: List[str] = field(default_factory=list)
    metrics: List[str] = field(default_factory=list)
    date_range: DateRange = field(default_factory=DateRange)
    compare_date_range: Optional[DateRange] = None
    group_by: str = "date"

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "ReportSelection":
        """Accept both snake_case keys and the wizard's camelCase keys."""
        return cls(
            platform=str(_pick(raw, "platform", default="") or ""),
            report_type=_pick(raw, "report_type", "reportType", default="simple"),
            team=_pick(raw, "team"),
            account_ids=list(_pick(raw, "account_ids", "accountIds", default=[])),
            campaign_ids=list(_pick(raw, "campaign_ids", "campaignIds", default=[])),
            adset_ids=list(
                _pick(raw, "adset_ids", "adSetIds", "adsetIds", default=[])
            ),
            metrics=list(_pick(raw, "metrics", default=[])),
            date_range=_date_range_from(_pick(raw, "date_range", "dateRange"))
            or DateRange(
                start=_pick(raw, "start_date", "startDate"),
                end=_pick(raw, "end_date", "endDate"),
            ),
            compare_date_range=_date_range_from(
                _pick(raw, "compare_date_range", "compareDateRange")
            ),
            group_by=_pick(raw, "group_by", "groupBy", default="date"),
        )

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "platform": self.platform,
            "reportType": self.report_type,
            "team": self.team,
            "accountIds": list(self.account_ids),
            "campaignIds": list(self.campaign_ids),
            "adSetIds": list(self.adset_ids),
            "metrics": list(self.metrics),
            "dateRange": {"start": self.date_range.start, "end": self.date_range.end},
            "groupBy": self.group_by,
        }
        if self.compare_date_range is not None:
            out["compareDateRange"] = {
                "start": self.compare_date_range.start,
                "end": self.compare_date_range.end,
            }
        return out


@dataclass
class ReportCustomization:
    selected_card_metrics: List[str] = field(default_factory=list)
    chart_metrics: List[str] = field(default_factory=list)
    chart_type: str = "line"

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "ReportCustomization":
        return cls(
            selected_card_metrics=list(
                _pick(raw, "selected_card_metrics", "selectedCardMetrics", default=[])
            ),
            chart_metrics=list(_pick(raw, "chart_metrics", "chartMetrics", default=[])),
            chart_type=_pick(raw, "chart_type", "chartType", default="line"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "selectedCardMetrics": list(self.selected_card_metrics),
            "chartMetrics": list(self.chart_metrics),
            "chartType": self.chart_type,
        }
