"""Report pipeline — orchestrates ingest → derive → analytics/evidencia → output."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from adreport.analytics import (
    calculate_card_metrics,
    calculate_chart_data,
    calculate_performance_metrics,
    calculate_summary_metrics,
    calculate_trends,
    generate_recommendations,
)
from adreport.config import AppConfig, ReportCustomization, ReportSelection
from adreport.dates import date_range_days
from adreport.derived import calculate_derived_metrics_rows
from adreport.evidencia import prepare_evidencia_data
from adreport.io_csv import read_metric_rows, write_json, write_report, write_rows_csv
from adreport.mappers import normalize_rows, require_rows

logger = logging.getLogger(__name__)

PERFORMANCE_COLUMNS = [
    "campaign", "cost", "clicks", "impressions", "conversions", "revenue",
    "ctr", "cpc", "roas",
]
TREND_COLUMNS = ["date", "cost", "clicks", "impressions", "conversions", "ctr"]
EVIDENCIA_TABLE_COLUMNS = [
    "date_range", "days_count", "cost", "impressions", "clicks", "ctr", "cpc", "cpm", "roas",
]


def process_report_data(raw_rows: Any) -> List[Dict[str, Any]]:
    """Validate raw warehouse rows, canonicalise them and add derived metrics.

    Raises InputShapeError for anything but a non-empty list.
    """
    rows = require_rows(raw_rows)
    processed = calculate_derived_metrics_rows(normalize_rows(rows))
    logger.info("Processed %d report rows", len(processed))
    return processed


def calculate_analytics(
    rows: List[Mapping[str, Any]],
    customization: Optional[ReportCustomization] = None,
    cfg: Optional[AppConfig] = None,
) -> Dict[str, Any]:
    """Build the analytics object handed to the presentation layer."""
    if not rows:
        return {}
    cfg = cfg or AppConfig()

    analytics: Dict[str, Any] = {
        "summary": calculate_summary_metrics(rows).to_dict(),
        "trends": calculate_trends(rows).to_dict(),
        "performance": calculate_performance_metrics(rows).to_dict(),
        "recommendations": generate_recommendations(rows, cfg.recommendations),
        "cards": {},
        "chart": {},
    }
    if customization is not None:
        analytics["cards"] = calculate_card_metrics(
            rows,
            customization.selected_card_metrics,
            cfg.formatting.currency_symbol,
        )
        analytics["chart"] = calculate_chart_data(
            rows, customization.chart_metrics, customization.chart_type
        )
    return analytics


def generate_report(
    selection: ReportSelection,
    raw_rows: Any,
    customization: Optional[ReportCustomization] = None,
    cfg: Optional[AppConfig] = None,
) -> Dict[str, Any]:
    """Full report payload: processed rows, analytics and run metadata."""
    rows = process_report_data(raw_rows)
    analytics = calculate_analytics(rows, customization, cfg)

    return {
        "success": True,
        "data": rows,
        "analytics": analytics,
        "customization": customization.to_dict() if customization else None,
        "metadata": {
            "generatedAt": datetime.now(timezone.utc).isoformat(),
            "config": selection.to_dict(),
            "totalRows": len(rows),
            "dateRange": selection.date_range.label(),
            "days": date_range_days(selection.date_range.start, selection.date_range.end),
            "campaigns": len(selection.campaign_ids),
            "metrics": len(selection.metrics),
        },
    }


def run_report(
    input_path,
    output_dir,
    cfg: AppConfig,
    selection: Optional[ReportSelection] = None,
    customization: Optional[ReportCustomization] = None,
) -> Dict:
    """Execute the full report run and write outputs. Returns summary dict.

    Outputs (in *output_dir*):
    - evidencia.csv    — campaign-level table per ``cfg.evidencia``
    - performance.csv  — per-campaign totals and ratios
    - trends.csv       — per-date totals
    - analytics.json   — full report payload
    - report.md        — human-readable run summary
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    selection = selection or ReportSelection()

    # 1. Read + analyse
    raw_rows = read_metric_rows(input_path)
    report = generate_report(selection, raw_rows, customization, cfg)
    rows = report["data"]

    # 2. Evidencia table
    evidencia = prepare_evidencia_data(rows, cfg.evidencia)

    # 3. Write outputs
    analytics = report["analytics"]
    write_rows_csv(evidencia, output_dir / "evidencia.csv", cfg.evidencia.selected_fields or None)
    write_rows_csv(
        analytics["performance"]["byCampaign"],
        output_dir / "performance.csv",
        PERFORMANCE_COLUMNS,
    )
    write_rows_csv(analytics["trends"]["daily"], output_dir / "trends.csv", TREND_COLUMNS)
    write_json({**report, "evidencia": evidencia}, output_dir / "analytics.json")

    summary = {
        "total_rows": len(rows),
        "evidencia_rows": len(evidencia),
        "campaigns": len(analytics["performance"]["byCampaign"]),
        "days": len(analytics["trends"]["daily"]),
        "summary": analytics["summary"],
        "top_performer": analytics["performance"]["topPerformer"].get("campaign", ""),
        "bottom_performer": analytics["performance"]["bottomPerformer"].get("campaign", ""),
        "recommendations": analytics["recommendations"],
        "date_range": report["metadata"]["dateRange"],
        "platform": selection.platform,
    }
    table_cols = cfg.evidencia.selected_fields or [cfg.evidencia.group_by] + EVIDENCIA_TABLE_COLUMNS
    write_report(_format_report(summary, evidencia, table_cols), output_dir / "report.md")
    logger.info("Report written to %s", output_dir)
    return summary


def _format_report(summary: Dict, evidencia: List[Dict], columns: List[str]) -> str:
    s = summary.get("summary", {})

    lines = [
        "# Marketing Report — Run Summary",
        f"**Date:** {datetime.now(timezone.utc).strftime('%Y-%m-%d %H:%M UTC')}",
        f"**Platform:** {summary.get('platform') or 'Multiple'}",
        f"**Period:** {summary.get('date_range', '')}",
        "",
        "## Summary",
        f"- Rows analysed: {summary['total_rows']}",
        f"- Campaigns: {summary['campaigns']}",
        f"- Days with data: {summary['days']}",
        f"- Total cost: {s.get('totalCost', 0):,.2f}",
        f"- Impressions: {s.get('totalImpressions', 0):,}",
        f"- Clicks: {s.get('totalClicks', 0):,}",
        f"- Conversions: {s.get('totalConversions', 0):,}",
        f"- Revenue: {s.get('totalRevenue', 0):,.2f}",
        f"- CTR: {s.get('averageCTR', '0.00')}%",
        f"- CPC: {s.get('averageCPC', '0.00')}",
        f"- CPM: {s.get('averageCPM', '0.00')}",
        f"- ROAS: {s.get('roas', '0.00')}",
        "",
    ]

    if summary.get("top_performer"):
        lines += [
            "## Performance",
            f"- Top performer (ROAS): {summary['top_performer']}",
            f"- Bottom performer (ROAS): {summary['bottom_performer']}",
            "",
        ]

    recs = summary.get("recommendations") or []
    if recs:
        lines.append("## Flags")
        for r in recs:
            lines.append(
                f"- [{r['priority']}] {r['metric'].upper()} {r['value']:.2f} "
                f"(threshold {r['threshold']})"
            )
        lines.append("")

    if not evidencia:
        return "\n".join(lines)

    lines.append(f"## Evidencia ({summary['evidencia_rows']} rows)")
    lines.append("")
    cols = [c for c in columns if c in evidencia[0]]
    lines.append("| " + " | ".join(cols) + " |")
    lines.append("|" + "---|" * len(cols))
    for row in evidencia:
        lines.append("| " + " | ".join(_cell(row.get(c)) for c in cols) + " |")
    lines.append("")
    return "\n".join(lines)


def _cell(v: Any) -> str:
    if v is None:
        return ""
    if isinstance(v, float):
        return f"{v:,.2f}"
    return str(v)
