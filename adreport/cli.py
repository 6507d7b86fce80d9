"""CLI entry point for Ad Report."""

from __future__ import annotations

from dataclasses import replace

import click

from adreport import __version__
from adreport.aggregator import aggregate_hierarchical
from adreport.analytics import process_period_comparison
from adreport.config import DateRange, ReportCustomization, ReportSelection, load_config
from adreport.dates import DateRangeError, extract_active_dates, validate_date_range
from adreport.evidencia import prepare_evidencia_data
from adreport.io_csv import read_metric_rows, write_rows_csv
from adreport.logging_config import configure_logging
from adreport.mappers import InputShapeError, normalize_rows
from adreport.report import run_report


@click.group()
@click.version_option(version=__version__, prog_name="adreport")
@click.option("--log-level", default=None, help="Override LOG_LEVEL (DEBUG, INFO, ...)")
def cli(log_level: str | None):
    """Ad Report — shape warehouse ad rows into report analytics."""
    configure_logging(log_level)


@cli.command()
@click.option("--input", "input_path", required=True, help="Warehouse rows (CSV or JSON)")
@click.option("--out", "output_dir", default="output", help="Output directory")
@click.option("--config", "config_path", default="config.yaml", help="Config file path")
@click.option("--platform", default="", help="Platform label for the report header")
@click.option("--start", "start_date", default=None, help="Period start (YYYY-MM-DD)")
@click.option("--end", "end_date", default=None, help="Period end (YYYY-MM-DD)")
@click.option("--metric", "metrics", multiple=True, help="Selected metric (repeatable)")
@click.option("--card-metric", "card_metrics", multiple=True, help="Card metric (repeatable)")
@click.option("--chart-metric", "chart_metrics", multiple=True, help="Chart metric (repeatable)")
@click.option("--chart-type", default="line", show_default=True)
def run(
    input_path: str,
    output_dir: str,
    config_path: str,
    platform: str,
    start_date: str | None,
    end_date: str | None,
    metrics: tuple,
    card_metrics: tuple,
    chart_metrics: tuple,
    chart_type: str,
):
    """Run the full report: analytics, evidencia table and summary."""
    cfg = load_config(config_path)

    try:
        if start_date and end_date:
            validate_date_range(start_date, end_date, max_days=cfg.dates.max_range_days)
    except DateRangeError as exc:
        raise click.ClickException(str(exc))

    selection = ReportSelection(
        platform=platform,
        metrics=list(metrics),
        date_range=DateRange(start=start_date, end=end_date),
    )
    customization = None
    if card_metrics or chart_metrics:
        customization = ReportCustomization(
            selected_card_metrics=list(card_metrics),
            chart_metrics=list(chart_metrics),
            chart_type=chart_type,
        )

    click.echo(f"📂 Input:  {input_path}")
    click.echo(f"📂 Output: {output_dir}")

    try:
        summary = run_report(input_path, output_dir, cfg, selection, customization)
    except InputShapeError as exc:
        raise click.ClickException(str(exc))

    s = summary["summary"]
    click.echo("")
    click.echo("✅ Report complete!")
    click.echo(f"   Rows analysed:  {summary['total_rows']}")
    click.echo(f"   Campaigns:      {summary['campaigns']}")
    click.echo(f"   Days:           {summary['days']}")
    click.echo(f"   Total cost:     {s['totalCost']:,.2f}")
    click.echo(f"   CTR / CPC / ROAS: {s['averageCTR']}% / {s['averageCPC']} / {s['roas']}")
    if summary["top_performer"]:
        click.echo(f"   Top performer:  {summary['top_performer']}")
    click.echo(f"   Files written to: {output_dir}/")


@cli.command()
@click.option("--input", "input_path", required=True, help="Warehouse rows (CSV or JSON)")
@click.option("--out", "out_path", default="output/evidencia.csv", show_default=True)
@click.option("--config", "config_path", default="config.yaml", help="Config file path")
@click.option("--group-by", default=None, help="Grouping field (default from config)")
@click.option("--sort-by", default=None, help="Sort field (default from config)")
@click.option("--order", type=click.Choice(["asc", "desc"]), default=None)
@click.option("--max-rows", type=int, default=None)
@click.option("--field", "fields", multiple=True, help="Output field (repeatable)")
def evidencia(
    input_path: str,
    out_path: str,
    config_path: str,
    group_by: str | None,
    sort_by: str | None,
    order: str | None,
    max_rows: int | None,
    fields: tuple,
):
    """Write the aggregated evidencia table as CSV."""
    cfg = load_config(config_path).evidencia
    overrides = {
        "group_by": group_by,
        "sort_by": sort_by,
        "sort_order": order,
        "max_rows": max_rows,
        "selected_fields": list(fields) or None,
    }
    cfg = replace(cfg, **{k: v for k, v in overrides.items() if v is not None})

    try:
        rows = normalize_rows(read_metric_rows(input_path))
    except InputShapeError as exc:
        raise click.ClickException(str(exc))

    table = prepare_evidencia_data(rows, cfg)
    write_rows_csv(table, out_path, cfg.selected_fields or None)
    click.echo(f"✅ Wrote {len(table)} evidencia rows to {out_path}")


@cli.command()
@click.option("--input", "input_path", required=True, help="Warehouse rows (CSV or JSON)")
@click.option("--out", "out_path", default="output/hierarchy.csv", show_default=True)
@click.option(
    "--level",
    "levels",
    multiple=True,
    default=("account_name", "campaign_name"),
    show_default=True,
    help="Grouping field per hierarchy level, outermost first (repeatable)",
)
def hierarchy(input_path: str, out_path: str, levels: tuple):
    """Aggregate by a multi-level key (e.g. account → campaign)."""
    try:
        rows = normalize_rows(read_metric_rows(input_path))
    except InputShapeError as exc:
        raise click.ClickException(str(exc))

    table = aggregate_hierarchical(rows, list(levels))
    write_rows_csv(table, out_path)
    click.echo(f"✅ Wrote {len(table)} rows ({' → '.join(levels)}) to {out_path}")


@cli.command()
@click.option(
    "--input",
    "input_path",
    required=True,
    help="Totals rows tagged with a 'period' column (current / previous)",
)
@click.option("--metric", "metrics", multiple=True, help="Metric to compare (repeatable)")
def compare(input_path: str, metrics: tuple):
    """Period-over-period change for each metric."""
    try:
        rows = read_metric_rows(input_path)
    except InputShapeError as exc:
        raise click.ClickException(str(exc))

    result = process_period_comparison(rows, list(metrics) or None)
    if not result.changes:
        raise click.ClickException("No metrics to compare.")

    click.echo(f"{'metric':<20} {'current':>14} {'previous':>14} {'abs':>14} {'pct':>9}")
    for m, ch in result.changes.items():
        click.echo(
            f"{m:<20} {result.current.get(m, 0):>14,.2f} {result.previous.get(m, 0):>14,.2f} "
            f"{ch['absolute']:>14,.2f} {ch['percentage']:>8}%"
        )


@cli.command("active-dates")
@click.option("--input", "input_path", required=True, help="Warehouse rows (CSV or JSON)")
@click.option("--campaign", "campaigns", multiple=True, required=True, help="Campaign id (repeatable)")
def active_dates(input_path: str, campaigns: tuple):
    """List the first/last date with data for each campaign."""
    try:
        rows = normalize_rows(read_metric_rows(input_path))
    except InputShapeError as exc:
        raise click.ClickException(str(exc))

    found = extract_active_dates(rows, list(campaigns))
    if not found:
        raise click.ClickException("No active dates available for selected campaigns")

    for cid in campaigns:
        info = found.get(cid)
        if info is None:
            click.echo(f"⚠️  {cid}: no data")
            continue
        click.echo(
            f"📅 {cid}: {info['start_date']} → {info['end_date']} "
            f"({len(info['active_dates'])} days)"
        )


if __name__ == "__main__":
    cli()
