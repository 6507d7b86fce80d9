"""Date-range validation and per-campaign active date extraction."""

from __future__ import annotations

from datetime import date
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from adreport.coerce import normalize_date


class DateRangeError(ValueError):
    pass


def _parse(v: Any, label: str) -> date:
    iso = normalize_date(v)
    if iso is None:
        raise DateRangeError(f"{label} is not a valid date: {v!r}")
    return date.fromisoformat(iso)


def validate_date_range(
    start: Any,
    end: Any,
    today: Optional[date] = None,
    max_days: int = 365,
) -> Dict[str, Any]:
    """Check a report date range and return ``{start, end, days_diff}``.

    Raises DateRangeError when start is after end, end is in the future, or
    the span exceeds *max_days*.
    """
    start_d = _parse(start, "Start date")
    end_d = _parse(end, "End date")
    today = today or date.today()

    if start_d > end_d:
        raise DateRangeError("Start date must be before end date")
    if end_d > today:
        raise DateRangeError("End date cannot be in the future")

    days_diff = (end_d - start_d).days
    if days_diff > max_days:
        raise DateRangeError(f"Date range cannot exceed {max_days} days")

    return {"start": start_d, "end": end_d, "days_diff": days_diff}


def date_range_days(start: Any, end: Any) -> int:
    """Inclusive number of days between *start* and *end*; 1 if either is unset."""
    s = normalize_date(start)
    e = normalize_date(end)
    if not s or not e:
        return 1
    return (date.fromisoformat(e) - date.fromisoformat(s)).days + 1


def _matches_campaign(row: Mapping[str, Any], campaign_id: str) -> bool:
    return any(
        row.get(f) == campaign_id for f in ("campaign", "campaign_id", "campaign_name")
    )


def extract_active_dates(
    rows: Iterable[Mapping[str, Any]],
    campaign_ids: Sequence[str],
) -> Dict[str, Dict[str, Any]]:
    """Map each campaign id to the sorted unique dates it has data for.

    Campaigns without any parseable date are left out of the result.
    """
    rows = list(rows)
    result: Dict[str, Dict[str, Any]] = {}
    for campaign_id in campaign_ids:
        dates: List[str] = sorted(
            {
                d
                for d in (normalize_date(r.get("date")) for r in rows if _matches_campaign(r, campaign_id))
                if d
            }
        )
        if dates:
            result[campaign_id] = {
                "start_date": dates[0],
                "end_date": dates[-1],
                "active_dates": dates,
            }
    return result
