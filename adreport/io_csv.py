"""Read warehouse exports and write report outputs (CSV / JSON / markdown)."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import pandas as pd

from adreport.mappers import InputShapeError, check_row_shapes, unwrap_envelope

logger = logging.getLogger(__name__)

# Identifiers are kept verbatim (leading zeros, long numeric ids).
_STRING_COLUMNS = {
    "account": str,
    "account_id": str,
    "campaign": str,
    "campaign_id": str,
    "adset_id": str,
    "ad_id": str,
    "team": str,
}


def _records(df: pd.DataFrame) -> List[Dict[str, Any]]:
    clean = df.astype(object).where(pd.notna(df), None)
    return clean.to_dict(orient="records")


def read_metric_rows(path: str | Path) -> List[Dict[str, Any]]:
    """Load warehouse rows from a CSV export or a JSON file.

    JSON may be a bare list of rows or a ``{"success", "data"}`` envelope.
    """
    p = Path(path)
    if p.suffix.lower() == ".json":
        payload = json.loads(p.read_text(encoding="utf-8"))
        if isinstance(payload, dict):
            rows = unwrap_envelope(payload)
        elif isinstance(payload, list):
            rows = check_row_shapes(payload)
        else:
            raise InputShapeError(
                f"{p.name} must hold a list of rows or a response envelope, "
                f"got {type(payload).__name__}."
            )
    else:
        df = pd.read_csv(p, dtype=_STRING_COLUMNS)
        rows = _records(df)
    logger.info("Read %d rows from %s", len(rows), p)
    return rows


def write_rows_csv(
    rows: List[Dict[str, Any]],
    path: str | Path,
    columns: Optional[Sequence[str]] = None,
) -> Path:
    """Write *rows* as CSV; *columns* fixes order and fills gaps with blanks."""
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    df = pd.DataFrame(rows)
    if columns:
        for col in columns:
            if col not in df.columns:
                df[col] = ""
        df = df[list(columns)]
    df.to_csv(p, index=False, encoding="utf-8")
    return p


def write_json(obj: Any, path: str | Path) -> Path:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(json.dumps(obj, ensure_ascii=False, indent=2, default=str), encoding="utf-8")
    return p


def write_report(text: str, path: str | Path) -> Path:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(text, encoding="utf-8")
    return p
