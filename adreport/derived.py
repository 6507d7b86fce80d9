"""Row-level derived metrics (CTR, CPM, CPC, ROAS, conversion rate, CPA).

Each derived metric is added as a 2-decimal string only when both of its
inputs are present on the row and the denominator is > 0.  Otherwise the
field is left off the row entirely; it is never set to 0 or None here.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping

from adreport.coerce import is_missing, to_fixed, to_float
from adreport.schema import RATIO_METRICS


def _present(row: Mapping[str, Any], name: str) -> bool:
    return name in row and not is_missing(row[name])


def calculate_derived_metrics(row: Mapping[str, Any]) -> Dict[str, Any]:
    """Return a copy of *row* with the derivable ratio metrics added."""
    out = dict(row)
    for derived, (num, den, scale) in RATIO_METRICS.items():
        if not (_present(row, num) and _present(row, den)):
            continue
        denominator = to_float(row[den])
        if denominator <= 0:
            continue
        out[derived] = to_fixed(to_float(row[num]) / denominator * scale)
    return out


def calculate_derived_metrics_rows(rows: Iterable[Mapping[str, Any]]) -> List[Dict[str, Any]]:
    return [calculate_derived_metrics(r) for r in rows]
