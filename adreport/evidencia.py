"""Build the campaign-level "evidencia" table used as backup in exports."""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Dict, Iterable, List, Mapping, Optional

from adreport.aggregator import (
    aggregate_by_period,
    filter_selected_fields,
    sort_aggregated_data,
)
from adreport.config import EvidenciaConfig

logger = logging.getLogger(__name__)


def prepare_evidencia_data(
    raw_rows: Optional[Iterable[Mapping[str, Any]]],
    config: Optional[EvidenciaConfig] = None,
    **overrides: Any,
) -> List[Dict[str, Any]]:
    """Aggregate, sort, truncate and project *raw_rows*, in that order.

    Keyword overrides (``group_by``, ``selected_fields``, ``sort_by``,
    ``sort_order``, ``max_rows``) take precedence over *config*.

    Example::

        rows = prepare_evidencia_data(raw, group_by="campaign", max_rows=10,
                                      selected_fields=["campaign", "cost", "date_range"])
    """
    cfg = replace(config or EvidenciaConfig(), **overrides)

    aggregated = aggregate_by_period(raw_rows, cfg.group_by)
    aggregated = sort_aggregated_data(aggregated, cfg.sort_by, cfg.sort_order)

    if cfg.max_rows and cfg.max_rows > 0:
        aggregated = aggregated[: cfg.max_rows]

    if cfg.selected_fields:
        aggregated = filter_selected_fields(aggregated, cfg.selected_fields)

    logger.info(
        "Prepared %d evidencia rows (group_by=%s, sort=%s %s)",
        len(aggregated),
        cfg.group_by,
        cfg.sort_by,
        cfg.sort_order,
    )
    return aggregated
