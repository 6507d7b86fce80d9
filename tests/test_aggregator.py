"""Tests for period / hierarchical aggregation, sorting and field projection."""
from __future__ import annotations

import pytest

from adreport.aggregator import (
    aggregate_by_period,
    aggregate_hierarchical,
    filter_selected_fields,
    group_value,
    sort_aggregated_data,
)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _daily_rows():
    return [
        {"campaign_name": "A", "date": "2024-01-01", "cost": 100, "impressions": 1000, "clicks": 20},
        {"campaign_name": "A", "date": "2024-01-02", "cost": 50, "impressions": 500, "clicks": 5},
    ]


def _mixed_rows():
    return [
        {"account_name": "Acc1", "campaign_name": "A", "date": "2024-01-03", "cost": 10, "impressions": 100, "clicks": 1, "revenue": 40},
        {"account_name": "Acc1", "campaign_name": "B", "date": "2024-01-01", "cost": 30, "impressions": 300, "clicks": 6, "revenue": 30},
        {"account_name": "Acc2", "campaign_name": "A", "date": "2024-01-02", "cost": 20, "impressions": 400, "clicks": 4},
        {"account_name": "Acc1", "campaign_name": "A", "date": "2024-01-01", "cost": 5, "impressions": 50, "clicks": 0},
        {"campaign_name": None, "date": "2024-01-04", "cost": 7},
    ]


# ---------------------------------------------------------------------------
# aggregate_by_period
# ---------------------------------------------------------------------------


class TestAggregateByPeriod:
    def test_two_day_campaign(self):
        (agg,) = aggregate_by_period(_daily_rows(), "campaign_name")
        assert agg["campaign_name"] == "A"
        assert agg["cost"] == 150
        assert agg["impressions"] == 1500
        assert agg["clicks"] == 25
        assert agg["ctr"] == pytest.approx(1.6667, abs=1e-3)
        assert agg["cpc"] == pytest.approx(6.0)
        assert agg["cpm"] == pytest.approx(100.0)
        assert agg["days_count"] == 2
        assert agg["date_start"] == "2024-01-01"
        assert agg["date_stop"] == "2024-01-02"
        assert agg["date_range"] == "1 ene 2024 - 2 ene 2024"

    def test_empty_input(self):
        assert aggregate_by_period([]) == []
        assert aggregate_by_period(None) == []

    def test_first_seen_order_and_unknown_key(self):
        out = aggregate_by_period(_mixed_rows(), "campaign_name")
        assert [r["campaign_name"] for r in out] == ["A", "B", "Unknown"]

    def test_totals_are_conserved(self):
        rows = _mixed_rows()
        out = aggregate_by_period(rows, "campaign_name")
        for metric in ("cost", "impressions", "clicks", "revenue"):
            expected = sum(r.get(metric) or 0 for r in rows)
            assert sum(r[metric] for r in out) == pytest.approx(expected)

    def test_zero_denominators_give_zero(self):
        (agg,) = aggregate_by_period([{"campaign_name": "X", "cost": 10}], "campaign_name")
        assert agg["ctr"] == 0
        assert agg["cpc"] == 0
        assert agg["cpm"] == 0
        assert agg["frequency"] == 0
        assert agg["roas"] == 0

    def test_input_rows_not_mutated(self):
        rows = _daily_rows()
        snapshot = [dict(r) for r in rows]
        aggregate_by_period(rows, "campaign_name")
        assert rows == snapshot

    def test_identity_from_last_non_empty(self):
        rows = [
            {"campaign_name": "A", "campaign_id": "1", "account_name": "Old", "status": "ACTIVE"},
            {"campaign_name": "A", "campaign_id": "", "account_name": "New", "status": None},
        ]
        (agg,) = aggregate_by_period(rows, "campaign_name")
        assert agg["campaign_id"] == "1"
        assert agg["account_name"] == "New"
        assert agg["status"] == "ACTIVE"

    def test_budget_keeps_max(self):
        rows = [
            {"campaign_name": "A", "budget": 50},
            {"campaign_name": "A", "budget": 80},
            {"campaign_name": "A", "budget": 20},
        ]
        (agg,) = aggregate_by_period(rows, "campaign_name")
        assert agg["budget"] == 80

    def test_percentage_metrics_are_averaged(self):
        rows = [
            {"campaign_name": "A", "p_video_play_100": 10},
            {"campaign_name": "A", "p_video_play_100": 30},
        ]
        (agg,) = aggregate_by_period(rows, "campaign_name")
        assert agg["p_video_play_100"] == pytest.approx(20.0)

    def test_tiktok_payment_roas(self):
        (agg,) = aggregate_by_period([{"campaign_name": "T", "cost": 10, "revenue": 25}])
        assert agg["p_complete_payment_roas"] == pytest.approx(2.5)
        assert agg["roas"] == pytest.approx(2.5)

    def test_date_range_absent_without_dates(self):
        (agg,) = aggregate_by_period([{"campaign_name": "A", "cost": 1}])
        assert "date_range" not in agg
        assert agg["date_start"] is None

    def test_reaggregation_is_idempotent(self):
        rows = [
            {"campaign_name": "A", "date": "2024-01-01", "cost": 100, "impressions": 1000, "clicks": 20},
            {"campaign_name": "A", "date": "2024-01-02", "cost": 50, "impressions": 500, "clicks": 5},
            {"campaign_name": "B", "date": "2024-01-01", "cost": 30, "impressions": 300, "clicks": 3},
        ]
        once = aggregate_by_period(rows, "campaign_name")
        twice = aggregate_by_period(once, "campaign_name")
        assert twice == once

    def test_reaggregation_keeps_weighted_percentages_and_state(self):
        rows = [
            {"campaign_name": "A", "date": {"value": "2024-01-01"}, "cost": 10, "revenue": 30,
             "p_video_play_100": 10, "status": "ACTIVE", "budget": 50},
            {"campaign_name": "A", "date": "2024-01-02", "cost": 5, "p_video_play_100": 40},
            {"campaign_name": "A", "date": "2024-01-03", "cost": 5, "p_video_play_100": 40,
             "status": "PAUSED", "budget": 20},
            {"campaign_name": "B", "date": "2024-01-01", "cost": 1},
        ]
        once = aggregate_by_period(rows, "campaign_name")
        assert once[0]["p_video_play_100"] == pytest.approx(30.0)
        assert aggregate_by_period(once, "campaign_name") == once


def test_group_value_unwraps_and_defaults():
    assert group_value({"date": {"value": "2024-01-01"}}, "date") == "2024-01-01"
    assert group_value({"campaign": "  "}, "campaign") == "Unknown"
    assert group_value({}, "campaign") == "Unknown"
    assert group_value({"campaign_id": 123}, "campaign_id") == "123"


# ---------------------------------------------------------------------------
# aggregate_hierarchical
# ---------------------------------------------------------------------------


class TestAggregateHierarchical:
    def test_composite_keys_and_level_tags(self):
        out = aggregate_hierarchical(_mixed_rows(), ["account_name", "campaign_name"])
        keys = [(r["level_0_account_name"], r["level_1_campaign_name"]) for r in out]
        assert keys == [("Acc1", "A"), ("Acc1", "B"), ("Acc2", "A"), ("Unknown", "Unknown")]
        acc1_a = out[0]
        assert acc1_a["cost"] == 15
        assert acc1_a["days_count"] == 2

    def test_single_level_matches_period_aggregation(self):
        rows = _mixed_rows()
        flat = aggregate_by_period(rows, "campaign_name")
        tree = aggregate_hierarchical(rows, ["campaign_name"])
        assert [r["cost"] for r in tree] == [r["cost"] for r in flat]

    def test_empty_field_list_rejected(self):
        with pytest.raises(ValueError):
            aggregate_hierarchical(_mixed_rows(), [])

    def test_empty_rows(self):
        assert aggregate_hierarchical([], ["campaign_name"]) == []


# ---------------------------------------------------------------------------
# sort / filter
# ---------------------------------------------------------------------------


class TestSortAndFilter:
    def test_sort_desc_and_asc(self):
        rows = [{"id": 1, "cost": 5}, {"id": 2, "cost": "20"}, {"id": 3}]
        assert [r["id"] for r in sort_aggregated_data(rows, "cost", "desc")] == [2, 1, 3]
        assert [r["id"] for r in sort_aggregated_data(rows, "cost", "asc")] == [3, 1, 2]

    def test_sort_is_stable(self):
        rows = [{"id": i, "cost": 10} for i in range(5)]
        assert [r["id"] for r in sort_aggregated_data(rows, "cost", "desc")] == list(range(5))
        assert [r["id"] for r in sort_aggregated_data(rows, "cost", "asc")] == list(range(5))

    def test_sort_empty(self):
        assert sort_aggregated_data([], "cost") == []

    def test_filter_projects_exact_fields(self):
        rows = [{"campaign": "A", "cost": 1, "clicks": 2, "date_start": "2024-01-01", "date_stop": "2024-01-02"}]
        out = filter_selected_fields(rows, ["campaign", "cost", "missing", "date_range"])
        assert out == [
            {"campaign": "A", "cost": 1, "missing": None, "date_range": "1 ene 2024 - 2 ene 2024"}
        ]

    def test_filter_empty_inputs(self):
        assert filter_selected_fields([], ["cost"]) == []
        assert filter_selected_fields([{"cost": 1}], []) == []
