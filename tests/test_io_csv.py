"""Tests for io_csv helpers: warehouse exports in, report files out."""
from __future__ import annotations

import json
from pathlib import Path

import pytest

from adreport.io_csv import read_metric_rows, write_json, write_rows_csv
from adreport.mappers import InputShapeError


class TestReadMetricRows:
    def test_csv_keeps_ids_as_strings_and_blanks_as_none(self, tmp_path):
        p = tmp_path / "rows.csv"
        p.write_text(
            "date,campaign_id,campaign_name,cost,clicks\n"
            "2024-01-01,00123,A,10.5,3\n"
            "2024-01-02,00123,A,,4\n",
            encoding="utf-8",
        )
        rows = read_metric_rows(p)
        assert rows[0]["campaign_id"] == "00123"
        assert rows[0]["cost"] == 10.5
        assert rows[1]["cost"] is None

    def test_json_envelope(self, tmp_path):
        p = tmp_path / "rows.json"
        p.write_text(json.dumps({"success": True, "data": [{"cost": 1}]}), encoding="utf-8")
        assert read_metric_rows(p) == [{"cost": 1}]

    def test_json_failed_envelope(self, tmp_path):
        p = tmp_path / "rows.json"
        p.write_text(json.dumps({"success": False, "error": "boom"}), encoding="utf-8")
        with pytest.raises(InputShapeError, match="boom"):
            read_metric_rows(p)

    def test_json_bare_list(self, tmp_path):
        p = tmp_path / "rows.json"
        p.write_text(json.dumps([{"cost": 2}]), encoding="utf-8")
        assert read_metric_rows(p) == [{"cost": 2}]

    def test_json_bare_list_with_scalar_rows(self, tmp_path):
        p = tmp_path / "rows.json"
        p.write_text(json.dumps([{"cost": 2}, 7]), encoding="utf-8")
        with pytest.raises(InputShapeError, match="Row 1"):
            read_metric_rows(p)

    def test_json_scalar_payload(self, tmp_path):
        p = tmp_path / "rows.json"
        p.write_text("42", encoding="utf-8")
        with pytest.raises(InputShapeError, match="list of rows"):
            read_metric_rows(p)


class TestWriters:
    def test_columns_fix_order_and_fill_gaps(self, tmp_path):
        out = tmp_path / "nested" / "out.csv"
        write_rows_csv([{"b": 1, "a": 2}], out, ["a", "b", "c"])
        lines = out.read_text(encoding="utf-8").splitlines()
        assert lines[0] == "a,b,c"
        assert lines[1] == "2,1,"

    def test_no_bom(self, tmp_path):
        out = tmp_path / "out.csv"
        write_rows_csv([{"campaign": "Campaña"}], out)
        raw = out.read_bytes()
        assert not raw.startswith(b"\xef\xbb\xbf")
        assert "Campaña" in raw.decode("utf-8")

    def test_json_non_ascii(self, tmp_path):
        out = write_json({"range": "1 ene 2024 - 2 ene 2024", "name": "Campaña"}, tmp_path / "a.json")
        assert "Campaña" in Path(out).read_text(encoding="utf-8")
