"""Tests for root logger setup."""
from __future__ import annotations

import json
import logging
import sys

import pytest

from adreport.logging_config import JSONFormatter, configure_logging


@pytest.fixture
def clean_env(monkeypatch):
    monkeypatch.delenv("LOG_LEVEL", raising=False)
    monkeypatch.delenv("LOG_FORMAT", raising=False)
    return monkeypatch


@pytest.mark.parametrize(
    "env_level, explicit, expected",
    [
        (None, None, logging.INFO),
        ("debug", None, logging.DEBUG),
        ("DEBUG", "error", logging.ERROR),
        ("verbose", None, logging.INFO),
    ],
)
def test_level_resolution(clean_env, env_level, explicit, expected):
    if env_level:
        clean_env.setenv("LOG_LEVEL", env_level)
    configure_logging(explicit)
    root = logging.getLogger()
    assert root.level == expected
    assert root.handlers[0].level == expected


def test_repeat_calls_keep_one_handler(clean_env):
    for _ in range(3):
        configure_logging()
    assert len(logging.getLogger().handlers) == 1


def test_text_lines_carry_level_and_logger(clean_env, capsys):
    configure_logging("INFO")
    logging.getLogger("adreport.report").warning("wrote %d rows", 3)
    err = capsys.readouterr().err
    assert "[WARNING] adreport.report: wrote 3 rows" in err


def test_json_lines_parse(clean_env, capsys):
    clean_env.setenv("LOG_FORMAT", "JSON")
    configure_logging("INFO")
    logging.getLogger("adreport.io_csv").info("read %s", "Campaña.csv")
    entry = json.loads(capsys.readouterr().err.strip().splitlines()[-1])
    assert entry["msg"] == "read Campaña.csv"
    assert entry["level"] == "INFO"
    assert entry["logger"] == "adreport.io_csv"
    assert "exc" not in entry


def test_below_threshold_is_dropped(clean_env, capsys):
    configure_logging("WARNING")
    logging.getLogger("adreport").info("hidden")
    assert "hidden" not in capsys.readouterr().err


def test_third_party_chatter_raised_to_warning(clean_env):
    configure_logging("DEBUG")
    assert logging.getLogger("urllib3").level == logging.WARNING


def test_json_formatter_attaches_traceback():
    try:
        {}["missing"]
    except KeyError:
        record = logging.LogRecord(
            "adreport.cli", logging.ERROR, __file__, 10, "lookup failed", (), sys.exc_info()
        )
    entry = json.loads(JSONFormatter().format(record))
    assert entry["msg"] == "lookup failed"
    assert "KeyError" in entry["exc"]
