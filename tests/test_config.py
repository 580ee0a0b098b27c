"""Tests for Settings."""

from decimal import Decimal

from airline_recon.config import Settings


def test_defaults():
    s = Settings(_env_file=None)
    assert s.header_scan_rows == 3
    assert s.adjacent_cell_window == 2
    assert s.load_factor_tolerance_pts == Decimal("2.0")
    assert s.cross_source_tolerance_pct == Decimal("20")


def test_log_level_is_stripped(monkeypatch):
    monkeypatch.setenv("LOG_LEVEL", ' "debug" ')
    assert Settings(_env_file=None).log_level == "DEBUG"


def test_env_override(monkeypatch):
    monkeypatch.setenv("CROSS_SOURCE_TOLERANCE_PCT", "10")
    monkeypatch.setenv("MAX_WORKERS", "8")
    s = Settings(_env_file=None)
    assert s.cross_source_tolerance_pct == Decimal("10")
    assert s.max_workers == 8
