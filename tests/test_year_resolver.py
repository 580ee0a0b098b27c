"""Tests for fiscal-year column resolution."""

import logging
from decimal import Decimal

from airline_recon.document import ParsedTable
from airline_recon.metric_catalog import ASM, BLOCK_HOURS, get_entry
from airline_recon.table_scanner import row_candidates
from airline_recon.year_resolver import Match, NoMatch, resolve, resolve_column


def _cands(table, row_idx, metric=ASM):
    return row_candidates(table, row_idx, get_entry(metric))


def test_header_alignment_scenario():
    table = ParsedTable(rows=[
        ["", "2024", "2023"],
        ["Available seat miles (millions)", "339,534", "310,120"],
    ])
    result = resolve_column(_cands(table, 1), "2023", table)
    assert isinstance(result, Match)
    assert result.strategy == "header_alignment"
    assert result.candidate.value == Decimal("310120")
    assert resolve(_cands(table, 1), "2024", table) == Decimal("339534")


def test_single_candidate_needs_no_year():
    table = ParsedTable(rows=[["Block hours", "1,234,567"]])
    result = resolve_column(_cands(table, 0, BLOCK_HOURS), "2019", table)
    assert isinstance(result, Match)
    assert result.strategy == "single_candidate"
    assert result.candidate.value == Decimal("1234567")


def test_adjacent_cell_alignment():
    table = ParsedTable(rows=[
        ["Operating statistics"],
        ["Mainline"],
        ["Consolidated"],
        ["ASMs", "2022", "290,000", "", "", "2023", "310,120"],
    ])
    cands = _cands(table, 3)
    assert [c.value for c in cands] == [Decimal("290000"), Decimal("310120")]

    result = resolve_column(cands, "2023", table)
    assert isinstance(result, Match)
    assert result.strategy == "adjacent_cell"
    assert result.candidate.value == Decimal("310120")
    assert resolve(cands, "2022", table) == Decimal("290000")


def test_year_sequence_in_caption():
    table = ParsedTable(
        rows=[
            ["Operating statistics"],
            ["Mainline"],
            ["Consolidated"],
            ["Available seat miles", "339,534", "310,120", "290,000"],
        ],
        caption="Years ended December 31, 2024 2023 2022",
    )
    result = resolve_column(_cands(table, 3), "2023", table)
    assert isinstance(result, Match)
    assert result.strategy == "year_sequence"
    assert result.candidate.value == Decimal("310120")


def test_unmatched_year_is_absent_not_guessed(caplog):
    table = ParsedTable(rows=[["Available seat miles", "339,534", "310,120"]])
    with caplog.at_level(logging.WARNING, logger="airline_recon.year_resolver"):
        result = resolve_column(_cands(table, 0), "2021", table)
    assert isinstance(result, NoMatch)
    assert resolve(_cands(table, 0), "2021", table) is None
    assert "2 candidate" in caplog.text


def test_year_outside_header_window_is_ignored():
    table = ParsedTable(rows=[
        ["Operating statistics"],
        ["Mainline"],
        ["Consolidated"],
        ["", "2024", "2023"],
        ["Available seat miles", "339,534", "310,120"],
    ])
    assert resolve(_cands(table, 4), "2023", table, header_rows=3) is None
    assert resolve(_cands(table, 4), "2023", table, header_rows=4) == Decimal("310120")


def test_no_candidates():
    table = ParsedTable(rows=[["Available seat miles", "n/a"]])
    assert isinstance(resolve_column([], "2023", table), NoMatch)
