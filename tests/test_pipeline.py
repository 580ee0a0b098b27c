"""Tests for per-year orchestration."""

from decimal import Decimal

from airline_recon import pipeline
from airline_recon.config import Settings
from airline_recon.models import ExtractedYearlyRecord, Provenance
from airline_recon.pipeline import YearInputs, reconcile_year, reconcile_years

HTML = """
<table>
  <tr><td></td><td>2024</td><td>2023</td></tr>
  <tr><td>Available seat miles (millions)</td><td>339,534</td><td>310,120</td></tr>
</table>
"""


def _external(fiscal_year, **values):
    return ExtractedYearlyRecord(
        fiscal_year=fiscal_year, provenance=Provenance.EXTERNAL_AGGREGATE, values=values,
    )


def test_results_are_newest_first():
    years = [YearInputs(fiscal_year=y) for y in (2021, 2024, 2022, 2023)]
    results = reconcile_years(years, max_workers=3)
    assert [r.fiscal_year for r in results] == [2024, 2023, 2022, 2021]


def test_empty_input():
    assert reconcile_years([]) == []


def test_document_html_fills_values():
    result = reconcile_year(YearInputs(
        fiscal_year=2023,
        document_html=HTML,
        external=_external(2023, available_seat_miles=Decimal("311000"), departures=Decimal("9")),
    ))
    assert result.value("available_seat_miles") == Decimal("310120")
    assert result.provenance("available_seat_miles") is Provenance.DOCUMENT_EXTRACTION
    assert result.value("departures") == Decimal("9")
    assert result.sources_used == [Provenance.DOCUMENT_EXTRACTION, Provenance.EXTERNAL_AGGREGATE]


def test_failed_extraction_drops_only_that_source(monkeypatch):
    def boom(*args, **kwargs):
        raise RuntimeError("parser exploded")

    monkeypatch.setattr(pipeline, "extract_document_record", boom)
    results = reconcile_years([
        YearInputs(fiscal_year=2023, document_html=HTML,
                   external=_external(2023, departures=Decimal("18000"))),
        YearInputs(fiscal_year=2022, external=_external(2022, departures=Decimal("17000"))),
    ])
    assert [r.value("departures") for r in results] == [Decimal("18000"), Decimal("17000")]
    assert results[0].sources_used == [Provenance.EXTERNAL_AGGREGATE]


def test_external_aggregate_can_be_disabled(monkeypatch):
    monkeypatch.setattr(
        pipeline, "get_config",
        lambda: Settings(_env_file=None, external_aggregate_enabled=False),
    )
    result = reconcile_year(YearInputs(
        fiscal_year=2023, external=_external(2023, departures=Decimal("18000")),
    ))
    assert result.metrics == {}
    assert result.sources_used == []


def test_mismatched_record_does_not_abort_the_batch():
    results = reconcile_years([
        YearInputs(fiscal_year=2023, external=_external(2022, departures=Decimal("17000"))),
        YearInputs(fiscal_year=2024, external=_external(2024, departures=Decimal("19000"))),
    ])
    assert [r.fiscal_year for r in results] == [2024, 2023]
    assert results[0].value("departures") == Decimal("19000")
    assert results[1].metrics == {}
