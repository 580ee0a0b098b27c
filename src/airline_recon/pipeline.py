"""Per-year orchestration: document extraction + reconciliation, fanned out.

Years are independent of each other.  Each year's work only reads the shared
catalog, so years run on a thread pool and the results are ordered by fiscal
year (newest first) regardless of completion order.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Iterable

from airline_recon.config import get_config
from airline_recon.document_extractor import extract_document_record
from airline_recon.models import ExtractedYearlyRecord, ReconciledYearlyRecord
from airline_recon.reconciler import reconcile

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class YearInputs:
    """Already-fetched inputs for one fiscal year; any of them may be missing."""

    fiscal_year: int
    structured: ExtractedYearlyRecord | None = None
    document_html: str | None = None
    external: ExtractedYearlyRecord | None = None


def _document_record(inputs: YearInputs) -> ExtractedYearlyRecord | None:
    if not inputs.document_html:
        return None
    try:
        return extract_document_record(inputs.document_html, inputs.fiscal_year)
    except Exception as e:
        log.warning("Document extraction failed for FY%s, treating source as unavailable: %s",
                    inputs.fiscal_year, e)
        return None


def reconcile_year(inputs: YearInputs) -> ReconciledYearlyRecord:
    """Extract the year's document (if any) and reconcile all three sources."""
    document = _document_record(inputs)
    external = inputs.external
    if external is not None and not get_config().external_aggregate_enabled:
        log.info("External aggregate disabled; ignoring it for FY%s", inputs.fiscal_year)
        external = None
    return reconcile(inputs.structured, document, external, fiscal_year=inputs.fiscal_year)


def reconcile_years(
    years: Iterable[YearInputs],
    max_workers: int | None = None,
) -> list[ReconciledYearlyRecord]:
    """Reconcile several fiscal years concurrently, newest year first."""
    years = list(years)
    if not years:
        return []
    max_workers = max_workers or get_config().max_workers

    results: list[ReconciledYearlyRecord] = []
    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        futures = {executor.submit(reconcile_year, y): y.fiscal_year for y in years}
        for future in as_completed(futures):
            record = future.result()
            log.debug("FY%s done", futures[future])
            results.append(record)

    results.sort(key=lambda r: r.fiscal_year, reverse=True)
    return results
