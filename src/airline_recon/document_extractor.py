"""Annual-report HTML → document-extraction ExtractedYearlyRecord.

Per metric: tables first (TableMetricScanner with year resolution), free
text only when no table produced a value.  Fleet composition is read from
aircraft-type rows of fleet tables (the "Total" column when there is one),
and fleet size falls back to the sum of those rows when no "total fleet"
row resolves and every row count is unambiguous.

Every metric is resolved against its own rows.  Cargo metrics in particular
never reuse the year column found for a passenger metric; a filer without a
cargo statistics row simply has no cargo value from this source.
"""

from __future__ import annotations

import logging
import re
from decimal import Decimal
from typing import Mapping

from airline_recon.document import ParsedDocument, ParsedTable, parse_document
from airline_recon.metric_catalog import (
    FLEET_COMPOSITION,
    FLEET_SIZE,
    MetricCatalogEntry,
    get_catalog,
)
from airline_recon.models import ExtractedYearlyRecord, MetricValue, Provenance
from airline_recon.table_scanner import contains_phrase, scan_table_components, scan_tables
from airline_recon.text_patterns import scan_text
from airline_recon.units import in_plausible_range

log = logging.getLogger(__name__)

_AIRCRAFT_RE = re.compile(
    r"(Boeing|Airbus|McDonnell|Embraer|Bombardier)\s+([A-Z]?\d{3}[A-Z]?(?:-\d+)?)",
    re.IGNORECASE,
)
_COUNT_CELL_RE = re.compile(r"^\d{1,3}(?:,\d{3})*$")
_MAX_TYPE_COUNT = 2000


# ═══════════════════════════════════════════════════════════════════════════
#  Fleet tables
# ═══════════════════════════════════════════════════════════════════════════

def _count(cell: str) -> int | None:
    text = cell.strip()
    if not _COUNT_CELL_RE.match(text):
        return None
    n = int(text.replace(",", ""))
    return n if 0 < n < _MAX_TYPE_COUNT else None


def _total_column(table: ParsedTable, header_rows: int) -> int | None:
    """Index of a "Total" header cell (never the label column), if any."""
    for row in table.rows[:header_rows]:
        if _AIRCRAFT_RE.search(" ".join(row)):
            continue
        for idx, cell in enumerate(row):
            if idx > 0 and contains_phrase(cell.lower(), ("total",)):
                return idx
    return None


def _type_count(cells: list[str], total_col: int | None = None) -> int | None:
    """Aircraft count of one type row.

    The "Total" column when the table has one, else the first plain integer
    cell (0 < n < 2000).
    """
    if total_col is not None:
        return _count(cells[total_col]) if total_col < len(cells) else None
    for cell in cells:
        n = _count(cell)
        if n is not None:
            return n
    return None


def _fleet_rows(
    tables: list[ParsedTable], gate: tuple[str, ...],
) -> tuple[list[tuple[int, str]], bool]:
    """Type rows of the first fleet table that has any, plus whether they add up.

    Counts add up to a fleet size only when each one is unambiguous: read
    from a "Total" column, or the single count cell of its row.  An
    Owned / Leased table without a total column does not.
    """
    from airline_recon.config import get_config
    header_rows = get_config().header_scan_rows

    for table in tables:
        if not contains_phrase(table.text.lower(), gate):
            continue
        total_col = _total_column(table, header_rows)
        found: list[tuple[int, str]] = []
        summable = True
        for row in table.rows:
            m = _AIRCRAFT_RE.search(" ".join(c for c in row if c))
            if not m:
                continue
            count = _type_count(row, total_col)
            if count is None:
                continue
            if total_col is None and sum(1 for c in row if _count(c) is not None) > 1:
                summable = False
            found.append((count, f"{m.group(1).title()} {m.group(2).upper()}"))
        if found:
            log.info("Fleet composition from table %d: %d aircraft types (total column: %s)",
                     table.index, len(found), total_col)
            return found, summable
    return [], False


def fleet_composition(
    tables: list[ParsedTable], gate: tuple[str, ...] = ("fleet", "aircraft"),
) -> list[tuple[int, str]]:
    """(count, "Manufacturer Model") pairs from the first fleet table that has any."""
    return _fleet_rows(tables, gate)[0]


def format_composition(pairs: list[tuple[int, str]]) -> str:
    return ", ".join(f"{n} {name}" for n, name in pairs)


# ═══════════════════════════════════════════════════════════════════════════
#  Extraction
# ═══════════════════════════════════════════════════════════════════════════

def extract_metric(
    document: ParsedDocument, metric: MetricCatalogEntry, fiscal_year: str | int,
) -> Decimal | None:
    """Table scan, component-row sum, then free-text fallback, for one metric."""
    value = scan_tables(document, metric, fiscal_year)
    if value is None and metric.components:
        value = scan_table_components(document, metric, fiscal_year)
    if value is None and metric.text_patterns:
        value = scan_text(document.full_text, metric)
    return value


def extract_document_record(
    document: str | ParsedDocument | None,
    fiscal_year: int,
    *,
    catalog: Mapping[str, MetricCatalogEntry] | None = None,
) -> ExtractedYearlyRecord:
    """Extract every document-visible catalog metric for *fiscal_year*."""
    catalog = catalog if catalog is not None else get_catalog()
    if document is None:
        document = ParsedDocument.empty()
    elif isinstance(document, str):
        document = parse_document(document)

    values: dict[str, MetricValue | None] = {}
    for name, metric in catalog.items():
        if not metric.numeric or name == FLEET_SIZE:
            continue
        if not (metric.scannable or metric.text_patterns):
            continue
        values[name] = extract_metric(document, metric, fiscal_year)

    # Fleet: explicit total row, else sum of aircraft-type rows, else text
    fleet_entry = catalog.get(FLEET_SIZE)
    composition_entry = catalog.get(FLEET_COMPOSITION)
    pairs, summable = _fleet_rows(
        document.tables,
        composition_entry.table_gate if composition_entry else ("fleet", "aircraft"),
    )
    if composition_entry is not None:
        values[FLEET_COMPOSITION] = format_composition(pairs) if pairs else None
    if fleet_entry is not None:
        size = scan_tables(document, fleet_entry, fiscal_year)
        if size is None and pairs and not summable:
            log.info("Fleet type rows carry several counts and no total column; "
                     "not summing them into a fleet size")
        elif size is None and pairs:
            size = Decimal(sum(n for n, _ in pairs))
            if not in_plausible_range(size, fleet_entry):
                log.info("Rejected fleet size %s summed from composition", size)
                size = None
        if size is None:
            size = scan_text(document.full_text, fleet_entry)
        values[FLEET_SIZE] = size

    found = sum(1 for v in values.values() if v is not None)
    log.info("Document extraction FY%s: %d of %d metrics found", fiscal_year, found, len(values))
    return ExtractedYearlyRecord(
        fiscal_year=fiscal_year,
        provenance=Provenance.DOCUMENT_EXTRACTION,
        values=values,
    )
