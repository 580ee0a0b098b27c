"""Locate a catalog metric in a document's tables.

For each table that passes the metric's gates, rows are matched against the
inclusion / exclusion phrases; numeric cells of a matching row become
RawTableCandidates, the year resolver picks the target year's column and
units.normalize() brings it to the canonical unit.  The first accepted value
wins; matching rows are never averaged.  The one exception is a metric
with component rows (regional revenue), summed by scan_table_components
only when no row of its own resolves.
"""

from __future__ import annotations

import logging
import re
from decimal import Decimal
from functools import lru_cache

from airline_recon.document import ParsedDocument, ParsedTable
from airline_recon.metric_catalog import MILLIONS, CanonicalUnit, MetricCatalogEntry
from airline_recon.units import in_plausible_range, normalize, parse_number, unit_token_from_text
from airline_recon.year_resolver import Match, RawTableCandidate, resolve_column

log = logging.getLogger(__name__)

# "339,534"  "$ 1,234.5"  "84.5%"  "12.3 (a)".  Parenthesized values are
# year-over-year changes, not levels.
_NUMERIC_CELL_RE = re.compile(
    r"^\$?\s*(?:\d{1,3}(?:,\d{3})+|\d+)(?:\.\d+)?\s*%?\s*(?:\(\s*[a-zA-Z\d]{1,2}\s*\))?$"
)
_BARE_YEAR_RE = re.compile(r"^(?:19|20)\d{2}$")


# ═══════════════════════════════════════════════════════════════════════════
#  Phrase matching
# ═══════════════════════════════════════════════════════════════════════════

@lru_cache(maxsize=512)
def _phrase_re(phrase: str) -> re.Pattern[str]:
    # Letter boundaries so "asm" does not hit "casm" and "per" not "operating"
    return re.compile(rf"(?<![a-z]){re.escape(phrase)}(?![a-z])")


def contains_phrase(text: str, phrases: tuple[str, ...]) -> bool:
    """True if any phrase occurs in lower-cased *text* on letter boundaries."""
    return any(_phrase_re(p).search(text) for p in phrases)


def table_matches(table: ParsedTable, metric: MetricCatalogEntry) -> bool:
    text = table.text.lower()
    if metric.table_gate and not contains_phrase(text, metric.table_gate):
        return False
    if metric.table_exclude and contains_phrase(text, metric.table_exclude):
        return False
    return contains_phrase(text, metric.include)


def row_matches(row_text: str, metric: MetricCatalogEntry) -> bool:
    text = row_text.lower()
    if metric.exclude and contains_phrase(text, metric.exclude):
        return False
    return contains_phrase(text, metric.include)


# ═══════════════════════════════════════════════════════════════════════════
#  Candidates
# ═══════════════════════════════════════════════════════════════════════════

def row_candidates(
    table: ParsedTable, row_idx: int, metric: MetricCatalogEntry,
) -> list[RawTableCandidate]:
    """Numeric cells of one row above the metric's magnitude floor."""
    allow_percent = metric.unit is CanonicalUnit.PERCENTAGE
    out: list[RawTableCandidate] = []
    for col, cell in enumerate(table.rows[row_idx]):
        text = cell.strip()
        if not text or _BARE_YEAR_RE.match(text) or not _NUMERIC_CELL_RE.match(text):
            continue
        if "%" in text and not allow_percent:
            continue
        value = parse_number(text)
        if value is None or value <= metric.min_magnitude:
            continue
        out.append(RawTableCandidate(text, value, col, row_idx, table))
    return out


def _unit_token(table: ParsedTable, row_text: str, metric: MetricCatalogEntry, header_rows: int) -> str:
    """Row-level unit words first, then the table caption / header rows.

    The header fallback only applies to metrics that are normally tabulated
    in millions; count metrics share tables with "(in millions)" captions
    while being stated in absolute numbers.
    """
    token = unit_token_from_text(row_text)
    if token or metric.default_scale != MILLIONS:
        return token
    context = " ".join([table.caption] + [table.row_text(i) for i in range(min(header_rows, len(table.rows)))])
    return unit_token_from_text(context)


# ═══════════════════════════════════════════════════════════════════════════
#  Scanner
# ═══════════════════════════════════════════════════════════════════════════

def _settings(header_rows: int | None, window: int | None) -> tuple[int, int]:
    if header_rows is None or window is None:
        from airline_recon.config import get_config
        cfg = get_config()
        header_rows = cfg.header_scan_rows if header_rows is None else header_rows
        window = cfg.adjacent_cell_window if window is None else window
    return header_rows, window


def _row_value(
    table: ParsedTable,
    row_idx: int,
    metric: MetricCatalogEntry,
    year: str,
    header_rows: int,
    window: int,
) -> tuple[Decimal, Match, int] | None:
    """Year-aligned, normalized value of one matching row (unchecked range)."""
    cands = row_candidates(table, row_idx, metric)
    if not cands:
        return None
    result = resolve_column(cands, year, table, header_rows=header_rows, window=window)
    if not isinstance(result, Match):
        return None
    token = _unit_token(table, table.row_text(row_idx), metric, header_rows)
    value = normalize(result.candidate.text, token, metric)
    if value is None:
        return None
    return value, result, len(cands)


def scan_tables(
    document: ParsedDocument,
    metric: MetricCatalogEntry,
    target_year: str | int,
    *,
    header_rows: int | None = None,
    window: int | None = None,
) -> Decimal | None:
    """First table value for *metric* aligned with *target_year*, or None."""
    if not metric.scannable:
        return None
    header_rows, window = _settings(header_rows, window)

    year = str(target_year)
    for table in document.tables:
        if not table_matches(table, metric):
            continue
        for row_idx in range(len(table.rows)):
            row_text = table.row_text(row_idx)
            if not row_matches(row_text, metric):
                continue
            found = _row_value(table, row_idx, metric, year, header_rows, window)
            if found is None:
                continue
            value, result, n_cands = found
            if not in_plausible_range(value, metric):
                log.info("Rejected %s=%s from table %d (outside plausible range)",
                         metric.name, value, table.index)
                continue

            log.info("Found %s=%s in table %d via %s (row: %.80s, %d candidates)",
                     metric.name, value, table.index, result.strategy, row_text, n_cands)
            return value

    log.debug("No table value for %s (FY%s)", metric.name, year)
    return None


def scan_table_components(
    document: ParsedDocument,
    metric: MetricCatalogEntry,
    target_year: str | int,
    *,
    header_rows: int | None = None,
    window: int | None = None,
) -> Decimal | None:
    """Sum of the metric's component rows in the first table that has them.

    Regional breakdowns ("Atlantic", "Pacific", "Latin America") add up to
    international revenue.  Every component row of the table must resolve
    to the target year; a table with an unresolved row yields no sum.
    """
    if not metric.components:
        return None
    header_rows, window = _settings(header_rows, window)

    year = str(target_year)
    for table in document.tables:
        text = table.text.lower()
        if metric.table_gate and not contains_phrase(text, metric.table_gate):
            continue
        if metric.table_exclude and contains_phrase(text, metric.table_exclude):
            continue
        if not contains_phrase(text, metric.components):
            continue

        total = Decimal(0)
        rows = 0
        complete = True
        for row_idx in range(len(table.rows)):
            row_text = table.row_text(row_idx).lower()
            if contains_phrase(row_text, metric.exclude) or not contains_phrase(row_text, metric.components):
                continue
            if not row_candidates(table, row_idx, metric):
                continue
            found = _row_value(table, row_idx, metric, year, header_rows, window)
            if found is None:
                log.info("Component row of table %d not aligned with FY%s: %.80s",
                         table.index, year, row_text)
                complete = False
                break
            total += found[0]
            rows += 1

        if not complete or rows == 0:
            continue
        if not in_plausible_range(total, metric):
            log.info("Rejected %s=%s summed from %d rows of table %d",
                     metric.name, total, rows, table.index)
            continue
        log.info("Found %s=%s as the sum of %d component rows in table %d",
                 metric.name, total, rows, table.index)
        return total

    return None
