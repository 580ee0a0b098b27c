"""Fiscal-year column resolution for multi-year table rows.

Annual reports present operating statistics side by side for two or three
years ("2024  2023  2022").  Given the numeric candidates of one matching row,
pick the one that belongs to the target fiscal year, or give up.

Strategies are tried in order, first success wins:

  1. single candidate      → return it, no year context needed
  2. header alignment      → target year in one of the first rows of the table
  3. adjacent cell         → target year within ±N cells of a candidate
  4. year sequence         → "2024 2023 2022" anywhere in the table text
  5. give up               → NoMatch; the metric is absent for this source

There is deliberately no "take the first column" fallback.  A wrong year's
figure is worse than no figure.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from decimal import Decimal
from typing import Callable

from airline_recon.document import ParsedTable

log = logging.getLogger(__name__)

_YEAR_SEQUENCE_RE = re.compile(r"\b((?:19|20)\d{2})\s+((?:19|20)\d{2})\s+((?:19|20)\d{2})\b")


# ═══════════════════════════════════════════════════════════════════════════
#  Candidates and results
# ═══════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class RawTableCandidate:
    """One numeric cell of a matching row."""

    text: str
    value: Decimal
    column: int               # cell index within the row
    row_index: int            # row index within the table
    table: ParsedTable

    @property
    def row_cells(self) -> list[str]:
        return self.table.rows[self.row_index]


@dataclass(frozen=True)
class Match:
    candidate: RawTableCandidate
    strategy: str


@dataclass(frozen=True)
class NoMatch:
    reason: str


Resolution = Match | NoMatch


@dataclass(frozen=True)
class _Context:
    target_year: str
    table: ParsedTable
    header_rows: int
    window: int


# ═══════════════════════════════════════════════════════════════════════════
#  Strategies
# ═══════════════════════════════════════════════════════════════════════════

def _single_candidate(cands: list[RawTableCandidate], ctx: _Context) -> Resolution:
    if len(cands) == 1:
        return Match(cands[0], "single_candidate")
    return NoMatch("multiple candidates")


def _header_alignment(cands: list[RawTableCandidate], ctx: _Context) -> Resolution:
    """Year in a header cell → candidate at the same position.

    Header rows usually carry an empty (or label) leading cell, so header
    column k maps to the (k-1)-th candidate; a year in the very first cell
    maps to the first candidate.
    """
    n = len(cands)
    for row_idx, header in enumerate(ctx.table.rows[: ctx.header_rows]):
        for cell_idx, cell in enumerate(header):
            if ctx.target_year not in cell:
                continue
            if 0 < cell_idx and cell_idx - 1 < n:
                log.debug("Header row %d column %d → candidate %d for %s",
                          row_idx, cell_idx, cell_idx - 1, ctx.target_year)
                return Match(cands[cell_idx - 1], "header_alignment")
            if cell_idx < n:
                log.debug("Header row %d column %d → candidate %d (direct) for %s",
                          row_idx, cell_idx, cell_idx, ctx.target_year)
                return Match(cands[cell_idx], "header_alignment")
    return NoMatch("target year not in header rows")


def _adjacent_cell(cands: list[RawTableCandidate], ctx: _Context) -> Resolution:
    for i, cand in enumerate(cands):
        cells = cand.row_cells
        lo = max(0, cand.column - ctx.window)
        hi = min(len(cells), cand.column + ctx.window + 1)
        for check in range(lo, hi):
            if ctx.target_year in cells[check]:
                log.debug("Adjacent cell %d holds %s → candidate %d", check, ctx.target_year, i)
                return Match(cand, "adjacent_cell")
    return NoMatch("target year not adjacent to any candidate")


def _year_sequence(cands: list[RawTableCandidate], ctx: _Context) -> Resolution:
    m = _YEAR_SEQUENCE_RE.search(ctx.table.text)
    if m is None:
        return NoMatch("no year sequence in table")
    for pos, year in enumerate(m.groups()):
        if year == ctx.target_year and pos < len(cands):
            log.debug("Year sequence %s → candidate %d", m.group(0), pos)
            return Match(cands[pos], "year_sequence")
    return NoMatch("target year not in year sequence")


_STRATEGIES: tuple[Callable[[list[RawTableCandidate], _Context], Resolution], ...] = (
    _single_candidate,
    _header_alignment,
    _adjacent_cell,
    _year_sequence,
)


# ═══════════════════════════════════════════════════════════════════════════
#  Public API
# ═══════════════════════════════════════════════════════════════════════════

def resolve_column(
    candidates: list[RawTableCandidate],
    target_year: str | int,
    table: ParsedTable,
    *,
    header_rows: int | None = None,
    window: int | None = None,
) -> Resolution:
    """Run the strategies in order and return the first Match, else NoMatch."""
    if not candidates:
        return NoMatch("no candidates")
    if header_rows is None or window is None:
        from airline_recon.config import get_config
        cfg = get_config()
        header_rows = cfg.header_scan_rows if header_rows is None else header_rows
        window = cfg.adjacent_cell_window if window is None else window

    ctx = _Context(str(target_year), table, header_rows, window)
    for strategy in _STRATEGIES:
        result = strategy(candidates, ctx)
        if isinstance(result, Match):
            return result

    log.warning(
        "Could not match fiscal year %s to any column of table %d: %d candidate "
        "values, none justified by a year label; treating as absent",
        ctx.target_year, table.index, len(candidates),
    )
    return NoMatch("ambiguous")


def resolve(
    candidates: list[RawTableCandidate],
    target_year: str | int,
    table: ParsedTable,
    **kwargs,
) -> Decimal | None:
    """Value of the candidate aligned with *target_year*, or None."""
    result = resolve_column(candidates, target_year, table, **kwargs)
    return result.candidate.value if isinstance(result, Match) else None
