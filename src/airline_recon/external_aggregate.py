"""Monthly statistical-authority rows → external-aggregate ExtractedYearlyRecord.

Inputs are the row shapes of the DOT/BTS tables, already fetched upstream:

  T-100 segment rows   PASSENGERS, RPM, ASM, FREIGHT_TON_MILES, MAIL_TON_MILES,
                       DEPARTURES_PERFORMED, optional AIR_HOURS, optional YEAR
  on-time rows         ARR_FLIGHTS, ARR_DEL15, CANCELLED, DIVERTED
  fleet inventory      AIRCRAFT_TYPE, YEAR_MANUFACTURED

Volumes are summed over the year; rates are recomputed from the summed
volumes, which weights every month by its volume.  T-100 miles are raw
miles and are scaled to millions here.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Iterable, Mapping

import pandas as pd

from airline_recon.metric_catalog import (
    ASM,
    BLOCK_HOURS,
    CANCELLATION_RATE,
    CTM,
    DEPARTURES,
    FLEET_AGE,
    FLEET_COMPOSITION,
    FLEET_SIZE,
    LOAD_FACTOR,
    ON_TIME,
    PASSENGERS,
    RPM,
)
from airline_recon.models import ExtractedYearlyRecord, MetricValue, Provenance

log = logging.getLogger(__name__)

_ONE_MILLION = Decimal("1000000")
_HUNDRED = Decimal("100")
_RATE_PLACES = Decimal("0.01")
_AGE_PLACES = Decimal("0.1")

Rows = Iterable[Mapping[str, Any]] | pd.DataFrame | None


# ═══════════════════════════════════════════════════════════════════════════
#  Helpers
# ═══════════════════════════════════════════════════════════════════════════

def _frame(rows: Rows) -> pd.DataFrame:
    if rows is None:
        return pd.DataFrame()
    if isinstance(rows, pd.DataFrame):
        return rows
    return pd.DataFrame(list(rows))


def _column_sum(df: pd.DataFrame, column: str) -> Decimal | None:
    """Exact Decimal sum of a column; None when the column is missing or empty."""
    if column not in df.columns:
        return None
    values = pd.to_numeric(df[column], errors="coerce").dropna()
    if values.empty:
        return None
    return sum((Decimal(str(v)) for v in values), Decimal(0))


def _pct(numerator: Decimal, denominator: Decimal) -> Decimal:
    return (numerator / denominator * _HUNDRED).quantize(_RATE_PLACES)


def _millions(value: Decimal | None) -> Decimal | None:
    return None if value is None else value / _ONE_MILLION


# ═══════════════════════════════════════════════════════════════════════════
#  Operations (T-100)
# ═══════════════════════════════════════════════════════════════════════════

def annualize_operations(monthly_rows: Rows, fiscal_year: int) -> ExtractedYearlyRecord:
    """Sum monthly T-100 rows for *fiscal_year* into one record.

    Rows carrying a YEAR column are filtered to the fiscal year; rows
    without one are assumed to be that year's already.
    """
    df = _frame(monthly_rows)
    if not df.empty and "YEAR" in df.columns:
        df = df[pd.to_numeric(df["YEAR"], errors="coerce") == fiscal_year]

    values: dict[str, MetricValue | None] = {}
    if df.empty:
        log.info("No T-100 rows for FY%s", fiscal_year)
    else:
        passengers = _column_sum(df, "PASSENGERS")
        rpm = _column_sum(df, "RPM")
        asm = _column_sum(df, "ASM")
        freight = _column_sum(df, "FREIGHT_TON_MILES")
        mail = _column_sum(df, "MAIL_TON_MILES")

        values[PASSENGERS] = passengers
        values[RPM] = _millions(rpm)
        values[ASM] = _millions(asm)
        values[DEPARTURES] = _column_sum(df, "DEPARTURES_PERFORMED")
        values[BLOCK_HOURS] = _column_sum(df, "AIR_HOURS")
        values[LOAD_FACTOR] = _pct(rpm, asm) if rpm is not None and asm else None
        if freight is not None:
            values[CTM] = _millions(freight + mail if mail is not None else freight)
        else:
            values[CTM] = None
        log.info("Annualized %d T-100 rows for FY%s", len(df), fiscal_year)

    return ExtractedYearlyRecord(
        fiscal_year=fiscal_year,
        provenance=Provenance.EXTERNAL_AGGREGATE,
        values=values,
    )


# ═══════════════════════════════════════════════════════════════════════════
#  On-time performance
# ═══════════════════════════════════════════════════════════════════════════

def annualize_on_time(monthly_rows: Rows) -> dict[str, Decimal | None]:
    """On-time percentage and cancellation rate from summed monthly counts.

    ARR_DEL15 counts flights arriving 15+ minutes late; on-time flights are
    the remainder of ARR_FLIGHTS.
    """
    df = _frame(monthly_rows)
    flights = _column_sum(df, "ARR_FLIGHTS") if not df.empty else None
    if not flights:
        return {ON_TIME: None, CANCELLATION_RATE: None}

    delayed = _column_sum(df, "ARR_DEL15")
    cancelled = _column_sum(df, "CANCELLED")
    on_time = _pct(flights - delayed, flights) if delayed is not None else None
    cancel_rate = _pct(cancelled, flights) if cancelled is not None else None
    log.debug("On-time %s%%, cancelled %s%% over %s flights", on_time, cancel_rate, flights)
    return {ON_TIME: on_time, CANCELLATION_RATE: cancel_rate}


# ═══════════════════════════════════════════════════════════════════════════
#  Fleet inventory
# ═══════════════════════════════════════════════════════════════════════════

def fleet_summary(inventory_rows: Rows, as_of_year: int) -> dict[str, MetricValue | None]:
    """Fleet size, composition (count descending) and average age."""
    df = _frame(inventory_rows)
    if df.empty or "AIRCRAFT_TYPE" not in df.columns:
        return {FLEET_SIZE: None, FLEET_COMPOSITION: None, FLEET_AGE: None}

    counts = df["AIRCRAFT_TYPE"].dropna().astype(str).value_counts()
    # value_counts is count-descending; ties keep first-seen order
    composition = ", ".join(f"{n} {kind}" for kind, n in counts.items())

    age: Decimal | None = None
    if "YEAR_MANUFACTURED" in df.columns:
        built = pd.to_numeric(df["YEAR_MANUFACTURED"], errors="coerce").dropna()
        if not built.empty:
            ages = [Decimal(as_of_year) - Decimal(str(int(y))) for y in built]
            age = (sum(ages, Decimal(0)) / len(ages)).quantize(_AGE_PLACES)

    return {
        FLEET_SIZE: Decimal(len(df)),
        FLEET_COMPOSITION: composition or None,
        FLEET_AGE: age,
    }


# ═══════════════════════════════════════════════════════════════════════════
#  Combined record
# ═══════════════════════════════════════════════════════════════════════════

def external_record(
    fiscal_year: int,
    *,
    operations: Rows = None,
    on_time: Rows = None,
    fleet: Rows = None,
) -> ExtractedYearlyRecord:
    """One external-aggregate record from whichever inputs are available."""
    values: dict[str, MetricValue | None] = {}
    if operations is not None:
        values.update(annualize_operations(operations, fiscal_year).values)
    if on_time is not None:
        values.update(annualize_on_time(on_time))
    if fleet is not None:
        values.update(fleet_summary(fleet, fiscal_year))
    return ExtractedYearlyRecord(
        fiscal_year=fiscal_year,
        provenance=Provenance.EXTERNAL_AGGREGATE,
        values=values,
    )
