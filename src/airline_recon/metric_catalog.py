"""Airline metric catalog: canonical metric → table keywords, text patterns, units.

Three lookup layers per metric:
  Layer 1 — Canonical schema   (metric key → display name + canonical unit)
  Layer 2 — Table keywords     (inclusion / exclusion phrases for row matching)
  Layer 3 — Text patterns      (ordered regex fallback for free text)

Structured-facts concept names (company-facts tags) are kept on the same
entry so every source resolves the same metric key.

The catalog is built once per process (see get_catalog) and shared read-only
by every extractor and the reconciler.

Magnitude assumptions are expressed as "millions per raw unit":
  1          — the raw number is already in millions
  1000       — the raw number is in billions
  0.000001   — the raw number is an absolute count
"""

from __future__ import annotations

import re
from decimal import Decimal
from enum import Enum
from types import MappingProxyType
from typing import Mapping, NamedTuple


# ═══════════════════════════════════════════════════════════════════════════
#  Canonical units
# ═══════════════════════════════════════════════════════════════════════════

class CanonicalUnit(str, Enum):
    COUNT = "count"
    PERCENTAGE = "percentage"
    MILES_MILLIONS = "miles_millions"
    HOURS = "hours"
    YEARS = "years"
    USD = "usd"
    TEXT = "text"


# Multiplier from "millions" to the canonical unit.  None = never rescaled.
UNIT_PER_MILLION: dict[CanonicalUnit, Decimal | None] = {
    CanonicalUnit.COUNT: Decimal("1000000"),
    CanonicalUnit.HOURS: Decimal("1000000"),
    CanonicalUnit.USD: Decimal("1000000"),
    CanonicalUnit.MILES_MILLIONS: Decimal("1"),
    CanonicalUnit.PERCENTAGE: None,
    CanonicalUnit.YEARS: None,
    CanonicalUnit.TEXT: None,
}

MILLIONS = Decimal("1")
BILLIONS = Decimal("1000")
ABSOLUTE = Decimal("0.000001")


# ═══════════════════════════════════════════════════════════════════════════
#  Catalog entry
# ═══════════════════════════════════════════════════════════════════════════

class MetricCatalogEntry(NamedTuple):
    name: str                                   # canonical metric key
    display_name: str                           # human label
    unit: CanonicalUnit
    include: tuple[str, ...] = ()               # row must contain one of these
    exclude: tuple[str, ...] = ()               # per-unit / ratio rows to reject
    table_gate: tuple[str, ...] = ()            # table text must contain one of these
    table_exclude: tuple[str, ...] = ()         # skip tables containing any of these
    min_magnitude: Decimal = Decimal("10")      # candidate floor (raw table units)
    plausible_range: tuple[Decimal, Decimal] | None = None   # canonical units
    default_scale: Decimal = MILLIONS           # used when no unit token is present
    small_value_scale: Decimal | None = None    # ... and the raw value is below 1000
    structured_concepts: tuple[str, ...] = ()   # company-facts tags, in priority order
    text_patterns: tuple[re.Pattern[str], ...] = ()
    components: tuple[str, ...] = ()            # rows summed when no include row resolves

    @property
    def scannable(self) -> bool:
        """True when the metric can be located in document tables."""
        return bool(self.include) and self.unit is not CanonicalUnit.TEXT

    @property
    def numeric(self) -> bool:
        return self.unit is not CanonicalUnit.TEXT


# ═══════════════════════════════════════════════════════════════════════════
#  Text pattern templates
#  Every pattern exposes a "num" group and optionally "unit" / "label_unit".
# ═══════════════════════════════════════════════════════════════════════════

# 339,534  |  174.5
_BIG_NUM = r"(?<![\d.,])(?:\d{1,3}(?:,\d{3})+(?:\.\d+)?|\d+\.\d+)(?![\d,])"
# loose variant also accepts bare 3+ digit runs, but never a bare year
_LOOSE_NUM = r"(?<![\d.,])(?!(?:19|20)\d{2}(?![\d,]))(?:\d{1,3}(?:,\d{3})+(?:\.\d+)?|\d{3,})(?![\d,])"
_MONEY_NUM = r"(?<![\d.,])\d{1,3}(?:,\d{3})*(?:\.\d+)?(?![\d,])"
_LABEL_UNIT = r"(?:\(\s*(?:in\s+)?(?P<label_unit>millions?|billions?|thousands?)\s*\))?"

_FLAGS = re.IGNORECASE


def _volume_patterns(label: str, gap: int) -> tuple[re.Pattern[str], ...]:
    """label-before-number, number-before-label and loose variants."""
    return (
        re.compile(
            rf"(?:{label})\s*{_LABEL_UNIT}[\s:]*[\-–—]*\s*(?P<num>{_BIG_NUM})"
            rf"\s*(?P<unit>million|billion|thousands?)?",
            _FLAGS,
        ),
        re.compile(
            rf"(?P<num>{_BIG_NUM})\s*(?P<unit>million|billion)\s+(?:{label})",
            _FLAGS,
        ),
        re.compile(rf"(?:{label})[^\d]{{0,{gap}}}(?P<num>{_LOOSE_NUM})", _FLAGS),
    )


def _percent_patterns(label: str, gap: int, *, reverse: bool = True) -> tuple[re.Pattern[str], ...]:
    pats = [
        re.compile(rf"(?:{label})[^%]{{0,{gap}}}?(?P<num>\d{{1,3}}\.\d{{1,2}})\s*%", _FLAGS),
    ]
    if reverse:
        pats.append(
            re.compile(rf"(?P<num>\d{{1,3}}\.\d{{1,2}})\s*%[^%]{{0,{gap}}}?(?:{label})", _FLAGS)
        )
    return tuple(pats)


def _money_patterns(label: str) -> tuple[re.Pattern[str], ...]:
    # Free-text revenue is only trusted with an explicit "$" and magnitude word
    return (
        re.compile(
            rf"(?:{label})\s+(?:of|were|was|totaled|totalled)\s+(?:approximately\s+)?"
            rf"\$\s*(?P<num>{_MONEY_NUM})\s*(?P<unit>million|billion)",
            _FLAGS,
        ),
        re.compile(
            rf"\$\s*(?P<num>{_MONEY_NUM})\s*(?P<unit>million|billion)\s+(?:in|of)\s+(?:{label})",
            _FLAGS,
        ),
    )


# ═══════════════════════════════════════════════════════════════════════════
#  Catalog construction
# ═══════════════════════════════════════════════════════════════════════════

_REVENUE_GATE = ("revenue", "revenues")
_REVENUE_TABLE_EXCLUDE = ("balance sheet", "cash flow", "seat miles", "passenger miles")
_REGION_EXCLUDE = ("per", "yield", "asm", "asms", "rpm", "rpms", "load factor", "passengers")


def build_catalog(text_window: int = 50) -> dict[str, MetricCatalogEntry]:
    """Build the full metric catalog.  *text_window* bounds loose regex gaps."""
    gap = text_window
    entries = [
        # ── Capacity & traffic (millions of miles) ──────────────────────
        MetricCatalogEntry(
            "available_seat_miles", "Available Seat Miles (ASM)",
            CanonicalUnit.MILES_MILLIONS,
            include=("available seat miles", "asms (millions)", "asms", "asm"),
            exclude=("per asm", "revenue per asm", "/ asm", "casm", "rasm",
                     "prasm", "trasm", "yield"),
            min_magnitude=Decimal("10"),
            plausible_range=(Decimal("100"), Decimal("2000000")),
            small_value_scale=BILLIONS,
            structured_concepts=("AvailableSeatMiles", "ASM", "AvailableSeatMilesASM",
                                 "ScheduledAvailableSeatMiles"),
            text_patterns=_volume_patterns(r"available\s+seat\s+miles|\bASMs?\b", gap),
        ),
        MetricCatalogEntry(
            "revenue_passenger_miles", "Revenue Passenger Miles (RPM)",
            CanonicalUnit.MILES_MILLIONS,
            include=("revenue passenger miles", "rpms (millions)", "rpms", "rpm"),
            exclude=("per rpm", "/ rpm", "yield"),
            min_magnitude=Decimal("10"),
            plausible_range=(Decimal("100"), Decimal("2000000")),
            small_value_scale=BILLIONS,
            structured_concepts=("RevenuePassengerMiles", "RPM", "RevenuePassengerMilesRPM",
                                 "ScheduledRevenuePassengerMiles"),
            text_patterns=_volume_patterns(r"revenue\s+passenger\s+miles|\bRPMs?\b", gap),
        ),
        MetricCatalogEntry(
            "cargo_ton_miles", "Cargo Ton Miles (CTM)",
            CanonicalUnit.MILES_MILLIONS,
            include=("cargo ton miles", "freight ton miles", "ctms", "ctm"),
            exclude=("per ctm", "/ ctm", "yield"),
            min_magnitude=Decimal("10"),
            plausible_range=(Decimal("1"), Decimal("500000")),
            structured_concepts=("CargoTonMiles", "FreightTonMiles"),
            text_patterns=_volume_patterns(
                r"cargo\s+ton\s+miles|freight\s+ton\s+miles|\bCTMs?\b", gap),
        ),
        MetricCatalogEntry(
            "available_ton_miles", "Available Ton Miles (ATM)",
            CanonicalUnit.MILES_MILLIONS,
            include=("available ton miles", "atms", "atm"),
            exclude=("per atm", "/ atm"),
            min_magnitude=Decimal("10"),
            plausible_range=(Decimal("1"), Decimal("1000000")),
            structured_concepts=("AvailableTonMiles", "ATM"),
            text_patterns=_volume_patterns(r"available\s+ton\s+miles|\bATMs?\b", gap),
        ),
        # ── Load factors (percent) ──────────────────────────────────────
        MetricCatalogEntry(
            "load_factor", "Passenger Load Factor",
            CanonicalUnit.PERCENTAGE,
            include=("load factor", "passenger load"),
            exclude=("cargo", "freight", "break-even", "breakeven"),
            min_magnitude=Decimal("1"),
            plausible_range=(Decimal("1"), Decimal("100")),
            structured_concepts=("PassengerLoadFactor", "LoadFactor"),
            text_patterns=_percent_patterns(
                r"(?<!cargo )(?<!freight )(?:passenger\s+)?load\s+factor", gap),
        ),
        MetricCatalogEntry(
            "cargo_load_factor", "Cargo Load Factor",
            CanonicalUnit.PERCENTAGE,
            include=("cargo load factor", "freight load factor"),
            exclude=("break-even", "breakeven"),
            min_magnitude=Decimal("1"),
            plausible_range=(Decimal("1"), Decimal("100")),
            structured_concepts=("CargoLoadFactor",),
            text_patterns=_percent_patterns(
                r"(?:cargo|freight)\s+load\s+factor", gap, reverse=False),
        ),
        # ── Operations ──────────────────────────────────────────────────
        MetricCatalogEntry(
            "passengers_carried", "Passengers Carried",
            CanonicalUnit.COUNT,
            include=("passengers carried", "passengers enplaned", "enplaned passengers",
                     "revenue passengers"),
            exclude=("per passenger", "miles", "revenue per", "yield"),
            min_magnitude=Decimal("1"),
            plausible_range=(Decimal("10000"), Decimal("1000000000")),
            default_scale=ABSOLUTE,
            small_value_scale=MILLIONS,
            structured_concepts=("PassengersCarried", "NumberOfPassengers",
                                 "PassengersBoarded", "ScheduledPassengers"),
            text_patterns=(
                re.compile(rf"passengers\s+carried[^\d]{{0,{gap}}}(?P<num>{_MONEY_NUM})"
                           r"\s*(?P<unit>million|thousand)?", _FLAGS),
                re.compile(rf"revenue\s+passengers[^\d]{{0,{gap}}}(?P<num>{_MONEY_NUM})"
                           r"\s*(?P<unit>million|thousand)?", _FLAGS),
                re.compile(rf"(?P<num>{_MONEY_NUM})\s*(?P<unit>million|thousand)?\s+passengers",
                           _FLAGS),
            ),
        ),
        MetricCatalogEntry(
            "departures", "Departures Performed",
            CanonicalUnit.COUNT,
            include=("departures", "aircraft departures", "flights operated"),
            exclude=("per departure", "average", "%", "percent"),
            min_magnitude=Decimal("100"),
            plausible_range=(Decimal("100"), Decimal("10000000")),
            default_scale=ABSOLUTE,
            structured_concepts=("DeparturesPerformed", "AircraftDepartures"),
            text_patterns=(
                re.compile(rf"(?:departures|flights\s+operated)[^\d]{{0,{gap}}}"
                           r"(?P<num>\d{1,3}(?:,\d{3})+)", _FLAGS),
                re.compile(r"(?P<num>\d{1,3}(?:,\d{3})+)\s+(?:departures|flights)", _FLAGS),
            ),
        ),
        MetricCatalogEntry(
            "block_hours", "Block Hours",
            CanonicalUnit.HOURS,
            include=("block hours", "block hour"),
            exclude=("per block hour", "average", "utilization"),
            min_magnitude=Decimal("100"),
            plausible_range=(Decimal("100"), Decimal("50000000")),
            default_scale=ABSOLUTE,
            structured_concepts=("BlockHours",),
            text_patterns=(
                re.compile(rf"block\s+hours[^\d]{{0,{gap}}}(?P<num>{_BIG_NUM})"
                           r"\s*(?P<unit>million|thousand)?", _FLAGS),
                re.compile(rf"(?P<num>{_BIG_NUM})\s*(?P<unit>million|thousand)?\s+block\s+hours",
                           _FLAGS),
            ),
        ),
        # ── Fleet ───────────────────────────────────────────────────────
        MetricCatalogEntry(
            "fleet_size", "Fleet Size",
            CanonicalUnit.COUNT,
            include=("total fleet", "total aircraft", "aircraft in service",
                     "number of aircraft", "aircraft in fleet"),
            exclude=("average", "age", "seats", "per"),
            table_gate=("fleet", "aircraft"),
            min_magnitude=Decimal("1"),
            plausible_range=(Decimal("1"), Decimal("2000")),
            default_scale=ABSOLUTE,
            structured_concepts=("NumberOfAircraft", "FleetCount", "AircraftInService"),
            text_patterns=(
                re.compile(r"fleet\s+of\s+(?P<num>\d{1,3}(?:,\d{3})?)\s+aircraft", _FLAGS),
            ),
        ),
        MetricCatalogEntry(
            "fleet_age", "Average Fleet Age",
            CanonicalUnit.YEARS,
            include=("average age", "weighted average age", "average fleet age"),
            table_gate=("fleet", "aircraft"),
            min_magnitude=Decimal("0"),
            plausible_range=(Decimal("0.1"), Decimal("50")),
            structured_concepts=("AverageFleetAge",),
            text_patterns=(
                re.compile(rf"average\s+(?:fleet\s+)?age[^\d]{{0,{gap}}}"
                           r"(?P<num>\d{1,2}(?:\.\d+)?)\s*years?", _FLAGS),
            ),
        ),
        MetricCatalogEntry(
            "fleet_composition", "Fleet Composition",
            CanonicalUnit.TEXT,
            table_gate=("fleet", "aircraft"),
        ),
        # ── Revenue (USD) ───────────────────────────────────────────────
        MetricCatalogEntry(
            "total_revenue", "Total Operating Revenue",
            CanonicalUnit.USD,
            include=("total operating revenue", "total operating revenues", "total revenue",
                     "total revenues", "operating revenues", "operating revenue"),
            exclude=("per", "average", "yield"),
            table_exclude=("balance sheet", "cash flow", "stockholders", "segment"),
            min_magnitude=Decimal("100"),
            plausible_range=(Decimal("10000000"), Decimal("1000000000000")),
            structured_concepts=("Revenues", "RevenueFromContractWithCustomerExcludingAssessedTax",
                                 "SalesRevenueNet", "OperatingRevenues", "RevenueNet"),
            text_patterns=_money_patterns(r"(?:total\s+)?operating\s+revenues?|total\s+revenues?"),
        ),
        MetricCatalogEntry(
            "passenger_revenue", "Passenger Revenue",
            CanonicalUnit.USD,
            include=("passenger revenue", "passenger revenues", "passenger"),
            exclude=("per", "yield", "miles", "passengers", "load factor"),
            table_gate=_REVENUE_GATE,
            table_exclude=_REVENUE_TABLE_EXCLUDE,
            min_magnitude=Decimal("10"),
            plausible_range=(Decimal("1000000"), Decimal("1000000000000")),
            structured_concepts=("PassengerRevenue",),
            text_patterns=_money_patterns(r"passenger\s+revenues?"),
        ),
        MetricCatalogEntry(
            "cargo_revenue", "Cargo Revenue",
            CanonicalUnit.USD,
            include=("cargo revenue", "cargo revenues", "freight revenue", "cargo", "freight"),
            exclude=("per", "yield", "ton miles", "load factor"),
            table_gate=_REVENUE_GATE,
            table_exclude=_REVENUE_TABLE_EXCLUDE,
            min_magnitude=Decimal("10"),
            plausible_range=(Decimal("1000000"), Decimal("1000000000000")),
            structured_concepts=("CargoAndFreightRevenue",),
            text_patterns=_money_patterns(r"(?:cargo|freight)\s+revenues?"),
        ),
        MetricCatalogEntry(
            "other_revenue", "Other Revenue",
            CanonicalUnit.USD,
            include=("other revenue", "other revenues", "other operating revenue",
                     "other operating revenues"),
            exclude=("per", "non-operating", "nonoperating"),
            table_gate=_REVENUE_GATE,
            table_exclude=_REVENUE_TABLE_EXCLUDE,
            min_magnitude=Decimal("10"),
            plausible_range=(Decimal("1000000"), Decimal("1000000000000")),
            structured_concepts=("OtherSalesRevenueNet",),
            text_patterns=_money_patterns(r"other\s+(?:operating\s+)?revenues?"),
        ),
        MetricCatalogEntry(
            "domestic_revenue", "Domestic Revenue",
            CanonicalUnit.USD,
            include=("domestic", "mainline domestic"),
            exclude=_REGION_EXCLUDE,
            table_gate=_REVENUE_GATE,
            table_exclude=_REVENUE_TABLE_EXCLUDE,
            min_magnitude=Decimal("100"),
            plausible_range=(Decimal("1000000"), Decimal("1000000000000")),
        ),
        MetricCatalogEntry(
            "international_revenue", "International Revenue",
            CanonicalUnit.USD,
            include=("international",),
            exclude=_REGION_EXCLUDE,
            table_gate=_REVENUE_GATE,
            table_exclude=_REVENUE_TABLE_EXCLUDE,
            min_magnitude=Decimal("100"),
            plausible_range=(Decimal("1000000"), Decimal("1000000000000")),
            components=("atlantic", "pacific", "latin", "caribbean"),
        ),
        # ── External / structured only ──────────────────────────────────
        MetricCatalogEntry(
            "on_time_percentage", "On-Time Arrival Rate",
            CanonicalUnit.PERCENTAGE,
            plausible_range=(Decimal("0"), Decimal("100")),
        ),
        MetricCatalogEntry(
            "cancellation_rate", "Cancellation Rate",
            CanonicalUnit.PERCENTAGE,
            plausible_range=(Decimal("0"), Decimal("100")),
        ),
        MetricCatalogEntry(
            "full_time_employees", "Full-Time Employees",
            CanonicalUnit.COUNT,
            default_scale=ABSOLUTE,
            plausible_range=(Decimal("1"), Decimal("1000000")),
            structured_concepts=("NumberOfEmployees",),
        ),
    ]
    return {e.name: e for e in entries}


# Metric keys referenced by name elsewhere (validation rules, adapters)
ASM = "available_seat_miles"
RPM = "revenue_passenger_miles"
CTM = "cargo_ton_miles"
ATM = "available_ton_miles"
LOAD_FACTOR = "load_factor"
CARGO_LOAD_FACTOR = "cargo_load_factor"
PASSENGERS = "passengers_carried"
DEPARTURES = "departures"
BLOCK_HOURS = "block_hours"
FLEET_SIZE = "fleet_size"
FLEET_AGE = "fleet_age"
FLEET_COMPOSITION = "fleet_composition"
TOTAL_REVENUE = "total_revenue"
ON_TIME = "on_time_percentage"
CANCELLATION_RATE = "cancellation_rate"


_catalog: Mapping[str, MetricCatalogEntry] | None = None


def get_catalog() -> Mapping[str, MetricCatalogEntry]:
    """Get or create the shared, read-only metric catalog."""
    global _catalog
    if _catalog is None:
        from airline_recon.config import get_config
        _catalog = MappingProxyType(build_catalog(get_config().text_match_window))
    return _catalog


def get_entry(name: str) -> MetricCatalogEntry:
    """Look up one catalog entry by metric key (KeyError if unknown)."""
    return get_catalog()[name]
