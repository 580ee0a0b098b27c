"""Cross-source reconciliation of per-year metric records.

Merge order: structured-facts > document-extraction > external-aggregate.
A lower-priority source only ever fills a gap left by every higher-priority
source; it never replaces a value.  Absent stays absent (never zero).

Validation runs after the merge and is advisory only: each finding becomes a
ConsistencyWarning on the record, nothing is raised and no stored value is
altered.

  cross_source         winning value vs each lower-priority value, relative delta
  load_factor          RPM / ASM x 100 vs reported load factor, percentage points
  cargo_load_factor    CTM / ATM x 100 vs reported cargo load factor
  revenue_per_passenger  total revenue / passengers outside a plausible band
"""

from __future__ import annotations

import logging
from decimal import Decimal

from airline_recon.metric_catalog import (
    ASM,
    ATM,
    CARGO_LOAD_FACTOR,
    CTM,
    LOAD_FACTOR,
    PASSENGERS,
    RPM,
    TOTAL_REVENUE,
    get_catalog,
)
from airline_recon.models import (
    SOURCE_PRIORITY,
    ConsistencyWarning,
    ExtractedYearlyRecord,
    MetricValue,
    Provenance,
    ReconciledValue,
    ReconciledYearlyRecord,
)

log = logging.getLogger(__name__)

_HUNDRED = Decimal("100")
_PLACES = Decimal("0.01")


def _numeric(value: MetricValue | None) -> Decimal | None:
    if value is None or isinstance(value, str):
        return None
    return value if isinstance(value, Decimal) else Decimal(value)


class _Tolerances:
    __slots__ = ("load_factor_pts", "cargo_load_factor_pts", "cross_source_pct",
                 "rpp_min", "rpp_max")

    def __init__(self, **overrides: Decimal | None):
        from airline_recon.config import get_config
        cfg = get_config()

        def pick(key: str, default: Decimal) -> Decimal:
            v = overrides.get(key)
            return Decimal(str(v)) if v is not None else Decimal(str(default))

        self.load_factor_pts = pick("load_factor_tolerance_pts", cfg.load_factor_tolerance_pts)
        self.cargo_load_factor_pts = pick("cargo_load_factor_tolerance_pts",
                                          cfg.cargo_load_factor_tolerance_pts)
        self.cross_source_pct = pick("cross_source_tolerance_pct", cfg.cross_source_tolerance_pct)
        self.rpp_min = pick("revenue_per_passenger_min", cfg.revenue_per_passenger_min)
        self.rpp_max = pick("revenue_per_passenger_max", cfg.revenue_per_passenger_max)


# ═══════════════════════════════════════════════════════════════════════════
#  Merge
# ═══════════════════════════════════════════════════════════════════════════

def _ordered_sources(
    structured: ExtractedYearlyRecord | None,
    document: ExtractedYearlyRecord | None,
    external: ExtractedYearlyRecord | None,
) -> list[ExtractedYearlyRecord]:
    by_tag = {Provenance.STRUCTURED_FACTS: structured,
              Provenance.DOCUMENT_EXTRACTION: document,
              Provenance.EXTERNAL_AGGREGATE: external}
    ordered = []
    for tag in SOURCE_PRIORITY:
        rec = by_tag[tag]
        if rec is None:
            log.warning("Source %s unavailable; continuing with remaining sources", tag.value)
            continue
        if rec.provenance is not tag:
            log.error("Expected a %s record, got %s; treating %s as unavailable",
                      tag.value, rec.provenance.value, tag.value)
            continue
        ordered.append(rec)
    return ordered


def _merge(sources: list[ExtractedYearlyRecord]) -> dict[str, ReconciledValue]:
    metrics: dict[str, ReconciledValue] = {}
    catalog = get_catalog()
    names = list(catalog)
    # Metrics a source supplies outside the catalog still merge, after catalog order
    for rec in sources:
        names.extend(k for k in rec.values if k not in catalog and k not in names)

    for name in names:
        for rec in sources:
            value = rec.get(name)
            if value is None:
                continue
            metrics[name] = ReconciledValue(value=value, provenance=rec.provenance)
            if rec is not sources[0]:
                log.debug("Filled %s from %s: %s", name, rec.provenance.value, value)
            break
    return metrics


# ═══════════════════════════════════════════════════════════════════════════
#  Validation
# ═══════════════════════════════════════════════════════════════════════════

def _cross_source_warnings(
    metrics: dict[str, ReconciledValue],
    sources: list[ExtractedYearlyRecord],
    tol: _Tolerances,
) -> list[ConsistencyWarning]:
    warnings: list[ConsistencyWarning] = []
    rank = {p: i for i, p in enumerate(SOURCE_PRIORITY)}
    for name, rv in metrics.items():
        primary = _numeric(rv.value)
        if primary is None or primary == 0:
            continue
        for rec in sources:
            if rank[rec.provenance] <= rank[rv.provenance]:
                continue
            other = _numeric(rec.get(name))
            if other is None:
                continue
            delta = (abs(primary - other) / abs(primary) * _HUNDRED).quantize(_PLACES)
            if delta > tol.cross_source_pct:
                warnings.append(ConsistencyWarning(
                    rule="cross_source",
                    metric=name,
                    primary_source=rv.provenance,
                    primary_value=primary,
                    secondary_source=rec.provenance,
                    secondary_value=other,
                    delta_pct=delta,
                    message=(f"{name}: {rv.provenance.value} reports {primary}, "
                             f"{rec.provenance.value} reports {other} ({delta}% apart)"),
                ))
    return warnings


def _recomputed_ratio_warning(
    metrics: dict[str, ReconciledValue],
    rule: str,
    numerator: str,
    denominator: str,
    reported: str,
    tolerance_pts: Decimal,
) -> ConsistencyWarning | None:
    num = _numeric(metrics[numerator].value) if numerator in metrics else None
    den = _numeric(metrics[denominator].value) if denominator in metrics else None
    rep = _numeric(metrics[reported].value) if reported in metrics else None
    if num is None or den is None or rep is None or den == 0:
        return None
    calculated = (num / den * _HUNDRED).quantize(_PLACES)
    diff = abs(calculated - rep)
    if diff <= tolerance_pts:
        return None
    return ConsistencyWarning(
        rule=rule,
        metric=reported,
        primary_source=metrics[reported].provenance,
        primary_value=rep,
        secondary_source=Provenance.DERIVED,
        secondary_value=calculated,
        delta_pct=diff.quantize(_PLACES),
        message=(f"{reported} discrepancy: calculated {calculated}% from "
                 f"{numerator}/{denominator}, reported {rep}%"),
    )


def _revenue_per_passenger_warning(
    metrics: dict[str, ReconciledValue], tol: _Tolerances,
) -> ConsistencyWarning | None:
    revenue = _numeric(metrics[TOTAL_REVENUE].value) if TOTAL_REVENUE in metrics else None
    pax = _numeric(metrics[PASSENGERS].value) if PASSENGERS in metrics else None
    if revenue is None or pax is None or pax <= 0:
        return None
    per_pax = (revenue / pax).quantize(_PLACES)
    if tol.rpp_min <= per_pax <= tol.rpp_max:
        return None
    return ConsistencyWarning(
        rule="revenue_per_passenger",
        metric=TOTAL_REVENUE,
        primary_source=metrics[TOTAL_REVENUE].provenance,
        primary_value=revenue,
        secondary_source=metrics[PASSENGERS].provenance,
        secondary_value=pax,
        message=(f"Unusual revenue per passenger: ${per_pax} "
                 f"(expected ${tol.rpp_min}-${tol.rpp_max})"),
    )


def validate(
    metrics: dict[str, ReconciledValue],
    sources: list[ExtractedYearlyRecord],
    tol: _Tolerances,
) -> list[ConsistencyWarning]:
    """All post-merge consistency checks, in a fixed order."""
    warnings = _cross_source_warnings(metrics, sources, tol)
    for w in (
        _recomputed_ratio_warning(metrics, "load_factor", RPM, ASM, LOAD_FACTOR,
                                  tol.load_factor_pts),
        _recomputed_ratio_warning(metrics, "cargo_load_factor", CTM, ATM, CARGO_LOAD_FACTOR,
                                  tol.cargo_load_factor_pts),
        _revenue_per_passenger_warning(metrics, tol),
    ):
        if w is not None:
            warnings.append(w)
    return warnings


# ═══════════════════════════════════════════════════════════════════════════
#  Public API
# ═══════════════════════════════════════════════════════════════════════════

def reconcile(
    structured: ExtractedYearlyRecord | None,
    document: ExtractedYearlyRecord | None,
    external: ExtractedYearlyRecord | None,
    *,
    fiscal_year: int | None = None,
    **tolerances: Decimal | None,
) -> ReconciledYearlyRecord:
    """Merge one fiscal year's source records and attach consistency warnings.

    Any source may be None (unavailable).  *fiscal_year* is taken from the
    first available record when not given.  A record in the wrong slot or
    for a different year is logged and dropped like a missing source; only
    a call with neither records nor a fiscal year is an error.  Keyword
    overrides accept the Settings tolerance names
    (``load_factor_tolerance_pts`` etc.).
    """
    sources = _ordered_sources(structured, document, external)
    if fiscal_year is None:
        if not sources:
            raise ValueError("fiscal_year is required when no source record is given")
        fiscal_year = sources[0].fiscal_year
    for rec in [r for r in sources if r.fiscal_year != fiscal_year]:
        log.error("%s record is for FY%s, expected FY%s; treating it as unavailable",
                  rec.provenance.value, rec.fiscal_year, fiscal_year)
    sources = [r for r in sources if r.fiscal_year == fiscal_year]

    tol = _Tolerances(**tolerances)
    metrics = _merge(sources)
    warnings = validate(metrics, sources, tol)
    for w in warnings:
        log.warning("FY%s: %s", fiscal_year, w.message)

    log.info("Reconciled FY%s: %d metrics from %d sources, %d warnings",
             fiscal_year, len(metrics), len(sources), len(warnings))
    return ReconciledYearlyRecord(
        fiscal_year=fiscal_year,
        metrics=metrics,
        warnings=warnings,
        sources_used=[rec.provenance for rec in sources],
    )
