"""Company-facts JSON → structured-facts ExtractedYearlyRecord.

The payload shape is the SEC ``companyfacts`` document:

    {"facts": {"us-gaap": {"Revenues": {"label": ..., "units": {"USD": [
        {"val": ..., "fy": 2023, "fp": "FY", "form": "10-K",
         "frame": "CY2023", "end": "2023-12-31", ...}, ...]}}}}}

It is flattened to a DataFrame once (facts_dataframe), then queried per
fiscal year.  A 10-K for fiscal year Y also restates prior-year figures
tagged ``fy == Y``; among those the fact with a calendar-year frame or
``fp == "FY"`` and the latest period end is the filing's own year.
"""

from __future__ import annotations

import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping

import pandas as pd

from airline_recon.metric_catalog import CanonicalUnit, MetricCatalogEntry, TOTAL_REVENUE, get_catalog
from airline_recon.models import ExtractedYearlyRecord, MetricValue, Provenance

log = logging.getLogger(__name__)

FACT_COLUMNS = [
    "concept", "label", "value", "fy", "fp", "form", "frame",
    "start", "end", "filed", "accn", "units", "taxonomy",
]
ANNUAL_FORMS = ("10-K", "10-K/A")
_ONE_MILLION = Decimal("1000000")


# ═══════════════════════════════════════════════════════════════════════════
#  Flattening
# ═══════════════════════════════════════════════════════════════════════════

def facts_dataframe(companyfacts: Mapping[str, Any] | None) -> pd.DataFrame:
    """Flatten a companyfacts payload (all taxonomies) to one row per fact."""
    all_facts = (companyfacts or {}).get("facts") or {}
    if not isinstance(all_facts, Mapping):
        log.warning("Malformed companyfacts payload: 'facts' is %s", type(all_facts).__name__)
        return pd.DataFrame(columns=FACT_COLUMNS)

    rows: list[dict] = []
    for tax, taxonomy_data in all_facts.items():
        if not isinstance(taxonomy_data, Mapping):
            continue
        for concept_name, concept_data in taxonomy_data.items():
            label = concept_data.get("label", concept_name)
            for unit_name, unit_facts in (concept_data.get("units") or {}).items():
                for fact in unit_facts:
                    rows.append({
                        "concept": concept_name,
                        "label": label,
                        "value": fact.get("val") if "val" in fact else fact.get("value"),
                        "fy": fact.get("fy"),
                        "fp": fact.get("fp"),
                        "form": fact.get("form"),
                        "frame": fact.get("frame"),
                        "start": fact.get("start"),
                        "end": fact.get("end"),
                        "filed": fact.get("filed"),
                        "accn": fact.get("accn"),
                        "units": unit_name,
                        "taxonomy": tax,
                    })

    df = pd.DataFrame(rows, columns=FACT_COLUMNS, dtype=object)
    if not df.empty:
        df["end"] = pd.to_datetime(df["end"], errors="coerce")
        df["fy"] = pd.to_numeric(df["fy"], errors="coerce").astype("Int64")
    log.debug("Flattened %d facts across %d concepts", len(df), df["concept"].nunique())
    return df


# ═══════════════════════════════════════════════════════════════════════════
#  Queries
# ═══════════════════════════════════════════════════════════════════════════

def fiscal_years(frame: pd.DataFrame, limit: int = 5) -> list[int]:
    """Most recent fiscal years having annual-report revenue facts, newest first."""
    if frame.empty:
        return []
    concepts = get_catalog()[TOTAL_REVENUE].structured_concepts
    mask = (
        frame["concept"].isin(concepts)
        & frame["form"].isin(ANNUAL_FORMS)
        & (frame["units"] == "USD")
        & frame["fy"].notna()
    )
    years = sorted({int(y) for y in frame.loc[mask, "fy"]}, reverse=True)
    return years[:limit]


def _annual_facts(frame: pd.DataFrame, concept: str, fiscal_year: int) -> pd.DataFrame:
    mask = (
        (frame["concept"] == concept)
        & (frame["fy"] == fiscal_year).fillna(False)
        & frame["form"].isin(ANNUAL_FORMS)
        & frame["value"].notna()
    )
    return frame.loc[mask]


def _pick_fact(facts: pd.DataFrame, prefer_usd: bool) -> Any | None:
    """Preferred fact value: USD units, CY frame or FY period, latest end."""
    if facts.empty:
        return None
    if prefer_usd and (facts["units"] == "USD").any():
        facts = facts[facts["units"] == "USD"]
    preferred = facts[
        facts["frame"].fillna("").str.contains("CY") | (facts["fp"] == "FY")
    ]
    pool = preferred if not preferred.empty else facts
    pool = pool.sort_values("end", ascending=False, na_position="last")
    return pool.iloc[0]["value"]


def _to_canonical(raw: Any, metric: MetricCatalogEntry) -> Decimal | None:
    try:
        value = Decimal(str(raw))
    except (InvalidOperation, ValueError):
        log.debug("Non-numeric fact value %r for %s", raw, metric.name)
        return None
    if not value.is_finite():
        return None
    if metric.unit is CanonicalUnit.MILES_MILLIONS:
        # company facts carry unscaled values
        value = value / _ONE_MILLION
    elif metric.unit is CanonicalUnit.PERCENTAGE and abs(value) <= 1:
        value = value * 100
    return value


def lookup_metric(
    frame: pd.DataFrame, metric: MetricCatalogEntry, fiscal_year: int,
) -> Decimal | None:
    """First concept (catalog order) with an annual fact for *fiscal_year*."""
    prefer_usd = metric.unit is CanonicalUnit.USD
    for concept in metric.structured_concepts:
        raw = _pick_fact(_annual_facts(frame, concept, fiscal_year), prefer_usd)
        if raw is None:
            continue
        value = _to_canonical(raw, metric)
        if value is not None:
            log.debug("FY%s %s=%s from concept %s", fiscal_year, metric.name, value, concept)
            return value
    return None


def structured_record(
    frame: pd.DataFrame,
    fiscal_year: int,
    *,
    catalog: Mapping[str, MetricCatalogEntry] | None = None,
) -> ExtractedYearlyRecord:
    """Structured-facts record for one fiscal year (absent metrics are None)."""
    catalog = catalog if catalog is not None else get_catalog()
    values: dict[str, MetricValue | None] = {}
    if frame.empty:
        log.warning("No structured facts available for FY%s", fiscal_year)
    for name, metric in catalog.items():
        if not metric.structured_concepts:
            continue
        values[name] = None if frame.empty else lookup_metric(frame, metric, fiscal_year)
    return ExtractedYearlyRecord(
        fiscal_year=fiscal_year,
        provenance=Provenance.STRUCTURED_FACTS,
        values=values,
    )
