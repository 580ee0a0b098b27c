"""airline-recon: MCP server for airline operating-metric reconciliation.

Tool hierarchy
──────────────
  Discovery
    1. list_metrics               — catalog: metric keys, units, sources

  Extraction
    2. extract_document_metrics   — annual-report HTML → document record for one year

  Reconciliation
    3. reconcile_fiscal_year      — structured + document + external → one reconciled year
    4. reconcile_fiscal_years     — same, several years in parallel (newest first)

Tools take already-fetched payloads (companyfacts JSON, filing HTML, monthly
statistical rows) and perform no network I/O.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any

from fastmcp import FastMCP

from airline_recon.document_extractor import extract_document_record
from airline_recon.external_aggregate import external_record
from airline_recon.metric_catalog import get_catalog
from airline_recon.models import ExtractedYearlyRecord, MetricValue, Provenance
from airline_recon.pipeline import YearInputs, reconcile_year, reconcile_years
from airline_recon.structured_facts import facts_dataframe, fiscal_years, structured_record

mcp = FastMCP(name="airline-recon")


# ═══════════════════════════════════════════════════════════════════════════
#  Payload adapters
# ═══════════════════════════════════════════════════════════════════════════

def _coerce(value: Any) -> MetricValue | None:
    if value is None or isinstance(value, str) and not value.strip():
        return None
    if isinstance(value, (int, float, Decimal)) and not isinstance(value, bool):
        try:
            return Decimal(str(value))
        except InvalidOperation:
            return None
    return str(value)


def _structured(payload: dict | None, fiscal_year: int, frame=None) -> ExtractedYearlyRecord | None:
    """companyfacts JSON, or a plain {metric: value} mapping."""
    if payload is None and frame is None:
        return None
    if frame is not None or "facts" in payload:
        frame = frame if frame is not None else facts_dataframe(payload)
        return structured_record(frame, fiscal_year)
    return ExtractedYearlyRecord(
        fiscal_year=fiscal_year,
        provenance=Provenance.STRUCTURED_FACTS,
        values={k: _coerce(v) for k, v in payload.items()},
    )


def _external(payload: dict | None, fiscal_year: int) -> ExtractedYearlyRecord | None:
    """{"operations": [...], "on_time": [...], "fleet": [...]} monthly rows."""
    if not payload:
        return None
    return external_record(
        fiscal_year,
        operations=payload.get("operations"),
        on_time=payload.get("on_time"),
        fleet=payload.get("fleet"),
    )


# ═══════════════════════════════════════════════════════════════════════════
#  DISCOVERY
# ═══════════════════════════════════════════════════════════════════════════

@mcp.tool()
def list_metrics() -> list[dict]:
    """List every metric the engine knows, with canonical unit and sources.

    document_scannable: located in filing tables/text.
    structured_concepts: company-facts tags that supply the metric.
    """
    return [
        {
            "name": e.name,
            "display_name": e.display_name,
            "unit": e.unit.value,
            "document_scannable": e.scannable or bool(e.text_patterns),
            "structured_concepts": list(e.structured_concepts),
        }
        for e in get_catalog().values()
    ]


# ═══════════════════════════════════════════════════════════════════════════
#  EXTRACTION
# ═══════════════════════════════════════════════════════════════════════════

@mcp.tool()
def extract_document_metrics(html: str, fiscal_year: int) -> dict:
    """Extract operating metrics from one annual-report HTML document.

    Args:
        html: raw filing HTML (or plain text)
        fiscal_year: the year whose column should be read from multi-year tables

    Metrics that cannot be tied to the fiscal year unambiguously are null.
    """
    return extract_document_record(html, fiscal_year).model_dump(mode="json")


# ═══════════════════════════════════════════════════════════════════════════
#  RECONCILIATION
# ═══════════════════════════════════════════════════════════════════════════

@mcp.tool()
def reconcile_fiscal_year(
    fiscal_year: int,
    structured: dict | None = None,
    document_html: str | None = None,
    external: dict | None = None,
) -> dict:
    """Reconcile one fiscal year across the three sources.

    Args:
        fiscal_year: e.g. 2023
        structured: SEC companyfacts JSON, or a {metric: value} mapping
        document_html: the year's annual-report HTML
        external: {"operations": [...T-100 rows], "on_time": [...], "fleet": [...]}

    Priority is structured > document > external; lower sources only fill
    gaps.  Disagreements are returned as warnings, never as errors.
    """
    inputs = YearInputs(
        fiscal_year=fiscal_year,
        structured=_structured(structured, fiscal_year),
        document_html=document_html,
        external=_external(external, fiscal_year),
    )
    return reconcile_year(inputs).model_dump(mode="json")


@mcp.tool()
def reconcile_fiscal_years(
    companyfacts: dict | None = None,
    documents: dict[str, str] | None = None,
    external: dict[str, dict] | None = None,
    years: list[int] | None = None,
    limit: int = 5,
) -> list[dict]:
    """Reconcile several fiscal years in parallel, newest first.

    Args:
        companyfacts: SEC companyfacts JSON shared by all years
        documents: {"2023": "<html>...", ...}
        external: {"2023": {"operations": [...], ...}, ...}
        years: fiscal years to reconcile; defaults to the most recent
            `limit` years with annual revenue facts, else the document years
    """
    documents = documents or {}
    external = external or {}
    frame = facts_dataframe(companyfacts) if companyfacts else None

    if not years:
        years = fiscal_years(frame, limit) if frame is not None else []
        if not years:
            years = sorted((int(y) for y in documents), reverse=True)[:limit]

    inputs = [
        YearInputs(
            fiscal_year=y,
            structured=_structured(None, y, frame) if frame is not None else None,
            document_html=documents.get(str(y)),
            external=_external(external.get(str(y)), y),
        )
        for y in years
    ]
    return [r.model_dump(mode="json") for r in reconcile_years(inputs)]


# ═══════════════════════════════════════════════════════════════════════════
#  ENTRY POINT
# ═══════════════════════════════════════════════════════════════════════════

if __name__ == "__main__":
    import logging
    import sys

    from airline_recon.config import get_config

    logging.basicConfig(
        level=get_config().log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # python -m airline_recon.server --sse  for remote hosting; STDIO otherwise
    if "--sse" in sys.argv:
        mcp.run(transport="sse")
    else:
        mcp.run()
