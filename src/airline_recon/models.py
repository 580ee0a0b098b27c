"""Pydantic models for per-source and reconciled yearly metric records."""

from __future__ import annotations

from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

MetricValue = Decimal | int | str


# ---------------------------------------------------------------------------
# Provenance
# ---------------------------------------------------------------------------

class Provenance(str, Enum):
    STRUCTURED_FACTS = "structured-facts"
    DOCUMENT_EXTRACTION = "document-extraction"
    EXTERNAL_AGGREGATE = "external-aggregate"
    DERIVED = "derived"          # recomputed side of a consistency check


# Merge order, highest priority first
SOURCE_PRIORITY: tuple[Provenance, ...] = (
    Provenance.STRUCTURED_FACTS,
    Provenance.DOCUMENT_EXTRACTION,
    Provenance.EXTERNAL_AGGREGATE,
)


# ---------------------------------------------------------------------------
# Source records
# ---------------------------------------------------------------------------

class ExtractedYearlyRecord(BaseModel):
    """One source's view of one fiscal year.  None means "not found"."""
    model_config = ConfigDict(frozen=True)

    fiscal_year: int
    provenance: Provenance
    values: dict[str, MetricValue | None] = Field(default_factory=dict)

    def get(self, metric: str) -> MetricValue | None:
        return self.values.get(metric)

    def present_metrics(self) -> list[str]:
        return [k for k, v in self.values.items() if v is not None]


# ---------------------------------------------------------------------------
# Reconciled output
# ---------------------------------------------------------------------------

class ReconciledValue(BaseModel):
    model_config = ConfigDict(frozen=True)

    value: MetricValue
    provenance: Provenance


class ConsistencyWarning(BaseModel):
    """Advisory disagreement between two derivations of the same metric.

    delta_pct is a relative percentage for cross-source checks, percentage
    points for recomputed load factors and None for range checks.
    """
    model_config = ConfigDict(frozen=True)

    rule: str
    metric: str
    primary_source: Provenance
    primary_value: Decimal
    secondary_source: Provenance | None = None
    secondary_value: Decimal | None = None
    delta_pct: Decimal | None = None
    message: str


class ReconciledYearlyRecord(BaseModel):
    """Final per-year output.  Absent metrics are simply missing from *metrics*."""
    model_config = ConfigDict(frozen=True)

    fiscal_year: int
    metrics: dict[str, ReconciledValue] = Field(default_factory=dict)
    warnings: list[ConsistencyWarning] = Field(default_factory=list)
    sources_used: list[Provenance] = Field(default_factory=list)

    def value(self, metric: str) -> MetricValue | None:
        rv = self.metrics.get(metric)
        return rv.value if rv is not None else None

    def provenance(self, metric: str) -> Provenance | None:
        rv = self.metrics.get(metric)
        return rv.provenance if rv is not None else None

    def present_metrics(self) -> list[str]:
        return list(self.metrics)
