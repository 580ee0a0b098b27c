"""Free-text regex fallback, used only when no table yields a value."""

from __future__ import annotations

import logging
from decimal import Decimal

from airline_recon.metric_catalog import CanonicalUnit, MetricCatalogEntry
from airline_recon.units import in_plausible_range, normalize

log = logging.getLogger(__name__)


def scan_text(full_text: str, metric: MetricCatalogEntry) -> Decimal | None:
    """Apply the metric's ordered patterns to *full_text*.

    Patterns are tried in catalog order; within a pattern, matches are tried
    in document order.  A match that does not normalize, or that normalizes
    outside the metric's plausible range, is skipped.

    The no-unit small-value rescaling only applies to mile metrics here;
    prose counts without a unit word are taken literally.
    """
    if not full_text or not metric.text_patterns:
        return None

    small_values = metric.unit is CanonicalUnit.MILES_MILLIONS
    for pattern_idx, pattern in enumerate(metric.text_patterns):
        for m in pattern.finditer(full_text):
            groups = m.groupdict()
            token = groups.get("unit") or groups.get("label_unit") or ""
            value = normalize(groups.get("num"), token, metric, small_values=small_values)
            if value is None:
                continue
            if not in_plausible_range(value, metric):
                log.debug("Text match %r for %s outside plausible range", m.group(0), metric.name)
                continue
            log.info("Found %s=%s in text via pattern %d: %.80s",
                     metric.name, value, pattern_idx, m.group(0))
            return value
    return None
