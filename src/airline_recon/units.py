"""Number parsing and magnitude normalization.

Every numeric value leaving an extractor is expressed in its metric's
canonical unit (see metric_catalog.CanonicalUnit).  Filers state magnitudes
inconsistently: "(in millions)" headers, "174.5 billion" in prose, or nothing
at all.  normalize() turns a raw token plus an optional unit token into the
canonical magnitude and returns None, never raises, when the token is not a
number.
"""

from __future__ import annotations

import logging
import re
from decimal import Decimal, InvalidOperation

from airline_recon.metric_catalog import (
    BILLIONS,
    MILLIONS,
    UNIT_PER_MILLION,
    MetricCatalogEntry,
)

log = logging.getLogger(__name__)

_NON_NUMERIC_RE = re.compile(r"[^0-9.]")
# trailing footnote markers: "339,534 (a)", "12.5(1)"
_FOOTNOTE_RE = re.compile(r"\(\s*[a-zA-Z\d]{1,2}\s*\)\s*$")
_DASHES = {"—", "–", "-", "n/a", "na", "nm", "*"}

_THOUSAND = Decimal("0.001")
_SMALL_VALUE_LIMIT = Decimal("1000")


# ═══════════════════════════════════════════════════════════════════════════
#  Parsing
# ═══════════════════════════════════════════════════════════════════════════

def parse_number(text: str | Decimal | int | float | None) -> Decimal | None:
    """Clean a numeric token to a Decimal.

    Strips thousands separators, currency and percent symbols, footnote
    parentheses and whitespace.  Returns None for anything that is not a
    number after cleanup (parse failure = extraction miss, not an error).
    """
    if text is None:
        return None
    if isinstance(text, Decimal):
        return text if text.is_finite() else None
    if isinstance(text, (int, float)):
        try:
            d = Decimal(str(text))
        except InvalidOperation:
            return None
        return d if d.is_finite() else None

    raw = text.strip()
    if not raw or raw.lower() in _DASHES:
        return None
    stripped = _FOOTNOTE_RE.sub("", raw)
    if any(ch.isdigit() for ch in stripped):
        raw = stripped
    cleaned = _NON_NUMERIC_RE.sub("", raw.replace(",", ""))
    if not cleaned or cleaned.count(".") > 1 or cleaned == ".":
        log.debug("Unparseable numeric token %r", text)
        return None
    try:
        return Decimal(cleaned)
    except InvalidOperation:
        log.debug("Unparseable numeric token %r", text)
        return None


# ═══════════════════════════════════════════════════════════════════════════
#  Unit tokens
# ═══════════════════════════════════════════════════════════════════════════

_BILLION_RE = re.compile(r"\bbillions?\b", re.IGNORECASE)
_MILLION_RE = re.compile(r"\bmillions?\b", re.IGNORECASE)
_THOUSAND_RE = re.compile(r"\bthousands?\b", re.IGNORECASE)


def unit_token_from_text(text: str | None) -> str:
    """Infer a unit token ("billion" / "million" / "thousand" / "") from text.

    An explicit "millions" wins over a stray "billion" in the same text
    (e.g. "(millions) ... 1.2 billion seats added" labels).
    """
    if not text:
        return ""
    if _MILLION_RE.search(text):
        return "million"
    if _BILLION_RE.search(text):
        return "billion"
    if _THOUSAND_RE.search(text):
        return "thousand"
    return ""


def _token_scale(unit_token: str) -> Decimal | None:
    """Millions per raw unit implied by an explicit unit token."""
    token = unit_token.lower()
    if "billion" in token:
        return BILLIONS
    if "thousand" in token:
        return _THOUSAND
    if "million" in token:
        return MILLIONS
    return None


# ═══════════════════════════════════════════════════════════════════════════
#  Normalization
# ═══════════════════════════════════════════════════════════════════════════

def normalize(
    raw_value: str | Decimal | int | float | None,
    unit_token: str | None,
    metric: MetricCatalogEntry,
    *,
    small_values: bool = True,
) -> Decimal | None:
    """Convert a raw number + optional unit token to the metric's canonical unit.

    Rules (millions are the intermediate magnitude):
      - token contains "billion"  → x 1000
      - token contains "thousand" → / 1000
      - token contains "million"  → unchanged
      - no token: seat/passenger-mile metrics below 1000 are assumed to be
        unlabelled billions (x 1000); otherwise the metric's default scale
        applies (millions for traffic and revenue tables, absolute for
        counts and hours)

    small_values=False skips the below-1000 rescaling entirely; the free-text
    path uses it for counts, where an unlabelled "196 passengers" is literal.

    Percentages and years are never rescaled.  Returns None when the raw
    value is not numeric.
    """
    value = parse_number(raw_value)
    if value is None:
        return None

    per_million = UNIT_PER_MILLION.get(metric.unit)
    if per_million is None:
        return value

    scale = _token_scale(unit_token or "")
    if scale is None:
        if small_values and metric.small_value_scale is not None and abs(value) < _SMALL_VALUE_LIMIT:
            scale = metric.small_value_scale
            log.debug("Assuming %s value %s is scaled x%s (no unit label)",
                      metric.name, value, scale)
        else:
            scale = metric.default_scale

    result = value * scale * per_million
    if result == result.to_integral_value():
        result = result.quantize(Decimal(1))
    return result


def in_plausible_range(value: Decimal, metric: MetricCatalogEntry) -> bool:
    """Sanity check against the metric's plausible range (inclusive)."""
    if metric.plausible_range is None:
        return True
    lo, hi = metric.plausible_range
    return lo <= value <= hi
