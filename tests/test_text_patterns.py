"""Tests for the free-text regex fallback."""

from decimal import Decimal

from airline_recon.metric_catalog import (
    ASM,
    CARGO_LOAD_FACTOR,
    FLEET_SIZE,
    LOAD_FACTOR,
    ON_TIME,
    PASSENGERS,
    TOTAL_REVENUE,
    get_entry,
)
from airline_recon.text_patterns import scan_text


def test_number_before_label_with_unit():
    text = "In 2023 we flew 174.5 billion available seat miles across the network."
    assert scan_text(text, get_entry(ASM)) == Decimal("174500")


def test_label_unit_in_parentheses():
    text = "Available seat miles (millions) 310,120"
    assert scan_text(text, get_entry(ASM)) == Decimal("310120")


def test_passenger_load_factor_ignores_cargo():
    assert scan_text("Our passenger load factor was 84.5% in 2023.",
                     get_entry(LOAD_FACTOR)) == Decimal("84.5")
    assert scan_text("The cargo load factor was 60.1%.", get_entry(LOAD_FACTOR)) is None
    assert scan_text("The cargo load factor was 60.1%.",
                     get_entry(CARGO_LOAD_FACTOR)) == Decimal("60.1")


def test_fleet_size_phrase():
    text = "At year end we operated a fleet of 950 aircraft."
    assert scan_text(text, get_entry(FLEET_SIZE)) == Decimal("950")


def test_revenue_requires_dollar_and_magnitude():
    entry = get_entry(TOTAL_REVENUE)
    assert scan_text("Total operating revenues were $53.7 billion in 2023.",
                     entry) == Decimal("53700000000")
    assert scan_text("Total operating revenues were 53.7 in 2023.", entry) is None


def test_implausible_match_is_skipped():
    # 0.05 (read as billions) is far below any real carrier
    text = "available seat miles 0.05 and later available seat miles 310,120"
    assert scan_text(text, get_entry(ASM)) == Decimal("310120")


def test_metric_without_patterns():
    assert scan_text("on-time arrival rate of 82.1%", get_entry(ON_TIME)) is None
    assert scan_text("", get_entry(ASM)) is None


def test_year_after_label_is_not_a_value():
    text = "Available seat miles in 2023 rose 5% over the prior year."
    assert scan_text(text, get_entry(ASM)) is None
    assert scan_text("available seat miles totaled 310120 for the year",
                     get_entry(ASM)) == Decimal("310120")


def test_unlabelled_passenger_count_is_literal():
    entry = get_entry(PASSENGERS)
    assert scan_text("Our A321neo aircraft are configured for 196 passengers.", entry) is None
    assert scan_text("We carried 190.5 million passengers in 2023.", entry) == Decimal("190500000")
