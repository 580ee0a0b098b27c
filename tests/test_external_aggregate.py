"""Tests for annualizing statistical-authority rows."""

from decimal import Decimal

import pandas as pd

from airline_recon.external_aggregate import (
    annualize_on_time,
    annualize_operations,
    external_record,
    fleet_summary,
)
from airline_recon.models import Provenance

T100 = [
    {"YEAR": 2023, "MONTH": 1, "PASSENGERS": 1000000, "RPM": 1200000000, "ASM": 1400000000,
     "FREIGHT_TON_MILES": 5000000, "MAIL_TON_MILES": 1000000, "DEPARTURES_PERFORMED": 9000,
     "AIR_HOURS": 21000},
    {"YEAR": 2023, "MONTH": 2, "PASSENGERS": 1000000, "RPM": 1200000000, "ASM": 1400000000,
     "FREIGHT_TON_MILES": 5000000, "MAIL_TON_MILES": 1000000, "DEPARTURES_PERFORMED": 9000,
     "AIR_HOURS": 20000},
    {"YEAR": 2022, "MONTH": 12, "PASSENGERS": 900000, "RPM": 1000000000, "ASM": 1300000000,
     "FREIGHT_TON_MILES": 4000000, "MAIL_TON_MILES": 1000000, "DEPARTURES_PERFORMED": 8500,
     "AIR_HOURS": 19000},
]


def test_annualize_operations_sums_the_fiscal_year():
    rec = annualize_operations(T100, 2023)
    assert rec.provenance is Provenance.EXTERNAL_AGGREGATE
    assert rec.get("passengers_carried") == Decimal("2000000")
    assert rec.get("revenue_passenger_miles") == Decimal("2400")
    assert rec.get("available_seat_miles") == Decimal("2800")
    assert rec.get("departures") == Decimal("18000")
    assert rec.get("block_hours") == Decimal("41000")
    assert rec.get("cargo_ton_miles") == Decimal("12")


def test_load_factor_is_recomputed_from_sums():
    rec = annualize_operations(T100, 2023)
    assert rec.get("load_factor") == Decimal("85.71")


def test_cargo_without_mail_column():
    rows = [{k: v for k, v in row.items() if k != "MAIL_TON_MILES"} for row in T100]
    rec = annualize_operations(rows, 2023)
    assert rec.get("cargo_ton_miles") == Decimal("10")


def test_accepts_a_dataframe_and_missing_year():
    rec = annualize_operations(pd.DataFrame(T100), 2023)
    assert rec.get("passengers_carried") == Decimal("2000000")
    assert annualize_operations(T100, 2019).present_metrics() == []
    assert annualize_operations(None, 2023).present_metrics() == []


def test_on_time_is_weighted_by_flights():
    rows = [
        {"ARR_FLIGHTS": 3000, "ARR_DEL15": 300, "CANCELLED": 10, "DIVERTED": 2},
        {"ARR_FLIGHTS": 1000, "ARR_DEL15": 300, "CANCELLED": 30, "DIVERTED": 1},
    ]
    result = annualize_on_time(rows)
    # (4000 - 600) / 4000, not the mean of 90% and 70%
    assert result["on_time_percentage"] == Decimal("85.00")
    assert result["cancellation_rate"] == Decimal("1.00")


def test_on_time_without_flights():
    assert annualize_on_time([]) == {"on_time_percentage": None, "cancellation_rate": None}
    assert annualize_on_time([{"ARR_FLIGHTS": 0, "ARR_DEL15": 0}])["on_time_percentage"] is None


def test_fleet_summary():
    rows = [
        {"AIRCRAFT_TYPE": "Boeing 737-800", "YEAR_MANUFACTURED": 2010},
        {"AIRCRAFT_TYPE": "Airbus A321", "YEAR_MANUFACTURED": 2018},
        {"AIRCRAFT_TYPE": "Boeing 737-800", "YEAR_MANUFACTURED": 2012},
    ]
    summary = fleet_summary(rows, 2023)
    assert summary["fleet_size"] == Decimal("3")
    assert summary["fleet_composition"] == "2 Boeing 737-800, 1 Airbus A321"
    assert summary["fleet_age"] == Decimal("9.7")


def test_fleet_summary_without_inventory():
    assert fleet_summary([], 2023) == {
        "fleet_size": None, "fleet_composition": None, "fleet_age": None,
    }


def test_external_record_combines_available_inputs():
    rec = external_record(
        2023,
        operations=T100,
        on_time=[{"ARR_FLIGHTS": 1000, "ARR_DEL15": 180, "CANCELLED": 5}],
    )
    assert rec.fiscal_year == 2023
    assert rec.get("available_seat_miles") == Decimal("2800")
    assert rec.get("on_time_percentage") == Decimal("82.00")
    assert rec.get("cancellation_rate") == Decimal("0.50")
    assert rec.get("fleet_size") is None
    assert "fleet_size" not in rec.present_metrics()
