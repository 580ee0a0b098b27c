"""MCP tool functions, called directly (no transport)."""

from decimal import Decimal

import pytest

pytest.importorskip("fastmcp")

from airline_recon import server  # noqa: E402

pytestmark = pytest.mark.integration


def _call(tool, *args, **kwargs):
    # @mcp.tool() may wrap the function in a tool object
    return getattr(tool, "fn", tool)(*args, **kwargs)


FILING = """
<table>
  <tr><td></td><td>2024</td><td>2023</td></tr>
  <tr><td>Available seat miles (millions)</td><td>339,534</td><td>310,120</td></tr>
  <tr><td>Revenue passenger miles (millions)</td><td>287,003</td><td>264,910</td></tr>
</table>
"""

COMPANYFACTS = {
    "facts": {
        "us-gaap": {
            "Revenues": {"label": "Revenues", "units": {"USD": [
                {"val": 53716000000, "fy": 2023, "fp": "FY", "form": "10-K",
                 "frame": "CY2023", "end": "2023-12-31"},
                {"val": 52000000000, "fy": 2024, "fp": "FY", "form": "10-K",
                 "frame": "CY2024", "end": "2024-12-31"},
            ]}},
        },
    },
}


def test_list_metrics():
    metrics = _call(server.list_metrics)
    assert len(metrics) == 21
    by_name = {m["name"]: m for m in metrics}
    assert by_name["available_seat_miles"]["unit"] == "miles_millions"
    assert by_name["on_time_percentage"]["document_scannable"] is False


def test_extract_document_metrics():
    result = _call(server.extract_document_metrics, FILING, 2024)
    assert result["provenance"] == "document-extraction"
    assert Decimal(result["values"]["available_seat_miles"]) == Decimal("339534")


def test_reconcile_fiscal_year_with_plain_mapping():
    result = _call(
        server.reconcile_fiscal_year,
        2023,
        structured={"total_revenue": 53716000000},
        document_html=FILING,
    )
    assert result["fiscal_year"] == 2023
    revenue = result["metrics"]["total_revenue"]
    assert revenue["provenance"] == "structured-facts"
    assert Decimal(revenue["value"]) == Decimal("53716000000")
    assert result["metrics"]["available_seat_miles"]["provenance"] == "document-extraction"


def test_reconcile_fiscal_years_from_companyfacts():
    results = _call(
        server.reconcile_fiscal_years,
        companyfacts=COMPANYFACTS,
        documents={"2023": FILING},
        external={"2023": {"on_time": [{"ARR_FLIGHTS": 1000, "ARR_DEL15": 150}]}},
    )
    assert [r["fiscal_year"] for r in results] == [2024, 2023]
    fy2023 = results[1]
    assert Decimal(fy2023["metrics"]["on_time_percentage"]["value"]) == Decimal("85.00")
    assert fy2023["metrics"]["on_time_percentage"]["provenance"] == "external-aggregate"
