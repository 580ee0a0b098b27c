"""Tests for HTML parsing into tables and text."""

from airline_recon.document import ParsedDocument, parse_document

HTML = """
<html><head><style>.x { color: red }</style><script>var a = 1;</script></head>
<body>
  <p>Operating statistics for the year.</p>
  <div style="display: none">hidden 999,999</div>
  <table>
    <caption>Operating Statistics</caption>
    <tr><th></th><th>2024</th><th>2023</th></tr>
    <tr><td>Available seat miles&nbsp;(millions)</td><td>339,534</td><td>310,120</td></tr>
    <tr><td></td><td></td><td></td></tr>
  </table>
  <p>We operate a fleet of 950 aircraft.</p>
</body></html>
"""


def test_tables_keep_empty_cells():
    doc = parse_document(HTML)
    assert len(doc.tables) == 1
    table = doc.tables[0]
    assert table.rows[0] == ["", "2024", "2023"]
    assert table.rows[1] == ["Available seat miles (millions)", "339,534", "310,120"]
    # all-empty rows are dropped
    assert len(table.rows) == 2
    assert table.caption == "Operating Statistics"


def test_body_text_excludes_tables_and_hidden_blocks():
    doc = parse_document(HTML)
    assert "fleet of 950 aircraft" in doc.body_text
    assert "339,534" not in doc.body_text
    assert "999,999" not in doc.full_text
    assert "var a" not in doc.full_text


def test_full_text_concatenates_body_and_tables():
    doc = parse_document(HTML)
    assert doc.full_text.index("fleet of 950") < doc.full_text.index("339,534")
    assert "2024 2023" in doc.full_text


def test_plain_text_document():
    doc = parse_document("Available seat miles were 174.5 billion.")
    assert doc.tables == []
    assert doc.body_text == "Available seat miles were 174.5 billion."


def test_empty_input():
    assert parse_document("") == ParsedDocument.empty()
    assert parse_document(None).full_text == ""
