"""Annual-report HTML → tables and flattened text.

Table cells are kept one-for-one with the markup (``td``/``th``, empty cells
included).  The year resolver reads cells by position within a row: header
alignment maps a year's header cell index to the candidate ordinal of the
data row (one leading label cell assumed), and the adjacent-cell strategy
looks at the cells beside a candidate's own column.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field

from bs4 import BeautifulSoup, NavigableString, Tag

log = logging.getLogger(__name__)

_BLOCK_TAGS = frozenset([
    "p", "div", "br", "h1", "h2", "h3", "h4", "h5", "h6",
    "li", "ol", "ul", "blockquote", "pre", "hr",
    "section", "article", "header", "footer", "nav",
    "dt", "dd", "dl", "figcaption", "figure",
])

_WS_RE = re.compile(r"\s+")
_HIDDEN_RE = re.compile(r"display\s*:\s*none", re.I)


def _clean(text: str) -> str:
    return _WS_RE.sub(" ", text.replace("\xa0", " ")).strip()


# ═══════════════════════════════════════════════════════════════════════════
#  Parsed structures
# ═══════════════════════════════════════════════════════════════════════════

@dataclass
class ParsedTable:
    """One ``<table>``: cell texts per row, plus caption and flattened text."""

    rows: list[list[str]]
    caption: str = ""
    index: int = 0

    @property
    def text(self) -> str:
        """Row texts (non-empty cells joined by spaces), one row per line."""
        lines = [" ".join(c for c in row if c) for row in self.rows]
        body = "\n".join(line for line in lines if line)
        return f"{self.caption}\n{body}" if self.caption else body

    def row_text(self, row_idx: int) -> str:
        return " ".join(c for c in self.rows[row_idx] if c)

    def __repr__(self) -> str:
        return f"ParsedTable(index={self.index}, rows={len(self.rows)}, caption={self.caption!r})"


@dataclass
class ParsedDocument:
    tables: list[ParsedTable] = field(default_factory=list)
    body_text: str = ""

    @property
    def full_text(self) -> str:
        """Body text followed by every table's text."""
        parts = [self.body_text] + [t.text for t in self.tables]
        return "\n".join(p for p in parts if p)

    @classmethod
    def empty(cls) -> ParsedDocument:
        return cls()


# ═══════════════════════════════════════════════════════════════════════════
#  Parsing
# ═══════════════════════════════════════════════════════════════════════════

def _parse_table(table: Tag, index: int) -> ParsedTable:
    rows: list[list[str]] = []
    for tr in table.find_all("tr"):
        cells = [_clean(td.get_text(" ")) for td in tr.find_all(["td", "th"])]
        if any(cells):
            rows.append(cells)
    caption_tag = table.find("caption")
    caption = _clean(caption_tag.get_text(" ")) if caption_tag else ""
    return ParsedTable(rows=rows, caption=caption, index=index)


def _block_text(soup: BeautifulSoup) -> str:
    """Walk the tree inserting newlines around block elements only."""
    parts: list[str] = []

    def _walk(node: Tag | NavigableString) -> None:
        if isinstance(node, NavigableString):
            text = str(node)
            if text.strip():
                parts.append(text)
            return
        if not isinstance(node, Tag):
            return
        is_block = (node.name or "").lower() in _BLOCK_TAGS
        if is_block:
            parts.append("\n")
        for child in node.children:
            _walk(child)
        if is_block:
            parts.append("\n")

    _walk(soup)
    text = "".join(parts).replace("\xa0", " ")
    text = re.sub(r"[ \t]+", " ", text)
    text = re.sub(r" *\n *", "\n", text)
    text = re.sub(r"\n{3,}", "\n\n", text)
    return text.strip()


def parse_document(html: str | None) -> ParsedDocument:
    """Parse filing HTML into tables and body text.

    Plain text input (no markup) yields a document with no tables whose body
    is the text itself.  Any parser failure yields an empty document.
    """
    if not html or not html.strip():
        return ParsedDocument.empty()
    try:
        soup = BeautifulSoup(html, "html.parser")

        for tag in soup(["script", "style"]):
            tag.decompose()
        for tag in soup.find_all(attrs={"style": _HIDDEN_RE}):
            tag.decompose()

        table_tags = soup.find_all("table")
        tables = [_parse_table(t, i) for i, t in enumerate(table_tags)]
        tables = [t for t in tables if t.rows]
        # Tables are kept structurally; drop them from the prose walk
        outer = [t for t in table_tags if t.find_parent("table") is None]
        for t in outer:
            t.decompose()

        body = _block_text(soup)
    except Exception as e:
        log.warning("Document parse failed, treating as empty: %s", e)
        return ParsedDocument.empty()

    log.debug("Parsed document: %d tables, %d chars body text", len(tables), len(body))
    return ParsedDocument(tables=tables, body_text=body)
