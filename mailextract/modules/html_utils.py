"""
HTML Utilities
Shared BeautifulSoup helpers for the sanitizer, structurer and table extractor
"""

import re
from typing import Iterator, List

from bs4 import BeautifulSoup
from bs4.element import NavigableString, PageElement, PreformattedString, Tag


# Subtrees that never contribute content
SKIP_TAGS = frozenset({"style", "script", "head", "meta", "link", "noscript"})

# Elements that cannot have children
VOID_TAGS = frozenset({
    "img", "br", "hr", "input", "wbr", "col",
    "area", "base", "embed", "source", "track",
})

# Containers merged into their parent level instead of nesting
TRANSPARENT_TAGS = frozenset({"html", "body", "tbody", "thead", "tfoot"})

CELL_TAGS = ("td", "th")

_WHITESPACE_RE = re.compile(r"\s+")
_MARKUP_RE = re.compile(r"<[a-z][\s\S]*>", re.IGNORECASE)


def parse_html(html: str) -> BeautifulSoup:
    """Parse HTML with the tolerant stdlib-backed parser."""
    return BeautifulSoup(html, "html.parser")


def looks_like_html(text: str) -> bool:
    """True if the text contains something shaped like an opening tag."""
    return bool(_MARKUP_RE.search(text or ""))


def is_text_node(node: PageElement) -> bool:
    """Character data only; comments, doctypes and CDATA are excluded."""
    return isinstance(node, NavigableString) and not isinstance(node, PreformattedString)


def text_content(node: PageElement) -> str:
    """Concatenated text of a node and its descendants, &nbsp; as a space."""
    if is_text_node(node):
        return str(node).replace("\u00a0", " ")
    if not isinstance(node, Tag):
        return ""
    return "".join(
        str(child).replace("\u00a0", " ")
        for child in node.descendants
        if is_text_node(child)
    )


def collapse_whitespace(text: str) -> str:
    """Collapse whitespace runs (including &nbsp;) to single spaces and trim."""
    return _WHITESPACE_RE.sub(" ", text or "").strip()


def iter_table_rows(table: Tag) -> Iterator[Tag]:
    """
    Yield the rows belonging to a table

    Descends through row groups and other wrappers but never into a row, so
    rows of tables nested inside cells are not yielded here.
    """
    for child in table.children:
        if not isinstance(child, Tag):
            continue
        if child.name == "tr":
            yield child
        else:
            yield from iter_table_rows(child)


def row_cells(row: Tag) -> List[Tag]:
    """Direct td/th children of a row."""
    return [
        cell for cell in row.children
        if isinstance(cell, Tag) and cell.name in CELL_TAGS
    ]
