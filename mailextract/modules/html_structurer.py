"""
Hierarchical JSON Structurer
Reduces an HTML document to a nested mapping that mirrors its element nesting

Example:
    <h1>Email Data</h1><div><p>Hello <b>there</b></p></div>

    {"h1": "Email Data", "p": {"tag-data": "Hello", "b": "there"}}

Reduction rules:
- style/script/head/meta/link/noscript subtrees are dropped, void elements
  (img, br, ...) contribute nothing
- html/body/tbody/thead/tfoot are transparent: their children merge into
  the enclosing level
- a table becomes a list of row lists stored under "table"
- a chain of wrappers that each hold exactly one meaningful element is
  collapsed to its deepest element
- an element holding only text becomes that text
- text mixed with elements is gathered into "tag-data" runs
- repeated sibling tags turn the slot into a list
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from bs4.element import PageElement, Tag

from .html_utils import (
    SKIP_TAGS,
    TRANSPARENT_TAGS,
    VOID_TAGS,
    is_text_node,
    iter_table_rows,
    parse_html,
    row_cells,
    text_content,
)


logger = logging.getLogger(__name__)

TEXT_KEY = "tag-data"
TABLE_KEY = "table"


class _Level:
    """
    Result mapping of one nesting level

    Remembers which keys were promoted to lists by repetition, so a value
    that is a list on its own (table rows) is never mistaken for one.
    """

    def __init__(self):
        self.data: Dict[str, Any] = {}
        self._promoted = set()

    def add(self, key: str, value: Any):
        if key not in self.data:
            self.data[key] = value
        elif key in self._promoted:
            self.data[key].append(value)
        else:
            self.data[key] = [self.data[key], value]
            self._promoted.add(key)

    def merge(self, other: "_Level"):
        for key, value in other.data.items():
            if key in other._promoted:
                for item in value:
                    self.add(key, item)
            else:
                self.add(key, value)


def _is_meaningful(node: PageElement) -> bool:
    if is_text_node(node):
        return bool(str(node).strip())
    if isinstance(node, Tag):
        return node.name not in SKIP_TAGS and node.name not in VOID_TAGS
    return False


def _meaningful_children(node: Tag) -> List[PageElement]:
    return [child for child in node.children if _is_meaningful(child)]


def _table_rows(table: Tag) -> List[List[str]]:
    rows = []
    for row in iter_table_rows(table):
        cells = [text_content(cell).strip() for cell in row_cells(row)]
        if cells:
            rows.append(cells)
    return rows


def _collapse_wrappers(node: Tag) -> Tuple[str, Tag]:
    """
    Collapse single-child wrappers down to the deepest meaningful element

    <div><p><span>text</span></p></div> collapses to ("span", <span>).
    """
    meaningful = _meaningful_children(node)
    if len(meaningful) == 1 and isinstance(meaningful[0], Tag):
        child = meaningful[0]
        if child.name == TABLE_KEY:
            return TABLE_KEY, child
        if child.name in TRANSPARENT_TAGS:
            return _collapse_wrappers(child)
        grandchildren = _meaningful_children(child)
        if len(grandchildren) == 1 and isinstance(grandchildren[0], Tag):
            return _collapse_wrappers(child)
        return child.name, child
    return node.name or "root", node


def _process_element(node: Tag) -> Optional[Any]:
    meaningful = _meaningful_children(node)

    if all(is_text_node(child) for child in meaningful):
        text = text_content(node).strip()
        return text or None

    return _process_children(node.children).data


def _process_children(children) -> _Level:
    level = _Level()
    pending: List[str] = []

    for child in children:
        if is_text_node(child):
            text = str(child).replace("\u00a0", " ").strip()
            if text:
                pending.append(text)
            continue

        if not isinstance(child, Tag):
            continue
        if child.name in SKIP_TAGS or child.name in VOID_TAGS:
            continue

        if pending:
            level.add(TEXT_KEY, " ".join(pending))
            pending = []

        if child.name == TABLE_KEY:
            level.add(TABLE_KEY, _table_rows(child))
            continue

        if child.name in TRANSPARENT_TAGS:
            level.merge(_process_children(child.children))
            continue

        tag, deepest = _collapse_wrappers(child)
        if tag == TABLE_KEY:
            level.add(TABLE_KEY, _table_rows(deepest))
            continue

        value = _process_element(deepest)
        if value is not None:
            level.add(tag, value)

    if pending:
        level.add(TEXT_KEY, " ".join(pending))

    return level


def to_hierarchical_json(html: Optional[str]) -> Dict[str, Any]:
    """
    Convert HTML into a hierarchical mapping

    Never raises: missing or unparseable input yields an empty mapping.

    Args:
        html: HTML document or fragment

    Returns:
        Nested mapping of tag names to text, mappings, row lists or lists
        of those
    """
    if not html:
        return {}
    try:
        result = _process_children(parse_html(str(html)).children).data
    except Exception as e:
        logger.warning(f"Could not structure HTML body: {e}")
        return {}

    # A lone wrapper key (e.g. a leftover top-level element) is unwrapped
    if len(result) == 1:
        only_value = next(iter(result.values()))
        if isinstance(only_value, dict):
            return only_value

    return result
