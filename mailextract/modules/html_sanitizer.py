"""
HTML Sanitizer
Converts HTML bodies to readable, block-aware plain text

Block elements request line breaks before and after themselves; adjacent
requests collapse to the larger one instead of adding up, so a paragraph
followed by a heading is separated by the heading's two breaks, not three.
Tables are rendered one row per line as pipe-delimited cells:

    | Field | Response |
    | Name | John Doe |
"""

import logging
import re
from typing import List, Optional

from bs4.element import Tag

from .html_utils import (
    SKIP_TAGS,
    collapse_whitespace,
    is_text_node,
    iter_table_rows,
    parse_html,
    row_cells,
    text_content,
)


logger = logging.getLogger(__name__)

# (leading, trailing) line breaks requested by block elements
BLOCK_BREAKS = {
    "p": (1, 1),
    "div": (1, 1),
    "h1": (2, 2),
    "h2": (2, 2),
    "h3": (2, 1),
    "h4": (2, 2),
    "h5": (2, 2),
    "h6": (2, 2),
    "blockquote": (1, 1),
    "pre": (1, 1),
    "hr": (1, 1),
    "section": (1, 1),
    "article": (1, 1),
    "header": (1, 1),
    "footer": (1, 1),
    "address": (1, 1),
    "center": (1, 1),
    "dl": (1, 1),
    "dt": (1, 1),
    "dd": (1, 1),
    "tr": (1, 1),
}

IGNORED_TAGS = SKIP_TAGS | {"title", "template"}

_TOKEN_RE = re.compile(r"\s+|\S+")
_TAG_RE = re.compile(r"<[^>]*>")


class _TextBuilder:
    """Accumulates words and owed line breaks."""

    def __init__(self):
        self._chunks: List[str] = []
        self._breaks = 0
        self._space = False
        self._glue = False

    def open_block(self, leading: int):
        self._breaks = max(self._breaks, leading)
        self._space = False

    def close_block(self, trailing: int):
        self._breaks = max(self._breaks, trailing)
        self._space = False
        self._glue = False

    def line_break(self):
        self._breaks += 1
        self._space = False

    def add_prefix(self, prefix: str):
        self._emit(prefix)
        self._glue = True

    def add_text(self, text: str):
        seen_word = False
        owed_newlines = 0
        for match in _TOKEN_RE.finditer(text):
            token = match.group()
            if token.isspace():
                # Newlines between words of one text node are kept
                if seen_word:
                    owed_newlines = token.count("\n")
                self._space = True
                continue
            if owed_newlines:
                self._breaks = max(self._breaks, owed_newlines)
                owed_newlines = 0
            self._emit(token)
            seen_word = True

    def add_lines(self, lines: List[str], leading: int = 1, trailing: int = 1):
        self.open_block(leading)
        for index, line in enumerate(lines):
            if index:
                self._breaks = max(self._breaks, 1)
            self._emit(line)
        self.close_block(trailing)

    def _emit(self, word: str):
        if self._chunks and not self._glue:
            if self._breaks:
                self._chunks.append("\n" * self._breaks)
            elif self._space:
                self._chunks.append(" ")
        self._chunks.append(word)
        self._breaks = 0
        self._space = False
        self._glue = False

    def result(self) -> str:
        return "".join(self._chunks)


def _table_lines(table: Tag) -> List[str]:
    lines = []
    for row in iter_table_rows(table):
        cells = [collapse_whitespace(text_content(cell)) for cell in row_cells(row)]
        if cells:
            lines.append("| " + " | ".join(cells) + " |")
    return lines


def _walk_list(list_tag: Tag, builder: _TextBuilder):
    ordered = list_tag.name == "ol"
    builder.open_block(1)
    number = 0
    for child in list_tag.children:
        if isinstance(child, Tag) and child.name == "li":
            number += 1
            builder.open_block(1)
            builder.add_prefix(f"{number}. " if ordered else " * ")
            _walk(child, builder)
            builder.close_block(1)
        elif isinstance(child, Tag):
            _walk_element(child, builder)
    builder.close_block(1)


def _walk_element(element: Tag, builder: _TextBuilder):
    name = element.name
    if name in IGNORED_TAGS:
        return
    if name == "br":
        builder.line_break()
        return
    if name == "table":
        builder.add_lines(_table_lines(element))
        return
    if name in ("ul", "ol"):
        _walk_list(element, builder)
        return

    breaks = BLOCK_BREAKS.get(name)
    if breaks:
        builder.open_block(breaks[0])
        _walk(element, builder)
        builder.close_block(breaks[1])
    else:
        # Inline elements (anchors included) render their text only
        _walk(element, builder)


def _walk(node: Tag, builder: _TextBuilder):
    for child in node.children:
        if is_text_node(child):
            builder.add_text(str(child))
        elif isinstance(child, Tag):
            _walk_element(child, builder)


def sanitize_html(html: Optional[str]) -> str:
    """
    Convert HTML to readable plain text

    Never raises: if the markup cannot be walked, the input is returned
    with its tags stripped.

    Args:
        html: HTML document or fragment

    Returns:
        Plain text with block structure preserved as line breaks
    """
    if not html:
        return ""
    html = str(html)
    try:
        builder = _TextBuilder()
        _walk(parse_html(html), builder)
        return builder.result()
    except Exception as e:
        logger.warning(f"HTML sanitization failed, falling back to tag stripping: {e}")
        return collapse_whitespace(_TAG_RE.sub(" ", html))
