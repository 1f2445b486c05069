"""
Columnar Table Extractor
Turns the tables of an HTML body into a column-name -> values mapping

The first row of each table names the columns (th or td alike); every
following row appends one value per column. Tables sharing a column name
append to the same list. A header repeated within one table keeps
its first column, so every column of a table gets one value per row.
"""

import logging
from typing import Dict, List, Optional

from .html_utils import (
    collapse_whitespace,
    iter_table_rows,
    parse_html,
    row_cells,
    text_content,
)


logger = logging.getLogger(__name__)


def _cell_texts(row) -> List[str]:
    return [collapse_whitespace(text_content(cell)) for cell in row_cells(row)]


def to_columnar_json(html: Optional[str]) -> Dict[str, List[str]]:
    """
    Extract every table of an HTML document as columns

    Args:
        html: HTML document or fragment

    Returns:
        Mapping of header text to the column's cell values, in row order.
        Empty when the document has no table.
    """
    if not html:
        return {}
    try:
        tables = parse_html(str(html)).find_all("table")
    except Exception as e:
        logger.warning(f"Could not parse HTML tables: {e}")
        return {}

    columns: Dict[str, List[str]] = {}

    for table in tables:
        rows = [_cell_texts(row) for row in iter_table_rows(table)]
        if not rows or not rows[0]:
            continue

        headers: Dict[str, int] = {}
        for index, header in enumerate(rows[0]):
            headers.setdefault(header, index)
            columns.setdefault(header, [])

        for row in rows[1:]:
            for header, index in headers.items():
                columns[header].append(row[index] if index < len(row) else "")

    return columns
