"""
Tests for the hierarchical JSON structurer and the columnar table extractor
"""

import unittest

from mailextract.modules.html_structurer import to_hierarchical_json
from mailextract.modules.table_extractor import to_columnar_json


MARKETING_HTML = (
    '<html><body><h1>Email Data</h1><table style="margin-bottom:1px"><tbody>'
    "<tr><td><div>&nbsp;Field</div></td><td><div>Response</div></td></tr>"
    "<tr><td><div>Name</div></td><td><div>John Doe</div></td></tr>"
    "<tr><td><div>Use Product</div></td><td><div>Yes</div></td></tr>"
    "</tbody></table><div><span>Take Care,</span></div>"
    '<div><a href="mailto:marketing@example.com">Example Marketing</a></div>'
    "</body></html>"
)


class TestHierarchicalJson(unittest.TestCase):
    """Tests for to_hierarchical_json()"""

    def test_empty_input(self):
        self.assertEqual(to_hierarchical_json(""), {})
        self.assertEqual(to_hierarchical_json(None), {})

    def test_text_only_elements(self):
        self.assertEqual(
            to_hierarchical_json("<h1>T</h1><p>body</p>"),
            {"h1": "T", "p": "body"}
        )

    def test_wrapper_chain_collapses_to_deepest_tag(self):
        self.assertEqual(to_hierarchical_json("<div><p><span>hi</span></p></div>"), {"span": "hi"})

    def test_repeated_tags_become_list(self):
        self.assertEqual(to_hierarchical_json("<p>a</p><p>b</p><p>c</p>"), {"p": ["a", "b", "c"]})

    def test_mixed_text_goes_to_tag_data(self):
        result = to_hierarchical_json("<div><p>Hello <b>there</b></p><p>x</p></div>")
        self.assertEqual(result, {"p": [{"tag-data": "Hello", "b": "there"}, "x"]})

    def test_table_becomes_row_lists(self):
        result = to_hierarchical_json(MARKETING_HTML)
        self.assertEqual(result["h1"], "Email Data")
        self.assertEqual(
            result["table"],
            [["Field", "Response"], ["Name", "John Doe"], ["Use Product", "Yes"]]
        )
        self.assertEqual(result["span"], "Take Care,")
        self.assertEqual(result["a"], "Example Marketing")

    def test_second_table_promotes_slot_to_list(self):
        """A single table's row list is never mistaken for a promoted slot"""
        html = "<table><tr><td>a</td></tr></table><table><tr><td>b</td></tr></table>"
        self.assertEqual(to_hierarchical_json(html), {"table": [[["a"]], [["b"]]]})

    def test_skipped_and_void_elements(self):
        html = "<head><title>x</title></head><style>p{}</style><p>kept</p><img src='a.png'>"
        self.assertEqual(to_hierarchical_json(html), {"p": "kept"})

    def test_plain_text_document(self):
        self.assertEqual(to_hierarchical_json("just text"), {"tag-data": "just text"})


class TestColumnarJson(unittest.TestCase):
    """Tests for to_columnar_json()"""

    def test_no_tables(self):
        self.assertEqual(to_columnar_json("<p>No tables here</p>"), {})
        self.assertEqual(to_columnar_json(""), {})

    def test_header_row_names_columns(self):
        html = (
            "<table><tr><th>Field</th><th>Response</th></tr>"
            "<tr><td>Name</td><td>John Doe</td></tr>"
            "<tr><td>Approved</td><td>Yes</td></tr></table>"
        )
        self.assertEqual(
            to_columnar_json(html),
            {"Field": ["Name", "Approved"], "Response": ["John Doe", "Yes"]}
        )

    def test_td_first_row_and_nbsp(self):
        self.assertEqual(
            to_columnar_json(MARKETING_HTML),
            {"Field": ["Name", "Use Product"], "Response": ["John Doe", "Yes"]}
        )

    def test_short_rows_are_padded(self):
        html = "<table><tr><td>A</td><td>B</td></tr><tr><td>1</td></tr></table>"
        self.assertEqual(to_columnar_json(html), {"A": ["1"], "B": [""]})

    def test_tables_merge_by_header(self):
        html = (
            "<table><tr><td>A</td></tr><tr><td>1</td></tr></table>"
            "<table><tr><td>A</td><td>B</td></tr><tr><td>2</td><td>3</td></tr></table>"
        )
        self.assertEqual(to_columnar_json(html), {"A": ["1", "2"], "B": ["3"]})

    def test_repeated_header_keeps_first_column(self):
        html = (
            "<table><tr><td>A</td><td>A</td><td>B</td></tr>"
            "<tr><td>1</td><td>2</td><td>3</td></tr>"
            "<tr><td>4</td><td>5</td></tr></table>"
        )
        self.assertEqual(to_columnar_json(html), {"A": ["1", "4"], "B": ["3", ""]})

    def test_header_only_table(self):
        html = "<table><tr><th>Only</th></tr></table>"
        self.assertEqual(to_columnar_json(html), {"Only": []})


if __name__ == "__main__":
    unittest.main()
