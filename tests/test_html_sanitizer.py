"""
Tests for the HTML to text sanitizer
"""

import unittest
from unittest.mock import patch

from mailextract.modules.html_sanitizer import sanitize_html


class TestSanitizeHtml(unittest.TestCase):
    """Tests for sanitize_html()"""

    def test_empty_input(self):
        self.assertEqual(sanitize_html(""), "")
        self.assertEqual(sanitize_html(None), "")

    def test_paragraphs_on_separate_lines(self):
        self.assertEqual(sanitize_html("<p>Hello</p><p>World</p>"), "Hello\nWorld")

    def test_heading_gets_blank_line(self):
        self.assertEqual(sanitize_html("<h1>Title</h1><p>Body</p>"), "Title\n\nBody")

    def test_heading_case_is_preserved(self):
        self.assertIn("Mixed Case Heading", sanitize_html("<h2>Mixed Case Heading</h2>"))

    def test_line_break(self):
        self.assertEqual(sanitize_html("Line one<br>Line two"), "Line one\nLine two")

    def test_table_rows_are_pipe_delimited(self):
        html = (
            "<p>Thank you for your response:</p>"
            "<table><tr><th>Field</th><th>Response</th></tr>"
            "<tr><td>Name</td><td>John Doe</td></tr></table>"
            "<p>Signature line here.</p>"
        )
        self.assertEqual(
            sanitize_html(html),
            "Thank you for your response:\n"
            "| Field | Response |\n"
            "| Name | John Doe |\n"
            "Signature line here."
        )

    def test_nbsp_in_cells(self):
        html = "<table><tr><td><div>&nbsp;Field</div></td><td>Response</td></tr></table>"
        self.assertEqual(sanitize_html(html), "| Field | Response |")

    def test_link_href_is_dropped(self):
        text = sanitize_html('<p>Contact <a href="mailto:x@example.com">Example Marketing</a></p>')
        self.assertEqual(text, "Contact Example Marketing")
        self.assertNotIn("mailto", text)

    def test_script_and_style_are_removed(self):
        html = "<style>p {color: red}</style><script>alert(1)</script><p>Visible</p>"
        self.assertEqual(sanitize_html(html), "Visible")

    def test_unordered_list(self):
        self.assertEqual(sanitize_html("<ul><li>One</li><li>Two</li></ul>"), " * One\n * Two")

    def test_ordered_list(self):
        self.assertEqual(sanitize_html("<ol><li>One</li><li>Two</li></ol>"), "1. One\n2. Two")

    def test_plain_text_passes_through(self):
        text = "Your issue has been resolved."
        self.assertEqual(sanitize_html(text), text)

    def test_inline_whitespace_collapses(self):
        self.assertEqual(sanitize_html("<p>a   <b>bold</b>\t word</p>"), "a bold word")

    @patch("mailextract.modules.html_sanitizer.parse_html", side_effect=RuntimeError("boom"))
    def test_failure_falls_back_to_tag_stripping(self, _mock_parse):
        self.assertEqual(sanitize_html("<p>Hello</p> <p>World</p>"), "Hello World")


if __name__ == "__main__":
    unittest.main()
