"""
Tests for the body resolution pipeline

SECURITY STORY: Fetch errors from a flaky server must degrade to the next
fallback, never abort the run. Every failure path here uses AsyncMock
side effects instead of a network.
"""

import unittest
from unittest.mock import AsyncMock

from mailextract.modules.body_resolver import (
    BodyFormat,
    Projection,
    ResolvedBody,
    TEXT_SECTION,
    has_body_content,
    resolve_body,
    truncate_body,
)


ALTERNATIVE = [{
    "type": "multipart",
    "subtype": "alternative",
    "parts": [
        {"type": "text", "subtype": "plain", "partID": "1"},
        {"type": "text", "subtype": "html", "partID": "2"},
    ],
}]
PLAIN_ONLY = [{"type": "text", "subtype": "plain", "partID": "1"}]
TABLE_HTML = "<h1>Data</h1><table><tr><th>Field</th></tr><tr><td>Name</td></tr></table>"


def _fetcher(html=None, text=None):
    """fetch_part stand-in answering by subtype"""
    async def fetch(part):
        return html if part.subtype == "html" else text
    return fetch


class TestHelpers(unittest.TestCase):
    """Tests for has_body_content() and truncate_body()"""

    def test_has_body_content(self):
        self.assertFalse(has_body_content(""))
        self.assertFalse(has_body_content("  \n"))
        self.assertFalse(has_body_content({}))
        self.assertFalse(has_body_content(None))
        self.assertTrue(has_body_content("x"))
        self.assertTrue(has_body_content({"a": 1}))

    def test_truncate_long_text(self):
        value, truncated = truncate_body("a" * 500)
        self.assertEqual(len(value), 203)
        self.assertTrue(value.endswith("..."))
        self.assertTrue(truncated)

    def test_truncate_short_text_and_mappings(self):
        self.assertEqual(truncate_body("short"), ("short", False))
        self.assertEqual(truncate_body({"k": "v"}), ({"k": "v"}, False))

    def test_empty_body(self):
        body = ResolvedBody.empty()
        self.assertEqual(body.text, "")
        self.assertTrue(body.is_empty)


class TestResolveBody(unittest.IsolatedAsyncioTestCase):
    """Tests for resolve_body()"""

    async def test_html_preferred_and_sanitized(self):
        body = await resolve_body(ALTERNATIVE, _fetcher(html="<p>Hello</p><p>World</p>", text="plain"))
        self.assertEqual(body.text, "Hello\nWorld")
        self.assertEqual(body.source_format, BodyFormat.HTML)

    async def test_raw_html_is_unchanged(self):
        html = "<div><b>Keep</b> me</div>"
        body = await resolve_body(ALTERNATIVE, _fetcher(html=html, text="plain"), projection=Projection.RAW_HTML)
        self.assertEqual(body.text, html)

    async def test_blank_html_falls_back_to_plain(self):
        body = await resolve_body(ALTERNATIVE, _fetcher(html="   ", text="plain body"))
        self.assertEqual(body.text, "plain body")
        self.assertEqual(body.source_format, BodyFormat.PLAIN)

    async def test_html_fetch_error_falls_back_to_plain(self):
        async def fetch(part):
            if part.subtype == "html":
                raise ConnectionError("reset")
            return "plain body"

        with self.assertLogs("mailextract.modules.body_resolver", level="ERROR"):
            body = await resolve_body(ALTERNATIVE, fetch)
        self.assertEqual(body.text, "plain body")

    async def test_bytes_are_decoded(self):
        body = await resolve_body(PLAIN_ONLY, _fetcher(text="café".encode("utf-8")))
        self.assertEqual(body.text, "café")

    async def test_refetch_when_parts_are_empty(self):
        refetch = AsyncMock(return_value="Subject: x\r\n\r\nFrom the server")
        body = await resolve_body(PLAIN_ONLY, _fetcher(text=""), refetch, uid=42)

        self.assertEqual(body.text.strip(), "From the server")
        refetch.assert_awaited_once_with(42, [TEXT_SECTION])

    async def test_refetch_html_when_no_plain(self):
        raw = "Content-Type: text/html\r\n\r\n<p>Only html</p>"
        refetch = AsyncMock(return_value=raw)
        body = await resolve_body(None, None, refetch, uid=1)
        self.assertEqual(body.text, "Only html")
        self.assertEqual(body.source_format, BodyFormat.HTML)

    async def test_everything_fails_gives_empty(self):
        refetch = AsyncMock(side_effect=TimeoutError("slow"))
        with self.assertLogs("mailextract.modules.body_resolver", level="ERROR"):
            body = await resolve_body([], _fetcher(), refetch, uid=1)
        self.assertEqual(body.text, "")
        self.assertTrue(body.is_empty)

    async def test_no_struct_no_refetch(self):
        body = await resolve_body(None, _fetcher(text="ignored"))
        self.assertTrue(body.is_empty)

    async def test_plain_preview_is_truncated(self):
        body = await resolve_body(PLAIN_ONLY, _fetcher(text="b" * 500))
        self.assertEqual(len(body.text), 203)
        self.assertTrue(body.truncated)

    async def test_single_message_is_not_truncated(self):
        body = await resolve_body(PLAIN_ONLY, _fetcher(text="b" * 500), single_message=True)
        self.assertEqual(len(body.text), 500)
        self.assertFalse(body.truncated)

    async def test_full_and_raw_projections_are_not_truncated(self):
        for projection in (Projection.FULL_SANITIZED, Projection.RAW_HTML):
            body = await resolve_body(PLAIN_ONLY, _fetcher(text="b" * 500), projection=projection)
            self.assertEqual(len(body.text), 500)

    async def test_hierarchical_projection(self):
        body = await resolve_body(ALTERNATIVE, _fetcher(html=TABLE_HTML), projection=Projection.HIERARCHICAL_JSON)
        self.assertEqual(body.text, {"h1": "Data", "table": [["Field"], ["Name"]]})

    async def test_columnar_projection(self):
        body = await resolve_body(ALTERNATIVE, _fetcher(html=TABLE_HTML), projection=Projection.COLUMNAR_JSON)
        self.assertEqual(body.text, {"Field": ["Name"]})

    async def test_columnar_without_tables_is_empty_mapping(self):
        body = await resolve_body(
            ALTERNATIVE, _fetcher(html="<p>No tables</p>", text="plain"),
            projection=Projection.COLUMNAR_JSON,
        )
        self.assertEqual(body.text, {})

    async def test_markup_in_plain_part_is_structured(self):
        body = await resolve_body(PLAIN_ONLY, _fetcher(text=TABLE_HTML), projection=Projection.COLUMNAR_JSON)
        self.assertEqual(body.text, {"Field": ["Name"]})
        self.assertEqual(body.source_format, BodyFormat.PLAIN)

    async def test_plain_text_under_structured_projection_stays_text(self):
        body = await resolve_body(PLAIN_ONLY, _fetcher(text="no markup"), projection=Projection.HIERARCHICAL_JSON)
        self.assertEqual(body.text, "no markup")


if __name__ == "__main__":
    unittest.main()
