"""
Tests for structured logging functionality
"""

import json
import logging
import sys
import unittest

from mailextract.utils.structured_logging import JSONFormatter


def _record(level=logging.INFO, msg="Test message", exc_info=None):
    return logging.LogRecord(
        name="test_logger",
        level=level,
        pathname="test.py",
        lineno=42,
        msg=msg,
        args=(),
        exc_info=exc_info,
        func="test_function"
    )


class TestJSONFormatter(unittest.TestCase):
    """Test cases for JSONFormatter"""

    def setUp(self):
        """Set up test fixtures"""
        self.formatter = JSONFormatter()

    def test_basic_json_format(self):
        """Test that logs are formatted as valid JSON"""
        data = json.loads(self.formatter.format(_record()))

        self.assertIn("timestamp", data)
        self.assertEqual(data["level"], "INFO")
        self.assertEqual(data["logger"], "test_logger")
        self.assertEqual(data["message"], "Test message")
        self.assertEqual(data["module"], "test")
        self.assertEqual(data["function"], "test_function")
        self.assertEqual(data["line"], 42)

    def test_exception_logging(self):
        """Test that exceptions are included in JSON output"""
        try:
            raise ValueError("Test error")
        except ValueError:
            exc_info = sys.exc_info()

        data = json.loads(self.formatter.format(_record(logging.ERROR, "failed", exc_info)))

        self.assertIn("exception", data)
        self.assertIn("ValueError: Test error", data["exception"])

    def test_extra_fields(self):
        """Test that extra fields are merged into the object"""
        record = _record()
        record.extra_fields = {"uid": 7, "mailbox": "INBOX"}

        data = json.loads(self.formatter.format(record))

        self.assertEqual(data["uid"], 7)
        self.assertEqual(data["mailbox"], "INBOX")

    def test_sensitive_fields_are_redacted(self):
        """
        SECURITY STORY: Credentials passed as context must never reach a
        log file in clear text.
        """
        record = _record()
        record.extra_fields = {"imap_password": "hunter2", "api_token": "abc", "user": "a@x.com"}

        data = json.loads(self.formatter.format(record))

        self.assertEqual(data["imap_password"], "[REDACTED]")
        self.assertEqual(data["api_token"], "[REDACTED]")
        self.assertEqual(data["user"], "a@x.com")

    def test_non_serializable_values(self):
        record = _record()
        record.extra_fields = {"path": object()}
        data = json.loads(self.formatter.format(record))
        self.assertIn("object", data["path"])


if __name__ == "__main__":
    unittest.main()
