"""
Tests for Sanitization Utility
"""

import unittest

from mailextract.utils.sanitization import (
    DEFAULT_FILENAME,
    redact_email,
    sanitize_filename,
    sanitize_for_logging,
)


class TestSanitizeForLogging(unittest.TestCase):

    def test_basic_sanitization(self):
        """Test basic string sanitization"""
        self.assertEqual(sanitize_for_logging("Hello World"), "Hello World")
        self.assertEqual(sanitize_for_logging(""), "")
        self.assertEqual(sanitize_for_logging(None), "")

    def test_newline_sanitization(self):
        """Test that newlines are escaped"""
        self.assertEqual(sanitize_for_logging("Line 1\nLine 2"), "Line 1\\nLine 2")
        self.assertEqual(sanitize_for_logging("Line 1\r\nLine 2"), "Line 1\\r\\nLine 2")

    def test_control_character_sanitization(self):
        """Test that control characters and ANSI escapes are removed"""
        self.assertEqual(sanitize_for_logging("Ding\x07"), "Ding")
        self.assertEqual(sanitize_for_logging("\x1b[31mRed\x1b[0m"), "Red")

    def test_unicode_normalization(self):
        self.assertEqual(sanitize_for_logging("\ufb01le"), "file")

    def test_truncation(self):
        result = sanitize_for_logging("a" * 300, max_length=10)
        self.assertEqual(result, "a" * 10 + "...")


class TestRedactEmail(unittest.TestCase):

    def test_redacts_local_part(self):
        self.assertEqual(redact_email("john.doe@example.com"), "j***@example.com")

    def test_not_an_address(self):
        self.assertEqual(redact_email("nobody"), "***")
        self.assertEqual(redact_email(""), "***")


class TestSanitizeFilename(unittest.TestCase):
    """
    SECURITY STORY: Attachment names are chosen by the sender. These cases
    are the classic ways to write outside the download directory.
    """

    def test_plain_name_is_kept(self):
        self.assertEqual(sanitize_filename("invoice.pdf"), "invoice.pdf")

    def test_path_traversal(self):
        self.assertEqual(sanitize_filename("../../etc/passwd"), "passwd")
        self.assertEqual(sanitize_filename("..\\..\\windows\\win.ini"), "win.ini")

    def test_unsafe_characters(self):
        self.assertEqual(sanitize_filename("re<port>|2024?.pdf"), "report2024.pdf")

    def test_double_dots_collapse(self):
        self.assertEqual(sanitize_filename("archive..tar..gz"), "archive.tar.gz")

    def test_empty_results_use_default(self):
        self.assertEqual(sanitize_filename(""), DEFAULT_FILENAME)
        self.assertEqual(sanitize_filename(None), DEFAULT_FILENAME)
        self.assertEqual(sanitize_filename("../.."), DEFAULT_FILENAME)

    def test_windows_reserved_names(self):
        self.assertEqual(sanitize_filename("CON.txt"), "_CON.txt")
        self.assertEqual(sanitize_filename("lpt1"), "_lpt1")

    def test_length_limit(self):
        self.assertEqual(len(sanitize_filename("a" * 300 + ".pdf")), 255)


if __name__ == "__main__":
    unittest.main()
