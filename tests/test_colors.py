"""Tests for Colors utility class."""

import os
import unittest
from unittest.mock import MagicMock, patch

from mailextract.utils.colors import Colors


def _stream(tty: bool):
    stream = MagicMock()
    stream.isatty.return_value = tty
    return stream


class TestColors(unittest.TestCase):
    """Test color utility methods."""

    def test_enabled_on_tty(self):
        with patch.dict(os.environ, {}, clear=True):
            self.assertTrue(Colors.enabled(_stream(True)))

    def test_disabled_when_piped(self):
        with patch.dict(os.environ, {}, clear=True):
            self.assertFalse(Colors.enabled(_stream(False)))

    def test_no_color_wins(self):
        with patch.dict(os.environ, {"NO_COLOR": "1"}):
            self.assertFalse(Colors.enabled(_stream(True)))

    def test_stream_without_isatty(self):
        with patch.dict(os.environ, {}, clear=True):
            self.assertFalse(Colors.enabled(object()))

    @patch("mailextract.utils.colors.Colors.enabled", return_value=True)
    def test_colorize_wraps_text(self, _mock_enabled):
        self.assertEqual(Colors.success("ok"), f"{Colors.GREEN}ok{Colors.RESET}")
        self.assertEqual(Colors.error("bad"), f"{Colors.RED}bad{Colors.RESET}")
        self.assertEqual(Colors.warning("hm"), f"{Colors.YELLOW}hm{Colors.RESET}")
        self.assertEqual(Colors.header("T"), f"{Colors.BOLD}{Colors.CYAN}T{Colors.RESET}")

    @patch("mailextract.utils.colors.Colors.enabled", return_value=False)
    def test_plain_text_when_disabled(self, _mock_enabled):
        self.assertEqual(Colors.success("ok"), "ok")
        self.assertEqual(Colors.header("T"), "T")


if __name__ == "__main__":
    unittest.main()
