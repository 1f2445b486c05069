"""
Tests for the logging setup and the colored console formatter
"""

import json
import logging
import tempfile
import unittest
from pathlib import Path

from mailextract.utils.colors import Colors
from mailextract.utils.config import SystemConfig
from mailextract.utils.logging_utils import ColoredFormatter, resolve_level, setup_logging


def _record(level, msg):
    return logging.LogRecord(
        name="test", level=level, pathname="test.py", lineno=1,
        msg=msg, args=(), exc_info=None
    )


class TestColoredFormatter(unittest.TestCase):
    def setUp(self):
        self.formatter = ColoredFormatter(fmt="%(levelname)s %(message)s")

    def test_level_names_are_colored(self):
        expected = {
            logging.DEBUG: Colors.GREY,
            logging.INFO: Colors.BLUE,
            logging.WARNING: Colors.YELLOW,
            logging.ERROR: Colors.RED,
        }
        for level, color in expected.items():
            name = logging.getLevelName(level)
            formatted = self.formatter.format(_record(level, "message"))
            self.assertIn(f"{color}{name}{Colors.RESET}", formatted)

    def test_record_is_not_modified(self):
        """Other handlers must never see ANSI codes"""
        record = _record(logging.INFO, "Successfully connected as u***@x.com")
        self.formatter.format(record)
        self.assertEqual(record.levelname, "INFO")
        self.assertEqual(record.msg, "Successfully connected as u***@x.com")

    def test_connection_messages_are_highlighted(self):
        connected = self.formatter.format(_record(logging.INFO, "Successfully connected as a"))
        selected = self.formatter.format(_record(logging.DEBUG, "Selected folder: INBOX"))
        self.assertIn(f"{Colors.GREEN}Successfully connected", connected)
        self.assertIn(f"{Colors.GREY}Selected folder", selected)

    def test_without_color(self):
        formatter = ColoredFormatter(fmt="%(levelname)s %(message)s", use_color=False)
        self.assertEqual(formatter.format(_record(logging.ERROR, "boom")), "ERROR boom")


class TestSetupLogging(unittest.TestCase):
    def setUp(self):
        self.root = logging.getLogger()
        self.saved_handlers = list(self.root.handlers)
        self.saved_level = self.root.level

    def tearDown(self):
        for handler in list(self.root.handlers):
            handler.close()
            self.root.removeHandler(handler)
        for handler in self.saved_handlers:
            self.root.addHandler(handler)
        self.root.setLevel(self.saved_level)

    def test_resolve_level(self):
        self.assertEqual(resolve_level("debug"), logging.DEBUG)
        self.assertEqual(resolve_level("nonsense"), logging.WARNING)
        self.assertEqual(resolve_level(None, logging.INFO), logging.INFO)

    def test_level_and_single_console_handler(self):
        setup_logging(SystemConfig(log_level="INFO"))
        setup_logging(SystemConfig(log_level="INFO"))

        self.assertEqual(self.root.level, logging.INFO)
        self.assertEqual(len(self.root.handlers), 1)

    def test_verbose_forces_debug(self):
        setup_logging(SystemConfig(log_level="ERROR"), verbose=True)
        self.assertEqual(self.root.level, logging.DEBUG)

    def test_json_log_file(self):
        with tempfile.TemporaryDirectory() as tmp:
            log_file = Path(tmp) / "logs" / "run.log"
            setup_logging(SystemConfig(log_level="INFO", log_file=str(log_file), log_format="json"))

            logging.getLogger("mailextract.test").info("hello")
            for handler in self.root.handlers:
                handler.flush()

            entry = json.loads(log_file.read_text(encoding="utf-8").splitlines()[0])
            self.assertEqual(entry["message"], "hello")
            self.assertEqual(entry["logger"], "mailextract.test")

            for handler in list(self.root.handlers):
                handler.close()
                self.root.removeHandler(handler)

    def test_invalid_level_warns(self):
        root = setup_logging(SystemConfig(log_level="LOUD"))
        self.assertEqual(root.level, logging.WARNING)


if __name__ == "__main__":
    unittest.main()
