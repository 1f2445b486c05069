"""
Logging Setup Module
Configures the root logger for the command line tool

Logs go to stderr so they never mix with extraction output on stdout.
"""

import copy
import logging
import sys
from pathlib import Path
from typing import Optional

from .colors import Colors
from .config import SystemConfig
from .structured_logging import JSONFormatter


LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class ColoredFormatter(logging.Formatter):
    """
    Formatter that colors level names on a terminal.
    Highlights a successful login and dims mailbox selection.
    """

    LEVEL_COLORS = {
        logging.DEBUG: Colors.GREY,
        logging.INFO: Colors.BLUE,
        logging.WARNING: Colors.YELLOW,
        logging.ERROR: Colors.RED,
        logging.CRITICAL: Colors.BOLD + Colors.RED
    }

    def __init__(self, fmt: str = LOG_FORMAT, datefmt: str = DATE_FORMAT, use_color: bool = True):
        super().__init__(fmt, datefmt)
        self.use_color = use_color

    def format(self, record):
        if not self.use_color:
            return super().format(record)

        # Copy so other handlers (file logging) never see ANSI codes
        record = copy.copy(record)

        color = self.LEVEL_COLORS.get(record.levelno, Colors.RESET)
        record.levelname = f"{color}{record.levelname}{Colors.RESET}"

        if isinstance(record.msg, str):
            if record.msg.startswith("Selected folder"):
                record.msg = f"{Colors.GREY}{record.msg}{Colors.RESET}"
            elif record.msg.startswith("Successfully connected"):
                record.msg = f"{Colors.GREEN}{record.msg}{Colors.RESET}"

        return super().format(record)


def resolve_level(level_name: Optional[str], default: int = logging.WARNING) -> int:
    """Map a level name to its value, with a safe fallback"""
    return logging._nameToLevel.get(str(level_name or "").upper(), default)


def setup_logging(system: SystemConfig, verbose: bool = False) -> logging.Logger:
    """
    Configure the root logger

    Args:
        system: System configuration (level, file, format)
        verbose: Force DEBUG level

    Returns:
        The root logger
    """
    level = logging.DEBUG if verbose else resolve_level(system.log_level)

    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
    root.setLevel(level)

    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(ColoredFormatter(use_color=Colors.enabled(sys.stderr)))
    root.addHandler(console)

    if system.log_file:
        log_path = Path(system.log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        if system.log_format == "json":
            file_handler.setFormatter(JSONFormatter())
        else:
            file_handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
        root.addHandler(file_handler)

    if str(system.log_level).upper() not in logging._nameToLevel:
        root.warning(
            "Invalid log level '%s'; defaulting to WARNING",
            system.log_level
        )

    return root
