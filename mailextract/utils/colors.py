"""
ANSI Color codes for console output formatting
"""

import os
import sys


class Colors:
    """ANSI color codes and helper methods"""
    RESET = "\033[0m"
    BOLD = "\033[1m"

    # Text Colors
    RED = "\033[31m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    BLUE = "\033[34m"
    MAGENTA = "\033[35m"
    CYAN = "\033[36m"
    GREY = "\033[90m"

    @staticmethod
    def enabled(stream=None) -> bool:
        """Colors only on a terminal, and never when NO_COLOR is set"""
        stream = stream or sys.stdout
        if os.getenv("NO_COLOR"):
            return False
        return hasattr(stream, "isatty") and stream.isatty()

    @classmethod
    def colorize(cls, text: str, color: str) -> str:
        """Wrap text in color codes"""
        if not cls.enabled():
            return text
        return f"{color}{text}{cls.RESET}"

    @classmethod
    def header(cls, text: str) -> str:
        """Format as a header (Bold Cyan)"""
        return cls.colorize(text, cls.BOLD + cls.CYAN)

    @classmethod
    def warning(cls, text: str) -> str:
        """Format as a warning (Yellow)"""
        return cls.colorize(text, cls.YELLOW)

    @classmethod
    def error(cls, text: str) -> str:
        """Format as an error (Red)"""
        return cls.colorize(text, cls.RED)

    @classmethod
    def success(cls, text: str) -> str:
        """Format as success (Green)"""
        return cls.colorize(text, cls.GREEN)
