"""
Sanitization Utility Module
Makes untrusted message data safe to log and safe to use as a filename

SECURITY STORY: Subjects, sender addresses and attachment names all come
from whoever sent the email. Logged verbatim they can forge log lines
(CRLF injection) or drive the terminal (ANSI escapes); used verbatim as a
filename, "../../.bashrc" writes outside the download folder.
"""

import re
import unicodedata


_ANSI_ESCAPE_RE = re.compile(r"\x1B(?:[@-Z\\-_]|\[[0-?]*[ -/]*[@-~])")
_CONTROL_CHARS_RE = re.compile(r"[\x00-\x08\x0b-\x1f\x7f]")

_FILENAME_UNSAFE_RE = re.compile(r"[^\w\s\-\.]")
_FILENAME_DOTS_RE = re.compile(r"\.{2,}")

DEFAULT_FILENAME = "unnamed_attachment"

# Reserved on Windows regardless of extension (CON.txt is still CON)
WINDOWS_RESERVED_NAMES = {
    "CON", "PRN", "AUX", "NUL",
    *(f"COM{i}" for i in range(1, 10)),
    *(f"LPT{i}" for i in range(1, 10)),
}


def sanitize_for_logging(text: str, max_length: int = 255) -> str:
    """
    Sanitize text for a single log line

    Args:
        text: Untrusted input
        max_length: Longer input is cut and suffixed with "..."

    Returns:
        Text with newlines escaped and escape/control sequences removed
    """
    if not text:
        return ""

    text = unicodedata.normalize("NFKC", str(text))
    text = text.replace("\n", "\\n").replace("\r", "\\r")
    text = _ANSI_ESCAPE_RE.sub("", text)
    text = _CONTROL_CHARS_RE.sub("", text)

    if len(text) > max_length:
        text = text[:max_length] + "..."
    return text


def redact_email(address: str) -> str:
    """
    Redact the local part of an email address for logs

    Example:
        >>> redact_email("john.doe@example.com")
        'j***@example.com'
    """
    if not address or "@" not in address:
        return "***"
    local, _, domain = address.partition("@")
    return f"{local[:1]}***@{domain}"


def sanitize_filename(filename: str) -> str:
    """
    Reduce an attachment name to a safe basename

    Path components are stripped, then only word characters, spaces,
    hyphens and single dots are kept.

    Example:
        >>> sanitize_filename("../../etc/passwd")
        'passwd'
        >>> sanitize_filename("invoice.pdf")
        'invoice.pdf'
    """
    if not filename:
        return DEFAULT_FILENAME

    name = filename.replace("\\", "/").split("/")[-1]
    name = _FILENAME_UNSAFE_RE.sub("", name)
    name = _FILENAME_DOTS_RE.sub(".", name)
    name = name.strip(". ")

    if not name:
        return DEFAULT_FILENAME

    if name.split(".")[0].strip().upper() in WINDOWS_RESERVED_NAMES:
        name = "_" + name

    return name[:255]
