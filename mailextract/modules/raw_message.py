"""
Raw Message Parser
Parses raw RFC822 text into the plain body, HTML body and attachment list

This is the generic MIME parser the resolvers fall back to when the
structure description is missing or empty: a pre-fetched or re-fetched raw
message goes in, a ParsedMessage comes out.

MAINTENANCE WISDOM: Keep parsing separate from I/O. Callers decide where
raw text comes from; this module only turns text into data.
"""

import email
import logging
from dataclasses import dataclass, field
from email.header import decode_header, make_header
from email.message import Message
from typing import List, Optional, Union


logger = logging.getLogger(__name__)


class MessageParseError(Exception):
    """Raised when raw message text cannot be parsed"""


@dataclass
class ParsedAttachment:
    """An attachment found while walking a raw message"""
    filename: Optional[str]
    content_type: str
    content: bytes = b""


@dataclass
class ParsedMessage:
    """Bodies and attachments recovered from a raw message"""
    text: str = ""
    html: str = ""
    attachments: List[ParsedAttachment] = field(default_factory=list)


def parse_raw_message(raw: Union[str, bytes]) -> ParsedMessage:
    """
    Parse raw message text

    Args:
        raw: Full RFC822 message or a bare body section, as str or bytes

    Returns:
        ParsedMessage with the first plain body, the first HTML body and
        every attachment-like part

    Raises:
        MessageParseError: If the text cannot be parsed
    """
    try:
        if not isinstance(raw, bytes):
            # Parse as bytes so non-ASCII payloads survive get_payload(decode=True)
            raw = str(raw or "").encode("utf-8", errors="replace")
        msg = email.message_from_bytes(raw)
        return _walk_message(msg)
    except MessageParseError:
        raise
    except Exception as e:
        raise MessageParseError(f"Could not parse message: {e}") from e


def _walk_message(msg: Message) -> ParsedMessage:
    parsed = ParsedMessage()

    for part in msg.walk():
        if part.is_multipart():
            continue

        content_type = part.get_content_type()
        disposition = (part.get_content_disposition() or "").lower()
        filename = decode_header_value(part.get_filename() or "") or None

        if disposition == "attachment" or filename:
            parsed.attachments.append(_build_attachment(part, filename))
        elif content_type == "text/plain":
            if not parsed.text:
                parsed.text = _decode_part_payload(part)
        elif content_type == "text/html":
            if not parsed.html:
                parsed.html = _decode_part_payload(part)
        elif part.get_content_maintype() != "text":
            parsed.attachments.append(_build_attachment(part, filename))

    return parsed


def _build_attachment(part: Message, filename: Optional[str]) -> ParsedAttachment:
    payload = part.get_payload(decode=True)
    return ParsedAttachment(
        filename=filename,
        content_type=part.get_content_type(),
        content=payload if isinstance(payload, bytes) else b"",
    )


def decode_header_value(value: str) -> str:
    """Decode an RFC 2047 encoded header value, falling back to the raw value."""
    if not value:
        return ""
    try:
        return str(make_header(decode_header(value)))
    except Exception:
        return value


def _decode_part_payload(part: Message) -> str:
    payload = part.get_payload(decode=True)
    if not payload:
        return ""
    return decode_bytes(payload, part.get_content_charset())


def decode_bytes(data: bytes, charset: Optional[str] = None) -> str:
    """
    Decode bytes to str with charset fallback

    Malformed input never fails: undecodable bytes are replaced and an
    unknown charset falls back to UTF-8.
    """
    encoding = charset or "utf-8"
    try:
        return data.decode(encoding, errors="replace")
    except LookupError:
        return data.decode("utf-8", errors="replace")
