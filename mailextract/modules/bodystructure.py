"""
BODYSTRUCTURE Parser
Turns raw imaplib FETCH responses into MimePart trees

imaplib hands back FETCH data as a list mixing plain bytes and
(prefix, literal) tuples, where each prefix ends with a {size} marker for
the literal that follows. parse_fetch_response() stitches those pieces back
into one token stream and parses the parenthesized list:

    [(b'1 (UID 7 BODYSTRUCTURE (...) BODY[HEADER.FIELDS (FROM)] {24}',
      b'From: a@example.com\\r\\n\\r\\n'),
     b')']

    -> {"UID": "7", "BODYSTRUCTURE": [...], "BODY[HEADER.FIELDS (FROM)]": b"From: ..."}

parse_bodystructure() then walks the BODYSTRUCTURE list and assigns IMAP
part numbers ("1", "2", "2.1", ...) usable with BODY.PEEK[<part>].
"""

import logging
import re
from email.utils import collapse_rfc2231_value, decode_rfc2231
from typing import Any, Dict, Iterator, List, Optional, Tuple, Union
from urllib.parse import unquote

from .mime_part import Disposition, MimePart
from .raw_message import decode_header_value


logger = logging.getLogger(__name__)

_LITERAL_MARKER_RE = re.compile(rb"\{(\d+)\}\s*$")

# Index of the MD5 field for single parts; the disposition follows it
_TEXT_MD5_INDEX = 8
_MESSAGE_MD5_INDEX = 10
_BASIC_MD5_INDEX = 7


class FetchParseError(ValueError):
    """Raised when a FETCH response cannot be parsed"""


class _Literal(bytes):
    """Marks a literal string so the tokenizer never re-scans it"""


def _flatten(data: Any) -> List[Union[bytes, _Literal]]:
    """Split imaplib FETCH data into text segments and literals."""
    segments: List[Union[bytes, _Literal]] = []
    for item in data or []:
        if isinstance(item, tuple):
            prefix = item[0] if item else b""
            literal = item[1] if len(item) > 1 else b""
            if isinstance(prefix, str):
                prefix = prefix.encode()
            segments.append(_LITERAL_MARKER_RE.sub(b"", prefix))
            segments.append(_Literal(literal or b""))
        elif isinstance(item, (bytes, bytearray)):
            segments.append(bytes(item))
        elif isinstance(item, str):
            segments.append(item.encode())
    return segments


def _tokenize(segments: List[Union[bytes, _Literal]]) -> Iterator[Any]:
    for segment in segments:
        if isinstance(segment, _Literal):
            yield bytes(segment)
            continue
        yield from _tokenize_text(segment)


def _tokenize_text(text: bytes) -> Iterator[Any]:
    i = 0
    length = len(text)
    while i < length:
        ch = text[i:i + 1]
        if ch.isspace():
            i += 1
        elif ch in (b"(", b")"):
            yield ch.decode()
            i += 1
        elif ch == b'"':
            i += 1
            buf = bytearray()
            while i < length and text[i:i + 1] != b'"':
                if text[i:i + 1] == b"\\" and i + 1 < length:
                    i += 1
                buf += text[i:i + 1]
                i += 1
            i += 1
            yield _QuotedString(buf.decode("utf-8", errors="replace"))
        else:
            start = i
            depth = 0
            while i < length:
                ch = text[i:i + 1]
                if ch == b"[":
                    depth += 1
                elif ch == b"]":
                    depth -= 1
                elif depth == 0 and (ch.isspace() or ch in (b"(", b")")):
                    break
                i += 1
            atom = text[start:i].decode("utf-8", errors="replace")
            yield None if atom.upper() == "NIL" else atom


class _QuotedString(str):
    """A quoted string token, never confused with a parenthesis"""


def _parse_list(tokens: Iterator[Any]) -> List[Any]:
    result: List[Any] = []
    for token in tokens:
        if token == ")" and not isinstance(token, _QuotedString):
            return result
        if token == "(" and not isinstance(token, _QuotedString):
            result.append(_parse_list(tokens))
        else:
            result.append(str(token) if isinstance(token, _QuotedString) else token)
    raise FetchParseError("Unbalanced parenthesis in FETCH response")


def parse_fetch_response(data: Any) -> Dict[str, Any]:
    """
    Parse the data returned by one imaplib UID FETCH call

    Args:
        data: Data list returned by imaplib (bytes and literal tuples)

    Returns:
        Mapping of upper-cased FETCH item name to value. Literals stay
        bytes, NIL becomes None, lists become Python lists.
    """
    tokens = _tokenize(_flatten(data))

    # Skip the message sequence number
    for token in tokens:
        if token == "(":
            break
    else:
        raise FetchParseError("FETCH response holds no item list")

    items = _parse_list(tokens)
    if len(items) % 2:
        raise FetchParseError("FETCH item list has an odd number of elements")

    return {
        str(items[i]).upper(): items[i + 1]
        for i in range(0, len(items), 2)
    }


def _as_str(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return str(value)


def _decode_extended_value(value: str) -> str:
    """Decode an RFC 2231 charset'language'percent-encoded value."""
    charset, language, text = decode_rfc2231(value)
    return collapse_rfc2231_value((charset, language, unquote(text, encoding="latin-1")))


def _parse_params(raw: Any) -> Dict[str, str]:
    """Parse a (key value key value ...) parameter list."""
    if not isinstance(raw, list):
        return {}
    params: Dict[str, str] = {}
    for i in range(0, len(raw) - 1, 2):
        key = _as_str(raw[i]).lower()
        value = _as_str(raw[i + 1])
        if key.endswith("*"):
            key = key.rstrip("*")
            value = _decode_extended_value(value)
        else:
            value = decode_header_value(value)
        params[key] = value
    return params


def _parse_disposition(raw: Any) -> Optional[Disposition]:
    if not isinstance(raw, list) or not raw:
        return None
    return Disposition(
        kind=_as_str(raw[0]).lower(),
        params=_parse_params(raw[1] if len(raw) > 1 else None),
    )


def _child_id(prefix: str, index: int) -> str:
    return f"{prefix}.{index}" if prefix else str(index)


def _parse_single(node: List[Any], part_id: str) -> MimePart:
    type_ = _as_str(node[0]).lower() if node else ""
    subtype = _as_str(node[1]).lower() if len(node) > 1 else ""

    if type_ == "text":
        md5_index = _TEXT_MD5_INDEX
    elif type_ == "message" and subtype == "rfc822":
        md5_index = _MESSAGE_MD5_INDEX
    else:
        md5_index = _BASIC_MD5_INDEX

    disposition_index = md5_index + 1
    return MimePart(
        type=type_,
        subtype=subtype,
        params=_parse_params(node[2] if len(node) > 2 else None),
        encoding=_as_str(node[5]).lower() if len(node) > 5 and node[5] else None,
        disposition=_parse_disposition(
            node[disposition_index] if len(node) > disposition_index else None
        ),
        part_id=part_id,
    )


def _parse_multipart(node: List[Any], prefix: str) -> MimePart:
    children = []
    index = 0
    while index < len(node) and isinstance(node[index], list):
        children.append(_parse_node(node[index], _child_id(prefix, index + 1)))
        index += 1

    rest = node[index:]
    subtype = _as_str(rest[0]).lower() if rest else ""
    return MimePart(
        type="multipart",
        subtype=subtype,
        params=_parse_params(rest[1] if len(rest) > 1 else None),
        disposition=_parse_disposition(rest[2] if len(rest) > 2 else None),
        children=children,
        part_id=prefix or None,
    )


def _parse_node(node: List[Any], part_id: str) -> MimePart:
    if node and isinstance(node[0], list):
        return _parse_multipart(node, part_id)
    return _parse_single(node, part_id)


def parse_bodystructure(tree: Any) -> List[MimePart]:
    """
    Convert a parsed BODYSTRUCTURE list into MimeParts

    A single-part message is part "1"; a multipart message's top-level
    container has no part number and its children are "1", "2", ...

    Returns:
        List holding the root MimePart, or empty for a missing structure
    """
    if not isinstance(tree, list) or not tree:
        return []
    if isinstance(tree[0], list):
        return [_parse_multipart(tree, "")]
    return [_parse_single(tree, "1")]


def parse_header_block(raw: Union[bytes, str, None]) -> Dict[str, List[str]]:
    """
    Parse a HEADER.FIELDS literal into lower-case field -> values

    Folded continuation lines are unfolded and encoded words decoded.
    """
    text = _as_str(raw)
    headers: Dict[str, List[str]] = {}
    current: Optional[Tuple[str, List[str]]] = None

    for line in text.splitlines():
        if not line.strip():
            continue
        if line[:1] in (" ", "\t") and current is not None:
            current[1][-1] += " " + line.strip()
            continue
        name, sep, value = line.partition(":")
        if not sep:
            continue
        values = headers.setdefault(name.strip().lower(), [])
        values.append(value.strip())
        current = (name, values)

    return {
        name: [decode_header_value(value) for value in values]
        for name, values in headers.items()
    }
