"""
Body Resolution Pipeline
Produces one authoritative body for a message from its struct and part data

Fallback order, stopping at the first stage that yields non-blank content:

    1. the first text/html leaf          -> HTML
    2. the first text/plain leaf         -> plain text
    3. re-fetch the TEXT section by UID  -> its plain text, else its HTML
    4. nothing                           -> empty body

Each stage that fails (fetch error, parse error) is logged and treated as
empty so the next one runs. HTML content is then projected: sanitized text,
raw passthrough, hierarchical JSON or columnar JSON.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple, Union

from .html_sanitizer import sanitize_html
from .html_structurer import to_hierarchical_json
from .html_utils import looks_like_html
from .mime_navigator import find_html_part, find_text_part
from .mime_part import MimePart
from .raw_message import MessageParseError, decode_bytes, parse_raw_message
from .table_extractor import to_columnar_json
from ..utils.sanitization import sanitize_for_logging


logger = logging.getLogger(__name__)

MAX_BODY_PREVIEW_LENGTH = 200
TRUNCATION_SUFFIX = "..."

# Section holding the message body without its headers
TEXT_SECTION = "TEXT"

BodyValue = Union[str, Dict[str, Any]]
FetchPartFn = Callable[[MimePart], Awaitable[Union[str, bytes, None]]]
RefetchFn = Callable[[Any, List[str]], Awaitable[Optional[Union[str, bytes]]]]


class Projection(str, Enum):
    """How a resolved body is presented"""
    PLAIN = "plain"
    FULL_SANITIZED = "full-sanitized"
    RAW_HTML = "raw-html"
    HIERARCHICAL_JSON = "hierarchical-json"
    COLUMNAR_JSON = "columnar-json"

    @property
    def is_structured(self) -> bool:
        return self in (Projection.HIERARCHICAL_JSON, Projection.COLUMNAR_JSON)


class BodyFormat(str, Enum):
    """Format of the content a body was resolved from"""
    PLAIN = "plain"
    HTML = "html"


@dataclass
class ResolvedBody:
    """The chosen representation of a message's content"""
    text: BodyValue
    source_format: BodyFormat = BodyFormat.PLAIN
    truncated: bool = False

    @classmethod
    def empty(cls) -> "ResolvedBody":
        return cls(text="")

    @property
    def is_empty(self) -> bool:
        return not has_body_content(self.text)


def has_body_content(value: Any) -> bool:
    """True for a non-blank string or a non-empty mapping."""
    if not value:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    return True


def to_text(data: Union[str, bytes, None]) -> str:
    """Normalize fetched part data to str."""
    if data is None:
        return ""
    if isinstance(data, (bytes, bytearray)):
        return decode_bytes(bytes(data))
    if isinstance(data, (list, tuple)):
        return "\n".join(to_text(item) for item in data)
    return str(data)


def truncate_body(value: BodyValue, limit: int = MAX_BODY_PREVIEW_LENGTH) -> Tuple[BodyValue, bool]:
    """
    Cut a string body down to a preview

    Returns:
        (value, truncated); mappings are returned untouched
    """
    if not isinstance(value, str) or len(value) <= limit:
        return value, False
    return value[:limit] + TRUNCATION_SUFFIX, True


def project_html(html: str, projection: Projection) -> BodyValue:
    """Apply a projection to HTML content."""
    if projection == Projection.RAW_HTML:
        return html
    if projection == Projection.HIERARCHICAL_JSON:
        return to_hierarchical_json(html)
    if projection == Projection.COLUMNAR_JSON:
        return to_columnar_json(html)
    return sanitize_html(html)


def should_truncate(projection: Projection, single_message: bool = False) -> bool:
    """Only the default preview of a multi-message listing is truncated."""
    return projection == Projection.PLAIN and not single_message


async def _fetch(fetch_part: FetchPartFn, part: MimePart, label: str) -> str:
    try:
        return to_text(await fetch_part(part))
    except Exception as e:
        logger.error(f"Error fetching {label} part {part.part_id or '?'}: {e}")
        return ""


async def _refetch_text(refetch: Optional[RefetchFn], uid: Any) -> Tuple[str, BodyFormat]:
    if refetch is None or uid is None:
        return "", BodyFormat.PLAIN

    safe_uid = sanitize_for_logging(str(uid))
    try:
        raw = to_text(await refetch(uid, [TEXT_SECTION]))
    except Exception as e:
        logger.error(f"Error re-fetching message body for UID {safe_uid}: {e}")
        return "", BodyFormat.PLAIN

    if not raw.strip():
        return "", BodyFormat.PLAIN

    try:
        parsed = parse_raw_message(raw)
    except MessageParseError as e:
        logger.error(f"Error parsing re-fetched body for UID {safe_uid}: {e}")
        return "", BodyFormat.PLAIN

    if has_body_content(parsed.text):
        return parsed.text, BodyFormat.PLAIN
    if has_body_content(parsed.html):
        return parsed.html, BodyFormat.HTML
    return "", BodyFormat.PLAIN


async def _raw_content(
    struct: Any,
    fetch_part: Optional[FetchPartFn],
    refetch: Optional[RefetchFn],
    uid: Any,
) -> Tuple[str, BodyFormat]:
    if fetch_part is not None:
        html_part = find_html_part(struct)
        if html_part is not None:
            content = await _fetch(fetch_part, html_part, "HTML")
            if has_body_content(content):
                return content, BodyFormat.HTML

        text_part = find_text_part(struct)
        if text_part is not None:
            content = await _fetch(fetch_part, text_part, "text")
            if has_body_content(content):
                return content, BodyFormat.PLAIN

    return await _refetch_text(refetch, uid)


async def resolve_body(
    struct: Any,
    fetch_part: Optional[FetchPartFn],
    refetch: Optional[RefetchFn] = None,
    projection: Projection = Projection.PLAIN,
    *,
    uid: Any = None,
    single_message: bool = False,
    preview_length: int = MAX_BODY_PREVIEW_LENGTH,
) -> ResolvedBody:
    """
    Resolve the body of one message

    Args:
        struct: Message struct (normalized or raw), may be None
        fetch_part: Async capability returning a leaf's content
        refetch: Async capability returning raw section text for
                 (uid, sections); last-resort fallback
        projection: Requested presentation
        uid: Message UID passed to refetch
        single_message: True when one specific message was requested,
                        which disables preview truncation
        preview_length: Truncation limit for previews

    Returns:
        ResolvedBody; empty when every stage came up blank
    """
    projection = Projection(projection)
    content, source_format = await _raw_content(struct, fetch_part, refetch, uid)

    if not has_body_content(content):
        return ResolvedBody.empty()

    # Plain parts that carry markup are structured too; they still report PLAIN
    if source_format == BodyFormat.HTML or (projection.is_structured and looks_like_html(content)):
        value = project_html(content, projection)
    else:
        value = content

    truncated = False
    if should_truncate(projection, single_message):
        value, truncated = truncate_body(value, preview_length)

    return ResolvedBody(text=value, source_format=source_format, truncated=truncated)
