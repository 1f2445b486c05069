"""
Attachment Summary Resolver
Decides whether a message has attachments and how to display their names

A summary is one of:
    False       no attachment found
    True        attachments present, but none carries a name
    "a.pdf"     a single name
    "a.pdf, b"  several names joined with ", "

The struct is the primary source. When it yields nothing, the raw message
(pre-fetched, or re-fetched by UID) is parsed as a fallback. A failed
fallback is reported as "no attachment"; absence and detection failure
look the same to callers.
"""

import logging
from typing import Any, Awaitable, Callable, Iterable, List, Optional, Union

from .mime_navigator import attachment_filename, find_attachments
from .raw_message import MessageParseError, decode_bytes, parse_raw_message
from ..utils.sanitization import sanitize_for_logging


logger = logging.getLogger(__name__)

AttachmentSummary = Union[bool, str]
RefetchFn = Callable[[Any, List[str]], Awaitable[Optional[Union[str, bytes]]]]

# Section that returns the complete raw message
FULL_MESSAGE_SECTION = ""


def join_names(names: Iterable[Optional[str]]) -> AttachmentSummary:
    """Apply the summary joining rule to a list of attachment names."""
    named = [name for name in names if name]
    if not named:
        return True
    if len(named) == 1:
        return named[0]
    return ", ".join(named)


def summarize_attachments(struct: Any) -> AttachmentSummary:
    """
    Summarize attachments using the struct only

    Args:
        struct: Message struct (normalized or raw)

    Returns:
        AttachmentSummary; False when the struct holds no attachment
    """
    attachments = find_attachments(struct)
    if not attachments:
        return False
    return join_names(attachment_filename(part) for part in attachments)


def summarize_raw_message(raw: Union[str, bytes, None]) -> AttachmentSummary:
    """
    Summarize attachments by parsing a raw message

    Parse failures are logged and reported as False.
    """
    if isinstance(raw, bytes):
        raw = decode_bytes(raw)
    if not raw or not raw.strip():
        return False

    try:
        parsed = parse_raw_message(raw)
    except MessageParseError as e:
        logger.error(f"Error parsing message attachments: {e}")
        return False

    if not parsed.attachments:
        return False
    return join_names(attachment.filename for attachment in parsed.attachments)


async def resolve_attachment_summary(
    struct: Any,
    refetch: Optional[RefetchFn] = None,
    *,
    uid: Any = None,
    raw_message: Union[str, bytes, None] = None,
) -> AttachmentSummary:
    """
    Resolve the attachment summary of one message

    Args:
        struct: Message struct, may be None
        refetch: Async capability returning raw message text for
                 (uid, sections); used only when nothing else is available
        uid: Message UID passed to refetch
        raw_message: Pre-fetched full raw message, if the transport has one

    Returns:
        AttachmentSummary
    """
    summary = summarize_attachments(struct)
    if summary:
        return summary

    raw = raw_message
    if raw is None and refetch is not None and uid is not None:
        try:
            raw = await refetch(uid, [FULL_MESSAGE_SECTION])
        except Exception as e:
            safe_uid = sanitize_for_logging(str(uid))
            logger.warning(f"Could not re-fetch message {safe_uid} for attachments: {e}")
            raw = None

    if raw is None:
        return False
    return summarize_raw_message(raw)
