"""
MIME Tree Navigator
Locates the text/plain, text/html and attachment-like leaves of a struct

Attachment classification is an ordered decision list tuned against the
way real mail clients label their parts; the first matching rule wins:

    1. disposition kind is "attachment"
    2. a filename is present (disposition filename, params name/filename)
    3. disposition kind is "inline" and (a filename is present or the type
       is application)
    4. the type is application and a subtype is present
"""

from typing import Any, Iterator, List, Optional

from .mime_part import MimePart, normalize_struct


def _as_parts(struct: Any) -> List[MimePart]:
    return normalize_struct(struct)


def iter_parts(struct: Any) -> Iterator[MimePart]:
    """Yield every part of a struct exactly once, depth first."""
    for part in _as_parts(struct):
        yield from part.iter_parts()


def _find_leaf(struct: Any, type_: str, subtype: str) -> Optional[MimePart]:
    for part in iter_parts(struct):
        if part.type == type_ and part.subtype == subtype:
            return part
    return None


def find_text_part(struct: Any) -> Optional[MimePart]:
    """Return the first depth-first text/plain part, or None."""
    return _find_leaf(struct, "text", "plain")


def find_html_part(struct: Any) -> Optional[MimePart]:
    """Return the first depth-first text/html part, or None."""
    return _find_leaf(struct, "text", "html")


def _has_filename(part: MimePart) -> bool:
    if part.disposition and part.disposition.filename:
        return True
    return bool(part.params.get("name") or part.params.get("filename"))


def is_attachment(part: MimePart) -> bool:
    """
    Classify a single part as attachment-like

    Args:
        part: Part to classify

    Returns:
        True if any rule of the decision list matches
    """
    kind = part.disposition_kind
    has_filename = _has_filename(part)
    is_application = part.type == "application"

    if kind == "attachment":
        return True
    if has_filename:
        return True
    if kind == "inline" and (has_filename or is_application):
        return True
    if is_application and part.subtype:
        return True
    return False


def find_attachments(struct: Any) -> List[MimePart]:
    """Return all attachment-like parts in depth-first order."""
    return [part for part in iter_parts(struct) if is_attachment(part)]


def attachment_filename(part: MimePart) -> str:
    """
    Resolve a display filename for an attachment part

    Precedence: disposition filename, params name, params filename, a name
    synthesized from the subtype, then the literal "attachment".
    """
    if part.disposition and part.disposition.filename:
        return part.disposition.filename
    if part.params.get("name"):
        return part.params["name"]
    if part.params.get("filename"):
        return part.params["filename"]
    if part.subtype:
        return f"attachment.{part.subtype.lower()}"
    return "attachment"
