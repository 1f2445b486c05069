"""
MIME Part Model
Holds the MimePart tree describing a fetched message's structure

PATTERN RECOGNITION: Mail-fetching layers hand us the message structure in
whatever shape their protocol library produces. imap-simple style structs
arrive as dicts mixed with nested lists (a multipart's children are wrapped
in extra arrays). normalize_struct() is the single ingestion pass that turns
any of those shapes into a clean tree, so the navigator and resolvers never
special-case arrays.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Disposition:
    """Content-Disposition of a part: kind plus its parameters"""
    kind: str
    params: Dict[str, str] = field(default_factory=dict)

    @property
    def filename(self) -> Optional[str]:
        return self.params.get("filename") or None


@dataclass
class MimePart:
    """
    A node in a message structure tree

    A part is a leaf iff it has no children; multipart containers never
    carry content directly.
    """
    type: str
    subtype: str = ""
    disposition: Optional[Disposition] = None
    params: Dict[str, str] = field(default_factory=dict)
    children: List["MimePart"] = field(default_factory=list)
    part_id: Optional[str] = None
    encoding: Optional[str] = None

    @property
    def is_leaf(self) -> bool:
        return not self.children

    @property
    def content_type(self) -> str:
        if self.subtype:
            return f"{self.type}/{self.subtype}"
        return self.type

    @property
    def disposition_kind(self) -> str:
        return self.disposition.kind if self.disposition else ""

    @property
    def charset(self) -> Optional[str]:
        return self.params.get("charset") or None

    def iter_parts(self):
        """Yield this part and every descendant, depth first."""
        yield self
        for child in self.children:
            yield from child.iter_parts()


def _lower_keys(params: Any) -> Dict[str, str]:
    """Lower-case parameter names; scalar values become strings, others are dropped."""
    if not isinstance(params, dict):
        return {}
    return {
        str(key).lower(): str(value)
        for key, value in params.items()
        if isinstance(value, (str, int, float)) and not isinstance(value, bool)
    }


def _build_disposition(raw: Any) -> Optional[Disposition]:
    if not isinstance(raw, dict):
        return None
    kind = raw.get("type") or raw.get("kind") or ""
    return Disposition(
        kind=str(kind).lower(),
        params=_lower_keys(raw.get("params")),
    )


def _part_from_dict(raw: Dict[str, Any]) -> MimePart:
    return MimePart(
        type=str(raw.get("type") or "").lower(),
        subtype=str(raw.get("subtype") or "").lower(),
        disposition=_build_disposition(raw.get("disposition")),
        params=_lower_keys(raw.get("params")),
        children=normalize_struct(raw.get("parts")),
        part_id=raw.get("partID") or raw.get("part_id"),
        encoding=raw.get("encoding"),
    )


def normalize_struct(raw: Any) -> List[MimePart]:
    """
    Normalize a message struct into a flat list of top-level MimeParts

    Lists at any depth are flattened into the enclosing sequence; they are
    an upstream wrapping artifact, never parts themselves.

    Args:
        raw: A MimePart, an imap-simple style dict, a (nested) list of
             either, or None

    Returns:
        List of MimePart trees
    """
    if raw is None:
        return []
    if isinstance(raw, MimePart):
        return [raw]
    if isinstance(raw, dict):
        return [_part_from_dict(raw)]
    if isinstance(raw, (list, tuple)):
        parts: List[MimePart] = []
        for item in raw:
            parts.extend(normalize_struct(item))
        return parts

    logger.debug(f"Skipping unrecognised struct entry of type {type(raw).__name__}")
    return []
