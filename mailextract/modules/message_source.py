"""
Message Source Module
Common shape of a fetched message and the interface every transport offers

PATTERN RECOGNITION: The extractor only talks to a MessageSource. The IMAP
adapter and the in-memory mock mailbox both implement it, so everything
above the transport runs identically against a real server or test data.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, Union

from .mime_part import MimePart


HEADER_FIELDS = ("from", "to", "subject", "date")


@dataclass
class FetchedMessage:
    """One message as returned by a transport, before extraction"""
    uid: Any
    headers: Dict[str, Union[str, List[str]]] = field(default_factory=dict)
    struct: List[MimePart] = field(default_factory=list)
    raw_message: Optional[Union[str, bytes]] = None

    def header(self, name: str) -> str:
        """First value of a header field, or "" when absent."""
        value = self.headers.get(name.lower())
        if value is None:
            return ""
        if isinstance(value, (list, tuple)):
            return str(value[0]) if value else ""
        return str(value)

    def header_all(self, name: str, separator: str = ", ") -> str:
        """Every value of a header field joined into one string."""
        value = self.headers.get(name.lower())
        if value is None:
            return ""
        if isinstance(value, (list, tuple)):
            return separator.join(str(item) for item in value)
        return str(value)

    @property
    def subject(self) -> str:
        return self.header_all("subject", " ")


class TransportError(Exception):
    """Raised when a mail source cannot be opened or queried"""


class MessageSource(Protocol):
    """Async interface implemented by every transport"""

    async def open(self) -> None:
        ...

    async def close(self) -> None:
        ...

    async def list_messages(self) -> List[FetchedMessage]:
        """All messages of the selected mailbox, oldest first."""
        ...

    async def fetch_part(self, message: FetchedMessage, part: MimePart) -> Union[str, bytes, None]:
        """Content of one leaf part, transfer-decoded."""
        ...

    async def refetch(self, uid: Any, sections: List[str]) -> Optional[Union[str, bytes]]:
        """Raw text of the given body sections of a message."""
        ...
