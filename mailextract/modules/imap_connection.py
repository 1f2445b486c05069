"""
IMAP Connection Module
Handles IMAP connection management, mailbox selection, and message fetching

PATTERN RECOGNITION: This follows the Adapter pattern - it wraps Python's
imaplib to implement the async MessageSource interface the extractor uses.
imaplib is blocking, so every network call runs in a worker thread via
asyncio.to_thread, one at a time.

SECURITY STORY: IMAP connections are security-critical because:
- Credentials are transmitted (we enforce TLS 1.2+)
- Message bodies are fetched with BODY.PEEK so reading never marks mail as seen
- Header values are attacker-controlled (we sanitize before logging)
"""

import asyncio
import base64
import binascii
import imaplib
import logging
import quopri
import ssl
from typing import Any, Dict, List, Optional, Union

from .bodystructure import (
    FetchParseError,
    parse_bodystructure,
    parse_fetch_response,
    parse_header_block,
)
from .message_source import FetchedMessage, HEADER_FIELDS, TransportError
from .mime_part import MimePart
from .raw_message import decode_bytes
from ..utils.config import ImapAccountConfig
from ..utils.sanitization import redact_email, sanitize_for_logging


logger = logging.getLogger(__name__)

HEADER_SECTION = f"HEADER.FIELDS ({' '.join(name.upper() for name in HEADER_FIELDS)})"
MESSAGE_ITEMS = f"(UID BODYSTRUCTURE BODY.PEEK[{HEADER_SECTION}])"


def create_secure_ssl_context(verify_ssl: bool = True) -> ssl.SSLContext:
    """
    Create an SSL context with modern TLS settings

    SECURITY STORY: TLS 1.2+ protects against attacks on older protocols
    like SSLv3 (POODLE) and TLS 1.0/1.1 (BEAST). Disabling verification
    is only meant for test servers with self-signed certificates.

    Args:
        verify_ssl: When False, hostname checking and cert validation are disabled

    Returns:
        Configured SSL context
    """
    context = ssl.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
    context.minimum_version = ssl.TLSVersion.TLSv1_2
    context.check_hostname = True
    context.verify_mode = ssl.CERT_REQUIRED
    context.load_default_certs()

    if not verify_ssl:
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE
        logger.warning("SSL verification disabled - use only for testing!")

    return context


def decode_transfer_encoding(data: bytes, encoding: Optional[str]) -> bytes:
    """
    Undo a part's Content-Transfer-Encoding

    Malformed base64 is returned undecoded rather than dropped.
    """
    encoding = (encoding or "").lower()
    if encoding == "base64":
        try:
            return base64.b64decode(data)
        except (binascii.Error, ValueError) as e:
            logger.warning(f"Could not base64-decode part: {e}")
            return data
    if encoding == "quoted-printable":
        return quopri.decodestring(data)
    return data


def _section_value(items: Dict[str, Any]) -> Optional[bytes]:
    """Pick the BODY[...] value out of a parsed FETCH response."""
    for key, value in items.items():
        if key.startswith("BODY[") and value is not None:
            if isinstance(value, str):
                return value.encode("utf-8")
            return value
    return None


class IMAPConnection:
    """
    Manages the IMAP connection and implements MessageSource

    MAINTENANCE WISDOM: Keep connection management separate from parsing.
    BODYSTRUCTURE and header parsing live in bodystructure.py, so they can
    be tested without an IMAP server.
    """

    def __init__(self, config: ImapAccountConfig):
        """
        Initialize IMAP connection manager

        Args:
            config: IMAP account configuration
        """
        self.config = config
        self.connection: Optional[imaplib.IMAP4] = None
        self.logger = logging.getLogger(f"IMAPConnection.{config.host or 'unset'}")
        self._lock = asyncio.Lock()

    def connect(self) -> bool:
        """
        Establish connection to the IMAP server with secure TLS

        Returns:
            True if connection successful, False otherwise
        """
        try:
            self.logger.info(
                f"Connecting to {self.config.host}:{self.config.port} "
                f"(SSL={self.config.use_ssl})"
            )

            context = create_secure_ssl_context(self.config.verify_ssl)

            if self.config.use_ssl:
                self.connection = imaplib.IMAP4_SSL(
                    self.config.host,
                    self.config.port,
                    ssl_context=context,
                    timeout=self.config.timeout
                )
            else:
                self.connection = imaplib.IMAP4(
                    self.config.host,
                    self.config.port,
                    timeout=self.config.timeout
                )
                self.connection.starttls(ssl_context=context)

            self.connection.login(self.config.user, self.config.password)
            self.logger.info(f"Successfully connected as {redact_email(self.config.user)}")
            return True

        except imaplib.IMAP4.error as e:
            self.logger.error(f"IMAP connection error: {e}")
            tip = self._get_auth_tip(str(e))
            if tip:
                self.logger.warning(tip)
            self.connection = None
            return False
        except Exception as e:
            self.logger.error(f"Unexpected connection error: {e}")
            self.connection = None
            return False

    def disconnect(self):
        """
        Close IMAP connection gracefully
        """
        if not self.connection:
            return

        try:
            self.connection.logout()
            self.logger.info("Disconnected from IMAP server")
        except Exception:
            # Connection may already be closed
            self.logger.debug("Connection was already closed or logout failed")
        finally:
            self.connection = None

    def select_folder(self, folder: str) -> bool:
        """
        Select a mailbox read-only

        Args:
            folder: Mailbox name (e.g., 'INBOX')

        Returns:
            True if the mailbox was selected
        """
        if not self.connection:
            return False

        safe_folder = sanitize_for_logging(folder)
        try:
            status, _ = self.connection.select(folder, readonly=True)
            if status == "OK":
                self.logger.debug(f"Selected folder: {safe_folder}")
                return True
            self.logger.warning(f"Could not select folder {safe_folder}: {status}")
            return False
        except Exception as e:
            self.logger.error(f"Error selecting folder {safe_folder}: {e}")
            return False

    def search_uids(self) -> List[str]:
        """
        UIDs of every message in the selected mailbox, oldest first

        Raises:
            TransportError: If the search fails
        """
        if not self.connection:
            raise TransportError("Not connected")

        try:
            status, data = self.connection.uid("SEARCH", None, "ALL")
        except Exception as e:
            raise TransportError(f"UID SEARCH failed: {e}") from e

        if status != "OK":
            raise TransportError(f"UID SEARCH failed: {status}")

        if not data or not data[0]:
            return []
        return [uid.decode() for uid in data[0].split()]

    def fetch_message(self, uid: str) -> Optional[FetchedMessage]:
        """
        Fetch the struct and header fields of one message

        Returns:
            FetchedMessage, or None when the fetch failed (logged)
        """
        if not self.connection:
            return None

        safe_uid = sanitize_for_logging(str(uid))
        try:
            status, data = self.connection.uid("FETCH", str(uid), MESSAGE_ITEMS)
            if status != "OK":
                self.logger.warning(f"Failed to fetch message {safe_uid}: {status}")
                return None

            items = parse_fetch_response(data)
        except FetchParseError as e:
            self.logger.error(f"Could not parse FETCH response for {safe_uid}: {e}")
            return None
        except Exception as e:
            self.logger.error(f"Error fetching message {safe_uid}: {e}")
            return None

        return FetchedMessage(
            uid=items.get("UID", uid),
            headers=parse_header_block(_section_value(items)),
            struct=parse_bodystructure(items.get("BODYSTRUCTURE")),
        )

    def fetch_section(self, uid: Any, section: str) -> Optional[bytes]:
        """
        Fetch one body section of a message without marking it seen

        Args:
            uid: Message UID
            section: IMAP section ("" for the whole message, "TEXT",
                     or a part number such as "2.1")

        Raises:
            TransportError: If the fetch fails
        """
        if not self.connection:
            raise TransportError("Not connected")

        try:
            status, data = self.connection.uid("FETCH", str(uid), f"(BODY.PEEK[{section}])")
        except Exception as e:
            raise TransportError(f"UID FETCH failed: {e}") from e

        if status != "OK":
            raise TransportError(f"UID FETCH BODY[{section}] failed: {status}")

        return _section_value(parse_fetch_response(data))

    def _get_auth_tip(self, error_msg: str) -> Optional[str]:
        """
        Get actionable tip for authentication failures

        INDUSTRY CONTEXT: Major email providers now require app-specific
        passwords for IMAP access.
        """
        msg_lower = error_msg.lower()
        auth_keywords = [
            "authentication failed", "login failed", "invalid credentials",
            "logon failure", "authenticate"
        ]
        if not any(k in msg_lower for k in auth_keywords):
            return None

        host_lower = (self.config.host or "").lower()
        if "gmail" in host_lower:
            return (
                "Gmail requires 2-Step Verification enabled and an App Password "
                "to use IMAP."
            )
        if "outlook" in host_lower or "office365" in host_lower:
            return "Outlook accounts require an App Password or OAuth for IMAP."

        return (
            "Check IMAP_USER and IMAP_PASSWORD. If using 2FA, you likely need "
            "an App Password."
        )

    # MessageSource interface

    async def _run(self, func, *args):
        async with self._lock:
            return await asyncio.to_thread(func, *args)

    async def open(self) -> None:
        """
        Connect and select the configured mailbox

        Raises:
            TransportError: If either step fails
        """
        if not await self._run(self.connect):
            raise TransportError(f"Could not connect to {self.config.host}:{self.config.port}")

        if not await self._run(self.select_folder, self.config.mailbox):
            await self.close()
            raise TransportError(
                f"Could not select mailbox {sanitize_for_logging(self.config.mailbox)}"
            )

    async def close(self) -> None:
        await self._run(self.disconnect)

    async def list_messages(self) -> List[FetchedMessage]:
        uids = await self._run(self.search_uids)
        self.logger.info(f"Found {len(uids)} messages")

        messages = []
        for uid in uids:
            message = await self._run(self.fetch_message, uid)
            if message is not None:
                messages.append(message)
        return messages

    async def fetch_part(self, message: FetchedMessage, part: MimePart) -> Union[str, bytes, None]:
        data = await self._run(self.fetch_section, message.uid, part.part_id or "1")
        if data is None:
            return None

        data = decode_transfer_encoding(data, part.encoding)
        if part.type == "text":
            return decode_bytes(data, part.charset)
        return data

    async def refetch(self, uid: Any, sections: List[str]) -> Optional[str]:
        chunks = []
        for section in sections:
            data = await self._run(self.fetch_section, uid, section)
            if data:
                chunks.append(decode_bytes(data))
        return "\n".join(chunks) if chunks else None

    async def __aenter__(self) -> "IMAPConnection":
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()
