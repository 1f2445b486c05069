"""
Attachment Download Module
Saves the attachments of a message into a directory

SECURITY STORY: Attachment names come from the sender. Every name passes
through sanitize_filename() so "../../.ssh/authorized_keys" lands inside
the output directory as "authorized_keys". Existing files are never
replaced: a clash gets a numeric suffix.
"""

import logging
from pathlib import Path
from typing import List, Union

from .message_source import FetchedMessage, MessageSource
from .mime_navigator import attachment_filename, find_attachments
from ..utils.colors import Colors
from ..utils.sanitization import sanitize_filename, sanitize_for_logging


logger = logging.getLogger(__name__)


def _unique_path(directory: Path, filename: str) -> Path:
    path = directory / filename
    if not path.exists():
        return path

    stem, suffix = path.stem, path.suffix
    counter = 1
    while True:
        candidate = directory / f"{stem}_{counter}{suffix}"
        if not candidate.exists():
            return candidate
        counter += 1


def _as_bytes(data: Union[str, bytes, None]) -> bytes:
    if data is None:
        return b""
    if isinstance(data, str):
        return data.encode("utf-8")
    return bytes(data)


async def download_attachments(
    source: MessageSource,
    message: FetchedMessage,
    output_dir: Union[str, Path],
) -> List[Path]:
    """
    Download every attachment of a message

    Args:
        source: Transport used to fetch part content
        message: Message whose struct lists the attachments
        output_dir: Destination directory, created on demand

    Returns:
        Paths written; failed attachments are logged and skipped
    """
    attachments = find_attachments(message.struct)
    if not attachments:
        print("No attachments found in this email.")
        return []

    directory = Path(output_dir)
    directory.mkdir(parents=True, exist_ok=True)

    print(f"\nDownloading {len(attachments)} attachment(s)...")

    written: List[Path] = []
    for part in attachments:
        filename = sanitize_filename(attachment_filename(part))
        try:
            data = _as_bytes(await source.fetch_part(message, part))
            path = _unique_path(directory, filename)
            path.write_bytes(data)
        except Exception as e:
            logger.error(f"Error downloading attachment {sanitize_for_logging(filename)}: {e}")
            print(Colors.error(f"✗ Error downloading attachment: {filename}"))
            continue

        written.append(path)
        print(Colors.success(f"✓ Downloaded: {path.name}"))

    return written
