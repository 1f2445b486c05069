"""
Email Extractor Module
Orchestrates one extraction run over a MessageSource

Modes, decided by ExtractionOptions:
- listing: the newest `count` messages, numbered newest = Email #1
- single: one message by number, never truncated
- filter + download: every message matching the from/subject/attachment
  filters has its attachments saved
- task: a task runs on each listed message instead of printing fields

Output is either text ("=== Email #N ===" then "Field: value" lines) or a
JSON document collected in the ExtractionResult and written at the end.
"""

import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

from .attachment_download import download_attachments
from .attachment_resolver import AttachmentSummary, resolve_attachment_summary
from .body_resolver import (
    MAX_BODY_PREVIEW_LENGTH,
    Projection,
    ResolvedBody,
    resolve_body,
)
from .message_source import FetchedMessage, MessageSource
from .task_runner import TaskContext, load_task, run_task
from ..utils.output import OutputWriter
from ..utils.sanitization import sanitize_for_logging


logger = logging.getLogger(__name__)

FIELDS = ("from", "to", "date", "subject", "attachment", "body")
ALL_FIELDS = "all"


class JsonMode(str, Enum):
    """JSON output flavours"""
    DEFAULT = "default"
    HTML = "html"
    TABLE = "table"


def select_projection(
    full_body: bool = False,
    html: bool = False,
    json_mode: Optional[JsonMode] = None,
) -> Projection:
    """Map output flags to a body projection; structured JSON modes win."""
    if json_mode == JsonMode.HTML:
        return Projection.HIERARCHICAL_JSON
    if json_mode == JsonMode.TABLE:
        return Projection.COLUMNAR_JSON
    if html:
        return Projection.RAW_HTML
    if full_body:
        return Projection.FULL_SANITIZED
    return Projection.PLAIN


@dataclass
class ExtractionOptions:
    """Everything that shapes one extraction run"""
    field: str = ALL_FIELDS
    count: Optional[int] = None
    number: Optional[int] = None
    projection: Projection = Projection.PLAIN
    json_mode: Optional[JsonMode] = None
    from_filter: Optional[str] = None
    subject_filter: Optional[str] = None
    attachment_filter: bool = False
    download_attachments: bool = False
    download_dir: Optional[Path] = None
    task: Optional[str] = None
    tasks_folder: Optional[str] = None
    preview_length: int = MAX_BODY_PREVIEW_LENGTH

    @property
    def has_filters(self) -> bool:
        return bool(self.from_filter or self.subject_filter or self.attachment_filter)

    @property
    def fields(self) -> List[str]:
        if self.field in FIELDS:
            return [self.field]
        return list(FIELDS)

    @property
    def effective_count(self) -> int:
        return default_count(self) if self.count is None else self.count


def default_count(options: ExtractionOptions) -> int:
    """
    Number of messages listed when no count is given

    Structured JSON modes are the most expensive per message, then full
    bodies; plain previews default to 100.
    """
    if options.json_mode in (JsonMode.HTML, JsonMode.TABLE):
        return 25
    if options.projection in (Projection.FULL_SANITIZED, Projection.RAW_HTML):
        return 20
    if options.json_mode == JsonMode.DEFAULT:
        return 20
    return 100


@dataclass
class ExtractedMessage:
    """A message with its fields resolved"""
    number: int
    message: FetchedMessage
    sender: str
    to: str
    date: str
    subject: str
    attachment: AttachmentSummary
    body: ResolvedBody

    @property
    def uid(self) -> Any:
        return self.message.uid

    def value(self, name: str) -> Any:
        if name == "from":
            return self.sender
        if name == "to":
            return self.to
        if name == "date":
            return self.date
        if name == "subject":
            return self.subject
        if name == "attachment":
            return self.attachment
        if name == "body":
            return self.body.text
        raise KeyError(name)


@dataclass
class ExtractionResult:
    """Outcome of a run; `records` is the JSON document in JSON mode"""
    records: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    messages: List[ExtractedMessage] = field(default_factory=list)
    downloaded: List[Path] = field(default_factory=list)
    total_messages: int = 0
    error: Optional[str] = None

    def to_json(self) -> str:
        return json.dumps(self.records, indent=2, ensure_ascii=False)


def json_field_name(name: str) -> str:
    return name[:1].upper() + name[1:]


def json_field_value(name: str, value: Any, single_message: bool = False) -> Any:
    """Apply the per-field JSON formatting rules."""
    if name == "to" and isinstance(value, str) and "," in value:
        return [item.strip() for item in value.split(",")]
    if name in ("from", "date"):
        if isinstance(value, (list, tuple)):
            return value[0] if value else ""
        return value or ""
    if name == "attachment" and single_message and not value:
        return "false"
    return value


def text_field_value(value: Any) -> str:
    if value is True:
        return "true"
    if value is False or value is None:
        return "false"
    if isinstance(value, dict):
        return json.dumps(value, ensure_ascii=False)
    return str(value)


def matches_filters(options: ExtractionOptions, message: FetchedMessage, has_attachment: Any) -> bool:
    """Case-insensitive substring filters on sender and subject, plus attachment presence."""
    if options.from_filter:
        sender = message.header_all("from", " ").lower()
        if options.from_filter.lower() not in sender:
            return False

    if options.subject_filter:
        if options.subject_filter.lower() not in message.subject.lower():
            return False

    if options.attachment_filter and not has_attachment:
        return False

    return True


class EmailExtractor:
    """
    Runs one extraction against a MessageSource

    MAINTENANCE WISDOM: The extractor owns no connection. The caller opens
    and closes the source; run() only reads from it.
    """

    def __init__(
        self,
        source: MessageSource,
        options: ExtractionOptions,
        writer: Optional[OutputWriter] = None,
    ):
        self.source = source
        self.options = options
        self.writer = writer or OutputWriter()
        self._header_written = set()

    async def run(self) -> ExtractionResult:
        """
        Execute the run described by the options

        Returns:
            ExtractionResult; `error` is set when nothing could be extracted
            because of a bad message number or unknown task
        """
        messages = await self.source.list_messages()
        result = ExtractionResult(total_messages=len(messages))

        if self.options.number is not None:
            await self._run_single(messages, result)
        elif self.options.download_attachments:
            await self._run_download(messages, result)
        else:
            await self._run_listing(messages, result)

        download_only = self.options.download_attachments and self.options.number is None
        if self.options.json_mode and result.error is None and not download_only:
            self.writer.write_line(result.to_json())

        return result

    async def extract_message(
        self,
        message: FetchedMessage,
        number: int,
        single_message: bool = False,
    ) -> ExtractedMessage:
        """Resolve every field of one message."""
        body = await resolve_body(
            message.struct,
            lambda part: self.source.fetch_part(message, part),
            self.source.refetch,
            self.options.projection,
            uid=message.uid,
            single_message=single_message,
            preview_length=self.options.preview_length,
        )
        attachment = await resolve_attachment_summary(
            message.struct,
            self.source.refetch,
            uid=message.uid,
            raw_message=message.raw_message,
        )
        return ExtractedMessage(
            number=number,
            message=message,
            sender=message.header_all("from"),
            to=message.header_all("to"),
            date=message.header("date"),
            subject=message.subject,
            attachment=attachment,
            body=body,
        )

    async def _run_single(self, messages: List[FetchedMessage], result: ExtractionResult):
        number = self.options.number
        if number < 1 or number > len(messages):
            result.error = f"Email #{number} does not exist. Total emails: {len(messages)}"
            logger.error(result.error)
            return

        message = messages[len(messages) - number]
        extracted = await self.extract_message(message, number, single_message=True)
        result.messages.append(extracted)

        for name in FIELDS:
            self._record(result, extracted, name, extracted.value(name), single_message=True)

        if self.options.download_attachments:
            result.downloaded.extend(
                await download_attachments(self.source, message, self._download_dir())
            )

    async def _run_listing(self, messages: List[FetchedMessage], result: ExtractionResult):
        count = self.options.effective_count
        selected = messages[-count:] if count > 0 else []
        total = len(selected)

        task = None
        if self.options.task:
            task = load_task(self.options.task, self.options.tasks_folder)
            if task is None:
                result.error = f'No task named "{self.options.task}" exists or task file not found.'
                logger.error(sanitize_for_logging(result.error))
                return

        for index, message in enumerate(selected):
            number = total - index
            extracted = await self.extract_message(message, number)
            result.messages.append(extracted)

            if task is not None:
                context = TaskContext(
                    source=self.source,
                    output_dir=self.options.download_dir,
                    emit_fn=lambda name, value, current=extracted: self._record(
                        result, current, name, value
                    ),
                )
                await run_task(task, extracted, context)
                continue

            for name in self.options.fields:
                self._record(result, extracted, name, extracted.value(name))

    async def _run_download(self, messages: List[FetchedMessage], result: ExtractionResult):
        found_match = False
        total = len(messages)

        for index, message in enumerate(messages):
            has_attachment = await resolve_attachment_summary(
                message.struct,
                self.source.refetch,
                uid=message.uid,
                raw_message=message.raw_message,
            )
            if not matches_filters(self.options, message, has_attachment):
                continue

            found_match = True
            print(f"\nFound matching email #{total - index}:")
            print(f"From: {message.header_all('from')}")
            print(f"Subject: {message.subject}")

            result.downloaded.extend(
                await download_attachments(self.source, message, self._download_dir())
            )

            # attachment=true means "the first message that has one"
            if self.options.attachment_filter:
                break

        if not found_match:
            print("No emails found matching the specified filters.")

    def _download_dir(self) -> Path:
        return self.options.download_dir or Path.cwd() / "attachments"

    def _record(
        self,
        result: ExtractionResult,
        extracted: ExtractedMessage,
        name: str,
        value: Any,
        single_message: bool = False,
    ):
        """Send one field value to the JSON document or the text output."""
        key = f"Email #{extracted.number}"

        if self.options.json_mode:
            record = result.records.setdefault(key, {})
            record[json_field_name(name)] = json_field_value(name, value, single_message)
            return

        if key not in self._header_written:
            self._header_written.add(key)
            self.writer.write_line("")
            self.writer.write_line(f"=== {key} ===")
        self.writer.write_line(f"{json_field_name(name)}: {text_field_value(value)}")
