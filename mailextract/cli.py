#!/usr/bin/env python3
"""
mailextract command line
Extract fields, bodies and attachments from the newest messages of an IMAP mailbox

Usage: mailextract [options] [field|count ...] [from=...] [subject=...] [attachment=true]
"""

import argparse
import asyncio
import logging
import re
import sys
from typing import List, Optional, Tuple

from .modules.extractor import (
    ALL_FIELDS,
    FIELDS,
    EmailExtractor,
    ExtractionOptions,
    ExtractionResult,
    JsonMode,
    select_projection,
)
from .modules.imap_connection import IMAPConnection
from .modules.message_source import MessageSource, TransportError
from .modules.mock_transport import MockMailbox
from .modules.task_runner import BUILTIN_TASKS
from .utils.colors import Colors
from .utils.config import Config, ConfigurationError
from .utils.logging_utils import setup_logging
from .utils.output import OutputWriter, resolve_output_option


logger = logging.getLogger("mailextract")

EXIT_OK = 0
EXIT_ERROR = 1

_COUNT_RE = re.compile(r"^\d+$")

EXAMPLES = """
Examples:
  mailextract                           All fields of the last 100 emails
  mailextract subject 50                Subjects of the last 50 emails
  mailextract -n 3                      Email #3 (1 = newest) with its full body
  mailextract -f all 20                 Last 20 emails, full sanitized bodies
  mailextract --json:table -n 1         Tables of the newest email as columns
  mailextract -a from="boss@work.com"   Download attachments from matching emails
  mailextract --task stop               Run the stop task on the last 100 emails
"""


def normalize_argv(argv: List[str]) -> List[str]:
    """
    Rewrite --json and --json:<mode> into --json=<mode>

    A bare --json must not swallow the positional after it ("--json all 10").
    """
    normalized = []
    for arg in argv:
        if arg == "--json":
            arg = f"--json={JsonMode.DEFAULT.value}"
        elif arg.startswith("--json:"):
            arg = f"--json={arg[len('--json:'):].lower()}"
        normalized.append(arg)
    return normalized


def _task_epilog() -> str:
    lines = ["Built-in tasks:"]
    for name, description in BUILTIN_TASKS.items():
        lines.append(f"  {name:<20}{description}")
    return "\n".join(lines) + "\n" + EXAMPLES


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mailextract",
        description="Extract the newest emails of an IMAP mailbox.",
        epilog=_task_epilog(),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "args", nargs="*", metavar="field|count|filter",
        help=f"Field to extract ({', '.join(FIELDS)}, {ALL_FIELDS}), message count, "
             "or a filter: from=..., subject=..., attachment=true",
    )
    parser.add_argument("--env-file", default=".env", help="Environment file with IMAP settings (default: .env)")
    parser.add_argument("--task", help="Run a task on each message instead of printing fields")
    parser.add_argument("-o", "--output-folder", dest="output", help="Write output to a folder or file instead of stdout")
    parser.add_argument("--test", action="store_true", help="Use the built-in sample mailbox instead of IMAP")
    parser.add_argument("-n", "--number", type=int, help="Extract one email by number (1 = newest), full body")
    parser.add_argument("-f", "--full-body", action="store_true", help="Full body sanitized to text, not truncated")
    parser.add_argument("--html", action="store_true", help="Full body with raw HTML preserved")
    parser.add_argument(
        "--json", nargs="?", const=JsonMode.DEFAULT.value, choices=[mode.value for mode in JsonMode],
        help="JSON output; --json:html structures the HTML body, --json:table extracts its tables",
    )
    parser.add_argument(
        "-a", "--attachment-download", action="store_true",
        help="Download attachments; requires -n or a filter",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


def _strip_quotes(value: str) -> str:
    return re.sub(r"^[\"']|[\"']$", "", value)


def split_positionals(values: List[str]) -> Tuple[str, Optional[int], dict]:
    """
    Sort positionals into field, count and filters

    The first all-digit value is the count, wherever it appears. The first
    other value is the field; unknown names fall back to "all".
    """
    field = None
    count = None
    filters = {"from_filter": None, "subject_filter": None, "attachment_filter": False}

    for value in values:
        if value.startswith("from="):
            filters["from_filter"] = _strip_quotes(value[len("from="):])
        elif value.startswith("subject="):
            filters["subject_filter"] = _strip_quotes(value[len("subject="):])
        elif value.startswith("attachment="):
            filters["attachment_filter"] = value[len("attachment="):].lower() == "true"
        elif _COUNT_RE.match(value):
            if count is None:
                count = int(value)
        elif field is None:
            field = value.lower()

    if field is None:
        field = ALL_FIELDS
    elif field not in FIELDS and field != ALL_FIELDS:
        logger.warning(f"Unknown field '{field}', extracting all fields")
        field = ALL_FIELDS

    return field, count, filters


def build_options(args: argparse.Namespace, tasks_folder: Optional[str] = None) -> ExtractionOptions:
    field, count, filters = split_positionals(args.args)
    json_mode = JsonMode(args.json) if args.json else None

    return ExtractionOptions(
        field=field,
        count=count,
        number=args.number,
        projection=select_projection(args.full_body, args.html, json_mode),
        json_mode=json_mode,
        download_attachments=args.attachment_download,
        task=args.task,
        tasks_folder=tasks_folder,
        **filters,
    )


async def run_extraction(source: MessageSource, extractor: EmailExtractor) -> ExtractionResult:
    """Open the source, run the extraction and always close the source."""
    await source.open()
    try:
        return await extractor.run()
    finally:
        await source.close()


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_intermixed_args(normalize_argv(sys.argv[1:] if argv is None else argv))

    try:
        config = Config(args.env_file)
    except ConfigurationError as e:
        print(Colors.error(f"Configuration error: {e}"), file=sys.stderr)
        return EXIT_ERROR
    setup_logging(config.system, args.verbose)

    options = build_options(args, config.system.tasks_folder)
    options.preview_length = config.system.max_body_preview

    if options.download_attachments and options.number is None and not options.has_filters:
        parser.error("-a/--attachment-download requires -n <num> or a filter (from=, subject=, attachment=true)")

    if not args.test:
        try:
            config.validate()
        except ConfigurationError as e:
            print(Colors.error(f"Configuration error: {e}"), file=sys.stderr)
            return EXIT_ERROR

    try:
        target = resolve_output_option(args.output)
        # Tasks print to the terminal; the target only tells them where to save files
        writer = OutputWriter() if options.task else OutputWriter(target)
    except FileExistsError as e:
        print(Colors.error(f"Error: {e}"), file=sys.stderr)
        return EXIT_ERROR

    if target is not None:
        options.download_dir = target.directory

    if args.test:
        print("[TEST MODE] Using mock email data", file=sys.stderr)
        source = MockMailbox()
    else:
        source = IMAPConnection(config.account)

    extractor = EmailExtractor(source, options, writer)

    try:
        result = asyncio.run(run_extraction(source, extractor))
    except TransportError as e:
        print(Colors.error(f"Error fetching emails: {e}"), file=sys.stderr)
        return EXIT_ERROR
    except KeyboardInterrupt:
        logger.info("Interrupted")
        return EXIT_ERROR

    if result.error:
        print(Colors.error(f"Error: {result.error}"), file=sys.stderr)
        return EXIT_ERROR

    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
