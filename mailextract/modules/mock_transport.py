"""
Mock Mailbox
In-memory MessageSource used by --test and the integration tests

The sample messages cover the shapes the extraction pipeline has to cope
with: plain text, an invoice carrying a PDF attachment, an unsubscribe
request, an HTML struct whose part only holds text, an HTML survey table,
and a multipart/alternative message with both bodies.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from .message_source import FetchedMessage, TransportError
from .mime_part import MimePart, normalize_struct


logger = logging.getLogger(__name__)

_RECIPIENT = "recipient@test.com"


@dataclass
class MockEmail:
    """A sample message with the content each part should return"""
    uid: int
    struct: List[Any]
    sender: str
    subject: str
    date: str
    to: str = _RECIPIENT
    body_text: str = ""
    body_html: Optional[str] = None
    raw_email: Optional[str] = None
    attachments: Dict[str, bytes] = field(default_factory=dict)

    def to_fetched(self) -> FetchedMessage:
        return FetchedMessage(
            uid=self.uid,
            headers={
                "from": [self.sender],
                "to": [self.to],
                "subject": [self.subject],
                "date": [self.date],
            },
            struct=normalize_struct(self.struct),
        )


_INVOICE_RAW = "\r\n".join([
    "From: billing@invoices.com",
    "To: recipient@test.com",
    "Subject: Invoice #12345",
    "MIME-Version: 1.0",
    'Content-Type: multipart/mixed; boundary="BOUNDARY"',
    "",
    "--BOUNDARY",
    'Content-Type: text/plain; charset="utf-8"',
    "",
    "Please find attached your invoice for this month.",
    "--BOUNDARY",
    'Content-Type: application/pdf; name="invoice.pdf"',
    'Content-Disposition: attachment; filename="invoice.pdf"',
    "Content-Transfer-Encoding: base64",
    "",
    "JVBERi0xLjQK",
    "--BOUNDARY--",
    "",
])

_SURVEY_HTML = (
    "<html><body><p>Thank you for your response:</p><table>"
    "<tr><th>Field</th><th>Response</th></tr>"
    "<tr><td>Name</td><td>John Doe</td></tr>"
    "<tr><td>Approved</td><td>Yes</td></tr>"
    "<tr><td>Rating</td><td>5 stars</td></tr>"
    "</table><p>Signature line here.</p></body></html>"
)

_MARKETING_HTML = (
    '<html><body><h1>Email Data</h1><table style="margin-bottom:1px"><tbody>'
    "<tr><td><div>&nbsp;Field</div></td><td><div>Response</div></td></tr>"
    "<tr><td><div>Name</div></td><td><div>John Doe</div></td></tr>"
    "<tr><td><div>Use Product</div></td><td><div>Yes</div></td></tr>"
    "<tr><td><div>Will Update</div></td><td><div>Yes</div></td></tr>"
    "<tr><td><div>Average Use</div></td><td><div>weekly</div></td></tr>"
    "</tbody></table><div><span>Take Care,</span></div>"
    '<div><a href="mailto:marketing@example.com">Example Marketing</a></div>'
    "</body></html>"
)

_MARKETING_TEXT = (
    " Field\r\nResponse\rName\r\nJohn Doe\r\nUse Product\r\nYes\r\n"
    "Will Update\r\nYes\r\nAverage Use\r\nweekly\r\n\r\n\r\nTake Care,"
)


def sample_emails() -> List[MockEmail]:
    """Fresh copies of the sample messages, oldest first."""
    plain = [{"type": "text", "subtype": "plain", "partID": "1"}]
    html = [{"type": "text", "subtype": "html", "partID": "1"}]

    return [
        MockEmail(
            uid=1,
            struct=plain,
            sender="sender1@example.com",
            subject="Welcome to the service",
            date="Mon, 01 Jan 2024 10:00:00 +0000",
            body_text="Thank you for signing up! Your account is now active.",
        ),
        MockEmail(
            uid=2,
            struct=plain,
            sender="noreply@company.com",
            subject="Monthly Report - January 2024",
            date="Tue, 15 Jan 2024 09:30:00 +0000",
            body_text="Please find attached the monthly report for January 2024.",
        ),
        MockEmail(
            uid=3,
            struct=plain,
            sender="user@messaging.com",
            subject="STOP",
            date="Wed, 20 Jan 2024 14:22:00 +0000",
            body_text="Please remove me from the messaging list.",
        ),
        MockEmail(
            uid=4,
            struct=[{
                "type": "multipart",
                "subtype": "mixed",
                "parts": [
                    {"type": "text", "subtype": "plain", "partID": "1"},
                    {
                        "type": "application",
                        "subtype": "pdf",
                        "partID": "2",
                        "disposition": {"type": "attachment", "params": {"filename": "invoice.pdf"}},
                        "params": {"name": "invoice.pdf"},
                    },
                ],
            }],
            sender="billing@invoices.com",
            subject="Invoice #12345",
            date="Thu, 25 Jan 2024 08:00:00 +0000",
            body_text="Please find attached your invoice for this month.",
            raw_email=_INVOICE_RAW,
            attachments={"2": b"Mock PDF content for testing"},
        ),
        MockEmail(
            uid=5,
            struct=html,
            sender="support@helpdesk.com",
            subject="Re: Your support ticket #789",
            date="Fri, 26 Jan 2024 16:45:00 +0000",
            body_text="Your issue has been resolved. Please let us know if you need further assistance.",
        ),
        MockEmail(
            uid=6,
            struct=html,
            sender="survey@forms.com",
            subject="Survey Response",
            date="Sat, 27 Jan 2024 12:00:00 +0000",
            body_html=_SURVEY_HTML,
        ),
        MockEmail(
            uid=7,
            struct=[{
                "type": "multipart",
                "subtype": "alternative",
                "parts": [
                    {"type": "text", "subtype": "plain", "partID": "1"},
                    {"type": "text", "subtype": "html", "partID": "2"},
                ],
            }],
            sender="marketing@example.com",
            subject="Survey Response",
            date="Sun, 28 Jan 2024 09:00:00 +0000",
            body_text=_MARKETING_TEXT,
            body_html=_MARKETING_HTML,
        ),
    ]


class MockMailbox:
    """
    MessageSource over a list of MockEmail

    Part content is served by part number: attachment bytes when the
    message has them for that part, the HTML body for text/html parts,
    otherwise the plain body.
    """

    def __init__(self, emails: Optional[List[MockEmail]] = None, mailbox: str = "INBOX"):
        self.emails = sample_emails() if emails is None else list(emails)
        self.mailbox = mailbox
        self.is_open = False

    def _find(self, uid: Any) -> Optional[MockEmail]:
        for email in self.emails:
            if str(email.uid) == str(uid):
                return email
        return None

    async def open(self) -> None:
        self.is_open = True
        logger.info(f"Opened mock mailbox {self.mailbox} with {len(self.emails)} messages")

    async def close(self) -> None:
        self.is_open = False

    async def list_messages(self) -> List[FetchedMessage]:
        if not self.is_open:
            raise TransportError("Mock mailbox is not open")
        return [email.to_fetched() for email in self.emails]

    async def fetch_part(self, message: FetchedMessage, part: MimePart) -> Union[str, bytes, None]:
        email = self._find(message.uid)
        if email is None:
            return ""

        if part.part_id and part.part_id in email.attachments:
            return email.attachments[part.part_id]
        if part.subtype == "html" and email.body_html:
            return email.body_html
        return email.body_text

    async def refetch(self, uid: Any, sections: List[str]) -> Optional[str]:
        email = self._find(uid)
        if email is None:
            return None

        chunks = []
        for section in sections:
            if section == "TEXT":
                chunks.append(email.body_text)
            elif section == "":
                chunks.append(email.raw_email or email.body_text)
        return "\n".join(chunks)

    async def __aenter__(self) -> "MockMailbox":
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()
