from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class EmailAddress:
    name: str = ""
    address: str = ""


@dataclass(frozen=True)
class AttachmentInfo:
    filename: str
    content_type: str
    size: int


@dataclass(frozen=True)
class MailboxSnapshot:
    # EXISTS count when the mailbox was opened; not refreshed afterwards
    total_message_count: int = 0


@dataclass(frozen=True)
class NormalizedMessage:
    """
    One message flattened for a response.

    Optional fields are ``None`` when the projection variant omits them.
    """

    id: str
    subject: str
    sender: EmailAddress
    date: str
    text: str
    is_read: bool
    seq: Optional[int] = None
    to: Optional[list[EmailAddress]] = None
    html: Optional[str] = None
    flags: Optional[list[str]] = None
    attachments: Optional[list[AttachmentInfo]] = None


@dataclass(frozen=True)
class Page:
    emails: list[NormalizedMessage] = field(default_factory=list)
    total_count: int = 0
    has_more: bool = False


@dataclass(frozen=True)
class SearchPage:
    emails: list[NormalizedMessage] = field(default_factory=list)
    # full match count, not len(emails)
    total_count: int = 0
