"""
Message projection: flatten a fetched message plus its parsed MIME content
into the record returned to callers.

Three variants exist, differing only in which fields they carry and how
far bodies are truncated. Truncation always applies to decoded text.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Optional, Union

from loguru import logger

from mailsentinel.domain.entities.email_message import EmailAddress, NormalizedMessage
from mailsentinel.domain.errors import MimeParseError
from mailsentinel.infrastructure.email.imap.responses import FetchedMessage
from mailsentinel.infrastructure.email.rfc822 import ParsedMime, parse_rfc822

NO_SUBJECT = "(No Subject)"

LISTING_TEXT_LIMIT = 10_000
LISTING_HTML_LIMIT = 50_000
SEARCH_TEXT_LIMIT = 5_000


class ProjectionVariant(str, Enum):
    LISTING = "listing"
    DETAIL = "detail"
    SEARCH = "search"


def iso_timestamp(dt: Optional[datetime]) -> str:
    """UTC ISO-8601 with millisecond precision; now when ``dt`` is missing."""
    if dt is None:
        dt = datetime.now(timezone.utc)
    return dt.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _truncate(value: str, limit: Optional[int]) -> str:
    if limit is None:
        return value
    return value[:limit]


def project(
    fetched: FetchedMessage,
    parsed: ParsedMime,
    variant: ProjectionVariant = ProjectionVariant.LISTING,
) -> NormalizedMessage:
    sender = parsed.from_addresses[0] if parsed.from_addresses else EmailAddress()
    base = dict(
        id=str(fetched.uid),
        subject=parsed.subject or NO_SUBJECT,
        sender=sender,
        date=iso_timestamp(parsed.date),
        is_read=fetched.is_read,
    )

    if variant is ProjectionVariant.SEARCH:
        return NormalizedMessage(text=_truncate(parsed.text, SEARCH_TEXT_LIMIT), **base)

    if variant is ProjectionVariant.DETAIL:
        return NormalizedMessage(
            text=parsed.text,
            html=parsed.html,
            to=list(parsed.to_addresses),
            flags=list(fetched.flags),
            attachments=list(parsed.attachments),
            **base,
        )

    return NormalizedMessage(
        seq=fetched.seq,
        text=_truncate(parsed.text, LISTING_TEXT_LIMIT),
        html=_truncate(parsed.html, LISTING_HTML_LIMIT),
        to=list(parsed.to_addresses),
        flags=list(fetched.flags),
        **base,
    )


@dataclass(frozen=True)
class Projected:
    message: NormalizedMessage


@dataclass(frozen=True)
class Skipped:
    uid: int
    reason: str


ProjectionResult = Union[Projected, Skipped]


def try_project(
    fetched: FetchedMessage,
    variant: ProjectionVariant,
    parse: Callable[[bytes], ParsedMime] = parse_rfc822,
) -> ProjectionResult:
    """Project one message, reporting a parse failure as ``Skipped``."""
    try:
        parsed = parse(fetched.source)
    except MimeParseError as e:
        return Skipped(uid=fetched.uid, reason=str(e))
    return Projected(project(fetched, parsed, variant))


def project_all(
    messages: list[FetchedMessage],
    variant: ProjectionVariant,
    parse: Callable[[bytes], ParsedMime] = parse_rfc822,
) -> list[NormalizedMessage]:
    """Project messages in order, dropping (and logging) those that fail to parse."""
    out: list[NormalizedMessage] = []
    for fetched in messages:
        result = try_project(fetched, variant, parse)
        if isinstance(result, Skipped):
            logger.warning(f"Parse error for message {result.uid}: {result.reason}")
            continue
        out.append(result.message)
    return out
