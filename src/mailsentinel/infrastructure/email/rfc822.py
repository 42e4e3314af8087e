"""RFC 822 / MIME parsing into the fields a response needs."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from email import policy
from email.message import EmailMessage, Message
from email.parser import BytesParser
from typing import Optional

from bs4 import BeautifulSoup

from mailsentinel.domain.entities.email_message import AttachmentInfo, EmailAddress
from mailsentinel.domain.errors import MimeParseError

_HIDDEN_TAGS = ["script", "style", "head"]
_BLOCK_TAGS = ["p", "div", "tr", "li", "h1", "h2", "h3", "h4", "h5", "h6", "blockquote", "pre"]


@dataclass(frozen=True)
class ParsedMime:
    subject: str = ""
    from_addresses: list[EmailAddress] = field(default_factory=list)
    to_addresses: list[EmailAddress] = field(default_factory=list)
    date: Optional[datetime] = None
    text: str = ""
    html: str = ""
    attachments: list[AttachmentInfo] = field(default_factory=list)


def html_to_text(html: str) -> str:
    """Rough plain-text rendering of an HTML body: one line per block, blank lines dropped."""
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(_HIDDEN_TAGS):
        tag.decompose()
    for br in soup.find_all("br"):
        br.replace_with("\n")
    for block in soup.find_all(_BLOCK_TAGS):
        block.append("\n")

    lines = (" ".join(line.split()) for line in soup.get_text().splitlines())
    return "\n".join(line for line in lines if line)


def _addresses(em: EmailMessage, name: str) -> list[EmailAddress]:
    header = em.get(name)
    if header is None:
        return []
    out: list[EmailAddress] = []
    for addr in getattr(header, "addresses", ()):
        out.append(EmailAddress(name=addr.display_name or "", address=addr.addr_spec or ""))
    return out


def _date(em: EmailMessage) -> Optional[datetime]:
    # Date parsing can be messy; None if absent/unparseable
    try:
        header = em.get("Date")
        dt = getattr(header, "datetime", None) if header is not None else None
    except (ValueError, TypeError, IndexError):
        return None
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def _decode_text(part: Message) -> str:
    try:
        return part.get_content()
    except (LookupError, UnicodeError):
        payload = part.get_payload(decode=True) or b""
        return payload.decode("utf-8", errors="replace")


def _is_attachment(part: Message) -> bool:
    disp = (part.get("Content-Disposition") or "").lower()
    return bool(part.get_filename()) or "attachment" in disp


def parse_rfc822(raw: bytes) -> ParsedMime:
    """Parse raw message bytes. Raises ``MimeParseError`` on undecodable input."""
    if not raw:
        raise MimeParseError("Empty message source")

    try:
        em = BytesParser(policy=policy.default).parsebytes(raw)

        text_parts: list[str] = []
        html_body = ""
        attachments: list[AttachmentInfo] = []

        for part in em.walk():
            if part.is_multipart():
                continue

            ctype = part.get_content_type()
            if _is_attachment(part):
                payload = part.get_payload(decode=True) or b""
                attachments.append(
                    AttachmentInfo(
                        filename=part.get_filename() or "attachment.bin",
                        content_type=ctype,
                        size=len(payload),
                    )
                )
            elif ctype == "text/plain":
                text_parts.append(_decode_text(part))
            elif ctype == "text/html" and not html_body:
                html_body = _decode_text(part)

        text = "\n".join(p.strip("\r\n") for p in text_parts if p)
        if not text and html_body:
            text = html_to_text(html_body)

        return ParsedMime(
            subject=(em.get("Subject") or "").strip(),
            from_addresses=_addresses(em, "From"),
            to_addresses=_addresses(em, "To"),
            date=_date(em),
            text=text,
            html=html_body,
            attachments=attachments,
        )
    except MimeParseError:
        raise
    except Exception as e:
        raise MimeParseError(f"Could not parse message: {e}") from e
