"""Decoding of raw ``imaplib`` responses into plain Python values."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Iterable

_SEQ_RE = re.compile(rb"^\s*(\d+)\s+\(")
_UID_RE = re.compile(rb"\bUID\s+(\d+)")
_FLAGS_RE = re.compile(rb"\bFLAGS\s+\(([^)]*)\)")

SEEN_FLAG = "\\Seen"


@dataclass(frozen=True)
class FetchedMessage:
    """One FETCH result: identifiers, flags and the raw RFC 822 source."""

    seq: int
    uid: int
    source: bytes
    flags: tuple[str, ...] = field(default_factory=tuple)

    @property
    def is_read(self) -> bool:
        return SEEN_FLAG in self.flags


def parse_fetch_response(data: Iterable[Any]) -> list[FetchedMessage]:
    """
    Decode ``imaplib`` FETCH data.

    Each message arrives as a ``(envelope, literal)`` tuple, optionally
    followed by a bytes trailer holding attributes the server sent after
    the literal (some servers put FLAGS there). Bare bytes entries with no
    preceding literal are unsolicited updates and are ignored.
    """
    messages: list[FetchedMessage] = []
    items = [item for item in data if item is not None]

    for i, item in enumerate(items):
        if not isinstance(item, tuple) or len(item) < 2:
            continue

        envelope = item[0]
        literal = item[1]
        trailer = items[i + 1] if i + 1 < len(items) else b""
        if isinstance(trailer, bytes):
            envelope = envelope + b" " + trailer

        seq_match = _SEQ_RE.match(envelope)
        uid_match = _UID_RE.search(envelope)
        if seq_match is None or uid_match is None:
            continue

        flags_match = _FLAGS_RE.search(envelope)
        flags: tuple[str, ...] = ()
        if flags_match:
            flags = tuple(f.decode("utf-8", errors="replace") for f in flags_match.group(1).split())

        messages.append(
            FetchedMessage(
                seq=int(seq_match.group(1)),
                uid=int(uid_match.group(1)),
                source=bytes(literal),
                flags=flags,
            )
        )

    return messages


def parse_search_response(data: Iterable[Any]) -> list[int]:
    """Decode ``SEARCH`` / ``UID SEARCH`` data into ids, ascending."""
    ids: list[int] = []
    for chunk in data:
        if not chunk:
            continue
        ids.extend(int(x) for x in chunk.split())
    return sorted(ids)


def parse_exists(data: Iterable[Any]) -> int:
    """Message count from ``SELECT`` / ``EXAMINE`` data."""
    for chunk in data:
        if chunk:
            return int(chunk)
    return 0


def quote(value: str) -> str:
    """Render a string as an IMAP quoted string."""
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def mailbox_name(folder: str) -> str:
    """Quote a mailbox name when it is not a bare atom."""
    if folder and re.fullmatch(r"[A-Za-z0-9_.\-/]+", folder):
        return folder
    return quote(folder)


def describe_imap_error(exc: BaseException) -> str:
    """Human-readable text for an ``imaplib`` error, which often wraps raw bytes."""
    if exc.args and isinstance(exc.args[0], bytes):
        return exc.args[0].decode("utf-8", errors="replace")
    return str(exc) or exc.__class__.__name__


def describe_response(data: Iterable[Any]) -> str:
    parts = [d.decode("utf-8", errors="replace") if isinstance(d, bytes) else str(d) for d in data if d]
    return " ".join(parts) or "no response text"
