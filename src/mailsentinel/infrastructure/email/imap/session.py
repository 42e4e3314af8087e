"""
A single authenticated IMAP session, owned by one request.

Only read operations exist here: the gateway never stores, deletes or
moves messages, and the mailbox is always opened read-only.
"""

from __future__ import annotations

import imaplib
from typing import Any, Callable

from loguru import logger

from mailsentinel.domain.entities.email_message import MailboxSnapshot
from mailsentinel.domain.errors import UpstreamError
from mailsentinel.domain.models import ProviderId
from mailsentinel.infrastructure.email.imap.responses import (
    FetchedMessage,
    describe_imap_error,
    describe_response,
    mailbox_name,
    parse_exists,
    parse_fetch_response,
    parse_search_response,
    quote,
)

FETCH_ITEMS = "(UID FLAGS BODY.PEEK[])"


class ImapSession:
    """Read-only operations over one live ``imaplib`` connection."""

    def __init__(self, conn: imaplib.IMAP4, email: str, provider: ProviderId) -> None:
        self.conn = conn
        self.email = email
        self.provider = provider
        self.folder: str | None = None
        self._closed = False

    def _run(self, what: str, command: Callable[..., tuple[str, list[Any]]], *args: Any) -> list[Any]:
        try:
            typ, data = command(*args)
        except (imaplib.IMAP4.error, OSError) as e:
            raise UpstreamError(f"{what} failed: {describe_imap_error(e)}") from e
        if typ != "OK":
            raise UpstreamError(f"{what} failed: {describe_response(data)}")
        return data

    def open_mailbox(self, folder: str) -> MailboxSnapshot:
        """EXAMINE the folder and report how many messages it holds."""
        data = self._run(f"Open folder {folder}", self.conn.select, mailbox_name(folder), True)
        self.folder = folder
        return MailboxSnapshot(total_message_count=parse_exists(data))

    def fetch_range(self, start: int, end: int) -> list[FetchedMessage]:
        """Fetch the inclusive sequence range ``start:end`` in ascending order."""
        data = self._run("Fetch", self.conn.fetch, f"{start}:{end}", FETCH_ITEMS)
        return sorted(parse_fetch_response(data), key=lambda m: m.seq)

    def fetch_uids(self, uids: list[int]) -> list[FetchedMessage]:
        """Fetch messages by unique id, returned in the order ``uids`` lists them."""
        if not uids:
            return []
        uid_set = ",".join(str(uid) for uid in uids)
        data = self._run("UID fetch", self.conn.uid, "FETCH", uid_set, FETCH_ITEMS)
        by_uid = {m.uid: m for m in parse_fetch_response(data)}
        return [by_uid[uid] for uid in uids if uid in by_uid]

    def fetch_uid(self, uid: int) -> FetchedMessage | None:
        found = self.fetch_uids([uid])
        return found[0] if found else None

    def search_text(self, query: str) -> list[int]:
        """UIDs whose subject, body or sender contains ``query``, ascending."""
        if not query.isascii():
            return self._search_text_utf8(query)

        q = quote(query)
        data = self._run(
            "Search",
            self.conn.uid,
            "SEARCH",
            None,
            "OR",
            "OR",
            "SUBJECT",
            q,
            "BODY",
            q,
            "FROM",
            q,
        )
        return parse_search_response(data)

    def _search_text_utf8(self, query: str) -> list[int]:
        # imaplib sends one literal per command, so each key is its own search
        uids: set[int] = set()
        for key in ("SUBJECT", "BODY", "FROM"):
            self.conn.literal = query.encode("utf-8")
            data = self._run("Search", self.conn.uid, "SEARCH", "CHARSET", "UTF-8", key)
            uids.update(parse_search_response(data))
        return sorted(uids)

    def logout(self) -> None:
        """Best-effort LOGOUT. Never raises."""
        if self._closed:
            return
        self._closed = True
        try:
            self.conn.logout()
        except Exception as e:
            logger.debug(f"Logout for {self.email} failed (ignored): {e}")
