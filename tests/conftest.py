"""Shared test fixtures."""

from __future__ import annotations

from email.message import EmailMessage
from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from mailsentinel.application.use_cases.mailbox import MailboxService
from mailsentinel.domain.entities.email_message import MailboxSnapshot
from mailsentinel.domain.models import Account, OAuthCredential, PasswordCredential, ProviderId
from mailsentinel.infrastructure.email.imap.auth import ImapSessionFactory
from mailsentinel.infrastructure.email.imap.responses import FetchedMessage

SEEN = "\\Seen"


def make_raw(
    subject: str | None = "Hello",
    sender: str | None = "Alice Example <alice@example.com>",
    to: str | None = "Bob <bob@example.com>, carol@example.com",
    date: str | None = "Mon, 01 Jan 2024 10:00:00 +0000",
    text: str | None = "Plain body",
    html: str | None = None,
    attachments: tuple[tuple[str, bytes, str], ...] = (),
) -> bytes:
    """Build RFC 822 bytes for a test message."""
    msg = EmailMessage()
    if subject is not None:
        msg["Subject"] = subject
    if sender is not None:
        msg["From"] = sender
    if to is not None:
        msg["To"] = to
    if date is not None:
        msg["Date"] = date

    if text is not None:
        msg.set_content(text)
        if html is not None:
            msg.add_alternative(html, subtype="html")
    elif html is not None:
        msg.set_content(html, subtype="html")

    for filename, data, content_type in attachments:
        maintype, subtype = content_type.split("/")
        msg.add_attachment(data, maintype=maintype, subtype=subtype, filename=filename)

    return msg.as_bytes()


def make_fetched(seq: int, uid: int | None = None, seen: bool = False, **raw_kwargs) -> FetchedMessage:
    raw_kwargs.setdefault("subject", f"Message {seq}")
    return FetchedMessage(
        seq=seq,
        uid=uid if uid is not None else 1000 + seq,
        source=make_raw(**raw_kwargs),
        flags=(SEEN,) if seen else (),
    )


class FakeSession:
    """In-memory stand-in for ``ImapSession``; messages are ordered oldest-first."""

    def __init__(self, messages=(), search_hits=None, fail_on: str | None = None, error=None) -> None:
        self.messages = list(messages)
        self.search_hits = list(search_hits or [])
        self.fail_on = fail_on
        self.error = error
        self.provider = ProviderId.GMAIL
        self.folder = None
        self.logged_out = False
        self.calls: list[tuple] = []

    def _maybe_fail(self, op: str) -> None:
        if self.fail_on == op:
            raise self.error

    def open_mailbox(self, folder: str) -> MailboxSnapshot:
        self.calls.append(("open", folder))
        self._maybe_fail("open")
        self.folder = folder
        return MailboxSnapshot(total_message_count=len(self.messages))

    def fetch_range(self, start: int, end: int) -> list[FetchedMessage]:
        self.calls.append(("fetch_range", start, end))
        self._maybe_fail("fetch")
        return [m for m in self.messages if start <= m.seq <= end]

    def fetch_uids(self, uids: list[int]) -> list[FetchedMessage]:
        self.calls.append(("fetch_uids", list(uids)))
        self._maybe_fail("fetch")
        by_uid = {m.uid: m for m in self.messages}
        return [by_uid[u] for u in uids if u in by_uid]

    def fetch_uid(self, uid: int) -> FetchedMessage | None:
        found = self.fetch_uids([uid])
        return found[0] if found else None

    def search_text(self, query: str) -> list[int]:
        self.calls.append(("search", query))
        self._maybe_fail("search")
        return list(self.search_hits)

    def logout(self) -> None:
        self.logged_out = True


class FakeSessionFactory(ImapSessionFactory):
    """Session factory that hands out a ``FakeSession`` instead of connecting."""

    def __init__(self, session: FakeSession | None = None, error: Exception | None = None) -> None:
        super().__init__(timeout=1.0)
        self.fake = session or FakeSession()
        self.error = error
        self.opened: list[tuple] = []

    def open(self, email, credential, provider):
        self.opened.append((email, credential, provider))
        if self.error is not None:
            raise self.error
        self.fake.provider = provider
        return self.fake


def mailbox(count: int, seen_every: int = 0) -> list[FetchedMessage]:
    """``count`` messages with sequence numbers 1..count."""
    return [
        make_fetched(seq, seen=bool(seen_every) and seq % seen_every == 0)
        for seq in range(1, count + 1)
    ]


@pytest.fixture
def account():
    return Account(email="user@gmail.com", credential=PasswordCredential("app-password"))


@pytest.fixture
def oauth_account():
    return Account(email="user@outlook.com", credential=OAuthCredential("ya29.token"))


@pytest.fixture
def fake_session():
    return FakeSession(messages=mailbox(5, seen_every=2))


@pytest.fixture
def fake_factory(fake_session):
    return FakeSessionFactory(fake_session)


@pytest.fixture
def service(fake_factory):
    return MailboxService(session_factory=fake_factory)


@pytest.fixture
def api_client(fake_factory):
    """TestClient with the mailbox service wired to the fake factory."""
    from mailsentinel.api.main import create_app
    from mailsentinel.api.routes import get_mailbox_service

    app = create_app()
    app.dependency_overrides[get_mailbox_service] = lambda: MailboxService(session_factory=fake_factory)
    with TestClient(app) as client:
        yield client


@pytest.fixture
def real_api_client():
    """TestClient over the real session factory with ``IMAP4_SSL`` patched out.

    Yields ``(client, conn)`` where ``conn`` is the mocked connection.
    """
    from mailsentinel.api.main import create_app
    from mailsentinel.api.routes import get_mailbox_service

    with patch("mailsentinel.infrastructure.email.imap.auth.imaplib.IMAP4_SSL") as mock_class:
        conn = MagicMock()
        mock_class.return_value = conn
        app = create_app()
        app.dependency_overrides[get_mailbox_service] = lambda: MailboxService(
            session_factory=ImapSessionFactory(timeout=1.0)
        )
        with TestClient(app) as client:
            yield client, conn
