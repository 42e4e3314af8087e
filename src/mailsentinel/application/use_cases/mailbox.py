"""Mailbox operations: one short-lived IMAP session per call.

Flow for every operation:
1. Resolve the provider from the account domain (unknown domains are a 400)
2. Open and authenticate a session
3. Open the folder read-only and run the operation
4. Project raw messages into response records
5. Log the session out, whatever happened in 2-4
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Callable, Iterator, Optional

from loguru import logger

from mailsentinel.application.pagination import (
    DEFAULT_LIMIT,
    DEFAULT_OFFSET,
    has_more,
    most_recent,
    page_range,
)
from mailsentinel.application.projection import ProjectionVariant, project, project_all
from mailsentinel.domain.entities.email_message import NormalizedMessage, Page, SearchPage
from mailsentinel.domain.errors import (
    InvalidRequestError,
    MailSentinelError,
    MessageNotFoundError,
    UnsupportedProviderError,
)
from mailsentinel.domain.models import Account, AuthType, ProviderId, ensure_single_line
from mailsentinel.infrastructure.email.imap.auth import ImapSessionFactory
from mailsentinel.infrastructure.email.imap.session import ImapSession
from mailsentinel.infrastructure.email.providers.registry import detect_provider
from mailsentinel.infrastructure.email.rfc822 import ParsedMime, parse_rfc822


class MailboxService:
    """Stateless handlers for the test, count, fetch, fetch-one and search operations."""

    def __init__(
        self,
        session_factory: Optional[ImapSessionFactory] = None,
        parse: Callable[[bytes], ParsedMime] = parse_rfc822,
    ) -> None:
        self.session_factory = session_factory or ImapSessionFactory()
        self.parse = parse

    def resolve_provider(self, account: Account) -> ProviderId:
        provider = detect_provider(account.email)
        if provider is ProviderId.UNRECOGNIZED:
            raise UnsupportedProviderError()
        return provider

    @contextmanager
    def _session(self, operation: str, account: Account) -> Iterator[ImapSession]:
        provider = self.resolve_provider(account)
        try:
            with self.session_factory.session(account, provider) as session:
                yield session
        except MailSentinelError as e:
            log = logger.warning if e.status_code < 500 else logger.error
            log(f"{operation} error for {account.email}: {e}")
            raise

    def test_connection(self, account: Account) -> tuple[ProviderId, AuthType]:
        """Authenticate and log out; returns the provider and mechanism used."""
        with self._session("Connection test", account) as session:
            provider = session.provider
        return provider, account.credential.auth_type

    def count(self, account: Account) -> int:
        with self._session("Count", account) as session:
            snapshot = session.open_mailbox(account.folder)
        return snapshot.total_message_count

    def fetch_page(
        self,
        account: Account,
        offset: int = DEFAULT_OFFSET,
        limit: int = DEFAULT_LIMIT,
    ) -> Page:
        """One page of the folder, newest message first."""
        with self._session("Fetch", account) as session:
            total = session.open_mailbox(account.folder).total_message_count
            seq_range = page_range(total, offset, limit)
            if seq_range is None:
                return Page(emails=[], total_count=total, has_more=False)

            fetched = session.fetch_range(seq_range.start, seq_range.end)
            emails = project_all(fetched, ProjectionVariant.LISTING, self.parse)

        emails.reverse()
        logger.info(f"Fetched {len(emails)} of {total} messages from {account.folder} (range {seq_range})")
        return Page(
            emails=emails,
            total_count=total,
            has_more=has_more(total, offset, len(emails)),
        )

    def fetch_message(self, account: Account, uid: int) -> NormalizedMessage:
        """A single message by unique id, untruncated, with attachment metadata."""
        with self._session("Message fetch", account) as session:
            session.open_mailbox(account.folder)
            fetched = session.fetch_uid(uid)
            if fetched is None:
                raise MessageNotFoundError()
            parsed = self.parse(fetched.source)

        return project(fetched, parsed, ProjectionVariant.DETAIL)

    def search(self, account: Account, query: str, limit: int = DEFAULT_LIMIT) -> SearchPage:
        """Messages matching ``query`` in subject, body or sender, newest first."""
        if not query:
            raise InvalidRequestError("Email, password/accessToken, and query required")
        ensure_single_line(query, "query")

        with self._session("Search", account) as session:
            session.open_mailbox(account.folder)
            uids = session.search_text(query)
            recent = most_recent(uids, limit)
            if not recent:
                return SearchPage(emails=[], total_count=len(uids))

            fetched = session.fetch_uids(recent)
            emails = project_all(fetched, ProjectionVariant.SEARCH, self.parse)

        logger.info(f"Search matched {len(uids)} messages, returning {len(emails)}")
        return SearchPage(emails=emails, total_count=len(uids))
