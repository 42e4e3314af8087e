from __future__ import annotations

import imaplib
import ssl
from contextlib import contextmanager
from typing import Iterator

from loguru import logger

from mailsentinel.domain.errors import AuthenticationFailedError
from mailsentinel.domain.models import (
    Account,
    Credential,
    OAuthCredential,
    ProviderConfig,
    ProviderId,
)
from mailsentinel.infrastructure.email.imap.responses import describe_imap_error
from mailsentinel.infrastructure.email.imap.session import ImapSession
from mailsentinel.infrastructure.email.providers.registry import get_provider_config

DEFAULT_TIMEOUT_SECONDS = 30.0


def xoauth2_string(email: str, access_token: str) -> bytes:
    """
    SASL XOAUTH2 initial response, unencoded.
    ``imaplib.IMAP4.authenticate`` base64-encodes it.
    """
    return f"user={email.strip()}\x01auth=Bearer {access_token}\x01\x01".encode("utf-8")


class ImapSessionFactory:
    """
    Responsible ONLY for establishing an authenticated IMAP connection.
    No folder logic, no fetching, no parsing.

    One connect and one authenticate attempt per call; failures are
    surfaced immediately, never retried.
    """

    def __init__(self, timeout: float = DEFAULT_TIMEOUT_SECONDS) -> None:
        self.timeout = timeout

    def _connect(self, config: ProviderConfig) -> imaplib.IMAP4:
        context = ssl.create_default_context()
        if config.use_implicit_tls:
            return imaplib.IMAP4_SSL(
                host=config.host,
                port=config.port,
                ssl_context=context,
                timeout=self.timeout,
            )
        conn = imaplib.IMAP4(host=config.host, port=config.port, timeout=self.timeout)
        try:
            conn.starttls(ssl_context=context)
        except BaseException:
            self._shutdown(conn)
            raise
        return conn

    def _authenticate(self, conn: imaplib.IMAP4, email: str, credential: Credential) -> None:
        if isinstance(credential, OAuthCredential):
            token = xoauth2_string(email, credential.access_token)
            conn.authenticate("XOAUTH2", lambda _challenge: token)
        else:
            conn.login(email, credential.value)

    @staticmethod
    def _shutdown(conn: imaplib.IMAP4) -> None:
        try:
            conn.shutdown()
        except OSError as e:
            logger.debug(f"Socket shutdown failed (ignored): {e}")

    def open(self, email: str, credential: Credential, provider: ProviderId) -> ImapSession:
        """Return an authenticated session for ``email`` at ``provider``."""
        config = get_provider_config(provider)

        try:
            conn = self._connect(config)
        except (imaplib.IMAP4.error, OSError) as e:
            raise AuthenticationFailedError(
                f"Failed to connect to {config.host}:{config.port}: {describe_imap_error(e)}"
            ) from e

        logger.info(f"Authenticating {email} at {provider.value} via {credential.auth_type.value}")
        try:
            self._authenticate(conn, email, credential)
        except UnicodeEncodeError as e:
            # LOGIN arguments go on the wire as ASCII
            self._shutdown(conn)
            raise AuthenticationFailedError("Credentials contain characters the server cannot accept") from e
        except (imaplib.IMAP4.error, OSError) as e:
            self._shutdown(conn)
            raise AuthenticationFailedError(describe_imap_error(e) or "Authentication failed") from e
        except BaseException:
            self._shutdown(conn)
            raise

        return ImapSession(conn, email=email, provider=provider)

    @contextmanager
    def session(self, account: Account, provider: ProviderId) -> Iterator[ImapSession]:
        """Open a session and log it out on every exit path."""
        session = self.open(account.email, account.credential, provider)
        try:
            yield session
        finally:
            session.logout()
