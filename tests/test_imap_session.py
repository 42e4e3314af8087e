"""Tests for the IMAP session wrapper and the session factory."""

import imaplib
from unittest.mock import MagicMock, patch

import pytest

from mailsentinel.domain.errors import AuthenticationFailedError, UnsupportedProviderError, UpstreamError
from mailsentinel.domain.models import Account, OAuthCredential, PasswordCredential, ProviderConfig, ProviderId
from mailsentinel.infrastructure.email.imap.auth import ImapSessionFactory, xoauth2_string
from mailsentinel.infrastructure.email.imap.session import FETCH_ITEMS, ImapSession


@pytest.fixture
def conn():
    return MagicMock()


@pytest.fixture
def session(conn):
    return ImapSession(conn, email="user@gmail.com", provider=ProviderId.GMAIL)


@pytest.fixture
def mock_imap_ssl():
    """Patch IMAP4_SSL so no socket is opened."""
    with patch("mailsentinel.infrastructure.email.imap.auth.imaplib.IMAP4_SSL") as mock_class:
        mock_instance = MagicMock()
        mock_class.return_value = mock_instance
        yield mock_class


class TestImapSession:
    def test_open_mailbox_is_read_only(self, session, conn):
        conn.select.return_value = ("OK", [b"17"])
        snapshot = session.open_mailbox("INBOX")

        conn.select.assert_called_once_with("INBOX", True)
        assert snapshot.total_message_count == 17
        assert session.folder == "INBOX"

    def test_open_mailbox_quotes_names(self, session, conn):
        conn.select.return_value = ("OK", [b"0"])
        session.open_mailbox("Sent Items")
        conn.select.assert_called_once_with('"Sent Items"', True)

    def test_open_missing_folder(self, session, conn):
        conn.select.return_value = ("NO", [b"[NONEXISTENT] Unknown Mailbox: Nope"])
        with pytest.raises(UpstreamError, match="Unknown Mailbox"):
            session.open_mailbox("Nope")

    def test_protocol_error_is_wrapped(self, session, conn):
        conn.select.side_effect = imaplib.IMAP4.abort("socket closed")
        with pytest.raises(UpstreamError, match="socket closed"):
            session.open_mailbox("INBOX")

    def test_fetch_range_sorted_by_sequence(self, session, conn):
        conn.fetch.return_value = (
            "OK",
            [(b"2 (UID 12 FLAGS () BODY[] {1}", b"b"), b")", (b"1 (UID 11 FLAGS () BODY[] {1}", b"a"), b")"],
        )
        messages = session.fetch_range(1, 2)

        conn.fetch.assert_called_once_with("1:2", FETCH_ITEMS)
        assert [m.seq for m in messages] == [1, 2]

    def test_fetch_uids_keeps_requested_order(self, session, conn):
        conn.uid.return_value = (
            "OK",
            [(b"1 (UID 5 FLAGS () BODY[] {1}", b"a"), b")", (b"2 (UID 9 FLAGS () BODY[] {1}", b"b"), b")"],
        )
        messages = session.fetch_uids([9, 5])

        conn.uid.assert_called_once_with("FETCH", "9,5", FETCH_ITEMS)
        assert [m.uid for m in messages] == [9, 5]

    def test_fetch_uid_missing(self, session, conn):
        conn.uid.return_value = ("OK", [None])
        assert session.fetch_uid(77) is None

    def test_search_ors_subject_body_from(self, session, conn):
        conn.uid.return_value = ("OK", [b"3 1 2"])
        assert session.search_text("invoice") == [1, 2, 3]
        conn.uid.assert_called_once_with(
            "SEARCH", None, "OR", "OR", "SUBJECT", '"invoice"', "BODY", '"invoice"', "FROM", '"invoice"'
        )

    def test_non_ascii_search_uses_utf8_literal(self, session, conn):
        conn.uid.side_effect = [("OK", [b"4"]), ("OK", [b"2 4"]), ("OK", [b""])]
        assert session.search_text("café") == [2, 4]
        assert conn.uid.call_count == 3
        assert conn.literal == "café".encode("utf-8")

    def test_logout_is_best_effort(self, session, conn):
        conn.logout.side_effect = OSError("broken pipe")
        session.logout()
        session.logout()
        conn.logout.assert_called_once()


class TestImapSessionFactory:
    def test_password_login(self, mock_imap_ssl):
        factory = ImapSessionFactory(timeout=12.5)
        session = factory.open("user@gmail.com", PasswordCredential("pw"), ProviderId.GMAIL)

        kwargs = mock_imap_ssl.call_args.kwargs
        assert kwargs["host"] == "imap.gmail.com"
        assert kwargs["port"] == 993
        assert kwargs["timeout"] == 12.5
        mock_imap_ssl.return_value.login.assert_called_once_with("user@gmail.com", "pw")
        mock_imap_ssl.return_value.authenticate.assert_not_called()
        assert session.provider is ProviderId.GMAIL

    def test_oauth_uses_xoauth2(self, mock_imap_ssl):
        factory = ImapSessionFactory()
        factory.open("user@outlook.com", OAuthCredential("tok"), ProviderId.OUTLOOK)

        conn = mock_imap_ssl.return_value
        conn.login.assert_not_called()
        mechanism, responder = conn.authenticate.call_args.args
        assert mechanism == "XOAUTH2"
        assert responder(b"") == b"user=user@outlook.com\x01auth=Bearer tok\x01\x01"

    def test_auth_failure_is_not_retried(self, mock_imap_ssl):
        conn = mock_imap_ssl.return_value
        conn.login.side_effect = imaplib.IMAP4.error(b"[AUTHENTICATIONFAILED] Invalid credentials (Failure)")

        with pytest.raises(AuthenticationFailedError, match="Invalid credentials"):
            ImapSessionFactory().open("user@gmail.com", PasswordCredential("bad"), ProviderId.GMAIL)

        assert mock_imap_ssl.call_count == 1
        assert conn.login.call_count == 1
        conn.shutdown.assert_called_once()

    def test_non_ascii_password_fails_auth_and_closes_socket(self, mock_imap_ssl):
        conn = mock_imap_ssl.return_value
        conn.login.side_effect = UnicodeEncodeError("ascii", "pässwörd", 1, 2, "ordinal not in range(128)")

        with pytest.raises(AuthenticationFailedError, match="characters"):
            ImapSessionFactory().open("user@gmail.com", PasswordCredential("pässwörd"), ProviderId.GMAIL)

        conn.shutdown.assert_called_once()
        conn.logout.assert_not_called()

    def test_unexpected_auth_error_still_closes_socket(self, mock_imap_ssl):
        conn = mock_imap_ssl.return_value
        conn.authenticate.side_effect = RuntimeError("responder blew up")

        with pytest.raises(RuntimeError):
            ImapSessionFactory().open("user@outlook.com", OAuthCredential("tok"), ProviderId.OUTLOOK)

        conn.shutdown.assert_called_once()

    def test_shutdown_failure_does_not_mask_auth_error(self, mock_imap_ssl):
        conn = mock_imap_ssl.return_value
        conn.login.side_effect = imaplib.IMAP4.error(b"[AUTHENTICATIONFAILED] Invalid credentials")
        conn.shutdown.side_effect = OSError("already closed")

        with pytest.raises(AuthenticationFailedError, match="Invalid credentials"):
            ImapSessionFactory().open("user@gmail.com", PasswordCredential("bad"), ProviderId.GMAIL)

    def test_starttls_failure_closes_socket(self):
        config = ProviderConfig(host="imap.example.net", port=143, use_implicit_tls=False)
        with patch("mailsentinel.infrastructure.email.imap.auth.imaplib.IMAP4") as mock_class:
            conn = mock_class.return_value
            conn.starttls.side_effect = imaplib.IMAP4.abort("TLS not available")

            with pytest.raises(imaplib.IMAP4.abort):
                ImapSessionFactory()._connect(config)

        conn.shutdown.assert_called_once()

    def test_connect_failure(self, mock_imap_ssl):
        mock_imap_ssl.side_effect = OSError("Connection refused")
        with pytest.raises(AuthenticationFailedError, match="Connection refused"):
            ImapSessionFactory().open("user@icloud.com", PasswordCredential("pw"), ProviderId.ICLOUD)

    def test_unrecognized_provider(self, mock_imap_ssl):
        with pytest.raises(UnsupportedProviderError):
            ImapSessionFactory().open("user@example.com", PasswordCredential("pw"), ProviderId.UNRECOGNIZED)
        mock_imap_ssl.assert_not_called()

    def test_scoped_session_logs_out_on_error(self, mock_imap_ssl):
        account = Account(email="user@gmail.com", credential=PasswordCredential("pw"))
        factory = ImapSessionFactory()

        with pytest.raises(RuntimeError):
            with factory.session(account, ProviderId.GMAIL):
                raise RuntimeError("boom")

        mock_imap_ssl.return_value.logout.assert_called_once()


def test_xoauth2_string_format():
    assert xoauth2_string(" a@b.com ", "t") == b"user=a@b.com\x01auth=Bearer t\x01\x01"
