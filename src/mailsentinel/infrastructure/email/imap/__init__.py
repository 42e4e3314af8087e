from mailsentinel.infrastructure.email.imap.auth import ImapSessionFactory, xoauth2_string
from mailsentinel.infrastructure.email.imap.responses import FetchedMessage
from mailsentinel.infrastructure.email.imap.session import ImapSession

__all__ = ["FetchedMessage", "ImapSession", "ImapSessionFactory", "xoauth2_string"]
