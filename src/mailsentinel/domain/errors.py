"""Error taxonomy shared by every layer.

Each error maps to exactly one HTTP status in ``mailsentinel.api.main``;
the message text is returned to the caller unchanged.
"""

from __future__ import annotations


class MailSentinelError(Exception):
    """Base class for all gateway errors."""

    status_code: int = 500


class InvalidRequestError(MailSentinelError):
    """Missing or contradictory request fields."""

    status_code = 400


class InvalidAddressError(InvalidRequestError):
    """The account address has no domain part."""


class UnsupportedProviderError(InvalidRequestError):
    """The account domain does not belong to a known provider."""

    def __init__(self, message: str = "Unsupported email provider") -> None:
        super().__init__(message)


class AuthenticationFailedError(MailSentinelError):
    """Connecting or authenticating to the mailbox server failed."""

    status_code = 500


class MessageNotFoundError(MailSentinelError):
    """The requested unique id is not present in the mailbox."""

    status_code = 404

    def __init__(self, message: str = "Message not found") -> None:
        super().__init__(message)


class UpstreamError(MailSentinelError):
    """Any other failure reported by the IMAP server or the MIME parser."""

    status_code = 500


class MimeParseError(UpstreamError):
    """A single message's source could not be parsed."""
