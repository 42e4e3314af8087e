"""Domain models for Mail Sentinel."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Union

from mailsentinel.domain.errors import InvalidRequestError


class ProviderId(str, Enum):
    """Mail providers the gateway knows how to reach."""

    GMAIL = "gmail"
    OUTLOOK = "outlook"
    ICLOUD = "icloud"
    UNRECOGNIZED = "unrecognized"


class AuthType(str, Enum):
    """Authentication mechanisms."""

    PASSWORD = "password"
    OAUTH = "oauth"


@dataclass(frozen=True)
class ProviderConfig:
    """IMAP connection parameters for one provider."""

    host: str
    port: int
    use_implicit_tls: bool = True


@dataclass(frozen=True)
class PasswordCredential:
    value: str

    @property
    def auth_type(self) -> AuthType:
        return AuthType.PASSWORD

    def __repr__(self) -> str:
        return "PasswordCredential(value=***)"


@dataclass(frozen=True)
class OAuthCredential:
    access_token: str

    @property
    def auth_type(self) -> AuthType:
        return AuthType.OAUTH

    def __repr__(self) -> str:
        return "OAuthCredential(access_token=***)"


Credential = Union[PasswordCredential, OAuthCredential]


@dataclass(frozen=True)
class Account:
    """A validated mailbox request target: address, credential and folder."""

    email: str
    credential: Credential
    folder: str = "INBOX"


MISSING_FIELDS_MESSAGE = "Email and password/accessToken required"

_LINE_BREAKERS = ("\r", "\n", "\x00")


def ensure_single_line(value: str, field_name: str) -> str:
    """
    Reject CR, LF and NUL in a value that is placed on an IMAP command line.

    Any of them would end the command early and let the rest of the value
    run as a separate command on the authenticated session.
    """
    if any(ch in value for ch in _LINE_BREAKERS):
        raise InvalidRequestError(f"{field_name} must not contain line breaks or NUL characters")
    return value


def resolve_credential(
    password: str | None,
    access_token: str | None,
    auth_type: str | None = None,
) -> Credential:
    """
    Decode the request's credential fields into exactly one credential.

    Blank strings count as absent. ``auth_type`` is optional; when given it
    must agree with the credential actually supplied.
    """
    password = password or None
    access_token = access_token or None

    if password is None and access_token is None:
        raise InvalidRequestError(MISSING_FIELDS_MESSAGE)
    if password is not None and access_token is not None:
        raise InvalidRequestError("Supply either password or accessToken, not both")

    requested: AuthType | None = None
    if auth_type:
        try:
            requested = AuthType(auth_type.lower())
        except ValueError:
            raise InvalidRequestError(f"Unknown authType: {auth_type}") from None

    if access_token is not None:
        if requested is AuthType.PASSWORD:
            raise InvalidRequestError("authType 'password' requires a password")
        return OAuthCredential(access_token=access_token)

    if requested is AuthType.OAUTH:
        raise InvalidRequestError("authType 'oauth' requires an accessToken")
    return PasswordCredential(value=password)


def build_account(
    email: str | None,
    password: str | None,
    access_token: str | None,
    auth_type: str | None = None,
    folder: str | None = None,
) -> Account:
    """Validate raw request fields before any network attempt."""
    email = (email or "").strip()
    if not email:
        raise InvalidRequestError(MISSING_FIELDS_MESSAGE)

    ensure_single_line(email, "email")
    folder = ensure_single_line(folder or "INBOX", "folder")

    credential = resolve_credential(password, access_token, auth_type)
    if isinstance(credential, PasswordCredential):
        ensure_single_line(credential.value, "password")
    return Account(email=email, credential=credential, folder=folder)
