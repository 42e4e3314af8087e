"""Domain models, entities and errors."""

from mailsentinel.domain.entities.email_message import (
    AttachmentInfo,
    EmailAddress,
    MailboxSnapshot,
    NormalizedMessage,
    Page,
    SearchPage,
)
from mailsentinel.domain.models import (
    Account,
    AuthType,
    Credential,
    OAuthCredential,
    PasswordCredential,
    ProviderConfig,
    ProviderId,
    build_account,
    resolve_credential,
)

__all__ = [
    "Account",
    "AuthType",
    "Credential",
    "OAuthCredential",
    "PasswordCredential",
    "ProviderConfig",
    "ProviderId",
    "build_account",
    "resolve_credential",
    "AttachmentInfo",
    "EmailAddress",
    "MailboxSnapshot",
    "NormalizedMessage",
    "Page",
    "SearchPage",
]
