"""Known mail providers and domain-based provider detection."""

from __future__ import annotations

from types import MappingProxyType
from typing import Mapping

from mailsentinel.domain.errors import InvalidAddressError, UnsupportedProviderError
from mailsentinel.domain.models import ProviderConfig, ProviderId

IMAP_CONFIGS: Mapping[ProviderId, ProviderConfig] = MappingProxyType(
    {
        ProviderId.GMAIL: ProviderConfig(host="imap.gmail.com", port=993, use_implicit_tls=True),
        ProviderId.OUTLOOK: ProviderConfig(host="outlook.office365.com", port=993, use_implicit_tls=True),
        ProviderId.ICLOUD: ProviderConfig(host="imap.mail.me.com", port=993, use_implicit_tls=True),
    }
)

_DOMAINS: Mapping[str, ProviderId] = MappingProxyType(
    {
        "gmail.com": ProviderId.GMAIL,
        "googlemail.com": ProviderId.GMAIL,
        "outlook.com": ProviderId.OUTLOOK,
        "hotmail.com": ProviderId.OUTLOOK,
        "live.com": ProviderId.OUTLOOK,
        "msn.com": ProviderId.OUTLOOK,
        "icloud.com": ProviderId.ICLOUD,
        "me.com": ProviderId.ICLOUD,
        "mac.com": ProviderId.ICLOUD,
    }
)


def detect_provider(email: str) -> ProviderId:
    """
    Resolve an address to its provider by domain.

    The domain is everything after the last ``@``, compared case-insensitively.
    Unknown domains yield ``ProviderId.UNRECOGNIZED``.
    """
    _, at, domain = (email or "").rpartition("@")
    domain = domain.strip().lower()
    if not at or not domain:
        raise InvalidAddressError(f"Invalid email address: {email!r}")
    return _DOMAINS.get(domain, ProviderId.UNRECOGNIZED)


def get_provider_config(provider: ProviderId) -> ProviderConfig:
    """Connection parameters for a recognized provider."""
    config = IMAP_CONFIGS.get(provider)
    if config is None:
        raise UnsupportedProviderError(f"Unsupported provider: {provider.value}")
    return config
