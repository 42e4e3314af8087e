from mailsentinel.infrastructure.email.providers.registry import (
    IMAP_CONFIGS,
    detect_provider,
    get_provider_config,
)

__all__ = ["IMAP_CONFIGS", "detect_provider", "get_provider_config"]
