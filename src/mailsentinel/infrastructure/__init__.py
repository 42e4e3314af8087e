"""Infrastructure layer - IMAP access, MIME parsing, and configuration."""

from mailsentinel.infrastructure.logging import configure_logging
from mailsentinel.infrastructure.settings import Settings, get_settings

__all__ = [
    "Settings",
    "get_settings",
    "configure_logging",
]
