"""Mail Sentinel: stateless HTTP-to-IMAP gateway."""

__version__ = "0.1.0"
