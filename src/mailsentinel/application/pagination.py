"""Newest-first paging over a mailbox the server orders oldest-first."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

DEFAULT_LIMIT = 50
DEFAULT_OFFSET = 0


@dataclass(frozen=True)
class SequenceRange:
    """Inclusive, 1-based sequence-number range."""

    start: int
    end: int

    def __str__(self) -> str:
        return f"{self.start}:{self.end}"

    def __len__(self) -> int:
        return self.end - self.start + 1


def page_range(total_count: int, offset: int = DEFAULT_OFFSET, limit: int = DEFAULT_LIMIT) -> Optional[SequenceRange]:
    """
    Sequence range holding the page ``offset``/``limit`` counted from the
    newest message, or ``None`` when the page is empty.
    """
    if total_count <= 0 or offset >= total_count or limit <= 0:
        return None

    start = max(1, total_count - offset - limit + 1)
    end = max(1, total_count - offset)
    if start > end:
        return None
    return SequenceRange(start=start, end=end)


def has_more(total_count: int, offset: int, returned: int) -> bool:
    return offset + returned < total_count


def most_recent(uids: list[int], limit: int = DEFAULT_LIMIT) -> list[int]:
    """The last ``limit`` ids of an ascending list, newest first."""
    if limit <= 0:
        return []
    return list(reversed(uids[-limit:]))
