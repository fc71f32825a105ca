"""
Shared utility helpers.

This module contains small, reusable helpers that do not belong
to git access, pipeline sequencing, or console output.
"""

from __future__ import annotations

from datetime import datetime
from itertools import islice
from typing import Iterable, Iterator, List, TypeVar

T = TypeVar("T")


# ---------------------------------------------------------------------------
# Iteration helpers
# ---------------------------------------------------------------------------


def batched(items: Iterable[T], size: int) -> Iterator[List[T]]:
    """Yield successive lists of at most `size` items."""
    iterator = iter(items)
    while True:
        batch = list(islice(iterator, size))
        if not batch:
            return
        yield batch


# ---------------------------------------------------------------------------
# Naming helpers
# ---------------------------------------------------------------------------


def timestamped_name(prefix: str, moment: datetime, fmt: str) -> str:
    """Join a prefix and a formatted timestamp, e.g. `backup-20240101-120000`."""
    return f"{prefix}-{moment.strftime(fmt)}"


# ---------------------------------------------------------------------------
# Text helpers
# ---------------------------------------------------------------------------


def truncate(text: str, length: int = 120) -> str:
    """Shorten a line for terminal display."""
    text = text.strip()
    if len(text) <= length:
        return text
    return text[: length - 3] + "..."
