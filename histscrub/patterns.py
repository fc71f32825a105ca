"""
Secret indicator patterns.

A pattern set is a fixed collection of literal prefixes (provider
API-key formats and similar). It is only ever used to *verify* a
rewritten history; the rewrite itself is driven by the replacement
ruleset.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Iterator, Tuple

from .config import DEFAULT_SECRET_PATTERNS


@dataclass(frozen=True)
class SecretPatternSet:
    patterns: Tuple[str, ...]

    def __post_init__(self):
        if not self.patterns:
            raise ValueError("Secret pattern set must not be empty")
        if any(not p for p in self.patterns):
            raise ValueError("Secret patterns must be non-empty strings")

    @classmethod
    def default(cls) -> "SecretPatternSet":
        return cls(tuple(DEFAULT_SECRET_PATTERNS))

    @classmethod
    def with_extras(cls, extras: Iterable[str]) -> "SecretPatternSet":
        """Default prefixes plus `extras`, order preserved, duplicates dropped."""
        seen = []
        for pattern in (*DEFAULT_SECRET_PATTERNS, *extras):
            if pattern not in seen:
                seen.append(pattern)
        return cls(tuple(seen))

    def __iter__(self) -> Iterator[str]:
        return iter(self.patterns)

    def __len__(self) -> int:
        return len(self.patterns)
