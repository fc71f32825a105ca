"""
Replacement ruleset loading.

The rules file is handed to the rewrite engine untouched. This module
only answers two questions before that happens:
- is there a usable rules file at all?
- what does it contain (for listing and dry-run previews)?

Line syntax follows git-filter-repo's --replace-text format:
    literal                   -> replaced with ***REMOVED***
    literal==>replacement
    regex:pattern==>replacement
    glob:pattern==>replacement
Blank lines are ignored.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from .errors import ToolUnavailableError

DEFAULT_REPLACEMENT = "***REMOVED***"
KINDS = ("literal", "regex", "glob")


@dataclass(frozen=True)
class ReplacementRule:
    kind: str
    pattern: str
    replacement: str
    line_number: int


@dataclass
class ReplacementRuleset:
    path: Path
    rules: List[ReplacementRule]

    @classmethod
    def load(cls, path: str | Path) -> "ReplacementRuleset":
        """
        Load and validate a rules file.

        Raises:
            ToolUnavailableError: if the file is missing or has no rules

        Returns:
            ReplacementRuleset
        """

        path = Path(path)
        if not path.is_file():
            raise ToolUnavailableError(f"Replacement rules file not found: {path}")

        text = path.read_text(encoding="utf-8", errors="replace")
        rules: List[ReplacementRule] = []
        for idx, line in enumerate(text.splitlines(), start=1):
            rule = parse_rule(line, idx)
            if rule is not None:
                rules.append(rule)

        if not rules:
            raise ToolUnavailableError(f"Replacement rules file is empty: {path}")

        return cls(path=path, rules=rules)

    def __len__(self) -> int:
        return len(self.rules)


def parse_rule(line: str, line_number: int) -> Optional[ReplacementRule]:
    body = line.rstrip("\r\n")
    if not body.strip():
        return None

    kind = "literal"
    for prefix in KINDS[1:]:
        if body.startswith(f"{prefix}:"):
            kind = prefix
            body = body[len(prefix) + 1 :]
            break
    else:
        if body.startswith("literal:"):
            body = body[len("literal:") :]

    pattern, sep, replacement = body.partition("==>")
    return ReplacementRule(
        kind=kind,
        pattern=pattern,
        replacement=replacement if sep else DEFAULT_REPLACEMENT,
        line_number=line_number,
    )
