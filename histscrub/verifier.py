"""
Post-rewrite verification.

Searches every commit reachable from the scrubbed branch (not just the
working tree) for each secret prefix. The verifier only reports; the
pipeline decides what a non-empty report means.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List

from .git import GitRepository, HistoryMatch
from .patterns import SecretPatternSet


@dataclass
class VerificationReport:
    rev: str
    patterns: SecretPatternSet
    matches: Dict[str, List[HistoryMatch]] = field(default_factory=dict)

    @property
    def passed(self) -> bool:
        return not self.matches

    @property
    def total(self) -> int:
        return sum(len(found) for found in self.matches.values())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rev": self.rev,
            "passed": self.passed,
            "patterns": list(self.patterns),
            "matches": {
                pattern: [
                    {
                        "commit": m.commit,
                        "path": m.path,
                        "line": m.line_number,
                        "text": m.line,
                    }
                    for m in found
                ]
                for pattern, found in self.matches.items()
            },
        }


class SecretVerifier:
    def __init__(self, repo: GitRepository, patterns: SecretPatternSet):
        self.repo = repo
        self.patterns = patterns

    def verify(self, rev: str) -> VerificationReport:
        report = VerificationReport(rev=rev, patterns=self.patterns)
        for pattern in self.patterns:
            found = self.repo.search_history(pattern, rev)
            if found:
                report.matches[pattern] = found
        return report
