"""
Git History Scrubber

A guarded, idempotent workflow that rewrites a repository's history to
remove secret strings, verifies nothing survived, and only then
force-pushes the cleaned branch to the shared remote.
"""

__version__ = "0.1.0"

from .config import DEFAULT_SECRET_PATTERNS
from .engine import FilterRepoEngine, RewriteEngine
from .git import GitRepository, HistoryMatch
from .manifest import Manifest
from .patterns import SecretPatternSet
from .pipeline import (
    Aborted,
    PublishFailed,
    RunState,
    ScrubPipeline,
    Succeeded,
    VerificationFailed,
)
from .rules import ReplacementRuleset
from .verifier import SecretVerifier, VerificationReport

__all__ = [
    "DEFAULT_SECRET_PATTERNS",
    "FilterRepoEngine",
    "RewriteEngine",
    "GitRepository",
    "HistoryMatch",
    "Manifest",
    "SecretPatternSet",
    "Aborted",
    "PublishFailed",
    "RunState",
    "ScrubPipeline",
    "Succeeded",
    "VerificationFailed",
    "ReplacementRuleset",
    "SecretVerifier",
    "VerificationReport",
]
