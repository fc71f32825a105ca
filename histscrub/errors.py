"""
Error taxonomy for a scrub run.

Every failure a stage can produce is one of these classes. Each carries
the exit code the CLI reports and, once it exists, the name of the
backup reference so the operator always knows where to roll back to.
"""

from __future__ import annotations

from typing import Optional

from .config import (
    EXIT_PRECONDITION,
    EXIT_VERIFICATION_FAILED,
    EXIT_PUBLISH_FAILED,
)


class ScrubError(RuntimeError):
    exit_code: int = EXIT_PRECONDITION

    def __init__(self, message: str, backup_ref: Optional[str] = None):
        super().__init__(message)
        self.backup_ref = backup_ref


class PreconditionError(ScrubError):
    """Not a repository root, intent not confirmed, or dirty tree."""


class ToolUnavailableError(ScrubError):
    """Rewrite engine or its rules file cannot be used."""


class BackupCreationError(ScrubError):
    """The safety-net reference could not be created."""


class RewriteEngineError(ScrubError):
    """The external engine reported failure; message is its own output."""


class VerificationFailure(ScrubError):
    """Secret prefixes are still present in the rewritten history."""

    exit_code = EXIT_VERIFICATION_FAILED

    def __init__(self, message: str, report, backup_ref: Optional[str] = None):
        super().__init__(message, backup_ref=backup_ref)
        self.report = report


class PublishError(ScrubError):
    exit_code = EXIT_PUBLISH_FAILED


class GitCommandError(RuntimeError):
    """A git invocation exited with an unexpected status."""

    def __init__(self, args, returncode: int, stderr: str):
        self.command = list(args)
        self.returncode = returncode
        self.stderr = stderr
        detail = stderr.strip() or f"exit status {returncode}"
        super().__init__(f"{' '.join(self.command)}: {detail}")
