"""
The guarded rewrite-and-publish pipeline.

A run moves through an explicit state machine:

    START -> VALIDATED -> BACKED_UP -> REWRITTEN
          -> VERIFICATION_FAILED | VERIFICATION_PASSED
          -> PUBLISH_FAILED | PUBLISHED

Every non-terminal state also has a single edge to ABORTED. There are
no retry edges: after remediation the operator re-runs the tool.

Collaborators (repository, rewrite engine, prompt, clock, console) are
passed in, so nothing here reaches for process globals.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Callable, ClassVar, Dict, FrozenSet, List, Optional, Union

from .backup import BackupManager
from .config import (
    EXIT_SUCCESS,
    EXIT_PRECONDITION,
    EXIT_VERIFICATION_FAILED,
    EXIT_PUBLISH_FAILED,
)
from .console import Console
from .engine import RewriteEngine
from .errors import (
    BackupCreationError,
    GitCommandError,
    PreconditionError,
    PublishError,
    ScrubError,
    ToolUnavailableError,
    VerificationFailure,
)
from .git import GitRepository
from .manifest import Manifest
from .patterns import SecretPatternSet
from .preflight import PreflightValidator
from .publisher import Publisher
from .rules import ReplacementRuleset
from .verifier import SecretVerifier, VerificationReport


# ---------------------------------------------------------------------------
# State machine
# ---------------------------------------------------------------------------


class RunState(Enum):
    START = "start"
    VALIDATED = "validated"
    BACKED_UP = "backed_up"
    REWRITTEN = "rewritten"
    VERIFICATION_FAILED = "verification_failed"
    VERIFICATION_PASSED = "verification_passed"
    PUBLISH_FAILED = "publish_failed"
    PUBLISHED = "published"
    ABORTED = "aborted"


TRANSITIONS: Dict[RunState, FrozenSet[RunState]] = {
    RunState.START: frozenset({RunState.VALIDATED, RunState.ABORTED}),
    RunState.VALIDATED: frozenset({RunState.BACKED_UP, RunState.ABORTED}),
    RunState.BACKED_UP: frozenset({RunState.REWRITTEN, RunState.ABORTED}),
    RunState.REWRITTEN: frozenset(
        {RunState.VERIFICATION_FAILED, RunState.VERIFICATION_PASSED, RunState.ABORTED}
    ),
    RunState.VERIFICATION_PASSED: frozenset(
        {RunState.PUBLISHED, RunState.PUBLISH_FAILED}
    ),
}

TERMINAL_STATES: FrozenSet[RunState] = frozenset(
    {
        RunState.ABORTED,
        RunState.VERIFICATION_FAILED,
        RunState.PUBLISH_FAILED,
        RunState.PUBLISHED,
    }
)


# ---------------------------------------------------------------------------
# Outcomes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Aborted:
    reason: str
    backup_ref: Optional[str] = None
    exit_code: ClassVar[int] = EXIT_PRECONDITION


@dataclass(frozen=True)
class VerificationFailed:
    report: VerificationReport
    backup_ref: str
    exit_code: ClassVar[int] = EXIT_VERIFICATION_FAILED


@dataclass(frozen=True)
class PublishFailed:
    reason: str
    backup_ref: str
    exit_code: ClassVar[int] = EXIT_PUBLISH_FAILED


@dataclass(frozen=True)
class Succeeded:
    backup_ref: str
    published_tip: str
    exit_code: ClassVar[int] = EXIT_SUCCESS


RunOutcome = Union[Aborted, VerificationFailed, PublishFailed, Succeeded]


@dataclass(frozen=True)
class Preview:
    """What a real run would start from, gathered without mutating anything."""

    ruleset: ReplacementRuleset
    report: VerificationReport
    backup_name: str


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------


class ScrubPipeline:
    def __init__(
        self,
        repo: GitRepository,
        engine: RewriteEngine,
        manifest: Manifest,
        confirm: Callable[[str], str],
        console: Optional[Console] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.repo = repo
        self.engine = engine
        self.manifest = manifest
        self.console = console or Console()

        self.preflight = PreflightValidator(repo, confirm)
        self.backups = BackupManager(repo, manifest.backup_prefix, clock)
        self.verifier = SecretVerifier(
            repo, SecretPatternSet.with_extras(manifest.secret_patterns)
        )
        self.publisher = Publisher(repo, manifest.remote, manifest.branch)

        self.state = RunState.START
        self.history: List[RunState] = [RunState.START]
        self.backup_ref: Optional[str] = None
        self.remote_url: Optional[str] = None

    # ------------------------------------------------------------------
    # State handling
    # ------------------------------------------------------------------

    def _advance(self, target: RunState) -> None:
        allowed = TRANSITIONS.get(self.state, frozenset())
        if target not in allowed:
            raise RuntimeError(
                f"Illegal transition {self.state.value} -> {target.value}"
            )
        self.state = target
        self.history.append(target)

    @property
    def finished(self) -> bool:
        return self.state in TERMINAL_STATES

    @property
    def rules_path(self):
        return self.repo.root / self.manifest.rules_file

    def _require_remote(self) -> str:
        url = self.repo.remote_url(self.manifest.remote)
        if url is None:
            raise PreconditionError(
                f"Remote '{self.manifest.remote}' is not configured; nothing to publish to"
            )
        return url

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    def validate(self) -> ReplacementRuleset:
        """Preflight checks, then engine and rules availability. No side effects."""

        self.console.step("Preflight checks")
        self.preflight.validate(self.manifest.branch, self.manifest.remote)
        self.remote_url = self._require_remote()

        self.console.log_verbose("Locating rewrite engine")
        self.engine.ensure_available()
        ruleset = ReplacementRuleset.load(self.rules_path)
        self.console.log_verbose(
            f"Loaded {len(ruleset)} replacement rule(s) from {ruleset.path}"
        )

        self._advance(RunState.VALIDATED)
        return ruleset

    def back_up(self) -> str:
        self.console.step("Creating backup reference")
        try:
            self.backup_ref = self.backups.create(self.manifest.branch)
        except GitCommandError as e:
            raise BackupCreationError(str(e))
        self.console.success(f"Backup created: {self.backup_ref}")
        self._advance(RunState.BACKED_UP)
        return self.backup_ref

    def rewrite(self, ruleset: ReplacementRuleset) -> None:
        self.console.step("Rewriting history")
        self.engine.rewrite(ruleset.path)
        self.console.success(f"History of '{self.manifest.branch}' rewritten")
        self._advance(RunState.REWRITTEN)

    def verify(self) -> VerificationReport:
        self.console.step("Verifying rewritten history")
        report = self.verifier.verify(self.manifest.branch)
        if not report.passed:
            raise VerificationFailure(
                f"{report.total} secret match(es) remain in history",
                report,
                backup_ref=self.backup_ref,
            )
        self.console.success(
            f"No secret patterns found ({len(self.verifier.patterns)} checked)"
        )
        self._advance(RunState.VERIFICATION_PASSED)
        return report

    def publish(self, remote_url: Optional[str]) -> str:
        self.console.step(
            f"Publishing '{self.manifest.branch}' to '{self.manifest.remote}'"
        )
        try:
            if self.publisher.restore_remote(remote_url):
                self.console.info(f"Restored remote '{self.manifest.remote}' ({remote_url})")
            tip = self.publisher.publish()
        except GitCommandError as e:
            raise PublishError(str(e))
        self._advance(RunState.PUBLISHED)
        return tip

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def run(self) -> RunOutcome:
        """Drive the run to a terminal state and return its outcome."""

        if self.state is not RunState.START:
            raise RuntimeError("A pipeline instance runs at most once")

        try:
            ruleset = self.validate()
            backup_ref = self.back_up()
            self.rewrite(ruleset)
            self.verify()
            tip = self.publish(self.remote_url)
        except VerificationFailure as e:
            self._advance(RunState.VERIFICATION_FAILED)
            return VerificationFailed(report=e.report, backup_ref=self.backup_ref)
        except PublishError as e:
            self._advance(RunState.PUBLISH_FAILED)
            return PublishFailed(reason=str(e), backup_ref=self.backup_ref)
        except (ScrubError, GitCommandError) as e:
            self._advance(RunState.ABORTED)
            return Aborted(reason=str(e), backup_ref=self.backup_ref)

        return Succeeded(backup_ref=backup_ref, published_tip=tip)

    def preview(self) -> Preview:
        """
        Dry run: the checks that need no consent, plus a verification of
        the current history. Nothing is created, rewritten or pushed.
        """

        self.preflight.check_repository_root()
        self.preflight.check_clean_tree()
        self._require_remote()
        if not self.engine.is_installed():
            raise ToolUnavailableError("Rewrite engine is not installed; a dry run never installs it")
        ruleset = ReplacementRuleset.load(self.rules_path)
        report = self.verifier.verify(self.manifest.branch)
        return Preview(
            ruleset=ruleset,
            report=report,
            backup_name=self.backups.next_name(),
        )
