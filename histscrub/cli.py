"""
Command-line interface for the histscrub tool.

This module wires the pipeline to the real environment (current
directory, git, git-filter-repo, the terminal) and provides the
user-facing CLI commands:
- run
- verify
- backups
- patterns
- rules
- help
"""

from __future__ import annotations

import sys
import json
import argparse
from pathlib import Path
from typing import List, Optional

from .backup import BackupManager
from .config import (
    CONFIRMATION_TOKEN,
    DEFAULT_CONFIG_FILE,
    DEFAULT_RULES_FILE,
    EXIT_INTERRUPTED,
    EXIT_PRECONDITION,
    EXIT_SUCCESS,
    EXIT_VERIFICATION_FAILED,
    ENV_CONFIG_PATH,
    ENV_MODE,
    TOOL_VERSION,
    get_execution_mode,
    resolve_config_path,
)
from .console import Colors, Console, colored, print_error
from .engine import FilterRepoEngine
from .errors import ScrubError
from .git import GitRepository
from .manifest import Manifest
from .patterns import SecretPatternSet
from .pipeline import (
    Aborted,
    PublishFailed,
    RunOutcome,
    ScrubPipeline,
    Succeeded,
    VerificationFailed,
)
from .rules import ReplacementRuleset
from .utils import truncate
from .verifier import SecretVerifier, VerificationReport

# Matches shown per pattern before the list is cut short
MAX_MATCHES_SHOWN = 20


# ---------------------------------------------------------------------------
# CLI context
# ---------------------------------------------------------------------------


class CLIContext(Console):
    """Shared context for CLI commands."""

    def __init__(
        self,
        config_path: Optional[str],
        verbose: bool,
        quiet: bool,
        root: Optional[Path] = None,
    ):
        super().__init__(verbose=verbose, quiet=quiet)
        self.config_path = config_path
        self.root = root or Path.cwd()

        # Lazy-loaded
        self._manifest: Optional[Manifest] = None
        self._repo: Optional[GitRepository] = None

    @property
    def manifest(self) -> Manifest:
        """Load manifest lazily."""
        if self._manifest is None:
            path = resolve_config_path(self.config_path)
            if not path.is_absolute():
                path = self.root / path
            self._manifest = Manifest.load(path, required=self.config_path is not None)
        return self._manifest

    @property
    def repo(self) -> GitRepository:
        if self._repo is None:
            self._repo = GitRepository(self.root)
        return self._repo


# ---------------------------------------------------------------------------
# Reporting helpers
# ---------------------------------------------------------------------------


def report_matches(ctx: CLIContext, report: VerificationReport) -> None:
    for pattern, found in report.matches.items():
        ctx.log(colored(f"  Pattern '{pattern}': {len(found)} match(es)", Colors.RED))
        for match in found[:MAX_MATCHES_SHOWN]:
            ctx.log(f"    {match.location}: {truncate(match.line)}")
        if len(found) > MAX_MATCHES_SHOWN:
            ctx.log(f"    ... and {len(found) - MAX_MATCHES_SHOWN} more")


def report_outcome(ctx: CLIContext, outcome: RunOutcome) -> int:
    ctx.log("")

    if isinstance(outcome, Succeeded):
        ctx.success(f"Published {outcome.published_tip[:10]}")
        ctx.log(f"  Backup reference kept: {outcome.backup_ref}")
        ctx.log("")
        ctx.warning(
            "History rewriting hides secrets from future clones only. "
            "Rotate or revoke every credential that was ever committed."
        )

    elif isinstance(outcome, VerificationFailed):
        ctx.error(
            f"Secrets still present after rewrite "
            f"({outcome.report.total} match(es)); nothing was pushed"
        )
        report_matches(ctx, outcome.report)
        ctx.log("")
        ctx.log("  Local history stays rewritten. Add rules for the values above and re-run,")
        ctx.log(f"  or roll back with: git reset --hard {outcome.backup_ref}")

    elif isinstance(outcome, PublishFailed):
        ctx.error(outcome.reason)
        ctx.log("  Local history is rewritten and verified but NOT published.")
        ctx.log("  If the remote blocked the push (e.g. push protection), use its")
        ctx.log("  override or unblock mechanism, then push again:")
        ctx.log(colored("    git push --force <remote> <branch>", Colors.CYAN))
        ctx.log(f"  Backup reference: {outcome.backup_ref}")

    elif isinstance(outcome, Aborted):
        ctx.error(outcome.reason)
        if outcome.backup_ref:
            ctx.log(f"  Backup reference: {outcome.backup_ref}")
            ctx.log(f"  Roll back with: git reset --hard {outcome.backup_ref}")

    return outcome.exit_code


# ---------------------------------------------------------------------------
# Command implementations
# ---------------------------------------------------------------------------


def make_confirm(token: Optional[str]):
    """Return the prompt callable: either the real prompt or a pre-supplied answer."""
    if token is not None:
        return lambda _prompt: token
    return lambda prompt: input(colored(prompt, Colors.YELLOW))


def build_pipeline(ctx: CLIContext, args: argparse.Namespace) -> ScrubPipeline:
    manifest = ctx.manifest.override(
        rules_file=args.rules,
        remote=args.remote,
        branch=args.branch,
    )
    engine = FilterRepoEngine(
        ctx.root,
        refs=[manifest.branch],
        auto_install=args.install_engine,
    )
    return ScrubPipeline(
        repo=ctx.repo,
        engine=engine,
        manifest=manifest,
        confirm=make_confirm(args.confirm),
        console=ctx,
    )


def cmd_run(ctx: CLIContext, args: argparse.Namespace) -> int:
    """
    Validate, back up, rewrite, verify and publish.
    """
    pipeline = build_pipeline(ctx, args)
    manifest = pipeline.manifest

    if args.dry_run:
        return cmd_preview(ctx, pipeline)

    ctx.log(colored(f"Scrubbing '{manifest.branch}' → {manifest.remote}", Colors.BOLD))
    ctx.log_verbose(f"Rules file: {pipeline.rules_path}")

    try:
        outcome = pipeline.run()
    except KeyboardInterrupt:
        print_error("Interrupted")
        if pipeline.backup_ref:
            ctx.log(f"  Backup reference: {pipeline.backup_ref}")
        return EXIT_INTERRUPTED

    ctx.log_verbose(
        "States: " + " → ".join(state.value for state in pipeline.history)
    )
    return report_outcome(ctx, outcome)


def cmd_preview(ctx: CLIContext, pipeline: ScrubPipeline) -> int:
    ctx.log(colored("[DRY RUN] Preview of changes:", Colors.YELLOW))
    preview = pipeline.preview()
    manifest = pipeline.manifest

    ctx.log(f"  Backup would be:  {preview.backup_name}")
    ctx.log(f"  Rules file:       {preview.ruleset.path} ({len(preview.ruleset)} rule(s))")
    ctx.log(f"  Rewrite refs:     {manifest.branch}")
    ctx.log(f"  Publish to:       {manifest.remote}/{manifest.branch} (forced)")

    if preview.report.passed:
        ctx.log("  Current history:  no secret patterns found")
    else:
        ctx.log(f"  Current history:  {preview.report.total} secret match(es)")
        report_matches(ctx, preview.report)

    ctx.log("")
    ctx.log(colored("[DRY RUN] Preview complete - nothing was modified", Colors.YELLOW))
    return EXIT_SUCCESS


def cmd_verify(ctx: CLIContext, args: argparse.Namespace) -> int:
    """
    Search history for secret patterns without changing anything.
    """
    manifest = ctx.manifest.override(branch=args.branch)
    verifier = SecretVerifier(
        ctx.repo, SecretPatternSet.with_extras(manifest.secret_patterns)
    )
    report = verifier.verify(manifest.branch)

    if args.json:
        print(json.dumps(report.to_dict(), indent=2))
        return EXIT_SUCCESS if report.passed else EXIT_VERIFICATION_FAILED

    if report.passed:
        ctx.success(
            f"No secret patterns in history of '{manifest.branch}' "
            f"({len(verifier.patterns)} checked)"
        )
        return EXIT_SUCCESS

    ctx.error(f"{report.total} secret match(es) in history of '{manifest.branch}'")
    report_matches(ctx, report)
    return EXIT_VERIFICATION_FAILED


def cmd_backups(ctx: CLIContext, args: argparse.Namespace) -> int:
    """
    List backup references left by previous runs.
    """
    manifest = ctx.manifest
    branches = BackupManager(ctx.repo, manifest.backup_prefix).existing()

    if not branches:
        ctx.log(colored("No backup references found", Colors.YELLOW))
        return EXIT_SUCCESS

    ctx.log(colored("Backup references (newest first)", Colors.BOLD))
    for name, commit in branches:
        ctx.log(f"  {name}  {commit[:10]}")
    ctx.log("")
    ctx.log("Roll back with: git reset --hard <name>")
    return EXIT_SUCCESS


def cmd_patterns(ctx: CLIContext, args: argparse.Namespace) -> int:
    """
    Show the secret prefixes checked after a rewrite.
    """
    patterns = SecretPatternSet.with_extras(ctx.manifest.secret_patterns)
    ctx.log(colored(f"Secret patterns ({len(patterns)})", Colors.BOLD))
    for pattern in patterns:
        ctx.log(f"  {pattern}")
    return EXIT_SUCCESS


def cmd_rules(ctx: CLIContext, args: argparse.Namespace) -> int:
    """
    Show the replacement rules handed to the rewrite engine.
    """
    manifest = ctx.manifest.override(rules_file=args.rules)
    ruleset = ReplacementRuleset.load(ctx.root / manifest.rules_file)

    ctx.log(colored(f"Rules from {ruleset.path}", Colors.BOLD))
    ctx.log("")
    for rule in ruleset.rules:
        ctx.log(f"  #{rule.line_number:<4} {rule.kind:<8} {rule.pattern!r} → {rule.replacement!r}")
    return EXIT_SUCCESS


def cmd_help(ctx: Optional[CLIContext], args: argparse.Namespace) -> int:
    """
    Show help message.
    """
    help_text = f"""
{colored('histscrub', Colors.BOLD)} — scrub secrets from git history and publish safely

{colored('USAGE:', Colors.CYAN)}
  histscrub [options] <command> [command options]

{colored('DESCRIPTION:', Colors.CYAN)}
  histscrub rewrites the history of one branch with git-filter-repo,
  verifies that no known secret prefixes survived, and only then
  force-pushes the branch. A backup branch is created before every
  rewrite and is never deleted.

{colored('COMMANDS:', Colors.CYAN)}
  run         Validate, back up, rewrite, verify and publish
  verify      Search branch history for secret patterns only
  backups     List backup references left by earlier runs
  patterns    Show the secret prefixes that are checked
  rules       Show the replacement rules file as parsed
  help        Show this help message

{colored('GLOBAL OPTIONS:', Colors.CYAN)}
  -c, --config PATH         Path to manifest file
                            (default: {DEFAULT_CONFIG_FILE}, optional)
  -v, --verbose             Enable verbose output
  -q, --quiet               Suppress non-error output
  -h, --help                Show this help message and exit

{colored('RUN OPTIONS:', Colors.CYAN)}
  --rules PATH              Replacement rules file (default: {DEFAULT_RULES_FILE})
  --remote NAME             Remote to publish to
  --branch NAME             Branch to rewrite and publish
  --confirm TOKEN           Answer the confirmation prompt non-interactively
                            (must be exactly '{CONFIRMATION_TOKEN}')
  --install-engine          pip-install git-filter-repo if it is missing
  -n, --dry-run             Check everything, change nothing

{colored('EXIT CODES:', Colors.CYAN)}
  0   published successfully
  1   precondition, tool, backup or rewrite failure
  2   secrets remain after rewrite (nothing pushed)
  3   remote rejected the push (history rewritten locally)

{colored('RE-RUNNING:', Colors.CYAN)}
  Exit codes 2 and 3 are retryable after remediation. Note that a second
  run rewrites the *already rewritten* history, not the original; each
  run leaves its own backup, so the oldest backup is the true original.

{colored('ENVIRONMENT:', Colors.CYAN)}
  {ENV_CONFIG_PATH}          Manifest path (overridden by --config)
  {ENV_MODE}            Execution mode (dev shows tracebacks)

{colored('EXAMPLES:', Colors.CYAN)}
  histscrub run --dry-run
  histscrub run
  histscrub run --confirm {CONFIRMATION_TOKEN} --branch main
  histscrub verify --json
  histscrub backups

{colored('VERSION:', Colors.CYAN)}
  {TOOL_VERSION}
"""
    print(help_text)
    return EXIT_SUCCESS


# ---------------------------------------------------------------------------
# Argument parsing
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="histscrub",
        description="Scrub secrets from git history and publish safely",
        add_help=False,
    )

    # Global options
    parser.add_argument(
        "-c", "--config",
        default=None,
        help="Path to manifest file",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose output",
    )
    parser.add_argument(
        "-q", "--quiet",
        action="store_true",
        help="Suppress non-error output",
    )
    parser.add_argument(
        "-h", "--help",
        action="store_true",
        help="Show help message",
    )

    # Subcommands
    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    # run command
    run_parser = subparsers.add_parser("run", help="Rewrite, verify and publish")
    run_parser.add_argument("--rules", help="Replacement rules file")
    run_parser.add_argument("--remote", help="Remote to publish to")
    run_parser.add_argument("--branch", help="Branch to rewrite and publish")
    run_parser.add_argument("--confirm", metavar="TOKEN", help="Non-interactive confirmation")
    run_parser.add_argument("--install-engine", action="store_true", help="Install git-filter-repo if missing")
    run_parser.add_argument("-n", "--dry-run", action="store_true", help="Check everything, change nothing")

    # verify command
    verify_parser = subparsers.add_parser("verify", help="Search history for secret patterns")
    verify_parser.add_argument("--branch", help="Branch whose history is searched")
    verify_parser.add_argument("--json", action="store_true", help="Output report as JSON")

    # backups command
    subparsers.add_parser("backups", help="List backup references")

    # patterns command
    subparsers.add_parser("patterns", help="Show secret patterns")

    # rules command
    rules_parser = subparsers.add_parser("rules", help="Show replacement rules")
    rules_parser.add_argument("--rules", help="Replacement rules file")

    # help command
    subparsers.add_parser("help", help="Show help message")

    return parser


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    # Show help if requested or no command
    if args.help or not args.command:
        return cmd_help(None, args)

    # Build context
    ctx = CLIContext(
        config_path=args.config,
        verbose=args.verbose,
        quiet=args.quiet,
    )

    # Dispatch to command
    commands = {
        "run": cmd_run,
        "verify": cmd_verify,
        "backups": cmd_backups,
        "patterns": cmd_patterns,
        "rules": cmd_rules,
        "help": cmd_help,
    }

    cmd_func = commands.get(args.command)
    if not cmd_func:
        print_error(f"Unknown command: {args.command}")
        return EXIT_PRECONDITION

    try:
        return cmd_func(ctx, args)
    except KeyboardInterrupt:
        print_error("Interrupted")
        return EXIT_INTERRUPTED
    except ScrubError as e:
        print_error(str(e))
        if e.backup_ref:
            ctx.log(f"  Backup reference: {e.backup_ref}")
        return e.exit_code
    except Exception as e:
        print_error(str(e))
        if args.verbose or get_execution_mode() == "dev":
            import traceback
            traceback.print_exc()
        return EXIT_PRECONDITION


if __name__ == "__main__":
    sys.exit(main())
