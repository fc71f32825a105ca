"""
Rewrite engine adapter.

History rewriting itself is delegated to git-filter-repo. This module
only knows how to:
- find out whether the engine is usable (and optionally install it)
- hand it a rules file and the refs to rewrite
- turn a non-zero exit into a RewriteEngineError

It never interprets replacement syntax.
"""

from __future__ import annotations

import subprocess
import sys
from pathlib import Path
from typing import Protocol, Sequence, Tuple

from .config import ENGINE_COMMAND, ENGINE_PACKAGE
from .errors import RewriteEngineError, ToolUnavailableError


class RewriteEngine(Protocol):
    def is_installed(self) -> bool:
        """True if the engine runs as-is, without provisioning."""

    def ensure_available(self) -> None:
        """Raise ToolUnavailableError if the engine cannot be run."""

    def rewrite(self, rules_file: Path) -> None:
        """Irreversibly rewrite history; raise RewriteEngineError on failure."""


class FilterRepoEngine:
    def __init__(
        self,
        root: str | Path,
        refs: Sequence[str],
        auto_install: bool = False,
        command: Tuple[str, ...] = ENGINE_COMMAND,
    ):
        self.root = Path(root)
        self.refs = tuple(refs)
        self.auto_install = auto_install
        self.command = command

    # ------------------------------------------------------------------
    # Availability
    # ------------------------------------------------------------------

    def is_installed(self) -> bool:
        try:
            result = subprocess.run(
                [*self.command, "--version"],
                cwd=self.root,
                capture_output=True,
                text=True,
                check=False,
            )
        except FileNotFoundError:
            return False
        return result.returncode == 0

    def install(self) -> None:
        result = subprocess.run(
            [sys.executable, "-m", "pip", "install", ENGINE_PACKAGE],
            capture_output=True,
            text=True,
            check=False,
        )
        if result.returncode != 0:
            raise ToolUnavailableError(
                f"Failed to install {ENGINE_PACKAGE}: {result.stderr.strip()}"
            )

    def ensure_available(self) -> None:
        if self.is_installed():
            return

        if not self.auto_install:
            raise ToolUnavailableError(
                f"{' '.join(self.command)} is not available. "
                f"Install it with: pip install {ENGINE_PACKAGE}"
            )

        self.install()
        if not self.is_installed():
            raise ToolUnavailableError(
                f"{ENGINE_PACKAGE} was installed but `{' '.join(self.command)}` still does not run"
            )

    # ------------------------------------------------------------------
    # Rewrite
    # ------------------------------------------------------------------

    def build_command(self, rules_file: Path) -> list:
        cmd = [*self.command, "--replace-text", str(rules_file), "--force"]
        if self.refs:
            cmd += ["--refs", *self.refs]
        return cmd

    def rewrite(self, rules_file: Path) -> None:
        rules_file = Path(rules_file)
        if not rules_file.is_file():
            raise ToolUnavailableError(f"Replacement rules file not found: {rules_file}")

        result = subprocess.run(
            self.build_command(rules_file.resolve()),
            cwd=self.root,
            capture_output=True,
            text=True,
            check=False,
        )
        if result.returncode != 0:
            raise RewriteEngineError(
                result.stderr.strip() or result.stdout.strip()
                or f"{' '.join(self.command)} exited with status {result.returncode}"
            )
