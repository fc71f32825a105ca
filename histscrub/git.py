"""
Thin wrapper around the git command line.

This module exposes exactly the repository operations the scrub
pipeline consumes:
- query working-tree status
- create and list named references
- search history content for a literal string
- inspect and restore remotes
- update a remote branch (optionally forced)

It does NOT decide anything. Policy lives in the pipeline stages.
"""

from __future__ import annotations

import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple

from .config import HISTORY_SEARCH_BATCH
from .errors import GitCommandError
from .utils import batched


@dataclass(frozen=True)
class HistoryMatch:
    commit: str
    path: str
    line_number: int
    line: str

    @property
    def location(self) -> str:
        return f"{self.commit[:10]}:{self.path}:{self.line_number}"


class GitRepository:
    def __init__(self, root: str | Path):
        self.root = Path(root)

    # ------------------------------------------------------------------
    # Low-level
    # ------------------------------------------------------------------

    def _run(self, *args: str, check: bool = True) -> subprocess.CompletedProcess:
        cmd = ["git", *args]
        try:
            result = subprocess.run(
                cmd,
                cwd=self.root,
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
                check=False,
            )
        except FileNotFoundError:
            raise GitCommandError(cmd, 127, "git executable not found")

        if check and result.returncode != 0:
            raise GitCommandError(cmd, result.returncode, result.stderr)
        return result

    # ------------------------------------------------------------------
    # Working tree
    # ------------------------------------------------------------------

    def is_repository_root(self) -> bool:
        """True if `root` is the top level of a work tree."""
        try:
            result = self._run("rev-parse", "--show-toplevel", check=False)
        except GitCommandError:
            return False
        if result.returncode != 0:
            return False
        return Path(result.stdout.strip()).resolve() == self.root.resolve()

    def has_uncommitted_changes(self) -> bool:
        # Untracked files survive a history rewrite, so only tracked
        # modifications (staged or not) count.
        result = self._run("status", "--porcelain", "--untracked-files=no")
        return bool(result.stdout.strip())

    # ------------------------------------------------------------------
    # References
    # ------------------------------------------------------------------

    def resolve(self, rev: str) -> Optional[str]:
        """Return the commit id `rev` points at, or None."""
        result = self._run(
            "rev-parse", "--verify", "--quiet", f"{rev}^{{commit}}", check=False
        )
        if result.returncode != 0:
            return None
        return result.stdout.strip()

    def create_branch(self, name: str, start_point: str) -> None:
        self._run("branch", "--no-track", name, start_point)

    def list_branches(self, prefix: str) -> List[Tuple[str, str]]:
        """Return (name, commit) pairs for local branches starting with `prefix`, newest name first."""
        result = self._run(
            "for-each-ref",
            "--sort=-refname",
            "--format=%(refname:short) %(objectname)",
            f"refs/heads/{prefix}*",
        )
        branches = []
        for line in result.stdout.splitlines():
            if not line.strip():
                continue
            name, _, commit = line.rpartition(" ")
            branches.append((name, commit))
        return branches

    def rev_list(self, rev: str) -> List[str]:
        result = self._run("rev-list", rev, "--")
        return [line for line in result.stdout.splitlines() if line]

    # ------------------------------------------------------------------
    # History search
    # ------------------------------------------------------------------

    def search_history(self, literal: str, rev: str) -> List[HistoryMatch]:
        """
        Find every line containing `literal` in any commit reachable from `rev`.
        Binary blobs are searched as text.

        Matches are returned in rev-list order (newest commit first), then
        in the order git reports them within a commit.
        """

        matches: List[HistoryMatch] = []
        for revs in batched(self.rev_list(rev), HISTORY_SEARCH_BATCH):
            result = self._run(
                "grep", "-F", "-a", "-n", "-z", "-e", literal, *revs, "--",
                check=False,
            )
            # 1 means "nothing found"; anything above is a real error
            if result.returncode == 1:
                continue
            if result.returncode != 0:
                raise GitCommandError(["git", "grep", literal], result.returncode, result.stderr)
            matches.extend(_parse_grep_output(result.stdout))
        return matches

    # ------------------------------------------------------------------
    # Remotes
    # ------------------------------------------------------------------

    def remote_url(self, name: str) -> Optional[str]:
        result = self._run("remote", "get-url", name, check=False)
        if result.returncode != 0:
            return None
        return result.stdout.strip()

    def add_remote(self, name: str, url: str) -> None:
        self._run("remote", "add", name, url)

    def push(self, remote: str, branch: str, force: bool = False) -> None:
        args = ["push"]
        if force:
            args.append("--force")
        args += [remote, f"refs/heads/{branch}:refs/heads/{branch}"]
        self._run(*args)


def _parse_grep_output(output: str) -> List[HistoryMatch]:
    """Parse `git grep -n -z` output for tree searches: `rev:path\\0line\\0text`."""

    matches = []
    for record in output.split("\n"):
        parts = record.split("\0", 2)
        if len(parts) != 3:
            continue
        name, line_number, text = parts
        commit, _, path = name.partition(":")
        matches.append(
            HistoryMatch(
                commit=commit,
                path=path,
                line_number=int(line_number),
                line=text,
            )
        )
    return matches
