"""
Preflight checks run before anything touches the repository.

Order matters:
1. repository root (cheapest, most fundamental)
2. operator confirmation (no backup is created without consent)
3. clean working tree (uncommitted work would be lost by the rewrite)
"""

from __future__ import annotations

from typing import Callable

from .config import CONFIRMATION_TOKEN
from .errors import PreconditionError
from .git import GitRepository

PROMPT = (
    "This will rewrite the history of '{branch}' and force-push it to '{remote}'.\n"
    "Type '{token}' to continue: "
)


class PreflightValidator:
    def __init__(
        self,
        repo: GitRepository,
        confirm: Callable[[str], str],
        token: str = CONFIRMATION_TOKEN,
    ):
        self.repo = repo
        self.confirm = confirm
        self.token = token

    def check_repository_root(self) -> None:
        if not self.repo.is_repository_root():
            raise PreconditionError(
                f"{self.repo.root} is not the root of a git repository"
            )

    def check_confirmation(self, branch: str, remote: str) -> None:
        try:
            answer = self.confirm(
                PROMPT.format(branch=branch, remote=remote, token=self.token)
            )
        except EOFError:
            answer = ""

        if answer != self.token:
            raise PreconditionError(
                f"Operation not confirmed (expected exactly '{self.token}')"
            )

    def check_clean_tree(self) -> None:
        if self.repo.has_uncommitted_changes():
            raise PreconditionError(
                "Working tree has uncommitted changes; commit or stash them first"
            )

    def validate(self, branch: str, remote: str) -> None:
        self.check_repository_root()
        self.check_confirmation(branch, remote)
        self.check_clean_tree()
