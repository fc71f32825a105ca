"""
Backup reference creation.

Before the rewrite runs, the current tip of the branch is pinned by a
new branch named `<prefix>-<date>-<time>`. The reference is the
operator's rollback path and is never removed by this tool.
"""

from __future__ import annotations

from datetime import datetime
from typing import Callable, List, Tuple

from .config import DEFAULT_BACKUP_PREFIX, BACKUP_TIMESTAMP_FORMAT
from .errors import BackupCreationError, GitCommandError
from .git import GitRepository
from .utils import timestamped_name


class BackupManager:
    def __init__(
        self,
        repo: GitRepository,
        prefix: str = DEFAULT_BACKUP_PREFIX,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.repo = repo
        self.prefix = prefix
        self.clock = clock

    def next_name(self) -> str:
        return timestamped_name(self.prefix, self.clock(), BACKUP_TIMESTAMP_FORMAT)

    def create(self, branch: str) -> str:
        """
        Pin the tip of `branch` under a fresh backup name.

        Raises:
            BackupCreationError: if the tip cannot be resolved, the name is
                taken, or the new reference does not point at the tip

        Returns:
            str: the backup reference name
        """

        tip = self.repo.resolve(branch)
        if tip is None:
            raise BackupCreationError(f"Branch '{branch}' does not exist")

        name = self.next_name()
        if self.repo.resolve(name) is not None:
            raise BackupCreationError(f"Backup reference '{name}' already exists")

        try:
            self.repo.create_branch(name, tip)
        except GitCommandError as e:
            raise BackupCreationError(f"Failed to create backup '{name}': {e}")

        if self.repo.resolve(name) != tip:
            raise BackupCreationError(f"Backup '{name}' does not point at {tip}")

        return name

    def existing(self) -> List[Tuple[str, str]]:
        return self.repo.list_branches(f"{self.prefix}-")
