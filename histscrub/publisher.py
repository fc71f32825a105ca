"""
Publishing the rewritten branch.

Only reached once verification passed. A rejected push is reported as
a PublishError, which is deliberately distinct from a verification
failure: the fix is on the remote side (push-protection override or
unblock), not in the local content.
"""

from __future__ import annotations

from typing import Optional

from .errors import GitCommandError, PublishError
from .git import GitRepository


class Publisher:
    def __init__(self, repo: GitRepository, remote: str, branch: str):
        self.repo = repo
        self.remote = remote
        self.branch = branch

    def restore_remote(self, url: Optional[str]) -> bool:
        """
        Re-add the remote if the rewrite engine dropped it.

        Returns True when the remote had to be restored.
        """

        if url is None or self.repo.remote_url(self.remote) is not None:
            return False
        try:
            self.repo.add_remote(self.remote, url)
        except GitCommandError as e:
            raise PublishError(f"Could not restore remote '{self.remote}': {e}")
        return True

    def publish(self) -> str:
        """
        Force-update the remote branch to the local tip.

        Returns:
            str: the published commit id
        """

        tip = self.repo.resolve(self.branch)
        if tip is None:
            raise PublishError(f"Local branch '{self.branch}' does not exist")

        if self.repo.remote_url(self.remote) is None:
            raise PublishError(f"Remote '{self.remote}' is not configured")

        try:
            self.repo.push(self.remote, self.branch, force=True)
        except GitCommandError as e:
            raise PublishError(
                f"Remote '{self.remote}' rejected the push of '{self.branch}': "
                f"{e.stderr.strip() or e}"
            )
        return tip
