import shutil
import subprocess
from datetime import datetime
from pathlib import Path

import pytest

from histscrub.console import Console
from histscrub.errors import GitCommandError, RewriteEngineError, ToolUnavailableError

requires_git = pytest.mark.skipif(shutil.which("git") is None, reason="git not installed")
requires_filter_repo = pytest.mark.skipif(
    shutil.which("git-filter-repo") is None, reason="git-filter-repo not installed"
)

FIXED_NOW = datetime(2024, 3, 5, 14, 7, 9)
FIXED_BACKUP = "pre-scrub-backup-20240305-140709"


def fixed_clock():
    return FIXED_NOW


# ---------------------------------------------------------------------------
# In-memory collaborators
# ---------------------------------------------------------------------------


class FakeRepository:
    def __init__(
        self,
        root,
        events,
        is_root=True,
        dirty=False,
        tip="a" * 40,
        matches=None,
        remote_url="git@example.com:org/repo.git",
    ):
        self.root = Path(root)
        self.events = events
        self.is_root = is_root
        self.dirty = dirty
        self.refs = {"main": tip}
        self.matches = dict(matches or {})
        self.remotes = {"origin": remote_url} if remote_url else {}
        self.branch_error = None
        self.push_error = None
        self.pushes = []

    def is_repository_root(self):
        self.events.append("is_root")
        return self.is_root

    def has_uncommitted_changes(self):
        self.events.append("status")
        return self.dirty

    def resolve(self, rev):
        return self.refs.get(rev)

    def create_branch(self, name, start_point):
        self.events.append(("branch", name))
        if self.branch_error:
            raise self.branch_error
        self.refs[name] = start_point

    def list_branches(self, prefix):
        names = sorted((n for n in self.refs if n.startswith(prefix)), reverse=True)
        return [(n, self.refs[n]) for n in names]

    def search_history(self, literal, rev):
        self.events.append(("grep", literal))
        return list(self.matches.get(literal, []))

    def remote_url(self, name):
        return self.remotes.get(name)

    def add_remote(self, name, url):
        self.events.append(("add_remote", name))
        self.remotes[name] = url

    def push(self, remote, branch, force=False):
        self.events.append(("push", remote, branch, force))
        if self.push_error:
            raise self.push_error
        self.pushes.append((remote, branch, self.refs[branch]))

    def backups(self):
        return [n for n in self.refs if n.startswith("pre-scrub-backup-")]


class FakeEngine:
    def __init__(self, events, available=True, error=None, on_rewrite=None):
        self.events = events
        self.available = available
        self.error = error
        self.on_rewrite = on_rewrite
        self.calls = []

    def is_installed(self):
        return self.available

    def ensure_available(self):
        self.events.append("engine_check")
        if not self.available:
            raise ToolUnavailableError("git filter-repo is not available")

    def rewrite(self, rules_file):
        self.events.append(("rewrite", Path(rules_file).name))
        self.calls.append(Path(rules_file))
        if self.error:
            raise RewriteEngineError(self.error)
        if self.on_rewrite:
            self.on_rewrite()


class SilentConsole(Console):
    """Records messages instead of printing them."""

    def __init__(self):
        super().__init__(verbose=True, quiet=False)
        self.messages = []

    def log(self, msg):
        self.messages.append(msg)

    log_verbose = step = info = success = warning = error = log


def push_rejected():
    return GitCommandError(
        ["git", "push", "--force", "origin", "refs/heads/main:refs/heads/main"],
        1,
        "remote: error: GH013: Repository rule violations found\n",
    )


@pytest.fixture
def events():
    return []


@pytest.fixture
def rules_file(tmp_path):
    path = tmp_path / "replacements.txt"
    path.write_text("sk_live_abc123==>REDACTED\n", encoding="utf-8")
    return path


# ---------------------------------------------------------------------------
# Real git repositories
# ---------------------------------------------------------------------------


def git(cwd, *args):
    result = subprocess.run(
        ["git", *args],
        cwd=cwd,
        capture_output=True,
        text=True,
        check=True,
    )
    return result.stdout.strip()


def commit_file(repo, name, content, message):
    path = Path(repo) / name
    path.parent.mkdir(parents=True, exist_ok=True)
    if isinstance(content, bytes):
        path.write_bytes(content)
    else:
        path.write_text(content, encoding="utf-8")
    git(repo, "add", name)
    git(repo, "commit", "-q", "-m", message)
    return git(repo, "rev-parse", "HEAD")


@pytest.fixture
def git_env(tmp_path, monkeypatch):
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    monkeypatch.setenv("GIT_AUTHOR_NAME", "Test Author")
    monkeypatch.setenv("GIT_AUTHOR_EMAIL", "author@example.com")
    monkeypatch.setenv("GIT_COMMITTER_NAME", "Test Author")
    monkeypatch.setenv("GIT_COMMITTER_EMAIL", "author@example.com")


@pytest.fixture
def remote_repo(tmp_path, git_env):
    bare = tmp_path / "remote.git"
    git(tmp_path, "init", "-q", "--bare", str(bare))
    return bare


@pytest.fixture
def work_repo(tmp_path, remote_repo):
    """A clone-like work tree on `main` with one pushed commit."""
    work = tmp_path / "work"
    work.mkdir()
    git(work, "init", "-q")
    git(work, "symbolic-ref", "HEAD", "refs/heads/main")
    commit_file(work, "README.md", "# demo\n", "initial commit")
    git(work, "remote", "add", "origin", str(remote_repo))
    git(work, "push", "-q", "origin", "main")
    return work


def remote_tip(remote_repo):
    return git(remote_repo, "rev-parse", "refs/heads/main")


def reject_pushes(remote_repo):
    hook = Path(remote_repo) / "hooks" / "pre-receive"
    hook.write_text(
        "#!/bin/sh\necho 'push declined: secret scanning' >&2\nexit 1\n",
        encoding="utf-8",
    )
    hook.chmod(0o755)
