"""
Global configuration and environment handling.

This module is responsible for:
- Defining global constants and defaults
- Defining the process exit codes automation relies on
- Reading the few environment variables the tool honours

Nothing in this file should depend on:
- the repository on disk
- the manifest structure
- CLI arguments

If something here changes, the *entire tool* behavior changes.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Final, Optional, Tuple

# ---------------------------------------------------------------------------
# Tool / format versioning
# ---------------------------------------------------------------------------

SUPPORTED_MANIFEST_VERSION: Final[int] = 1
TOOL_VERSION: Final[str] = "0.1.0"

# ---------------------------------------------------------------------------
# Default behavior
# ---------------------------------------------------------------------------

DEFAULT_CONFIG_FILE: Final[str] = "scrub.yml"
DEFAULT_RULES_FILE: Final[str] = "replacements.txt"
DEFAULT_REMOTE: Final[str] = "origin"
DEFAULT_BRANCH: Final[str] = "main"
DEFAULT_BACKUP_PREFIX: Final[str] = "pre-scrub-backup"

# Date and time parts are joined with "-", e.g. pre-scrub-backup-20240131-235959
BACKUP_TIMESTAMP_FORMAT: Final[str] = "%Y%m%d-%H%M%S"

CONFIRMATION_TOKEN: Final[str] = "yes"

# Literal prefixes of well-known provider credentials
DEFAULT_SECRET_PATTERNS: Final[Tuple[str, ...]] = (
    "sk_live_",
    "rk_live_",
    "sk-proj-",
    "sk-ant-",
    "ghp_",
    "gho_",
    "github_pat_",
    "xoxb-",
    "xoxp-",
    "AKIA",
    "AIza",
)

# External rewrite engine
ENGINE_COMMAND: Final[Tuple[str, ...]] = ("git", "filter-repo")
ENGINE_PACKAGE: Final[str] = "git-filter-repo"

# Revisions handed to a single `git grep` invocation
HISTORY_SEARCH_BATCH: Final[int] = 64

# ---------------------------------------------------------------------------
# Exit codes
# ---------------------------------------------------------------------------

EXIT_SUCCESS: Final[int] = 0
EXIT_PRECONDITION: Final[int] = 1
EXIT_VERIFICATION_FAILED: Final[int] = 2
EXIT_PUBLISH_FAILED: Final[int] = 3
EXIT_INTERRUPTED: Final[int] = 130

# ---------------------------------------------------------------------------
# Environment variable names
# ---------------------------------------------------------------------------

ENV_CONFIG_PATH: Final[str] = "HISTSCRUB_CONFIG"
ENV_MODE: Final[str] = "HISTSCRUB_MODE"  # e.g. dev / prod

# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def resolve_config_path(explicit: Optional[str] = None) -> Path:
    """
    Return the manifest path to use.

    An explicit CLI value wins over the environment, which wins over
    the default file name in the current directory.
    """

    if explicit:
        return Path(explicit)
    return Path(os.getenv(ENV_CONFIG_PATH) or DEFAULT_CONFIG_FILE)


def get_execution_mode() -> str:
    """
    Return the current execution mode.

    This can be used to slightly alter behavior between environments
    (e.g. dev vs CI), but should never bypass security controls silently.

    Returns:
        str: execution mode name
    """

    return os.getenv(ENV_MODE, "prod")
