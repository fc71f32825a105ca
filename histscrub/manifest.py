"""
Manifest loading, validation, and normalization.

This module answers one question:
    "Where should the scrub read its rules and publish its result?"

Responsibilities:
- Load the optional scrub.yml file
- Validate structure and version
- Normalize defaults
- Expose a clean Python representation

This module does NOT:
- Touch the repository
- Run the rewrite engine
- Prompt the operator
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from .config import (
    SUPPORTED_MANIFEST_VERSION,
    DEFAULT_RULES_FILE,
    DEFAULT_REMOTE,
    DEFAULT_BRANCH,
    DEFAULT_BACKUP_PREFIX,
)


# ---------------------------------------------------------------------------
# Data models
# ---------------------------------------------------------------------------


@dataclass
class Manifest:
    version: int = SUPPORTED_MANIFEST_VERSION
    rules_file: str = DEFAULT_RULES_FILE
    remote: str = DEFAULT_REMOTE
    branch: str = DEFAULT_BRANCH
    backup_prefix: str = DEFAULT_BACKUP_PREFIX
    secret_patterns: List[str] = field(default_factory=list)

    # ------------------------------------------------------------------
    # Loading API
    # ------------------------------------------------------------------

    @classmethod
    def load(cls, path: str | Path, required: bool = False) -> "Manifest":
        """
        Load and validate a manifest file.

        A missing file yields built-in defaults unless `required` is set
        (the operator pointed at it explicitly).

        Raises:
            RuntimeError: if the manifest is invalid or a required file is missing

        Returns:
            Manifest
        """

        path = Path(path)
        if not path.exists():
            if required:
                raise RuntimeError(f"Manifest file not found: {path}")
            return cls()

        with path.open("r", encoding="utf-8") as fh:
            try:
                raw = yaml.safe_load(fh) or {}
            except yaml.YAMLError as e:
                raise RuntimeError(f"Invalid manifest {path}: {e}")

        if not isinstance(raw, dict):
            raise RuntimeError(f"Manifest {path} must be a mapping")

        return cls._from_dict(raw)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @classmethod
    def _from_dict(cls, data: Dict[str, Any]) -> "Manifest":
        version = data.get("version")
        if version != SUPPORTED_MANIFEST_VERSION:
            raise RuntimeError(
                f"Unsupported manifest version: {version}"
            )

        return cls(
            version=version,
            rules_file=cls._parse_str(data, "rules_file", DEFAULT_RULES_FILE),
            remote=cls._parse_str(data, "remote", DEFAULT_REMOTE),
            branch=cls._parse_str(data, "branch", DEFAULT_BRANCH),
            backup_prefix=cls._parse_str(data, "backup_prefix", DEFAULT_BACKUP_PREFIX),
            secret_patterns=cls._parse_patterns(data.get("secret_patterns", [])),
        )

    @staticmethod
    def _parse_str(data: Dict[str, Any], key: str, default: str) -> str:
        value = data.get(key, default)
        if not isinstance(value, str) or not value.strip():
            raise RuntimeError(f"Manifest key '{key}' must be a non-empty string")
        return value.strip()

    @staticmethod
    def _parse_patterns(data: Any) -> List[str]:
        if not isinstance(data, list):
            raise RuntimeError("Manifest key 'secret_patterns' must be a list")

        patterns: List[str] = []
        for item in data:
            if not isinstance(item, str) or not item:
                raise RuntimeError(
                    f"Secret pattern must be a non-empty string, got: {item!r}"
                )
            patterns.append(item)
        return patterns

    # ------------------------------------------------------------------
    # Public helpers
    # ------------------------------------------------------------------

    def override(
        self,
        rules_file: Optional[str] = None,
        remote: Optional[str] = None,
        branch: Optional[str] = None,
    ) -> "Manifest":
        """
        Return a copy with CLI-provided values taking precedence.
        """

        return Manifest(
            version=self.version,
            rules_file=rules_file or self.rules_file,
            remote=remote or self.remote,
            branch=branch or self.branch,
            backup_prefix=self.backup_prefix,
            secret_patterns=list(self.secret_patterns),
        )
