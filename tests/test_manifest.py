import textwrap

import pytest

from histscrub.config import DEFAULT_BACKUP_PREFIX, DEFAULT_RULES_FILE, resolve_config_path
from histscrub.manifest import Manifest


def write(tmp_path, body):
    path = tmp_path / "scrub.yml"
    path.write_text(textwrap.dedent(body).strip() + "\n", encoding="utf-8")
    return path


def test_missing_optional_manifest_gives_defaults(tmp_path):
    manifest = Manifest.load(tmp_path / "scrub.yml")

    assert manifest.rules_file == DEFAULT_RULES_FILE
    assert manifest.remote == "origin"
    assert manifest.branch == "main"
    assert manifest.backup_prefix == DEFAULT_BACKUP_PREFIX
    assert manifest.secret_patterns == []


def test_missing_required_manifest_fails(tmp_path):
    with pytest.raises(RuntimeError, match="not found"):
        Manifest.load(tmp_path / "scrub.yml", required=True)


def test_valid_manifest(tmp_path):
    path = write(
        tmp_path,
        """
        version: 1
        rules_file: secrets/replace.txt
        remote: upstream
        branch: trunk
        backup_prefix: before-scrub
        secret_patterns:
          - corp_token_
        """,
    )

    manifest = Manifest.load(path)

    assert manifest.rules_file == "secrets/replace.txt"
    assert manifest.remote == "upstream"
    assert manifest.branch == "trunk"
    assert manifest.backup_prefix == "before-scrub"
    assert manifest.secret_patterns == ["corp_token_"]


def test_unsupported_version(tmp_path):
    path = write(tmp_path, "version: 2\n")
    with pytest.raises(RuntimeError, match="Unsupported manifest version"):
        Manifest.load(path)


def test_invalid_yaml(tmp_path):
    path = write(tmp_path, "version: [1\n")
    with pytest.raises(RuntimeError, match="Invalid manifest"):
        Manifest.load(path)


@pytest.mark.parametrize(
    "body",
    [
        "version: 1\nsecret_patterns: sk_live_\n",
        "version: 1\nsecret_patterns: ['']\n",
        "version: 1\nbranch: ''\n",
        "version: 1\nremote: 3\n",
    ],
)
def test_bad_values_are_rejected(tmp_path, body):
    path = tmp_path / "scrub.yml"
    path.write_text(body, encoding="utf-8")
    with pytest.raises(RuntimeError):
        Manifest.load(path)


def test_override_prefers_cli_values():
    manifest = Manifest(branch="trunk", secret_patterns=["x_"])

    merged = manifest.override(rules_file="r.txt", branch=None, remote="mirror")

    assert merged.rules_file == "r.txt"
    assert merged.branch == "trunk"
    assert merged.remote == "mirror"
    assert merged.secret_patterns == ["x_"]
    assert merged.secret_patterns is not manifest.secret_patterns


def test_config_path_resolution(monkeypatch):
    monkeypatch.delenv("HISTSCRUB_CONFIG", raising=False)
    assert str(resolve_config_path()) == "scrub.yml"

    monkeypatch.setenv("HISTSCRUB_CONFIG", "/etc/scrub.yml")
    assert str(resolve_config_path()) == "/etc/scrub.yml"
    assert str(resolve_config_path("local.yml")) == "local.yml"
