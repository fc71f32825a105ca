import json

from histscrub.cli import build_parser, main, make_confirm
from histscrub.config import EXIT_PRECONDITION, EXIT_SUCCESS, EXIT_VERIFICATION_FAILED
from histscrub.git import GitRepository

from conftest import commit_file, requires_git


def test_help(capsys):
    assert main(["help"]) == EXIT_SUCCESS
    out = capsys.readouterr().out
    assert "EXIT CODES" in out
    assert "already rewritten" in out


def test_no_command_shows_help(capsys):
    assert main([]) == EXIT_SUCCESS
    assert "COMMANDS" in capsys.readouterr().out


def test_run_options_parse():
    args = build_parser().parse_args(
        ["-v", "run", "--confirm", "yes", "--branch", "trunk", "--dry-run"]
    )
    assert args.command == "run"
    assert args.confirm == "yes"
    assert args.branch == "trunk"
    assert args.dry_run
    assert args.verbose


def test_make_confirm_with_token():
    assert make_confirm("yes")("ignored prompt") == "yes"


def test_patterns_include_manifest_extras(tmp_path, monkeypatch, capsys):
    (tmp_path / "scrub.yml").write_text(
        "version: 1\nsecret_patterns: [corp_token_]\n", encoding="utf-8"
    )
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("HISTSCRUB_CONFIG", raising=False)

    assert main(["patterns"]) == EXIT_SUCCESS
    out = capsys.readouterr().out
    assert "sk_live_" in out
    assert "corp_token_" in out


def test_explicit_missing_config_fails(tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    assert main(["-c", "absent.yml", "patterns"]) == EXIT_PRECONDITION
    assert "not found" in capsys.readouterr().err


def test_rules_listing(tmp_path, monkeypatch, capsys):
    (tmp_path / "replacements.txt").write_text("hunter2==>***\n", encoding="utf-8")
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("HISTSCRUB_CONFIG", raising=False)

    assert main(["rules"]) == EXIT_SUCCESS
    assert "hunter2" in capsys.readouterr().out


@requires_git
def test_verify_reports_history_matches(work_repo, monkeypatch, capsys):
    commit_file(work_repo, "app.py", "TOKEN = 'ghp_abcdef'\n", "oops")
    commit_file(work_repo, "app.py", "TOKEN = None\n", "remove token")
    monkeypatch.chdir(work_repo)
    monkeypatch.delenv("HISTSCRUB_CONFIG", raising=False)

    assert main(["verify", "--json"]) == EXIT_VERIFICATION_FAILED
    payload = json.loads(capsys.readouterr().out)
    assert payload["passed"] is False
    assert payload["matches"]["ghp_"][0]["path"] == "app.py"


@requires_git
def test_verify_clean_history(work_repo, monkeypatch):
    monkeypatch.chdir(work_repo)
    monkeypatch.delenv("HISTSCRUB_CONFIG", raising=False)
    assert main(["-q", "verify"]) == EXIT_SUCCESS


@requires_git
def test_run_on_dirty_tree_creates_no_backup(work_repo, monkeypatch, capsys):
    (work_repo / "replacements.txt").write_text("x==>y\n", encoding="utf-8")
    (work_repo / "README.md").write_text("dirty\n", encoding="utf-8")
    monkeypatch.chdir(work_repo)
    monkeypatch.delenv("HISTSCRUB_CONFIG", raising=False)

    assert main(["run", "--confirm", "yes"]) == EXIT_PRECONDITION
    assert "uncommitted" in capsys.readouterr().err
    assert GitRepository(work_repo).list_branches("pre-scrub-backup-") == []


@requires_git
def test_run_without_confirmation_creates_no_backup(work_repo, monkeypatch, capsys):
    (work_repo / "replacements.txt").write_text("x==>y\n", encoding="utf-8")
    monkeypatch.chdir(work_repo)
    monkeypatch.delenv("HISTSCRUB_CONFIG", raising=False)

    assert main(["run", "--confirm", "no"]) == EXIT_PRECONDITION
    assert "not confirmed" in capsys.readouterr().err
    assert GitRepository(work_repo).list_branches("pre-scrub-backup-") == []


@requires_git
def test_backups_listing(work_repo, monkeypatch, capsys):
    repo = GitRepository(work_repo)
    repo.create_branch("pre-scrub-backup-20240101-000000", repo.resolve("main"))
    monkeypatch.chdir(work_repo)
    monkeypatch.delenv("HISTSCRUB_CONFIG", raising=False)

    assert main(["backups"]) == EXIT_SUCCESS
    assert "pre-scrub-backup-20240101-000000" in capsys.readouterr().out


def test_rules_missing_file_uses_precondition_exit(tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("HISTSCRUB_CONFIG", raising=False)

    assert main(["rules"]) == EXIT_PRECONDITION
    assert "not found" in capsys.readouterr().err
