from __future__ import annotations

import io
import zipfile
from pathlib import Path

import pytest
from conftest import refuse_connection
from typer.testing import CliRunner

from repo_to_text import __version__, cli
from repo_to_text.config import TEXT_OUTPUT_NAME
from repo_to_text.export import parse_text_bundle
from repo_to_text.session import Session, TokenStore

runner = CliRunner()

REPO = "GET api.github.com/repos/o/r"


@pytest.fixture(autouse=True)
def isolated(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Run every command in an empty directory with a private token store."""
    monkeypatch.chdir(tmp_path)
    for var in ("PORT", "FRONTEND_URL", "REPO_TO_TEXT_API_BASE", "REPO_TO_TEXT_WIKI_URL"):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setattr(cli, "TokenStore", lambda: TokenStore(tmp_path / "app"))
    return tmp_path


@pytest.fixture
def fake_repo(server, make_github, make_wiki, monkeypatch: pytest.MonkeyPatch):
    """Serve a two-file repository and route the CLI's session through it."""
    server.add(f"{REPO}/contents/", {"sha": "root1"})
    server.add(f"{REPO}/git/trees/root1", {
        "tree": [
            {"path": "a.py", "type": "blob", "url": "https://api.github.com/blobs/a"},
            {"path": "b.md", "type": "blob", "url": "https://api.github.com/blobs/b"},
        ],
    })
    server.add("GET api.github.com/blobs/a", "print('a')\n")
    server.add("GET api.github.com/blobs/b", "# B\n")
    monkeypatch.setattr(
        cli,
        "Session",
        lambda settings, store: Session(
            settings, store, github=make_github(), wiki=make_wiki()
        ),
    )
    return server


def test_version() -> None:
    result = runner.invoke(cli.app, ["--version"])

    assert result.exit_code == 0
    assert __version__ in result.output


def test_token_save_show_clear(isolated: Path) -> None:
    result = runner.invoke(cli.app, ["token", "ghp_secret"])
    assert result.exit_code == 0
    assert (isolated / "app" / "githubAccessToken").read_text() == "ghp_secret"

    result = runner.invoke(cli.app, ["token"])
    assert "ghp_" in result.output
    assert "secret" not in result.output

    result = runner.invoke(cli.app, ["token", "--clear"])
    assert result.exit_code == 0
    assert not (isolated / "app" / "githubAccessToken").exists()


def test_invalid_url_prints_checklist() -> None:
    result = runner.invoke(cli.app, ["export", "https://example.com/o/r"])

    assert result.exit_code == 1
    assert "Error fetching repository contents" in result.output
    assert "Please ensure:" in result.output


def test_tree_lists_files(fake_repo) -> None:
    result = runner.invoke(cli.app, ["tree", "https://github.com/o/r", "--hide", "md"])

    assert result.exit_code == 0
    assert "a.py" in result.output
    assert "1 of 2 files visible" in result.output


def test_export_text_to_stdout(fake_repo) -> None:
    result = runner.invoke(
        cli.app, ["export", "https://github.com/o/r", "--ext", "py", "--no-tree", "-o", "-"]
    )

    assert result.exit_code == 0
    assert parse_text_bundle(result.stdout) == [("a.py", "print('a')\n")]


def test_export_text_default_file(fake_repo, isolated: Path) -> None:
    result = runner.invoke(cli.app, ["export", "https://github.com/o/r"])

    assert result.exit_code == 0
    bundle = (isolated / TEXT_OUTPUT_NAME).read_text(encoding="utf-8")
    assert [path for path, _ in parse_text_bundle(bundle)] == ["a.py", "b.md"]


def test_export_zip(fake_repo, isolated: Path) -> None:
    target = isolated / "out.zip"

    result = runner.invoke(
        cli.app, ["export", "https://github.com/o/r", "--format", "zip", "-o", str(target)]
    )

    assert result.exit_code == 0
    with zipfile.ZipFile(io.BytesIO(target.read_bytes())) as zf:
        assert zf.namelist() == ["a.py", "b.md"]


def test_export_nothing_selected(fake_repo) -> None:
    result = runner.invoke(cli.app, ["export", "https://github.com/o/r", "--ext", "rs"])

    assert result.exit_code == 1
    assert "No files selected" in result.output


def test_unreachable_wiki_service_prints_checklist(fake_repo) -> None:
    fake_repo.add("POST wiki.test/clone-wiki", refuse_connection)

    result = runner.invoke(cli.app, ["tree", "https://github.com/o/r.wiki"])

    assert result.exit_code == 1
    assert result.exception is None or isinstance(result.exception, SystemExit)
    assert "Error fetching repository contents" in result.output
    assert "Please ensure:" in result.output


def test_unreachable_api_on_export_prints_checklist(fake_repo) -> None:
    fake_repo.add("GET api.github.com/blobs/a", refuse_connection)

    result = runner.invoke(cli.app, ["export", "https://github.com/o/r"])

    assert result.exit_code == 1
    assert "Error generating text file" in result.output
    assert "Please ensure:" in result.output


def test_hide_flag_overrides_config(fake_repo, isolated: Path) -> None:
    (isolated / "r2t.toml").write_text('hidden-extensions = "md"\n', encoding="utf-8")

    result = runner.invoke(cli.app, ["tree", "https://github.com/o/r"])
    assert "1 of 2 files visible" in result.output

    result = runner.invoke(cli.app, ["tree", "https://github.com/o/r", "--hide", ""])
    assert result.exit_code == 0
    assert "2 of 2 files visible" in result.output
