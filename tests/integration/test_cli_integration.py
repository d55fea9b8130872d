import json
import shutil
import subprocess
from pathlib import Path

import pytest

from repopack import cli
from repopack.git_info import get_git_info

pytestmark = pytest.mark.skipif(shutil.which("git") is None, reason="git executable not available")


def _git(repo: Path, *args: str) -> None:
    subprocess.run(
        ["git", "-c", "user.name=Jane Doe", "-c", "user.email=jane@example.com", *args],  # noqa: S607
        cwd=repo,
        check=True,
        capture_output=True,
    )


@pytest.fixture
def git_repo(tmp_path: Path) -> Path:
    repo = tmp_path / "repo"
    repo.mkdir()
    (repo / "main.go").write_text("package main\n", encoding="utf-8")
    _git(repo, "init", "-q")
    _git(repo, "symbolic-ref", "HEAD", "refs/heads/trunk")
    _git(repo, "add", "main.go")
    _git(repo, "commit", "-q", "-m", "initial")
    return repo


@pytest.mark.integration
def test_get_git_info_reads_head_metadata(git_repo: Path) -> None:
    info = get_git_info(git_repo)

    assert info is not None
    assert len(info.commit) >= 40  # noqa: PLR2004
    assert info.branch == "trunk"
    assert info.author == "Jane Doe <jane@example.com>"
    assert info.date


@pytest.mark.integration
def test_get_git_info_outside_a_repository(tmp_path: Path) -> None:
    plain = tmp_path / "plain"
    plain.mkdir()

    assert get_git_info(plain) is None


@pytest.mark.integration
def test_main_embeds_git_metadata(git_repo: Path, tmp_path: Path) -> None:
    output = tmp_path / "context.json"

    exit_code = cli.main([str(git_repo), "--format", "json", "-o", str(output), "--exclude", ".git"])

    assert exit_code == 0
    data = json.loads(output.read_text(encoding="utf-8"))
    assert data["git"]["branch"] == "trunk"
    assert [f["path"] for f in data["files"]] == ["main.go"]
