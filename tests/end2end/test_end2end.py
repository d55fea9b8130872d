import json
from pathlib import Path

import pytest

from repopack import cli


def _no_git(_root: Path) -> None:
    return None


@pytest.fixture
def sample_repo(tmp_path: Path) -> Path:
    repo = tmp_path / "repo"
    (repo / "cmd" / "app").mkdir(parents=True)
    (repo / "vendor" / "dep").mkdir(parents=True)
    (repo / "a.go").write_text("package main\n", encoding="utf-8")
    (repo / "b.bin").write_bytes(b"\x00\x01\x02")
    (repo / "cmd" / "app" / "main.go").write_text("package app\n\nfunc main() {}\n", encoding="utf-8")
    (repo / "cmd" / "app" / "main_test.go").write_text("package app\n", encoding="utf-8")
    (repo / "vendor" / "dep" / "dep.go").write_text("package dep\n", encoding="utf-8")
    (repo / "README.md").write_text("# Demo\n", encoding="utf-8")
    return repo


def test_end_to_end_json_export(sample_repo: Path, tmp_path: Path) -> None:
    output = tmp_path / "context.json"

    exit_code = cli.main(
        [str(sample_repo), "--format", "json", "-o", str(output), "--exclude", "vendor,*_test.go"],
        vcs_provider=_no_git,
    )

    assert exit_code == 0
    data = json.loads(output.read_text(encoding="utf-8"))
    assert [f["path"] for f in data["files"]] == ["README.md", "a.go", "b.bin", "cmd/app/main.go"]
    assert data["structure"] == "```\nREADME.md\na.go\nb.bin\ncmd/\n  app/\n    main.go\n```"
    a_go = data["files"][1]
    assert a_go["language_hint"] == "go"
    assert a_go["size"] == 13  # noqa: PLR2004
    b_bin = data["files"][2]
    assert b_bin["is_binary"] is True
    assert "content" not in b_bin
    assert data["summary"] == {
        "total_files": 4,
        "total_lines": 5,
        "estimated_tokens": 2 + 4 + 7,
        "skipped_by_token_limit": 0,
        "binary_files": 1,
    }


def test_end_to_end_markdown_with_budget(sample_repo: Path, tmp_path: Path) -> None:
    output = tmp_path / "context.md"

    exit_code = cli.main(
        [str(sample_repo), "-o", str(output), "--max-tokens", "5", "--exclude", "vendor"],
        vcs_provider=_no_git,
    )

    assert exit_code == 0
    content = output.read_text(encoding="utf-8")
    assert "### File: README.md\n```markdown\n# Demo\n" in content
    assert "### File: a.go\n_Error: omitted due to --max-tokens budget (would add ~4 tokens)_" in content
    assert "### File: b.bin" not in content
    assert "- Total files: 2\n" in content
    assert "- Skipped due to token limit: 1 file(s)\n" in content


def test_end_to_end_is_reproducible(sample_repo: Path, tmp_path: Path) -> None:
    first = tmp_path / "first.md"
    second = tmp_path / "second.md"

    assert cli.main([str(sample_repo), "-o", str(first)], vcs_provider=_no_git) == 0
    assert cli.main([str(sample_repo), "-o", str(second)], vcs_provider=_no_git) == 0

    assert first.read_bytes() == second.read_bytes()
