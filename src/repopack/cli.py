# /// script
# requires-python = ">=3.11"
# dependencies = [
#     "pydantic",
#     "pyyaml",
#     "structlog",
# ]
# ///
#  -*- coding: utf-8 -*-
"""
repopack — Summarize a repository into one document for an LLM.

Overview
--------
Given files and directories, repopack walks them, applies include/exclude
globs, reads the head of every selected file and renders:

1) **Markdown (`--format markdown`)** — a readable report with the root
   location, git metadata, a project tree, one fenced block per file and
   summary counters.

2) **JSON (`--format json`)** — the same document as indented JSON.

Each file is read through a bounded window (`--max-file-size`). Files with a
NUL byte in that window are reported as binary, metadata only. An optional
token budget (`--max-tokens`) stops the collection at the first file that
would overflow it.

Usage
-----
Run `python -m repopack.cli --help` for full options. Common examples:
    - Whole current directory to stdout:
        uv run repopack .

    - Go sources and docs only, tests excluded, into a file:
        uv run repopack . --include "*.go,*.md" --exclude "*_test.go,vendor" -o context.md

    - JSON, capped at 50k estimated tokens:
        uv run repopack src main.go --format json --max-tokens 50000

    - Defaults from a YAML file, logs to a file:
        uv run repopack . --config repopack.yaml --log-file pack.log
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import TYPE_CHECKING

import yaml
from pydantic import ValidationError

from repopack import __version__
from repopack.collection import collect
from repopack.config import OutputDocument, OutputFormat
from repopack.exceptions import OutputWriteError
from repopack.file_manipulation import collect_files, resolve_root
from repopack.git_info import get_git_info
from repopack.logging import logger, setup_logging
from repopack.output_construction import render
from repopack.settings import Settings, load_config_file

if TYPE_CHECKING:
    from collections.abc import Sequence

    from repopack.git_info import VcsProvider


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="repopack",
        description="Summarize a repository (tree, file contents, git info) for an LLM.",
    )
    p.add_argument("paths", nargs="*", default=["."], help="Files or directories (default: .).")
    p.add_argument("-v", "--version", action="version", version=f"repopack {__version__}")
    p.add_argument("-o", "--output", type=str, default=None, help="Output file (default stdout).")
    p.add_argument(
        "--include",
        type=str,
        default=None,
        help="Comma-separated glob(s) to include (supports *, ?, [class]).",
    )
    p.add_argument(
        "--exclude",
        type=str,
        default=None,
        help="Comma-separated glob(s) to exclude (supports *, ?, [class]).",
    )
    p.add_argument(
        "--format",
        type=str.lower,
        choices=[f.value for f in OutputFormat],
        default=OutputFormat.MARKDOWN.value,
        help="Output format.",
    )
    p.add_argument("--tokens", action="store_true", help="Print estimated token count.")
    p.add_argument(
        "--max-file-size",
        type=int,
        default=16 * 1024,
        help="Per-file size limit in bytes before truncation.",
    )
    p.add_argument(
        "--max-tokens",
        type=int,
        default=0,
        help="Stop when total estimated tokens reach this number (0 = no limit).",
    )
    p.add_argument("--config", type=str, default=None, help="YAML file with default options.")
    p.add_argument("--log-file", type=str, default="", help="Log file path.")
    return p


def parse_args(argv: Sequence[str] | None = None) -> Settings:
    """Parse command-line arguments into `Settings`.

    Values from `--config` replace the built-in defaults; flags given on the
    command line win over both.

    Args:
        argv (Sequence[str] | None, optional): the arguments, without the program
            name. Defaults to `sys.argv[1:]`.

    Returns:
        Settings: the validated run configuration
    """
    p = _build_parser()
    pre, _ = p.parse_known_args(argv)
    if pre.config:
        try:
            p.set_defaults(**load_config_file(pre.config))
        except (OSError, ValueError, yaml.YAMLError) as e:
            p.error(f"cannot load config {pre.config}: {e}")

    args = vars(p.parse_args(argv))
    args.pop("config", None)
    try:
        return Settings(**args)
    except ValidationError as e:
        p.error(str(e))


def build_document(settings: Settings, *, vcs_provider: VcsProvider | None = None) -> OutputDocument:
    """Run the collection pipeline and assemble the output document.

    Args:
        settings (Settings): the run configuration
        vcs_provider (VcsProvider | None, optional): source of VCS metadata.
            Defaults to `get_git_info`.

    Returns:
        OutputDocument: the populated document
    """
    provider = vcs_provider or get_git_info
    root = resolve_root(settings.paths)
    git = provider(root)

    files, structure = collect_files(root, settings.paths, settings.include, settings.exclude)
    logger.info("Collected %d file(s) under %s", len(files), root)

    state = collect(
        files,
        root,
        max_file_size=settings.max_file_size,
        max_tokens=settings.max_tokens,
    )
    if state.stopped:
        logger.info("Token budget of %d reached after %d file(s)", settings.max_tokens, len(state.records))

    return OutputDocument(
        location=str(root),
        git=git,
        structure=structure,
        files=list(state.records),
        summary=state.summary,
    )


def write_output(content: str, output: Path | None) -> None:
    """Write the rendered document to `output`, or to stdout when None.

    Raises:
        OutputWriteError: if the target cannot be written.
    """
    if output is None:
        try:
            sys.stdout.write(content)
            sys.stdout.flush()
        except OSError as e:
            raise OutputWriteError(target="<stdout>", reason=str(e)) from e
        return
    try:
        Path(output).write_text(content, encoding="utf-8")
    except OSError as e:
        raise OutputWriteError(target=str(output), reason=str(e)) from e
    logger.info("Wrote %s", output)


def main(argv: Sequence[str] | None = None, *, vcs_provider: VcsProvider | None = None) -> int:
    settings = parse_args(argv)
    if settings.log_file:
        setup_logging(settings.log_file)

    doc = build_document(settings, vcs_provider=vcs_provider)
    content = render(doc, settings.format, show_tokens=settings.tokens)

    try:
        write_output(content, settings.output)
    except OutputWriteError as e:
        print(f"write output: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
