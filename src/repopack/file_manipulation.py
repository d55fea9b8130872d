from __future__ import annotations

import fnmatch
import os
import stat
from pathlib import Path
from typing import TYPE_CHECKING, Any, BinaryIO, NamedTuple

from repopack.logging import logger

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence


class ReadResult(NamedTuple):
    """Outcome of classifying the read window of a file."""

    data: bytes
    is_binary: bool
    truncated: bool
    line_count: int


def relpath(path: Path, root: Path) -> str:
    """Send the relative path of path from root.

    Unlike `Path.relative_to`, paths outside `root` are expressed with `..`
    segments so that every collected file has a stable display path.

    Args:
        path (Path): the path to "relativise"
        root (Path): the root to relativise from

    Returns:
        str: the relative path from root to path, with POSIX separators.
            If no relative path exists (e.g. another drive), returns the original path.
    """
    try:
        rel = os.path.relpath(path, root)
    except ValueError:
        rel = str(path)
    return rel.replace(os.sep, "/")


def split_list(value: str | None) -> list[str]:
    """Split a comma-separated list of globs.

    Each entry is stripped of surrounding whitespace and empty entries are dropped.

    Args:
        value (str | None): the comma-separated string, e.g. ``"*.go, *.md"``

    Returns:
        list[str]: the non-empty entries, in order
    """
    if not value or not value.strip():
        return []
    return [part.strip() for part in value.split(",") if part.strip()]


def normalize_globs(globs: Iterable[str]) -> list[str]:
    """Normalize a sequence of glob patterns.

    Strips whitespace, drops empty entries and splits entries that still
    contain commas (as written in a config file).

    Args:
        globs (Iterable[str]): the glob patterns to normalize

    Returns:
        list[str]: the normalized glob patterns
    """
    out: list[str] = []
    for g in globs:
        out.extend(split_list(g))
    return out


def _translate_segment(segment: str) -> str:
    # fnmatch spells a negated class `[!...]`; also accept the `[^...]` form.
    # fnmatch has no escape character: `\*`, `\?` and `\[` become one-character classes.
    out: list[str] = []
    i = 0
    while i < len(segment):
        if segment[i] == "\\" and i + 1 < len(segment):
            nxt = segment[i + 1]
            out.append(f"[{nxt}]" if nxt in "*?[" else nxt)
            i += 2
        elif segment.startswith("[^", i):
            out.append("[!")
            i += 2
        else:
            out.append(segment[i])
            i += 1
    return "".join(out)


def match_glob(rel: str, pattern: str) -> bool:
    """Match a slash-separated path against a shell-style glob.

    `*`, `?` and `[...]` never match `/`: the path and the pattern must have the
    same number of segments and every segment must match. Matching is case-sensitive,
    and a backslash escapes the next character (`\\*` matches a literal `*`).

    Args:
        rel (str): the relative path, with POSIX separators
        pattern (str): the glob pattern

    Returns:
        bool: True if `rel` matches `pattern`
    """
    path_parts = rel.split("/")
    pattern_parts = pattern.split("/")
    if len(path_parts) != len(pattern_parts):
        return False
    return all(
        fnmatch.fnmatchcase(part, _translate_segment(pat))
        for part, pat in zip(path_parts, pattern_parts, strict=True)
    )


def match_any(patterns: Sequence[str], rel: str) -> bool:
    """Check if a relative path, or its base name, matches any glob.

    Matching the base name alone lets a bare ``*.go`` select nested files.

    Args:
        patterns (Sequence[str]): the glob patterns to match against
        rel (str): the relative path to check

    Returns:
        bool: True if the full path or the file name matches a pattern, False
            otherwise (always False for an empty pattern list)
    """
    if not patterns:
        return False
    rel = rel.replace("\\", "/")
    base = rel.rsplit("/", 1)[-1]
    return any(match_glob(rel, pat) or match_glob(base, pat) for pat in patterns)


def should_keep(rel: str, includes: Sequence[str], excludes: Sequence[str]) -> bool:
    """Decide whether a path survives the include/exclude filters.

    Excludes take precedence; an empty include list keeps everything else.

    Args:
        rel (str): the path relative to the root
        includes (Sequence[str]): include globs
        excludes (Sequence[str]): exclude globs

    Returns:
        bool: True if the path is kept
    """
    if match_any(excludes, rel):
        return False
    if not includes:
        return True
    return match_any(includes, rel)


def resolve_root(inputs: Sequence[str]) -> Path:
    """Determine the base directory for filtering and display.

    The first input that is a directory is the root. When every input is a
    file, the root is the deepest directory containing all of them.

    Args:
        inputs (Sequence[str]): user-supplied paths

    Returns:
        Path: the absolute root directory
    """
    parents: list[str] = []
    for raw in inputs:
        ap = os.path.abspath(raw)
        if os.path.isdir(ap):
            return Path(ap)
        parents.append(os.path.dirname(ap))
    if not parents:
        return Path(os.path.abspath("."))
    return Path(os.path.commonpath(parents))


def walk_input(
    top: Path,
    root: Path,
    includes: Sequence[str],
    excludes: Sequence[str],
) -> list[Path]:
    """Walk a directory input, pruning directories that fail the filters.

    Errors raised while listing a directory are logged and the walk goes on.

    Args:
        top (Path): the absolute directory to walk
        root (Path): the root used to compute relative paths
        includes (Sequence[str]): include globs
        excludes (Sequence[str]): exclude globs

    Returns:
        list[Path]: the kept files found under `top`, in walk order
    """
    top_rel = relpath(top, root)
    if top_rel != "." and not should_keep(top_rel, includes, excludes):
        return []

    def on_error(err: OSError) -> None:
        logger.warning("walk error %s: %s", err.filename, err)

    results: list[Path] = []
    for dirpath, dirnames, filenames in os.walk(top, onerror=on_error):
        current = Path(dirpath)
        dirnames[:] = [d for d in dirnames if should_keep(relpath(current / d, root), includes, excludes)]
        results.extend(
            current / name for name in filenames if should_keep(relpath(current / name, root), includes, excludes)
        )
    return results


def collect_files(
    root: Path,
    inputs: Sequence[str],
    includes: Sequence[str],
    excludes: Sequence[str],
) -> tuple[list[Path], str]:
    """Enumerate the files selected by the inputs and filters.

    Inputs that cannot be stat'd are logged and skipped. Every file is kept
    once, keyed by absolute path, and the result is sorted by path string.

    Args:
        root (Path): the root directory (see `resolve_root`)
        inputs (Sequence[str]): user-supplied files and directories
        includes (Sequence[str]): include globs
        excludes (Sequence[str]): exclude globs

    Returns:
        tuple[list[Path], str]: the sorted absolute file paths and their
            rendered tree (see `build_tree`)
    """
    seen: set[str] = set()
    files: list[Path] = []

    def add(path: Path) -> None:
        key = str(path)
        if key not in seen:
            seen.add(key)
            files.append(path)

    for raw in inputs:
        ap = Path(os.path.abspath(raw))
        try:
            st = ap.stat()
        except (OSError, ValueError) as e:
            logger.warning("skip %s: %s", raw, e)
            continue
        if stat.S_ISDIR(st.st_mode):
            for found in walk_input(ap, root, includes, excludes):
                add(found)
        elif should_keep(relpath(ap, root), includes, excludes):
            add(ap)

    files.sort(key=str)
    return files, build_tree(root, files)


def build_tree(root: Path, files: Sequence[Path]) -> str:
    """Render the root-relative paths of `files` as an indented, fenced tree.

    Entries are sorted at every level, indented by two spaces per depth, and
    directories carry a trailing ``/``.

    Args:
        root (Path): the root the paths are shown relative to
        files (Sequence[Path]): the files to show

    Returns:
        str: the tree wrapped in a fenced code block
    """
    tree: dict[str, Any] = {}
    for f in files:
        rel = relpath(f, root)
        if rel == ".":
            continue
        parts = rel.split("/")
        cur = tree
        for part in parts[:-1]:
            nxt = cur.get(part)
            if nxt is None:
                nxt = cur[part] = {}
            cur = nxt
        cur.setdefault(parts[-1], None)

    lines: list[str] = []

    def walk(node: dict[str, Any], depth: int) -> None:
        for name in sorted(node):
            child = node[name]
            indent = "  " * depth
            if child is None:
                lines.append(f"{indent}{name}")
            else:
                lines.append(f"{indent}{name}/")
                walk(child, depth + 1)

    walk(tree, 0)
    body = "".join(line + "\n" for line in lines)
    return f"```\n{body}```"


def read_file_content(handle: BinaryIO, max_bytes: int) -> ReadResult:
    """Read and classify the leading window of an open file.

    A single bounded read of `max_bytes` is performed. The window is binary when
    it contains a NUL byte, and truncated when the read filled it exactly (the
    file may or may not continue). Lines are counted as newline bytes, so an
    unterminated last line is not counted.

    Args:
        handle (BinaryIO): a file opened in binary mode
        max_bytes (int): size of the read window

    Returns:
        ReadResult: the window and its classification; an empty result if the read fails
    """
    try:
        data = handle.read(max_bytes) if max_bytes > 0 else b""
    except OSError as e:
        logger.warning("read error %s: %s", getattr(handle, "name", "?"), e)
        return ReadResult(b"", is_binary=False, truncated=False, line_count=0)
    data = data or b""
    is_binary = b"\x00" in data
    truncated = max_bytes > 0 and len(data) == max_bytes
    return ReadResult(data, is_binary=is_binary, truncated=truncated, line_count=data.count(b"\n"))
