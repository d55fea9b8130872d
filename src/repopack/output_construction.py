from __future__ import annotations

import io
import json
from typing import TYPE_CHECKING, Any

from repopack.config import OutputFormat

if TYPE_CHECKING:
    from repopack.config import FileRecord, OutputDocument

_OMIT_WHEN_EMPTY = ("language_hint", "content", "read_error_message")


def _write_file_section(out: io.StringIO, rec: FileRecord) -> None:
    out.write(f"### File: {rec.path}\n")
    # Covers stat/open failures and budget-omitted records alike.
    if rec.read_error_message and not rec.content and not rec.is_binary:
        out.write(f"_Error: {rec.read_error_message}_\n\n")
        return
    if rec.is_binary:
        out.write(f"_Binary file (size: {rec.size} bytes) — metadata only._\n\n")
        return
    out.write(f"```{rec.language_hint}\n{rec.content}\n```\n\n")
    if rec.truncated:
        out.write("_[truncated]_\n\n")
    if rec.read_error_message:
        out.write(f"_Note: {rec.read_error_message}_\n\n")


def build_markdown(doc: OutputDocument) -> str:
    """Build a markdown report of the output document.

    The report has sections for the root location, git info, the tree,
    one fenced block per file (annotated with its language hint) and the summary.
    Records that carry only an error, and binary files, get a one-line note
    instead of a block.

    Args:
        doc (OutputDocument): the populated document

    Returns:
        str: the markdown report
    """
    out = io.StringIO()
    out.write("# Repository Context\n\n")
    out.write("## File System Location\n\n")
    out.write(f"{doc.location}\n\n")

    out.write("## Git Info\n\n")
    if doc.git is None:
        out.write("- Not a git repository\n\n")
    else:
        out.write(f"- Commit: {doc.git.commit}\n")
        out.write(f"- Branch: {doc.git.branch}\n")
        out.write(f"- Author: {doc.git.author}\n")
        out.write(f"- Date: {doc.git.date}\n\n")

    out.write("## Structure\n")
    out.write(f"{doc.structure}\n\n")

    out.write("## File Contents\n\n")
    for rec in doc.files:
        _write_file_section(out, rec)

    summary = doc.summary
    out.write("## Summary\n")
    out.write(f"- Total files: {summary.total_files}\n")
    out.write(f"- Total lines: {summary.total_lines}\n")
    out.write(f"- Estimated tokens: {summary.estimated_tokens}\n")
    if summary.skipped_by_limit > 0:
        out.write(f"- Skipped due to token limit: {summary.skipped_by_limit} file(s)\n")
    if summary.binary_files_count > 0:
        out.write(f"- Binary files detected: {summary.binary_files_count}\n")
    return out.getvalue()


def document_to_dict(doc: OutputDocument) -> dict[str, Any]:
    """Convert the document to plain data with its serialized field names.

    `git` is dropped when absent; empty hint, content and message fields are
    dropped from file entries.

    Args:
        doc (OutputDocument): the populated document

    Returns:
        dict[str, Any]: JSON-ready data
    """
    data = doc.model_dump(by_alias=True)
    if data["git"] is None:
        del data["git"]
    for entry in data["files"]:
        for key in _OMIT_WHEN_EMPTY:
            if not entry[key]:
                del entry[key]
    return data


def build_json(doc: OutputDocument) -> str:
    """Serialize the document as two-space indented JSON with a trailing newline."""
    return json.dumps(document_to_dict(doc), indent=2, ensure_ascii=False) + "\n"


def render(doc: OutputDocument, fmt: OutputFormat, *, show_tokens: bool = False) -> str:
    """Render the document in the requested format.

    Args:
        doc (OutputDocument): the populated document
        fmt (OutputFormat): markdown or json
        show_tokens (bool, optional): append the estimated token count. Defaults to False.

    Returns:
        str: the rendered document
    """
    content = build_json(doc) if fmt is OutputFormat.JSON else build_markdown(doc)
    if show_tokens:
        content += f"\nEstimated tokens: {doc.summary.estimated_tokens}\n"
    return content
