from __future__ import annotations

import math
from enum import StrEnum, auto
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


class OutputFormat(StrEnum):
    """Formats the output document can be rendered to."""

    MARKDOWN = auto()
    JSON = auto()


EXT2LANG: dict[str, str] = {
    ".bash": "bash",
    ".c": "c",
    ".cc": "cpp",
    ".cjs": "javascript",
    ".cpp": "cpp",
    ".cs": "csharp",
    ".css": "css",
    ".cxx": "cpp",
    ".go": "go",
    ".h": "c",
    ".hh": "cpp",
    ".hpp": "cpp",
    ".htm": "html",
    ".html": "html",
    ".java": "java",
    ".js": "javascript",
    ".json": "json",
    ".jsx": "javascript",
    ".md": "markdown",
    ".mjs": "javascript",
    ".py": "python",
    ".rb": "ruby",
    ".scss": "css",
    ".sh": "bash",
    ".sql": "sql",
    ".ts": "typescript",
    ".tsx": "typescript",
    ".yaml": "yaml",
    ".yml": "yaml",
    ".zsh": "bash",
}

BUDGET_OMISSION_MESSAGE = "omitted due to --max-tokens budget (would add ~{tokens} tokens)"


def tokens_for_length(byte_length: int) -> int:
    """Estimate the token cost of `byte_length` bytes as one token per four bytes, rounded up."""
    return math.ceil(byte_length / 4)


def guess_language(rel: str) -> str:
    """Get the code fence language for a file from its extension.

    Args:
        rel (str): the file path (relative or absolute, any separator).

    Returns:
        str: the language label, or an empty string for unknown extensions.
    """
    name = rel.replace("\\", "/").rsplit("/", 1)[-1]
    dot = name.rfind(".")
    if dot < 0:
        return ""
    return EXT2LANG.get(name[dot:].lower(), "")


class GitInfo(BaseModel):
    """Version-control metadata of the repository root."""

    model_config = ConfigDict(frozen=True)

    commit: str = Field(..., description="Full id of the HEAD commit")
    branch: str = Field("", description="Abbreviated ref name of HEAD")
    author: str = Field("", description="Last commit author as 'name <email>'")
    date: str = Field("", description="Last commit date (RFC 2822)")


class FileRecord(BaseModel):
    """One collected file in the output document.

    Attributes:
        path: Path relative to the root, with POSIX separators.
        size: File size in bytes (0 when the file could not be stat'd).
        is_binary: Whether a NUL byte was found in the read window.
        truncated: Whether the read window was filled (or the content was
            dropped by the token budget).
        language_hint: Code fence language, empty for binary or unknown files.
        content: Decoded read window; empty for binary, unreadable or
            budget-omitted files.
        read_error_message: Stat/open failure or budget-omission note.
        line_count: Newlines in the read window (not serialized).
        byte_length: Raw bytes behind `content`, the basis of the token
            estimate (not serialized). Defaults to the UTF-8 length of `content`.
        omitted_by_budget: Whether the token budget dropped this content (not serialized).
    """

    model_config = ConfigDict(frozen=True)

    path: str = Field(..., description="Root-relative POSIX path")
    size: int = Field(0, ge=0, description="File size in bytes")
    is_binary: bool = Field(default=False, description="NUL byte found in the read window")
    truncated: bool = Field(default=False, description="Read window filled or budget-omitted")
    language_hint: str = Field("", description="Code fence language")
    content: str = Field("", description="Decoded read window")
    read_error_message: str = Field("", description="Error or omission note")
    line_count: int = Field(0, ge=0, exclude=True)
    byte_length: int = Field(0, ge=0, exclude=True)
    omitted_by_budget: bool = Field(default=False, exclude=True)

    @model_validator(mode="before")
    @classmethod
    def _default_byte_length(cls, data: Any) -> Any:
        if isinstance(data, dict) and "byte_length" not in data:
            return {**data, "byte_length": len(str(data.get("content", "")).encode("utf-8"))}
        return data

    @property
    def estimated_tokens(self) -> int:
        return tokens_for_length(self.byte_length)


class Summary(BaseModel):
    """Aggregate statistics, derived from the file records."""

    model_config = ConfigDict(frozen=True)

    total_files: int = 0
    total_lines: int = 0
    estimated_tokens: int = 0
    skipped_by_limit: int = Field(0, serialization_alias="skipped_by_token_limit")
    binary_files_count: int = Field(0, serialization_alias="binary_files")

    @classmethod
    def from_records(cls, records: list[FileRecord]) -> Summary:
        """Derive the summary counters from a list of file records.

        Args:
            records (list[FileRecord]): the collected records, in output order.

        Returns:
            Summary: the aggregate counters.
        """
        return cls(
            total_files=len(records),
            total_lines=sum(r.line_count for r in records if not r.is_binary),
            estimated_tokens=sum(r.estimated_tokens for r in records),
            skipped_by_limit=sum(1 for r in records if r.omitted_by_budget),
            binary_files_count=sum(1 for r in records if r.is_binary),
        )


class OutputDocument(BaseModel):
    """The complete document handed to the renderers."""

    model_config = ConfigDict(frozen=True)

    location: str = Field(..., description="Absolute root directory")
    git: GitInfo | None = Field(default=None, description="VCS metadata, if any")
    structure: str = Field("", description="Fenced tree of the collected paths")
    files: list[FileRecord] = Field(default_factory=list)
    summary: Summary = Field(default_factory=Summary)
