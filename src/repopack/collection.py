"""Budgeted collection of file records.

The collector walks the sorted file list once. Each file becomes a
`FileRecord`, and a `CollectionState` accumulator carries the records and the
running token total from one step to the next. A positive token budget is a
hard stop: the first file whose content would overflow it is recorded without
content and ends the pass.
"""

from __future__ import annotations

import stat
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field

from repopack.config import BUDGET_OMISSION_MESSAGE, FileRecord, Summary, guess_language
from repopack.file_manipulation import read_file_content, relpath

if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path


class CollectionState(BaseModel):
    """Accumulator threaded through the collection steps."""

    model_config = ConfigDict(frozen=True)

    records: tuple[FileRecord, ...] = ()
    total_tokens: int = Field(0, ge=0)
    stopped: bool = False

    @property
    def summary(self) -> Summary:
        return Summary.from_records(list(self.records))


def build_record(path: Path, root: Path, max_file_size: int) -> FileRecord | None:
    """Stat, open and classify one file.

    Stat and open failures are captured in the record's `read_error_message`.

    Args:
        path (Path): absolute path of the file
        root (Path): the root the record path is relative to
        max_file_size (int): size of the read window in bytes

    Returns:
        FileRecord | None: the record, or None when `path` is a directory
    """
    rel = relpath(path, root)
    try:
        st = path.stat()
    except OSError as e:
        return FileRecord(path=rel, read_error_message=str(e))
    if stat.S_ISDIR(st.st_mode):
        return None

    try:
        handle = path.open("rb")
    except OSError as e:
        return FileRecord(path=rel, size=st.st_size, read_error_message=str(e))
    with handle:
        result = read_file_content(handle, max_file_size)

    if result.is_binary:
        return FileRecord(path=rel, size=st.st_size, is_binary=True, truncated=result.truncated)
    return FileRecord(
        path=rel,
        size=st.st_size,
        truncated=result.truncated,
        language_hint=guess_language(rel),
        content=result.data.decode("utf-8", errors="replace"),
        line_count=result.line_count,
        byte_length=len(result.data),
    )


def apply_budget(state: CollectionState, record: FileRecord, max_tokens: int) -> CollectionState:
    """Append a record to the state, enforcing the token budget.

    Args:
        state (CollectionState): the accumulator so far
        record (FileRecord): the next record
        max_tokens (int): the token budget; 0 means unlimited

    Returns:
        CollectionState: the new accumulator. It is `stopped` when the record
            did not fit, in which case the record was kept without content.
    """
    cost = record.estimated_tokens
    if max_tokens > 0 and state.total_tokens + cost > max_tokens:
        omitted = record.model_copy(
            update={
                "content": "",
                "byte_length": 0,
                "truncated": True,
                "read_error_message": BUDGET_OMISSION_MESSAGE.format(tokens=cost),
                "omitted_by_budget": True,
            },
        )
        return state.model_copy(update={"records": (*state.records, omitted), "stopped": True})
    return state.model_copy(
        update={"records": (*state.records, record), "total_tokens": state.total_tokens + cost},
    )


def collect_step(
    state: CollectionState,
    path: Path,
    *,
    root: Path,
    max_file_size: int,
    max_tokens: int,
) -> CollectionState:
    """Process one file of the sorted list.

    Args:
        state (CollectionState): the accumulator so far
        path (Path): absolute path of the file
        root (Path): the root record paths are relative to
        max_file_size (int): size of the read window in bytes
        max_tokens (int): the token budget; 0 means unlimited

    Returns:
        CollectionState: the updated accumulator (unchanged for directories)
    """
    if state.stopped:
        return state
    record = build_record(path, root, max_file_size)
    if record is None:
        return state
    return apply_budget(state, record, max_tokens)


def collect(
    files: Sequence[Path],
    root: Path,
    *,
    max_file_size: int,
    max_tokens: int = 0,
) -> CollectionState:
    """Collect records for `files` in order until the list or the budget runs out.

    Args:
        files (Sequence[Path]): the sorted absolute file paths
        root (Path): the root record paths are relative to
        max_file_size (int): size of the read window in bytes
        max_tokens (int, optional): the token budget; 0 means unlimited. Defaults to 0.

    Returns:
        CollectionState: the final accumulator
    """
    state = CollectionState()
    for path in files:
        state = collect_step(state, path, root=root, max_file_size=max_file_size, max_tokens=max_tokens)
        if state.stopped:
            break
    return state
