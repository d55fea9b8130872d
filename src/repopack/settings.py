from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator

from repopack.config import OutputFormat
from repopack.file_manipulation import normalize_globs


class Settings(BaseModel):
    """Configuration settings for a repopack run."""

    model_config = ConfigDict(extra="forbid")

    paths: list[str] = Field(default_factory=lambda: ["."], description="Files and directories to pack.")
    include: list[str] = Field(default_factory=list, description="Include globs.")
    exclude: list[str] = Field(default_factory=list, description="Exclude globs.")
    max_file_size: int = Field(
        default=16 * 1024,
        ge=0,
        description="Per-file read window in bytes.",
    )
    max_tokens: int = Field(
        default=0,
        ge=0,
        description="Global token budget (0 = unlimited).",
    )
    format: OutputFormat = Field(default=OutputFormat.MARKDOWN, description="Output format.")
    output: Path | None = Field(default=None, description="Output file (default stdout).")
    tokens: bool = Field(default=False, description="Print estimated token count.")
    log_file: str = Field(default="", description="Log file path.")

    @field_validator("paths", mode="before")
    @classmethod
    def _default_paths(cls, value: Any) -> Any:  # noqa: ANN401
        if value is None or value == []:
            return ["."]
        if isinstance(value, str):
            return [value]
        return value

    @field_validator("include", "exclude", mode="before")
    @classmethod
    def _split_globs(cls, value: Any) -> Any:  # noqa: ANN401
        if value is None:
            return []
        if isinstance(value, str):
            return normalize_globs([value])
        if isinstance(value, list):
            return normalize_globs(str(v) for v in value)
        return value

    @field_validator("format", mode="before")
    @classmethod
    def _lower_format(cls, value: Any) -> Any:  # noqa: ANN401
        if isinstance(value, str):
            return value.strip().lower()
        return value


def load_config_file(path: str | Path) -> dict[str, Any]:
    """Load run defaults from a YAML configuration file.

    Keys may use dashes or underscores (``max-tokens`` or ``max_tokens``).

    Args:
        path (str | Path): the YAML file to read

    Raises:
        OSError: if the file cannot be read.
        yaml.YAMLError: if the file is not valid YAML.
        ValueError: if the top-level document is not a mapping.

    Returns:
        dict[str, Any]: option values keyed by `Settings` field name
    """
    data = yaml.safe_load(Path(path).read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        msg = f"{path}: expected a mapping of options, got {type(data).__name__}"
        raise ValueError(msg)
    return {str(k).replace("-", "_"): v for k, v in data.items()}
