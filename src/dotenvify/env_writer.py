"""Reading and writing .env files on local disk.

This module owns every file-system side effect:
- Reading the source file (missing file is fatal)
- Reading the existing destination for preserved values
- Numbered backups (<file>.backup.N) before overwriting
- Writing the formatted output

Ordering guarantee: preserved values are read from the destination before
the backup/overwrite step touches it.
"""

import logging
import shutil
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from dotenvify.env_format import OutputPolicy, ParseResult, format_env, parse_env_text
from dotenvify.errors import DotenvifyError

logger = logging.getLogger(__name__)

DEGRADED_OUTPUT_SUFFIX = ".out"


class SourceNotFoundError(DotenvifyError):
    """Raised when the local source file does not exist."""

    pass


class WriteFailedError(DotenvifyError):
    """Raised when the output file cannot be written."""

    pass


class BackupFailedError(DotenvifyError):
    """Raised when the destination cannot be backed up before overwrite."""

    pass


@dataclass
class WriteResult:
    """Outcome of writing variables to a destination file."""

    path: Path
    variable_count: int
    backup_path: Path | None = None
    preserved: list[str] = field(default_factory=list)


def read_env_file(path: str | Path) -> ParseResult:
    """Read and parse a source file.

    Args:
        path: Source file path

    Returns:
        ParseResult for the file content

    Raises:
        SourceNotFoundError: If the file does not exist
        DotenvifyError: If the file exists but cannot be read
    """
    source = Path(path)
    if not source.is_file():
        raise SourceNotFoundError(f"Source file '{source}' does not exist")

    try:
        content = source.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise DotenvifyError(f"Failed to read source file '{source}': {e}") from e

    logger.info(f"Processing source file: {source}")
    return parse_env_text(content)


def read_existing_variables(path: str | Path) -> dict[str, str]:
    """Read variables from an existing .env file.

    A missing file yields an empty mapping. Dangling keys are ignored.
    """
    existing = Path(path)
    if not existing.is_file():
        return {}

    try:
        content = existing.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise DotenvifyError(f"Failed to read existing file '{existing}': {e}") from e

    return parse_env_text(content).variables


def merge_preserved(
    variables: Mapping[str, str], destination: str | Path, preserve_names: frozenset[str]
) -> tuple[dict[str, str], list[str]]:
    """Keep values already on disk for the names in the preserve list.

    Args:
        variables: Newly produced variables
        destination: File whose current values win for preserved names
        preserve_names: Names to keep from the existing file

    Returns:
        Tuple of (merged variables, names whose value was taken from disk)
    """
    merged = dict(variables)
    if not preserve_names:
        return merged, []

    existing = read_existing_variables(destination)
    preserved = []
    for name in sorted(preserve_names):
        if name in existing:
            merged[name] = existing[name]
            preserved.append(name)
            logger.debug(f"Preserving existing value for {name}")

    return merged, preserved


def next_backup_path(path: str | Path) -> Path:
    """Return the first <path>.backup.N (N = 1, 2, ...) that does not exist."""
    target = Path(path)
    counter = 1
    while True:
        candidate = target.with_name(f"{target.name}.backup.{counter}")
        if not candidate.exists():
            return candidate
        counter += 1


def backup_file(path: str | Path) -> Path | None:
    """Copy a file to the next free numbered backup path.

    Args:
        path: File to back up

    Returns:
        Path of the backup, or None when there was nothing to back up

    Raises:
        BackupFailedError: If the copy fails
    """
    target = Path(path)
    if not target.exists():
        return None

    backup_path = next_backup_path(target)
    try:
        shutil.copyfile(target, backup_path)
    except OSError as e:
        raise BackupFailedError(f"Failed to back up '{target}' to '{backup_path}': {e}") from e

    logger.info(f"Backed up existing file to '{backup_path}'")
    return backup_path


def resolve_output_path(source: str | Path, output: str | Path, has_errors: bool) -> Path:
    """Pick the output path for a file conversion.

    When parsing produced errors and the output would overwrite the source,
    output is redirected to <source>.out so the original stays intact.
    """
    output_path = Path(output)
    source_path = Path(source)
    if has_errors and output_path.resolve() == source_path.resolve():
        return source_path.with_name(source_path.name + DEGRADED_OUTPUT_SUFFIX)
    return output_path


def write_variables(
    variables: Mapping[str, str], destination: str | Path, policy: OutputPolicy | None = None
) -> WriteResult:
    """Merge, back up, format and write variables to a file.

    Steps, in order:
    1. Take preserved values from the current destination
    2. Back up the destination unless policy.overwrite_existing is set
    3. Format with the policy and write (create or truncate)

    Args:
        variables: Name/value mapping to write
        destination: Output file path
        policy: Output policy

    Returns:
        WriteResult describing what was written

    Raises:
        BackupFailedError: If the backup fails (nothing is written)
        WriteFailedError: If the output cannot be written
    """
    policy = policy or OutputPolicy()
    target = Path(destination)

    merged, preserved = merge_preserved(variables, target, policy.preserve_names)

    backup_path = None
    if not policy.overwrite_existing:
        backup_path = backup_file(target)

    content = format_env(merged, policy)
    variable_count = len(content.splitlines())

    logger.info(f"Writing {variable_count} variables to '{target}'...")
    try:
        target.write_text(content, encoding="utf-8")
    except OSError as e:
        raise WriteFailedError(f"Failed to write output file '{target}': {e}") from e

    return WriteResult(
        path=target, variable_count=variable_count, backup_path=backup_path, preserved=preserved
    )


__all__ = [
    "BackupFailedError",
    "SourceNotFoundError",
    "WriteFailedError",
    "WriteResult",
    "backup_file",
    "merge_preserved",
    "next_backup_path",
    "read_env_file",
    "read_existing_variables",
    "resolve_output_path",
    "write_variables",
]
