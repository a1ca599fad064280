"""Core engine — workspace discovery, log loading, and the history queries."""

from __future__ import annotations

import logging
import os
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from .config import (
    DEFAULT_LIMIT,
    LOG_FILE_ENV_VAR,
    MAX_LIMIT,
    MODIFYING_CHANGE_TYPES,
    ROOT_INDICATORS,
    WORKSPACE_ENV_VAR,
)
from .diffs import OperationDiff, build_operation_diff
from .filters import filter_by_change_type, filter_by_file_path, operation_instant
from .models import Operation
from .parser import parse_log_stream

logger = logging.getLogger(__name__)

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


class ValidationError(ValueError):
    """Query arguments are missing or out of range."""


# ---------------------------------------------------------------------------
# Workspace discovery
# ---------------------------------------------------------------------------


def find_workspace_root(explicit: str | None = None) -> Path:
    """Locate the workspace root used to resolve relative path patterns.

    Resolution order:
      1. Explicit ``--workspace`` argument
      2. ``OPS_WORKSPACE_ROOT`` environment variable
      3. Walk up from CWD looking for a root marker (``.git``, ``pyproject.toml``, ...)
      4. CWD itself
    """
    if explicit:
        return Path(explicit).resolve()

    env = os.environ.get(WORKSPACE_ENV_VAR)
    if env:
        return Path(env).resolve()

    cwd = Path.cwd().resolve()
    for d in [cwd, *cwd.parents]:
        if _is_workspace_root(d):
            return d
    return cwd


def _is_workspace_root(directory: Path) -> bool:
    return any((directory / marker).exists() for marker in ROOT_INDICATORS)


# ---------------------------------------------------------------------------
# Log loading
# ---------------------------------------------------------------------------


def find_log_file(explicit: str | None = None) -> Path:
    """Locate the JSONL operation log (``--log`` argument, then ``OPS_HISTORY_LOG``)."""
    raw = explicit or os.environ.get(LOG_FILE_ENV_VAR)
    if not raw:
        raise SystemExit(
            f"No operation log configured.\nPass --log <file> or set {LOG_FILE_ENV_VAR}."
        )
    path = Path(raw).expanduser().resolve()
    if not path.is_file():
        raise SystemExit(f"Operation log not found: {path}")
    return path


def load_operations(log_path: Path) -> list[Operation]:
    """Read and parse a JSONL log; malformed lines are skipped."""
    try:
        content = log_path.read_text(encoding="utf-8")
    except OSError as e:
        raise SystemExit(f"Failed to read operation log {log_path}: {e}") from e

    result = parse_log_stream(content)
    if result.skipped_count:
        logger.warning(
            "Skipped %d of %d malformed log lines in %s",
            result.skipped_count,
            result.total_processed,
            log_path,
        )
    logger.info("Loaded %d operations from %s", len(result.operations), log_path)
    return result.operations


def resolve_operation(operations: Sequence[Operation], op_id: str) -> Operation | None:
    """Find an operation by ID with case-insensitive fallback."""
    for op in operations:
        if op.id == op_id:
            return op
    lowered = op_id.lower()
    for op in operations:
        if op.id.lower() == lowered:
            return op
    return None


# ---------------------------------------------------------------------------
# File change history
# ---------------------------------------------------------------------------


@dataclass
class FileChangesResult:
    """Change history for one path pattern, newest first."""

    file_path: str
    limit: int
    operations: list[Operation] = field(default_factory=list)
    total_count: int = 0
    has_more: bool = False
    warning: str | None = None

    def to_dict(self) -> dict:
        d = {
            "operations": [op.to_dict() for op in self.operations],
            "totalCount": self.total_count,
            "hasMore": self.has_more,
            "limit": self.limit,
            "filePath": self.file_path,
        }
        if self.warning:
            d["warning"] = self.warning
        return d


def list_file_changes(
    operations: Sequence[Operation],
    file_path: str,
    workspace_root: str | Path,
    limit: int | None = None,
) -> FileChangesResult:
    """Modifying operations (create/update/delete) on files matching ``file_path``.

    Read-only operations are excluded. Results are sorted newest first, ties
    broken by descending ID, and truncated to ``limit`` (default 100, max 1000).
    """
    if not file_path or not file_path.strip():
        raise ValidationError("File path is required")

    limit = _validate_limit(limit)
    matched = filter_by_file_path(operations, file_path, str(workspace_root))
    matched = filter_by_change_type(matched, MODIFYING_CHANGE_TYPES)
    _sort_newest_first(matched)

    total = len(matched)
    result = FileChangesResult(
        file_path=file_path,
        limit=limit,
        operations=matched[:limit],
        total_count=total,
        has_more=total > limit,
    )
    if total == 0:
        result.warning = f"No file changes found for pattern: {file_path}"
    return result


def _validate_limit(limit: int | None) -> int:
    if limit is None:
        return DEFAULT_LIMIT
    if limit <= 0 or limit > MAX_LIMIT:
        raise ValidationError(f"Limit must be between 1 and {MAX_LIMIT}")
    return limit


def _sort_newest_first(operations: list[Operation]) -> None:
    operations.sort(key=lambda op: (operation_instant(op) or _EPOCH, op.id), reverse=True)


# ---------------------------------------------------------------------------
# Bash history
# ---------------------------------------------------------------------------


@dataclass
class BashCommand:
    """A shell command run by the assistant, with its captured output."""

    id: str
    timestamp: str
    command: str
    exit_code: int = 0
    working_directory: str = ""
    stdout: str = ""
    stderr: str = ""

    @property
    def summary(self) -> str:
        """First non-blank output line; stderr first when the command failed."""
        if self.exit_code != 0:
            line = _first_line(self.stderr)
            if line:
                return line
        return _first_line(self.stdout) or "Command executed"

    def to_dict(self, include_output: bool = False) -> dict[str, Any]:
        d: dict[str, Any] = {
            "id": self.id,
            "timestamp": self.timestamp,
            "command": self.command,
            "exitCode": self.exit_code,
            "workingDirectory": self.working_directory,
        }
        if include_output:
            d["stdout"] = self.stdout
            d["stderr"] = self.stderr
        else:
            d["summary"] = self.summary
        return d


@dataclass
class BashHistoryResult:
    """Bash commands, newest first."""

    limit: int
    commands: list[BashCommand] = field(default_factory=list)
    total_count: int = 0
    has_more: bool = False

    def to_dict(self) -> dict:
        return {
            "commands": [c.to_dict() for c in self.commands],
            "totalCount": self.total_count,
            "hasMore": self.has_more,
            "limit": self.limit,
        }


def _first_line(text: str) -> str | None:
    for line in text.split("\n"):
        if line.strip():
            return line
    return None


def bash_command(op: Operation, workspace_root: str | Path | None = None) -> BashCommand:
    """Extract command, exit code, working directory and output from a Bash operation.

    A missing ``workingDirectory`` parameter falls back to ``workspace_root``;
    a missing or non-integer exit code counts as 0.
    """
    params = op.parameters or {}
    result = op.result if isinstance(op.result, dict) else {}

    command = params.get("command")
    exit_code = result.get("exitCode")
    if not isinstance(exit_code, int) or isinstance(exit_code, bool):
        exit_code = 0
    cwd = params.get("workingDirectory") or (str(workspace_root) if workspace_root else "")

    return BashCommand(
        id=op.id,
        timestamp=op.timestamp,
        command=command if isinstance(command, str) and command else op.summary,
        exit_code=exit_code,
        working_directory=str(cwd),
        stdout=str(result.get("stdout") or ""),
        stderr=str(result.get("stderr") or ""),
    )


def list_bash_history(
    operations: Sequence[Operation],
    limit: int | None = None,
    workspace_root: str | Path | None = None,
) -> BashHistoryResult:
    """Bash commands newest first, truncated to ``limit`` (default 100, max 1000)."""
    limit = _validate_limit(limit)
    matched = [op for op in operations if op.tool == "Bash"]
    _sort_newest_first(matched)

    total = len(matched)
    return BashHistoryResult(
        limit=limit,
        commands=[bash_command(op, workspace_root) for op in matched[:limit]],
        total_count=total,
        has_more=total > limit,
    )


def show_bash_result(
    operations: Sequence[Operation],
    op_id: str,
    workspace_root: str | Path | None = None,
) -> BashCommand:
    """Full stdout/stderr of one Bash command."""
    if not op_id or not op_id.strip():
        raise ValidationError("Command ID is required")
    op = resolve_operation(operations, op_id.strip())
    if op is None:
        raise ValidationError(f"Bash command with ID {op_id} not found")
    if op.tool != "Bash":
        raise ValidationError(f"Operation {op_id} is not a Bash command")
    return bash_command(op, workspace_root)


# ---------------------------------------------------------------------------
# Operation diff
# ---------------------------------------------------------------------------


def show_operation_diff(operations: Sequence[Operation], op_id: str) -> OperationDiff:
    """Diff view of one Edit, MultiEdit or Write operation."""
    if not op_id or not op_id.strip():
        raise ValidationError("Operation ID is required")
    op = resolve_operation(operations, op_id.strip())
    if op is None:
        raise ValidationError(f"Operation with ID {op_id} not found")
    return build_operation_diff(op)
