"""Output formatting — brief, compact, full, JSON."""

from __future__ import annotations

import json
from collections.abc import Sequence

from .models import ChangeType, Operation


def _change_label(op: Operation) -> str:
    change = op.change_type
    if isinstance(change, ChangeType):
        return change.label
    return str(change).upper() if change else "?"


def format_brief(op: Operation) -> str:
    """Single line — timestamp, change, tool, target.

    Format: timestamp CHANGE Tool path-or-summary
    """
    target = op.file_path or op.summary
    return f"{op.timestamp} {_change_label(op)} {op.tool} {target}"


def format_compact(op: Operation) -> str:
    """One-liner with the operation ID — for quick scanning."""
    parts = [f"[{op.id}]", op.timestamp, op.tool, _change_label(op)]
    if op.file_path:
        parts.append(op.file_path)
    parts.append(op.summary)
    return " | ".join(parts)


def format_full(op: Operation) -> str:
    """Full metadata — for inspecting a single operation."""
    lines = [
        f"# {op.id}",
        f"timestamp: {op.timestamp}",
        f"tool: {op.tool}",
        f"change: {_change_label(op)}",
    ]
    if op.file_path:
        lines.append(f"file: {op.file_path}")
    lines.append(f"\n{op.summary}")
    return "\n".join(lines)


def format_operations(operations: Sequence[Operation], fmt: str = "compact") -> str:
    """Format a list of operations as ``brief``, ``compact`` or ``json``."""
    if fmt == "json":
        return json.dumps([op.to_dict() for op in operations], indent=2, ensure_ascii=False)
    if not operations:
        return "No operations found."
    if fmt == "brief":
        return "\n".join(format_brief(op) for op in operations)
    return "\n".join(format_compact(op) for op in operations)


def format_file_changes(result, fmt: str = "compact") -> str:
    """Format a :class:`~ops_history.engine.FileChangesResult`."""
    if fmt == "json":
        return json.dumps(result.to_dict(), indent=2, ensure_ascii=False)
    if result.warning:
        return result.warning

    lines = [f"## Changes to {result.file_path} ({result.total_count} total)\n"]
    lines.append(format_operations(result.operations, fmt=fmt))
    if result.has_more:
        omitted = result.total_count - len(result.operations)
        lines.append(f"\n({omitted} older changes omitted — raise limit to see more)")
    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Bash history
# ---------------------------------------------------------------------------


def format_bash_history(result, fmt: str = "compact") -> str:
    """Format a :class:`~ops_history.engine.BashHistoryResult`."""
    if fmt == "json":
        return json.dumps(result.to_dict(), indent=2, ensure_ascii=False)
    if not result.commands:
        return "No Bash commands found."

    lines = [f"## Bash history ({result.total_count} total)\n"]
    for cmd in result.commands:
        if fmt == "brief":
            lines.append(f"{cmd.timestamp} [{cmd.exit_code}] {cmd.command}")
        else:
            lines.append(
                f"[{cmd.id}] | {cmd.timestamp} | exit {cmd.exit_code} | {cmd.command} | {cmd.summary}"
            )
    if result.has_more:
        omitted = result.total_count - len(result.commands)
        lines.append(f"\n({omitted} older commands omitted — raise limit to see more)")
    return "\n".join(lines)


def format_bash_result(cmd, fmt: str = "text") -> str:
    """Full output of a :class:`~ops_history.engine.BashCommand`."""
    if fmt == "json":
        return json.dumps(cmd.to_dict(include_output=True), indent=2, ensure_ascii=False)
    lines = [
        f"# {cmd.id}",
        f"timestamp: {cmd.timestamp}",
        f"command: {cmd.command}",
        f"exit code: {cmd.exit_code}",
    ]
    if cmd.working_directory:
        lines.append(f"cwd: {cmd.working_directory}")
    lines.append(f"\n--- stdout ---\n{cmd.stdout.rstrip()}")
    if cmd.stderr:
        lines.append(f"--- stderr ---\n{cmd.stderr.rstrip()}")
    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Diffs
# ---------------------------------------------------------------------------


def format_operation_diff(diff, fmt: str = "text") -> str:
    """Format a :class:`~ops_history.diffs.OperationDiff`."""
    if fmt == "json":
        return json.dumps(diff.to_dict(), indent=2, ensure_ascii=False)
    lines = [f"# {diff.id}", f"timestamp: {diff.timestamp}", f"tool: {diff.tool}"]
    if diff.file_path:
        lines.append(f"file: {diff.file_path}")
    lines.append("")
    lines.append(diff.unified.rstrip("\n") if diff.unified else "(no changes)")
    return "\n".join(lines)
