"""Diff views for file-modifying operations.

The log records what a tool was asked to do, not the file contents around
it. Edit and MultiEdit diffs therefore cover the replaced text only, and a
Write diff shows the written content against an empty file.

Usage:
    from ops_history.diffs import build_operation_diff
    print(build_operation_diff(op).unified)
"""

from __future__ import annotations

import difflib
from dataclasses import dataclass, field
from typing import Any

from .models import Operation

DIFF_TOOLS = ("Edit", "MultiEdit", "Write")


class DiffUnavailableError(ValueError):
    """The operation did not change file content."""


@dataclass
class EditHunk:
    """One string replacement as requested by the tool."""

    old_string: str
    new_string: str
    replace_all: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "oldString": self.old_string,
            "newString": self.new_string,
            "replaceAll": self.replace_all,
        }


@dataclass
class OperationDiff:
    id: str
    timestamp: str
    tool: str
    file_path: str | None = None
    edits: list[EditHunk] = field(default_factory=list)
    unified: str = ""
    is_new_file: bool = False

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "id": self.id,
            "timestamp": self.timestamp,
            "tool": self.tool,
            "edits": [h.to_dict() for h in self.edits],
            "unified": self.unified,
            "isNewFile": self.is_new_file,
        }
        if self.file_path:
            d["filePath"] = self.file_path
        return d


def build_operation_diff(op: Operation) -> OperationDiff:
    """Rebuild the change an Edit, MultiEdit or Write operation requested.

    Raises :class:`DiffUnavailableError` for any other tool.
    """
    params = op.parameters or {}
    if op.tool == "Edit":
        edits = [_hunk(params)]
    elif op.tool == "MultiEdit":
        edits = [_hunk(e) for e in params.get("edits") or [] if isinstance(e, dict)]
    elif op.tool == "Write":
        edits = [EditHunk(old_string="", new_string=_text(params, "content"))]
    else:
        raise DiffUnavailableError(
            f"Operation {op.id} ({op.tool}) has no diff; only {', '.join(DIFF_TOOLS)} change files"
        )

    is_new_file = op.tool == "Write"
    return OperationDiff(
        id=op.id,
        timestamp=op.timestamp,
        tool=op.tool,
        file_path=op.file_path,
        edits=edits,
        unified=_unified(edits, op.file_path, is_new_file),
        is_new_file=is_new_file,
    )


def _text(params: dict[str, Any], *keys: str) -> str:
    for key in keys:
        value = params.get(key)
        if isinstance(value, str):
            return value
    return ""


def _hunk(params: dict[str, Any]) -> EditHunk:
    return EditHunk(
        old_string=_text(params, "old_string", "oldString"),
        new_string=_text(params, "new_string", "newString"),
        replace_all=bool(params.get("replace_all", params.get("replaceAll", False))),
    )


def _unified(edits: list[EditHunk], file_path: str | None, is_new_file: bool) -> str:
    """Unified diff of every hunk under a single pair of file headers."""
    fromfile = "/dev/null" if is_new_file else (file_path or "original")
    tofile = file_path or "modified"

    out: list[str] = []
    for hunk in edits:
        lines = list(
            difflib.unified_diff(
                hunk.old_string.splitlines(keepends=True),
                hunk.new_string.splitlines(keepends=True),
                fromfile=fromfile,
                tofile=tofile,
            )
        )
        # File headers once, at the top
        if out:
            lines = lines[2:]
        out.extend(line if line.endswith("\n") else line + "\n" for line in lines)
    return "".join(out)
