"""Parse assistant tool-call logs (JSONL) into :class:`Operation` records.

Each log line is a JSON object::

    {"timestamp": "2025-09-18T14:30:45.123Z", "tool": "Edit",
     "parameters": {"file_path": "/ws/src/a.py", ...}, "result": ...}

Usage:
    from ops_history.parser import parse_log_stream
    result = parse_log_stream(path.read_text())
"""

from __future__ import annotations

import json
import logging
import re
import uuid
from dataclasses import dataclass, field
from typing import Any

from .config import DEFAULT_CHANGE_TYPE, FILE_OPERATION_TOOLS, FILE_PATH_KEYS, TOOL_CHANGE_TYPES
from .filters import TimestampParseError, parse_timestamp
from .models import ChangeType, Operation

logger = logging.getLogger(__name__)

_ID_NAMESPACE = uuid.uuid5(uuid.NAMESPACE_URL, "ops-history")
_STRICT_TIMESTAMP = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(\.\d{3})?Z$")


class LogParseError(ValueError):
    """A log line could not be turned into an operation."""

    def __init__(self, message: str, line_number: int | None = None) -> None:
        super().__init__(message)
        self.line_number = line_number


@dataclass
class ParseResult:
    """Operations parsed from a log, with bookkeeping."""

    operations: list[Operation] = field(default_factory=list)
    skipped_count: int = 0
    total_processed: int = 0


# ---------------------------------------------------------------------------
# Single entry
# ---------------------------------------------------------------------------


def parse_log_entry(
    line: str, validate_timestamp: bool = False, op_id: str | None = None
) -> Operation:
    """Parse one JSONL line. Raises :class:`LogParseError` on bad input.

    Without ``op_id`` the operation gets a random UUID.
    """
    try:
        raw = json.loads(line)
    except json.JSONDecodeError as e:
        raise LogParseError("Invalid JSON format") from e

    if not isinstance(raw, dict):
        raise LogParseError("Log entry must be a JSON object")
    if not raw.get("timestamp"):
        raise LogParseError("Missing required field: timestamp")
    if not raw.get("tool"):
        raise LogParseError("Missing required field: tool")
    parameters = raw.get("parameters")
    if parameters is None:
        raise LogParseError("Missing required field: parameters")
    if not isinstance(parameters, dict):
        raise LogParseError("Invalid parameters type")

    timestamp = str(raw["timestamp"])
    tool = str(raw["tool"])
    if validate_timestamp and not is_valid_timestamp(timestamp):
        raise LogParseError(f"Invalid timestamp format: {timestamp}")

    file_path = _extract_file_path(parameters, tool)
    return Operation(
        id=op_id or str(uuid.uuid4()),
        timestamp=timestamp,
        tool=tool,
        summary=_summarize(tool, parameters, file_path),
        change_type=change_type_for_tool(tool),
        file_path=file_path,
        parameters=parameters,
        result=raw.get("result"),
    )


def is_valid_timestamp(timestamp: str) -> bool:
    """Strict UTC ISO-8601 check: ``YYYY-MM-DDTHH:MM:SS[.mmm]Z`` and a real date."""
    if not _STRICT_TIMESTAMP.match(timestamp):
        return False
    try:
        parse_timestamp(timestamp)
    except TimestampParseError:
        return False
    return True


def change_type_for_tool(tool: str) -> ChangeType:
    return ChangeType(TOOL_CHANGE_TYPES.get(tool, DEFAULT_CHANGE_TYPE))


def _extract_file_path(parameters: dict[str, Any], tool: str) -> str | None:
    if tool not in FILE_OPERATION_TOOLS:
        return None
    for key in FILE_PATH_KEYS:
        value = parameters.get(key)
        if value and isinstance(value, str):
            return value
    return None


def _summarize(tool: str, parameters: dict[str, Any], file_path: str | None) -> str:
    if file_path:
        return f"{tool} operation on {file_path}"

    if tool == "Bash":
        command = parameters.get("command")
        return f"Bash command: {command if isinstance(command, str) else 'unknown command'}"
    if tool in ("Grep", "Glob"):
        pattern = parameters.get("pattern")
        shown = pattern if isinstance(pattern, str) else "unknown pattern"
        return f"{tool} search for pattern: {shown}"
    return f"{tool} operation"


# ---------------------------------------------------------------------------
# Streams
# ---------------------------------------------------------------------------


def parse_log_stream(
    content: str,
    skip_malformed: bool = True,
    max_entries: int = 0,
    validate_timestamp: bool = False,
) -> ParseResult:
    """Parse a JSONL document.

    Blank lines are ignored. With ``skip_malformed`` bad lines are counted
    and skipped; otherwise the first one raises :class:`LogParseError`
    prefixed with its 1-based line number. ``max_entries`` > 0 caps the
    number of parsed operations.

    Operation IDs are derived from the line number and line content, so
    re-parsing the same log yields the same IDs.
    """
    result = ParseResult()
    if not content or not content.strip():
        return result

    for lineno, line in enumerate(content.split("\n"), start=1):
        stripped = line.strip()
        if not stripped:
            continue

        result.total_processed += 1
        if max_entries > 0 and len(result.operations) >= max_entries:
            break

        try:
            op = parse_log_entry(
                stripped, validate_timestamp=validate_timestamp, op_id=stable_id(lineno, stripped)
            )
            result.operations.append(op)
        except LogParseError as e:
            if not skip_malformed:
                raise LogParseError(f"Line {lineno}: {e}", line_number=lineno) from e
            logger.debug("Skipping malformed log line %d: %s", lineno, e)
            result.skipped_count += 1

    return result


def stable_id(line_number: int, line: str) -> str:
    """Deterministic operation ID for a log line."""
    return str(uuid.uuid5(_ID_NAMESPACE, f"{line_number}:{line}"))
