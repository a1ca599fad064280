"""Operation filtering — file path, change type, time range, limit.

Every stage takes an ordered sequence of operations and returns a new list
holding the matching subsequence in the original order. Nothing is sorted
and no operation is mutated.

:func:`filter_operations` composes the stages in a fixed order::

    file path -> change types -> since -> until -> limit

``limit`` is applied last so that "first N" means the first N operations
that passed every other filter.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import datetime, timezone

from .config import NO_FILE_KEY
from .matcher import PathMatcher
from .models import ChangeType, FilterOptions, Operation


class TimestampParseError(ValueError):
    """A time bound could not be parsed as an ISO-8601 instant."""

    def __init__(self, value: object) -> None:
        super().__init__(f"Invalid timestamp format: {value}")
        self.value = value


# ---------------------------------------------------------------------------
# Timestamps
# ---------------------------------------------------------------------------


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp into an aware datetime.

    A trailing ``Z`` means UTC; timestamps without an offset are read as UTC.
    Raises :class:`TimestampParseError` naming the value on failure.
    """
    if not isinstance(value, str) or not value.strip():
        raise TimestampParseError(value)
    text = value.strip()
    if text[-1] in "zZ":
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError as e:
        raise TimestampParseError(value) from e
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def operation_instant(op: Operation) -> datetime | None:
    """Instant of an operation, or ``None`` if its timestamp is malformed."""
    try:
        return parse_timestamp(op.timestamp)
    except TimestampParseError:
        return None


# ---------------------------------------------------------------------------
# Single-predicate stages
# ---------------------------------------------------------------------------


def filter_by_file_path(
    operations: Sequence[Operation],
    pattern: str | None,
    workspace_root: str | None = None,
) -> list[Operation]:
    """Keep operations whose file path matches ``pattern``.

    With a ``workspace_root`` the decision is delegated to
    :class:`~ops_history.matcher.PathMatcher` (absolute, relative, partial).
    Without one, a lightweight match is used: exact, substring, or a
    leading-wildcard glob such as ``*.py`` (suffix match).

    An empty pattern keeps everything. Operations without a file path are
    dropped whenever a pattern is given.
    """
    if not pattern:
        return list(operations)

    if workspace_root:
        matcher = PathMatcher(workspace_root)
        return [op for op in operations if op.file_path and matcher.is_match(op.file_path, pattern)]

    return [op for op in operations if op.file_path and _simple_match(op.file_path, pattern)]


def _simple_match(file_path: str, pattern: str) -> bool:
    if file_path == pattern or pattern in file_path:
        return True
    if pattern.startswith("*"):
        return file_path.endswith(pattern[1:])
    return False


def filter_by_change_type(
    operations: Sequence[Operation],
    change_types: Iterable[ChangeType | str] | None = None,
) -> list[Operation]:
    """Keep operations whose change type is in ``change_types``.

    ``None`` or empty keeps everything. With a restriction active, operations
    with a missing or unrecognized change type are dropped.
    """
    wanted = list(change_types or [])
    if not wanted:
        return list(operations)
    members = _parse_change_types(wanted)
    return [op for op in operations if op.change_type is not None and op.change_type in members]


def _parse_change_types(values: Iterable[ChangeType | str]) -> set[ChangeType]:
    # Unrecognized names are dropped; they can never match a record.
    members = set()
    for value in values:
        try:
            members.add(ChangeType.parse(value))
        except ValueError:
            continue
    return members


def filter_by_since(operations: Sequence[Operation], since: str | None) -> list[Operation]:
    """Keep operations at or after ``since`` (inclusive)."""
    if not since:
        return list(operations)
    return _keep_after(operations, parse_timestamp(since))


def filter_by_until(operations: Sequence[Operation], until: str | None) -> list[Operation]:
    """Keep operations at or before ``until`` (inclusive)."""
    if not until:
        return list(operations)
    return _keep_before(operations, parse_timestamp(until))


def filter_by_date_range(
    operations: Sequence[Operation], start: datetime, end: datetime
) -> list[Operation]:
    """Keep operations within ``[start, end]``. Naive bounds are read as UTC."""
    if start.tzinfo is None:
        start = start.replace(tzinfo=timezone.utc)
    if end.tzinfo is None:
        end = end.replace(tzinfo=timezone.utc)
    return _keep_before(_keep_after(operations, start), end)


def _keep_after(operations: Sequence[Operation], bound: datetime) -> list[Operation]:
    result = []
    for op in operations:
        instant = operation_instant(op)
        if instant is not None and instant >= bound:
            result.append(op)
    return result


def _keep_before(operations: Sequence[Operation], bound: datetime) -> list[Operation]:
    result = []
    for op in operations:
        instant = operation_instant(op)
        if instant is not None and instant <= bound:
            result.append(op)
    return result


# ---------------------------------------------------------------------------
# Composition
# ---------------------------------------------------------------------------


def filter_operations(
    operations: Sequence[Operation],
    options: FilterOptions,
    workspace_root: str | None = None,
) -> list[Operation]:
    """Apply every option in ``options`` to ``operations``.

    Malformed ``since``/``until`` bounds raise :class:`TimestampParseError`
    before any filtering happens. ``limit <= 0`` yields an empty list.
    """
    since = parse_timestamp(options.since) if options.since else None
    until = parse_timestamp(options.until) if options.until else None

    if options.limit is not None and options.limit <= 0:
        return []

    filtered = list(operations)
    if options.file_path is not None:
        filtered = filter_by_file_path(filtered, options.file_path, workspace_root)
    if options.change_types:
        filtered = filter_by_change_type(filtered, options.change_types)
    if since is not None:
        filtered = _keep_after(filtered, since)
    if until is not None:
        filtered = _keep_before(filtered, until)

    if options.limit is not None:
        filtered = filtered[: options.limit]
    return filtered


def group_by_file_path(operations: Iterable[Operation]) -> dict[str, list[Operation]]:
    """Group operations by file path, in first-seen order."""
    groups: dict[str, list[Operation]] = {}
    for op in operations:
        groups.setdefault(op.file_path or NO_FILE_KEY, []).append(op)
    return groups
