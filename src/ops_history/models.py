"""Data types shared by the parser, filters, and output layers."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .config import CHANGE_TYPE_LABELS


class ChangeType(str, Enum):
    """Effect of an operation on a file."""

    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    READ = "read"

    @classmethod
    def parse(cls, value: ChangeType | str) -> ChangeType:
        """Parse a member, value, or name (case-insensitive).

        Raises ``ValueError`` for anything outside the enumeration.
        """
        if isinstance(value, cls):
            return value
        key = str(value).strip().lower()
        for member in cls:
            if member.value == key:
                return member
        raise ValueError(
            f"Unknown change type: {value!r} (expected one of: {', '.join(m.value for m in cls)})"
        )

    @property
    def label(self) -> str:
        return CHANGE_TYPE_LABELS[self.value]


@dataclass(frozen=True)
class Operation:
    """One entry in the tracked history of file-affecting actions."""

    id: str
    timestamp: str
    tool: str
    summary: str
    # ChangeType for records we produce; raw strings or None may arrive from external sources
    change_type: ChangeType | str | None = None
    file_path: str | None = None
    # Raw log payload for the bash and diff views; not part of equality
    parameters: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)
    result: Any = field(default=None, compare=False, repr=False)

    def to_dict(self) -> dict[str, Any]:
        change = self.change_type
        d: dict[str, Any] = {
            "id": self.id,
            "timestamp": self.timestamp,
            "tool": self.tool,
            "summary": self.summary,
            "changeType": change.value if isinstance(change, ChangeType) else change,
        }
        if self.file_path:
            d["filePath"] = self.file_path
        return d

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Operation:
        raw_change = data.get("changeType")
        try:
            change: ChangeType | str | None = (
                ChangeType.parse(raw_change) if raw_change is not None else None
            )
        except ValueError:
            change = raw_change
        return cls(
            id=str(data.get("id", "")),
            timestamp=str(data.get("timestamp", "")),
            tool=str(data.get("tool", "")),
            summary=str(data.get("summary", "")),
            change_type=change,
            file_path=data.get("filePath") or None,
        )


@dataclass
class FilterOptions:
    """Caller-supplied query options. Every field is optional."""

    file_path: str | None = None
    change_types: list[ChangeType | str] = field(default_factory=list)
    since: str | None = None
    until: str | None = None
    limit: int | None = None
