"""Shared test fixtures for operation history tests."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from ops_history.models import ChangeType, Operation

WORKSPACE = "/Users/test/project"


@pytest.fixture
def workspace_root() -> str:
    return WORKSPACE


@pytest.fixture
def sample_operations() -> list[Operation]:
    """Operations in non-decreasing timestamp order, one per hour from 10:00."""
    return [
        Operation(
            id="op-1",
            timestamp="2025-09-18T10:00:00.000Z",
            tool="Write",
            summary="Write operation on /Users/test/project/src/index.ts",
            change_type=ChangeType.CREATE,
            file_path="/Users/test/project/src/index.ts",
        ),
        Operation(
            id="op-2",
            timestamp="2025-09-18T11:00:00.000Z",
            tool="Read",
            summary="Read operation on /Users/test/project/src/utils/helpers.ts",
            change_type=ChangeType.READ,
            file_path="/Users/test/project/src/utils/helpers.ts",
        ),
        Operation(
            id="op-3",
            timestamp="2025-09-18T12:00:00.000Z",
            tool="Edit",
            summary="Edit operation on /Users/test/project/src/utils/helpers.ts",
            change_type=ChangeType.UPDATE,
            file_path="/Users/test/project/src/utils/helpers.ts",
        ),
        Operation(
            id="op-4",
            timestamp="2025-09-18T13:00:00.000Z",
            tool="Grep",
            summary="Grep search for pattern: TODO",
            change_type=ChangeType.READ,
        ),
        Operation(
            id="op-5",
            timestamp="2025-09-18T14:00:00.000Z",
            tool="Delete",
            summary="Delete operation on /Users/test/project/src/components/ui/Button.tsx",
            change_type=ChangeType.DELETE,
            file_path="/Users/test/project/src/components/ui/Button.tsx",
        ),
    ]


@pytest.fixture
def log_lines() -> list[dict]:
    """Raw JSONL log entries as written by the assistant."""
    return [
        {
            "timestamp": "2025-09-18T10:00:00.000Z",
            "tool": "Write",
            "parameters": {"file_path": "/Users/test/project/src/index.ts", "content": "x"},
        },
        {
            "timestamp": "2025-09-18T11:00:00.000Z",
            "tool": "Edit",
            "parameters": {
                "file_path": "/Users/test/project/src/index.ts",
                "old_string": "x",
                "new_string": "y",
            },
        },
        {
            "timestamp": "2025-09-18T12:00:00.000Z",
            "tool": "Bash",
            "parameters": {"command": "npm test", "workingDirectory": "/Users/test/project"},
            "result": {"stdout": "\nPASS src/index.test.ts\nTests: 3 passed\n", "stderr": "", "exitCode": 0},
        },
        {
            "timestamp": "2025-09-18T13:00:00.000Z",
            "tool": "Read",
            "parameters": {"file_path": "/Users/test/project/README.md"},
        },
    ]


@pytest.fixture
def log_file(tmp_path: Path, log_lines: list[dict]) -> Path:
    """A JSONL log on disk with one malformed line in the middle."""
    path = tmp_path / "session.jsonl"
    lines = [json.dumps(entry) for entry in log_lines]
    lines.insert(2, "{not json")
    path.write_text("\n".join(lines) + "\n")
    return path
