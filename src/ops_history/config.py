"""Constants and configuration for operation history tracking."""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Environment
# ---------------------------------------------------------------------------

WORKSPACE_ENV_VAR = "OPS_WORKSPACE_ROOT"
LOG_FILE_ENV_VAR = "OPS_HISTORY_LOG"

# Marker files/directories that identify a workspace root when walking up from CWD
ROOT_INDICATORS: list[str] = [".git", "package.json", "pyproject.toml", "tsconfig.json", ".claude"]

# ---------------------------------------------------------------------------
# Log parsing
# ---------------------------------------------------------------------------

FILE_OPERATION_TOOLS: frozenset[str] = frozenset({"Edit", "Write", "Read", "MultiEdit", "Delete"})

FILE_PATH_KEYS: list[str] = ["file_path", "filepath", "path"]

# Tool name -> change type value. Unknown tools are treated as read-only.
TOOL_CHANGE_TYPES: dict[str, str] = {
    "Write": "create",
    "Edit": "update",
    "MultiEdit": "update",
    "Delete": "delete",
    "Read": "read",
    "Bash": "read",
    "Grep": "read",
    "Glob": "read",
}

DEFAULT_CHANGE_TYPE = "read"

NO_FILE_KEY = "<no-file>"

# ---------------------------------------------------------------------------
# Query limits
# ---------------------------------------------------------------------------

DEFAULT_LIMIT = 100
MAX_LIMIT = 1000

# Change types that count as modifications in the file-changes query
MODIFYING_CHANGE_TYPES: list[str] = ["create", "update", "delete"]

CHANGE_TYPE_LABELS: dict[str, str] = {
    "create": "CREATE",
    "update": "UPDATE",
    "delete": "DELETE",
    "read": "READ",
}
