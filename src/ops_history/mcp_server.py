"""MCP server — exposes the operation history as MCP tools for LLM agents.

Thin wrappers over the engine, filters, and formatter modules.
Runs over stdio via the ``mcp`` Python SDK.

Usage:
    # stdio (Claude Desktop, VS Code Copilot, etc.)
    ops-history-mcp-stdio

    # With explicit log and workspace
    OPS_HISTORY_LOG=/path/to/session.jsonl OPS_WORKSPACE_ROOT=/path/to/project ops-history-mcp-stdio
"""

from __future__ import annotations

import logging
import sys
from typing import Any

# Lazy MCP import — provide helpful error instead of ImportError crash
_MCP_AVAILABLE = False
try:
    from mcp.server import Server
    from mcp.types import TextContent, Tool

    _MCP_AVAILABLE = True
except ImportError:
    Server = None  # type: ignore[assignment,misc]
    TextContent = None  # type: ignore[assignment,misc]
    Tool = None  # type: ignore[assignment,misc]

from .engine import (  # noqa: E402
    find_log_file,
    find_workspace_root,
    list_bash_history,
    list_file_changes,
    load_operations,
    resolve_operation,
    show_bash_result,
    show_operation_diff,
)
from .filters import filter_operations  # noqa: E402
from .formatter import (  # noqa: E402
    format_bash_history,
    format_bash_result,
    format_file_changes,
    format_full,
    format_operation_diff,
    format_operations,
)
from .matcher import PathMatcher  # noqa: E402
from .models import ChangeType, FilterOptions  # noqa: E402

logger = logging.getLogger(__name__)

_CHANGE_TYPE_VALUES = [c.value for c in ChangeType]

# ---------------------------------------------------------------------------
# Server factory
# ---------------------------------------------------------------------------


def create_mcp_server(name: str = "ops-history") -> Server:
    """Create and configure the MCP server with all history tools."""
    if not _MCP_AVAILABLE:
        raise ImportError("MCP SDK not installed. Install with:\n  pip install mcp\n")
    server = Server(name)
    _register_tools(server)
    _register_handlers(server)
    return server


# ---------------------------------------------------------------------------
# Tool definitions
# ---------------------------------------------------------------------------


def _build_tools() -> list:
    """Build tool definitions. Returns empty list if MCP SDK not available."""
    if not _MCP_AVAILABLE:
        return []
    return [
        Tool(
            name="ops_list_operations",
            description=(
                "List recorded file operations (reads, writes, edits, deletes) in log order. "
                "Filter by file path pattern, change type, and time range; "
                "limit applies after all other filters."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "file_path": {
                        "type": "string",
                        "description": (
                            "Path pattern: absolute path, path relative to the workspace root "
                            "('src/app.py', './src/app.py'), or any partial path ('app.py')."
                        ),
                    },
                    "change_types": {
                        "type": "array",
                        "items": {"type": "string", "enum": _CHANGE_TYPE_VALUES},
                        "description": "Change types to keep. Empty = all.",
                    },
                    "since": {
                        "type": "string",
                        "description": "Inclusive lower bound, ISO-8601 (e.g. 2025-09-18T14:30:45.123Z).",
                    },
                    "until": {
                        "type": "string",
                        "description": "Inclusive upper bound, ISO-8601.",
                    },
                    "limit": {
                        "type": "integer",
                        "description": "Maximum number of results, applied last.",
                    },
                    "format": {
                        "type": "string",
                        "enum": ["brief", "compact", "json"],
                        "default": "compact",
                        "description": "Output format.",
                    },
                },
                "required": [],
            },
        ),
        Tool(
            name="ops_list_file_changes",
            description=(
                "Change history for a file or path pattern, newest first. "
                "Excludes read-only operations."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "file_path": {
                        "type": "string",
                        "description": "File path or pattern (absolute, relative, or partial).",
                    },
                    "limit": {
                        "type": "integer",
                        "description": "Maximum number of operations (1-1000). Default 100.",
                        "default": 100,
                    },
                    "format": {
                        "type": "string",
                        "enum": ["brief", "compact", "json"],
                        "default": "compact",
                        "description": "Output format.",
                    },
                },
                "required": ["file_path"],
            },
        ),
        Tool(
            name="ops_get_operation",
            description="Get full details of a single operation by ID.",
            inputSchema={
                "type": "object",
                "properties": {
                    "id": {"type": "string", "description": "Operation ID."},
                },
                "required": ["id"],
            },
        ),
        Tool(
            name="ops_relative_path",
            description=(
                "Resolve a path relative to the workspace root. "
                "Reports paths outside the workspace instead of climbing with '..'."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "path": {"type": "string", "description": "Absolute path to resolve."},
                },
                "required": ["path"],
            },
        ),
        Tool(
            name="ops_list_bash_history",
            description=(
                "List shell commands run during the session, newest first, "
                "with exit code, working directory and a one-line output summary."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "limit": {
                        "type": "integer",
                        "description": "Maximum number of commands (1-1000). Default 100.",
                        "default": 100,
                    },
                    "format": {
                        "type": "string",
                        "enum": ["brief", "compact", "json"],
                        "default": "compact",
                        "description": "Output format.",
                    },
                },
                "required": [],
            },
        ),
        Tool(
            name="ops_show_bash_result",
            description="Full stdout and stderr of one Bash command by ID.",
            inputSchema={
                "type": "object",
                "properties": {
                    "id": {"type": "string", "description": "Bash operation ID."},
                    "format": {
                        "type": "string",
                        "enum": ["text", "json"],
                        "default": "text",
                        "description": "Output format.",
                    },
                },
                "required": ["id"],
            },
        ),
        Tool(
            name="ops_show_operation_diff",
            description=(
                "Unified diff of one Edit, MultiEdit or Write operation, "
                "rebuilt from the logged tool parameters."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "id": {"type": "string", "description": "Operation ID."},
                    "format": {
                        "type": "string",
                        "enum": ["text", "json"],
                        "default": "text",
                        "description": "Output format.",
                    },
                },
                "required": ["id"],
            },
        ),
    ]


# Module-level TOOLS — populated lazily so the module can be imported without MCP SDK
TOOLS: list = _build_tools()


def _register_tools(server: Server) -> None:
    """Register tool listing handler."""

    @server.list_tools()
    async def list_tools() -> list[Tool]:
        return TOOLS


# ---------------------------------------------------------------------------
# Tool handlers
# ---------------------------------------------------------------------------


def _text_response(text: str) -> list[TextContent]:
    """Wrap a string as MCP TextContent."""
    return [TextContent(type="text", text=text)]


def _workspace_root() -> str:
    return str(find_workspace_root(None))


def _load() -> list:
    return load_operations(find_log_file(None))


def _register_handlers(server: Server) -> None:
    """Register all tool call handlers."""

    @server.call_tool()
    async def call_tool(name: str, arguments: dict[str, Any]) -> list[TextContent]:
        return _dispatch(name, arguments or {})


def _dispatch(name: str, arguments: dict[str, Any]) -> list[TextContent]:
    """Route a tool call to its handler, reporting failures as text."""
    try:
        if name == "ops_list_operations":
            return _handle_list_operations(arguments)
        elif name == "ops_list_file_changes":
            return _handle_list_file_changes(arguments)
        elif name == "ops_get_operation":
            return _handle_get_operation(arguments)
        elif name == "ops_relative_path":
            return _handle_relative_path(arguments)
        elif name == "ops_list_bash_history":
            return _handle_list_bash_history(arguments)
        elif name == "ops_show_bash_result":
            return _handle_show_bash_result(arguments)
        elif name == "ops_show_operation_diff":
            return _handle_show_operation_diff(arguments)
        else:
            return _text_response(f"Unknown tool: {name}")
    except SystemExit as e:
        return _text_response(f"Error: {e}")
    except ValueError as e:
        return _text_response(f"Error in {name}: {e}")
    except Exception as e:
        logger.exception("Tool %s failed", name)
        return _text_response(f"Error in {name}: {e}")


def _options_from_args(args: dict[str, Any]) -> FilterOptions:
    return FilterOptions(
        file_path=args.get("file_path"),
        change_types=[ChangeType.parse(c) for c in args.get("change_types") or []],
        since=args.get("since"),
        until=args.get("until"),
        limit=args.get("limit"),
    )


def _handle_list_operations(args: dict[str, Any]) -> list[TextContent]:
    options = _options_from_args(args)
    operations = filter_operations(_load(), options, workspace_root=_workspace_root())
    return _text_response(format_operations(operations, fmt=args.get("format", "compact")))


def _handle_list_file_changes(args: dict[str, Any]) -> list[TextContent]:
    result = list_file_changes(
        _load(),
        args.get("file_path", ""),
        workspace_root=_workspace_root(),
        limit=args.get("limit"),
    )
    return _text_response(format_file_changes(result, fmt=args.get("format", "compact")))


def _handle_get_operation(args: dict[str, Any]) -> list[TextContent]:
    op = resolve_operation(_load(), args["id"])
    if op is None:
        return _text_response(f"Operation '{args['id']}' not found.")
    return _text_response(format_full(op))


def _handle_relative_path(args: dict[str, Any]) -> list[TextContent]:
    root = _workspace_root()
    rel = PathMatcher(root).get_relative_path(args["path"])
    if rel is None:
        return _text_response(f"{args['path']} is outside the workspace {root}")
    return _text_response(rel)


def _handle_list_bash_history(args: dict[str, Any]) -> list[TextContent]:
    result = list_bash_history(_load(), limit=args.get("limit"), workspace_root=_workspace_root())
    return _text_response(format_bash_history(result, fmt=args.get("format", "compact")))


def _handle_show_bash_result(args: dict[str, Any]) -> list[TextContent]:
    cmd = show_bash_result(_load(), args.get("id", ""), workspace_root=_workspace_root())
    return _text_response(format_bash_result(cmd, fmt=args.get("format", "text")))


def _handle_show_operation_diff(args: dict[str, Any]) -> list[TextContent]:
    diff = show_operation_diff(_load(), args.get("id", ""))
    return _text_response(format_operation_diff(diff, fmt=args.get("format", "text")))


# ---------------------------------------------------------------------------
# Entry points
# ---------------------------------------------------------------------------


def main_stdio() -> None:
    """Run the MCP server over stdio transport."""
    if not _MCP_AVAILABLE:
        print("ERROR: MCP SDK not installed.\nInstall with:\n  pip install mcp", file=sys.stderr)
        sys.exit(1)

    import asyncio

    from mcp.server.stdio import stdio_server

    logging.basicConfig(level=logging.INFO, stream=sys.stderr)
    server = create_mcp_server()

    async def run() -> None:
        async with stdio_server() as (read_stream, write_stream):
            await server.run(read_stream, write_stream, server.create_initialization_options())

    asyncio.run(run())


if __name__ == "__main__":
    main_stdio()
