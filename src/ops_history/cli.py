"""Operation history — CLI entry point.

Installed as ``ops-history`` command via pyproject.toml entry point.

Commands:
    ops-history list [--file P] [--type T] [--since TS] [--until TS] [--limit N]
                                        Filter the operation log
    ops-history changes <pattern>       Change history of a file, newest first
    ops-history get <id>                View a single operation
    ops-history relpath <path>          Path relative to the workspace root
    ops-history bash [--limit N]        Shell commands, newest first
    ops-history bash-result <id>        Full output of one shell command
    ops-history diff <id>               Diff of one Edit/MultiEdit/Write operation
"""

from __future__ import annotations

import argparse
import logging
import sys
import textwrap

from . import __version__
from .engine import (
    find_log_file,
    find_workspace_root,
    list_bash_history,
    list_file_changes,
    load_operations,
    resolve_operation,
    show_bash_result,
    show_operation_diff,
)
from .filters import filter_operations
from .formatter import (
    format_bash_history,
    format_bash_result,
    format_file_changes,
    format_full,
    format_operation_diff,
    format_operations,
)
from .matcher import PathMatcher
from .models import ChangeType, FilterOptions

# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


def _split_change_types(raw: str | None) -> list[ChangeType]:
    if not raw:
        return []
    return [ChangeType.parse(t) for t in raw.split(",") if t.strip()]


def cmd_list(args: argparse.Namespace) -> None:
    """Filter the operation log."""
    operations = load_operations(find_log_file(args.log))
    options = FilterOptions(
        file_path=args.file,
        change_types=_split_change_types(args.type),
        since=args.since,
        until=args.until,
        limit=args.limit,
    )
    workspace = find_workspace_root(args.workspace)
    print(format_operations(filter_operations(operations, options, str(workspace)), fmt=args.format))


def cmd_changes(args: argparse.Namespace) -> None:
    """Show modifying operations on matching files, newest first."""
    operations = load_operations(find_log_file(args.log))
    workspace = find_workspace_root(args.workspace)
    result = list_file_changes(operations, args.pattern, workspace, limit=args.limit)
    print(format_file_changes(result, fmt=args.format))


def cmd_get(args: argparse.Namespace) -> None:
    """View a single operation."""
    operations = load_operations(find_log_file(args.log))
    op = resolve_operation(operations, args.id)
    if op is None:
        print(f"Operation '{args.id}' not found.", file=sys.stderr)
        sys.exit(1)
    print(format_full(op))


def cmd_relpath(args: argparse.Namespace) -> None:
    """Print a path relative to the workspace root."""
    workspace = find_workspace_root(args.workspace)
    rel = PathMatcher(str(workspace)).get_relative_path(args.path)
    if rel is None:
        print(f"{args.path} is outside the workspace {workspace}", file=sys.stderr)
        sys.exit(1)
    print(rel)


def cmd_bash(args: argparse.Namespace) -> None:
    """List shell commands, newest first."""
    operations = load_operations(find_log_file(args.log))
    workspace = find_workspace_root(args.workspace)
    result = list_bash_history(operations, limit=args.limit, workspace_root=workspace)
    print(format_bash_history(result, fmt=args.format))


def cmd_bash_result(args: argparse.Namespace) -> None:
    operations = load_operations(find_log_file(args.log))
    workspace = find_workspace_root(args.workspace)
    print(format_bash_result(show_bash_result(operations, args.id, workspace), fmt=args.format))


def cmd_diff(args: argparse.Namespace) -> None:
    operations = load_operations(find_log_file(args.log))
    print(format_operation_diff(show_operation_diff(operations, args.id), fmt=args.format))


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    """Build the CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="ops-history",
        description="Query the file operation history of an AI coding session",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent("""\
            Examples:
              ops-history --log session.jsonl list --file src/app.py
              ops-history list --type create,delete --since 2025-09-18T00:00:00Z
              ops-history list --file '*.py' --limit 10
              ops-history changes utils/helpers.py
              ops-history relpath /home/me/project/src/app.py
              ops-history bash --limit 20
              ops-history diff <operation-id>
        """),
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--log", help="JSONL operation log (default: $OPS_HISTORY_LOG)")
    parser.add_argument("--workspace", help="Workspace root (auto-detected if omitted)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")

    sub = parser.add_subparsers(dest="command", required=True)

    # --- list ---
    p_list = sub.add_parser("list", help="Filter the operation log")
    p_list.add_argument("--file", help="Path pattern (absolute, relative, or partial)")
    p_list.add_argument("--type", "-t", help="Change types, comma-separated (create,update,...)")
    p_list.add_argument("--since", help="Inclusive lower bound (ISO-8601)")
    p_list.add_argument("--until", help="Inclusive upper bound (ISO-8601)")
    p_list.add_argument("--limit", "-l", type=int, help="Max results, applied last")
    p_list.add_argument(
        "--format", "-f", choices=["brief", "compact", "json"], default="compact"
    )
    p_list.set_defaults(func=cmd_list)

    # --- changes ---
    p_changes = sub.add_parser("changes", help="Change history of a file, newest first")
    p_changes.add_argument("pattern", help="File path or pattern")
    p_changes.add_argument(
        "--limit", "-l", type=int, default=None, help="Max results (default: 100, max: 1000)"
    )
    p_changes.add_argument(
        "--format", "-f", choices=["brief", "compact", "json"], default="compact"
    )
    p_changes.set_defaults(func=cmd_changes)

    # --- get ---
    p_get = sub.add_parser("get", help="View a single operation")
    p_get.add_argument("id", help="Operation ID")
    p_get.set_defaults(func=cmd_get)

    # --- relpath ---
    p_rel = sub.add_parser("relpath", help="Path relative to the workspace root")
    p_rel.add_argument("path", help="Absolute path")
    p_rel.set_defaults(func=cmd_relpath)

    # --- bash ---
    p_bash = sub.add_parser("bash", help="Shell commands, newest first")
    p_bash.add_argument(
        "--limit", "-l", type=int, default=None, help="Max results (default: 100, max: 1000)"
    )
    p_bash.add_argument("--format", "-f", choices=["brief", "compact", "json"], default="compact")
    p_bash.set_defaults(func=cmd_bash)

    # --- bash-result ---
    p_bres = sub.add_parser("bash-result", help="Full output of one shell command")
    p_bres.add_argument("id", help="Bash operation ID")
    p_bres.add_argument("--format", "-f", choices=["text", "json"], default="text")
    p_bres.set_defaults(func=cmd_bash_result)

    # --- diff ---
    p_diff = sub.add_parser("diff", help="Diff of one Edit/MultiEdit/Write operation")
    p_diff.add_argument("id", help="Operation ID")
    p_diff.add_argument("--format", "-f", choices=["text", "json"], default="text")
    p_diff.set_defaults(func=cmd_diff)

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    try:
        args.func(args)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
