"""File path matching against absolute, workspace-relative, and partial patterns.

Matching priority (first match wins):
  1. Exact match of the normalized paths (absolute patterns)
  2. Pattern resolved against the workspace root (``src/a.ts``, ``./src/a.ts``)
  3. Unanchored substring match (``a.ts``, ``src/utils``, ``components/ui``)

Partial matching does not respect segment boundaries: ``rc/index`` matches
``/ws/src/index.ts``.
"""

from __future__ import annotations

import posixpath
import re

_MULTI_SLASH = re.compile(r"/+")


class PathMatcher:
    """Match file paths against patterns relative to a fixed workspace root."""

    def __init__(self, workspace_root: str) -> None:
        self.workspace_root = self.normalize(str(workspace_root))

    @staticmethod
    def normalize(path: str) -> str:
        """Normalize separators: backslashes to ``/``, collapse ``//``, drop a trailing ``/``."""
        if not path:
            return ""
        normalized = _MULTI_SLASH.sub("/", path.replace("\\", "/"))
        if len(normalized) > 1 and normalized.endswith("/"):
            normalized = normalized[:-1]
        return normalized

    def is_match(self, file_path: str, pattern: str) -> bool:
        """Check whether ``file_path`` matches ``pattern``. Empty input never matches."""
        if not file_path or not pattern:
            return False

        path = self.normalize(file_path)
        pat = self.normalize(pattern)

        if path == pat:
            return True
        if self._is_relative_match(path, pat):
            return True
        return pat in path

    def get_relative_path(self, absolute_path: str) -> str | None:
        """Path relative to the workspace root.

        Returns ``"."`` for the root itself and ``None`` when the path lies
        outside the workspace (or cannot be computed).
        """
        try:
            rel = posixpath.relpath(self.normalize(absolute_path), self.workspace_root)
        except ValueError:
            return None

        if rel == ".." or rel.startswith("../"):
            return None
        if rel == ".":
            return "."
        return self.normalize(rel)

    def _is_relative_match(self, path: str, pattern: str) -> bool:
        clean = pattern[2:] if pattern.startswith("./") else pattern
        if posixpath.isabs(clean):
            return False
        expected = self.normalize(posixpath.normpath(posixpath.join(self.workspace_root, clean)))
        return path == expected
