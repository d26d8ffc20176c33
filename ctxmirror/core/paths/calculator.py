"""
Destination path calculation for exported nodes.

Maps a node's source path to a relative path under the export root:
- Global files go to ``global/`` starting at the ``.claude.json`` or ``.claude`` marker
- Project files go to ``projects/<name>/`` starting at the ``.claude`` or ``CLAUDE.md`` marker
- VIRTUAL nodes map to their bare category directory

Results always use forward slashes and never contain ``..``.
"""

from __future__ import annotations

import re
from typing import Optional, Sequence

from ctxmirror.core.models import Node, NodeCategory


GLOBAL_MARKERS = (".claude.json", ".claude")
PROJECT_MARKERS = (".claude", "CLAUDE.md")
UNKNOWN_PROJECT = "unknown-project"

_SEPARATORS = re.compile(r"[/\\]")


def split_path(path: str) -> list[str]:
    """Split on either separator, dropping empty and ``.`` components."""
    return [part for part in _SEPARATORS.split(path) if part and part != "."]


def _join(*parts: str) -> str:
    safe = []
    for part in parts:
        safe.extend(p for p in split_path(part) if p != "..")
    return "/".join(safe)


class ExportPathCalculator:
    """Computes deterministic export destinations. Holds no state."""

    def calculate(
        self,
        source_path: Optional[str],
        category: NodeCategory,
        project_name: Optional[str] = None,
        project_root: Optional[str] = None,
    ) -> str:
        """
        Compute the relative destination path for a source path.

        Args:
            source_path: Absolute source path, None for VIRTUAL nodes
            category: Export sub-root
            project_name: Project label, used for PROJECTS
            project_root: Project directory the source was listed from.
                When given, markers are only searched below it, so a
                project directory that is itself named like a marker is
                not mistaken for one.

        Returns:
            Relative path such as ``global/.claude/settings.json``
        """
        if source_path is None:
            return category.value

        parts = split_path(source_path)

        if category == NodeCategory.GLOBAL:
            return self._global_path(parts)

        name = project_name or UNKNOWN_PROJECT

        if project_root is not None:
            relative = self._relative_parts(parts, split_path(project_root))
            if relative is not None:
                return self._anchored_project_path(relative, name)

        return self._project_path(parts, name)

    def calculate_for_node(
        self,
        node: Node,
        category: NodeCategory,
        project_name: Optional[str] = None,
        project_root: Optional[str] = None,
    ) -> str:
        """Compute the destination for a node."""
        return self.calculate(node.source_path, category, project_name, project_root)

    def _global_path(self, parts: list[str]) -> str:
        category = NodeCategory.GLOBAL.value
        index = _last_index(parts, GLOBAL_MARKERS)
        if index >= 0:
            return _join(category, *parts[index:])
        return _join(category, *parts[-1:])

    def _project_path(self, parts: list[str], name: str) -> str:
        category = NodeCategory.PROJECTS.value
        start = max(_first_index(parts, (".claude",)), _first_index(parts, ("CLAUDE.md",)))

        if start < 0:
            rest = parts[-1:]
            if len(rest) == 1 and rest[0] == name:
                return _join(category, name)
            return _join(category, name, *rest)

        return _join(category, name, *parts[start:])

    def _anchored_project_path(self, relative: list[str], name: str) -> str:
        category = NodeCategory.PROJECTS.value
        if not relative:
            return _join(category, name)

        start = _first_index(relative, PROJECT_MARKERS)
        if start < 0:
            return _join(category, name, *relative[-1:])
        return _join(category, name, *relative[start:])

    @staticmethod
    def _relative_parts(parts: list[str], root_parts: list[str]) -> Optional[list[str]]:
        if len(parts) < len(root_parts) or parts[:len(root_parts)] != root_parts:
            return None
        return parts[len(root_parts):]


def _first_index(parts: Sequence[str], markers: Sequence[str]) -> int:
    for i, part in enumerate(parts):
        if part in markers:
            return i
    return -1


def _last_index(parts: Sequence[str], markers: Sequence[str]) -> int:
    for i in range(len(parts) - 1, -1, -1):
        if parts[i] in markers:
            return i
    return -1
