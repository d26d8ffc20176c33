"""
Configuration tree built from a data source.

Root nodes:
- "Global Configuration" (GLOBAL): ~/.claude.json and ~/.claude
- "Projects" (PROJECTS): one PROJECT node per registered project
"""

from __future__ import annotations

import logging
import os
from typing import Callable, Optional, Sequence

from ctxmirror.core.models import Node, NodeCategory, NodeKind
from ctxmirror.core.paths.calculator import split_path
from ctxmirror.services.data_sources import DataSource
from ctxmirror.services.environment import CLAUDE_DIR_NAME, CONFIG_FILE_NAME


GLOBAL_LABEL = "Global Configuration"
PROJECTS_LABEL = "Projects"


class ClaudeTreeProvider:
    """Supplies root nodes and the children of the VIRTUAL roots."""

    def __init__(
        self,
        data_source: DataSource,
        exists: Callable[[str], bool] = os.path.exists,
        is_dir: Callable[[str], bool] = os.path.isdir,
    ):
        self.data_source = data_source
        self._exists = exists
        self._is_dir = is_dir

    def get_root_nodes(self) -> list[Node]:
        return [
            Node.create(NodeKind.VIRTUAL, GLOBAL_LABEL, category=NodeCategory.GLOBAL),
            Node.create(NodeKind.VIRTUAL, PROJECTS_LABEL, category=NodeCategory.PROJECTS),
        ]

    def get_children(self, node: Node) -> Sequence[Node]:
        if node.kind != NodeKind.VIRTUAL:
            return []
        if node.category == NodeCategory.GLOBAL:
            return self._global_children()
        if node.category == NodeCategory.PROJECTS:
            return self._project_children()
        return []

    def select(self, scope: Optional[str]) -> list[Node]:
        """Root nodes limited to ``global``, ``projects`` or both (None)."""
        roots = self.get_root_nodes()
        if scope is None:
            return roots
        category = NodeCategory.from_string(scope)
        return [node for node in roots if node.category == category]

    def _global_children(self) -> list[Node]:
        children = []
        config_path = self.data_source.config_path
        claude_dir = self.data_source.claude_dir

        if self._exists(config_path):
            children.append(Node.create(
                NodeKind.FILE,
                f"~/{CONFIG_FILE_NAME}",
                source_path=config_path,
                category=NodeCategory.GLOBAL,
            ))

        if self._is_dir(claude_dir):
            children.append(Node.create(
                NodeKind.DIRECTORY,
                f"~/{CLAUDE_DIR_NAME}",
                source_path=claude_dir,
                category=NodeCategory.GLOBAL,
            ))

        return children

    def _project_children(self) -> list[Node]:
        children = []
        seen: dict[str, str] = {}
        for path in self.data_source.project_paths():
            if not self._is_dir(path):
                logging.debug(f"ClaudeTreeProvider - Skipping missing project {path}")
                continue
            parts = split_path(path)
            label = parts[-1] if parts else path
            if label in seen:
                # Both export to projects/<label>
                logging.warning(
                    f"ClaudeTreeProvider - Projects {seen[label]} and {path} share the name "
                    f"'{label}', their exports will merge"
                )
            else:
                seen[label] = path
            children.append(Node.create(
                NodeKind.PROJECT,
                label,
                source_path=path,
                category=NodeCategory.PROJECTS,
                project_name=label,
            ))
        return children
