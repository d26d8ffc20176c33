"""
Configuration tree scanner.

Walks a forest of nodes and builds an ExportPlan:
- VIRTUAL nodes become placeholder directories and are expanded
  through a children provider
- PROJECT nodes become a project root directory and are expanded
  through a directory lister
- DIRECTORY nodes are copied as a whole subtree (no recursion)
- FILE nodes are copied individually

The scanner never writes. Its only I/O is the read-only listing done
by the injected directory lister.
"""

from __future__ import annotations

import logging
import os
import time
from dataclasses import dataclass, field
from typing import Optional, Protocol, Sequence

from ctxmirror.core.models import (
    DirEntry,
    ExportDirectory,
    ExportFile,
    ExportMetadata,
    ExportPlan,
    Node,
    NodeCategory,
    NodeKind,
)
from ctxmirror.core.paths.calculator import ExportPathCalculator


class ChildrenProvider(Protocol):
    """Supplies the children of VIRTUAL nodes."""

    def get_children(self, node: Node) -> Sequence[Node]: ...


class DirectoryLister(Protocol):
    """Lists a real directory. Entries come back in display order."""

    def list(self, path: str) -> Sequence[DirEntry]: ...


@dataclass
class _PlanBuilder:
    directories_to_create: list[ExportDirectory] = field(default_factory=list)
    directories_to_copy: list[ExportDirectory] = field(default_factory=list)
    files_to_copy: list[ExportFile] = field(default_factory=list)

    def build(self, source_roots: list[str]) -> ExportPlan:
        return ExportPlan(
            directories_to_create=tuple(self.directories_to_create),
            directories_to_copy=tuple(self.directories_to_copy),
            files_to_copy=tuple(self.files_to_copy),
            metadata=ExportMetadata(
                timestamp=int(time.time() * 1000),
                source_roots=tuple(source_roots),
            ),
        )


class ExportScanner:
    """
    Builds export plans from node trees.

    Usage:
        scanner = ExportScanner(LocalFileSystem(), children_provider=tree)
        plan = scanner.scan(tree.get_root_nodes())
    """

    def __init__(
        self,
        directory_lister: DirectoryLister,
        children_provider: Optional[ChildrenProvider] = None,
        calculator: Optional[ExportPathCalculator] = None,
    ):
        self.directory_lister = directory_lister
        self.children_provider = children_provider
        self.calculator = calculator or ExportPathCalculator()
        self._cancelled = False

    def scan(
        self,
        root_nodes: Sequence[Node],
        children_provider: Optional[ChildrenProvider] = None,
    ) -> ExportPlan:
        """
        Scan root nodes depth-first and return the resulting plan.

        Args:
            root_nodes: Forest to export, in order
            children_provider: Overrides the provider given at construction

        Returns:
            An immutable ExportPlan
        """
        provider = children_provider or self.children_provider
        builder = _PlanBuilder()

        for root in root_nodes:
            if self._cancelled:
                logging.info("ExportScanner - Scan cancelled")
                break
            self._scan_node(root, builder, root.category or NodeCategory.GLOBAL, "", None, provider)

        source_roots = [node.source_path for node in root_nodes if node.source_path]
        plan = builder.build(source_roots)
        logging.debug(f"ExportScanner - Planned {plan.summary()}")
        return plan

    def cancel(self) -> None:
        """Stop descending. The plan built so far is returned."""
        self._cancelled = True

    def reset(self) -> None:
        self._cancelled = False

    @property
    def is_cancelled(self) -> bool:
        return self._cancelled

    def _scan_node(
        self,
        node: Node,
        builder: _PlanBuilder,
        category: NodeCategory,
        project_name: str,
        project_root: Optional[str],
        provider: Optional[ChildrenProvider],
    ) -> None:
        if self._cancelled:
            return

        if node.kind == NodeKind.VIRTUAL:
            self._scan_virtual(node, builder, category, project_name, provider)

        elif node.kind == NodeKind.PROJECT:
            self._scan_project(node, builder, provider)

        elif node.kind == NodeKind.DIRECTORY:
            if node.source_path is None:
                logging.warning(f"ExportScanner - Directory node '{node.label}' has no path, skipping")
                return
            builder.directories_to_copy.append(
                self._directory_entry(node, category, project_name, project_root)
            )

        elif node.kind == NodeKind.FILE:
            if node.source_path is None:
                logging.warning(f"ExportScanner - File node '{node.label}' has no path, skipping")
                return
            builder.files_to_copy.append(
                self._file_entry(node, category, project_name, project_root)
            )

        else:
            logging.debug(f"ExportScanner - Skipping {node.kind.name} node '{node.label}'")

    def _scan_virtual(
        self,
        node: Node,
        builder: _PlanBuilder,
        category: NodeCategory,
        project_name: str,
        provider: Optional[ChildrenProvider],
    ) -> None:
        virtual_category = node.category or category
        builder.directories_to_create.append(ExportDirectory(
            src_abs_path="",
            dst_relative_path=self.calculator.calculate(None, virtual_category),
            label=virtual_category.value,
            category=virtual_category,
            project_name="",
        ))

        if provider is None:
            logging.warning(f"ExportScanner - No children provider for virtual node '{node.label}'")
            return

        for child in provider.get_children(node):
            self._scan_node(child, builder, virtual_category, project_name, None, provider)

    def _scan_project(
        self,
        node: Node,
        builder: _PlanBuilder,
        provider: Optional[ChildrenProvider],
    ) -> None:
        project_name = node.label
        project_root = node.source_path

        if project_root is None:
            logging.warning(f"ExportScanner - Project '{project_name}' has no path, skipping")
            return

        builder.directories_to_create.append(
            self._directory_entry(node, NodeCategory.PROJECTS, project_name, project_root)
        )

        try:
            entries = self.directory_lister.list(project_root)
        except OSError as e:
            logging.warning(f"ExportScanner - Failed to list project {project_root}: {e}")
            return

        for entry in entries:
            child = Node.create(
                kind=NodeKind.DIRECTORY if entry.is_directory else NodeKind.FILE,
                label=entry.name,
                source_path=os.path.join(project_root, entry.name),
                category=NodeCategory.PROJECTS,
                project_name=project_name,
            )
            self._scan_node(child, builder, NodeCategory.PROJECTS, project_name, project_root, provider)

    def _directory_entry(
        self,
        node: Node,
        category: NodeCategory,
        project_name: str,
        project_root: Optional[str],
    ) -> ExportDirectory:
        return ExportDirectory(
            src_abs_path=node.source_path or "",
            dst_relative_path=self.calculator.calculate_for_node(node, category, project_name, project_root),
            label=node.label,
            category=category,
            project_name=project_name,
        )

    def _file_entry(
        self,
        node: Node,
        category: NodeCategory,
        project_name: str,
        project_root: Optional[str],
    ) -> ExportFile:
        return ExportFile(
            src_abs_path=node.source_path or "",
            dst_relative_path=self.calculator.calculate_for_node(node, category, project_name, project_root),
            kind=node.kind,
            label=node.label,
            category=category,
            project_name=project_name,
        )
