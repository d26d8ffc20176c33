"""
Core data models for configuration export and import.

This module defines the data structures shared across the application:
- Tree node models (global config, projects, directories, files)
- Export plan models
- Execution result and progress models
- Error types

All models are designed to be:
- UI-agnostic (can be used from the CLI or a Qt frontend)
- Immutable where practical (nodes and plans are frozen)
- Type-hinted for IDE support
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, Flag, auto
from typing import Callable, Optional


# =============================================================================
# Enumerations
# =============================================================================

class NodeCategory(Enum):
    """Export sub-root a node belongs to. The value is the directory name."""
    GLOBAL = "global"       # ~/.claude.json and ~/.claude
    PROJECTS = "projects"   # Registered project directories

    @classmethod
    def from_string(cls, value: str) -> 'NodeCategory':
        """Create from a category value or member name."""
        for category in cls:
            if category.value == value.lower():
                return category
        return cls[value.upper()]


class NodeKind(Enum):
    """Kind of node in the configuration tree."""
    VIRTUAL = auto()    # Synthetic grouping node, no backing path
    PROJECT = auto()    # Registered project root directory
    DIRECTORY = auto()  # Any other real directory
    FILE = auto()       # Real file
    ROOT = auto()       # Tree root marker, never exported


class NodeCapability(Flag):
    """What can be done with a node. Computed once when the node is created."""
    HAS_CHILDREN = auto()   # Node can be expanded
    HAS_PATH = auto()       # Node is backed by a filesystem path
    EXPORTABLE = auto()     # Node contributes to an export plan
    COPY_PATH = auto()      # Path can be copied to the clipboard
    OPENABLE = auto()       # File can be opened in an editor


class TransferDirection(Enum):
    """Direction of a plan execution."""
    EXPORT = auto()  # Source tree -> export root
    IMPORT = auto()  # Export root -> source tree


class OverwritePolicy(Enum):
    """How existing destination files are treated."""
    OVERWRITE = auto()      # Replace existing files
    SKIP_EXISTING = auto()  # Leave existing files untouched


# =============================================================================
# Tree Models
# =============================================================================

def _capabilities_for(kind: NodeKind, has_path: bool) -> NodeCapability:
    caps = NodeCapability(0)
    if kind in (NodeKind.VIRTUAL, NodeKind.PROJECT, NodeKind.DIRECTORY, NodeKind.ROOT):
        caps |= NodeCapability.HAS_CHILDREN
    if has_path:
        caps |= NodeCapability.HAS_PATH | NodeCapability.COPY_PATH
    if kind != NodeKind.ROOT:
        caps |= NodeCapability.EXPORTABLE
    if kind == NodeKind.FILE and has_path:
        caps |= NodeCapability.OPENABLE
    return caps


@dataclass(frozen=True)
class Node:
    """
    A node in the configuration tree.

    `source_path` is absent only for VIRTUAL nodes. Use `Node.create`
    so that capabilities are derived from the kind and path.
    """
    kind: NodeKind
    label: str
    source_path: Optional[str] = None
    category: Optional[NodeCategory] = None
    project_name: Optional[str] = None
    capabilities: NodeCapability = NodeCapability(0)

    @classmethod
    def create(
        cls,
        kind: NodeKind,
        label: str,
        source_path: Optional[str] = None,
        category: Optional[NodeCategory] = None,
        project_name: Optional[str] = None,
    ) -> 'Node':
        """Create a node with its capability set computed."""
        return cls(
            kind=kind,
            label=label,
            source_path=source_path or None,
            category=category,
            project_name=project_name,
            capabilities=_capabilities_for(kind, bool(source_path)),
        )

    @property
    def has_path(self) -> bool:
        return self.source_path is not None

    def can(self, capability: NodeCapability) -> bool:
        """Check whether the node carries a capability."""
        return capability in self.capabilities


@dataclass(frozen=True)
class DirEntry:
    """One row returned by a directory lister."""
    name: str
    is_directory: bool


# =============================================================================
# Export Plan Models
# =============================================================================

@dataclass(frozen=True)
class ExportDirectory:
    """A directory to create or to copy recursively."""
    src_abs_path: str
    dst_relative_path: str
    label: str
    category: NodeCategory
    project_name: str = ""

    @property
    def is_placeholder(self) -> bool:
        """True for the empty category directory emitted for a VIRTUAL node."""
        return not self.src_abs_path and self.dst_relative_path == self.category.value


@dataclass(frozen=True)
class ExportFile:
    """A single file to copy."""
    src_abs_path: str
    dst_relative_path: str
    kind: NodeKind
    label: str
    category: NodeCategory
    project_name: str = ""


@dataclass(frozen=True)
class ExportMetadata:
    """Information about when and from where a plan was built."""
    timestamp: int  # Milliseconds since the epoch
    source_roots: tuple[str, ...] = ()


@dataclass(frozen=True)
class ExportPlan:
    """
    Immutable description of an export.

    `directories_to_create` holds empty placeholder directories,
    `directories_to_copy` holds subtrees copied as one unit.
    """
    directories_to_create: tuple[ExportDirectory, ...] = ()
    directories_to_copy: tuple[ExportDirectory, ...] = ()
    files_to_copy: tuple[ExportFile, ...] = ()
    metadata: ExportMetadata = field(default_factory=lambda: ExportMetadata(timestamp=0))

    @property
    def total_items(self) -> int:
        return (
            len(self.directories_to_create)
            + len(self.directories_to_copy)
            + len(self.files_to_copy)
        )

    @property
    def is_empty(self) -> bool:
        return self.total_items == 0

    def summary(self) -> str:
        """Short human readable description of the plan."""
        return (
            f"{len(self.files_to_copy)} files, "
            f"{len(self.directories_to_copy)} directories, "
            f"{len(self.directories_to_create)} empty directories"
        )


# =============================================================================
# Execution Models
# =============================================================================

@dataclass(frozen=True)
class ExportFailure:
    """A single item that could not be processed."""
    src_abs_path: str
    dst_abs_path: str
    error: str

    def __str__(self) -> str:
        return f"{self.src_abs_path} -> {self.dst_abs_path}: {self.error}"


@dataclass
class ExportResult:
    """Result of executing an export plan."""
    directories_created_count: int = 0
    directories_copied_count: int = 0
    files_copied_count: int = 0
    failures: list[ExportFailure] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    copied_files: list[str] = field(default_factory=list)  # Destination paths
    cancelled: bool = False
    duration: float = 0.0

    @property
    def has_failures(self) -> bool:
        return len(self.failures) > 0

    @property
    def success(self) -> bool:
        return not self.has_failures and not self.cancelled

    @property
    def items_processed(self) -> int:
        return (
            self.directories_created_count
            + self.directories_copied_count
            + self.files_copied_count
            + len(self.skipped)
            + len(self.failures)
        )


@dataclass
class ExportProgress:
    """Progress of a running plan execution."""
    message: str
    completed: int
    total: int
    increment: float = 0.0

    @property
    def percent(self) -> float:
        if self.total == 0:
            return 0.0
        return (self.completed / self.total) * 100


# report(message, increment_percent)
ProgressCallback = Callable[[str, float], None]


# =============================================================================
# Error Models
# =============================================================================

class ExportSetupError(Exception):
    """The export root cannot be created or reached. Nothing was executed."""

    def __init__(self, message: str, path: str = ""):
        super().__init__(message)
        self.path = path


class PlanValidationError(ExportSetupError):
    """The plan is malformed and cannot be executed safely."""
    pass


class OperationCancelled(Exception):
    """Raised when an operation is cancelled before producing a result."""
    pass
