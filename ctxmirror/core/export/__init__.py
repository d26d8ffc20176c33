"""
Export module.

Provides functionality for:
- Scanning the configuration tree into an export plan
- Executing plans in the export or import direction
- Import planning on top of the export machinery
"""

from ctxmirror.core.export.scanner import (
    ChildrenProvider,
    DirectoryLister,
    ExportScanner,
)
from ctxmirror.core.export.executor import (
    FileOperations,
    PlanExecutor,
    validate_plan,
)
from ctxmirror.core.export.importer import (
    ImportPlanner,
)

__all__ = [
    # Scanner
    'ChildrenProvider',
    'DirectoryLister',
    'ExportScanner',
    # Executor
    'FileOperations',
    'PlanExecutor',
    'validate_plan',
    # Import
    'ImportPlanner',
]
