"""
Import planning.

Import reuses the export plan: the current tree is scanned to learn
where every entry lives, and the executor then copies from the export
root back onto those locations.
"""

from __future__ import annotations

import logging
import os
from typing import Optional, Sequence

from ctxmirror.core.export.executor import PlanExecutor
from ctxmirror.core.export.scanner import ChildrenProvider, ExportScanner
from ctxmirror.core.models import (
    ExportFile,
    ExportPlan,
    ExportResult,
    Node,
    OverwritePolicy,
    ProgressCallback,
    TransferDirection,
)


class ImportPlanner:
    """Plans and runs imports from an export root."""

    def __init__(self, scanner: ExportScanner, executor: Optional[PlanExecutor] = None):
        self.scanner = scanner
        self.executor = executor or PlanExecutor()

    def plan(
        self,
        root_nodes: Sequence[Node],
        children_provider: Optional[ChildrenProvider] = None,
    ) -> ExportPlan:
        """Scan the current tree. Entries point at the files to restore."""
        return self.scanner.scan(root_nodes, children_provider)

    def preview(self, plan: ExportPlan, import_root: str) -> list[ExportFile]:
        """Files of the plan that are present in the import root."""
        found = []
        for file in plan.files_to_copy:
            candidate = os.path.join(import_root, *file.dst_relative_path.split("/"))
            if os.path.isfile(candidate):
                found.append(file)
        logging.debug(
            f"ImportPlanner - {len(found)} of {len(plan.files_to_copy)} files found in {import_root}"
        )
        return found

    def run(
        self,
        plan: ExportPlan,
        import_root: str,
        overwrite: OverwritePolicy = OverwritePolicy.SKIP_EXISTING,
        progress: Optional[ProgressCallback] = None,
    ) -> ExportResult:
        """Copy from the import root onto the planned source locations."""
        return self.executor.execute(
            plan,
            import_root,
            progress=progress,
            direction=TransferDirection.IMPORT,
            overwrite=overwrite,
        )

    def cancel(self) -> None:
        self.scanner.cancel()
        self.executor.cancel()

    def reset(self) -> None:
        """Clear a previous cancellation of the scanner and executor."""
        self.scanner.reset()
        self.executor.reset()
