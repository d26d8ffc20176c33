"""
Export and import orchestration.

Export directory layout:

    <export-dir>/
      .gitignore
      global/
        .claude.json
        .claude/...
      projects/
        <project-name>/
          .claude/...
          CLAUDE.md
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Callable, Optional, Sequence

from ctxmirror.core.export.executor import PlanExecutor
from ctxmirror.core.export.importer import ImportPlanner
from ctxmirror.core.export.scanner import ChildrenProvider, ExportScanner
from ctxmirror.core.models import (
    ExportFailure,
    ExportPlan,
    ExportResult,
    Node,
    OverwritePolicy,
    ProgressCallback,
    TransferDirection,
)
from ctxmirror.services.file_system import LocalFileSystem
from ctxmirror.services.settings import DEFAULT_GITIGNORE_CONTENT


GITIGNORE_NAME = ".gitignore"


class GitignoreDecision(Enum):
    """What to do with an existing .gitignore that differs."""
    OVERWRITE = auto()
    KEEP = auto()


class GitignoreStatus(Enum):
    """Outcome of writing the export .gitignore."""
    CREATED = auto()
    UNCHANGED = auto()     # Already had the wanted content
    OVERWRITTEN = auto()
    KEPT = auto()          # Differs, caller chose to keep it
    FAILED = auto()


# resolver(path, existing_content, new_content)
GitignoreConflictResolver = Callable[[str, str, str], GitignoreDecision]


def keep_existing(path: str, existing: str, new: str) -> GitignoreDecision:
    return GitignoreDecision.KEEP


@dataclass
class ExportOptions:
    """Options for an export."""
    target_directory: str
    create_gitignore: bool = True
    gitignore_content: str = DEFAULT_GITIGNORE_CONTENT
    overwrite: OverwritePolicy = OverwritePolicy.OVERWRITE


@dataclass
class ImportOptions:
    """Options for an import."""
    source_directory: str
    overwrite: bool = False


@dataclass
class ExportSummary:
    """Outcome of an export."""
    plan: ExportPlan
    result: ExportResult
    export_path: str
    exported_files: list[str] = field(default_factory=list)
    gitignore: Optional[GitignoreStatus] = None

    @property
    def file_count(self) -> int:
        return self.result.files_copied_count


@dataclass
class ImportSummary:
    """Outcome of an import."""
    plan: ExportPlan
    result: ExportResult
    source_directory: str
    files_found: int = 0
    imported_files: list[str] = field(default_factory=list)
    skipped_files: list[str] = field(default_factory=list)

    @property
    def file_count(self) -> int:
        return self.result.files_copied_count

    @property
    def skipped_count(self) -> int:
        return len(self.skipped_files)


class ExportImportService:
    """
    Exports and imports Claude configuration.

    Combines the scanner, executor and import planner and adds the
    export .gitignore.
    """

    def __init__(
        self,
        scanner: ExportScanner,
        executor: Optional[PlanExecutor] = None,
        file_system: Optional[LocalFileSystem] = None,
        gitignore_resolver: GitignoreConflictResolver = keep_existing,
    ):
        self.scanner = scanner
        self.file_system = file_system or LocalFileSystem()
        self.executor = executor or PlanExecutor(self.file_system)
        self.importer = ImportPlanner(scanner, self.executor)
        self.gitignore_resolver = gitignore_resolver

    @classmethod
    def create(
        cls,
        children_provider: ChildrenProvider,
        file_system: Optional[LocalFileSystem] = None,
        max_workers: int = 1,
        gitignore_resolver: GitignoreConflictResolver = keep_existing,
    ) -> 'ExportImportService':
        """Wire a service for a tree provider and filesystem."""
        file_system = file_system or LocalFileSystem()
        return cls(
            scanner=ExportScanner(file_system, children_provider),
            executor=PlanExecutor(file_system, max_workers=max_workers),
            file_system=file_system,
            gitignore_resolver=gitignore_resolver,
        )

    def plan(self, root_nodes: Sequence[Node]) -> ExportPlan:
        """Scan without executing."""
        self.importer.reset()
        return self.scanner.scan(root_nodes)

    def export(
        self,
        root_nodes: Sequence[Node],
        options: ExportOptions,
        progress: Optional[ProgressCallback] = None,
    ) -> ExportSummary:
        """
        Export the tree into the target directory.

        Raises:
            ExportSetupError: If the target cannot be created
        """
        target = options.target_directory
        self.importer.reset()
        _report(progress, "Preparing export...")

        plan = self.scanner.scan(root_nodes)
        _report(progress, f"Found {plan.summary()}")

        result = self.executor.execute(
            plan,
            target,
            progress=progress,
            direction=TransferDirection.EXPORT,
            overwrite=options.overwrite,
        )

        gitignore = None
        if options.create_gitignore and not result.cancelled:
            gitignore = self.ensure_gitignore(target, options.gitignore_content)

        _report(progress, _finished_message("Export", result))

        return ExportSummary(
            plan=plan,
            result=result,
            export_path=target,
            exported_files=[] if result.cancelled else [f.dst_relative_path for f in plan.files_to_copy],
            gitignore=gitignore,
        )

    def import_(
        self,
        root_nodes: Sequence[Node],
        options: ImportOptions,
        progress: Optional[ProgressCallback] = None,
    ) -> ImportSummary:
        """
        Restore files from an export directory onto the current tree.

        Existing files are skipped unless `options.overwrite` is set.

        Raises:
            ExportSetupError: If the source directory does not exist
        """
        source = options.source_directory
        self.importer.reset()
        _report(progress, "Preparing import...")

        plan = self.importer.plan(root_nodes)
        found = self.importer.preview(plan, source)
        _report(progress, f"Found {len(found)} files to import")

        policy = OverwritePolicy.OVERWRITE if options.overwrite else OverwritePolicy.SKIP_EXISTING
        result = self.importer.run(plan, source, overwrite=policy, progress=progress)

        _report(progress, _finished_message("Import", result))

        return ImportSummary(
            plan=plan,
            result=result,
            source_directory=source,
            files_found=len(found),
            imported_files=list(result.copied_files),
            skipped_files=list(result.skipped),
        )

    def ensure_gitignore(self, directory: str, content: str = DEFAULT_GITIGNORE_CONTENT) -> GitignoreStatus:
        """Write the export .gitignore, asking the resolver before replacing one."""
        path = os.path.join(directory, GITIGNORE_NAME)

        try:
            if self.file_system.exists(path):
                existing = self.file_system.read_text(path)
                if existing == content:
                    return GitignoreStatus.UNCHANGED

                decision = self.gitignore_resolver(path, existing, content)
                if decision != GitignoreDecision.OVERWRITE:
                    logging.info(f"ExportImportService - Keeping existing {path}")
                    return GitignoreStatus.KEPT

                self.file_system.write_text(path, content)
                return GitignoreStatus.OVERWRITTEN

            self.file_system.write_text(path, content)
            return GitignoreStatus.CREATED

        except OSError as e:
            logging.warning(f"ExportImportService - Failed to write {path}: {e}")
            return GitignoreStatus.FAILED

    def cancel(self) -> None:
        self.importer.cancel()


def _report(progress: Optional[ProgressCallback], message: str) -> None:
    if progress is not None:
        progress(message, 0.0)


def format_failures(failures: Sequence[ExportFailure], limit: int = 5) -> str:
    """Render the first `limit` failures and a count of the rest."""
    if not failures:
        return ""

    lines = [f"  {failure}" for failure in failures[:limit]]
    remaining = len(failures) - limit
    if remaining > 0:
        lines.append(f"  ... and {remaining} more")
    return "\n".join(lines)


def _finished_message(operation: str, result: ExportResult) -> str:
    state = "cancelled" if result.cancelled else "complete"
    message = f"{operation} {state}: {result.files_copied_count} files"
    if result.skipped:
        message += f", {len(result.skipped)} skipped"
    if result.has_failures:
        message += f", {len(result.failures)} failed"
    return message
