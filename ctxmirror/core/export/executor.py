"""
Export plan executor.

Runs an ExportPlan against a root directory in three sequential phases:
1. Create placeholder and project root directories
2. Copy whole directories recursively
3. Copy single files (optionally on a bounded thread pool)

Per-item errors are recorded as ExportFailure and never abort the run.
Only setup problems (invalid plan, unreachable root) raise.
"""

from __future__ import annotations

import logging
import os
import re
import threading
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Optional, Protocol

from ctxmirror.core.models import (
    ExportDirectory,
    ExportFailure,
    ExportFile,
    ExportPlan,
    ExportProgress,
    ExportResult,
    ExportSetupError,
    OverwritePolicy,
    PlanValidationError,
    ProgressCallback,
    TransferDirection,
)
from ctxmirror.services.file_system import LocalFileSystem


MAX_WORKERS_LIMIT = 10

_DRIVE_RE = re.compile(r"^[A-Za-z]:")


class FileOperations(Protocol):
    """Filesystem primitives the executor needs. All of them may raise."""

    def copy_file(self, src: str, dst: str) -> None: ...

    def copy_tree(self, src: str, dst: str, overwrite: bool = True) -> None: ...

    def make_dirs(self, path: str) -> None: ...

    def exists(self, path: str) -> bool: ...


def validate_plan(plan: ExportPlan) -> None:
    """
    Check that a plan can be executed safely.

    Raises:
        PlanValidationError: On absolute or escaping destinations, or
            entries that need a source path but have none.
    """
    entries: list[ExportDirectory | ExportFile] = [
        *plan.directories_to_create,
        *plan.directories_to_copy,
        *plan.files_to_copy,
    ]
    for entry in entries:
        rel = entry.dst_relative_path
        if not rel:
            raise PlanValidationError(f"Empty destination for '{entry.label}'")
        if rel.startswith(("/", "\\")) or _DRIVE_RE.match(rel):
            raise PlanValidationError(f"Destination is not relative: {rel}")
        if ".." in re.split(r"[/\\]", rel):
            raise PlanValidationError(f"Destination escapes the root: {rel}")

    for directory in plan.directories_to_create:
        if not directory.src_abs_path and not directory.is_placeholder:
            raise PlanValidationError(f"Directory '{directory.label}' has no source path")

    for directory in plan.directories_to_copy:
        if not directory.src_abs_path:
            raise PlanValidationError(f"Directory '{directory.label}' has no source path")

    for file in plan.files_to_copy:
        if not file.src_abs_path:
            raise PlanValidationError(f"File '{file.label}' has no source path")


class _Tally:
    """Counters, failures and progress shared by all items of one run."""

    def __init__(self, total: int, progress: Optional[ProgressCallback]):
        self.result = ExportResult()
        self._total = total
        self._completed = 0
        self._progress = progress
        self._lock = threading.Lock()

    def created(self) -> None:
        with self._lock:
            self.result.directories_created_count += 1

    def copied_directory(self) -> None:
        with self._lock:
            self.result.directories_copied_count += 1

    def copied_file(self, dst: str) -> None:
        with self._lock:
            self.result.files_copied_count += 1
            self.result.copied_files.append(dst)

    def skipped(self, path: str) -> None:
        with self._lock:
            self.result.skipped.append(path)

    def failed(self, src: str, dst: str, error: Exception) -> None:
        with self._lock:
            self.result.failures.append(ExportFailure(src, dst, str(error)))
        logging.warning(f"PlanExecutor - Failed {src} -> {dst}: {error}")

    def advance(self, message: str) -> None:
        with self._lock:
            self._completed += 1
            progress = ExportProgress(
                message=message,
                completed=self._completed,
                total=self._total,
                increment=100 / self._total if self._total > 0 else 0.0,
            )

        # Called unlocked so a slow callback does not stall the pool
        if self._progress is not None:
            self._progress(f"{progress.message} ({progress.completed}/{progress.total})", progress.increment)


class PlanExecutor:
    """
    Executes export plans in either direction.

    EXPORT copies each entry's source into ``root/<dst_relative_path>``.
    IMPORT copies ``root/<dst_relative_path>`` back onto the source.
    """

    def __init__(self, file_ops: Optional[FileOperations] = None, max_workers: int = 1):
        self.file_ops = file_ops or LocalFileSystem()
        self.max_workers = max(1, min(max_workers, MAX_WORKERS_LIMIT))
        self._cancelled = False

    def execute(
        self,
        plan: ExportPlan,
        root: str,
        progress: Optional[ProgressCallback] = None,
        direction: TransferDirection = TransferDirection.EXPORT,
        overwrite: OverwritePolicy = OverwritePolicy.OVERWRITE,
    ) -> ExportResult:
        """
        Execute a plan against a root directory.

        Args:
            plan: The plan to execute
            root: Export root (destination on export, source on import)
            progress: Called as ``progress(message, increment_percent)``
            direction: EXPORT or IMPORT
            overwrite: Whether existing destination files are replaced

        Returns:
            ExportResult with counts and per-item failures

        Raises:
            PlanValidationError: The plan is malformed
            ExportSetupError: The root cannot be created or reached
        """
        start_time = time.time()

        validate_plan(plan)
        if self._cancelled:
            logging.info("PlanExecutor - Cancelled before start")
            return ExportResult(cancelled=True, duration=time.time() - start_time)

        self._prepare_root(root, direction)

        tally = _Tally(plan.total_items, progress)
        replace = overwrite == OverwritePolicy.OVERWRITE

        logging.info(
            f"PlanExecutor - {direction.name.lower()} {plan.summary()} "
            f"({'overwrite' if replace else 'skip existing'}, {self.max_workers} workers)"
        )

        phases = (
            lambda: self._create_directories(plan, root, direction, tally),
            lambda: self._copy_directories(plan, root, direction, replace, tally),
            lambda: self._copy_files(plan, root, direction, replace, tally),
        )
        for phase in phases:
            if self._cancelled:
                break
            phase()

        result = tally.result
        result.cancelled = self._cancelled
        result.duration = time.time() - start_time

        logging.info(
            f"PlanExecutor - Done: {result.files_copied_count} files, "
            f"{result.directories_copied_count} directories copied, "
            f"{len(result.skipped)} skipped, {len(result.failures)} failed"
        )
        return result

    def cancel(self) -> None:
        """Request cancellation. Checked between items and phases, and stays set until `reset`."""
        self._cancelled = True

    def reset(self) -> None:
        """Clear a previous cancellation before reusing the executor."""
        self._cancelled = False

    @property
    def is_cancelled(self) -> bool:
        return self._cancelled

    def _prepare_root(self, root: str, direction: TransferDirection) -> None:
        if not root:
            raise ExportSetupError("No root directory given")

        if direction == TransferDirection.IMPORT:
            if not self.file_ops.exists(root):
                raise ExportSetupError(f"Import directory does not exist: {root}", root)
            return

        try:
            self.file_ops.make_dirs(root)
        except OSError as e:
            raise ExportSetupError(f"Cannot create export directory {root}: {e}", root) from e

    @staticmethod
    def _resolve(
        entry: ExportDirectory | ExportFile,
        root: str,
        direction: TransferDirection,
    ) -> tuple[str, str]:
        """Return (source, destination) for an entry."""
        in_root = os.path.join(root, *entry.dst_relative_path.split("/"))
        if direction == TransferDirection.IMPORT:
            return in_root, entry.src_abs_path
        return entry.src_abs_path, in_root

    # -------------------------------------------------------------------------
    # Phases
    # -------------------------------------------------------------------------

    def _create_directories(
        self,
        plan: ExportPlan,
        root: str,
        direction: TransferDirection,
        tally: _Tally,
    ) -> None:
        for directory in plan.directories_to_create:
            if self._cancelled:
                return

            if directory.is_placeholder:
                tally.created()
                tally.advance("Creating directory structure")
                continue

            _, dst = self._resolve(directory, root, direction)
            try:
                self.file_ops.make_dirs(dst)
                tally.created()
            except Exception as e:
                tally.failed(directory.src_abs_path, dst, e)
            tally.advance("Creating directory structure")

    def _copy_directories(
        self,
        plan: ExportPlan,
        root: str,
        direction: TransferDirection,
        replace: bool,
        tally: _Tally,
    ) -> None:
        for directory in plan.directories_to_copy:
            if self._cancelled:
                return

            src, dst = self._resolve(directory, root, direction)
            try:
                if direction == TransferDirection.IMPORT and not self.file_ops.exists(src):
                    tally.skipped(dst)
                else:
                    self.file_ops.make_dirs(os.path.dirname(dst))
                    self.file_ops.copy_tree(src, dst, overwrite=replace)
                    tally.copied_directory()
            except Exception as e:
                tally.failed(src, dst, e)
            tally.advance(f"Copying directory: {directory.label}")

    def _copy_files(
        self,
        plan: ExportPlan,
        root: str,
        direction: TransferDirection,
        replace: bool,
        tally: _Tally,
    ) -> None:
        if self.max_workers == 1 or len(plan.files_to_copy) < 2:
            for file in plan.files_to_copy:
                if self._cancelled:
                    return
                self._copy_one(file, root, direction, replace, tally)
            return

        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            futures = [
                pool.submit(self._copy_one, file, root, direction, replace, tally)
                for file in plan.files_to_copy
            ]
            for future in as_completed(futures):
                # _copy_one records its own errors
                future.result()

    def _copy_one(
        self,
        file: ExportFile,
        root: str,
        direction: TransferDirection,
        replace: bool,
        tally: _Tally,
    ) -> None:
        if self._cancelled:
            return

        src, dst = self._resolve(file, root, direction)
        try:
            if direction == TransferDirection.IMPORT and not self.file_ops.exists(src):
                tally.skipped(dst)
            elif not replace and self.file_ops.exists(dst):
                tally.skipped(dst)
            else:
                self.file_ops.make_dirs(os.path.dirname(dst))
                self.file_ops.copy_file(src, dst)
                tally.copied_file(dst)
        except Exception as e:
            tally.failed(src, dst, e)
        tally.advance(f"Copying file: {os.path.basename(file.src_abs_path)}")
