"""
Workers for export and import operations.
"""

from __future__ import annotations

from typing import Optional, Sequence

from PyQt6.QtCore import QObject, pyqtSignal

from ctxmirror.core.models import Node
from ctxmirror.services.export_service import (
    ExportImportService,
    ExportOptions,
    ExportSummary,
    ImportOptions,
    ImportSummary,
)
from ctxmirror.workers.base_worker import CancellableWorker


class ExportWorker(CancellableWorker):
    """
    Worker for exporting the configuration tree.

    Reports progress for each planned item and emits `item_failed`
    once per failure after the run.
    """

    # Emitted for each item that could not be copied
    item_failed = pyqtSignal(str, str)  # (source path, error)

    def __init__(
        self,
        service: ExportImportService,
        root_nodes: Sequence[Node],
        options: ExportOptions,
        parent: Optional[QObject] = None
    ):
        super().__init__(parent=parent)
        self.service = self.track(service)
        self.root_nodes = list(root_nodes)
        self.options = options

    def do_work(self) -> ExportSummary:
        self.check_cancelled()
        self.report_status(f"Exporting to {self.options.target_directory}...")

        summary = self.service.export(
            self.root_nodes,
            self.options,
            progress=self.progress_callback(),
        )

        for failure in summary.result.failures:
            self.item_failed.emit(failure.src_abs_path, failure.error)

        return summary


class ImportWorker(CancellableWorker):
    """Worker for importing from an export directory."""

    item_failed = pyqtSignal(str, str)  # (source path, error)

    # Emitted for each file left untouched
    item_skipped = pyqtSignal(str)

    def __init__(
        self,
        service: ExportImportService,
        root_nodes: Sequence[Node],
        options: ImportOptions,
        parent: Optional[QObject] = None
    ):
        super().__init__(parent=parent)
        self.service = self.track(service)
        self.root_nodes = list(root_nodes)
        self.options = options

    def do_work(self) -> ImportSummary:
        self.check_cancelled()
        self.report_status(f"Importing from {self.options.source_directory}...")

        summary = self.service.import_(
            self.root_nodes,
            self.options,
            progress=self.progress_callback(),
        )

        for path in summary.skipped_files:
            self.item_skipped.emit(path)
        for failure in summary.result.failures:
            self.item_failed.emit(failure.src_abs_path, failure.error)

        return summary
